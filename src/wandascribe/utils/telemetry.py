"""Opt-in usage records for assistant actions, appended as JSONL.

A record names what happened (``action.completed``, ``spellcheck.failed``,
...), which transformation ran, the coarse outcome and an error code. The
selected text, the suggestions and the service replies never enter a record.
"""

from __future__ import annotations

import json
import os
import time
import uuid
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict

from ..ai.errors import ErrorCode
from ..ai.results import Misspellings, PlainText, ServiceError, Suggestion, TransformationKind, TransformationResult

__all__ = ["UsageEvent", "UsageEventName", "UsageRecorder", "outcome_of", "telemetry_enabled"]

TELEMETRY_FILE_NAME = "usage.jsonl"
_DEFAULT_TELEMETRY_DIR = Path.home() / ".wandascribe" / "telemetry"
_TRUE_VALUES = {"1", "true", "yes", "on"}


class UsageEventName(str, Enum):
    ACTION_COMPLETED = "action.completed"
    ACTION_FAILED = "action.failed"
    SUGGESTION_APPLIED = "suggestion.applied"
    SPELLCHECK_COMPLETED = "spellcheck.completed"
    SPELLCHECK_FAILED = "spellcheck.failed"
    CLI_COMPLETED = "cli.completed"
    CLI_FAILED = "cli.failed"


def outcome_of(result: TransformationResult) -> str:
    """Collapse a transformation result into a short outcome label."""

    if isinstance(result, Misspellings):
        return "misspelled" if result.misspelled else "clean"
    if isinstance(result, Suggestion):
        return "suggestion" if result.text else "no_change"
    if isinstance(result, PlainText):
        return "plain_text"
    if isinstance(result, ServiceError):
        return "service_error"
    raise TypeError(f"Not a transformation result: {result!r}")


@dataclass(frozen=True, slots=True)
class UsageEvent:
    name: UsageEventName
    action: str | None = None
    outcome: str | None = None
    error: str | None = None
    timestamp: float = field(default_factory=time.time)

    def as_record(self, session_id: str) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "session": session_id,
            "event": self.name.value,
            "at": round(self.timestamp, 3),
        }
        for key in ("action", "outcome", "error"):
            value = getattr(self, key)
            if value is not None:
                record[key] = value
        return record


class UsageRecorder:
    """Buffers usage events and appends them to ``usage.jsonl`` when enabled.

    A disabled recorder still counts events per name so hosts can show a
    session summary without anything touching the disk.
    """

    def __init__(
        self,
        *,
        enabled: bool = False,
        storage_dir: Path | str | None = None,
        flush_every: int = 32,
        session_id: str | None = None,
    ) -> None:
        self._enabled = enabled
        self._storage_dir = storage_dir
        self._flush_every = max(1, flush_every)
        self._session_id = session_id or uuid.uuid4().hex
        self._buffer: list[UsageEvent] = []
        self._counts: Counter[UsageEventName] = Counter()

    @classmethod
    def from_settings(cls, settings: Any | None, **kwargs: Any) -> "UsageRecorder":
        return cls(enabled=telemetry_enabled(settings), **kwargs)

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def path(self) -> Path:
        return _resolve_storage_dir(self._storage_dir) / TELEMETRY_FILE_NAME

    @property
    def pending(self) -> int:
        return len(self._buffer)

    # ------------------------------------------------------------------
    # Event helpers
    # ------------------------------------------------------------------
    def action_completed(self, kind: TransformationKind, result: TransformationResult) -> None:
        self.record(UsageEvent(UsageEventName.ACTION_COMPLETED, action=kind.value, outcome=outcome_of(result)))

    def action_failed(self, kind: TransformationKind, error: BaseException) -> None:
        self.record(UsageEvent(UsageEventName.ACTION_FAILED, action=kind.value, error=_error_code(error)))

    def suggestion_applied(self, *, targeted: bool) -> None:
        outcome = "word" if targeted else "selection"
        self.record(UsageEvent(UsageEventName.SUGGESTION_APPLIED, outcome=outcome))

    def spellcheck_completed(self, result: TransformationResult) -> None:
        self.record(
            UsageEvent(
                UsageEventName.SPELLCHECK_COMPLETED,
                action=TransformationKind.SPELL_CHECK.value,
                outcome=outcome_of(result),
            )
        )

    def spellcheck_failed(self, error: BaseException | ServiceError) -> None:
        self.record(
            UsageEvent(
                UsageEventName.SPELLCHECK_FAILED,
                action=TransformationKind.SPELL_CHECK.value,
                error=_error_code(error),
            )
        )

    def cli_completed(self, kind: TransformationKind, result: TransformationResult) -> None:
        self.record(UsageEvent(UsageEventName.CLI_COMPLETED, action=kind.value, outcome=outcome_of(result)))

    def cli_failed(self, kind: TransformationKind, error: BaseException) -> None:
        self.record(UsageEvent(UsageEventName.CLI_FAILED, action=kind.value, error=_error_code(error)))

    # ------------------------------------------------------------------
    # Buffering
    # ------------------------------------------------------------------
    def record(self, event: UsageEvent) -> None:
        self._counts[event.name] += 1
        if not self._enabled:
            return
        self._buffer.append(event)
        if len(self._buffer) >= self._flush_every:
            self.flush()

    def counts(self) -> Dict[str, int]:
        """Return how many events of each name this session has seen."""

        return {name.value: count for name, count in self._counts.items()}

    def flush(self) -> Path | None:
        """Append buffered events to the usage file and clear the buffer."""

        if not self._enabled or not self._buffer:
            return None
        target = self.path
        target.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(event.as_record(self._session_id), ensure_ascii=False) for event in self._buffer]
        with target.open("a", encoding="utf-8") as handle:
            handle.write("\n".join(lines) + "\n")
        self._buffer.clear()
        return target


def telemetry_enabled(settings: Any | None = None) -> bool:
    """``WANDASCRIBE_TELEMETRY`` wins over the ``telemetry_opt_in`` setting."""

    env_value = os.environ.get("WANDASCRIBE_TELEMETRY")
    if env_value is not None:
        return env_value.strip().lower() in _TRUE_VALUES
    if settings is None:
        return False
    return bool(getattr(settings, "telemetry_opt_in", False))


def _error_code(error: BaseException | ServiceError) -> str:
    if isinstance(error, ServiceError):
        return "service_error"
    code = getattr(error, "error_code", None)
    if isinstance(code, str) and code:
        return code
    if isinstance(error, Exception):
        return type(error).__name__
    return ErrorCode.INTERNAL_ERROR


def _resolve_storage_dir(storage_dir: Path | str | None) -> Path:
    env_override = os.environ.get("WANDASCRIBE_TELEMETRY_DIR")
    return Path(storage_dir or env_override or _DEFAULT_TELEMETRY_DIR).expanduser()
