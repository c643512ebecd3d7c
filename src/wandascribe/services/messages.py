"""Localized user-facing strings.

Catalogs use the MediaWiki ``i18n/<lang>.json`` layout: a flat mapping of
message keys to text, with an optional ``@metadata`` entry that is ignored.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

__all__ = [
    "MSG_NO_SPELLING_ERRORS",
    "MSG_NO_CHANGES_NEEDED",
    "MSG_ERROR",
    "DEFAULT_MESSAGES",
    "CatalogMessage",
    "MessageCatalog",
]

LOGGER = logging.getLogger(__name__)

MSG_NO_SPELLING_ERRORS = "wandascribe-no-spelling-errors"
MSG_NO_CHANGES_NEEDED = "wandascribe-no-changes-needed"
MSG_ERROR = "wandascribe-error"

DEFAULT_MESSAGES: Mapping[str, str] = {
    MSG_NO_SPELLING_ERRORS: "No spelling errors found.",
    MSG_NO_CHANGES_NEEDED: "No changes needed.",
    MSG_ERROR: "Something went wrong. Please try again.",
}


@dataclass(frozen=True, slots=True)
class CatalogMessage:
    key: str
    template: str | None

    def text(self) -> str:
        if self.template is None:
            return f"⧼{self.key}⧽"
        return self.template


class MessageCatalog:
    """Message provider backed by an in-memory mapping."""

    def __init__(self, messages: Mapping[str, str] | None = None, *, language: str = "en") -> None:
        merged: Dict[str, str] = dict(DEFAULT_MESSAGES)
        if messages:
            merged.update(messages)
        self._messages = merged
        self.language = language

    @classmethod
    def from_file(cls, path: Path | str, *, language: str | None = None) -> "MessageCatalog":
        """Load a catalog from a JSON file or an ``i18n`` directory."""

        target = Path(path).expanduser()
        lang = language or "en"
        if target.is_dir():
            target = target / f"{lang}.json"
        payload = _read_catalog(target)
        return cls(payload, language=lang)

    def message(self, key: str) -> CatalogMessage:
        return CatalogMessage(key=key, template=self._messages.get(key))

    def __contains__(self, key: object) -> bool:
        return key in self._messages


def _read_catalog(path: Path) -> Dict[str, str]:
    try:
        raw: Any = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        LOGGER.warning("Message catalog %s not found; using defaults", path)
        return {}
    except json.JSONDecodeError as exc:
        LOGGER.warning("Message catalog %s is not valid JSON: %s", path, exc)
        return {}
    if not isinstance(raw, Mapping):
        LOGGER.warning("Message catalog %s is not a JSON object; using defaults", path)
        return {}
    return {
        str(key): str(value)
        for key, value in raw.items()
        if not str(key).startswith("@") and isinstance(value, str)
    }
