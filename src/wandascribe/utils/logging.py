"""Logging for WandaScribe hosts and the command line.

Records go to a rotating ``wandascribe.log``; a stderr handler is added for
debug runs. The configured API key and any bearer token are masked before a
handler formats the record, since transport debug logging echoes request
headers and payloads.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

__all__ = ["LOG_FILE_NAME", "LoggingConfig", "SecretMaskingFilter", "active_log_path", "setup_logging"]

LOG_FILE_NAME = "wandascribe.log"
_DEFAULT_LOG_DIR = Path.home() / ".wandascribe" / "logs"
_QUIET_LOGGERS: tuple[str, ...] = ("asyncio", "httpx", "httpcore", "openai")
_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_BEARER = re.compile(r"(Bearer\s+)[^\s'\"]+", re.IGNORECASE)
_MASK = "***"

_ACTIVE_PATH: Path | None = None


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    level: int = logging.WARNING
    log_dir: Path | None = None
    console: bool = False
    secrets: tuple[str, ...] = ()
    max_bytes: int = 1_000_000
    backup_count: int = 3

    @classmethod
    def for_run(cls, *, debug: bool = False, settings: Any | None = None) -> "LoggingConfig":
        """Derive the config for one run from the ``--debug`` flag and settings.

        ``WANDASCRIBE_LOG_LEVEL`` (a level name such as ``INFO``) overrides
        the level the flags imply.
        """

        debug = debug or bool(getattr(settings, "debug_logging", False))
        level = _env_level() or (logging.DEBUG if debug else logging.WARNING)
        api_key = getattr(settings, "api_key", "") or ""
        return cls(level=level, console=debug, secrets=(api_key,) if api_key else ())


class SecretMaskingFilter(logging.Filter):
    """Replaces known secrets and bearer tokens in the rendered message."""

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        super().__init__()
        self._secrets = tuple(secret for secret in secrets if secret)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = _BEARER.sub(r"\1" + _MASK, message)
        for secret in self._secrets:
            masked = masked.replace(secret, _MASK)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def setup_logging(config: LoggingConfig | None = None) -> Path:
    """Install the file (and optional console) handlers on the root logger.

    Calling it again replaces the handlers from the previous call.
    """

    global _ACTIVE_PATH
    config = config or LoggingConfig()
    target_dir = _resolve_log_dir(config.log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / LOG_FILE_NAME

    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=config.max_bytes, backupCount=config.backup_count, encoding="utf-8"
        )
    ]
    if config.console:
        handlers.append(logging.StreamHandler(sys.stderr))

    formatter = logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    masking = SecretMaskingFilter(config.secrets)
    for handler in handlers:
        handler.setLevel(config.level)
        handler.setFormatter(formatter)
        handler.addFilter(masking)

    logging.basicConfig(level=config.level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    quiet_level = max(config.level, logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    _ACTIVE_PATH = log_path
    return log_path


def active_log_path() -> Path | None:
    return _ACTIVE_PATH


def _env_level() -> int | None:
    raw = os.environ.get("WANDASCRIBE_LOG_LEVEL", "").strip().upper()
    if not raw:
        return None
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else None


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    env_override = os.environ.get("WANDASCRIBE_LOG_DIR")
    return Path(log_dir or env_override or _DEFAULT_LOG_DIR).expanduser()
