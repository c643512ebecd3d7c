"""Command-line entry point for running one transformation against the service."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, TextIO

from openai import OpenAIError

from .ai.client import TextServiceClient
from .ai.errors import NoSelectionError, ServiceUnavailableError
from .ai.results import Misspellings, PlainText, ServiceError, Suggestion, TransformationKind, TransformationResult
from .ai.transport import BACKEND_CHOICES
from .services.messages import MSG_NO_CHANGES_NEEDED, MSG_NO_SPELLING_ERRORS, MessageCatalog
from .services.settings import Settings, SettingsStore, redact_secret
from .utils import logging as logging_utils
from .utils.telemetry import UsageRecorder

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_NULL_VALUES = {"", "none", "null"}
_LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNAVAILABLE = 1
EXIT_USAGE = 2


def configure_logging(debug: bool = False, settings: Settings | None = None) -> Path:
    """Configure logging for the command-line run."""

    config = logging_utils.LoggingConfig.for_run(debug=debug, settings=settings)
    path = logging_utils.setup_logging(config)
    _LOGGER.debug("Logging to %s (level=%s)", path, logging.getLevelName(config.level))
    return path


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def build_client(settings: Settings) -> TextServiceClient:
    return TextServiceClient(settings.client_settings(), options=settings.request_options())


def load_messages(settings: Settings) -> MessageCatalog:
    if settings.messages_path:
        return MessageCatalog.from_file(settings.messages_path, language=settings.language)
    return MessageCatalog(language=settings.language)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the `wandascribe` console script."""

    args = _parse_cli_args(argv)

    settings_path = args.settings_path or os.environ.get("WANDASCRIBE_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return EXIT_USAGE

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)
    configure_logging(args.debug, settings)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return EXIT_OK

    if args.action is None:
        print("An action is required unless --dump-settings is given.", file=sys.stderr)
        return EXIT_USAGE

    try:
        text = _read_input(args.text)
    except NoSelectionError as exc:
        print(exc.message, file=sys.stderr)
        return EXIT_USAGE

    try:
        client = build_client(settings)
    except (OpenAIError, ValueError) as exc:
        _LOGGER.error("Cannot create the %s client: %s", settings.backend, exc)
        print(f"Text service is not configured: {exc}", file=sys.stderr)
        return EXIT_USAGE

    kind = TransformationKind.parse(args.action)
    usage = UsageRecorder.from_settings(settings)
    try:
        result = asyncio.run(_run_once(client, kind, text))
    except ServiceUnavailableError as exc:
        _LOGGER.debug("Service unavailable", exc_info=True)
        usage.cli_failed(kind, exc)
        usage.flush()
        print(f"Text service unavailable: {exc.message}", file=sys.stderr)
        return EXIT_UNAVAILABLE

    usage.cli_completed(kind, result)
    usage.flush()
    return _emit_result(result, load_messages(settings))


async def _run_once(client: TextServiceClient, kind: TransformationKind, text: str) -> TransformationResult:
    try:
        return await client.run(kind, text)
    finally:
        await client.aclose()


def _emit_result(result: TransformationResult, messages: MessageCatalog, stream: TextIO | None = None) -> int:
    destination = stream or sys.stdout
    if isinstance(result, ServiceError):
        print(f"Text service error: {result.message}", file=sys.stderr)
        return EXIT_UNAVAILABLE
    if isinstance(result, Misspellings):
        if result.misspelled:
            payload = [word.as_dict() for word in result.words]
            json.dump({"misspelled": True, "words": payload}, destination, indent=2, ensure_ascii=False)
            destination.write("\n")
        else:
            destination.write(messages.message(MSG_NO_SPELLING_ERRORS).text() + "\n")
        return EXIT_OK
    if isinstance(result, PlainText):
        destination.write(result.text + "\n")
        return EXIT_OK
    if isinstance(result, Suggestion) and result.text:
        destination.write(result.text + "\n")
        return EXIT_OK
    destination.write(messages.message(MSG_NO_CHANGES_NEEDED).text() + "\n")
    return EXIT_OK


def _read_input(text: str | None) -> str:
    if text is None or text == "-":
        text = sys.stdin.read()
    if not text.strip():
        raise NoSelectionError(message="No input text given")
    return text


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="wandascribe",
        description="Run one WandaScribe transformation against the configured text service.",
    )
    parser.add_argument(
        "action",
        nargs="?",
        choices=[kind.value for kind in TransformationKind],
        help="Transformation to run.",
    )
    parser.add_argument(
        "text",
        nargs="?",
        help="Input text; read from stdin when omitted or '-'.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload (with secrets redacted) and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.wandascribe/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    """Parse ``KEY=VALUE`` entries with the parser registered for each setting."""

    overrides: Dict[str, Any] = {}
    for entry in items:
        key, separator, raw_value = entry.partition("=")
        key = key.strip()
        if not separator or not key:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        parser = _OVERRIDE_PARSERS.get(key)
        if parser is None:
            raise ValueError(f"Unknown setting '{key}'.")
        try:
            overrides[key] = parser(raw_value.strip())
        except ValueError as exc:
            raise ValueError(f"{key}: {exc}") from exc
    return overrides


def _parse_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"cannot read '{value}' as a boolean")


def _parse_backend(value: str) -> str:
    backend = value.lower()
    if backend not in BACKEND_CHOICES:
        raise ValueError(f"backend must be one of {', '.join(BACKEND_CHOICES)}")
    return backend


def _parse_non_negative_float(value: str) -> float:
    number = float(value)
    if number < 0:
        raise ValueError("must not be negative")
    return number


def _parse_non_negative_int(value: str) -> int:
    number = int(value, 10)
    if number < 0:
        raise ValueError("must not be negative")
    return number


def _parse_optional_path(value: str) -> str | None:
    if value.lower() in _NULL_VALUES:
        return None
    return value


def _parse_headers(value: str) -> dict[str, str]:
    try:
        payload = json.loads(value or "{}")
    except json.JSONDecodeError as exc:
        raise ValueError("headers must be a JSON object") from exc
    if not isinstance(payload, dict) or not all(isinstance(item, str) for item in payload.values()):
        raise ValueError("headers must be a JSON object of strings")
    return payload


_OVERRIDE_PARSERS: Mapping[str, Callable[[str], Any]] = {
    "backend": _parse_backend,
    "base_url": str,
    "api_key": str,
    "model": str,
    "request_timeout": _parse_non_negative_float,
    "max_retries": _parse_non_negative_int,
    "retry_min_seconds": _parse_non_negative_float,
    "retry_max_seconds": _parse_non_negative_float,
    "temperature": _parse_non_negative_float,
    "max_tokens": _parse_non_negative_int,
    "skip_knowledge_query": _parse_bool,
    "use_public_knowledge": _parse_bool,
    "spellcheck_delay": _parse_non_negative_float,
    "success_hide_delay": _parse_non_negative_float,
    "default_headers": _parse_headers,
    "messages_path": _parse_optional_path,
    "language": str,
    "debug_logging": _parse_bool,
    "telemetry_opt_in": _parse_bool,
}


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    payload["api_key"] = redact_secret(settings.api_key)
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    json.dump({"settings": payload, "meta": metadata}, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("WANDASCRIBE_"))
