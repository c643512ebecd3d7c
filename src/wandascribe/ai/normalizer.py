"""Tolerant interpretation of raw text-service replies."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from .errors import MalformedResponseError

__all__ = ["ResponseNormalizer", "normalize_response", "strip_code_fence"]

LOGGER = logging.getLogger(__name__)

# Any language tag (``json``, ``text``, ``python``...) or none at all.
_FENCE_PATTERN = re.compile(r"```(?:[\w+-]+)?[ \t]*\r?\n?(.*?)\r?\n?[ \t]*```", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Return the trimmed interior of the first fenced block, or the trimmed text."""

    stripped = (text or "").strip()
    match = _FENCE_PATTERN.search(stripped)
    if match:
        return match.group(1).strip()
    return stripped


class ResponseNormalizer:
    """Turns a raw reply into either parsed JSON or plain text.

    Prose around a fenced block is discarded. Objects and arrays count as
    structured data; JSON scalars and anything unparsable come back as the
    candidate string. :meth:`normalize` never raises.
    """

    def normalize(self, raw: str | None) -> Any:
        candidate = strip_code_fence(raw or "")
        try:
            return self.parse_structured(candidate)
        except MalformedResponseError as exc:
            LOGGER.debug("Reply is not structured (%s); returning plain text", exc.message)
            return candidate

    @staticmethod
    def parse_structured(candidate: str) -> dict[str, Any] | list[Any]:
        if not candidate:
            raise MalformedResponseError(message="Empty reply")
        try:
            parsed = json.loads(candidate)
        except (json.JSONDecodeError, ValueError) as exc:
            raise MalformedResponseError(message=f"Invalid JSON: {exc}") from exc
        if not isinstance(parsed, (dict, list)):
            raise MalformedResponseError(message=f"JSON scalar of type {type(parsed).__name__}")
        return parsed


_DEFAULT_NORMALIZER = ResponseNormalizer()


def normalize_response(raw: str | None) -> Any:
    """Module-level shortcut for :meth:`ResponseNormalizer.normalize`."""

    return _DEFAULT_NORMALIZER.normalize(raw)
