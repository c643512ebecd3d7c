"""Error types raised by the assistant core.

Every error carries a machine-readable ``error_code`` and serializes to a
small JSON-friendly mapping so hosts can forward it to their own UI layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


class ErrorCode:
    """Constants for error codes used across the assistant."""

    SERVICE_UNAVAILABLE = "service_unavailable"
    MALFORMED_RESPONSE = "malformed_response"
    NO_SELECTION = "no_selection"
    UNKNOWN_ACTION_TYPE = "unknown_action_type"
    EDITING_SURFACE = "editing_surface"
    INTERNAL_ERROR = "internal_error"


@dataclass
class WandaScribeError(Exception):
    """Base exception for assistant errors."""

    error_code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = dict(self.details)
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


@dataclass
class ServiceUnavailableError(WandaScribeError):
    """The remote text service returned no usable response or could not be reached."""

    error_code: str = field(default=ErrorCode.SERVICE_UNAVAILABLE)
    message: str = field(default="No response from the text service")
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class MalformedResponseError(WandaScribeError):
    """A reply could not be parsed as structured data.

    Only used inside the response normalizer, which falls back to plain text.
    """

    error_code: str = field(default=ErrorCode.MALFORMED_RESPONSE)
    message: str = field(default="Response is not structured data")
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class NoSelectionError(WandaScribeError):
    """An explicit action was requested without any selected text."""

    error_code: str = field(default=ErrorCode.NO_SELECTION)
    message: str = field(default="No text is selected")
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class UnknownActionTypeError(WandaScribeError, ValueError):
    """The caller asked for a transformation that does not exist."""

    error_code: str = field(default=ErrorCode.UNKNOWN_ACTION_TYPE)
    message: str = field(default="Unknown action type")
    details: dict[str, Any] = field(default_factory=dict)

    action: str | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.action is not None:
            result["action"] = self.action
        return result


@dataclass
class EditingSurfaceError(WandaScribeError):
    """The host editing surface rejected a native edit command."""

    error_code: str = field(default=ErrorCode.EDITING_SURFACE)
    message: str = field(default="Editing surface rejected the edit")
    details: dict[str, Any] = field(default_factory=dict)


def error_from_dict(data: Mapping[str, Any]) -> WandaScribeError:
    """Rebuild a :class:`WandaScribeError` from :meth:`WandaScribeError.to_dict` output."""

    return WandaScribeError(
        error_code=data.get("error", ErrorCode.INTERNAL_ERROR),
        message=data.get("message", "Unknown error"),
        details=dict(data.get("details", {})),
    )


__all__ = [
    "ErrorCode",
    "WandaScribeError",
    "ServiceUnavailableError",
    "MalformedResponseError",
    "NoSelectionError",
    "UnknownActionTypeError",
    "EditingSurfaceError",
    "error_from_dict",
]
