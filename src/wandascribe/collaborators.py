"""Contracts for the UI widgets and string lookup the assistant drives."""

from __future__ import annotations

from typing import Protocol, Sequence

from .ai.results import MisspelledWord
from .editor.document_model import Coordinates

__all__ = ["Panel", "Popup", "Message", "MessageProvider"]


class Panel(Protocol):
    """Toolbar-style panel offering the explicit actions."""

    def set_has_selection(self, has_selection: bool) -> None:
        ...

    def set_loading(self, loading: bool) -> None:
        ...

    def set_wanda_available(self, available: bool) -> None:
        ...


class Popup(Protocol):
    """Floating result popup anchored near the selection or caret."""

    def show(self, text: str, coordinates: Coordinates) -> None:
        ...

    def set_misspellings(self, words: Sequence[MisspelledWord]) -> None:
        ...

    def set_success(self, message: str) -> None:
        ...

    def set_suggestion(self, text: str, disable_apply: bool) -> None:
        ...

    def set_error(self, message: str) -> None:
        ...

    def hide(self) -> None:
        ...


class Message(Protocol):
    def text(self) -> str:
        ...


class MessageProvider(Protocol):
    """Localized string lookup keyed by message name."""

    def message(self, key: str) -> Message:
        ...
