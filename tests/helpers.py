"""Shared test helpers and stub classes.

Import from here instead of duplicating recording fakes in individual test files.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from wandascribe.ai.client import ClientSettings, TextServiceClient
from wandascribe.ai.results import MisspelledWord, TransformationRequest
from wandascribe.editor.document_model import Coordinates


class FakeTransport:
    """Replays canned replies (or raises canned exceptions) in order."""

    def __init__(self, replies: Iterable[Any] = ()) -> None:
        self.replies = list(replies)
        self.requests: list[TransformationRequest] = []
        self.closed = False

    def queue(self, *replies: Any) -> None:
        self.replies.extend(replies)

    async def send(self, request: TransformationRequest) -> Mapping[str, Any]:
        self.requests.append(request)
        reply = self.replies.pop(0) if self.replies else {}
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, str):
            return {"response": reply}
        return reply

    async def aclose(self) -> None:
        self.closed = True


def make_client(*replies: Any, **settings: Any) -> tuple[TextServiceClient, FakeTransport]:
    transport = FakeTransport(replies)
    client_settings = ClientSettings(base_url="http://wiki.test/w/api.php", **settings)
    return TextServiceClient(client_settings, transport=transport), transport


class RecordingPanel:
    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []

    def set_has_selection(self, has_selection: bool) -> None:
        self.calls.append(("has_selection", has_selection))

    def set_loading(self, loading: bool) -> None:
        self.calls.append(("loading", loading))

    def set_wanda_available(self, available: bool) -> None:
        self.calls.append(("available", available))

    def values(self, name: str) -> list[Any]:
        return [value for call, value in self.calls if call == name]


class RecordingPopup:
    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []

    def show(self, text: str, coordinates: Coordinates) -> None:
        self.calls.append(("show", (text, coordinates)))

    def set_misspellings(self, words: Sequence[MisspelledWord]) -> None:
        self.calls.append(("misspellings", list(words)))

    def set_success(self, message: str) -> None:
        self.calls.append(("success", message))

    def set_suggestion(self, text: str, disable_apply: bool) -> None:
        self.calls.append(("suggestion", (text, disable_apply)))

    def set_error(self, message: str) -> None:
        self.calls.append(("error", message))

    def hide(self) -> None:
        self.calls.append(("hide", None))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.calls]
