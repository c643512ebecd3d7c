"""Wires an editing surface, the text service and the UI collaborators together."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .ai.client import TextServiceClient
from .ai.errors import WandaScribeError
from .ai.results import (
    Misspellings,
    MisspelledWord,
    PlainText,
    ServiceError,
    Suggestion,
    TransformationKind,
    TransformationResult,
)
from .editor.applicator import SuggestionApplicator
from .editor.document_model import Coordinates
from .editor.selection_tracker import SelectionTracker
from .editor.spellcheck import DEFAULT_DELAY_SECONDS, DEFAULT_HIDE_DELAY_SECONDS, SpellCheckScheduler
from .editor.surface import EditingSurface
from .services.messages import MSG_ERROR, MSG_NO_CHANGES_NEEDED, MSG_NO_SPELLING_ERRORS, MessageCatalog

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .collaborators import MessageProvider, Panel, Popup
    from .services.settings import Settings
    from .utils.telemetry import UsageRecorder

__all__ = ["EditorIntegration"]

LOGGER = logging.getLogger(__name__)


class EditorIntegration:
    """Attaches the assistant to one editing surface.

    Selection events keep the panel's selection indicator current, cursor
    events drive the background spell checker, and :meth:`handle_action`
    runs an explicit transformation on the selected text and routes the
    outcome into the popup. Accepted suggestions go back through
    :meth:`apply_suggestion`.
    """

    def __init__(
        self,
        surface: EditingSurface,
        client: TextServiceClient,
        *,
        messages: "MessageProvider | None" = None,
        spellcheck_delay: float = DEFAULT_DELAY_SECONDS,
        success_hide_delay: float = DEFAULT_HIDE_DELAY_SECONDS,
        loop: asyncio.AbstractEventLoop | None = None,
        telemetry: "UsageRecorder | None" = None,
    ) -> None:
        self._surface = surface
        self._client = client
        self._messages = messages or MessageCatalog()
        self._telemetry = telemetry
        self._panel: "Panel | None" = None
        self._popup: "Popup | None" = None
        self._listeners_installed = False
        self.tracker = SelectionTracker(surface)
        self.applicator = SuggestionApplicator(surface, self.tracker)
        self.spellcheck = SpellCheckScheduler(
            surface,
            client,
            messages=self._messages,
            coordinates=self.caret_coordinates,
            delay=spellcheck_delay,
            hide_delay=success_hide_delay,
            loop=loop,
            telemetry=telemetry,
        )

    @classmethod
    def from_settings(
        cls,
        surface: EditingSurface,
        client: TextServiceClient,
        settings: "Settings",
        *,
        messages: "MessageProvider | None" = None,
        loop: asyncio.AbstractEventLoop | None = None,
        telemetry: "UsageRecorder | None" = None,
    ) -> "EditorIntegration":
        if messages is None and settings.messages_path:
            messages = MessageCatalog.from_file(settings.messages_path, language=settings.language)
        return cls(
            surface,
            client,
            messages=messages,
            spellcheck_delay=settings.spellcheck_delay,
            success_hide_delay=settings.success_hide_delay,
            loop=loop,
            telemetry=telemetry,
        )

    @property
    def panel(self) -> "Panel | None":
        return self._panel

    @property
    def popup(self) -> "Popup | None":
        return self._popup

    def set_components(self, panel: "Panel", popup: "Popup") -> None:
        """Register the UI collaborators and start listening to the surface."""

        if self._panel is not None:
            self._client.remove_availability_listener(self._panel.set_wanda_available)
        self._panel = panel
        self._popup = popup
        self.tracker.set_panel(panel)
        self.spellcheck.set_popup(popup)
        self._client.add_availability_listener(panel.set_wanda_available)
        if not self._listeners_installed:
            self._surface.add_selection_listener(self.tracker.on_selection_event)
            self._surface.add_cursor_listener(self.spellcheck.on_cursor_event)
            self._listeners_installed = True

    # ------------------------------------------------------------------
    # Explicit actions
    # ------------------------------------------------------------------
    async def handle_action(self, action_type: TransformationKind | str) -> TransformationResult | None:
        """Run ``action_type`` on the current selection and show the outcome.

        Raises :class:`UnknownActionTypeError` before touching the UI when
        ``action_type`` is not a known transformation.
        """

        kind = TransformationKind.parse(action_type)
        panel, popup = self._require_components()
        selection = self.tracker.on_selection_event()
        if selection.is_empty:
            LOGGER.debug("Ignoring %s without a selection", kind.value)
            panel.set_loading(False)
            return None

        panel.set_loading(True)
        try:
            result = await self._client.run(kind, selection.text)
            popup.show(selection.text, self.selection_coordinates())
            self._route(kind, result, popup, selection.text)
        except Exception as exc:
            LOGGER.error("Action %s failed: %s", kind.value, exc, exc_info=not isinstance(exc, WandaScribeError))
            if self._telemetry is not None:
                self._telemetry.action_failed(kind, exc)
            self._show_error(popup, selection.text)
            return None
        finally:
            panel.set_loading(False)
        if self._telemetry is not None:
            self._telemetry.action_completed(kind, result)
        return result

    def apply_suggestion(self, suggestion: str | None, original_word: str | None = None) -> int | None:
        """Write ``suggestion`` over the tracked selection (or one word inside it)."""

        caret = self.applicator.apply(suggestion, original_word)
        if caret is not None:
            self.tracker.on_selection_event()
            if self._telemetry is not None:
                self._telemetry.suggestion_applied(targeted=original_word is not None)
        return caret

    # ------------------------------------------------------------------
    # Popup placement
    # ------------------------------------------------------------------
    def selection_coordinates(self) -> Coordinates:
        return self._surface.geometry().anchor()

    def caret_coordinates(self, _position: int | None = None) -> Coordinates:
        # Caret pixel geometry is not tracked; the surface anchor stands in.
        return self._surface.geometry().anchor()

    async def aclose(self) -> None:
        await self.spellcheck.aclose()
        if self._panel is not None:
            self._client.remove_availability_listener(self._panel.set_wanda_available)
        if self._telemetry is not None:
            self._telemetry.flush()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _route(
        self, kind: TransformationKind, result: TransformationResult, popup: "Popup", selected_text: str
    ) -> None:
        if isinstance(result, ServiceError):
            popup.set_error(result.message)
            return
        if kind is TransformationKind.SPELL_CHECK:
            if isinstance(result, Misspellings) and result.misspelled:
                popup.set_misspellings(_misspelled_words(result, selected_text))
                return
            if isinstance(result, (Misspellings, PlainText)):
                popup.set_success(self._messages.message(MSG_NO_SPELLING_ERRORS).text())
                return
        if isinstance(result, Suggestion) and result.text:
            popup.set_suggestion(result.text, result.uncertain)
            return
        popup.set_success(self._messages.message(MSG_NO_CHANGES_NEEDED).text())

    def _show_error(self, popup: "Popup", selected_text: str) -> None:
        try:
            popup.show(selected_text, self.selection_coordinates())
            popup.set_error(self._messages.message(MSG_ERROR).text())
        except Exception:
            LOGGER.exception("Popup could not display the error state")

    def _require_components(self) -> tuple["Panel", "Popup"]:
        if self._panel is None or self._popup is None:
            raise RuntimeError("set_components() must be called before handling actions")
        return self._panel, self._popup


def _misspelled_words(result: Misspellings, selected_text: str) -> list[MisspelledWord]:
    if result.words:
        return list(result.words)
    return [MisspelledWord(word=selected_text.strip(), suggestions=result.suggestions)]
