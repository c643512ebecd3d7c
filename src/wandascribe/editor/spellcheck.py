"""Debounced background spell checking of the word at the cursor."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

from ..ai.client import TextServiceClient
from ..ai.results import Misspellings, MisspelledWord, ServiceError, TransformationResult
from ..services.messages import MSG_NO_SPELLING_ERRORS, MessageCatalog
from .document_model import Coordinates
from .surface import EditingSurface

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from ..collaborators import MessageProvider, Popup
    from ..utils.telemetry import UsageRecorder

__all__ = [
    "TRIGGER_KEYS",
    "SpellCheckState",
    "PendingSpellCheck",
    "SpellCheckScheduler",
    "extract_word_at",
]

LOGGER = logging.getLogger(__name__)

TRIGGER_KEYS = frozenset({" ", ".", ","})
DEFAULT_DELAY_SECONDS = 0.5
DEFAULT_HIDE_DELAY_SECONDS = 2.0
MIN_WORD_LENGTH = 2

_TRAILING_WORD = re.compile(r"\S+$")
_LEADING_WORD = re.compile(r"^\S*")


def extract_word_at(text: str, position: int) -> str | None:
    """Return the whitespace-delimited word touching ``position``.

    ``None`` when nothing but whitespace (or nothing at all) sits directly to
    the left of ``position``.
    """

    position = max(0, min(int(position), len(text)))
    start_match = _TRAILING_WORD.search(text[:position])
    if start_match is None:
        return None
    end_match = _LEADING_WORD.match(text[position:])
    end = position + (len(end_match.group(0)) if end_match else 0)
    return text[start_match.start():end].strip()


class SpellCheckState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    CHECKING = "checking"


@dataclass(slots=True)
class PendingSpellCheck:
    cursor_position: int
    timer_handle: asyncio.TimerHandle


class SpellCheckScheduler:
    """Schedules one spell check per quiet period after a trigger keystroke.

    Any cursor event cancels the pending timer; space, period and comma start
    a fresh one. When the timer fires the word at the recorded cursor position
    is looked up and the verdict is shown in the popup. Failures are logged
    and never reach the UI.
    """

    def __init__(
        self,
        surface: EditingSurface,
        client: TextServiceClient,
        *,
        popup: "Popup | None" = None,
        messages: "MessageProvider | None" = None,
        coordinates: Callable[[int], Coordinates] | None = None,
        delay: float = DEFAULT_DELAY_SECONDS,
        hide_delay: float = DEFAULT_HIDE_DELAY_SECONDS,
        loop: asyncio.AbstractEventLoop | None = None,
        telemetry: "UsageRecorder | None" = None,
    ) -> None:
        self._surface = surface
        self._client = client
        self._popup = popup
        self._messages = messages or MessageCatalog()
        self._coordinates = coordinates or (lambda _position: surface.geometry().anchor())
        self._delay = max(0.0, float(delay))
        self._hide_delay = max(0.0, float(hide_delay))
        self._loop = loop
        self._telemetry = telemetry
        self._state = SpellCheckState.IDLE
        self._pending: PendingSpellCheck | None = None
        self._task: asyncio.Task[TransformationResult | None] | None = None
        self._hide_handle: asyncio.TimerHandle | None = None
        self._last_cursor_position = 0

    @property
    def state(self) -> SpellCheckState:
        return self._state

    @property
    def pending(self) -> PendingSpellCheck | None:
        return self._pending

    @property
    def last_cursor_position(self) -> int:
        return self._last_cursor_position

    def set_popup(self, popup: "Popup | None") -> None:
        self._popup = popup

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------
    def on_cursor_event(self, key: str | None = None) -> None:
        """Record the cursor and (re)start the debounce timer on trigger keys."""

        position = self._surface.selection_span()[0]
        self.cancel_pending()
        if key in TRIGGER_KEYS:
            loop = self._resolve_loop()
            handle = loop.call_later(self._delay, self._fire, position)
            self._pending = PendingSpellCheck(cursor_position=position, timer_handle=handle)
            self._state = SpellCheckState.PENDING
        self._last_cursor_position = position

    def cancel_pending(self) -> None:
        pending = self._pending
        if pending is None:
            return
        pending.timer_handle.cancel()
        self._pending = None
        if self._state is SpellCheckState.PENDING:
            self._state = SpellCheckState.IDLE

    async def check_word_at(self, position: int) -> TransformationResult | None:
        """Look up the word at ``position`` and present the verdict."""

        self._state = SpellCheckState.CHECKING
        try:
            word = extract_word_at(self._surface.text(), position)
            if word is None or len(word) < MIN_WORD_LENGTH:
                LOGGER.debug("No word worth checking at %s", position)
                return None
            try:
                result = await self._client.check_spelling(word)
            except Exception as exc:  # background checks never surface errors
                LOGGER.warning("Spell check for %r failed: %s", word, exc)
                if self._telemetry is not None:
                    self._telemetry.spellcheck_failed(exc)
                return None
            try:
                self._present(word, position, result)
            except Exception:
                LOGGER.exception("Spell check popup update for %r failed", word)
            return result
        finally:
            if self._state is SpellCheckState.CHECKING:
                self._state = SpellCheckState.IDLE

    def cancel(self) -> None:
        """Drop the pending timer and the popup auto-hide handle."""

        self.cancel_pending()
        if self._hide_handle is not None:
            self._hide_handle.cancel()
            self._hide_handle = None

    async def aclose(self) -> None:
        """Cancel pending timers and any in-flight check."""

        self.cancel()
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._state = SpellCheckState.IDLE

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _fire(self, position: int) -> None:
        self._pending = None
        self._state = SpellCheckState.CHECKING
        task = self._resolve_loop().create_task(self.check_word_at(position))
        task.add_done_callback(self._on_task_done)
        self._task = task

    def _on_task_done(self, task: asyncio.Task[TransformationResult | None]) -> None:
        if self._task is task:
            self._task = None
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Background spell check failed", exc_info=exc)
            self._state = SpellCheckState.IDLE

    def _present(self, word: str, position: int, result: TransformationResult) -> None:
        if isinstance(result, ServiceError):
            LOGGER.warning("Spell check for %r returned an error: %s", word, result.message)
            if self._telemetry is not None:
                self._telemetry.spellcheck_failed(result)
            return
        if self._telemetry is not None:
            self._telemetry.spellcheck_completed(result)
        popup = self._popup
        if popup is None:
            return
        popup.show(word, self._coordinates(position))
        if isinstance(result, Misspellings) and result.misspelled:
            popup.set_misspellings([MisspelledWord(word=word, suggestions=result.suggestions_for(word))])
            return
        popup.set_success(self._messages.message(MSG_NO_SPELLING_ERRORS).text())
        self._schedule_hide()

    def _schedule_hide(self) -> None:
        if self._hide_handle is not None:
            self._hide_handle.cancel()
        self._hide_handle = self._resolve_loop().call_later(self._hide_delay, self._hide_popup)

    def _hide_popup(self) -> None:
        self._hide_handle = None
        if self._popup is not None:
            self._popup.hide()

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop
