"""Writes accepted suggestions back into the editing surface."""

from __future__ import annotations

import logging
import re

from ..ai.errors import EditingSurfaceError
from .selection_tracker import SelectionTracker
from .surface import EditingSurface

__all__ = ["SuggestionApplicator", "replace_whole_word"]

LOGGER = logging.getLogger(__name__)


def replace_whole_word(text: str, word: str, replacement: str) -> str:
    """Replace every whole-word occurrence of ``word`` (taken literally) in ``text``."""

    pattern = re.compile(r"\b" + re.escape(word) + r"\b")
    return pattern.sub(lambda _match: replacement, text)


class SuggestionApplicator:
    """Replaces the tracked selection (or one word inside it) as a single undo step."""

    def __init__(self, surface: EditingSurface, tracker: SelectionTracker) -> None:
        self._surface = surface
        self._tracker = tracker

    def apply(self, suggestion: str | None, target_word: str | None = None) -> int | None:
        """Apply ``suggestion`` and return the new caret offset.

        With ``target_word`` only whole-word matches inside the selection are
        replaced; otherwise the whole selection is. Returns ``None`` without
        touching the surface when ``suggestion`` is empty.
        """

        if not suggestion:
            return None

        buffer = self._surface.text()
        tracked = self._tracker.selection
        start, end = _clamp(tracked.start, tracked.end, len(buffer))
        if target_word:
            replacement = replace_whole_word(buffer[start:end], target_word, suggestion)
        else:
            replacement = suggestion
        new_value = buffer[:start] + replacement + buffer[end:]

        self._replace_with_history(start, end, replacement, new_value)

        caret = start + len(replacement)
        self._surface.set_selection(caret, caret)
        self._surface.focus()
        self._surface.dispatch_input_event()
        LOGGER.debug("Applied suggestion over [%s:%s]; caret now %s", start, end, caret)
        return caret

    def _replace_with_history(self, start: int, end: int, replacement: str, new_value: str) -> None:
        surface = self._surface
        try:
            with surface.edit_block():
                surface.focus()
                if surface.supports_insert_text():
                    surface.set_selection(start, end)
                    if surface.insert_text(replacement) and surface.text() == new_value:
                        return
        except EditingSurfaceError as exc:
            LOGGER.warning("Native insert failed; falling back to direct value set: %s", exc)
        # Direct assignment loses native undo granularity.
        surface.set_value(new_value)


def _clamp(start: int, end: int, length: int) -> tuple[int, int]:
    start = max(0, min(int(start), length))
    end = max(0, min(int(end), length))
    if end < start:
        start, end = end, start
    return start, end
