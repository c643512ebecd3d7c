"""Editing-surface contract plus a headless in-memory implementation.

The assistant never touches a concrete widget directly. Hosts provide an
object satisfying :class:`EditingSurface`; tests and command-line tooling use
:class:`BufferSurface`, which mimics a browser ``<textarea>``: native insert
commands land on the undo stack, direct value assignment wipes it.
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass
from typing import ContextManager, Iterator, Protocol

from ..ai.errors import EditingSurfaceError
from .document_model import SurfaceGeometry

__all__ = [
    "EditingSurface",
    "BufferSurface",
    "SelectionListener",
    "CursorListener",
    "InputListener",
]


class SelectionListener(Protocol):
    """Invoked after the selection may have changed (mouse up, key up, select)."""

    def __call__(self) -> None:
        ...


class CursorListener(Protocol):
    """Invoked after a cursor-affecting event; ``key`` is ``None`` for clicks."""

    def __call__(self, key: str | None) -> None:
        ...


class InputListener(Protocol):
    """Invoked when the surface reports an input event."""

    def __call__(self, text: str) -> None:
        ...


class EditingSurface(Protocol):
    """Minimal surface API consumed by the tracker, scheduler and applicator."""

    def text(self) -> str:
        ...

    def selection_span(self) -> tuple[int, int]:
        ...

    def set_selection(self, start: int, end: int) -> None:
        ...

    def focus(self) -> None:
        ...

    def edit_block(self) -> ContextManager[None]:
        """Group every mutation made inside the block into one undo step."""
        ...

    def supports_insert_text(self) -> bool:
        ...

    def insert_text(self, text: str) -> bool:
        """Replace the current selection through the native, undoable command."""
        ...

    def set_value(self, text: str) -> None:
        """Replace the whole buffer directly, bypassing native undo history."""
        ...

    def dispatch_input_event(self) -> None:
        ...

    def geometry(self) -> SurfaceGeometry:
        ...

    def add_selection_listener(self, listener: SelectionListener) -> None:
        ...

    def add_cursor_listener(self, listener: CursorListener) -> None:
        ...

    def add_input_listener(self, listener: InputListener) -> None:
        ...


@dataclass(slots=True)
class _UndoEntry:
    """Represents a text snapshot for undo/redo bookkeeping."""

    text: str
    selection: tuple[int, int]


class BufferSurface:
    """In-memory surface with textarea-like undo semantics."""

    MAX_HISTORY = 50

    def __init__(
        self,
        text: str = "",
        *,
        geometry: SurfaceGeometry | None = None,
        supports_insert: bool = True,
        reject_insert: bool = False,
    ) -> None:
        self._text = text
        self._selection = (len(text), len(text))
        self._geometry = geometry or SurfaceGeometry()
        self._supports_insert = supports_insert
        self._reject_insert = reject_insert
        self._undo_stack: list[_UndoEntry] = []
        self._redo_stack: list[_UndoEntry] = []
        self._block_depth = 0
        self._block_snapshot_taken = False
        self._selection_listeners: list[SelectionListener] = []
        self._cursor_listeners: list[CursorListener] = []
        self._input_listeners: list[InputListener] = []
        self.focused = False
        self.input_events = 0

    # ------------------------------------------------------------------
    # EditingSurface API
    # ------------------------------------------------------------------
    def text(self) -> str:
        return self._text

    def selection_span(self) -> tuple[int, int]:
        return self._selection

    def set_selection(self, start: int, end: int) -> None:
        self._selection = self._clamp_range(start, end)

    def focus(self) -> None:
        self.focused = True

    @contextlib.contextmanager
    def edit_block(self) -> Iterator[None]:
        self._block_depth += 1
        try:
            yield
        finally:
            self._block_depth -= 1
            if self._block_depth == 0:
                self._block_snapshot_taken = False

    def supports_insert_text(self) -> bool:
        return self._supports_insert

    def insert_text(self, text: str) -> bool:
        if not self._supports_insert:
            return False
        if self._reject_insert:
            raise EditingSurfaceError(message="Insert command rejected by the surface")
        start, end = self._selection
        self._record_undo()
        self._text = self._text[:start] + text + self._text[end:]
        caret = start + len(text)
        self._selection = (caret, caret)
        return True

    def set_value(self, text: str) -> None:
        self._text = text
        self._undo_stack.clear()
        self._redo_stack.clear()
        self._selection = (len(text), len(text))

    def dispatch_input_event(self) -> None:
        self.input_events += 1
        for listener in list(self._input_listeners):
            listener(self._text)

    def geometry(self) -> SurfaceGeometry:
        return self._geometry

    def add_selection_listener(self, listener: SelectionListener) -> None:
        self._selection_listeners.append(listener)

    def add_cursor_listener(self, listener: CursorListener) -> None:
        self._cursor_listeners.append(listener)

    def add_input_listener(self, listener: InputListener) -> None:
        self._input_listeners.append(listener)

    # ------------------------------------------------------------------
    # Undo/redo support
    # ------------------------------------------------------------------
    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    def undo(self) -> None:
        """Restore the previous text snapshot if available."""

        if not self._undo_stack:
            return
        entry = self._undo_stack.pop()
        self._redo_stack.append(_UndoEntry(text=self._text, selection=self._selection))
        self._text = entry.text
        self._selection = self._clamp_range(*entry.selection)

    def redo(self) -> None:
        """Reapply an undone text snapshot if available."""

        if not self._redo_stack:
            return
        entry = self._redo_stack.pop()
        self._undo_stack.append(_UndoEntry(text=self._text, selection=self._selection))
        self._text = entry.text
        self._selection = self._clamp_range(*entry.selection)

    # ------------------------------------------------------------------
    # User interaction simulation
    # ------------------------------------------------------------------
    def select(self, start: int, end: int) -> None:
        """Select a span the way a mouse drag would, firing selection events."""

        self.set_selection(start, end)
        self._emit_selection()

    def click(self, position: int) -> None:
        """Place the caret at ``position`` and fire click events."""

        self.set_selection(position, position)
        self._emit_selection()
        self._emit_cursor(None)

    def type_text(self, text: str) -> None:
        """Type ``text`` one key at a time, firing key-up events per character."""

        for char in text:
            if not self.insert_text(char):
                self._splice_without_history(char)
            self._emit_selection()
            self._emit_cursor(char)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _splice_without_history(self, text: str) -> None:
        start, end = self._selection
        self._text = self._text[:start] + text + self._text[end:]
        caret = start + len(text)
        self._selection = (caret, caret)

    def _record_undo(self) -> None:
        if self._block_depth and self._block_snapshot_taken:
            return
        self._undo_stack.append(_UndoEntry(text=self._text, selection=self._selection))
        if len(self._undo_stack) > self.MAX_HISTORY:
            self._undo_stack.pop(0)
        self._redo_stack.clear()
        if self._block_depth:
            self._block_snapshot_taken = True

    def _clamp_range(self, start: int, end: int) -> tuple[int, int]:
        length = len(self._text)
        start = max(0, min(int(start), length))
        end = max(0, min(int(end), length))
        if end < start:
            start, end = end, start
        return start, end

    def _emit_selection(self) -> None:
        for listener in list(self._selection_listeners):
            listener()

    def _emit_cursor(self, key: str | None) -> None:
        for listener in list(self._cursor_listeners):
            listener(key)
