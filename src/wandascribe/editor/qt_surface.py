"""PySide6 ``QPlainTextEdit`` adapter implementing the editing-surface contract.

Requires a running ``QApplication``. Key releases and mouse releases are
translated into the selection/cursor events the assistant listens for, and
edits go through ``QTextCursor`` edit blocks so each applied suggestion is a
single step on the widget's own undo stack.
"""

from __future__ import annotations

import contextlib
import logging
from typing import Any, Iterator

from PySide6.QtCore import QEvent, QObject, QPoint
from PySide6.QtGui import QTextCursor
from PySide6.QtWidgets import QPlainTextEdit, QWidget

from .document_model import SurfaceGeometry
from .surface import CursorListener, InputListener, SelectionListener

__all__ = ["QtEditingSurface"]

LOGGER = logging.getLogger(__name__)


class _InteractionFilter(QObject):
    """Forwards key/mouse releases from the editor and its viewport."""

    def __init__(self, surface: "QtEditingSurface") -> None:
        super().__init__(surface.editor)
        self._surface = surface

    def eventFilter(self, watched: QObject, event: QEvent) -> bool:  # noqa: N802 - Qt override
        event_type = event.type()
        if event_type == QEvent.Type.KeyRelease:
            self._surface._handle_key_release(event.text())  # type: ignore[attr-defined]
        elif event_type == QEvent.Type.MouseButtonRelease:
            self._surface._handle_mouse_release()
        return False


class QtEditingSurface:
    """Wraps a ``QPlainTextEdit`` (created on demand) as an editing surface."""

    def __init__(self, editor: QPlainTextEdit | None = None, *, parent: QWidget | None = None) -> None:
        self._editor = editor if editor is not None else QPlainTextEdit(parent)
        self._selection_listeners: list[SelectionListener] = []
        self._cursor_listeners: list[CursorListener] = []
        self._input_listeners: list[InputListener] = []
        self._filter = _InteractionFilter(self)
        self._editor.installEventFilter(self._filter)
        self._editor.viewport().installEventFilter(self._filter)
        self._editor.selectionChanged.connect(self._emit_selection)  # type: ignore[attr-defined]

    @property
    def editor(self) -> QPlainTextEdit:
        return self._editor

    # ------------------------------------------------------------------
    # EditingSurface API
    # ------------------------------------------------------------------
    def text(self) -> str:
        return self._editor.toPlainText()

    def selection_span(self) -> tuple[int, int]:
        cursor = self._editor.textCursor()
        return (cursor.selectionStart(), cursor.selectionEnd())

    def set_selection(self, start: int, end: int) -> None:
        length = len(self.text())
        start = max(0, min(int(start), length))
        end = max(0, min(int(end), length))
        cursor = self._editor.textCursor()
        cursor.setPosition(start)
        cursor.setPosition(end, QTextCursor.MoveMode.KeepAnchor)
        self._editor.setTextCursor(cursor)

    def focus(self) -> None:
        self._editor.setFocus()

    @contextlib.contextmanager
    def edit_block(self) -> Iterator[None]:
        cursor = self._editor.textCursor()
        cursor.beginEditBlock()
        try:
            yield
        finally:
            cursor.endEditBlock()

    def supports_insert_text(self) -> bool:
        return not self._editor.isReadOnly()

    def insert_text(self, text: str) -> bool:
        if self._editor.isReadOnly():
            return False
        self._editor.insertPlainText(text)
        return True

    def set_value(self, text: str) -> None:
        LOGGER.debug("Replacing editor contents directly; undo history is reset")
        self._editor.setPlainText(text)

    def dispatch_input_event(self) -> None:
        text = self.text()
        for listener in list(self._input_listeners):
            listener(text)

    def geometry(self) -> SurfaceGeometry:
        origin = self._editor.mapToGlobal(QPoint(0, 0))
        return SurfaceGeometry(top=float(origin.y()), left=float(origin.x()))

    def add_selection_listener(self, listener: SelectionListener) -> None:
        self._selection_listeners.append(listener)

    def add_cursor_listener(self, listener: CursorListener) -> None:
        self._cursor_listeners.append(listener)

    def add_input_listener(self, listener: InputListener) -> None:
        self._input_listeners.append(listener)

    # Qt callbacks -----------------------------------------------------
    def _handle_key_release(self, key_text: str) -> None:
        self._emit_selection()
        self._emit_cursor(key_text or None)

    def _handle_mouse_release(self) -> None:
        self._emit_selection()
        self._emit_cursor(None)

    def _emit_selection(self, *_args: Any) -> None:
        for listener in list(self._selection_listeners):
            listener()

    def _emit_cursor(self, key: str | None) -> None:
        for listener in list(self._cursor_listeners):
            listener(key)
