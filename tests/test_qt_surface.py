"""Tests for the PySide6 editing-surface adapter."""

from __future__ import annotations

import pytest
from PySide6.QtCore import Qt

from tests.helpers import RecordingPanel
from wandascribe.editor.applicator import SuggestionApplicator
from wandascribe.editor.qt_surface import QtEditingSurface
from wandascribe.editor.selection_tracker import SelectionTracker

pytestmark = pytest.mark.usefixtures("qtbot")


def _surface(qtbot, text: str) -> QtEditingSurface:
    surface = QtEditingSurface()
    qtbot.addWidget(surface.editor)
    surface.editor.setPlainText(text)
    return surface


def test_selection_span_and_text(qtbot) -> None:
    surface = _surface(qtbot, "Hello world")

    surface.set_selection(6, 11)

    assert surface.selection_span() == (6, 11)
    assert surface.text() == "Hello world"


def test_selection_changes_reach_tracker(qtbot) -> None:
    surface = _surface(qtbot, "Hello world")
    panel = RecordingPanel()
    tracker = SelectionTracker(surface, panel)
    surface.add_selection_listener(tracker.on_selection_event)

    surface.set_selection(0, 5)
    surface.set_selection(3, 3)

    assert panel.values("has_selection") == [True, False]


def test_key_release_emits_cursor_event(qtbot) -> None:
    surface = _surface(qtbot, "")
    keys: list[str | None] = []
    surface.add_cursor_listener(keys.append)

    qtbot.keyClick(surface.editor, Qt.Key.Key_Space)

    assert keys[-1] == " "


def test_applied_suggestion_is_a_single_undo_step(qtbot) -> None:
    surface = _surface(qtbot, "I has a apple")
    tracker = SelectionTracker(surface)
    surface.set_selection(0, 13)
    tracker.on_selection_event()
    inputs: list[str] = []
    surface.add_input_listener(inputs.append)

    caret = SuggestionApplicator(surface, tracker).apply("have", target_word="has")

    assert surface.text() == "I have a apple"
    assert caret == 14
    assert surface.selection_span() == (14, 14)
    assert inputs == ["I have a apple"]
    surface.editor.undo()
    assert surface.text() == "I has a apple"


def test_read_only_editor_falls_back_to_set_value(qtbot) -> None:
    surface = _surface(qtbot, "Hello world")
    surface.editor.setReadOnly(True)
    tracker = SelectionTracker(surface)
    surface.set_selection(6, 11)
    tracker.on_selection_event()

    SuggestionApplicator(surface, tracker).apply("there")

    assert surface.text() == "Hello there"
