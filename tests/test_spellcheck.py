"""Tests for debounced background spell checking."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from tests.helpers import RecordingPopup, make_client
from wandascribe.ai.results import MisspelledWord
from wandascribe.editor.document_model import SurfaceGeometry
from wandascribe.editor.spellcheck import SpellCheckScheduler, SpellCheckState, extract_word_at
from wandascribe.editor.surface import BufferSurface
from wandascribe.services.messages import MessageCatalog
from wandascribe.utils.telemetry import UsageRecorder

_MISSPELLED = json.dumps({"misspelled": True, "words": [{"word": "quikc", "suggestions": ["quick"]}]})
_CORRECT = json.dumps({"misspelled": False, "words": []})
_DELAY = 0.02


def _scheduler(text: str, *replies: object, **options: object):
    surface = BufferSurface(text, geometry=SurfaceGeometry(top=10, left=10))
    client, transport = make_client(*replies)
    popup = RecordingPopup()
    scheduler = SpellCheckScheduler(
        surface,
        client,
        popup=popup,
        messages=MessageCatalog(),
        delay=_DELAY,
        hide_delay=_DELAY,
        **options,
    )
    surface.add_cursor_listener(scheduler.on_cursor_event)
    return surface, scheduler, popup, transport


async def _settle(scheduler: SpellCheckScheduler, extra: float = 0.0) -> None:
    await asyncio.sleep(_DELAY * 3 + extra)
    while scheduler.state is not SpellCheckState.IDLE:
        await asyncio.sleep(_DELAY)


@pytest.mark.parametrize(
    ("text", "position", "expected"),
    [
        ("The quikc fox", 9, "quikc"),
        ("The quikc fox", 6, "quikc"),
        ("The quikc fox", 13, "fox"),
        ("The quikc fox", 10, None),
        ("", 0, None),
        ("word", 99, "word"),
    ],
)
def test_extract_word_at(text: str, position: int, expected: str | None) -> None:
    assert extract_word_at(text, position) == expected


@pytest.mark.asyncio
async def test_trigger_key_schedules_single_check_for_misspelled_word() -> None:
    surface, scheduler, popup, transport = _scheduler("The quikc fox", _MISSPELLED)
    surface.set_selection(9, 9)

    scheduler.on_cursor_event(" ")
    assert scheduler.state is SpellCheckState.PENDING
    await _settle(scheduler)

    assert len(transport.requests) == 1
    assert transport.requests[0].input_text == "quikc"
    assert popup.names == ["show", "misspellings"]
    assert popup.calls[1][1] == [MisspelledWord(word="quikc", suggestions=("quick",))]
    assert scheduler.state is SpellCheckState.IDLE


@pytest.mark.asyncio
async def test_correct_word_shows_success_then_hides() -> None:
    surface, scheduler, popup, _ = _scheduler("Hello there", _CORRECT)
    surface.set_selection(5, 5)

    scheduler.on_cursor_event(",")
    await _settle(scheduler, extra=_DELAY * 2)

    assert popup.names == ["show", "success", "hide"]
    assert popup.calls[1][1] == "No spelling errors found."


@pytest.mark.asyncio
async def test_rapid_keys_debounce_to_one_check() -> None:
    surface, scheduler, _, transport = _scheduler("ab cd ef", _CORRECT, _CORRECT)
    surface.set_selection(2, 2)

    for _ in range(5):
        scheduler.on_cursor_event(" ")
    await _settle(scheduler)

    assert len(transport.requests) == 1


@pytest.mark.asyncio
async def test_non_trigger_key_cancels_pending_check() -> None:
    surface, scheduler, _, transport = _scheduler("The quikc", _MISSPELLED)
    surface.set_selection(9, 9)

    scheduler.on_cursor_event(".")
    scheduler.on_cursor_event("x")
    await _settle(scheduler)

    assert scheduler.pending is None
    assert transport.requests == []
    assert scheduler.last_cursor_position == 9


@pytest.mark.asyncio
async def test_typed_space_checks_nothing_after_the_space() -> None:
    surface, scheduler, popup, transport = _scheduler("The quikc", _MISSPELLED)

    surface.type_text(" ")
    await _settle(scheduler)

    assert transport.requests == []
    assert popup.calls == []


@pytest.mark.asyncio
async def test_short_words_are_not_checked() -> None:
    surface, scheduler, _, transport = _scheduler("I a", _CORRECT)
    surface.set_selection(3, 3)

    scheduler.on_cursor_event(" ")
    await _settle(scheduler)

    assert transport.requests == []


@pytest.mark.asyncio
async def test_failures_are_logged_not_shown(caplog: pytest.LogCaptureFixture) -> None:
    request = httpx.Request("POST", "http://wiki.test/w/api.php")
    telemetry = UsageRecorder(enabled=True)
    surface, scheduler, popup, _ = _scheduler(
        "The quikc", httpx.ConnectError("down", request=request), telemetry=telemetry
    )
    surface.set_selection(9, 9)

    scheduler.on_cursor_event(" ")
    await _settle(scheduler)

    assert popup.calls == []
    assert "Spell check for 'quikc' failed" in caplog.text
    assert telemetry.counts() == {"spellcheck.failed": 1}


@pytest.mark.asyncio
async def test_service_error_reply_is_not_shown() -> None:
    surface, scheduler, popup, _ = _scheduler("The quikc", '{"error": "quota"}')
    surface.set_selection(9, 9)

    result = await scheduler.check_word_at(9)

    assert result is not None
    assert popup.calls == []


@pytest.mark.asyncio
async def test_aclose_cancels_pending_timer() -> None:
    surface, scheduler, _, transport = _scheduler("The quikc", _MISSPELLED)
    surface.set_selection(9, 9)

    scheduler.on_cursor_event(" ")
    await scheduler.aclose()
    await asyncio.sleep(_DELAY * 3)

    assert transport.requests == []
    assert scheduler.state is SpellCheckState.IDLE


class _UnplaceablePopup(RecordingPopup):
    def show(self, text: str, coordinates: object) -> None:
        raise RuntimeError("popup has no parent window")


@pytest.mark.asyncio
async def test_popup_failure_during_background_check_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    surface, scheduler, _, transport = _scheduler("The quikc", _MISSPELLED)
    popup = _UnplaceablePopup()
    scheduler.set_popup(popup)
    surface.set_selection(9, 9)

    scheduler.on_cursor_event(" ")
    await _settle(scheduler)

    assert len(transport.requests) == 1
    assert popup.calls == []
    assert "Spell check popup update for 'quikc' failed" in caplog.text
    assert scheduler.state is SpellCheckState.IDLE


@pytest.mark.asyncio
async def test_task_failure_outside_the_check_is_logged(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    surface, scheduler, _, _ = _scheduler("The quikc", _MISSPELLED)
    surface.set_selection(9, 9)

    def _broken_text() -> str:
        raise RuntimeError("surface detached")

    monkeypatch.setattr(surface, "text", _broken_text)
    scheduler.on_cursor_event(" ")
    await _settle(scheduler)

    assert "Background spell check failed" in caplog.text
    assert "surface detached" in caplog.text
    assert scheduler.state is SpellCheckState.IDLE


@pytest.mark.asyncio
async def test_completed_checks_are_counted_by_outcome() -> None:
    telemetry = UsageRecorder()
    surface, scheduler, _, _ = _scheduler("The quikc", _MISSPELLED, telemetry=telemetry)
    surface.set_selection(9, 9)

    await scheduler.check_word_at(9)

    assert telemetry.counts() == {"spellcheck.completed": 1}
    assert telemetry.pending == 0
