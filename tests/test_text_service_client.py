"""Tests for the text-service client and its named transformations."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from tests.helpers import make_client
from wandascribe.ai.errors import ServiceUnavailableError, UnknownActionTypeError
from wandascribe.ai.prompts import INSTRUCTIONS
from wandascribe.ai.results import (
    Misspellings,
    PlainText,
    ServiceError,
    Suggestion,
    TransformationKind,
    TransformationRequest,
)


@pytest.mark.asyncio
async def test_invoke_sends_instruction_and_normalizes_reply() -> None:
    client, transport = make_client('```json\n{"misspelled": false}\n```')

    result = await client.invoke("Hello", "Check it")

    assert result == {"misspelled": False}
    assert transport.requests[0].input_text == "Hello"
    assert transport.requests[0].instruction == "Check it"


@pytest.mark.asyncio
async def test_missing_response_marks_service_unavailable() -> None:
    client, _ = make_client({"error": {"code": "ratelimited", "info": "slow down"}})
    seen: list[bool] = []
    client.add_availability_listener(seen.append)

    with pytest.raises(ServiceUnavailableError) as excinfo:
        await client.invoke("Hello", "Check it")

    assert excinfo.value.details == {"code": "ratelimited", "info": "slow down"}
    assert client.available is False
    assert seen == [False]


@pytest.mark.asyncio
async def test_empty_response_raises_service_unavailable() -> None:
    client, _ = make_client({"response": ""})

    with pytest.raises(ServiceUnavailableError):
        await client.invoke("Hello", "Check it")


@pytest.mark.asyncio
async def test_transport_failure_is_chained() -> None:
    request = httpx.Request("POST", "http://wiki.test/w/api.php")
    client, _ = make_client(httpx.ConnectError("refused", request=request))

    with pytest.raises(ServiceUnavailableError) as excinfo:
        await client.invoke("Hello", "Check it")

    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    assert client.available is False


@pytest.mark.parametrize(
    "failure",
    [
        httpx.InvalidURL("No scheme included in URL."),
        RuntimeError("event loop is closed"),
        UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"),
    ],
)
@pytest.mark.asyncio
async def test_unexpected_transport_failure_marks_service_unavailable(failure: Exception) -> None:
    client, _ = make_client(failure)
    seen: list[bool] = []
    client.add_availability_listener(seen.append)

    with pytest.raises(ServiceUnavailableError) as excinfo:
        await client.invoke("Hello", "Check it")

    assert excinfo.value.__cause__ is failure
    assert excinfo.value.details == {"exception": type(failure).__name__}
    assert client.available is False
    assert seen == [False]


@pytest.mark.asyncio
async def test_availability_listeners_fire_on_transitions_only() -> None:
    request = httpx.Request("POST", "http://wiki.test/w/api.php")
    client, _ = make_client(
        "fine",
        httpx.ReadTimeout("slow", request=request),
        httpx.ReadTimeout("slow", request=request),
        "fine again",
    )
    seen: list[bool] = []
    client.add_availability_listener(seen.append)

    await client.invoke("a", "b")
    for _ in range(2):
        with pytest.raises(ServiceUnavailableError):
            await client.invoke("a", "b")
    await client.invoke("a", "b")

    assert seen == [False, True]
    assert client.available is True


@pytest.mark.asyncio
async def test_removed_listener_is_not_notified() -> None:
    client, _ = make_client({})
    seen: list[bool] = []
    client.add_availability_listener(seen.append)
    client.remove_availability_listener(seen.append)

    with pytest.raises(ServiceUnavailableError):
        await client.invoke("a", "b")

    assert seen == []


@pytest.mark.asyncio
async def test_overall_timeout_raises_service_unavailable() -> None:
    class _SlowTransport:
        async def send(self, request: TransformationRequest) -> dict:
            await asyncio.sleep(1)
            return {"response": "late"}

        async def aclose(self) -> None:
            return None

    client, _ = make_client(request_timeout=0.01, max_retries=1)
    client._transport = _SlowTransport()  # type: ignore[assignment]

    with pytest.raises(ServiceUnavailableError) as excinfo:
        await client.invoke("a", "b")

    assert isinstance(excinfo.value.__cause__, asyncio.TimeoutError)
    assert client.available is False


@pytest.mark.asyncio
async def test_check_spelling_returns_misspellings() -> None:
    reply = json.dumps({"misspelled": True, "words": [{"word": "quikc", "suggestions": ["quick"]}]})
    client, transport = make_client(f"```json\n{reply}\n```")

    result = await client.check_spelling("quikc")

    assert isinstance(result, Misspellings)
    assert result.misspelled is True
    assert result.suggestions_for("quikc") == ("quick",)
    assert transport.requests[0].instruction == INSTRUCTIONS[TransformationKind.SPELL_CHECK]


@pytest.mark.asyncio
async def test_check_spelling_accepts_bare_word_list() -> None:
    client, _ = make_client('[{"word": "teh", "suggestions": ["the"]}]')

    result = await client.check_spelling("teh")

    assert isinstance(result, Misspellings)
    assert result.misspelled is True
    assert result.words[0].word == "teh"


@pytest.mark.asyncio
async def test_check_spelling_plain_text_reply() -> None:
    client, _ = make_client("No spelling errors found.")

    result = await client.check_spelling("fine")

    assert result == PlainText(text="No spelling errors found.")


@pytest.mark.asyncio
async def test_check_spelling_structured_error_becomes_service_error() -> None:
    client, _ = make_client('{"error": "quota exceeded"}')

    result = await client.check_spelling("word")

    assert result == ServiceError(message="quota exceeded")


@pytest.mark.asyncio
async def test_check_grammar_detects_confirmation_phrase() -> None:
    client, _ = make_client("No grammar errors found.")

    assert await client.check_grammar("I have an apple.") == Suggestion(text=None)


@pytest.mark.asyncio
async def test_check_grammar_phrase_is_case_sensitive() -> None:
    client, _ = make_client("no grammar errors here, honestly")

    result = await client.check_grammar("text")

    assert result.text == "no grammar errors here, honestly"


@pytest.mark.asyncio
async def test_check_grammar_returns_correction() -> None:
    client, _ = make_client("I have an apple.")

    assert await client.check_grammar("I has a apple") == Suggestion(text="I have an apple.")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("method", "kind"),
    [
        ("improve", TransformationKind.IMPROVE),
        ("make_formal", TransformationKind.FORMAL),
        ("make_casual", TransformationKind.CASUAL),
        ("simplify", TransformationKind.SIMPLIFY),
        ("expand", TransformationKind.EXPAND),
        ("summarize", TransformationKind.SUMMARIZE),
    ],
)
async def test_rewrite_operations_use_their_instruction(method: str, kind: TransformationKind) -> None:
    client, transport = make_client("Rewritten.")

    result = await getattr(client, method)("Original.")

    assert result == Suggestion(text="Rewritten.")
    assert transport.requests[0].instruction == INSTRUCTIONS[kind]


@pytest.mark.asyncio
async def test_uncertain_reply_is_flagged() -> None:
    client, _ = make_client("I'm not sure about that")

    result = await client.improve("???")

    assert result.uncertain is True


@pytest.mark.asyncio
async def test_run_dispatches_by_kind_and_rejects_unknown() -> None:
    client, transport = make_client("Shorter.")

    result = await client.run("summarize", "A long text.")

    assert result == Suggestion(text="Shorter.")
    assert transport.requests[0].instruction == INSTRUCTIONS[TransformationKind.SUMMARIZE]
    with pytest.raises(UnknownActionTypeError):
        await client.run("translate", "text")


@pytest.mark.asyncio
async def test_aclose_closes_transport() -> None:
    client, transport = make_client()

    await client.aclose()

    assert transport.closed is True
