"""Tests covering the command-line entry point."""

from __future__ import annotations

import io
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import httpx
import pytest

from tests.helpers import FakeTransport, make_client
from wandascribe import app
from wandascribe.ai.client import TextServiceClient
from wandascribe.services.settings import Settings, SettingsStore


@pytest.fixture
def transport(monkeypatch: pytest.MonkeyPatch) -> FakeTransport:
    client, fake = make_client()
    created: list[Settings] = []

    def _build(settings: Settings) -> TextServiceClient:
        created.append(settings)
        return client

    monkeypatch.setattr(app, "build_client", _build)
    fake.created = created  # type: ignore[attr-defined]
    return fake


def _argv(tmp_path: Path, *args: str) -> list[str]:
    return ["--settings-path", str(tmp_path / "settings.json"), *args]


def test_runs_transformation_and_prints_suggestion(
    tmp_path: Path, transport: FakeTransport, capsys: pytest.CaptureFixture[str]
) -> None:
    transport.queue("Hello there.")

    code = app.main(_argv(tmp_path, "improve", "hello there"))

    assert code == 0
    assert capsys.readouterr().out == "Hello there.\n"
    assert transport.requests[0].input_text == "hello there"
    assert transport.closed is True


def test_reads_stdin_when_text_is_dash(
    tmp_path: Path, transport: FakeTransport, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    transport.queue("No grammar errors found.")
    monkeypatch.setattr("sys.stdin", io.StringIO("I have an apple."))

    code = app.main(_argv(tmp_path, "grammar-check", "-"))

    assert code == 0
    assert capsys.readouterr().out == "No changes needed.\n"
    assert transport.requests[0].input_text == "I have an apple."


def test_misspellings_are_printed_as_json(
    tmp_path: Path, transport: FakeTransport, capsys: pytest.CaptureFixture[str]
) -> None:
    transport.queue('{"misspelled": true, "words": [{"word": "teh", "suggestions": ["the"]}]}')

    assert app.main(_argv(tmp_path, "spell-check", "teh")) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload == {"misspelled": True, "words": [{"word": "teh", "suggestions": ["the"]}]}


def test_unavailable_service_exits_with_status_one(
    tmp_path: Path, transport: FakeTransport, capsys: pytest.CaptureFixture[str]
) -> None:
    request = httpx.Request("POST", "http://wiki.test/w/api.php")
    transport.queue(httpx.ConnectError("refused", request=request))

    code = app.main(_argv(tmp_path, "summarize", "Some text"))

    assert code == 1
    assert "Text service unavailable" in capsys.readouterr().err


def test_empty_input_is_a_usage_error(tmp_path: Path, transport: FakeTransport) -> None:
    assert app.main(_argv(tmp_path, "improve", "   ")) == 2
    assert transport.requests == []


def test_unknown_action_is_rejected_by_argparse(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        app.main(_argv(tmp_path, "translate", "text"))

    assert excinfo.value.code == 2


def test_set_overrides_reach_the_client(tmp_path: Path, transport: FakeTransport) -> None:
    transport.queue("ok")

    app.main(_argv(tmp_path, "--set", "model=custom", "--set", "temperature=0.5", "expand", "text"))

    settings = transport.created[0]  # type: ignore[attr-defined]
    assert settings.model == "custom"
    assert settings.temperature == 0.5


def test_invalid_override_exits_with_usage_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert app.main(_argv(tmp_path, "--set", "nope=1", "improve", "x")) == 2
    assert "Unknown setting 'nope'" in capsys.readouterr().err


def test_dump_settings_redacts_api_key(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    store.save(Settings(api_key="sk-123456"))

    assert app.main(_argv(tmp_path, "--dump-settings")) == 0

    output = json.loads(capsys.readouterr().out)
    assert output["settings"]["api_key"] == "sk*****56"
    assert output["meta"]["path"] == str(tmp_path / "settings.json")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("max_retries=5", {"max_retries": 5}),
        ("debug_logging=off", {"debug_logging": False}),
        ("default_headers={\"X-A\": \"1\"}", {"default_headers": {"X-A": "1"}}),
        ("messages_path=/tmp/i18n", {"messages_path": "/tmp/i18n"}),
        ("messages_path=null", {"messages_path": None}),
        ("messages_path=None", {"messages_path": None}),
        ("backend= OpenAI", {"backend": "openai"}),
        ("request_timeout=2.5", {"request_timeout": 2.5}),
    ],
)
def test_coerce_cli_overrides(raw: str, expected: dict[str, Any]) -> None:
    assert app._coerce_cli_overrides([raw]) == expected


def test_coerce_cli_overrides_rejects_bad_syntax() -> None:
    with pytest.raises(ValueError):
        app._coerce_cli_overrides(["model"])
    with pytest.raises(ValueError):
        app._coerce_cli_overrides(["debug_logging=maybe"])


@pytest.mark.parametrize(
    "raw",
    [
        "backend=smoke-signals",
        "max_retries=-1",
        "spellcheck_delay=soon",
        "default_headers=[1, 2]",
        "default_headers={\"X-A\": 1}",
    ],
)
def test_coerce_cli_overrides_validates_values(raw: str) -> None:
    key = raw.partition("=")[0]
    with pytest.raises(ValueError, match=f"^{key}: "):
        app._coerce_cli_overrides([raw])


def test_every_setting_has_an_override_parser() -> None:
    assert set(app._OVERRIDE_PARSERS) == {field.name for field in fields(Settings)}


def test_null_override_clears_persisted_messages_path(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    store.save(Settings(messages_path=str(tmp_path / "i18n")))

    overrides = app._coerce_cli_overrides(["messages_path=null"])
    settings = app.load_settings(store=store, overrides=overrides)

    assert settings.messages_path is None


def test_unconfigured_openai_backend_is_a_usage_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    code = app.main(_argv(tmp_path, "--set", "backend=openai", "improve", "Hello"))

    assert code == app.EXIT_USAGE
    assert "Text service is not configured" in capsys.readouterr().err
