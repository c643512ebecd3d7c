"""Shared pytest fixtures."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in list(os.environ):
        if name.startswith("WANDASCRIBE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("WANDASCRIBE_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("WANDASCRIBE_TELEMETRY_DIR", str(tmp_path / "telemetry"))
