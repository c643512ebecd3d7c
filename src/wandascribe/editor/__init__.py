"""Editing-surface adapters, selection tracking, spell checking and edits."""

from importlib import import_module
from typing import Any

from . import applicator, document_model, selection_tracker, spellcheck, surface

__all__ = ["applicator", "document_model", "selection_tracker", "spellcheck", "surface"]


def __getattr__(name: str) -> Any:
	if name == "qt_surface":
		module = import_module(f"{__name__}.{name}")
		globals()[name] = module
		return module
	raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
