"""Tracks the live selection of an editing surface."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .document_model import Selection
from .surface import EditingSurface

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from ..collaborators import Panel

__all__ = ["SelectionTracker"]

LOGGER = logging.getLogger(__name__)


class SelectionTracker:
    """Owns the last-known selection and reports selection presence changes."""

    def __init__(self, surface: EditingSurface, panel: "Panel | None" = None) -> None:
        self._surface = surface
        self._panel = panel
        self._selection = Selection()
        self._has_selection = False

    @property
    def selection(self) -> Selection:
        return self._selection

    @property
    def has_selection(self) -> bool:
        return self._has_selection

    def set_panel(self, panel: "Panel | None") -> None:
        self._panel = panel

    def on_selection_event(self) -> Selection:
        """Re-read the surface selection; notify the panel on presence changes."""

        start, end = self._surface.selection_span()
        selection = Selection.from_buffer(self._surface.text(), start, end)
        self._selection = selection
        has_selection = not selection.is_empty
        if has_selection != self._has_selection:
            self._has_selection = has_selection
            LOGGER.debug("Selection presence changed: %s", has_selection)
            if self._panel is not None:
                self._panel.set_has_selection(has_selection)
        return selection
