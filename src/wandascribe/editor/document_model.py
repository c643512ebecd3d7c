"""Dataclasses describing selections and surface geometry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

# Horizontal nudge applied so popups do not cover the surface's left edge.
CARET_LEFT_OFFSET = 20


@dataclass(frozen=True, slots=True)
class Selection:
    """Selected span of the buffer; ``text`` always equals ``buffer[start:end]``."""

    start: int = 0
    end: int = 0
    text: str = ""

    @classmethod
    def from_buffer(cls, buffer: str, start: int, end: int) -> "Selection":
        """Build a selection clamped to ``buffer``."""

        length = len(buffer)
        start = max(0, min(int(start), length))
        end = max(0, min(int(end), length))
        if end < start:
            start, end = end, start
        return cls(start=start, end=end, text=buffer[start:end])

    @property
    def is_empty(self) -> bool:
        return not self.text

    def as_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)


@dataclass(frozen=True, slots=True)
class Coordinates:
    """Page-scroll-adjusted pixel position handed to popups."""

    top: float
    left: float

    def as_dict(self) -> Dict[str, Any]:
        return {"top": self.top, "left": self.left}


@dataclass(frozen=True, slots=True)
class SurfaceGeometry:
    """Bounding box of the editing surface plus the page scroll offsets."""

    top: float = 0.0
    left: float = 0.0
    scroll_x: float = 0.0
    scroll_y: float = 0.0

    def anchor(self) -> Coordinates:
        """Approximate popup anchor; exact caret geometry is not tracked."""

        return Coordinates(
            top=self.top + self.scroll_y,
            left=self.left + self.scroll_x + CARET_LEFT_OFFSET,
        )
