"""
Drawing handler - captures freehand strokes in device coordinates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..types import Path


@dataclass
class DrawingState:
    """Current drawing state."""

    page_index: Optional[int] = None
    current_path: Path = field(default_factory=list)


class DrawingHandler:
    """
    Collects the points of one freehand stroke.

    Points closer than `min_distance` device pixels to the previous one are
    dropped. A stroke that never moves keeps its single point.
    """

    def __init__(self, min_distance: float = 5.0):
        self._state = DrawingState()
        self._min_distance = min_distance

    @property
    def active(self) -> bool:
        """Whether a stroke is in progress."""
        return self._state.page_index is not None

    @property
    def page_index(self) -> Optional[int]:
        return self._state.page_index

    @property
    def current_path(self) -> Path:
        """Points captured so far."""
        return self._state.current_path

    def start_stroke(self, page_index: int, x: float, y: float) -> None:
        """Start a new stroke on a page."""
        self._state = DrawingState(page_index=page_index, current_path=[(x, y)])

    def add_point(self, x: float, y: float) -> bool:
        """Add a point if it is far enough from the last one."""
        if not self.active:
            return False

        path = self._state.current_path
        if path:
            last_x, last_y = path[-1]
            dist = ((x - last_x) ** 2 + (y - last_y) ** 2) ** 0.5
            if dist < self._min_distance:
                return False
        path.append((x, y))
        return True

    def end_stroke(self) -> Path:
        """End the current stroke and return its points."""
        path = self._state.current_path
        self._state = DrawingState()
        return path

    def cancel(self) -> None:
        """Drop the current stroke without returning it."""
        self._state = DrawingState()
