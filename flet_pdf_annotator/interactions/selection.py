"""
Selection handler - tracks a highlight/underline drag in device coordinates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..types import Point, Rect


@dataclass
class SelectionState:
    """Current drag state."""

    page_index: Optional[int] = None
    start: Optional[Point] = None
    end: Optional[Point] = None


class SelectionHandler:
    """
    Rubber-band selection for markup tools.

    A drag that moves less than `tap_slop` pixels counts as a tap.
    """

    def __init__(self, tap_slop: float = 4.0):
        self._state = SelectionState()
        self._tap_slop = tap_slop

    @property
    def is_selecting(self) -> bool:
        """Whether a drag is in progress."""
        return self._state.start is not None

    @property
    def page_index(self) -> Optional[int]:
        return self._state.page_index

    @property
    def start(self) -> Optional[Point]:
        return self._state.start

    @property
    def end(self) -> Optional[Point]:
        return self._state.end

    @property
    def rect(self) -> Optional[Rect]:
        """Normalized drag rectangle (x0, y0, x1, y1)."""
        start, end = self._state.start, self._state.end
        if start is None or end is None:
            return None
        return (
            min(start[0], end[0]),
            min(start[1], end[1]),
            max(start[0], end[0]),
            max(start[1], end[1]),
        )

    @property
    def is_tap(self) -> bool:
        """Whether the drag stayed within the tap slop."""
        rect = self.rect
        if rect is None:
            return False
        return rect[2] - rect[0] < self._tap_slop and rect[3] - rect[1] < self._tap_slop

    def start_selection(self, page_index: int, x: float, y: float) -> None:
        """Start a new drag."""
        self._state = SelectionState(page_index=page_index, start=(x, y), end=(x, y))

    def update_selection(self, x: float, y: float) -> None:
        """Move the drag end point."""
        if self.is_selecting:
            self._state.end = (x, y)

    def end_selection(self) -> SelectionState:
        """Finish the drag and return its final state."""
        state = self._state
        self._state = SelectionState()
        return state

    def clear(self) -> None:
        self._state = SelectionState()
