"""
Locators - snap a tap or a drag to extracted text.
"""

from __future__ import annotations

from typing import List, Optional

from ..types import GlyphPosition, LocatorConfig, Rect, union_rect
from .layout import TextLayout


def split_words(line: List[GlyphPosition]) -> List[List[GlyphPosition]]:
    """Split one line into maximal runs of non-whitespace glyphs."""
    words: List[List[GlyphPosition]] = []
    current: List[GlyphPosition] = []
    for glyph in line:
        if glyph.char.isspace():
            if current:
                words.append(current)
                current = []
        else:
            current.append(glyph)
    if current:
        words.append(current)
    return words


def _intersects(a: Rect, b: Rect) -> bool:
    return a[0] <= b[2] and a[2] >= b[0] and a[1] <= b[3] and a[3] >= b[1]


class PointLocator:
    """
    Resolves a page-space point to the nearest word box.

    Each word's box is grown by the configured slop to form its hit
    rectangle. Among the words whose hit rectangle contains the point, the
    one whose center is closest in Manhattan distance wins; ties keep the
    first word in extraction order.
    """

    def __init__(self, layout: TextLayout, config: Optional[LocatorConfig] = None):
        self._layout = layout
        self._config = config or LocatorConfig()

    def locate(self, page_index: int, x: float, y: float) -> Optional[Rect]:
        slop_x = self._config.hit_slop_x
        slop_y = self._config.hit_slop_y

        best: Optional[Rect] = None
        best_distance = float("inf")

        for line in self._layout.lines(page_index):
            for word in split_words(line):
                box = union_rect([g.box for g in word])
                x0, y0, x1, y1 = box
                if not (x0 - slop_x <= x <= x1 + slop_x and y0 - slop_y <= y <= y1 + slop_y):
                    continue

                distance = abs((y0 + y1) / 2 - y) + abs((x0 + x1) / 2 - x)
                if distance < best_distance:
                    best = box
                    best_distance = distance

        return best


class RangeLocator:
    """Resolves a drag rectangle to one box per intersected line, top to bottom."""

    def __init__(self, layout: TextLayout):
        self._layout = layout

    def locate(
        self, page_index: int, x1: float, y1: float, x2: float, y2: float
    ) -> List[Rect]:
        selection = (min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2))

        rects: List[Rect] = []
        for line in self._layout.lines(page_index):
            hits = [g.box for g in line if _intersects(g.box, selection)]
            if hits:
                rects.append(union_rect(hits))

        rects.sort(key=lambda r: r[1])
        return rects
