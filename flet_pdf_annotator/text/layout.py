"""
Text layout - lazily extracted, per-page glyph lines.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from ..backends.base import TextExtractor
from ..types import GlyphPosition

logger = logging.getLogger(__name__)

Line = List[GlyphPosition]


class TextLayout:
    """
    Per-page glyph lines, extracted on first use and kept until `invalidate`.

    The extractor handle is not thread safe; all access goes through one lock.

    Args:
        extractor: Text extraction capability for the open document
    """

    def __init__(self, extractor: Optional[TextExtractor] = None):
        self._extractor = extractor
        self._lines: Dict[int, List[Line]] = {}
        self._lock = threading.Lock()

    @property
    def extractor(self) -> Optional[TextExtractor]:
        return self._extractor

    def lines(self, page_index: int) -> List[Line]:
        """Glyph lines for a page, in extraction order."""
        with self._lock:
            cached = self._lines.get(page_index)
            if cached is not None:
                return cached

            if self._extractor is None:
                return []

            try:
                lines = self._extractor.extract_lines(page_index)
            except IndexError:
                return []
            self._lines[page_index] = lines
            logger.debug(
                "Extracted %d lines from page %d", len(lines), page_index
            )
            return lines

    def glyphs(self, page_index: int) -> List[GlyphPosition]:
        """All glyphs on a page, flattened."""
        return [g for line in self.lines(page_index) for g in line]

    def attach(self, extractor: TextExtractor) -> None:
        """Use a new extractor handle, dropping cached lines."""
        with self._lock:
            self._extractor = extractor
            self._lines.clear()

    def detach(self) -> Optional[TextExtractor]:
        """Release the extractor handle and return it so the caller can close it."""
        with self._lock:
            extractor = self._extractor
            self._extractor = None
            self._lines.clear()
            return extractor

    def invalidate(self) -> None:
        """Forget every cached page."""
        with self._lock:
            self._lines.clear()
