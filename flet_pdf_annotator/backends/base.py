"""
Abstract capability interfaces the annotation engine depends on.

Backends implement these to plug a PDF library into the engine. None of the
underlying handles are assumed to be thread safe; the engine serializes
access itself.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional, Sequence

from ..types import Color, GlyphPosition, PageBitmap, PageInfo, Point, Rect


class FontRole(Enum):
    """Which font a text run should be drawn with."""

    DEFAULT = "default"
    RTL = "rtl"  # right-to-left capable (Arabic)

    @property
    def other(self) -> "FontRole":
        return FontRole.DEFAULT if self is FontRole.RTL else FontRole.RTL


class Rasterizer(ABC):
    """Renders pages to bitmaps."""

    @property
    @abstractmethod
    def page_count(self) -> int:
        """Number of pages in the document."""
        ...

    @abstractmethod
    def page_info(self, index: int) -> PageInfo:
        """Size of a page in points."""
        ...

    @abstractmethod
    def rasterize(self, index: int, scale: float) -> PageBitmap:
        """Render a page at `scale` times its nominal size.

        Raises:
            MemoryError: If the bitmap cannot be allocated
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the rasterization handle."""
        ...


class TextExtractor(ABC):
    """Extracts positioned glyphs from pages.

    Contract: `extract_lines` returns one list per extraction line (one
    text line as the PDF library reports it), in reading order. Glyphs keep
    their page-space position with `y` on the baseline. Line grouping is what
    range selection merges on, so adapters must not split or join lines.
    """

    @abstractmethod
    def extract_lines(self, index: int) -> List[List[GlyphPosition]]:
        """Extract glyphs for a page grouped by line."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the text handle."""
        ...


class DocumentWriter(ABC):
    """Burns drawing operations into page content.

    All coordinates are in PDF content-stream space: origin bottom-left,
    y growing upward.
    """

    @abstractmethod
    def fill_rect(
        self,
        index: int,
        rect: Rect,
        color: Color,
        opacity: float = 1.0,
    ) -> None:
        """Fill `rect` given as (x, y, width, height)."""
        ...

    @abstractmethod
    def stroke_line(
        self, index: int, start: Point, end: Point, color: Color, width: float
    ) -> None:
        """Stroke a straight line."""
        ...

    @abstractmethod
    def stroke_polyline(
        self, index: int, points: Sequence[Point], color: Color, width: float
    ) -> None:
        """Stroke an open polyline. A single point is drawn as a dot `width` across."""
        ...

    @abstractmethod
    def show_text(
        self,
        index: int,
        origin: Point,
        text: str,
        role: FontRole,
        font_size: float,
        color: Color,
    ) -> Point:
        """Draw a text run starting at the baseline `origin`.

        Returns:
            The origin for the next run

        Raises:
            FontError: If the font for `role` cannot render `text`
        """
        ...

    @abstractmethod
    def to_bytes(self) -> bytes:
        """Serialize the modified document."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Release resources."""
        ...

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class DocumentBackend(ABC):
    """Opens independent handles onto one document's bytes."""

    @property
    @abstractmethod
    def data(self) -> bytes:
        """The document bytes the handles are opened from."""
        ...

    @property
    @abstractmethod
    def page_count(self) -> int:
        ...

    @abstractmethod
    def page_info(self, index: int) -> PageInfo:
        ...

    @abstractmethod
    def open_rasterizer(self) -> Rasterizer:
        ...

    @abstractmethod
    def open_text_extractor(self) -> TextExtractor:
        ...

    @abstractmethod
    def open_writer(self, data: Optional[bytes] = None) -> DocumentWriter:
        """Load a fresh, independent copy of `data` (default: `self.data`)."""
        ...
