"""
Shared fixtures: in-memory fakes for the backend capabilities and small
PyMuPDF documents.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Set, Tuple

import pymupdf
import pytest

from flet_pdf_annotator.backends.base import (
    DocumentBackend,
    DocumentWriter,
    FontRole,
    Rasterizer,
    TextExtractor,
)
from flet_pdf_annotator.errors import FontError
from flet_pdf_annotator.types import GlyphPosition, PageBitmap, PageInfo


def word_glyphs(
    text: str, x: float, baseline: float, width: float = 10.0, height: float = 20.0
) -> List[GlyphPosition]:
    """Glyphs for `text` laid out left to right, `width` apart."""
    return [
        GlyphPosition(char=c, x=x + i * width, y=baseline, width=width, height=height)
        for i, c in enumerate(text)
    ]


class FakeExtractor(TextExtractor):
    def __init__(self, pages: Dict[int, List[List[GlyphPosition]]]):
        self.pages = pages
        self.calls: List[int] = []
        self.closed = False

    def extract_lines(self, index: int) -> List[List[GlyphPosition]]:
        self.calls.append(index)
        if index not in self.pages:
            raise IndexError(index)
        return self.pages[index]

    def close(self) -> None:
        self.closed = True


class FakeRasterizer(Rasterizer):
    """Rasterizer that can be told to run out of memory at some scales."""

    def __init__(
        self,
        pages: int = 3,
        fail_scales: Sequence[float] = (),
        bitmap_bytes: int = 100,
    ):
        self.pages = pages
        self.fail_scales: Set[float] = set(fail_scales)
        self.bitmap_bytes = bitmap_bytes
        self.calls: List[Tuple[int, float]] = []
        self.closed = False

    @property
    def page_count(self) -> int:
        return self.pages

    def page_info(self, index: int) -> PageInfo:
        return PageInfo(index=index, width=100, height=200)

    def rasterize(self, index: int, scale: float) -> PageBitmap:
        self.calls.append((index, scale))
        if scale in self.fail_scales:
            raise MemoryError(f"no memory at {scale}")
        return PageBitmap(
            page_index=index,
            width=int(100 * scale),
            height=int(200 * scale),
            scale=scale,
            png=b"\0" * self.bitmap_bytes,
        )

    def close(self) -> None:
        self.closed = True


class FakeWriter(DocumentWriter):
    """Records drawing operations instead of writing a PDF."""

    def __init__(
        self,
        failing_roles: Sequence[FontRole] = (),
        fail_on_write: bool = False,
    ):
        self.failing_roles = set(failing_roles)
        self.fail_on_write = fail_on_write
        self.ops: List[tuple] = []
        self.closed = False

    def fill_rect(self, index, rect, color, opacity=1.0):
        self.ops.append(("fill", index, rect, color, opacity))

    def stroke_line(self, index, start, end, color, width):
        self.ops.append(("line", index, start, end, color, width))

    def stroke_polyline(self, index, points, color, width):
        self.ops.append(("polyline", index, list(points), color, width))

    def show_text(self, index, origin, text, role, font_size, color):
        if role in self.failing_roles:
            raise FontError(f"{role.value} cannot render {text!r}", text)
        self.ops.append(("text", index, origin, text, role, font_size))
        return (origin[0] + 7.0 * len(text), origin[1])

    def to_bytes(self) -> bytes:
        if self.fail_on_write:
            raise RuntimeError("disk full")
        return b"%PDF-annotated"

    def close(self) -> None:
        self.closed = True


class FakeBackend(DocumentBackend):
    """Backend handing out fakes; keeps every handle it opened."""

    def __init__(
        self,
        lines: Optional[Dict[int, List[List[GlyphPosition]]]] = None,
        pages: Sequence[Tuple[float, float]] = ((600.0, 800.0),),
        data: bytes = b"%PDF-original",
        writer_factory=None,
    ):
        self.lines = lines or {i: [] for i in range(len(pages))}
        self.pages = [PageInfo(index=i, width=w, height=h) for i, (w, h) in enumerate(pages)]
        self._data = data
        self.writer_factory = writer_factory or FakeWriter
        self.extractors: List[FakeExtractor] = []
        self.rasterizers: List[FakeRasterizer] = []
        self.writers: List[FakeWriter] = []

    @property
    def data(self) -> bytes:
        return self._data

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def page_info(self, index: int) -> PageInfo:
        return self.pages[index]

    def open_rasterizer(self) -> FakeRasterizer:
        rasterizer = FakeRasterizer(pages=len(self.pages))
        self.rasterizers.append(rasterizer)
        return rasterizer

    def open_text_extractor(self) -> FakeExtractor:
        extractor = FakeExtractor(self.lines)
        self.extractors.append(extractor)
        return extractor

    def open_writer(self, data: Optional[bytes] = None) -> FakeWriter:
        writer = self.writer_factory()
        self.writers.append(writer)
        return writer


@pytest.fixture
def hello_pdf() -> bytes:
    """One A4 page with 'Hello world' near the top left."""
    doc = pymupdf.open()
    page = doc.new_page(width=595, height=842)
    page.insert_text((72, 100), "Hello world", fontsize=12, fontname="helv")
    page.insert_text((72, 200), "Second line here", fontsize=12, fontname="helv")
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def two_page_pdf() -> bytes:
    doc = pymupdf.open()
    for i in range(2):
        page = doc.new_page(width=300, height=400)
        page.insert_text((20, 50), f"Page {i + 1}", fontsize=14, fontname="helv")
    data = doc.tobytes()
    doc.close()
    return data
