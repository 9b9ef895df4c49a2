"""
PyMuPDF backend implementation.
"""

from __future__ import annotations

import io
import logging
import warnings
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

warnings.filterwarnings("ignore", message="builtin type Swig")

import pymupdf

from ..errors import FontError, LoadError  # noqa: E402
from ..types import (  # noqa: E402
    Color,
    GlyphPosition,
    PageBitmap,
    PageInfo,
    Point,
    Rect,
    SaveConfig,
)
from .base import (  # noqa: E402
    DocumentBackend,
    DocumentWriter,
    FontRole,
    Rasterizer,
    TextExtractor,
)
from .fonts import default_font, missing_glyphs, resolve_font  # noqa: E402

logger = logging.getLogger(__name__)

Source = Union[str, Path, bytes, io.BytesIO]

_TEXT_FLAGS = pymupdf.TEXT_PRESERVE_WHITESPACE | pymupdf.TEXT_PRESERVE_LIGATURES


def _read_source(source: Source) -> bytes:
    """Read a document source into memory."""
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.is_file():
            raise LoadError(f"File does not exist: {path}")
        data = path.read_bytes()
    elif isinstance(source, bytes):
        data = source
    elif isinstance(source, io.BytesIO):
        data = source.getvalue()
    else:
        raise TypeError(f"Unsupported source type: {type(source)}")

    if not data:
        raise LoadError("Document is empty")
    return data


def _open(data: bytes, password: Optional[str] = None) -> pymupdf.Document:
    """Open PDF bytes as a new, independent document handle."""
    try:
        doc = pymupdf.open(stream=data, filetype="pdf")
    except Exception as e:
        raise LoadError(f"Could not open document: {e}") from e

    # Handle encrypted documents
    if doc.needs_pass:
        if password is None or not doc.authenticate(password):
            doc.close()
            raise LoadError("Document is encrypted and the password is missing or invalid")
    return doc


def _is_allocation_failure(error: Exception) -> bool:
    message = str(error).lower()
    return "malloc" in message or "out of memory" in message or "cannot allocate" in message


class PyMuPDFRasterizer(Rasterizer):
    """Renders pages with PyMuPDF pixmaps."""

    def __init__(self, data: bytes, password: Optional[str] = None):
        self._doc = _open(data, password)

    @property
    def page_count(self) -> int:
        return len(self._doc)

    def page_info(self, index: int) -> PageInfo:
        page = self._doc[index]
        return PageInfo(
            index=index,
            width=page.rect.width,
            height=page.rect.height,
            rotation=page.rotation,
        )

    def rasterize(self, index: int, scale: float) -> PageBitmap:
        if index < 0 or index >= len(self._doc):
            raise IndexError(f"Page index {index} out of range")

        page = self._doc[index]
        try:
            pix = page.get_pixmap(matrix=pymupdf.Matrix(scale, scale), alpha=False)
            png = pix.tobytes("png")
        except MemoryError:
            raise
        except Exception as e:
            # MuPDF reports malloc failures as FzErrorBase, not RuntimeError
            if _is_allocation_failure(e):
                raise MemoryError(str(e)) from e
            raise

        return PageBitmap(
            page_index=index,
            width=pix.width,
            height=pix.height,
            scale=scale,
            png=png,
        )

    def close(self) -> None:
        if self._doc:
            self._doc.close()


class PyMuPDFTextExtractor(TextExtractor):
    """Extracts glyphs with `rawdict`; one rawdict line is one extraction line."""

    def __init__(self, data: bytes, password: Optional[str] = None):
        self._doc = _open(data, password)

    def extract_lines(self, index: int) -> List[List[GlyphPosition]]:
        if index < 0 or index >= len(self._doc):
            raise IndexError(f"Page index {index} out of range")

        page = self._doc[index]
        text_dict = page.get_text("rawdict", flags=_TEXT_FLAGS)
        lines: List[List[GlyphPosition]] = []

        for block in text_dict.get("blocks", []):
            # Skip image blocks
            if block.get("type") != 0:
                continue

            for line in block.get("lines", []):
                glyphs = []
                for span in line.get("spans", []):
                    for char_info in span.get("chars", []):
                        c = char_info.get("c", "")
                        if not c:
                            continue
                        x0, y0, x1, y1 = char_info.get("bbox", (0, 0, 0, 0))
                        glyphs.append(
                            GlyphPosition(
                                char=c,
                                x=x0,
                                y=y1,
                                width=x1 - x0,
                                height=y1 - y0,
                            )
                        )
                if glyphs:
                    lines.append(glyphs)

        return lines

    def close(self) -> None:
        if self._doc:
            self._doc.close()


class PyMuPDFWriter(DocumentWriter):
    """
    Burns annotations into page content with PyMuPDF shapes and text writers.

    Incoming geometry is in PDF space (bottom-left origin). PyMuPDF draws in
    its own top-left page space, so every point goes through the page's
    transformation matrix first.
    """

    def __init__(
        self,
        data: bytes,
        config: Optional[SaveConfig] = None,
        password: Optional[str] = None,
    ):
        self._doc = _open(data, password)
        self._config = config or SaveConfig()
        self._fonts: Dict[FontRole, pymupdf.Font] = {}

    def _page(self, index: int) -> pymupdf.Page:
        if index < 0 or index >= len(self._doc):
            raise IndexError(f"Page index {index} out of range")
        return self._doc[index]

    def _font(self, role: FontRole) -> pymupdf.Font:
        if role not in self._fonts:
            if role is FontRole.RTL:
                self._fonts[role] = resolve_font(
                    self._config.bundled_font, self._config.system_fonts
                )
            else:
                self._fonts[role] = default_font()
        return self._fonts[role]

    @staticmethod
    def _to_page(page: pymupdf.Page, point: Point) -> pymupdf.Point:
        return pymupdf.Point(point) * page.transformation_matrix

    @staticmethod
    def _to_pdf(page: pymupdf.Page, point: pymupdf.Point) -> Point:
        p = pymupdf.Point(point) * ~page.transformation_matrix
        return (p.x, p.y)

    def fill_rect(
        self,
        index: int,
        rect: Rect,
        color: Color,
        opacity: float = 1.0,
    ) -> None:
        page = self._page(index)
        x, y, w, h = rect
        r = pymupdf.Rect(
            self._to_page(page, (x, y)), self._to_page(page, (x + w, y + h))
        )
        r.normalize()

        shape = page.new_shape()
        shape.draw_rect(r)
        shape.finish(color=None, fill=color, fill_opacity=opacity, width=0)
        shape.commit()

    def stroke_line(
        self, index: int, start: Point, end: Point, color: Color, width: float
    ) -> None:
        page = self._page(index)
        shape = page.new_shape()
        shape.draw_line(self._to_page(page, start), self._to_page(page, end))
        shape.finish(color=color, width=width)
        shape.commit()

    def stroke_polyline(
        self, index: int, points: Sequence[Point], color: Color, width: float
    ) -> None:
        if not points:
            return
        page = self._page(index)
        shape = page.new_shape()
        if len(points) == 1:
            # A tap with the pen leaves a dot
            shape.draw_circle(self._to_page(page, points[0]), width / 2)
            shape.finish(color=None, fill=color, width=0)
            shape.commit()
            return
        shape.draw_polyline([self._to_page(page, p) for p in points])
        shape.finish(color=color, width=width, closePath=False, lineCap=1, lineJoin=1)
        shape.commit()

    def show_text(
        self,
        index: int,
        origin: Point,
        text: str,
        role: FontRole,
        font_size: float,
        color: Color,
    ) -> Point:
        page = self._page(index)
        font = self._font(role)

        missing = missing_glyphs(font, text)
        if missing:
            raise FontError(f"Font for {role.value} text has no glyph for {missing!r}", missing)

        writer = pymupdf.TextWriter(page.rect)
        try:
            writer.append(self._to_page(page, origin), text, font=font, fontsize=font_size)
        except Exception as e:
            raise FontError(f"Could not lay out {text!r}: {e}") from e
        writer.write_text(page, color=color)

        return self._to_pdf(page, writer.last_point)

    def to_bytes(self) -> bytes:
        return self._doc.tobytes(garbage=3, deflate=True)

    def close(self) -> None:
        if self._doc:
            self._doc.close()
        self._fonts.clear()


class PyMuPDFBackend(DocumentBackend):
    """
    PyMuPDF document backend.

    Holds the document bytes and opens one independent PyMuPDF handle per
    use, so rasterization, text extraction and saving never share a handle.

    Args:
        source: Path to PDF file, bytes, or BytesIO
        password: Password for encrypted PDFs (optional)
        save_config: Styling for burned-in annotations

    Raises:
        LoadError: If the source is missing, empty, or not a readable PDF
    """

    def __init__(
        self,
        source: Source,
        password: Optional[str] = None,
        save_config: Optional[SaveConfig] = None,
    ):
        self._data = _read_source(source)
        self._password = password
        self._save_config = save_config or SaveConfig()
        self._path = Path(source) if isinstance(source, (str, Path)) else None

        # Validate once and remember page geometry
        doc = _open(self._data, password)
        try:
            self._pages = [
                PageInfo(index=i, width=p.rect.width, height=p.rect.height, rotation=p.rotation)
                for i, p in enumerate(doc)
            ]
        finally:
            doc.close()

    @property
    def data(self) -> bytes:
        return self._data

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def page_info(self, index: int) -> PageInfo:
        if index < 0 or index >= len(self._pages):
            raise IndexError(f"Page index {index} out of range")
        return self._pages[index]

    def open_rasterizer(self) -> PyMuPDFRasterizer:
        return PyMuPDFRasterizer(self._data, self._password)

    def open_text_extractor(self) -> PyMuPDFTextExtractor:
        return PyMuPDFTextExtractor(self._data, self._password)

    def open_writer(self, data: Optional[bytes] = None) -> PyMuPDFWriter:
        return PyMuPDFWriter(
            data if data is not None else self._data,
            self._save_config,
            self._password,
        )
