"""
Flet PDF Annotator

Highlight, underline, draw on and type over PDF pages, then burn the
annotations into the document bytes. Built on PyMuPDF and Flet.

Usage:
    import flet as ft
    from flet_pdf_annotator import AnnotatorDocument, PdfAnnotator, Tool

    def main(page: ft.Page):
        document = AnnotatorDocument("/path/to/file.pdf")
        annotator = PdfAnnotator(document.session)
        annotator.set_tool(Tool.HIGHLIGHT)
        page.add(annotator.control)

    ft.app(main)
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from .annotations import AnnotationStore
from .backends.pymupdf import PyMuPDFBackend
from .errors import AnnotatorError, FontError, LoadError, RenderError, SaveError
from .rendering.cache import PageRenderCache
from .save import SavePipeline
from .session import AnnotationSession
from .text import PointLocator, RangeLocator, TextLayout, is_arabic, shape, split_script_runs
from .transform import ViewportTransform
from .types import (
    Annotation,
    AnnotationKind,
    Colors,
    GlyphPosition,
    LocatorConfig,
    PageBitmap,
    RenderConfig,
    SaveConfig,
    Tool,
    ViewportState,
    ZoomConfig,
)
from .viewer import PdfAnnotator

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())


class AnnotatorDocument:
    """
    An open PDF plus its annotation session.

    Can be created from:
    - File path (str or Path)
    - Bytes
    - BytesIO

    Args:
        source: Path to PDF file, bytes, or BytesIO
        password: Password for encrypted PDFs (optional)
        **session_options: Passed to `AnnotationSession` (zoom, locator,
            render, save, colors, max_history, view_width, ...)

    Properties:
    - page_count: Number of pages
    - session: The annotation session for this document
    - data: The document bytes annotations are saved against

    Methods:
    - get_page_size(index): Get (width, height)
    - save(path): Burn annotations in, optionally writing to a file
    - reload(): Re-read the source and drop every cache
    - close(): Release resources

    Raises:
        LoadError: If the source is missing, empty, or not a readable PDF
    """

    def __init__(
        self,
        source: Union[str, Path, bytes, io.BytesIO],
        password: Optional[str] = None,
        **session_options,
    ):
        self._source = source
        self._password = password
        self._session_options = session_options
        self._backend = PyMuPDFBackend(
            source, password=password, save_config=session_options.get("save")
        )
        self._session: Optional[AnnotationSession] = None

    @property
    def page_count(self) -> int:
        """Number of pages."""
        return self._backend.page_count

    @property
    def data(self) -> bytes:
        return self._backend.data

    @property
    def path(self) -> Optional[Path]:
        """Source file path, if opened from a file."""
        return self._backend.path

    @property
    def session(self) -> AnnotationSession:
        """The annotation session, created on first use."""
        if self._session is None:
            self._session = AnnotationSession(self._backend, **self._session_options)
        return self._session

    def get_page_size(self, index: int = 0) -> Tuple[float, float]:
        info = self._backend.page_info(index)
        return (info.width, info.height)

    def save(self, path: Optional[Union[str, Path]] = None) -> bytes:
        """Burn the applied annotations in.

        Args:
            path: Where to write the result (optional)

        Returns:
            The annotated document bytes

        Raises:
            SaveError: If the document could not be written
        """
        data = self.session.save()
        if path is not None:
            try:
                Path(path).write_bytes(data)
            except OSError as e:
                raise SaveError(f"Could not write {path}: {e}") from e
        return data

    def reload(self) -> None:
        """Re-read the source from disk (for file sources) and reopen every handle.

        Annotations in the session are kept.
        """
        if isinstance(self._source, (str, Path)):
            self._backend = PyMuPDFBackend(
                self._source,
                password=self._password,
                save_config=self._session_options.get("save"),
            )
            if self._session is not None:
                self._session.rebind(self._backend)
                return
        if self._session is not None:
            self._session.reload()

    def close(self):
        """Release resources."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


__all__ = [
    "AnnotatorDocument",
    "AnnotationSession",
    "PdfAnnotator",
    # Engine
    "AnnotationStore",
    "PageRenderCache",
    "PointLocator",
    "RangeLocator",
    "SavePipeline",
    "TextLayout",
    "ViewportTransform",
    "is_arabic",
    "shape",
    "split_script_runs",
    # Types
    "Annotation",
    "AnnotationKind",
    "Colors",
    "GlyphPosition",
    "LocatorConfig",
    "PageBitmap",
    "RenderConfig",
    "SaveConfig",
    "Tool",
    "ViewportState",
    "ZoomConfig",
    # Errors
    "AnnotatorError",
    "FontError",
    "LoadError",
    "RenderError",
    "SaveError",
]
