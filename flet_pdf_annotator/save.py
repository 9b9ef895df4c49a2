"""
Save pipeline - burns annotations into a fresh copy of the document.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from .backends.base import DocumentWriter, FontRole
from .errors import FontError, SaveError
from .text.shaping import shape, split_script_runs
from .types import Annotation, AnnotationKind, Point, SaveConfig, argb_to_rgb

logger = logging.getLogger(__name__)

OpenWriter = Callable[[bytes], DocumentWriter]


def flip_rect(annotation: Annotation, page_height: float) -> float:
    """PDF-space y of an annotation rect's lower edge."""
    return page_height - annotation.y - annotation.h


def flip_point(point: Point, page_height: float) -> Point:
    return (point[0], page_height - point[1])


class SavePipeline:
    """
    Writes annotations into page content and serializes the result.

    The pipeline never touches the interactively held document: every save
    loads its own copy of the bytes through `open_writer`.

    Args:
        open_writer: Loads bytes into a fresh `DocumentWriter`
        config: Stroke widths, opacity and font size
    """

    def __init__(self, open_writer: OpenWriter, config: Optional[SaveConfig] = None):
        self._open_writer = open_writer
        self._config = config or SaveConfig()

    @property
    def config(self) -> SaveConfig:
        return self._config

    def save(
        self,
        document_bytes: bytes,
        page_heights: Sequence[float],
        annotations: Sequence[Annotation],
    ) -> bytes:
        """
        Burn `annotations` into `document_bytes`.

        Args:
            document_bytes: The document to annotate
            page_heights: Height of each page in points
            annotations: Annotations in page space, drawn in order

        Returns:
            The annotated document (the input itself when there is nothing to draw)

        Raises:
            SaveError: If the document cannot be loaded or written
        """
        if not annotations:
            return document_bytes

        try:
            writer = self._open_writer(document_bytes)
        except Exception as e:
            raise SaveError(f"Could not load document for saving: {e}") from e

        try:
            with writer:
                for annotation in annotations:
                    if not 0 <= annotation.page_index < len(page_heights):
                        logger.warning(
                            "Skipping annotation on missing page %d", annotation.page_index
                        )
                        continue
                    self._apply(writer, annotation, page_heights[annotation.page_index])
                return writer.to_bytes()
        except SaveError:
            raise
        except Exception as e:
            raise SaveError(f"Could not write annotations: {e}") from e

    # Per-kind drawing

    def _apply(
        self, writer: DocumentWriter, annotation: Annotation, page_height: float
    ) -> None:
        kind = annotation.kind
        index = annotation.page_index
        color = argb_to_rgb(annotation.color)

        if kind is AnnotationKind.HIGHLIGHT:
            pdf_y = flip_rect(annotation, page_height)
            writer.fill_rect(
                index,
                (annotation.x, pdf_y, annotation.w, annotation.h),
                color,
                opacity=self._config.highlight_opacity,
            )

        elif kind is AnnotationKind.UNDERLINE:
            pdf_y = flip_rect(annotation, page_height)
            writer.stroke_line(
                index,
                (annotation.x, pdf_y),
                (annotation.x + annotation.w, pdf_y),
                color,
                self._config.underline_width,
            )

        elif kind is AnnotationKind.STROKE:
            points = [flip_point(p, page_height) for p in annotation.points or ()]
            writer.stroke_polyline(index, points, color, self._config.stroke_width)

        elif kind is AnnotationKind.TEXT:
            self._draw_text(
                writer,
                index,
                (annotation.x, page_height - annotation.y),
                annotation.text or "",
                color,
            )

    def _draw_text(
        self,
        writer: DocumentWriter,
        index: int,
        origin: Point,
        text: str,
        color,
    ) -> None:
        for arabic, run in split_script_runs(shape(text)):
            role = FontRole.RTL if arabic else FontRole.DEFAULT
            origin = self._draw_run(writer, index, origin, run, role, color)

    def _draw_run(
        self,
        writer: DocumentWriter,
        index: int,
        origin: Point,
        run: str,
        role: FontRole,
        color,
    ) -> Point:
        size = self._config.font_size
        try:
            return writer.show_text(index, origin, run, role, size, color)
        except FontError as e:
            logger.warning("Retrying %r with the %s font: %s", run, role.other.value, e)

        try:
            return writer.show_text(index, origin, run, role.other, size, color)
        except FontError as e:
            logger.warning("Skipping text run %r: %s", run, e)
            return origin
