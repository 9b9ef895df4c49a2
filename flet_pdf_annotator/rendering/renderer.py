"""
Overlay renderer - converts annotations to Flet canvas shapes.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

import flet as ft
import flet.canvas as cv

from ..types import Annotation, AnnotationKind, Point, Rect, argb_to_hex

# On-screen styling; saved output uses SaveConfig instead
HIGHLIGHT_ALPHA = 100 / 255
UNDERLINE_WIDTH = 2.0
STROKE_WIDTH = 2.0
TEXT_SIZE = 14.0
RUBBER_BAND_COLOR = "#2196f3"


class OverlayRenderer:
    """
    Paints annotations over a rendered page.

    Args:
        scale: Canvas pixels per page unit
    """

    def __init__(self, scale: float = 1.0):
        self.scale = scale

    def render(
        self,
        annotations: Sequence[Annotation],
        active_stroke: Optional[Sequence[Point]] = None,
        rubber_band: Optional[Rect] = None,
        stroke_color: int = 0xFF000000,
    ) -> List[Any]:
        """
        Build canvas shapes for a page.

        Args:
            annotations: Applied annotations on this page (page space)
            active_stroke: Stroke being drawn, in canvas pixels
            rubber_band: Drag rectangle being selected, in canvas pixels
            stroke_color: Color of the stroke being drawn

        Returns:
            Shapes for a `cv.Canvas`
        """
        shapes: List[Any] = []
        for annotation in annotations:
            self._render_annotation(annotation, shapes)

        if active_stroke:
            self._render_path(list(active_stroke), argb_to_hex(stroke_color), shapes)

        if rubber_band is not None:
            x0, y0, x1, y1 = rubber_band
            shapes.append(
                cv.Rect(
                    x=x0,
                    y=y0,
                    width=x1 - x0,
                    height=y1 - y0,
                    paint=ft.Paint(
                        color=ft.Colors.with_opacity(0.2, RUBBER_BAND_COLOR),
                        style=ft.PaintingStyle.FILL,
                    ),
                )
            )
        return shapes

    def _render_annotation(self, annotation: Annotation, shapes: List[Any]) -> None:
        """Render a single annotation."""
        cx0 = annotation.x * self.scale
        cy0 = annotation.y * self.scale
        width = annotation.w * self.scale
        height = annotation.h * self.scale
        hex_color = argb_to_hex(annotation.color)

        if annotation.kind is AnnotationKind.HIGHLIGHT:
            shapes.append(
                cv.Rect(
                    x=cx0,
                    y=cy0,
                    width=width,
                    height=height,
                    paint=ft.Paint(
                        color=ft.Colors.with_opacity(HIGHLIGHT_ALPHA, hex_color),
                        style=ft.PaintingStyle.FILL,
                    ),
                )
            )

        elif annotation.kind is AnnotationKind.UNDERLINE:
            bottom = cy0 + height
            shapes.append(
                cv.Line(
                    x1=cx0,
                    y1=bottom,
                    x2=cx0 + width,
                    y2=bottom,
                    paint=ft.Paint(stroke_width=UNDERLINE_WIDTH, color=hex_color),
                )
            )

        elif annotation.kind is AnnotationKind.STROKE:
            points = [(x * self.scale, y * self.scale) for x, y in annotation.points or ()]
            self._render_path(points, hex_color, shapes)

        elif annotation.kind is AnnotationKind.TEXT:
            shapes.append(
                cv.Text(
                    x=cx0,
                    y=cy0,
                    text=annotation.text or "",
                    style=ft.TextStyle(size=TEXT_SIZE * self.scale, color=hex_color),
                )
            )

    def _render_path(self, points: List[Point], color: str, shapes: List[Any]) -> None:
        """Render a freehand stroke with Catmull-Rom smoothing."""
        if not points:
            return

        if len(points) == 1:
            x, y = points[0]
            shapes.append(
                cv.Circle(
                    x=x,
                    y=y,
                    radius=STROKE_WIDTH / 2,
                    paint=ft.Paint(color=color, style=ft.PaintingStyle.FILL),
                )
            )
            return

        shapes.append(
            cv.Path(
                catmull_rom_to_bezier(points),
                paint=ft.Paint(
                    stroke_width=STROKE_WIDTH,
                    color=color,
                    style=ft.PaintingStyle.STROKE,
                    stroke_cap=ft.StrokeCap.ROUND,
                    stroke_join=ft.StrokeJoin.ROUND,
                ),
            )
        )


def catmull_rom_to_bezier(points: List[Tuple[float, float]], tension: float = 0.5) -> List:
    """Convert points to a smooth path of cubic bezier segments."""
    if len(points) < 2:
        return []

    if len(points) == 2:
        return [
            cv.Path.MoveTo(points[0][0], points[0][1]),
            cv.Path.LineTo(points[1][0], points[1][1]),
        ]

    # Duplicate the end points so every segment has four control points
    pts = [points[0]] + list(points) + [points[-1]]
    elements = [cv.Path.MoveTo(points[0][0], points[0][1])]

    for i in range(1, len(pts) - 2):
        p0, p1, p2, p3 = pts[i - 1], pts[i], pts[i + 1], pts[i + 2]
        cp1x = p1[0] + (p2[0] - p0[0]) * tension / 3
        cp1y = p1[1] + (p2[1] - p0[1]) * tension / 3
        cp2x = p2[0] - (p3[0] - p1[0]) * tension / 3
        cp2y = p2[1] - (p3[1] - p1[1]) * tension / 3
        elements.append(cv.Path.CubicTo(cp1x, cp1y, cp2x, cp2y, p2[0], p2[1]))

    return elements
