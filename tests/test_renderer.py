import flet.canvas as cv

from flet_pdf_annotator.rendering.renderer import OverlayRenderer, catmull_rom_to_bezier
from flet_pdf_annotator.types import Annotation, AnnotationKind


def test_shapes_follow_annotation_kinds():
    annotations = [
        Annotation(0, AnnotationKind.HIGHLIGHT, 10, 20, 30, 10, color=0xFFFFFF00),
        Annotation(0, AnnotationKind.UNDERLINE, 10, 40, 30, 4),
        Annotation(0, AnnotationKind.STROKE, 0, 0, 5, 5, points=((0, 0), (5, 5), (9, 2))),
        Annotation(0, AnnotationKind.TEXT, 1, 2, 200, 50, text="note"),
    ]
    shapes = OverlayRenderer(scale=2.0).render(annotations)
    assert [type(s) for s in shapes] == [cv.Rect, cv.Line, cv.Path, cv.Text]

    rect, line = shapes[0], shapes[1]
    assert (rect.x, rect.y, rect.width, rect.height) == (20, 40, 60, 20)
    # Underline sits on the bottom edge of its box
    assert line.y1 == line.y2 == 88


def test_single_point_stroke_is_a_dot():
    annotation = Annotation(0, AnnotationKind.STROKE, 3, 3, 0, 0, points=((3, 3),))
    (dot,) = OverlayRenderer().render([annotation])
    assert isinstance(dot, cv.Circle)


def test_live_feedback_shapes():
    shapes = OverlayRenderer().render(
        [], active_stroke=[(0, 0), (10, 10)], rubber_band=(5, 5, 25, 15)
    )
    assert [type(s) for s in shapes] == [cv.Path, cv.Rect]
    assert shapes[1].width == 20


def test_bezier_conversion():
    assert catmull_rom_to_bezier([(0, 0)]) == []
    assert len(catmull_rom_to_bezier([(0, 0), (1, 1)])) == 2
    elements = catmull_rom_to_bezier([(0, 0), (10, 0), (20, 10), (30, 10)])
    assert isinstance(elements[0], cv.Path.MoveTo)
    assert len(elements) == 4
    assert (elements[-1].x, elements[-1].y) == (30, 10)
