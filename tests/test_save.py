import pymupdf
import pytest

from flet_pdf_annotator.backends import FontRole, PyMuPDFBackend
from flet_pdf_annotator.errors import SaveError
from flet_pdf_annotator.save import SavePipeline, flip_point, flip_rect
from flet_pdf_annotator.types import Annotation, AnnotationKind, SaveConfig

from .conftest import FakeWriter

BEH = "\u0628"

YELLOW = 0xFFFFFF00
BLUE = 0xFF0000FF
BLACK = 0xFF000000


def highlight(x=10, y=100, w=50, h=20, page=0):
    return Annotation(page, AnnotationKind.HIGHLIGHT, x, y, w, h, color=YELLOW)


def run(annotations, writer=None, heights=(800.0,)):
    writer = writer or FakeWriter()
    pipeline = SavePipeline(lambda data: writer)
    result = pipeline.save(b"%PDF-original", heights, annotations)
    return result, writer


def test_flip_helpers():
    assert flip_rect(highlight(), 800) == 680
    assert flip_point((5, 30), 800) == (5, 770)


def test_nothing_to_save_returns_input_unchanged():
    opened = []
    pipeline = SavePipeline(lambda data: opened.append(data))
    assert pipeline.save(b"%PDF-original", [800.0], []) == b"%PDF-original"
    assert opened == []


def test_highlight_fills_flipped_rect():
    result, writer = run([highlight()])
    assert result == b"%PDF-annotated"
    assert writer.ops == [("fill", 0, (10, 680, 50, 20), (1.0, 1.0, 0.0), 0.5)]
    assert writer.closed


def test_underline_strokes_bottom_edge():
    underline = Annotation(0, AnnotationKind.UNDERLINE, 10, 100, 50, 4, color=BLUE)
    _, writer = run([underline])
    assert writer.ops == [("line", 0, (10, 696), (60, 696), (0.0, 0.0, 1.0), 1.5)]


def test_stroke_points_are_flipped():
    stroke = Annotation(
        0, AnnotationKind.STROKE, 0, 0, 10, 20, color=BLACK, points=((0, 0), (10, 20))
    )
    _, writer = run([stroke])
    assert writer.ops == [("polyline", 0, [(0, 800), (10, 780)], (0.0, 0.0, 0.0), 2.0)]


def test_text_drawn_at_flipped_baseline():
    note = Annotation(0, AnnotationKind.TEXT, 30, 40, 200, 50, text="Hi", color=BLACK)
    _, writer = run([note])
    assert writer.ops == [("text", 0, (30, 760), "Hi", FontRole.DEFAULT, 14.0)]


def test_mixed_script_runs_advance_origin():
    note = Annotation(0, AnnotationKind.TEXT, 0, 0, 200, 50, text="ab " + BEH + BEH)
    _, writer = run([note])
    roles = [op[4] for op in writer.ops]
    assert FontRole.RTL in roles and FontRole.DEFAULT in roles
    # Each run starts where the previous one ended
    first, second = writer.ops[0], writer.ops[1]
    assert second[2][0] == first[2][0] + 7.0 * len(first[3])


def test_font_failure_retries_with_other_font():
    note = Annotation(0, AnnotationKind.TEXT, 0, 0, 200, 50, text=BEH + BEH)
    writer = FakeWriter(failing_roles=[FontRole.RTL])
    _, writer = run([note], writer)
    assert [op[4] for op in writer.ops] == [FontRole.DEFAULT]


def test_text_skipped_when_no_font_can_render_it():
    note = Annotation(0, AnnotationKind.TEXT, 0, 0, 200, 50, text="Hi")
    writer = FakeWriter(failing_roles=[FontRole.RTL, FontRole.DEFAULT])
    result, writer = run([note, highlight()], writer)
    assert result == b"%PDF-annotated"
    assert [op[0] for op in writer.ops] == ["fill"]


def test_annotations_on_missing_pages_are_skipped():
    _, writer = run([highlight(page=3), highlight()])
    assert len(writer.ops) == 1


def test_annotations_drawn_in_order():
    first = highlight(x=1)
    second = Annotation(0, AnnotationKind.UNDERLINE, 2, 2, 2, 2, color=BLUE)
    _, writer = run([first, second])
    assert [op[0] for op in writer.ops] == ["fill", "line"]


def test_load_failure_raises_save_error():
    def broken(data):
        raise RuntimeError("not a pdf")

    with pytest.raises(SaveError):
        SavePipeline(broken).save(b"junk", [800.0], [highlight()])


def test_write_failure_raises_save_error():
    writer = FakeWriter(fail_on_write=True)
    with pytest.raises(SaveError):
        run([highlight()], writer)
    assert writer.closed


def test_custom_styling():
    writer = FakeWriter()
    pipeline = SavePipeline(lambda data: writer, SaveConfig(highlight_opacity=0.25))
    pipeline.save(b"x", [800.0], [highlight()])
    assert writer.ops[0][4] == 0.25


def test_burns_highlight_into_real_document(hello_pdf):
    backend = PyMuPDFBackend(hello_pdf)
    pipeline = SavePipeline(backend.open_writer)
    heights = [backend.page_info(0).height]

    result = pipeline.save(backend.data, heights, [highlight(x=72, y=100, w=50, h=20)])

    doc = pymupdf.open(stream=result, filetype="pdf")
    try:
        fills = [d for d in doc[0].get_drawings() if d.get("fill") is not None]
        assert len(fills) == 1
        assert tuple(fills[0]["rect"]) == pytest.approx((72, 100, 122, 120), abs=0.01)
        assert fills[0]["fill"] == pytest.approx((1.0, 1.0, 0.0))
    finally:
        doc.close()
    # The interactive copy is left alone
    assert backend.data == hello_pdf


def test_burns_text_into_real_document(hello_pdf):
    backend = PyMuPDFBackend(hello_pdf)
    note = Annotation(0, AnnotationKind.TEXT, 100, 300, 200, 50, text="Reviewed")
    result = SavePipeline(backend.open_writer).save(
        backend.data, [backend.page_info(0).height], [note]
    )

    doc = pymupdf.open(stream=result, filetype="pdf")
    try:
        words = doc[0].get_text("words")
        placed = [w for w in words if w[4] == "Reviewed"]
        assert placed
        x0, y0, x1, y1 = placed[0][:4]
        assert x0 == pytest.approx(100, abs=1)
        assert y0 < 300 <= y1 + 1
    finally:
        doc.close()


def test_single_point_stroke_is_kept():
    dot = Annotation(0, AnnotationKind.STROKE, 5, 5, 0, 0, color=BLACK, points=((5, 5),))
    _, writer = run([dot])
    assert writer.ops == [("polyline", 0, [(5, 795)], (0.0, 0.0, 0.0), 2.0)]
