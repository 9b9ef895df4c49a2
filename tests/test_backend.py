import io

import pymupdf
import pytest

from flet_pdf_annotator.backends import FontRole, PyMuPDFBackend
from flet_pdf_annotator.backends.fonts import BUILTIN_FONT, missing_glyphs, resolve_font
from flet_pdf_annotator.errors import LoadError


def test_rejects_empty_bytes():
    with pytest.raises(LoadError):
        PyMuPDFBackend(b"")


def test_rejects_garbage():
    with pytest.raises(LoadError):
        PyMuPDFBackend(b"this is not a pdf at all")


def test_rejects_missing_file(tmp_path):
    with pytest.raises(LoadError):
        PyMuPDFBackend(tmp_path / "missing.pdf")


def test_rejects_unsupported_source():
    with pytest.raises(TypeError):
        PyMuPDFBackend(12345)


def test_opens_from_path_bytes_and_stream(tmp_path, two_page_pdf):
    path = tmp_path / "doc.pdf"
    path.write_bytes(two_page_pdf)

    from_path = PyMuPDFBackend(str(path))
    assert from_path.path == path
    assert from_path.page_count == 2

    assert PyMuPDFBackend(two_page_pdf).path is None
    assert PyMuPDFBackend(io.BytesIO(two_page_pdf)).page_count == 2


def test_page_info(two_page_pdf):
    backend = PyMuPDFBackend(two_page_pdf)
    info = backend.page_info(1)
    assert (info.width, info.height) == (300, 400)
    with pytest.raises(IndexError):
        backend.page_info(5)


def test_extracts_one_list_per_line(hello_pdf):
    backend = PyMuPDFBackend(hello_pdf)
    extractor = backend.open_text_extractor()
    try:
        lines = extractor.extract_lines(0)
    finally:
        extractor.close()

    texts = ["".join(g.char for g in line) for line in lines]
    assert texts == ["Hello world", "Second line here"]

    h = lines[0][0]
    assert h.x == pytest.approx(72, abs=1)
    # Baseline sits near the insertion point and the box grows upward
    assert h.y == pytest.approx(100, abs=4)
    assert h.height > 0
    assert h.box[1] < h.box[3]


def test_extract_out_of_range_page(hello_pdf):
    extractor = PyMuPDFBackend(hello_pdf).open_text_extractor()
    with pytest.raises(IndexError):
        extractor.extract_lines(3)
    extractor.close()


def test_rasterize_scales_bitmap(two_page_pdf):
    rasterizer = PyMuPDFBackend(two_page_pdf).open_rasterizer()
    try:
        bitmap = rasterizer.rasterize(0, 1.5)
    finally:
        rasterizer.close()
    assert (bitmap.width, bitmap.height) == (450, 600)
    assert bitmap.scale == 1.5
    assert bitmap.png.startswith(b"\x89PNG")
    assert bitmap.byte_size == len(bitmap.png)


def test_handles_are_independent(two_page_pdf):
    backend = PyMuPDFBackend(two_page_pdf)
    extractor = backend.open_text_extractor()
    rasterizer = backend.open_rasterizer()
    extractor.close()
    # Closing one handle leaves the other usable
    assert rasterizer.rasterize(1, 1.0).width == 300
    rasterizer.close()


def test_writer_draws_in_pdf_space(two_page_pdf):
    backend = PyMuPDFBackend(two_page_pdf)
    with backend.open_writer() as writer:
        writer.fill_rect(1, (10, 300, 40, 20), (1, 0, 0), opacity=0.5)
        writer.stroke_line(1, (10, 50), (110, 50), (0, 0, 1), 1.5)
        writer.stroke_polyline(1, [], (0, 0, 0), 2)  # nothing to draw
        data = writer.to_bytes()

    doc = pymupdf.open(stream=data, filetype="pdf")
    try:
        drawings = doc[1].get_drawings()
        assert len(drawings) == 2
        fill = next(d for d in drawings if d.get("fill") is not None)
        # PDF y=300..320 is top-left y=80..100 on a 400pt page
        assert tuple(fill["rect"]) == pytest.approx((10, 80, 50, 100), abs=0.01)
        assert fill["fill_opacity"] == pytest.approx(0.5)
        assert doc[0].get_drawings() == []
    finally:
        doc.close()


def test_show_text_returns_next_origin(two_page_pdf):
    backend = PyMuPDFBackend(two_page_pdf)
    with backend.open_writer() as writer:
        x, y = writer.show_text(0, (20, 100), "Note", FontRole.DEFAULT, 14, (0, 0, 0))
        assert x > 20
        assert y == pytest.approx(100)


def test_writer_copy_does_not_touch_backend(two_page_pdf):
    backend = PyMuPDFBackend(two_page_pdf)
    with backend.open_writer() as writer:
        writer.fill_rect(0, (0, 0, 10, 10), (0, 0, 0))
        writer.to_bytes()
    assert backend.data == two_page_pdf


def test_font_falls_back_to_builtin(tmp_path):
    font = resolve_font(tmp_path / "none.ttf", [tmp_path / "also-none.ttf"])
    assert font.name == pymupdf.Font(BUILTIN_FONT).name


def test_missing_glyphs_ignores_whitespace():
    font = pymupdf.Font(BUILTIN_FONT)
    assert missing_glyphs(font, "Hello there") == ""


def test_single_point_stroke_is_saved_as_dot(two_page_pdf):
    backend = PyMuPDFBackend(two_page_pdf)
    with backend.open_writer() as writer:
        writer.stroke_polyline(0, [(50, 350)], (0, 0, 0), 2)
        data = writer.to_bytes()

    doc = pymupdf.open(stream=data, filetype="pdf")
    try:
        (dot,) = doc[0].get_drawings()
        assert dot["fill"] == pytest.approx((0.0, 0.0, 0.0))
        # PDF y=350 is top-left y=50; the dot is 2pt across
        assert tuple(dot["rect"]) == pytest.approx((49, 49, 51, 51), abs=0.05)
    finally:
        doc.close()
