import pytest

from ashram.services.draw_program import DrawProgram, Ellipse, ImageBox, Line, Rect, TextRun
from ashram.services.receipt_renderers import (
    RasterRenderer,
    UnknownBackendError,
    VectorRenderer,
    _dash_points,
    _VectorFace,
    build_renderer,
)
from ashram.services.receipts import prepare_receipt
from ashram.services.resources import ReceiptFonts


def _sample_program(logo: bytes) -> DrawProgram:
    program = DrawProgram(title="Receipt #T-1")
    program.add(Rect("card", 40, 40, 200, 80, fill="#fff7ed", stroke="#ea580c", radius=4))
    program.add(Rect("card", 50, 50, 180, 60, fill="#ffffff", stroke="#c88a3c", dash=(4.0, 3.0)))
    program.add(Line("card", 40, 140, 300, 140, color="#ea580c", width=1.5))
    program.add(Line("card", 40, 150, 300, 150, dash=(2.0, 2.0)))
    program.add(Ellipse("card", 60, 180, 5, 5, stroke="#111827"))
    program.add(TextRun("card", 60, 200, "Receipt T-1", 12, "bold", "#ea580c", "left"))
    program.add(TextRun("card", 200, 220, "रु 5,000", 10, "regular", align="center"))
    program.add(TextRun("card", 300, 240, '"quoted note"', 8, "italic", align="right"))
    program.add(TextRun("card", 60, 260, "DNR-0042", 7.5, "mono"))
    program.add(ImageBox("logo", 400, 40, 56, 56, logo))
    return program


@pytest.mark.anyio
async def test_vector_renderer_writes_pdf(make_png) -> None:
    pdf = await VectorRenderer(ReceiptFonts()).render(_sample_program(make_png()))
    assert pdf.startswith(b"%PDF")
    assert pdf.rstrip().endswith(b"%%EOF")


@pytest.mark.anyio
async def test_raster_renderer_writes_pdf(make_png) -> None:
    pdf = await RasterRenderer(ReceiptFonts(), dpi=72).render(_sample_program(make_png()))
    assert pdf.startswith(b"%PDF")


def test_raster_image_matches_page_size_and_paints_fills(make_png) -> None:
    renderer = RasterRenderer(ReceiptFonts(), dpi=144)
    program = _sample_program(make_png("#1d4ed8"))
    image = renderer.render_image(program)

    assert image.size == (round(program.width * 2), round(program.height * 2))
    assert image.getpixel((5, 5)) == (255, 255, 255)
    # Centre of the logo box.
    assert image.getpixel((round(428 * 2), round(68 * 2))) == (29, 78, 216)


def test_full_receipt_renders_on_both_local_backends(receipt_fields: dict, logo_provider) -> None:
    prepared = prepare_receipt(receipt_fields, provider=logo_provider)
    fonts = prepared.resources.fonts

    vector = VectorRenderer(fonts).render_sync(prepared.program)
    raster = RasterRenderer(fonts, dpi=72).render_sync(prepared.program)
    assert vector.startswith(b"%PDF") and len(vector) > 1000
    assert raster.startswith(b"%PDF") and len(raster) > 1000


def test_vector_face_splits_uncovered_characters() -> None:
    face = _VectorFace("ReceiptSans-x", frozenset(map(ord, "Rs.")), "Helvetica")
    assert face.segments("Rs. क") == [("ReceiptSans-x", "Rs. "), ("Helvetica", "?")]


def test_vector_face_without_coverage_keeps_latin_text() -> None:
    face = _VectorFace("Helvetica", None, "Helvetica")
    assert face.segments("Donor ñ") == [("Helvetica", "Donor ñ")]


def test_dash_points_cover_the_segment() -> None:
    dashes = _dash_points((0, 0), (10, 0), [3, 2])
    assert dashes == [(0, 0, 3, 0), (5, 0, 8, 0)]
    assert _dash_points((1, 1), (1, 1), [3, 2]) == [(1, 1, 1, 1)]


def test_build_renderer_by_name() -> None:
    fonts = ReceiptFonts()
    assert build_renderer("vector", fonts).name == "vector"
    assert build_renderer(" Raster ", fonts).name == "raster"
    assert build_renderer("browser", fonts).name == "browser"
    with pytest.raises(UnknownBackendError):
        build_renderer("latex", fonts)
