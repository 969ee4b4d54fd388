from __future__ import annotations

import asyncio
import hashlib
import io
import logging
import math
from dataclasses import dataclass
from threading import Lock
from typing import TYPE_CHECKING, Protocol, Sequence, cast

from PIL import Image, ImageDraw, ImageFont, ImageOps
from reportlab.lib.colors import HexColor
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from ashram.core.config import settings
from ashram.services.draw_program import DrawOp, DrawProgram, Ellipse, ImageBox, Line, Rect, TextRun
from ashram.services.font_utils import load_font
from ashram.services.resources import ReceiptFonts

if TYPE_CHECKING:
    from ashram.services.browser_pool import BrowserPool

logger = logging.getLogger(__name__)

RasterFont = ImageFont.ImageFont | ImageFont.FreeTypeFont

ITALIC_SKEW_DEGREES = 12.0
SYNTHETIC_BOLD_STROKE = 0.035
RASTER_DPI = 150

_LATIN_REGULAR = "Helvetica"
_LATIN_BOLD = "Helvetica-Bold"
_MONO = "Courier"

_REGISTERED_FONTS: dict[str, frozenset[int]] = {}
_REGISTER_LOCK = Lock()


class Renderer(Protocol):
    name: str

    async def render(self, program: DrawProgram) -> bytes: ...


class UnknownBackendError(ValueError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown render backend: {name}")
        self.name = name


# vector


def _register_ttf(prefix: str, data: bytes | None) -> tuple[str, frozenset[int]] | None:
    """Register font bytes with reportlab once, under a name derived from their content."""
    if not data:
        return None
    name = f"{prefix}-{hashlib.sha1(data).hexdigest()[:10]}"
    with _REGISTER_LOCK:
        if name in _REGISTERED_FONTS:
            return name, _REGISTERED_FONTS[name]
        try:
            font = TTFont(name, io.BytesIO(data))
            pdfmetrics.registerFont(font)
        except Exception as exc:
            logger.warning("reportlab_font_register_failed", extra={"font": name, "error": str(exc)})
            return None
        coverage = frozenset(font.face.charToGlyph)
        _REGISTERED_FONTS[name] = coverage
        return name, coverage


@dataclass(frozen=True)
class _VectorFace:
    name: str
    coverage: frozenset[int] | None
    fallback: str
    synthetic_bold: bool = False

    def segments(self, text: str) -> list[tuple[str, str]]:
        """Split text into runs of (font name, text); glyphs the face lacks use the Latin fallback."""
        if self.coverage is None:
            return [(self.name, _latin_safe(text))]
        pieces: list[tuple[str, str]] = []
        for char in text:
            font = self.name if ord(char) in self.coverage or char.isspace() else self.fallback
            piece = char if font == self.name else _latin_safe(char)
            if pieces and pieces[-1][0] == font:
                pieces[-1] = (font, pieces[-1][1] + piece)
            else:
                pieces.append((font, piece))
        return pieces


def _latin_safe(text: str) -> str:
    return text.encode("cp1252", "replace").decode("cp1252")


@dataclass(frozen=True)
class _VectorFaces:
    regular: _VectorFace
    bold: _VectorFace
    mono: _VectorFace

    def for_run(self, run: TextRun) -> _VectorFace:
        if run.font == "bold":
            return self.bold
        if run.font == "mono" and run.text.isascii():
            return self.mono
        return self.regular


def _vector_faces(fonts: ReceiptFonts) -> _VectorFaces:
    regular = _register_ttf("ReceiptSans", fonts.regular)
    bold = _register_ttf("ReceiptSansBold", fonts.bold) if fonts.bold and fonts.bold != fonts.regular else None
    mono = _VectorFace(_MONO, None, _MONO)
    if regular is None:
        return _VectorFaces(_VectorFace(_LATIN_REGULAR, None, _LATIN_REGULAR), _VectorFace(_LATIN_BOLD, None, _LATIN_BOLD), mono)
    regular_face = _VectorFace(regular[0], regular[1], _LATIN_REGULAR)
    if bold is None:
        bold_face = _VectorFace(regular[0], regular[1], _LATIN_BOLD, synthetic_bold=True)
    else:
        bold_face = _VectorFace(bold[0], bold[1], _LATIN_BOLD)
    return _VectorFaces(regular_face, bold_face, mono)


class VectorRenderer:
    """reportlab canvas: selectable text with embedded font subsets.

    reportlab places one glyph per character and does no complex-script
    shaping, so Devanagari conjuncts and reordered vowel signs are drawn
    unshaped. Use the browser backend when exact shaping matters.
    """

    name = "vector"

    def __init__(self, fonts: ReceiptFonts) -> None:
        self.fonts = fonts

    async def render(self, program: DrawProgram) -> bytes:
        return await asyncio.to_thread(self.render_sync, program)

    def render_sync(self, program: DrawProgram) -> bytes:
        faces = _vector_faces(self.fonts)
        buf = io.BytesIO()
        pdf = canvas.Canvas(buf, pagesize=(program.width, program.height), pageCompression=1)
        pdf.setTitle(program.title)
        pdf.setCreator(settings.app_name)
        for op in program.ops:
            self._draw(pdf, op, faces, program.height)
        pdf.showPage()
        pdf.save()
        return buf.getvalue()

    def _draw(self, pdf: canvas.Canvas, op: DrawOp, faces: _VectorFaces, page_h: float) -> None:
        if isinstance(op, TextRun):
            self._text(pdf, op, faces, page_h)
        elif isinstance(op, Rect):
            self._rect(pdf, op, page_h)
        elif isinstance(op, Line):
            pdf.saveState()
            pdf.setStrokeColor(HexColor(op.color))
            pdf.setLineWidth(op.width)
            if op.dash:
                pdf.setDash(list(op.dash))
            pdf.line(op.x1, page_h - op.y1, op.x2, page_h - op.y2)
            pdf.restoreState()
        elif isinstance(op, Ellipse):
            pdf.saveState()
            self._paint(pdf, op.fill, op.stroke, op.stroke_width)
            pdf.ellipse(
                op.cx - op.rx, page_h - op.cy - op.ry, op.cx + op.rx, page_h - op.cy + op.ry,
                stroke=int(op.stroke is not None), fill=int(op.fill is not None),
            )
            pdf.restoreState()
        elif isinstance(op, ImageBox):
            pdf.drawImage(
                ImageReader(io.BytesIO(op.data)),
                op.x,
                page_h - op.y - op.height,
                width=op.width,
                height=op.height,
                preserveAspectRatio=True,
                anchor="c",
                mask="auto",
            )

    @staticmethod
    def _paint(pdf: canvas.Canvas, fill: str | None, stroke: str | None, width: float) -> None:
        if fill:
            pdf.setFillColor(HexColor(fill))
        if stroke:
            pdf.setStrokeColor(HexColor(stroke))
            pdf.setLineWidth(width)

    def _rect(self, pdf: canvas.Canvas, op: Rect, page_h: float) -> None:
        pdf.saveState()
        self._paint(pdf, op.fill, op.stroke, op.stroke_width)
        if op.dash:
            pdf.setDash(list(op.dash))
        stroke, fill = int(op.stroke is not None), int(op.fill is not None)
        y = page_h - op.y - op.height
        if op.radius:
            pdf.roundRect(op.x, y, op.width, op.height, op.radius, stroke=stroke, fill=fill)
        else:
            pdf.rect(op.x, y, op.width, op.height, stroke=stroke, fill=fill)
        pdf.restoreState()

    def _text(self, pdf: canvas.Canvas, run: TextRun, faces: _VectorFaces, page_h: float) -> None:
        face = faces.for_run(run)
        segments = face.segments(run.text)
        width = sum(pdfmetrics.stringWidth(text, font, run.size) for font, text in segments)
        x = run.x
        if run.align == "center":
            x -= width / 2
        elif run.align == "right":
            x -= width

        color = HexColor(run.color)
        pdf.saveState()
        pdf.translate(x, page_h - run.y)
        if run.font == "italic":
            pdf.skew(0, ITALIC_SKEW_DEGREES)
        text = pdf.beginText(0, 0)
        text.setFillColor(color)
        if face.synthetic_bold:
            pdf.setLineWidth(run.size * SYNTHETIC_BOLD_STROKE)
            text.setStrokeColor(color)
            text.setTextRenderMode(2)
        for font, piece in segments:
            text.setFont(font, run.size)
            text.textOut(piece)
        pdf.drawText(text)
        pdf.restoreState()


# raster


def _dash_points(start: tuple[float, float], end: tuple[float, float], pattern: Sequence[float]) -> list[tuple[float, float, float, float]]:
    (x1, y1), (x2, y2) = start, end
    length = math.hypot(x2 - x1, y2 - y1)
    if length == 0 or not pattern:
        return [(x1, y1, x2, y2)]
    ux, uy = (x2 - x1) / length, (y2 - y1) / length
    dashes: list[tuple[float, float, float, float]] = []
    position, index = 0.0, 0
    while position < length:
        step = pattern[index % len(pattern)]
        if index % 2 == 0:
            stop = min(position + step, length)
            dashes.append((x1 + ux * position, y1 + uy * position, x1 + ux * stop, y1 + uy * stop))
        position += step
        index += 1
    return dashes


class RasterRenderer:
    """Pillow canvas at 150 dpi, saved as a single-image PDF.

    Text is not selectable. Devanagari is shaped when Pillow is built with
    libraqm.
    """

    name = "raster"

    def __init__(self, fonts: ReceiptFonts, *, dpi: int = RASTER_DPI) -> None:
        self.fonts = fonts
        self.dpi = dpi
        self.scale = dpi / 72.0
        self._font_cache: dict[tuple[str, int], RasterFont] = {}

    async def render(self, program: DrawProgram) -> bytes:
        return await asyncio.to_thread(self.render_sync, program)

    def render_image(self, program: DrawProgram) -> Image.Image:
        size = (round(program.width * self.scale), round(program.height * self.scale))
        img = Image.new("RGB", size, (255, 255, 255))
        draw = ImageDraw.Draw(img)
        for op in program.ops:
            if isinstance(op, TextRun):
                self._text(img, draw, op)
            elif isinstance(op, Rect):
                self._rect(draw, op)
            elif isinstance(op, Line):
                self._line(draw, op)
            elif isinstance(op, Ellipse):
                box = self._box(op.cx - op.rx, op.cy - op.ry, op.cx + op.rx, op.cy + op.ry)
                draw.ellipse(box, fill=op.fill, outline=op.stroke, width=self._px(op.stroke_width))
            elif isinstance(op, ImageBox):
                self._image(img, op)
        return img

    def render_sync(self, program: DrawProgram) -> bytes:
        img = self.render_image(program)
        buf = io.BytesIO()
        img.save(buf, format="PDF", resolution=float(self.dpi), title=program.title)
        return buf.getvalue()

    def _px(self, value: float) -> int:
        return max(1, round(value * self.scale))

    def _box(self, x0: float, y0: float, x1: float, y1: float) -> tuple[int, int, int, int]:
        s = self.scale
        return round(x0 * s), round(y0 * s), round(x1 * s), round(y1 * s)

    def _font(self, run: TextRun) -> RasterFont:
        px = max(1, round(run.size * self.scale))
        key = (run.font, px)
        if key not in self._font_cache:
            if run.font == "mono" and run.text.isascii():
                font = load_font(px, mono=True)
            elif run.font == "bold":
                font = load_font(px, bold=True, data=self.fonts.data(bold=True))
            else:
                font = load_font(px, data=self.fonts.regular)
            self._font_cache[key] = cast(RasterFont, font)
        return self._font_cache[key]

    def _text(self, img: Image.Image, draw: ImageDraw.ImageDraw, run: TextRun) -> None:
        font = self._font(run)
        stroke = self._px(run.size * SYNTHETIC_BOLD_STROKE) if run.bold and self.fonts.synthetic_bold else 0
        x, y = run.x * self.scale, run.y * self.scale
        if not isinstance(font, ImageFont.FreeTypeFont):
            # Bitmap fonts have no anchors: place by the top edge instead of the baseline.
            width = draw.textlength(run.text, font=font)
            offset = {"center": width / 2, "right": width}.get(run.align, 0)
            draw.text((x - offset, y - run.size * self.scale), run.text, fill=run.color, font=font)
            return
        anchor = {"center": "ms", "right": "rs"}.get(run.align, "ls")
        if run.font != "italic":
            draw.text((x, y), run.text, fill=run.color, font=font, anchor=anchor, stroke_width=stroke, stroke_fill=run.color)
            return
        self._italic(img, run, font, x, y, anchor)

    def _italic(self, img: Image.Image, run: TextRun, font: ImageFont.FreeTypeFont, x: float, y: float, anchor: str) -> None:
        left, top, right, bottom = font.getbbox(run.text, anchor=anchor)
        slant = math.tan(math.radians(ITALIC_SKEW_DEGREES))
        lean = math.ceil(slant * max(0, -top)) + 2
        width, height = right - left + 2 * lean, bottom - top + 4
        mask = Image.new("L", (width, height), 0)
        origin = (lean - left, 2 - top)
        ImageDraw.Draw(mask).text(origin, run.text, fill=255, font=font, anchor=anchor)
        # Rows above the baseline shift right in proportion to their height.
        sheared = mask.transform(
            mask.size, Image.Transform.AFFINE, (1, slant, -slant * origin[1], 0, 1, 0), resample=Image.Resampling.BILINEAR
        )
        img.paste(run.color, (round(x - origin[0]), round(y - origin[1])), sheared)

    def _rect(self, draw: ImageDraw.ImageDraw, op: Rect) -> None:
        box = self._box(op.x, op.y, op.x + op.width, op.y + op.height)
        width = self._px(op.stroke_width)
        radius = round(op.radius * self.scale)
        outline = None if op.dash else op.stroke
        if op.fill or outline:
            draw.rounded_rectangle(box, radius=radius, fill=op.fill, outline=outline, width=width)
        if op.dash and op.stroke:
            x0, y0, x1, y1 = box
            pattern = [value * self.scale for value in op.dash]
            for start, end in (((x0, y0), (x1, y0)), ((x1, y0), (x1, y1)), ((x1, y1), (x0, y1)), ((x0, y1), (x0, y0))):
                for segment in _dash_points(start, end, pattern):
                    draw.line(segment, fill=op.stroke, width=width)

    def _line(self, draw: ImageDraw.ImageDraw, op: Line) -> None:
        start = (op.x1 * self.scale, op.y1 * self.scale)
        end = (op.x2 * self.scale, op.y2 * self.scale)
        width = self._px(op.width)
        if not op.dash:
            draw.line((start, end), fill=op.color, width=width)
            return
        for segment in _dash_points(start, end, [value * self.scale for value in op.dash]):
            draw.line(segment, fill=op.color, width=width)

    def _image(self, img: Image.Image, op: ImageBox) -> None:
        box = self._box(op.x, op.y, op.x + op.width, op.y + op.height)
        target = (box[2] - box[0], box[3] - box[1])
        with Image.open(io.BytesIO(op.data)) as source:
            logo = ImageOps.contain(source.convert("RGBA"), target)
        offset = (box[0] + (target[0] - logo.width) // 2, box[1] + (target[1] - logo.height) // 2)
        img.paste(logo, offset, logo)


# registry

RENDERER_NAMES: tuple[str, ...] = ("vector", "raster", "browser")


def build_renderer(name: str, fonts: ReceiptFonts, *, browser_pool: BrowserPool | None = None) -> Renderer:
    normalized = (name or "").strip().lower()
    if normalized == "vector":
        return VectorRenderer(fonts)
    if normalized == "raster":
        return RasterRenderer(fonts)
    if normalized == "browser":
        from ashram.services.receipt_html import BrowserRenderer

        return BrowserRenderer(fonts, pool=browser_pool)
    raise UnknownBackendError(name)
