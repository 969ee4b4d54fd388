from __future__ import annotations

import io
import logging
from functools import lru_cache
from typing import TypeAlias

from PIL import Image, ImageDraw, ImageFont, features

logger = logging.getLogger(__name__)

Font: TypeAlias = ImageFont.FreeTypeFont | ImageFont.ImageFont

# A consonant plus a spacing vowel sign; both need real glyphs with advance width.
DEVANAGARI_PROBES = ("क", "ि")
_MISSING_GLYPH_PROBE = "\ue000"
_MEASURE_SIZE = 100

_SYSTEM_FALLBACKS = {
    False: (
        "/usr/share/fonts/truetype/noto/NotoSansDevanagari-Regular.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    ),
    True: (
        "/usr/share/fonts/truetype/noto/NotoSansDevanagari-Bold.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    ),
}

_SYSTEM_MONO = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationMono-Regular.ttf",
)


@lru_cache(maxsize=1)
def layout_engine() -> ImageFont.Layout:
    """Raqm shapes Devanagari conjuncts correctly; the basic engine places glyphs one by one."""
    if features.check_feature("raqm"):
        return ImageFont.Layout.RAQM
    logger.info("pillow_raqm_unavailable")
    return ImageFont.Layout.BASIC


def font_from_bytes(data: bytes, size: float) -> ImageFont.FreeTypeFont:
    return ImageFont.truetype(io.BytesIO(data), size=size, layout_engine=layout_engine())


def load_font(size: int, *, bold: bool = False, data: bytes | None = None, mono: bool = False) -> Font:
    if mono:
        for path in _SYSTEM_MONO:
            try:
                return ImageFont.truetype(path, size=size, layout_engine=layout_engine())
            except OSError:
                continue
    if data:
        try:
            return font_from_bytes(data, size)
        except OSError as exc:
            logger.warning("font_bytes_unreadable", extra={"error": str(exc)})
    for path in _SYSTEM_FALLBACKS[bold]:
        try:
            return ImageFont.truetype(path, size=size, layout_engine=layout_engine())
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _glyph_pixels(font: ImageFont.FreeTypeFont, text: str) -> bytes:
    canvas = Image.new("L", (96, 96), 0)
    ImageDraw.Draw(canvas).text((16, 16), text, font=font, fill=255)
    return canvas.tobytes()


def covers_devanagari(data: bytes | None) -> bool:
    """True when the font draws real Devanagari glyphs rather than missing-glyph boxes."""
    if not data:
        return False
    try:
        font = font_from_bytes(data, 48)
    except OSError:
        return False
    missing = _glyph_pixels(font, _MISSING_GLYPH_PROBE)
    for probe in DEVANAGARI_PROBES:
        if font.getlength(probe) <= 0:
            return False
        if _glyph_pixels(font, probe) == missing:
            return False
    return True


class TextMeasurer:
    """Advance widths in points for the receipt fonts, approximated when no font bytes are available."""

    def __init__(self, regular: bytes | None, bold: bytes | None = None) -> None:
        self._data = {False: regular, True: bold or regular}
        self._fonts: dict[bool, ImageFont.FreeTypeFont | None] = {}

    def _font(self, bold: bool) -> ImageFont.FreeTypeFont | None:
        if bold not in self._fonts:
            data = self._data[bold]
            try:
                self._fonts[bold] = font_from_bytes(data, _MEASURE_SIZE) if data else None
            except OSError:
                self._fonts[bold] = None
        return self._fonts[bold]

    def width(self, text: str, size: float, *, bold: bool = False) -> float:
        if not text:
            return 0.0
        font = self._font(bold)
        if font is None:
            return len(text) * size * (0.6 if bold else 0.55)
        return font.getlength(text) * size / _MEASURE_SIZE
