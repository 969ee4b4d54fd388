"""HTML rendering of a receipt draw program and the headless-browser backend.

The page is one inline SVG with the same coordinates as the draw program, so
the browser output matches the other backends while Chromium's text stack
shapes the Devanagari.
"""

from __future__ import annotations

import base64
import io
import logging
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape
from PIL import Image

from ashram.services.browser_pool import BrowserPool
from ashram.services.draw_program import DrawProgram, Ellipse, ImageBox, Line, Rect, TextRun
from ashram.services.receipt_renderers import ITALIC_SKEW_DEGREES
from ashram.services.resources import ReceiptFonts

logger = logging.getLogger(__name__)

TEMPLATE_PATH = Path(__file__).parent.parent / "templates" / "receipts"
env = Environment(loader=FileSystemLoader(TEMPLATE_PATH), autoescape=select_autoescape(["html", "html.j2"]))

FONT_FAMILY = "ReceiptSans"
_ANCHORS = {"left": "start", "center": "middle", "right": "end"}
_FONTS_READY_SCRIPT = "async () => { await document.fonts.ready; return document.fonts.status; }"


def _dash(values: tuple[float, ...] | None) -> str | None:
    return " ".join(f"{value:g}" for value in values) if values else None


def _image_mime(data: bytes) -> str:
    with Image.open(io.BytesIO(data)) as image:
        return Image.MIME.get(image.format or "", "image/png")


def _svg_op(op: Any) -> dict[str, Any]:
    if isinstance(op, TextRun):
        return {
            "kind": "text",
            "x": op.x,
            "y": op.y,
            "text": op.text,
            "size": op.size,
            "fill": op.color,
            "anchor": _ANCHORS.get(op.align, "start"),
            "weight": 700 if op.font == "bold" else 400,
            "css_class": op.font if op.font in ("mono", "italic") else None,
            "skew": -ITALIC_SKEW_DEGREES if op.font == "italic" else None,
        }
    if isinstance(op, Rect):
        return {
            "kind": "rect",
            "x": op.x,
            "y": op.y,
            "width": op.width,
            "height": op.height,
            "radius": op.radius,
            "fill": op.fill or "none",
            "stroke": op.stroke or "none",
            "stroke_width": op.stroke_width,
            "dash": _dash(op.dash),
        }
    if isinstance(op, Line):
        return {
            "kind": "line",
            "x1": op.x1,
            "y1": op.y1,
            "x2": op.x2,
            "y2": op.y2,
            "stroke": op.color,
            "stroke_width": op.width,
            "dash": _dash(op.dash),
        }
    if isinstance(op, Ellipse):
        return {
            "kind": "ellipse",
            "cx": op.cx,
            "cy": op.cy,
            "rx": op.rx,
            "ry": op.ry,
            "fill": op.fill or "none",
            "stroke": op.stroke or "none",
            "stroke_width": op.stroke_width,
        }
    if isinstance(op, ImageBox):
        encoded = base64.b64encode(op.data).decode("ascii")
        return {
            "kind": "image",
            "x": op.x,
            "y": op.y,
            "width": op.width,
            "height": op.height,
            "href": f"data:{_image_mime(op.data)};base64,{encoded}",
        }
    raise TypeError(f"Unsupported draw op: {type(op).__name__}")


def _font_face(data: bytes | None, weight: int) -> dict[str, Any] | None:
    if not data:
        return None
    return {"weight": weight, "src": base64.b64encode(data).decode("ascii")}


def render_receipt_html(program: DrawProgram, fonts: ReceiptFonts) -> str:
    """Standalone HTML page for the receipt, fonts and logos inlined."""
    faces = [face for face in (_font_face(fonts.regular, 400), _font_face(fonts.bold, 700)) if face]
    return env.get_template("receipt.html.j2").render(
        title=program.title,
        width=program.width,
        height=program.height,
        font_family=FONT_FAMILY,
        font_faces=faces,
        ops=[_svg_op(op) for op in program.ops],
    )


class BrowserRenderer:
    """Chromium via Playwright, printed to an A4 PDF once web fonts have loaded."""

    name = "browser"

    def __init__(self, fonts: ReceiptFonts, *, pool: BrowserPool | None = None) -> None:
        self.fonts = fonts
        self.pool = pool

    async def render(self, program: DrawProgram) -> bytes:
        if self.pool is None:
            raise RuntimeError("browser backend requires a browser pool")
        html = render_receipt_html(program, self.fonts)
        async with self.pool.page() as page:
            await page.set_content(html, wait_until="load")
            status = await page.evaluate(_FONTS_READY_SCRIPT)
            if status != "loaded":
                logger.warning("browser_fonts_not_ready", extra={"status": status})
            return await page.pdf(
                width=f"{program.width / 72:.4f}in",
                height=f"{program.height / 72:.4f}in",
                print_background=True,
                margin={"top": "0", "right": "0", "bottom": "0", "left": "0"},
            )
