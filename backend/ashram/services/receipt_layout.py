"""Single-page receipt layout.

:func:`compose_receipt` stacks the receipt regions top to bottom on an A4
page and returns a :class:`DrawProgram`. The composer only places strings
that :mod:`ashram.services.receipt_content` already formatted.

There is no pagination: a very long note pushes the later regions down and
can run past the bottom margin. That case is logged, not reflowed.
"""

from __future__ import annotations

import logging
import unicodedata
from typing import Mapping

from ashram.services import receipt_content as copy
from ashram.services.draw_program import (
    PAGE_HEIGHT,
    PAGE_WIDTH,
    Align,
    DrawProgram,
    Ellipse,
    FontRole,
    ImageBox,
    Line,
    Rect,
    TextRun,
)
from ashram.services.receipt_content import ReceiptContent
from ashram.services.resources import ReceiptFonts

logger = logging.getLogger(__name__)

MARGIN_X = 40.0
MARGIN_Y = 28.0
LEADING = 1.45
ASCENT = 0.95
LOGO_SIZE = 56.0
LOGO_GUTTER = 16.0
MONO_ADVANCE = 0.6

INK = "#111827"
BODY = "#374151"
MUTED = "#6b7280"
FAINT = "#9ca3af"
RULE = "#d1d5db"
ACCENT = "#ea580c"
ACCENT_DEEP = "#c2410c"
ACCENT_DARK = "#9a3412"
ACCENT_SOFT = "#fff7ed"
ACCENT_BORDER = "#fed7aa"
CARD_FILL = "#f9fafb"
CARD_BORDER = "#e5e7eb"
EMAIL_BLUE = "#0066cc"
PAYMENT_BLUE = "#1d4ed8"
AMOUNT_COLOR = "#b43200"
WORDS_FILL = "#f5e6d3"
WORDS_BORDER = "#c88a3c"
WORDS_TITLE = "#8b5a00"
WORDS_TEXT = "#4a3000"
WHITE = "#ffffff"


def _split_clusters(text: str) -> list[str]:
    clusters: list[str] = []
    for char in text:
        if clusters and unicodedata.category(char).startswith("M"):
            clusters[-1] += char
        else:
            clusters.append(char)
    return clusters


class _Composer:
    def __init__(self, content: ReceiptContent, fonts: ReceiptFonts, logos: Mapping[str, bytes | None]) -> None:
        self.content = content
        self.fonts = fonts
        self.logos = logos
        self.program = DrawProgram(title=content.receipt_title)
        self.left = MARGIN_X
        self.right = PAGE_WIDTH - MARGIN_X
        self.width = self.right - self.left

    # text helpers

    def measure(self, text: str, size: float, font: FontRole = "regular") -> float:
        if font == "mono" and text.isascii():
            return len(text) * size * MONO_ADVANCE
        return self.fonts.measure(text, size, bold=font == "bold")

    def _break_long(self, line: str, size: float, max_width: float, font: FontRole) -> list[str]:
        if self.measure(line, size, font) <= max_width:
            return [line]
        pieces: list[str] = []
        current = ""
        for cluster in _split_clusters(line):
            if current and self.measure(current + cluster, size, font) > max_width:
                pieces.append(current)
                current = cluster.lstrip()
            else:
                current += cluster
        if current:
            pieces.append(current)
        return pieces

    def wrap(self, text: str, size: float, max_width: float, font: FontRole = "regular") -> list[str]:
        words = text.split()
        if not words:
            return []
        lines: list[str] = []
        current = ""
        for word in words:
            candidate = f"{current} {word}" if current else word
            if not current or self.measure(candidate, size, font) <= max_width:
                current = candidate
                continue
            lines.append(current)
            current = word
        lines.append(current)
        return [piece for line in lines for piece in self._break_long(line, size, max_width, font)]

    def fit_size(self, text: str, size: float, max_width: float, *, minimum: float, font: FontRole = "bold") -> float:
        while size > minimum and self.measure(text, size, font) > max_width:
            size -= 0.5
        return size

    def text(
        self,
        region: str,
        x: float,
        top: float,
        text: str,
        size: float,
        *,
        font: FontRole = "regular",
        color: str = INK,
        align: Align = "left",
    ) -> TextRun:
        run = TextRun(region, x, top + size * ASCENT, text, size, font, color, align)
        self.program.add(run)
        return run

    def lines(
        self,
        region: str,
        lines: list[str],
        x: float,
        top: float,
        size: float,
        *,
        font: FontRole = "regular",
        color: str = INK,
        align: Align = "left",
    ) -> float:
        for line in lines:
            self.text(region, x, top, line, size, font=font, color=color, align=align)
            top += size * LEADING
        return top

    def backdrop(self, index: int, rect: Rect) -> None:
        """Insert a box beneath ops already emitted for its content."""
        self.program.ops.insert(index, rect)

    # regions

    def registration(self, top: float) -> float:
        size = 8.0
        left_bottom = self.lines("registration", list(copy.REGISTRATION_LEFT), self.left, top, size, color=BODY)
        right_bottom = self.lines(
            "registration", list(copy.REGISTRATION_RIGHT), self.right, top, size, color=BODY, align="right"
        )
        bottom = max(left_bottom, right_bottom)
        self.program.add_region("registration", self.left, top, self.width, bottom - top)
        return bottom + 4

    def header(self, top: float) -> float:
        for slot, x in (("left", self.left), ("right", self.right - LOGO_SIZE)):
            region = f"logo_{slot}"
            self.program.add_region(region, x, top, LOGO_SIZE, LOGO_SIZE)
            data = self.logos.get(slot)
            if data:
                self.program.add(ImageBox(region, x, top, LOGO_SIZE, LOGO_SIZE, data))

        column = self.width - 2 * (LOGO_SIZE + LOGO_GUTTER)
        center = PAGE_WIDTH / 2
        y = top
        header_lines: tuple[tuple[str, float, FontRole, str], ...] = (
            (copy.SACRED_SYMBOL, 18.0, "bold", ACCENT),
            (copy.INVOCATION, 9.0, "bold", ACCENT_DEEP),
            (copy.ORG_NAME, 13.0, "bold", INK),
            (copy.ORG_SUBTITLE, 10.0, "bold", "#1f2937"),
            (copy.ORG_ADDRESS, 8.0, "regular", BODY),
            (copy.ORG_PHONE, 8.0, "regular", BODY),
            (copy.ORG_EMAIL, 8.0, "regular", EMAIL_BLUE),
        )
        for text, size, font, color in header_lines:
            wrapped = self.wrap(text, size, column, font)
            y = self.lines("header", wrapped, center, y, size, font=font, color=color, align="center")
        bottom = max(y, top + LOGO_SIZE)
        self.program.add_region("header", self.left, top, self.width, bottom - top)
        return bottom + 6

    def callout(self, top: float) -> float:
        caption_size, pad = 8.0, 9.0
        title_size = self.fit_size(self.content.receipt_title, 12.0, self.width - 32, minimum=8.0)
        inner = max(
            self.measure(self.content.receipt_title, title_size, "bold"),
            self.measure(self.content.issued_on, caption_size),
        )
        box_w = min(self.width, max(220.0, inner + 32))
        x = (PAGE_WIDTH - box_w) / 2
        index = len(self.program.ops)
        self.text(
            "receipt_callout", PAGE_WIDTH / 2, top + pad, self.content.receipt_title, title_size,
            font="bold", color=ACCENT, align="center",
        )
        y = top + pad + title_size * LEADING
        self.text("receipt_callout", PAGE_WIDTH / 2, y, self.content.issued_on, caption_size, color=ACCENT_DEEP, align="center")
        height = y + caption_size * LEADING + pad - top
        self.backdrop(index, Rect("receipt_callout", x, top, box_w, height, fill=ACCENT_SOFT, stroke=ACCENT, stroke_width=1.5, radius=6))
        self.program.add_region("receipt_callout", x, top, box_w, height)

        rule_y = top + height + 10
        self.program.add(Line("separator", self.left, rule_y, self.right, rule_y, color=ACCENT, width=1.5))
        self.program.add_region("separator", self.left, rule_y, self.width, 0)
        return rule_y + 12

    def _icon(self, region: str, kind: str, x: float, y: float, color: str) -> None:
        add = self.program.add
        if kind == "donor":
            add(Ellipse(region, x + 5, y + 2.8, 2.4, 2.4, stroke=color, stroke_width=1))
            add(Rect(region, x + 1, y + 6.5, 8, 4, stroke=color, stroke_width=1, radius=2))
        elif kind == "calendar":
            add(Rect(region, x, y + 1, 10, 9, stroke=color, stroke_width=1, radius=1))
            add(Line(region, x, y + 4, x + 10, y + 4, color=color))
            add(Line(region, x + 3, y, x + 3, y + 2, color=color))
            add(Line(region, x + 7, y, x + 7, y + 2, color=color))

    def _payment_icon(self, region: str, mode: str, x: float, y: float) -> None:
        add = self.program.add
        normalized = mode.strip().lower()
        if normalized == "online":
            # laptop
            add(Rect(region, x + 2, y + 1, 8, 6, stroke=PAYMENT_BLUE, stroke_width=1, radius=1))
            add(Line(region, x, y + 9, x + 12, y + 9, color=PAYMENT_BLUE, width=1.2))
        elif normalized == "qr payment":
            for dx, dy in ((0, 0), (7, 0), (0, 7)):
                add(Rect(region, x + dx, y + dy, 5, 5, stroke=PAYMENT_BLUE, stroke_width=1))
            add(Rect(region, x + 8, y + 8, 2.5, 2.5, fill=PAYMENT_BLUE))
        else:
            # banknote
            add(Rect(region, x, y + 2, 12, 7, stroke=PAYMENT_BLUE, stroke_width=1, radius=1))
            add(Ellipse(region, x + 6, y + 5.5, 1.8, 1.8, stroke=PAYMENT_BLUE, stroke_width=1))

    def _card(
        self,
        region: str,
        x: float,
        top: float,
        width: float,
        title: str,
        rows: list[tuple[str, str, FontRole, float]],
        *,
        fill: str,
        stroke: str,
        icon: str,
    ) -> float:
        pad, label_size = 12.0, 8.0
        index = len(self.program.ops)
        self._icon(region, icon, x + pad, top + pad, INK)
        self.text(region, x + pad + 14, top + pad, title, 10.0, font="bold")
        y = top + pad + 10.0 * LEADING + 4
        for label, value, font, size in rows:
            self.text(region, x + pad, y, label, label_size, color=MUTED)
            value_width = width - 2 * pad - self.measure(label, label_size) - 8
            color = BODY if font == "mono" else INK
            wrapped = self.wrap(value, size, value_width, font) or [value]
            value_bottom = self.lines(region, wrapped, x + width - pad, y, size, font=font, color=color, align="right")
            y = max(y + label_size * LEADING, value_bottom) + 2
        height = y - top + pad - 2
        self.backdrop(index, Rect(region, x, top, width, height, fill=fill, stroke=stroke, radius=4))
        self.program.add_region(region, x, top, width, height)
        return height

    def info_row(self, top: float) -> float:
        gap = 12.0
        column = (self.width - gap) / 2
        donor_rows: list[tuple[str, str, FontRole, float]] = [(copy.NAME_LABEL, self.content.donor_name, "bold", 9.0)]
        if self.content.donor_id:
            donor_rows.append((copy.DONOR_ID_LABEL, self.content.donor_id, "mono", 7.5))
        detail_rows: list[tuple[str, str, FontRole, float]] = [
            (copy.DONATION_DATE_LABEL, self.content.donation_date, "bold", 9.0),
            (copy.ISSUED_BY_LABEL, self.content.issued_by, "bold", 9.0),
        ]
        donor_h = self._card(
            "donor_card", self.left, top, column, copy.DONOR_CARD_TITLE, donor_rows,
            fill=CARD_FILL, stroke=CARD_BORDER, icon="donor",
        )
        details_h = self._card(
            "details_card", self.left + column + gap, top, column, copy.DETAILS_CARD_TITLE, detail_rows,
            fill=ACCENT_SOFT, stroke=ACCENT_BORDER, icon="calendar",
        )
        return top + max(donor_h, details_h) + 14

    def donation_panel(self, top: float) -> float:
        pad, gap, cell_pad, label_size = 12.0, 10.0, 8.0, 7.0
        panel_index = len(self.program.ops)
        self.text(
            "donation_panel", PAGE_WIDTH / 2, top + pad, copy.DONATION_PANEL_TITLE, 11.0,
            font="bold", color=ACCENT_DARK, align="center",
        )
        grid_top = top + pad + 11.0 * LEADING + 4
        cell_w = (self.width - 2 * pad - 2 * gap) / 3
        inner = cell_w - 2 * cell_pad
        value_top = grid_top + cell_pad + label_size * LEADING + 4

        cells_index = len(self.program.ops)
        xs = [self.left + pad + i * (cell_w + gap) for i in range(3)]
        bottoms: list[float] = []

        label_lines = self.wrap(self.content.donation_label, 10.0, inner, "bold")
        self.text("donation_type", xs[0] + cell_pad, grid_top + cell_pad, copy.DONATION_TYPE_LABEL, label_size, color=MUTED)
        bottoms.append(
            self.lines(
                "donation_type", label_lines, xs[0] + cell_w / 2, value_top, 10.0,
                font="bold", color=ACCENT_DARK, align="center",
            )
        )

        self.text("payment_mode", xs[1] + cell_pad, grid_top + cell_pad, copy.PAYMENT_MODE_LABEL, label_size, color=MUTED)
        mode_size = self.fit_size(self.content.payment_mode, 10.0, inner - 16, minimum=7.0)
        group = 16 + self.measure(self.content.payment_mode, mode_size, "bold")
        start = xs[1] + cell_w / 2 - min(group, inner) / 2
        self._payment_icon("payment_mode", self.content.payment_mode, start, value_top)
        self.text("payment_mode", start + 16, value_top, self.content.payment_mode, mode_size, font="bold", color=PAYMENT_BLUE)
        bottoms.append(value_top + mode_size * LEADING)

        self.text("amount", xs[2] + cell_pad, grid_top + cell_pad, copy.AMOUNT_LABEL, label_size, color=MUTED)
        amount_size = self.fit_size(self.content.amount, 16.0, inner, minimum=9.0)
        self.text("amount", xs[2] + cell_w / 2, value_top, self.content.amount, amount_size, font="bold", color=AMOUNT_COLOR, align="center")
        bottoms.append(value_top + amount_size * LEADING)

        cell_h = max(bottoms) + cell_pad - grid_top
        for position, (name, x) in enumerate(zip(("donation_type", "payment_mode", "amount"), xs)):
            self.backdrop(cells_index + position, Rect(name, x, grid_top, cell_w, cell_h, fill=WHITE, stroke=ACCENT_BORDER, radius=4))
            self.program.add_region(name, x, grid_top, cell_w, cell_h)
        y = grid_top + cell_h

        if self.content.notes:
            y = self.notes(y + gap, self.left + pad, self.width - 2 * pad)

        height = y + pad - top
        self.backdrop(
            panel_index,
            Rect("donation_panel", self.left, top, self.width, height, fill=ACCENT_SOFT, stroke=ACCENT_BORDER, stroke_width=2, radius=4),
        )
        self.program.add_region("donation_panel", self.left, top, self.width, height)
        return top + height + 14

    def notes(self, top: float, x: float, width: float) -> float:
        pad, size = 8.0, 8.0
        index = len(self.program.ops)
        self.text("notes", x + pad, top + pad, copy.NOTES_LABEL, 7.0, color=MUTED)
        quoted = f'"{self.content.notes}"'
        wrapped = self.wrap(quoted, size, width - 2 * pad, "italic")
        bottom = self.lines("notes", wrapped, x + pad, top + pad + 7.0 * LEADING + 2, size, font="italic", color=BODY)
        height = bottom + pad - top
        self.backdrop(index, Rect("notes", x, top, width, height, fill=WHITE, stroke=ACCENT_BORDER, radius=4))
        self.program.add_region("notes", x, top, width, height)
        return top + height

    def words_panel(self, top: float) -> float:
        pad, size = 12.0, 11.0
        index = len(self.program.ops)
        center = PAGE_WIDTH / 2
        self.text("amount_words", center, top + pad, copy.WORDS_PANEL_TITLE, 11.0, font="bold", color=WORDS_TITLE, align="center")
        box_top = top + pad + 11.0 * LEADING + 2
        box_x = self.left + pad
        box_w = self.width - 2 * pad
        inner_index = len(self.program.ops)
        y = box_top + 8
        for words in (self.content.words_en, self.content.words_ne):
            wrapped = self.wrap(words, size, box_w - 16, "bold")
            y = self.lines("amount_words", wrapped, center, y, size, font="bold", color=WORDS_TEXT, align="center")
        box_h = y + 6 - box_top
        self.backdrop(inner_index, Rect("amount_words", box_x, box_top, box_w, box_h, fill=WHITE, stroke=WORDS_BORDER, stroke_width=1.5, radius=4, dash=(4.0, 3.0)))
        height = box_top + box_h + pad - top
        self.backdrop(index, Rect("amount_words", self.left, top, self.width, height, fill=WORDS_FILL, stroke=WORDS_BORDER, stroke_width=1.5, radius=6))
        self.program.add_region("amount_words", self.left, top, self.width, height)
        return top + height + 14

    def footer(self, top: float) -> float:
        line_w = 170.0
        self.program.add(Line("footer", self.left, top, self.right, top, color=ACCENT, width=2))
        self.program.add_region("footer", self.left, top, self.width, 0)
        y = top + 14
        self.text("signature", self.right, y, copy.SIGNATURE_LABEL, 8.0, color=MUTED, align="right")
        y += 8.0 * LEADING + 22
        self.program.add(Line("signature", self.right - line_w, y, self.right, y, color=RULE))
        y += 6
        self.text("signature", self.right, y, self.content.generated_on, 8.0, color=FAINT, align="right")
        y += 8.0 * LEADING
        self.program.add_region("signature", self.right - line_w, top + 14, line_w, y - top - 14)
        return y

    def compose(self) -> DrawProgram:
        y = self.registration(MARGIN_Y)
        y = self.header(y)
        y = self.callout(y)
        y = self.info_row(y)
        y = self.donation_panel(y)
        y = self.words_panel(y)
        y = self.footer(y)
        if y > PAGE_HEIGHT - MARGIN_Y:
            logger.warning(
                "receipt_layout_overflow",
                extra={"receipt_number": self.content.receipt_number, "bottom": round(y, 1)},
            )
        return self.program


def compose_receipt(
    content: ReceiptContent,
    fonts: ReceiptFonts,
    logos: Mapping[str, bytes | None] | None = None,
) -> DrawProgram:
    """Lay out one receipt page. Missing logos keep their space but draw nothing."""
    return _Composer(content, fonts, logos or {}).compose()
