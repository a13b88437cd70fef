"""
Page layout engine for Techmak documents.

A LayoutContext owns the cursor for one document: the current page and the
vertical offset (reportlab coordinates, origin bottom-left). Every block asks
ensure_space(h) before drawing; when the block would cross the bottom margin
the page is closed, a new one is started and the page header is redrawn, so
a block is never split across pages.

    ACTIVE ──(y - h < bottom)──▶ PAGE_BREAK_TRIGGERED ──(header redrawn)──▶ ACTIVE
    ACTIVE ──finish()──▶ CLOSED   (any further drawing raises LayoutClosed)
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from reportlab.lib.colors import Color, HexColor
from reportlab.pdfbase.pdfmetrics import stringWidth

from techmak.core.errors import LayoutClosed

log = logging.getLogger("techmak.layout")

# ═══════════════════════════════════════════════════════════════════════════════
# PAGE GEOMETRY (A4, whole points)
# ═══════════════════════════════════════════════════════════════════════════════
PAGE_W, PAGE_H = 595, 842
MARGIN_L = 40
MARGIN_R = 40
TOP_Y = 800          # baseline of the first header line
BOTTOM_Y = 115       # nothing but the footer band goes below this

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
BODY_SIZE = 11
AVG_GLYPH_RATIO = 0.5   # average Helvetica glyph width / font size
ELLIPSIS = "..."

BLACK     = HexColor("#000000")
WHITE     = Color(1, 1, 1)
ROW_ODD   = Color(0.98, 0.98, 0.98)
HDR_FILL  = Color(0.95, 0.95, 0.95)
TOTAL_FILL = Color(0.9, 0.9, 0.9)

ACTIVE = "ACTIVE"
PAGE_BREAK_TRIGGERED = "PAGE_BREAK_TRIGGERED"
CLOSED = "CLOSED"


# ═══════════════════════════════════════════════════════════════════════════════
# TEXT FITTING
# ═══════════════════════════════════════════════════════════════════════════════

def wrap_text(text: str, max_width: float, font: str = FONT, size: float = BODY_SIZE) -> list:
    """Greedy word wrap by rendered width. The last partial line is always kept."""
    words = (text or "").split()
    lines = []
    line = []
    for w in words:
        trial = " ".join(line + [w])
        if line and stringWidth(trial, font, size) > max_width:
            lines.append(" ".join(line))
            line = [w]
        else:
            line.append(w)
    if line:
        lines.append(" ".join(line))
    return lines


def char_budget(col_width: float, size: float, padding: float = 5) -> int:
    """Characters that fit a column, estimated from the average glyph width."""
    return max(int((col_width - 2 * padding) / (size * AVG_GLYPH_RATIO)), 1)


def fit_to_column(text: str, col_width: float, size: float, padding: float = 5,
                  font: str = FONT) -> str:
    """Trim text to the column, ending in "..." when cut.

    Text that fits by rendered width is kept whole. Otherwise it is cut to the
    character budget and then shortened until the ellipsis fits too.
    """
    s = text or ""
    room = col_width - 2 * padding
    if stringWidth(s, font, size) <= room:
        return s
    keep = max(char_budget(col_width, size, padding) - len(ELLIPSIS), 0)
    cut = s[:keep].rstrip()
    while cut and stringWidth(cut + ELLIPSIS, font, size) > room:
        cut = cut[:-1].rstrip()
    return cut + ELLIPSIS


# ═══════════════════════════════════════════════════════════════════════════════
# LAYOUT CONTEXT
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class PageRecord:
    number: int
    header_drawn: bool = False


class LayoutContext:
    """Cursor + page bookkeeping for one document.

    header(ctx) draws the page header at the top of the current page and
    returns the y below it. footer(ctx) draws the fixed footer band.
    """

    def __init__(self, canvas, header: Optional[Callable] = None,
                 footer: Optional[Callable] = None,
                 page_width: float = PAGE_W, page_height: float = PAGE_H,
                 margin_left: float = MARGIN_L, margin_right: float = MARGIN_R,
                 top_y: float = TOP_Y, bottom_y: float = BOTTOM_Y):
        self.c = canvas
        self.header = header
        self.footer = footer
        self.page_width = page_width
        self.page_height = page_height
        self.margin_left = margin_left
        self.margin_right = margin_right
        self.top_y = top_y
        self.bottom_y = bottom_y
        self.page_number = 0
        self.y = top_y
        self.state = ACTIVE
        self.pages = []   # list of PageRecord

    # ── geometry ──────────────────────────────────────────────────────────────
    @property
    def right_x(self) -> float:
        return self.page_width - self.margin_right

    @property
    def usable_width(self) -> float:
        return self.page_width - self.margin_left - self.margin_right

    @property
    def closed(self) -> bool:
        return self.state == CLOSED

    @property
    def page_count(self) -> int:
        return len(self.pages)

    # ── page lifecycle ────────────────────────────────────────────────────────
    def _check_open(self):
        if self.closed:
            raise LayoutClosed()

    def _open_page(self):
        self.page_number += 1
        self.y = self.top_y
        record = PageRecord(self.page_number)
        self.pages.append(record)
        if self.footer:
            self.footer(self)
        if self.header:
            self.y = self.header(self)
            record.header_drawn = True

    def start(self) -> float:
        """Allocate the first page with its header. Returns the cursor y."""
        self._check_open()
        if not self.pages:
            self._open_page()
        return self.y

    def ensure_space(self, h: float) -> bool:
        """Break to a new page if a block of height h does not fit. True if it broke."""
        self._check_open()
        if self.y - h >= self.bottom_y:
            return False
        self.state = PAGE_BREAK_TRIGGERED
        log.debug("Page %d full at y=%.1f (need %.1f), breaking",
                  self.page_number, self.y, h)
        self.c.showPage()
        self._open_page()
        self.state = ACTIVE
        return True

    def advance(self, dy: float) -> float:
        self._check_open()
        self.y -= dy
        return self.y

    def finish(self) -> int:
        """Terminal transition. Returns the number of pages laid out."""
        self._check_open()
        self.state = CLOSED
        return self.page_count

    # ── drawing primitives ────────────────────────────────────────────────────
    def text(self, x, y, s, font=FONT, size=BODY_SIZE, color=BLACK, align="left"):
        self._check_open()
        c = self.c
        c.setFont(font, size)
        c.setFillColor(color)
        s = str(s) if s is not None else ""
        if align == "right":
            c.drawRightString(x, y, s)
        elif align == "center":
            c.drawCentredString(x, y, s)
        else:
            c.drawString(x, y, s)

    def right_text(self, x, y, s, font=FONT, size=BODY_SIZE, color=BLACK):
        self.text(x, y, s, font, size, color, align="right")

    def centred_text(self, x, y, s, font=FONT, size=BODY_SIZE, color=BLACK):
        self.text(x, y, s, font, size, color, align="center")

    def rect(self, x, y, w, h, fill=None, stroke=BLACK, line_width=1.0):
        self._check_open()
        c = self.c
        if fill is not None:
            c.setFillColor(fill)
        if stroke is not None:
            c.setStrokeColor(stroke)
            c.setLineWidth(line_width)
        c.rect(x, y, w, h, fill=1 if fill is not None else 0,
               stroke=1 if stroke is not None else 0)

    def line(self, x1, y1, x2, y2, color=BLACK, width=1.0):
        self._check_open()
        self.c.setStrokeColor(color)
        self.c.setLineWidth(width)
        self.c.line(x1, y1, x2, y2)

    def image(self, img, x, y, w, h, alpha: Optional[float] = None):
        self._check_open()
        c = self.c
        c.saveState()
        if alpha is not None:
            c.setFillAlpha(alpha)
            c.setStrokeAlpha(alpha)
        c.drawImage(img, x, y, width=w, height=h, mask="auto")
        c.restoreState()

    # ── flowing blocks ────────────────────────────────────────────────────────
    def line_block(self, s, font=FONT, size=BODY_SIZE, leading=16, color=BLACK, x=None):
        """One line of text at the cursor, moved to a new page if needed."""
        self.ensure_space(leading)
        self.text(self.margin_left if x is None else x, self.y, s, font, size, color)
        self.y -= leading

    def paragraph(self, text, font=FONT, size=BODY_SIZE, leading=16, color=BLACK) -> int:
        """Wrap text to the usable width and place it line by line. Returns line count."""
        lines = wrap_text(text, self.usable_width, font, size)
        for ln in lines:
            self.line_block(ln, font, size, leading, color)
        return len(lines)


# ═══════════════════════════════════════════════════════════════════════════════
# TABLE
# ═══════════════════════════════════════════════════════════════════════════════

# (label, width, alignment)
QUOTE_COLUMNS = [
    ("Sl no",               35,  "center"),
    ("Item Description",    130, "left"),
    ("Quantity",            55,  "center"),
    ("Unit of Measurement", 100, "left"),
    ("Unit price (TK)",     75,  "right"),
    ("Total price",         85,  "right"),
]


class TableLayout:
    """Fixed-column table with striped, height-fixed rows.

    The column header row is repeated whenever a row forces a page break.
    """

    def __init__(self, columns=None, row_height: float = 35, cell_size: float = 9,
                 header_size: float = 9, padding: float = 5, line_gap: float = 12):
        self.columns = columns or QUOTE_COLUMNS
        self.row_height = row_height
        self.cell_size = cell_size
        self.header_size = header_size
        self.padding = padding
        self.line_gap = line_gap
        self.header_rows_drawn = 0

    @property
    def widths(self) -> list:
        return [w for _, w, _ in self.columns]

    @property
    def width(self) -> float:
        return sum(self.widths)

    @property
    def max_cell_lines(self) -> int:
        return max(int((self.row_height - 8) / self.line_gap), 1)

    def col_x(self, ctx: LayoutContext, index: int) -> float:
        return ctx.margin_left + sum(self.widths[:index])

    def _separators(self, ctx, top):
        for i in range(1, len(self.columns)):
            x = self.col_x(ctx, i)
            ctx.line(x, top, x, top - self.row_height, width=1)

    def header_row(self, ctx: LayoutContext):
        """Shaded header row with column labels."""
        ctx.ensure_space(self.row_height)
        top = ctx.y
        ctx.rect(ctx.margin_left, top - self.row_height, self.width, self.row_height,
                 fill=HDR_FILL, stroke=BLACK, line_width=1)
        for i, (label, width, _) in enumerate(self.columns):
            label = fit_to_column(label, width + 2 * self.padding, self.header_size,
                                  self.padding, FONT_BOLD)
            ctx.text(self.col_x(ctx, i) + 2, top - 18, label, FONT_BOLD, self.header_size)
        self._separators(ctx, top)
        ctx.y = top - self.row_height
        self.header_rows_drawn += 1

    def cell_lines(self, text: str, width: float) -> list:
        """Split a cell on embedded newlines and trim each line to the column."""
        lines = str(text if text is not None else "").split("\n")
        cap = self.max_cell_lines
        if len(lines) > cap:
            lines = lines[:cap]
            lines[-1] = lines[-1] + ELLIPSIS
        return [fit_to_column(ln, width, self.cell_size, self.padding) for ln in lines]

    def _cell_x(self, ctx, index):
        _, width, align = self.columns[index]
        x0 = self.col_x(ctx, index)
        if align == "center":
            return x0 + width / 2, "center"
        if align == "right":
            return x0 + width - self.padding, "right"
        return x0 + self.padding, "left"

    def data_row(self, ctx: LayoutContext, index: int, cells: list):
        """Bordered row with alternating tint; repeats the header after a break."""
        if ctx.ensure_space(self.row_height):
            self.header_row(ctx)
        top = ctx.y
        fill = WHITE if index % 2 == 0 else ROW_ODD
        ctx.rect(ctx.margin_left, top - self.row_height, self.width, self.row_height,
                 fill=fill, stroke=BLACK, line_width=1)
        self._separators(ctx, top)
        for i, cell in enumerate(cells[:len(self.columns)]):
            for li, line in enumerate(self.cell_lines(cell, self.widths[i])):
                x, align = self._cell_x(ctx, i)
                ctx.text(x, top - 15 - li * self.line_gap, line, FONT,
                         self.cell_size, align=align)
        ctx.y = top - self.row_height

    def summary_row(self, ctx: LayoutContext, label: str, value: str,
                    fill=TOTAL_FILL, border_width: float = 2, label_size: float = 11,
                    value_size: float = 12, value_color=BLACK):
        """Full-width row without column separators (totals, discount)."""
        if ctx.ensure_space(self.row_height):
            self.header_row(ctx)
        top = ctx.y
        ctx.rect(ctx.margin_left, top - self.row_height, self.width, self.row_height,
                 fill=fill, stroke=BLACK, line_width=border_width)
        label_right = self.col_x(ctx, len(self.columns) - 1) - self.padding
        ctx.text(label_right, top - 18, label, FONT_BOLD, label_size, align="right")
        ctx.text(ctx.margin_left + self.width - self.padding * 2, top - 18, value,
                 FONT_BOLD, value_size, value_color, align="right")
        ctx.y = top - self.row_height
