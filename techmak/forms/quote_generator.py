"""
Techmak Quotation PDF Generator
================================
A4 quotations for download from the admin dashboard.

Layout (page 1):
  - Header: inline logo, company block, separator, faded logo watermark
  - REF / Date, "To," client block, quotation number line
  - Title, salutation, intro paragraph
  - Line-item table (repeats its column header after a page break)
  - Totals row, optional discount row, amount in words, warranty notice
  - Terms & Conditions, closing, signature
  - Footer band (email / phone / website / address) on every page

Usage:
    from techmak.forms.quote_generator import generate_quote_pdf
    out = generate_quote_pdf("3f9c...")   # {"data", "filename", "mimetype", "headers"}
"""

import io
import logging
from functools import partial
from typing import Callable, Optional
from urllib.parse import quote

from reportlab.lib.colors import Color, HexColor
from reportlab.pdfgen import canvas
from werkzeug.utils import secure_filename

from techmak.core.errors import SerializationFailure
from techmak.forms.asset_loader import LogoLoader
from techmak.forms.page_layout import (
    FONT, FONT_BOLD, PAGE_H, PAGE_W, LayoutContext, TableLayout,
)
from techmak.forms.quote_model import QuoteDocument, load_quote_document

log = logging.getLogger("techmak.quote_gen")

# ═══════════════════════════════════════════════════════════════════════════════
# COLORS
# ═══════════════════════════════════════════════════════════════════════════════
BRAND     = Color(0, 0, 0.8)        # company name, headings, footer rule
BRAND_DK  = Color(0, 0, 0.6)        # tagline lines
ADDR_BLUE = Color(0, 0, 0.7)
RULE_GRAY = Color(0.7, 0.7, 0.7)
BAND      = Color(0.95, 0.96, 1)    # footer background
NOTICE    = Color(0.8, 0, 0)
BLACK     = HexColor("#000000")

# ═══════════════════════════════════════════════════════════════════════════════
# COMPANY INFO
# ═══════════════════════════════════════════════════════════════════════════════
TECHMAK = {
    "name":      "Techmak Technology Ltd.",
    "web":       "www.techmakbd.com",
    "email":     "info@techmakbd.com",
    "line1":     "4th floor, House# 36/E, Road-02, Block- D",
    "line2":     "Bashundhara R/A, Dhaka-1229",
    "phone":     "+8801611224433",
    "signatory": "A.Azam Tusher",
    "title":     "CEO",
}

INTRO = ("We would like to thank you for giving us the opportunity to do business "
         "with your organization. In reference on your showing interest to the "
         "following goods we are very happy to inform you our best offer.")
CLOSING = ("In acceptance of the following terms and conditions with the price we "
           "are ready to provide the above mentioned services.")
TOTAL_LABEL = "Total amount including VAT & TAX -"

LOGO_SCALE = 0.25          # inline logo, points per pixel
LOGO_BOX = (60, 45)
WATERMARK_SCALE = 0.5
WATERMARK_BOX = (150, 110)
WATERMARK_ALPHA = 0.3

FOOTER_Y = 80
SIGNATURE_H = 4 * 14
MIMETYPE = "application/pdf"


# ═══════════════════════════════════════════════════════════════════════════════
# PAGE FURNITURE
# ═══════════════════════════════════════════════════════════════════════════════

def draw_page_header(ctx: LayoutContext, loader: LogoLoader) -> float:
    """Logo + company block + separator at the top of the page. Returns y below it."""
    top = ctx.top_y
    asset = loader.load()

    # watermark first so the company text sits on top of it
    ww, wh = asset.scaled(WATERMARK_SCALE, *WATERMARK_BOX)
    ctx.image(asset.image, ctx.right_x - ww, top - wh + 18, ww, wh, alpha=WATERMARK_ALPHA)

    lw, lh = asset.scaled(LOGO_SCALE, *LOGO_BOX)
    ctx.image(asset.image, ctx.margin_left, top - lh + 14, lw, lh)

    tx = ctx.margin_left + lw + 10
    ctx.text(tx, top, TECHMAK["name"], FONT_BOLD, 18, BRAND)
    y = top - 18
    for line in (TECHMAK["web"], TECHMAK["email"], TECHMAK["line1"], TECHMAK["line2"]):
        ctx.text(tx, y, line, FONT, 10, BRAND_DK)
        y -= 11

    y -= 2
    ctx.line(ctx.margin_left, y, ctx.right_x, y, RULE_GRAY, 1)
    return y - 12


def draw_page_footer(ctx: LayoutContext):
    """Contact band across the bottom of the page."""
    w = ctx.page_width
    x = ctx.margin_left
    ctx.line(0, FOOTER_Y + 25, w, FOOTER_Y + 25, BRAND, 1)
    ctx.rect(0, 0, w, FOOTER_Y + 20, fill=BAND, stroke=None)
    ctx.rect(0, 0, w, 3, fill=BRAND, stroke=None)

    for dx, label, value in ((0, "Email:", TECHMAK["email"]),
                             (180, "Phone:", TECHMAK["phone"]),
                             (350, "Website:", TECHMAK["web"])):
        ctx.text(x + dx, FOOTER_Y - 10, label, FONT_BOLD, 10, BRAND)
        ctx.text(x + dx, FOOTER_Y - 25, value, FONT, 9)

    ctx.text(x, FOOTER_Y - 45,
             f"Address: {TECHMAK['line1']}, {TECHMAK['line2']}", FONT, 9, ADDR_BLUE)
    ctx.right_text(ctx.right_x, FOOTER_Y - 45, f"Page {ctx.page_number}", FONT, 8)


# ═══════════════════════════════════════════════════════════════════════════════
# BODY SECTIONS
# ═══════════════════════════════════════════════════════════════════════════════

def _client_block(ctx: LayoutContext, doc: QuoteDocument):
    top = ctx.y
    ctx.right_text(ctx.right_x, top, f"REF: {doc.quotation_number}", FONT_BOLD, 10)
    ctx.right_text(ctx.right_x, top - 14, f"Date: {doc.issue_date}", FONT, 10)

    ctx.line_block("To,", FONT_BOLD, 12, 15)
    ctx.line_block("Authority", FONT, 12, 15)
    ctx.line_block(doc.client_name, FONT_BOLD, 12, 15)
    for line in doc.address_lines:
        ctx.line_block(line, FONT, 12, 14)
    if doc.contact_person:
        ctx.line_block(f"Attention: {doc.contact_person}", FONT_BOLD, 11, 14)
    ctx.advance(8)

    ctx.ensure_space(16)
    ctx.text(ctx.margin_left, ctx.y, f"Quotation Number: {doc.quotation_number}", FONT_BOLD, 11)
    ctx.text(ctx.margin_left + 200, ctx.y, f"Date: {doc.issue_date}", FONT_BOLD, 11)
    ctx.advance(20)


def _opening(ctx: LayoutContext, doc: QuoteDocument):
    ctx.ensure_space(24)
    ctx.centred_text(ctx.page_width / 2, ctx.y, "Quotation", FONT_BOLD, 16, BRAND)
    ctx.advance(20)
    ctx.line_block("Dear Sir,", FONT, 12, 15)
    ctx.paragraph(INTRO, FONT, 11, 14)
    ctx.advance(10)


def _table(ctx: LayoutContext, doc: QuoteDocument) -> TableLayout:
    table = TableLayout()
    table.header_row(ctx)
    for i, row in enumerate(doc.rows):
        table.data_row(ctx, i, row.cells())
    table.summary_row(ctx, TOTAL_LABEL, doc.total_display)
    if doc.has_discount:
        table.summary_row(ctx, "Discount", f"{doc.discount_percent:g}%",
                          border_width=1, value_size=11)
    ctx.advance(12)
    return table


def _closing(ctx: LayoutContext, doc: QuoteDocument):
    ctx.paragraph(f"IN WORD: {doc.amount_in_words}", FONT_BOLD, 11, 16)
    ctx.line_block(f"NOTICE: {doc.warranty_period}", FONT_BOLD, 11, 18, NOTICE)

    ctx.line_block("Terms & Conditions:", FONT_BOLD, 12, 16, BRAND)
    terms = [
        "1. Work Order: Work order should be issued by the buyer.",
        f"2. Validity: Offer Valid up to {doc.validity_days} days from the date of submission.",
        f"3. Delivery Time: {doc.delivery_time}.",
        f"4. Payment Clearance: {doc.payment_terms}.",
    ]
    for term in terms:
        ctx.paragraph(term, FONT, 10, 14)
    ctx.advance(6)

    ctx.paragraph(CLOSING, FONT, 11, 14)
    ctx.advance(6)
    ctx.line_block("Thank you", FONT, 12, 18)

    # signature stays together
    ctx.ensure_space(SIGNATURE_H)
    for key, font, size in (("signatory", FONT_BOLD, 12), ("title", FONT, 11),
                            ("name", FONT_BOLD, 11), ("phone", FONT, 11)):
        ctx.line_block(TECHMAK[key], font, size, 14)


# ═══════════════════════════════════════════════════════════════════════════════
# RENDER + EMIT
# ═══════════════════════════════════════════════════════════════════════════════

def layout_quote(c, doc: QuoteDocument, loader: LogoLoader) -> LayoutContext:
    """Draw the whole quotation onto canvas c. Returns the finished context."""
    ctx = LayoutContext(c, header=partial(draw_page_header, loader=loader),
                        footer=draw_page_footer,
                        page_width=PAGE_W, page_height=PAGE_H)
    ctx.start()
    _client_block(ctx, doc)
    _opening(ctx, doc)
    _table(ctx, doc)
    _closing(ctx, doc)
    ctx.finish()
    return ctx


def render_quote_pdf(doc: QuoteDocument, logo_loader: Optional[LogoLoader] = None) -> bytes:
    """Lay out and serialize one quotation. Returns the PDF bytes."""
    loader = logo_loader or LogoLoader()
    # fail before any page is drawn if the logo is unusable
    loader.load()

    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=(PAGE_W, PAGE_H))
    c.setTitle(f"Quotation {doc.quotation_number}")
    c.setAuthor(TECHMAK["name"])
    c.setSubject(doc.title or "Quotation")

    ctx = layout_quote(c, doc, loader)
    try:
        c.save()
    except Exception as e:
        raise SerializationFailure(f"PDF serialization failed: {e}")

    data = buf.getvalue()
    if not data:
        raise SerializationFailure("PDF serialization produced no output")
    log.info("Quotation %s rendered: %d page(s), %d bytes",
             doc.quotation_number, ctx.page_count, len(data),
             extra={"quote_number": doc.quotation_number,
                    "pages": ctx.page_count, "bytes": len(data)})
    return data


def content_disposition(filename: str) -> str:
    """Attachment header value safe for any quotation number.

    Control characters, quotes and backslashes are dropped. When what remains
    is not a plain ASCII name, an ASCII fallback is given in filename= and
    the full name in an RFC 5987 filename*.
    """
    cleaned = "".join(ch for ch in filename if ch.isprintable() and ch not in '"\\')
    fallback = secure_filename(cleaned) or "quotation.pdf"
    value = f'attachment; filename="{fallback}"'
    if fallback != cleaned:
        value += f"; filename*=UTF-8''{quote(cleaned, safe='')}"
    return value


def emit_document(doc: QuoteDocument, pdf_bytes: bytes) -> dict:
    """Attachment payload for the HTTP layer."""
    return {
        "data": pdf_bytes,
        "filename": doc.filename,
        "mimetype": MIMETYPE,
        "headers": {
            "Content-Type": MIMETYPE,
            "Content-Disposition": content_disposition(doc.filename),
            "Content-Length": str(len(pdf_bytes)),
            "Cache-Control": "no-cache",
        },
    }


def generate_quote_pdf(quotation_id, fetch: Optional[Callable] = None,
                       logo_loader: Optional[LogoLoader] = None) -> dict:
    """Fetch, build, lay out, serialize and emit one quotation."""
    doc = load_quote_document(quotation_id, fetch=fetch)
    log.info("Generating quotation %s for %s (%d items)",
             doc.quotation_number, doc.client_name[:40], len(doc.rows),
             extra={"quotation_id": doc.quotation_id,
                    "quote_number": doc.quotation_number})
    pdf = render_quote_pdf(doc, logo_loader)
    return emit_document(doc, pdf)


if __name__ == "__main__":
    import sys
    from techmak.forms.quote_model import build_quote_document

    sample = {
        "quotation": {
            "id": "demo", "quotation_number": "TT-2025-001", "issue_date": "2025-08-09",
            "total_amount": 12345678, "discount": 5, "title": "Network equipment",
        },
        "client": {
            "name": "Dhaka Medical College Hospital",
            "address": "Procurement Section\nBakshibazar\nDhaka-1000",
            "contact_person": "Director",
        },
        "line_items": [
            {"quantity": 2, "unit_of_measurement": "Pcs", "rate": 45000,
             "line_item_total": 90000,
             "items": {"item_name": f"Managed switch {i}",
                       "item_description": "24 port gigabit, rack mount"}}
            for i in range(1, 25)
        ],
    }
    src = sys.argv[1] if len(sys.argv) > 1 else None
    doc = build_quote_document(sample)
    pdf = render_quote_pdf(doc, LogoLoader(src) if src else None)
    out = f"/tmp/{doc.filename}"
    with open(out, "wb") as f:
        f.write(pdf)
    print(f"{doc.quotation_number}: {len(pdf):,} bytes → {out}")
