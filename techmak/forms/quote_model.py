"""
Quotation document model — print-ready values for the PDF renderer.

Turns the raw {quotation, client, line_items} record returned by the
persistence layer into display strings. Totals, discount and tax are
forwarded exactly as stored; nothing here recomputes money.

Usage:
    from techmak.forms.quote_model import load_quote_document
    doc = load_quote_document(request.args.get("id"))
"""

import math
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from techmak.core.errors import MissingInput, NotFound
from techmak.forms.amount_words import amount_to_words

log = logging.getLogger("techmak.quote_model")

CLIENT_PLACEHOLDER = "Client Name"
ITEM_PLACEHOLDER = "Item"
DEFAULT_UNIT = "Pcs"
DEFAULT_VALIDITY_DAYS = 30
DEFAULT_DELIVERY = "lead time is within 30-35 days from the date of getting work order"
DEFAULT_PAYMENT = "As per buyer's rules"
DEFAULT_WARRANTY = "01 Years Warranty"

_DATE_FORMATS = ("%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S", "%d/%m/%Y")


@dataclass
class QuoteRow:
    serial: str
    name: str
    description: str
    quantity: str
    unit: str
    rate: str
    line_total: str

    @property
    def description_cell(self) -> str:
        """Item name and description as one two-line cell."""
        return f"{self.name}\n{self.description}"

    def cells(self) -> list:
        return [self.serial, self.description_cell, self.quantity, self.unit,
                self.rate, self.line_total]


@dataclass
class QuoteDocument:
    quotation_id: str
    quotation_number: str
    title: str
    issue_date: str
    client_name: str
    address_lines: list = field(default_factory=list)
    contact_person: str = ""
    rows: list = field(default_factory=list)
    total_amount: float = 0.0
    total_display: str = "0/-"
    discount_percent: float = 0.0
    amount_in_words: str = ""
    validity_days: int = DEFAULT_VALIDITY_DAYS
    delivery_time: str = DEFAULT_DELIVERY
    payment_terms: str = DEFAULT_PAYMENT
    warranty_period: str = DEFAULT_WARRANTY

    @property
    def filename(self) -> str:
        return f"quotation-{self.quotation_number}.pdf"

    @property
    def has_discount(self) -> bool:
        return self.discount_percent > 0


# ═══════════════════════════════════════════════════════════════════════════════
# FORMATTING
# ═══════════════════════════════════════════════════════════════════════════════

def _to_float(val, default=0.0) -> float:
    try:
        f = float(val)
    except (TypeError, ValueError):
        return default
    return f if math.isfinite(f) else default


def format_amount(val) -> str:
    """1500 -> "1,500/-", 1234.5 -> "1,234.5/-". Up to three decimals, no padding."""
    f = _to_float(val)
    if f == int(f):
        s = f"{int(f):,}"
    else:
        s = f"{f:,.3f}".rstrip("0").rstrip(".")
    return f"{s}/-"


def format_date(val) -> str:
    """Day/month/year ("09/08/2025"). Unparseable input is returned as-is."""
    if not val:
        return ""
    if isinstance(val, datetime):
        return val.strftime("%d/%m/%Y")
    raw = str(val).strip()
    candidate = raw.replace("Z", "")
    if "+" in candidate[10:]:
        candidate = candidate[:10 + candidate[10:].index("+")]
    if "." in candidate[19:]:
        candidate = candidate[:19]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).strftime("%d/%m/%Y")
        except ValueError:
            continue
    return raw


def _text(val, default: str = "") -> str:
    if val is None:
        return default
    s = str(val).strip()
    return s or default


def _quantity(val) -> str:
    f = _to_float(val)
    return str(int(f)) if f == int(f) else str(f)


def split_address(address) -> list:
    """Address lines in order; trailing blank lines dropped."""
    if not address:
        return []
    lines = [ln.rstrip("\r").strip() for ln in str(address).split("\n")]
    while lines and not lines[-1]:
        lines.pop()
    return lines


# ═══════════════════════════════════════════════════════════════════════════════
# BUILDER
# ═══════════════════════════════════════════════════════════════════════════════

def _build_row(idx: int, li: dict) -> QuoteRow:
    item = li.get("items") or {}
    return QuoteRow(
        serial=f"{idx + 1}.",
        name=_text(item.get("item_name") or li.get("item_name"), ITEM_PLACEHOLDER),
        description=_text(item.get("item_description") or li.get("item_description")),
        quantity=_quantity(li.get("quantity")),
        unit=_text(li.get("unit_of_measurement"), DEFAULT_UNIT),
        rate=format_amount(li.get("rate")),
        line_total=format_amount(li.get("line_item_total")),
    )


def build_quote_document(record: dict) -> QuoteDocument:
    """Flatten a {quotation, client, line_items} record into a QuoteDocument."""
    q = record.get("quotation") or {}
    client = record.get("client") or q.get("clients") or {}
    line_items = record.get("line_items") or []

    total = _to_float(q.get("total_amount"))
    validity = q.get("validity_days")
    try:
        validity = int(validity) if validity not in (None, "") else DEFAULT_VALIDITY_DAYS
    except (TypeError, ValueError):
        validity = DEFAULT_VALIDITY_DAYS

    discount = min(max(_to_float(q.get("discount")), 0.0), 100.0)

    return QuoteDocument(
        quotation_id=_text(q.get("id")),
        quotation_number=_text(q.get("quotation_number")),
        title=_text(q.get("title")),
        issue_date=format_date(q.get("issue_date")),
        client_name=_text(client.get("name"), CLIENT_PLACEHOLDER),
        address_lines=split_address(client.get("address")),
        contact_person=_text(client.get("contact_person")),
        rows=[_build_row(i, li) for i, li in enumerate(line_items)],
        total_amount=total,
        total_display=format_amount(total),
        discount_percent=discount,
        amount_in_words=amount_to_words(total),
        validity_days=validity,
        delivery_time=_text(q.get("delivery_time"), DEFAULT_DELIVERY),
        payment_terms=_text(q.get("payment_terms"), DEFAULT_PAYMENT),
        warranty_period=_text(q.get("warranty_period"), DEFAULT_WARRANTY),
    )


def load_quote_document(quotation_id, fetch: Optional[Callable] = None) -> QuoteDocument:
    """Resolve an id through the persistence layer and build the document.

    Raises MissingInput before any lookup when the id is blank, NotFound when
    the lookup returns nothing.
    """
    qid = str(quotation_id).strip() if quotation_id is not None else ""
    if not qid:
        raise MissingInput()
    if fetch is None:
        from techmak.core.db import fetch_quote_record
        fetch = fetch_quote_record

    record = fetch(qid)
    if not record or not record.get("quotation"):
        log.info("Quotation %s not found", qid)
        raise NotFound()
    return build_quote_document(record)
