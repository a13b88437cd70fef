"""
techmak/core/db.py — SQLite Database Layer

The persistence collaborator behind the admin API. The quotation document
generator only sees it through fetch_quote_record(); everything else here
serves the list/insert/statistics endpoints.

TABLES:
  clients               — customers a quotation is addressed to
  items                 — catalog items (name + description)
  quotations            — quotation headers with computed totals
  quotation_line_items  — priced rows, rendered in insertion order
  purchase_orders       — POs received from clients
  invoices              — issued invoices (counted on the dashboard)
  bills                 — supplier bills (counted on the dashboard)
"""

import os
import uuid
import sqlite3
import logging
import threading
from datetime import datetime
from contextlib import contextmanager

from techmak.core.errors import InvalidRequest
from techmak.core.paths import DATA_DIR, DB_PATH

log = logging.getLogger("techmak.db")

_db_lock = threading.Lock()


# ── Connection factory ────────────────────────────────────────────────────────
@contextmanager
def get_db():
    """Thread-safe SQLite connection with WAL mode for multi-worker gunicorn."""
    with _db_lock:
        os.makedirs(os.path.dirname(DB_PATH) or DATA_DIR, exist_ok=True)
        conn = sqlite3.connect(DB_PATH, timeout=30, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


# ── Schema ────────────────────────────────────────────────────────────────────
SCHEMA = """
CREATE TABLE IF NOT EXISTS clients (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    address         TEXT,
    contact_person  TEXT,
    email           TEXT,
    phone           TEXT,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS items (
    id               TEXT PRIMARY KEY,
    item_name        TEXT NOT NULL,
    item_description TEXT,
    created_at       TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS quotations (
    id                   TEXT PRIMARY KEY,
    user_id              TEXT,
    client_id            TEXT REFERENCES clients(id),
    quotation_number     TEXT NOT NULL,
    title                TEXT,
    issue_date           TEXT,
    due_date             TEXT,
    subtotal             REAL DEFAULT 0,
    discount             REAL DEFAULT 0,
    tax_rate             REAL DEFAULT 0,
    total_amount         REAL DEFAULT 0,
    validity_days        INTEGER,
    delivery_time        TEXT,
    payment_terms        TEXT,
    warranty_period      TEXT,
    terms_and_conditions TEXT,
    notes                TEXT,
    created_at           TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS quotation_line_items (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    quotation_id        TEXT NOT NULL REFERENCES quotations(id) ON DELETE CASCADE,
    item_id             TEXT REFERENCES items(id),
    user_id             TEXT,
    quantity            INTEGER NOT NULL,
    rate                REAL NOT NULL,
    line_item_total     REAL NOT NULL,
    unit_of_measurement TEXT,
    created_at          TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS purchase_orders (
    id            TEXT PRIMARY KEY,
    client_id     TEXT REFERENCES clients(id),
    po_number     TEXT,
    total_amount  REAL DEFAULT 0,
    status        TEXT DEFAULT 'open',
    created_at    TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS invoices (
    id              TEXT PRIMARY KEY,
    client_id       TEXT REFERENCES clients(id),
    invoice_number  TEXT,
    total_amount    REAL DEFAULT 0,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS bills (
    id            TEXT PRIMARY KEY,
    vendor        TEXT,
    bill_number   TEXT,
    total_amount  REAL DEFAULT 0,
    created_at    TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_line_items_quotation ON quotation_line_items(quotation_id);
CREATE INDEX IF NOT EXISTS idx_quotations_created ON quotations(created_at);
"""

_COUNTED_TABLES = {
    "invoices": "invoices",
    "bills": "bills",
    "pos": "purchase_orders",
    "quotations": "quotations",
}


def init_db():
    """Create all tables if they don't exist. Safe to call multiple times."""
    with get_db() as conn:
        conn.executescript(SCHEMA)
    log.info("DB initialized at %s", DB_PATH)
    return True


def _now() -> str:
    return datetime.now().isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


# ── Clients & items ───────────────────────────────────────────────────────────
def upsert_client(c: dict) -> str:
    """Insert or update a client. Returns its id."""
    cid = c.get("id") or _new_id()
    with get_db() as conn:
        conn.execute("""
            INSERT INTO clients (id, name, address, contact_person, email, phone, created_at)
            VALUES (?,?,?,?,?,?,?)
            ON CONFLICT(id) DO UPDATE SET
              name=excluded.name, address=excluded.address,
              contact_person=excluded.contact_person,
              email=excluded.email, phone=excluded.phone
        """, (cid, c.get("name", ""), c.get("address"), c.get("contact_person"),
              c.get("email"), c.get("phone"), c.get("created_at") or _now()))
    return cid


def upsert_item(i: dict) -> str:
    """Insert or update a catalog item. Returns its id."""
    iid = i.get("id") or _new_id()
    with get_db() as conn:
        conn.execute("""
            INSERT INTO items (id, item_name, item_description, created_at)
            VALUES (?,?,?,?)
            ON CONFLICT(id) DO UPDATE SET
              item_name=excluded.item_name,
              item_description=excluded.item_description
        """, (iid, i.get("item_name", ""), i.get("item_description"),
              i.get("created_at") or _now()))
    return iid


def list_clients() -> list:
    """All clients, newest first."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM clients ORDER BY created_at DESC, rowid DESC").fetchall()
    return [dict(r) for r in rows]


def list_items() -> list:
    """All catalog items, newest first."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM items ORDER BY created_at DESC, rowid DESC").fetchall()
    return [dict(r) for r in rows]


# ── Quotations ────────────────────────────────────────────────────────────────
def _line_items_for(conn, quotation_id: str) -> list:
    rows = conn.execute("""
        SELECT li.*, it.item_name AS _item_name, it.item_description AS _item_description
        FROM quotation_line_items li
        LEFT JOIN items it ON it.id = li.item_id
        WHERE li.quotation_id = ?
        ORDER BY li.id
    """, (quotation_id,)).fetchall()
    result = []
    for row in rows:
        d = dict(row)
        name = d.pop("_item_name")
        desc = d.pop("_item_description")
        d["items"] = ({"item_name": name, "item_description": desc}
                      if name is not None else None)
        result.append(d)
    return result


def _client_for(conn, client_id) -> dict | None:
    if not client_id:
        return None
    row = conn.execute("SELECT * FROM clients WHERE id=?", (client_id,)).fetchone()
    return dict(row) if row else None


def fetch_quote_record(quotation_id: str) -> dict | None:
    """Resolve a quotation id to {quotation, client, line_items}, or None.

    Line items come back in insertion order, each joined with its catalog
    item under the "items" key (None when the item was deleted).
    """
    with get_db() as conn:
        row = conn.execute("SELECT * FROM quotations WHERE id=?",
                           (quotation_id,)).fetchone()
        if not row:
            return None
        quotation = dict(row)
        client = _client_for(conn, quotation.get("client_id"))
        line_items = _line_items_for(conn, quotation_id)
    return {"quotation": quotation, "client": client, "line_items": line_items}


def list_quotations(limit: int = 500) -> list:
    """All quotations, newest first, with their client and raw line items."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM quotations ORDER BY created_at DESC, rowid DESC LIMIT ?",
            (limit,)).fetchall()
        result = []
        for row in rows:
            d = dict(row)
            d["clients"] = _client_for(conn, d.get("client_id"))
            li_rows = conn.execute(
                "SELECT * FROM quotation_line_items WHERE quotation_id=? ORDER BY id",
                (d["id"],)).fetchall()
            d["quotation_line_items"] = [dict(r) for r in li_rows]
            result.append(d)
    return result


def _num(val, default=0.0) -> float:
    try:
        return float(val)
    except (TypeError, ValueError):
        return default


def compute_totals(line_items: list, discount: float = 0, tax_rate: float = 0) -> dict:
    """subtotal → discount % → tax % on the discounted amount → total."""
    subtotal = sum(_num(li.get("line_item_total")) for li in line_items)
    discount_amount = subtotal * _num(discount) / 100
    taxable = subtotal - discount_amount
    tax_amount = taxable * _num(tax_rate) / 100
    return {
        "subtotal": subtotal,
        "discount_amount": discount_amount,
        "taxable_amount": taxable,
        "tax_amount": tax_amount,
        "total_amount": taxable + tax_amount,
    }


def insert_quotation(form_data: dict, user_id: str) -> dict:
    """Insert a quotation and its line items. Returns the stored quotation row.

    Totals are computed here, once; the document generator only displays them.
    Line items without an item id or with a non-positive quantity are skipped.
    """
    if not form_data:
        raise InvalidRequest("Missing formData")
    if not user_id:
        raise InvalidRequest("Missing userId")

    line_items = form_data.get("line_items") or []
    discount = form_data.get("discount") or 0
    tax_rate = form_data.get("tax_rate") or 0
    totals = compute_totals(line_items, discount, tax_rate)

    qid = _new_id()
    now = _now()
    with get_db() as conn:
        conn.execute("""
            INSERT INTO quotations
              (id, user_id, client_id, quotation_number, title, issue_date, due_date,
               subtotal, discount, tax_rate, total_amount, validity_days,
               delivery_time, payment_terms, warranty_period,
               terms_and_conditions, notes, created_at)
            VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
        """, (
            qid, user_id, form_data.get("client_id"),
            form_data.get("quotation_number", ""), form_data.get("title"),
            form_data.get("issue_date"), form_data.get("due_date"),
            totals["subtotal"], _num(discount), _num(tax_rate), totals["total_amount"],
            form_data.get("validity_days"), form_data.get("delivery_time"),
            form_data.get("payment_terms"), form_data.get("warranty_period"),
            form_data.get("terms_and_conditions"), form_data.get("notes"), now,
        ))
        kept = 0
        for li in line_items:
            if not li.get("item_id") or _num(li.get("quantity")) <= 0:
                continue
            conn.execute("""
                INSERT INTO quotation_line_items
                  (quotation_id, item_id, user_id, quantity, rate, line_item_total,
                   unit_of_measurement, created_at)
                VALUES (?,?,?,?,?,?,?,?)
            """, (qid, li["item_id"], user_id, int(_num(li.get("quantity"))),
                  _num(li.get("rate")), _num(li.get("line_item_total")),
                  li.get("unit_of_measurement"), now))
            kept += 1
        row = conn.execute("SELECT * FROM quotations WHERE id=?", (qid,)).fetchone()

    log.info("Quotation %s inserted (%d line items, total %.2f)",
             form_data.get("quotation_number", "?"), kept, totals["total_amount"])
    return dict(row)


# ── Purchase orders (read-only) ──────────────────────────────────────────────
def list_purchase_orders(limit: int = 5) -> list:
    """Newest purchase orders with the client joined and flattened to client_name."""
    with get_db() as conn:
        rows = conn.execute("""
            SELECT po.*, c.id AS _cid, c.name AS _cname, c.email AS _cemail
            FROM purchase_orders po
            LEFT JOIN clients c ON c.id = po.client_id
            ORDER BY po.created_at DESC, po.rowid DESC
            LIMIT ?
        """, (limit,)).fetchall()
    result = []
    for row in rows:
        d = dict(row)
        cid, cname, cemail = d.pop("_cid"), d.pop("_cname"), d.pop("_cemail")
        d["clients"] = {"id": cid, "name": cname, "email": cemail} if cid else None
        d["client_name"] = cname or "N/A"
        result.append(d)
    return result


# ── Stats ────────────────────────────────────────────────────────────────────
def get_counts() -> dict:
    """Row counts for the dashboard cards."""
    counts = {}
    with get_db() as conn:
        for key, table in _COUNTED_TABLES.items():
            counts[key] = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    return counts


def get_db_stats() -> dict:
    """Counts plus file size — used by /api/health and startup checks."""
    stats = {"db_path": DB_PATH, "db_size_kb": 0}
    try:
        stats["db_size_kb"] = round(os.path.getsize(DB_PATH) / 1024, 1)
    except FileNotFoundError:
        pass
    stats.update(get_counts())
    return stats


def startup() -> dict:
    """Initialize DB. Call once at app start."""
    init_db()
    stats = get_db_stats()
    log.info("DB ready: %s",
             {k: v for k, v in stats.items() if k not in ("db_path", "db_size_kb")})
    return {"ok": True, "db_path": DB_PATH, "stats": stats}
