"""
Shared pytest fixtures for the Techmak admin test suite.

IMPORTANT: TECHMAK_DATA_DIR is pointed at a throwaway directory BEFORE any
techmak module is imported, so importing app.py (which builds the gunicorn
app at module level) never touches the project's real data/ directory.
"""
import os
import sys
import tempfile
import pytest

_PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

os.environ.setdefault("TECHMAK_DATA_DIR", tempfile.mkdtemp(prefix="techmak-test-"))


# ── Logo helpers ──────────────────────────────────────────────────────────────

def make_png(path=None, size=(120, 80), color=(0, 0, 204)):
    """Solid-colour PNG; written to path when given, bytes returned either way."""
    import io
    from PIL import Image
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    data = buf.getvalue()
    if path:
        with open(path, "wb") as f:
            f.write(data)
    return data


# ── Temp data directory (per-test isolation) ──────────────────────────────────

@pytest.fixture(autouse=True)
def temp_data_dir(tmp_path, monkeypatch):
    """Redirect DATA_DIR, the database and the default logo to a tmp directory."""
    from techmak.core import paths, db

    data = str(tmp_path / "data")
    os.makedirs(data, exist_ok=True)
    db_path = os.path.join(data, "techmak.db")
    logo_path = os.path.join(data, "techmak_logo.png")
    make_png(logo_path)

    monkeypatch.setattr(paths, "DATA_DIR", data)
    monkeypatch.setattr(paths, "DB_PATH", db_path)
    monkeypatch.setattr(paths, "LOG_DIR", os.path.join(data, "logs"))
    monkeypatch.setattr(paths, "LOGO_PATH", logo_path)
    monkeypatch.setattr(db, "DATA_DIR", data)
    monkeypatch.setattr(db, "DB_PATH", db_path)
    monkeypatch.delenv("TECHMAK_LOGO_SOURCE", raising=False)
    return data


@pytest.fixture
def png_factory():
    return make_png


@pytest.fixture
def logo_path(temp_data_dir):
    return os.path.join(temp_data_dir, "techmak_logo.png")


@pytest.fixture
def database(temp_data_dir):
    """Empty schema in the temp database."""
    from techmak.core import db
    db.init_db()
    return db


@pytest.fixture
def seed_row(database):
    """Raw insert into purchase_orders / invoices / bills. Returns the row id.

    Nothing in the service writes these tables; the dashboard only reads them.
    """
    import uuid
    from datetime import datetime

    def _insert(table, **values):
        values.setdefault("id", str(uuid.uuid4()))
        values.setdefault("created_at", datetime.now().isoformat())
        cols = ", ".join(values)
        marks = ", ".join("?" for _ in values)
        with database.get_db() as conn:
            conn.execute(f"INSERT INTO {table} ({cols}) VALUES ({marks})",
                         tuple(values.values()))
        return values["id"]
    return _insert


# ── Flask test client ─────────────────────────────────────────────────────────

@pytest.fixture
def app(temp_data_dir, monkeypatch):
    """Create Flask app configured for testing."""
    monkeypatch.setenv("SECRET_KEY", "test-secret-key-not-default")
    from app import create_app
    application = create_app(configure_logging=False)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


# ── Sample data factories ─────────────────────────────────────────────────────

@pytest.fixture
def sample_client():
    return {
        "name": "Dhaka Medical College Hospital",
        "address": "Procurement Section\nBakshibazar\nDhaka-1000",
        "contact_person": "Director (Admin)",
        "email": "admin@dmch.gov.bd",
        "phone": "+880255165088",
    }


@pytest.fixture
def sample_record(sample_client):
    """{quotation, client, line_items} as the persistence layer returns it."""
    return {
        "quotation": {
            "id": "q-001",
            "quotation_number": "TT-2025-014",
            "title": "Network equipment",
            "issue_date": "2025-08-09",
            "subtotal": 96000,
            "discount": 0,
            "tax_rate": 0,
            "total_amount": 96000,
            "validity_days": 45,
            "delivery_time": None,
            "payment_terms": None,
            "warranty_period": "02 Years Warranty",
        },
        "client": dict(sample_client),
        "line_items": [
            {"quantity": 2, "rate": 45000, "line_item_total": 90000,
             "unit_of_measurement": "Pcs",
             "items": {"item_name": "Managed Switch",
                       "item_description": "24 port gigabit, rack mount"}},
            {"quantity": 3, "rate": 2000, "line_item_total": 6000,
             "unit_of_measurement": "Box",
             "items": {"item_name": "Cat6 Cable",
                       "item_description": "305m reel"}},
        ],
    }


@pytest.fixture
def seeded_quotation(database, sample_client):
    """One stored quotation with two line items. Returns the quotation row."""
    cid = database.upsert_client(sample_client)
    switch = database.upsert_item({"item_name": "Managed Switch",
                                   "item_description": "24 port gigabit, rack mount"})
    cable = database.upsert_item({"item_name": "Cat6 Cable",
                                  "item_description": "305m reel"})
    return database.insert_quotation({
        "client_id": cid,
        "quotation_number": "TT-2025-014",
        "title": "Network equipment",
        "issue_date": "2025-08-09",
        "discount": 0,
        "tax_rate": 0,
        "line_items": [
            {"item_id": switch, "quantity": 2, "rate": 45000, "line_item_total": 90000,
             "unit_of_measurement": "Pcs"},
            {"item_id": cable, "quantity": 3, "rate": 2000, "line_item_total": 6000,
             "unit_of_measurement": "Box"},
        ],
    }, "user-1")
