"""
Route tests: every /api endpoint on the dashboard Blueprint.
"""
import io

import pytest
from pypdf import PdfReader

from techmak.core import db


def _seed(database, client_row, number):
    cid = database.upsert_client(client_row)
    item = database.upsert_item({"item_name": "Managed Switch"})
    return database.insert_quotation({
        "client_id": cid, "quotation_number": number, "issue_date": "2025-08-09",
        "line_items": [{"item_id": item, "quantity": 1, "rate": 100,
                        "line_item_total": 100}],
    }, "user-1")


# ═══════════════════════════════════════════════════════════════════════════════
# PDF export
# ═══════════════════════════════════════════════════════════════════════════════

class TestExportQuotation:

    def test_missing_id_400_without_fetch(self, client, monkeypatch):
        calls = []
        monkeypatch.setattr(db, "fetch_quote_record", lambda qid: calls.append(qid))
        r = client.get("/api/export-quotation")
        assert r.status_code == 400
        assert r.get_json() == {"error": "Missing quotation ID"}
        assert calls == []

    def test_blank_id_400(self, client):
        r = client.get("/api/export-quotation?id=")
        assert r.status_code == 400

    def test_unknown_id_404(self, client):
        r = client.get("/api/export-quotation?id=ghost")
        assert r.status_code == 404
        assert r.get_json() == {"error": "Quotation not found"}
        assert r.mimetype == "application/json"

    def test_download(self, client, seeded_quotation):
        r = client.get(f"/api/export-quotation?id={seeded_quotation['id']}")
        assert r.status_code == 200
        assert r.mimetype == "application/pdf"
        assert r.headers["Content-Disposition"] == \
            'attachment; filename="quotation-TT-2025-014.pdf"'
        assert r.headers["Cache-Control"] == "no-cache"
        assert int(r.headers["Content-Length"]) == len(r.data)
        assert len(PdfReader(io.BytesIO(r.data)).pages) >= 1

    def test_header_injection_in_number_stripped(self, client, database, sample_client):
        qid = _seed(database, sample_client, 'A"B\r\nX-Evil: 1')["id"]
        r = client.get(f"/api/export-quotation?id={qid}")
        assert r.status_code == 200
        dispo = r.headers["Content-Disposition"]
        assert "\r" not in dispo and "\n" not in dispo
        assert dispo.startswith('attachment; filename="quotation-ABX-Evil_1.pdf"')
        assert "X-Evil" not in r.headers

    def test_non_ascii_number_has_ascii_fallback(self, client, database, sample_client):
        qid = _seed(database, sample_client, "টিটি-২০২৫")["id"]
        r = client.get(f"/api/export-quotation?id={qid}")
        assert r.status_code == 200
        dispo = r.headers["Content-Disposition"]
        assert dispo.isascii()
        assert "filename*=UTF-8''quotation-" in dispo
        assert r.data.startswith(b"%PDF")

    def test_bad_response_headers_answer_json(self, client, monkeypatch):
        from techmak.api import dashboard
        monkeypatch.setattr(dashboard, "generate_quote_pdf", lambda qid: {
            "data": b"%PDF", "mimetype": "application/pdf",
            "headers": {"Content-Disposition": "attachment\r\nX-Evil: 1"}})
        r = client.get("/api/export-quotation?id=abc")
        assert r.status_code == 500
        assert r.mimetype == "application/json"
        assert "error" in r.get_json()

    def test_logo_missing_500(self, client, seeded_quotation, monkeypatch, tmp_path):
        monkeypatch.setenv("TECHMAK_LOGO_SOURCE", str(tmp_path / "missing.png"))
        r = client.get(f"/api/export-quotation?id={seeded_quotation['id']}")
        assert r.status_code == 500
        assert "Logo not found" in r.get_json()["error"]

    def test_unexpected_error_500(self, client, monkeypatch):
        def broken(qid):
            raise RuntimeError("database is locked")
        monkeypatch.setattr(db, "fetch_quote_record", broken)
        r = client.get("/api/export-quotation?id=abc")
        assert r.status_code == 500
        assert r.get_json() == {"error": "database is locked"}

    def test_blank_exception_message(self, client, monkeypatch):
        def broken(qid):
            raise RuntimeError()
        monkeypatch.setattr(db, "fetch_quote_record", broken)
        r = client.get("/api/export-quotation?id=abc")
        assert r.get_json() == {"error": "Unknown error"}


# ═══════════════════════════════════════════════════════════════════════════════
# JSON endpoints
# ═══════════════════════════════════════════════════════════════════════════════

class TestQuotationApi:

    def test_get_quotation_empty(self, client):
        r = client.get("/api/get-quotation")
        assert r.status_code == 200
        assert r.get_json() == {"quotations": []}

    def test_get_quotation(self, client, seeded_quotation):
        data = client.get("/api/get-quotation").get_json()
        assert data["quotations"][0]["id"] == seeded_quotation["id"]
        assert data["quotations"][0]["clients"]["name"] == "Dhaka Medical College Hospital"

    def test_insert(self, client):
        cid = db.upsert_client({"name": "BUET"})
        item = db.upsert_item({"item_name": "Projector"})
        r = client.post("/api/insert_quotation", json={
            "userId": "u-7",
            "formData": {"client_id": cid, "quotation_number": "TT-77",
                         "discount": 10, "tax_rate": 15,
                         "line_items": [{"item_id": item, "quantity": 2, "rate": 500,
                                         "line_item_total": 1000}]},
        })
        assert r.status_code == 200
        body = r.get_json()
        assert body["success"] is True
        assert body["quotation"]["total_amount"] == pytest.approx(1035)

    @pytest.mark.parametrize("payload", [{}, {"formData": {"x": 1}}, {"userId": "u"}])
    def test_insert_missing_parts(self, client, payload):
        r = client.post("/api/insert_quotation", json=payload)
        assert r.status_code == 400
        assert "error" in r.get_json()

    def test_client_item_api(self, client):
        db.upsert_client({"name": "BUET"})
        db.upsert_item({"item_name": "Projector"})
        data = client.get("/api/client_item_api").get_json()
        assert [c["name"] for c in data["clients"]] == ["BUET"]
        assert [i["item_name"] for i in data["items"]] == ["Projector"]


class TestDashboardApi:

    def test_purchase_orders_default_limit(self, client, seed_row):
        for i in range(8):
            seed_row("purchase_orders", po_number=f"PO-{i}")
        assert len(client.get("/api/purchase-order").get_json()) == 5
        assert len(client.get("/api/purchase-order?limit=2").get_json()) == 2
        assert len(client.get("/api/purchase-order?limit=zero").get_json()) == 5

    def test_stats(self, client, seeded_quotation):
        assert client.get("/api/stats").get_json() == {
            "invoices": 0, "bills": 0, "pos": 0, "quotations": 1}

    def test_health(self, client, logo_path):
        data = client.get("/api/health").get_json()
        assert data["status"] == "ok"
        assert data["logo_source"] == logo_path
        assert data["db"]["quotations"] == 0

    def test_unknown_route_404(self, client):
        assert client.get("/api/nope").status_code == 404
