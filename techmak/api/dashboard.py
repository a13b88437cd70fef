"""
Techmak Admin API
JSON endpoints behind the admin dashboard plus the quotation PDF download.
Registered on the app by create_app(); gunicorn entry is app:app.
"""

import time
import logging

from flask import Blueprint, Response, jsonify, request

from techmak.core.errors import QuoteDocumentError
from techmak.core import db
from techmak.forms.quote_generator import generate_quote_pdf

log = logging.getLogger("techmak.api")

bp = Blueprint("dashboard", __name__)


# ── Request-level structured logging ────────────────────────────────────────
@bp.before_request
def _log_request_start():
    request._start_time = time.time()


@bp.after_request
def _log_request_end(response):
    if hasattr(request, "_start_time"):
        duration_ms = round((time.time() - request._start_time) * 1000, 1)
        # health checks poll every few seconds
        if request.path != "/api/health":
            log.info("%s %s → %d (%.0fms)",
                     request.method, request.path, response.status_code, duration_ms,
                     extra={"route": request.path, "method": request.method,
                            "status": response.status_code, "duration_ms": duration_ms})
    return response


def _error(e: Exception):
    """JSON error body + status for any failure raised by a handler."""
    if isinstance(e, QuoteDocumentError):
        if e.status >= 500:
            log.error("%s: %s", type(e).__name__, e.message)
        return jsonify(e.to_dict()), e.status
    log.exception("Unhandled error on %s", request.path)
    return jsonify({"error": str(e) or "Unknown error"}), 500


# ═══════════════════════════════════════════════════════════════════════════════
# QUOTATIONS
# ═══════════════════════════════════════════════════════════════════════════════

@bp.route("/api/export-quotation")
def api_export_quotation():
    """Download one quotation as a PDF attachment."""
    qid = request.args.get("id", "")
    try:
        out = generate_quote_pdf(qid)
        return Response(out["data"], status=200, mimetype=out["mimetype"],
                        headers=out["headers"])
    except Exception as e:
        return _error(e)


@bp.route("/api/get-quotation")
def api_get_quotation():
    """All quotations, newest first, with client and line items."""
    try:
        return jsonify({"quotations": db.list_quotations()})
    except Exception as e:
        return _error(e)


@bp.route("/api/insert_quotation", methods=["POST"])
def api_insert_quotation():
    """Create a quotation from the form payload {formData, userId}."""
    body = request.get_json(silent=True) or {}
    try:
        row = db.insert_quotation(body.get("formData"), body.get("userId"))
    except Exception as e:
        return _error(e)
    return jsonify({"success": True, "quotation": row})


@bp.route("/api/client_item_api")
def api_client_item():
    """Clients and catalog items for the quotation form pickers."""
    try:
        return jsonify({"clients": db.list_clients(), "items": db.list_items()})
    except Exception as e:
        return _error(e)


# ═══════════════════════════════════════════════════════════════════════════════
# DASHBOARD CARDS
# ═══════════════════════════════════════════════════════════════════════════════

@bp.route("/api/purchase-order")
def api_purchase_orders():
    limit = request.args.get("limit", 5, type=int)
    if not limit or limit < 1:
        limit = 5
    try:
        return jsonify(db.list_purchase_orders(limit))
    except Exception as e:
        return _error(e)


@bp.route("/api/stats")
def api_stats():
    try:
        return jsonify(db.get_counts())
    except Exception as e:
        return _error(e)


@bp.route("/api/health")
def api_health():
    """Database reachability, logo source and which settings are present (never values)."""
    from techmak.core.secrets import validate_all
    from techmak.forms.asset_loader import default_logo_source
    health = {"status": "ok", "db": {}, "logo_source": default_logo_source(),
              "settings": {k: v["set"] for k, v in validate_all()["settings"].items()}}
    try:
        health["db"] = db.get_db_stats()
    except Exception as e:
        health["status"] = "degraded"
        health["db"] = {"error": str(e)}
    return jsonify(health)
