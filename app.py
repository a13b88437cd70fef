#!/usr/bin/env python3
"""
Techmak Admin — Application Entry Point
Creates Flask app and registers the dashboard Blueprint.
"""

import os
import logging
from flask import Flask

from logging_config import setup_logging

log = logging.getLogger("techmak")


def create_app(configure_logging: bool = True):
    """Application factory."""
    if configure_logging:
        setup_logging()

    from techmak.core.secrets import get_key, startup_check
    app = Flask(__name__)
    app.secret_key = get_key("secret_key")
    startup_check()

    # ── Database init ─────────────────────────────────────────────────────────
    try:
        from techmak.core.db import startup as db_startup
        result = db_startup()
        log.info("DB: %s | quotations=%d pos=%d",
                 result["db_path"],
                 result["stats"].get("quotations", 0),
                 result["stats"].get("pos", 0))
    except Exception as e:
        log.warning("DB init skipped: %s", e)

    # Register the dashboard blueprint (all routes)
    from techmak.api.dashboard import bp
    app.register_blueprint(bp)

    # ── Runtime self-test: paths, settings, DB, logo, routes ─────────────
    try:
        from techmak.core.startup_checks import run_startup_checks
        with app.app_context():
            checks = run_startup_checks(app)
            if checks["failed"] > 0:
                log.error("STARTUP: %d checks FAILED, review logs", checks["failed"])
    except Exception as e:
        log.warning("Startup checks skipped: %s", e)

    return app


# For gunicorn: gunicorn app:app
app = create_app()

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=False)
