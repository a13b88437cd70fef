"""
techmak/core/startup_checks.py — Runtime Self-Test on App Boot

Runs once when the app starts:

  1. Path resolution — DATA_DIR exists and is writable
  2. Config — required settings present, dev defaults flagged
  3. Database — schema reachable, row counts readable
  4. Logo — quotation header logo configured and decodable
  5. Route integrity — no duplicate endpoints

Failures are logged, never raised: a broken logo should not stop the
dashboard from serving lists.
"""

import logging

log = logging.getLogger("techmak.startup")


def run_startup_checks(app=None) -> dict:
    """Run all startup validation checks. Call from create_app() after blueprint registration.

    Returns:
        {"passed": int, "failed": int, "warnings": int, "details": [...]}
    """
    results = {"passed": 0, "failed": 0, "warnings": 0, "details": []}

    def _pass(msg):
        results["passed"] += 1
        results["details"].append(("PASS", msg))
        log.info("✅ %s", msg)

    def _fail(msg):
        results["failed"] += 1
        results["details"].append(("FAIL", msg))
        log.error("❌ STARTUP CHECK FAILED: %s", msg)

    def _warn(msg):
        results["warnings"] += 1
        results["details"].append(("WARN", msg))
        log.warning("⚠️  %s", msg)

    # ── 1. Path Validation ────────────────────────────────────────────────────
    try:
        from techmak.core.paths import validate_paths, DATA_DIR
        path_result = validate_paths()
        if path_result["ok"]:
            _pass(f"All paths valid (DATA_DIR={DATA_DIR})")
        else:
            for err in path_result["errors"]:
                _fail(err)
        for warn in path_result.get("warnings", []):
            _warn(warn)
    except Exception as e:
        _fail(f"Path validation error: {e}")

    # ── 2. Config ─────────────────────────────────────────────────────────────
    try:
        from techmak.core.secrets import validate_all
        cfg = validate_all()
        required = [s["env"] for s in cfg["settings"].values()
                    if s["required"] and not s["set"]]
        for env in required:
            _fail(f"Required setting missing: {env}")
        if not required:
            _pass(f"Settings: {cfg['set']}/{cfg['total']} configured")
        for warn in cfg.get("warnings", []):
            if not warn.startswith("REQUIRED"):
                _warn(warn)
    except Exception as e:
        _warn(f"Config check skipped: {e}")

    # ── 3. Database ───────────────────────────────────────────────────────────
    try:
        from techmak.core.db import get_counts
        counts = get_counts()
        _pass(f"Database reachable ({counts.get('quotations', 0)} quotations)")
    except Exception as e:
        _fail(f"Database unreachable: {e}")

    # ── 4. Logo ───────────────────────────────────────────────────────────────
    try:
        from techmak.forms.asset_loader import LogoLoader
        asset = LogoLoader().load()
        _pass(f"Logo readable ({asset.width}x{asset.height} px from {asset.source})")
    except Exception as e:
        _warn(f"Quotation export will fail until the logo is fixed: {e}")

    # ── 5. Route Integrity (if app provided) ──────────────────────────────────
    if app:
        try:
            rules = [r for r in app.url_map.iter_rules()
                     if r.endpoint and not r.endpoint.startswith("static")]
            _pass(f"Flask routes registered: {len(rules)}")

            seen = {}
            for r in rules:
                seen.setdefault(r.endpoint, set()).add(r.rule)
            dupes = {e for e, paths in seen.items() if len(paths) > 1}
            if dupes:
                _fail(f"Duplicate route endpoints: {dupes}")
        except Exception as e:
            _warn(f"Route check skipped: {e}")

    # ── Summary ──────────────────────────────────────────────────────────────
    total = results["passed"] + results["failed"] + results["warnings"]
    if results["failed"] > 0:
        log.error("STARTUP: %d/%d checks FAILED, app may not work correctly",
                  results["failed"], total)
    else:
        log.info("STARTUP: All %d checks passed (%d warnings)",
                 results["passed"], results["warnings"])

    return results
