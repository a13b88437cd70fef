"""
secrets.py — Centralized configuration and secret management for Techmak

Single source of truth for every environment-driven setting.

Env vars:
  SECRET_KEY            — Flask session signing key
  TECHMAK_LOGO_SOURCE   — Logo for the quotation header (http(s) URL or local path)
  TECHMAK_DATA_DIR      — Directory holding techmak.db, logs and the default logo
  LOG_LEVEL             — Root log level (default INFO)
  TECHMAK_JSON_LOGS     — "1" switches console logs to JSON lines

Security:
  - Sensitive values are never logged in full (masked to first 8 chars)
  - Health endpoint shows which keys are set (not values)
"""

import os
import logging

log = logging.getLogger("techmak.secrets")

# ─── Definitions ─────────────────────────────────────────────────────────────

_REGISTRY = {
    "secret_key": {
        "env": "SECRET_KEY",
        "required": True,
        "desc": "Flask session signing key",
        "default": "techmak-admin-dev",
        "sensitive": True,
    },
    "logo_source": {
        "env": "TECHMAK_LOGO_SOURCE",
        "required": False,
        "desc": "Quotation header logo (URL or file path)",
    },
    "data_dir": {
        "env": "TECHMAK_DATA_DIR",
        "required": False,
        "desc": "Data directory for the database, logs and default logo",
    },
    "log_level": {
        "env": "LOG_LEVEL",
        "required": False,
        "desc": "Root log level",
        "default": "INFO",
    },
    "json_logs": {
        "env": "TECHMAK_JSON_LOGS",
        "required": False,
        "desc": "Emit JSON console logs when set to 1",
    },
}


# ─── Public API ──────────────────────────────────────────────────────────────

def get_key(name: str) -> str:
    """Get a setting by registry name. Returns empty string if not set."""
    entry = _REGISTRY.get(name)
    if not entry:
        log.warning("Unknown setting requested: %s", name)
        return ""

    val = os.environ.get(entry["env"], "")
    if not val and "default" in entry:
        val = entry["default"]
    return val


def mask(value: str) -> str:
    """Mask a secret for safe logging. Shows first 8 chars."""
    if not value:
        return "(not set)"
    if len(value) <= 12:
        return value[:4] + "****"
    return value[:8] + "****" + f"({len(value)} chars)"


def validate_all() -> dict:
    """Validate all settings. Returns status report."""
    results = {}
    warnings = []
    for name, entry in _REGISTRY.items():
        val = get_key(name)
        is_set = bool(val)
        results[name] = {
            "set": is_set,
            "env": entry["env"],
            "desc": entry["desc"],
            "masked": mask(val) if entry.get("sensitive") else (val or "(not set)"),
            "required": entry.get("required", False),
        }
        if entry.get("required") and not is_set:
            warnings.append(f"REQUIRED setting missing: {entry['env']} ({entry['desc']})")
        if entry.get("sensitive") and val and val == entry.get("default"):
            warnings.append(f"{entry['env']} is using the development default")

    return {
        "settings": results,
        "total": len(results),
        "set": sum(1 for r in results.values() if r["set"]),
        "missing": sum(1 for r in results.values() if not r["set"]),
        "warnings": warnings,
    }


def startup_check():
    """Run on startup. Logs warnings for missing or default settings."""
    report = validate_all()
    log.info("Settings: %d/%d configured", report["set"], report["total"])
    for w in report["warnings"]:
        log.warning("SETTING: %s", w)
    return report
