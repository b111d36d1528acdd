# backend/posfin/routes/system.py
"""
System health endpoint.

Reports whether the configured report zone resolves and whether the engine
can build a summary over an empty snapshot.
"""

import time
from flask import Blueprint, current_app

from posfin.services import reporting_service
from posfin.time_utils import get_zone, local_now, to_iso

system_bp = Blueprint("system", __name__)


def check_timezone_health() -> dict:
    """Unknown zone names silently fall back to UTC; surface that as degraded."""
    tz_name = current_app.config.get("REPORT_TIMEZONE") or "UTC"
    zone = get_zone(tz_name)
    resolved = getattr(zone, "key", None) or str(zone)

    if tz_name.upper() != "UTC" and resolved == "UTC":
        return {
            "status": "degraded",
            "warning": f"Unknown REPORT_TIMEZONE {tz_name!r}, using UTC",
        }
    return {"status": "healthy", "details": {"timezone": resolved}}


def check_engine_health() -> dict:
    start_time = time.time()
    try:
        engine = reporting_service.build_engine({}, current_app.config)
        ctx = engine.context(time_range="today", sale_mode="normal")
        reporting_service.financial_summary(engine, ctx)
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Report engine health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Report engine error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: engine unhealthy
    """
    timezone_health = check_timezone_health()
    engine_health = check_engine_health()

    all_checks = [timezone_health, engine_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    response = {
        "status": overall_status,
        "timestamp": to_iso(local_now(current_app.config.get("REPORT_TIMEZONE"))),
        "checks": {
            "timezone": timezone_health,
            "engine": engine_health,
        },
    }
    return response, http_status
