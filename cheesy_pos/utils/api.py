# --- cheesy_pos/utils/api.py ---
from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    # naive UTC, the way rows are stored
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _api_time_human(offset_hours: float = 0) -> str:
    return (utcnow() + timedelta(hours=offset_hours)).strftime("%Y-%m-%d %H:%M:%S")


def _offset_hours() -> float:
    from flask import current_app, has_app_context
    if not has_app_context():
        return 0
    return float(current_app.config.get("STORE_UTC_OFFSET_HOURS", 0))


def api_ok(message, data=None):
    return {
        "status": True,
        "message": message,
        "data": {
            **(data or {}),
            "API_TIME_HUMAN": _api_time_human(_offset_hours()),
        },
    }


def api_error(message, data=None):
    return {
        "status": False,
        "message": message,
        "data": {
            **(data or {}),
            "API_TIME_HUMAN": _api_time_human(_offset_hours()),
        },
    }


def ok(msg, data=None, status=200):
    from flask import jsonify
    r = jsonify(api_ok(msg, data)); r.status_code = status; return r
