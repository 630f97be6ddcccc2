"""Admin routes for the audit log and rate limiting state."""

import logging

from flask import current_app, jsonify, request
from flask_jwt_extended import current_user, jwt_required

from schoolapi.routes.api import endpoints, error
from schoolapi.utils.security_events import LogCategory, LogLevel, log_admin_action

logger = logging.getLogger()

MAX_LOG_ENTRIES = 500


def _admission():
    return current_app.extensions["admission"]


@endpoints.route("/admin/logs", methods=["GET"])
@jwt_required()
def get_audit_logs():
    """
    Most recent audit events, newest first.

    **Access**: Restricted to users with `role: "ADMIN"`

    **Query Parameters**:
    - `level`: only events of this level (DEBUG, INFO, WARN, ERROR, SECURITY, AUDIT)
    - `category`: only events of this category (AUTH, ACCESS, SYSTEM, SECURITY,
      DATABASE, API, USER)
    - `limit`: maximum number of events (default 100, max 500)
    """
    if current_user.role != "ADMIN":
        return error(status=403, detail="Forbidden")

    try:
        level = request.args.get("level")
        level = LogLevel(level.upper()) if level else None
        category = request.args.get("category")
        category = LogCategory(category.upper()) if category else None
        limit = min(int(request.args.get("limit", 100)), MAX_LOG_ENTRIES)
    except ValueError:
        return error(status=400, detail="Invalid level, category or limit")

    audit = _admission().audit
    audit.flush()
    events = audit.recent(limit=max(limit, 0), level=level, category=category)
    log_admin_action(current_user, "view_audit_logs")
    return jsonify(data=[event.serialize() for event in events]), 200


@endpoints.route("/admin/rate-limits", methods=["GET"])
@jwt_required()
def get_rate_limit_status():
    """
    Rate limiting configuration, open windows and locked identifiers.

    **Access**: Restricted to users with `role: "ADMIN"`
    """
    if current_user.role != "ADMIN":
        return error(status=403, detail="Forbidden")

    admission = _admission()
    settings = admission.settings
    return jsonify(
        data={
            "enabled": settings.rate_limiting_enabled,
            "limits": {
                scope: {
                    "max_requests": limit.max_requests,
                    "window_seconds": limit.window_seconds,
                }
                for scope, limit in settings.limits.items()
            },
            "sensitive_endpoints": settings.sensitive_endpoints,
            "active_windows": [
                window.serialize() for window in admission.rate_limiter.active_windows()
            ],
            "active_lockouts": [
                {
                    "identifier": record.identifier,
                    "failure_count": record.failure_count,
                    "locked_until": record.locked_until,
                }
                for record in admission.lockout.active_lockouts()
            ],
        }
    ), 200


@endpoints.route("/admin/rate-limits/reset", methods=["POST"])
@jwt_required()
def reset_rate_limits():
    """
    Clear rate limit windows, and optionally a login lockout.

    **Access**: Restricted to users with `role: "ADMIN"`

    **Request** (all optional):
    - `identifier`: client address whose windows are cleared; every window is
      cleared when omitted
    - `account`: login identifier whose lockout is lifted
    """
    if current_user.role != "ADMIN":
        return error(status=403, detail="Forbidden")

    json_data = request.get_json(silent=True)
    if not isinstance(json_data, dict):
        json_data = {}
    identifier = json_data.get("identifier")
    account = json_data.get("account")

    admission = _admission()
    removed = admission.rate_limiter.reset(identifier)
    if account:
        admission.lockout.record_success(account)

    log_admin_action(
        current_user,
        "reset_rate_limits",
        target=", ".join(str(t) for t in (identifier, account) if t) or "all",
    )
    return jsonify(
        {"message": "Rate limits have been reset.", "windows_removed": removed}
    ), 200
