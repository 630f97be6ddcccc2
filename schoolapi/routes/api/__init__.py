from flask import Blueprint, jsonify

# GENERIC Error


def error(status=400, detail="Bad Request"):
    return jsonify({"status": status, "detail": detail}), status


endpoints = Blueprint("endpoints", __name__)
import schoolapi.routes.api.admin  # noqa: E402, F401
import schoolapi.routes.api.attendance  # noqa: E402, F401
import schoolapi.routes.api.auth  # noqa: E402, F401
import schoolapi.routes.api.courses  # noqa: E402, F401
import schoolapi.routes.api.files  # noqa: E402, F401
import schoolapi.routes.api.students  # noqa: E402, F401
import schoolapi.routes.api.tasks  # noqa: E402, F401
