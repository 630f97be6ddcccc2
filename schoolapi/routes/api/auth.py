"""Authentication routes"""

import logging

from flask import jsonify, request
from flask_jwt_extended import create_access_token

from schoolapi.errors import AccountLockedError, AuthError, UserDuplicated
from schoolapi.routes.api import endpoints, error
from schoolapi.services import UserService
from schoolapi.validators import validate_user_creation

logger = logging.getLogger()


@endpoints.route("/auth/login", strict_slashes=False, methods=["POST"])
def login():
    """Exchange an email or identification number and password for a token."""
    logger.info("[ROUTER]: Login attempt")
    json_data = request.get_json(silent=True)
    if not isinstance(json_data, dict):
        json_data = {}
    identifier = json_data.get("identifier") or json_data.get("email")
    password = json_data.get("password")

    if not identifier or not password:
        return error(status=400, detail="Identifier and password are required")

    try:
        user = UserService.authenticate_user(str(identifier), str(password))
    except AccountLockedError as e:
        response = jsonify({"status": 429, "detail": e.message, **e.serialize})
        response.status_code = 429
        if e.retry_after is not None:
            response.headers["Retry-After"] = str(e.retry_after)
        return response
    except AuthError as e:
        return jsonify({"status": 401, "detail": e.message, **e.serialize}), 401

    access_token = create_access_token(identity=str(user.id))
    return jsonify({"access_token": access_token, "user": user.serialize()}), 200


@endpoints.route("/auth/register", strict_slashes=False, methods=["POST"])
@validate_user_creation
def register():
    """Self-registration always creates a student account."""
    logger.info("[ROUTER]: Registering user")
    try:
        user = UserService.create_user(request.get_json(), role="STUDENT")
    except UserDuplicated as e:
        logger.error("[ROUTER]: " + e.message)
        return error(status=400, detail=e.message)
    except Exception as e:
        logger.error("[ROUTER]: " + str(e))
        return error(status=500, detail="Generic Error")
    return jsonify(data=user.serialize()), 201
