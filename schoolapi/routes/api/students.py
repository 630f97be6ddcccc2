"""Student routes"""

import logging

from flask import jsonify, request
from flask_jwt_extended import jwt_required

from schoolapi.routes.api import endpoints
from schoolapi.services import UserService

logger = logging.getLogger()


@endpoints.route("/students", strict_slashes=False, methods=["GET"])
@jwt_required()
def get_students():
    logger.info("[ROUTER]: Getting students")
    students = UserService.get_students(search=request.args.get("search"))
    return jsonify(data=[student.serialize() for student in students]), 200
