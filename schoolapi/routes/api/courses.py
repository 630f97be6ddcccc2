"""Course routes"""

import logging

from flask import jsonify, request
from flask_jwt_extended import current_user, jwt_required

from schoolapi.errors import CourseDuplicated, CourseNotFound, NotAllowed
from schoolapi.routes.api import endpoints, error
from schoolapi.services import CourseService
from schoolapi.validators import validate_course_creation

logger = logging.getLogger()


@endpoints.route("/courses", strict_slashes=False, methods=["GET"])
def get_courses():
    logger.info("[ROUTER]: Getting courses")
    teacher_id = request.args.get("teacherId")
    courses = CourseService.get_courses(teacher_id=teacher_id)
    return jsonify(data=[course.serialize() for course in courses]), 200


@endpoints.route("/courses", strict_slashes=False, methods=["POST"])
@jwt_required()
@validate_course_creation
def create_course():
    logger.info("[ROUTER]: Creating course")
    if current_user.role not in ("TEACHER", "ADMIN"):
        return error(status=403, detail="Forbidden")
    try:
        course = CourseService.create_course(request.get_json(), current_user)
    except CourseDuplicated as e:
        logger.error("[ROUTER]: " + e.message)
        return error(status=400, detail=e.message)
    except NotAllowed as e:
        logger.error("[ROUTER]: " + e.message)
        return error(status=403, detail=e.message)
    except Exception as e:
        logger.error("[ROUTER]: " + str(e))
        return error(status=500, detail="Generic Error")
    return jsonify(data=course.serialize()), 201


@endpoints.route("/courses/<course_id>", strict_slashes=False, methods=["GET"])
def get_course(course_id):
    logger.info(f"[ROUTER]: Getting course {course_id}")
    try:
        course = CourseService.get_course(course_id)
    except CourseNotFound as e:
        logger.error("[ROUTER]: " + e.message)
        return error(status=404, detail=e.message)
    return jsonify(data=course.serialize()), 200
