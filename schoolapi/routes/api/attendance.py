"""Attendance routes"""

import logging

from flask import jsonify, request
from flask_jwt_extended import current_user, jwt_required

from schoolapi.errors import CourseNotFound, NotAllowed, UserNotFound
from schoolapi.routes.api import endpoints, error
from schoolapi.services import AttendanceService
from schoolapi.validators import parse_date, validate_attendance

logger = logging.getLogger()


@endpoints.route("/attendance", strict_slashes=False, methods=["GET"])
@jwt_required()
def get_attendance():
    """
    Attendance records, most recent day first.

    **Access**: students only see their own records

    **Query Parameters**:
    - `courseId`, `studentId`: only records of this course or student
    - `date`: only records of this day (YYYY-MM-DD)
    """
    logger.info("[ROUTER]: Getting attendance")
    date = request.args.get("date")
    try:
        date = parse_date(date).date() if date else None
    except ValueError as e:
        return error(status=400, detail=str(e))

    student_id = request.args.get("studentId")
    if current_user.role == "STUDENT":
        student_id = str(current_user.id)

    records = AttendanceService.get_attendance(
        course_id=request.args.get("courseId"), student_id=student_id, date=date
    )
    return jsonify(data=[record.serialize() for record in records]), 200


@endpoints.route("/attendance", strict_slashes=False, methods=["POST"])
@jwt_required()
@validate_attendance
def record_attendance():
    logger.info("[ROUTER]: Recording attendance")
    try:
        record, created = AttendanceService.record_attendance(
            request.get_json(), current_user
        )
    except (CourseNotFound, UserNotFound) as e:
        logger.error("[ROUTER]: " + e.message)
        return error(status=400, detail=e.message)
    except NotAllowed as e:
        logger.error("[ROUTER]: " + e.message)
        return error(status=403, detail=e.message)
    except Exception as e:
        logger.error("[ROUTER]: " + str(e))
        return error(status=500, detail="Generic Error")
    return jsonify(data=record.serialize()), 201 if created else 200
