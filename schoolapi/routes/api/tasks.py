"""Task routes"""

import logging

from flask import jsonify, request
from flask_jwt_extended import current_user, jwt_required

from schoolapi.errors import CourseNotFound, NotAllowed, TaskNotFound
from schoolapi.routes.api import endpoints, error
from schoolapi.services import TaskService
from schoolapi.validators import validate_task_creation

logger = logging.getLogger()


@endpoints.route("/tasks", strict_slashes=False, methods=["GET"])
@jwt_required()
def get_tasks():
    """
    Tasks, newest first.

    **Query Parameters**:
    - `courseId`, `teacherId`: only tasks of this course or teacher
    - `active`: `true` or `false`
    """
    logger.info("[ROUTER]: Getting tasks")
    active = request.args.get("active")
    tasks = TaskService.get_tasks(
        course_id=request.args.get("courseId"),
        teacher_id=request.args.get("teacherId"),
        active=None if active is None else active.lower() == "true",
    )
    return jsonify(data=[task.serialize() for task in tasks]), 200


@endpoints.route("/tasks", strict_slashes=False, methods=["POST"])
@jwt_required()
@validate_task_creation
def create_task():
    logger.info("[ROUTER]: Creating task")
    try:
        task = TaskService.create_task(request.get_json(), current_user)
    except CourseNotFound as e:
        logger.error("[ROUTER]: " + e.message)
        return error(status=400, detail=e.message)
    except NotAllowed as e:
        logger.error("[ROUTER]: " + e.message)
        return error(status=403, detail=e.message)
    except Exception as e:
        logger.error("[ROUTER]: " + str(e))
        return error(status=500, detail="Generic Error")
    return jsonify(data=task.serialize()), 201


@endpoints.route("/tasks/<task_id>", strict_slashes=False, methods=["GET"])
@jwt_required()
def get_task(task_id):
    logger.info(f"[ROUTER]: Getting task {task_id}")
    try:
        task = TaskService.get_task(task_id)
    except TaskNotFound as e:
        logger.error("[ROUTER]: " + e.message)
        return error(status=404, detail=e.message)
    return jsonify(data=task.serialize()), 200
