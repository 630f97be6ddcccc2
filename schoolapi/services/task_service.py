"""TASK SERVICE"""

import logging

import rollbar

from schoolapi import db
from schoolapi.errors import NotAllowed, TaskNotFound
from schoolapi.models import Task, User, as_uuid
from schoolapi.services.course_service import CourseService

logger = logging.getLogger()


class TaskService:
    """Task Class"""

    @staticmethod
    def create_task(task, user):
        logger.info("[SERVICE]: Creating task")
        course = CourseService.get_managed_course(task.get("courseId"), user)

        if user.role == "TEACHER":
            teacher_id = user.id
        else:
            teacher_id = task.get("teacherId") or course.teacher_id
            teacher_uuid = as_uuid(teacher_id) if teacher_id else None
            teacher = User.query.get(teacher_uuid) if teacher_uuid else None
            if not teacher or teacher.role != "TEACHER":
                raise NotAllowed(message="teacherId must reference a teacher")
            teacher_id = teacher.id

        task = Task(
            title=task.get("title"),
            course_id=course.id,
            teacher_id=teacher_id,
            description=task.get("description", ""),
            task_type=task.get("type", "ASSIGNMENT"),
            max_score=task.get("maxScore", 5),
            due_date=task.get("dueDate"),
        )
        try:
            logger.info("[DB]: ADD")
            db.session.add(task)
            db.session.commit()
        except Exception as error:
            db.session.rollback()
            rollbar.report_exc_info()
            raise error
        return task

    @staticmethod
    def get_tasks(course_id=None, teacher_id=None, active=None):
        logger.info("[SERVICE]: Getting tasks")
        logger.info("[DB]: QUERY")
        query = Task.query
        for column, value in (
            (Task.course_id, course_id),
            (Task.teacher_id, teacher_id),
        ):
            if value:
                value_uuid = as_uuid(value)
                if value_uuid is None:
                    return []
                query = query.filter(column == value_uuid)
        if active is not None:
            query = query.filter_by(is_active=active)
        return query.order_by(Task.created_at.desc()).all()

    @staticmethod
    def get_task(task_id):
        logger.info(f"[SERVICE]: Getting task {task_id}")
        task_uuid = as_uuid(task_id)
        task = Task.query.get(task_uuid) if task_uuid else None
        if not task:
            raise TaskNotFound(message=f"Task with id {task_id} does not exist")
        return task
