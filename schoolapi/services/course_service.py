"""COURSE SERVICE"""

import logging

import rollbar

from schoolapi import db
from schoolapi.config import SETTINGS
from schoolapi.errors import CourseDuplicated, CourseNotFound, NotAllowed
from schoolapi.models import Course, User, as_uuid

logger = logging.getLogger()


class CourseService:
    """Course Class"""

    @staticmethod
    def create_course(course, user):
        logger.info("[SERVICE]: Creating course")
        if user.role == "TEACHER":
            teacher_id = user.id
        elif user.role == "ADMIN":
            teacher_id = course.get("teacher_id")
            if teacher_id is not None:
                teacher_uuid = as_uuid(teacher_id)
                teacher = User.query.get(teacher_uuid) if teacher_uuid else None
                if not teacher or teacher.role != "TEACHER":
                    raise NotAllowed(message="teacher_id must reference a teacher")
                teacher_id = teacher.id
        else:
            raise NotAllowed(message="Only teachers and admins can create courses")

        code = str(course.get("code")).strip().upper()
        if Course.query.filter_by(code=code).first():
            raise CourseDuplicated(message=f"Course with code {code} already exists")

        capacity = course.get("capacity", SETTINGS.get("MAX_STUDENTS_PER_COURSE", 30))
        course = Course(
            name=course.get("name"),
            code=code,
            teacher_id=teacher_id,
            description=course.get("description", ""),
            level=course.get("level", "BASIC"),
            schedule=course.get("schedule"),
            classroom=course.get("classroom"),
            capacity=capacity,
        )
        try:
            logger.info("[DB]: ADD")
            db.session.add(course)
            db.session.commit()
        except Exception as error:
            db.session.rollback()
            rollbar.report_exc_info()
            raise error
        return course

    @staticmethod
    def get_courses(teacher_id=None):
        logger.info("[SERVICE]: Getting courses")
        logger.info("[DB]: QUERY")
        query = Course.query.filter_by(is_active=True)
        if teacher_id:
            teacher_uuid = as_uuid(teacher_id)
            if teacher_uuid is None:
                return []
            query = query.filter_by(teacher_id=teacher_uuid)
        return query.order_by(Course.name).all()

    @staticmethod
    def get_course(course_id):
        logger.info(f"[SERVICE]: Getting course {course_id}")
        course_uuid = as_uuid(course_id)
        course = Course.query.get(course_uuid) if course_uuid else None
        if not course:
            raise CourseNotFound(message=f"Course with id {course_id} does not exist")
        return course

    @staticmethod
    def get_managed_course(course_id, user):
        """Course the user may manage; teachers only manage their own courses"""
        if user.role not in ("TEACHER", "ADMIN"):
            raise NotAllowed(message="Only teachers and admins can manage courses")
        course = CourseService.get_course(course_id)
        if user.role == "TEACHER" and course.teacher_id != user.id:
            raise NotAllowed(message="Teachers can only manage their own courses")
        return course
