"""ATTENDANCE SERVICE"""

import datetime
import logging

import rollbar

from schoolapi import db
from schoolapi.errors import UserNotFound
from schoolapi.models import Attendance, User, as_uuid
from schoolapi.services.course_service import CourseService

logger = logging.getLogger()


class AttendanceService:
    """Attendance Class"""

    @staticmethod
    def record_attendance(record, user):
        """Create or update the record of one student, course and day.

        Returns the record and whether it was created.
        """
        logger.info("[SERVICE]: Recording attendance")
        course = CourseService.get_managed_course(record.get("courseId"), user)

        student_uuid = as_uuid(record.get("studentId"))
        student = User.query.get(student_uuid) if student_uuid else None
        if not student or student.role != "STUDENT":
            raise UserNotFound(
                message=f"Student with id {record.get('studentId')} does not exist"
            )

        date = record.get("date") or datetime.datetime.utcnow().date()
        attendance = Attendance.query.filter_by(
            student_id=student.id, course_id=course.id, date=date
        ).first()
        created = attendance is None
        if created:
            attendance = Attendance(
                student_id=student.id,
                course_id=course.id,
                date=date,
                status=record.get("status"),
                notes=record.get("notes"),
                recorded_by=user.id,
            )
            db.session.add(attendance)
        else:
            attendance.status = record.get("status")
            attendance.notes = record.get("notes")
            attendance.recorded_by = user.id
            attendance.recorded_at = datetime.datetime.utcnow()
        try:
            logger.info("[DB]: ADD" if created else "[DB]: UPDATE")
            db.session.commit()
        except Exception as error:
            db.session.rollback()
            rollbar.report_exc_info()
            raise error
        return attendance, created

    @staticmethod
    def get_attendance(course_id=None, student_id=None, date=None):
        logger.info("[SERVICE]: Getting attendance")
        logger.info("[DB]: QUERY")
        query = Attendance.query
        for column, value in (
            (Attendance.course_id, course_id),
            (Attendance.student_id, student_id),
        ):
            if value:
                value_uuid = as_uuid(value)
                if value_uuid is None:
                    return []
                query = query.filter(column == value_uuid)
        if date is not None:
            query = query.filter(Attendance.date == date)
        return query.order_by(Attendance.date.desc()).all()
