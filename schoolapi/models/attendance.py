"""ATTENDANCE MODEL"""

import datetime
import uuid

from schoolapi import db
from schoolapi.models import GUID

db.GUID = GUID

ATTENDANCE_STATUSES = ("PRESENT", "ABSENT", "LATE", "EXCUSED")


class Attendance(db.Model):
    """One student's attendance to one course on one day"""

    __table_args__ = (db.UniqueConstraint("student_id", "course_id", "date"),)

    id = db.Column(
        db.GUID(),
        default=lambda: str(uuid.uuid4()),
        primary_key=True,
        autoincrement=False,
    )
    student_id = db.Column(db.GUID(), db.ForeignKey("user.id"), nullable=False)
    course_id = db.Column(db.GUID(), db.ForeignKey("course.id"), nullable=False)
    date = db.Column(db.Date(), nullable=False)
    status = db.Column(db.String(10), nullable=False)
    notes = db.Column(db.Text())
    recorded_by = db.Column(db.GUID(), db.ForeignKey("user.id"))
    recorded_at = db.Column(db.DateTime(), default=datetime.datetime.utcnow)
    student = db.relationship("User", foreign_keys=[student_id])
    recorder = db.relationship("User", foreign_keys=[recorded_by])
    course = db.relationship("Course")

    def __init__(
        self, student_id, course_id, date, status, notes=None, recorded_by=None
    ):
        self.student_id = student_id
        self.course_id = course_id
        self.date = date
        self.status = status
        self.notes = notes
        self.recorded_by = recorded_by

    def __repr__(self):
        return f"<Attendance {self.student_id!r} {self.date} {self.status}>"

    def serialize(self):
        return {
            "id": str(self.id),
            "date": self.date.isoformat(),
            "status": self.status,
            "notes": self.notes,
            "student": {
                "id": str(self.student.id),
                "name": self.student.name,
                "email": self.student.email,
                "identification": self.student.identification,
            },
            "course": {
                "id": str(self.course.id),
                "name": self.course.name,
                "code": self.course.code,
            },
            "recorded_by": str(self.recorded_by) if self.recorded_by else None,
            "recorded_at": self.recorded_at.isoformat() if self.recorded_at else None,
        }
