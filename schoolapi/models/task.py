"""TASK MODEL"""

import datetime
import uuid

from schoolapi import db
from schoolapi.models import GUID

db.GUID = GUID

TASK_TYPES = ("ASSIGNMENT", "EXAM", "PROJECT", "QUIZ", "ACTIVITY")


class Task(db.Model):
    id = db.Column(
        db.GUID(),
        default=lambda: str(uuid.uuid4()),
        primary_key=True,
        autoincrement=False,
    )
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text(), default="")
    type = db.Column(db.String(20), nullable=False, default="ASSIGNMENT")
    max_score = db.Column(db.Float(), nullable=False, default=5.0)
    due_date = db.Column(db.DateTime())
    course_id = db.Column(db.GUID(), db.ForeignKey("course.id"), nullable=False)
    teacher_id = db.Column(db.GUID(), db.ForeignKey("user.id"), nullable=False)
    is_active = db.Column(db.Boolean(), default=True, nullable=False)
    created_at = db.Column(db.DateTime(), default=datetime.datetime.utcnow)
    course = db.relationship("Course", backref=db.backref("tasks", lazy="dynamic"))
    teacher = db.relationship("User", foreign_keys=[teacher_id])
    submissions = db.relationship(
        "TaskSubmission",
        backref=db.backref("task"),
        cascade="all, delete-orphan",
        lazy="dynamic",
    )

    def __init__(
        self,
        title,
        course_id,
        teacher_id,
        description="",
        task_type="ASSIGNMENT",
        max_score=5.0,
        due_date=None,
    ):
        self.title = title
        self.course_id = course_id
        self.teacher_id = teacher_id
        self.description = description
        self.type = task_type if task_type in TASK_TYPES else "ASSIGNMENT"
        self.max_score = max_score
        self.due_date = due_date
        self.is_active = True

    def __repr__(self):
        return f"<Task {self.title!r}>"

    def is_overdue(self, when):
        return self.due_date is not None and when > self.due_date

    def serialize(self):
        return {
            "id": str(self.id),
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "max_score": self.max_score,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "course": {
                "id": str(self.course.id),
                "name": self.course.name,
                "code": self.course.code,
            },
            "teacher": {
                "id": str(self.teacher.id),
                "name": self.teacher.name,
                "email": self.teacher.email,
            },
            "submission_count": self.submissions.count(),
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
