"""TASK SUBMISSION MODEL"""

import datetime
import uuid

from schoolapi import db
from schoolapi.models import GUID

db.GUID = GUID


class TaskSubmission(db.Model):
    __table_args__ = (db.UniqueConstraint("task_id", "student_id"),)

    id = db.Column(
        db.GUID(),
        default=lambda: str(uuid.uuid4()),
        primary_key=True,
        autoincrement=False,
    )
    task_id = db.Column(db.GUID(), db.ForeignKey("task.id"), nullable=False)
    student_id = db.Column(db.GUID(), db.ForeignKey("user.id"), nullable=False)
    content = db.Column(db.Text())
    file_id = db.Column(db.GUID(), db.ForeignKey("uploaded_file.id"))
    submitted_at = db.Column(db.DateTime(), default=datetime.datetime.utcnow)
    is_late = db.Column(db.Boolean(), default=False, nullable=False)
    student = db.relationship("User", foreign_keys=[student_id])
    file = db.relationship("UploadedFile")

    def __init__(self, task_id, student_id, content=None, file_id=None, is_late=False):
        self.task_id = task_id
        self.student_id = student_id
        self.content = content
        self.file_id = file_id
        self.is_late = is_late

    def __repr__(self):
        return f"<TaskSubmission {self.task_id!r} {self.student_id!r}>"

    def serialize(self):
        return {
            "id": str(self.id),
            "task_id": str(self.task_id),
            "student_id": str(self.student_id),
            "content": self.content,
            "file_id": str(self.file_id) if self.file_id else None,
            "submitted_at": (
                self.submitted_at.isoformat() if self.submitted_at else None
            ),
            "is_late": self.is_late,
        }
