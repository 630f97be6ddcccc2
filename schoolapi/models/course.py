"""COURSE MODEL"""

import datetime
import uuid

from schoolapi import db
from schoolapi.models import GUID

db.GUID = GUID

LEVELS = ("BASIC", "INTERMEDIATE", "ADVANCED")


class Course(db.Model):
    id = db.Column(
        db.GUID(),
        default=lambda: str(uuid.uuid4()),
        primary_key=True,
        autoincrement=False,
    )
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(20), unique=True, nullable=False)
    description = db.Column(db.Text(), default="")
    level = db.Column(db.String(20), nullable=False, default="BASIC")
    schedule = db.Column(db.String(120))
    classroom = db.Column(db.String(60))
    capacity = db.Column(db.Integer(), nullable=False, default=30)
    teacher_id = db.Column(db.GUID(), db.ForeignKey("user.id"), nullable=True)
    is_active = db.Column(db.Boolean(), default=True, nullable=False)
    created_at = db.Column(db.DateTime(), default=datetime.datetime.utcnow)

    def __init__(
        self,
        name,
        code,
        teacher_id=None,
        description="",
        level="BASIC",
        schedule=None,
        classroom=None,
        capacity=30,
    ):
        self.name = name
        self.code = code
        self.teacher_id = teacher_id
        self.description = description
        self.level = level if level in LEVELS else "BASIC"
        self.schedule = schedule
        self.classroom = classroom
        self.capacity = capacity
        self.is_active = True

    def __repr__(self):
        return f"<Course {self.code!r}>"

    def serialize(self):
        return {
            "id": str(self.id),
            "name": self.name,
            "code": self.code,
            "description": self.description,
            "level": self.level,
            "schedule": self.schedule,
            "classroom": self.classroom,
            "capacity": self.capacity,
            "teacher_id": str(self.teacher_id) if self.teacher_id else None,
            "teacher_name": self.teacher.name if self.teacher else None,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
