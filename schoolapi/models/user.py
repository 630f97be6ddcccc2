"""USER MODEL"""

import datetime
import logging
import uuid

from werkzeug.security import check_password_hash, generate_password_hash

from schoolapi import db
from schoolapi.models import GUID

db.GUID = GUID

logger = logging.getLogger(__name__)

ROLES = ("ADMIN", "TEACHER", "STUDENT")


class User(db.Model):
    """User Model"""

    id = db.Column(
        db.GUID(),
        default=lambda: str(uuid.uuid4()),
        primary_key=True,
        autoincrement=False,
    )
    email = db.Column(db.String(120), unique=True, nullable=False)
    # National id / student number; also accepted as a login identifier
    identification = db.Column(db.String(20), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    password = db.Column(db.String(200), nullable=False)
    role = db.Column(db.String(10), nullable=False, default="STUDENT")
    is_active = db.Column(db.Boolean(), default=True, nullable=False)
    created_at = db.Column(db.DateTime(), default=datetime.datetime.utcnow)
    updated_at = db.Column(db.DateTime(), default=datetime.datetime.utcnow)
    courses = db.relationship(
        "Course",
        backref=db.backref("teacher"),
        lazy="dynamic",
    )

    def __init__(self, email, password, name, identification, role="STUDENT"):
        self.email = email
        self.password = self.set_password(password)
        self.role = role if role in ROLES else "STUDENT"
        self.name = name
        self.identification = identification
        self.is_active = True

    def __repr__(self):
        return f"<User {self.email!r}>"

    def serialize(self, include=None, exclude=None):
        """Return object data in easily serializeable format"""
        include = include if include else []
        exclude = exclude if exclude else []
        user = {
            "id": str(self.id),
            "email": self.email,
            "identification": self.identification,
            "name": self.name,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if "courses" in include:
            user["courses"] = [course.serialize() for course in self.courses]
        for field in exclude:
            user.pop(field, None)
        return user

    def set_password(self, password):
        return generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password, password)
