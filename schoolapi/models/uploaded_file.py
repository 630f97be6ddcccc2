"""UPLOADED FILE MODEL"""

import datetime
import uuid

from schoolapi import db
from schoolapi.models import GUID

db.GUID = GUID


class UploadedFile(db.Model):
    id = db.Column(
        db.GUID(),
        default=lambda: str(uuid.uuid4()),
        primary_key=True,
        autoincrement=False,
    )
    # Name in the file store; never the client supplied name
    name = db.Column(db.String(255), unique=True, nullable=False)
    original_name = db.Column(db.String(255), nullable=False)
    mime_type = db.Column(db.String(120))
    size = db.Column(db.Integer(), nullable=False)
    uploaded_by = db.Column(db.GUID(), db.ForeignKey("user.id"), nullable=False)
    created_at = db.Column(db.DateTime(), default=datetime.datetime.utcnow)
    uploader = db.relationship("User")

    def __init__(self, name, original_name, mime_type, size, uploaded_by):
        self.name = name
        self.original_name = original_name
        self.mime_type = mime_type
        self.size = size
        self.uploaded_by = uploaded_by

    def __repr__(self):
        return f"<UploadedFile {self.name!r}>"

    def serialize(self):
        return {
            "id": str(self.id),
            "name": self.name,
            "original_name": self.original_name,
            "mime_type": self.mime_type,
            "size": self.size,
            "uploader": {
                "id": str(self.uploader.id),
                "name": self.uploader.name,
                "email": self.uploader.email,
            },
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
