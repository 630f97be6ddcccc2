"""SCHOOLAPI MODELS MODULE"""

from operator import attrgetter
import uuid

from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.types import CHAR, TypeDecorator


# Below is from https://docs.sqlalchemy.org/en/20/core/custom_types.html
# #backend-agnostic-guid-type
class GUID(TypeDecorator):
    """Platform-independent GUID type.

    Uses PostgreSQL's UUID type, otherwise uses CHAR(32), storing as
    stringified hex values.

    """

    impl = CHAR
    cache_ok = True

    _default_type = CHAR(32)
    _uuid_as_str = attrgetter("hex")

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(UUID())
        return dialect.type_descriptor(self._default_type)

    def process_bind_param(self, value, dialect):
        if value is None or dialect.name == "postgresql":
            return value
        if not isinstance(value, uuid.UUID):
            value = uuid.UUID(value)
        return self._uuid_as_str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if not isinstance(value, uuid.UUID):
            value = uuid.UUID(value)
        return value


def as_uuid(value):
    """UUID for ``value``, or None when it is not one."""
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


from schoolapi.models.attendance import Attendance  # noqa: E402
from schoolapi.models.course import Course  # noqa: E402
from schoolapi.models.task import Task  # noqa: E402
from schoolapi.models.task_submission import TaskSubmission  # noqa: E402
from schoolapi.models.uploaded_file import UploadedFile  # noqa: E402
from schoolapi.models.user import User  # noqa: E402

__all__ = [
    "Attendance",
    "Course",
    "Task",
    "TaskSubmission",
    "UploadedFile",
    "User",
]
