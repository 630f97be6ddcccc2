"""SCHOOLAPI SERVICES MODULE"""

import logging
import sys

logger = logging.getLogger()


def handle_exception(exc_type, exc_value, exc_traceback):
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    logger.critical("Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback))


sys.excepthook = handle_exception

from schoolapi.services.user_service import UserService  # noqa: E402
from schoolapi.services.course_service import CourseService  # noqa: E402, I001
from schoolapi.services.task_service import TaskService  # noqa: E402, I001
from schoolapi.services.attendance_service import AttendanceService  # noqa: E402, I001
from schoolapi.services.file_service import FileService  # noqa: E402, I001

__all__ = [
    "AttendanceService",
    "CourseService",
    "FileService",
    "TaskService",
    "UserService",
]
