"""
Test configuration and fixtures for School API tests
"""

import copy
import os
import sys

import pytest

# Add the project root to the Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Set environment variables for testing before importing the app
os.environ["ENVIRONMENT"] = "testing"
os.environ["TESTING"] = "true"

if not os.environ.get("JWT_SECRET_KEY"):
    os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-for-ci"
if not os.environ.get("SECRET_KEY"):
    os.environ["SECRET_KEY"] = "test-secret-key-for-ci"

from flask_jwt_extended import create_access_token  # noqa: E402

from schoolapi import admission as admission_control  # noqa: E402
from schoolapi import app as flask_app  # noqa: E402
from schoolapi import db  # noqa: E402
from schoolapi.models import Course, User  # noqa: E402
from schoolapi.utils.file_storage import LocalFileStore  # noqa: E402

# Strong password values for test fixtures
ADMIN_TEST_PASSWORD = "AdminPass123!"
TEACHER_TEST_PASSWORD = "TeacherPass123!"
STUDENT_TEST_PASSWORD = "StudentPass123!"


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def admission_settings():
    """Editable copy of the ADMISSION settings, restored after the test.

    Call ``admission.reset(clock=clock)`` after changing it.
    """
    original = flask_app.config["ADMISSION"]
    flask_app.config["ADMISSION"] = copy.deepcopy(original)
    yield flask_app.config["ADMISSION"]
    flask_app.config["ADMISSION"] = original


@pytest.fixture
def file_store(tmp_path):
    """Uploads go to a per-test directory"""
    original = flask_app.extensions["file_store"]
    store = LocalFileStore(str(tmp_path / "uploads"))
    flask_app.extensions["file_store"] = store
    yield store
    flask_app.extensions["file_store"] = original


@pytest.fixture
def app(clock, admission_settings, file_store):
    """Application with a fresh database and fresh admission state"""
    with flask_app.app_context():
        db.create_all()
        admission_control.reset(clock=clock)
        admission_control.audit.flush()
        admission_control.audit.history.events.clear()
        try:
            yield flask_app
        finally:
            db.session.remove()
            db.drop_all()


@pytest.fixture
def admission(app):
    return app.extensions["admission"]


@pytest.fixture
def client(app):
    return app.test_client()


def _create_user(email, identification, name, password, role):
    user = User(
        email=email,
        password=password,
        name=name,
        identification=identification,
        role=role,
    )
    db.session.add(user)
    db.session.commit()
    db.session.refresh(user)
    return user


@pytest.fixture
def admin_user(app):
    return _create_user(
        "admin@school.test", "A0001", "Admin User", ADMIN_TEST_PASSWORD, "ADMIN"
    )


@pytest.fixture
def teacher_user(app):
    return _create_user(
        "teacher@school.test", "T0001", "Tina Teacher", TEACHER_TEST_PASSWORD, "TEACHER"
    )


@pytest.fixture
def other_teacher(app):
    return _create_user(
        "tom@school.test", "T0002", "Tom Tutor", TEACHER_TEST_PASSWORD, "TEACHER"
    )


@pytest.fixture
def student_user(app):
    return _create_user(
        "jdoe@school.test", "jdoe", "John Doe", STUDENT_TEST_PASSWORD, "STUDENT"
    )


@pytest.fixture
def other_student(app):
    return _create_user(
        "asmith@school.test", "asmith", "Anna Smith", STUDENT_TEST_PASSWORD, "STUDENT"
    )


@pytest.fixture
def course(teacher_user):
    course = Course(name="Geometry", code="GEO-1", teacher_id=teacher_user.id)
    db.session.add(course)
    db.session.commit()
    db.session.refresh(course)
    return course


def _auth_headers(user):
    token = create_access_token(identity=str(user.id))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user):
    return _auth_headers(admin_user)


@pytest.fixture
def teacher_headers(teacher_user):
    return _auth_headers(teacher_user)


@pytest.fixture
def student_headers(student_user):
    return _auth_headers(student_user)


@pytest.fixture
def other_student_headers(other_student):
    return _auth_headers(other_student)


@pytest.fixture
def other_teacher_headers(other_teacher):
    return _auth_headers(other_teacher)


def audit_events(admission, **filters):
    """Recorded audit events, oldest first, once the writer has caught up."""
    admission.audit.flush()
    return list(reversed(admission.audit.recent(limit=10000, **filters)))
