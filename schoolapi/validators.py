"""SCHOOLAPI VALIDATORS"""

import datetime
from functools import wraps
import os
import re
import unicodedata

import bleach
import dateutil.parser
from flask import request

from schoolapi.config import SETTINGS
from schoolapi.models.attendance import ATTENDANCE_STATUSES
from schoolapi.models.task import TASK_TYPES
from schoolapi.routes.api import error

EMAIL_REGEX = re.compile(r"^[A-Za-z0-9\.\+_-]+@[A-Za-z0-9\._-]+\.[a-zA-Z]*$")
IDENTIFICATION_REGEX = re.compile(r"^[A-Za-z0-9]{1,20}$")
COURSE_CODE_REGEX = re.compile(r"^[A-Za-z0-9-]{2,20}$")
PASSWORD_SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'
MIN_PASSWORD_LENGTH = 8
COURSE_LEVELS = ("BASIC", "INTERMEDIATE", "ADVANCED")
MAX_TASK_SCORE = 100


def sanitize_text(text, max_length=None):
    """
    Sanitize text input while preserving international characters
    """
    if not text:
        return text

    text = str(text).strip()

    # Remove all HTML tags but preserve international characters
    text = bleach.clean(text, tags=[], strip=True)

    dangerous_patterns = [
        r"javascript:",
        r"vbscript:",
        r"on\w+\s*=",  # event handlers like onclick=
        r"data:text/html",
    ]
    for pattern in dangerous_patterns:
        if re.search(pattern, text, re.IGNORECASE | re.DOTALL):
            raise ValueError("Invalid content detected")

    text = unicodedata.normalize("NFC", text)

    if max_length and len(text) > max_length:
        text = text[:max_length].strip()

    return text


def validate_name(name, max_length=100):
    """
    Validate names with international character support
    """
    if not name:
        raise ValueError("Name is required")

    clean_name = sanitize_text(name, max_length=max_length)
    if not clean_name:
        raise ValueError("Name cannot be empty")

    for char in clean_name:
        if not (
            unicodedata.category(char).startswith("L")  # Letters
            or unicodedata.category(char).startswith("M")  # Marks (accents, etc.)
            or char in " '-."
            or unicodedata.category(char) == "Zs"
        ):
            raise ValueError("Name contains invalid characters")

    return clean_name


def validate_email(email):
    if not email:
        raise ValueError("Email is required")

    email = str(email).strip().lower()

    if len(email) > 254:  # RFC 5321 limit
        raise ValueError("Email address too long")

    if not EMAIL_REGEX.match(email):
        raise ValueError("Invalid email format")

    return email


def validate_identification(identification):
    """Letters and digits only, at most 20 characters"""
    identification = str(identification or "").strip()
    if not IDENTIFICATION_REGEX.match(identification):
        raise ValueError("Identification must be 1-20 letters or digits")
    return identification


def validate_password(password):
    """
    Password strength check; every failed rule is reported
    """
    if not password:
        raise ValueError("Password is required")

    errors = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"at least {MIN_PASSWORD_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        errors.append("an uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("a lowercase letter")
    if not re.search(r"\d", password):
        errors.append("a number")
    if not any(c in PASSWORD_SPECIAL_CHARACTERS for c in password):
        errors.append("a special character")

    if errors:
        raise ValueError("Password must contain " + ", ".join(errors))
    return password


def validate_description(description, max_length=1000):
    if not description:
        return description or ""
    return sanitize_text(description, max_length=max_length)


def validate_user_creation(func):
    """User Registration Validation with international support"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        json_data = request.get_json(silent=True)
        if not isinstance(json_data, dict):
            return error(status=400, detail="JSON body required")

        try:
            for field in ("email", "name", "identification", "password"):
                if field not in json_data:
                    return error(status=400, detail=f"{field.capitalize()} is required")

            json_data["email"] = validate_email(json_data["email"])
            json_data["name"] = validate_name(json_data["name"])
            json_data["identification"] = validate_identification(
                json_data["identification"]
            )
            validate_password(json_data["password"])

        except ValueError as e:
            return error(status=400, detail=str(e))

        return func(*args, **kwargs)

    return wrapper


def validate_course_creation(func):
    """Course Creation Validation"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        json_data = request.get_json(silent=True)
        if not isinstance(json_data, dict):
            return error(status=400, detail="JSON body required")

        try:
            if not json_data.get("name"):
                return error(status=400, detail="Name is required")
            if not json_data.get("code"):
                return error(status=400, detail="Code is required")

            json_data["name"] = sanitize_text(json_data["name"], max_length=120)
            code = json_data["code"]
            if not isinstance(code, str) or not COURSE_CODE_REGEX.match(code.strip()):
                return error(status=400, detail="Invalid course code")

            if "description" in json_data:
                json_data["description"] = validate_description(
                    json_data["description"]
                )

            level = json_data.get("level", "BASIC")
            if level not in COURSE_LEVELS:
                return error(status=400, detail="Invalid level")

            if "capacity" in json_data:
                capacity = json_data["capacity"]
                max_capacity = SETTINGS.get("MAX_STUDENTS_PER_COURSE", 30)
                if (
                    not isinstance(capacity, int)
                    or isinstance(capacity, bool)
                    or not 1 <= capacity <= max_capacity
                ):
                    return error(
                        status=400,
                        detail=f"Capacity must be between 1 and {max_capacity}",
                    )

            for field in ("schedule", "classroom"):
                if field in json_data:
                    json_data[field] = sanitize_text(json_data[field], max_length=120)

        except ValueError as e:
            return error(status=400, detail=str(e))

        return func(*args, **kwargs)

    return wrapper


def parse_date(value, field="date"):
    """Parse a client supplied date or datetime string into naive UTC"""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid {field}")
    try:
        parsed = dateutil.parser.parse(value)
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Invalid {field}") from e
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return parsed


def validate_upload(filename, size):
    """
    Size, extension and name checks for an uploaded file
    """
    max_size = SETTINGS.get("MAX_UPLOAD_SIZE", 5 * 1024 * 1024)
    allowed = SETTINGS.get("ALLOWED_UPLOAD_EXTENSIONS", [])

    if size > max_size:
        raise ValueError(f"File too large (max {max_size // (1024 * 1024)}MB)")

    extension = os.path.splitext(filename)[1].lower()
    if extension not in allowed:
        raise ValueError("File type not allowed. Allowed types: " + ", ".join(allowed))

    # No path components in the name
    if ".." in filename or "/" in filename or "\\" in filename:
        raise ValueError("Invalid file name")

    return filename


def validate_task_creation(func):
    """Task Creation Validation"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        json_data = request.get_json(silent=True)
        if not isinstance(json_data, dict):
            return error(status=400, detail="JSON body required")

        try:
            for field, label in (("title", "Title"), ("courseId", "Course")):
                if not json_data.get(field):
                    return error(status=400, detail=f"{label} is required")

            json_data["title"] = sanitize_text(json_data["title"], max_length=200)
            if not json_data["title"]:
                return error(status=400, detail="Title is required")
            if "description" in json_data:
                json_data["description"] = validate_description(
                    json_data["description"]
                )

            task_type = str(json_data.get("type") or "ASSIGNMENT").upper()
            if task_type not in TASK_TYPES:
                return error(status=400, detail="Invalid task type")
            json_data["type"] = task_type

            if "maxScore" in json_data:
                max_score = json_data["maxScore"]
                if (
                    not isinstance(max_score, (int, float))
                    or isinstance(max_score, bool)
                    or not 0 < max_score <= MAX_TASK_SCORE
                ):
                    return error(
                        status=400,
                        detail=f"Max score must be between 0 and {MAX_TASK_SCORE}",
                    )

            if json_data.get("dueDate"):
                json_data["dueDate"] = parse_date(json_data["dueDate"], "due date")

        except ValueError as e:
            return error(status=400, detail=str(e))

        return func(*args, **kwargs)

    return wrapper


def validate_attendance(func):
    """Attendance Record Validation"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        json_data = request.get_json(silent=True)
        if not isinstance(json_data, dict):
            return error(status=400, detail="JSON body required")

        try:
            for field, label in (
                ("studentId", "Student"),
                ("courseId", "Course"),
                ("status", "Status"),
            ):
                if not json_data.get(field):
                    return error(status=400, detail=f"{label} is required")

            status = str(json_data["status"]).upper()
            if status not in ATTENDANCE_STATUSES:
                return error(status=400, detail="Invalid attendance status")
            json_data["status"] = status

            if json_data.get("notes"):
                json_data["notes"] = sanitize_text(json_data["notes"], max_length=500)
            if json_data.get("date"):
                json_data["date"] = parse_date(json_data["date"]).date()

        except ValueError as e:
            return error(status=400, detail=str(e))

        return func(*args, **kwargs)

    return wrapper


def validate_file(func):
    """Uploaded File Validation"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        file = request.files.get("file", None)
        if file is None or not file.filename:
            return error(status=400, detail="File Required")

        file.seek(0, 2)  # Seek to end
        file_size = file.tell()
        file.seek(0)  # Reset to beginning

        try:
            validate_upload(file.filename, file_size)
        except ValueError as e:
            return error(status=400, detail=str(e))

        return func(*args, **kwargs)

    return wrapper
