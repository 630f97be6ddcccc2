"""SCHOOL API ERRORS"""

import datetime
import math


class Error(Exception):
    def __init__(self, message):
        self.message = message
        super().__init__(message)

    @property
    def serialize(self):
        return {"message": self.message}


class UserNotFound(Error):
    pass


class UserDuplicated(Error):
    pass


class AuthError(Error):
    def __init__(self, message, remaining_attempts=None):
        super().__init__(message)
        self.remaining_attempts = remaining_attempts

    @property
    def serialize(self):
        data = {"message": self.message}
        if self.remaining_attempts is not None:
            data["remaining_attempts"] = self.remaining_attempts
        return data


class CourseNotFound(Error):
    pass


class CourseDuplicated(Error):
    pass


class TaskNotFound(Error):
    pass


class NotAllowed(Error):
    pass


class MalformedPayload(Error):
    """Raised when a request body cannot be parsed for inspection."""


class ConfigurationError(Error):
    """Raised at startup when the admission or audit settings are invalid."""


class AccountLockedError(Error):
    """Raised when an identifier is locked due to too many failed login attempts."""

    def __init__(
        self,
        message: str,
        locked_until: float | None = None,
        retry_after: int | None = None,
    ):
        super().__init__(message)
        self.locked_until = locked_until
        self.retry_after = retry_after

    @property
    def minutes_remaining(self) -> int | None:
        if self.retry_after is None:
            return None
        return max(1, math.ceil(self.retry_after / 60))

    @property
    def serialize(self):
        return {
            "message": self.message,
            "error_code": "account_locked",
            "locked_until": (
                datetime.datetime.fromtimestamp(
                    self.locked_until, datetime.timezone.utc
                ).isoformat()
                if self.locked_until is not None
                else None
            ),
            "minutes_remaining": self.minutes_remaining,
        }
