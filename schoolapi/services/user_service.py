"""USER SERVICE"""

import logging
from uuid import UUID

from flask import current_app
import rollbar
from sqlalchemy import or_

from schoolapi import db
from schoolapi.errors import AccountLockedError, AuthError, UserDuplicated, UserNotFound
from schoolapi.models import User
from schoolapi.utils.security_events import (
    LogCategory,
    LogLevel,
    log_account_locked,
    log_authentication_event,
    log_security_event,
)

logger = logging.getLogger()


def _lockout():
    return current_app.extensions["admission"].lockout


class UserService:
    """User Class"""

    @staticmethod
    def create_user(user, role="STUDENT"):
        logger.info("[SERVICE]: Creating user")
        email = user.get("email").strip().lower()
        identification = user.get("identification").strip()
        current_user = User.query.filter(
            or_(User.email == email, User.identification == identification)
        ).first()
        if current_user:
            raise UserDuplicated(
                message="User with that email or identification already exists"
            )
        user = User(
            email=email,
            password=user.get("password"),
            name=user.get("name"),
            identification=identification,
            role=role,
        )
        try:
            logger.info("[DB]: ADD")
            db.session.add(user)
            db.session.commit()
        except Exception as error:
            db.session.rollback()
            rollbar.report_exc_info()
            raise error

        log_security_event(
            "REGISTRATION",
            level=LogLevel.AUDIT,
            category=LogCategory.USER,
            user_id=str(user.id),
            user_email=user.email,
            user_role=user.role,
        )
        return user

    @staticmethod
    def get_user(user_id):
        logger.info(f"[SERVICE]: Getting user {user_id}")
        try:
            user = User.query.get(UUID(str(user_id)))
        except ValueError:
            user = None
        if not user:
            raise UserNotFound(message=f"User with id {user_id} does not exist")
        return user

    @staticmethod
    def find_by_identifier(identifier):
        """Look a user up by email or identification number."""
        identifier = (identifier or "").strip()
        return User.query.filter(
            or_(User.email == identifier.lower(), User.identification == identifier)
        ).first()

    @staticmethod
    def get_students(search=None):
        logger.info("[SERVICE]: Getting students")
        logger.info("[DB]: QUERY")
        query = User.query.filter_by(role="STUDENT", is_active=True)
        if search:
            like = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    User.name.ilike(like),
                    User.email.ilike(like),
                    User.identification.ilike(like),
                )
            )
        return query.order_by(User.name).all()

    @staticmethod
    def authenticate_user(identifier, password):
        """Check credentials, applying the login lockout.

        Raises ``AccountLockedError`` while the identifier is locked and
        ``AuthError`` (with the remaining attempts) on bad credentials.
        """
        logger.info(f"[AUTH]: Authentication attempt for {identifier}")
        lockout = _lockout()

        status = lockout.check_status(identifier)
        if not status.allowed:
            logger.warning(f"[AUTH]: Rejected login for locked identifier {identifier}")
            log_account_locked(identifier, status.locked_until)
            raise AccountLockedError(
                "Account temporarily locked due to too many failed login attempts",
                locked_until=status.locked_until,
                retry_after=status.retry_after(lockout.clock()),
            )

        user = UserService.find_by_identifier(identifier)
        reason = None
        if not user:
            reason = "user_not_found"
        elif not user.is_active:
            reason = "user_inactive"
        elif not user.check_password(password):
            reason = "invalid_password"

        if reason:
            logger.warning(f"[AUTH]: Failed login ({reason}): {identifier}")
            status = lockout.record_failure(identifier)
            log_authentication_event(
                False,
                identifier,
                reason,
                remaining_attempts=status.remaining_attempts,
            )
            if not status.allowed:
                log_account_locked(identifier, status.locked_until)
            raise AuthError(
                "Invalid credentials", remaining_attempts=status.remaining_attempts
            )

        lockout.record_success(identifier)
        logger.info(f"[AUTH]: Successful login for user {user.email}")
        log_authentication_event(True, identifier, user=user)
        return user
