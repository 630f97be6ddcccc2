"""Security and audit event logging for the School API"""

from collections import deque
from dataclasses import asdict, dataclass, field
import datetime
import enum
import json
import logging
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
import os
import queue
import sys
from typing import Any, Optional

from flask import current_app, has_app_context, has_request_context, request
from flask_limiter.util import get_remote_address
import rollbar

logger = logging.getLogger(__name__)

AUDIT = 25
SECURITY = 45
logging.addLevelName(AUDIT, "AUDIT")
logging.addLevelName(SECURITY, "SECURITY")


class LogLevel(str, enum.Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    SECURITY = "SECURITY"
    AUDIT = "AUDIT"

    @property
    def levelno(self) -> int:
        return _LEVELNOS[self]


_LEVELNOS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.AUDIT: AUDIT,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.SECURITY: SECURITY,
}


class LogCategory(str, enum.Enum):
    AUTH = "AUTH"
    ACCESS = "ACCESS"
    SYSTEM = "SYSTEM"
    SECURITY = "SECURITY"
    DATABASE = "DATABASE"
    API = "API"
    USER = "USER"


# Security event types for consistent logging
SECURITY_EVENTS = {
    "LOGIN_SUCCESS": "User login successful",
    "LOGIN_FAILURE": "User login failed",
    "ACCOUNT_LOCKED": "User account locked",
    "REGISTRATION": "User registered",
    "RATE_LIMIT_HIT": "Rate limit exceeded",
    "SUSPICIOUS_URL": "Suspicious URL pattern detected",
    "SUSPICIOUS_PAYLOAD": "Suspicious payload detected",
    "INVALID_PAYLOAD": "Invalid request payload",
    "ADMIN_ACTION": "Administrative action performed",
    "UNAUTHORIZED_ACCESS": "Unauthorized access attempt",
}


@dataclass(frozen=True)
class AuditEvent:
    """Immutable record of one admission or authentication decision."""

    level: LogLevel
    category: LogCategory
    message: str
    timestamp: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )
    actor_id: Optional[str] = None
    actor_email: Optional[str] = None
    actor_role: Optional[str] = None
    client_address: Optional[str] = None
    user_agent: Optional[str] = None
    endpoint: Optional[str] = None
    method: Optional[str] = None
    status_code: Optional[int] = None
    duration_ms: Optional[float] = None
    session_id: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def format_line(self) -> str:
        """One log line, fields always in the same order, absent ones omitted."""
        timestamp = self.timestamp.isoformat(timespec="milliseconds").replace(
            "+00:00", "Z"
        )
        parts = [
            f"{timestamp} [{self.level.value}] [{self.category.value}] {self.message}"
        ]
        if self.duration_ms is not None:
            parts.append(f"[{round(self.duration_ms)}ms]")
        if self.status_code is not None:
            parts.append(f"[{self.status_code}]")
        if self.actor_id:
            parts.append(f"[User:{self.actor_id}]")
        if self.actor_email:
            parts.append(f"[Email:{self.actor_email}]")
        if self.actor_role:
            parts.append(f"[Role:{self.actor_role}]")
        if self.client_address:
            parts.append(f"[IP:{self.client_address}]")
        if self.endpoint:
            parts.append(f"[Endpoint:{self.method or '-'} {self.endpoint}]")
        if self.session_id:
            parts.append(f"[Session:{self.session_id}]")
        if self.metadata:
            parts.append(json.dumps(self.metadata, default=str, sort_keys=True))
        if self.user_agent:
            parts.append(f"[UA:{self.user_agent[:100]}]")
        return " ".join(parts)

    def serialize(self):
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        data["level"] = self.level.value
        data["category"] = self.category.value
        return {k: v for k, v in data.items() if v is not None}


class AuditFormatter(logging.Formatter):
    def format(self, record):
        event = getattr(record, "audit_event", None)
        if event is None:
            return super().format(record)
        return event.format_line()


class HistoryHandler(logging.Handler):
    """Keeps the most recent events in memory for the admin logs endpoint."""

    def __init__(self, size: int = 500):
        super().__init__()
        self.events = deque(maxlen=size)

    def emit(self, record):
        event = getattr(record, "audit_event", None)
        if event is not None:
            self.events.append(event)


class RollbarHandler(logging.Handler):
    """Forwards SECURITY events to Rollbar for centralized monitoring."""

    def __init__(self):
        super().__init__(level=SECURITY)

    def emit(self, record):
        event = getattr(record, "audit_event", None)
        if event is None:
            return
        try:
            rollbar.report_message(
                message=f"Security Event: {event.message}",
                level="warning",
                extra_data=event.serialize(),
            )
        except Exception as e:
            logger.error(f"Failed to send security event to Rollbar: {e}")


class AuditListener(QueueListener):
    """Queue listener that keeps going when one of its handlers fails."""

    def handle(self, record):
        record = self.prepare(record)
        for handler in self.handlers:
            if self.respect_handler_level and record.levelno < handler.level:
                continue
            try:
                handler.handle(record)
            except Exception:
                handler.handleError(record)


class AuditSink:
    """Fire-and-forget audit log.

    ``record`` only enqueues; a single ``QueueListener`` thread formats and
    writes, so callers never wait on log I/O and events recorded by one
    request thread are written in the order they were recorded. A full queue
    or a failing handler is reported on stderr by ``logging`` and never
    propagates to the caller.
    """

    def __init__(
        self,
        handlers=None,
        min_level: LogLevel = LogLevel.DEBUG,
        queue_size: int = 10000,
        history_size: int = 500,
    ):
        self.queue = queue.Queue(maxsize=queue_size)
        self.history = HistoryHandler(history_size)
        self.handlers = list(handlers or []) + [self.history]

        formatter = AuditFormatter()
        for handler in self.handlers:
            handler.setFormatter(formatter)

        self._logger = logging.Logger("schoolapi.audit", min_level.levelno)
        self._logger.addHandler(QueueHandler(self.queue))
        self._listener = AuditListener(
            self.queue, *self.handlers, respect_handler_level=True
        )
        self._listener.start()

    def record(self, event: AuditEvent) -> None:
        self._logger.log(
            event.level.levelno, event.message, extra={"audit_event": event}
        )

    def flush(self) -> None:
        """Block until every queued event has been handled."""
        self.queue.join()

    def close(self) -> None:
        self._listener.stop()
        for handler in self.handlers:
            handler.close()

    def recent(
        self,
        limit: int = 100,
        level: Optional[LogLevel] = None,
        category: Optional[LogCategory] = None,
    ) -> list[AuditEvent]:
        """Most recent events first."""
        events = [
            e
            for e in reversed(self.history.events)
            if (level is None or e.level == level)
            and (category is None or e.category == category)
        ]
        return events[:limit]


def build_audit_sink(config) -> AuditSink:
    """Create the sink described by the ``AUDIT`` settings block."""
    handlers = []

    log_dir = config.get("LOG_DIR")
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                os.path.join(log_dir, "audit.log"),
                maxBytes=config.get("MAX_BYTES", 10 * 1024 * 1024),
                backupCount=config.get("BACKUP_COUNT", 10),
                encoding="utf-8",
            )
        )

    if config.get("CONSOLE", False):
        handlers.append(logging.StreamHandler(stream=sys.stdout))

    handlers.append(RollbarHandler())

    return AuditSink(
        handlers=handlers,
        min_level=LogLevel(config.get("LEVEL", "DEBUG").upper()),
        queue_size=config.get("QUEUE_SIZE", 10000),
        history_size=config.get("HISTORY_SIZE", 500),
    )


def get_audit_sink() -> Optional[AuditSink]:
    if not has_app_context():
        return None
    admission = current_app.extensions.get("admission")
    return admission.audit if admission else None


def _request_fields() -> dict[str, Any]:
    if not has_request_context():
        return {}
    return {
        "client_address": get_remote_address(),
        "user_agent": request.headers.get("User-Agent", "unknown"),
        "endpoint": request.path,
        "method": request.method,
    }


def log_security_event(
    event_type: str,
    level: LogLevel = LogLevel.SECURITY,
    category: LogCategory = LogCategory.SECURITY,
    user_id: Optional[str] = None,
    user_email: Optional[str] = None,
    user_role: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> None:
    """
    Centralized security event logging function.

    Args:
        event_type: Type of security event (should be from SECURITY_EVENTS)
        level: Audit level of the event
        category: Audit category of the event
        user_id: ID of the user involved (if applicable)
        user_email: Email of the user involved (if applicable)
        user_role: Role of the user involved (if applicable)
        details: Additional details about the event
    """
    if event_type not in SECURITY_EVENTS:
        logger.warning(f"Unknown security event type: {event_type}")

    event = AuditEvent(
        level=level,
        category=category,
        message=SECURITY_EVENTS.get(event_type, event_type),
        actor_id=user_id,
        actor_email=user_email,
        actor_role=user_role,
        metadata={"event": event_type, **(details or {})},
        **_request_fields(),
    )

    sink = get_audit_sink()
    if sink is None:
        logger.warning(f"SECURITY_EVENT: {event.format_line()}")
        return
    sink.record(event)


def log_authentication_event(
    success: bool,
    identifier: str,
    reason: Optional[str] = None,
    user=None,
    remaining_attempts: Optional[int] = None,
) -> None:
    """
    Convenience function for logging authentication outcomes.

    Args:
        success: Whether authentication was successful
        identifier: Login identifier that was presented
        reason: Reason for failure (if applicable)
        user: Authenticated user (if any)
        remaining_attempts: Attempts left before lockout (failures only)
    """
    details = {"identifier": identifier}
    if reason:
        details["reason"] = reason
    if remaining_attempts is not None:
        details["remaining_attempts"] = remaining_attempts

    log_security_event(
        "LOGIN_SUCCESS" if success else "LOGIN_FAILURE",
        level=LogLevel.AUDIT,
        category=LogCategory.AUTH,
        user_id=str(user.id) if user else None,
        user_email=user.email if user else None,
        user_role=user.role if user else None,
        details=details,
    )


def log_account_locked(identifier: str, locked_until: Optional[float]) -> None:
    log_security_event(
        "ACCOUNT_LOCKED",
        level=LogLevel.SECURITY,
        category=LogCategory.AUTH,
        details={
            "identifier": identifier,
            "severity": "high",
            "locked_until": locked_until,
        },
    )


def log_admin_action(admin, action: str, target: Optional[str] = None) -> None:
    """
    Log administrative actions for audit trail.

    Args:
        admin: The admin user performing the action
        action: Description of the action performed
        target: Identifier acted upon (if applicable)
    """
    log_security_event(
        "ADMIN_ACTION",
        level=LogLevel.AUDIT,
        category=LogCategory.USER,
        user_id=str(admin.id),
        user_email=admin.email,
        user_role=admin.role,
        details={"action": action, "target": target},
    )
