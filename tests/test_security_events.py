"""Tests for the audit sink and security event helpers"""

import datetime
import logging
import threading
from unittest.mock import patch

import pytest

from schoolapi.utils.security_events import (
    AUDIT,
    SECURITY,
    AuditEvent,
    AuditSink,
    LogCategory,
    LogLevel,
    RollbarHandler,
    build_audit_sink,
    log_authentication_event,
    log_security_event,
)

TIMESTAMP = datetime.datetime(
    2025, 3, 1, 12, 30, 45, 123000, tzinfo=datetime.timezone.utc
)


class ListHandler(logging.Handler):
    def __init__(self, level=logging.NOTSET):
        super().__init__(level)
        self.lines = []

    def emit(self, record):
        self.lines.append(self.format(record))


class BrokenHandler(logging.Handler):
    def emit(self, record):
        raise OSError("disk full")


class SlowHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.release = threading.Event()
        self.records = []

    def emit(self, record):
        self.release.wait(timeout=5)
        self.records.append(record)


@pytest.fixture
def lines():
    return ListHandler()


@pytest.fixture
def sink(lines):
    sink = AuditSink(handlers=[lines])
    yield sink
    sink.close()


def test_custom_levels_are_registered():
    assert logging.getLevelName(AUDIT) == "AUDIT"
    assert logging.getLevelName(SECURITY) == "SECURITY"
    assert LogLevel.SECURITY.levelno > LogLevel.ERROR.levelno
    assert LogLevel.INFO.levelno < LogLevel.AUDIT.levelno < LogLevel.WARN.levelno


class TestAuditEventFormat:
    def test_minimal_line(self):
        event = AuditEvent(
            LogLevel.INFO, LogCategory.SYSTEM, "Server started", timestamp=TIMESTAMP
        )
        assert event.format_line() == (
            "2025-03-01T12:30:45.123Z [INFO] [SYSTEM] Server started"
        )

    def test_fields_in_fixed_order(self):
        event = AuditEvent(
            LogLevel.WARN,
            LogCategory.API,
            "GET /api/courses - 404",
            timestamp=TIMESTAMP,
            actor_id="u1",
            actor_email="jdoe@school.test",
            actor_role="STUDENT",
            client_address="1.2.3.4",
            user_agent="pytest-agent",
            endpoint="/api/courses",
            method="GET",
            status_code=404,
            duration_ms=12.4,
            session_id="s1",
            metadata={"b": 2, "a": 1},
        )
        assert event.format_line() == (
            "2025-03-01T12:30:45.123Z [WARN] [API] GET /api/courses - 404 [12ms] [404]"
            " [User:u1] [Email:jdoe@school.test] [Role:STUDENT] [IP:1.2.3.4]"
            ' [Endpoint:GET /api/courses] [Session:s1] {"a": 1, "b": 2}'
            " [UA:pytest-agent]"
        )

    def test_user_agent_is_truncated(self):
        event = AuditEvent(LogLevel.INFO, LogCategory.API, "x", user_agent="A" * 300)
        assert event.format_line().endswith("[UA:" + "A" * 100 + "]")

    def test_serialize_omits_empty_fields(self):
        event = AuditEvent(
            LogLevel.SECURITY,
            LogCategory.SECURITY,
            "Suspicious URL pattern detected",
            timestamp=TIMESTAMP,
            client_address="1.2.3.4",
        )
        data = event.serialize()
        assert data["level"] == "SECURITY"
        assert data["category"] == "SECURITY"
        assert data["client_address"] == "1.2.3.4"
        assert data["timestamp"] == TIMESTAMP.isoformat()
        assert "actor_id" not in data


class TestAuditSink:
    def test_record_then_flush_writes_lines(self, sink, lines):
        sink.record(AuditEvent(LogLevel.INFO, LogCategory.API, "first"))
        sink.record(AuditEvent(LogLevel.WARN, LogCategory.API, "second"))
        sink.flush()
        assert len(lines.lines) == 2
        assert "[INFO] [API] first" in lines.lines[0]
        assert "[WARN] [API] second" in lines.lines[1]

    def test_order_is_preserved(self, sink):
        for i in range(200):
            sink.record(AuditEvent(LogLevel.INFO, LogCategory.API, f"event {i}"))
        sink.flush()
        messages = [e.message for e in reversed(sink.recent(limit=200))]
        assert messages == [f"event {i}" for i in range(200)]

    def test_record_does_not_wait_for_handlers(self):
        slow = SlowHandler()
        sink = AuditSink(handlers=[slow])
        try:
            sink.record(AuditEvent(LogLevel.INFO, LogCategory.API, "queued"))
            assert slow.records == []
            slow.release.set()
            sink.flush()
            assert len(slow.records) == 1
        finally:
            sink.close()

    def test_events_below_min_level_are_dropped(self, lines):
        sink = AuditSink(handlers=[lines], min_level=LogLevel.WARN)
        try:
            sink.record(AuditEvent(LogLevel.INFO, LogCategory.API, "ignored"))
            sink.record(AuditEvent(LogLevel.AUDIT, LogCategory.AUTH, "ignored too"))
            sink.record(AuditEvent(LogLevel.SECURITY, LogCategory.SECURITY, "kept"))
            sink.flush()
        finally:
            sink.close()
        assert len(lines.lines) == 1
        assert "kept" in lines.lines[0]

    def test_failing_handler_is_swallowed(self, lines):
        sink = AuditSink(handlers=[BrokenHandler(), lines])
        try:
            with patch.object(logging, "raiseExceptions", False):
                sink.record(AuditEvent(LogLevel.INFO, LogCategory.API, "one"))
                sink.record(AuditEvent(LogLevel.INFO, LogCategory.API, "two"))
                sink.flush()
        finally:
            sink.close()
        assert len(lines.lines) == 2

    def test_recent_filters_newest_first(self, sink):
        sink.record(AuditEvent(LogLevel.INFO, LogCategory.API, "a"))
        sink.record(AuditEvent(LogLevel.SECURITY, LogCategory.SECURITY, "b"))
        sink.record(AuditEvent(LogLevel.AUDIT, LogCategory.AUTH, "c"))
        sink.record(AuditEvent(LogLevel.SECURITY, LogCategory.SECURITY, "d"))
        sink.flush()
        assert [e.message for e in sink.recent()] == ["d", "c", "b", "a"]
        assert [e.message for e in sink.recent(level=LogLevel.SECURITY)] == ["d", "b"]
        assert [e.message for e in sink.recent(category=LogCategory.AUTH)] == ["c"]
        assert [e.message for e in sink.recent(limit=1)] == ["d"]

    def test_history_is_bounded(self):
        sink = AuditSink(history_size=3)
        try:
            for i in range(5):
                sink.record(AuditEvent(LogLevel.INFO, LogCategory.API, str(i)))
            sink.flush()
            assert [e.message for e in sink.recent()] == ["4", "3", "2"]
        finally:
            sink.close()


class TestBuildAuditSink:
    def test_rotating_file(self, tmp_path):
        sink = build_audit_sink({"LOG_DIR": str(tmp_path), "CONSOLE": False})
        try:
            sink.record(AuditEvent(LogLevel.INFO, LogCategory.SYSTEM, "to file"))
            sink.flush()
        finally:
            sink.close()
        content = (tmp_path / "audit.log").read_text(encoding="utf-8")
        assert "[INFO] [SYSTEM] to file" in content

    def test_without_log_dir(self):
        sink = build_audit_sink({"LOG_DIR": None, "CONSOLE": False, "LEVEL": "info"})
        try:
            assert sink._logger.level == logging.INFO
            assert not any(
                type(h).__name__ == "RotatingFileHandler" for h in sink.handlers
            )
        finally:
            sink.close()


class TestRollbarHandler:
    def test_only_security_events_are_reported(self):
        sink = AuditSink(handlers=[RollbarHandler()])
        try:
            with patch("rollbar.report_message") as report:
                sink.record(AuditEvent(LogLevel.WARN, LogCategory.API, "rate limited"))
                sink.record(
                    AuditEvent(LogLevel.SECURITY, LogCategory.SECURITY, "traversal")
                )
                sink.flush()
        finally:
            sink.close()
        assert report.call_count == 1
        assert report.call_args.kwargs["message"] == "Security Event: traversal"

    def test_rollbar_failure_is_logged(self):
        sink = AuditSink(handlers=[RollbarHandler()])
        try:
            with patch("rollbar.report_message", side_effect=RuntimeError("down")):
                sink.record(AuditEvent(LogLevel.SECURITY, LogCategory.SECURITY, "x"))
                sink.flush()
            assert [e.message for e in sink.recent()] == ["x"]
        finally:
            sink.close()


class TestEventHelpers:
    def test_without_app_falls_back_to_module_logger(self, caplog):
        with caplog.at_level(logging.WARNING):
            log_security_event("SUSPICIOUS_URL", details={"url": "/a/../b"})
        assert "Suspicious URL pattern detected" in caplog.text

    def test_authentication_event_is_audit_level(self, app, admission):
        with app.test_request_context("/api/auth/login", method="POST"):
            log_authentication_event(
                False, "jdoe", "invalid_password", remaining_attempts=3
            )
        admission.audit.flush()
        event = admission.audit.recent(limit=1)[0]
        assert event.level == LogLevel.AUDIT
        assert event.category == LogCategory.AUTH
        assert event.message == "User login failed"
        assert event.metadata["remaining_attempts"] == 3
        assert event.endpoint == "/api/auth/login"
        assert event.client_address == "127.0.0.1"
