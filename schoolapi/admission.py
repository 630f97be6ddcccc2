"""Request admission pipeline

Every inbound request is evaluated once, before it reaches a route handler:

    RECEIVED -> PATTERN_CHECKED -> RATE_CHECKED -> PAYLOAD_CHECKED -> ADMITTED

Any stage may move the request to REJECTED instead. Each rejection, and each
admitted request once its response is known, produces exactly one audit event.
"""

from dataclasses import dataclass
import enum
import logging
import re
import time
from typing import Any, Callable, Optional

from flask import g, jsonify, request
from flask_limiter.util import get_remote_address
from werkzeug.exceptions import BadRequest

from schoolapi.errors import ConfigurationError, MalformedPayload
from schoolapi.utils.lockout import LockoutTracker
from schoolapi.utils.patterns import (
    PAYLOAD_SIGNATURES,
    URL_SIGNATURES,
    PatternInspector,
    compile_signatures,
)
from schoolapi.utils.rate_limiting import (
    GENERAL_SCOPE,
    SENSITIVE_SCOPE,
    RateLimiter,
    RateLimitResult,
    ScopeLimit,
)
from schoolapi.utils.security_events import (
    AuditEvent,
    LogCategory,
    LogLevel,
    build_audit_sink,
)
from schoolapi.utils.state_store import MemoryStateStore

logger = logging.getLogger(__name__)

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})
FORM_MIMETYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

# Scanners and crawlers; only logged, never blocked
SUSPICIOUS_USER_AGENTS = re.compile(r"bot|crawler|scanner|sqlmap|nikto|nmap", re.I)


class Stage(str, enum.Enum):
    RECEIVED = "RECEIVED"
    PATTERN_CHECKED = "PATTERN_CHECKED"
    RATE_CHECKED = "RATE_CHECKED"
    PAYLOAD_CHECKED = "PAYLOAD_CHECKED"
    ADMITTED = "ADMITTED"
    REJECTED = "REJECTED"


class RejectReason(str, enum.Enum):
    SUSPICIOUS_URL = "suspicious_url"
    RATE_LIMITED = "rate_limited"
    SENSITIVE_RATE_LIMITED = "sensitive_rate_limited"
    SUSPICIOUS_PAYLOAD = "suspicious_payload"


@dataclass
class RequestInfo:
    """The parts of an HTTP request the pipeline looks at.

    ``load_payload`` is called lazily, only when the payload stage is reached,
    and returns the parsed body (mapping, list or None) or raises
    ``MalformedPayload``.
    """

    method: str
    path: str
    query_string: str = ""
    client_address: str = "unknown"
    user_agent: str = "unknown"
    load_payload: Optional[Callable[[], Any]] = None


@dataclass
class Decision:
    started_at: float
    stage: Stage = Stage.RECEIVED
    status_code: int = 200
    reason: Optional[RejectReason] = None
    detail: Optional[str] = None
    rate_limit: Optional[RateLimitResult] = None
    suspicious_field: Optional[str] = None
    completed: bool = False

    @property
    def admitted(self) -> bool:
        return self.stage == Stage.ADMITTED

    @property
    def headers(self) -> dict[str, str]:
        return self.rate_limit.headers if self.rate_limit else {}


@dataclass
class AdmissionSettings:
    """Validated ``ADMISSION`` settings."""

    rate_limiting_enabled: bool
    limits: dict[str, ScopeLimit]
    sensitive_endpoints: list[str]
    sweep_interval: float
    max_attempts: int
    lockout_duration: int
    block_on_payload_match: bool
    url_signatures: tuple = URL_SIGNATURES
    payload_signatures: tuple = PAYLOAD_SIGNATURES


def validate_admission_settings(admission, audit=None) -> AdmissionSettings:
    """Parse and check the admission settings; invalid values are fatal."""
    rate_limiting = admission.get("RATE_LIMITING", {})
    lockout = admission.get("LOCKOUT", {})

    try:
        limits = {
            GENERAL_SCOPE: ScopeLimit.parse(
                rate_limiting.get("GENERAL_LIMIT", "100 per 15 minutes")
            ),
            SENSITIVE_SCOPE: ScopeLimit.parse(
                rate_limiting.get("SENSITIVE_LIMIT", "10 per 15 minutes")
            ),
        }
    except ValueError as e:
        raise ConfigurationError(f"Invalid rate limit definition: {e}") from e

    for scope, limit in limits.items():
        if limit.max_requests < 1 or limit.window_seconds < 1:
            raise ConfigurationError(f"Rate limit for '{scope}' must be positive")

    endpoints = rate_limiting.get("SENSITIVE_ENDPOINTS", [])
    if any(not isinstance(p, str) or not p.startswith("/") for p in endpoints):
        raise ConfigurationError("Sensitive endpoints must be absolute path prefixes")

    max_attempts = lockout.get("MAX_ATTEMPTS", 5)
    duration = lockout.get("DURATION_SECONDS", 1800)
    if not isinstance(max_attempts, int) or max_attempts < 1:
        raise ConfigurationError("LOCKOUT.MAX_ATTEMPTS must be a positive integer")
    if not isinstance(duration, int) or duration < 1:
        raise ConfigurationError("LOCKOUT.DURATION_SECONDS must be a positive integer")

    try:
        url_signatures = (
            compile_signatures(admission["URL_SIGNATURES"])
            if admission.get("URL_SIGNATURES")
            else URL_SIGNATURES
        )
        payload_signatures = (
            compile_signatures(admission["PAYLOAD_SIGNATURES"])
            if admission.get("PAYLOAD_SIGNATURES")
            else PAYLOAD_SIGNATURES
        )
    except (re.error, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid pattern signature: {e}") from e

    if audit is not None:
        level = str(audit.get("LEVEL", "DEBUG")).upper()
        if level not in LogLevel.__members__:
            raise ConfigurationError(f"Unknown audit log level: {level}")

    return AdmissionSettings(
        rate_limiting_enabled=rate_limiting.get("ENABLED", True),
        limits=limits,
        sensitive_endpoints=list(endpoints),
        sweep_interval=rate_limiting.get("SWEEP_INTERVAL_SECONDS", 60),
        max_attempts=max_attempts,
        lockout_duration=duration,
        block_on_payload_match=bool(admission.get("BLOCK_ON_PAYLOAD_MATCH", False)),
        url_signatures=url_signatures,
        payload_signatures=payload_signatures,
    )


class AdmissionPipeline:
    """Decides, per request, whether it may reach its handler."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        audit,
        url_inspector: Optional[PatternInspector] = None,
        payload_inspector: Optional[PatternInspector] = None,
        sensitive_endpoints=(),
        rate_limiting_enabled: bool = True,
        block_on_payload_match: bool = False,
        clock=time.time,
    ):
        self.rate_limiter = rate_limiter
        self.audit = audit
        self.url_inspector = url_inspector or PatternInspector(URL_SIGNATURES)
        self.payload_inspector = payload_inspector or PatternInspector(
            PAYLOAD_SIGNATURES
        )
        self.sensitive_endpoints = tuple(sensitive_endpoints)
        self.rate_limiting_enabled = rate_limiting_enabled
        self.block_on_payload_match = block_on_payload_match
        self.clock = clock

    def is_sensitive(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.sensitive_endpoints)

    def evaluate(self, info: RequestInfo) -> Decision:
        now = self.clock()
        decision = Decision(started_at=now)

        # RECEIVED -> PATTERN_CHECKED
        match = self.url_inspector.inspect_url(info.path, info.query_string)
        if match:
            url = f"{info.path}?{info.query_string}" if info.query_string else info.path
            return self._reject(
                decision,
                info,
                403,
                RejectReason.SUSPICIOUS_URL,
                "Forbidden",
                LogLevel.SECURITY,
                "Suspicious URL pattern detected",
                {
                    "severity": "high",
                    "signature": match.name,
                    "signatures": [
                        s.name for s in self.url_inspector.inspect_all(url)
                    ],
                    "url": url[:500],
                },
            )
        if SUSPICIOUS_USER_AGENTS.search(info.user_agent) and "/api/" not in info.path:
            self._record(
                LogLevel.WARN,
                LogCategory.SECURITY,
                "Suspicious User-Agent detected",
                info,
                metadata={"event": "suspicious_user_agent", "severity": "medium"},
            )
        decision.stage = Stage.PATTERN_CHECKED

        # PATTERN_CHECKED -> RATE_CHECKED
        if self.rate_limiting_enabled:
            general = self.rate_limiter.check_and_consume(
                info.client_address, GENERAL_SCOPE, now
            )
            decision.rate_limit = general
            if not general.allowed:
                return self._reject(
                    decision,
                    info,
                    429,
                    RejectReason.RATE_LIMITED,
                    "Rate limit exceeded. Please try again later.",
                    LogLevel.WARN,
                    "Rate limit exceeded",
                    {"severity": "medium", "scope": GENERAL_SCOPE},
                )

            if self.is_sensitive(info.path):
                sensitive = self.rate_limiter.check_and_consume(
                    info.client_address, SENSITIVE_SCOPE, now
                )
                if not sensitive.allowed:
                    decision.rate_limit = sensitive
                    return self._reject(
                        decision,
                        info,
                        429,
                        RejectReason.SENSITIVE_RATE_LIMITED,
                        "Rate limit exceeded. Please try again later.",
                        LogLevel.WARN,
                        "Sensitive endpoint rate limit exceeded",
                        {"severity": "high", "scope": SENSITIVE_SCOPE},
                    )
        decision.stage = Stage.RATE_CHECKED

        # RATE_CHECKED -> PAYLOAD_CHECKED
        if info.method.upper() in BODY_METHODS and info.load_payload is not None:
            found = self._inspect_payload(info)
            if found is not None:
                decision.suspicious_field = found.field
                metadata = {
                    "severity": "critical",
                    "suspiciousField": found.field,
                    "signature": found.signature.name,
                }
                if self.block_on_payload_match:
                    return self._reject(
                        decision,
                        info,
                        403,
                        RejectReason.SUSPICIOUS_PAYLOAD,
                        "Forbidden",
                        LogLevel.SECURITY,
                        "Suspicious payload detected",
                        metadata,
                    )
                self._record(
                    LogLevel.SECURITY,
                    LogCategory.SECURITY,
                    "Suspicious payload detected",
                    info,
                    metadata={
                        "event": "suspicious_payload",
                        "blocked": False,
                        **metadata,
                    },
                )
        decision.stage = Stage.PAYLOAD_CHECKED

        # PAYLOAD_CHECKED -> ADMITTED; recorded by complete()
        decision.stage = Stage.ADMITTED
        return decision

    def complete(
        self, decision: Decision, info: RequestInfo, status_code: int, now=None
    ) -> None:
        """Record the single audit event of an admitted request."""
        if not decision.admitted or decision.completed:
            return
        decision.completed = True
        now = self.clock() if now is None else now
        self._record(
            LogLevel.WARN if status_code >= 400 else LogLevel.INFO,
            LogCategory.API,
            f"{info.method} {info.path} - {status_code}",
            info,
            status_code=status_code,
            duration_ms=max(0.0, (now - decision.started_at) * 1000),
        )

    def _inspect_payload(self, info: RequestInfo):
        try:
            payload = info.load_payload()
        except MalformedPayload as e:
            # Nothing to inspect; let the handler answer the bad request
            self._record(
                LogLevel.WARN,
                LogCategory.SECURITY,
                "Invalid request payload",
                info,
                metadata={
                    "event": "invalid_payload",
                    "severity": "medium",
                    "error": e.message,
                },
            )
            return None
        if payload is None:
            return None
        return self.payload_inspector.inspect_fields(payload)

    def _reject(
        self,
        decision: Decision,
        info: RequestInfo,
        status_code: int,
        reason: RejectReason,
        detail: str,
        level: LogLevel,
        message: str,
        metadata: dict,
    ) -> Decision:
        decision.stage = Stage.REJECTED
        decision.status_code = status_code
        decision.reason = reason
        decision.detail = detail
        decision.completed = True
        if decision.rate_limit and not decision.rate_limit.allowed:
            metadata = {**metadata, "retry_after": decision.rate_limit.retry_after}
        self._record(
            level,
            LogCategory.SECURITY,
            message,
            info,
            status_code=status_code,
            duration_ms=0.0,
            metadata={"event": reason.value, **metadata},
        )
        return decision

    def _record(
        self,
        level: LogLevel,
        category: LogCategory,
        message: str,
        info: RequestInfo,
        status_code=None,
        duration_ms=None,
        metadata=None,
    ) -> None:
        self.audit.record(
            AuditEvent(
                level=level,
                category=category,
                message=message,
                client_address=info.client_address,
                user_agent=info.user_agent,
                endpoint=info.path,
                method=info.method,
                status_code=status_code,
                duration_ms=duration_ms,
                metadata=metadata or {},
            )
        )


def _load_request_payload():
    """Parse the current Flask request body for inspection."""
    if request.is_json:
        if not request.get_data(cache=True):
            return None
        try:
            return request.get_json(cache=True)
        except BadRequest as e:
            raise MalformedPayload("Invalid JSON payload") from e
    if request.mimetype in FORM_MIMETYPES:
        return request.form.to_dict()
    return None


def rejection_response(decision: Decision):
    """JSON response for a rejected request."""
    response_data = {
        "status": decision.status_code,
        "detail": decision.detail,
        "error_code": decision.reason.value.upper(),
    }
    if decision.rate_limit and not decision.rate_limit.allowed:
        response_data["retry_after"] = decision.rate_limit.retry_after

    response = jsonify(response_data)
    response.status_code = decision.status_code
    for header, value in decision.headers.items():
        response.headers[header] = value
    return response


class AdmissionControl:
    """Flask extension running the admission pipeline around every request.

    Owns the audit sink and the injected state store; ``reset`` rebuilds the
    pipeline around a fresh store (or a supplied one) and an optional clock.
    """

    def __init__(self, app=None):
        self.app = None
        self.settings = None
        self.audit = None
        self.store = None
        self.rate_limiter = None
        self.lockout = None
        self.pipeline = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        audit_config = app.config.get("AUDIT", {})
        self.settings = validate_admission_settings(
            app.config.get("ADMISSION", {}), audit_config
        )
        self.app = app
        self.audit = build_audit_sink(audit_config)
        self.reset()

        app.before_request(self._before_request)
        app.after_request(self._after_request)
        app.teardown_request(self._teardown_request)
        app.extensions["admission"] = self

    def reset(self, store=None, clock=None):
        if self.app is None:
            raise RuntimeError("AdmissionControl is not bound to an application")
        self.settings = validate_admission_settings(
            self.app.config.get("ADMISSION", {})
        )

        clock = clock or time.time
        self.store = store or MemoryStateStore(self.settings.sweep_interval)
        self.rate_limiter = RateLimiter(self.store, self.settings.limits, clock)
        self.lockout = LockoutTracker(
            self.store,
            max_attempts=self.settings.max_attempts,
            lockout_duration=self.settings.lockout_duration,
            clock=clock,
        )
        self.pipeline = AdmissionPipeline(
            self.rate_limiter,
            self.audit,
            url_inspector=PatternInspector(self.settings.url_signatures),
            payload_inspector=PatternInspector(self.settings.payload_signatures),
            sensitive_endpoints=self.settings.sensitive_endpoints,
            rate_limiting_enabled=self.settings.rate_limiting_enabled,
            block_on_payload_match=self.settings.block_on_payload_match,
            clock=clock,
        )
        logger.debug("Admission pipeline initialised")

    def _before_request(self):
        info = RequestInfo(
            method=request.method,
            path=request.path,
            query_string=request.query_string.decode("utf-8", "replace"),
            client_address=get_remote_address(),
            user_agent=request.headers.get("User-Agent", "unknown"),
            load_payload=_load_request_payload,
        )
        decision = self.pipeline.evaluate(info)
        g.admission_request = info
        g.admission_decision = decision
        if not decision.admitted:
            return rejection_response(decision)
        return None

    def _after_request(self, response):
        decision = g.get("admission_decision")
        if decision is None:
            return response
        if decision.admitted:
            for header, value in decision.headers.items():
                response.headers[header] = value
        self.pipeline.complete(decision, g.admission_request, response.status_code)
        return response

    def _teardown_request(self, exc):
        decision = g.get("admission_decision")
        if decision is not None and decision.admitted and not decision.completed:
            self.pipeline.complete(decision, g.admission_request, 500)
