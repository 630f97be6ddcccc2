"""End-to-end tests of request admission through the Flask app"""

from conftest import audit_events

from schoolapi.utils.security_events import LogCategory, LogLevel

CLIENT = {"REMOTE_ADDR": "1.2.3.4"}
INJECTION = {"name": "Robert'); DROP TABLE Students;--"}


class TestGeneralRateLimit:
    def test_101st_request_is_rejected(self, client, admission):
        for i in range(100):
            response = client.get("/api/courses", environ_base=CLIENT)
            assert response.status_code == 200
            assert response.headers["X-RateLimit-Limit"] == "100"
            assert response.headers["X-RateLimit-Remaining"] == str(99 - i)

        response = client.get("/api/courses", environ_base=CLIENT)
        assert response.status_code == 429
        assert response.headers["Retry-After"] == "900"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert response.json["error_code"] == "RATE_LIMITED"
        assert response.json["retry_after"] == 900

        events = audit_events(admission)
        assert len(events) == 101
        assert all(e.category == LogCategory.API for e in events[:100])
        assert events[-1].level == LogLevel.WARN
        assert events[-1].status_code == 429

    def test_other_clients_are_unaffected(
        self, client, admission_settings, admission, clock
    ):
        admission_settings["RATE_LIMITING"]["GENERAL_LIMIT"] = "2 per minute"
        admission.reset(clock=clock)
        for _ in range(3):
            client.get("/ping", environ_base=CLIENT)
        assert client.get("/ping", environ_base=CLIENT).status_code == 429
        other = client.get("/ping", environ_base={"REMOTE_ADDR": "5.6.7.8"})
        assert other.status_code == 200

    def test_window_expiry(self, client, admission_settings, admission, clock):
        admission_settings["RATE_LIMITING"]["GENERAL_LIMIT"] = "1 per minute"
        admission.reset(clock=clock)
        assert client.get("/ping", environ_base=CLIENT).status_code == 200
        assert client.get("/ping", environ_base=CLIENT).status_code == 429
        clock.advance(60)
        assert client.get("/ping", environ_base=CLIENT).status_code == 200

    def test_disabled_rate_limiting(self, client, admission_settings, admission, clock):
        admission_settings["RATE_LIMITING"]["ENABLED"] = False
        admission_settings["RATE_LIMITING"]["GENERAL_LIMIT"] = "1 per minute"
        admission.reset(clock=clock)
        for _ in range(3):
            response = client.get("/ping", environ_base=CLIENT)
            assert response.status_code == 200
            assert "X-RateLimit-Limit" not in response.headers


class TestSuspiciousUrl:
    def test_traversal_in_query_is_rejected(self, client, admission):
        response = client.get("/api/anything?path=../../etc/passwd")
        assert response.status_code == 403
        assert response.json == {
            "status": 403,
            "detail": "Forbidden",
            "error_code": "SUSPICIOUS_URL",
        }

        events = audit_events(admission)
        assert len(events) == 1
        event = events[0]
        assert event.level == LogLevel.SECURITY
        assert event.category == LogCategory.SECURITY
        assert event.metadata["signature"] == "path_traversal"
        assert event.endpoint == "/api/anything"

    def test_rejected_url_does_not_consume_quota(self, client, admission):
        client.get("/api/anything?q=<script>alert(1)</script>", environ_base=CLIENT)
        assert admission.rate_limiter.active_windows() == []


class TestPayloadInspection:
    def test_injection_is_detected_and_logged(self, client, admission):
        response = client.post("/api/courses", json=INJECTION)
        # Detection only: the request reaches the handler, which wants a token
        assert response.status_code == 401

        events = audit_events(admission)
        detections = [
            e for e in events if e.metadata.get("event") == "suspicious_payload"
        ]
        assert len(detections) == 1
        assert detections[0].level == LogLevel.SECURITY
        assert detections[0].metadata["suspiciousField"] == "name"
        assert detections[0].metadata["blocked"] is False
        assert events[-1].category == LogCategory.API
        assert events[-1].status_code == 401

    def test_blocking_mode_rejects(self, client, admission_settings, admission, clock):
        admission_settings["BLOCK_ON_PAYLOAD_MATCH"] = True
        admission.reset(clock=clock)

        response = client.post("/api/courses", json=INJECTION)
        assert response.status_code == 403
        assert response.json["error_code"] == "SUSPICIOUS_PAYLOAD"

        events = audit_events(admission)
        assert len(events) == 1
        assert events[0].metadata["suspiciousField"] == "name"

    def test_form_fields_are_inspected(self, client, admission):
        client.post(
            "/api/auth/login",
            data={"identifier": "<script>alert(1)</script>", "password": "x"},
        )
        detections = [
            e
            for e in audit_events(admission)
            if e.metadata.get("event") == "suspicious_payload"
        ]
        assert detections[0].metadata["suspiciousField"] == "identifier"

    def test_malformed_json_is_logged_and_passed_on(self, client, admission):
        response = client.post(
            "/api/auth/register", data="{not json", content_type="application/json"
        )
        assert response.status_code == 400

        events = audit_events(admission)
        assert events[0].metadata["event"] == "invalid_payload"
        assert events[0].level == LogLevel.WARN
        assert events[-1].status_code == 400


class TestAdmittedResponses:
    def test_admission_event_carries_status(self, client, admission):
        client.get("/api/does-not-exist")
        events = audit_events(admission)
        assert len(events) == 1
        assert events[0].status_code == 404
        assert events[0].level == LogLevel.WARN
        assert events[0].message == "GET /api/does-not-exist - 404"

    def test_user_agent_is_recorded(self, client, admission):
        client.get("/ping", headers={"User-Agent": "school-dashboard/1.0"})
        assert audit_events(admission)[0].user_agent == "school-dashboard/1.0"
