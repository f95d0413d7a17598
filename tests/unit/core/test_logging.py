"""
Tests for logging middleware.
Credential and contact-data masking, client IP masking and the JSON formatter.
"""

import json
import logging
import sys

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.requests import Request

from core.middleware.logging import (
    StructuredFormatter,
    StructuredLoggingMiddleware,
    get_client_ip,
    is_sensitive_field,
    mask_headers,
    mask_sensitive_data,
    performance_label,
    should_log_request,
)


def make_request(headers=None, client=("192.168.10.25", 5000)):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/api/v1/search",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestSensitiveFields:
    """Test credential detection by field name."""

    @pytest.mark.parametrize(
        "field_name,expected",
        [
            ("password", True),
            ("access_token", True),
            ("apiKey", True),
            ("client_secret", True),
            ("Authorization", True),
            ("session_id", True),
            ("notes", False),
            ("candidateStatus", False),
            ("email", False),
        ],
    )
    def test_field_detection(self, field_name, expected):
        assert is_sensitive_field(field_name) is expected


class TestMasking:
    """Test recursive masking of payloads."""

    def test_credentials_redacted(self):
        masked = mask_sensitive_data({"password": "hunter2", "jobId": 4})

        assert masked == {"password": "[REDACTED]", "jobId": 4}

    def test_contact_details_in_free_text(self):
        masked = mask_sensitive_data(
            {"notes": "Reach carol@example.com or +49 30 1234567 after 5pm"}
        )

        assert "carol@example.com" not in masked["notes"]
        assert "[EMAIL]" in masked["notes"]
        assert "[PHONE]" in masked["notes"]

    def test_nested_structures(self):
        masked = mask_sensitive_data({"items": [{"token": "abc"}, {"feedback": "ok"}]})

        assert masked["items"][0]["token"] == "[REDACTED]"
        assert masked["items"][1]["feedback"] == "ok"

    def test_max_depth(self):
        data = current = {}
        for _ in range(15):
            current["child"] = {}
            current = current["child"]

        masked = mask_sensitive_data(data, max_depth=3)

        assert masked["child"]["child"]["child"]["child"] == "[MAX_DEPTH_EXCEEDED]"

    def test_headers_keep_auth_scheme(self):
        masked = mask_headers(
            {"Authorization": "Bearer eyJabc", "Cookie": "sid=1", "Accept": "application/json"}
        )

        assert masked["Authorization"] == "Bearer [REDACTED]"
        assert masked["Cookie"] == "[REDACTED]"
        assert masked["Accept"] == "application/json"


class TestRequestHelpers:
    """Test request-level helpers."""

    def test_probes_not_logged(self):
        assert not should_log_request("/health")
        assert not should_log_request("/ready")
        assert should_log_request("/api/v1/assignments")

    def test_client_ip_masked(self):
        assert get_client_ip(make_request()) == "192.168.10.xxx"

    def test_forwarded_for_wins(self):
        request = make_request(headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})

        assert get_client_ip(request) == "203.0.113.xxx"

    def test_non_ipv4_is_unknown(self):
        assert get_client_ip(make_request(client=("::1", 5000))) == "unknown"

    @pytest.mark.parametrize("duration,label", [(0.2, "fast"), (2.0, "moderate"), (6.0, "slow")])
    def test_performance_label(self, duration, label):
        assert performance_label(duration) == label


class TestStructuredFormatter:
    """Test JSON log formatting."""

    def _record(self, **extra):
        record = logging.LogRecord("recruit", logging.INFO, __file__, 1, "assignment created", (), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_extras_included(self):
        output = json.loads(StructuredFormatter().format(self._record(assignment_id=7, actor_id=3)))

        assert output["message"] == "assignment created"
        assert output["level"] == "INFO"
        assert output["assignment_id"] == 7
        assert output["actor_id"] == 3

    def test_private_attributes_skipped(self):
        output = json.loads(StructuredFormatter().format(self._record(_internal="x")))

        assert "_internal" not in output

    def test_exception_serialized(self):
        try:
            raise ValueError("bad limit")
        except ValueError:
            record = logging.LogRecord(
                "recruit", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
            )

        output = json.loads(StructuredFormatter().format(record))

        assert output["exception"]["type"] == "ValueError"
        assert output["exception"]["message"] == "bad limit"


class TestStructuredLoggingMiddleware:
    """Test the request logging middleware."""

    @pytest.fixture
    def client(self):
        app = FastAPI()
        app.add_middleware(StructuredLoggingMiddleware)

        @app.get("/api/v1/search")
        async def search():
            return {"ok": True}

        @app.get("/health")
        async def health():
            return {"status": "healthy"}

        return TestClient(app)

    def test_request_id_echoed(self, client):
        response = client.get("/api/v1/search", headers={"x-request-id": "req-123"})

        assert response.headers["x-request-id"] == "req-123"

    def test_request_id_generated(self, client):
        response = client.get("/api/v1/search")

        assert response.headers["x-request-id"]

    def test_logs_without_credentials(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="core.middleware.logging"):
            client.get(
                "/api/v1/search?q=carol@example.com",
                headers={"Authorization": "Bearer secret-token-value"},
            )

        text = "\n".join(
            r.getMessage() for r in caplog.records if r.name == "core.middleware.logging"
        )
        assert "request_started" in text
        assert "request_completed" in text
        assert "secret-token-value" not in text
        assert "carol@example.com" not in text

    def test_health_not_logged(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="core.middleware.logging"):
            response = client.get("/health")

        assert response.status_code == 200
        assert "request_started" not in caplog.text
