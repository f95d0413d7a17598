"""
Tests for error handling middleware and the domain error rendering.
"""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import IntegrityError, OperationalError

from core.errors import (
    GENERIC_NOT_FOUND,
    BadRequest,
    Conflict,
    Forbidden,
    InvalidTransition,
    NotFound,
    UpstreamError,
)
from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    sanitize_error_message,
    setup_error_handlers,
)


class TestSanitization:
    """Test removal of secrets from error messages."""

    def test_password_redacted(self):
        message = sanitize_error_message("login failed password=hunter2")

        assert "hunter2" not in message
        assert "[REDACTED]" in message

    def test_database_url_redacted(self):
        message = sanitize_error_message(
            "could not connect to postgresql+asyncpg://app:s3cret@db:5432/pipeline"
        )

        assert "s3cret" not in message

    def test_plain_message_untouched(self):
        assert sanitize_error_message("Candidate 4 not found") == "Candidate 4 not found"


class Body(BaseModel):
    count: int


@pytest.fixture
def client():
    app = FastAPI()
    setup_error_handlers(app)
    app.add_middleware(ErrorHandlingMiddleware, debug=False)

    raises = {
        "forbidden": Forbidden("agent 3 is not assigned to HR 9", details={"hr": 9}),
        "not-found": NotFound("Assignment 12 not found"),
        "conflict": Conflict("duplicate", details={"existingAssignmentId": 7}),
        "transition": InvalidTransition("hired", "reviewed"),
        "bad-request": BadRequest("Either jobId or assignedTo is required"),
        "upstream": UpstreamError("Scoring service returned no content"),
        "integrity": IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")),
        "operational": OperationalError("SELECT", {}, Exception("connection refused")),
        "redis": RedisConnectionError("Connection refused"),
        "value": ValueError("limit must be positive"),
        "timeout": TimeoutError(),
        "boom": RuntimeError("secret=abc123 leaked"),
        "http": HTTPException(status_code=401, detail="Authentication required"),
    }

    @app.get("/raise/{name}")
    async def raise_error(name: str):
        raise raises[name]

    @app.post("/validate")
    async def validate(body: Body):
        return body

    return TestClient(app)


class TestDomainErrors:
    """Test rendering of the domain error taxonomy."""

    @pytest.mark.parametrize("name,status_code", [("forbidden", 403), ("not-found", 404)])
    def test_hidden_errors_are_generic(self, client, name, status_code):
        response = client.get(f"/raise/{name}")

        assert response.status_code == status_code
        error = response.json()["error"]
        assert error["message"] == GENERIC_NOT_FOUND
        assert "details" not in error
        assert "agent 3" not in response.text

    def test_conflict_identifies_duplicate(self, client):
        response = client.get("/raise/conflict")

        assert response.status_code == 409
        assert response.json()["error"]["details"] == {"existingAssignmentId": 7}

    def test_invalid_transition_names_target(self, client):
        response = client.get("/raise/transition")

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "INVALID_TRANSITION"
        assert error["details"]["target"] == "reviewed"

    def test_bad_request(self, client):
        response = client.get("/raise/bad-request")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "BAD_REQUEST"

    def test_upstream_error(self, client):
        response = client.get("/raise/upstream")

        assert response.status_code == 502
        assert response.json()["error"]["path"] == "/raise/upstream"


class TestInfrastructureErrors:
    """Test the middleware mapping of non-domain errors."""

    @pytest.mark.parametrize(
        "name,status_code,code",
        [
            ("integrity", 409, "CONFLICT"),
            ("operational", 503, "DATABASE_ERROR"),
            ("redis", 503, "CACHE_ERROR"),
            ("value", 400, "INVALID_INPUT"),
            ("timeout", 504, "TIMEOUT"),
            ("boom", 500, "INTERNAL_SERVER_ERROR"),
        ],
    )
    def test_status_mapping(self, client, name, status_code, code):
        response = client.get(f"/raise/{name}")

        assert response.status_code == status_code
        assert response.json()["error"]["code"] == code

    def test_internal_details_not_leaked(self, client):
        response = client.get("/raise/boom")

        assert "abc123" not in response.text
        assert response.json()["error"]["message"] == "An unexpected error occurred"

    def test_http_exception(self, client):
        response = client.get("/raise/http")

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Authentication required"

    def test_validation_error_lists_fields(self, client):
        response = client.post("/validate", json={"count": "many"})

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["field"] == "body.count"
