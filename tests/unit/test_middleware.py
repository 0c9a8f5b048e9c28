"""Tests for correlation IDs, security headers and the error body shape."""
from __future__ import annotations

import uuid
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from matchmaker.core.middleware import CORRELATION_HEADER
from matchmaker.main import app, run


@pytest.fixture
def client():
    return TestClient(app)


@pytest.mark.unit
class TestRequestTracing:
    def test_generates_correlation_id(self, client):
        response = client.get("/health")

        correlation_id = response.headers[CORRELATION_HEADER]
        assert str(uuid.UUID(correlation_id)) == correlation_id

    def test_echoes_incoming_correlation_id(self, client):
        response = client.get("/health", headers={CORRELATION_HEADER: "trace-abc-123"})

        assert response.headers[CORRELATION_HEADER] == "trace-abc-123"

    def test_error_responses_carry_correlation_id(self, client):
        response = client.get("/api/profile/nope", headers={CORRELATION_HEADER: "trace-err"})

        assert response.status_code == 400
        assert response.headers[CORRELATION_HEADER] == "trace-err"


@pytest.mark.unit
def test_security_headers(client):
    response = client.get("/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert "server" not in response.headers


@pytest.mark.unit
def test_unknown_route_uses_error_body(client):
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


@pytest.mark.unit
def test_server_header_disabled_in_uvicorn():
    with patch("matchmaker.main.uvicorn.run") as uvicorn_run:
        run()

    args, kwargs = uvicorn_run.call_args
    assert args == ("matchmaker.main:app",)
    assert kwargs["server_header"] is False
