"""Tests for request ID middleware and correlation logging."""

from __future__ import annotations

import logging
import re

from fastapi.testclient import TestClient

from co_backend.logging_config import RequestIdFilter, configure_logging
from co_backend.request_context import get_request_id, resolve_request_id


def test_request_id_auto_generated(client: TestClient):
    """Test that response includes auto-generated X-Request-Id header (UUID)."""
    response = client.get("/api/health")
    assert response.status_code == 200

    request_id = response.headers.get("X-Request-Id")
    assert request_id is not None

    # Validate it's a UUIDv4 format
    uuid_pattern = re.compile(
        r"^[a-f0-9]{8}-[a-f0-9]{4}-4[a-f0-9]{3}-[89ab][a-f0-9]{3}-[a-f0-9]{12}$"
    )
    assert uuid_pattern.match(request_id), f"Invalid UUID format: {request_id}"

    # API version header should also be present
    assert response.headers.get("X-API-Version") == "1"


def test_request_id_passthrough(client: TestClient):
    """Test that client-provided X-Request-Id is honored (pass-through)."""
    custom_request_id = "test-custom-request-id-12345"

    response = client.get("/api/health", headers={"X-Request-Id": custom_request_id})
    assert response.status_code == 200
    assert response.headers.get("X-Request-Id") == custom_request_id


def test_request_id_on_error_responses(client: TestClient):
    """Error envelopes still carry the correlation header."""
    response = client.get("/api/related", headers={"X-Request-Id": "err-1"})
    assert response.status_code == 400
    assert response.json() == {"error": "path is required"}
    assert response.headers.get("X-Request-Id") == "err-1"


def test_request_id_in_logs(client: TestClient):
    """Test that request ID filter is properly configured in logging."""
    configure_logging()

    # Verify that RequestIdFilter is installed on root logger handlers
    root_logger = logging.getLogger()
    assert len(root_logger.handlers) > 0, "No handlers configured on root logger"

    filter_found = any(
        isinstance(filter_obj, RequestIdFilter)
        for handler in root_logger.handlers
        for filter_obj in handler.filters
    )
    assert filter_found, "RequestIdFilter not found in any handler"

    response = client.get("/api/health", headers={"X-Request-Id": "test-log-request-id"})
    assert response.status_code == 200

    # The context is cleared once the request completes.
    assert get_request_id() is None


def test_unusable_client_request_id_is_replaced(client: TestClient):
    """IDs with whitespace or excessive length are not echoed into logs."""
    for bad in ("has spaces in it", "x" * 200):
        response = client.get("/api/health", headers={"X-Request-Id": bad})
        assert response.status_code == 200
        request_id = response.headers.get("X-Request-Id")
        assert request_id != bad
        assert len(request_id) == 36


def test_resolve_request_id():
    assert resolve_request_id("  trace-01:abc  ") == "trace-01:abc"
    assert resolve_request_id(None) != resolve_request_id(None)
    assert len(resolve_request_id("")) == 36
