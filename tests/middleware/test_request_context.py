from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    uuid.UUID(resp.headers["x-request-id"])


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert resp.headers["x-request-id"] == "req-123"


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    resp = client.get("/v1/courses")  # no token
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_completion_line_is_logged_with_context(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(
        logging.INFO, logger="progress_engine.middleware.request_context"
    ):
        client.get("/health", headers={"X-Request-ID": "req-log"})

    records = [r for r in caplog.records if getattr(r, "request_id", None) == "req-log"]
    assert records
    assert records[-1].status_code == 200  # type: ignore[attr-defined]
    assert records[-1].path == "/health"  # type: ignore[attr-defined]
