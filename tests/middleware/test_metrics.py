"""Prometheus counters cannot be reset between tests; assert on deltas."""

from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from tests.conftest import auth


def _get_sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/health")
    assert _get_sample("http_requests_total", labels) - before == 1


def test_request_duration_histogram_observes(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health"}
    before = _get_sample("http_request_duration_seconds_count", labels)
    client.get("/health")
    after = _get_sample("http_request_duration_seconds_count", labels)
    assert after - before == 1


def test_endpoint_label_uses_route_template(client: TestClient, token: str) -> None:
    labels = {
        "method": "PUT",
        "endpoint": "/v1/progress/video/{content_item_id}",
        "status_code": "404",
    }
    before = _get_sample("http_requests_total", labels)
    client.put(
        f"/v1/progress/video/{uuid4()}",
        json={"last_position_seconds": 1},
        headers=auth(token),
    )
    assert _get_sample("http_requests_total", labels) - before == 1


def test_metrics_endpoint_exposes_engine_metrics(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert "progress_recompute_conflicts_total" in resp.text
    assert "course_completions_total" in resp.text


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/metrics", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/metrics")
    client.get("/metrics")
    assert _get_sample("http_requests_total", labels) == before
