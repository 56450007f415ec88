from __future__ import annotations

from fastapi.testclient import TestClient

from windowlimit.core.app_factory import create_app


client = TestClient(create_app(configure_logs=False))


def test_preserves_incoming_request_id_header():
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing():
    resp = client.get("/health")

    assert resp.status_code == 200
    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert len(generated) > 0

    duration = resp.headers.get("X-Request-Duration-ms")
    assert duration is not None


def test_error_envelope_carries_request_id():
    from windowlimit.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter

    limited = TestClient(create_app(SlidingWindowRateLimiter(0, 10), configure_logs=False))
    resp = limited.post("/v1/limiter/attempt", headers={"X-Request-ID": "corr-42"})

    assert resp.status_code == 429
    assert resp.json()["error"]["request_id"] == "corr-42"
    assert resp.headers.get("X-Request-ID") == "corr-42"
