from __future__ import annotations

from fastapi.testclient import TestClient


def test_health_returns_ok(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    # In tests, neither Redis nor Postgres is configured
    assert data["checks"] == {"redis": "not_configured", "database": "not_configured"}


def test_ready_returns_200(client: TestClient) -> None:
    resp = client.get("/ready")
    assert resp.status_code == 200


def test_health_response_carries_request_id(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "req-abc-1"})
    assert resp.headers["X-Request-ID"] == "req-abc-1"
