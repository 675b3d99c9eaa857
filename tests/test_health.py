"""
Tests for health and liveness endpoints.
"""
from sqlalchemy.exc import OperationalError

from core.backend import BackendClient


def test_basic_health(client):
    assert client.get("/health").json()["status"] == "ok"
    body = client.get("/health/").json()
    assert body["status"] == "ok"
    assert "timestamp" in body


def test_root_lists_health_checks(client):
    assert client.get("/").json()["health_checks"]["database"] == "/api/db-health"


def test_db_health(client, alice):
    response = client.get("/api/db-health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["database"] == "connected"


def test_db_health_failure(client, monkeypatch):
    async def broken_ping(self):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(BackendClient, "ping", broken_ping)
    response = client.get("/api/db-health")
    assert response.status_code == 500
    assert response.json()["status"] == "unhealthy"
    assert response.json()["error"] == "Database connection failed"


def test_detailed_health(client):
    response = client.get("/health/detailed")
    assert response.status_code == 200
    body = response.json()
    assert body["database"]["status"] == "healthy"
    assert body["storage"]["status"] == "healthy"
    assert body["overall_status"] in ("healthy", "degraded")


def test_security_headers(client):
    response = client.get("/api/config")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Cache-Control"] == "no-store"
