from __future__ import annotations

from app.api.routes import health as health_module


def test_health_check(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_readiness_without_database(client, monkeypatch):
    monkeypatch.setattr(health_module, "check_database_health", lambda: True)

    response = client.get("/health/ready")

    assert response.status_code == 200
    assert response.json()["status"] == "ready"


def test_readiness_reports_unavailable_database(client, monkeypatch):
    monkeypatch.setattr(health_module, "check_database_health", lambda: False)

    response = client.get("/health/ready")

    assert response.status_code == 503
    assert response.json() == {"success": False, "error": "Database is not available"}


def test_root_reports_app_name(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["message"].startswith("Welcome to")
