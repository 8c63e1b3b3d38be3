from __future__ import annotations

from app.main import app
from app.services.discovery.coordinator import FanOutCoordinator, get_coordinator
from app.services.discovery.registry import AdapterRegistry
from tests.outages.fake_providers import ok_adapter


def test_root_and_health(client):
    banner = client.get("/").json()
    assert banner["service"] == "Startup Scout"
    assert banner["mode"] in {"online", "fixture"}
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_readiness_reports_adapter_count(client):
    app.dependency_overrides[get_coordinator] = lambda: FanOutCoordinator(
        AdapterRegistry([ok_adapter("exa"), ok_adapter("tavily")])
    )
    try:
        response = client.get("/health/ready")
    finally:
        app.dependency_overrides.pop(get_coordinator, None)

    assert response.status_code == 200
    assert response.json()["adapters"] == 2


def test_readiness_fails_without_adapters(client):
    app.dependency_overrides[get_coordinator] = lambda: FanOutCoordinator(AdapterRegistry([]))
    try:
        response = client.get("/health/ready")
    finally:
        app.dependency_overrides.pop(get_coordinator, None)

    assert response.status_code == 503
