from uuid import uuid4

from fastapi.testclient import TestClient

from budget_api.auth import get_current_user_id
from budget_api.config import settings
from budget_api.main import app
from budget_api.services.summary_cache import InMemorySummaryCache


def test_health_and_lifespan_state() -> None:
    with TestClient(app) as client:
        response = client.get("/health")
        cache = app.state.summary_cache

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    # Summaries read live data unless a TTL is configured.
    assert cache is None


def test_lifespan_creates_cache_when_ttl_configured(monkeypatch) -> None:
    monkeypatch.setattr(settings, "summary_cache_ttl_seconds", 30)

    with TestClient(app):
        cache = app.state.summary_cache

    assert isinstance(cache, InMemorySummaryCache)


def test_budget_routes_fail_explicitly_without_database() -> None:
    app.dependency_overrides[get_current_user_id] = lambda: uuid4()
    try:
        with TestClient(app) as client:
            response = client.get("/budget/summary", params={"date": "2025-11-18"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["detail"] == "DATABASE_URL is not configured"
