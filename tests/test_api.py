"""
Tests for the inspection API.
"""

import pytest
from fastapi.testclient import TestClient

from swr_cache.api.app import create_app
from swr_cache.errors import TransportError
from swr_cache.services import SyncService


@pytest.fixture
def client(fetcher, mirror):
    """Create a test client with the lifespan running."""
    service = SyncService(fetcher=fetcher, mirror=mirror, interval=60, max_entries=0, restore=False)
    with TestClient(create_app(cache_service=service, watch_keys=["ops"])) as client:
        yield client
    assert service.closed


def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "SWR Cache Inspector"
    assert data["endpoints"]["cache"] == "/cache"


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "mirror_healthy": True}


def test_list_keys(client):
    """Watched keys have an entry from startup."""
    response = client.get("/cache")
    assert response.status_code == 200
    assert response.json()["keys"] == ["ops"]


def test_get_entry(client):
    """Test reading a watched entry after revalidation."""
    client.post("/cache/ops/revalidate")

    response = client.get("/cache/ops")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["data"] == [{"id": 1, "status": "pending"}]
    assert data["subscribers"] == 1
    assert data["armed"] is True


def test_get_unknown_entry(client):
    """Unknown keys are 404, not an empty entry."""
    response = client.get("/cache/unknown")
    assert response.status_code == 404


def test_revalidate_with_params(client, fetcher):
    """Test manual revalidation passes query parameters."""
    response = client.post("/cache/ops/revalidate", json={"params": {"status": "pending"}})
    assert response.status_code == 200
    assert fetcher.calls[-1] == ("ops", {"status": "pending"})


def test_revalidate_failure_is_reported_in_entry(client, fetcher):
    """Fetch failures come back as entry errors with HTTP 200."""
    client.post("/cache/ops/revalidate")
    fetcher.results = [TransportError("down", status_code=503)]

    response = client.post("/cache/ops/revalidate")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "errored"
    assert data["data"] == [{"id": 1, "status": "pending"}]
    assert data["error"]["code"] == "TRANSPORT_ERROR"
    assert data["error"]["details"]["status_code"] == 503


def test_mutate(client, fetcher):
    """Test optimistic mutation endpoint."""
    client.post("/cache/ops/revalidate")
    calls = len(fetcher.calls)

    response = client.post("/cache/ops/mutate", json={"data": [{"id": 2, "status": "done"}]})
    assert response.status_code == 200
    assert response.json()["data"] == [{"id": 2, "status": "done"}]
    assert len(fetcher.calls) == calls


def test_get_stats(client):
    """Test get stats endpoint."""
    client.post("/cache/ops/revalidate")

    response = client.get("/stats")
    assert response.status_code == 200
    data = response.json()
    assert data["entries"] == 1
    assert data["armed_timers"] == 1
    assert data["revalidate_interval"] == 60
    assert data["metrics"]["fetches"] >= 1
