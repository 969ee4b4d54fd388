import pytest
from fastapi.testclient import TestClient

from ashram.core.dependencies import get_resource_provider
from ashram.main import app
from ashram.services.browser_pool import BrowserPool
from ashram.services.resources import StaticResourceProvider


@pytest.fixture
def client() -> TestClient:
    app.dependency_overrides[get_resource_provider] = lambda: StaticResourceProvider()
    test_client = TestClient(app)
    yield test_client
    test_client.close()
    app.dependency_overrides.clear()


def test_healthcheck(client: TestClient) -> None:
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readiness_reports_fonts_and_browser(client: TestClient) -> None:
    response = client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "fonts": False, "browser": "idle"}


def test_request_id_header(client: TestClient) -> None:
    response = client.get("/api/v1/health")
    assert response.headers.get("X-Request-ID")

    echoed = client.get("/api/v1/health", headers={"X-Request-ID": "req-42"})
    assert echoed.headers["X-Request-ID"] == "req-42"

    replaced = client.get("/api/v1/health", headers={"X-Request-ID": "not a valid id !!"})
    assert replaced.headers["X-Request-ID"] != "not a valid id !!"


def test_metrics_count_rendered_receipts(client: TestClient, receipt_fields: dict) -> None:
    assert client.get("/api/v1/metrics").json() == {}
    client.post("/api/v1/receipts/pdf", json={"receipt": receipt_fields})

    assert client.get("/api/v1/metrics").json() == {"receipts_rendered": 1, "receipts_rendered:vector": 1}


def test_unknown_route_uses_error_body(client: TestClient) -> None:
    response = client.get("/api/v1/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_lifespan_owns_browser_pool() -> None:
    with TestClient(app) as client:
        pool = client.app.state.browser_pool
        assert isinstance(pool, BrowserPool)
        assert client.get("/api/v1/health/ready").json()["browser"] == "idle"
    assert not pool.is_healthy()
