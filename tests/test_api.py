"""Tests for the FastAPI endpoints."""

import pytest
from fastapi.testclient import TestClient

from govservices.api.app import create_app
from govservices.catalog import sample_services
from tests.service_stubs import StubExtractor

GOLDEN_URL = "https://icp.gov.ae/en/services/golden-visa"
DENIED_URL = "https://example.gov.ae/private"
BROKEN_URL = "https://example.gov.ae/broken"
BUSY_URL = "https://example.gov.ae/busy"


@pytest.fixture
def extractor() -> StubExtractor:
    return StubExtractor(
        pages={GOLDEN_URL: {"title": "Golden Visa", "category": "visa"}},
        denied={DENIED_URL},
        failing={BROKEN_URL},
        rate_limited={BUSY_URL},
    )


@pytest.fixture
def client(make_orchestrator, extractor) -> TestClient:
    orchestrator = make_orchestrator(extractor=extractor)
    orchestrator.initialize(sample_services())
    return TestClient(create_app(orchestrator))


def test_healthz_reports_stats(client: TestClient) -> None:
    resp = client.get("/healthz")

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["services"] == 3


def test_search_returns_ranked_services(client: TestClient) -> None:
    resp = client.get("/search", params={"q": "visa", "language": "en"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["query"] == "visa"
    assert data["total"] == 1
    first = data["results"][0]
    assert first["service"]["id"] == "visa-001"
    assert "title" in first["matchedFields"]
    assert first["relevanceScore"] > 0


def test_search_without_matches_is_empty(client: TestClient) -> None:
    resp = client.get("/search", params={"q": "submarine"})

    assert resp.status_code == 200
    assert resp.json()["results"] == []


def test_search_validates_options(client: TestClient) -> None:
    assert client.get("/search", params={"q": "visa", "sort_by": "price"}).status_code == 422
    assert client.get("/search", params={"q": "visa", "language": "fr"}).status_code == 422


def test_scrape_indexes_page(client: TestClient) -> None:
    resp = client.post("/scrape", json={"url": GOLDEN_URL})

    assert resp.status_code == 200
    service = resp.json()
    assert service["title"] == "Golden Visa"
    assert service["authorityCode"] == ""

    fetched = client.get(f"/services/{service['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["url"] == GOLDEN_URL


@pytest.mark.parametrize(
    "url,status",
    [(DENIED_URL, 403), (BUSY_URL, 429), (BROKEN_URL, 502)],
)
def test_scrape_errors_map_to_status_codes(client: TestClient, url: str, status: int) -> None:
    resp = client.post("/scrape", json={"url": url})

    assert resp.status_code == status
    assert url in resp.json()["detail"]


def test_batch_returns_successful_records_only(client: TestClient) -> None:
    resp = client.post("/batch", json={"urls": [GOLDEN_URL, BROKEN_URL, DENIED_URL]})

    assert resp.status_code == 200
    data = resp.json()
    assert data["requested"] == 3
    assert data["indexed"] == 1
    assert data["services"][0]["title"] == "Golden Visa"


def test_batch_requires_urls(client: TestClient) -> None:
    assert client.post("/batch", json={"urls": []}).status_code == 422


def test_clear_cache_by_prefix(client: TestClient) -> None:
    client.get("/search", params={"q": "visa", "language": "en"})
    client.get("/search", params={"q": "visa", "language": "ar"})

    resp = client.delete("/cache", params={"prefix": "search:en:"})

    assert resp.json() == {"removed": 1, "prefix": "search:en:"}
    assert client.get("/healthz").json()["cache_entries"] == 1


def test_respond_uses_catalog_provider(client: TestClient) -> None:
    resp = client.post("/respond", json={"query": "emirates id renewal"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["provider"] == "catalog"
    assert data["services"][0]["service"]["id"] == "id-001"


def test_unknown_service_is_404(client: TestClient) -> None:
    assert client.get("/services/does-not-exist").status_code == 404
