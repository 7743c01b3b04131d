import pytest
from fastapi.testclient import TestClient

from area_search.core.errors import StoreUnavailable
from area_search.data.listing_store import InMemoryListingStore
from area_search.main import app
from area_search.routers.search import service_dep
from area_search.services.search_service import SearchService

SQUARE = [{"lat": 0, "lng": 0}, {"lat": 0, "lng": 10}, {"lat": 10, "lng": 10}, {"lat": 10, "lng": 0}]


@pytest.fixture
def client(fixture_records):
    records = fixture_records + [{"id": "a", "lat": 5, "lng": 5}, {"id": "b", "lat": 50, "lng": 50}]
    store = InMemoryListingStore(records)
    app.dependency_overrides[service_dep] = lambda: SearchService(store=store)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_and_ping(client):
    assert client.get("/v1/health").json() == {"status": "ok"}
    assert client.get("/v1/ping").json() == {"pong": True}


def test_polygon_search_returns_canonical_records(client):
    r = client.post(
        "/v1/search/polygon",
        json={"shape": "polygon", "coordinates": SQUARE, "filters": {"listingType": "SALE"}},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["count"] == 1
    item = body["items"][0]
    assert item["id"] == "a"
    assert item["listingType"] == "SALE"
    assert item["images"] and item["newListing"] is False
    assert body["bounds"] == {"north": 10, "south": 0, "east": 10, "west": 0}
    assert r.headers["ETag"] == body["etag"]
    assert "X-Request-Id" in r.headers


def test_rectangle_search_with_sort(client):
    r = client.post(
        "/v1/search/polygon",
        json={
            "shape": "rectangle",
            "coordinates": [{"lat": 46.74, "lng": 23.54}, {"lat": 46.79, "lng": 23.62}],
            "sort": "price",
            "descending": True,
        },
    )
    assert r.status_code == 200
    body = r.json()
    assert [i["id"] for i in body["items"]] == ["p-house", "p-center", "p-rent"]
    assert body["dropped"] == 1


def test_area_search_with_bounds(client):
    r = client.post(
        "/v1/search/area",
        json={"bounds": {"north": 46.79, "south": 46.74, "east": 23.62, "west": 23.54}, "filters": {"property_category": "Case de vanzare"}},
    )
    assert r.status_code == 200
    assert [i["id"] for i in r.json()["items"]] == ["p-house"]


def test_type_filter_uses_canonical_values(client):
    r = client.post(
        "/v1/search/area",
        json={"bounds": {"north": 46.79, "south": 46.74, "east": 23.62, "west": 23.54}, "filters": {"type": "APARTMENT"}},
    )
    assert r.status_code == 200
    items = r.json()["items"]
    assert {i["id"] for i in items} == {"p-center", "p-rent"}
    assert {i["type"] for i in items} == {"APARTMENT"}


def test_self_intersecting_shape_asks_to_redraw(client):
    r = client.post(
        "/v1/search/polygon",
        json={"coordinates": [{"lat": 0, "lng": 0}, {"lat": 10, "lng": 10}, {"lat": 0, "lng": 10}, {"lat": 10, "lng": 0}]},
    )
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["error"] == "self_intersecting"
    assert "redraw" in detail["message"]


def test_degenerate_shape_is_422(client):
    r = client.post("/v1/search/polygon", json={"coordinates": [{"lat": 1, "lng": 1}, {"lat": 2, "lng": 2}]})
    assert r.status_code == 422
    assert r.json()["detail"]["error"] == "degenerate_shape"


def test_unsupported_filter_is_400(client):
    r = client.post("/v1/search/polygon", json={"coordinates": SQUARE, "filters": {"colour": "blue"}})
    assert r.status_code == 400


def test_store_unavailable_is_503():
    class DownStore:
        async def fetch(self, filters, **kwargs):
            raise StoreUnavailable("listing store unavailable: timeout")

    app.dependency_overrides[service_dep] = lambda: SearchService(store=DownStore())
    try:
        r = TestClient(app).post("/v1/search/polygon", json={"coordinates": SQUARE})
    finally:
        app.dependency_overrides.clear()
    assert r.status_code == 503


def test_if_none_match_returns_304(client):
    payload = {"coordinates": SQUARE}
    first = client.post("/v1/search/polygon", json=payload)
    etag = first.headers["ETag"]
    second = client.post("/v1/search/polygon", json=payload, headers={"If-None-Match": etag})
    assert second.status_code == 304


def test_metrics_endpoint(client):
    client.get("/v1/health")
    r = client.get("/v1/metrics")
    assert r.status_code == 200
    assert "http_requests_total" in r.text


def test_api_key_guard(client, monkeypatch):
    from area_search.core.config import settings

    monkeypatch.setattr(settings, "API_KEY", "secret")
    assert client.post("/v1/search/polygon", json={"coordinates": SQUARE}).status_code == 401
    ok = client.post("/v1/search/polygon", json={"coordinates": SQUARE}, headers={"x-api-key": "secret"})
    assert ok.status_code == 200
