from __future__ import annotations

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from scraper_api.main import create_app

MANGADEX_ID = "a1c7c817-4e59-43b7-9365-09675a149a6f"


class Upstream:
    """Fake MangaUpdates / MangaDex APIs behind httpx.MockTransport."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.series_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.url.host == "api.mangaupdates.com":
            if path == "/v1/series/search":
                body = json.loads(request.content)
                return httpx.Response(200, json={
                    "total_hits": 1,
                    "results": [{
                        "record": {"series_id": 55, "title": body.get("search", "Top"), "year": "2020"},
                        "hit_title": body.get("search", "Top"),
                    }],
                })
            if path == "/v1/series/55":
                if self.series_status != 200:
                    return httpx.Response(self.series_status)
                return httpx.Response(200, json={"series_id": 55, "title": "Blame!"})

        if request.url.host == "api.mangadex.org" and path == "/manga":
            return httpx.Response(200, json={"data": [], "total": 0})

        return httpx.Response(404)

    def count(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == path)


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def client(settings, upstream):
    transport = httpx.MockTransport(upstream)
    app = create_app(settings, client=httpx.AsyncClient(transport=transport))
    with TestClient(app) as test_client:
        yield test_client


def test_health_reports_caches(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["service"] == "shujia-scraper-api"
    assert body["caches"] == {"manga": 0, "search": 0, "titles": 0}
    assert "pythonVersion" in body


def test_search_envelope_uses_camel_case(client, upstream):
    response = client.get("/manga/search", params={"q": "Blame", "limit": 5})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["count"] == 1
    assert body["query"] == "Blame"
    assert body["providers"] == ["mangaupdates"]
    assert body["data"][0]["providerId"] == "55"
    assert body["data"][0]["year"] == 2020
    sent = json.loads(upstream.requests[0].content)
    assert sent["perpage"] == 5
    assert "Hentai" in sent["exclude_genre"]


def test_search_forwards_content_filters(client, upstream):
    client.get(
        "/manga/search",
        params={
            "q": "Blame",
            "showMatureContent": "true",
            "showExplicitContent": "true",
            "showPornographicContent": "true",
        },
    )

    assert "exclude_genre" not in json.loads(upstream.requests[0].content)


def test_search_requires_query(client):
    assert client.get("/manga/search").status_code == 422


def test_search_is_cached_unless_disabled(client, upstream):
    client.get("/manga/search", params={"q": "Blame"})
    client.get("/manga/search", params={"q": "Blame"})
    assert upstream.count("/v1/series/search") == 1

    client.get("/manga/search", params={"q": "Blame", "cache": "false"})
    assert upstream.count("/v1/series/search") == 2

    assert client.delete("/manga/cache").json() == {"success": True}
    client.get("/manga/search", params={"q": "Blame"})
    assert upstream.count("/v1/series/search") == 3


def test_providers_lists_enabled(client):
    body = client.get("/manga/providers").json()

    ids = [p["id"] for p in body["data"]]
    assert ids == ["mangaupdates", "mangadex"]
    assert body["data"][0]["requestsPerSecond"] == 0.0


def test_get_manga_by_id(client):
    response = client.get("/manga/mangaupdates/55")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["title"] == "Blame!"
    assert data["sourceUrl"] == "https://www.mangaupdates.com/series/55"


def test_unknown_provider_is_404(client):
    response = client.get("/manga/comick/1")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Provider 'comick' is not available"}


def test_upstream_not_found_is_404(client, upstream):
    upstream.series_status = 404

    response = client.get("/manga/mangaupdates/55")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Not found"}


def test_upstream_failure_is_502_without_details(client, upstream):
    upstream.series_status = 500

    response = client.get("/manga/mangaupdates/55")

    assert response.status_code == 502
    assert response.json() == {"success": False, "error": "Upstream service unavailable"}
    assert upstream.count("/v1/series/55") == 2


def test_unsupported_operation_is_400(client):
    response = client.get("/manga/browse", params={"provider": "mangadex"})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_browse_envelope(client):
    body = client.get("/manga/browse", params={"types[]": ["Manhwa"], "page": 2}).json()

    assert body["total"] == 1
    assert body["page"] == 2
    assert body["limit"] == 30


def test_trending_falls_back_to_mixed_timeframe(client, upstream):
    body = client.get("/manga/trending/ja", params={"timeframe": "fortnight", "limit": 4}).json()

    assert body["timeframe"] == "mixed"
    assert upstream.count("/v1/series/search") == 3


def test_resolve_uses_url_ids_and_searches_titles(client, upstream):
    response = client.post(
        "/manga/resolve",
        json={"items": [
            {"title": "One Piece", "url": f"https://mangadex.org/title/{MANGADEX_ID}"},
            {"title": "Nothing Here", "altTitles": ["Still Nothing"]},
            {"title": "x"},
        ]},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert [d["index"] for d in data] == [0, 1, 2]
    assert data[0]["resolvedId"] == MANGADEX_ID
    assert data[1]["resolvedId"] is None
    assert data[2]["resolvedId"] is None
    assert upstream.count("/manga") == 2


def test_delete_cache_also_drops_title_resolutions(client):
    client.post("/manga/resolve", json={"items": [{"title": "Nothing Here"}]})
    client.get("/manga/search", params={"q": "Blame"})
    assert client.get("/health").json()["caches"]["titles"] == 1

    client.delete("/manga/cache")

    assert client.get("/health").json()["caches"] == {"manga": 0, "search": 0, "titles": 0}


def test_resolve_rejects_oversized_batches(client, settings):
    items = [{"title": f"Title {i}"} for i in range(settings.resolve_max_items + 1)]

    response = client.post("/manga/resolve", json={"items": items})

    assert response.status_code == 422
    assert response.json()["success"] is False


def test_unknown_route_is_404(client):
    response = client.get("/nope")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Not found"}
