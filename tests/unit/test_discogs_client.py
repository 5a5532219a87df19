import httpx
import pytest

from viniloteca.core.discogs_client import DiscogsClient
from viniloteca.core.errors import CatalogNotFound, CatalogRateLimited, CatalogTransientError

RELEASE = {
    "id": 249504,
    "title": "Never Gonna Give You Up",
    "year": 1987,
    "artists": [{"name": "Rick Astley", "id": 72872}],
    "images": [
        {"type": "primary", "uri": "https://i.discogs.com/primary.jpg", "resource_url": "x"},
        {"type": "secondary", "uri": "https://i.discogs.com/secondary.jpg"},
    ],
}


def make_client(handler, token="secret"):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DiscogsClient(token, base_url="https://api.discogs.test", http_client=http)


@pytest.mark.asyncio
async def test_sends_token_and_user_agent():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        seen["ua"] = request.headers.get("User-Agent")
        seen["path"] = request.url.path
        return httpx.Response(200, json=RELEASE)

    client = make_client(handler)
    await client.get_release(249504)
    assert seen == {
        "auth": "Discogs token=secret",
        "ua": "viniloteca/1.0",
        "path": "/releases/249504",
    }
    await client.close()


@pytest.mark.asyncio
async def test_anonymous_requests_have_no_authorization():
    seen = {}

    def handler(request):
        seen["has_auth"] = "Authorization" in request.headers
        return httpx.Response(200, json=RELEASE)

    client = make_client(handler, token="")
    assert client.has_token is False
    await client.get_release(1)
    assert seen["has_auth"] is False


@pytest.mark.asyncio
async def test_search_parses_results():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        seen["path"] = request.url.path
        return httpx.Response(200, json={"results": [
            {
                "id": 1,
                "title": "Daft Punk - Discovery",
                "year": "2001",
                "thumb": "https://i.discogs.com/t.jpg",
                "cover_image": "https://i.discogs.com/c.jpg",
                "format": ["Vinyl", "LP"],
                "country": "France",
                "genre": ["Electronic"],
                "style": ["House"],
            },
            {"title": "missing id is skipped"},
            {"id": 2, "title": "No Separator", "year": ""},
        ]})

    client = make_client(handler)
    results = await client.search("daft punk", page=2, per_page=10)

    assert seen["path"] == "/database/search"
    assert seen["params"] == {"q": "daft punk", "type": "release", "page": "2", "per_page": "10"}
    assert [r.id for r in results] == [1, 2]
    first = results[0]
    assert first.year == 2001
    assert first.formats == ["Vinyl", "LP"]
    assert (first.artist, first.album) == ("Daft Punk", "Discovery")
    assert results[1].year is None
    assert (results[1].artist, results[1].album) == ("", "No Separator")


@pytest.mark.asyncio
async def test_metadata_uses_first_image():
    client = make_client(lambda request: httpx.Response(200, json=RELEASE))
    metadata = await client.get_metadata(249504)
    assert metadata.catalog_item_id == 249504
    assert metadata.title == "Never Gonna Give You Up"
    assert metadata.image_url == "https://i.discogs.com/primary.jpg"


@pytest.mark.asyncio
async def test_metadata_keeps_requested_id_for_merged_release():
    # Discogs answers a merged release with the surviving release id
    client = make_client(lambda request: httpx.Response(200, json={"id": 999, "title": "Merged"}))
    metadata = await client.get_metadata(5)
    assert metadata.catalog_item_id == 5
    assert metadata.title == "Merged"


@pytest.mark.asyncio
async def test_metadata_falls_back_to_cover_image():
    body = {"id": 5, "title": "Bare", "cover_image": "https://i.discogs.com/cover.jpg"}
    client = make_client(lambda request: httpx.Response(200, json=body))
    assert (await client.get_metadata(5)).image_url == "https://i.discogs.com/cover.jpg"


@pytest.mark.asyncio
async def test_metadata_without_images():
    client = make_client(lambda request: httpx.Response(200, json={"id": 6, "title": ""}))
    metadata = await client.get_metadata(6)
    assert metadata.title is None
    assert metadata.image_url is None


@pytest.mark.asyncio
async def test_404_is_not_found():
    client = make_client(lambda request: httpx.Response(404, json={"message": "Release not found."}))
    with pytest.raises(CatalogNotFound):
        await client.get_metadata(404)


@pytest.mark.asyncio
async def test_429_is_rate_limited_with_retry_after():
    client = make_client(lambda request: httpx.Response(429, headers={"Retry-After": "30"}))
    with pytest.raises(CatalogRateLimited) as exc_info:
        await client.get_release(1)
    assert exc_info.value.retry_after == 30.0
    assert exc_info.value.status_code == 429


@pytest.mark.asyncio
@pytest.mark.parametrize("header", ["inf", "nan", "-5", "soon"])
async def test_unusable_retry_after_is_dropped(header):
    client = make_client(lambda request: httpx.Response(429, headers={"Retry-After": header}))
    with pytest.raises(CatalogRateLimited) as exc_info:
        await client.get_release(1)
    assert exc_info.value.retry_after is None


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [500, 502, 401])
async def test_other_statuses_are_transient(status):
    client = make_client(lambda request: httpx.Response(status))
    with pytest.raises(CatalogTransientError) as exc_info:
        await client.get_release(1)
    assert exc_info.value.status_code == status


@pytest.mark.asyncio
async def test_timeout_is_transient():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    client = make_client(handler)
    with pytest.raises(CatalogTransientError):
        await client.get_release(1)


@pytest.mark.asyncio
async def test_network_error_is_transient():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = make_client(handler)
    with pytest.raises(CatalogTransientError):
        await client.search("anything")


@pytest.mark.asyncio
async def test_invalid_json_is_transient():
    client = make_client(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(CatalogTransientError):
        await client.get_release(1)


@pytest.mark.asyncio
async def test_tracks_rate_limit_remaining():
    client = make_client(
        lambda request: httpx.Response(200, json=RELEASE, headers={"X-Discogs-Ratelimit-Remaining": "57"})
    )
    await client.get_release(1)
    assert client.rate_limit_remaining == 57
