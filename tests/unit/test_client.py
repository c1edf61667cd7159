import anyio
import httpx  # type: ignore[import]
import pytest  # type: ignore[import]

from unsplash_photo_server_core import (
    NormalizedQuery,
    UnsplashClient,
    UpstreamError,
    UpstreamTimeout,
    UpstreamUnreachable,
)
from unsplash_photo_server_core.client import UNSPLASH_SEARCH_ENDPOINT
from unsplash_photo_server_core.errors import MAX_ERROR_BODY_LENGTH


pytestmark = pytest.mark.unit


def test_search_sends_expected_request(fake_unsplash):
    upstream = fake_unsplash()
    client = upstream.client()
    query = NormalizedQuery(query="cats", page=2, per_page=5, order_by="latest", color="black_and_white")

    result = anyio.run(client.search_photos, query)

    request = upstream.requests[0]
    assert request.method == "GET"
    assert str(request.url).startswith(UNSPLASH_SEARCH_ENDPOINT)
    assert dict(request.url.params) == {
        "query": "cats",
        "page": "2",
        "per_page": "5",
        "order_by": "latest",
        "color": "black_and_white",
    }
    assert request.headers["Authorization"] == "Client-ID test-key"
    assert request.headers["Accept-Version"] == "v1"

    assert result.query is query
    assert result.total == 1
    assert result.total_pages == 1
    assert [photo.id for photo in result.results] == ["abc123"]
    assert result.results[0].urls["small"].endswith("w=400")
    assert result.retrieved_at


def test_orientation_absent_from_params_when_unset(fake_unsplash):
    upstream = fake_unsplash()
    client = upstream.client()

    anyio.run(client.search_photos, NormalizedQuery(query="sea"))

    params = upstream.requests[0].url.params
    assert "orientation" not in params
    assert "color" not in params


def test_error_status_raises_upstream_error(fake_unsplash):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="OAuth error: The access token is invalid")

    client = fake_unsplash(handler).client()

    with pytest.raises(UpstreamError) as exc:
        anyio.run(client.search_photos, NormalizedQuery(query="cats"))

    assert exc.value.status_code == 401
    assert "access token is invalid" in exc.value.body_excerpt
    assert "(401)" in str(exc.value)


def test_error_body_is_capped(fake_unsplash):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="x" * 2000)

    client = fake_unsplash(handler).client()

    with pytest.raises(UpstreamError) as exc:
        anyio.run(client.search_photos, NormalizedQuery(query="cats"))

    assert exc.value.body_excerpt == "x" * MAX_ERROR_BODY_LENGTH + "..."


def test_transport_timeout_raises_upstream_timeout(fake_unsplash):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = fake_unsplash(handler).client()

    with pytest.raises(UpstreamTimeout):
        anyio.run(client.search_photos, NormalizedQuery(query="cats"))


def test_slow_upstream_is_abandoned_after_timeout(fake_unsplash):
    async def handler(request: httpx.Request) -> httpx.Response:
        await anyio.sleep(5)
        return httpx.Response(200, json={"total": 0, "total_pages": 0, "results": []})

    client = fake_unsplash(handler).client(timeout=0.05)

    with pytest.raises(UpstreamTimeout):
        anyio.run(client.search_photos, NormalizedQuery(query="cats"))


def test_network_failure_raises_upstream_unreachable(fake_unsplash):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Name or service not known", request=request)

    client = fake_unsplash(handler).client()

    with pytest.raises(UpstreamUnreachable) as exc:
        anyio.run(client.search_photos, NormalizedQuery(query="cats"))

    assert "Name or service not known" in exc.value.reason


def test_invalid_json_body_is_reported(fake_unsplash):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>not json</html>")

    client = fake_unsplash(handler).client()

    with pytest.raises(UpstreamError) as exc:
        anyio.run(client.search_photos, NormalizedQuery(query="cats"))

    assert exc.value.status_code == 200


def test_missing_access_key_is_rejected(monkeypatch):
    monkeypatch.delenv("UNSPLASH_ACCESS_KEY", raising=False)

    with pytest.raises(ValueError) as exc:
        UnsplashClient()

    assert "UNSPLASH_ACCESS_KEY" in str(exc.value)


def test_settings_come_from_environment(monkeypatch):
    monkeypatch.setenv("UNSPLASH_ACCESS_KEY", " env-key ")
    monkeypatch.setenv("UNSPLASH_API_URL", "https://unsplash.test/search/photos")
    monkeypatch.setenv("UNSPLASH_TIMEOUT_SECONDS", "3.5")

    client = UnsplashClient(http_client=httpx.AsyncClient())

    assert client.endpoint == "https://unsplash.test/search/photos"
    assert client.timeout == 3.5
    assert client._headers["Authorization"] == "Client-ID env-key"
