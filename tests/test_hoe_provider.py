from urllib.parse import parse_qs

import httpx
import pytest

from providers.base import UpstreamError
from providers.hoe_provider import HoeProvider

API_URL = "https://hoe.example/shutdown-events"

TABLE = (
    '<table class="table-shutdowns"><tbody>'
    "<tr><td>Планові роботи</td><td>Планове</td><td>1.1</td><td>2</td>"
    "<td>2026-10-18 08:00</td><td>2026-10-18 17:00</td></tr>"
    "</tbody></table>"
)


def _provider(handler, attempts=3):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    provider = HoeProvider(
        client,
        street_id=280782,
        house="33",
        api_url=API_URL,
        retry_attempts=attempts,
        retry_delay_ms=0,
        request_timeout_ms=1000,
    )
    return client, provider


@pytest.mark.asyncio
async def test_posts_form_and_parses_html():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, text=TABLE)

    client, provider = _provider(handler)
    async with client:
        events = await provider.fetch_events()

    assert [e.work_type for e in events] == ["Планові роботи"]
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == API_URL
    assert request.headers["X-Requested-With"] == "XMLHttpRequest"
    assert request.headers["Content-Type"].startswith("application/x-www-form-urlencoded")
    assert parse_qs(request.content.decode()) == {"streetId": ["280782"], "house": ["33"]}


@pytest.mark.asyncio
async def test_json_body():
    def handler(request):
        return httpx.Response(200, json={"data": [{"id": 5, "date_start": "A", "date_end": "B"}]})

    client, provider = _provider(handler)
    async with client:
        events = await provider.fetch_events()

    assert [(e.id, e.date_start, e.date_end) for e in events] == [("5", "A", "B")]


@pytest.mark.asyncio
async def test_server_error_is_retried():
    calls = 0

    def handler(request):
        nonlocal calls
        calls += 1
        if calls < 3:
            return httpx.Response(503)
        return httpx.Response(200, json={"success": True})

    client, provider = _provider(handler)
    async with client:
        assert await provider.fetch_events() == []
    assert calls == 3


@pytest.mark.asyncio
async def test_exhausted_retries_raise_upstream_error():
    calls = 0

    def handler(request):
        nonlocal calls
        calls += 1
        return httpx.Response(500)

    client, provider = _provider(handler, attempts=2)
    async with client:
        with pytest.raises(UpstreamError) as excinfo:
            await provider.fetch_events()

    assert calls == 2
    assert excinfo.value.status_code == 500
    assert "500" in str(excinfo.value)


@pytest.mark.asyncio
async def test_timeout_is_retried():
    calls = 0

    def handler(request):
        nonlocal calls
        calls += 1
        if calls == 1:
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(200, text=TABLE)

    client, provider = _provider(handler)
    async with client:
        events = await provider.fetch_events()

    assert len(events) == 1
    assert calls == 2


@pytest.mark.asyncio
async def test_garbage_body_degrades_to_empty():
    client, provider = _provider(lambda request: httpx.Response(200, text="ERROR"))
    async with client:
        assert await provider.fetch_events() == []
