import asyncio

import httpx

from bibliothek.services import http_client
from bibliothek.services.http_client import BackendHTTPClient, cleanup_http_client, get_http_client


def test_clients_share_base_url_and_headers():
    seen = []

    def handler(request):
        seen.append((str(request.url), request.headers["accept"]))
        return httpx.Response(200, json=[])

    backend = BackendHTTPClient("http://backend/bibliothek", transport=httpx.MockTransport(handler),
                                async_transport=httpx.MockTransport(handler))

    async def scenario():
        async with backend:
            backend.sync.get("/medium")
            await backend.asynchronous.get("/kunde")

    asyncio.run(scenario())
    assert seen == [
        ("http://backend/bibliothek/medium", "application/json"),
        ("http://backend/bibliothek/kunde", "application/json"),
    ]
    assert backend.sync.is_closed


def test_shared_client_lifecycle(monkeypatch):
    monkeypatch.setattr(http_client, "_global_client", None)
    first = get_http_client()
    assert get_http_client() is first
    asyncio.run(cleanup_http_client())
    assert http_client._global_client is None
    assert first.sync.is_closed
