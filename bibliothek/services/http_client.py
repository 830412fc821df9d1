import httpx
import logging
from typing import Optional

from config import settings

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Accept": "application/json"}


def _timeout() -> httpx.Timeout:
    return httpx.Timeout(
        timeout=settings.api_timeout,
        connect=settings.api_connect_timeout,
    )


def _limits() -> httpx.Limits:
    return httpx.Limits(
        max_keepalive_connections=10,
        max_connections=20,
        keepalive_expiry=30.0
    )


class BackendHTTPClient:
    """Pooled sync and async httpx clients bound to the backend base URL."""

    def __init__(self, base_url: Optional[str] = None,
                 transport: Optional[httpx.BaseTransport] = None,
                 async_transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url or settings.api_base_url
        self._client = httpx.Client(
            base_url=self.base_url,
            limits=_limits(),
            timeout=_timeout(),
            headers=JSON_HEADERS,
            follow_redirects=True,
            transport=transport,
        )
        self._async_client = httpx.AsyncClient(
            base_url=self.base_url,
            limits=_limits(),
            timeout=_timeout(),
            headers=JSON_HEADERS,
            follow_redirects=True,
            transport=async_transport,
        )
        logger.debug(f"HTTP clients created for {self.base_url}")

    @property
    def sync(self) -> httpx.Client:
        return self._client

    @property
    def asynchronous(self) -> httpx.AsyncClient:
        return self._async_client

    async def close(self):
        """Close both clients."""
        await self._async_client.aclose()
        self._client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


# Shared client for the CLI process
_global_client: Optional[BackendHTTPClient] = None


def get_http_client() -> BackendHTTPClient:
    """Return the shared client, creating it on first use."""
    global _global_client
    if _global_client is None:
        _global_client = BackendHTTPClient()
    return _global_client


async def cleanup_http_client():
    """Close and drop the shared client."""
    global _global_client
    if _global_client:
        await _global_client.close()
        _global_client = None
