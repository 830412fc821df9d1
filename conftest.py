import httpx
import pytest
from fastapi.testclient import TestClient

from bibliothek.library import Library
from bibliothek.services.resource_client import AsyncResourceClient, ResourceClient
from bibliothek.ui_helpers import OUTPUT_MODE_ENV
from tests.fake_backend import BackendStore, create_app

BASE_URL = "http://testserver/bibliothek"


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    # Every test starts in plain mode, whatever the shell exports
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")


@pytest.fixture
def store():
    return BackendStore()


@pytest.fixture
def backend_app(store):
    return create_app(store)


@pytest.fixture
def client(backend_app):
    with TestClient(backend_app, base_url=BASE_URL) as http:
        yield ResourceClient(http)


@pytest.fixture
def async_client(backend_app):
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=backend_app), base_url=BASE_URL)
    return AsyncResourceClient(http)


@pytest.fixture
def lib(client):
    return Library(client)
