import asyncio

import httpx
import pytest

from bibliothek.errors import ExtensionDenied, NetworkFailure, NotFound, ValidationRejected
from bibliothek.models import Address, Borrowing, Customer, Medium
from bibliothek.services.resource_client import AsyncResourceClient, Collection, ResourceClient


def _client_for(handler) -> ResourceClient:
    return ResourceClient(httpx.Client(transport=httpx.MockTransport(handler),
                                       base_url="http://backend/bibliothek"))


def test_list_and_get(client, store):
    ada = store.add_customer("Ada", "Lovelace", "ada@example.org")
    store.add_customer("Alan", "Turing")
    customers = client.list_all(Collection.CUSTOMER)
    assert [c.last_name for c in customers] == ["Lovelace", "Turing"]
    found = client.get_by_id(Collection.CUSTOMER, ada["id"])
    assert isinstance(found, Customer)
    assert found.email == "ada@example.org"


def test_empty_collection(client):
    assert client.list_all(Collection.MEDIUM) == []


def test_get_missing_raises_not_found(client):
    with pytest.raises(NotFound):
        client.get_by_id(Collection.MEDIUM, 999)


def test_query_fields(client, store):
    address = store.add_address("Hauptstraße 1", 10115, "Berlin")
    store.add_customer("Ada", "Lovelace", adresse=address)
    store.add_customer("Alan", "Turing")
    assert [c.first_name for c in client.query(Collection.CUSTOMER, "last_name", "lovelace")] == ["Ada"]
    assert [c.first_name for c in client.query(Collection.CUSTOMER, "street", "haupt")] == ["Ada"]
    assert [a.city for a in client.query(Collection.ADDRESS, "postal_code", 10115)] == ["Berlin"]


def test_query_media_availability(client, store):
    dune = store.add_medium("Dune", "Herbert")
    emma = store.add_medium("Emma", "Austen")
    reader = store.add_customer("Ada", "Lovelace")
    store.add_borrowing(reader["id"], dune["id"], "2024-01-01")
    assert [m.id for m in client.query(Collection.MEDIUM, "available", True)] == [emma["id"]]
    assert [m.id for m in client.query(Collection.MEDIUM, "available", False)] == [dune["id"]]


def test_query_unknown_field(client):
    with pytest.raises(ValueError):
        client.query(Collection.BORROWING, "title", "x")


def test_create_update_remove(client, store):
    created = client.create(Collection.MEDIUM, Medium(title="Dune", author="Herbert"))
    assert created.id in store.media
    updated = client.update(Collection.MEDIUM, created.id, {"genre": "SciFi"})
    assert updated.genre == "SciFi"
    client.remove(Collection.MEDIUM, created.id)
    assert created.id not in store.media
    with pytest.raises(NotFound):
        client.remove(Collection.MEDIUM, created.id)


def test_create_address(client):
    address = client.create(Collection.ADDRESS, Address(street="Weg 3", postal_code=12345, city="Bonn"))
    assert address.id is not None
    assert address.postal_code == 12345


def test_update_customer_address(client, store):
    ada = store.add_customer("Ada", "Lovelace", adresse=store.add_address("Alter Weg 1", 11111, "Bonn"))
    address = client.update_customer_address(ada["id"], {"strasse": "Neuer Weg 2", "plz": 22222})
    assert address.street == "Neuer Weg 2"
    assert store.customers[ada["id"]]["adresse"]["plz"] == 22222


def test_borrowing_lifecycle(client, store):
    reader = store.add_customer("Ada", "Lovelace")
    dune = store.add_medium("Dune", "Herbert")
    created = client.create(Collection.BORROWING, Borrowing(customer_id=reader["id"], medium_id=dune["id"]))
    assert created.duration_days == 14

    client.extend(dune["id"])
    assert client.borrowing_for_medium(dune["id"]).duration_days == 28
    with pytest.raises(ExtensionDenied):
        client.extend(dune["id"])

    client.return_medium(dune["id"])
    with pytest.raises(NotFound):
        client.borrowing_for_medium(dune["id"])


def test_double_borrow_rejected(client, store):
    reader = store.add_customer("Ada", "Lovelace")
    dune = store.add_medium("Dune", "Herbert")
    store.add_borrowing(reader["id"], dune["id"], "2024-01-01")
    with pytest.raises(ValidationRejected, match="bereits ausgeliehen"):
        client.create(Collection.BORROWING, Borrowing(customer_id=reader["id"], medium_id=dune["id"]))


def test_transport_error_is_network_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkFailure):
        _client_for(handler).list_all(Collection.CUSTOMER)


def test_server_error_is_network_failure():
    client = _client_for(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(NetworkFailure, match="500"):
        client.get_by_id(Collection.CUSTOMER, 1)


def test_unreadable_body_is_network_failure():
    client = _client_for(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(NetworkFailure):
        client.list_all(Collection.MEDIUM)


def test_empty_borrowing_body_is_not_found():
    client = _client_for(lambda request: httpx.Response(200, text=""))
    with pytest.raises(NotFound):
        client.borrowing_for_medium(3)


def test_requests_hit_backend_paths():
    seen = []

    def handler(request):
        seen.append((request.method, request.url.path, dict(request.url.params)))
        return httpx.Response(200, json=[])

    client = _client_for(handler)
    client.query(Collection.CUSTOMER, "street", "Weg")
    client.query(Collection.MEDIUM, "title", "Dune")
    assert seen == [
        ("GET", "/bibliothek/kunde/adresse", {"strasse": "Weg"}),
        ("GET", "/bibliothek/medium", {"titel": "Dune"}),
    ]


def test_async_client(async_client, store):
    store.add_medium("Dune", "Herbert")
    emma = store.add_medium("Emma", "Austen")

    async def scenario():
        media = await async_client.list_all(Collection.MEDIUM)
        found = await async_client.get_by_id(Collection.MEDIUM, emma["id"])
        with pytest.raises(NotFound):
            await async_client.get_by_id(Collection.MEDIUM, 999)
        return media, found

    media, found = asyncio.run(scenario())
    assert [m.title for m in media] == ["Dune", "Emma"]
    assert found.author == "Austen"


def test_async_transport_error():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    client = AsyncResourceClient(httpx.AsyncClient(transport=httpx.MockTransport(handler),
                                                   base_url="http://backend/bibliothek"))
    with pytest.raises(NetworkFailure):
        asyncio.run(client.list_all(Collection.BORROWING))
