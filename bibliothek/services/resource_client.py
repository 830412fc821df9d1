"""REST client for the bibliothek backend.

One client per transport flavour (``ResourceClient`` over ``httpx.Client``,
``AsyncResourceClient`` over ``httpx.AsyncClient``) sharing the same request
layout and error mapping. Each call issues exactly one request; failures are
raised as the package's error types and never retried.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type

import httpx

from bibliothek.errors import ExtensionDenied, NetworkFailure, NotFound, ValidationRejected
from bibliothek.models import Address, Borrowing, Customer, Medium
from bibliothek.services.http_client import get_http_client

logger = logging.getLogger(__name__)


class Collection(Enum):
    CUSTOMER = "kunde"
    ADDRESS = "adresse"
    MEDIUM = "medium"
    BORROWING = "ausleihe"


RECORD_TYPES: Dict[Collection, Type] = {
    Collection.CUSTOMER: Customer,
    Collection.ADDRESS: Address,
    Collection.MEDIUM: Medium,
    Collection.BORROWING: Borrowing,
}

LABELS = {
    Collection.CUSTOMER: "Customer",
    Collection.ADDRESS: "Address",
    Collection.MEDIUM: "Medium",
    Collection.BORROWING: "Borrowing",
}

# (collection, field) -> (sub path, query parameter)
QUERY_FIELDS: Dict[Tuple[Collection, str], Tuple[str, str]] = {
    (Collection.CUSTOMER, "last_name"): ("", "familienname"),
    (Collection.CUSTOMER, "street"): ("adresse", "strasse"),
    (Collection.ADDRESS, "street"): ("", "strasse"),
    (Collection.ADDRESS, "postal_code"): ("", "plz"),
    (Collection.MEDIUM, "title"): ("", "titel"),
    (Collection.MEDIUM, "available"): ("", "verfuegbar"),
}

REJECTED_STATUSES = (400, 409, 422)


def _detail(response: httpx.Response) -> str:
    """Best-effort human readable reason from an error response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message") or body.get("error")
        if isinstance(detail, list):
            return "; ".join(str(d.get("msg", d)) if isinstance(d, dict) else str(d) for d in detail)
        if detail:
            return str(detail)
    text = response.text.strip()
    return text or response.reason_phrase or f"HTTP {response.status_code}"


class _ResourceRequests:
    """Path building, payload encoding and status mapping shared by both clients."""

    @staticmethod
    def _path(collection: Collection, *parts: Any) -> str:
        segments = [collection.value] + [str(p) for p in parts if p != ""]
        return "/" + "/".join(segments)

    @staticmethod
    def _label(collection: Collection, ident: Any = None) -> str:
        label = LABELS[collection]
        return f"{label} {ident}" if ident is not None else label

    def _query_args(self, collection: Collection, field: str, value: Any) -> Tuple[str, Dict[str, str]]:
        try:
            sub_path, param = QUERY_FIELDS[(collection, field)]
        except KeyError:
            raise ValueError(f"{LABELS[collection]} cannot be queried by '{field}'") from None
        if isinstance(value, bool):
            value = "true" if value else "false"
        return self._path(collection, sub_path), {param: str(value)}

    @staticmethod
    def _payload(payload: Any) -> Dict[str, Any]:
        if hasattr(payload, "to_dict"):
            return payload.to_dict()
        return dict(payload)

    @staticmethod
    def _check(response: httpx.Response, what: str,
               conflict: Optional[Type[Exception]] = None) -> None:
        if response.is_success:
            return
        status = response.status_code
        if status == 404:
            logger.warning(f"{what} not found")
            raise NotFound(f"{what} not found")
        if status in REJECTED_STATUSES:
            reason = _detail(response)
            logger.warning(f"{what} rejected by backend ({status}): {reason}")
            if conflict is not None:
                raise conflict(reason)
            raise ValidationRejected([reason])
        logger.warning(f"{what} failed with status {status}")
        raise NetworkFailure(f"{what} failed: backend answered {status}")

    @staticmethod
    def _json(response: httpx.Response, what: str) -> Any:
        if not response.content or not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkFailure(f"{what}: backend sent an unreadable response") from exc

    def _decode(self, collection: Collection, data: Any, what: str):
        if not isinstance(data, dict):
            raise NetworkFailure(f"{what}: expected a record, got {type(data).__name__}")
        return RECORD_TYPES[collection].from_dict(data)

    def _decode_list(self, collection: Collection, data: Any, what: str) -> list:
        if data is None:
            return []
        if not isinstance(data, list):
            raise NetworkFailure(f"{what}: expected a list, got {type(data).__name__}")
        return [self._decode(collection, item, what) for item in data]


class ResourceClient(_ResourceRequests):
    """Blocking client; one request per call."""

    def __init__(self, client: httpx.Client):
        self._http = client

    @classmethod
    def from_settings(cls) -> "ResourceClient":
        return cls(get_http_client().sync)

    def _send(self, method: str, path: str, what: str, *, params: Optional[dict] = None,
              json: Optional[dict] = None, conflict: Optional[Type[Exception]] = None) -> httpx.Response:
        logger.debug(f"{method} {path} params={params}")
        try:
            response = self._http.request(method, path, params=params, json=json)
        except httpx.RequestError as exc:
            logger.warning(f"{what}: request failed: {exc}")
            raise NetworkFailure(f"{what}: backend unreachable ({exc})") from exc
        self._check(response, what, conflict)
        return response

    # ------------------------- Generic collection operations ------------------------- #
    def list_all(self, collection: Collection) -> list:
        what = self._label(collection) + " list"
        response = self._send("GET", self._path(collection), what)
        return self._decode_list(collection, self._json(response, what), what)

    def get_by_id(self, collection: Collection, ident: int):
        what = self._label(collection, ident)
        response = self._send("GET", self._path(collection, ident), what)
        data = self._json(response, what)
        if data is None:
            raise NotFound(f"{what} not found")
        return self._decode(collection, data, what)

    def query(self, collection: Collection, field: str, value: Any) -> list:
        path, params = self._query_args(collection, field, value)
        what = f"{self._label(collection)} search by {field}"
        response = self._send("GET", path, what, params=params)
        return self._decode_list(collection, self._json(response, what), what)

    def create(self, collection: Collection, payload: Any):
        what = f"New {self._label(collection).lower()}"
        response = self._send("POST", self._path(collection), what, json=self._payload(payload))
        data = self._json(response, what)
        if data is None:
            raise NetworkFailure(f"{what}: backend did not return the created record")
        return self._decode(collection, data, what)

    def update(self, collection: Collection, ident: int, patch: Any):
        what = self._label(collection, ident)
        response = self._send("PUT", self._path(collection, ident), what, json=self._payload(patch))
        data = self._json(response, what)
        if data is None:
            return self.get_by_id(collection, ident)
        return self._decode(collection, data, what)

    def remove(self, collection: Collection, ident: int) -> None:
        self._send("DELETE", self._path(collection, ident), self._label(collection, ident))

    # ------------------------- Entity specific ------------------------- #
    def update_customer_address(self, customer_id: int, patch: Dict[str, Any]) -> Address:
        what = f"Address of customer {customer_id}"
        path = self._path(Collection.CUSTOMER, customer_id, Collection.ADDRESS.value)
        response = self._send("PUT", path, what, json=self._payload(patch))
        data = self._json(response, what)
        if data is None:
            return self.get_by_id(Collection.CUSTOMER, customer_id).address
        return self._decode(Collection.ADDRESS, data, what)

    def borrowing_for_medium(self, medium_id: int) -> Borrowing:
        what = f"Borrowing of medium {medium_id}"
        response = self._send("GET", self._path(Collection.BORROWING, "medium", medium_id), what)
        data = self._json(response, what)
        if not data:
            raise NotFound(f"{what} not found")
        return self._decode(Collection.BORROWING, data, what)

    def extend(self, medium_id: int) -> None:
        what = f"Extension of medium {medium_id}"
        self._send("PUT", self._path(Collection.BORROWING, "medium", medium_id), what,
                   conflict=ExtensionDenied)

    def return_medium(self, medium_id: int) -> None:
        what = f"Return of medium {medium_id}"
        self._send("DELETE", self._path(Collection.BORROWING, "medium", medium_id), what)


class AsyncResourceClient(_ResourceRequests):
    """Same operations as ResourceClient, awaiting each request."""

    def __init__(self, client: httpx.AsyncClient):
        self._http = client

    @classmethod
    def from_settings(cls) -> "AsyncResourceClient":
        return cls(get_http_client().asynchronous)

    async def _send(self, method: str, path: str, what: str, *, params: Optional[dict] = None,
                    json: Optional[dict] = None, conflict: Optional[Type[Exception]] = None) -> httpx.Response:
        logger.debug(f"{method} {path} params={params}")
        try:
            response = await self._http.request(method, path, params=params, json=json)
        except httpx.RequestError as exc:
            logger.warning(f"{what}: request failed: {exc}")
            raise NetworkFailure(f"{what}: backend unreachable ({exc})") from exc
        self._check(response, what, conflict)
        return response

    async def list_all(self, collection: Collection) -> list:
        what = self._label(collection) + " list"
        response = await self._send("GET", self._path(collection), what)
        return self._decode_list(collection, self._json(response, what), what)

    async def get_by_id(self, collection: Collection, ident: int):
        what = self._label(collection, ident)
        response = await self._send("GET", self._path(collection, ident), what)
        data = self._json(response, what)
        if data is None:
            raise NotFound(f"{what} not found")
        return self._decode(collection, data, what)

    async def query(self, collection: Collection, field: str, value: Any) -> list:
        path, params = self._query_args(collection, field, value)
        what = f"{self._label(collection)} search by {field}"
        response = await self._send("GET", path, what, params=params)
        return self._decode_list(collection, self._json(response, what), what)

    async def create(self, collection: Collection, payload: Any):
        what = f"New {self._label(collection).lower()}"
        response = await self._send("POST", self._path(collection), what, json=self._payload(payload))
        data = self._json(response, what)
        if data is None:
            raise NetworkFailure(f"{what}: backend did not return the created record")
        return self._decode(collection, data, what)

    async def update(self, collection: Collection, ident: int, patch: Any):
        what = self._label(collection, ident)
        response = await self._send("PUT", self._path(collection, ident), what, json=self._payload(patch))
        data = self._json(response, what)
        if data is None:
            return await self.get_by_id(collection, ident)
        return self._decode(collection, data, what)

    async def remove(self, collection: Collection, ident: int) -> None:
        await self._send("DELETE", self._path(collection, ident), self._label(collection, ident))

    async def update_customer_address(self, customer_id: int, patch: Dict[str, Any]) -> Address:
        what = f"Address of customer {customer_id}"
        path = self._path(Collection.CUSTOMER, customer_id, Collection.ADDRESS.value)
        response = await self._send("PUT", path, what, json=self._payload(patch))
        data = self._json(response, what)
        if data is None:
            customer = await self.get_by_id(Collection.CUSTOMER, customer_id)
            return customer.address
        return self._decode(Collection.ADDRESS, data, what)

    async def borrowing_for_medium(self, medium_id: int) -> Borrowing:
        what = f"Borrowing of medium {medium_id}"
        response = await self._send("GET", self._path(Collection.BORROWING, "medium", medium_id), what)
        data = self._json(response, what)
        if not data:
            raise NotFound(f"{what} not found")
        return self._decode(Collection.BORROWING, data, what)

    async def extend(self, medium_id: int) -> None:
        what = f"Extension of medium {medium_id}"
        await self._send("PUT", self._path(Collection.BORROWING, "medium", medium_id), what,
                         conflict=ExtensionDenied)

    async def return_medium(self, medium_id: int) -> None:
        what = f"Return of medium {medium_id}"
        await self._send("DELETE", self._path(Collection.BORROWING, "medium", medium_id), what)
