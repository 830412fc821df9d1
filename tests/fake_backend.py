"""In-memory stand-in for the bibliothek REST backend, served through TestClient."""

from itertools import count
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, FastAPI, HTTPException, Query, Response


class BackendStore:
    """Records keyed by id, stored in their wire format."""

    def __init__(self):
        self.customers: Dict[int, dict] = {}
        self.addresses: Dict[int, dict] = {}
        self.media: Dict[int, dict] = {}
        self.borrowings: Dict[int, dict] = {}
        self._ids = count(1)

    def next_id(self) -> int:
        return next(self._ids)

    # Seeding helpers for tests
    def add_address(self, strasse: str, plz: int, ort: str = "") -> dict:
        record = {"id": self.next_id(), "strasse": strasse, "plz": plz, "ort": ort}
        self.addresses[record["id"]] = record
        return record

    def add_customer(self, vorname: str, familienname: str, email: str = "",
                     geburtsdatum: str = "1990-01-01", adresse: Optional[dict] = None) -> dict:
        record = {
            "id": self.next_id(),
            "vorname": vorname,
            "familienname": familienname,
            "email": email,
            "geburtsdatum": geburtsdatum,
            "adresse": adresse,
        }
        self.customers[record["id"]] = record
        return record

    def add_medium(self, titel: str, autor: str, **extra: Any) -> dict:
        record = {"id": self.next_id(), "titel": titel, "autor": autor, **extra}
        self.media[record["id"]] = record
        return record

    def add_borrowing(self, kunde_id: int, medium_id: int, leihdatum: str, leihdauer: int = 14) -> dict:
        record = {
            "id": self.next_id(),
            "kunde": {"id": kunde_id},
            "medium": {"id": medium_id},
            "leihdatum": leihdatum,
            "leihdauer": leihdauer,
        }
        self.borrowings[record["id"]] = record
        return record

    def borrowing_of(self, medium_id: int) -> Optional[dict]:
        for record in self.borrowings.values():
            if record["medium"]["id"] == medium_id:
                return record
        return None


def _get(records: Dict[int, dict], ident: int, label: str) -> dict:
    if ident not in records:
        raise HTTPException(status_code=404, detail=f"{label} {ident} not found")
    return records[ident]


def create_app(store: Optional[BackendStore] = None) -> FastAPI:
    store = store or BackendStore()
    app = FastAPI(title="Bibliothek fake backend")
    app.state.store = store
    router = APIRouter(prefix="/bibliothek")

    # --- Customers ---
    @router.get("/kunde")
    def list_customers(familienname: Optional[str] = Query(None)):
        customers = list(store.customers.values())
        if familienname is not None:
            customers = [c for c in customers if c["familienname"].lower() == familienname.lower()]
        return customers

    @router.get("/kunde/adresse")
    def customers_by_street(strasse: str = Query(...)):
        return [
            c for c in store.customers.values()
            if c.get("adresse") and strasse.lower() in c["adresse"]["strasse"].lower()
        ]

    @router.get("/kunde/{kunde_id}")
    def get_customer(kunde_id: int):
        return _get(store.customers, kunde_id, "Kunde")

    @router.post("/kunde")
    def create_customer(payload: Dict[str, Any] = Body(...)):
        if not payload.get("vorname") or not payload.get("familienname"):
            raise HTTPException(status_code=400, detail="vorname and familienname are required")
        address = payload.get("adresse")
        if address is not None:
            address = {**address, "id": store.next_id()}
            store.addresses[address["id"]] = address
        record = {**payload, "adresse": address, "id": store.next_id()}
        store.customers[record["id"]] = record
        return record

    @router.put("/kunde/{kunde_id}")
    def update_customer(kunde_id: int, payload: Dict[str, Any] = Body(...)):
        record = _get(store.customers, kunde_id, "Kunde")
        record.update({k: v for k, v in payload.items() if k not in ("id", "adresse")})
        return record

    @router.put("/kunde/{kunde_id}/adresse")
    def update_customer_address(kunde_id: int, payload: Dict[str, Any] = Body(...)):
        record = _get(store.customers, kunde_id, "Kunde")
        address = record.get("adresse") or {"id": store.next_id(), "strasse": "", "plz": None, "ort": ""}
        address.update({k: v for k, v in payload.items() if k != "id"})
        store.addresses[address["id"]] = address
        record["adresse"] = address
        return address

    @router.delete("/kunde/{kunde_id}")
    def delete_customer(kunde_id: int):
        _get(store.customers, kunde_id, "Kunde")
        del store.customers[kunde_id]
        return Response(status_code=204)

    # --- Addresses ---
    @router.get("/adresse")
    def list_addresses(strasse: Optional[str] = Query(None), plz: Optional[int] = Query(None)):
        addresses = list(store.addresses.values())
        if strasse is not None:
            addresses = [a for a in addresses if strasse.lower() in a["strasse"].lower()]
        if plz is not None:
            addresses = [a for a in addresses if a["plz"] == plz]
        return addresses

    @router.get("/adresse/{adresse_id}")
    def get_address(adresse_id: int):
        return _get(store.addresses, adresse_id, "Adresse")

    @router.post("/adresse")
    def create_address(payload: Dict[str, Any] = Body(...)):
        record = {**payload, "id": store.next_id()}
        store.addresses[record["id"]] = record
        return record

    @router.delete("/adresse/{adresse_id}")
    def delete_address(adresse_id: int):
        _get(store.addresses, adresse_id, "Adresse")
        del store.addresses[adresse_id]
        return Response(status_code=204)

    # --- Media ---
    @router.get("/medium")
    def list_media(titel: Optional[str] = Query(None), verfuegbar: Optional[bool] = Query(None)):
        media = list(store.media.values())
        if titel is not None:
            media = [m for m in media if titel.lower() in m["titel"].lower()]
        if verfuegbar is not None:
            media = [m for m in media if (store.borrowing_of(m["id"]) is None) == verfuegbar]
        return media

    @router.get("/medium/{medium_id}")
    def get_medium(medium_id: int):
        return _get(store.media, medium_id, "Medium")

    @router.post("/medium")
    def create_medium(payload: Dict[str, Any] = Body(...)):
        record = {**payload, "id": store.next_id()}
        store.media[record["id"]] = record
        return record

    @router.put("/medium/{medium_id}")
    def update_medium(medium_id: int, payload: Dict[str, Any] = Body(...)):
        record = _get(store.media, medium_id, "Medium")
        record.update({k: v for k, v in payload.items() if k != "id"})
        return record

    @router.delete("/medium/{medium_id}")
    def delete_medium(medium_id: int):
        _get(store.media, medium_id, "Medium")
        del store.media[medium_id]
        return Response(status_code=204)

    # --- Borrowings ---
    @router.get("/ausleihe")
    def list_borrowings():
        return list(store.borrowings.values())

    @router.post("/ausleihe")
    def create_borrowing(payload: Dict[str, Any] = Body(...)):
        kunde_id = (payload.get("kunde") or {}).get("id")
        medium_id = (payload.get("medium") or {}).get("id")
        _get(store.customers, kunde_id, "Kunde")
        _get(store.media, medium_id, "Medium")
        if store.borrowing_of(medium_id) is not None:
            raise HTTPException(status_code=409, detail=f"Medium {medium_id} ist bereits ausgeliehen")
        return store.add_borrowing(kunde_id, medium_id, payload.get("leihdatum"), payload.get("leihdauer") or 14)

    @router.get("/ausleihe/medium/{medium_id}")
    def borrowing_for_medium(medium_id: int):
        record = store.borrowing_of(medium_id)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Keine Ausleihe für Medium {medium_id}")
        return record

    @router.put("/ausleihe/medium/{medium_id}")
    def extend_borrowing(medium_id: int):
        record = store.borrowing_of(medium_id)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Keine Ausleihe für Medium {medium_id}")
        if record["leihdauer"] >= 28:
            raise HTTPException(status_code=409, detail="Ausleihe wurde bereits verlängert")
        record["leihdauer"] += 14
        return Response(status_code=204)

    @router.delete("/ausleihe/medium/{medium_id}")
    def return_borrowing(medium_id: int):
        record = store.borrowing_of(medium_id)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Keine Ausleihe für Medium {medium_id}")
        del store.borrowings[record["id"]]
        return Response(status_code=204)

    app.include_router(router)
    return app
