from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

# Default loan period in days; kept here so records can default without importing lifecycle.
DEFAULT_DURATION_DAYS = 14

_HOUSE_NUMBER = re.compile(r"^\d+[a-zA-Z]?$")


def parse_date(value: Any) -> date | None:
    """Coerce a date, datetime or ISO string to a calendar date. Returns None when it can't."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            # Backend sometimes sends full timestamps where a date is expected
            if "T" in text:
                return datetime.fromisoformat(text).date()
            return date.fromisoformat(text)
        except ValueError:
            return None
    return None


def parse_int(value: Any) -> int | None:
    """Parse integers the way form input arrives (strings, possibly padded)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def combine_street(street: str | None, number: str | None) -> str:
    """Fold a house number into the street line."""
    if not street or not street.strip():
        return ""
    if not number or not number.strip():
        return street.strip()
    return f"{street.strip()} {number.strip()}"


def split_street(full_street: str | None) -> Tuple[str, str]:
    """Split a trailing house number (``12``, ``7b``) off a street line."""
    if not full_street:
        return "", ""
    parts = full_street.strip().split()
    if len(parts) > 1 and _HOUSE_NUMBER.match(parts[-1]):
        return " ".join(parts[:-1]), parts[-1]
    return full_street.strip(), ""


@dataclass
class Address:
    street: str = ""
    postal_code: Optional[int] = None
    city: str = ""
    id: Optional[int] = None

    @property
    def street_name(self) -> str:
        return split_street(self.street)[0]

    @property
    def house_number(self) -> str:
        return split_street(self.street)[1]

    def one_line(self) -> str:
        """``Street 1, 12345 City`` with empty parts left out."""
        tail = " ".join(str(p) for p in (self.postal_code, self.city) if p)
        return ", ".join(p for p in (self.street, tail) if p)

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {"strasse": self.street, "plz": self.postal_code, "ort": self.city}
        if self.id is not None:
            data["id"] = self.id
        return data

    @staticmethod
    def from_dict(data: dict) -> "Address":
        return Address(
            id=parse_int(data.get("id")),
            street=data.get("strasse") or "",
            postal_code=parse_int(data.get("plz")),
            city=data.get("ort") or "",
        )

    @staticmethod
    def from_form(street: str | None, house_number: str | None = None,
                  postal_code: Any = None, city: str | None = None) -> "Address":
        return Address(
            street=combine_street(street, house_number),
            postal_code=parse_int(postal_code),
            city=(city or "").strip(),
        )


@dataclass
class Customer:
    first_name: str
    last_name: str
    email: str = ""
    birth_date: Optional[date] = None
    address: Optional[Address] = None
    id: Optional[int] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {
            "vorname": self.first_name,
            "familienname": self.last_name,
            "email": self.email,
            "geburtsdatum": self.birth_date.isoformat() if self.birth_date else None,
        }
        if self.address is not None:
            data["adresse"] = self.address.to_dict()
        if self.id is not None:
            data["id"] = self.id
        return data

    @staticmethod
    def from_dict(data: dict) -> "Customer":
        address = data.get("adresse")
        return Customer(
            id=parse_int(data.get("id")),
            first_name=data.get("vorname") or "",
            last_name=data.get("familienname") or "",
            email=data.get("email") or "",
            birth_date=parse_date(data.get("geburtsdatum")),
            address=Address.from_dict(address) if isinstance(address, dict) else None,
        )

    @staticmethod
    def from_form(form: Dict[str, Any]) -> "Customer":
        return Customer(
            first_name=(form.get("first_name") or "").strip(),
            last_name=(form.get("last_name") or "").strip(),
            email=(form.get("email") or "").strip(),
            birth_date=parse_date(form.get("birth_date")),
            address=Address.from_form(
                form.get("street"), form.get("house_number"), form.get("postal_code"), form.get("city")
            ),
        )


@dataclass
class Medium:
    title: str
    author: str
    genre: Optional[str] = None
    rating: Optional[float] = None
    age_rating: Optional[int] = None
    isbn: Optional[str] = None
    ean: Optional[str] = None
    location_code: Optional[str] = None
    id: Optional[int] = None

    @property
    def identifier(self) -> str:
        return self.isbn or self.ean or ""

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {"titel": self.title, "autor": self.author}
        optional = {
            "id": self.id,
            "genre": self.genre,
            "bewertung": self.rating,
            "altersfreigabe": self.age_rating,
            "isbn": self.isbn,
            "ean": self.ean,
            "standortcode": self.location_code,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    @staticmethod
    def from_dict(data: dict) -> "Medium":
        rating = data.get("bewertung")
        try:
            rating = float(rating) if rating is not None else None
        except (TypeError, ValueError):
            rating = None
        return Medium(
            id=parse_int(data.get("id")),
            title=data.get("titel") or "",
            author=data.get("autor") or "",
            genre=_clean(data.get("genre")),
            rating=rating,
            age_rating=parse_int(data.get("altersfreigabe")),
            isbn=_clean(data.get("isbn")),
            ean=_clean(data.get("ean")),
            location_code=_clean(data.get("standortcode")),
        )


@dataclass
class Borrowing:
    """An active loan. The medium id is the effective key: a medium has at most one."""

    customer_id: Optional[int]
    medium_id: Optional[int]
    start_date: Optional[date] = None
    duration_days: int = DEFAULT_DURATION_DAYS
    id: Optional[int] = None
    # Resolved by lookup, never owned
    customer: Optional[Customer] = field(default=None, compare=False)
    medium: Optional[Medium] = field(default=None, compare=False)

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {
            "kunde": {"id": self.customer_id},
            "medium": {"id": self.medium_id},
        }
        if self.start_date is not None:
            data["leihdatum"] = self.start_date.isoformat()
        if self.id is not None:
            data["id"] = self.id
            data["leihdauer"] = self.duration_days
        return data

    @staticmethod
    def from_dict(data: dict) -> "Borrowing":
        customer_data = data.get("kunde") if isinstance(data.get("kunde"), dict) else {}
        medium_data = data.get("medium") if isinstance(data.get("medium"), dict) else {}
        duration = parse_int(data.get("leihdauer"))
        return Borrowing(
            id=parse_int(data.get("id")),
            customer_id=parse_int(customer_data.get("id")),
            medium_id=parse_int(medium_data.get("id")),
            start_date=parse_date(data.get("leihdatum")),
            duration_days=duration if duration and duration > 0 else DEFAULT_DURATION_DAYS,
            # Only treat nested objects as resolved when they carry more than the id
            customer=Customer.from_dict(customer_data) if len(customer_data) > 1 else None,
            medium=Medium.from_dict(medium_data) if len(medium_data) > 1 else None,
        )
