"""Display rows for the four list pages.

Rows are plain values: the CLI prints them, nothing here talks to the backend.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from config import settings
from bibliothek.lifecycle import Availability, loan_status
from bibliothek.listing import ViewState
from bibliothek.models import Address, Borrowing, Customer, Medium, split_street

BORROWING_COLUMNS = ["ID", "Customer", "Medium", "Borrowed", "Due", "Status"]
MEDIA_COLUMNS = ["ID", "Title", "Author", "Genre", "Rating", "ISBN/EAN", "Age", "Location", "Available"]
CUSTOMER_COLUMNS = ["ID", "First name", "Last name", "Birth date", "Address", "Email"]
ADDRESS_COLUMNS = ["ID", "Street", "No.", "City", "Postal code"]


def format_date(value: Optional[date]) -> str:
    return value.strftime(settings.date_display_format) if value else ""


def star_rating(rating: Optional[float]) -> str:
    """Five-star bar with half stars, e.g. 3.5 -> ★★★½☆."""
    if not rating:
        return ""
    rating = max(0.0, min(5.0, float(rating)))
    full = math.floor(rating)
    half = rating % 1 != 0
    empty = 5 - math.ceil(rating)
    return "★" * full + ("½" if half else "") + "☆" * empty


@dataclass(frozen=True)
class BorrowingRow:
    id: Optional[int]
    medium_id: Optional[int]
    customer: str
    medium: str
    borrowed_on: str
    due_on: str
    extended: bool
    overdue: bool
    can_extend: bool

    @property
    def status(self) -> str:
        labels = []
        if self.extended:
            labels.append("extended")
        if self.overdue:
            labels.append("OVERDUE")
        return ", ".join(labels) or "ok"

    def cells(self) -> List[str]:
        return [str(self.id or ""), self.customer, self.medium, self.borrowed_on, self.due_on, self.status]

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def borrowing_row(borrowing: Borrowing, today: Optional[date] = None) -> BorrowingRow:
    status = loan_status(borrowing, today)
    customer = borrowing.customer
    medium = borrowing.medium
    return BorrowingRow(
        id=borrowing.id,
        medium_id=borrowing.medium_id,
        customer=f"{customer.id} - {customer.full_name}" if customer else "Unknown customer",
        medium=f"{medium.id} - {medium.title}" if medium else "Unknown medium",
        borrowed_on=format_date(borrowing.start_date),
        due_on=format_date(status.due_date),
        extended=status.extended,
        overdue=status.overdue,
        can_extend=status.can_extend,
    )


@dataclass(frozen=True)
class MediaRow:
    id: Optional[int]
    title: str
    author: str
    genre: str
    stars: str
    rating: str
    identifier: str
    age_rating: str
    location: str
    available: bool

    def cells(self) -> List[str]:
        rating = f"{self.stars} {self.rating}".strip()
        return [str(self.id or ""), self.title, self.author, self.genre, rating,
                self.identifier, self.age_rating, self.location, "yes" if self.available else "no"]

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def media_row(medium: Medium, state: Availability) -> MediaRow:
    rating = medium.rating
    return MediaRow(
        id=medium.id,
        title=medium.title,
        author=medium.author,
        genre=medium.genre or "",
        stars=star_rating(rating),
        rating=f"{rating:g}/5" if rating else "",
        identifier=medium.identifier,
        age_rating=str(medium.age_rating) if medium.age_rating is not None else "",
        location=medium.location_code or "",
        available=state is Availability.AVAILABLE,
    )


@dataclass(frozen=True)
class CustomerRow:
    id: Optional[int]
    first_name: str
    last_name: str
    birth_date: str
    address: str
    email: str

    def cells(self) -> List[str]:
        return [str(self.id or "-"), self.first_name or "-", self.last_name or "-",
                self.birth_date or "-", self.address or "-", self.email or "-"]

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def customer_row(customer: Customer) -> CustomerRow:
    return CustomerRow(
        id=customer.id,
        first_name=customer.first_name,
        last_name=customer.last_name,
        birth_date=format_date(customer.birth_date),
        address=customer.address.one_line() if customer.address else "",
        email=customer.email,
    )


@dataclass(frozen=True)
class AddressRow:
    id: Optional[int]
    street: str
    house_number: str
    city: str
    postal_code: str

    def cells(self) -> List[str]:
        return [str(self.id or "-"), self.street or "-", self.house_number or "-",
                self.city or "-", self.postal_code or "-"]

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def address_row(address: Address) -> AddressRow:
    street, number = split_street(address.street)
    return AddressRow(
        id=address.id,
        street=street,
        house_number=number,
        city=address.city,
        postal_code=str(address.postal_code) if address.postal_code is not None else "",
    )


def page_footer(state: ViewState) -> str:
    pages = state.total_pages
    if pages == 0:
        return "Page 0 of 0"
    return f"Page {state.page} of {pages} ({len(state.filtered)} results)"
