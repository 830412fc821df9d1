import asyncio
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bibliothek.errors import LibraryError, ValidationRejected
from bibliothek.lifecycle import Availability, availability, is_extended, loan_status, next_duration
from bibliothek.models import Address, Borrowing, Customer, Medium, combine_street, parse_date, parse_int
from bibliothek.services.resource_client import AsyncResourceClient, Collection, ResourceClient
from bibliothek.validators import (
    AddressValidator,
    BorrowingValidator,
    CustomerValidator,
    MediumValidator,
    ensure_valid,
)

logger = logging.getLogger(__name__)


class Library:
    """Customer, address, media and borrowing workflows on top of the backend client.

    Nothing is cached between calls: every listing fetches the collection anew,
    so availability and loan flags always reflect the latest completed fetch.
    """

    def __init__(self, client: ResourceClient) -> None:
        self.client = client

    # ------------------------- Customers ------------------------- #
    def list_customers(self) -> List[Customer]:
        return self.client.list_all(Collection.CUSTOMER)

    def find_customer(self, customer_id: int) -> Customer:
        return self.client.get_by_id(Collection.CUSTOMER, customer_id)

    def search_customers(self, *, last_name: Optional[str] = None, street: Optional[str] = None) -> List[Customer]:
        """Search by family name or by street of the customer's address."""
        if last_name and last_name.strip():
            return self.client.query(Collection.CUSTOMER, "last_name", last_name.strip())
        if street and street.strip():
            return self.client.query(Collection.CUSTOMER, "street", street.strip())
        raise ValidationRejected(["Please enter a family name or a street"])

    def add_customer(self, form: Dict[str, Any]) -> Customer:
        ensure_valid(CustomerValidator.validate(form))
        customer = self.client.create(Collection.CUSTOMER, Customer.from_form(form))
        logger.info(f"Customer {customer.id} created")
        return customer

    def update_customer(self, customer_id: int, form: Dict[str, Any]) -> Customer:
        """Apply an edit form. Email goes to the customer, the rest to its address.

        Only filled-in fields are sent; each part is a separate request, so the
        edit is not atomic. The address goes first: a rejected address leaves
        the customer untouched.
        """
        ensure_valid(CustomerValidator.validate_edit(form))

        customer_patch: Dict[str, Any] = {}
        email = (form.get("email") or "").strip()
        if email:
            customer_patch["email"] = email

        address_patch: Dict[str, Any] = {}
        street = combine_street(form.get("street"), form.get("house_number"))
        if street:
            address_patch["strasse"] = street
        city = (form.get("city") or "").strip()
        if city:
            address_patch["ort"] = city
        postal_code = parse_int(form.get("postal_code"))
        if postal_code is not None:
            address_patch["plz"] = postal_code

        if not customer_patch and not address_patch:
            raise ValidationRejected(["Nothing to update. Provide an email or address fields."])

        if address_patch:
            self.client.update_customer_address(customer_id, address_patch)
        if customer_patch:
            self.client.update(Collection.CUSTOMER, customer_id, customer_patch)
        logger.info(f"Customer {customer_id} updated")
        return self.find_customer(customer_id)

    def remove_customer(self, customer_id: int) -> None:
        self.client.remove(Collection.CUSTOMER, customer_id)
        logger.info(f"Customer {customer_id} removed")

    # ------------------------- Addresses ------------------------- #
    def list_addresses(self) -> List[Address]:
        return self.client.list_all(Collection.ADDRESS)

    def find_address(self, address_id: int) -> Address:
        return self.client.get_by_id(Collection.ADDRESS, address_id)

    def search_addresses(self, *, street: Optional[str] = None, postal_code: Any = None) -> List[Address]:
        if street and street.strip():
            return self.client.query(Collection.ADDRESS, "street", street.strip())
        if postal_code is not None and str(postal_code).strip():
            code = parse_int(postal_code)
            if code is None:
                raise ValidationRejected(["Postal code must be a number"])
            return self.client.query(Collection.ADDRESS, "postal_code", code)
        raise ValidationRejected(["Please enter a street or a postal code"])

    def add_address(self, form: Dict[str, Any]) -> Address:
        ensure_valid(AddressValidator.validate(form))
        address = Address.from_form(
            form.get("street"), form.get("house_number"), form.get("postal_code"), form.get("city")
        )
        created = self.client.create(Collection.ADDRESS, address)
        logger.info(f"Address {created.id} created")
        return created

    def remove_address(self, address_id: int) -> None:
        self.client.remove(Collection.ADDRESS, address_id)
        logger.info(f"Address {address_id} removed")

    # ------------------------- Media ------------------------- #
    def list_media(self) -> List[Medium]:
        return self.client.list_all(Collection.MEDIUM)

    def find_medium(self, medium_id: int) -> Medium:
        return self.client.get_by_id(Collection.MEDIUM, medium_id)

    def media_overview(self) -> List[Tuple[Medium, Availability]]:
        """All media paired with their availability, computed from a fresh borrowing list."""
        media = self.list_media()
        active = self.active_borrowings()
        return [(medium, availability(medium.id, active)) for medium in media]

    def add_medium(self, form: Dict[str, Any]) -> Medium:
        ensure_valid(MediumValidator.validate(form))
        medium = Medium(title=form["title"].strip(), author=form["author"].strip())
        created = self.client.create(Collection.MEDIUM, medium)
        logger.info(f"Medium {created.id} created")
        return created

    def update_medium(self, medium_id: int, form: Dict[str, Any]) -> Medium:
        """Send the non-empty edit fields: genre, age rating, rating, identifier, location code."""
        ensure_valid(MediumValidator.validate_edit(form))
        patch: Dict[str, Any] = {}
        genre = (form.get("genre") or "").strip()
        if genre:
            patch["genre"] = genre
        age_rating = parse_int(form.get("age_rating"))
        if age_rating is not None:
            patch["altersfreigabe"] = age_rating
        rating = form.get("rating")
        if rating is not None and str(rating).strip():
            patch["bewertung"] = float(str(rating).strip())
        identifier = (form.get("identifier") or "").strip()
        if identifier:
            patch["ean"] = identifier
        location = (form.get("location_code") or "").strip()
        if location:
            patch["standortcode"] = location
        if not patch:
            raise ValidationRejected(["Nothing to update."])
        updated = self.client.update(Collection.MEDIUM, medium_id, patch)
        logger.info(f"Medium {medium_id} updated")
        return updated

    def remove_medium(self, medium_id: int) -> None:
        self.client.remove(Collection.MEDIUM, medium_id)
        logger.info(f"Medium {medium_id} removed")

    # ------------------------- Borrowings ------------------------- #
    def active_borrowings(self) -> List[Borrowing]:
        return self.client.list_all(Collection.BORROWING)

    def load_borrowings(self) -> List[Borrowing]:
        """Active borrowings with customer and medium resolved.

        A reference that cannot be resolved is logged and left empty; the
        borrowing itself is still listed.
        """
        borrowings = self.active_borrowings()
        customers: Dict[int, Optional[Customer]] = {}
        media: Dict[int, Optional[Medium]] = {}
        for borrowing in borrowings:
            if borrowing.customer is None and borrowing.customer_id is not None:
                if borrowing.customer_id not in customers:
                    customers[borrowing.customer_id] = self._lookup(Collection.CUSTOMER, borrowing.customer_id, borrowing)
                borrowing.customer = customers[borrowing.customer_id]
            if borrowing.medium is None and borrowing.medium_id is not None:
                if borrowing.medium_id not in media:
                    media[borrowing.medium_id] = self._lookup(Collection.MEDIUM, borrowing.medium_id, borrowing)
                borrowing.medium = media[borrowing.medium_id]
        return borrowings

    def _lookup(self, collection: Collection, ident: int, borrowing: Borrowing):
        try:
            return self.client.get_by_id(collection, ident)
        except LibraryError as e:
            logger.warning(f"Could not load details for borrowing {borrowing.id}: {e}")
            return None

    def find_borrowing(self, medium_id: int) -> Borrowing:
        return self.client.borrowing_for_medium(medium_id)

    def borrow(self, customer_id: Any, medium_id: Any, start_date: Any = None) -> Borrowing:
        """Check a medium out to a customer. The medium must not be borrowed already."""
        ensure_valid(BorrowingValidator.validate(customer_id, medium_id))
        cid, mid = parse_int(customer_id), parse_int(medium_id)
        if availability(mid, self.active_borrowings()) is Availability.BORROWED:
            raise ValidationRejected([f"Medium {mid} is already borrowed"])
        borrowing = Borrowing(customer_id=cid, medium_id=mid, start_date=parse_date(start_date) or date.today())
        created = self.client.create(Collection.BORROWING, borrowing)
        logger.info(f"Medium {mid} borrowed by customer {cid}")
        return created

    def extend(self, medium_id: int) -> int:
        """Extend the borrowing of a medium once; returns the new duration.

        The cap is checked before anything is sent, so a denied extension
        leaves the borrowing untouched.
        """
        borrowing = self.client.borrowing_for_medium(medium_id)
        new_duration = next_duration(borrowing.duration_days)
        self.client.extend(medium_id)
        logger.info(f"Borrowing of medium {medium_id} extended to {new_duration} days")
        return new_duration

    def return_medium(self, medium_id: int) -> None:
        self.client.return_medium(medium_id)
        logger.info(f"Medium {medium_id} returned")

    # ------------------------- Statistics ------------------------- #
    def statistics(self, today: Optional[date] = None) -> Dict[str, int]:
        return summarize(self.list_media(), self.active_borrowings(), today)


def summarize(media: Iterable[Medium], borrowings: Iterable[Borrowing],
              today: Optional[date] = None) -> Dict[str, int]:
    media = list(media)
    borrowings = list(borrowings)
    borrowed = sum(1 for m in media if availability(m.id, borrowings) is Availability.BORROWED)
    return {
        "total_media": len(media),
        "available_media": len(media) - borrowed,
        "borrowed_media": borrowed,
        "active_borrowings": len(borrowings),
        "extended_borrowings": sum(1 for b in borrowings if is_extended(b.duration_days)),
        "overdue_borrowings": sum(1 for b in borrowings if loan_status(b, today).overdue),
    }


async def fetch_dashboard(client: AsyncResourceClient, today: Optional[date] = None) -> Dict[str, int]:
    """Statistics for the overview page, fetching media and borrowings concurrently."""
    media, borrowings = await asyncio.gather(
        client.list_all(Collection.MEDIUM),
        client.list_all(Collection.BORROWING),
    )
    return summarize(media, borrowings, today)
