import asyncio
import logging
from functools import wraps
from typing import Optional

import typer

from config import settings
from bibliothek import views
from bibliothek.errors import LibraryError, ValidationRejected
from bibliothek.library import Library, fetch_dashboard
from bibliothek.listing import (
    BORROWING_SEARCH_FIELDS,
    CUSTOMER_SEARCH_FIELDS,
    ViewState,
    media_predicate,
    text_predicate,
)
from bibliothek.services.http_client import cleanup_http_client
from bibliothek.services.resource_client import AsyncResourceClient, ResourceClient
from bibliothek.ui_helpers import print_rows, print_stats_result, set_output_mode
from bibliothek.validators import parse_search_id

APP_NAME = settings.app_name

logger = logging.getLogger(__name__)


class LibraryManager:
    """Process-wide Library, created on first use."""
    _instance: Optional[Library] = None

    @classmethod
    def get_instance(cls) -> Library:
        if cls._instance is None:
            cls._instance = Library(ResourceClient.from_settings())
            logger.debug(f"Library client ready for {settings.api_base_url}")
        return cls._instance

    @classmethod
    def get_async_client(cls) -> AsyncResourceClient:
        return AsyncResourceClient.from_settings()


def report_errors(func):
    """Turn library errors into one readable message and exit code 1."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ValidationRejected as e:
            print("Validation errors:")
            for message in e.errors:
                print(f"- {message}")
            raise typer.Exit(code=1)
        except LibraryError as e:
            print(f"Error: {e}")
            raise typer.Exit(code=1)
    return wrapper


def _show_page(state: ViewState, page: int):
    """Move to the requested page; out-of-range requests keep the first page."""
    target = state.go_to(page)
    if target.page != page:
        print(f"Page {page} does not exist, showing page {target.page}.")
    return target


# --- Typer CLI application ---
app = typer.Typer(help=f"{APP_NAME} - library desk for the bibliothek backend")
customer_app = typer.Typer(help="Search, add, edit and remove customers.")
address_app = typer.Typer(help="Search, add and remove addresses.")
media_app = typer.Typer(help="List, add, edit and remove media.")
borrowing_app = typer.Typer(help="Borrow, extend and return media.")
app.add_typer(customer_app, name="customer")
app.add_typer(address_app, name="address")
app.add_typer(media_app, name="media")
app.add_typer(borrowing_app, name="borrowing")


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests to stderr"),
):
    """Global options (output mode, logging)."""
    level = logging.DEBUG if verbose or settings.debug else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    if output:
        set_output_mode(output)


# ------------------------- Customers ------------------------- #
@customer_app.command("show")
@report_errors
def customer_show(customer_id: str = typer.Argument(..., help="Customer id")):
    """Show one customer by id."""
    customer = LibraryManager.get_instance().find_customer(parse_search_id(customer_id))
    print_rows("Customers", views.CUSTOMER_COLUMNS, [views.customer_row(customer)])


@customer_app.command("search")
@report_errors
def customer_search(
    last_name: Optional[str] = typer.Option(None, "--last-name", "-n", help="Family name"),
    street: Optional[str] = typer.Option(None, "--street", "-s", help="Street of the address"),
):
    """Search customers by family name or street."""
    customers = LibraryManager.get_instance().search_customers(last_name=last_name, street=street)
    print_rows("Customers", views.CUSTOMER_COLUMNS, [views.customer_row(c) for c in customers],
               empty_message="No customers found.")


@customer_app.command("list")
@report_errors
def customer_list(
    search: Optional[str] = typer.Option(None, "--search", "-q", help="Filter by name, email or id"),
    page: int = typer.Option(1, "--page", "-p", help="Page number"),
):
    """List all customers, five per page."""
    state = ViewState.of(LibraryManager.get_instance().list_customers())
    state = _show_page(state.search(text_predicate(search, CUSTOMER_SEARCH_FIELDS)), page)
    print_rows("Customers", views.CUSTOMER_COLUMNS, [views.customer_row(c) for c in state.page_items],
               footer=views.page_footer(state), empty_message="No customers found.")


@customer_app.command("add")
@report_errors
def customer_add(
    first_name: str = typer.Option("", "--first-name"),
    last_name: str = typer.Option("", "--last-name"),
    email: str = typer.Option("", "--email"),
    birth_date: str = typer.Option("", "--birth-date", help="YYYY-MM-DD"),
    street: str = typer.Option("", "--street"),
    house_number: str = typer.Option("", "--house-number"),
    postal_code: str = typer.Option("", "--postal-code"),
    city: str = typer.Option("", "--city"),
):
    """Add a customer with address."""
    customer = LibraryManager.get_instance().add_customer({
        "first_name": first_name,
        "last_name": last_name,
        "email": email,
        "birth_date": birth_date,
        "street": street,
        "house_number": house_number,
        "postal_code": postal_code,
        "city": city,
    })
    print(f"Customer added: {customer.id} - {customer.full_name}")


@customer_app.command("edit")
@report_errors
def customer_edit(
    customer_id: int = typer.Argument(..., help="Customer id"),
    email: str = typer.Option("", "--email"),
    street: str = typer.Option("", "--street"),
    house_number: str = typer.Option("", "--house-number"),
    postal_code: str = typer.Option("", "--postal-code"),
    city: str = typer.Option("", "--city"),
):
    """Change email and/or address of a customer."""
    customer = LibraryManager.get_instance().update_customer(customer_id, {
        "email": email,
        "street": street,
        "house_number": house_number,
        "postal_code": postal_code,
        "city": city,
    })
    print(f"Customer updated: {customer.id} - {customer.full_name}")


@customer_app.command("remove")
@report_errors
def customer_remove(customer_id: int = typer.Argument(..., help="Customer id")):
    """Delete a customer."""
    LibraryManager.get_instance().remove_customer(customer_id)
    print(f"Customer {customer_id} has been removed.")


# ------------------------- Addresses ------------------------- #
@address_app.command("list")
@report_errors
def address_list(page: int = typer.Option(1, "--page", "-p", help="Page number")):
    """List all addresses."""
    state = _show_page(ViewState.of(LibraryManager.get_instance().list_addresses()), page)
    print_rows("Addresses", views.ADDRESS_COLUMNS, [views.address_row(a) for a in state.page_items],
               footer=views.page_footer(state), empty_message="No addresses found.")


@address_app.command("show")
@report_errors
def address_show(address_id: str = typer.Argument(..., help="Address id")):
    """Show one address by id."""
    address = LibraryManager.get_instance().find_address(parse_search_id(address_id))
    print_rows("Addresses", views.ADDRESS_COLUMNS, [views.address_row(address)])


@address_app.command("search")
@report_errors
def address_search(
    street: Optional[str] = typer.Option(None, "--street", "-s"),
    postal_code: Optional[str] = typer.Option(None, "--postal-code", "-z"),
):
    """Search addresses by street or postal code."""
    addresses = LibraryManager.get_instance().search_addresses(street=street, postal_code=postal_code)
    print_rows("Addresses", views.ADDRESS_COLUMNS, [views.address_row(a) for a in addresses],
               empty_message="No addresses found.")


@address_app.command("add")
@report_errors
def address_add(
    street: str = typer.Option("", "--street"),
    house_number: str = typer.Option("", "--house-number"),
    postal_code: str = typer.Option("", "--postal-code"),
    city: str = typer.Option("", "--city"),
):
    """Add a standalone address."""
    address = LibraryManager.get_instance().add_address({
        "street": street,
        "house_number": house_number,
        "postal_code": postal_code,
        "city": city,
    })
    print(f"Address added: {address.id} - {address.one_line()}")


@address_app.command("remove")
@report_errors
def address_remove(address_id: int = typer.Argument(..., help="Address id")):
    """Delete an address."""
    LibraryManager.get_instance().remove_address(address_id)
    print(f"Address {address_id} has been removed.")


# ------------------------- Media ------------------------- #
@media_app.command("list")
@report_errors
def media_list(
    search: Optional[str] = typer.Option(None, "--search", "-q", help="Title, author or genre"),
    id_filter: Optional[str] = typer.Option(None, "--id", help="Id contains"),
    title_filter: Optional[str] = typer.Option(None, "--title", "-t", help="Title contains"),
    page: int = typer.Option(1, "--page", "-p", help="Page number"),
):
    """List media with availability."""
    overview = LibraryManager.get_instance().media_overview()
    states = {id(medium): availability for medium, availability in overview}
    state = ViewState.of([medium for medium, _ in overview])
    state = _show_page(state.search(media_predicate(search, id_filter, title_filter)), page)
    rows = [views.media_row(m, states[id(m)]) for m in state.page_items]
    print_rows("Media", views.MEDIA_COLUMNS, rows, footer=views.page_footer(state),
               empty_message="No media found.")


@media_app.command("add")
@report_errors
def media_add(
    title: str = typer.Option("", "--title"),
    author: str = typer.Option("", "--author"),
):
    """Add a medium."""
    medium = LibraryManager.get_instance().add_medium({"title": title, "author": author})
    print(f"Medium added: {medium.id} - {medium.title} by {medium.author}")


@media_app.command("edit")
@report_errors
def media_edit(
    medium_id: int = typer.Argument(..., help="Medium id"),
    genre: str = typer.Option("", "--genre"),
    age_rating: str = typer.Option("", "--age-rating"),
    rating: str = typer.Option("", "--rating"),
    identifier: str = typer.Option("", "--identifier", help="ISBN or EAN"),
    location_code: str = typer.Option("", "--location"),
):
    """Update genre, age rating, rating, identifier or location of a medium."""
    medium = LibraryManager.get_instance().update_medium(medium_id, {
        "genre": genre,
        "age_rating": age_rating,
        "rating": rating,
        "identifier": identifier,
        "location_code": location_code,
    })
    print(f"Medium updated: {medium.id} - {medium.title}")


@media_app.command("remove")
@report_errors
def media_remove(medium_id: int = typer.Argument(..., help="Medium id")):
    """Delete a medium."""
    LibraryManager.get_instance().remove_medium(medium_id)
    print(f"Medium {medium_id} has been removed.")


# ------------------------- Borrowings ------------------------- #
@borrowing_app.command("list")
@report_errors
def borrowing_list(
    search: Optional[str] = typer.Option(None, "--search", "-q", help="Customer name, title or id"),
    page: int = typer.Option(1, "--page", "-p", help="Page number"),
):
    """List active borrowings with due dates."""
    state = ViewState.of(LibraryManager.get_instance().load_borrowings())
    state = _show_page(state.search(text_predicate(search, BORROWING_SEARCH_FIELDS)), page)
    rows = [views.borrowing_row(b) for b in state.page_items]
    print_rows("Borrowings", views.BORROWING_COLUMNS, rows, footer=views.page_footer(state),
               empty_message="No borrowings found.")


@borrowing_app.command("borrow")
@report_errors
def borrowing_borrow(
    customer_id: str = typer.Argument(..., help="Customer id"),
    medium_id: str = typer.Argument(..., help="Medium id"),
    start_date: Optional[str] = typer.Option(None, "--date", help="YYYY-MM-DD (default: today)"),
):
    """Lend a medium to a customer."""
    borrowing = LibraryManager.get_instance().borrow(customer_id, medium_id, start_date)
    row = views.borrowing_row(borrowing)
    print(f"Borrowing created: medium {borrowing.medium_id}, due {row.due_on}")


@borrowing_app.command("extend")
@report_errors
def borrowing_extend(medium_id: int = typer.Argument(..., help="Medium id")):
    """Extend a borrowing once by 14 days."""
    days = LibraryManager.get_instance().extend(medium_id)
    print(f"Borrowing of medium {medium_id} extended to {days} days.")


@borrowing_app.command("return")
@report_errors
def borrowing_return(medium_id: int = typer.Argument(..., help="Medium id")):
    """Return a borrowed medium."""
    LibraryManager.get_instance().return_medium(medium_id)
    print(f"Medium {medium_id} has been returned.")


# ------------------------- Statistics ------------------------- #
async def _dashboard():
    try:
        return await fetch_dashboard(LibraryManager.get_async_client())
    finally:
        await cleanup_http_client()


@app.command("stats")
@report_errors
def cli_stats():
    """Show media and borrowing statistics."""
    stats = asyncio.run(_dashboard())
    print_stats_result(stats)


if __name__ == "__main__":
    app()
