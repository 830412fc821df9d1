"""Client-side search and pagination over an in-memory collection.

The presentation layer owns a ``ViewState`` value and replaces it on every
intent (search, page change, refetch). Searches always run against the full
collection, so filters never compound.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Generic, Optional, Sequence, Tuple, TypeVar, Union

from config import settings

T = TypeVar("T")

Predicate = Callable[[Any], bool]
FieldSpec = Union[str, Callable[[Any], Any]]

# Free-text search fields per page
MEDIA_SEARCH_FIELDS: Tuple[FieldSpec, ...] = ("title", "author", "genre")
CUSTOMER_SEARCH_FIELDS: Tuple[FieldSpec, ...] = ("first_name", "last_name", "email", "id")


def _borrowing_customer_name(borrowing: Any) -> str:
    customer = getattr(borrowing, "customer", None)
    return customer.full_name if customer else ""


BORROWING_SEARCH_FIELDS: Tuple[FieldSpec, ...] = (_borrowing_customer_name, "medium.title", "id")


def _resolve(item: Any, field_ref: FieldSpec) -> Any:
    if callable(field_ref):
        return field_ref(item)
    value = item
    for part in field_ref.split("."):
        if value is None:
            return None
        if isinstance(value, dict):
            value = value.get(part)
        else:
            value = getattr(value, part, None)
    return value


def match_all(item: Any) -> bool:
    return True


def text_predicate(term: Optional[str], fields: Sequence[FieldSpec]) -> Predicate:
    """Case-insensitive substring match, OR across ``fields``.

    Numbers (ids) are compared on their decimal text, so ``"1"`` finds ids 1, 10, 21.
    """
    needle = (term or "").strip().lower()
    if not needle:
        return match_all

    def predicate(item: Any) -> bool:
        for field_ref in fields:
            value = _resolve(item, field_ref)
            if value is None or value == "":
                continue
            if needle in str(value).lower():
                return True
        return False

    return predicate


def all_of(*predicates: Optional[Predicate]) -> Predicate:
    active = [p for p in predicates if p is not None and p is not match_all]
    if not active:
        return match_all
    if len(active) == 1:
        return active[0]
    return lambda item: all(p(item) for p in active)


def media_predicate(term: Optional[str] = None, id_filter: Optional[str] = None,
                    title_filter: Optional[str] = None) -> Predicate:
    """Free text over title/author/genre, narrowed by optional id and title filters."""
    return all_of(
        text_predicate(term, MEDIA_SEARCH_FIELDS),
        text_predicate(id_filter, ("id",)),
        text_predicate(title_filter, ("title",)),
    )


def filter_items(items: Sequence[T], predicate: Optional[Predicate]) -> list[T]:
    if predicate is None:
        return list(items)
    return [item for item in items if predicate(item)]


def total_pages(count: int, page_size: int) -> int:
    if page_size <= 0:
        return 0
    return math.ceil(max(count, 0) / page_size)


def paginate(items: Sequence[T], page: int, page_size: int) -> list[T]:
    """1-based page slice, clipped to bounds. Pages past the end are empty."""
    if page < 1 or page_size <= 0:
        return []
    start = (page - 1) * page_size
    return list(items[start:start + page_size])


@dataclass(frozen=True)
class ViewState(Generic[T]):
    items: Tuple[T, ...] = ()
    filtered: Tuple[T, ...] = ()
    page: int = 1
    page_size: int = field(default_factory=lambda: settings.page_size)
    predicate: Optional[Predicate] = field(default=None, compare=False)

    @classmethod
    def of(cls, items: Sequence[T], page_size: Optional[int] = None) -> "ViewState[T]":
        collection = tuple(items)
        return cls(
            items=collection,
            filtered=collection,
            page=1,
            page_size=page_size if page_size else settings.page_size,
        )

    @property
    def total_pages(self) -> int:
        return total_pages(len(self.filtered), self.page_size)

    @property
    def page_items(self) -> list[T]:
        return paginate(self.filtered, self.page, self.page_size)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def search(self, predicate: Optional[Predicate]) -> "ViewState[T]":
        """Filter the full collection and go back to the first page."""
        return replace(
            self,
            filtered=tuple(filter_items(self.items, predicate)),
            predicate=predicate,
            page=1,
        )

    def go_to(self, page: int) -> "ViewState[T]":
        """Switch page; requests outside [1, total_pages] leave the state unchanged."""
        if 1 <= page <= self.total_pages:
            return replace(self, page=page)
        return self

    def next_page(self) -> "ViewState[T]":
        return self.go_to(self.page + 1)

    def previous_page(self) -> "ViewState[T]":
        return self.go_to(self.page - 1)

    def with_items(self, items: Sequence[T]) -> "ViewState[T]":
        """Swap in a freshly fetched collection, keeping the active search."""
        collection = tuple(items)
        filtered = tuple(filter_items(collection, self.predicate))
        pages = total_pages(len(filtered), self.page_size)
        return replace(self, items=collection, filtered=filtered, page=min(self.page, max(pages, 1)))
