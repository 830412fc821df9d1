"""Loan rules: due date, overdue detection, the single extension and availability.

Every function here is pure. Absent or malformed data degrades to the safe
answer (no due date, not overdue, not extended) instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Iterable, Optional

from bibliothek.errors import ExtensionDenied
from bibliothek.models import DEFAULT_DURATION_DAYS, Borrowing, parse_date, parse_int

LOAN_PERIOD_DAYS = DEFAULT_DURATION_DAYS
EXTENSION_DAYS = 14
MAX_DURATION_DAYS = 28


class Availability(Enum):
    AVAILABLE = "available"
    BORROWED = "borrowed"


@dataclass(frozen=True)
class LoanStatus:
    due_date: Optional[date]
    overdue: bool
    extended: bool
    max_extended: bool

    @property
    def can_extend(self) -> bool:
        return not self.max_extended


def normalize_duration(duration_days: Any) -> int:
    days = parse_int(duration_days)
    if days is None or days <= 0:
        return LOAN_PERIOD_DAYS
    return days


def _calendar_date(now: date | datetime | None) -> date:
    if now is None:
        return date.today()
    if isinstance(now, datetime):
        return now.date()
    return now


def due_date(start_date: Any, duration_days: Any = LOAN_PERIOD_DAYS) -> date | None:
    """Start date plus the loan duration in calendar days."""
    start = parse_date(start_date)
    if start is None:
        return None
    return start + timedelta(days=normalize_duration(duration_days))


def is_overdue(due: Any, now: date | datetime | None = None) -> bool:
    """True iff the due date lies strictly before today's calendar date."""
    due = parse_date(due)
    if due is None:
        return False
    return due < _calendar_date(now)


def is_extended(duration_days: Any) -> bool:
    return normalize_duration(duration_days) > LOAN_PERIOD_DAYS


def is_max_extended(duration_days: Any) -> bool:
    return normalize_duration(duration_days) >= MAX_DURATION_DAYS


def next_duration(duration_days: Any) -> int:
    """Duration after one extension step; raises ExtensionDenied at the cap."""
    days = normalize_duration(duration_days)
    if is_max_extended(days):
        raise ExtensionDenied(f"Borrowing already runs for {days} days and cannot be extended.")
    return days + EXTENSION_DAYS


def availability(medium_id: Optional[int], active_borrowings: Iterable[Borrowing]) -> Availability:
    """Borrowed iff one of the given active borrowings references the medium."""
    if medium_id is None:
        return Availability.AVAILABLE
    for borrowing in active_borrowings:
        if borrowing.medium_id == medium_id:
            return Availability.BORROWED
    return Availability.AVAILABLE


def loan_status(borrowing: Borrowing, now: date | datetime | None = None) -> LoanStatus:
    due = due_date(borrowing.start_date, borrowing.duration_days)
    return LoanStatus(
        due_date=due,
        overdue=is_overdue(due, now),
        extended=is_extended(borrowing.duration_days),
        max_extended=is_max_extended(borrowing.duration_days),
    )
