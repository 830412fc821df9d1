import re
from typing import Any, Dict, List, Optional

from bibliothek.errors import ValidationRejected
from bibliothek.models import parse_date, parse_int

# local-part@domain with at least one dot in the domain
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def ensure_valid(errors: List[str]) -> None:
    """Raise one ValidationRejected carrying every collected message."""
    if errors:
        raise ValidationRejected(errors)


class IdentifierValidator:
    """ISBN-10, ISBN-13 and EAN-13 checks for media identifiers.

    EAN-13 and ISBN-13 share the same checksum, so a 13 digit code passes either way.
    """

    @staticmethod
    def normalize(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        s = re.sub(r"[^0-9Xx]", "", raw)
        return s.upper()

    @staticmethod
    def is_valid(code: Optional[str]) -> bool:
        s = IdentifierValidator.normalize(code)
        if len(s) == 10:
            total = 0
            for i, ch in enumerate(s[:-1], 1):
                if not ch.isdigit():
                    return False
                total += i * int(ch)
            check = s[-1]
            if check == 'X':
                check_val = 10
            elif check.isdigit():
                check_val = int(check)
            else:
                return False
            return (total + 10 * check_val) % 11 == 0
        if len(s) == 13 and s.isdigit():
            total = 0
            for i, ch in enumerate(s[:-1]):
                factor = 1 if i % 2 == 0 else 3
                total += factor * int(ch)
            check_val = (10 - (total % 10)) % 10
            return check_val == int(s[-1])
        return False


class CustomerValidator:
    """Checks raw customer form input. Keys: first_name, last_name, email,
    birth_date, street, house_number, postal_code, city."""

    @staticmethod
    def validate(form: Dict[str, Any]) -> List[str]:
        errors: List[str] = []
        if _blank(form.get("first_name")):
            errors.append("First name is required")
        if _blank(form.get("last_name")):
            errors.append("Last name is required")
        if _blank(form.get("email")):
            errors.append("Email is required")
        if _blank(form.get("birth_date")):
            errors.append("Birth date is required")
        elif parse_date(form.get("birth_date")) is None:
            errors.append("Birth date must be a date (YYYY-MM-DD)")
        if _blank(form.get("street")):
            errors.append("Street is required")
        if parse_int(form.get("postal_code")) is None:
            errors.append("A valid postal code is required")
        email = form.get("email")
        if not _blank(email) and not EMAIL_PATTERN.match(str(email).strip()):
            errors.append("Invalid email format")
        return errors

    @staticmethod
    def validate_edit(form: Dict[str, Any]) -> List[str]:
        """Edits only check the fields that were filled in."""
        errors: List[str] = []
        email = form.get("email")
        if not _blank(email) and not EMAIL_PATTERN.match(str(email).strip()):
            errors.append("Invalid email format")
        postal_code = form.get("postal_code")
        if not _blank(postal_code) and parse_int(postal_code) is None:
            errors.append("Postal code must be a number")
        return errors


class AddressValidator:

    @staticmethod
    def validate(form: Dict[str, Any]) -> List[str]:
        errors: List[str] = []
        if _blank(form.get("street")):
            errors.append("Street is required")
        if _blank(form.get("postal_code")):
            errors.append("Postal code is required")
        elif parse_int(form.get("postal_code")) is None:
            errors.append("Postal code must be a number")
        return errors


class MediumValidator:

    @staticmethod
    def validate(form: Dict[str, Any]) -> List[str]:
        errors: List[str] = []
        if _blank(form.get("title")):
            errors.append("Title is required")
        if _blank(form.get("author")):
            errors.append("Author is required")
        return errors

    @staticmethod
    def validate_edit(form: Dict[str, Any]) -> List[str]:
        errors: List[str] = []
        age_rating = form.get("age_rating")
        if not _blank(age_rating) and parse_int(age_rating) is None:
            errors.append("Age rating must be a number")
        rating = form.get("rating")
        if not _blank(rating):
            try:
                value = float(str(rating).strip())
            except ValueError:
                errors.append("Rating must be a number between 0 and 5")
            else:
                if not 0 <= value <= 5:
                    errors.append("Rating must be a number between 0 and 5")
        identifier = form.get("identifier")
        if not _blank(identifier) and not IdentifierValidator.is_valid(str(identifier)):
            errors.append("Identifier must be a valid ISBN-10, ISBN-13 or EAN-13")
        return errors


class BorrowingValidator:

    @staticmethod
    def validate(customer_id: Any, medium_id: Any) -> List[str]:
        errors: List[str] = []
        cid = parse_int(customer_id)
        if cid is None or cid <= 0:
            errors.append("Customer id must be a positive number")
        mid = parse_int(medium_id)
        if mid is None or mid <= 0:
            errors.append("Medium id must be a positive number")
        return errors


def parse_search_id(raw: Any) -> int:
    """Id searches need a whole number; raises ValidationRejected otherwise."""
    if _blank(raw):
        raise ValidationRejected(["Please enter an id"])
    value = parse_int(raw)
    if value is None:
        raise ValidationRejected([f"'{raw}' is not a valid id"])
    return value
