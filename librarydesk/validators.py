from datetime import date, datetime, timezone
from typing import Optional, Union

from librarydesk.errors import InvalidArgument

DateLike = Union[str, date, datetime]

# SQLite INTEGER is a signed 64-bit value
SQLITE_MAX_INT = 2 ** 63 - 1
SQLITE_MIN_INT = -(2 ** 63)


class TextValidator:
    """Basic checks for the free-text fields of books and students."""

    @staticmethod
    def is_blank(text: Optional[str]) -> bool:
        return text is None or not str(text).strip()

    @staticmethod
    def validate_title(title: Optional[str]) -> bool:
        return not TextValidator.is_blank(title)

    @staticmethod
    def validate_author(author: Optional[str]) -> bool:
        # must not be digits only
        if TextValidator.is_blank(author):
            return False
        return not author.strip().isdigit()

    @staticmethod
    def validate_name(name: Optional[str]) -> bool:
        if TextValidator.is_blank(name):
            return False
        return any(c.isalpha() for c in name)

    @staticmethod
    def validate_phone(phone: Optional[str]) -> bool:
        """Phones are optional; when given they may hold digits, spaces, '+', '-' and parentheses."""
        if TextValidator.is_blank(phone):
            return True
        allowed = set("0123456789+-() ")
        return all(c in allowed for c in phone.strip()) and any(c.isdigit() for c in phone)


def validate_quantity(quantity) -> int:
    """Return quantity as an int, rejecting negatives and non-integers."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidArgument("Quantity must be a whole number")
    if quantity < 0:
        raise InvalidArgument("Quantity cannot be negative")
    if quantity > SQLITE_MAX_INT:
        raise InvalidArgument("Quantity is too large")
    return quantity


def is_storable_id(value) -> bool:
    """True if ``value`` can be bound as an INTEGER parameter.

    Larger ids cannot name any row, so callers treat them as not found.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        return True
    return SQLITE_MIN_INT <= value <= SQLITE_MAX_INT


def parse_date(value: DateLike) -> datetime:
    """Parse an ISO-8601 date or datetime into a naive UTC datetime.

    Date-only values map to midnight.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError as e:
            raise InvalidArgument(f"Invalid date: {value!r}") from e
    else:
        raise InvalidArgument(f"Invalid date: {value!r}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def format_date(value: datetime) -> str:
    """Render a parsed date for storage: plain dates stay ``YYYY-MM-DD``."""
    if value.time() == datetime.min.time():
        return value.date().isoformat()
    return value.isoformat()
