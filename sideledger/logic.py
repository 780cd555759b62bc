import math
from datetime import datetime, timezone

from .models import APPROVED, CATEGORIES, REJECTED, SOURCE_TYPES, TRANSACTION_TYPES


def validate_amount(value) -> float | int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("amount must be a number")
    try:
        finite = math.isfinite(value)
    except OverflowError:
        # ints beyond float range
        finite = False
    if not finite:
        raise ValueError("amount must be finite")
    if value <= 0:
        raise ValueError("amount must be positive")
    return value


def validate_type(s) -> str:
    if s not in TRANSACTION_TYPES:
        raise ValueError("type must be EXPENSE or INCOME")
    return s


def validate_category(s) -> str:
    if s not in CATEGORIES:
        raise ValueError("category must be one of " + ", ".join(CATEGORIES))
    return s


def validate_status(s) -> str:
    if s not in {APPROVED, REJECTED}:
        raise ValueError("status must be APPROVED or REJECTED")
    return s


def validate_source_type(s) -> str:
    if s not in SOURCE_TYPES:
        raise ValueError("type must be PERSONAL or SIDE_HUSTLE")
    return s


def validate_text(value, name: str, *, required: bool = False) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    if required and not value.strip():
        raise ValueError(f"{name} required")
    return value


def parse_txn_datetime(s: str) -> datetime:
    """Parse an ISO date or datetime into a naive UTC datetime.

    Date-only strings land on midnight. A trailing ``Z`` is accepted the way
    browsers emit it from ``Date.toISOString()``.
    """
    text = s.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError("date must be an ISO date") from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def validate_date(value) -> str:
    validate_text(value, "date", required=True)
    parse_txn_datetime(value)
    return value
