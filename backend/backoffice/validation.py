# Overview: Request payload validation driven by model column metadata and per-model write policies.

"""
Payload validation.

Services declare which columns a client may write (``ModelValidationPolicy``)
and hand the raw JSON to ``validate_payload``. Each value is coerced according
to its column type; anything outside the policy, of the wrong type, blank where
the column forbids it, or longer than the column allows is a 400.

Business rules that span fields live in the ``enforce_rules_*`` helpers.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text

from backoffice.time_utils import parse_iso_datetime
from .errors import BadRequestError

# Largest value a Numeric(10, 2) column holds
MAX_MONEY = Decimal("99999999.99")

EXPENSE_COST_TYPES = ("Fixed", "Variable")
EXPENSE_FREQUENCIES = ("One-time", "Monthly", "Yearly")
EXPENSE_STATUSES = ("Requested", "Approved", "Paid", "Denied")


class ValidationError(BadRequestError):
    """Client sent something we will not store."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    What a client may send for one model.

    writable_fields: columns accepted from the client; everything else is refused
    required_on_create: columns that must be present and non-empty on create
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def coerce_decimal(key: str, value: Any) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (Decimal, int, float, str)):
        raise ValidationError(f"{key} must be a number")
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{key} must be a number")
    if not number.is_finite():
        raise ValidationError(f"{key} must be a finite number")
    return number


def _to_int(key: str, value: Any) -> int:
    # JSON floats and strings like "1.0" or "1e3" are refused rather than truncated
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} must be an integer")
    text = value.strip()
    if "e" in text.lower():
        raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
    if "." in text:
        raise ValidationError(f"{key} must be an integer (no decimals)")
    try:
        return int(text)
    except ValueError:
        raise ValidationError(f"{key} must be an integer")


def _to_bool(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be true or false")
    return value


def _to_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    parsed = None
    if isinstance(value, str):
        try:
            parsed = parse_iso_datetime(value)
        except ValueError:
            parsed = None
    if parsed is None:
        raise ValidationError(f"{key} must be an ISO-8601 datetime")
    return parsed


def _to_date(key: str, value: Any) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    raise ValidationError(f"{key} must be an ISO-8601 date")


# Order matters: DateTime before Date, String before anything text-like.
_COERCERS = (
    (Integer, _to_int),
    (Numeric, coerce_decimal),
    (Boolean, _to_bool),
    (DateTime, _to_datetime),
    (Date, _to_date),
    ((String, Text), lambda key, value: str(value).strip()),
)


def _coerce(column, value: Any):
    for column_type, coercer in _COERCERS:
        if isinstance(column.type, column_type):
            return coercer(column.key, value)
    return value


def validate_payload(*, model, payload: dict, policy: ModelValidationPolicy, partial: bool) -> dict:
    """
    Return the subset of ``payload`` the policy allows, coerced to column types.

    With ``partial=False`` (create) every ``required_on_create`` field must be
    present and non-empty; with ``partial=True`` (update) only the keys sent
    are checked.
    """
    payload = {} if payload is None else payload
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in (policy.required_on_create or ()) if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    for key in payload:
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {key}")
        if key not in columns:
            raise ValidationError(f"Unknown field: {key}")

    cleaned = {}
    for key, raw in payload.items():
        column = columns[key]
        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null")
            cleaned[key] = None
            continue

        value = _coerce(column, raw)
        if isinstance(value, str):
            if value == "" and not column.nullable:
                raise ValidationError(f"{key} cannot be blank")
            max_length = getattr(column.type, "length", None)
            if max_length and len(value) > max_length:
                raise ValidationError(f"{key} exceeds max length {max_length}")
        cleaned[key] = value

    return cleaned


def require_non_negative(patch: dict, *fields: str) -> None:
    for field in fields:
        value = patch.get(field)
        if value is None:
            continue
        if value < 0:
            raise ValidationError(f"{field} must be >= 0")
        if isinstance(value, Decimal) and value > MAX_MONEY:
            raise ValidationError(f"{field} cannot exceed {MAX_MONEY}")


def require_positive(key: str, value: Any) -> Decimal:
    dec = coerce_decimal(key, value)
    if dec <= 0:
        raise ValidationError(f"{key} must be greater than 0")
    if dec > MAX_MONEY:
        raise ValidationError(f"{key} cannot exceed {MAX_MONEY}")
    return dec


def require_positive_int(key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValidationError(f"{key} must be a positive integer")
    try:
        number = int(value)
    except ValueError:
        raise ValidationError(f"{key} must be a positive integer")
    if number <= 0:
        raise ValidationError(f"{key} must be a positive integer")
    return number


def require_choice(patch: dict, field: str, choices: tuple[str, ...]) -> None:
    if field in patch and patch[field] is not None and patch[field] not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")


def require_list(payload: dict, key: str, *, allow_empty: bool = False) -> list:
    items = payload.get(key)
    if not isinstance(items, list):
        raise ValidationError(f"{key} must be a list")
    if not items and not allow_empty:
        raise ValidationError(f"{key} must contain at least one entry")
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError(f"each entry in {key} must be an object")
    return items


def enforce_rules_product(patch: dict) -> None:
    require_non_negative(patch, "unit_price", "quantity_left")


def enforce_rules_ingredient(patch: dict) -> None:
    require_non_negative(patch, "current_stock", "reorder_level", "cost_price")


def enforce_rules_expense(patch: dict, *, current_status: str | None = None) -> None:
    require_choice(patch, "cost_type", EXPENSE_COST_TYPES)
    require_choice(patch, "frequency", EXPENSE_FREQUENCIES)
    require_choice(patch, "status", EXPENSE_STATUSES)
    require_non_negative(patch, "amount")

    status = patch.get("status", current_status)
    if patch.get("is_active") and status != "Paid":
        raise ValidationError("An expense can only be active once it is Paid")
