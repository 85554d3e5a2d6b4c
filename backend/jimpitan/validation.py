from __future__ import annotations

from typing import Any

from .errors import ValidationError


# Maximum single deposit: Rp 100,000,000
# Rejects typos and nonsensical amounts long before the column can overflow
MAX_NOMINAL = 100_000_000

# Largest running total a customer may carry. 32-bit signed INTEGER is the
# narrowest Integer column among supported databases.
MAX_BALANCE = 2_147_483_647


def require_object(payload: Any) -> dict:
    """
    Request body as a dict. A missing or unparseable body is treated as {}.

    Raises ValidationError for any other JSON value (list, string, number).
    """
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def clean_text(value: Any, field: str, *, required: bool = True) -> str | None:
    """
    Stripped string value of field.

    Blank optional values become None. Non-strings are rejected.
    """
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")

    stripped = value.strip()
    if required and not stripped:
        raise ValidationError(f"{field} is required")
    return stripped or None


def parse_nominal(value: Any) -> int:
    """
    Coerce a deposit amount to whole rupiah.

    Accepts ints, integral floats and digit strings. Raises ValidationError
    for anything else, for amounts <= 0 and for amounts above MAX_NOMINAL.
    """
    if isinstance(value, bool):
        raise ValidationError("nominal must be a whole number")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError("nominal must be a whole number")
        value = int(value)
    elif isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise ValidationError("nominal must be a whole number")
    elif not isinstance(value, int):
        raise ValidationError("nominal must be a whole number")

    if value <= 0:
        raise ValidationError("nominal must be greater than 0")
    if value > MAX_NOMINAL:
        raise ValidationError(f"nominal must not exceed {MAX_NOMINAL}")
    return value
