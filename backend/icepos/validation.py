from __future__ import annotations

from typing import Any


class ValidationError(ValueError):
    """400-level input problem."""


class MissingReferenceError(ValidationError):
    """A required related record was not supplied (e.g. credit sale without customer)."""


class NotFoundError(LookupError):
    """404-level: the referenced row does not exist."""


class BusinessRuleError(ValueError):
    """409-level business rule rejection (e.g. insufficient cash)."""


def require_text(payload: dict, key: str, label: str | None = None) -> str:
    value = payload.get(key)
    if value is None or not str(value).strip():
        raise ValidationError(f"{label or key} is required")
    return str(value).strip()


def optional_text(payload: dict, key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def coerce_cents(value: Any, key: str, *, allow_none: bool = False) -> int | None:
    """
    Money fields are integer satang. Reject floats, bools, and negative values.
    """
    if value is None:
        if allow_none:
            return None
        raise ValidationError(f"{key} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.lstrip("-").isdigit():
            raise ValidationError(f"{key} must be an integer")
        value = int(stripped)
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    if not isinstance(value, int):
        raise ValidationError(f"{key} must be an integer")
    if value < 0:
        raise ValidationError(f"{key} cannot be negative")
    return value


def coerce_quantity(value: Any, key: str, *, allow_zero: bool = True) -> float:
    """
    Stock quantities may be fractional (ice is sold by weight).
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    try:
        qty = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a number")
    if qty != qty or qty in (float("inf"), float("-inf")):
        raise ValidationError(f"{key} must be a finite number")
    if qty < 0:
        raise ValidationError(f"{key} cannot be negative")
    if not allow_zero and qty == 0:
        raise ValidationError(f"{key} must be greater than zero")
    return qty
