from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Optional

from ..core.constants import HOURS_QUANTUM
from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_length(value: Optional[str], field_name: str, *, min_len: int, max_len: Optional[int] = None) -> str:
    value = require_non_empty(value, field_name)
    if len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    if max_len is not None and len(value) > max_len:
        raise ValidationError(f"{field_name} must be at most {max_len} characters")
    return value


def require_range(value: int, field_name: str, *, low: int, high: int) -> int:
    if value is None or not (low <= int(value) <= high):
        raise ValidationError(f"{field_name} must be between {low} and {high}")
    return int(value)


def parse_hours(value: object, field_name: str = "Hours") -> Decimal:
    try:
        hours = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not hours.is_finite() or hours < 0:
        raise ValidationError(f"{field_name} must be a non-negative number")
    return require_hours_precision(hours, field_name)


def require_hours_precision(hours: Decimal, field_name: str = "Hours") -> Decimal:
    """Reject hours with more than two decimal places instead of letting storage round them."""
    try:
        quantized = hours.quantize(HOURS_QUANTUM)
    except InvalidOperation:
        raise ValidationError(f"{field_name} is out of range")
    if quantized != hours:
        raise ValidationError(f"{field_name} must have at most 2 decimal places")
    return quantized
