# Overview: Fixed-precision decimal helpers for quantities and costs.

"""
Decimal handling for the stock ledger.

Quantities and costs never touch float arithmetic. Every value crossing a
boundary (JSON body, query string, stored column, computed result) goes
through parse_decimal() and is quantized to a fixed scale:

- quantities: 4 decimal places (matches Numeric(14, 4))
- costs: 6 decimal places (matches Numeric(14, 6))
- rounding: ROUND_HALF_UP
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import ValidationError


QUANTITY_PLACES = Decimal("0.0001")
COST_PLACES = Decimal("0.000001")
ZERO = Decimal("0")


def parse_decimal(value: Any, field: str = "value") -> Decimal:
    """
    Parse client input into a finite Decimal.

    Accepts Decimal, int, float (via its shortest repr) and numeric strings.
    Rejects booleans, blanks, NaN and infinities.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        try:
            result = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def quantize_quantity(value: Decimal) -> Decimal:
    return value.quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def quantize_cost(value: Decimal) -> Decimal:
    return value.quantize(COST_PLACES, rounding=ROUND_HALF_UP)


def parse_quantity(value: Any, field: str = "quantity", *, allow_zero: bool = False) -> Decimal:
    """Parse a quantity that must be > 0 (or >= 0 with allow_zero)."""
    qty = quantize_quantity(parse_decimal(value, field))
    if allow_zero:
        if qty < ZERO:
            raise ValidationError(f"{field} must be >= 0")
    elif qty <= ZERO:
        raise ValidationError(f"{field} must be > 0")
    return qty


def parse_cost(value: Any, field: str = "cost") -> Decimal:
    """Parse a non-negative cost."""
    cost = quantize_cost(parse_decimal(value, field))
    if cost < ZERO:
        raise ValidationError(f"{field} must be >= 0")
    return cost


def decimal_str(value: Decimal | None) -> str | None:
    """Serialize a Decimal for JSON without exponent notation."""
    if value is None:
        return None
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return format(value, "f")
