from __future__ import annotations

from decimal import Decimal

from domain.base_types import BALANCE_DECIMAL_PLACES

# Stored as integer micro-units.
MONEY_SCALE = BALANCE_DECIMAL_PLACES


def decimal_to_int(d: Decimal, precision: int = MONEY_SCALE) -> int:
    scaled = d.scaleb(precision)
    integral = scaled.to_integral_value()
    if scaled != integral:
        raise ValueError(f"{d} cannot be stored exactly with {precision} decimal places")
    return int(integral)


def int_to_decimal(value: int, precision: int = MONEY_SCALE) -> Decimal:
    """Read micro-units back without padding zeros, 12000000000 -> Decimal("12000")."""
    result = Decimal(value).scaleb(-precision).normalize()
    if result == result.to_integral_value():
        # normalize() turns 12000 into 1.2E+4
        return result.quantize(Decimal(1))
    return result
