from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import NewType
from uuid import UUID

CustomerId = NewType("CustomerId", str)
CategoryId = NewType("CategoryId", str)
LineItemId = NewType("LineItemId", UUID)
TransactionId = NewType("TransactionId", UUID)
IdempotencyKey = NewType("IdempotencyKey", str)

# Weights are entered in kilograms with at most gram precision.
WEIGHT_DECIMAL_PLACES = 3
PRICE_DECIMAL_PLACES = 2
# Weights carry at most 3 decimals and prices at most 2, so any subtotal or
# balance fits in 6 without rounding.
BALANCE_DECIMAL_PLACES = 6


class TransactionKind(StrEnum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"


def decimal_places(value: Decimal) -> int:
    exponent = value.normalize().as_tuple().exponent
    if not isinstance(exponent, int) or exponent >= 0:
        return 0
    return -exponent
