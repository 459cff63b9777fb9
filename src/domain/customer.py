from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, model_validator

from .base_types import BALANCE_DECIMAL_PLACES, CustomerId, decimal_places


class Customer(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: CustomerId
    name: str
    balance: Decimal = Decimal("0")

    @model_validator(mode="after")
    def _validate_fields(self) -> Customer:
        if not self.id:
            raise ValueError("Customer.id must be non-empty")
        if not self.balance.is_finite():
            raise ValueError("Customer.balance must be a finite decimal")
        if decimal_places(self.balance) > BALANCE_DECIMAL_PLACES:
            raise ValueError(f"Customer.balance allows at most {BALANCE_DECIMAL_PLACES} decimal places")
        return self
