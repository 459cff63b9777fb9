from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from .base_types import CategoryId, CustomerId, IdempotencyKey, LineItemId, TransactionId, TransactionKind


class LineItem(BaseModel):
    """One weighed category in a cart or transaction.

    ``unit_price`` and ``category_name`` are snapshots taken when the item was
    added; later catalog edits never reach them. ``subtotal`` is always derived.
    """

    model_config = ConfigDict(frozen=True)

    id: LineItemId = LineItemId(Field(default_factory=uuid4))
    category_id: CategoryId
    category_name: str
    weight: Decimal
    unit_price: Decimal

    @computed_field  # type: ignore[prop-decorator]
    @property
    def subtotal(self) -> Decimal:
        return self.weight * self.unit_price

    @model_validator(mode="after")
    def _validate_fields(self) -> LineItem:
        if self.weight <= 0:
            raise ValueError("LineItem.weight must be > 0")
        if self.unit_price <= 0:
            raise ValueError("LineItem.unit_price must be > 0")
        return self


class CartTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_weight: Decimal
    total_amount: Decimal


def compute_totals(line_items: Iterable[LineItem]) -> CartTotals:
    total_weight = Decimal(0)
    total_amount = Decimal(0)
    for item in line_items:
        total_weight += item.weight
        total_amount += item.subtotal
    return CartTotals(total_weight=total_weight, total_amount=total_amount)


class CartSnapshot(BaseModel):
    """Frozen view of a cart handed to the settlement engine."""

    model_config = ConfigDict(frozen=True)

    customer_id: CustomerId | None
    customer_name: str | None
    kind: TransactionKind = TransactionKind.DEPOSIT
    line_items: tuple[LineItem, ...]
    total_weight: Decimal
    total_amount: Decimal


class TransactionDraft(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: TransactionId = TransactionId(Field(default_factory=uuid4))
    customer_id: CustomerId
    customer_name: str
    created_at: datetime
    kind: TransactionKind
    line_items: tuple[LineItem, ...]
    total_weight: Decimal
    total_amount: Decimal
    fingerprint: str


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: TransactionId
    customer_id: CustomerId
    customer_name: str
    created_at: datetime
    kind: TransactionKind
    line_items: tuple[LineItem, ...]
    total_weight: Decimal
    total_amount: Decimal
    idempotency_key: IdempotencyKey

    @model_validator(mode="after")
    def _validate_totals(self) -> Transaction:
        totals = compute_totals(self.line_items)
        if totals.total_weight != self.total_weight:
            raise ValueError(f"total_weight {self.total_weight} != sum of line weights {totals.total_weight}")
        if totals.total_amount != self.total_amount:
            raise ValueError(f"total_amount {self.total_amount} != sum of line subtotals {totals.total_amount}")
        return self

    @classmethod
    def from_draft(cls, draft: TransactionDraft, idempotency_key: IdempotencyKey) -> Transaction:
        return cls(
            id=draft.id,
            customer_id=draft.customer_id,
            customer_name=draft.customer_name,
            created_at=draft.created_at,
            kind=draft.kind,
            line_items=draft.line_items,
            total_weight=draft.total_weight,
            total_amount=draft.total_amount,
            idempotency_key=idempotency_key,
        )
