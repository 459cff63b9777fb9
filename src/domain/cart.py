from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import StrEnum
from uuid import UUID, uuid4

from .base_types import WEIGHT_DECIMAL_PLACES, IdempotencyKey, decimal_places
from .catalog import WasteCategory
from .customer import Customer
from .errors import CartClosed, CustomerAlreadyBound, EmptyCart, InvalidWeight, LineItemNotFound, NoCustomerBound
from .transaction import CartSnapshot, CartTotals, LineItem, compute_totals


class CartState(StrEnum):
    EMPTY = "EMPTY"
    CUSTOMER_BOUND = "CUSTOMER_BOUND"
    ACCUMULATING = "ACCUMULATING"
    READY = "READY"
    COMMITTED = "COMMITTED"
    ABORTED = "ABORTED"


TERMINAL_STATES = frozenset({CartState.COMMITTED, CartState.ABORTED})


def parse_weight(raw: str | Decimal | int | float) -> Decimal:
    """Parse operator input into a positive weight in kilograms."""
    if isinstance(raw, bool):
        raise InvalidWeight(raw_weight=raw, reason="not a number")
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, (int, float)):
        value = Decimal(str(raw))
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            raise InvalidWeight(raw_weight=raw, reason="weight is required")
        try:
            value = Decimal(text)
        except InvalidOperation as exc:
            raise InvalidWeight(raw_weight=raw, reason="not a number") from exc
    else:
        raise InvalidWeight(raw_weight=raw, reason="not a number")

    if not value.is_finite():
        raise InvalidWeight(raw_weight=raw, reason="must be finite")
    if value <= 0:
        raise InvalidWeight(raw_weight=raw, reason="must be greater than zero")
    if decimal_places(value) > WEIGHT_DECIMAL_PLACES:
        raise InvalidWeight(raw_weight=raw, reason=f"at most {WEIGHT_DECIMAL_PLACES} decimal places allowed")
    return value


class Cart:
    """Line items being assembled for one customer before settlement.

    A cart belongs to a single operator session and is never shared or
    persisted. ``checkout_key`` identifies this cart's settlement; reuse it for
    every commit attempt so retries cannot credit the customer twice.
    """

    def __init__(self, *, checkout_key: str | None = None) -> None:
        self.checkout_key = IdempotencyKey(checkout_key or str(uuid4()))
        self._customer: Customer | None = None
        self._line_items: list[LineItem] = []
        self._state = CartState.EMPTY

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def customer(self) -> Customer | None:
        return self._customer

    @property
    def line_items(self) -> tuple[LineItem, ...]:
        return tuple(self._line_items)

    @property
    def is_committed(self) -> bool:
        return self._state == CartState.COMMITTED

    def bind_customer(self, customer: Customer) -> None:
        self._ensure_open()
        bound = self._customer
        if bound is not None and bound.id != customer.id and self._line_items:
            raise CustomerAlreadyBound(bound_customer_id=bound.id, requested_customer_id=customer.id)
        self._customer = customer
        self._refresh_state()

    def add_line_item(self, category: WasteCategory, weight: str | Decimal | int | float) -> LineItem:
        self._ensure_open()
        item = LineItem(
            category_id=category.id,
            category_name=category.name,
            weight=parse_weight(weight),
            unit_price=category.price_per_unit_weight,
        )
        self._line_items.append(item)
        self._refresh_state()
        return item

    def remove_line_item(self, line_item_id: UUID | str) -> LineItem:
        self._ensure_open()
        for index, item in enumerate(self._line_items):
            if str(item.id) == str(line_item_id):
                del self._line_items[index]
                self._refresh_state()
                return item
        raise LineItemNotFound(line_item_id=line_item_id)

    def preview_subtotal(self, category: WasteCategory, weight: str | Decimal | int | float) -> Decimal:
        return parse_weight(weight) * category.price_per_unit_weight

    def totals(self) -> CartTotals:
        return compute_totals(self._line_items)

    def snapshot(self) -> CartSnapshot:
        self._ensure_open()
        if self._customer is None:
            raise NoCustomerBound()
        if not self._line_items:
            raise EmptyCart()

        totals = self.totals()
        snapshot = CartSnapshot(
            customer_id=self._customer.id,
            customer_name=self._customer.name,
            line_items=tuple(self._line_items),
            total_weight=totals.total_weight,
            total_amount=totals.total_amount,
        )
        self._state = CartState.READY
        return snapshot

    def mark_committed(self) -> None:
        self._ensure_open()
        self._state = CartState.COMMITTED

    def discard(self) -> None:
        if self._state == CartState.COMMITTED:
            raise CartClosed(state=self._state.value)
        self._state = CartState.ABORTED

    def _ensure_open(self) -> None:
        if self._state in TERMINAL_STATES:
            raise CartClosed(state=self._state.value)

    def _refresh_state(self) -> None:
        if self._line_items:
            self._state = CartState.ACCUMULATING
        elif self._customer is not None:
            self._state = CartState.CUSTOMER_BOUND
        else:
            self._state = CartState.EMPTY
