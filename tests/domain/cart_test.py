from decimal import Decimal
from uuid import uuid4

import pytest

from domain.base_types import TransactionKind
from domain.cart import Cart, CartState, parse_weight
from domain.catalog import WasteCategory
from domain.errors import (
    CartClosed,
    CustomerAlreadyBound,
    EmptyCart,
    InvalidWeight,
    LineItemNotFound,
    NoCustomerBound,
)
from tests.constants import BUDI_CUSTOMER, PAPER, PAPER_CATEGORY, PLASTIC_CATEGORY, SITI, SITI_CUSTOMER


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("3", Decimal("3")),
        (" 1.5 ", Decimal("1.5")),
        ("0.001", Decimal("0.001")),
        (Decimal("2.250"), Decimal("2.25")),
        (2, Decimal("2")),
        (0.5, Decimal("0.5")),
    ],
)
def test_parse_weight_accepts_positive_values(raw: str | Decimal | int | float, expected: Decimal) -> None:
    assert parse_weight(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", "abc", "0", "-1", "0.0001", "NaN", "Infinity", True])
def test_parse_weight_rejects_invalid_values(raw: object) -> None:
    with pytest.raises(InvalidWeight) as exc_info:
        parse_weight(raw)  # type: ignore[arg-type]

    assert exc_info.value.raw_weight == raw
    assert exc_info.value.code == "INVALID_WEIGHT"


def test_new_cart_is_empty_with_zero_totals() -> None:
    cart = Cart()

    assert cart.state == CartState.EMPTY
    assert cart.customer is None
    assert cart.line_items == ()
    assert cart.totals().total_weight == Decimal(0)
    assert cart.totals().total_amount == Decimal(0)
    assert cart.checkout_key


def test_state_follows_customer_and_items() -> None:
    cart = Cart()

    cart.bind_customer(SITI_CUSTOMER)
    assert cart.state == CartState.CUSTOMER_BOUND

    item = cart.add_line_item(PAPER_CATEGORY, "3.0")
    assert cart.state == CartState.ACCUMULATING

    cart.remove_line_item(item.id)
    assert cart.state == CartState.CUSTOMER_BOUND


def test_line_item_freezes_price_and_name() -> None:
    cart = Cart()

    item = cart.add_line_item(PAPER_CATEGORY, "3.0")

    assert item.category_id == PAPER
    assert item.category_name == "Kertas"
    assert item.unit_price == Decimal("2000")
    assert item.subtotal == Decimal("6000")


def test_totals_match_worked_example() -> None:
    cart = Cart()
    cart.bind_customer(SITI_CUSTOMER)
    cart.add_line_item(PAPER_CATEGORY, "3.0")
    cart.add_line_item(PLASTIC_CATEGORY, "1.5")

    totals = cart.totals()

    assert totals.total_weight == Decimal("4.5")
    assert totals.total_amount == Decimal("8250")


def test_same_category_twice_keeps_two_lines() -> None:
    cart = Cart()
    cart.add_line_item(PAPER_CATEGORY, "1")
    cart.add_line_item(PAPER_CATEGORY, "2")

    assert len(cart.line_items) == 2
    assert cart.totals().total_amount == Decimal("6000")


def test_items_can_be_added_before_a_customer_is_bound() -> None:
    cart = Cart()
    cart.add_line_item(PLASTIC_CATEGORY, "2")

    cart.bind_customer(SITI_CUSTOMER)

    assert cart.customer == SITI_CUSTOMER
    assert cart.state == CartState.ACCUMULATING


def test_rebinding_same_customer_is_allowed() -> None:
    cart = Cart()
    cart.bind_customer(SITI_CUSTOMER)
    cart.add_line_item(PAPER_CATEGORY, "1")

    cart.bind_customer(SITI_CUSTOMER)

    assert cart.customer == SITI_CUSTOMER


def test_rebinding_other_customer_with_items_is_rejected() -> None:
    cart = Cart()
    cart.bind_customer(SITI_CUSTOMER)
    cart.add_line_item(PAPER_CATEGORY, "1")

    with pytest.raises(CustomerAlreadyBound) as exc_info:
        cart.bind_customer(BUDI_CUSTOMER)

    assert exc_info.value.bound_customer_id == SITI
    assert cart.customer == SITI_CUSTOMER


def test_rebinding_other_customer_without_items_replaces_customer() -> None:
    cart = Cart()
    cart.bind_customer(SITI_CUSTOMER)

    cart.bind_customer(BUDI_CUSTOMER)

    assert cart.customer == BUDI_CUSTOMER


def test_remove_unknown_line_item() -> None:
    cart = Cart()
    cart.add_line_item(PAPER_CATEGORY, "1")

    with pytest.raises(LineItemNotFound):
        cart.remove_line_item(uuid4())

    assert len(cart.line_items) == 1


def test_remove_line_item_accepts_string_id() -> None:
    cart = Cart()
    item = cart.add_line_item(PAPER_CATEGORY, "1")

    removed = cart.remove_line_item(str(item.id))

    assert removed == item
    assert cart.line_items == ()


def test_invalid_weight_leaves_cart_unchanged() -> None:
    cart = Cart()
    cart.add_line_item(PAPER_CATEGORY, "1")

    with pytest.raises(InvalidWeight):
        cart.add_line_item(PLASTIC_CATEGORY, "-2")

    assert len(cart.line_items) == 1
    assert cart.totals().total_amount == Decimal("2000")


def test_preview_subtotal_does_not_add_item() -> None:
    cart = Cart()

    preview = cart.preview_subtotal(PLASTIC_CATEGORY, "1.5")

    assert preview == Decimal("2250")
    assert cart.line_items == ()


def test_snapshot_requires_customer() -> None:
    cart = Cart()
    cart.add_line_item(PAPER_CATEGORY, "1")

    with pytest.raises(NoCustomerBound):
        cart.snapshot()


def test_snapshot_requires_items() -> None:
    cart = Cart()
    cart.bind_customer(SITI_CUSTOMER)

    with pytest.raises(EmptyCart):
        cart.snapshot()


def test_snapshot_is_detached_from_later_catalog_changes() -> None:
    category = WasteCategory(id=PAPER, name="Kertas", price_per_unit_weight=Decimal("2000"))
    cart = Cart()
    cart.bind_customer(SITI_CUSTOMER)
    cart.add_line_item(category, "3.0")

    snapshot = cart.snapshot()
    repriced = category.model_copy(update={"price_per_unit_weight": Decimal("9999")})
    cart.add_line_item(repriced, "1")

    assert cart.state == CartState.ACCUMULATING
    assert snapshot.kind == TransactionKind.DEPOSIT
    assert snapshot.customer_id == SITI
    assert len(snapshot.line_items) == 1
    assert snapshot.line_items[0].unit_price == Decimal("2000")
    assert snapshot.total_amount == Decimal("6000")


def test_snapshot_marks_cart_ready() -> None:
    cart = Cart()
    cart.bind_customer(SITI_CUSTOMER)
    cart.add_line_item(PAPER_CATEGORY, "1")

    cart.snapshot()

    assert cart.state == CartState.READY


def test_committed_cart_rejects_changes() -> None:
    cart = Cart()
    cart.bind_customer(SITI_CUSTOMER)
    cart.add_line_item(PAPER_CATEGORY, "1")
    cart.snapshot()
    cart.mark_committed()

    assert cart.is_committed
    with pytest.raises(CartClosed):
        cart.add_line_item(PAPER_CATEGORY, "1")
    with pytest.raises(CartClosed):
        cart.snapshot()
    with pytest.raises(CartClosed):
        cart.discard()


def test_discarded_cart_rejects_changes() -> None:
    cart = Cart()
    cart.add_line_item(PAPER_CATEGORY, "1")

    cart.discard()

    assert cart.state == CartState.ABORTED
    with pytest.raises(CartClosed):
        cart.bind_customer(SITI_CUSTOMER)


def test_explicit_checkout_key_is_kept() -> None:
    cart = Cart(checkout_key="counter-1-0042")

    assert cart.checkout_key == "counter-1-0042"
