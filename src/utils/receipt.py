from __future__ import annotations

from decimal import Decimal

from domain.customer import Customer
from domain.transaction import Transaction

from .formatting import format_decimal, format_rupiah, format_weight


def receipt_lines(transaction: Transaction, *, customer: Customer | None = None, symbol: str = "Rp") -> list[str]:
    rows: list[tuple[str, str, str]] = []
    for item in transaction.line_items:
        detail = f"{format_decimal(item.weight)} kg x {format_rupiah(item.unit_price, symbol)}"
        rows.append((item.category_name, detail, format_rupiah(item.subtotal, symbol)))

    name_width = max(len("Item"), max((len(name) for name, _, _ in rows), default=0))
    detail_width = max(len("Weight x Price"), max((len(detail) for _, detail, _ in rows), default=0))
    amount_width = max(len("Subtotal"), max((len(amount) for _, _, amount in rows), default=0))

    header = f"{'Item':<{name_width}} {'Weight x Price':<{detail_width}} {'Subtotal':>{amount_width}}"
    lines = [
        f"Transaction {transaction.id}",
        f"Customer:  {transaction.customer_name} ({transaction.customer_id})",
        f"Date:      {transaction.created_at.isoformat(timespec='seconds')}",
        "",
        header,
        "-" * len(header),
    ]
    for name, detail, amount in rows:
        lines.append(f"{name:<{name_width}} {detail:<{detail_width}} {amount:>{amount_width}}")
    lines.append("-" * len(header))
    lines.append(f"Total weight: {format_weight(transaction.total_weight)}")
    lines.append(f"Total:        {format_rupiah(transaction.total_amount, symbol)}")
    if customer is not None:
        lines.append(f"Balance:      {format_rupiah(customer.balance, symbol)}")
    return lines


def render_receipt(transaction: Transaction, *, customer: Customer | None = None, symbol: str = "Rp") -> None:
    for line in receipt_lines(transaction, customer=customer, symbol=symbol):
        print(line)


def render_balance(customer: Customer, *, symbol: str = "Rp") -> None:
    print(f"{customer.name} ({customer.id})")
    print(f"  Balance: {format_rupiah(customer.balance, symbol)}")


def sum_amounts(transactions: list[Transaction]) -> Decimal:
    return sum((transaction.total_amount for transaction in transactions), start=Decimal(0))
