from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from sqlalchemy.orm import Session, sessionmaker

from config import PROJECT_ROOT, config
from db.db import init_db
from db.repositories import (
    CustomerRepository,
    SqlSettlementUnitOfWork,
    TransactionRepository,
    WasteCategoryRepository,
)
from domain.cart import parse_weight
from domain.catalog import CatalogReader
from domain.errors import WasteBankError
from domain.identification import IdentificationResolver, ManualEntrySource
from domain.settlement import SettlementEngine
from services.deposit_desk import DepositDesk
from utils.formatting import format_rupiah, format_weight
from utils.receipt import render_balance, render_receipt, sum_amounts
from utils.seed_data import load_seed_categories, load_seed_customers

logger = logging.getLogger(__name__)

DEFAULT_SEED_DIR = PROJECT_ROOT / "data" / "seed"


def build_engine(session_factory: sessionmaker[Session]) -> SettlementEngine:
    return SettlementEngine(unit_of_work_factory=lambda: SqlSettlementUnitOfWork(session_factory))


def build_desk(
    session: Session, session_factory: sessionmaker[Session], *, checkout_key: str | None = None
) -> DepositDesk:
    return DepositDesk(
        catalog=CatalogReader(WasteCategoryRepository(session)),
        resolver=IdentificationResolver(CustomerRepository(session)),
        engine=build_engine(session_factory),
        checkout_key=checkout_key,
    )


def parse_item(raw: str) -> tuple[str, str]:
    category_id, separator, weight = raw.partition("=")
    if not separator or not category_id.strip():
        raise argparse.ArgumentTypeError(f"Expected CATEGORY=WEIGHT, got {raw!r}")
    return category_id.strip(), weight.strip()


def seed(session: Session, categories_csv: Path, customers_csv: Path) -> None:
    categories = load_seed_categories(categories_csv)
    customers = load_seed_customers(customers_csv)
    WasteCategoryRepository(session).create_many(categories)
    CustomerRepository(session).create_many(customers)
    print(f"Seeded {len(categories)} categories from {categories_csv}")
    print(f"Seeded {len(customers)} customers from {customers_csv}")


def print_categories(session: Session, symbol: str) -> None:
    categories = CatalogReader(WasteCategoryRepository(session)).list_categories()
    print("Waste categories:")
    if not categories:
        print("  (empty)")
        return
    id_width = max(len(category.id) for category in categories)
    name_width = max(len(category.name) for category in categories)
    for category in categories:
        price = format_rupiah(category.price_per_unit_weight, symbol)
        print(f"  {category.id:<{id_width}} {category.name:<{name_width}} {price}/kg")


def print_customer(session: Session, raw_id: str, symbol: str) -> None:
    customer = IdentificationResolver(CustomerRepository(session)).resolve(raw_id)
    render_balance(customer, symbol=symbol)


def deposit(
    session: Session,
    session_factory: sessionmaker[Session],
    raw_id: str,
    items: list[tuple[str, str]],
    *,
    key: str | None,
    symbol: str,
) -> None:
    if key is not None:
        parsed = [(category_id, parse_weight(weight)) for category_id, weight in items]
        settled = build_engine(session_factory).find_settled(key, raw_id, parsed)
        if settled is not None:
            render_receipt(settled, customer=CustomerRepository(session).get(settled.customer_id), symbol=symbol)
            return

    desk = build_desk(session, session_factory, checkout_key=key)
    customer = desk.identify_from(ManualEntrySource(raw_id))
    for category_id, weight in items:
        desk.add_item(category_id, weight)
    transaction = desk.confirm()
    refreshed = CustomerRepository(session).get(customer.id)
    render_receipt(transaction, customer=refreshed, symbol=symbol)


def print_history(session: Session, raw_id: str, symbol: str) -> None:
    customer = IdentificationResolver(CustomerRepository(session)).resolve(raw_id)
    transactions = TransactionRepository(session).list_for_customer(customer.id)
    render_balance(customer, symbol=symbol)
    print(f"  Transactions: {len(transactions)}")
    for transaction in transactions:
        print(
            f"  {transaction.created_at.isoformat(timespec='seconds')} {transaction.kind.value:<10} "
            f"{format_weight(transaction.total_weight):>10} {format_rupiah(transaction.total_amount, symbol):>14}"
        )
    print(f"  Total deposited: {format_rupiah(sum_amounts(transactions), symbol)}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Waste bank deposit counter.")
    parser.add_argument("--db", type=Path, default=None, help="SQLite database file")
    subcommands = parser.add_subparsers(dest="command", required=True)

    seed_parser = subcommands.add_parser("seed", help="Load categories and customers from CSV")
    seed_parser.add_argument("--categories", type=Path, default=DEFAULT_SEED_DIR / "categories.csv")
    seed_parser.add_argument("--customers", type=Path, default=DEFAULT_SEED_DIR / "customers.csv")
    seed_parser.add_argument("--reset", action="store_true", help="Delete the database first")

    subcommands.add_parser("categories", help="List waste categories")

    customer_parser = subcommands.add_parser("customer", help="Show a customer's balance")
    customer_parser.add_argument("customer_id")

    deposit_parser = subcommands.add_parser("deposit", help="Record a deposit and credit the customer")
    deposit_parser.add_argument("customer_id")
    deposit_parser.add_argument("items", nargs="+", type=parse_item, metavar="CATEGORY=WEIGHT")
    deposit_parser.add_argument("--key", default=None, help="Idempotency key; reuse it when retrying")

    history_parser = subcommands.add_parser("history", help="List a customer's transactions")
    history_parser.add_argument("customer_id")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    settings = config()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    args = build_parser().parse_args(argv)

    session_factory = init_db(
        db_file=args.db or settings.db_file,
        reset=getattr(args, "reset", False),
        timeout=settings.sqlite_timeout_seconds,
    )
    symbol = settings.currency_symbol
    with session_factory() as session:
        try:
            if args.command == "seed":
                try:
                    seed(session, args.categories, args.customers)
                except ValueError as exc:
                    logger.error("Invalid seed data: %s", exc)
                    return 1
            elif args.command == "categories":
                print_categories(session, symbol)
            elif args.command == "customer":
                print_customer(session, args.customer_id, symbol)
            elif args.command == "deposit":
                deposit(session, session_factory, args.customer_id, args.items, key=args.key, symbol=symbol)
            elif args.command == "history":
                print_history(session, args.customer_id, symbol)
        except WasteBankError as exc:
            logger.error("%s: %s", exc.code, exc.message)
            if exc.retryable:
                print("The operation can be retried.")
            return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
