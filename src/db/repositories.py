from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from types import TracebackType
from typing import Any, Iterator, Self, cast

from sqlalchemy import CursorResult, literal, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from db import models
from domain.base_types import CategoryId, CustomerId, IdempotencyKey, LineItemId, TransactionId, TransactionKind
from domain.catalog import WasteCategory
from domain.customer import Customer
from domain.stores import DuplicateIdempotencyKey, StoredTransaction, StoreUnavailable
from domain.transaction import LineItem, Transaction, TransactionDraft


@contextmanager
def store_errors() -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise StoreUnavailable(str(exc)) from exc


@contextmanager
def duplicate_key_errors(idempotency_key: str) -> Iterator[None]:
    # Only the idempotency_key unique constraint means another writer won the race.
    # Any other integrity failure propagates to store_errors().
    try:
        yield
    except IntegrityError as exc:
        if "idempotency_key" not in str(exc.orig):
            raise
        raise DuplicateIdempotencyKey(idempotency_key=idempotency_key) from exc


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CustomerRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, customer: Customer) -> Customer:
        return self.create_many([customer])[0]

    def create_many(self, customers: list[Customer]) -> list[Customer]:
        orm_customers = [
            models.CustomerOrm(id=customer.id, name=customer.name, balance=customer.balance) for customer in customers
        ]
        with store_errors():
            self._session.add_all(orm_customers)
            self._session.commit()
        return customers

    def get(self, customer_id: CustomerId) -> Customer | None:
        with store_errors():
            orm_customer = self._session.get(models.CustomerOrm, customer_id, populate_existing=True)
        if orm_customer is None:
            return None
        return self._to_domain(orm_customer)

    def list(self) -> list[Customer]:
        with store_errors():
            orm_customers = self._session.scalars(select(models.CustomerOrm).order_by(models.CustomerOrm.id)).all()
        return [self._to_domain(customer) for customer in orm_customers]

    def credit_balance(
        self, customer_id: CustomerId, amount: Decimal, idempotency_key: IdempotencyKey
    ) -> Customer | None:
        """Add ``amount`` in place and record the credit; flushes but does not commit."""
        stmt = (
            update(models.CustomerOrm)
            .where(models.CustomerOrm.id == customer_id)
            .values(balance=models.CustomerOrm.balance + literal(amount, models.ScaledDecimal()))
            .execution_options(synchronize_session=False)
        )
        with store_errors():
            result = cast(CursorResult[Any], self._session.execute(stmt))
            if result.rowcount == 0:
                return None

            with duplicate_key_errors(idempotency_key):
                self._session.add(
                    models.BalanceCreditOrm(
                        customer_id=customer_id,
                        amount=amount,
                        idempotency_key=idempotency_key,
                        created_at=datetime.now(timezone.utc),
                    )
                )
                self._session.flush()

        return self.get(customer_id)

    @staticmethod
    def _to_domain(orm_customer: models.CustomerOrm) -> Customer:
        return Customer(id=CustomerId(orm_customer.id), name=orm_customer.name, balance=orm_customer.balance)


class WasteCategoryRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_many(self, categories: list[WasteCategory]) -> list[WasteCategory]:
        orm_categories = [
            models.WasteCategoryOrm(
                id=category.id,
                name=category.name,
                price_per_unit_weight=category.price_per_unit_weight,
                image_ref=category.image_ref,
            )
            for category in categories
        ]
        with store_errors():
            self._session.add_all(orm_categories)
            self._session.commit()
        return categories

    def get(self, category_id: CategoryId) -> WasteCategory | None:
        with store_errors():
            orm_category = self._session.get(models.WasteCategoryOrm, category_id, populate_existing=True)
        if orm_category is None:
            return None
        return self._to_domain(orm_category)

    def list(self) -> list[WasteCategory]:
        with store_errors():
            orm_categories = self._session.scalars(select(models.WasteCategoryOrm)).all()
        return [self._to_domain(category) for category in orm_categories]

    def update_price(self, category_id: CategoryId, price_per_unit_weight: Decimal) -> WasteCategory | None:
        with store_errors():
            orm_category = self._session.get(models.WasteCategoryOrm, category_id)
            if orm_category is None:
                return None
            orm_category.price_per_unit_weight = price_per_unit_weight
            self._session.commit()
        return self.get(category_id)

    @staticmethod
    def _to_domain(orm_category: models.WasteCategoryOrm) -> WasteCategory:
        return WasteCategory(
            id=CategoryId(orm_category.id),
            name=orm_category.name,
            price_per_unit_weight=orm_category.price_per_unit_weight,
            image_ref=orm_category.image_ref,
        )


class TransactionRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def append(self, draft: TransactionDraft, idempotency_key: IdempotencyKey) -> Transaction:
        """Stage the transaction and its lines; flushes but does not commit."""
        orm_transaction = models.TransactionOrm(
            id=draft.id,
            customer_id=draft.customer_id,
            customer_name=draft.customer_name,
            created_at=draft.created_at,
            kind=draft.kind.value,
            total_weight=draft.total_weight,
            total_amount=draft.total_amount,
            idempotency_key=idempotency_key,
            fingerprint=draft.fingerprint,
        )
        orm_transaction.lines = [
            models.TransactionLineOrm(
                line_item_id=item.id,
                position=position,
                category_id=item.category_id,
                category_name=item.category_name,
                weight=item.weight,
                unit_price=item.unit_price,
            )
            for position, item in enumerate(draft.line_items)
        ]

        with store_errors(), duplicate_key_errors(idempotency_key):
            self._session.add(orm_transaction)
            self._session.flush()
        return Transaction.from_draft(draft, idempotency_key)

    def get(self, transaction_id: TransactionId) -> Transaction | None:
        with store_errors():
            orm_transaction = self._session.get(models.TransactionOrm, transaction_id)
        if orm_transaction is None:
            return None
        return self._to_domain(orm_transaction)

    def get_by_idempotency_key(self, idempotency_key: IdempotencyKey) -> StoredTransaction | None:
        stmt = select(models.TransactionOrm).where(models.TransactionOrm.idempotency_key == idempotency_key)
        with store_errors():
            orm_transaction = self._session.scalars(stmt).unique().one_or_none()
        if orm_transaction is None:
            return None
        return StoredTransaction(transaction=self._to_domain(orm_transaction), fingerprint=orm_transaction.fingerprint)

    def list_for_customer(self, customer_id: CustomerId) -> list[Transaction]:
        stmt = (
            select(models.TransactionOrm)
            .where(models.TransactionOrm.customer_id == customer_id)
            .order_by(models.TransactionOrm.created_at.desc())
        )
        with store_errors():
            orm_transactions = self._session.scalars(stmt).unique().all()
        return [self._to_domain(transaction) for transaction in orm_transactions]

    @staticmethod
    def _to_domain(orm_transaction: models.TransactionOrm) -> Transaction:
        line_items = tuple(
            LineItem(
                id=LineItemId(line.line_item_id),
                category_id=CategoryId(line.category_id),
                category_name=line.category_name,
                weight=line.weight,
                unit_price=line.unit_price,
            )
            for line in orm_transaction.lines
        )
        return Transaction(
            id=TransactionId(orm_transaction.id),
            customer_id=CustomerId(orm_transaction.customer_id),
            customer_name=orm_transaction.customer_name,
            created_at=_as_utc(orm_transaction.created_at),
            kind=TransactionKind(orm_transaction.kind),
            line_items=line_items,
            total_weight=orm_transaction.total_weight,
            total_amount=orm_transaction.total_amount,
            idempotency_key=IdempotencyKey(orm_transaction.idempotency_key),
        )


class SqlSettlementUnitOfWork:
    """One session shared by the customer and transaction repositories."""

    customers: CustomerRepository
    transactions: TransactionRepository

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory
        self._session: Session | None = None

    def __enter__(self) -> Self:
        self._session = self._session_factory()
        self.customers = CustomerRepository(self._session)
        self.transactions = TransactionRepository(self._session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._session is not None:
            # Closing discards anything not committed.
            self._session.close()
            self._session = None

    def commit(self) -> None:
        if self._session is None:
            raise RuntimeError("Unit of work used outside its context")
        with store_errors():
            self._session.commit()
