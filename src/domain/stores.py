from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from types import TracebackType
from typing import TYPE_CHECKING, Protocol, Self

from .base_types import CategoryId, CustomerId, IdempotencyKey, TransactionId

if TYPE_CHECKING:
    from .catalog import WasteCategory
    from .customer import Customer
    from .transaction import Transaction, TransactionDraft


class StoreUnavailable(Exception):
    """The backing store could not be reached or failed mid-operation."""


class DuplicateIdempotencyKey(Exception):
    def __init__(self, *, idempotency_key: str) -> None:
        self.idempotency_key = idempotency_key
        super().__init__(f"Idempotency key {idempotency_key} already recorded")


@dataclass(frozen=True)
class StoredTransaction:
    transaction: Transaction
    fingerprint: str


class CategoryStore(Protocol):
    def list(self) -> list[WasteCategory]: ...

    def get(self, category_id: CategoryId) -> WasteCategory | None: ...


class CustomerStore(Protocol):
    def get(self, customer_id: CustomerId) -> Customer | None: ...

    def credit_balance(
        self, customer_id: CustomerId, amount: Decimal, idempotency_key: IdempotencyKey
    ) -> Customer | None:
        """Atomically add ``amount`` to the balance; ``None`` when the customer does not exist."""
        ...


class TransactionStore(Protocol):
    def append(self, draft: TransactionDraft, idempotency_key: IdempotencyKey) -> Transaction:
        """Persist a new transaction; raises DuplicateIdempotencyKey if the key was used before."""
        ...

    def get(self, transaction_id: TransactionId) -> Transaction | None: ...

    def get_by_idempotency_key(self, idempotency_key: IdempotencyKey) -> StoredTransaction | None: ...


class SettlementUnitOfWork(Protocol):
    """Customer and transaction stores sharing one database transaction.

    Nothing written through the stores is visible to other readers until
    ``commit`` succeeds; leaving the context without committing rolls back.
    """

    customers: CustomerStore
    transactions: TransactionStore

    def __enter__(self) -> Self: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...

    def commit(self) -> None: ...
