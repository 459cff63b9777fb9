from __future__ import annotations

import hashlib
import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, Iterator

from .base_types import CustomerId, IdempotencyKey, TransactionKind
from .errors import (
    CommitConflict,
    CustomerVanished,
    EmptyCart,
    InvalidIdempotencyKey,
    InvalidSnapshot,
    NoCustomerBound,
    PersistenceUnavailable,
)
from .stores import DuplicateIdempotencyKey, SettlementUnitOfWork, StoreUnavailable, StoredTransaction
from .transaction import CartSnapshot, Transaction, TransactionDraft, compute_totals

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _canonical_decimal(value: Decimal) -> str:
    return format(value.normalize(), "f")


def snapshot_fingerprint(snapshot: CartSnapshot) -> str:
    """Stable hash of what a settlement credits: who, what kind, and the priced items in order.

    The customer name is left out so that a rename between a commit and its
    retry is not mistaken for a different cart.
    """
    payload = {
        "customer_id": snapshot.customer_id,
        "kind": snapshot.kind.value,
        "line_items": [
            [item.category_id, _canonical_decimal(item.weight), _canonical_decimal(item.unit_price)]
            for item in snapshot.line_items
        ],
    }
    encoded = json.dumps(payload, separators=(",", ":"), sort_keys=True)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def request_fingerprint(customer_id: str, items: Iterable[tuple[str, Decimal]]) -> str:
    """Hash of a deposit request before it is priced: the customer and the (category, weight) pairs in order."""
    payload = {
        "customer_id": customer_id,
        "items": [[category_id, _canonical_decimal(weight)] for category_id, weight in items],
    }
    encoded = json.dumps(payload, separators=(",", ":"), sort_keys=True)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def _settled_request_fingerprint(transaction: Transaction) -> str:
    items = ((item.category_id, item.weight) for item in transaction.line_items)
    return request_fingerprint(transaction.customer_id, items)


class SettlementEngine:
    """Turn cart snapshots into transactions and credit the customer exactly once per key.

    The balance credit and the transaction append run inside one unit of work,
    so readers never see one without the other. A key that was already settled
    returns the stored transaction instead of settling again, provided the
    snapshot matches what was settled under that key.
    """

    def __init__(
        self,
        *,
        unit_of_work_factory: Callable[[], SettlementUnitOfWork],
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._clock = clock

    def commit(self, snapshot: CartSnapshot, idempotency_key: str) -> Transaction:
        key = self._validate_key(idempotency_key)
        customer_id = self._validate_snapshot(snapshot)
        fingerprint = snapshot_fingerprint(snapshot)

        with self._storage_errors(customer_id):
            try:
                return self._settle(snapshot, customer_id, key, fingerprint)
            except DuplicateIdempotencyKey:
                logger.info("Key %s was settled by a concurrent submission; loading its transaction", key)
                return self._replay_committed(key, fingerprint)

    def find_settled(
        self, idempotency_key: str, customer_id: str, items: Iterable[tuple[str, Decimal]]
    ) -> Transaction | None:
        """Return the transaction already settled for this request under the key, if any.

        Lets a caller answer a retried request before pricing it again, so a
        price change or a removed customer cannot turn a duplicate into an error.
        A key settled for a different request raises CommitConflict.
        """
        key = self._validate_key(idempotency_key)
        customer_id = customer_id.strip()
        fingerprint = request_fingerprint(customer_id, items)

        with self._storage_errors(CustomerId(customer_id)):
            with self._unit_of_work_factory() as uow:
                existing = uow.transactions.get_by_idempotency_key(key)
        if existing is None:
            return None
        if _settled_request_fingerprint(existing.transaction) != fingerprint:
            logger.warning("Key %s reused for a different request (transaction %s)", key, existing.transaction.id)
            raise CommitConflict(idempotency_key=key)
        logger.info("Key %s already settled as transaction %s; returning it", key, existing.transaction.id)
        return existing.transaction

    def _settle(
        self, snapshot: CartSnapshot, customer_id: CustomerId, key: IdempotencyKey, fingerprint: str
    ) -> Transaction:
        with self._unit_of_work_factory() as uow:
            existing = uow.transactions.get_by_idempotency_key(key)
            if existing is not None:
                return self._replay(existing, key, fingerprint)

            draft = TransactionDraft(
                customer_id=customer_id,
                customer_name=snapshot.customer_name or "",
                created_at=self._clock(),
                kind=snapshot.kind,
                line_items=snapshot.line_items,
                total_weight=snapshot.total_weight,
                total_amount=snapshot.total_amount,
                fingerprint=fingerprint,
            )
            customer = uow.customers.credit_balance(customer_id, snapshot.total_amount, key)
            if customer is None:
                logger.warning("Customer %s vanished before settlement of key %s", customer_id, key)
                raise CustomerVanished(customer_id=customer_id, amount=snapshot.total_amount)

            transaction = uow.transactions.append(draft, key)
            uow.commit()

        logger.info(
            "Committed transaction %s for customer %s: weight=%s amount=%s balance=%s",
            transaction.id,
            customer_id,
            transaction.total_weight,
            transaction.total_amount,
            customer.balance,
        )
        return transaction

    def _replay_committed(self, key: IdempotencyKey, fingerprint: str) -> Transaction:
        with self._unit_of_work_factory() as uow:
            existing = uow.transactions.get_by_idempotency_key(key)
        if existing is None:
            # The competing writer rolled back; nothing was settled under this key.
            raise PersistenceUnavailable(f"Settlement for key {key} did not complete; retry with the same key")
        return self._replay(existing, key, fingerprint)

    @staticmethod
    def _replay(existing: StoredTransaction, key: IdempotencyKey, fingerprint: str) -> Transaction:
        if existing.fingerprint != fingerprint:
            logger.warning("Key %s reused for a different cart (transaction %s)", key, existing.transaction.id)
            raise CommitConflict(idempotency_key=key)
        logger.info("Key %s already settled as transaction %s; returning it", key, existing.transaction.id)
        return existing.transaction

    @staticmethod
    def _validate_key(idempotency_key: str) -> IdempotencyKey:
        key = idempotency_key.strip()
        if not key:
            raise InvalidIdempotencyKey()
        return IdempotencyKey(key)

    @staticmethod
    def _validate_snapshot(snapshot: CartSnapshot) -> CustomerId:
        if not snapshot.customer_id:
            raise NoCustomerBound()
        if not snapshot.line_items:
            raise EmptyCart()
        if snapshot.kind != TransactionKind.DEPOSIT:
            raise InvalidSnapshot(f"Only deposits can be settled, got {snapshot.kind}")

        totals = compute_totals(snapshot.line_items)
        if totals.total_weight <= 0 or totals.total_amount <= 0:
            raise InvalidSnapshot("Snapshot totals must be positive")
        if totals.total_weight != snapshot.total_weight or totals.total_amount != snapshot.total_amount:
            raise InvalidSnapshot("Snapshot totals do not match its line items")
        return snapshot.customer_id

    @staticmethod
    @contextmanager
    def _storage_errors(customer_id: CustomerId) -> Iterator[None]:
        try:
            yield
        except StoreUnavailable as exc:
            logger.warning("Settlement for customer %s failed, storage unavailable: %s", customer_id, exc)
            raise PersistenceUnavailable("Storage is unavailable; retry with the same idempotency key") from exc
