"""Error kinds raised by the settlement core.

Every error carries a stable ``code``, a ``category`` and a ``retryable`` flag so
that callers (desk, CLI, HTTP layer) can decide between re-prompting the
operator, retrying later, or starting over with a fresh cart.

- INPUT errors never touch persistent state; correct the input and retry.
- LOOKUP errors surface a missing or unreachable record; nothing was created.
- COMMIT errors are the only ones with durability consequences. Only
  ``PersistenceUnavailable`` may be retried, and only with the same
  idempotency key.
"""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import ClassVar


class ErrorCategory(StrEnum):
    INPUT = "input"
    LOOKUP = "lookup"
    COMMIT = "commit"


class WasteBankError(Exception):
    code: ClassVar[str] = "WASTE_BANK_ERROR"
    category: ClassVar[ErrorCategory]
    retryable: ClassVar[bool] = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InputError(WasteBankError):
    category = ErrorCategory.INPUT


class LookupFailure(WasteBankError):
    category = ErrorCategory.LOOKUP


class CommitError(WasteBankError):
    category = ErrorCategory.COMMIT


class InvalidIdentifier(InputError):
    code = "INVALID_IDENTIFIER"

    def __init__(self, *, raw_input: str) -> None:
        self.raw_input = raw_input
        super().__init__("Customer identifier must be non-empty")


class InvalidWeight(InputError):
    code = "INVALID_WEIGHT"

    def __init__(self, *, raw_weight: object, reason: str) -> None:
        self.raw_weight = raw_weight
        self.reason = reason
        super().__init__(f"Invalid weight {raw_weight!r}: {reason}")


class EmptyCart(InputError):
    code = "EMPTY_CART"

    def __init__(self) -> None:
        super().__init__("Cart has no line items")


class NoCustomerBound(InputError):
    code = "NO_CUSTOMER_BOUND"

    def __init__(self) -> None:
        super().__init__("No customer is bound to the cart")


class LineItemNotFound(InputError):
    code = "LINE_ITEM_NOT_FOUND"

    def __init__(self, *, line_item_id: object) -> None:
        self.line_item_id = line_item_id
        super().__init__(f"Line item {line_item_id} is not in the cart")


class CustomerAlreadyBound(InputError):
    code = "CUSTOMER_ALREADY_BOUND"

    def __init__(self, *, bound_customer_id: str, requested_customer_id: str) -> None:
        self.bound_customer_id = bound_customer_id
        self.requested_customer_id = requested_customer_id
        super().__init__(
            f"Cart already holds items for customer={bound_customer_id}; "
            f"cannot rebind to customer={requested_customer_id}"
        )


class CartClosed(InputError):
    code = "CART_CLOSED"

    def __init__(self, *, state: str) -> None:
        self.state = state
        super().__init__(f"Cart is {state} and can no longer be changed")


class InvalidSnapshot(InputError):
    code = "INVALID_SNAPSHOT"


class InvalidIdempotencyKey(InputError):
    code = "INVALID_IDEMPOTENCY_KEY"

    def __init__(self) -> None:
        super().__init__("Idempotency key must be non-empty")


class CommitInProgress(InputError):
    code = "COMMIT_IN_PROGRESS"

    def __init__(self) -> None:
        super().__init__("A commit for this cart is already in flight")


class CustomerNotFound(LookupFailure):
    code = "CUSTOMER_NOT_FOUND"

    def __init__(self, *, customer_id: str) -> None:
        self.customer_id = customer_id
        super().__init__(f"Customer {customer_id} is not registered")


class CategoryNotFound(LookupFailure):
    code = "CATEGORY_NOT_FOUND"

    def __init__(self, *, category_id: str) -> None:
        self.category_id = category_id
        super().__init__(f"Waste category {category_id} does not exist")


class TransactionNotFound(LookupFailure):
    code = "TRANSACTION_NOT_FOUND"

    def __init__(self, *, transaction_id: str) -> None:
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} does not exist")


class CatalogUnavailable(LookupFailure):
    code = "CATALOG_UNAVAILABLE"
    retryable = True


class PersistenceUnavailable(CommitError):
    code = "PERSISTENCE_UNAVAILABLE"
    retryable = True


class CommitConflict(CommitError):
    code = "COMMIT_CONFLICT"

    def __init__(self, *, idempotency_key: str) -> None:
        self.idempotency_key = idempotency_key
        super().__init__(f"Idempotency key {idempotency_key} was already used for a different cart")


class CustomerVanished(CommitError):
    code = "CUSTOMER_VANISHED"

    def __init__(self, *, customer_id: str, amount: Decimal) -> None:
        self.customer_id = customer_id
        self.amount = amount
        super().__init__(f"Customer {customer_id} no longer exists; credit of {amount} was not applied")

