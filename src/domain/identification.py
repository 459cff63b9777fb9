from __future__ import annotations

import logging
from typing import Callable, Protocol

from .base_types import CustomerId
from .customer import Customer
from .errors import CustomerNotFound, InvalidIdentifier, PersistenceUnavailable
from .stores import CustomerStore, StoreUnavailable

logger = logging.getLogger(__name__)


class IdentifierSource(Protocol):
    """Produces a raw customer identifier (typed by the operator or decoded from a scan)."""

    def next(self) -> str: ...


class ManualEntrySource:
    def __init__(self, entry: str | Callable[[], str]) -> None:
        self._entry = entry

    def next(self) -> str:
        if callable(self._entry):
            return self._entry()
        return self._entry


class ScannedCodeSource:
    """Wraps an external decoder; scanners commonly append a newline to the payload."""

    def __init__(self, decode: Callable[[], str]) -> None:
        self._decode = decode

    def next(self) -> str:
        return self._decode().strip("\r\n\t ")


class IdentificationResolver:
    def __init__(self, customers: CustomerStore) -> None:
        self._customers = customers

    def resolve(self, raw_input: str) -> Customer:
        customer_id = raw_input.strip()
        if not customer_id:
            raise InvalidIdentifier(raw_input=raw_input)

        try:
            customer = self._customers.get(CustomerId(customer_id))
        except StoreUnavailable as exc:
            raise PersistenceUnavailable("Customer directory is unavailable") from exc

        if customer is None:
            logger.info("Unknown customer identifier %r", customer_id)
            raise CustomerNotFound(customer_id=customer_id)

        logger.info("Identified customer %s (%s)", customer.id, customer.name)
        return customer

    def resolve_from(self, source: IdentifierSource) -> Customer:
        return self.resolve(source.next())
