from __future__ import annotations

import logging
import threading
from decimal import Decimal
from uuid import UUID

from domain.cart import Cart
from domain.catalog import CatalogReader, WasteCategory
from domain.customer import Customer
from domain.errors import CommitConflict, CommitInProgress, CustomerVanished, PersistenceUnavailable
from domain.identification import IdentificationResolver, IdentifierSource
from domain.settlement import SettlementEngine
from domain.transaction import CartTotals, LineItem, Transaction

logger = logging.getLogger(__name__)


class DepositDesk:
    """A single operator's deposit counter.

    Holds the catalog loaded for the session and exactly one open cart.
    ``confirm`` settles the cart under its checkout key and opens a new one.
    A cart whose commit hit unavailable storage is kept, so calling
    ``confirm`` again retries with the same key.
    """

    def __init__(
        self,
        *,
        catalog: CatalogReader,
        resolver: IdentificationResolver,
        engine: SettlementEngine,
        checkout_key: str | None = None,
    ) -> None:
        self._catalog = catalog
        self._resolver = resolver
        self._engine = engine
        self._categories: dict[str, WasteCategory] | None = None
        self._cart = Cart(checkout_key=checkout_key)
        self._commit_lock = threading.Lock()

    @property
    def cart(self) -> Cart:
        return self._cart

    def categories(self) -> list[WasteCategory]:
        if self._categories is None:
            return self.refresh_catalog()
        return list(self._categories.values())

    def refresh_catalog(self) -> list[WasteCategory]:
        categories = self._catalog.list_categories()
        self._categories = {category.id: category for category in categories}
        return categories

    def identify(self, raw_input: str) -> Customer:
        customer = self._resolver.resolve(raw_input)
        self._cart.bind_customer(customer)
        return customer

    def identify_from(self, source: IdentifierSource) -> Customer:
        return self.identify(source.next())

    def add_item(self, category_id: str, weight: str | Decimal | int | float) -> LineItem:
        return self._cart.add_line_item(self._category(category_id), weight)

    def preview(self, category_id: str, weight: str | Decimal | int | float) -> Decimal:
        return self._cart.preview_subtotal(self._category(category_id), weight)

    def remove_item(self, line_item_id: UUID | str) -> LineItem:
        return self._cart.remove_line_item(line_item_id)

    def totals(self) -> CartTotals:
        return self._cart.totals()

    def confirm(self) -> Transaction:
        if not self._commit_lock.acquire(blocking=False):
            raise CommitInProgress()
        try:
            cart = self._cart
            snapshot = cart.snapshot()
            try:
                transaction = self._engine.commit(snapshot, cart.checkout_key)
            except PersistenceUnavailable:
                logger.warning("Cart %s not settled, storage unavailable; kept for retry", cart.checkout_key)
                raise
            except (CommitConflict, CustomerVanished) as exc:
                logger.warning("Cart %s discarded after fatal settlement error: %s", cart.checkout_key, exc.code)
                cart.discard()
                self._cart = Cart()
                raise

            cart.mark_committed()
            self._cart = Cart()
            return transaction
        finally:
            self._commit_lock.release()

    def discard(self) -> None:
        self._cart.discard()
        self._cart = Cart()

    def _category(self, category_id: str) -> WasteCategory:
        if self._categories is None:
            self.refresh_catalog()
        assert self._categories is not None
        category = self._categories.get(category_id)
        if category is None:
            category = self._catalog.get_category(category_id)
            self._categories[category.id] = category
        return category
