from __future__ import annotations

import logging
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, model_validator

from .base_types import PRICE_DECIMAL_PLACES, CategoryId, decimal_places
from .errors import CatalogUnavailable, CategoryNotFound
from .stores import CategoryStore, StoreUnavailable

logger = logging.getLogger(__name__)


class WasteCategory(BaseModel):
    """A waste type the bank buys, priced per kilogram."""

    model_config = ConfigDict(frozen=True)

    id: CategoryId
    name: str
    price_per_unit_weight: Decimal
    image_ref: str | None = None

    @model_validator(mode="after")
    def _validate_fields(self) -> WasteCategory:
        if not self.id:
            raise ValueError("WasteCategory.id must be non-empty")
        if not self.price_per_unit_weight.is_finite() or self.price_per_unit_weight <= 0:
            raise ValueError("price_per_unit_weight must be a positive finite decimal")
        if decimal_places(self.price_per_unit_weight) > PRICE_DECIMAL_PLACES:
            raise ValueError(f"price_per_unit_weight allows at most {PRICE_DECIMAL_PLACES} decimal places")
        return self


class CatalogReader:
    """Read-only view of the waste catalog."""

    def __init__(self, store: CategoryStore) -> None:
        self._store = store

    def list_categories(self) -> list[WasteCategory]:
        try:
            categories = self._store.list()
        except StoreUnavailable as exc:
            logger.warning("Catalog could not be loaded: %s", exc)
            raise CatalogUnavailable("Waste catalog is unavailable") from exc
        return sorted(categories, key=lambda category: (category.name.lower(), category.id))

    def get_category(self, category_id: str) -> WasteCategory:
        try:
            category = self._store.get(CategoryId(category_id))
        except StoreUnavailable as exc:
            logger.warning("Catalog lookup for %s failed: %s", category_id, exc)
            raise CatalogUnavailable("Waste catalog is unavailable") from exc
        if category is None:
            raise CategoryNotFound(category_id=category_id)
        return category
