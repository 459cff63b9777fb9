"""Domain models and services for the waste bank settlement core.

Pydantic models for the waste catalog, customers, cart line items and
transactions, plus the cart, the identification resolver and the settlement
engine. Nothing here imports SQLAlchemy; storage is reached only through the
protocols in ``domain.stores``, so the rules can be tested against fakes.
"""

__all__ = [
    "base_types",
    "cart",
    "catalog",
    "customer",
    "errors",
    "identification",
    "settlement",
    "stores",
    "transaction",
]
