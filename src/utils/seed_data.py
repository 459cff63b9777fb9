from __future__ import annotations

import csv
from decimal import Decimal, InvalidOperation
from pathlib import Path

from domain.base_types import CategoryId, CustomerId
from domain.catalog import WasteCategory
from domain.customer import Customer


def load_seed_categories(csv_path: Path) -> list[WasteCategory]:
    """Load waste categories from CSV.

    Each row should contain: id,name,price_per_kg[,image_ref]
    """
    rows = _read_rows(csv_path, required={"id", "name", "price_per_kg"})
    return [
        WasteCategory(
            id=CategoryId(row["id"].strip()),
            name=row["name"].strip(),
            price_per_unit_weight=_parse_decimal(row["price_per_kg"], csv_path, "price_per_kg"),
            image_ref=(row.get("image_ref") or "").strip() or None,
        )
        for row in rows
    ]


def load_seed_customers(csv_path: Path) -> list[Customer]:
    """Load customers from CSV.

    Each row should contain: id,name[,balance]. Balance defaults to zero.
    """
    rows = _read_rows(csv_path, required={"id", "name"})
    customers: list[Customer] = []
    for row in rows:
        raw_balance = (row.get("balance") or "").strip()
        balance = _parse_decimal(raw_balance, csv_path, "balance") if raw_balance else Decimal(0)
        customers.append(Customer(id=CustomerId(row["id"].strip()), name=row["name"].strip(), balance=balance))
    return customers


def _read_rows(csv_path: Path, *, required: set[str]) -> list[dict[str, str]]:
    if not csv_path.exists():
        return []

    with csv_path.open(encoding="utf-8") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise ValueError(f"Seed CSV {csv_path} is empty or missing headers")

        missing = required - set(reader.fieldnames)
        if missing:
            raise ValueError(f"Seed CSV {csv_path} missing required columns: {', '.join(sorted(missing))}")

        return list(reader)


def _parse_decimal(raw: str, csv_path: Path, column: str) -> Decimal:
    try:
        return Decimal(raw.strip())
    except InvalidOperation as exc:
        raise ValueError(f"Seed CSV {csv_path} has a non-numeric {column}: {raw!r}") from exc
