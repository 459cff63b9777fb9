from decimal import Decimal
from pathlib import Path

import pytest

from config import PROJECT_ROOT
from utils.seed_data import load_seed_categories, load_seed_customers


def test_load_seed_categories(tmp_path: Path) -> None:
    csv_file = tmp_path / "categories.csv"
    csv_file.write_text("id,name,price_per_kg,image_ref\npaper,Kertas,2000,\nglass,Botol Kaca,500.50,glass.png\n")

    categories = load_seed_categories(csv_file)

    assert [category.id for category in categories] == ["paper", "glass"]
    assert categories[0].image_ref is None
    assert categories[1].price_per_unit_weight == Decimal("500.50")
    assert categories[1].image_ref == "glass.png"


def test_load_seed_customers_defaults_balance(tmp_path: Path) -> None:
    csv_file = tmp_path / "customers.csv"
    csv_file.write_text("id,name\n1001,Siti Rahma\n")

    (customer,) = load_seed_customers(csv_file)

    assert customer.id == "1001"
    assert customer.balance == Decimal(0)


def test_missing_seed_file_returns_empty(tmp_path: Path) -> None:
    assert load_seed_categories(tmp_path / "missing.csv") == []
    assert load_seed_customers(tmp_path / "missing.csv") == []


def test_missing_columns_are_reported(tmp_path: Path) -> None:
    csv_file = tmp_path / "categories.csv"
    csv_file.write_text("id,name\npaper,Kertas\n")

    with pytest.raises(ValueError, match="price_per_kg"):
        load_seed_categories(csv_file)


def test_non_numeric_price_is_reported(tmp_path: Path) -> None:
    csv_file = tmp_path / "categories.csv"
    csv_file.write_text("id,name,price_per_kg\npaper,Kertas,cheap\n")

    with pytest.raises(ValueError, match="non-numeric"):
        load_seed_categories(csv_file)


def test_bundled_seed_files_load() -> None:
    seed_dir = PROJECT_ROOT / "data" / "seed"

    assert len(load_seed_categories(seed_dir / "categories.csv")) == 6
    assert len(load_seed_customers(seed_dir / "customers.csv")) == 3


def test_balance_beyond_storable_precision_is_rejected(tmp_path: Path) -> None:
    csv_file = tmp_path / "customers.csv"
    csv_file.write_text("id,name,balance\n1001,Siti Rahma,0.0000001\n")

    with pytest.raises(ValueError, match="decimal places"):
        load_seed_customers(csv_file)
