from decimal import Decimal
from pathlib import Path

import pytest

from db.db import init_db
from db.repositories import WasteCategoryRepository
from domain.base_types import CategoryId
from main import main


@pytest.fixture()
def seeded_db(tmp_path: Path) -> Path:
    categories = tmp_path / "categories.csv"
    categories.write_text("id,name,price_per_kg\npaper,Kertas,2000\nplastic,Plastik,1500\n")
    customers = tmp_path / "customers.csv"
    customers.write_text("id,name,balance\n1001,Siti Rahma,10000\n")
    db_file = tmp_path / "waste_bank.db"

    assert main(["--db", str(db_file), "seed", "--categories", str(categories), "--customers", str(customers)]) == 0
    return db_file


def test_seed_and_list_categories(seeded_db: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--db", str(seeded_db), "categories"]) == 0

    out = capsys.readouterr().out
    assert "Kertas" in out
    assert "Rp 1.500/kg" in out


def test_deposit_prints_receipt_and_balance(seeded_db: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--db", str(seeded_db), "deposit", "1001", "paper=3.0", "plastic=1.5", "--key", "k-1"]) == 0

    out = capsys.readouterr().out
    assert "Total:        Rp 8.250" in out
    assert "Balance:      Rp 18.250" in out


def test_deposit_retry_with_same_key_credits_once(seeded_db: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["--db", str(seeded_db), "deposit", "1001", "paper=3.0", "plastic=1.5", "--key", "k-1"])
    main(["--db", str(seeded_db), "deposit", "1001", "paper=3.0", "plastic=1.5", "--key", "k-1"])
    capsys.readouterr()

    assert main(["--db", str(seeded_db), "history", "1001"]) == 0

    out = capsys.readouterr().out
    assert "Balance: Rp 18.250" in out
    assert "Transactions: 1" in out


def test_unknown_customer_fails(seeded_db: Path) -> None:
    assert main(["--db", str(seeded_db), "customer", "9999"]) == 1


def test_invalid_weight_fails(seeded_db: Path) -> None:
    assert main(["--db", str(seeded_db), "deposit", "1001", "paper=-2"]) == 1


def test_malformed_item_is_rejected_by_parser(seeded_db: Path) -> None:
    with pytest.raises(SystemExit):
        main(["--db", str(seeded_db), "deposit", "1001", "paper"])


def test_deposit_retry_after_price_change_returns_original(
    seeded_db: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    main(["--db", str(seeded_db), "deposit", "1001", "paper=3.0", "plastic=1.5", "--key", "k-1"])
    with init_db(db_file=seeded_db)() as session:
        WasteCategoryRepository(session).update_price(CategoryId("paper"), Decimal("2500"))
    capsys.readouterr()

    assert main(["--db", str(seeded_db), "deposit", "1001", "paper=3.0", "plastic=1.5", "--key", "k-1"]) == 0

    out = capsys.readouterr().out
    assert "Total:        Rp 8.250" in out
    assert "Balance:      Rp 18.250" in out


def test_seed_with_unstorable_balance_fails(tmp_path: Path) -> None:
    categories = tmp_path / "categories.csv"
    categories.write_text("id,name,price_per_kg\npaper,Kertas,2000\n")
    customers = tmp_path / "customers.csv"
    customers.write_text("id,name,balance\n1001,Siti Rahma,0.0000001\n")
    db_file = tmp_path / "waste_bank.db"

    assert main(["--db", str(db_file), "seed", "--categories", str(categories), "--customers", str(customers)]) == 1
