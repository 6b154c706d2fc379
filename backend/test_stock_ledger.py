"""Stock ledger: reservations, releases and inventory lookups."""
import threading
from decimal import Decimal

import pytest

from app.core.exceptions import (
    InsufficientStockError,
    NotFoundError,
    StockError,
    StockNotFoundError,
    ValidationError,
)
from app.db.base import InventoryBase
from app.db.session import make_engine, make_session_factory
from app.models.inventory import Stock
from app.services.stock_ledger import StockLedger
from conftest import seed_stock


def test_reserve_decrements_and_returns_unit_price(ledger, stock_amount):
    price = ledger.reserve(5, 2)

    assert price == Decimal("50.00")
    assert stock_amount(5) == 8


def test_reserve_more_than_available_fails_without_decrement(ledger, stock_amount):
    with pytest.raises(InsufficientStockError) as exc:
        ledger.reserve(6, 4)

    assert isinstance(exc.value, StockError)
    assert "Available: 3" in str(exc.value)
    assert stock_amount(6) == 3


def test_reserve_whole_amount_leaves_zero(ledger, stock_amount):
    ledger.reserve(6, 3)
    assert stock_amount(6) == 0


def test_reserve_unknown_stock(ledger):
    with pytest.raises(StockNotFoundError) as exc:
        ledger.reserve(999, 1)
    assert "not found" in str(exc.value)


@pytest.mark.parametrize("quantity", [0, -2])
def test_reserve_rejects_non_positive_quantity(ledger, stock_amount, quantity):
    with pytest.raises(ValidationError):
        ledger.reserve(5, quantity)
    assert stock_amount(5) == 10


def test_reserve_then_release_restores_amount(ledger, stock_amount):
    ledger.reserve(5, 7)
    ledger.release(5, 7)
    assert stock_amount(5) == 10


def test_release_unknown_stock(ledger):
    with pytest.raises(StockNotFoundError):
        ledger.release(404, 1)


def test_quote_does_not_reserve(ledger, stock_amount):
    assert ledger.quote(5, 10) == Decimal("50.00")
    assert stock_amount(5) == 10

    with pytest.raises(InsufficientStockError):
        ledger.quote(5, 11)


def test_get_stock_joins_drug(ledger):
    stock = ledger.get_stock(6)

    assert stock["drug_name"] == "Cough Syrup 100ml"
    assert stock["drug_type"] == "syrup"
    assert stock["unit_type"] == "bottle"
    assert stock["amount"] == 3


def test_get_stock_missing(ledger):
    with pytest.raises(NotFoundError):
        ledger.get_stock(42)


def test_stocks_for_drug(ledger):
    stocks = ledger.stocks_for_drug(1)
    assert [s["stock_id"] for s in stocks] == [5, 7]

    with pytest.raises(NotFoundError):
        ledger.stocks_for_drug(3)


def test_describe_skips_unknown_and_null_ids(ledger):
    details = ledger.describe([5, None, 6, 5, 999])

    assert set(details) == {5, 6}
    assert details[5]["drug_name"] == "Paracetamol 500mg"
    assert details[6]["unit_price"] == Decimal("95.00")
    assert ledger.describe([]) == {}


def test_concurrent_reservations_cannot_oversell(tmp_path):
    # A file-backed store, so each thread gets its own connection
    engine = make_engine(f"sqlite:///{tmp_path / 'inventory.db'}")
    InventoryBase.metadata.create_all(engine)
    sessions = make_session_factory(engine)
    seed_stock(sessions)
    ledger = StockLedger(sessions)

    start = threading.Barrier(2)
    outcomes = []

    def take_six():
        start.wait()
        try:
            ledger.reserve(5, 6)
            outcomes.append("reserved")
        except InsufficientStockError:
            outcomes.append("refused")

    workers = [threading.Thread(target=take_six) for _ in range(2)]
    for w in workers:
        w.start()
    for w in workers:
        w.join(timeout=30)

    db = sessions()
    try:
        remaining = db.query(Stock.amount).filter(Stock.stock_id == 5).scalar()
    finally:
        db.close()
    engine.dispose()

    assert sorted(outcomes) == ["refused", "reserved"]
    assert remaining == 4
