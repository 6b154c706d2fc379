"""
Shared fixtures: two in-memory SQLite stores (separate engines, like the
real billing and inventory databases) and the services wired on top.
"""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.api import deps
from app.db.base import BillingBase, InventoryBase
from app.db.session import make_session_factory
from app.main import app
from app.models import Drug, Stock
from app.services.bill_composer import BillComposer
from app.services.bill_confirmer import BillConfirmer
from app.services.bill_staging import BillStaging
from app.services.reporting import ReportingService
from app.services.stock_ledger import StockLedger


def memory_engine():
    return create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


def seed_stock(session_factory):
    db = session_factory()
    try:
        db.add_all([
            Drug(drug_id=1, name="Paracetamol 500mg", drug_type="tablet", unit_type="strip"),
            Drug(drug_id=2, name="Cough Syrup 100ml", drug_type="syrup", unit_type="bottle"),
            Drug(drug_id=3, name="Lidocaine 2%", drug_type="injection", unit_type="vial"),
        ])
        db.add_all([
            Stock(stock_id=5, drug_id=1, unit_price=Decimal("50.00"), amount=10, expired=False),
            Stock(stock_id=6, drug_id=2, unit_price=Decimal("95.00"), amount=3, expired=False),
            Stock(stock_id=7, drug_id=1, unit_price=Decimal("20.00"), amount=0, expired=True),
        ])
        db.commit()
    finally:
        db.close()


@pytest.fixture
def billing_sessions():
    engine = memory_engine()
    BillingBase.metadata.create_all(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def inventory_sessions():
    engine = memory_engine()
    InventoryBase.metadata.create_all(engine)
    factory = make_session_factory(engine)
    seed_stock(factory)
    yield factory
    engine.dispose()


@pytest.fixture
def ledger(inventory_sessions):
    return StockLedger(inventory_sessions)


@pytest.fixture
def composer(billing_sessions, ledger):
    return BillComposer(billing_sessions, ledger)


@pytest.fixture
def staging(billing_sessions, ledger):
    return BillStaging(billing_sessions, ledger)


@pytest.fixture
def confirmer(billing_sessions):
    return BillConfirmer(billing_sessions)


@pytest.fixture
def reporting(billing_sessions, ledger):
    return ReportingService(billing_sessions, ledger)


@pytest.fixture
def stock_amount(inventory_sessions):
    def _amount(stock_id):
        db = inventory_sessions()
        try:
            return db.query(Stock.amount).filter(Stock.stock_id == stock_id).scalar()
        finally:
            db.close()
    return _amount


@pytest.fixture
def client(billing_sessions, inventory_sessions):
    app.dependency_overrides[deps.get_billing_sessions] = lambda: billing_sessions
    app.dependency_overrides[deps.get_inventory_sessions] = lambda: inventory_sessions
    yield TestClient(app)
    app.dependency_overrides.clear()
