"""FastAPI dependencies: session factories per store and the services built on them.

Tests swap the factories with app.dependency_overrides.
"""
from fastapi import Depends
from sqlalchemy.orm import sessionmaker

from app.db.session import BillingSessionLocal, InventorySessionLocal
from app.services.bill_composer import BillComposer
from app.services.bill_confirmer import BillConfirmer
from app.services.bill_staging import BillStaging
from app.services.reporting import ReportingService
from app.services.stock_ledger import StockLedger


def get_billing_sessions() -> sessionmaker:
    return BillingSessionLocal


def get_inventory_sessions() -> sessionmaker:
    return InventorySessionLocal


def get_stock_ledger(inventory: sessionmaker = Depends(get_inventory_sessions)) -> StockLedger:
    return StockLedger(inventory)


def get_bill_composer(
    billing: sessionmaker = Depends(get_billing_sessions),
    ledger: StockLedger = Depends(get_stock_ledger),
) -> BillComposer:
    return BillComposer(billing, ledger)


def get_bill_staging(
    billing: sessionmaker = Depends(get_billing_sessions),
    ledger: StockLedger = Depends(get_stock_ledger),
) -> BillStaging:
    return BillStaging(billing, ledger)


def get_bill_confirmer(billing: sessionmaker = Depends(get_billing_sessions)) -> BillConfirmer:
    return BillConfirmer(billing)


def get_reporting(
    billing: sessionmaker = Depends(get_billing_sessions),
    ledger: StockLedger = Depends(get_stock_ledger),
) -> ReportingService:
    return ReportingService(billing, ledger)
