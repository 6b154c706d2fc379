"""Inventory lookups used by the billing screen."""
from fastapi import APIRouter, Depends
from typing import List

from app.api.deps import get_stock_ledger
from app.core.exceptions import BusinessError, NotFoundError
from app.schemas.stock import StockDetail, StockRecord
from app.services.stock_ledger import StockLedger

router = APIRouter()


@router.get("/drug/{drug_id}", response_model=List[StockRecord])
def stocks_by_drug(drug_id: int, ledger: StockLedger = Depends(get_stock_ledger)):
    try:
        return ledger.stocks_for_drug(drug_id)
    except NotFoundError as e:
        raise BusinessError.not_found("Stock", str(e))
    except Exception as e:
        raise BusinessError.server_error(e, "Failed to fetch stocks by drug ID")


@router.get("/{stock_id}", response_model=StockDetail)
def stock_by_id(stock_id: int, ledger: StockLedger = Depends(get_stock_ledger)):
    """Stock row with its drug name, type and unit."""
    try:
        return ledger.get_stock(stock_id)
    except NotFoundError as e:
        raise BusinessError.not_found("Stock", str(e))
    except Exception as e:
        raise BusinessError.server_error(e, "Failed to fetch stock details")
