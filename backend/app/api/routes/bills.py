"""Bills: compose, pending items, confirmation, history and reports.

Every failure on a write path is answered with 500 and the raw error text.
400/404 are only used for ids checked before any store is touched.
"""
import re

from fastapi import APIRouter, Depends, Query, status
from typing import List

from app.api.deps import get_bill_composer, get_bill_confirmer, get_bill_staging, get_reporting
from app.core.exceptions import BusinessError, NotFoundError
from app.schemas.bills import (
    BillConfirm,
    BillCreate,
    BillCreated,
    BillDetail,
    BillHistory,
    BillItemsStage,
    BillItemsStaged,
    Dashboard,
    PendingBillItem,
    TopSellingStock,
)
from app.services.bill_composer import BillComposer
from app.services.bill_confirmer import BillConfirmer
from app.services.bill_staging import BillStaging
from app.services.reporting import ReportingService

router = APIRouter()


def _parse_id(raw: str, name: str) -> int:
    if not re.fullmatch(r"[0-9]+", raw):
        raise BusinessError.bad_request(f"Invalid {name}")
    return int(raw)


@router.post("", response_model=BillCreated, status_code=status.HTTP_201_CREATED)
def create_bill(data: BillCreate, composer: BillComposer = Depends(get_bill_composer)):
    """Create a finished bill directly from stock items and services."""
    try:
        bill_id = composer.compose(data.items, customer_name=data.customer_name, discount=data.discount)
    except Exception as e:
        raise BusinessError.server_error(e, "Failed to create bill")
    return {"message": "Bill created successfully", "bill_id": bill_id}


@router.post("/items", response_model=BillItemsStaged, status_code=status.HTTP_201_CREATED)
def stage_bill_items(data: BillItemsStage, composer: BillComposer = Depends(get_bill_composer)):
    """Reserve stock and add lines to the pending bill."""
    try:
        item_ids = composer.stage(data.items)
    except Exception as e:
        raise BusinessError.server_error(e, "Failed to add bill items")
    return {"message": f"{len(item_ids)} bill item(s) added", "bill_item_ids": item_ids}


@router.get("/pending", response_model=List[PendingBillItem])
def list_pending(staging: BillStaging = Depends(get_bill_staging)):
    try:
        return staging.list_pending()
    except Exception as e:
        raise BusinessError.server_error(e, "Failed to fetch bill items")


@router.delete("/items/{bill_item_id}")
def remove_bill_item(bill_item_id: str, staging: BillStaging = Depends(get_bill_staging)):
    """Remove a pending item and restore its stock."""
    item_id = _parse_id(bill_item_id, "bill_item_id")
    try:
        staging.remove_item(item_id)
    except Exception as e:
        raise BusinessError.server_error(e, "Failed to remove bill item")
    return {"message": f"Bill item {item_id} removed and stock updated"}


@router.post("/confirm", response_model=BillCreated, status_code=status.HTTP_201_CREATED)
def confirm_bill(data: BillConfirm, confirmer: BillConfirmer = Depends(get_bill_confirmer)):
    """Close every pending item into one bill."""
    try:
        bill_id = confirmer.confirm(data.discount, customer_name=data.customer_name)
    except Exception as e:
        raise BusinessError.server_error(e, "Failed to confirm bill")
    return {"message": "Bill confirmed successfully", "bill_id": bill_id}


@router.get("/history", response_model=BillHistory)
def bill_history(
    page: int = Query(1, ge=1),
    searchQuery: str = Query(""),
    reporting: ReportingService = Depends(get_reporting),
):
    try:
        return reporting.history(page=page, search_query=searchQuery)
    except Exception as e:
        raise BusinessError.server_error(e, "Failed to fetch bill history")


@router.get("/dashboard/{year}", response_model=Dashboard)
def dashboard(year: int, reporting: ReportingService = Depends(get_reporting)):
    """Monthly income/expense for a year plus all-time totals."""
    try:
        return reporting.dashboard(year)
    except Exception as e:
        raise BusinessError.server_error(e, "Failed to fetch dashboard data")


@router.get("/top-selling", response_model=List[TopSellingStock])
def top_selling(reporting: ReportingService = Depends(get_reporting)):
    try:
        return reporting.top_selling()
    except NotFoundError as e:
        raise BusinessError.not_found("Top selling stock", str(e))
    except Exception as e:
        raise BusinessError.server_error(e, "Failed to fetch top selling stocks")


@router.get("/{bill_id}", response_model=BillDetail)
def bill_info(bill_id: str, reporting: ReportingService = Depends(get_reporting)):
    """Bill with its treatments (items resolved to drug or service names)."""
    parsed = _parse_id(bill_id, "or missing bill_id")
    try:
        return reporting.bill_detail(parsed)
    except NotFoundError as e:
        raise BusinessError.not_found("Bill", str(e))
    except Exception as e:
        raise BusinessError.server_error(e, "Failed to fetch bill info")
