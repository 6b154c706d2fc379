"""Pending bill items: listing and removal with stock reversal."""
import logging
from functools import partial
from typing import List

from sqlalchemy.orm import sessionmaker

from app.core.audit import AuditLog
from app.core.exceptions import NotFoundError, ValidationError
from app.db.session import session_scope
from app.models.billing import BillItem, BILL_ITEM_PENDING
from app.services.compensation import CompensationLog
from app.services.joins import merge_by_key
from app.services.stock_ledger import StockLedger

logger = logging.getLogger(__name__)


def _pending_row(item: dict, detail) -> dict:
    if item["service"]:
        name = item["service"]
    else:
        name = detail["drug_name"] if detail else None
    return {
        **item,
        "drug_name": name,
        "unit_price": detail["unit_price"] if detail else None,
    }


class BillStaging:
    def __init__(self, billing_sessions: sessionmaker, ledger: StockLedger):
        self._billing_sessions = billing_sessions
        self._ledger = ledger

    def list_pending(self) -> List[dict]:
        """Pending items in insertion order, with drug name and current unit price."""
        with session_scope(self._billing_sessions, "billing") as db:
            items = [
                {
                    "bill_item_id": bi.bill_item_id,
                    "stock_id": bi.stock_id,
                    "quantity": bi.quantity,
                    "subtotal": bi.subtotal,
                    "service": bi.service,
                    "custom_price": bi.custom_price,
                }
                for bi in db.query(BillItem)
                .filter(BillItem.status == BILL_ITEM_PENDING)
                .order_by(BillItem.bill_item_id.asc())
                .all()
            ]
        return merge_by_key(items, self._ledger.describe, "stock_id", _pending_row)

    def remove_item(self, bill_item_id: int):
        """
        Delete a pending item and give its stock back.

        The delete is flushed first, then the release commits on the
        inventory store, then the delete commits. A failed release rolls the
        delete back. A failed billing commit re-reserves the released
        stock, so the item never stays pending with its stock returned.
        """
        saga = CompensationLog()
        try:
            with session_scope(self._billing_sessions, "billing") as db:
                item = db.query(BillItem).filter(BillItem.bill_item_id == bill_item_id).first()
                if item is None:
                    raise NotFoundError(f"Bill item with ID {bill_item_id} not found")
                if item.status != BILL_ITEM_PENDING:
                    raise ValidationError(f"Bill item {bill_item_id} is already {item.status} and cannot be removed")

                stock_id, quantity = item.stock_id, item.quantity
                db.delete(item)
                db.flush()

                if stock_id is not None:
                    self._ledger.release(stock_id, quantity, reason=f"bill_item {bill_item_id} removed")
                    saga.record(
                        f"re-reserve {quantity} of stock {stock_id} for bill_item {bill_item_id}",
                        partial(self._ledger.reserve, stock_id, quantity),
                    )
        except Exception:
            if len(saga):
                logger.warning(f"Removing bill item {bill_item_id} failed, re-reserving its stock")
                saga.compensate()
            raise
        saga.clear()

        AuditLog.log_action(
            "remove",
            "bill_item",
            bill_item_id,
            changes={"stock_id": stock_id, "quantity": quantity},
        )
        logger.info(f"Removed bill item {bill_item_id}")
