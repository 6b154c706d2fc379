"""Turn every pending bill item into one confirmed bill. Billing store only."""
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import sessionmaker

from app.core.audit import AuditLog
from app.core.exceptions import NothingToConfirmError
from app.db.session import session_scope
from app.models.billing import Bill, BillItem, BILL_ITEM_CONFIRMED, BILL_ITEM_PENDING
from app.services.bill_composer import to_money, validate_discount

logger = logging.getLogger(__name__)


def apply_discount(total: Decimal, discount: Decimal) -> Decimal:
    return to_money(total - total * discount / 100)


class BillConfirmer:
    def __init__(self, billing_sessions: sessionmaker):
        self._billing_sessions = billing_sessions

    def confirm(self, discount=None, customer_name: Optional[str] = None) -> int:
        """
        Create one bill for all pending items and return its id.

        Stock was reserved when the items were staged, so nothing here
        touches the inventory store.
        """
        discount = validate_discount(discount)

        with session_scope(self._billing_sessions, "billing") as db:
            # Lock the rows being billed so items staged meanwhile stay pending
            pending = (
                db.query(BillItem.bill_item_id, BillItem.subtotal)
                .filter(BillItem.status == BILL_ITEM_PENDING)
                .with_for_update()
                .all()
            )
            if not pending:
                raise NothingToConfirmError()

            item_ids = [item_id for item_id, _ in pending]
            total = to_money(sum((Decimal(str(subtotal)) for _, subtotal in pending), Decimal("0")))
            discounted = apply_discount(total, discount)

            bill = Bill(
                customer_name=customer_name or None,
                discount=discount,
                total_amount=discounted,
            )
            db.add(bill)
            db.flush()
            bill_id = bill.bill_id

            updated = (
                db.query(BillItem)
                .filter(BillItem.bill_item_id.in_(item_ids))
                .update(
                    {BillItem.bill_id: bill_id, BillItem.status: BILL_ITEM_CONFIRMED},
                    synchronize_session=False,
                )
            )

        AuditLog.log_action(
            "confirm",
            "bill",
            bill_id,
            changes={"items": updated, "subtotal": total, "discount": discount, "total_amount": discounted},
        )
        logger.info(f"Confirmed {updated} pending item(s) into bill {bill_id}")
        return bill_id
