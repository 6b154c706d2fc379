"""
Bill composition: validate requested lines, price them, reserve stock and
write bill items.

Two stores are involved and they never share a transaction:
1. Price every line (read-only ledger quotes) and compute the total
2. Reserve stock line by line; each reservation commits on its own and is
   recorded in a CompensationLog
3. Write the bill rows in one billing transaction
If step 2 or 3 fails, every recorded reservation is released before the
error reaches the caller.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from functools import partial
from typing import List, Optional, Sequence

from sqlalchemy.orm import sessionmaker

from app.core.audit import AuditLog
from app.core.exceptions import ValidationError
from app.db.session import session_scope
from app.models.billing import Bill, BillItem, BILL_ITEM_CONFIRMED, BILL_ITEM_PENDING
from app.schemas.bills import BillItemIn
from app.services.compensation import CompensationLog
from app.services.stock_ledger import StockLedger

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def validate_discount(discount) -> Decimal:
    """Discount is a percentage in [0, 100]. None means no discount."""
    if discount is None:
        return Decimal("0")
    try:
        value = Decimal(str(discount))
    except ArithmeticError:
        raise ValidationError(f"Invalid discount: {discount!r}")
    if value < 0 or value > 100:
        raise ValidationError("Discount must be between 0 and 100 percent.")
    return value


@dataclass
class PricedLine:
    quantity: int
    stock_id: Optional[int] = None
    service: Optional[str] = None
    custom_price: Optional[Decimal] = None
    unit_price: Decimal = Decimal("0")

    @property
    def is_service(self) -> bool:
        return self.service is not None

    @property
    def subtotal(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


def _parse_line(index: int, item: BillItemIn) -> PricedLine:
    where = f"Item {index + 1}"
    if item.quantity is None or item.quantity <= 0:
        raise ValidationError(f"{where}: quantity must be a positive integer.")

    custom = item.custom_price if item.custom_price else None
    if custom is not None and custom < 0:
        raise ValidationError(f"{where}: custom price cannot be negative.")

    service = item.service.strip() if item.service else None
    if service:
        if item.stock_id is not None:
            raise ValidationError(f"{where}: a line is either a service or a stock item, not both.")
        if custom is None and item.price is None:
            raise ValidationError(f"{where}: price is required for service '{service}'.")
        if item.price is not None and item.price < 0:
            raise ValidationError(f"{where}: price cannot be negative.")
        return PricedLine(
            quantity=item.quantity,
            service=service,
            custom_price=custom,
            unit_price=custom if custom is not None else item.price,
        )

    if item.stock_id is None:
        raise ValidationError("Stock ID is required for product items.")
    return PricedLine(quantity=item.quantity, stock_id=item.stock_id, custom_price=custom)


def total_of(lines: Sequence[PricedLine]) -> Decimal:
    return to_money(sum((line.subtotal for line in lines), Decimal("0")))


class BillComposer:
    def __init__(self, billing_sessions: sessionmaker, ledger: StockLedger):
        self._billing_sessions = billing_sessions
        self._ledger = ledger

    def price_lines(self, items: Sequence[BillItemIn]) -> List[PricedLine]:
        """
        Validate and price every requested line without writing anything.

        Raises ValidationError for malformed lines and the StockError
        subclass of the first catalog line that cannot be served.
        """
        if not items:
            raise ValidationError("At least one bill item is required.")
        lines = [_parse_line(i, item) for i, item in enumerate(items)]
        for line in lines:
            if line.is_service:
                continue
            stock_price = self._ledger.quote(line.stock_id, line.quantity)
            line.unit_price = line.custom_price if line.custom_price is not None else stock_price
        return lines

    def _reserve(self, lines: Sequence[PricedLine], saga: CompensationLog) -> bool:
        """Reserve every catalog line. Returns True if a stock price moved since quoting."""
        repriced = False
        for line in lines:
            if line.is_service:
                continue
            stock_price = self._ledger.reserve(line.stock_id, line.quantity)
            saga.record(
                f"release {line.quantity} of stock {line.stock_id}",
                partial(self._ledger.release, line.stock_id, line.quantity, "compensation"),
            )
            if line.custom_price is None and stock_price != line.unit_price:
                logger.warning(
                    f"Stock {line.stock_id} price changed from {line.unit_price} to {stock_price} while billing"
                )
                line.unit_price = stock_price
                repriced = True
        return repriced

    @staticmethod
    def _bill_item(line: PricedLine, bill_id: Optional[int], status: str) -> BillItem:
        return BillItem(
            bill_id=bill_id,
            stock_id=line.stock_id,
            quantity=line.quantity,
            subtotal=line.subtotal,
            service=line.service,
            custom_price=line.custom_price or Decimal("0"),
            status=status,
        )

    def compose(
        self,
        items: Sequence[BillItemIn],
        customer_name: Optional[str] = None,
        discount=None,
    ) -> int:
        """
        Create a finished bill from the given lines and return its id.

        total_amount is the undiscounted sum of the line subtotals; the
        discount percentage is stored alongside it.
        """
        discount = validate_discount(discount)
        lines = self.price_lines(items)
        total = total_of(lines)

        saga = CompensationLog()
        try:
            if self._reserve(lines, saga):
                total = total_of(lines)
            with session_scope(self._billing_sessions, "billing") as db:
                bill = Bill(
                    customer_name=customer_name or None,
                    discount=discount,
                    total_amount=total,
                )
                db.add(bill)
                db.flush()
                bill_id = bill.bill_id
                db.add_all(self._bill_item(line, bill_id, BILL_ITEM_CONFIRMED) for line in lines)
        except Exception:
            if len(saga):
                logger.warning(f"Bill composition failed, releasing {len(saga)} reservation(s)")
                saga.compensate()
            raise
        saga.clear()

        AuditLog.log_action(
            "compose",
            "bill",
            bill_id,
            changes={"items": len(lines), "total_amount": total, "discount": discount},
        )
        logger.info(f"Created bill {bill_id} with {len(lines)} item(s), total {total}")
        return bill_id

    def stage(self, items: Sequence[BillItemIn]) -> List[int]:
        """Reserve stock and add the lines to the pending list. Returns the new item ids."""
        lines = self.price_lines(items)

        saga = CompensationLog()
        try:
            self._reserve(lines, saga)
            with session_scope(self._billing_sessions, "billing") as db:
                rows = [self._bill_item(line, None, BILL_ITEM_PENDING) for line in lines]
                db.add_all(rows)
                db.flush()
                item_ids = [row.bill_item_id for row in rows]
        except Exception:
            if len(saga):
                logger.warning(f"Staging failed, releasing {len(saga)} reservation(s)")
                saga.compensate()
            raise
        saga.clear()

        AuditLog.log_action(
            "stage",
            "bill_item",
            None,
            changes={"bill_item_ids": item_ids, "subtotal": total_of(lines)},
        )
        return item_ids
