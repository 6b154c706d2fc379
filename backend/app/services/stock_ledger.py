"""Stock ledger: the only code allowed to change Stock.amount."""
import logging
from decimal import Decimal
from typing import Dict, Iterable, List

from sqlalchemy.orm import Session, sessionmaker

from app.core.audit import AuditLog
from app.core.exceptions import (
    InsufficientStockError,
    NotFoundError,
    StockNotFoundError,
    ValidationError,
)
from app.db.session import session_scope
from app.models.inventory import Drug, Stock

logger = logging.getLogger(__name__)

STORE = "inventory"


class StockLedger:
    """
    Reservations and releases against the inventory store.

    Each call is its own inventory transaction. Stock.amount is only ever
    changed by relative UPDATEs, and reserve() only matches rows that still
    hold enough stock, so amount can never be driven below zero.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @staticmethod
    def _check_quantity(quantity: int):
        if quantity is None or quantity <= 0:
            raise ValidationError("Quantity must be a positive integer.")

    @staticmethod
    def _ensure_available(stock: Stock, stock_id: int, quantity: int):
        if stock is None:
            raise StockNotFoundError(stock_id)
        if stock.amount < quantity:
            raise InsufficientStockError(stock_id, stock.amount, quantity)

    def quote(self, stock_id: int, quantity: int) -> Decimal:
        """Price check without reserving. Raises the same errors as reserve()."""
        self._check_quantity(quantity)
        with session_scope(self._session_factory, STORE) as db:
            stock = db.query(Stock).filter(Stock.stock_id == stock_id).first()
            self._ensure_available(stock, stock_id, quantity)
            return Decimal(stock.unit_price)

    def reserve(self, stock_id: int, quantity: int) -> Decimal:
        """
        Decrement amount by quantity and return the unit price to bill.

        The check and the decrement are one conditional UPDATE, so the
        store serializes concurrent reservations of a row even where
        SELECT ... FOR UPDATE is a no-op (SQLite).
        """
        self._check_quantity(quantity)
        with session_scope(self._session_factory, STORE) as db:
            updated = (
                db.query(Stock)
                .filter(Stock.stock_id == stock_id, Stock.amount >= quantity)
                .update({Stock.amount: Stock.amount - quantity}, synchronize_session=False)
            )
            if not updated:
                stock = db.query(Stock).filter(Stock.stock_id == stock_id).first()
                self._ensure_available(stock, stock_id, quantity)
                # Enough stock now, but not when the UPDATE ran
                raise InsufficientStockError(stock_id, stock.amount, quantity)
            unit_price = Decimal(
                db.query(Stock.unit_price).filter(Stock.stock_id == stock_id).scalar()
            )
        AuditLog.log_stock_movement(stock_id, -quantity, "sale")
        return unit_price

    def release(self, stock_id: int, quantity: int, reason: str = "reversal"):
        """Give quantity back to a stock row."""
        self._check_quantity(quantity)
        with session_scope(self._session_factory, STORE) as db:
            updated = (
                db.query(Stock)
                .filter(Stock.stock_id == stock_id)
                .update({Stock.amount: Stock.amount + quantity}, synchronize_session=False)
            )
            if not updated:
                raise StockNotFoundError(stock_id)
        AuditLog.log_stock_movement(stock_id, quantity, reason)

    def get_stock(self, stock_id: int) -> dict:
        """Stock row joined with its drug."""
        with session_scope(self._session_factory, STORE) as db:
            row = (
                db.query(Stock, Drug)
                .join(Drug, Stock.drug_id == Drug.drug_id)
                .filter(Stock.stock_id == stock_id)
                .first()
            )
            if row is None:
                raise NotFoundError("Stock not found")
            stock, drug = row
            return {
                "stock_id": stock.stock_id,
                "unit_price": stock.unit_price,
                "amount": stock.amount,
                "expired": stock.expired,
                "drug_name": drug.name,
                "drug_type": drug.drug_type,
                "unit_type": drug.unit_type,
            }

    def stocks_for_drug(self, drug_id: int) -> List[dict]:
        with session_scope(self._session_factory, STORE) as db:
            stocks = (
                db.query(Stock)
                .filter(Stock.drug_id == drug_id)
                .order_by(Stock.stock_id)
                .all()
            )
            if not stocks:
                raise NotFoundError("No stocks found for this drug")
            return [
                {
                    "stock_id": s.stock_id,
                    "drug_id": s.drug_id,
                    "unit_price": s.unit_price,
                    "amount": s.amount,
                    "expired": s.expired,
                }
                for s in stocks
            ]

    def describe(self, stock_ids: Iterable[int]) -> Dict[int, dict]:
        """
        Drug name and unit price for a set of stock ids, keyed by stock id.

        Unknown ids are simply absent from the result.
        """
        ids = sorted({sid for sid in stock_ids if sid is not None})
        if not ids:
            return {}
        with session_scope(self._session_factory, STORE) as db:
            return _describe(db, ids)


def _describe(db: Session, ids: List[int]) -> Dict[int, dict]:
    rows = (
        db.query(Stock.stock_id, Drug.name, Stock.unit_price)
        .join(Drug, Stock.drug_id == Drug.drug_id)
        .filter(Stock.stock_id.in_(ids))
        .all()
    )
    return {
        stock_id: {"stock_id": stock_id, "drug_name": name, "unit_price": unit_price}
        for stock_id, name, unit_price in rows
    }
