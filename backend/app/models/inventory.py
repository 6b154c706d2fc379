from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Boolean, CheckConstraint
from sqlalchemy.orm import relationship
from app.db.base import InventoryBase


class Drug(InventoryBase):
    """Drug catalog entry. Reference data, never changed by billing."""
    __tablename__ = "drug"

    drug_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    drug_type = Column(String(64), nullable=True)  # tablet, syrup, injection...
    unit_type = Column(String(64), nullable=True)  # strip, bottle, vial...

    stocks = relationship("Stock", back_populates="drug")


class Stock(InventoryBase):
    """
    A priced batch of a drug.

    amount only moves through StockLedger.reserve / release and never goes
    below zero.
    """
    __tablename__ = "stock"

    stock_id = Column(Integer, primary_key=True, index=True)
    drug_id = Column(Integer, ForeignKey("drug.drug_id", ondelete="CASCADE"), nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    amount = Column(Integer, nullable=False, default=0)
    expired = Column(Boolean, nullable=False, default=False)

    drug = relationship("Drug", back_populates="stocks")

    __table_args__ = (CheckConstraint("amount >= 0", name="ck_stock_amount_non_negative"),)
