from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import BillingBase

BILL_ITEM_PENDING = "pending"
BILL_ITEM_CONFIRMED = "confirmed"


class Bill(BillingBase):
    __tablename__ = "bills"

    bill_id = Column(Integer, primary_key=True, index=True)
    customer_name = Column(String(255), nullable=True)
    discount = Column(Numeric(5, 2), nullable=False, default=0)  # Percentage
    total_amount = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    items = relationship("BillItem", back_populates="bill")


class BillItem(BillingBase):
    """
    One priced line of a bill.

    stock_id points into the inventory store, so there is no foreign key for
    it. Exactly one of stock_id / service is set. Pending lines have no
    bill_id; confirmed lines always have one.
    """
    __tablename__ = "bill_items"

    bill_item_id = Column(Integer, primary_key=True, index=True)
    bill_id = Column(Integer, ForeignKey("bills.bill_id", ondelete="CASCADE"), nullable=True)
    stock_id = Column(Integer, nullable=True)
    quantity = Column(Integer, nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)
    service = Column(String(255), nullable=True)  # Free-text label, e.g. "Consultation"
    custom_price = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(16), nullable=False, default=BILL_ITEM_PENDING)

    bill = relationship("Bill", back_populates="items")

    __table_args__ = (Index("ix_bill_items_status", "status"),)
