from sqlalchemy import Column, Integer, String, Numeric, DateTime
from sqlalchemy.sql import func
from app.db.base import BillingBase


class Expense(BillingBase):
    """Clinic expense. Maintained elsewhere; only read by the dashboard."""
    __tablename__ = "expense"

    expense_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    totalprice = Column(Numeric(12, 2), nullable=False)
    datetime = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
