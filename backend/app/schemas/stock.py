from pydantic import BaseModel
from typing import Optional
from decimal import Decimal


class StockRecord(BaseModel):
    stock_id: int
    drug_id: int
    unit_price: Decimal
    amount: int
    expired: bool

    class Config:
        from_attributes = True


class StockDetail(BaseModel):
    stock_id: int
    unit_price: Decimal
    amount: int
    expired: bool
    drug_name: str
    drug_type: Optional[str] = None
    unit_type: Optional[str] = None
