from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal


class BillItemIn(BaseModel):
    """One requested line: a catalog stock item or a free-text service."""
    stock_id: Optional[int] = None
    service: Optional[str] = None
    price: Optional[Decimal] = None  # required for services
    custom_price: Optional[Decimal] = Field(default=None, alias="customPrice")
    quantity: int = 1

    class Config:
        populate_by_name = True


class BillCreate(BaseModel):
    items: List[BillItemIn] = []
    customer_name: Optional[str] = None
    discount: Decimal = Decimal("0")


class BillItemsStage(BaseModel):
    items: List[BillItemIn] = []


class BillConfirm(BaseModel):
    discount: Decimal = Decimal("0")
    customer_name: Optional[str] = None


class BillCreated(BaseModel):
    message: str
    bill_id: int


class BillItemsStaged(BaseModel):
    message: str
    bill_item_ids: List[int]


class PendingBillItem(BaseModel):
    bill_item_id: int
    stock_id: Optional[int] = None
    quantity: int
    subtotal: Decimal
    service: Optional[str] = None
    custom_price: Optional[Decimal] = None
    drug_name: Optional[str] = None
    unit_price: Optional[Decimal] = None


class BillSummary(BaseModel):
    bill_id: int
    customer_name: Optional[str] = None
    total_amount: Decimal
    created_at: Optional[datetime] = None
    item_count: int = 0


class BillHistory(BaseModel):
    bills: List[BillSummary]
    totalRows: int
    totalPage: int


class Treatment(BaseModel):
    stock_id: Optional[int] = None
    drug_name: str
    quantity: int
    unit_price: Optional[Decimal] = None
    subtotal: Decimal


class BillDetail(BaseModel):
    bill_id: int
    customer_name: Optional[str] = None
    total_amount: Decimal
    discount: Decimal
    created_at: Optional[datetime] = None
    treatments: List[Treatment]


class MonthlyFigures(BaseModel):
    month: int
    income: Decimal
    expense: Decimal


class Dashboard(BaseModel):
    monthlyData: List[MonthlyFigures]
    totalSales: float
    totalExpenses: float
    netProfit: float
    totalSalesAllYears: float
    totalExpensesAllYears: float
    netProfitAllYears: float


class TopSellingStock(BaseModel):
    stock_id: int
    drug_name: str
    unit_price: Optional[Decimal] = None
    total_quantity_sold: int
