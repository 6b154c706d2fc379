from app.models.billing import Bill, BillItem
from app.models.expense import Expense
from app.models.inventory import Drug, Stock

__all__ = ["Bill", "BillItem", "Expense", "Drug", "Stock"]
