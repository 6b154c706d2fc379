"""
Reporting across both stores. Read-only.

Billing rows are fetched first, the stock ids they mention are looked up in
the inventory store in one query, and the two are merged in memory.
"""
import math
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import String, cast, extract, func, or_
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.db.session import session_scope
from app.models.billing import Bill, BillItem, BILL_ITEM_CONFIRMED
from app.models.expense import Expense
from app.services.bill_composer import to_money
from app.services.joins import merge_by_key
from app.services.stock_ledger import StockLedger


def _treatment(item: dict, detail) -> dict:
    if item["service"]:
        name = item["service"]
    elif detail:
        name = detail["drug_name"]
    else:
        name = "N/A"
    if detail:
        unit_price = detail["unit_price"]
    else:
        unit_price = item["custom_price"] or None
    return {
        "stock_id": item["stock_id"],
        "drug_name": name,
        "quantity": item["quantity"],
        "unit_price": unit_price,
        "subtotal": item["subtotal"],
    }


def _top_seller(row: dict, detail) -> dict:
    return {
        "stock_id": row["stock_id"],
        "drug_name": detail["drug_name"] if detail else "Unknown",
        "unit_price": detail["unit_price"] if detail else None,
        "total_quantity_sold": int(row["total_quantity_sold"]),
    }


class ReportingService:
    def __init__(self, billing_sessions: sessionmaker, ledger: StockLedger):
        self._billing_sessions = billing_sessions
        self._ledger = ledger

    def history(self, page: int = 1, search_query: str = "", page_size: int = None) -> dict:
        """
        Paginated bill list, newest first.

        search_query is matched case-insensitively as a substring of the
        bill id or of the created_at timestamp as text (e.g. "2024-01").
        """
        page_size = page_size or settings.HISTORY_PAGE_SIZE
        page = max(int(page or 1), 1)
        pattern = f"%{(search_query or '').lower()}%"
        matches = or_(
            func.lower(cast(Bill.bill_id, String)).like(pattern),
            func.lower(cast(Bill.created_at, String)).like(pattern),
        )

        with session_scope(self._billing_sessions, "billing") as db:
            rows = (
                db.query(
                    Bill.bill_id,
                    Bill.customer_name,
                    Bill.total_amount,
                    Bill.created_at,
                    func.count(BillItem.bill_item_id).label("item_count"),
                )
                .outerjoin(BillItem, BillItem.bill_id == Bill.bill_id)
                .filter(matches)
                .group_by(Bill.bill_id, Bill.customer_name, Bill.total_amount, Bill.created_at)
                .order_by(Bill.created_at.desc(), Bill.bill_id.desc())
                .limit(page_size)
                .offset((page - 1) * page_size)
                .all()
            )
            total_rows = db.query(func.count(Bill.bill_id)).filter(matches).scalar() or 0

        return {
            "bills": [
                {
                    "bill_id": r.bill_id,
                    "customer_name": r.customer_name,
                    "total_amount": r.total_amount,
                    "created_at": r.created_at,
                    "item_count": r.item_count,
                }
                for r in rows
            ],
            "totalRows": total_rows,
            "totalPage": math.ceil(total_rows / page_size),
        }

    def bill_detail(self, bill_id: int) -> dict:
        with session_scope(self._billing_sessions, "billing") as db:
            bill = db.query(Bill).filter(Bill.bill_id == bill_id).first()
            if bill is None:
                raise NotFoundError("Bill not found")
            header = {
                "bill_id": bill.bill_id,
                "customer_name": bill.customer_name,
                "total_amount": bill.total_amount,
                "discount": bill.discount,
                "created_at": bill.created_at,
            }
            items = [
                {
                    "stock_id": bi.stock_id,
                    "quantity": bi.quantity,
                    "subtotal": bi.subtotal,
                    "service": bi.service,
                    "custom_price": bi.custom_price,
                }
                for bi in db.query(BillItem)
                .filter(BillItem.bill_id == bill_id)
                .order_by(BillItem.bill_item_id)
                .all()
            ]

        header["treatments"] = merge_by_key(items, self._ledger.describe, "stock_id", _treatment)
        return header

    def dashboard(self, year: int) -> dict:
        """Monthly income vs expense for one year, plus all-time totals."""
        bill_month = extract("month", Bill.created_at)
        expense_month = extract("month", Expense.datetime)

        with session_scope(self._billing_sessions, "billing") as db:
            income_rows = (
                db.query(bill_month.label("month"), func.sum(Bill.total_amount))
                .filter(extract("year", Bill.created_at) == year)
                .group_by(bill_month)
                .all()
            )
            expense_rows = (
                db.query(expense_month.label("month"), func.sum(Expense.totalprice))
                .filter(extract("year", Expense.datetime) == year)
                .group_by(expense_month)
                .all()
            )
            sales_all_years = to_money(db.query(func.sum(Bill.total_amount)).scalar() or 0)
            expenses_all_years = to_money(db.query(func.sum(Expense.totalprice)).scalar() or 0)

        income: Dict[int, Decimal] = {int(m): to_money(total or 0) for m, total in income_rows}
        expense: Dict[int, Decimal] = {int(m): to_money(total or 0) for m, total in expense_rows}
        monthly = [
            {
                "month": month,
                "income": income.get(month, Decimal("0.00")),
                "expense": expense.get(month, Decimal("0.00")),
            }
            for month in sorted(set(income) | set(expense))
        ]

        total_sales = sum(income.values(), Decimal("0"))
        total_expenses = sum(expense.values(), Decimal("0"))
        return {
            "monthlyData": monthly,
            "totalSales": float(total_sales),
            "totalExpenses": float(total_expenses),
            "netProfit": float(total_sales - total_expenses),
            "totalSalesAllYears": float(sales_all_years),
            "totalExpensesAllYears": float(expenses_all_years),
            "netProfitAllYears": float(sales_all_years - expenses_all_years),
        }

    def top_selling(self, limit: int = None) -> List[dict]:
        """Stock ids ranked by confirmed quantity sold, with drug name and price."""
        limit = limit or settings.TOP_SELLING_LIMIT
        total_sold = func.sum(BillItem.quantity)
        with session_scope(self._billing_sessions, "billing") as db:
            rows = [
                {"stock_id": stock_id, "total_quantity_sold": sold}
                for stock_id, sold in db.query(BillItem.stock_id, total_sold)
                .filter(BillItem.status == BILL_ITEM_CONFIRMED, BillItem.stock_id.isnot(None))
                .group_by(BillItem.stock_id)
                .order_by(total_sold.desc(), BillItem.stock_id)
                .limit(limit)
                .all()
            ]
        if not rows:
            raise NotFoundError("No top selling stocks found.")
        return merge_by_key(rows, self._ledger.describe, "stock_id", _top_seller)
