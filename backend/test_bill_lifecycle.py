"""Pending items: listing, removal with stock reversal, and confirmation."""
from decimal import Decimal

import pytest
from sqlalchemy import event

from app.core.exceptions import NotFoundError, NothingToConfirmError, StockNotFoundError, ValidationError
from app.models.billing import Bill, BillItem, BILL_ITEM_CONFIRMED
from app.models.inventory import Stock
from app.schemas.bills import BillItemIn


def _service(name, price):
    return BillItemIn(service=name, price=Decimal(price), quantity=1)


def _count_bills(billing_sessions):
    db = billing_sessions()
    try:
        return db.query(Bill).count()
    finally:
        db.close()


class TestListPending:
    def test_joins_drug_name_and_price(self, composer, staging):
        composer.stage([BillItemIn(stock_id=6, quantity=2), _service("Consultation", "200")])

        pending = staging.list_pending()

        assert [p["drug_name"] for p in pending] == ["Cough Syrup 100ml", "Consultation"]
        assert pending[0]["unit_price"] == Decimal("95.00")
        assert pending[0]["subtotal"] == Decimal("190.00")
        assert pending[1]["unit_price"] is None
        assert pending[1]["stock_id"] is None

    def test_confirmed_items_are_not_listed(self, composer, staging):
        composer.compose([BillItemIn(stock_id=5, quantity=1)])
        assert staging.list_pending() == []


class TestRemoveItem:
    def test_restores_reserved_stock(self, composer, staging, stock_amount):
        (item_id,) = composer.stage([BillItemIn(stock_id=5, quantity=3)])
        assert stock_amount(5) == 7

        staging.remove_item(item_id)

        assert stock_amount(5) == 10
        assert staging.list_pending() == []

    def test_service_item_removed_without_ledger(self, composer, staging, stock_amount):
        (item_id,) = composer.stage([_service("Consultation", "200")])
        staging.remove_item(item_id)
        assert staging.list_pending() == []
        assert stock_amount(5) == 10

    def test_missing_item(self, staging):
        with pytest.raises(NotFoundError, match="Bill item with ID 77 not found"):
            staging.remove_item(77)

    def test_confirmed_item_cannot_be_removed(self, composer, staging, billing_sessions, stock_amount):
        composer.compose([BillItemIn(stock_id=5, quantity=2)])
        db = billing_sessions()
        item_id = db.query(BillItem.bill_item_id).scalar()
        db.close()

        with pytest.raises(ValidationError):
            staging.remove_item(item_id)
        assert stock_amount(5) == 8

    def test_failed_release_keeps_the_item(self, composer, staging, inventory_sessions):
        (item_id,) = composer.stage([BillItemIn(stock_id=6, quantity=1)])
        db = inventory_sessions()
        db.query(Stock).filter(Stock.stock_id == 6).delete()
        db.commit()
        db.close()

        with pytest.raises(StockNotFoundError):
            staging.remove_item(item_id)

        assert [p["bill_item_id"] for p in staging.list_pending()] == [item_id]

    def test_failed_billing_commit_reserves_the_stock_again(
        self, composer, staging, billing_sessions, stock_amount
    ):
        (item_id,) = composer.stage([BillItemIn(stock_id=5, quantity=3)])
        assert stock_amount(5) == 7

        commits = {"failed": False}

        def fail_first_commit(session):
            if not commits["failed"]:
                commits["failed"] = True
                raise RuntimeError("billing store went away")

        event.listen(billing_sessions, "before_commit", fail_first_commit)

        with pytest.raises(RuntimeError, match="billing store went away"):
            staging.remove_item(item_id)

        assert stock_amount(5) == 7
        assert [p["bill_item_id"] for p in staging.list_pending()] == [item_id]

        # Retrying releases the quantity exactly once
        staging.remove_item(item_id)
        assert stock_amount(5) == 10
        assert staging.list_pending() == []


class TestConfirm:
    def test_nothing_pending(self, confirmer, billing_sessions):
        with pytest.raises(NothingToConfirmError):
            confirmer.confirm(Decimal("10"))
        assert _count_bills(billing_sessions) == 0

    def test_applies_discount_and_confirms_all(self, composer, confirmer, billing_sessions):
        ids = composer.stage([_service("Surgery", "600"), _service("Anaesthesia", "400")])

        bill_id = confirmer.confirm(Decimal("10"))

        db = billing_sessions()
        try:
            bill = db.query(Bill).filter(Bill.bill_id == bill_id).one()
            assert bill.total_amount == Decimal("900.00")
            assert bill.discount == Decimal("10")
            items = db.query(BillItem).filter(BillItem.bill_item_id.in_(ids)).all()
            assert len(items) == 2
            assert all(i.status == BILL_ITEM_CONFIRMED and i.bill_id == bill_id for i in items)
        finally:
            db.close()

    def test_does_not_touch_stock(self, composer, confirmer, stock_amount):
        composer.stage([BillItemIn(stock_id=5, quantity=4)])
        confirmer.confirm(Decimal("0"), customer_name="Ravi")
        assert stock_amount(5) == 6

    def test_second_confirm_has_nothing_left(self, composer, confirmer, billing_sessions):
        composer.stage([_service("Consultation", "200")])
        confirmer.confirm(None)
        with pytest.raises(NothingToConfirmError):
            confirmer.confirm(None)
        assert _count_bills(billing_sessions) == 1

    def test_rejects_out_of_range_discount(self, composer, confirmer, staging):
        composer.stage([_service("Consultation", "200")])
        with pytest.raises(ValidationError):
            confirmer.confirm(Decimal("150"))
        assert len(staging.list_pending()) == 1
