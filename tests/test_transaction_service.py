import re
from decimal import Decimal

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from shoppingbird.models import Invoice, InvoiceDetail, InvoiceDetailTax
from shoppingbird.schemas.transaction import Cart, CartLine
from shoppingbird.services.cart import CartBuilder
from shoppingbird.services.transaction_service import TransactionAssembler, generate_invoice_number


def scanned_cart(db, store_id, *barcodes, adjust="0"):
    cart = Cart()
    for code in barcodes:
        response = CartBuilder.add_line(db, cart, code, store_id)
        cart = Cart(lines=response.lines)
    return Cart(lines=cart.lines, adjust_amount=Decimal(adjust))


def plain_cart(item_id, amount, adjust="0"):
    line = CartLine(
        item_id=item_id,
        description="Plain",
        base_price=Decimal(amount),
        final_price=Decimal(amount),
    )
    return Cart(lines=[line], adjust_amount=Decimal(adjust))


def test_invoice_number_format():
    assert re.fullmatch(r"INV-\d{8}-\d{6}-[0-9A-F]{4}", generate_invoice_number())


class TestCheckout:

    def test_total_includes_adjustment(self, db, seed, cashier):
        cart = plain_cart(seed["milk"].id, "100.00", adjust="-5.00")

        result = TransactionAssembler.checkout(db, cart, seed["store"].id, cashier.id)

        assert result.status == "completed"
        assert result.total == Decimal("95.00")
        invoice = db.query(Invoice).filter(Invoice.id == result.id).one()
        assert invoice.total == Decimal("95.00")
        assert invoice.user_id == cashier.id

    def test_lines_and_tax_rows(self, db, seed, cashier):
        cart = scanned_cart(db, seed["store"].id, "C-100", "C-100", "1234")

        result = TransactionAssembler.checkout(db, cart, seed["store"].id, cashier.id)

        assert result.item_count == 3
        assert result.subtotal == Decimal("223.60")
        assert result.total_tax == Decimal("28.00")
        assert result.total == Decimal("251.60")

        coffee_line = next(i for i in result.items if i.item_id == seed["coffee"].id)
        assert coffee_line.quantity == 2
        assert coffee_line.tax_amount == Decimal("14.00")
        assert coffee_line.total_price == Decimal("114.00")
        # tax rows hold the whole-line amount
        assert sorted(t.amount for t in coffee_line.tax_breakdown) == [Decimal("12.00"), Decimal("16.00")]

    def test_empty_cart(self, db, seed, cashier):
        with pytest.raises(HTTPException) as exc:
            TransactionAssembler.checkout(db, Cart(), seed["store"].id, cashier.id)

        assert exc.value.status_code == 400

    def test_unknown_store(self, db, seed, cashier):
        with pytest.raises(HTTPException) as exc:
            TransactionAssembler.checkout(db, plain_cart(seed["milk"].id, "1"), 777, cashier.id)

        assert exc.value.status_code == 404

    def test_line_with_inconsistent_final_price_is_rejected(self, db, seed, cashier):
        line = CartLine(
            item_id=seed["coffee"].id,
            description="Dark Roast Coffee",
            base_price=Decimal("100"),
            tax_amount=Decimal("14"),
            final_price=Decimal("0.01"),
        )

        with pytest.raises(HTTPException) as exc:
            TransactionAssembler.checkout(db, Cart(lines=[line]), seed["store"].id, cashier.id)

        assert exc.value.status_code == 400
        assert db.query(Invoice).count() == 0

    def test_breakdown_must_add_up_to_line_tax(self, db, seed, cashier):
        cart = scanned_cart(db, seed["store"].id, "C-100")
        line = cart.lines[0].model_copy(update={"tax_breakdown": cart.lines[0].tax_breakdown[:1]})

        with pytest.raises(HTTPException) as exc:
            TransactionAssembler.suspend(db, Cart(lines=[line]), seed["store"].id, cashier.id, "Short tax")

        assert exc.value.status_code == 400
        assert db.query(Invoice).count() == 0

    def test_unknown_item_is_rejected(self, db, seed, cashier):
        with pytest.raises(HTTPException) as exc:
            TransactionAssembler.checkout(db, plain_cart(4242, "5"), seed["store"].id, cashier.id)

        assert exc.value.status_code == 404
        assert exc.value.detail == "Item with ID 4242 not found"

    def test_failed_insert_leaves_nothing_behind(self, db, seed, cashier, monkeypatch):
        cart = scanned_cart(db, seed["store"].id, "C-100")
        real_flush = db.flush
        calls = {"count": 0}

        def failing_flush(*args, **kwargs):
            calls["count"] += 1
            if calls["count"] == 3:
                raise OperationalError("INSERT INTO invoice_detail_taxes", {}, Exception("disk I/O error"))
            return real_flush(*args, **kwargs)

        monkeypatch.setattr(db, "flush", failing_flush)

        with pytest.raises(HTTPException) as exc:
            TransactionAssembler.checkout(db, cart, seed["store"].id, cashier.id)

        monkeypatch.undo()
        assert exc.value.status_code == 500
        assert exc.value.detail.startswith("Failed to checkout")
        assert db.query(Invoice).count() == 0
        assert db.query(InvoiceDetail).count() == 0
        assert db.query(InvoiceDetailTax).count() == 0


class TestSuspended:

    def suspend(self, db, seed, cashier, name="Table 4"):
        cart = scanned_cart(db, seed["store"].id, "C-100", "1234", "1234")
        return TransactionAssembler.suspend(db, cart, seed["store"].id, cashier.id, name, notes="back soon")

    def test_suspend_records_session(self, db, seed, cashier):
        result = self.suspend(db, seed, cashier)

        assert result.status == "suspended"
        assert result.session_name == "Table 4"
        assert result.notes == "back soon"
        assert result.suspended_at is not None

    def test_resume_keeps_recorded_prices(self, db, seed, cashier):
        suspended = self.suspend(db, seed, cashier)
        seed["coffee_price"].retail_price = Decimal("150.00")
        seed["milk_price"].retail_price = Decimal("30.00")
        db.commit()

        resumed = TransactionAssembler.resume(db, suspended.id)

        lines = {line.item_id: line for line in resumed.cart.lines}
        assert len(lines) == 2
        coffee = lines[seed["coffee"].id]
        milk = lines[seed["milk"].id]
        assert coffee.quantity == 1
        assert coffee.base_price == Decimal("100")
        assert coffee.tax_amount == Decimal("14.00")
        assert coffee.final_price == Decimal("114.00")
        assert coffee.unit == "kg"
        assert coffee.barcode == "C-100"
        assert milk.quantity == 2
        assert milk.final_price == Decimal("23.60")
        assert milk.unit == "ea"
        assert resumed.cart.total == Decimal("161.20")

    def test_resume_breakdown_is_per_unit(self, db, seed, cashier):
        cart = scanned_cart(db, seed["store"].id, "C-100", "C-100")
        suspended = TransactionAssembler.suspend(db, cart, seed["store"].id, cashier.id, "Two coffees")

        resumed = TransactionAssembler.resume(db, suspended.id)

        line = resumed.cart.lines[0]
        assert line.quantity == 2
        assert sorted(t.amount for t in line.tax_breakdown) == [Decimal("6"), Decimal("8")]

    def test_resume_without_current_price_uses_defaults(self, db, seed, cashier):
        suspended = self.suspend(db, seed, cashier)
        seed["milk_price"].is_active = False
        db.commit()

        resumed = TransactionAssembler.resume(db, suspended.id)

        milk = next(line for line in resumed.cart.lines if line.item_id == seed["milk"].id)
        assert milk.barcode == ""
        assert milk.unit == "each"

    def test_list_suspended(self, db, seed, cashier):
        self.suspend(db, seed, cashier, name="Bravo")
        self.suspend(db, seed, cashier, name="Alpha")
        TransactionAssembler.checkout(db, plain_cart(seed["milk"].id, "1"), seed["store"].id, cashier.id)

        result = TransactionAssembler.list_suspended(
            db, store_id=seed["store"].id, sort_by="session_name", sort_order="asc"
        )

        assert result.total_count == 2
        assert [t.session_name for t in result.suspended_transactions] == ["Alpha", "Bravo"]
        assert result.suspended_transactions[0].item_count == 3

    def test_list_suspended_rejects_unknown_sort(self, db, seed):
        with pytest.raises(HTTPException) as exc:
            TransactionAssembler.list_suspended(db, sort_by="color")

        assert exc.value.status_code == 400

    def test_update_replaces_lines(self, db, seed, cashier):
        suspended = self.suspend(db, seed, cashier)
        new_cart = scanned_cart(db, seed["store"].id, "1234", adjust="-1.60")

        updated = TransactionAssembler.update_suspended(db, suspended.id, new_cart, "Renamed", None)

        assert updated.session_name == "Renamed"
        assert updated.notes is None
        assert [i.item_id for i in updated.items] == [seed["milk"].id]
        assert updated.total == Decimal("22.00")
        assert db.query(InvoiceDetailTax).count() == 0

    def test_complete_with_price_lock(self, db, seed, cashier):
        suspended = self.suspend(db, seed, cashier)
        seed["coffee_price"].retail_price = Decimal("200.00")
        db.commit()

        completed = TransactionAssembler.complete_suspended(db, suspended.id, policy="price_lock")

        assert completed.status == "completed"
        assert completed.total == suspended.total

    def test_complete_with_reprice(self, db, seed, cashier):
        suspended = self.suspend(db, seed, cashier)
        seed["coffee_price"].retail_price = Decimal("200.00")
        db.commit()

        completed = TransactionAssembler.complete_suspended(db, suspended.id, policy="reprice")

        coffee = next(i for i in completed.items if i.item_id == seed["coffee"].id)
        assert completed.status == "completed"
        assert coffee.total_price == Decimal("228.00")
        assert completed.total == Decimal("228.00") + Decimal("47.20")

    def test_cancel(self, db, seed, cashier):
        suspended = self.suspend(db, seed, cashier)

        cancelled = TransactionAssembler.cancel_suspended(db, suspended.id)

        assert cancelled.status == "cancelled"
        with pytest.raises(HTTPException):
            TransactionAssembler.resume(db, suspended.id)

    def test_delete_removes_everything(self, db, seed, cashier):
        suspended = self.suspend(db, seed, cashier)

        assert TransactionAssembler.delete_suspended(db, suspended.id) is True

        assert db.query(Invoice).count() == 0
        assert db.query(InvoiceDetail).count() == 0
        assert db.query(InvoiceDetailTax).count() == 0

    def test_completed_invoice_is_not_suspended(self, db, seed, cashier):
        completed = TransactionAssembler.checkout(db, plain_cart(seed["milk"].id, "1"), seed["store"].id, cashier.id)

        for operation in (TransactionAssembler.resume, TransactionAssembler.delete_suspended):
            with pytest.raises(HTTPException) as exc:
                operation(db, completed.id)
            assert exc.value.status_code == 404
            assert exc.value.detail == "Suspended transaction not found"
