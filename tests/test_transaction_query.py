import io
from datetime import date, timedelta
from decimal import Decimal

import pandas as pd
import pytest
from fastapi import HTTPException

from shoppingbird.models import Invoice, User
from shoppingbird.schemas.transaction import Cart, CartLine, TransactionFilter
from shoppingbird.services.transaction_query import TransactionQueryService
from shoppingbird.services.transaction_service import TransactionAssembler


def cart_of(*lines, adjust="0"):
    return Cart(
        lines=[
            CartLine(
                item_id=item_id,
                description="line",
                base_price=Decimal(price),
                final_price=Decimal(price),
                quantity=quantity,
            )
            for item_id, price, quantity in lines
        ],
        adjust_amount=Decimal(adjust),
    )


@pytest.fixture
def history(db, seed, cashier):
    """Three completed sales over two stores and days, plus one suspended sale"""
    other_user = User(username="second", email="second@shoppingbird.test", full_name="Sam Second", password_hash="x")
    db.add(other_user)
    db.commit()

    milk, coffee = seed["milk"].id, seed["coffee"].id
    store, harbor = seed["store"].id, seed["other_store"].id

    first = TransactionAssembler.checkout(db, cart_of((milk, "10", 3)), store, cashier.id)
    second = TransactionAssembler.checkout(db, cart_of((coffee, "100", 1), (milk, "10", 1)), harbor, other_user.id)
    third = TransactionAssembler.checkout(db, cart_of((milk, "10", 2), adjust="-2"), store, cashier.id)
    TransactionAssembler.suspend(db, cart_of((coffee, "100", 5)), store, cashier.id, "Parked")

    yesterday = date.today() - timedelta(days=1)
    db.query(Invoice).filter(Invoice.id == first.id).update({Invoice.date: yesterday})
    db.commit()

    return {"first": first, "second": second, "third": third, "other_user": other_user, "yesterday": yesterday}


def test_lists_everything_by_default(db, history):
    result = TransactionQueryService.get_transactions(db)

    assert result.total_count == 4
    assert result.page == 1


def test_filters(db, seed, history):
    by_store = TransactionQueryService.get_transactions(db, TransactionFilter(store_id=seed["other_store"].id))
    by_user = TransactionQueryService.get_transactions(db, TransactionFilter(user_id=history["other_user"].id))
    by_date = TransactionQueryService.get_transactions(db, TransactionFilter(date_to=history["yesterday"]))
    by_amount = TransactionQueryService.get_transactions(
        db, TransactionFilter(min_amount=Decimal("18"), max_amount=Decimal("100"), status="completed")
    )
    by_number = TransactionQueryService.get_transactions(db, TransactionFilter(search=history["third"].number[-4:]))

    assert [t.id for t in by_store.transactions] == [history["second"].id]
    assert [t.id for t in by_user.transactions] == [history["second"].id]
    assert [t.id for t in by_date.transactions] == [history["first"].id]
    assert {t.total for t in by_amount.transactions} == {Decimal("18"), Decimal("30")}
    assert history["third"].id in [t.id for t in by_number.transactions]


def test_sort_and_pagination(db, history):
    page_one = TransactionQueryService.get_transactions(db, sort_by="total", sort_order="asc", page=1, limit=2)
    page_two = TransactionQueryService.get_transactions(db, sort_by="total", sort_order="asc", page=2, limit=2)

    totals = [t.total for t in page_one.transactions + page_two.transactions]
    assert totals == sorted(totals)
    assert page_one.total_count == 4
    assert len(page_two.transactions) == 2


def test_invalid_sort_field(db, history):
    with pytest.raises(HTTPException) as exc:
        TransactionQueryService.get_transactions(db, sort_by="cashier")

    assert exc.value.status_code == 400


def test_get_by_id(db, history):
    found = TransactionQueryService.get_transaction_by_id(db, history["second"].id)

    assert found.store.name == "Harbor"
    assert found.user.full_name == "Sam Second"
    assert found.item_count == 2
    assert found.subtotal == Decimal("110")

    with pytest.raises(HTTPException) as exc:
        TransactionQueryService.get_transaction_by_id(db, 12345)
    assert exc.value.status_code == 404


def test_summary_counts_completed_sales_only(db, seed, history):
    summary = TransactionQueryService.get_summary(db)

    assert summary.total_transactions == 3
    assert summary.total_revenue == Decimal("158")
    assert summary.total_items_sold == 7
    assert summary.average_transaction_value.quantize(Decimal("0.01")) == Decimal("52.67")

    top = summary.top_selling_items[0]
    assert top.item_id == seed["milk"].id
    assert top.quantity_sold == 6
    assert top.revenue == Decimal("60")

    assert [s.store_name for s in summary.sales_by_store] == ["Harbor", "Main Street"]
    assert summary.sales_by_store[1].transaction_count == 2
    assert summary.revenue_by_day[history["yesterday"].isoformat()] == Decimal("30")


def test_summary_of_nothing(db, seed):
    summary = TransactionQueryService.get_summary(db)

    assert summary.total_transactions == 0
    assert summary.average_transaction_value == 0
    assert summary.top_selling_items == []


def test_export_csv(db, history):
    content = TransactionQueryService.export_csv(db, TransactionFilter(status="completed"))

    df = pd.read_csv(io.StringIO(content))
    assert len(df) == 4
    assert set(df["number"]) == {history["first"].number, history["second"].number, history["third"].number}
    assert df["quantity"].sum() == 7
    assert list(df.columns)[:3] == ["number", "date", "status"]


def test_receipt_text(db, history):
    transaction = TransactionQueryService.get_transaction_by_id(db, history["third"].id)

    receipt = TransactionQueryService.generate_receipt_text(transaction, currency_symbol="$")

    assert transaction.number in receipt
    assert "Main Street" in receipt
    assert "2 x $10.00" in receipt
    assert "Adjustment" in receipt
    lines = receipt.splitlines()
    assert lines[-2].startswith("=")
    assert "TOTAL" in receipt and "$18.00" in receipt
