from decimal import Decimal

import pytest
from fastapi import HTTPException

from shoppingbird.schemas.transaction import Cart, CartLine
from shoppingbird.services.cart import CartBuilder, cart_totals


def make_line(item_id, base, tax="0", quantity=1):
    base = Decimal(base)
    tax = Decimal(tax)
    return CartLine(
        item_id=item_id,
        description=f"Item {item_id}",
        base_price=base,
        tax_amount=tax,
        final_price=base + tax,
        quantity=quantity,
    )


def test_scanning_twice_increments_quantity(db, seed):
    store_id = seed["store"].id

    cart = CartBuilder.add_line(db, Cart(), "1234", store_id)
    cart = CartBuilder.add_line(db, Cart(lines=cart.lines), "1234", store_id)

    assert len(cart.lines) == 1
    assert cart.lines[0].quantity == 2
    assert cart.item_count == 2
    assert cart.total == Decimal("47.20")


def test_scanned_line_carries_taxes_and_unit(db, seed):
    cart = CartBuilder.add_line(db, Cart(), "C-100", seed["store"].id)

    line = cart.lines[0]
    assert line.unit == "kg"
    assert line.barcode == "C-100"
    assert line.base_price == Decimal("100")
    assert line.tax_amount == Decimal("14.00")
    assert line.final_price == Decimal("114.00")
    assert [t.tax_name for t in line.tax_breakdown] == ["State Tax", "City Tax"]
    assert cart.subtotal == Decimal("100")
    assert cart.total_tax == Decimal("14.00")


def test_unknown_barcode(db, seed):
    with pytest.raises(HTTPException) as exc:
        CartBuilder.add_line(db, Cart(), "0000", seed["store"].id)

    assert exc.value.status_code == 404
    assert exc.value.detail == 'No item found with barcode "0000"'


def test_unpriced_barcode(db, seed):
    with pytest.raises(HTTPException) as exc:
        CartBuilder.add_line(db, Cart(), "0098765432109", seed["store"].id)

    assert exc.value.status_code == 404
    assert "no price set for this store" in exc.value.detail


def test_update_quantity():
    cart = Cart(lines=[make_line(1, "10"), make_line(2, "5")])

    result = CartBuilder.update_quantity(cart, 2, 4)

    assert [line.quantity for line in result.lines] == [1, 4]
    assert result.total == Decimal("30")
    # the input cart is untouched
    assert cart.lines[1].quantity == 1


@pytest.mark.parametrize("quantity", [0, -3])
def test_non_positive_quantity_removes_line(quantity):
    cart = Cart(lines=[make_line(1, "10"), make_line(2, "5")])

    result = CartBuilder.update_quantity(cart, 1, quantity)

    assert [line.item_id for line in result.lines] == [2]


def test_update_quantity_of_missing_item():
    with pytest.raises(HTTPException) as exc:
        CartBuilder.update_quantity(Cart(lines=[make_line(1, "10")]), 99, 2)

    assert exc.value.status_code == 404


def test_totals_include_adjustment():
    cart = Cart(
        lines=[make_line(1, "50", "3", quantity=2)],
        adjust_amount=Decimal("-5"),
    )

    totals = cart_totals(cart)

    assert totals.subtotal == Decimal("100")
    assert totals.total_tax == Decimal("6")
    assert totals.total == Decimal("101")
    assert totals.item_count == 2
