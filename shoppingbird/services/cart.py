"""
Stateless cart transitions.

The cart is owned by the client: every operation takes the current cart
and returns the next one together with its totals.
"""

import logging
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from shoppingbird.core.config import settings
from shoppingbird.models.catalog import PriceEntry
from shoppingbird.schemas.tax import TaxCalculation
from shoppingbird.schemas.transaction import Cart, CartLine, CartResponse, TaxBreakdownItem
from shoppingbird.services.barcode_resolver import BarcodeResolver
from shoppingbird.services.tax_calculator import TaxCalculator

logger = logging.getLogger(__name__)


def breakdown_from_calculation(calculation: TaxCalculation):
    return [
        TaxBreakdownItem(
            tax_id=t.tax_id,
            tax_name=t.tax_name,
            percentage=t.percentage,
            amount=t.amount,
            effective_date=t.effective_date,
        )
        for t in calculation.applied_taxes
    ]


def line_from_price_entry(db: Session, entry: PriceEntry, quantity: int = 1) -> CartLine:
    """Build a priced cart line from a price entry and its current taxes"""
    places = entry.currency.decimal_places if entry.currency else settings.DEFAULT_DECIMAL_PLACES
    calculation = TaxCalculator.calculate_for_price_entry(db, entry, places)
    return CartLine(
        item_id=entry.item_id,
        price_list_id=entry.id,
        description=entry.item.description,
        barcode=entry.barcode,
        base_price=calculation.base_price,
        tax_amount=calculation.total_tax_amount,
        final_price=calculation.final_price,
        quantity=quantity,
        unit=entry.unit.unit if entry.unit else "each",
        currency_id=entry.currency_id,
        tax_breakdown=breakdown_from_calculation(calculation),
    )


def cart_totals(cart: Cart, message: Optional[str] = None) -> CartResponse:
    """Subtotal, tax, total (with adjustment) and item count of a cart"""
    subtotal = Decimal("0")
    total_tax = Decimal("0")
    gross = Decimal("0")
    item_count = 0
    for line in cart.lines:
        subtotal += line.base_price * line.quantity
        total_tax += line.tax_amount * line.quantity
        gross += line.final_price * line.quantity
        item_count += line.quantity

    return CartResponse(
        lines=cart.lines,
        adjust_amount=cart.adjust_amount,
        subtotal=subtotal,
        total_tax=total_tax,
        total=gross + cart.adjust_amount,
        item_count=item_count,
        message=message,
    )


class CartBuilder:
    """Cart operations used by the point-of-sale screen"""

    @staticmethod
    def add_line(
        db: Session,
        cart: Cart,
        barcode: str,
        store_id: int,
        preferred_currency: Optional[str] = None,
    ) -> CartResponse:
        """
        Resolve a scanned code and add one unit of the item to the cart.

        Scanning an item already in the cart increments its quantity.

        Raises:
            HTTPException: 404 for unknown or unpriced codes, 503 when the lookup failed
        """
        result = BarcodeResolver.search_with_variants(db, barcode, store_id, preferred_currency)
        if result.search_error:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=result.message
            )
        if not result.found:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=result.message
            )

        lines = [line.model_copy() for line in cart.lines]
        for line in lines:
            if line.item_id == result.item.item_id:
                line.quantity += 1
                new_cart = Cart(lines=lines, adjust_amount=cart.adjust_amount)
                return cart_totals(new_cart, message=f"{line.description} x{line.quantity}")

        entry = db.query(PriceEntry).filter(PriceEntry.id == result.item.price_list_id).first()
        new_line = line_from_price_entry(db, entry)
        lines.append(new_line)
        logger.debug(f"Added item {new_line.item_id} via {result.search_method} at store {store_id}")
        return cart_totals(Cart(lines=lines, adjust_amount=cart.adjust_amount), message=f"Added {new_line.description}")

    @staticmethod
    def update_quantity(cart: Cart, item_id: int, quantity: int) -> CartResponse:
        """Set the quantity of a line; zero or less removes it"""
        if not any(line.item_id == item_id for line in cart.lines):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Item {item_id} is not in the cart"
            )
        if quantity <= 0:
            return CartBuilder.remove_line(cart, item_id)

        lines = []
        for line in cart.lines:
            line = line.model_copy()
            if line.item_id == item_id:
                line.quantity = quantity
            lines.append(line)
        return cart_totals(Cart(lines=lines, adjust_amount=cart.adjust_amount))

    @staticmethod
    def remove_line(cart: Cart, item_id: int) -> CartResponse:
        lines = [line for line in cart.lines if line.item_id != item_id]
        return cart_totals(Cart(lines=lines, adjust_amount=cart.adjust_amount))
