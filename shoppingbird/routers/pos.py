"""
Point-of-sale API endpoints: barcode search, cart transitions, checkout and
suspended transactions.

The cart lives on the client. Cart endpoints receive the current cart and
return the next one with its totals.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shoppingbird.core.database import get_db
from shoppingbird.core.auth import get_current_user
from shoppingbird.models.user import User
from shoppingbird.services.barcode_resolver import BarcodeResolver
from shoppingbird.services.cart import CartBuilder, cart_totals
from shoppingbird.services.transaction_service import TransactionAssembler
from shoppingbird.schemas.catalog import BarcodeSearchResult
from shoppingbird.schemas.store import SuccessResponse
from shoppingbird.schemas.transaction import (
    Cart, CartResponse, ScanRequest, QuantityUpdateRequest, RemoveLineRequest,
    CheckoutRequest, SuspendRequest, SuspendedUpdateRequest,
    TransactionOut, SuspendedListResponse, ResumeResponse,
)

router = APIRouter(prefix="/pos", tags=["Point of Sale"])


# ============================================================================
# BARCODE SEARCH
# ============================================================================

@router.get("/search", response_model=BarcodeSearchResult)
def search_barcode(
    barcode: str = Query(..., description="Scanned or typed code"),
    store_id: int = Query(..., description="Store whose prices apply"),
    preferred_currency: Optional[str] = Query(None, description="Currency code to prefer"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Resolve a code to a priced item at a store.

    UPC-A / EAN-13 variants are tried automatically. Unknown and unpriced
    codes come back with found=false and a message, not as errors.
    """
    return BarcodeResolver.search_with_variants(db, barcode, store_id, preferred_currency)


# ============================================================================
# CART
# ============================================================================

@router.post("/cart/scan", response_model=CartResponse)
def scan_into_cart(
    request: ScanRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Add one unit of the scanned item; scanning it again increments the quantity.

    Raises:
        HTTPException 404: Unknown code, or item without a price at this store
        HTTPException 503: The lookup failed
    """
    return CartBuilder.add_line(db, request.cart, request.barcode, request.store_id, request.preferred_currency)


@router.post("/cart/quantity", response_model=CartResponse)
def update_cart_quantity(request: QuantityUpdateRequest, current_user: User = Depends(get_current_user)):
    """Set a line's quantity; zero or less removes the line."""
    return CartBuilder.update_quantity(request.cart, request.item_id, request.quantity)


@router.post("/cart/remove", response_model=CartResponse)
def remove_cart_line(request: RemoveLineRequest, current_user: User = Depends(get_current_user)):
    return CartBuilder.remove_line(request.cart, request.item_id)


@router.post("/cart/totals", response_model=CartResponse)
def get_cart_totals(cart: Cart, current_user: User = Depends(get_current_user)):
    return cart_totals(cart)


# ============================================================================
# CHECKOUT
# ============================================================================

@router.post("/checkout", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
def checkout(
    request: CheckoutRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Record the cart as a completed sale.

    total = sum(final unit price x quantity) + adjust_amount

    Raises:
        HTTPException 400: Empty cart
        HTTPException 404: Unknown store
        HTTPException 500: Nothing was recorded
    """
    return TransactionAssembler.checkout(db, request.cart, request.store_id, current_user.id)


# ============================================================================
# SUSPENDED TRANSACTIONS
# ============================================================================

@router.post("/suspend", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
def suspend_transaction(
    request: SuspendRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Park the cart under a session name so it can be resumed later."""
    return TransactionAssembler.suspend(
        db, request.cart, request.store_id, current_user.id, request.session_name, request.notes
    )


@router.get("/suspended", response_model=SuspendedListResponse)
def list_suspended_transactions(
    store_id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort_by: str = Query("suspended_at", description="suspended_at, session_name or total"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return TransactionAssembler.list_suspended(db, store_id, user_id, page, limit, sort_by, sort_order)


@router.get("/suspended/{invoice_id}", response_model=ResumeResponse)
def resume_suspended_transaction(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Rebuild the cart of a suspended transaction with the amounts recorded at suspension."""
    return TransactionAssembler.resume(db, invoice_id)


@router.put("/suspended/{invoice_id}", response_model=TransactionOut)
def update_suspended_transaction(
    invoice_id: int,
    request: SuspendedUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Replace the lines of a suspended transaction and update its name and notes."""
    return TransactionAssembler.update_suspended(db, invoice_id, request.cart, request.session_name, request.notes)


@router.post("/suspended/{invoice_id}/complete", response_model=TransactionOut)
def complete_suspended_transaction(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return TransactionAssembler.complete_suspended(db, invoice_id)


@router.post("/suspended/{invoice_id}/cancel", response_model=TransactionOut)
def cancel_suspended_transaction(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return TransactionAssembler.cancel_suspended(db, invoice_id)


@router.delete("/suspended/{invoice_id}", response_model=SuccessResponse)
def delete_suspended_transaction(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    TransactionAssembler.delete_suspended(db, invoice_id)
    return SuccessResponse(message="Suspended transaction deleted")
