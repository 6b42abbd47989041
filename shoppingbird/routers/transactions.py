"""
API Router for transaction history, sales summary, CSV export and receipts.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from shoppingbird.core.database import get_db
from shoppingbird.core.auth import get_current_user
from shoppingbird.models.user import User
from shoppingbird.services.transaction_query import TransactionQueryService
from shoppingbird.schemas.transaction import (
    TransactionFilter, TransactionListResponse, TransactionOut, TransactionSummary, ReceiptResponse,
)

router = APIRouter(prefix="/transactions", tags=["Transactions"])


def get_transaction_filter(
    date_from: Optional[date] = Query(None, description="First day (inclusive)"),
    date_to: Optional[date] = Query(None, description="Last day (inclusive)"),
    store_id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None),
    min_amount: Optional[Decimal] = Query(None),
    max_amount: Optional[Decimal] = Query(None),
    search: Optional[str] = Query(None, description="Part of the invoice number"),
    status: Optional[str] = Query(None, description="suspended, completed, cancelled or refunded"),
) -> TransactionFilter:
    return TransactionFilter(
        date_from=date_from,
        date_to=date_to,
        store_id=store_id,
        user_id=user_id,
        min_amount=min_amount,
        max_amount=max_amount,
        search=search,
        status=status,
    )


@router.get("/", response_model=TransactionListResponse)
def list_transactions(
    filters: TransactionFilter = Depends(get_transaction_filter),
    sort_by: str = Query("date", description="date, total, number, store or status"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    List transactions with filters, sorting and pagination.

    Each transaction carries its store, cashier, lines with tax breakdown
    and computed subtotal, total tax and item count.
    """
    return TransactionQueryService.get_transactions(db, filters, sort_by, sort_order, page, limit)


@router.get("/summary", response_model=TransactionSummary)
def get_transaction_summary(
    filters: TransactionFilter = Depends(get_transaction_filter),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Sales totals, top 10 items, store ranking and revenue by day (completed sales unless status is given)."""
    return TransactionQueryService.get_summary(db, filters)


@router.get("/export")
def export_transactions(
    filters: TransactionFilter = Depends(get_transaction_filter),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Download matching transactions as CSV, one row per line item."""
    content = TransactionQueryService.export_csv(db, filters)
    filename = f"transactions_{datetime.now():%Y%m%d_%H%M%S}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/{invoice_id}", response_model=TransactionOut)
def get_transaction(invoice_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return TransactionQueryService.get_transaction_by_id(db, invoice_id)


@router.get("/{invoice_id}/receipt", response_model=ReceiptResponse)
def get_receipt(
    invoice_id: int,
    currency_symbol: str = Query("$", max_length=10),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    transaction = TransactionQueryService.get_transaction_by_id(db, invoice_id)
    return ReceiptResponse(
        number=transaction.number,
        receipt=TransactionQueryService.generate_receipt_text(transaction, currency_symbol),
    )
