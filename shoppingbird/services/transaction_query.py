"""
Read side of recorded transactions: filtered listing, summaries, CSV export
and plain-text receipts.
"""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import List, Optional

import pandas as pd
from fastapi import HTTPException, status
from sqlalchemy.orm import Session, joinedload, selectinload

from shoppingbird.models.invoice import Invoice, InvoiceDetail, InvoiceDetailTax, InvoiceStatus
from shoppingbird.models.store import Store
from shoppingbird.schemas.transaction import (
    StoreSales, StoreSummary, TaxBreakdownItem, TopSellingItem, TransactionFilter,
    TransactionItem, TransactionListResponse, TransactionOut, TransactionSummary,
    UserSummary,
)

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "date": Invoice.date,
    "total": Invoice.total,
    "number": Invoice.number,
    "store": Store.name,
    "status": Invoice.status,
}

CSV_COLUMNS = [
    "number", "date", "status", "store", "cashier", "item_id", "description",
    "quantity", "base_price", "tax_amount", "unit_price", "line_total",
    "adjust_amount", "invoice_total",
]


def serialize_invoice(invoice: Invoice) -> TransactionOut:
    """Invoice row -> response model with computed subtotal, tax and item count"""
    items = []
    subtotal = Decimal("0")
    total_tax = Decimal("0")
    item_count = 0

    for detail in invoice.details:
        items.append(TransactionItem(
            id=detail.id,
            item_id=detail.item_id,
            description=detail.item.description if detail.item else "",
            base_price=detail.base_price,
            tax_amount=detail.tax_amount,
            total_price=detail.total_price,
            quantity=detail.quantity,
            brand=detail.item.brand if detail.item else None,
            model=detail.item.model if detail.item else None,
            category=detail.item.category if detail.item else None,
            tax_breakdown=[
                TaxBreakdownItem(
                    tax_id=t.tax_type_id,
                    tax_name=t.tax_type.name if t.tax_type else "",
                    percentage=t.tax_percentage,
                    amount=t.tax_amount,
                )
                for t in detail.taxes
            ],
        ))
        subtotal += Decimal(detail.base_price) * detail.quantity
        total_tax += Decimal(detail.tax_amount) * detail.quantity
        item_count += detail.quantity

    return TransactionOut(
        id=invoice.id,
        number=invoice.number,
        date=invoice.date,
        status=invoice.status,
        adjust_amount=invoice.adjust_amount,
        total=invoice.total,
        created_at=invoice.created_at,
        updated_at=invoice.updated_at,
        suspended_at=invoice.suspended_at,
        session_name=invoice.session_name,
        notes=invoice.notes,
        store=StoreSummary(id=invoice.store.id, name=invoice.store.name),
        user=UserSummary(id=invoice.user.id, full_name=invoice.user.full_name, username=invoice.user.username),
        items=items,
        subtotal=subtotal,
        total_tax=total_tax,
        item_count=item_count,
    )


class TransactionQueryService:
    """Repository for reading recorded transactions"""

    @staticmethod
    def _base_query(db: Session):
        return db.query(Invoice).join(Store, Invoice.store_id == Store.id).options(
            joinedload(Invoice.store),
            joinedload(Invoice.user),
            selectinload(Invoice.details).joinedload(InvoiceDetail.item),
            selectinload(Invoice.details).selectinload(InvoiceDetail.taxes).joinedload(InvoiceDetailTax.tax_type),
        )

    @staticmethod
    def _apply_filters(query, filters: Optional[TransactionFilter]):
        if not filters:
            return query
        if filters.date_from:
            query = query.filter(Invoice.date >= filters.date_from)
        if filters.date_to:
            query = query.filter(Invoice.date <= filters.date_to)
        if filters.store_id:
            query = query.filter(Invoice.store_id == filters.store_id)
        if filters.user_id:
            query = query.filter(Invoice.user_id == filters.user_id)
        if filters.min_amount is not None:
            query = query.filter(Invoice.total >= filters.min_amount)
        if filters.max_amount is not None:
            query = query.filter(Invoice.total <= filters.max_amount)
        if filters.search:
            query = query.filter(Invoice.number.ilike(f"%{filters.search}%"))
        if filters.status:
            query = query.filter(Invoice.status == filters.status)
        return query

    @staticmethod
    def get_transactions(
        db: Session,
        filters: Optional[TransactionFilter] = None,
        sort_by: str = "date",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 20,
    ) -> TransactionListResponse:
        """
        List transactions with filters, sorting and pagination.

        Args:
            sort_by: date, total, number, store or status
            sort_order: asc or desc
            page: 1-based page number
        """
        if sort_by not in SORT_COLUMNS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid sort field '{sort_by}'. Use one of: {', '.join(SORT_COLUMNS)}"
            )

        query = TransactionQueryService._apply_filters(TransactionQueryService._base_query(db), filters)
        total_count = query.count()

        column = SORT_COLUMNS[sort_by]
        order = column.asc() if sort_order == "asc" else column.desc()
        invoices = query.order_by(order, Invoice.id.desc()).offset((page - 1) * limit).limit(limit).all()

        return TransactionListResponse(
            transactions=[serialize_invoice(inv) for inv in invoices],
            total_count=total_count,
            page=page,
            limit=limit,
        )

    @staticmethod
    def get_transaction_by_id(db: Session, invoice_id: int) -> TransactionOut:
        invoice = TransactionQueryService._base_query(db).filter(Invoice.id == invoice_id).first()
        if not invoice:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Transaction with ID {invoice_id} not found"
            )
        return serialize_invoice(invoice)

    @staticmethod
    def _fetch_all(db: Session, filters: Optional[TransactionFilter]) -> List[Invoice]:
        query = TransactionQueryService._apply_filters(TransactionQueryService._base_query(db), filters)
        return query.order_by(Invoice.date, Invoice.id).all()

    @staticmethod
    def get_summary(db: Session, filters: Optional[TransactionFilter] = None) -> TransactionSummary:
        """
        Aggregate sales figures in memory.

        Only completed transactions count unless a status filter is given.
        """
        filters = filters.model_copy() if filters else TransactionFilter()
        if not filters.status:
            filters.status = InvoiceStatus.COMPLETED.value

        invoices = TransactionQueryService._fetch_all(db, filters)

        total_revenue = Decimal("0")
        total_items = 0
        items = {}
        stores = {}
        by_day = defaultdict(Decimal)

        for invoice in invoices:
            invoice_total = Decimal(invoice.total)
            total_revenue += invoice_total
            by_day[invoice.date.isoformat()] += invoice_total

            store = stores.setdefault(invoice.store_id, {
                "store_name": invoice.store.name, "transaction_count": 0, "revenue": Decimal("0"),
            })
            store["transaction_count"] += 1
            store["revenue"] += invoice_total

            for detail in invoice.details:
                total_items += detail.quantity
                entry = items.setdefault(detail.item_id, {
                    "description": detail.item.description if detail.item else "",
                    "quantity_sold": 0,
                    "revenue": Decimal("0"),
                })
                entry["quantity_sold"] += detail.quantity
                entry["revenue"] += Decimal(detail.total_price) * detail.quantity

        top_items = sorted(items.items(), key=lambda kv: kv[1]["quantity_sold"], reverse=True)[:10]
        store_ranking = sorted(stores.items(), key=lambda kv: kv[1]["revenue"], reverse=True)
        count = len(invoices)

        return TransactionSummary(
            total_transactions=count,
            total_revenue=total_revenue,
            total_items_sold=total_items,
            average_transaction_value=(total_revenue / count) if count else Decimal("0"),
            top_selling_items=[TopSellingItem(item_id=item_id, **data) for item_id, data in top_items],
            sales_by_store=[StoreSales(store_id=store_id, **data) for store_id, data in store_ranking],
            revenue_by_day=dict(by_day),
        )

    @staticmethod
    def export_csv(db: Session, filters: Optional[TransactionFilter] = None) -> str:
        """One CSV row per invoice line (invoices without lines get one empty-line row)"""
        rows = []
        for invoice in TransactionQueryService._fetch_all(db, filters):
            header = {
                "number": invoice.number,
                "date": invoice.date.isoformat(),
                "status": invoice.status,
                "store": invoice.store.name,
                "cashier": invoice.user.full_name or invoice.user.username,
                "adjust_amount": Decimal(invoice.adjust_amount),
                "invoice_total": Decimal(invoice.total),
            }
            if not invoice.details:
                rows.append(header)
                continue
            for detail in invoice.details:
                rows.append({
                    **header,
                    "item_id": detail.item_id,
                    "description": detail.item.description if detail.item else "",
                    "quantity": detail.quantity,
                    "base_price": Decimal(detail.base_price),
                    "tax_amount": Decimal(detail.tax_amount),
                    "unit_price": Decimal(detail.total_price),
                    "line_total": Decimal(detail.total_price) * detail.quantity,
                })

        df = pd.DataFrame(rows, columns=CSV_COLUMNS)
        logger.info(f"Exported {len(df)} transaction rows to CSV")
        return df.to_csv(index=False)

    @staticmethod
    def generate_receipt_text(transaction: TransactionOut, currency_symbol: str = "$", width: int = 40) -> str:
        """Fixed-width plain text receipt"""

        def money(value) -> str:
            return f"{currency_symbol}{Decimal(value):,.2f}"

        def row(left: str, right: str) -> str:
            space = max(width - len(left) - len(right), 1)
            return f"{left}{' ' * space}{right}"

        lines = [
            transaction.store.name.center(width),
            "=" * width,
            f"Invoice: {transaction.number}",
            f"Date: {transaction.date.isoformat()}",
            f"Cashier: {transaction.user.full_name or transaction.user.username}",
            "-" * width,
        ]
        for item in transaction.items:
            lines.append(item.description[:width])
            lines.append(row(f"  {item.quantity} x {money(item.total_price)}", money(item.total_price * item.quantity)))
        lines.append("-" * width)
        lines.append(row("Subtotal", money(transaction.subtotal)))
        lines.append(row("Tax", money(transaction.total_tax)))
        if transaction.adjust_amount:
            lines.append(row("Adjustment", money(transaction.adjust_amount)))
        lines.append(row("TOTAL", money(transaction.total)))
        lines.append("=" * width)
        lines.append(f"Items: {transaction.item_count}")
        return "\n".join(lines) + "\n"
