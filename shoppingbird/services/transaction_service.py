"""
Transaction assembler: turns a cart into invoices and manages suspended
(parked) transactions.

Every multi-row write happens in one session transaction. Rows are flushed
to obtain ids and committed once at the end; any database error rolls the
whole invoice back.
"""

import logging
import secrets
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from shoppingbird.core.config import settings
from shoppingbird.models.catalog import CatalogItem, PriceEntry
from shoppingbird.models.invoice import Invoice, InvoiceDetail, InvoiceDetailTax, InvoiceStatus
from shoppingbird.models.store import Store
from shoppingbird.schemas.transaction import (
    Cart, CartLine, ResumeResponse, StoreSummary, SuspendedListResponse,
    SuspendedTransactionOut, TaxBreakdownItem, TransactionOut, UserSummary,
)
from shoppingbird.services.cart import cart_totals, line_from_price_entry
from shoppingbird.services.tax_calculator import round_money
from shoppingbird.services.transaction_query import serialize_invoice

logger = logging.getLogger(__name__)

SUSPENDED_SORT_COLUMNS = {
    "suspended_at": Invoice.suspended_at,
    "session_name": Invoice.session_name,
    "total": Invoice.total,
}


def generate_invoice_number(now: Optional[datetime] = None) -> str:
    """INV-YYYYMMDD-HHMMSS-XXXX with a random hex suffix"""
    now = now or datetime.now()
    return f"INV-{now:%Y%m%d-%H%M%S}-{secrets.token_hex(2).upper()}"


def cart_total(cart: Cart) -> Decimal:
    return sum((line.final_price * line.quantity for line in cart.lines), Decimal("0")) + cart.adjust_amount


class TransactionAssembler:
    """Checkout, suspend, resume and the rest of the suspended lifecycle"""

    @staticmethod
    def _load(db: Session, invoice_id: int) -> Optional[Invoice]:
        return db.query(Invoice).options(
            joinedload(Invoice.store),
            joinedload(Invoice.user),
            selectinload(Invoice.details).selectinload(InvoiceDetail.taxes),
        ).filter(Invoice.id == invoice_id).populate_existing().first()

    @staticmethod
    def _get_suspended(db: Session, invoice_id: int) -> Invoice:
        invoice = TransactionAssembler._load(db, invoice_id)
        if not invoice or invoice.status != InvoiceStatus.SUSPENDED.value:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Suspended transaction not found"
            )
        return invoice

    @staticmethod
    def _validate(db: Session, cart: Cart, store_id: int):
        if not cart.lines:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cart is empty"
            )
        if not db.query(Store).filter(Store.id == store_id).first():
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Store with ID {store_id} not found"
            )
        TransactionAssembler._validate_lines(db, cart.lines)

    @staticmethod
    def _validate_lines(db: Session, lines):
        """
        Reject lines the server would not have priced that way.

        Raises:
            HTTPException 400: Negative price, final price other than base + tax,
                or a tax breakdown that does not add up to the line's tax
            HTTPException 404: Unknown item
        """
        for line in lines:
            if line.base_price < 0 or line.tax_amount < 0:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Line for item {line.item_id} has a negative price"
                )
            if round_money(line.base_price + line.tax_amount) != round_money(line.final_price):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Line for item {line.item_id}: final price must equal base price plus tax"
                )
            breakdown_total = sum((t.amount for t in line.tax_breakdown), Decimal("0"))
            if round_money(breakdown_total) != round_money(line.tax_amount):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Line for item {line.item_id}: tax breakdown does not add up to the tax amount"
                )

        item_ids = {line.item_id for line in lines}
        found = {row.id for row in db.query(CatalogItem.id).filter(CatalogItem.id.in_(item_ids)).all()}
        missing = sorted(item_ids - found)
        if missing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Item with ID {missing[0]} not found"
            )

    @staticmethod
    def _write_lines(db: Session, invoice: Invoice, lines):
        """Insert detail rows, then their tax rows (amount = per-unit tax x quantity)"""
        details = []
        for line in lines:
            detail = InvoiceDetail(
                invoice_id=invoice.id,
                item_id=line.item_id,
                price=line.final_price,
                base_price=line.base_price,
                tax_amount=line.tax_amount,
                total_price=line.final_price,
                quantity=line.quantity,
            )
            db.add(detail)
            details.append((detail, line))
        db.flush()

        for detail, line in details:
            for tax in line.tax_breakdown:
                db.add(InvoiceDetailTax(
                    invoice_detail_id=detail.id,
                    tax_type_id=tax.tax_id,
                    tax_percentage=tax.percentage,
                    tax_amount=tax.amount * line.quantity,
                ))
        db.flush()

    @staticmethod
    def _create(
        db: Session,
        cart: Cart,
        store_id: int,
        user_id: int,
        invoice_status: InvoiceStatus,
        session_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> TransactionOut:
        TransactionAssembler._validate(db, cart, store_id)
        action = "checkout" if invoice_status == InvoiceStatus.COMPLETED else "suspend transaction"

        try:
            invoice = Invoice(
                number=generate_invoice_number(),
                store_id=store_id,
                user_id=user_id,
                date=date.today(),
                adjust_amount=cart.adjust_amount,
                total=cart_total(cart),
                status=invoice_status.value,
            )
            if invoice_status == InvoiceStatus.SUSPENDED:
                invoice.suspended_at = datetime.now(timezone.utc)
                invoice.session_name = session_name
                invoice.notes = notes
            db.add(invoice)
            db.flush()

            TransactionAssembler._write_lines(db, invoice, cart.lines)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to {action} at store {store_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to {action}: {str(e)}"
            )

        logger.info(f"Invoice {invoice.number} recorded as {invoice_status.value} (total {invoice.total})")
        return serialize_invoice(TransactionAssembler._load(db, invoice.id))

    @staticmethod
    def checkout(db: Session, cart: Cart, store_id: int, user_id: int) -> TransactionOut:
        """
        Persist the cart as a completed invoice.

        Args:
            db: Database session
            cart: Lines and adjustment to record
            store_id: Store where the sale happened
            user_id: Authenticated cashier

        Returns:
            The recorded transaction

        Raises:
            HTTPException: 400 on an empty cart, 404 for an unknown store,
                500 when the invoice could not be written (nothing is kept)
        """
        return TransactionAssembler._create(db, cart, store_id, user_id, InvoiceStatus.COMPLETED)

    @staticmethod
    def suspend(
        db: Session,
        cart: Cart,
        store_id: int,
        user_id: int,
        session_name: str,
        notes: Optional[str] = None,
    ) -> TransactionOut:
        """Persist the cart as a suspended invoice that can be resumed later"""
        return TransactionAssembler._create(
            db, cart, store_id, user_id, InvoiceStatus.SUSPENDED, session_name=session_name, notes=notes
        )

    @staticmethod
    def list_suspended(
        db: Session,
        store_id: Optional[int] = None,
        user_id: Optional[int] = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "suspended_at",
        sort_order: str = "desc",
    ) -> SuspendedListResponse:
        if sort_by not in SUSPENDED_SORT_COLUMNS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid sort field '{sort_by}'. Use one of: {', '.join(SUSPENDED_SORT_COLUMNS)}"
            )

        query = db.query(Invoice).options(
            joinedload(Invoice.store),
            joinedload(Invoice.user),
            selectinload(Invoice.details),
        ).filter(Invoice.status == InvoiceStatus.SUSPENDED.value)
        if store_id:
            query = query.filter(Invoice.store_id == store_id)
        if user_id:
            query = query.filter(Invoice.user_id == user_id)

        total_count = query.count()
        column = SUSPENDED_SORT_COLUMNS[sort_by]
        order = column.asc() if sort_order == "asc" else column.desc()
        invoices = query.order_by(order, Invoice.id.desc()).offset((page - 1) * limit).limit(limit).all()

        return SuspendedListResponse(
            suspended_transactions=[
                SuspendedTransactionOut(
                    id=inv.id,
                    number=inv.number,
                    session_name=inv.session_name,
                    notes=inv.notes,
                    total=inv.total,
                    adjust_amount=inv.adjust_amount,
                    suspended_at=inv.suspended_at,
                    store=StoreSummary(id=inv.store.id, name=inv.store.name),
                    user=UserSummary(id=inv.user.id, full_name=inv.user.full_name, username=inv.user.username),
                    item_count=sum(d.quantity for d in inv.details),
                )
                for inv in invoices
            ],
            total_count=total_count,
            page=page,
            limit=limit,
        )

    @staticmethod
    def _current_entry(db: Session, item_id: int, store_id: int) -> Optional[PriceEntry]:
        return db.query(PriceEntry).filter(
            PriceEntry.item_id == item_id,
            PriceEntry.store_id == store_id,
            PriceEntry.is_active.is_(True),
        ).order_by(PriceEntry.id).first()

    @staticmethod
    def resume(db: Session, invoice_id: int) -> ResumeResponse:
        """
        Rebuild a cart from a suspended invoice.

        Amounts come from the recorded lines, never from current prices.
        Barcode and unit label come from the item's current price entry at
        the store ("" and "each" when there is none).
        """
        invoice = TransactionAssembler._get_suspended(db, invoice_id)

        lines = []
        for detail in invoice.details:
            entry = TransactionAssembler._current_entry(db, detail.item_id, invoice.store_id)
            quantity = detail.quantity or 1
            lines.append(CartLine(
                item_id=detail.item_id,
                price_list_id=entry.id if entry else 0,
                description=detail.item.description if detail.item else "",
                barcode=entry.barcode if entry else "",
                base_price=detail.base_price,
                tax_amount=detail.tax_amount,
                final_price=detail.price,
                quantity=quantity,
                unit=entry.unit.unit if entry and entry.unit else "each",
                currency_id=entry.currency_id if entry else None,
                tax_breakdown=[
                    TaxBreakdownItem(
                        tax_id=t.tax_type_id,
                        tax_name=t.tax_type.name if t.tax_type else "",
                        percentage=t.tax_percentage,
                        amount=Decimal(t.tax_amount) / quantity,
                    )
                    for t in detail.taxes
                ],
            ))

        cart = Cart(lines=lines, adjust_amount=invoice.adjust_amount)
        logger.info(f"Resumed suspended invoice {invoice.number}")
        return ResumeResponse(
            transaction=serialize_invoice(invoice),
            cart=cart_totals(cart),
        )

    @staticmethod
    def update_suspended(
        db: Session,
        invoice_id: int,
        cart: Cart,
        session_name: str,
        notes: Optional[str] = None,
    ) -> TransactionOut:
        """Replace every line of a suspended invoice and update its header"""
        invoice = TransactionAssembler._get_suspended(db, invoice_id)
        if not cart.lines:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cart is empty"
            )
        TransactionAssembler._validate_lines(db, cart.lines)

        try:
            invoice.details.clear()
            db.flush()
            TransactionAssembler._write_lines(db, invoice, cart.lines)
            invoice.adjust_amount = cart.adjust_amount
            invoice.total = cart_total(cart)
            invoice.session_name = session_name
            invoice.notes = notes
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update suspended invoice {invoice_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to update suspended transaction: {str(e)}"
            )

        return serialize_invoice(TransactionAssembler._load(db, invoice_id))

    @staticmethod
    def complete_suspended(db: Session, invoice_id: int, policy: Optional[str] = None) -> TransactionOut:
        """
        Complete a suspended invoice.

        price_lock keeps the amounts recorded at suspension; reprice recomputes
        every line from the item's current price entry and tax rates.
        """
        policy = policy or settings.SUSPENDED_COMPLETION_POLICY
        invoice = TransactionAssembler._get_suspended(db, invoice_id)

        if policy == "reprice":
            lines = []
            for detail in invoice.details:
                entry = TransactionAssembler._current_entry(db, detail.item_id, invoice.store_id)
                if not entry:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Item {detail.item_id} no longer has an active price at this store"
                    )
                lines.append(line_from_price_entry(db, entry, quantity=detail.quantity))
            repriced = Cart(lines=lines, adjust_amount=invoice.adjust_amount)
        elif policy != "price_lock":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown completion policy '{policy}'"
            )

        try:
            if policy == "reprice":
                invoice.details.clear()
                db.flush()
                TransactionAssembler._write_lines(db, invoice, repriced.lines)
                invoice.total = cart_total(repriced)
            invoice.status = InvoiceStatus.COMPLETED.value
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to complete suspended invoice {invoice_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to complete suspended transaction: {str(e)}"
            )

        logger.info(f"Completed suspended invoice {invoice.number} ({policy})")
        return serialize_invoice(TransactionAssembler._load(db, invoice_id))

    @staticmethod
    def cancel_suspended(db: Session, invoice_id: int) -> TransactionOut:
        invoice = TransactionAssembler._get_suspended(db, invoice_id)
        invoice.status = InvoiceStatus.CANCELLED.value
        db.commit()
        logger.info(f"Cancelled suspended invoice {invoice.number}")
        return serialize_invoice(TransactionAssembler._load(db, invoice_id))

    @staticmethod
    def delete_suspended(db: Session, invoice_id: int) -> bool:
        """Delete a suspended invoice with its lines and their tax rows"""
        invoice = TransactionAssembler._get_suspended(db, invoice_id)
        number = invoice.number
        try:
            db.delete(invoice)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to delete suspended invoice {invoice_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to delete suspended transaction: {str(e)}"
            )
        logger.info(f"Deleted suspended invoice {number}")
        return True
