"""
Invoice models: transaction header, line items and per-line tax breakdown.
"""

import enum

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Numeric, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shoppingbird.core.database import Base


class InvoiceStatus(str, enum.Enum):
    SUSPENDED = "suspended"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class Invoice(Base):
    """
    Invoice (transaction header) model.

    Table: invoices
    A suspended invoice additionally carries session_name, notes and
    suspended_at.
    """
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    number = Column(String(50), nullable=False, unique=True, index=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    adjust_amount = Column(Numeric(14, 4), nullable=False, default=0)
    total = Column(Numeric(14, 4), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=InvoiceStatus.COMPLETED.value, index=True)
    suspended_at = Column(DateTime(timezone=True), nullable=True)
    session_name = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    store = relationship("Store")
    user = relationship("User")
    details = relationship(
        "InvoiceDetail",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceDetail.id",
    )

    __table_args__ = (
        Index("ix_invoices_store_status_date", "store_id", "status", "date"),
    )

    def __repr__(self):
        return f"<Invoice(id={self.id}, number='{self.number}', status='{self.status}', total={self.total})>"


class InvoiceDetail(Base):
    """
    Invoice line model.

    Table: invoice_details
    price/total_price hold the final unit price (tax included),
    tax_amount holds the per-unit tax.
    """
    __tablename__ = "invoice_details"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False, index=True)
    price = Column(Numeric(14, 4), nullable=False)
    base_price = Column(Numeric(14, 4), nullable=False)
    tax_amount = Column(Numeric(14, 4), nullable=False, default=0)
    total_price = Column(Numeric(14, 4), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    invoice = relationship("Invoice", back_populates="details")
    item = relationship("CatalogItem")
    taxes = relationship(
        "InvoiceDetailTax",
        back_populates="detail",
        cascade="all, delete-orphan",
        order_by="InvoiceDetailTax.id",
    )

    def __repr__(self):
        return f"<InvoiceDetail(id={self.id}, item_id={self.item_id}, quantity={self.quantity})>"


class InvoiceDetailTax(Base):
    """Per-line tax breakdown kept for audit (amount covers the whole line)"""
    __tablename__ = "invoice_detail_taxes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    invoice_detail_id = Column(Integer, ForeignKey("invoice_details.id", ondelete="CASCADE"), nullable=False, index=True)
    tax_type_id = Column(Integer, ForeignKey("tax_types.id"), nullable=False)
    tax_percentage = Column(Numeric(7, 4), nullable=False)
    tax_amount = Column(Numeric(14, 4), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    detail = relationship("InvoiceDetail", back_populates="taxes")
    tax_type = relationship("TaxType")

    def __repr__(self):
        return f"<InvoiceDetailTax(detail_id={self.invoice_detail_id}, tax_type_id={self.tax_type_id}, amount={self.tax_amount})>"
