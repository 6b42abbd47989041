"""
Tax models: tax types and their association to store price entries.
"""

from datetime import date

from sqlalchemy import Column, Integer, String, Text, Boolean, Date, DateTime, Numeric, ForeignKey, Index, UniqueConstraint, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shoppingbird.core.database import Base


class TaxType(Base):
    """
    Tax type model.

    Table: tax_types
    A named percentage rate. At most one row may carry is_default.
    """
    __tablename__ = "tax_types"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    percentage = Column(Numeric(7, 4), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index(
            "uq_tax_types_single_default",
            "is_default",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default = 1"),
        ),
    )

    def __repr__(self):
        return f"<TaxType(id={self.id}, name='{self.name}', percentage={self.percentage})>"


class TaxAssociation(Base):
    """Junction table - Maps tax types to store price entries"""
    __tablename__ = "price_list_taxes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    price_list_id = Column(Integer, ForeignKey("price_lists.id", ondelete="CASCADE"), nullable=False, index=True)
    tax_type_id = Column(Integer, ForeignKey("tax_types.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    effective_date = Column(Date, nullable=False, default=date.today)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    price_entry = relationship("PriceEntry", back_populates="tax_associations")
    tax_type = relationship("TaxType")

    __table_args__ = (
        UniqueConstraint('price_list_id', 'tax_type_id', name='uq_price_list_tax'),
    )

    def __repr__(self):
        return f"<TaxAssociation(price_list_id={self.price_list_id}, tax_type_id={self.tax_type_id})>"
