"""
Currency model for database operations.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, Index, text
from sqlalchemy.sql import func
from shoppingbird.core.database import Base


class Currency(Base):
    """
    Currency model.

    Table: currencies
    Each factor is expressed relative to the single base currency
    (amount_in_currency = amount_in_base * factor).
    """
    __tablename__ = "currencies"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    code = Column(String(3), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False)
    symbol = Column(String(10), nullable=False)
    factor = Column(Numeric(18, 8), nullable=False, default=1)
    is_base_currency = Column(Boolean, default=False, nullable=False)
    decimal_places = Column(Integer, default=2, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    update_source = Column(String(50), nullable=False, default="manual")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index(
            "uq_currencies_single_base",
            "is_base_currency",
            unique=True,
            postgresql_where=text("is_base_currency"),
            sqlite_where=text("is_base_currency = 1"),
        ),
    )

    def __repr__(self):
        return f"<Currency(id={self.id}, code='{self.code}', factor={self.factor})>"
