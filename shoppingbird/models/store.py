"""
Store and Unit models.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shoppingbird.core.database import Base


class Store(Base):
    """Store model - a physical point of sale"""
    __tablename__ = "stores"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    address = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    price_entries = relationship("PriceEntry", back_populates="store")

    def __repr__(self):
        return f"<Store(id={self.id}, name='{self.name}')>"


class Unit(Base):
    """Unit of measure model (ea, kg, lb...)"""
    __tablename__ = "units"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    unit = Column(String(20), nullable=False, unique=True)
    description = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Unit(id={self.id}, unit='{self.unit}')>"
