"""
Catalog models: items, tags, store price entries and price history.
"""

from datetime import date

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Date, DateTime, Numeric, JSON,
    ForeignKey, Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from shoppingbird.core.database import Base


class CatalogItem(Base):
    """
    Catalog item model.

    Table: items
    Product identity independent of store and price. The three global
    product codes (ean, upc, gtin) are alternate scan codes.
    """
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    description = Column(Text, nullable=False)
    title = Column(String(500), nullable=True)
    brand = Column(String(255), nullable=True, index=True)
    model = Column(String(255), nullable=True)
    ean = Column(String(20), nullable=True, index=True)
    upc = Column(String(20), nullable=True, index=True)
    gtin = Column(String(20), nullable=True, index=True)
    asin = Column(String(20), nullable=True)
    full_description = Column(Text, nullable=True)
    category = Column(String(500), nullable=True)
    dimension = Column(String(255), nullable=True)
    weight = Column(String(100), nullable=True)
    images = Column(JSON, nullable=True)
    lowest_recorded_price = Column(Numeric(14, 4), nullable=True)
    highest_recorded_price = Column(Numeric(14, 4), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    price_entries = relationship("PriceEntry", back_populates="item", cascade="all, delete-orphan")
    tags = relationship("Tag", secondary="item_tags", back_populates="items")

    def __repr__(self):
        return f"<CatalogItem(id={self.id}, description='{self.description}')>"


class Tag(Base):
    """Free-form tag (brand, category) attached to catalog items"""
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    tag_type = Column(String(50), nullable=False, default="category")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    items = relationship("CatalogItem", secondary="item_tags", back_populates="tags")

    def __repr__(self):
        return f"<Tag(id={self.id}, name='{self.name}')>"


class ItemTag(Base):
    """Junction table - Maps tags to items"""
    __tablename__ = "item_tags"

    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"), primary_key=True)
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)


class PriceEntry(Base):
    """
    Store price entry model.

    Table: price_lists
    A (catalog item x store) price record with its store-specific scan code,
    unit of measure, amount and currency.
    """
    __tablename__ = "price_lists"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False, index=True)
    barcode = Column(String(50), nullable=False, index=True)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=False)
    retail_price = Column(Numeric(14, 4), nullable=False)
    currency_id = Column(Integer, ForeignKey("currencies.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    effective_date = Column(Date, nullable=False, default=date.today)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    item = relationship("CatalogItem", back_populates="price_entries")
    store = relationship("Store", back_populates="price_entries")
    unit = relationship("Unit")
    currency = relationship("Currency")
    tax_associations = relationship("TaxAssociation", back_populates="price_entry", cascade="all, delete-orphan")
    history = relationship("PriceHistory", back_populates="price_entry", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_price_lists_store_barcode", "store_id", "barcode"),
    )

    def __repr__(self):
        return f"<PriceEntry(id={self.id}, item_id={self.item_id}, store_id={self.store_id}, price={self.retail_price})>"


class PriceHistory(Base):
    """Historical record written whenever a store price is set or changed"""
    __tablename__ = "price_history"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    price_list_id = Column(Integer, ForeignKey("price_lists.id", ondelete="CASCADE"), nullable=False, index=True)
    old_price = Column(Numeric(14, 4), nullable=True)
    new_price = Column(Numeric(14, 4), nullable=False)
    currency_id = Column(Integer, ForeignKey("currencies.id"), nullable=True)
    changed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    changed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    price_entry = relationship("PriceEntry", back_populates="history")

    def __repr__(self):
        return f"<PriceHistory(price_list_id={self.price_list_id}, {self.old_price} -> {self.new_price})>"
