"""
Pydantic schemas for catalog items, store price entries, barcode search
and product enrichment.
"""

from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List, Union
from pydantic import BaseModel, Field

from shoppingbird.schemas.tax import TaxTypeResponse


# ============================================================================
# Catalog Item Schemas
# ============================================================================

class ItemBase(BaseModel):
    """Base schema for CatalogItem"""
    description: str = Field(..., min_length=1, description="Item description shown on receipts")
    title: Optional[str] = Field(None, max_length=500)
    brand: Optional[str] = Field(None, max_length=255)
    model: Optional[str] = Field(None, max_length=255)
    ean: Optional[str] = Field(None, max_length=20, description="EAN-13 / EAN-8 code")
    upc: Optional[str] = Field(None, max_length=20, description="UPC-A code")
    gtin: Optional[str] = Field(None, max_length=20, description="GTIN-14 code")
    asin: Optional[str] = Field(None, max_length=20)
    full_description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=500)
    dimension: Optional[str] = Field(None, max_length=255)
    weight: Optional[str] = Field(None, max_length=100)
    images: Optional[List[str]] = None
    lowest_recorded_price: Optional[Decimal] = None
    highest_recorded_price: Optional[Decimal] = None


class ItemCreate(ItemBase):
    """Schema for creating a catalog item"""
    tags: List[str] = Field(default_factory=list, description="Tag names to attach")


class ItemUpdate(BaseModel):
    """Schema for updating a catalog item (all fields optional)"""
    description: Optional[str] = Field(None, min_length=1)
    title: Optional[str] = Field(None, max_length=500)
    brand: Optional[str] = Field(None, max_length=255)
    model: Optional[str] = Field(None, max_length=255)
    ean: Optional[str] = Field(None, max_length=20)
    upc: Optional[str] = Field(None, max_length=20)
    gtin: Optional[str] = Field(None, max_length=20)
    asin: Optional[str] = Field(None, max_length=20)
    full_description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=500)
    dimension: Optional[str] = Field(None, max_length=255)
    weight: Optional[str] = Field(None, max_length=100)
    images: Optional[List[str]] = None
    lowest_recorded_price: Optional[Decimal] = None
    highest_recorded_price: Optional[Decimal] = None


class TagResponse(BaseModel):
    id: int
    name: str
    tag_type: str

    class Config:
        from_attributes = True


class ItemResponse(ItemBase):
    """Schema for catalog item response"""
    id: int
    tags: List[TagResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ItemListResponse(BaseModel):
    """Paginated list of catalog items"""
    items: List[ItemResponse]
    total: int
    skip: int
    limit: int


# ============================================================================
# Price Entry Schemas
# ============================================================================

class PriceEntryBase(BaseModel):
    """Base schema for PriceEntry"""
    store_id: int
    barcode: str = Field(..., min_length=1, max_length=50, description="Store-specific scan code")
    unit_id: int
    retail_price: Decimal = Field(..., ge=0)
    currency_id: Optional[int] = None
    is_active: bool = True
    effective_date: Optional[date] = None


class PriceEntryCreate(PriceEntryBase):
    """Schema for setting an item's price at a store"""
    item_id: int
    tax_ids: List[int] = Field(default_factory=list, description="Tax types applied to this price")


class PriceEntryUpdate(BaseModel):
    """Schema for updating a price entry (all fields optional)"""
    barcode: Optional[str] = Field(None, min_length=1, max_length=50)
    unit_id: Optional[int] = None
    retail_price: Optional[Decimal] = Field(None, ge=0)
    currency_id: Optional[int] = None
    is_active: Optional[bool] = None
    effective_date: Optional[date] = None


class PriceEntryResponse(PriceEntryBase):
    """Schema for price entry response"""
    id: int
    item_id: int
    unit: Optional[str] = None
    currency_code: Optional[str] = None
    taxes: List[TaxTypeResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PriceHistoryResponse(BaseModel):
    id: int
    price_list_id: int
    old_price: Optional[Decimal]
    new_price: Decimal
    currency_id: Optional[int]
    changed_by: Optional[int]
    changed_at: datetime

    class Config:
        from_attributes = True


# ============================================================================
# Barcode Search Schemas
# ============================================================================

class BarcodeMatch(BaseModel):
    """Priced catalog entry matched by a scanned code"""
    price_list_id: int
    item_id: int
    store_id: int
    description: str
    barcode: str
    unit: str
    retail_price: Decimal
    currency_id: Optional[int] = None
    currency_code: Optional[str] = None
    ean: Optional[str] = None
    upc: Optional[str] = None
    gtin: Optional[str] = None


class BarcodeSearchResult(BaseModel):
    """Outcome of a barcode lookup; not-found is a normal result, not an error"""
    found: bool
    item: Optional[BarcodeMatch] = None
    search_method: Optional[str] = Field(None, description="price_list, ean, upc or gtin")
    matched_code: Optional[str] = None
    unpriced: bool = False
    search_error: bool = False
    message: Optional[str] = None


# ============================================================================
# Product Enrichment Schemas
# ============================================================================

class UPCOffer(BaseModel):
    merchant: Optional[str] = None
    domain: Optional[str] = None
    title: Optional[str] = None
    currency: Optional[str] = None
    list_price: Optional[Union[Decimal, str]] = None
    price: Optional[Decimal] = None
    link: Optional[str] = None


class UPCItem(BaseModel):
    """Product record returned by the UPC item database"""
    ean: Optional[str] = None
    title: Optional[str] = None
    upc: Optional[str] = None
    gtin: Optional[str] = None
    asin: Optional[str] = None
    description: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    dimension: Optional[str] = None
    weight: Optional[str] = None
    category: Optional[str] = None
    lowest_recorded_price: Optional[Decimal] = None
    highest_recorded_price: Optional[Decimal] = None
    images: List[str] = []
    offers: List[UPCOffer] = []


class UPCLookupResponse(BaseModel):
    code: str
    total: int = 0
    offset: int = 0
    items: List[UPCItem] = []


class EnhancedProductData(BaseModel):
    """Catalog fields pre-filled from a product lookup"""
    item: ItemBase
    tags: List[str] = []
    images: List[str] = []


class EnhanceRequest(BaseModel):
    upc: str = Field(..., min_length=1)
    existing_description: Optional[str] = None
    save: bool = Field(False, description="Persist the enriched item right away")
