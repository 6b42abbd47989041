"""
API Router for the catalog: items, store price entries, price history and
product enrichment from the UPC item database.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from shoppingbird.core.config import settings
from shoppingbird.core.database import get_db
from shoppingbird.core.auth import get_current_user
from shoppingbird.models.user import User
from shoppingbird.services.catalog_repository import ItemRepository, PriceEntryRepository, serialize_price_entry
from shoppingbird.services.tax_calculator import TaxCalculator
from shoppingbird.services.upc_client import ProductEnhancementService
from shoppingbird.schemas.catalog import (
    ItemCreate, ItemUpdate, ItemResponse, ItemListResponse,
    PriceEntryCreate, PriceEntryUpdate, PriceEntryResponse, PriceHistoryResponse,
    EnhanceRequest, EnhancedProductData,
)
from shoppingbird.schemas.store import SuccessResponse
from shoppingbird.schemas.tax import TaxAssociationUpdate, TaxCalculation

router = APIRouter(prefix="/items", tags=["Catalog Items"])
price_router = APIRouter(prefix="/price-entries", tags=["Price Entries"])


def get_enhancement_service() -> ProductEnhancementService:
    return ProductEnhancementService()


# ============================================================================
# ITEM ENDPOINTS
# ============================================================================

@router.get("/", response_model=ItemListResponse)
def list_items(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of records to return"),
    search: Optional[str] = Query(None, description="Match description, title, brand or product code"),
    store_id: Optional[int] = Query(None, description="Only items priced at this store"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    List catalog items with optional search and pagination.

    - **search**: Partial match on description/title/brand, exact match on ean/upc/gtin
    - **store_id**: Only items with an active price at this store
    """
    items, total = ItemRepository.get_all(db, skip, limit, search, store_id)
    return ItemListResponse(items=[ItemResponse.model_validate(i) for i in items], total=total, skip=skip, limit=limit)


@router.post("/", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
def create_item(item: ItemCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return ItemRepository.create(db, item)


@router.post("/enhance", response_model=EnhancedProductData)
def enhance_item(
    request: EnhanceRequest,
    db: Session = Depends(get_db),
    service: ProductEnhancementService = Depends(get_enhancement_service),
    current_user: User = Depends(get_current_user),
):
    """
    Look up a UPC/EAN code and return catalog fields, tags and images.

    With **save** the enriched item is created right away.

    Raises:
        HTTPException 400: Malformed code
        HTTPException 404: Code unknown to the lookup service
        HTTPException 502: Lookup service failure
    """
    data = service.enhance_product_by_upc(request.upc, request.existing_description)
    if data is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No product information found for {request.upc}"
        )
    if request.save:
        ProductEnhancementService.create_enhanced_item(db, data)
    return data


@router.post("/{item_id}/enhance", response_model=ItemResponse)
def enhance_existing_item(
    item_id: int,
    request: EnhanceRequest,
    db: Session = Depends(get_db),
    service: ProductEnhancementService = Depends(get_enhancement_service),
    current_user: User = Depends(get_current_user),
):
    """Fill an existing item's product fields and tags from a UPC lookup (description is kept)."""
    ItemRepository.get_by_id(db, item_id)
    data = service.enhance_product_by_upc(request.upc)
    if data is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No product information found for {request.upc}"
        )
    return ProductEnhancementService.update_item_with_enhancement(db, item_id, data)


@router.get("/{item_id}", response_model=ItemResponse)
def get_item(item_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return ItemRepository.get_by_id(db, item_id)


@router.put("/{item_id}", response_model=ItemResponse)
def update_item(
    item_id: int,
    item: ItemUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return ItemRepository.update(db, item_id, item)


@router.delete("/{item_id}", response_model=SuccessResponse)
def delete_item(item_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Delete an item and its price entries. Items on recorded sales cannot be deleted."""
    ItemRepository.delete(db, item_id)
    return SuccessResponse(message=f"Item {item_id} deleted")


@router.post("/{item_id}/tags", response_model=ItemResponse)
def add_item_tags(
    item_id: int,
    tags: List[str],
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    item = ItemRepository.get_by_id(db, item_id)
    ItemRepository.add_tags(db, item, tags)
    db.commit()
    db.refresh(item)
    return item


@router.get("/{item_id}/prices", response_model=List[PriceEntryResponse])
def list_item_prices(
    item_id: int,
    store_id: Optional[int] = Query(None, description="Restrict to one store"),
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List an item's store prices with the taxes currently applied to each."""
    entries = PriceEntryRepository.get_for_item(db, item_id, store_id, active_only)
    return [serialize_price_entry(db, entry) for entry in entries]


# ============================================================================
# PRICE ENTRY ENDPOINTS
# ============================================================================

@price_router.post("/", response_model=PriceEntryResponse, status_code=status.HTTP_201_CREATED)
def create_price_entry(
    entry: PriceEntryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Set an item's price at a store.

    - **barcode**: Store-specific scan code
    - **tax_ids**: Tax types applied to this price
    """
    db_entry = PriceEntryRepository.create(db, entry, changed_by=current_user.id)
    return serialize_price_entry(db, db_entry)


@price_router.get("/{price_list_id}", response_model=PriceEntryResponse)
def get_price_entry(price_list_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return serialize_price_entry(db, PriceEntryRepository.get_by_id(db, price_list_id))


@price_router.put("/{price_list_id}", response_model=PriceEntryResponse)
def update_price_entry(
    price_list_id: int,
    entry: PriceEntryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_entry = PriceEntryRepository.update(db, price_list_id, entry, changed_by=current_user.id)
    return serialize_price_entry(db, db_entry)


@price_router.post("/{price_list_id}/deactivate", response_model=PriceEntryResponse)
def deactivate_price_entry(
    price_list_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return serialize_price_entry(db, PriceEntryRepository.deactivate(db, price_list_id))


@price_router.delete("/{price_list_id}", response_model=SuccessResponse)
def delete_price_entry(price_list_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    PriceEntryRepository.delete(db, price_list_id)
    return SuccessResponse(message=f"Price entry {price_list_id} deleted")


@price_router.get("/{price_list_id}/history", response_model=List[PriceHistoryResponse])
def get_price_history(price_list_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return PriceEntryRepository.get_history(db, price_list_id)


@price_router.put("/{price_list_id}/taxes", response_model=PriceEntryResponse)
def update_price_entry_taxes(
    price_list_id: int,
    data: TaxAssociationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Replace the tax types applied to a price entry."""
    TaxCalculator.update_tax_associations(db, price_list_id, data.tax_ids)
    return serialize_price_entry(db, PriceEntryRepository.get_by_id(db, price_list_id))


@price_router.get("/{price_list_id}/tax-calculation", response_model=TaxCalculation)
def calculate_price_entry_taxes(
    price_list_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Tax breakdown of a price entry with its currently applicable taxes."""
    entry = PriceEntryRepository.get_by_id(db, price_list_id)
    places = entry.currency.decimal_places if entry.currency else settings.DEFAULT_DECIMAL_PLACES
    return TaxCalculator.calculate_for_price_entry(db, entry, places)
