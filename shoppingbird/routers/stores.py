"""
API Router for stores and units of measure.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shoppingbird.core.database import get_db
from shoppingbird.core.auth import get_current_user
from shoppingbird.models.user import User
from shoppingbird.services.catalog_repository import StoreRepository, UnitRepository
from shoppingbird.schemas.store import (
    StoreCreate, StoreUpdate, StoreResponse,
    UnitCreate, UnitUpdate, UnitResponse,
    SuccessResponse,
)

router = APIRouter(prefix="/stores", tags=["Stores"])
units_router = APIRouter(prefix="/units", tags=["Units"])


# ============================================================================
# STORE ENDPOINTS
# ============================================================================

@router.get("/", response_model=List[StoreResponse])
def list_stores(
    include_inactive: bool = Query(False, description="Include deactivated stores"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List stores ordered by name."""
    return StoreRepository.get_all(db, include_inactive)


@router.post("/", response_model=StoreResponse, status_code=status.HTTP_201_CREATED)
def create_store(
    store: StoreCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Create a store.

    - **name**: Unique store name
    - **address**: Street address (optional)
    """
    return StoreRepository.create(db, store)


@router.get("/{store_id}", response_model=StoreResponse)
def get_store(store_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return StoreRepository.get_by_id(db, store_id)


@router.put("/{store_id}", response_model=StoreResponse)
def update_store(
    store_id: int,
    store: StoreUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return StoreRepository.update(db, store_id, store)


@router.delete("/{store_id}", response_model=SuccessResponse)
def deactivate_store(store_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Deactivate a store (stores with sales history are kept)."""
    store = StoreRepository.deactivate(db, store_id)
    return SuccessResponse(message=f"Store '{store.name}' deactivated")


# ============================================================================
# UNIT ENDPOINTS
# ============================================================================

@units_router.get("/", response_model=List[UnitResponse])
def list_units(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return UnitRepository.get_all(db)


@units_router.post("/", response_model=UnitResponse, status_code=status.HTTP_201_CREATED)
def create_unit(unit: UnitCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return UnitRepository.create(db, unit)


@units_router.put("/{unit_id}", response_model=UnitResponse)
def update_unit(
    unit_id: int,
    unit: UnitUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return UnitRepository.update(db, unit_id, unit)


@units_router.delete("/{unit_id}", response_model=SuccessResponse)
def delete_unit(unit_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    UnitRepository.delete(db, unit_id)
    return SuccessResponse(message="Unit deleted")
