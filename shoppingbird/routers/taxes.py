"""
API Router for tax types and tax calculation previews.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shoppingbird.core.database import get_db
from shoppingbird.core.auth import get_current_user
from shoppingbird.models.user import User
from shoppingbird.services.tax_calculator import TaxCalculator, TaxTypeRepository
from shoppingbird.schemas.store import SuccessResponse
from shoppingbird.schemas.tax import (
    TaxTypeCreate, TaxTypeUpdate, TaxTypeResponse,
    TaxCalculation, TaxCalculationRequest,
)

router = APIRouter(prefix="/taxes", tags=["Taxes"])


@router.get("/", response_model=List[TaxTypeResponse])
def list_tax_types(
    include_inactive: bool = Query(False, description="Include inactive tax types"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List tax types ordered by name."""
    return TaxTypeRepository.get_all(db, include_inactive)


@router.get("/default", response_model=Optional[TaxTypeResponse])
def get_default_tax_type(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """The default tax type, or null when none is configured."""
    return TaxTypeRepository.get_default(db)


@router.post("/calculate", response_model=TaxCalculation)
def calculate_taxes(
    request: TaxCalculationRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Preview the additive tax breakdown for a base price.

    - **base_price**: Price before taxes
    - **tax_ids**: Tax types to apply; an empty list means no tax
    - **decimal_places**: Rounding precision of each tax amount

    Raises:
        HTTPException 400: If none of the ids is an active tax type
    """
    return TaxCalculator.calculate_taxes(db, request.base_price, request.tax_ids, request.decimal_places)


@router.post("/", response_model=TaxTypeResponse, status_code=status.HTTP_201_CREATED)
def create_tax_type(tax: TaxTypeCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return TaxTypeRepository.create(db, tax)


@router.get("/{tax_type_id}", response_model=TaxTypeResponse)
def get_tax_type(tax_type_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return TaxTypeRepository.get_by_id(db, tax_type_id)


@router.put("/{tax_type_id}", response_model=TaxTypeResponse)
def update_tax_type(
    tax_type_id: int,
    tax: TaxTypeUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return TaxTypeRepository.update(db, tax_type_id, tax)


@router.post("/{tax_type_id}/set-default", response_model=TaxTypeResponse)
def set_default_tax_type(tax_type_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Make this tax type the default; any previous default is cleared."""
    return TaxTypeRepository.set_default(db, tax_type_id)


@router.delete("/{tax_type_id}", response_model=SuccessResponse)
def delete_tax_type(tax_type_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    TaxTypeRepository.delete(db, tax_type_id)
    return SuccessResponse(message=f"Tax type {tax_type_id} deleted")
