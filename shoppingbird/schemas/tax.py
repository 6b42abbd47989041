"""
Pydantic schemas for tax types and tax calculations.
"""

from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field


# ============================================================================
# Tax Type Schemas
# ============================================================================

class TaxTypeBase(BaseModel):
    """Base schema for TaxType"""
    name: str = Field(..., min_length=1, max_length=100, description="Tax name (e.g. VAT, State Tax)")
    description: Optional[str] = Field(None, description="Free text description")
    percentage: Decimal = Field(..., ge=0, le=100, description="Rate as a percentage of the base price")
    is_active: bool = Field(True, description="Inactive taxes are never applied")
    is_default: bool = Field(False, description="Only one tax type can be the default")


class TaxTypeCreate(TaxTypeBase):
    """Schema for creating a tax type"""
    pass


class TaxTypeUpdate(BaseModel):
    """Schema for updating a tax type (all fields optional)"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    is_active: Optional[bool] = None
    is_default: Optional[bool] = None


class TaxTypeResponse(TaxTypeBase):
    """Schema for tax type response"""
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============================================================================
# Calculation Schemas
# ============================================================================

class AppliedTax(BaseModel):
    """One tax applied to a base price"""
    tax_id: int
    tax_name: str
    percentage: Decimal
    amount: Decimal
    effective_date: date
    is_default: bool = False


class TaxCalculation(BaseModel):
    """Additive tax breakdown for a base price"""
    base_price: Decimal
    applied_taxes: List[AppliedTax] = []
    total_tax_amount: Decimal
    total_tax_percentage: Decimal
    final_price: Decimal
    uses_default_no_tax: bool


class TaxCalculationRequest(BaseModel):
    """Request body for a tax preview"""
    base_price: Decimal = Field(..., ge=0, description="Price before taxes")
    tax_ids: List[int] = Field(default_factory=list, description="Tax type IDs to apply")
    decimal_places: int = Field(2, ge=0, le=8, description="Rounding precision for tax amounts")


class TaxAssociationUpdate(BaseModel):
    """Replace the tax types attached to a price entry"""
    tax_ids: List[int] = Field(default_factory=list)
