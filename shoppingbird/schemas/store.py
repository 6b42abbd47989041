"""
Pydantic schemas for stores and units of measure.
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field


# ============================================================================
# Store Schemas
# ============================================================================

class StoreBase(BaseModel):
    """Base schema for Store"""
    name: str = Field(..., min_length=1, max_length=255, description="Store name")
    address: Optional[str] = Field(None, description="Street address")
    is_active: bool = Field(True, description="Whether the store is open for sales")


class StoreCreate(StoreBase):
    """Schema for creating a store"""
    pass


class StoreUpdate(BaseModel):
    """Schema for updating a store (all fields optional)"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = None
    is_active: Optional[bool] = None


class StoreResponse(StoreBase):
    """Schema for store response"""
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ============================================================================
# Unit Schemas
# ============================================================================

class UnitBase(BaseModel):
    """Base schema for Unit"""
    unit: str = Field(..., min_length=1, max_length=20, description="Unit label (ea, kg, lb...)")
    description: str = Field("", max_length=255, description="Unit description")


class UnitCreate(UnitBase):
    """Schema for creating a unit"""
    pass


class UnitUpdate(BaseModel):
    """Schema for updating a unit"""
    unit: Optional[str] = Field(None, min_length=1, max_length=20)
    description: Optional[str] = Field(None, max_length=255)


class UnitResponse(UnitBase):
    """Schema for unit response"""
    id: int

    class Config:
        from_attributes = True


# ============================================================================
# Utility Schemas
# ============================================================================

class SuccessResponse(BaseModel):
    """Generic success response"""
    success: bool = True
    message: str
    data: Optional[dict] = None


class StoreListResponse(BaseModel):
    """Paginated list of stores"""
    items: List[StoreResponse]
    total: int
    skip: int
    limit: int
