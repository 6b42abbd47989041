"""
Pydantic schemas for currencies and conversions.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, List
from pydantic import BaseModel, Field, field_validator


class CurrencyBase(BaseModel):
    """Base schema for Currency"""
    code: str = Field(..., min_length=3, max_length=3, description="ISO 4217 code")
    name: str = Field(..., min_length=1, max_length=100)
    symbol: str = Field(..., min_length=1, max_length=10)
    factor: Decimal = Field(Decimal("1"), gt=0, description="Units of this currency per one base unit")
    is_base_currency: bool = False
    decimal_places: int = Field(2, ge=0, le=8)
    is_active: bool = True
    update_source: str = Field("manual", max_length=50)

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: str) -> str:
        return v.upper()


class CurrencyCreate(CurrencyBase):
    """Schema for creating a currency"""
    pass


class CurrencyUpdate(BaseModel):
    """Schema for updating a currency (all fields optional)"""
    code: Optional[str] = Field(None, min_length=3, max_length=3)
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    symbol: Optional[str] = Field(None, min_length=1, max_length=10)
    factor: Optional[Decimal] = Field(None, gt=0)
    is_base_currency: Optional[bool] = None
    decimal_places: Optional[int] = Field(None, ge=0, le=8)
    is_active: Optional[bool] = None
    update_source: Optional[str] = Field(None, max_length=50)

    @field_validator("code")
    @classmethod
    def upper_code(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class CurrencyResponse(CurrencyBase):
    """Schema for currency response"""
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CurrencyConversion(BaseModel):
    """Result of converting an amount between two currencies"""
    from_currency: CurrencyResponse
    to_currency: CurrencyResponse
    amount: Decimal
    converted_amount: Decimal
    conversion_rate: Decimal
    timestamp: datetime


class FormatMoneyRequest(BaseModel):
    """Request to format an amount in a currency"""
    amount: Decimal
    currency_id: int
    show_symbol: bool = True
    show_code: bool = False
    decimal_places: Optional[int] = Field(None, ge=0, le=8)


class FormatMoneyResponse(BaseModel):
    formatted: str


class ExchangeRatesUpdate(BaseModel):
    """Bulk factor update keyed by currency code"""
    rates: Dict[str, Decimal] = Field(..., description="Currency code -> factor relative to base")
    source: str = Field("api", max_length=50)


class ExchangeRatesUpdateResponse(BaseModel):
    updated_count: int
    skipped_codes: List[str] = []
