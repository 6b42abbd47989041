"""
API Router for currencies, exchange rates and money conversion.
"""

from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from shoppingbird.core.database import get_db
from shoppingbird.core.auth import get_current_user
from shoppingbird.models.user import User
from shoppingbird.services.currency_service import CurrencyCache, CurrencyService
from shoppingbird.schemas.store import SuccessResponse
from shoppingbird.schemas.currency import (
    CurrencyCreate, CurrencyUpdate, CurrencyResponse, CurrencyConversion,
    FormatMoneyRequest, FormatMoneyResponse,
    ExchangeRatesUpdate, ExchangeRatesUpdateResponse,
)

router = APIRouter(prefix="/currencies", tags=["Currencies"])


def get_currency_cache(request: Request) -> CurrencyCache:
    return request.app.state.currency_cache


def get_currency_service(
    db: Session = Depends(get_db),
    cache: CurrencyCache = Depends(get_currency_cache),
) -> CurrencyService:
    return CurrencyService(db, cache)


@router.get("/", response_model=List[CurrencyResponse])
def list_active_currencies(
    service: CurrencyService = Depends(get_currency_service),
    current_user: User = Depends(get_current_user),
):
    """Active currencies, base currency first."""
    return service.get_active_currencies()


@router.get("/base", response_model=CurrencyResponse)
def get_base_currency(
    service: CurrencyService = Depends(get_currency_service),
    current_user: User = Depends(get_current_user),
):
    return service.get_base_currency()


@router.get("/convert", response_model=CurrencyConversion)
def convert_amount(
    amount: Decimal = Query(..., description="Amount in the source currency"),
    from_currency_id: int = Query(...),
    to_currency_id: int = Query(...),
    service: CurrencyService = Depends(get_currency_service),
    current_user: User = Depends(get_current_user),
):
    """
    Convert an amount between two currencies through the base currency.

    Raises:
        HTTPException 404: If either currency does not exist
    """
    return service.convert(amount, from_currency_id, to_currency_id)


@router.get("/convert-to-base", response_model=CurrencyConversion)
def convert_amount_to_base(
    amount: Decimal = Query(...),
    from_currency_id: int = Query(...),
    service: CurrencyService = Depends(get_currency_service),
    current_user: User = Depends(get_current_user),
):
    return service.convert_to_base(amount, from_currency_id)


@router.post("/format", response_model=FormatMoneyResponse)
def format_money(
    request: FormatMoneyRequest,
    service: CurrencyService = Depends(get_currency_service),
    current_user: User = Depends(get_current_user),
):
    currency = service.get_currency_by_id(request.currency_id)
    formatted = CurrencyService.format_money(
        request.amount, currency, request.show_symbol, request.show_code, request.decimal_places
    )
    return FormatMoneyResponse(formatted=formatted)


@router.post("/exchange-rates", response_model=ExchangeRatesUpdateResponse)
def update_exchange_rates(
    data: ExchangeRatesUpdate,
    service: CurrencyService = Depends(get_currency_service),
    current_user: User = Depends(get_current_user),
):
    """
    Bulk update factors by currency code.

    The base currency and unknown codes are skipped and reported back.
    """
    return service.update_exchange_rates(data.rates, data.source)


@router.get("/code/{code}", response_model=CurrencyResponse)
def get_currency_by_code(
    code: str,
    service: CurrencyService = Depends(get_currency_service),
    current_user: User = Depends(get_current_user),
):
    return service.get_currency_by_code(code)


@router.post("/", response_model=CurrencyResponse, status_code=status.HTTP_201_CREATED)
def create_currency(
    currency: CurrencyCreate,
    service: CurrencyService = Depends(get_currency_service),
    current_user: User = Depends(get_current_user),
):
    return service.create_currency(currency)


@router.get("/{currency_id}", response_model=CurrencyResponse)
def get_currency(
    currency_id: int,
    service: CurrencyService = Depends(get_currency_service),
    current_user: User = Depends(get_current_user),
):
    return service.get_currency_by_id(currency_id)


@router.put("/{currency_id}", response_model=CurrencyResponse)
def update_currency(
    currency_id: int,
    currency: CurrencyUpdate,
    service: CurrencyService = Depends(get_currency_service),
    current_user: User = Depends(get_current_user),
):
    """Update a currency. Making it the base clears the flag everywhere else."""
    return service.update_currency(currency_id, currency)


@router.delete("/{currency_id}", response_model=SuccessResponse)
def delete_currency(
    currency_id: int,
    service: CurrencyService = Depends(get_currency_service),
    current_user: User = Depends(get_current_user),
):
    service.delete_currency(currency_id)
    return SuccessResponse(message=f"Currency {currency_id} deleted")
