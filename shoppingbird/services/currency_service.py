"""
Currency management and conversion.

Every currency carries a factor relative to the single base currency:
amount_in_currency = amount_in_base * factor.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shoppingbird.models.catalog import PriceEntry
from shoppingbird.models.currency import Currency
from shoppingbird.schemas.currency import (
    CurrencyConversion, CurrencyCreate, CurrencyResponse, CurrencyUpdate,
    ExchangeRatesUpdateResponse,
)
from shoppingbird.services.tax_calculator import round_money

logger = logging.getLogger(__name__)


class CurrencyCache:
    """
    Process-wide cache of the base currency and the active currency list.

    Stored on the FastAPI application state and handed to every
    CurrencyService; any write that touches factors or the base flag
    invalidates it.
    """

    def __init__(self):
        self.base_currency: Optional[CurrencyResponse] = None
        self.active_currencies: Optional[List[CurrencyResponse]] = None

    def invalidate(self):
        self.base_currency = None
        self.active_currencies = None
        logger.info("Currency cache invalidated")


class CurrencyService:
    """Currency CRUD, conversion and formatting over one session and one cache"""

    def __init__(self, db: Session, cache: CurrencyCache):
        self.db = db
        self.cache = cache

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_active_currencies(self) -> List[CurrencyResponse]:
        if self.cache.active_currencies is None:
            rows = self.db.query(Currency).filter(
                Currency.is_active.is_(True)
            ).order_by(Currency.is_base_currency.desc(), Currency.code).all()
            self.cache.active_currencies = [CurrencyResponse.model_validate(c) for c in rows]
        return self.cache.active_currencies

    def get_base_currency(self) -> CurrencyResponse:
        """
        Return the base currency.

        Raises:
            HTTPException: 404 if no active base currency is configured
        """
        if self.cache.base_currency is None:
            base = self.db.query(Currency).filter(
                Currency.is_base_currency.is_(True),
                Currency.is_active.is_(True),
            ).first()
            if not base:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="No base currency found"
                )
            self.cache.base_currency = CurrencyResponse.model_validate(base)
        return self.cache.base_currency

    def _get_row(self, currency_id: int) -> Currency:
        currency = self.db.query(Currency).filter(Currency.id == currency_id).first()
        if not currency:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Currency with ID {currency_id} not found"
            )
        return currency

    def get_currency_by_id(self, currency_id: int) -> CurrencyResponse:
        return CurrencyResponse.model_validate(self._get_row(currency_id))

    def get_currency_by_code(self, code: str) -> CurrencyResponse:
        currency = self.db.query(Currency).filter(Currency.code == code.upper()).first()
        if not currency:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Currency with code {code.upper()} not found"
            )
        return CurrencyResponse.model_validate(currency)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _clear_base(self, keep_id: Optional[int] = None):
        query = self.db.query(Currency).filter(Currency.is_base_currency.is_(True))
        if keep_id is not None:
            query = query.filter(Currency.id != keep_id)
        query.update({Currency.is_base_currency: False}, synchronize_session="fetch")
        self.db.flush()

    def create_currency(self, currency: CurrencyCreate) -> CurrencyResponse:
        if self.db.query(Currency).filter(Currency.code == currency.code).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Currency {currency.code} already exists"
            )
        if currency.is_base_currency and not currency.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only an active currency can be the base currency"
            )
        try:
            data = currency.model_dump()
            if data["is_base_currency"]:
                self._clear_base()
                data["factor"] = Decimal("1")
            db_currency = Currency(**data)
            self.db.add(db_currency)
            self.db.commit()
            self.db.refresh(db_currency)
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Database integrity error: {str(e.orig)}"
            )
        self.cache.invalidate()
        logger.info(f"Created currency {db_currency.code}")
        return CurrencyResponse.model_validate(db_currency)

    def update_currency(self, currency_id: int, currency_update: CurrencyUpdate) -> CurrencyResponse:
        """
        Update a currency. Setting is_base_currency clears the flag on every
        other currency in the same transaction.
        """
        db_currency = self._get_row(currency_id)
        update_data = currency_update.model_dump(exclude_unset=True)

        if db_currency.is_base_currency:
            if update_data.get("is_base_currency") is False:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Make another currency the base instead of clearing the base flag"
                )
            if update_data.get("is_active") is False:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="The base currency cannot be deactivated"
                )
        if update_data.get("is_base_currency") and not update_data.get("is_active", db_currency.is_active):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only an active currency can be the base currency"
            )

        try:
            if update_data.get("is_base_currency"):
                self._clear_base(keep_id=currency_id)
            for field, value in update_data.items():
                setattr(db_currency, field, value)
            self.db.commit()
            self.db.refresh(db_currency)
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Database integrity error: {str(e.orig)}"
            )

        self.cache.invalidate()
        return CurrencyResponse.model_validate(db_currency)

    def delete_currency(self, currency_id: int) -> bool:
        db_currency = self._get_row(currency_id)
        if db_currency.is_base_currency:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="The base currency cannot be deleted"
            )
        if self.db.query(PriceEntry).filter(PriceEntry.currency_id == currency_id).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Currency is used by price entries"
            )
        self.db.delete(db_currency)
        self.db.commit()
        self.cache.invalidate()
        return True

    def update_exchange_rates(self, rates: Dict[str, Decimal], source: str = "api") -> ExchangeRatesUpdateResponse:
        """Set factors by currency code. The base currency and unknown codes are skipped."""
        updated = 0
        skipped = []
        try:
            for code, factor in rates.items():
                currency = self.db.query(Currency).filter(Currency.code == code.upper()).first()
                if not currency or currency.is_base_currency or Decimal(factor) <= 0:
                    skipped.append(code.upper())
                    continue
                currency.factor = Decimal(factor)
                currency.update_source = source
                updated += 1
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update exchange rates: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to update exchange rates: {str(e)}"
            )

        self.cache.invalidate()
        logger.info(f"Updated {updated} exchange rates from {source}")
        return ExchangeRatesUpdateResponse(updated_count=updated, skipped_codes=skipped)

    # ------------------------------------------------------------------
    # Conversion and formatting
    # ------------------------------------------------------------------

    def convert(self, amount: Decimal, from_currency_id: int, to_currency_id: int) -> CurrencyConversion:
        """Convert through the base currency: base = amount / from.factor, result = base * to.factor"""
        from_currency = self.get_currency_by_id(from_currency_id)
        to_currency = self.get_currency_by_id(to_currency_id)

        amount = Decimal(amount)
        base_amount = amount / Decimal(from_currency.factor)
        converted = base_amount * Decimal(to_currency.factor)

        return CurrencyConversion(
            from_currency=from_currency,
            to_currency=to_currency,
            amount=amount,
            converted_amount=round_money(converted, to_currency.decimal_places),
            conversion_rate=Decimal(to_currency.factor) / Decimal(from_currency.factor),
            timestamp=datetime.now(timezone.utc),
        )

    def convert_to_base(self, amount: Decimal, from_currency_id: int) -> CurrencyConversion:
        base = self.get_base_currency()
        return self.convert(amount, from_currency_id, base.id)

    @staticmethod
    def format_money(
        amount: Decimal,
        currency: CurrencyResponse,
        show_symbol: bool = True,
        show_code: bool = False,
        decimal_places: Optional[int] = None,
    ) -> str:
        """Format like "$1,234.50" or "1,234.50 USD" (or both)"""
        places = currency.decimal_places if decimal_places is None else decimal_places
        rounded = round_money(Decimal(amount), places)
        text = f"{abs(rounded):,.{places}f}"
        if show_symbol:
            text = f"{currency.symbol}{text}"
        if rounded < 0:
            text = f"-{text}"
        if show_code:
            text = f"{text} {currency.code}"
        return text
