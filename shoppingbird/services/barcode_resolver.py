"""
Barcode resolution for the point of sale.

A scanned code is matched first against the store-specific barcodes of the
price list, then against the global product codes (ean, upc, gtin) of the
catalog. Not-found is reported as a normal result, never as an exception.
"""

import logging
import re
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from shoppingbird.models.catalog import CatalogItem, PriceEntry
from shoppingbird.models.currency import Currency
from shoppingbird.schemas.catalog import BarcodeMatch, BarcodeSearchResult

logger = logging.getLogger(__name__)

GLOBAL_CODE_FIELDS = ("ean", "upc", "gtin")


def normalize_barcodes(code: str) -> List[str]:
    """
    Build the list of code variants to try for a scanned value.

    Non-digits are stripped. A 12 digit UPC-A also yields its EAN-13 form
    ("0" + code); a 13 digit EAN starting with 0 also yields its UPC-A form.

    Returns:
        Cleaned code first, then variants, without duplicates
    """
    cleaned = re.sub(r"\D", "", code or "")
    variants = [cleaned]

    if len(cleaned) == 12:
        variants.append("0" + cleaned)
    if len(cleaned) == 13 and cleaned.startswith("0"):
        variants.append(cleaned[1:])

    unique = []
    for variant in variants:
        if variant and variant not in unique:
            unique.append(variant)
    return unique


def _to_match(entry: PriceEntry) -> BarcodeMatch:
    item = entry.item
    return BarcodeMatch(
        price_list_id=entry.id,
        item_id=entry.item_id,
        store_id=entry.store_id,
        description=item.description,
        barcode=entry.barcode,
        unit=entry.unit.unit if entry.unit else "each",
        retail_price=entry.retail_price,
        currency_id=entry.currency_id,
        currency_code=entry.currency.code if entry.currency else None,
        ean=item.ean,
        upc=item.upc,
        gtin=item.gtin,
    )


class BarcodeResolver:
    """Read-only lookup of scanned codes against catalog and price list"""

    @staticmethod
    def _active_entries(db: Session, store_id: int):
        return db.query(PriceEntry).options(
            joinedload(PriceEntry.item),
            joinedload(PriceEntry.unit),
            joinedload(PriceEntry.currency),
        ).filter(
            PriceEntry.store_id == store_id,
            PriceEntry.is_active.is_(True),
        )

    @staticmethod
    def _first_priced(query, preferred_currency: Optional[str]) -> Optional[PriceEntry]:
        """Preferred currency first, then any currency"""
        if preferred_currency:
            entry = query.join(Currency, PriceEntry.currency_id == Currency.id).filter(
                Currency.code == preferred_currency.upper()
            ).order_by(PriceEntry.id).first()
            if entry:
                return entry
        return query.order_by(PriceEntry.id).first()

    @staticmethod
    def search(
        db: Session,
        barcode: str,
        store_id: int,
        preferred_currency: Optional[str] = None,
    ) -> BarcodeSearchResult:
        """
        Resolve one code at one store.

        Precedence: store barcode on the price list, then ean, upc, gtin of
        a catalog item that has an active price at the store, then an
        unpriced catalog match, then not found.
        """
        code = (barcode or "").strip()
        if not code:
            return BarcodeSearchResult(found=False, message="Barcode is required")

        try:
            entry = BarcodeResolver._first_priced(
                BarcodeResolver._active_entries(db, store_id).filter(PriceEntry.barcode == code),
                preferred_currency,
            )
            if entry:
                return BarcodeSearchResult(
                    found=True,
                    item=_to_match(entry),
                    search_method="price_list",
                    matched_code=code,
                )

            for field in GLOBAL_CODE_FIELDS:
                column = getattr(CatalogItem, field)
                query = BarcodeResolver._active_entries(db, store_id).join(
                    CatalogItem, PriceEntry.item_id == CatalogItem.id
                ).filter(column == code)
                entry = BarcodeResolver._first_priced(query, preferred_currency)
                if entry:
                    return BarcodeSearchResult(
                        found=True,
                        item=_to_match(entry),
                        search_method=field,
                        matched_code=code,
                    )

            unpriced = db.query(CatalogItem).filter(
                (CatalogItem.ean == code) | (CatalogItem.upc == code) | (CatalogItem.gtin == code)
            ).order_by(CatalogItem.id).first()
            if unpriced:
                return BarcodeSearchResult(
                    found=False,
                    unpriced=True,
                    matched_code=code,
                    message=f'Item "{unpriced.description}" found but no price set for this store',
                )

            return BarcodeSearchResult(found=False, message=f'No item found with barcode "{code}"')

        except SQLAlchemyError as e:
            logger.error(f"Barcode search failed for {code!r} at store {store_id}: {str(e)}")
            return BarcodeSearchResult(found=False, search_error=True, message="Search error occurred")

    @staticmethod
    def search_with_variants(
        db: Session,
        barcode: str,
        store_id: int,
        preferred_currency: Optional[str] = None,
    ) -> BarcodeSearchResult:
        """
        Try the code as scanned, then its normalized variants, and return the
        first match. Without a match the result of the raw input is returned.
        """
        raw = (barcode or "").strip()
        candidates = [raw] + [v for v in normalize_barcodes(barcode) if v != raw]
        for variant in candidates:
            result = BarcodeResolver.search(db, variant, store_id, preferred_currency)
            if result.found or result.search_error:
                return result

        return BarcodeResolver.search(db, barcode, store_id, preferred_currency)
