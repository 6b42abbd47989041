"""
Product lookup against the UPC item database and catalog enrichment.
"""

import logging
import re
from typing import List, Optional

import httpx
from fastapi import HTTPException, status
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shoppingbird.core.config import settings
from shoppingbird.models.catalog import CatalogItem
from shoppingbird.schemas.catalog import EnhancedProductData, ItemBase, UPCItem, UPCLookupResponse
from shoppingbird.services.catalog_repository import ItemRepository

logger = logging.getLogger(__name__)


class UPCApiClient:
    """Thin httpx client for the UPC lookup endpoint"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url or settings.UPC_API_URL
        self.timeout = timeout or settings.UPC_API_TIMEOUT
        self.transport = transport

    @staticmethod
    def format_upc(code: str) -> str:
        return re.sub(r"\D", "", code or "")

    @staticmethod
    def is_valid_upc(code: str) -> bool:
        """EAN-8, UPC-A (12) and EAN-13 lengths are accepted"""
        return len(UPCApiClient.format_upc(code)) in (8, 12, 13)

    @staticmethod
    def get_best_image(images: List[str]) -> Optional[str]:
        if not images:
            return None
        for image in images:
            if "250" in image or "large" in image or "high" in image:
                return image
        return images[0]

    @staticmethod
    def parse_category_tags(category: Optional[str]) -> List[str]:
        """"Food > Snacks > Chips" -> ["Food", "Snacks", "Chips"]"""
        if not category:
            return []
        return [part.strip() for part in category.split(" > ") if part.strip()]

    def lookup_product(self, code: str) -> UPCLookupResponse:
        """
        Look up one code.

        Raises:
            HTTPException: 502 when the lookup service fails or answers garbage
        """
        upc = self.format_upc(code)
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(self.base_url, params={"upc": upc})
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            logger.error(f"UPC lookup failed for {upc}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Product lookup failed: {str(e)}"
            )
        except ValueError as e:
            logger.error(f"UPC lookup returned invalid JSON for {upc}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Product lookup returned an invalid response"
            )

        try:
            result = UPCLookupResponse.model_validate({**payload, "code": payload.get("code") or upc})
        except ValidationError as e:
            logger.error(f"Unexpected UPC lookup payload for {upc}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Product lookup returned an invalid response"
            )

        logger.info(f"UPC lookup for {upc}: {len(result.items)} item(s)")
        return result


class ProductEnhancementService:
    """Turns a UPC lookup into catalog item fields and tags"""

    def __init__(self, client: Optional[UPCApiClient] = None):
        self.client = client or UPCApiClient()

    @staticmethod
    def to_enhanced_data(upc_item: UPCItem, existing_description: Optional[str] = None) -> EnhancedProductData:
        description = (existing_description or "").strip() or upc_item.title or "Unknown Product"

        item = ItemBase(
            description=description,
            title=upc_item.title or None,
            brand=upc_item.brand or None,
            model=upc_item.model or None,
            ean=upc_item.ean or None,
            upc=upc_item.upc or None,
            gtin=upc_item.gtin or None,
            asin=upc_item.asin or None,
            full_description=upc_item.description or None,
            category=upc_item.category or None,
            dimension=upc_item.dimension or None,
            weight=upc_item.weight or None,
            images=upc_item.images or None,
            lowest_recorded_price=upc_item.lowest_recorded_price,
            highest_recorded_price=upc_item.highest_recorded_price,
        )

        tags = []
        if upc_item.brand:
            tags.append(upc_item.brand)
        tags.extend(UPCApiClient.parse_category_tags(upc_item.category))
        if upc_item.model and upc_item.model != upc_item.brand:
            tags.append(upc_item.model)

        return EnhancedProductData(item=item, tags=list(dict.fromkeys(tags)), images=upc_item.images)

    def enhance_product_by_upc(self, code: str, existing_description: Optional[str] = None) -> Optional[EnhancedProductData]:
        """
        Returns:
            Enhanced data from the first lookup result, or None when the code is unknown

        Raises:
            HTTPException: 400 for a malformed code, 502 when the lookup fails
        """
        if not UPCApiClient.is_valid_upc(code):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid UPC/EAN format"
            )

        response = self.client.lookup_product(UPCApiClient.format_upc(code))
        if not response.items:
            return None
        return self.to_enhanced_data(response.items[0], existing_description)

    @staticmethod
    def create_enhanced_item(db: Session, data: EnhancedProductData) -> CatalogItem:
        """Persist the enriched item together with its tags"""
        try:
            db_item = CatalogItem(**data.item.model_dump())
            db.add(db_item)
            db.flush()
            ItemRepository.add_tags(db, db_item, data.tags)
            db.commit()
            db.refresh(db_item)
        except IntegrityError as e:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Database integrity error: {str(e.orig)}"
            )
        logger.info(f"Created enriched item {db_item.id} with {len(data.tags)} tag(s)")
        return db_item

    @staticmethod
    def update_item_with_enhancement(db: Session, item_id: int, data: EnhancedProductData) -> CatalogItem:
        """Overwrite product fields of an existing item; its description is kept"""
        db_item = ItemRepository.get_by_id(db, item_id)
        for field, value in data.item.model_dump(exclude={"description"}).items():
            setattr(db_item, field, value)
        ItemRepository.add_tags(db, db_item, data.tags)
        db.commit()
        db.refresh(db_item)
        return db_item
