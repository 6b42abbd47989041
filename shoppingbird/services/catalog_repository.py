"""
Repository layer for stores, units, catalog items, tags and store price
entries.
"""

import logging
from datetime import date
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from shoppingbird.models.catalog import CatalogItem, PriceEntry, PriceHistory, Tag
from shoppingbird.models.currency import Currency
from shoppingbird.models.invoice import InvoiceDetail
from shoppingbird.models.store import Store, Unit
from shoppingbird.schemas.catalog import (
    ItemCreate, ItemUpdate, PriceEntryCreate, PriceEntryResponse, PriceEntryUpdate,
)
from shoppingbird.schemas.store import StoreCreate, StoreUpdate, UnitCreate, UnitUpdate
from shoppingbird.schemas.tax import TaxTypeResponse
from shoppingbird.services.tax_calculator import TaxCalculator

logger = logging.getLogger(__name__)


def _integrity_error(db: Session, e: IntegrityError):
    db.rollback()
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Database integrity error: {str(e.orig)}"
    )


class StoreRepository:
    """Repository for Store operations"""

    @staticmethod
    def create(db: Session, store: StoreCreate) -> Store:
        if db.query(Store).filter(Store.name == store.name).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Store '{store.name}' already exists"
            )
        try:
            db_store = Store(**store.model_dump())
            db.add(db_store)
            db.commit()
            db.refresh(db_store)
            return db_store
        except IntegrityError as e:
            _integrity_error(db, e)

    @staticmethod
    def get_by_id(db: Session, store_id: int) -> Store:
        store = db.query(Store).filter(Store.id == store_id).first()
        if not store:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Store with ID {store_id} not found"
            )
        return store

    @staticmethod
    def get_all(db: Session, include_inactive: bool = False) -> List[Store]:
        query = db.query(Store)
        if not include_inactive:
            query = query.filter(Store.is_active.is_(True))
        return query.order_by(Store.name).all()

    @staticmethod
    def update(db: Session, store_id: int, store_update: StoreUpdate) -> Store:
        db_store = StoreRepository.get_by_id(db, store_id)
        for field, value in store_update.model_dump(exclude_unset=True).items():
            setattr(db_store, field, value)
        try:
            db.commit()
            db.refresh(db_store)
            return db_store
        except IntegrityError as e:
            _integrity_error(db, e)

    @staticmethod
    def deactivate(db: Session, store_id: int) -> Store:
        """Stores with recorded sales are never deleted, only deactivated"""
        db_store = StoreRepository.get_by_id(db, store_id)
        db_store.is_active = False
        db.commit()
        db.refresh(db_store)
        return db_store


class UnitRepository:
    """Repository for Unit operations"""

    @staticmethod
    def create(db: Session, unit: UnitCreate) -> Unit:
        if db.query(Unit).filter(Unit.unit == unit.unit).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unit '{unit.unit}' already exists"
            )
        db_unit = Unit(**unit.model_dump())
        db.add(db_unit)
        db.commit()
        db.refresh(db_unit)
        return db_unit

    @staticmethod
    def get_by_id(db: Session, unit_id: int) -> Unit:
        unit = db.query(Unit).filter(Unit.id == unit_id).first()
        if not unit:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unit with ID {unit_id} not found"
            )
        return unit

    @staticmethod
    def get_all(db: Session) -> List[Unit]:
        return db.query(Unit).order_by(Unit.unit).all()

    @staticmethod
    def update(db: Session, unit_id: int, unit_update: UnitUpdate) -> Unit:
        db_unit = UnitRepository.get_by_id(db, unit_id)
        for field, value in unit_update.model_dump(exclude_unset=True).items():
            setattr(db_unit, field, value)
        try:
            db.commit()
            db.refresh(db_unit)
            return db_unit
        except IntegrityError as e:
            _integrity_error(db, e)

    @staticmethod
    def delete(db: Session, unit_id: int) -> bool:
        db_unit = UnitRepository.get_by_id(db, unit_id)
        if db.query(PriceEntry).filter(PriceEntry.unit_id == unit_id).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Unit is used by price entries"
            )
        db.delete(db_unit)
        db.commit()
        return True


class ItemRepository:
    """Repository for catalog items and their tags"""

    @staticmethod
    def get_or_create_tag(db: Session, name: str, tag_type: str = "category") -> Tag:
        tag = db.query(Tag).filter(Tag.name == name).first()
        if not tag:
            tag = Tag(name=name, tag_type=tag_type)
            db.add(tag)
            db.flush()
        return tag

    @staticmethod
    def add_tags(db: Session, item: CatalogItem, tag_names: List[str]):
        """Attach tags by name, creating missing ones; existing links are kept"""
        for name in dict.fromkeys(n.strip() for n in tag_names):
            if not name:
                continue
            tag = ItemRepository.get_or_create_tag(db, name)
            if tag not in item.tags:
                item.tags.append(tag)
        db.flush()

    @staticmethod
    def create(db: Session, item: ItemCreate) -> CatalogItem:
        try:
            db_item = CatalogItem(**item.model_dump(exclude={"tags"}))
            db.add(db_item)
            db.flush()
            if item.tags:
                ItemRepository.add_tags(db, db_item, item.tags)
            db.commit()
            db.refresh(db_item)
            logger.info(f"Created catalog item {db_item.id}: {db_item.description}")
            return db_item
        except IntegrityError as e:
            _integrity_error(db, e)

    @staticmethod
    def get_by_id(db: Session, item_id: int) -> CatalogItem:
        item = db.query(CatalogItem).options(selectinload(CatalogItem.tags)).filter(
            CatalogItem.id == item_id
        ).first()
        if not item:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Item with ID {item_id} not found"
            )
        return item

    @staticmethod
    def get_all(
        db: Session,
        skip: int = 0,
        limit: int = 100,
        search: Optional[str] = None,
        store_id: Optional[int] = None,
    ) -> Tuple[List[CatalogItem], int]:
        """
        List catalog items.

        search matches description, title, brand and the global codes;
        store_id keeps only items with an active price at that store.
        """
        query = db.query(CatalogItem)

        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                CatalogItem.description.ilike(pattern),
                CatalogItem.title.ilike(pattern),
                CatalogItem.brand.ilike(pattern),
                CatalogItem.ean == search,
                CatalogItem.upc == search,
                CatalogItem.gtin == search,
            ))
        if store_id:
            query = query.filter(CatalogItem.price_entries.any(
                (PriceEntry.store_id == store_id) & (PriceEntry.is_active.is_(True))
            ))

        total = query.count()
        items = query.options(selectinload(CatalogItem.tags))\
            .order_by(CatalogItem.description)\
            .offset(skip).limit(limit).all()
        return items, total

    @staticmethod
    def update(db: Session, item_id: int, item_update: ItemUpdate) -> CatalogItem:
        db_item = ItemRepository.get_by_id(db, item_id)
        for field, value in item_update.model_dump(exclude_unset=True).items():
            setattr(db_item, field, value)
        db.commit()
        db.refresh(db_item)
        return db_item

    @staticmethod
    def delete(db: Session, item_id: int) -> bool:
        """Delete an item with its price entries; sold items cannot be deleted"""
        db_item = ItemRepository.get_by_id(db, item_id)
        if db.query(InvoiceDetail).filter(InvoiceDetail.item_id == item_id).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Item appears on recorded transactions and cannot be deleted"
            )
        db.delete(db_item)
        db.commit()
        return True


def serialize_price_entry(db: Session, entry: PriceEntry) -> PriceEntryResponse:
    taxes = TaxCalculator.get_applicable_taxes(db, entry.id)
    return PriceEntryResponse(
        id=entry.id,
        item_id=entry.item_id,
        store_id=entry.store_id,
        barcode=entry.barcode,
        unit_id=entry.unit_id,
        unit=entry.unit.unit if entry.unit else None,
        retail_price=entry.retail_price,
        currency_id=entry.currency_id,
        currency_code=entry.currency.code if entry.currency else None,
        is_active=entry.is_active,
        effective_date=entry.effective_date,
        taxes=[TaxTypeResponse.model_validate(t) for t in taxes],
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


class PriceEntryRepository:
    """Repository for store price entries and their price history"""

    @staticmethod
    def _check_refs(db: Session, store_id: Optional[int], unit_id: Optional[int], currency_id: Optional[int]):
        if store_id is not None:
            StoreRepository.get_by_id(db, store_id)
        if unit_id is not None:
            UnitRepository.get_by_id(db, unit_id)
        if currency_id is not None and not db.query(Currency).filter(Currency.id == currency_id).first():
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Currency with ID {currency_id} not found"
            )

    @staticmethod
    def get_by_id(db: Session, price_list_id: int) -> PriceEntry:
        entry = db.query(PriceEntry).options(
            joinedload(PriceEntry.unit),
            joinedload(PriceEntry.currency),
        ).filter(PriceEntry.id == price_list_id).first()
        if not entry:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Price entry with ID {price_list_id} not found"
            )
        return entry

    @staticmethod
    def get_for_item(db: Session, item_id: int, store_id: Optional[int] = None, active_only: bool = False) -> List[PriceEntry]:
        ItemRepository.get_by_id(db, item_id)
        query = db.query(PriceEntry).options(
            joinedload(PriceEntry.unit),
            joinedload(PriceEntry.currency),
        ).filter(PriceEntry.item_id == item_id)
        if store_id:
            query = query.filter(PriceEntry.store_id == store_id)
        if active_only:
            query = query.filter(PriceEntry.is_active.is_(True))
        return query.order_by(PriceEntry.store_id, PriceEntry.id).all()

    @staticmethod
    def create(db: Session, entry: PriceEntryCreate, changed_by: Optional[int] = None) -> PriceEntry:
        """
        Set an item's price at a store.

        Writes the first price history row and the tax associations in the
        same transaction.
        """
        ItemRepository.get_by_id(db, entry.item_id)
        PriceEntryRepository._check_refs(db, entry.store_id, entry.unit_id, entry.currency_id)

        try:
            data = entry.model_dump(exclude={"tax_ids"})
            if data["effective_date"] is None:
                data["effective_date"] = date.today()
            db_entry = PriceEntry(**data)
            db.add(db_entry)
            db.flush()

            db.add(PriceHistory(
                price_list_id=db_entry.id,
                old_price=None,
                new_price=db_entry.retail_price,
                currency_id=db_entry.currency_id,
                changed_by=changed_by,
            ))
            if entry.tax_ids:
                TaxCalculator.update_tax_associations(db, db_entry.id, entry.tax_ids, commit=False)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create price entry for item {entry.item_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to create price entry: {str(e)}"
            )

        return PriceEntryRepository.get_by_id(db, db_entry.id)

    @staticmethod
    def update(db: Session, price_list_id: int, entry_update: PriceEntryUpdate, changed_by: Optional[int] = None) -> PriceEntry:
        """Update a price entry; a price or currency change appends a history row"""
        db_entry = PriceEntryRepository.get_by_id(db, price_list_id)
        update_data = entry_update.model_dump(exclude_unset=True)
        PriceEntryRepository._check_refs(db, None, update_data.get("unit_id"), update_data.get("currency_id"))

        old_price = db_entry.retail_price
        old_currency = db_entry.currency_id

        try:
            for field, value in update_data.items():
                setattr(db_entry, field, value)

            if db_entry.retail_price != old_price or db_entry.currency_id != old_currency:
                db.add(PriceHistory(
                    price_list_id=db_entry.id,
                    old_price=old_price,
                    new_price=db_entry.retail_price,
                    currency_id=db_entry.currency_id,
                    changed_by=changed_by,
                ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update price entry {price_list_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to update price entry: {str(e)}"
            )

        return PriceEntryRepository.get_by_id(db, price_list_id)

    @staticmethod
    def deactivate(db: Session, price_list_id: int) -> PriceEntry:
        db_entry = PriceEntryRepository.get_by_id(db, price_list_id)
        db_entry.is_active = False
        db.commit()
        return db_entry

    @staticmethod
    def delete(db: Session, price_list_id: int) -> bool:
        db_entry = PriceEntryRepository.get_by_id(db, price_list_id)
        db.delete(db_entry)
        db.commit()
        return True

    @staticmethod
    def get_history(db: Session, price_list_id: int) -> List[PriceHistory]:
        PriceEntryRepository.get_by_id(db, price_list_id)
        return db.query(PriceHistory).filter(
            PriceHistory.price_list_id == price_list_id
        ).order_by(PriceHistory.changed_at.desc(), PriceHistory.id.desc()).all()
