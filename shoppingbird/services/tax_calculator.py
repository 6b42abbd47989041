"""
Tax calculation and tax type management.

Taxes are additive: every rate applies to the base price, never to a price
that already includes another tax.
"""

import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from shoppingbird.models.catalog import PriceEntry
from shoppingbird.models.tax import TaxType, TaxAssociation
from shoppingbird.schemas.tax import AppliedTax, TaxCalculation, TaxTypeCreate, TaxTypeUpdate

logger = logging.getLogger(__name__)


def round_money(value: Decimal, decimal_places: int = 2) -> Decimal:
    """Round half up to the given number of decimal places."""
    quantum = Decimal(1).scaleb(-decimal_places)
    return Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)


class TaxCalculator:
    """Pure tax arithmetic plus the tax type / price entry associations"""

    @staticmethod
    def calculate(base_price: Decimal, tax_types: List[TaxType], decimal_places: int = 2) -> TaxCalculation:
        base = Decimal(base_price)
        applied = []
        for tax in tax_types:
            applied.append(AppliedTax(
                tax_id=tax.id,
                tax_name=tax.name,
                percentage=tax.percentage,
                amount=round_money(base * Decimal(tax.percentage) / Decimal(100), decimal_places),
                effective_date=date.today(),
                is_default=bool(tax.is_default),
            ))

        total_tax = sum((t.amount for t in applied), Decimal("0"))
        total_pct = sum((Decimal(t.percentage) for t in applied), Decimal("0"))

        return TaxCalculation(
            base_price=base,
            applied_taxes=applied,
            total_tax_amount=total_tax,
            total_tax_percentage=total_pct,
            final_price=base + total_tax,
            uses_default_no_tax=not applied,
        )

    @staticmethod
    def calculate_taxes(
        db: Session,
        base_price: Decimal,
        tax_ids: List[int],
        decimal_places: int = 2,
    ) -> TaxCalculation:
        """
        Calculate the additive tax breakdown for a base price.

        Args:
            db: Database session
            base_price: Price before taxes
            tax_ids: Tax type IDs to apply (inactive ones are ignored)
            decimal_places: Rounding precision of each tax amount

        Returns:
            TaxCalculation with applied taxes and final price

        Raises:
            HTTPException: 400 if ids were given but none resolves to an active tax
        """
        if not tax_ids:
            return TaxCalculator.calculate(base_price, [], decimal_places)

        taxes = db.query(TaxType).filter(
            TaxType.id.in_(tax_ids),
            TaxType.is_active.is_(True),
        ).order_by(TaxType.id).all()

        if not taxes:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No valid taxes found for provided IDs"
            )

        return TaxCalculator.calculate(base_price, taxes, decimal_places)

    @staticmethod
    def get_applicable_taxes(db: Session, price_list_id: int, on_date: Optional[date] = None) -> List[TaxType]:
        """Active tax types associated with a price entry and already in effect"""
        on_date = on_date or date.today()
        return db.query(TaxType).join(
            TaxAssociation, TaxAssociation.tax_type_id == TaxType.id
        ).filter(
            TaxAssociation.price_list_id == price_list_id,
            TaxAssociation.is_active.is_(True),
            TaxAssociation.effective_date <= on_date,
            TaxType.is_active.is_(True),
        ).order_by(TaxType.id).all()

    @staticmethod
    def calculate_for_price_entry(
        db: Session,
        price_entry: PriceEntry,
        decimal_places: int = 2,
    ) -> TaxCalculation:
        taxes = TaxCalculator.get_applicable_taxes(db, price_entry.id)
        return TaxCalculator.calculate(price_entry.retail_price, taxes, decimal_places)

    @staticmethod
    def update_tax_associations(db: Session, price_list_id: int, tax_ids: List[int], commit: bool = True) -> List[TaxAssociation]:
        """
        Replace every tax association of a price entry.

        Raises:
            HTTPException: 404 if the price entry or a tax type does not exist
        """
        entry = db.query(PriceEntry).filter(PriceEntry.id == price_list_id).first()
        if not entry:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Price entry with ID {price_list_id} not found"
            )

        unique_ids = list(dict.fromkeys(tax_ids))
        if unique_ids:
            found = {t.id for t in db.query(TaxType.id).filter(TaxType.id.in_(unique_ids)).all()}
            missing = [tid for tid in unique_ids if tid not in found]
            if missing:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"Tax types not found: {missing}"
                )

        try:
            db.query(TaxAssociation).filter(TaxAssociation.price_list_id == price_list_id).delete(
                synchronize_session=False
            )
            associations = [
                TaxAssociation(price_list_id=price_list_id, tax_type_id=tid, is_active=True, effective_date=date.today())
                for tid in unique_ids
            ]
            db.add_all(associations)
            db.flush()
            if commit:
                db.commit()
            db.expire(entry, ["tax_associations"])
            return associations
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update tax associations for price entry {price_list_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to update tax associations: {str(e)}"
            )


class TaxTypeRepository:
    """Repository for TaxType CRUD operations"""

    @staticmethod
    def get_all(db: Session, include_inactive: bool = False) -> List[TaxType]:
        query = db.query(TaxType)
        if not include_inactive:
            query = query.filter(TaxType.is_active.is_(True))
        return query.order_by(TaxType.name).all()

    @staticmethod
    def get_by_id(db: Session, tax_type_id: int) -> TaxType:
        tax = db.query(TaxType).filter(TaxType.id == tax_type_id).first()
        if not tax:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Tax type with ID {tax_type_id} not found"
            )
        return tax

    @staticmethod
    def get_default(db: Session) -> Optional[TaxType]:
        """The default tax type, if any"""
        return db.query(TaxType).filter(
            TaxType.is_default.is_(True),
            TaxType.is_active.is_(True),
        ).first()

    @staticmethod
    def _clear_defaults(db: Session, keep_id: Optional[int] = None):
        query = db.query(TaxType).filter(TaxType.is_default.is_(True))
        if keep_id is not None:
            query = query.filter(TaxType.id != keep_id)
        query.update({TaxType.is_default: False}, synchronize_session="fetch")
        db.flush()

    @staticmethod
    def create(db: Session, tax: TaxTypeCreate) -> TaxType:
        if db.query(TaxType).filter(TaxType.name == tax.name).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Tax type '{tax.name}' already exists"
            )
        try:
            if tax.is_default:
                TaxTypeRepository._clear_defaults(db)
            db_tax = TaxType(**tax.model_dump())
            db.add(db_tax)
            db.commit()
            db.refresh(db_tax)
            logger.info(f"Created tax type {db_tax.name} ({db_tax.percentage}%)")
            return db_tax
        except IntegrityError as e:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Database integrity error: {str(e.orig)}"
            )

    @staticmethod
    def update(db: Session, tax_type_id: int, tax_update: TaxTypeUpdate) -> TaxType:
        db_tax = TaxTypeRepository.get_by_id(db, tax_type_id)
        update_data = tax_update.model_dump(exclude_unset=True)

        if "name" in update_data and update_data["name"] != db_tax.name:
            if db.query(TaxType).filter(TaxType.name == update_data["name"]).first():
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Tax type '{update_data['name']}' already exists"
                )

        try:
            if update_data.get("is_default"):
                TaxTypeRepository._clear_defaults(db, keep_id=tax_type_id)
            for field, value in update_data.items():
                setattr(db_tax, field, value)
            db.commit()
            db.refresh(db_tax)
            return db_tax
        except IntegrityError as e:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Database integrity error: {str(e.orig)}"
            )

    @staticmethod
    def set_default(db: Session, tax_type_id: int) -> TaxType:
        """Make one tax type the default; every other default is cleared first"""
        db_tax = TaxTypeRepository.get_by_id(db, tax_type_id)
        if not db_tax.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="An inactive tax type cannot be the default"
            )
        try:
            TaxTypeRepository._clear_defaults(db, keep_id=tax_type_id)
            db_tax.is_default = True
            db.commit()
            db.refresh(db_tax)
            logger.info(f"Default tax type set to {db_tax.name}")
            return db_tax
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to set default tax type {tax_type_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to set default tax type: {str(e)}"
            )

    @staticmethod
    def delete(db: Session, tax_type_id: int) -> bool:
        """Delete a tax type that no price entry or invoice line references"""
        db_tax = TaxTypeRepository.get_by_id(db, tax_type_id)
        in_use = db.query(TaxAssociation).filter(TaxAssociation.tax_type_id == tax_type_id).first()
        if in_use:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Tax type is still assigned to price entries"
            )
        try:
            db.delete(db_tax)
            db.commit()
            return True
        except IntegrityError:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Tax type is referenced by recorded transactions; deactivate it instead"
            )
