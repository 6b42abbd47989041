"""
Database models for the application.
"""

from shoppingbird.core.database import Base
from shoppingbird.models.user import User
from shoppingbird.models.store import Store, Unit
from shoppingbird.models.currency import Currency
from shoppingbird.models.tax import TaxType, TaxAssociation
from shoppingbird.models.catalog import CatalogItem, Tag, ItemTag, PriceEntry, PriceHistory
from shoppingbird.models.invoice import Invoice, InvoiceDetail, InvoiceDetailTax, InvoiceStatus

__all__ = [
    "Base",
    "User",
    "Store",
    "Unit",
    "Currency",
    "TaxType",
    "TaxAssociation",
    "CatalogItem",
    "Tag",
    "ItemTag",
    "PriceEntry",
    "PriceHistory",
    "Invoice",
    "InvoiceDetail",
    "InvoiceDetailTax",
    "InvoiceStatus",
]
