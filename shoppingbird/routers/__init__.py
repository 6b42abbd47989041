"""
API routers for the application.
"""

from fastapi import APIRouter
from shoppingbird.routers import auth, users, stores, items, taxes, currencies, pos, transactions

api_router = APIRouter()

# Include routers
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(stores.router)
api_router.include_router(stores.units_router)
api_router.include_router(items.router)  # Catalog items & product enrichment
api_router.include_router(items.price_router)  # Store prices, history & taxes
api_router.include_router(taxes.router)
api_router.include_router(currencies.router)
api_router.include_router(pos.router)  # Barcode search, cart, checkout, suspended sales
api_router.include_router(transactions.router)  # History, summary, export, receipts

__all__ = ["api_router", "auth", "users", "stores", "items", "taxes", "currencies", "pos", "transactions"]
