"""
Schemas for the application.

This module exports the Pydantic models used for request/response validation.
"""

from shoppingbird.schemas.user import (
    UserBase,
    UserCreate,
    UserUpdate,
    UserOut,
    LoginRequest,
    LoginResponse,
    PasswordChange,
)

from shoppingbird.schemas.store import (
    StoreBase,
    StoreCreate,
    StoreUpdate,
    StoreResponse,
    UnitBase,
    UnitCreate,
    UnitUpdate,
    UnitResponse,
    SuccessResponse,
)

from shoppingbird.schemas.tax import (
    TaxTypeBase,
    TaxTypeCreate,
    TaxTypeUpdate,
    TaxTypeResponse,
    AppliedTax,
    TaxCalculation,
    TaxCalculationRequest,
    TaxAssociationUpdate,
)

from shoppingbird.schemas.currency import (
    CurrencyBase,
    CurrencyCreate,
    CurrencyUpdate,
    CurrencyResponse,
    CurrencyConversion,
    FormatMoneyRequest,
    FormatMoneyResponse,
    ExchangeRatesUpdate,
    ExchangeRatesUpdateResponse,
)

from shoppingbird.schemas.catalog import (
    ItemBase,
    ItemCreate,
    ItemUpdate,
    ItemResponse,
    ItemListResponse,
    TagResponse,
    PriceEntryCreate,
    PriceEntryUpdate,
    PriceEntryResponse,
    PriceHistoryResponse,
    BarcodeMatch,
    BarcodeSearchResult,
    UPCItem,
    UPCLookupResponse,
    EnhancedProductData,
    EnhanceRequest,
)

from shoppingbird.schemas.transaction import (
    TaxBreakdownItem,
    CartLine,
    Cart,
    CartResponse,
    ScanRequest,
    QuantityUpdateRequest,
    RemoveLineRequest,
    CheckoutRequest,
    SuspendRequest,
    SuspendedUpdateRequest,
    TransactionItem,
    TransactionOut,
    TransactionListResponse,
    SuspendedTransactionOut,
    SuspendedListResponse,
    ResumeResponse,
    TransactionFilter,
    TransactionSummary,
    TopSellingItem,
    StoreSales,
    ReceiptResponse,
)

__all__ = [
    # User schemas
    "UserBase", "UserCreate", "UserUpdate", "UserOut",
    "LoginRequest", "LoginResponse", "PasswordChange",
    # Store schemas
    "StoreBase", "StoreCreate", "StoreUpdate", "StoreResponse",
    "UnitBase", "UnitCreate", "UnitUpdate", "UnitResponse",
    "SuccessResponse",
    # Tax schemas
    "TaxTypeBase", "TaxTypeCreate", "TaxTypeUpdate", "TaxTypeResponse",
    "AppliedTax", "TaxCalculation", "TaxCalculationRequest", "TaxAssociationUpdate",
    # Currency schemas
    "CurrencyBase", "CurrencyCreate", "CurrencyUpdate", "CurrencyResponse",
    "CurrencyConversion", "FormatMoneyRequest", "FormatMoneyResponse",
    "ExchangeRatesUpdate", "ExchangeRatesUpdateResponse",
    # Catalog schemas
    "ItemBase", "ItemCreate", "ItemUpdate", "ItemResponse", "ItemListResponse", "TagResponse",
    "PriceEntryCreate", "PriceEntryUpdate", "PriceEntryResponse", "PriceHistoryResponse",
    "BarcodeMatch", "BarcodeSearchResult",
    "UPCItem", "UPCLookupResponse", "EnhancedProductData", "EnhanceRequest",
    # Transaction schemas
    "TaxBreakdownItem", "CartLine", "Cart", "CartResponse",
    "ScanRequest", "QuantityUpdateRequest", "RemoveLineRequest",
    "CheckoutRequest", "SuspendRequest", "SuspendedUpdateRequest",
    "TransactionItem", "TransactionOut", "TransactionListResponse",
    "SuspendedTransactionOut", "SuspendedListResponse", "ResumeResponse",
    "TransactionFilter", "TransactionSummary", "TopSellingItem", "StoreSales", "ReceiptResponse",
]
