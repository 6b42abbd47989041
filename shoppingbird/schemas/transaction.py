"""
Pydantic schemas for the cart, invoices, suspended transactions and
transaction reporting.
"""

from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List, Dict
from pydantic import BaseModel, Field


# ============================================================================
# Cart Schemas
# ============================================================================

class TaxBreakdownItem(BaseModel):
    """One tax on a line (per unit in the cart, per line once recorded)"""
    tax_id: int
    tax_name: str
    percentage: Decimal
    amount: Decimal
    effective_date: Optional[date] = None


class CartLine(BaseModel):
    """One line of the in-memory cart"""
    item_id: int
    price_list_id: int = 0
    description: str
    barcode: str = ""
    base_price: Decimal
    tax_amount: Decimal = Decimal("0")
    final_price: Decimal
    quantity: int = Field(1, ge=1)
    unit: str = "each"
    currency_id: Optional[int] = None
    tax_breakdown: List[TaxBreakdownItem] = []
    has_custom_taxes: bool = False


class Cart(BaseModel):
    """Client-owned cart passed back and forth with every cart operation"""
    lines: List[CartLine] = []
    adjust_amount: Decimal = Decimal("0")


class CartResponse(Cart):
    """Cart with computed totals"""
    subtotal: Decimal
    total_tax: Decimal
    total: Decimal
    item_count: int
    message: Optional[str] = None


class ScanRequest(BaseModel):
    """Add the item behind a scanned code to the cart"""
    cart: Cart = Field(default_factory=Cart)
    barcode: str = Field(..., min_length=1)
    store_id: int
    preferred_currency: Optional[str] = Field(None, description="Currency code to prefer when several prices exist")


class QuantityUpdateRequest(BaseModel):
    cart: Cart
    item_id: int
    quantity: int = Field(..., description="A value of zero or less removes the line")


class RemoveLineRequest(BaseModel):
    cart: Cart
    item_id: int


class CheckoutRequest(BaseModel):
    """Persist the cart as a completed invoice"""
    store_id: int
    cart: Cart


class SuspendRequest(BaseModel):
    """Persist the cart as a resumable suspended invoice"""
    store_id: int
    cart: Cart
    session_name: str = Field(..., min_length=1, max_length=255)
    notes: Optional[str] = None


class SuspendedUpdateRequest(BaseModel):
    cart: Cart
    session_name: str = Field(..., min_length=1, max_length=255)
    notes: Optional[str] = None


# ============================================================================
# Transaction Schemas
# ============================================================================

class StoreSummary(BaseModel):
    id: int
    name: str


class UserSummary(BaseModel):
    id: int
    full_name: str
    username: str


class TransactionItem(BaseModel):
    """Persisted invoice line"""
    id: int
    item_id: int
    description: str
    base_price: Decimal
    tax_amount: Decimal
    total_price: Decimal
    quantity: int
    brand: Optional[str] = None
    model: Optional[str] = None
    category: Optional[str] = None
    tax_breakdown: List[TaxBreakdownItem] = []


class TransactionOut(BaseModel):
    """Invoice header with lines and computed totals"""
    id: int
    number: str
    date: date
    status: str
    adjust_amount: Decimal
    total: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    suspended_at: Optional[datetime] = None
    session_name: Optional[str] = None
    notes: Optional[str] = None
    store: StoreSummary
    user: UserSummary
    items: List[TransactionItem] = []
    subtotal: Decimal
    total_tax: Decimal
    item_count: int


class TransactionListResponse(BaseModel):
    transactions: List[TransactionOut]
    total_count: int
    page: int
    limit: int


class SuspendedTransactionOut(BaseModel):
    id: int
    number: str
    session_name: Optional[str]
    notes: Optional[str]
    total: Decimal
    adjust_amount: Decimal
    suspended_at: Optional[datetime]
    store: StoreSummary
    user: UserSummary
    item_count: int


class SuspendedListResponse(BaseModel):
    suspended_transactions: List[SuspendedTransactionOut]
    total_count: int
    page: int
    limit: int


class ResumeResponse(BaseModel):
    """Suspended header plus the cart rebuilt from its recorded lines"""
    transaction: TransactionOut
    cart: CartResponse


# ============================================================================
# Reporting Schemas
# ============================================================================

class TransactionFilter(BaseModel):
    """Filters shared by listing, summary and export"""
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    store_id: Optional[int] = None
    user_id: Optional[int] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    search: Optional[str] = Field(None, description="Substring of the invoice number")
    status: Optional[str] = None


class TopSellingItem(BaseModel):
    item_id: int
    description: str
    quantity_sold: int
    revenue: Decimal


class StoreSales(BaseModel):
    store_id: int
    store_name: str
    transaction_count: int
    revenue: Decimal


class TransactionSummary(BaseModel):
    total_transactions: int
    total_revenue: Decimal
    total_items_sold: int
    average_transaction_value: Decimal
    top_selling_items: List[TopSellingItem] = []
    sales_by_store: List[StoreSales] = []
    revenue_by_day: Dict[str, Decimal] = {}


class ReceiptResponse(BaseModel):
    number: str
    receipt: str
