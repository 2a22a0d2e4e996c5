from datetime import date, datetime
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field


class BillStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"


class PaymentMethod(StrEnum):
    PIX = "PIX"
    CARD = "CARD"
    BANK_TRANSFER = "BANK_TRANSFER"


class DueState(StrEnum):
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    NORMAL = "normal"


# --- Mutations ---


class BillCreate(BaseModel):
    beneficiary: str = Field(..., min_length=1, max_length=255)
    amount: float = Field(..., gt=0)
    due_date: date
    category: Optional[str] = Field(default=None, max_length=64)
    barcode: Optional[str] = Field(default=None, max_length=64)


class BillUpdate(BaseModel):
    beneficiary: Optional[str] = Field(default=None, min_length=1, max_length=255)
    amount: Optional[float] = Field(default=None, gt=0)
    due_date: Optional[date] = None
    category: Optional[str] = Field(default=None, max_length=64)
    barcode: Optional[str] = Field(default=None, max_length=64)


class MarkPaidRequest(BaseModel):
    payment_method: Optional[PaymentMethod] = None


# --- Reads ---


class BillOut(BaseModel):
    id: str
    beneficiary: str
    amount: float
    due_date: date
    status: BillStatus
    category: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    paid_at: Optional[date] = None
    barcode: Optional[str] = None
    days_until_due: int
    due_state: DueState
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BillListResponse(BaseModel):
    pending: list[BillOut]
    paid: list[BillOut]


class CategoryBreakdownItem(BaseModel):
    category: Optional[str] = None
    count: int
    amount: float


class DashboardStats(BaseModel):
    total_pending: float
    total_paid_this_month: float
    total_paid_overall: float
    upcoming_count: int
    category_breakdown: list[CategoryBreakdownItem]
    computed_for: date


class CategoryListResponse(BaseModel):
    categories: list[str]
