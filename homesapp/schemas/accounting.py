"""
Pydantic schemas for agency payments and biweekly accounting reports.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from datetime import date, datetime
from decimal import Decimal
from homesapp.models.payment import PaymentStatus
from homesapp.models.commission import CommissionType, CommissionSource


class PaymentCreate(BaseModel):
    concept: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0)
    currency: str = Field("MXN", min_length=3, max_length=3)
    due_date: date
    commission_type: Optional[CommissionType] = None
    property_id: Optional[str] = None
    lead_id: Optional[str] = None
    seller_id: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v):
        return v.upper()


class PaymentUpdate(BaseModel):
    concept: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(None, gt=0)
    due_date: Optional[date] = None
    status: Optional[PaymentStatus] = None
    commission_type: Optional[CommissionType] = None
    seller_id: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=2000)


class PaymentResponse(BaseModel):
    id: str
    agency_id: str
    property_id: Optional[str] = None
    lead_id: Optional[str] = None
    seller_id: Optional[str] = None
    concept: str
    commission_type: Optional[CommissionType] = None
    amount: Decimal
    currency: str
    status: PaymentStatus
    effective_status: PaymentStatus
    due_date: date
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PaymentListResponse(BaseModel):
    payments: List[PaymentResponse]
    total: int
    page: int
    page_size: int


class PeriodBucket(BaseModel):
    """Totals of one biweekly period."""

    label: str = Field(..., description="YYYY-MM-1 or YYYY-MM-2")
    start: date
    end: date
    payment_count: int
    totals_by_currency: Dict[str, Decimal]
    totals_by_status: Dict[str, Dict[str, Decimal]] = Field(
        ..., description="Effective status -> currency -> total"
    )


class AccountingSummaryResponse(BaseModel):
    start: date
    end: date
    periods: List[PeriodBucket]


class SellerStatementLine(BaseModel):
    payment_id: str
    concept: str
    due_date: date
    paid_at: Optional[datetime] = None
    amount: Decimal
    currency: str
    commission_type: CommissionType
    percentage: Decimal
    source: CommissionSource
    commission_amount: Decimal


class SellerStatementResponse(BaseModel):
    seller_id: str
    period: str
    start: date
    end: date
    lines: List[SellerStatementLine]
    totals_by_currency: Dict[str, Decimal]
