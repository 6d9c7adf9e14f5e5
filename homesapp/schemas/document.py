"""
Pydantic schemas for the tenant and owner forms rendered as PDF documents.
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from decimal import Decimal


class TenantReference(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=40)
    relationship: Optional[str] = Field(None, max_length=120)


class RentalFormRequest(BaseModel):
    """Tenant application data."""

    full_name: str = Field(..., min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=40)
    nationality: Optional[str] = Field(None, max_length=120)
    birth_date: Optional[str] = Field(None, max_length=40)
    id_number: Optional[str] = Field(None, max_length=80)
    employment_status: Optional[str] = Field(None, max_length=120)
    employer: Optional[str] = Field(None, max_length=255)
    monthly_income: Optional[Decimal] = Field(None, ge=0)
    references: List[TenantReference] = Field(default_factory=list, max_length=5)
    has_pets: Optional[bool] = None
    has_vehicle: Optional[bool] = None
    comments: Optional[str] = Field(None, max_length=5000)


class OwnerFormRequest(BaseModel):
    """Owner onboarding data."""

    full_name: str = Field(..., min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=40)
    nationality: Optional[str] = Field(None, max_length=120)
    address: Optional[str] = Field(None, max_length=500)
    bank_name: Optional[str] = Field(None, max_length=120)
    account_number: Optional[str] = Field(None, max_length=60)
    clabe: Optional[str] = Field(None, max_length=18)
    preferred_rent_amount: Optional[Decimal] = Field(None, ge=0)
    minimum_contract_months: Optional[int] = Field(None, gt=0, le=120)
    accepts_pets: Optional[bool] = None
    comments: Optional[str] = Field(None, max_length=5000)
