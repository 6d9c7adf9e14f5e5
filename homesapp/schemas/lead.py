"""
Pydantic schemas for agency leads.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime
from homesapp.models.lead import LeadStatus


class LeadCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=120)
    last_name: str = Field("", max_length=120)
    phone: Optional[str] = Field(None, max_length=40)
    email: Optional[EmailStr] = None
    source: Optional[str] = Field(None, max_length=120)
    property_id: Optional[str] = None
    seller_id: Optional[str] = Field(None, description="Seller owning the lead; defaults to the caller")
    notes: Optional[str] = Field(None, max_length=5000)
    allow_duplicate: bool = Field(False, description="Register even when a matching lead exists")

    @field_validator('first_name')
    @classmethod
    def validate_first_name(cls, v):
        if not v.strip():
            raise ValueError("First name cannot be empty")
        return v.strip()


class LeadUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=120)
    last_name: Optional[str] = Field(None, max_length=120)
    phone: Optional[str] = Field(None, max_length=40)
    email: Optional[EmailStr] = None
    source: Optional[str] = Field(None, max_length=120)
    status: Optional[LeadStatus] = None
    property_id: Optional[str] = None
    seller_id: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=5000)


class LeadResponse(BaseModel):
    id: str
    agency_id: str
    seller_id: Optional[str] = None
    first_name: str
    last_name: str
    full_name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    source: Optional[str] = None
    status: LeadStatus
    property_id: Optional[str] = None
    notes: Optional[str] = None
    duplicate_key: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LeadListResponse(BaseModel):
    leads: List[LeadResponse]
    total: int
    page: int
    page_size: int
