"""
Pydantic schemas for presentation cards, service providers, services and offers.
"""

from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from homesapp.models.property import PropertyType, PropertyStatus
from homesapp.models.catalog import OfferStatus
from homesapp.schemas.property import PropertyResponse


class PresentationCardBase(BaseModel):
    property_type: PropertyType
    modality: PropertyStatus = Field(..., description="rent, sale or both")
    min_price: Decimal = Field(..., ge=0)
    max_price: Decimal = Field(..., ge=0)
    location: str = Field(..., min_length=1, max_length=500)
    bedrooms: Optional[int] = Field(None, ge=0, le=50)
    bathrooms: Optional[int] = Field(None, ge=0, le=50)
    amenities: List[str] = Field(default_factory=list)
    additional_requirements: Optional[str] = Field(None, max_length=2000)


class PresentationCardCreate(PresentationCardBase):

    @model_validator(mode='after')
    def validate_price_range(self):
        if self.min_price > self.max_price:
            raise ValueError("Minimum price cannot be greater than maximum price")
        return self


class PresentationCardUpdate(BaseModel):
    property_type: Optional[PropertyType] = None
    modality: Optional[PropertyStatus] = None
    min_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)
    location: Optional[str] = Field(None, min_length=1, max_length=500)
    bedrooms: Optional[int] = Field(None, ge=0, le=50)
    bathrooms: Optional[int] = Field(None, ge=0, le=50)
    amenities: Optional[List[str]] = None
    additional_requirements: Optional[str] = Field(None, max_length=2000)


class PresentationCardResponse(PresentationCardBase):
    id: str
    client_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CardMatchesResponse(BaseModel):
    card_id: str
    total: int
    properties: List[PropertyResponse]


class ServiceProviderCreate(BaseModel):
    specialty: str = Field(..., min_length=2, max_length=255)
    available: bool = True


class ServiceProviderUpdate(BaseModel):
    specialty: Optional[str] = Field(None, min_length=2, max_length=255)
    available: Optional[bool] = None


class ServiceProviderResponse(BaseModel):
    id: str
    user_id: str
    specialty: str
    rating: Decimal
    review_count: int
    available: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    price: Decimal = Field(..., ge=0)
    currency: str = Field("MXN", min_length=3, max_length=3)
    estimated_duration_minutes: Optional[int] = Field(None, gt=0)


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    price: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    estimated_duration_minutes: Optional[int] = Field(None, gt=0)


class ServiceResponse(BaseModel):
    id: str
    provider_id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    currency: str
    estimated_duration_minutes: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OfferCreate(BaseModel):
    property_id: str
    appointment_id: Optional[str] = None
    offer_amount: Decimal = Field(..., gt=0)
    currency: str = Field("MXN", min_length=3, max_length=3)
    notes: Optional[str] = Field(None, max_length=2000)
    applicant_full_name: Optional[str] = Field(None, max_length=255)
    applicant_email: Optional[EmailStr] = None
    applicant_phone: Optional[str] = Field(None, max_length=40)
    nationality: Optional[str] = Field(None, max_length=120)
    occupation: Optional[str] = Field(None, max_length=255)
    move_in_date: Optional[date] = None
    contract_months: Optional[int] = Field(None, gt=0, le=120)


class OfferStatusUpdate(BaseModel):
    status: OfferStatus
    notes: Optional[str] = Field(None, max_length=2000)


class OfferResponse(BaseModel):
    id: str
    property_id: str
    client_id: str
    appointment_id: Optional[str] = None
    offer_amount: Decimal
    currency: str
    status: OfferStatus
    notes: Optional[str] = None
    applicant_full_name: Optional[str] = None
    applicant_email: Optional[str] = None
    applicant_phone: Optional[str] = None
    nationality: Optional[str] = None
    occupation: Optional[str] = None
    move_in_date: Optional[date] = None
    contract_months: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
