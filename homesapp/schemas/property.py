"""
Pydantic schemas for property requests and responses.
Handles property CRUD, approval actions, the edit-wizard change preview and staff assignment.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from decimal import Decimal
from homesapp.models.property import PropertyType, PropertyStatus, ApprovalStatus, StaffRole, ADMIN_ACTIONS, OWNER_ACTIONS

PROPERTY_ACTIONS = sorted(set(ADMIN_ACTIONS) | set(OWNER_ACTIONS))


class PropertyBase(BaseModel):
    """Base property schema with common fields."""

    title: str = Field(..., min_length=3, max_length=255, description="Property listing title")
    description: Optional[str] = Field(None, max_length=5000, description="Detailed property description")
    price: Decimal = Field(..., gt=0, description="Monthly rent or asking price")
    sale_price: Optional[Decimal] = Field(None, gt=0, description="Sale price when also for sale")
    currency: str = Field("MXN", min_length=3, max_length=3, description="ISO currency code")
    bedrooms: int = Field(..., ge=0, le=50, description="Number of bedrooms")
    bathrooms: Decimal = Field(..., ge=0, le=50, description="Number of bathrooms, halves allowed")
    area: Decimal = Field(..., gt=0, description="Area in square meters")
    location: str = Field(..., min_length=2, max_length=500, description="Address or location description")
    zone: Optional[str] = Field(None, max_length=120)
    condo_name: Optional[str] = Field(None, max_length=255)
    unit_number: Optional[str] = Field(None, max_length=60)
    property_type: PropertyType = Field(PropertyType.APARTMENT, description="Kind of property")
    typology: Optional[str] = Field(None, max_length=40)
    floor: Optional[str] = Field(None, max_length=40)
    status: PropertyStatus = Field(..., description="Listing modality: rent, sale or both")
    images: List[str] = Field(default_factory=list, description="Image URLs")
    amenities: List[str] = Field(default_factory=list)
    specifications: Optional[Dict[str, Any]] = None
    referral_percent: Optional[Decimal] = Field(None, ge=0, le=100)

    @field_validator('title', 'location')
    @classmethod
    def validate_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v):
        return v.upper()


class PropertyCreate(PropertyBase):
    """Schema for creating a new property. Administrators may create on behalf of an owner."""

    owner_id: Optional[str] = Field(None, description="Owner when created by an administrator")
    management_id: Optional[str] = None


class PropertyUpdate(BaseModel):
    """
    Partial update. Only the keys present in the body are considered; an explicit
    null clears a nullable field.
    """

    title: Optional[str] = Field(None, min_length=3, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    price: Optional[Decimal] = Field(None, gt=0)
    sale_price: Optional[Decimal] = Field(None, gt=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    bedrooms: Optional[int] = Field(None, ge=0, le=50)
    bathrooms: Optional[Decimal] = Field(None, ge=0, le=50)
    area: Optional[Decimal] = Field(None, gt=0)
    location: Optional[str] = Field(None, min_length=2, max_length=500)
    zone: Optional[str] = Field(None, max_length=120)
    condo_name: Optional[str] = Field(None, max_length=255)
    unit_number: Optional[str] = Field(None, max_length=60)
    property_type: Optional[PropertyType] = None
    typology: Optional[str] = Field(None, max_length=40)
    floor: Optional[str] = Field(None, max_length=40)
    status: Optional[PropertyStatus] = None
    images: Optional[List[str]] = None
    amenities: Optional[List[str]] = None
    specifications: Optional[Dict[str, Any]] = None
    referral_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    management_id: Optional[str] = None
    active: Optional[bool] = None

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v):
        return v.upper() if v else v

    def submitted(self) -> Dict[str, Any]:
        """Values for the keys the client actually sent, nulls included."""
        return self.model_dump(exclude_unset=True)


class PropertyResponse(PropertyBase):
    """Schema for property response with additional metadata."""

    id: str = Field(..., description="Property unique identifier")
    display_title: str = Field(..., description="Condominium and unit based title")
    slug: Optional[str] = None
    approval_status: ApprovalStatus
    owner_id: str
    management_id: Optional[str] = None
    agency_id: Optional[str] = None
    active: bool
    available_actions: List[str] = Field(default_factory=list, description="Status actions the caller may apply")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PropertyListResponse(BaseModel):
    """Schema for paginated property list response."""

    properties: List[PropertyResponse]
    total: int = Field(..., description="Total number of properties matching the criteria")
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


class PropertySearchParams(BaseModel):
    """Query parameters for property listing."""

    status: Optional[PropertyStatus] = None
    approval_status: Optional[ApprovalStatus] = None
    owner_id: Optional[str] = None
    zone: Optional[str] = None
    condo_name: Optional[str] = None
    min_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)
    bedrooms: Optional[int] = Field(None, ge=0, description="Minimum number of bedrooms")
    query: Optional[str] = Field(None, max_length=255, description="Free-text search")
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=100)
    sort_by: str = "created_at"
    sort_order: str = "desc"

    @field_validator('sort_by')
    @classmethod
    def validate_sort_by(cls, v):
        allowed_fields = ['created_at', 'updated_at', 'price', 'bedrooms', 'area', 'title']
        if v not in allowed_fields:
            raise ValueError(f"Sort field must be one of: {', '.join(allowed_fields)}")
        return v

    @field_validator('sort_order')
    @classmethod
    def validate_sort_order(cls, v):
        if v.lower() not in ['asc', 'desc']:
            raise ValueError("Sort order must be 'asc' or 'desc'")
        return v.lower()

    @model_validator(mode='after')
    def validate_ranges(self):
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("Minimum price cannot be greater than maximum price")
        return self


class ApprovalActionRequest(BaseModel):
    action: str = Field(..., description=f"One of: {', '.join(PROPERTY_ACTIONS)}")
    notes: Optional[str] = Field(None, max_length=2000, description="Reason shown to the owner")

    @field_validator('action')
    @classmethod
    def validate_action(cls, v):
        if v not in PROPERTY_ACTIONS:
            raise ValueError(f"Action must be one of: {', '.join(PROPERTY_ACTIONS)}")
        return v


class FieldChange(BaseModel):
    field: str
    old: Any = None
    new: Any = None


class ChangePreviewResponse(BaseModel):
    property_id: str
    has_changes: bool
    changes: List[FieldChange]


class StaffAssignmentCreate(BaseModel):
    staff_id: str = Field(..., description="User assigned to the property")
    role: StaffRole


class StaffAssignmentResponse(BaseModel):
    id: str
    property_id: str
    staff_id: str
    role: StaffRole
    created_at: Optional[datetime] = None
