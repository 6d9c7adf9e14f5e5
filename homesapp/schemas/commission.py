"""
Pydantic schemas for agency commission configuration and resolution.
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Dict, Any
from datetime import date, datetime
from decimal import Decimal
from homesapp.models.user import UserRole
from homesapp.models.commission import CommissionType, CommissionSource, AuditEntityType, AuditAction


class RateFields(BaseModel):
    rental_commission_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    listed_property_commission_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    recruited_property_commission_percent: Optional[Decimal] = Field(None, ge=0, le=100)


class WindowFields(BaseModel):
    effective_from: Optional[date] = None
    effective_until: Optional[date] = None

    @model_validator(mode='after')
    def validate_window(self):
        if self.effective_from and self.effective_until and self.effective_from > self.effective_until:
            raise ValueError("effective_from cannot be after effective_until")
        return self


class CommissionProfileUpdate(RateFields):
    """Upsert of the agency defaults; omitted values keep their current setting."""


class CommissionProfileResponse(BaseModel):
    id: Optional[str] = Field(None, description="Null while the agency still uses system defaults")
    agency_id: str
    rental_commission_percent: Decimal
    listed_property_commission_percent: Decimal
    recruited_property_commission_percent: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RoleOverrideCreate(RateFields):
    role: UserRole
    notes: Optional[str] = Field(None, max_length=2000)
    is_active: bool = True


class RoleOverrideUpdate(RateFields):
    notes: Optional[str] = Field(None, max_length=2000)
    is_active: Optional[bool] = None


class RoleOverrideResponse(RateFields):
    id: str
    agency_id: str
    role: UserRole
    notes: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserOverrideCreate(RateFields, WindowFields):
    user_id: str
    notes: Optional[str] = Field(None, max_length=2000)
    is_active: bool = True


class OverrideUpdate(RateFields, WindowFields):
    notes: Optional[str] = Field(None, max_length=2000)
    is_active: Optional[bool] = None


class UserOverrideResponse(RateFields):
    id: str
    agency_id: str
    user_id: str
    notes: Optional[str] = None
    effective_from: Optional[date] = None
    effective_until: Optional[date] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LeadOverrideCreate(RateFields, WindowFields):
    lead_id: str
    notes: Optional[str] = Field(None, max_length=2000)
    is_active: bool = True


class LeadOverrideResponse(RateFields):
    id: str
    agency_id: str
    lead_id: str
    notes: Optional[str] = None
    effective_from: Optional[date] = None
    effective_until: Optional[date] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CommissionResolution(BaseModel):
    commission_type: CommissionType
    percentage: Decimal
    source: CommissionSource
    source_id: Optional[str] = None
    on_date: date


class CommissionCalculation(CommissionResolution):
    amount: Decimal
    commission_amount: Decimal


class AuditLogResponse(BaseModel):
    id: str
    agency_id: str
    entity_type: AuditEntityType
    entity_id: str
    action: AuditAction
    previous_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    changed_by: Optional[str] = None
    created_at: Optional[datetime] = None


class AuditLogListResponse(BaseModel):
    logs: List[AuditLogResponse]
