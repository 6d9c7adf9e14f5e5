"""
Pydantic schemas for appointment booking and management.
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from homesapp.models.appointment import AppointmentType, AppointmentStatus


class AppointmentCreate(BaseModel):
    property_id: str = Field(..., description="Property to visit")
    date: datetime = Field(..., description="Visit start, must be in the future")
    type: AppointmentType = AppointmentType.IN_PERSON
    notes: Optional[str] = Field(None, max_length=2000)


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus
    meet_link: Optional[str] = Field(None, max_length=500, description="Video call link, for video visits")


class ConciergeAssignment(BaseModel):
    concierge_id: str


class AppointmentResponse(BaseModel):
    id: str
    property_id: str
    client_id: str
    concierge_id: Optional[str] = None
    date: datetime
    type: AppointmentType
    status: AppointmentStatus
    meet_link: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AppointmentListResponse(BaseModel):
    appointments: List[AppointmentResponse]
    total: int
    page: int
    page_size: int
