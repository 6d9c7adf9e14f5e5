"""
Appointment booking endpoints: visits to published properties, status changes and concierge assignment.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from typing import Optional
from uuid import UUID
from datetime import datetime

from homesapp.models.user import User
from homesapp.models.appointment import AppointmentStatus
from homesapp.services.appointment import AppointmentService
from homesapp.schemas.appointment import (
    AppointmentCreate,
    AppointmentStatusUpdate,
    ConciergeAssignment,
    AppointmentResponse,
    AppointmentListResponse,
)
from homesapp.schemas.error import get_crud_error_responses
from homesapp.utils.dependencies import get_current_active_user, get_appointment_service

router = APIRouter(prefix="/appointments", tags=["Appointments"])


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book a visit",
    description="Book a visit to a published property. Overlapping active bookings answer 409.",
    responses=get_crud_error_responses()
)
async def create_appointment(
    data: AppointmentCreate,
    current_user: User = Depends(get_current_active_user),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> AppointmentResponse:
    appointment = await appointment_service.create_appointment(data, current_user)
    return AppointmentResponse.model_validate(appointment.to_dict())


@router.get("", response_model=AppointmentListResponse, responses=get_crud_error_responses())
async def list_appointments(
    appointment_status: Optional[AppointmentStatus] = Query(None, alias="status"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> AppointmentListResponse:
    appointments, total = await appointment_service.list_appointments(
        current_user,
        status=appointment_status,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )
    return AppointmentListResponse(
        appointments=[AppointmentResponse.model_validate(a.to_dict()) for a in appointments],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse, responses=get_crud_error_responses())
async def get_appointment(
    appointment_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> AppointmentResponse:
    appointment = await appointment_service.get_appointment(appointment_id, current_user)
    return AppointmentResponse.model_validate(appointment.to_dict())


@router.patch("/{appointment_id}/status", response_model=AppointmentResponse, responses=get_crud_error_responses())
async def update_status(
    data: AppointmentStatusUpdate,
    appointment_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> AppointmentResponse:
    appointment = await appointment_service.update_status(appointment_id, data, current_user)
    return AppointmentResponse.model_validate(appointment.to_dict())


@router.patch("/{appointment_id}/concierge", response_model=AppointmentResponse, responses=get_crud_error_responses())
async def assign_concierge(
    data: ConciergeAssignment,
    appointment_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    appointment_service: AppointmentService = Depends(get_appointment_service)
) -> AppointmentResponse:
    appointment = await appointment_service.assign_concierge(appointment_id, data.concierge_id, current_user)
    return AppointmentResponse.model_validate(appointment.to_dict())
