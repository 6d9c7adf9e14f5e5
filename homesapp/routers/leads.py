"""
External agency lead endpoints with duplicate detection.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from typing import Optional
from uuid import UUID

from homesapp.models.user import User
from homesapp.models.lead import LeadStatus
from homesapp.services.lead import LeadService
from homesapp.schemas.lead import LeadCreate, LeadUpdate, LeadResponse, LeadListResponse
from homesapp.schemas.error import get_crud_error_responses
from homesapp.utils.dependencies import get_current_active_user, get_lead_service, get_agency_id

router = APIRouter(prefix="/external/leads", tags=["External Leads"], responses=get_crud_error_responses())


@router.post(
    "",
    response_model=LeadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register lead",
    description="A lead matching an existing one by name and last four phone digits answers 409 "
                "with the existing id, unless allow_duplicate is set."
)
async def create_lead(
    data: LeadCreate,
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    lead_service: LeadService = Depends(get_lead_service)
) -> LeadResponse:
    lead = await lead_service.create_lead(agency_id, data, current_user)
    return LeadResponse.model_validate(lead.to_dict())


@router.get("", response_model=LeadListResponse)
async def list_leads(
    lead_status: Optional[LeadStatus] = Query(None, alias="status"),
    seller_id: Optional[UUID] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    lead_service: LeadService = Depends(get_lead_service)
) -> LeadListResponse:
    leads, total = await lead_service.list_leads(
        agency_id,
        current_user,
        status=lead_status,
        seller_id=seller_id,
        page=page,
        page_size=page_size,
    )
    return LeadListResponse(
        leads=[LeadResponse.model_validate(lead.to_dict()) for lead in leads],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{lead_id}", response_model=LeadResponse)
async def get_lead(
    lead_id: UUID = Path(...),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    lead_service: LeadService = Depends(get_lead_service)
) -> LeadResponse:
    lead = await lead_service.get_lead(agency_id, lead_id, current_user)
    return LeadResponse.model_validate(lead.to_dict())


@router.patch("/{lead_id}", response_model=LeadResponse)
async def update_lead(
    data: LeadUpdate,
    lead_id: UUID = Path(...),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    lead_service: LeadService = Depends(get_lead_service)
) -> LeadResponse:
    lead = await lead_service.update_lead(agency_id, lead_id, data, current_user)
    return LeadResponse.model_validate(lead.to_dict())


@router.delete("/{lead_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lead(
    lead_id: UUID = Path(...),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    lead_service: LeadService = Depends(get_lead_service)
) -> None:
    await lead_service.delete_lead(agency_id, lead_id, current_user)
