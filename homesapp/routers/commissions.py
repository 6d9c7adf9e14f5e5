"""
External agency commission endpoints: default profile, role/user/lead overrides,
rate resolution and the configuration audit log.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from typing import List, Optional, Union
from uuid import UUID
from datetime import date
from decimal import Decimal

from homesapp.models.user import User
from homesapp.models.commission import CommissionType, AuditEntityType
from homesapp.services.commission import CommissionService
from homesapp.schemas.commission import (
    CommissionProfileUpdate,
    CommissionProfileResponse,
    RoleOverrideCreate,
    RoleOverrideUpdate,
    RoleOverrideResponse,
    UserOverrideCreate,
    UserOverrideResponse,
    LeadOverrideCreate,
    LeadOverrideResponse,
    OverrideUpdate,
    CommissionResolution,
    CommissionCalculation,
    AuditLogResponse,
    AuditLogListResponse,
)
from homesapp.schemas.error import get_crud_error_responses
from homesapp.utils.dependencies import get_current_active_user, get_commission_service, get_agency_id

router = APIRouter(prefix="/external/commissions", tags=["External Commissions"], responses=get_crud_error_responses())


# Default profile

@router.get("/profile", response_model=CommissionProfileResponse)
async def get_profile(
    agency_id: UUID = Depends(get_agency_id),
    commission_service: CommissionService = Depends(get_commission_service)
) -> CommissionProfileResponse:
    return CommissionProfileResponse.model_validate(await commission_service.get_profile(agency_id))


@router.put("/profile", response_model=CommissionProfileResponse)
async def upsert_profile(
    data: CommissionProfileUpdate,
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    commission_service: CommissionService = Depends(get_commission_service)
) -> CommissionProfileResponse:
    profile = await commission_service.upsert_profile(agency_id, data, current_user)
    return CommissionProfileResponse.model_validate(profile.to_dict())


# Role overrides

@router.get("/role-overrides", response_model=List[RoleOverrideResponse])
async def list_role_overrides(
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    commission_service: CommissionService = Depends(get_commission_service)
) -> List[RoleOverrideResponse]:
    overrides = await commission_service.list_role_overrides(agency_id, current_user)
    return [RoleOverrideResponse.model_validate(o.to_dict()) for o in overrides]


@router.post("/role-overrides", response_model=RoleOverrideResponse, status_code=status.HTTP_201_CREATED)
async def create_role_override(
    data: RoleOverrideCreate,
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    commission_service: CommissionService = Depends(get_commission_service)
) -> RoleOverrideResponse:
    override = await commission_service.create_role_override(agency_id, data, current_user)
    return RoleOverrideResponse.model_validate(override.to_dict())


@router.patch("/role-overrides/{override_id}", response_model=RoleOverrideResponse)
async def update_role_override(
    data: RoleOverrideUpdate,
    override_id: UUID = Path(...),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    commission_service: CommissionService = Depends(get_commission_service)
) -> RoleOverrideResponse:
    override = await commission_service.update_role_override(agency_id, override_id, data, current_user)
    return RoleOverrideResponse.model_validate(override.to_dict())


@router.delete("/role-overrides/{override_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role_override(
    override_id: UUID = Path(...),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    commission_service: CommissionService = Depends(get_commission_service)
) -> None:
    await commission_service.delete_role_override(agency_id, override_id, current_user)


# User overrides

@router.get("/user-overrides", response_model=List[UserOverrideResponse])
async def list_user_overrides(
    user_id: Optional[UUID] = Query(None),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    commission_service: CommissionService = Depends(get_commission_service)
) -> List[UserOverrideResponse]:
    overrides = await commission_service.list_user_overrides(agency_id, current_user, user_id=user_id)
    return [UserOverrideResponse.model_validate(o.to_dict()) for o in overrides]


@router.post("/user-overrides", response_model=UserOverrideResponse, status_code=status.HTTP_201_CREATED)
async def create_user_override(
    data: UserOverrideCreate,
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    commission_service: CommissionService = Depends(get_commission_service)
) -> UserOverrideResponse:
    override = await commission_service.create_user_override(agency_id, data, current_user)
    return UserOverrideResponse.model_validate(override.to_dict())


@router.patch("/user-overrides/{override_id}", response_model=UserOverrideResponse)
async def update_user_override(
    data: OverrideUpdate,
    override_id: UUID = Path(...),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    commission_service: CommissionService = Depends(get_commission_service)
) -> UserOverrideResponse:
    override = await commission_service.update_user_override(agency_id, override_id, data, current_user)
    return UserOverrideResponse.model_validate(override.to_dict())


@router.delete("/user-overrides/{override_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user_override(
    override_id: UUID = Path(...),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    commission_service: CommissionService = Depends(get_commission_service)
) -> None:
    await commission_service.delete_user_override(agency_id, override_id, current_user)


# Lead overrides

@router.get("/lead-overrides", response_model=List[LeadOverrideResponse])
async def list_lead_overrides(
    lead_id: Optional[UUID] = Query(None),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    commission_service: CommissionService = Depends(get_commission_service)
) -> List[LeadOverrideResponse]:
    overrides = await commission_service.list_lead_overrides(agency_id, current_user, lead_id=lead_id)
    return [LeadOverrideResponse.model_validate(o.to_dict()) for o in overrides]


@router.post("/lead-overrides", response_model=LeadOverrideResponse, status_code=status.HTTP_201_CREATED)
async def create_lead_override(
    data: LeadOverrideCreate,
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    commission_service: CommissionService = Depends(get_commission_service)
) -> LeadOverrideResponse:
    override = await commission_service.create_lead_override(agency_id, data, current_user)
    return LeadOverrideResponse.model_validate(override.to_dict())


@router.patch("/lead-overrides/{override_id}", response_model=LeadOverrideResponse)
async def update_lead_override(
    data: OverrideUpdate,
    override_id: UUID = Path(...),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    commission_service: CommissionService = Depends(get_commission_service)
) -> LeadOverrideResponse:
    override = await commission_service.update_lead_override(agency_id, override_id, data, current_user)
    return LeadOverrideResponse.model_validate(override.to_dict())


@router.delete("/lead-overrides/{override_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lead_override(
    override_id: UUID = Path(...),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    commission_service: CommissionService = Depends(get_commission_service)
) -> None:
    await commission_service.delete_lead_override(agency_id, override_id, current_user)


# Resolution and audit

@router.get(
    "/resolve",
    response_model=Union[CommissionCalculation, CommissionResolution],
    summary="Resolve commission rate",
    description="Lead override, then user override, then role override, then agency default, then system default. "
                "Pass amount to also compute the commission."
)
async def resolve_commission(
    commission_type: CommissionType = Query(...),
    user_id: Optional[UUID] = Query(None, description="Agency member to resolve for; defaults to the caller"),
    lead_id: Optional[UUID] = Query(None),
    on_date: Optional[date] = Query(None, description="Defaults to today"),
    amount: Optional[Decimal] = Query(None, ge=0),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    commission_service: CommissionService = Depends(get_commission_service)
) -> Union[CommissionCalculation, CommissionResolution]:
    return await commission_service.resolve_for_request(
        agency_id,
        current_user,
        commission_type,
        user_id=user_id,
        lead_id=lead_id,
        on_date=on_date,
        amount=amount,
    )


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    entity_type: Optional[AuditEntityType] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    commission_service: CommissionService = Depends(get_commission_service)
) -> AuditLogListResponse:
    logs = await commission_service.list_audit_logs(
        agency_id,
        current_user,
        entity_type=entity_type,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return AuditLogListResponse(logs=[AuditLogResponse.model_validate(log.to_dict()) for log in logs])
