"""
Administration endpoints: user approval, roles, agency membership, permission grants and agencies.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from typing import List, Optional
from uuid import UUID

from homesapp.models.user import User, UserRole, UserStatus
from homesapp.services.user import UserService
from homesapp.schemas.user import (
    UserResponse,
    UserListResponse,
    UserRoleUpdate,
    UserAgencyUpdate,
    AgencyCreate,
    AgencyResponse,
    PermissionGrantRequest,
    PermissionResponse,
    PermissionListResponse,
)
from homesapp.schemas.error import get_crud_error_responses
from homesapp.utils.dependencies import get_current_active_user, get_user_service
from homesapp.utils.validators import ValidationUtils

router = APIRouter(tags=["Administration"])


@router.get(
    "/users",
    response_model=UserListResponse,
    summary="List users",
    description="Filter by role and approval status. Requires the users:read permission.",
    responses=get_crud_error_responses()
)
async def list_users(
    role: Optional[UserRole] = Query(None),
    user_status: Optional[UserStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service)
) -> UserListResponse:
    skip, limit = ValidationUtils.page_bounds(page, page_size)
    users, total = await user_service.list_users(current_user, role=role, status=user_status, skip=skip, limit=limit)
    return UserListResponse(
        users=[UserResponse.model_validate(u.to_dict()) for u in users],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/users/{user_id}", response_model=UserResponse, responses=get_crud_error_responses())
async def get_user(
    user_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service)
) -> UserResponse:
    if user_id != current_user.id:
        await user_service.require_permission(current_user, "users:read", "view users")
    user = await user_service.get_user(user_id)
    return UserResponse.model_validate(user.to_dict())


async def _set_status(user_id: UUID, new_status: UserStatus, current_user: User, user_service: UserService) -> UserResponse:
    user = await user_service.set_status(user_id, new_status, current_user)
    return UserResponse.model_validate(user.to_dict())


@router.post("/users/{user_id}/approve", response_model=UserResponse, responses=get_crud_error_responses())
async def approve_user(
    user_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service)
) -> UserResponse:
    return await _set_status(user_id, UserStatus.APPROVED, current_user, user_service)


@router.post("/users/{user_id}/reject", response_model=UserResponse, responses=get_crud_error_responses())
async def reject_user(
    user_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service)
) -> UserResponse:
    return await _set_status(user_id, UserStatus.REJECTED, current_user, user_service)


@router.post("/users/{user_id}/deactivate", response_model=UserResponse, responses=get_crud_error_responses())
async def deactivate_user(
    user_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service)
) -> UserResponse:
    return await _set_status(user_id, UserStatus.INACTIVE, current_user, user_service)


@router.patch("/users/{user_id}/role", response_model=UserResponse, responses=get_crud_error_responses())
async def change_role(
    data: UserRoleUpdate,
    user_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service)
) -> UserResponse:
    user = await user_service.change_role(user_id, data.role, current_user)
    return UserResponse.model_validate(user.to_dict())


@router.patch("/users/{user_id}/agency", response_model=UserResponse, responses=get_crud_error_responses())
async def assign_agency(
    data: UserAgencyUpdate,
    user_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service)
) -> UserResponse:
    agency_id = ValidationUtils.parse_optional_uuid(data.agency_id, "agency_id")
    user = await user_service.assign_agency(user_id, agency_id, current_user)
    return UserResponse.model_validate(user.to_dict())


# Permissions

@router.get("/users/{user_id}/permissions", response_model=PermissionListResponse, responses=get_crud_error_responses())
async def list_permissions(
    user_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service)
) -> PermissionListResponse:
    user, effective, granted = await user_service.list_user_permissions(user_id, current_user)
    return PermissionListResponse(user_id=str(user.id), role=user.role, permissions=effective, granted=granted)


@router.post(
    "/users/{user_id}/permissions",
    response_model=PermissionResponse,
    status_code=status.HTTP_201_CREATED,
    responses=get_crud_error_responses()
)
async def grant_permission(
    data: PermissionGrantRequest,
    user_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service)
) -> PermissionResponse:
    grant = await user_service.grant_permission(user_id, data.permission, current_user)
    return PermissionResponse.model_validate(grant.to_dict())


@router.delete(
    "/users/{user_id}/permissions/{permission}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=get_crud_error_responses()
)
async def revoke_permission(
    user_id: UUID = Path(...),
    permission: str = Path(..., description="Permission string such as properties:write"),
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service)
) -> None:
    await user_service.revoke_permission(user_id, permission, current_user)


# Agencies

@router.get("/agencies", response_model=List[AgencyResponse], responses=get_crud_error_responses())
async def list_agencies(
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service)
) -> List[AgencyResponse]:
    agencies = await user_service.list_agencies(current_user)
    return [AgencyResponse.model_validate(a.to_dict()) for a in agencies]


@router.post(
    "/agencies",
    response_model=AgencyResponse,
    status_code=status.HTTP_201_CREATED,
    responses=get_crud_error_responses()
)
async def create_agency(
    data: AgencyCreate,
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service)
) -> AgencyResponse:
    agency = await user_service.create_agency(data.name, data.slug, current_user)
    return AgencyResponse.model_validate(agency.to_dict())
