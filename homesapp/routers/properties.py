"""
Property management API endpoints: CRUD, search, approval actions, edit-wizard preview and staff.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from typing import Optional, List
from uuid import UUID
from decimal import Decimal
import math

from homesapp.models.user import User
from homesapp.models.property import Property, PropertyStatus, ApprovalStatus
from homesapp.services.property import PropertyService
from homesapp.schemas.property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    PropertyListResponse,
    PropertySearchParams,
    ApprovalActionRequest,
    ChangePreviewResponse,
    FieldChange,
    StaffAssignmentCreate,
    StaffAssignmentResponse,
)
from homesapp.schemas.error import get_crud_error_responses, get_error_responses
from homesapp.utils.dependencies import (
    get_current_active_user,
    get_optional_current_user,
    get_property_service
)


router = APIRouter(prefix="/properties", tags=["Properties"])


async def to_response(
    property_obj: Property,
    current_user: Optional[User],
    property_service: PropertyService
) -> PropertyResponse:
    actions = await property_service.available_actions(property_obj, current_user)
    return PropertyResponse.model_validate({**property_obj.to_dict(), "available_actions": actions})


@router.post(
    "",
    response_model=PropertyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new property",
    description="Create a listing in draft status. Owners, managers and staff holding properties:write.",
    responses=get_crud_error_responses()
)
async def create_property(
    property_data: PropertyCreate,
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    property_obj = await property_service.create_property(property_data, current_user)
    return await to_response(property_obj, current_user, property_service)


@router.get(
    "",
    response_model=PropertyListResponse,
    status_code=status.HTTP_200_OK,
    summary="List properties with search and filtering",
    description="Published listings for everyone, plus the listings the caller owns, manages or works on"
)
async def list_properties(
    query: Optional[str] = Query(None, max_length=255, description="Search in title, description, location and condominium"),
    listing_status: Optional[PropertyStatus] = Query(None, alias="status", description="rent, sale or both"),
    approval_status: Optional[ApprovalStatus] = Query(None),
    owner_id: Optional[str] = Query(None),
    zone: Optional[str] = Query(None),
    condo_name: Optional[str] = Query(None),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    bedrooms: Optional[int] = Query(None, ge=0, le=50, description="Minimum number of bedrooms"),
    page: int = Query(1, ge=1, description="Page number (starts from 1)"),
    page_size: int = Query(20, ge=1, le=100, description="Number of properties per page"),
    sort_by: str = Query("created_at", description="Sort field"),
    sort_order: str = Query("desc", description="Sort order (asc/desc)"),
    current_user: Optional[User] = Depends(get_optional_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyListResponse:
    params = PropertySearchParams(
        query=query,
        status=listing_status,
        approval_status=approval_status,
        owner_id=owner_id,
        zone=zone,
        condo_name=condo_name,
        min_price=min_price,
        max_price=max_price,
        bedrooms=bedrooms,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    properties, total_count = await property_service.list_properties(params, current_user)

    can_approve = bool(current_user) and await property_service.user_service.has_permission(
        current_user, "properties:approve"
    )
    responses = [
        PropertyResponse.model_validate({
            **prop.to_dict(),
            "available_actions": property_service.actions_for(prop, current_user, can_approve) if current_user else [],
        })
        for prop in properties
    ]

    total_pages = math.ceil(total_count / page_size) if total_count > 0 else 1
    return PropertyListResponse(
        properties=responses,
        total=total_count,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_previous=page > 1,
    )


@router.get(
    "/{property_id}",
    response_model=PropertyResponse,
    summary="Get property",
    responses=get_error_responses(404, 422)
)
async def get_property(
    property_id: UUID = Path(..., description="Property unique identifier"),
    current_user: Optional[User] = Depends(get_optional_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    property_obj = await property_service.get_property(property_id, current_user)
    return await to_response(property_obj, current_user, property_service)


@router.patch(
    "/{property_id}",
    response_model=PropertyResponse,
    summary="Update property",
    description="Apply only the fields that differ from the stored listing. An explicit null clears a field.",
    responses=get_crud_error_responses()
)
async def update_property(
    property_data: PropertyUpdate,
    property_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    property_obj = await property_service.update_property(property_id, property_data, current_user)
    return await to_response(property_obj, current_user, property_service)


@router.post(
    "/{property_id}/changes/preview",
    response_model=ChangePreviewResponse,
    summary="Preview edit",
    description="List the field changes a PATCH with this body would apply, without writing",
    responses=get_crud_error_responses()
)
async def preview_changes(
    property_data: PropertyUpdate,
    property_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> ChangePreviewResponse:
    changes = await property_service.preview_changes(property_id, property_data, current_user)
    return ChangePreviewResponse(
        property_id=str(property_id),
        has_changes=bool(changes),
        changes=[FieldChange(**change) for change in changes],
    )


@router.delete(
    "/{property_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete property",
    responses=get_crud_error_responses()
)
async def delete_property(
    property_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> None:
    await property_service.delete_property(property_id, current_user)


@router.post(
    "/{property_id}/actions",
    response_model=PropertyResponse,
    summary="Apply approval action",
    description="submit, approve, reject, request_changes, publish, unpublish or reopen",
    responses=get_crud_error_responses()
)
async def apply_action(
    data: ApprovalActionRequest,
    property_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    property_obj = await property_service.apply_action(property_id, data.action, current_user, data.notes)
    return await to_response(property_obj, current_user, property_service)


# Staff

@router.get(
    "/{property_id}/staff",
    response_model=List[StaffAssignmentResponse],
    responses=get_crud_error_responses()
)
async def list_staff(
    property_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> List[StaffAssignmentResponse]:
    assignments = await property_service.list_staff(property_id, current_user)
    return [StaffAssignmentResponse.model_validate(a.to_dict()) for a in assignments]


@router.post(
    "/{property_id}/staff",
    response_model=StaffAssignmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses=get_crud_error_responses()
)
async def assign_staff(
    assignment: StaffAssignmentCreate,
    property_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> StaffAssignmentResponse:
    staff = await property_service.assign_staff(property_id, assignment, current_user)
    return StaffAssignmentResponse.model_validate(staff.to_dict())


@router.delete(
    "/{property_id}/staff/{assignment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=get_crud_error_responses()
)
async def remove_staff(
    property_id: UUID = Path(...),
    assignment_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> None:
    await property_service.remove_staff(property_id, assignment_id, current_user)
