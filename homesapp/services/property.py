"""
Property service for managing property listings with business logic validation.
Handles CRUD operations, visibility, the approval workflow, wizard edits and staff assignment.
"""

from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from homesapp.repositories.property import PropertyRepository, PropertyStaffRepository, PropertySearchFilters
from homesapp.repositories.user import UserRepository
from homesapp.models.property import (
    Property,
    PropertyStaff,
    PropertyType,
    PropertyStatus,
    ApprovalStatus,
    ADMIN_ACTIONS,
    OWNER_ACTIONS,
    available_admin_actions,
    available_owner_actions,
)
from homesapp.models.user import User, UserRole, ADMIN_ROLES
from homesapp.schemas.property import PropertyCreate, PropertyUpdate, PropertySearchParams, StaffAssignmentCreate
from homesapp.services.user import UserService
from homesapp.utils.changes import compute_changes, describe_changes
from homesapp.utils.text import generate_property_slug
from homesapp.utils.validators import ValidationUtils
from homesapp.utils.exceptions import (
    APIException,
    NotFoundError,
    ValidationError,
    BadRequestError,
    DuplicateResourceError,
    InsufficientPermissionsError,
    InvalidStatusTransitionError,
)
import uuid
import logging

logger = logging.getLogger(__name__)

# Columns an edit may set to null
NULLABLE_FIELDS = frozenset({
    "description", "sale_price", "zone", "condo_name", "unit_number", "typology",
    "floor", "specifications", "referral_percent", "management_id",
})

# Roles allowed to list their own properties
LISTING_ROLES = {UserRole.OWNER, UserRole.MANAGEMENT}

# Owner edits of these statuses send the listing back to review
REVIEWED_STATUSES = {ApprovalStatus.APPROVED, ApprovalStatus.PUBLISHED}


class PropertyService:
    """
    Property service for managing property listings with comprehensive business logic.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.property_repo = PropertyRepository(db_session)
        self.staff_repo = PropertyStaffRepository(db_session)
        self.user_repo = UserRepository(db_session)
        self.user_service = UserService(db_session)

    async def create_property(self, property_data: PropertyCreate, current_user: User) -> Property:
        """
        Create a new property listing in draft status.

        Raises:
            InsufficientPermissionsError: If the user cannot list properties
            DuplicateResourceError: If another property already uses the condominium and unit
        """
        try:
            is_staff = await self.user_service.has_permission(current_user, "properties:write")
            if current_user.role not in LISTING_ROLES and not is_staff:
                raise InsufficientPermissionsError("create properties")

            create_data = property_data.model_dump(exclude={"owner_id", "management_id"})
            create_data["owner_id"] = current_user.id
            if property_data.owner_id:
                if not is_staff:
                    raise InsufficientPermissionsError("create properties for another owner")
                owner = await self._get_user(ValidationUtils.parse_uuid(property_data.owner_id, "owner_id"))
                create_data["owner_id"] = owner.id

            if property_data.management_id:
                manager = await self._get_user(ValidationUtils.parse_uuid(property_data.management_id, "management_id"))
                create_data["management_id"] = manager.id

            create_data["slug"] = await self._unique_slug(property_data.condo_name, property_data.unit_number)
            create_data["approval_status"] = ApprovalStatus.DRAFT

            property_obj = await self.property_repo.create(create_data)

            logger.info(f"Property created by user {current_user.email}: {property_obj.display_title} (ID: {property_obj.id})")
            return property_obj

        except APIException:
            raise
        except Exception as e:
            logger.error(f"Failed to create property for user {current_user.id}: {e}")
            raise BadRequestError(f"Failed to create property: {str(e)}")

    async def get_property(self, property_id: uuid.UUID, current_user: Optional[User] = None) -> Property:
        """
        Get a property the user is allowed to see.

        Hidden listings answer 404 so their existence is not disclosed.
        """
        property_obj = await self.property_repo.get_by_id(property_id)
        if not property_obj:
            raise NotFoundError("Property", str(property_id))

        if not await self._can_view(property_obj, current_user):
            raise NotFoundError("Property", str(property_id))

        logger.debug(f"Retrieved property: {property_id}")
        return property_obj

    async def list_properties(
        self,
        params: PropertySearchParams,
        current_user: Optional[User] = None
    ) -> Tuple[List[Property], int]:
        """
        List properties visible to the user, with filters and pagination.

        Returns:
            Tuple of (properties, total count)
        """
        filters = PropertySearchFilters(
            status=params.status,
            approval_status=params.approval_status,
            owner_id=ValidationUtils.parse_optional_uuid(params.owner_id, "owner_id"),
            zone=params.zone,
            condo_name=params.condo_name,
            min_price=params.min_price,
            max_price=params.max_price,
            bedrooms=params.bedrooms,
            search_text=params.query,
        )
        skip, limit = ValidationUtils.page_bounds(params.page, params.page_size)

        unrestricted = bool(current_user) and await self.user_service.has_permission(current_user, "properties:read")
        return await self.property_repo.search_properties(
            filters,
            skip=skip,
            limit=limit,
            order_by=params.sort_by,
            order_direction=params.sort_order,
            visible_to=current_user.id if current_user else None,
            unrestricted=unrestricted,
        )

    async def delete_property(self, property_id: uuid.UUID, current_user: User) -> bool:
        """
        Delete a property. Owners may only delete their drafts.

        Raises:
            NotFoundError: If the property does not exist
            InsufficientPermissionsError: If the user may not delete it
        """
        property_obj = await self.property_repo.get_by_id(property_id)
        if not property_obj:
            raise NotFoundError("Property", str(property_id))

        is_admin = current_user.role in ADMIN_ROLES
        owns_draft = (
            property_obj.owner_id == current_user.id
            and property_obj.approval_status == ApprovalStatus.DRAFT
        )
        if not (is_admin or owns_draft):
            raise InsufficientPermissionsError("delete this property")

        deleted = await self.property_repo.delete(property_id)
        logger.info(f"Property deleted by user {current_user.email}: {property_id}")
        return deleted

    # Approval workflow

    async def apply_action(
        self,
        property_id: uuid.UUID,
        action: str,
        current_user: User,
        notes: Optional[str] = None
    ) -> Property:
        """
        Apply an approval workflow action.

        Raises:
            InsufficientPermissionsError: If the user may not apply the action
            InvalidStatusTransitionError: If the action is not available from the current status
        """
        property_obj = await self.property_repo.get_by_id(property_id)
        if not property_obj:
            raise NotFoundError("Property", str(property_id))

        if action in OWNER_ACTIONS:
            if not self._is_owner_side(property_obj, current_user) and current_user.role not in ADMIN_ROLES:
                raise InsufficientPermissionsError(f"{action} this property")
            sources, target = OWNER_ACTIONS[action]
        elif action in ADMIN_ACTIONS:
            await self.user_service.require_permission(current_user, "properties:approve", f"{action} properties")
            sources, target = ADMIN_ACTIONS[action]
        else:
            raise ValidationError(f"Unknown action '{action}'")

        current = property_obj.approval_status
        if current not in sources:
            raise InvalidStatusTransitionError("property", current.value, target.value)

        updated = await self.property_repo.update(property_obj.id, {"approval_status": target})
        note = f" ({notes})" if notes else ""
        logger.info(f"Property {property_id} {action} by {current_user.email}: {current.value} -> {target.value}{note}")
        return updated

    async def available_actions(self, property_obj: Property, current_user: Optional[User]) -> List[str]:
        if current_user is None:
            return []
        can_approve = await self.user_service.has_permission(current_user, "properties:approve")
        return self.actions_for(property_obj, current_user, can_approve)

    def actions_for(self, property_obj: Property, current_user: User, can_approve: bool) -> List[str]:
        """Actions the user can apply given a precomputed approval permission."""
        actions: List[str] = []
        if self._is_owner_side(property_obj, current_user) or current_user.role in ADMIN_ROLES:
            actions.extend(available_owner_actions(property_obj.approval_status))
        if can_approve:
            actions.extend(available_admin_actions(property_obj.approval_status))
        return actions

    # Wizard edits

    async def preview_changes(
        self,
        property_id: uuid.UUID,
        property_data: PropertyUpdate,
        current_user: User
    ) -> List[Dict[str, Any]]:
        """Review list of the changes a PATCH with this body would apply. Nothing is written."""
        property_obj = await self._get_editable(property_id, current_user)
        original = property_obj.to_dict()
        submitted = property_data.submitted()
        changes = compute_changes(original, submitted, fields=submitted.keys())
        return describe_changes(original, changes)

    async def update_property(
        self,
        property_id: uuid.UUID,
        property_data: PropertyUpdate,
        current_user: User
    ) -> Property:
        """
        Apply exactly the fields of the body that differ from the stored record.

        Raises:
            NotFoundError: If the property doesn't exist
            InsufficientPermissionsError: If the user may not edit it
            ValidationError: If a required field would be cleared
        """
        try:
            property_obj = await self._get_editable(property_id, current_user)
            submitted = property_data.submitted()
            changes = compute_changes(property_obj.to_dict(), submitted, fields=submitted.keys())

            if not changes:
                logger.debug(f"No changes submitted for property {property_id}")
                return property_obj

            cleared = sorted(f for f, v in changes.items() if v is None and f not in NULLABLE_FIELDS)
            if cleared:
                raise ValidationError(
                    "Required fields cannot be cleared",
                    field_errors=[{"field": f, "message": "cannot be empty"} for f in cleared]
                )

            update_data = await self._column_values(changes)

            if "condo_name" in changes or "unit_number" in changes:
                update_data["slug"] = await self._unique_slug(
                    update_data.get("condo_name", property_obj.condo_name),
                    update_data.get("unit_number", property_obj.unit_number),
                    exclude_id=property_obj.id,
                )

            is_staff = await self.user_service.has_permission(current_user, "properties:write")
            if not is_staff and property_obj.approval_status in REVIEWED_STATUSES:
                update_data["approval_status"] = ApprovalStatus.PENDING_REVIEW

            updated = await self.property_repo.update(property_obj.id, update_data, exclude_none=False)

            logger.info(f"Property updated by user {current_user.email}: {property_id} fields={sorted(changes)}")
            return updated

        except APIException:
            raise
        except Exception as e:
            logger.error(f"Failed to update property {property_id}: {e}")
            raise BadRequestError(f"Failed to update property: {str(e)}")

    # Staff assignment

    async def list_staff(self, property_id: uuid.UUID, current_user: User) -> List[PropertyStaff]:
        await self._get_editable(property_id, current_user)
        return await self.staff_repo.list_for_property(property_id)

    async def assign_staff(
        self,
        property_id: uuid.UUID,
        assignment: StaffAssignmentCreate,
        current_user: User
    ) -> PropertyStaff:
        """
        Raises:
            DuplicateResourceError: If the user already holds that role on the property
        """
        property_obj = await self._get_editable(property_id, current_user)
        staff = await self._get_user(ValidationUtils.parse_uuid(assignment.staff_id, "staff_id"))

        existing = await self.staff_repo.get_assignment(property_obj.id, staff.id, assignment.role)
        if existing:
            raise DuplicateResourceError(
                "Staff assignment", f"{staff.email} as {assignment.role.value}", existing_id=str(existing.id)
            )

        created = await self.staff_repo.create({
            "property_id": property_obj.id,
            "staff_id": staff.id,
            "role": assignment.role,
        })
        logger.info(f"Staff {staff.email} assigned to property {property_id} as {assignment.role.value}")
        return created

    async def remove_staff(self, property_id: uuid.UUID, assignment_id: uuid.UUID, current_user: User) -> None:
        await self._get_editable(property_id, current_user)
        assignment = await self.staff_repo.get_by_id(assignment_id)
        if not assignment or assignment.property_id != property_id:
            raise NotFoundError("Staff assignment", str(assignment_id))
        await self.staff_repo.delete(assignment_id)
        logger.info(f"Staff assignment {assignment_id} removed from property {property_id}")

    # Helpers

    def _is_owner_side(self, property_obj: Property, user: User) -> bool:
        return user.id in (property_obj.owner_id, property_obj.management_id)

    async def _can_view(self, property_obj: Property, user: Optional[User]) -> bool:
        if property_obj.is_public:
            return True
        if user is None:
            return False
        if self._is_owner_side(property_obj, user):
            return True
        if await self.user_service.has_permission(user, "properties:read"):
            return True
        return await self.staff_repo.is_assigned(property_obj.id, user.id)

    async def _get_editable(self, property_id: uuid.UUID, user: User) -> Property:
        property_obj = await self.property_repo.get_by_id(property_id)
        if not property_obj:
            raise NotFoundError("Property", str(property_id))

        if not self._is_owner_side(property_obj, user):
            if not await self.user_service.has_permission(user, "properties:write"):
                if not await self._can_view(property_obj, user):
                    raise NotFoundError("Property", str(property_id))
                raise InsufficientPermissionsError("edit this property")
        return property_obj

    async def _get_user(self, user_id: uuid.UUID) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User", str(user_id))
        return user

    async def _column_values(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Turn normalized change values back into column types."""
        values = dict(changes)
        if values.get("property_type") is not None:
            values["property_type"] = PropertyType(values["property_type"])
        if values.get("status") is not None:
            values["status"] = PropertyStatus(values["status"])
        if values.get("management_id") is not None:
            manager = await self._get_user(ValidationUtils.parse_uuid(values["management_id"], "management_id"))
            values["management_id"] = manager.id
        return values

    async def _unique_slug(
        self,
        condo_name: Optional[str],
        unit_number: Optional[str],
        exclude_id: Optional[uuid.UUID] = None
    ) -> Optional[str]:
        if not condo_name or not unit_number:
            return None

        slug = generate_property_slug(condo_name, unit_number)
        existing = await self.property_repo.get_by_slug(slug)
        if existing and existing.id != exclude_id:
            raise DuplicateResourceError("Property", slug, existing_id=str(existing.id))
        return slug
