"""
User administration and permission service.

Administrators approve, reject and deactivate accounts, change roles and attach external
agency staff to an agency. Master and admin implicitly hold every permission; junior
administrators hold exactly the permissions granted to them.
"""

from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from homesapp.repositories.user import UserRepository, AgencyRepository, PermissionRepository
from homesapp.models.user import User, UserRole, UserStatus, Agency, ADMIN_ROLES
from homesapp.models.permission import KNOWN_PERMISSIONS, Permission
from homesapp.utils.exceptions import (
    APIException,
    NotFoundError,
    ForbiddenError,
    ValidationError,
    BadRequestError,
    DuplicateResourceError,
    InsufficientPermissionsError,
)
from homesapp.utils.text import generate_slug
import uuid
import logging

logger = logging.getLogger(__name__)


def effective_permissions(user: User, granted: List[str]) -> List[str]:
    """Permissions a user holds given their role and explicit grants."""
    if user.role in ADMIN_ROLES:
        return list(KNOWN_PERMISSIONS)
    if user.role == UserRole.ADMIN_JR:
        return sorted(set(granted))
    return []


class UserService:
    """Account administration and granular permissions."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.user_repo = UserRepository(db_session)
        self.agency_repo = AgencyRepository(db_session)
        self.permission_repo = PermissionRepository(db_session)

    # Permissions

    async def get_permissions(self, user: User) -> List[str]:
        granted = await self.permission_repo.list_for_user(user.id) if user.role == UserRole.ADMIN_JR else []
        return effective_permissions(user, granted)

    async def has_permission(self, user: User, permission: str) -> bool:
        if user.role in ADMIN_ROLES:
            return True
        if user.role != UserRole.ADMIN_JR:
            return False
        return await self.permission_repo.get_grant(user.id, permission) is not None

    async def require_permission(self, user: User, permission: str, action: Optional[str] = None) -> None:
        """
        Raises:
            InsufficientPermissionsError: If the user does not hold the permission
        """
        if not await self.has_permission(user, permission):
            raise InsufficientPermissionsError(action or f"use {permission}")

    async def list_user_permissions(self, user_id: uuid.UUID, current_user: User) -> Tuple[User, List[str], List[str]]:
        """
        Returns:
            Tuple of (user, effective permissions, explicit grants)
        """
        self._require_admin(current_user, "view permissions")
        user = await self.get_user(user_id)
        granted = await self.permission_repo.list_for_user(user.id)
        return user, effective_permissions(user, granted), granted

    async def grant_permission(self, user_id: uuid.UUID, permission: str, current_user: User) -> Permission:
        """
        Grant a permission to a junior administrator.

        Raises:
            ValidationError: If the permission is unknown or the user is not admin_jr
            DuplicateResourceError: If the grant already exists
        """
        try:
            self._require_admin(current_user, "grant permissions")
            if permission not in KNOWN_PERMISSIONS:
                raise ValidationError(
                    f"Unknown permission '{permission}'",
                    field_errors=[{"field": "permission", "message": f"must be one of {', '.join(KNOWN_PERMISSIONS)}"}]
                )

            user = await self.get_user(user_id)
            if user.role != UserRole.ADMIN_JR:
                raise ValidationError("Permissions can only be granted to junior administrators")

            existing = await self.permission_repo.get_grant(user.id, permission)
            if existing:
                raise DuplicateResourceError("Permission", permission, existing_id=str(existing.id))

            grant = await self.permission_repo.create({"user_id": user.id, "permission": permission})
            logger.info(f"Permission {permission} granted to {user.email} by {current_user.email}")
            return grant

        except APIException:
            raise
        except Exception as e:
            logger.error(f"Failed to grant permission {permission} to {user_id}: {e}")
            raise BadRequestError(f"Failed to grant permission: {str(e)}")

    async def revoke_permission(self, user_id: uuid.UUID, permission: str, current_user: User) -> None:
        """
        Raises:
            NotFoundError: If the user does not hold that grant
        """
        self._require_admin(current_user, "revoke permissions")
        grant = await self.permission_repo.get_grant(user_id, permission)
        if not grant:
            raise NotFoundError("Permission grant", permission)
        await self.permission_repo.delete(grant.id)
        logger.info(f"Permission {permission} revoked from {user_id} by {current_user.email}")

    # Accounts

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User", str(user_id))
        return user

    async def list_users(
        self,
        current_user: User,
        role: Optional[UserRole] = None,
        status: Optional[UserStatus] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[User], int]:
        await self.require_permission(current_user, "users:read", "list users")
        return await self.user_repo.list_users(role=role, status=status, skip=skip, limit=limit)

    async def set_status(self, user_id: uuid.UUID, new_status: UserStatus, current_user: User) -> User:
        """
        Approve, reject or deactivate an account.

        Approval and rejection need the users:approve permission; deactivation and
        reactivation are reserved to master and admin.
        """
        try:
            if new_status in (UserStatus.APPROVED, UserStatus.REJECTED):
                await self.require_permission(current_user, "users:approve", "approve users")
            else:
                self._require_admin(current_user, "deactivate users")

            target = await self.get_user(user_id)
            if target.id == current_user.id:
                raise ForbiddenError("Users cannot change their own account status")
            if target.role == UserRole.MASTER and current_user.role != UserRole.MASTER:
                raise InsufficientPermissionsError("change the status of a master account")
            if target.status == new_status:
                return target

            previous = target.status
            updated = await self.user_repo.update(target.id, {"status": new_status})
            logger.info(f"User {target.email} status {previous.value} -> {new_status.value} by {current_user.email}")
            return updated

        except APIException:
            raise
        except Exception as e:
            logger.error(f"Failed to update status of user {user_id}: {e}")
            raise BadRequestError(f"Failed to update user status: {str(e)}")

    async def change_role(self, user_id: uuid.UUID, new_role: UserRole, current_user: User) -> User:
        self._require_admin(current_user, "change user roles")
        target = await self.get_user(user_id)

        if target.id == current_user.id:
            raise ForbiddenError("Users cannot change their own role")
        if UserRole.MASTER in (new_role, target.role) and current_user.role != UserRole.MASTER:
            raise InsufficientPermissionsError("assign or remove the master role")

        updated = await self.user_repo.update(target.id, {"role": new_role})
        logger.info(f"User role updated by {current_user.email}: {target.email} -> {new_role.value}")
        return updated

    async def assign_agency(self, user_id: uuid.UUID, agency_id: Optional[uuid.UUID], current_user: User) -> User:
        self._require_admin(current_user, "assign agencies")
        target = await self.get_user(user_id)

        if agency_id is not None:
            agency = await self.agency_repo.get_by_id(agency_id)
            if not agency:
                raise NotFoundError("Agency", str(agency_id))

        updated = await self.user_repo.update(target.id, {"agency_id": agency_id}, exclude_none=False)
        logger.info(f"User {target.email} attached to agency {agency_id}")
        return updated

    async def update_profile(self, current_user: User, changes: dict) -> User:
        return await self.user_repo.update(current_user.id, changes)

    # Agencies

    async def create_agency(self, name: str, slug: Optional[str], current_user: User) -> Agency:
        self._require_admin(current_user, "create agencies")
        slug = generate_slug(slug or name)
        if not slug:
            raise ValidationError("Agency slug cannot be empty")
        if await self.agency_repo.get_by_slug(slug):
            raise DuplicateResourceError("Agency", slug)

        agency = await self.agency_repo.create({"name": name, "slug": slug})
        logger.info(f"Agency created: {agency.name} ({agency.slug})")
        return agency

    async def resolve_agency(self, current_user: User, agency_id: Optional[uuid.UUID] = None) -> uuid.UUID:
        """
        Agency the request operates on. External staff are pinned to their own agency;
        platform administrators must name one.

        Raises:
            ForbiddenError: If external staff target another agency or have none
            ValidationError: If an administrator does not name an agency
        """
        if current_user.is_external:
            if current_user.agency_id is None:
                raise ForbiddenError("User is not attached to an agency")
            if agency_id is not None and agency_id != current_user.agency_id:
                raise ForbiddenError("Access to another agency is not allowed")
            return current_user.agency_id

        if current_user.role not in ADMIN_ROLES and current_user.role != UserRole.ADMIN_JR:
            raise InsufficientPermissionsError("access agency data")

        agency_id = agency_id or current_user.agency_id
        if agency_id is None:
            raise ValidationError(
                "agency_id is required",
                field_errors=[{"field": "agency_id", "message": "required for platform administrators"}]
            )
        if not await self.agency_repo.exists(agency_id):
            raise NotFoundError("Agency", str(agency_id))
        return agency_id

    async def list_agencies(self, current_user: User) -> List[Agency]:
        self._require_admin(current_user, "list agencies")
        return await self.agency_repo.get_multi(limit=500, order_by="name")

    def _require_admin(self, user: User, action: str) -> None:
        if user.role not in ADMIN_ROLES:
            raise InsufficientPermissionsError(action)
