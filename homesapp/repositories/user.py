"""
User, agency and permission repositories.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from homesapp.repositories.base import BaseRepository
from homesapp.models.user import User, UserRole, UserStatus, Agency
from homesapp.models.permission import Permission
from typing import Optional, List, Dict, Any, Tuple
import uuid
import logging

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for user accounts and their lookups."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def create_user(self, user_data: Dict[str, Any]) -> User:
        """
        Create a new user with email validation and password hashing.

        Args:
            user_data: Must include email, password and first_name

        Returns:
            Created user instance

        Raises:
            ValueError: If the email is invalid, taken, or the password too short
        """
        data = dict(user_data)
        email = User.validate_email_format(data.pop("email"))

        if await self.get_by_email(email):
            raise ValueError(f"User with email {email} already exists")

        hashed_password = User.hash_password(data.pop("password"))

        created_user = await self.create({
            **data,
            "email": email,
            "hashed_password": hashed_password,
        })
        logger.info(f"Created user: {created_user.email} (ID: {created_user.id})")
        return created_user

    async def get_by_email(self, email: str) -> Optional[User]:
        try:
            query = select(User).where(User.email == email.lower().strip())
            result = await self.db.execute(query)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to get user by email {email}: {e}")
            raise

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """
        Return the user when the password matches, regardless of account status.
        The caller decides what to do with users that are not approved.
        """
        user = await self.get_by_email(email)

        if not user:
            logger.debug(f"Authentication failed: user {email} not found")
            return None

        if not user.verify_password(password):
            logger.debug(f"Authentication failed: invalid password for {email}")
            return None

        return user

    async def list_users(
        self,
        role: Optional[UserRole] = None,
        status: Optional[UserStatus] = None,
        agency_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[User], int]:
        """
        List users with optional role, status and agency filters.

        Returns:
            Tuple of (users, total count)
        """
        filters: Dict[str, Any] = {}
        if role:
            filters["role"] = role
        if status:
            filters["status"] = status
        if agency_id:
            filters["agency_id"] = agency_id

        users = await self.get_multi(skip=skip, limit=limit, filters=filters)
        total = await self.count(filters)
        return users, total

    async def get_by_role(self, role: UserRole) -> List[User]:
        result = await self.db.execute(select(User).where(User.role == role).order_by(User.email))
        return list(result.scalars().all())


class AgencyRepository(BaseRepository[Agency]):

    def __init__(self, db: AsyncSession):
        super().__init__(Agency, db)

    async def get_by_slug(self, slug: str) -> Optional[Agency]:
        return await self.get_by_field("slug", slug)


class PermissionRepository(BaseRepository[Permission]):
    """Granular permission grants."""

    def __init__(self, db: AsyncSession):
        super().__init__(Permission, db)

    async def get_grant(self, user_id: uuid.UUID, permission: str) -> Optional[Permission]:
        query = select(Permission).where(
            Permission.user_id == user_id,
            Permission.permission == permission
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: uuid.UUID) -> List[str]:
        query = (
            select(Permission.permission)
            .where(Permission.user_id == user_id)
            .order_by(Permission.permission)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())
