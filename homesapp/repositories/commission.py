"""
Repositories for agency commission profiles, overrides and the audit log.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from homesapp.repositories.base import BaseRepository
from homesapp.models.commission import (
    CommissionProfile,
    RoleCommissionOverride,
    UserCommissionOverride,
    LeadCommissionOverride,
    CommissionAuditLog,
)
from homesapp.models.user import UserRole
from typing import Optional, List
import uuid
import logging

logger = logging.getLogger(__name__)


class CommissionProfileRepository(BaseRepository[CommissionProfile]):

    def __init__(self, db: AsyncSession):
        super().__init__(CommissionProfile, db)

    async def get_for_agency(self, agency_id: uuid.UUID) -> Optional[CommissionProfile]:
        return await self.get_by_field("agency_id", agency_id)


class RoleOverrideRepository(BaseRepository[RoleCommissionOverride]):

    def __init__(self, db: AsyncSession):
        super().__init__(RoleCommissionOverride, db)

    async def get_for_role(self, agency_id: uuid.UUID, role: UserRole) -> Optional[RoleCommissionOverride]:
        query = select(RoleCommissionOverride).where(
            RoleCommissionOverride.agency_id == agency_id,
            RoleCommissionOverride.role == role,
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_for_agency(self, agency_id: uuid.UUID) -> List[RoleCommissionOverride]:
        return await self.get_multi(limit=1000, filters={"agency_id": agency_id}, order_by="role")


class UserOverrideRepository(BaseRepository[UserCommissionOverride]):

    def __init__(self, db: AsyncSession):
        super().__init__(UserCommissionOverride, db)

    async def list_for_agency(
        self,
        agency_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None
    ) -> List[UserCommissionOverride]:
        filters = {"agency_id": agency_id}
        if user_id:
            filters["user_id"] = user_id
        return await self.get_multi(limit=1000, filters=filters)


class LeadOverrideRepository(BaseRepository[LeadCommissionOverride]):

    def __init__(self, db: AsyncSession):
        super().__init__(LeadCommissionOverride, db)

    async def list_for_agency(
        self,
        agency_id: uuid.UUID,
        lead_id: Optional[uuid.UUID] = None
    ) -> List[LeadCommissionOverride]:
        filters = {"agency_id": agency_id}
        if lead_id:
            filters["lead_id"] = lead_id
        return await self.get_multi(limit=1000, filters=filters)


class CommissionAuditLogRepository(BaseRepository[CommissionAuditLog]):

    def __init__(self, db: AsyncSession):
        super().__init__(CommissionAuditLog, db)

    async def list_for_agency(
        self,
        agency_id: uuid.UUID,
        entity_type: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[CommissionAuditLog]:
        """Audit entries, newest first."""
        query = select(CommissionAuditLog).where(CommissionAuditLog.agency_id == agency_id)
        if entity_type:
            query = query.where(CommissionAuditLog.entity_type == entity_type)
        query = query.order_by(CommissionAuditLog.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())
