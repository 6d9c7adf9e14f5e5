"""
Lead repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from homesapp.repositories.base import BaseRepository
from homesapp.models.lead import Lead
from homesapp.utils.text import EMPTY_DUPLICATE_KEY
from typing import Optional
import uuid
import logging

logger = logging.getLogger(__name__)


class LeadRepository(BaseRepository[Lead]):

    def __init__(self, db: AsyncSession):
        super().__init__(Lead, db)

    async def find_duplicate(self, agency_id: uuid.UUID, duplicate_key: str) -> Optional[Lead]:
        """Oldest lead of the agency sharing the key; the empty key never matches."""
        if duplicate_key == EMPTY_DUPLICATE_KEY:
            return None

        query = (
            select(Lead)
            .where(Lead.agency_id == agency_id, Lead.duplicate_key == duplicate_key)
            .order_by(Lead.created_at.asc())
            .limit(1)
        )
        result = await self.db.execute(query)
        lead = result.scalar_one_or_none()
        if lead:
            logger.debug(f"Duplicate lead found for key {duplicate_key}: {lead.id}")
        return lead
