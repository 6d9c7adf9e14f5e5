"""
Repositories for presentation cards, service providers, services and offers.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from homesapp.repositories.base import BaseRepository
from homesapp.models.catalog import PresentationCard, ServiceProvider, Service, Offer, OfferStatus
from homesapp.models.property import Property
from typing import Optional, List
import uuid
import logging

logger = logging.getLogger(__name__)


class PresentationCardRepository(BaseRepository[PresentationCard]):

    def __init__(self, db: AsyncSession):
        super().__init__(PresentationCard, db)


class ServiceProviderRepository(BaseRepository[ServiceProvider]):

    def __init__(self, db: AsyncSession):
        super().__init__(ServiceProvider, db)

    async def get_by_user(self, user_id: uuid.UUID) -> Optional[ServiceProvider]:
        return await self.get_by_field("user_id", user_id)

    async def list_available(self, skip: int = 0, limit: int = 20) -> List[ServiceProvider]:
        query = (
            select(ServiceProvider)
            .where(ServiceProvider.available.is_(True))
            .order_by(ServiceProvider.rating.desc(), ServiceProvider.review_count.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())


class ServiceRepository(BaseRepository[Service]):

    def __init__(self, db: AsyncSession):
        super().__init__(Service, db)


class OfferRepository(BaseRepository[Offer]):

    def __init__(self, db: AsyncSession):
        super().__init__(Offer, db)

    async def list_scoped(
        self,
        client_id: Optional[uuid.UUID] = None,
        owner_id: Optional[uuid.UUID] = None,
        property_id: Optional[uuid.UUID] = None,
        status: Optional[OfferStatus] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[Offer]:
        """Offers newest first, limited to a client, to an owner's properties or to one property."""
        query = select(Offer)
        if client_id:
            query = query.where(Offer.client_id == client_id)
        if owner_id:
            owned = select(Property.id).where(
                or_(Property.owner_id == owner_id, Property.management_id == owner_id)
            )
            query = query.where(Offer.property_id.in_(owned))
        if property_id:
            query = query.where(Offer.property_id == property_id)
        if status:
            query = query.where(Offer.status == status)

        result = await self.db.execute(query.order_by(Offer.created_at.desc()).offset(skip).limit(limit))
        return list(result.scalars().all())
