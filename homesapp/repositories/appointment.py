"""
Appointment repository with slot conflict lookup and caller-scoped listing.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func, asc
from homesapp.repositories.base import BaseRepository
from homesapp.models.appointment import Appointment, AppointmentStatus, ACTIVE_APPOINTMENT_STATUSES
from homesapp.models.property import Property
from datetime import datetime, timedelta
from typing import Optional, List, Any, Tuple
import uuid
import logging

logger = logging.getLogger(__name__)


class AppointmentRepository(BaseRepository[Appointment]):

    def __init__(self, db: AsyncSession):
        super().__init__(Appointment, db)

    async def find_conflicts(
        self,
        property_id: uuid.UUID,
        start: datetime,
        slot: timedelta,
        exclude_id: Optional[uuid.UUID] = None
    ) -> List[Appointment]:
        """
        Active appointments on the property whose slot overlaps ``[start, start + slot)``.

        Each appointment occupies the slot starting at its own date, so two visits collide
        when one starts before the other's slot ends.
        """
        conditions = [
            Appointment.property_id == property_id,
            Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
            Appointment.date > start - slot,
            Appointment.date < start + slot,
        ]
        if exclude_id:
            conditions.append(Appointment.id != exclude_id)

        result = await self.db.execute(select(Appointment).where(and_(*conditions)))
        return list(result.scalars().all())

    async def list_scoped(
        self,
        client_id: Optional[uuid.UUID] = None,
        concierge_id: Optional[uuid.UUID] = None,
        owner_id: Optional[uuid.UUID] = None,
        status: Optional[AppointmentStatus] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Appointment], int]:
        """
        List appointments ordered by date.

        Args:
            client_id: Only appointments booked by this client
            concierge_id: Only appointments assigned to this concierge
            owner_id: Only appointments on properties this user owns or manages
            status: Status filter
            date_from: Inclusive lower bound on the visit date
            date_to: Inclusive upper bound on the visit date

        Returns:
            Tuple of (appointments, total count)
        """
        conditions: List[Any] = []
        if client_id:
            conditions.append(Appointment.client_id == client_id)
        if concierge_id:
            conditions.append(Appointment.concierge_id == concierge_id)
        if owner_id:
            owned = select(Property.id).where(
                or_(Property.owner_id == owner_id, Property.management_id == owner_id)
            )
            conditions.append(Appointment.property_id.in_(owned))
        if status:
            conditions.append(Appointment.status == status)
        if date_from:
            conditions.append(Appointment.date >= date_from)
        if date_to:
            conditions.append(Appointment.date <= date_to)

        query = select(Appointment)
        count_query = select(func.count(Appointment.id))
        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        total = (await self.db.execute(count_query)).scalar()
        result = await self.db.execute(query.order_by(asc(Appointment.date)).offset(skip).limit(limit))
        return list(result.scalars().all()), total
