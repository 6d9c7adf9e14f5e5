"""
Payment repository for agency accounting queries.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func, asc, desc
from homesapp.repositories.base import BaseRepository
from homesapp.models.payment import Payment, PaymentStatus
from datetime import date
from typing import Optional, List, Any, Tuple
import uuid
import logging

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {"due_date", "amount", "created_at"}


class PaymentRepository(BaseRepository[Payment]):

    def __init__(self, db: AsyncSession):
        super().__init__(Payment, db)

    def _conditions(
        self,
        agency_id: uuid.UUID,
        status: Optional[PaymentStatus],
        seller_id: Optional[uuid.UUID],
        start: Optional[date],
        end: Optional[date],
        today: date
    ) -> List[Any]:
        conditions: List[Any] = [Payment.agency_id == agency_id]
        if status == PaymentStatus.OVERDUE:
            # Overdue is stored explicitly or derived from pending payments past due
            conditions.append(
                (Payment.status == PaymentStatus.OVERDUE)
                | and_(Payment.status == PaymentStatus.PENDING, Payment.due_date < today)
            )
        elif status == PaymentStatus.PENDING:
            conditions.append(and_(Payment.status == PaymentStatus.PENDING, Payment.due_date >= today))
        elif status:
            conditions.append(Payment.status == status)
        if seller_id:
            conditions.append(Payment.seller_id == seller_id)
        if start:
            conditions.append(Payment.due_date >= start)
        if end:
            conditions.append(Payment.due_date <= end)
        return conditions

    async def search(
        self,
        agency_id: uuid.UUID,
        today: date,
        status: Optional[PaymentStatus] = None,
        seller_id: Optional[uuid.UUID] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        sort_by: str = "due_date",
        sort_order: str = "asc",
        skip: int = 0,
        limit: Optional[int] = 20
    ) -> Tuple[List[Payment], int]:
        """
        Filter agency payments by effective status, seller and due-date range.

        Args:
            today: Reference date for the derived overdue status
            sort_by: One of due_date, amount, created_at
            sort_order: asc or desc
            limit: Page size, or None for every matching payment

        Returns:
            Tuple of (payments, total count)
        """
        conditions = self._conditions(agency_id, status, seller_id, start, end, today)

        count_query = select(func.count(Payment.id)).where(and_(*conditions))
        total = (await self.db.execute(count_query)).scalar()

        column = getattr(Payment, sort_by if sort_by in SORTABLE_FIELDS else "due_date")
        direction = desc if sort_order.lower() == "desc" else asc
        query = (
            select(Payment)
            .where(and_(*conditions))
            .order_by(direction(column), asc(Payment.id))
            .offset(skip)
        )
        if limit is not None:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total
