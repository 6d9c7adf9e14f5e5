"""
Property repository with search filters, visibility scoping and staff assignments.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func, desc, asc
from homesapp.repositories.base import BaseRepository
from homesapp.models.property import Property, PropertyStaff, PropertyStatus, ApprovalStatus
from typing import Optional, List, Any, Tuple
from decimal import Decimal
import uuid
import logging

logger = logging.getLogger(__name__)


def like_pattern(text: str) -> str:
    """Substring pattern for ilike with the LIKE wildcards in the text escaped."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class PropertySearchFilters:
    """Data class for property search filters."""

    def __init__(
        self,
        status: Optional[PropertyStatus] = None,
        approval_status: Optional[ApprovalStatus] = None,
        owner_id: Optional[uuid.UUID] = None,
        zone: Optional[str] = None,
        condo_name: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        bedrooms: Optional[int] = None,
        search_text: Optional[str] = None,
        active: Optional[bool] = None
    ):
        self.status = status
        self.approval_status = approval_status
        self.owner_id = owner_id
        self.zone = zone
        self.condo_name = condo_name
        self.min_price = min_price
        self.max_price = max_price
        self.bedrooms = bedrooms
        self.search_text = search_text
        self.active = active


class PropertyRepository(BaseRepository[Property]):
    """Repository for property listings."""

    def __init__(self, db: AsyncSession):
        super().__init__(Property, db)

    def _build_filter_conditions(self, filters: PropertySearchFilters) -> List[Any]:
        conditions = []

        if filters.status:
            conditions.append(Property.status == filters.status)
        if filters.approval_status:
            conditions.append(Property.approval_status == filters.approval_status)
        if filters.owner_id:
            conditions.append(Property.owner_id == filters.owner_id)
        if filters.zone:
            conditions.append(func.lower(Property.zone) == filters.zone.lower())
        if filters.condo_name:
            conditions.append(Property.condo_name.ilike(like_pattern(filters.condo_name), escape="\\"))
        if filters.min_price is not None:
            conditions.append(Property.price >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(Property.price <= filters.max_price)
        if filters.bedrooms is not None:
            conditions.append(Property.bedrooms >= filters.bedrooms)
        if filters.active is not None:
            conditions.append(Property.active == filters.active)
        if filters.search_text:
            pattern = like_pattern(filters.search_text)
            conditions.append(or_(
                Property.title.ilike(pattern, escape="\\"),
                Property.description.ilike(pattern, escape="\\"),
                Property.location.ilike(pattern, escape="\\"),
                Property.condo_name.ilike(pattern, escape="\\"),
            ))

        return conditions

    def _visibility_condition(self, user_id: Optional[uuid.UUID]) -> Any:
        """Published listings, plus everything the user owns, manages or is assigned to."""
        public = and_(Property.approval_status == ApprovalStatus.PUBLISHED, Property.active.is_(True))
        if user_id is None:
            return public

        assigned = select(PropertyStaff.property_id).where(PropertyStaff.staff_id == user_id)
        return or_(
            public,
            Property.owner_id == user_id,
            Property.management_id == user_id,
            Property.id.in_(assigned),
        )

    async def search_properties(
        self,
        filters: PropertySearchFilters,
        skip: int = 0,
        limit: int = 20,
        order_by: str = "created_at",
        order_direction: str = "desc",
        visible_to: Optional[uuid.UUID] = None,
        unrestricted: bool = False
    ) -> Tuple[List[Property], int]:
        """
        Search properties with filtering and pagination.

        Args:
            filters: PropertySearchFilters instance with search criteria
            skip: Number of records to skip for pagination
            limit: Maximum number of records to return
            order_by: Field to order by
            order_direction: 'asc' or 'desc'
            visible_to: Restrict results to what this user may see
            unrestricted: Skip visibility scoping (administrators)

        Returns:
            Tuple of (properties list, total count)
        """
        try:
            conditions = self._build_filter_conditions(filters)
            if not unrestricted:
                conditions.append(self._visibility_condition(visible_to))

            query = select(Property)
            count_query = select(func.count(Property.id))
            if conditions:
                query = query.where(and_(*conditions))
                count_query = count_query.where(and_(*conditions))

            total_count = (await self.db.execute(count_query)).scalar()

            order_field = getattr(Property, order_by, Property.created_at)
            if order_direction.lower() == "asc":
                query = query.order_by(asc(order_field))
            else:
                query = query.order_by(desc(order_field))

            result = await self.db.execute(query.offset(skip).limit(limit))
            properties = list(result.scalars().all())

            logger.debug(f"Property search returned {len(properties)} of {total_count}")
            return properties, total_count
        except Exception as e:
            logger.error(f"Failed to search properties: {e}")
            raise

    async def get_by_slug(self, slug: str) -> Optional[Property]:
        return await self.get_by_field("slug", slug)

    async def get_all_for_import(self) -> List[Property]:
        """Every property with a condominium name, for batch matching."""
        query = select(Property).where(Property.condo_name.is_not(None)).order_by(Property.condo_name)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def find_published_matches(
        self,
        statuses: List[PropertyStatus],
        min_price: Decimal,
        max_price: Decimal,
        location: Optional[str],
        min_bedrooms: Optional[int],
        min_bathrooms: Optional[int],
        limit: int = 50
    ) -> List[Property]:
        """Published, active listings that satisfy a presentation card."""
        conditions = [
            Property.approval_status == ApprovalStatus.PUBLISHED,
            Property.active.is_(True),
            Property.status.in_(statuses),
            Property.price >= min_price,
            Property.price <= max_price,
        ]
        if location:
            conditions.append(Property.location.ilike(like_pattern(location), escape="\\"))
        if min_bedrooms is not None:
            conditions.append(Property.bedrooms >= min_bedrooms)
        if min_bathrooms is not None:
            conditions.append(Property.bathrooms >= min_bathrooms)

        query = select(Property).where(and_(*conditions)).order_by(asc(Property.price)).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())


class PropertyStaffRepository(BaseRepository[PropertyStaff]):

    def __init__(self, db: AsyncSession):
        super().__init__(PropertyStaff, db)

    async def list_for_property(self, property_id: uuid.UUID) -> List[PropertyStaff]:
        return await self.get_multi(limit=1000, filters={"property_id": property_id}, order_by="created_at")

    async def get_assignment(self, property_id: uuid.UUID, staff_id: uuid.UUID, role: Any) -> Optional[PropertyStaff]:
        query = select(PropertyStaff).where(
            PropertyStaff.property_id == property_id,
            PropertyStaff.staff_id == staff_id,
            PropertyStaff.role == role,
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def is_assigned(self, property_id: uuid.UUID, staff_id: uuid.UUID) -> bool:
        query = select(func.count(PropertyStaff.id)).where(
            PropertyStaff.property_id == property_id,
            PropertyStaff.staff_id == staff_id,
        )
        return (await self.db.execute(query)).scalar() > 0
