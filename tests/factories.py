"""
Factories for test records and authentication headers.
"""

import uuid
from decimal import Decimal
from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from homesapp.models.user import User, UserRole, UserStatus, Agency
from homesapp.models.property import Property, PropertyStatus, PropertyType, ApprovalStatus
from homesapp.repositories.user import UserRepository, AgencyRepository
from homesapp.repositories.property import PropertyRepository
from homesapp.utils.auth import create_access_token
from homesapp.utils.text import generate_property_slug, generate_slug

DEFAULT_PASSWORD = "testpassword123"


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(user_id=user.id, email=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}


class UserFactory:
    """Factory for creating test users."""

    @staticmethod
    def create_user_data(
        email: Optional[str] = None,
        password: str = DEFAULT_PASSWORD,
        first_name: str = "Test",
        last_name: str = "User",
        role: UserRole = UserRole.OWNER,
        status: UserStatus = UserStatus.APPROVED,
        agency_id: Optional[uuid.UUID] = None
    ) -> Dict[str, Any]:
        return {
            "email": email or f"user{uuid.uuid4().hex[:8]}@example.com",
            "password": password,
            "first_name": first_name,
            "last_name": last_name,
            "role": role,
            "status": status,
            "agency_id": agency_id,
        }

    @staticmethod
    async def create(db: AsyncSession, **kwargs) -> User:
        return await UserRepository(db).create_user(UserFactory.create_user_data(**kwargs))


class AgencyFactory:

    @staticmethod
    async def create(db: AsyncSession, name: str = "Test Agency") -> Agency:
        return await AgencyRepository(db).create({"name": name, "slug": generate_slug(name)})


class PropertyFactory:
    """Factory for creating test properties."""

    @staticmethod
    def create_property_data(
        owner_id: uuid.UUID,
        title: str = "Departamento en Aldea Zama",
        price: Decimal = Decimal("25000.00"),
        bedrooms: int = 2,
        bathrooms: Decimal = Decimal("2"),
        area: Decimal = Decimal("85"),
        location: str = "Tulum, Quintana Roo",
        status: PropertyStatus = PropertyStatus.RENT,
        property_type: PropertyType = PropertyType.APARTMENT,
        condo_name: Optional[str] = None,
        unit_number: Optional[str] = None,
        zone: Optional[str] = None,
        approval_status: ApprovalStatus = ApprovalStatus.DRAFT,
        active: bool = True
    ) -> Dict[str, Any]:
        return {
            "owner_id": owner_id,
            "title": title,
            "price": price,
            "bedrooms": bedrooms,
            "bathrooms": bathrooms,
            "area": area,
            "location": location,
            "status": status,
            "property_type": property_type,
            "condo_name": condo_name,
            "unit_number": unit_number,
            "zone": zone,
            "slug": generate_property_slug(condo_name, unit_number) if condo_name and unit_number else None,
            "approval_status": approval_status,
            "active": active,
            "images": [],
            "amenities": [],
        }

    @staticmethod
    async def create(db: AsyncSession, owner_id: uuid.UUID, published: bool = False, **kwargs) -> Property:
        if published:
            kwargs.setdefault("approval_status", ApprovalStatus.PUBLISHED)
        data = PropertyFactory.create_property_data(owner_id, **kwargs)
        return await PropertyRepository(db).create(data)
