"""
FastAPI dependency injection utilities for authentication, services and agency scoping.
Provides reusable dependencies for route protection and user extraction.
"""

from typing import Optional
from fastapi import Depends, Query, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from homesapp.config import settings
from homesapp.database import get_db
from homesapp.models.user import User
from homesapp.services.auth import AuthService
from homesapp.services.user import UserService
from homesapp.services.property import PropertyService
from homesapp.services.appointment import AppointmentService
from homesapp.services.catalog import CatalogService
from homesapp.services.commission import CommissionService
from homesapp.services.lead import LeadService
from homesapp.services.accounting import AccountingService
from homesapp.utils.exceptions import (
    APIException,
    UnauthorizedError,
    InactiveUserError,
)
import uuid


# HTTP Bearer token security scheme; the session cookie is the fallback
security = HTTPBearer(auto_error=False)


async def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


async def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


async def get_property_service(db: AsyncSession = Depends(get_db)) -> PropertyService:
    return PropertyService(db)


async def get_appointment_service(db: AsyncSession = Depends(get_db)) -> AppointmentService:
    return AppointmentService(db)


async def get_catalog_service(db: AsyncSession = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


async def get_commission_service(db: AsyncSession = Depends(get_db)) -> CommissionService:
    return CommissionService(db)


async def get_lead_service(db: AsyncSession = Depends(get_db)) -> LeadService:
    return LeadService(db)


async def get_accounting_service(db: AsyncSession = Depends(get_db)) -> AccountingService:
    return AccountingService(db)


def extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    """Bearer token when present, otherwise the session cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.auth_cookie_name)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Get current authenticated user from the JWT access token.

    Raises:
        UnauthorizedError: If no token is provided or the token is invalid
        TokenExpiredError: If the token is expired
        InactiveUserError: If the account is not approved
    """
    token = extract_token(request, credentials)
    if not token:
        raise UnauthorizedError("Authentication token required")

    try:
        return await auth_service.get_current_user(token)
    except APIException:
        raise
    except Exception as e:
        raise UnauthorizedError(f"Authentication failed: {str(e)}")


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    if not current_user.is_active:
        raise InactiveUserError()
    return current_user


# Optional authentication dependency (for public endpoints that can benefit from user context)
async def get_optional_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[User]:
    """Current user if a valid token is provided, otherwise None."""
    token = extract_token(request, credentials)
    if not token:
        return None

    try:
        user = await auth_service.get_current_user(token)
        return user if user.is_active else None
    except APIException:
        # An invalid token on a public endpoint is treated as anonymous access
        return None


async def get_agency_id(
    agency_id: Optional[uuid.UUID] = Query(None, description="Agency to operate on (platform administrators)"),
    current_user: User = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service)
) -> uuid.UUID:
    """Agency the request is scoped to; external staff always get their own."""
    return await user_service.resolve_agency(current_user, agency_id)
