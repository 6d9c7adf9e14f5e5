"""
Pydantic schemas for request/response validation.
"""

from .auth import (
    RegisterRequest,
    RegisterResponse,
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    AccessTokenResponse,
)
from .user import (
    UserResponse,
    CurrentUserResponse,
    UserListResponse,
    AgencyResponse,
    PermissionListResponse,
)
from .property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    PropertyListResponse,
    ChangePreviewResponse,
)
from .error import ErrorDetail, ErrorResponse, APIErrorResponse

__all__ = [
    "RegisterRequest",
    "RegisterResponse",
    "LoginRequest",
    "LoginResponse",
    "RefreshTokenRequest",
    "AccessTokenResponse",
    "UserResponse",
    "CurrentUserResponse",
    "UserListResponse",
    "AgencyResponse",
    "PermissionListResponse",
    "PropertyCreate",
    "PropertyUpdate",
    "PropertyResponse",
    "PropertyListResponse",
    "ChangePreviewResponse",
    "ErrorDetail",
    "ErrorResponse",
    "APIErrorResponse",
]
