"""
Pydantic schemas for users, agencies and permission grants.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime
from homesapp.models.user import UserRole, UserStatus


class UserResponse(BaseModel):
    """User response schema (excluding sensitive data)."""

    id: str = Field(..., description="User's unique identifier")
    email: EmailStr = Field(..., description="User's email address")
    first_name: str
    last_name: str
    full_name: str
    phone: Optional[str] = None
    profile_image_url: Optional[str] = None
    role: UserRole = Field(..., description="User's role")
    status: UserStatus = Field(..., description="Account approval status")
    agency_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CurrentUserResponse(UserResponse):
    """Current user with the permissions they effectively hold."""

    permissions: List[str] = Field(default_factory=list, description="Effective permission strings")


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int
    page: int
    page_size: int


class UserRoleUpdate(BaseModel):
    role: UserRole = Field(..., description="New role for the user")


class UserAgencyUpdate(BaseModel):
    agency_id: Optional[str] = Field(None, description="Agency to attach the user to, or null to detach")


class UserProfileUpdate(BaseModel):
    """Fields a user may change on their own profile."""

    first_name: Optional[str] = Field(None, min_length=1, max_length=120)
    last_name: Optional[str] = Field(None, max_length=120)
    phone: Optional[str] = Field(None, max_length=40)
    profile_image_url: Optional[str] = Field(None, max_length=500)


class AgencyCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255, description="Agency display name")
    slug: Optional[str] = Field(None, max_length=255, description="URL slug, derived from the name when omitted")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Agency name cannot be empty")
        return v.strip()


class AgencyResponse(BaseModel):
    id: str
    name: str
    slug: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PermissionGrantRequest(BaseModel):
    permission: str = Field(..., description="Permission string such as properties:write")


class PermissionResponse(BaseModel):
    id: str
    user_id: str
    permission: str
    created_at: Optional[datetime] = None


class PermissionListResponse(BaseModel):
    user_id: str
    role: UserRole
    permissions: List[str] = Field(..., description="Effective permissions, implicit ones included")
    granted: List[str] = Field(..., description="Explicit grants stored for the user")
