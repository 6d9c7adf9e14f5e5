"""
Pydantic schemas for authentication requests and responses.
Handles registration, login, token refresh and the current-user payload.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from homesapp.models.user import UserRole, SELF_REGISTRATION_ROLES
from homesapp.schemas.user import CurrentUserResponse, UserResponse


class RegisterRequest(BaseModel):
    """Self-registration request. New accounts wait for administrator approval."""

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=8, max_length=128, description="Password (minimum 8 characters)")
    first_name: str = Field(..., min_length=1, max_length=120)
    last_name: str = Field("", max_length=120)
    phone: Optional[str] = Field(None, max_length=40)
    role: UserRole = Field(UserRole.OWNER, description="Requested role")

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower().strip()

    @field_validator('first_name')
    @classmethod
    def validate_first_name(cls, v):
        if not v.strip():
            raise ValueError("First name cannot be empty")
        return v.strip()

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        """Require at least one letter and one number."""
        if not any(c.isalpha() for c in v):
            raise ValueError("Password must contain at least one letter")
        if not any(c.isdigit() for c in v):
            raise ValueError("Password must contain at least one number")
        return v

    @field_validator('role')
    @classmethod
    def validate_role(cls, v):
        if v not in SELF_REGISTRATION_ROLES:
            allowed = ", ".join(sorted(role.value for role in SELF_REGISTRATION_ROLES))
            raise ValueError(f"Role must be one of: {allowed}")
        return v


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=1, max_length=128, description="User's password")

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        """Normalize email to lowercase."""
        return v.lower().strip()


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., description="Valid refresh token")


class AccessTokenResponse(BaseModel):
    access_token: str = Field(..., description="New JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiration time in seconds")


class LoginResponse(BaseModel):
    """Complete login response schema."""

    user: CurrentUserResponse = Field(..., description="Authenticated user information")
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token expiration time in seconds")


class RegisterResponse(BaseModel):
    user: UserResponse
    message: str = "Registration received. An administrator will review your account."
