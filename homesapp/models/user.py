"""
User and agency models with role and approval-status management.
Users cover platform staff, owners, clients and external agency staff.
"""

from sqlalchemy import String, Boolean, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from homesapp.database import Base, db_enum
from passlib.context import CryptContext
from email_validator import validate_email, EmailNotValidError
import enum
import uuid
from typing import Optional

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class UserRole(str, enum.Enum):
    """User role enumeration for role-based access control."""
    MASTER = "master"
    ADMIN = "admin"
    ADMIN_JR = "admin_jr"
    SELLER = "seller"
    OWNER = "owner"
    MANAGEMENT = "management"
    CONCIERGE = "concierge"
    PROVIDER = "provider"
    TENANT = "tenant"
    EXTERNAL_AGENCY_ADMIN = "external_agency_admin"
    EXTERNAL_AGENCY_MANAGER = "external_agency_manager"
    EXTERNAL_AGENCY_SELLER = "external_agency_seller"
    EXTERNAL_AGENCY_ACCOUNTANT = "external_agency_accountant"


class UserStatus(str, enum.Enum):
    """Account approval status."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    INACTIVE = "inactive"


ADMIN_ROLES = {UserRole.MASTER, UserRole.ADMIN}

EXTERNAL_ROLES = {
    UserRole.EXTERNAL_AGENCY_ADMIN,
    UserRole.EXTERNAL_AGENCY_MANAGER,
    UserRole.EXTERNAL_AGENCY_SELLER,
    UserRole.EXTERNAL_AGENCY_ACCOUNTANT,
}

# Roles a visitor may pick when registering themselves
SELF_REGISTRATION_ROLES = {
    UserRole.OWNER,
    UserRole.SELLER,
    UserRole.TENANT,
    UserRole.PROVIDER,
    UserRole.CONCIERGE,
}


class Agency(Base):
    """External agency, the tenant boundary for agency staff, leads, commissions and payments."""

    __tablename__ = "agencies"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "slug": self.slug,
            "is_active": self.is_active,
            **self._timestamps(),
        }


class User(Base):
    """
    User model for authentication and authorization.
    Role decides what a user can do; status decides whether they can log in at all.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="User email address - must be unique and valid"
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Bcrypt hashed password"
    )

    first_name: Mapped[str] = mapped_column(String(120), nullable=False)

    last_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")

    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    profile_image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    role: Mapped[UserRole] = mapped_column(
        db_enum(UserRole, "user_role"),
        nullable=False,
        default=UserRole.OWNER,
        index=True,
        comment="User role for access control"
    )

    status: Mapped[UserStatus] = mapped_column(
        db_enum(UserStatus, "user_status"),
        nullable=False,
        default=UserStatus.PENDING,
        index=True,
        comment="Account approval status"
    )

    agency_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("agencies.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Agency for external agency staff"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

    @classmethod
    def validate_email_format(cls, email: str) -> str:
        """
        Validate email format using email-validator.

        Returns:
            Normalized, lower-cased email address

        Raises:
            ValueError: If email format is invalid
        """
        try:
            valid_email = validate_email(email, check_deliverability=False)
            return valid_email.normalized.lower()
        except EmailNotValidError as e:
            raise ValueError(f"Invalid email format: {str(e)}")

    @classmethod
    def hash_password(cls, password: str) -> str:
        if not password or len(password) < 8:
            raise ValueError("Password must be at least 8 characters long")
        return pwd_context.hash(password)

    def verify_password(self, password: str) -> bool:
        return pwd_context.verify(password, self.hashed_password)

    def set_password(self, password: str) -> None:
        self.hashed_password = self.hash_password(password)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_active(self) -> bool:
        """Only approved accounts may use the platform."""
        return self.status == UserStatus.APPROVED

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_external(self) -> bool:
        return self.role in EXTERNAL_ROLES

    def to_dict(self) -> dict:
        """Dictionary representation excluding the password hash."""
        return {
            "id": str(self.id),
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "phone": self.phone,
            "profile_image_url": self.profile_image_url,
            "role": self.role.value,
            "status": self.status.value,
            "agency_id": str(self.agency_id) if self.agency_id else None,
            **self._timestamps(),
        }
