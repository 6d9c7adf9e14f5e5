"""
Property model for rental and sale listings, plus the staff assignment junction.
The approval status drives which administrative actions are available on a listing.
"""

from sqlalchemy import (
    String, Text, Integer, Numeric, Boolean, JSON, ForeignKey, Uuid, Index, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column
from homesapp.database import Base, db_enum
from decimal import Decimal
import enum
import uuid
from typing import Any, Dict, List, Optional


class PropertyStatus(str, enum.Enum):
    """Listing modality."""
    RENT = "rent"
    SALE = "sale"
    BOTH = "both"


class PropertyType(str, enum.Enum):
    HOUSE = "house"
    APARTMENT = "apartment"
    STUDIO = "studio"
    PENTHOUSE = "penthouse"
    VILLA = "villa"
    LOFT = "loft"
    LAND = "land"
    COMMERCIAL = "commercial"


class ApprovalStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    CHANGES_REQUESTED = "changes_requested"
    APPROVED = "approved"
    PUBLISHED = "published"
    REJECTED = "rejected"


class StaffRole(str, enum.Enum):
    CLEANING = "cleaning"
    MAINTENANCE = "maintenance"
    CONCIERGE = "concierge"
    ACCOUNTING = "accounting"
    LEGAL = "legal"


# Admin action -> (statuses it is available from, resulting status)
ADMIN_ACTIONS: Dict[str, Any] = {
    "approve": ({ApprovalStatus.PENDING_REVIEW}, ApprovalStatus.APPROVED),
    "reject": ({ApprovalStatus.PENDING_REVIEW, ApprovalStatus.APPROVED}, ApprovalStatus.REJECTED),
    "request_changes": ({ApprovalStatus.PENDING_REVIEW}, ApprovalStatus.CHANGES_REQUESTED),
    "publish": ({ApprovalStatus.APPROVED}, ApprovalStatus.PUBLISHED),
    "unpublish": ({ApprovalStatus.PUBLISHED}, ApprovalStatus.APPROVED),
    "reopen": ({ApprovalStatus.REJECTED}, ApprovalStatus.PENDING_REVIEW),
}

OWNER_ACTIONS: Dict[str, Any] = {
    "submit": ({ApprovalStatus.DRAFT, ApprovalStatus.CHANGES_REQUESTED}, ApprovalStatus.PENDING_REVIEW),
}


def available_admin_actions(status: ApprovalStatus) -> List[str]:
    """Admin actions that can be applied to a listing in the given status."""
    return [action for action, (sources, _) in ADMIN_ACTIONS.items() if status in sources]


def available_owner_actions(status: ApprovalStatus) -> List[str]:
    return [action for action, (sources, _) in OWNER_ACTIONS.items() if status in sources]


class Property(Base):
    """
    Property listing owned by a user and optionally managed by another.
    """

    __tablename__ = "properties"

    title: Mapped[str] = mapped_column(Text, nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        comment="Monthly rent or asking price"
    )

    sale_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=True
    )

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="MXN")

    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False)

    bathrooms: Mapped[Decimal] = mapped_column(Numeric(precision=3, scale=1), nullable=False)

    area: Mapped[Decimal] = mapped_column(Numeric(precision=8, scale=2), nullable=False)

    location: Mapped[str] = mapped_column(Text, nullable=False)

    zone: Mapped[Optional[str]] = mapped_column(String(120), nullable=True, index=True)

    condo_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)

    unit_number: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)

    slug: Mapped[Optional[str]] = mapped_column(String(320), nullable=True, unique=True)

    property_type: Mapped[PropertyType] = mapped_column(
        db_enum(PropertyType, "property_type"),
        nullable=False,
        default=PropertyType.APARTMENT
    )

    typology: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    floor: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    status: Mapped[PropertyStatus] = mapped_column(
        db_enum(PropertyStatus, "property_status"),
        nullable=False,
        index=True
    )

    approval_status: Mapped[ApprovalStatus] = mapped_column(
        db_enum(ApprovalStatus, "approval_status"),
        nullable=False,
        default=ApprovalStatus.DRAFT,
        index=True
    )

    images: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    amenities: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    specifications: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    referral_percent: Mapped[Optional[Decimal]] = mapped_column(Numeric(precision=5, scale=2), nullable=True)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    management_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    agency_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("agencies.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    __table_args__ = (
        Index("idx_properties_approval_active", "approval_status", "active"),
        Index("idx_properties_condo_unit", "condo_name", "unit_number"),
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, title={self.title[:30]}, price={self.price})>"

    @property
    def display_title(self) -> str:
        if self.condo_name and self.unit_number:
            return f"{self.condo_name} - {self.unit_number}"
        if self.unit_number:
            return f"Unidad {self.unit_number}"
        if self.condo_name:
            return self.condo_name
        return "Propiedad"

    @property
    def is_public(self) -> bool:
        return self.active and self.approval_status == ApprovalStatus.PUBLISHED

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "title": self.title,
            "display_title": self.display_title,
            "description": self.description,
            "price": self.price,
            "sale_price": self.sale_price,
            "currency": self.currency,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "area": self.area,
            "location": self.location,
            "zone": self.zone,
            "condo_name": self.condo_name,
            "unit_number": self.unit_number,
            "slug": self.slug,
            "property_type": self.property_type.value,
            "typology": self.typology,
            "floor": self.floor,
            "status": self.status.value,
            "approval_status": self.approval_status.value,
            "images": list(self.images or []),
            "amenities": list(self.amenities or []),
            "specifications": self.specifications,
            "referral_percent": self.referral_percent,
            "owner_id": str(self.owner_id),
            "management_id": str(self.management_id) if self.management_id else None,
            "agency_id": str(self.agency_id) if self.agency_id else None,
            "active": self.active,
            **self._timestamps(),
        }


class PropertyStaff(Base):
    """Staff member assigned to a property with a role tag."""

    __tablename__ = "property_staff"

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    staff_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    role: Mapped[StaffRole] = mapped_column(db_enum(StaffRole, "staff_role"), nullable=False)

    __table_args__ = (
        UniqueConstraint("property_id", "staff_id", "role", name="uq_property_staff_role"),
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "property_id": str(self.property_id),
            "staff_id": str(self.staff_id),
            "role": self.role.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
