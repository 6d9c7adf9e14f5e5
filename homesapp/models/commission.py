"""
Commission configuration for external agencies.

Four tiers can define a percentage per commission type: the agency default profile,
role overrides, user overrides and lead-specific overrides. Every change is recorded
in the commission audit log.
"""

from sqlalchemy import Text, Numeric, Boolean, Date, JSON, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from homesapp.database import Base, db_enum
from homesapp.models.user import UserRole
from datetime import date
from decimal import Decimal
import enum
import uuid
from typing import Any, Dict, Optional


class CommissionType(str, enum.Enum):
    RENTAL = "rental"
    LISTED_PROPERTY = "listed_property"
    RECRUITED_PROPERTY = "recruited_property"


class CommissionSource(str, enum.Enum):
    """Tier a resolved percentage came from."""
    LEAD_OVERRIDE = "lead_override"
    USER_OVERRIDE = "user_override"
    ROLE_OVERRIDE = "role_override"
    AGENCY_DEFAULT = "agency_default"
    SYSTEM_DEFAULT = "system_default"


class AuditEntityType(str, enum.Enum):
    PROFILE = "profile"
    ROLE_OVERRIDE = "role_override"
    USER_OVERRIDE = "user_override"
    LEAD_OVERRIDE = "lead_override"


class AuditAction(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


# Column holding the percentage for each commission type
RATE_COLUMNS = {
    CommissionType.RENTAL: "rental_commission_percent",
    CommissionType.LISTED_PROPERTY: "listed_property_commission_percent",
    CommissionType.RECRUITED_PROPERTY: "recruited_property_commission_percent",
}


class RatesMixin:
    """Shared helpers for models carrying the three percentage columns."""

    def rate_for(self, commission_type: CommissionType) -> Optional[Decimal]:
        return getattr(self, RATE_COLUMNS[CommissionType(commission_type)])

    def rates_dict(self) -> Dict[str, Any]:
        return {column: getattr(self, column) for column in RATE_COLUMNS.values()}


class WindowMixin:
    """Activation flag plus an inclusive effective window with open ends."""

    def applies_on(self, on_date: date) -> bool:
        if not self.is_active:
            return False
        if self.effective_from and on_date < self.effective_from:
            return False
        if self.effective_until and on_date > self.effective_until:
            return False
        return True


class CommissionProfile(RatesMixin, Base):
    """Agency-wide default percentages."""

    __tablename__ = "commission_profiles"

    agency_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )

    rental_commission_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("10"))
    listed_property_commission_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("5"))
    recruited_property_commission_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("20"))

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "agency_id": str(self.agency_id),
            **self.rates_dict(),
            **self._timestamps(),
        }


class RoleCommissionOverride(RatesMixin, Base):
    __tablename__ = "role_commission_overrides"

    agency_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    role: Mapped[UserRole] = mapped_column(db_enum(UserRole, "user_role"), nullable=False)

    rental_commission_percent: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
    listed_property_commission_percent: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
    recruited_property_commission_percent: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("agency_id", "role", name="uq_role_commission_override"),
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "agency_id": str(self.agency_id),
            "role": self.role.value,
            **self.rates_dict(),
            "notes": self.notes,
            "is_active": self.is_active,
            **self._timestamps(),
        }


class UserCommissionOverride(RatesMixin, WindowMixin, Base):
    __tablename__ = "user_commission_overrides"

    agency_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    rental_commission_percent: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
    listed_property_commission_percent: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
    recruited_property_commission_percent: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    effective_from: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    effective_until: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "agency_id": str(self.agency_id),
            "user_id": str(self.user_id),
            **self.rates_dict(),
            "notes": self.notes,
            "effective_from": self.effective_from.isoformat() if self.effective_from else None,
            "effective_until": self.effective_until.isoformat() if self.effective_until else None,
            "is_active": self.is_active,
            **self._timestamps(),
        }


class LeadCommissionOverride(RatesMixin, WindowMixin, Base):
    __tablename__ = "lead_commission_overrides"

    agency_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    lead_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("leads.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    rental_commission_percent: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
    listed_property_commission_percent: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
    recruited_property_commission_percent: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    effective_from: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    effective_until: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "agency_id": str(self.agency_id),
            "lead_id": str(self.lead_id),
            **self.rates_dict(),
            "notes": self.notes,
            "effective_from": self.effective_from.isoformat() if self.effective_from else None,
            "effective_until": self.effective_until.isoformat() if self.effective_until else None,
            "is_active": self.is_active,
            **self._timestamps(),
        }


class CommissionAuditLog(Base):
    __tablename__ = "commission_audit_logs"

    agency_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    entity_type: Mapped[AuditEntityType] = mapped_column(
        db_enum(AuditEntityType, "commission_audit_entity"),
        nullable=False
    )

    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    action: Mapped[AuditAction] = mapped_column(
        db_enum(AuditAction, "commission_audit_action"),
        nullable=False
    )

    previous_values: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    new_values: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    changed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "agency_id": str(self.agency_id),
            "entity_type": self.entity_type.value,
            "entity_id": str(self.entity_id),
            "action": self.action.value,
            "previous_values": self.previous_values,
            "new_values": self.new_values,
            "changed_by": str(self.changed_by) if self.changed_by else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
