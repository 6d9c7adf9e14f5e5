"""
Sales lead registered by external agency sellers.
"""

from sqlalchemy import String, Text, ForeignKey, Uuid, Index
from sqlalchemy.orm import Mapped, mapped_column
from homesapp.database import Base, db_enum
import enum
import uuid
from typing import Optional


class LeadStatus(str, enum.Enum):
    NEW = "new"
    CONTACTED = "contacted"
    VISIT_SCHEDULED = "visit_scheduled"
    OFFER_MADE = "offer_made"
    WON = "won"
    LOST = "lost"


class Lead(Base):
    __tablename__ = "leads"

    agency_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    seller_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    first_name: Mapped[str] = mapped_column(String(120), nullable=False)

    last_name: Mapped[str] = mapped_column(String(120), nullable=False, default="")

    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    source: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    status: Mapped[LeadStatus] = mapped_column(
        db_enum(LeadStatus, "lead_status"),
        nullable=False,
        default=LeadStatus.NEW,
        index=True
    )

    property_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="SET NULL"),
        nullable=True
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    duplicate_key: Mapped[str] = mapped_column(String(300), nullable=False, default="||")

    __table_args__ = (
        Index("idx_leads_agency_duplicate_key", "agency_id", "duplicate_key"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "agency_id": str(self.agency_id),
            "seller_id": str(self.seller_id) if self.seller_id else None,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "phone": self.phone,
            "email": self.email,
            "source": self.source,
            "status": self.status.value,
            "property_id": str(self.property_id) if self.property_id else None,
            "notes": self.notes,
            "duplicate_key": self.duplicate_key,
            **self._timestamps(),
        }
