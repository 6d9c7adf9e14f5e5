"""
Appointment model for property visits booked by clients.
"""

from sqlalchemy import Text, String, DateTime, ForeignKey, Uuid, Index
from sqlalchemy.orm import Mapped, mapped_column
from homesapp.database import Base, db_enum
from datetime import datetime
import enum
import uuid
from typing import Optional


class AppointmentType(str, enum.Enum):
    IN_PERSON = "in-person"
    VIDEO = "video"


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


APPOINTMENT_TRANSITIONS = {
    AppointmentStatus.PENDING: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED},
    AppointmentStatus.CONFIRMED: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED},
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
}

# Statuses that keep a slot occupied
ACTIVE_APPOINTMENT_STATUSES = [AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED]


class Appointment(Base):
    __tablename__ = "appointments"

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    concierge_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    type: Mapped[AppointmentType] = mapped_column(
        db_enum(AppointmentType, "appointment_type"),
        nullable=False,
        default=AppointmentType.IN_PERSON
    )

    status: Mapped[AppointmentStatus] = mapped_column(
        db_enum(AppointmentStatus, "appointment_status"),
        nullable=False,
        default=AppointmentStatus.PENDING,
        index=True
    )

    meet_link: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_appointments_property_date", "property_id", "date"),
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "property_id": str(self.property_id),
            "client_id": str(self.client_id),
            "concierge_id": str(self.concierge_id) if self.concierge_id else None,
            "date": self.date.isoformat(),
            "type": self.type.value,
            "status": self.status.value,
            "meet_link": self.meet_link,
            "notes": self.notes,
            **self._timestamps(),
        }
