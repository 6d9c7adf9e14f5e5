"""
Payment records tracked by external agency accounting.
"""

from sqlalchemy import String, Text, Numeric, Date, DateTime, ForeignKey, Uuid, Index
from sqlalchemy.orm import Mapped, mapped_column
from homesapp.database import Base, db_enum
from homesapp.models.commission import CommissionType
from datetime import date, datetime
from decimal import Decimal
import enum
import uuid
from typing import Optional


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class Payment(Base):
    __tablename__ = "payments"

    agency_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    property_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="SET NULL"),
        nullable=True
    )

    lead_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("leads.id", ondelete="SET NULL"),
        nullable=True
    )

    seller_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    concept: Mapped[str] = mapped_column(String(255), nullable=False)

    commission_type: Mapped[Optional[CommissionType]] = mapped_column(
        db_enum(CommissionType, "commission_type"),
        nullable=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="MXN")

    status: Mapped[PaymentStatus] = mapped_column(
        db_enum(PaymentStatus, "payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True
    )

    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_payments_agency_due", "agency_id", "due_date"),
    )

    def effective_status(self, today: date) -> PaymentStatus:
        """Pending payments past their due date are reported as overdue."""
        if self.status == PaymentStatus.PENDING and self.due_date < today:
            return PaymentStatus.OVERDUE
        return self.status

    def to_dict(self, today: Optional[date] = None) -> dict:
        today = today or date.today()
        return {
            "id": str(self.id),
            "agency_id": str(self.agency_id),
            "property_id": str(self.property_id) if self.property_id else None,
            "lead_id": str(self.lead_id) if self.lead_id else None,
            "seller_id": str(self.seller_id) if self.seller_id else None,
            "concept": self.concept,
            "commission_type": self.commission_type.value if self.commission_type else None,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status.value,
            "effective_status": self.effective_status(today).value,
            "due_date": self.due_date.isoformat(),
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
            "notes": self.notes,
            **self._timestamps(),
        }
