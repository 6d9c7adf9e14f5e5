"""
Catalog models: client presentation cards, service providers with their services, and offers.
"""

from sqlalchemy import (
    String, Text, Integer, Numeric, Boolean, JSON, Date, ForeignKey, Uuid
)
from sqlalchemy.orm import Mapped, mapped_column
from homesapp.database import Base, db_enum
from homesapp.models.property import PropertyStatus, PropertyType
from datetime import date
from decimal import Decimal
import enum
import uuid
from typing import List, Optional


class OfferStatus(str, enum.Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under-review"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


FINAL_OFFER_STATUSES = {OfferStatus.ACCEPTED, OfferStatus.REJECTED}


class PresentationCard(Base):
    """Search profile a client fills in to describe the property they want."""

    __tablename__ = "presentation_cards"

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    property_type: Mapped[PropertyType] = mapped_column(
        db_enum(PropertyType, "property_type"),
        nullable=False
    )

    modality: Mapped[PropertyStatus] = mapped_column(
        db_enum(PropertyStatus, "property_status"),
        nullable=False
    )

    min_price: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)

    max_price: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)

    location: Mapped[str] = mapped_column(Text, nullable=False)

    bedrooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    bathrooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    amenities: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    additional_requirements: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "client_id": str(self.client_id),
            "property_type": self.property_type.value,
            "modality": self.modality.value,
            "min_price": self.min_price,
            "max_price": self.max_price,
            "location": self.location,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "amenities": list(self.amenities or []),
            "additional_requirements": self.additional_requirements,
            **self._timestamps(),
        }


class ServiceProvider(Base):
    __tablename__ = "service_providers"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )

    specialty: Mapped[str] = mapped_column(Text, nullable=False)

    rating: Mapped[Decimal] = mapped_column(Numeric(precision=3, scale=2), nullable=False, default=Decimal("0"))

    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "specialty": self.specialty,
            "rating": self.rating,
            "review_count": self.review_count,
            "available": self.available,
            **self._timestamps(),
        }


class Service(Base):
    __tablename__ = "services"

    provider_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("service_providers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    price: Mapped[Decimal] = mapped_column(Numeric(precision=10, scale=2), nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="MXN")

    estimated_duration_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "provider_id": str(self.provider_id),
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "currency": self.currency,
            "estimated_duration_minutes": self.estimated_duration_minutes,
            **self._timestamps(),
        }


class Offer(Base):
    """Purchase or rental offer made by a client on a property."""

    __tablename__ = "offers"

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

    appointment_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("appointments.id", ondelete="SET NULL"),
        nullable=True
    )

    offer_amount: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="MXN")

    status: Mapped[OfferStatus] = mapped_column(
        db_enum(OfferStatus, "offer_status"),
        nullable=False,
        default=OfferStatus.PENDING,
        index=True
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Applicant details captured by the offer form
    applicant_full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    applicant_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    applicant_phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    nationality: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    occupation: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    move_in_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    contract_months: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    @property
    def is_final(self) -> bool:
        return self.status in FINAL_OFFER_STATUSES

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "property_id": str(self.property_id),
            "client_id": str(self.client_id),
            "appointment_id": str(self.appointment_id) if self.appointment_id else None,
            "offer_amount": self.offer_amount,
            "currency": self.currency,
            "status": self.status.value,
            "notes": self.notes,
            "applicant_full_name": self.applicant_full_name,
            "applicant_email": self.applicant_email,
            "applicant_phone": self.applicant_phone,
            "nationality": self.nationality,
            "occupation": self.occupation,
            "move_in_date": self.move_in_date.isoformat() if self.move_in_date else None,
            "contract_months": self.contract_months,
            **self._timestamps(),
        }
