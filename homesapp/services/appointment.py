"""
Appointment service for property visits: booking, slot conflicts, status changes and concierge assignment.
"""

from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from homesapp.config import settings
from homesapp.repositories.appointment import AppointmentRepository
from homesapp.repositories.property import PropertyRepository
from homesapp.repositories.user import UserRepository
from homesapp.models.appointment import Appointment, AppointmentStatus, APPOINTMENT_TRANSITIONS
from homesapp.models.property import Property
from homesapp.models.user import User, UserRole
from homesapp.schemas.appointment import AppointmentCreate, AppointmentStatusUpdate
from homesapp.services.user import UserService
from homesapp.utils.validators import ValidationUtils
from homesapp.utils.exceptions import (
    APIException,
    NotFoundError,
    ConflictError,
    ValidationError,
    BadRequestError,
    InsufficientPermissionsError,
    InvalidStatusTransitionError,
)
from datetime import datetime, timedelta, timezone
import uuid
import logging

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class AppointmentService:
    """Booking and lifecycle of property visits."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.appointment_repo = AppointmentRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.user_repo = UserRepository(db_session)
        self.user_service = UserService(db_session)

    @property
    def slot(self) -> timedelta:
        return timedelta(minutes=settings.appointment_slot_minutes)

    async def create_appointment(self, data: AppointmentCreate, current_user: User) -> Appointment:
        """
        Book a visit on a published property.

        Raises:
            ValidationError: If the date is not in the future
            NotFoundError: If the property is not published
            ConflictError: If another active visit occupies the slot
        """
        try:
            property_id = ValidationUtils.parse_uuid(data.property_id, "property_id")
            property_obj = await self.property_repo.get_by_id(property_id)
            if not property_obj or not property_obj.is_public:
                raise NotFoundError("Property", str(property_id))

            start = as_utc(data.date)
            if start <= datetime.now(timezone.utc):
                raise ValidationError(
                    "Appointment date must be in the future",
                    field_errors=[{"field": "date", "message": "must be in the future"}]
                )

            conflicts = await self.appointment_repo.find_conflicts(property_id, start, self.slot)
            if conflicts:
                raise ConflictError(
                    "Another visit is already booked for this time slot",
                    existing_id=str(conflicts[0].id)
                )

            appointment = await self.appointment_repo.create({
                "property_id": property_id,
                "client_id": current_user.id,
                "date": start,
                "type": data.type,
                "status": AppointmentStatus.PENDING,
                "notes": data.notes,
            })
            logger.info(f"Appointment {appointment.id} booked by {current_user.email} on {start.isoformat()}")
            return appointment

        except APIException:
            raise
        except Exception as e:
            logger.error(f"Failed to book appointment for user {current_user.id}: {e}")
            raise BadRequestError(f"Failed to book appointment: {str(e)}")

    async def get_appointment(self, appointment_id: uuid.UUID, current_user: User) -> Appointment:
        appointment = await self.appointment_repo.get_by_id(appointment_id)
        if not appointment:
            raise NotFoundError("Appointment", str(appointment_id))

        property_obj = await self.property_repo.get_by_id(appointment.property_id)
        if not await self._is_participant(appointment, property_obj, current_user):
            raise NotFoundError("Appointment", str(appointment_id))
        return appointment

    async def list_appointments(
        self,
        current_user: User,
        status: Optional[AppointmentStatus] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Tuple[List[Appointment], int]:
        """
        Appointments visible to the caller: all for managers, assigned ones for
        concierges, those on owned or managed properties for owners and management,
        own bookings otherwise.
        """
        skip, limit = ValidationUtils.page_bounds(page, page_size)
        scope = {}
        if not await self.user_service.has_permission(current_user, "appointments:manage"):
            if current_user.role == UserRole.CONCIERGE:
                scope["concierge_id"] = current_user.id
            elif current_user.role in (UserRole.OWNER, UserRole.MANAGEMENT):
                scope["owner_id"] = current_user.id
            else:
                scope["client_id"] = current_user.id

        return await self.appointment_repo.list_scoped(
            status=status,
            date_from=as_utc(date_from) if date_from else None,
            date_to=as_utc(date_to) if date_to else None,
            skip=skip,
            limit=limit,
            **scope,
        )

    async def update_status(
        self,
        appointment_id: uuid.UUID,
        data: AppointmentStatusUpdate,
        current_user: User
    ) -> Appointment:
        """
        Move an appointment along its lifecycle. Clients may only cancel their own visits.

        Raises:
            InvalidStatusTransitionError: If the transition is not allowed
        """
        appointment = await self.get_appointment(appointment_id, current_user)
        property_obj = await self.property_repo.get_by_id(appointment.property_id)

        if not await self._can_manage(appointment, property_obj, current_user):
            is_own_cancel = (
                appointment.client_id == current_user.id
                and data.status == AppointmentStatus.CANCELLED
            )
            if not is_own_cancel:
                raise InsufficientPermissionsError(f"mark this appointment as {data.status.value}")

        if data.status not in APPOINTMENT_TRANSITIONS[appointment.status]:
            raise InvalidStatusTransitionError("appointment", appointment.status.value, data.status.value)

        changes = {"status": data.status}
        if data.meet_link:
            changes["meet_link"] = data.meet_link

        updated = await self.appointment_repo.update(appointment.id, changes)
        logger.info(f"Appointment {appointment_id} {appointment.status.value} -> {data.status.value} by {current_user.email}")
        return updated

    async def assign_concierge(self, appointment_id: uuid.UUID, concierge_id: str, current_user: User) -> Appointment:
        """
        Raises:
            ValidationError: If the user is not a concierge
        """
        await self.user_service.require_permission(current_user, "appointments:manage", "assign concierges")
        appointment = await self.appointment_repo.get_by_id(appointment_id)
        if not appointment:
            raise NotFoundError("Appointment", str(appointment_id))

        concierge = await self.user_repo.get_by_id(ValidationUtils.parse_uuid(concierge_id, "concierge_id"))
        if not concierge:
            raise NotFoundError("User", concierge_id)
        if concierge.role != UserRole.CONCIERGE:
            raise ValidationError(
                "Assigned user must be a concierge",
                field_errors=[{"field": "concierge_id", "message": f"user role is {concierge.role.value}"}]
            )

        updated = await self.appointment_repo.update(appointment.id, {"concierge_id": concierge.id})
        logger.info(f"Concierge {concierge.email} assigned to appointment {appointment_id}")
        return updated

    async def _can_manage(self, appointment: Appointment, property_obj: Optional[Property], user: User) -> bool:
        if appointment.concierge_id == user.id:
            return True
        if property_obj and user.id in (property_obj.owner_id, property_obj.management_id):
            return True
        return await self.user_service.has_permission(user, "appointments:manage")

    async def _is_participant(self, appointment: Appointment, property_obj: Optional[Property], user: User) -> bool:
        return appointment.client_id == user.id or await self._can_manage(appointment, property_obj, user)
