"""
Tests for visit booking, slot conflicts, status transitions and concierge assignment.
"""

import pytest
from datetime import datetime, timedelta, timezone

from homesapp.models.appointment import AppointmentStatus, AppointmentType
from homesapp.models.user import UserRole
from homesapp.schemas.appointment import AppointmentCreate, AppointmentStatusUpdate
from homesapp.services.appointment import AppointmentService, as_utc
from homesapp.repositories.property import PropertyRepository
from homesapp.services.user import UserService
from homesapp.utils.exceptions import (
    ConflictError,
    InsufficientPermissionsError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
)
from tests.factories import UserFactory


@pytest.fixture
def appointment_service(db_session) -> AppointmentService:
    return AppointmentService(db_session)


def tomorrow_at(hour: int, minute: int = 0) -> datetime:
    day = datetime.now(timezone.utc) + timedelta(days=1)
    return day.replace(hour=hour, minute=minute, second=0, microsecond=0)


def visit(property_id, when: datetime, **kwargs) -> AppointmentCreate:
    return AppointmentCreate(property_id=str(property_id), date=when, **kwargs)


class TestBooking:

    def test_as_utc(self):
        naive = datetime(2024, 5, 1, 10, 0)
        assert as_utc(naive).tzinfo == timezone.utc
        shifted = datetime(2024, 5, 1, 10, 0, tzinfo=timezone(timedelta(hours=-5)))
        assert as_utc(shifted).hour == 15

    @pytest.mark.asyncio
    async def test_client_books_pending_visit(self, appointment_service, published_property, client_user):
        appointment = await appointment_service.create_appointment(
            visit(published_property.id, tomorrow_at(10), type=AppointmentType.VIDEO), client_user
        )

        assert appointment.status == AppointmentStatus.PENDING
        assert appointment.client_id == client_user.id
        assert appointment.type == AppointmentType.VIDEO

    @pytest.mark.asyncio
    async def test_past_date_rejected(self, appointment_service, published_property, client_user):
        with pytest.raises(ValidationError):
            await appointment_service.create_appointment(
                visit(published_property.id, datetime.now(timezone.utc) - timedelta(hours=1)), client_user
            )

    @pytest.mark.asyncio
    async def test_unpublished_property_not_found(self, appointment_service, draft_property, client_user):
        with pytest.raises(NotFoundError):
            await appointment_service.create_appointment(visit(draft_property.id, tomorrow_at(10)), client_user)

    @pytest.mark.asyncio
    async def test_overlapping_slot_conflicts(self, appointment_service, published_property, client_user, other_owner):
        first = await appointment_service.create_appointment(visit(published_property.id, tomorrow_at(10)), client_user)

        with pytest.raises(ConflictError) as exc_info:
            await appointment_service.create_appointment(
                visit(published_property.id, tomorrow_at(10, 30)), other_owner
            )
        assert exc_info.value.existing_id == str(first.id)

        with pytest.raises(ConflictError):
            await appointment_service.create_appointment(
                visit(published_property.id, tomorrow_at(9, 30)), other_owner
            )

    @pytest.mark.asyncio
    async def test_adjacent_slot_is_free(self, appointment_service, published_property, client_user, other_owner):
        await appointment_service.create_appointment(visit(published_property.id, tomorrow_at(10)), client_user)
        second = await appointment_service.create_appointment(visit(published_property.id, tomorrow_at(11)), other_owner)
        assert second.status == AppointmentStatus.PENDING

    @pytest.mark.asyncio
    async def test_cancelled_visit_frees_the_slot(self, appointment_service, published_property, client_user, other_owner):
        first = await appointment_service.create_appointment(visit(published_property.id, tomorrow_at(10)), client_user)
        await appointment_service.update_status(
            first.id, AppointmentStatusUpdate(status=AppointmentStatus.CANCELLED), client_user
        )

        rebooked = await appointment_service.create_appointment(visit(published_property.id, tomorrow_at(10)), other_owner)
        assert rebooked.id != first.id


class TestStatusChanges:

    @pytest.mark.asyncio
    async def test_owner_confirms_and_completes(self, appointment_service, published_property, client_user, owner):
        appointment = await appointment_service.create_appointment(
            visit(published_property.id, tomorrow_at(12)), client_user
        )

        confirmed = await appointment_service.update_status(
            appointment.id,
            AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED, meet_link="https://meet.example.com/abc"),
            owner
        )
        assert confirmed.status == AppointmentStatus.CONFIRMED
        assert confirmed.meet_link == "https://meet.example.com/abc"

        completed = await appointment_service.update_status(
            appointment.id, AppointmentStatusUpdate(status=AppointmentStatus.COMPLETED), owner
        )
        assert completed.status == AppointmentStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_client_may_only_cancel(self, appointment_service, published_property, client_user):
        appointment = await appointment_service.create_appointment(
            visit(published_property.id, tomorrow_at(12)), client_user
        )
        with pytest.raises(InsufficientPermissionsError):
            await appointment_service.update_status(
                appointment.id, AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED), client_user
            )

    @pytest.mark.asyncio
    async def test_final_statuses_do_not_move(self, appointment_service, published_property, client_user, owner):
        appointment = await appointment_service.create_appointment(
            visit(published_property.id, tomorrow_at(12)), client_user
        )
        await appointment_service.update_status(
            appointment.id, AppointmentStatusUpdate(status=AppointmentStatus.CANCELLED), owner
        )
        with pytest.raises(InvalidStatusTransitionError):
            await appointment_service.update_status(
                appointment.id, AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED), owner
            )

    @pytest.mark.asyncio
    async def test_pending_cannot_complete(self, appointment_service, published_property, client_user, owner):
        appointment = await appointment_service.create_appointment(
            visit(published_property.id, tomorrow_at(12)), client_user
        )
        with pytest.raises(InvalidStatusTransitionError):
            await appointment_service.update_status(
                appointment.id, AppointmentStatusUpdate(status=AppointmentStatus.COMPLETED), owner
            )

    @pytest.mark.asyncio
    async def test_outsider_gets_not_found(self, appointment_service, published_property, client_user, other_owner):
        appointment = await appointment_service.create_appointment(
            visit(published_property.id, tomorrow_at(12)), client_user
        )
        with pytest.raises(NotFoundError):
            await appointment_service.get_appointment(appointment.id, other_owner)


class TestConcierge:

    @pytest.mark.asyncio
    async def test_assign_and_scope(self, appointment_service, published_property, client_user, master, concierge):
        appointment = await appointment_service.create_appointment(
            visit(published_property.id, tomorrow_at(15)), client_user
        )

        assigned = await appointment_service.assign_concierge(appointment.id, str(concierge.id), master)
        assert assigned.concierge_id == concierge.id

        visible, total = await appointment_service.list_appointments(concierge)
        assert total == 1
        assert visible[0].id == appointment.id

        confirmed = await appointment_service.update_status(
            appointment.id, AppointmentStatusUpdate(status=AppointmentStatus.CONFIRMED), concierge
        )
        assert confirmed.status == AppointmentStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_only_concierges_can_be_assigned(self, appointment_service, published_property, client_user, master, owner):
        appointment = await appointment_service.create_appointment(
            visit(published_property.id, tomorrow_at(15)), client_user
        )
        with pytest.raises(ValidationError):
            await appointment_service.assign_concierge(appointment.id, str(owner.id), master)

    @pytest.mark.asyncio
    async def test_assignment_requires_permission(self, db_session, appointment_service, published_property, client_user, master, admin_jr, concierge):
        appointment = await appointment_service.create_appointment(
            visit(published_property.id, tomorrow_at(15)), client_user
        )
        with pytest.raises(InsufficientPermissionsError):
            await appointment_service.assign_concierge(appointment.id, str(concierge.id), admin_jr)

        await UserService(db_session).grant_permission(admin_jr.id, "appointments:manage", master)
        assigned = await appointment_service.assign_concierge(appointment.id, str(concierge.id), admin_jr)
        assert assigned.concierge_id == concierge.id

    @pytest.mark.asyncio
    async def test_list_scopes(self, appointment_service, published_property, client_user, owner, other_owner, master):
        await appointment_service.create_appointment(visit(published_property.id, tomorrow_at(9)), client_user)
        await appointment_service.create_appointment(visit(published_property.id, tomorrow_at(11)), other_owner)

        _, client_total = await appointment_service.list_appointments(client_user)
        _, owner_total = await appointment_service.list_appointments(owner)
        _, master_total = await appointment_service.list_appointments(master)
        confirmed, _ = await appointment_service.list_appointments(master, status=AppointmentStatus.CONFIRMED)

        assert client_total == 1
        assert owner_total == 2
        assert master_total == 2
        assert confirmed == []

    @pytest.mark.asyncio
    async def test_manager_lists_visits_on_managed_property(self, db_session, appointment_service, published_property, client_user):
        manager = await UserFactory.create(db_session, role=UserRole.MANAGEMENT)
        await PropertyRepository(db_session).update(published_property.id, {"management_id": manager.id})
        appointment = await appointment_service.create_appointment(visit(published_property.id, tomorrow_at(9)), client_user)

        assert (await appointment_service.get_appointment(appointment.id, manager)).id == appointment.id
        visible, total = await appointment_service.list_appointments(manager)
        assert total == 1
        assert [a.id for a in visible] == [appointment.id]
