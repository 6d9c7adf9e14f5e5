"""
Tests for property listings: creation, visibility, the approval workflow,
wizard edits and staff assignment.
"""

import uuid
import pytest
from decimal import Decimal

from homesapp.models.property import ApprovalStatus, PropertyStatus, StaffRole
from homesapp.models.user import UserRole
from homesapp.schemas.property import PropertyCreate, PropertyUpdate, PropertySearchParams, StaffAssignmentCreate
from homesapp.services.property import PropertyService
from homesapp.services.user import UserService
from homesapp.utils.exceptions import (
    DuplicateResourceError,
    InsufficientPermissionsError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
)
from tests.factories import PropertyFactory, UserFactory


@pytest.fixture
def property_service(db_session) -> PropertyService:
    return PropertyService(db_session)


def listing(**overrides) -> PropertyCreate:
    data = {
        "title": "Departamento con alberca",
        "price": Decimal("28000"),
        "bedrooms": 2,
        "bathrooms": Decimal("2.5"),
        "area": Decimal("96"),
        "location": "Aldea Zama, Tulum",
        "status": PropertyStatus.RENT,
        "condo_name": "Quinto Sol",
        "unit_number": "204",
    }
    data.update(overrides)
    return PropertyCreate(**data)


class TestPropertyCreation:

    @pytest.mark.asyncio
    async def test_owner_creates_draft_with_slug(self, property_service, owner):
        created = await property_service.create_property(listing(), owner)

        assert created.owner_id == owner.id
        assert created.approval_status == ApprovalStatus.DRAFT
        assert created.slug == "quinto-sol-204"
        assert created.display_title == "Quinto Sol - 204"

    @pytest.mark.asyncio
    async def test_duplicate_condo_unit_is_rejected(self, property_service, owner, other_owner):
        await property_service.create_property(listing(), owner)
        with pytest.raises(DuplicateResourceError):
            await property_service.create_property(listing(condo_name="quinto sol"), other_owner)

    @pytest.mark.asyncio
    async def test_without_condo_there_is_no_slug(self, property_service, owner):
        created = await property_service.create_property(listing(condo_name=None, unit_number=None), owner)
        assert created.slug is None

    @pytest.mark.asyncio
    async def test_tenant_cannot_list(self, property_service, client_user):
        with pytest.raises(InsufficientPermissionsError):
            await property_service.create_property(listing(), client_user)

    @pytest.mark.asyncio
    async def test_owner_cannot_create_for_someone_else(self, property_service, owner, other_owner):
        with pytest.raises(InsufficientPermissionsError):
            await property_service.create_property(listing(owner_id=str(other_owner.id)), owner)

    @pytest.mark.asyncio
    async def test_admin_creates_for_owner(self, property_service, master, owner):
        created = await property_service.create_property(listing(owner_id=str(owner.id)), master)
        assert created.owner_id == owner.id


class TestVisibility:

    @pytest.mark.asyncio
    async def test_draft_is_hidden_from_strangers(self, property_service, draft_property, owner, other_owner, master):
        assert (await property_service.get_property(draft_property.id, owner)).id == draft_property.id
        assert (await property_service.get_property(draft_property.id, master)).id == draft_property.id

        with pytest.raises(NotFoundError):
            await property_service.get_property(draft_property.id, other_owner)
        with pytest.raises(NotFoundError):
            await property_service.get_property(draft_property.id, None)

    @pytest.mark.asyncio
    async def test_published_is_public(self, property_service, published_property):
        found = await property_service.get_property(published_property.id, None)
        assert found.id == published_property.id

    @pytest.mark.asyncio
    async def test_inactive_listing_is_hidden(self, db_session, property_service, owner):
        inactive = await PropertyFactory.create(db_session, owner_id=owner.id, published=True, active=False)
        with pytest.raises(NotFoundError):
            await property_service.get_property(inactive.id, None)

    @pytest.mark.asyncio
    async def test_assigned_staff_can_view(self, db_session, property_service, draft_property, owner, concierge):
        await property_service.assign_staff(
            draft_property.id, StaffAssignmentCreate(staff_id=str(concierge.id), role=StaffRole.CONCIERGE), owner
        )
        found = await property_service.get_property(draft_property.id, concierge)
        assert found.id == draft_property.id

    @pytest.mark.asyncio
    async def test_list_only_returns_visible(self, db_session, property_service, draft_property, published_property, other_owner, owner):
        public, public_total = await property_service.list_properties(PropertySearchParams(), None)
        mine, mine_total = await property_service.list_properties(PropertySearchParams(), owner)
        theirs, _ = await property_service.list_properties(PropertySearchParams(), other_owner)

        assert public_total == 1
        assert public[0].id == published_property.id
        assert mine_total == 2
        assert [p.id for p in theirs] == [published_property.id]

    @pytest.mark.asyncio
    async def test_list_filters(self, db_session, property_service, owner):
        await PropertyFactory.create(db_session, owner_id=owner.id, published=True, price=Decimal("15000"), zone="Centro")
        await PropertyFactory.create(db_session, owner_id=owner.id, published=True, price=Decimal("40000"), zone="Region 15")

        cheap, total = await property_service.list_properties(PropertySearchParams(max_price=Decimal("20000")), None)
        assert total == 1
        assert cheap[0].zone == "Centro"

        zoned, _ = await property_service.list_properties(PropertySearchParams(zone="Region 15"), None)
        assert [p.price for p in zoned] == [Decimal("40000")]


class TestApprovalWorkflow:

    @pytest.mark.asyncio
    async def test_full_happy_path(self, property_service, draft_property, owner, master):
        submitted = await property_service.apply_action(draft_property.id, "submit", owner)
        assert submitted.approval_status == ApprovalStatus.PENDING_REVIEW

        approved = await property_service.apply_action(draft_property.id, "approve", master)
        assert approved.approval_status == ApprovalStatus.APPROVED

        published = await property_service.apply_action(draft_property.id, "publish", master, notes="Fotos ok")
        assert published.approval_status == ApprovalStatus.PUBLISHED

        unpublished = await property_service.apply_action(draft_property.id, "unpublish", master)
        assert unpublished.approval_status == ApprovalStatus.APPROVED

    @pytest.mark.asyncio
    async def test_changes_requested_can_be_resubmitted(self, property_service, draft_property, owner, master):
        await property_service.apply_action(draft_property.id, "submit", owner)
        await property_service.apply_action(draft_property.id, "request_changes", master)

        resubmitted = await property_service.apply_action(draft_property.id, "submit", owner)
        assert resubmitted.approval_status == ApprovalStatus.PENDING_REVIEW

    @pytest.mark.asyncio
    async def test_rejected_can_be_reopened(self, property_service, draft_property, owner, master):
        await property_service.apply_action(draft_property.id, "submit", owner)
        await property_service.apply_action(draft_property.id, "reject", master)

        reopened = await property_service.apply_action(draft_property.id, "reopen", master)
        assert reopened.approval_status == ApprovalStatus.PENDING_REVIEW

    @pytest.mark.asyncio
    async def test_invalid_transition(self, property_service, draft_property, master):
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            await property_service.apply_action(draft_property.id, "publish", master)
        assert exc_info.value.error_code == "INVALID_STATUS_TRANSITION"
        assert exc_info.value.current == "draft"

    @pytest.mark.asyncio
    async def test_owner_cannot_approve(self, property_service, draft_property, owner):
        await property_service.apply_action(draft_property.id, "submit", owner)
        with pytest.raises(InsufficientPermissionsError):
            await property_service.apply_action(draft_property.id, "approve", owner)

    @pytest.mark.asyncio
    async def test_stranger_cannot_submit(self, property_service, draft_property, other_owner):
        with pytest.raises(InsufficientPermissionsError):
            await property_service.apply_action(draft_property.id, "submit", other_owner)

    @pytest.mark.asyncio
    async def test_junior_admin_needs_grant(self, db_session, property_service, draft_property, owner, master, admin_jr):
        await property_service.apply_action(draft_property.id, "submit", owner)
        with pytest.raises(InsufficientPermissionsError):
            await property_service.apply_action(draft_property.id, "approve", admin_jr)

        await UserService(db_session).grant_permission(admin_jr.id, "properties:approve", master)
        approved = await property_service.apply_action(draft_property.id, "approve", admin_jr)
        assert approved.approval_status == ApprovalStatus.APPROVED

    @pytest.mark.asyncio
    async def test_unknown_action(self, property_service, draft_property, master):
        with pytest.raises(ValidationError):
            await property_service.apply_action(draft_property.id, "archive", master)

    @pytest.mark.asyncio
    async def test_available_actions(self, property_service, draft_property, owner, master):
        assert await property_service.available_actions(draft_property, owner) == ["submit"]
        assert await property_service.available_actions(draft_property, None) == []

        await property_service.apply_action(draft_property.id, "submit", owner)
        pending = await property_service.get_property(draft_property.id, master)
        assert await property_service.available_actions(pending, master) == ["approve", "reject", "request_changes"]


class TestWizardEdits:

    @pytest.mark.asyncio
    async def test_only_differing_fields_are_written(self, property_service, draft_property, owner):
        updated = await property_service.update_property(
            draft_property.id,
            PropertyUpdate(title=draft_property.title, price=Decimal("26000"), bedrooms=2),
            owner
        )
        assert updated.price == Decimal("26000")
        assert updated.approval_status == ApprovalStatus.DRAFT

    @pytest.mark.asyncio
    async def test_preview_lists_changes_without_writing(self, property_service, draft_property, owner):
        changes = await property_service.preview_changes(
            draft_property.id, PropertyUpdate(bedrooms=3, zone="Centro", price=Decimal("25000")), owner
        )

        assert {c["field"]: (c["old"], c["new"]) for c in changes} == {
            "bedrooms": (2, 3),
            "zone": (None, "Centro"),
        }
        unchanged = await property_service.get_property(draft_property.id, owner)
        assert unchanged.bedrooms == 2

    @pytest.mark.asyncio
    async def test_clearing_optional_field(self, db_session, property_service, owner):
        prop = await PropertyFactory.create(db_session, owner_id=owner.id, zone="Centro")
        updated = await property_service.update_property(prop.id, PropertyUpdate(zone=None), owner)
        assert updated.zone is None

    @pytest.mark.asyncio
    async def test_clearing_required_field_rejected(self, property_service, draft_property, owner):
        with pytest.raises(ValidationError) as exc_info:
            await property_service.update_property(draft_property.id, PropertyUpdate(title=None, price=None), owner)
        assert [e["field"] for e in exc_info.value.field_errors] == ["price", "title"]

    @pytest.mark.asyncio
    async def test_owner_edit_of_published_returns_to_review(self, property_service, published_property, owner, master):
        edited = await property_service.update_property(published_property.id, PropertyUpdate(bedrooms=3), owner)
        assert edited.approval_status == ApprovalStatus.PENDING_REVIEW

    @pytest.mark.asyncio
    async def test_admin_edit_keeps_status(self, property_service, published_property, master):
        edited = await property_service.update_property(published_property.id, PropertyUpdate(bedrooms=3), master)
        assert edited.approval_status == ApprovalStatus.PUBLISHED

    @pytest.mark.asyncio
    async def test_unit_change_regenerates_slug(self, property_service, published_property, master):
        edited = await property_service.update_property(published_property.id, PropertyUpdate(unit_number="102"), master)
        assert edited.slug == "aldea-zama-102"

    @pytest.mark.asyncio
    async def test_stranger_cannot_edit_public_listing(self, property_service, published_property, other_owner):
        with pytest.raises(InsufficientPermissionsError):
            await property_service.update_property(published_property.id, PropertyUpdate(bedrooms=3), other_owner)

    @pytest.mark.asyncio
    async def test_stranger_gets_not_found_for_hidden_listing(self, property_service, draft_property, other_owner):
        with pytest.raises(NotFoundError):
            await property_service.update_property(draft_property.id, PropertyUpdate(bedrooms=3), other_owner)


class TestDeletionAndStaff:

    @pytest.mark.asyncio
    async def test_owner_deletes_only_drafts(self, property_service, draft_property, published_property, owner):
        with pytest.raises(InsufficientPermissionsError):
            await property_service.delete_property(published_property.id, owner)

        assert await property_service.delete_property(draft_property.id, owner) is True
        with pytest.raises(NotFoundError):
            await property_service.get_property(draft_property.id, owner)

    @pytest.mark.asyncio
    async def test_delete_missing(self, property_service, master):
        with pytest.raises(NotFoundError):
            await property_service.delete_property(uuid.uuid4(), master)

    @pytest.mark.asyncio
    async def test_staff_assignment_lifecycle(self, db_session, property_service, draft_property, owner):
        cleaner = await UserFactory.create(db_session, role=UserRole.CONCIERGE)
        assignment = StaffAssignmentCreate(staff_id=str(cleaner.id), role=StaffRole.CLEANING)

        created = await property_service.assign_staff(draft_property.id, assignment, owner)
        with pytest.raises(DuplicateResourceError):
            await property_service.assign_staff(draft_property.id, assignment, owner)

        staff = await property_service.list_staff(draft_property.id, owner)
        assert [s.staff_id for s in staff] == [cleaner.id]

        await property_service.remove_staff(draft_property.id, created.id, owner)
        assert await property_service.list_staff(draft_property.id, owner) == []

        with pytest.raises(NotFoundError):
            await property_service.remove_staff(draft_property.id, created.id, owner)
