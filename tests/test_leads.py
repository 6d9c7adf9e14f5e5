"""
Tests for agency leads and duplicate detection.
"""

import pytest

from homesapp.models.lead import LeadStatus
from homesapp.models.user import UserRole
from homesapp.schemas.lead import LeadCreate, LeadUpdate
from homesapp.services.lead import LeadService
from homesapp.utils.exceptions import (
    DuplicateResourceError,
    InsufficientPermissionsError,
    NotFoundError,
    ValidationError,
)
from tests.factories import UserFactory


@pytest.fixture
def lead_service(db_session) -> LeadService:
    return LeadService(db_session)


class TestLeadRegistration:

    @pytest.mark.asyncio
    async def test_seller_owns_the_leads_they_register(self, lead_service, agency, agency_seller):
        lead = await lead_service.create_lead(
            agency.id, LeadCreate(first_name="María", last_name="Gómez", phone="+52 984 555 0101"), agency_seller
        )

        assert lead.seller_id == agency_seller.id
        assert lead.status == LeadStatus.NEW
        assert lead.duplicate_key == "maria|gomez|0101"

    @pytest.mark.asyncio
    async def test_duplicate_is_rejected_with_existing_id(self, lead_service, agency, agency_seller, agency_admin):
        first = await lead_service.create_lead(
            agency.id, LeadCreate(first_name="María", last_name="Gómez", phone="984 555 0101"), agency_seller
        )

        with pytest.raises(DuplicateResourceError) as exc_info:
            await lead_service.create_lead(
                agency.id, LeadCreate(first_name="maria", last_name="GOMEZ", phone="9845550101"), agency_admin
            )

        assert exc_info.value.status_code == 409
        assert exc_info.value.existing_id == str(first.id)

    @pytest.mark.asyncio
    async def test_allow_duplicate_overrides_detection(self, lead_service, agency, agency_seller):
        data = LeadCreate(first_name="Luis", last_name="Ruiz", phone="9840001234")
        await lead_service.create_lead(agency.id, data, agency_seller)

        second = await lead_service.create_lead(
            agency.id, data.model_copy(update={"allow_duplicate": True}), agency_seller
        )
        assert second.duplicate_key == "luis|ruiz|1234"

    @pytest.mark.asyncio
    async def test_duplicates_are_scoped_per_agency(self, db_session, lead_service, agency, other_agency, agency_seller):
        other_seller = await UserFactory.create(
            db_session, role=UserRole.EXTERNAL_AGENCY_SELLER, agency_id=other_agency.id
        )
        data = LeadCreate(first_name="Luis", last_name="Ruiz", phone="9840001234")

        await lead_service.create_lead(agency.id, data, agency_seller)
        lead = await lead_service.create_lead(other_agency.id, data, other_seller)
        assert lead.agency_id == other_agency.id

    @pytest.mark.asyncio
    async def test_different_phone_is_not_a_duplicate(self, lead_service, agency, agency_seller):
        await lead_service.create_lead(
            agency.id, LeadCreate(first_name="Luis", last_name="Ruiz", phone="9840001234"), agency_seller
        )
        second = await lead_service.create_lead(
            agency.id, LeadCreate(first_name="Luis", last_name="Ruiz", phone="9840005678"), agency_seller
        )
        assert second.duplicate_key == "luis|ruiz|5678"

    @pytest.mark.asyncio
    async def test_seller_cannot_register_for_colleague(self, db_session, lead_service, agency, agency_seller):
        colleague = await UserFactory.create(
            db_session, role=UserRole.EXTERNAL_AGENCY_SELLER, agency_id=agency.id
        )
        with pytest.raises(InsufficientPermissionsError):
            await lead_service.create_lead(
                agency.id, LeadCreate(first_name="Ana", seller_id=str(colleague.id)), agency_seller
            )

    @pytest.mark.asyncio
    async def test_seller_must_belong_to_agency(self, lead_service, agency, agency_admin, owner):
        with pytest.raises(ValidationError):
            await lead_service.create_lead(
                agency.id, LeadCreate(first_name="Ana", seller_id=str(owner.id)), agency_admin
            )

    @pytest.mark.asyncio
    async def test_unknown_property_is_not_found(self, lead_service, agency, agency_seller):
        with pytest.raises(NotFoundError):
            await lead_service.create_lead(
                agency.id,
                LeadCreate(first_name="Ana", property_id="00000000-0000-0000-0000-000000000001"),
                agency_seller
            )


class TestLeadAccess:

    @pytest.mark.asyncio
    async def test_sellers_only_list_their_own(self, db_session, lead_service, agency, agency_admin, agency_seller):
        colleague = await UserFactory.create(
            db_session, role=UserRole.EXTERNAL_AGENCY_SELLER, agency_id=agency.id
        )
        await lead_service.create_lead(agency.id, LeadCreate(first_name="Uno", phone="1111"), agency_seller)
        theirs = await lead_service.create_lead(agency.id, LeadCreate(first_name="Dos", phone="2222"), colleague)

        own, own_total = await lead_service.list_leads(agency.id, agency_seller)
        everything, total = await lead_service.list_leads(agency.id, agency_admin)
        filtered, _ = await lead_service.list_leads(agency.id, agency_admin, seller_id=colleague.id)

        assert own_total == 1
        assert own[0].first_name == "Uno"
        assert total == 2
        assert [lead.id for lead in filtered] == [theirs.id]

        with pytest.raises(NotFoundError):
            await lead_service.get_lead(agency.id, theirs.id, agency_seller)

    @pytest.mark.asyncio
    async def test_other_agency_lead_is_not_found(self, lead_service, agency, other_agency, agency_seller, master):
        lead = await lead_service.create_lead(agency.id, LeadCreate(first_name="Ana"), agency_seller)
        with pytest.raises(NotFoundError):
            await lead_service.get_lead(other_agency.id, lead.id, master)


class TestLeadUpdates:

    @pytest.mark.asyncio
    async def test_identity_change_recomputes_duplicate_key(self, lead_service, agency, agency_seller):
        lead = await lead_service.create_lead(
            agency.id, LeadCreate(first_name="Ana", last_name="Paz", phone="9841234567"), agency_seller
        )

        updated = await lead_service.update_lead(
            agency.id, lead.id, LeadUpdate(phone="9847654321", status=LeadStatus.CONTACTED), agency_seller
        )

        assert updated.duplicate_key == "ana|paz|4321"
        assert updated.status == LeadStatus.CONTACTED

    @pytest.mark.asyncio
    async def test_blank_first_name_rejected(self, lead_service, agency, agency_seller):
        lead = await lead_service.create_lead(agency.id, LeadCreate(first_name="Ana"), agency_seller)
        with pytest.raises(ValidationError):
            await lead_service.update_lead(agency.id, lead.id, LeadUpdate(first_name=" "), agency_seller)

    @pytest.mark.asyncio
    async def test_seller_cannot_reassign(self, lead_service, agency, agency_seller, agency_admin):
        lead = await lead_service.create_lead(agency.id, LeadCreate(first_name="Ana"), agency_seller)
        with pytest.raises(InsufficientPermissionsError):
            await lead_service.update_lead(
                agency.id, lead.id, LeadUpdate(seller_id=str(agency_admin.id)), agency_seller
            )

    @pytest.mark.asyncio
    async def test_delete(self, lead_service, agency, agency_seller):
        lead = await lead_service.create_lead(agency.id, LeadCreate(first_name="Ana"), agency_seller)
        await lead_service.delete_lead(agency.id, lead.id, agency_seller)
        with pytest.raises(NotFoundError):
            await lead_service.get_lead(agency.id, lead.id, agency_seller)
