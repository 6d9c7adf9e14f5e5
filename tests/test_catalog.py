"""
Tests for presentation cards, service providers and offers.
"""

import pytest
from decimal import Decimal

from homesapp.models.catalog import OfferStatus
from homesapp.models.property import PropertyStatus, PropertyType
from homesapp.models.user import UserRole
from homesapp.schemas.catalog import (
    OfferCreate,
    OfferStatusUpdate,
    PresentationCardCreate,
    PresentationCardUpdate,
    ServiceCreate,
    ServiceProviderCreate,
)
from homesapp.services.catalog import CatalogService, compatible_modalities
from homesapp.utils.exceptions import (
    DuplicateResourceError,
    InsufficientPermissionsError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
)
from tests.factories import PropertyFactory, UserFactory


@pytest.fixture
def catalog_service(db_session) -> CatalogService:
    return CatalogService(db_session)


def card(**overrides) -> PresentationCardCreate:
    data = {
        "property_type": PropertyType.APARTMENT,
        "modality": PropertyStatus.RENT,
        "min_price": Decimal("15000"),
        "max_price": Decimal("30000"),
        "location": "Tulum",
        "bedrooms": 2,
    }
    data.update(overrides)
    return PresentationCardCreate(**data)


class TestPresentationCards:

    def test_compatible_modalities(self):
        assert set(compatible_modalities(PropertyStatus.RENT)) == {PropertyStatus.RENT, PropertyStatus.BOTH}
        assert set(compatible_modalities(PropertyStatus.BOTH)) == set(PropertyStatus)

    def test_inverted_range_rejected_by_schema(self):
        with pytest.raises(ValueError):
            card(min_price=Decimal("40000"))

    @pytest.mark.asyncio
    async def test_matches(self, db_session, catalog_service, owner, client_user):
        fits = await PropertyFactory.create(db_session, owner_id=owner.id, published=True)
        both = await PropertyFactory.create(
            db_session, owner_id=owner.id, published=True, status=PropertyStatus.BOTH, price=Decimal("18000")
        )
        await PropertyFactory.create(db_session, owner_id=owner.id, published=True, status=PropertyStatus.SALE)
        await PropertyFactory.create(db_session, owner_id=owner.id, published=True, price=Decimal("50000"))
        await PropertyFactory.create(db_session, owner_id=owner.id, published=True, bedrooms=1)
        await PropertyFactory.create(db_session, owner_id=owner.id, published=True, location="Playa del Carmen")
        await PropertyFactory.create(db_session, owner_id=owner.id)

        created = await catalog_service.create_card(card(), client_user)
        matches = await catalog_service.find_matches(created.id, client_user)

        assert [p.id for p in matches] == [both.id, fits.id]

    @pytest.mark.asyncio
    async def test_location_wildcards_match_literally(self, db_session, catalog_service, owner, client_user):
        await PropertyFactory.create(db_session, owner_id=owner.id, published=True)
        literal = await PropertyFactory.create(
            db_session, owner_id=owner.id, published=True, location="Tulum 100% amueblado"
        )

        percent = await catalog_service.create_card(card(location="100%"), client_user)
        underscore = await catalog_service.create_card(card(location="T_lum"), client_user)
        everything = await catalog_service.create_card(card(location="%"), client_user)

        assert [p.id for p in await catalog_service.find_matches(percent.id, client_user)] == [literal.id]
        assert await catalog_service.find_matches(underscore.id, client_user) == []
        assert [p.id for p in await catalog_service.find_matches(everything.id, client_user)] == [literal.id]

    @pytest.mark.asyncio
    async def test_cards_are_private(self, catalog_service, client_user, other_owner, master):
        created = await catalog_service.create_card(card(), client_user)

        assert (await catalog_service.get_card(created.id, master)).id == created.id
        with pytest.raises(NotFoundError):
            await catalog_service.get_card(created.id, other_owner)
        assert await catalog_service.list_cards(other_owner) == []

    @pytest.mark.asyncio
    async def test_update_checks_resulting_range(self, catalog_service, client_user):
        created = await catalog_service.create_card(card(), client_user)

        with pytest.raises(ValidationError):
            await catalog_service.update_card(created.id, PresentationCardUpdate(min_price=Decimal("35000")), client_user)

        updated = await catalog_service.update_card(
            created.id, PresentationCardUpdate(max_price=Decimal("45000")), client_user
        )
        assert updated.max_price == Decimal("45000")


class TestProviders:

    @pytest.mark.asyncio
    async def test_provider_profile_and_services(self, db_session, catalog_service):
        provider_user = await UserFactory.create(db_session, role=UserRole.PROVIDER)

        provider = await catalog_service.create_provider(ServiceProviderCreate(specialty="Limpieza"), provider_user)
        assert provider.rating == Decimal("0")

        with pytest.raises(DuplicateResourceError):
            await catalog_service.create_provider(ServiceProviderCreate(specialty="Jardinería"), provider_user)

        service = await catalog_service.create_service(
            provider.id, ServiceCreate(name="Limpieza profunda", price=Decimal("1200"), currency="mxn"), provider_user
        )
        assert service.currency == "MXN"
        assert [s.name for s in await catalog_service.list_services(provider.id)] == ["Limpieza profunda"]
        assert [p.id for p in await catalog_service.list_providers()] == [provider.id]

    @pytest.mark.asyncio
    async def test_owner_cannot_register_as_provider(self, catalog_service, owner):
        with pytest.raises(InsufficientPermissionsError):
            await catalog_service.create_provider(ServiceProviderCreate(specialty="Limpieza"), owner)

    @pytest.mark.asyncio
    async def test_other_users_cannot_add_services(self, db_session, catalog_service, owner):
        provider_user = await UserFactory.create(db_session, role=UserRole.PROVIDER)
        provider = await catalog_service.create_provider(ServiceProviderCreate(specialty="Plomería"), provider_user)

        with pytest.raises(InsufficientPermissionsError):
            await catalog_service.create_service(
                provider.id, ServiceCreate(name="Fuga", price=Decimal("500")), owner
            )


class TestOffers:

    @pytest.mark.asyncio
    async def test_offer_on_published_property(self, catalog_service, published_property, client_user):
        offer = await catalog_service.create_offer(
            OfferCreate(property_id=str(published_property.id), offer_amount=Decimal("24000"), currency="usd"),
            client_user
        )
        assert offer.status == OfferStatus.PENDING
        assert offer.currency == "USD"
        assert offer.client_id == client_user.id

    @pytest.mark.asyncio
    async def test_offer_on_hidden_property(self, catalog_service, draft_property, client_user):
        with pytest.raises(NotFoundError):
            await catalog_service.create_offer(
                OfferCreate(property_id=str(draft_property.id), offer_amount=Decimal("24000")), client_user
            )

    @pytest.mark.asyncio
    async def test_foreign_appointment_rejected(self, catalog_service, published_property, client_user):
        with pytest.raises(NotFoundError):
            await catalog_service.create_offer(
                OfferCreate(
                    property_id=str(published_property.id),
                    offer_amount=Decimal("24000"),
                    appointment_id="00000000-0000-0000-0000-000000000001",
                ),
                client_user
            )

    @pytest.mark.asyncio
    async def test_owner_decides_and_final_is_final(self, catalog_service, published_property, client_user, owner):
        offer = await catalog_service.create_offer(
            OfferCreate(property_id=str(published_property.id), offer_amount=Decimal("24000")), client_user
        )

        with pytest.raises(InsufficientPermissionsError):
            await catalog_service.update_offer_status(
                offer.id, OfferStatusUpdate(status=OfferStatus.ACCEPTED), client_user
            )

        reviewing = await catalog_service.update_offer_status(
            offer.id, OfferStatusUpdate(status=OfferStatus.UNDER_REVIEW), owner
        )
        assert reviewing.status == OfferStatus.UNDER_REVIEW

        accepted = await catalog_service.update_offer_status(
            offer.id, OfferStatusUpdate(status=OfferStatus.ACCEPTED, notes="Firmamos el lunes"), owner
        )
        assert accepted.status == OfferStatus.ACCEPTED
        assert accepted.notes == "Firmamos el lunes"

        with pytest.raises(InvalidStatusTransitionError):
            await catalog_service.update_offer_status(
                offer.id, OfferStatusUpdate(status=OfferStatus.REJECTED), owner
            )

    @pytest.mark.asyncio
    async def test_offer_listing_scopes(self, catalog_service, published_property, client_user, owner, other_owner, master):
        await catalog_service.create_offer(
            OfferCreate(property_id=str(published_property.id), offer_amount=Decimal("24000")), client_user
        )

        assert len(await catalog_service.list_offers(client_user)) == 1
        assert len(await catalog_service.list_offers(owner)) == 1
        assert len(await catalog_service.list_offers(master)) == 1
        assert await catalog_service.list_offers(other_owner) == []

    @pytest.mark.asyncio
    async def test_outsider_cannot_see_offer(self, catalog_service, published_property, client_user, other_owner):
        offer = await catalog_service.create_offer(
            OfferCreate(property_id=str(published_property.id), offer_amount=Decimal("24000")), client_user
        )
        with pytest.raises(NotFoundError):
            await catalog_service.get_offer(offer.id, other_owner)
