"""
Catalog service: client presentation cards and their matches, service providers
with their services, and purchase or rental offers.
"""

from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from homesapp.repositories.catalog import (
    PresentationCardRepository,
    ServiceProviderRepository,
    ServiceRepository,
    OfferRepository,
)
from homesapp.repositories.property import PropertyRepository
from homesapp.repositories.appointment import AppointmentRepository
from homesapp.models.catalog import PresentationCard, ServiceProvider, Service, Offer, OfferStatus
from homesapp.models.property import Property, PropertyStatus
from homesapp.models.user import User, UserRole
from homesapp.schemas.catalog import (
    PresentationCardCreate,
    PresentationCardUpdate,
    ServiceProviderCreate,
    ServiceProviderUpdate,
    ServiceCreate,
    ServiceUpdate,
    OfferCreate,
    OfferStatusUpdate,
)
from homesapp.services.user import UserService
from homesapp.utils.validators import ValidationUtils
from homesapp.utils.exceptions import (
    APIException,
    NotFoundError,
    ValidationError,
    BadRequestError,
    DuplicateResourceError,
    InsufficientPermissionsError,
    InvalidStatusTransitionError,
)
import uuid
import logging

logger = logging.getLogger(__name__)


def compatible_modalities(modality: PropertyStatus) -> List[PropertyStatus]:
    """
    Listing modalities a card can match. A card looking for both matches any listing,
    and a listing offered both ways matches any card.
    """
    if modality == PropertyStatus.BOTH:
        return list(PropertyStatus)
    return [modality, PropertyStatus.BOTH]


class CatalogService:
    """Presentation cards, service providers, services and offers."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.card_repo = PresentationCardRepository(db_session)
        self.provider_repo = ServiceProviderRepository(db_session)
        self.service_repo = ServiceRepository(db_session)
        self.offer_repo = OfferRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.appointment_repo = AppointmentRepository(db_session)
        self.user_service = UserService(db_session)

    # Presentation cards

    async def create_card(self, data: PresentationCardCreate, current_user: User) -> PresentationCard:
        card = await self.card_repo.create({**data.model_dump(), "client_id": current_user.id})
        logger.info(f"Presentation card {card.id} created by {current_user.email}")
        return card

    async def list_cards(self, current_user: User) -> List[PresentationCard]:
        return await self.card_repo.get_multi(limit=100, filters={"client_id": current_user.id})

    async def get_card(self, card_id: uuid.UUID, current_user: User) -> PresentationCard:
        card = await self.card_repo.get_by_id(card_id)
        if not card or (card.client_id != current_user.id and not current_user.is_admin):
            raise NotFoundError("Presentation card", str(card_id))
        return card

    async def update_card(self, card_id: uuid.UUID, data: PresentationCardUpdate, current_user: User) -> PresentationCard:
        """
        Raises:
            ValidationError: If the resulting price range is inverted
        """
        card = await self.get_card(card_id, current_user)
        changes = data.model_dump(exclude_unset=True)

        min_price = changes.get("min_price") if changes.get("min_price") is not None else card.min_price
        max_price = changes.get("max_price") if changes.get("max_price") is not None else card.max_price
        if min_price > max_price:
            raise ValidationError(
                "Minimum price cannot be greater than maximum price",
                field_errors=[{"field": "min_price", "message": "must not exceed max_price"}]
            )

        updated = await self.card_repo.update(card.id, changes)
        logger.info(f"Presentation card {card_id} updated")
        return updated

    async def delete_card(self, card_id: uuid.UUID, current_user: User) -> None:
        card = await self.get_card(card_id, current_user)
        await self.card_repo.delete(card.id)
        logger.info(f"Presentation card {card_id} deleted by {current_user.email}")

    async def find_matches(self, card_id: uuid.UUID, current_user: User) -> List[Property]:
        """Published listings compatible with a presentation card."""
        card = await self.get_card(card_id, current_user)
        matches = await self.property_repo.find_published_matches(
            statuses=compatible_modalities(card.modality),
            min_price=card.min_price,
            max_price=card.max_price,
            location=(card.location or "").strip() or None,
            min_bedrooms=card.bedrooms,
            min_bathrooms=card.bathrooms,
        )
        logger.debug(f"Presentation card {card_id} matched {len(matches)} properties")
        return matches

    # Service providers

    async def create_provider(self, data: ServiceProviderCreate, current_user: User) -> ServiceProvider:
        """
        Raises:
            DuplicateResourceError: If the user already has a provider profile
        """
        if current_user.role != UserRole.PROVIDER and not current_user.is_admin:
            raise InsufficientPermissionsError("register as a service provider")

        existing = await self.provider_repo.get_by_user(current_user.id)
        if existing:
            raise DuplicateResourceError("Service provider", current_user.email, existing_id=str(existing.id))

        provider = await self.provider_repo.create({**data.model_dump(), "user_id": current_user.id})
        logger.info(f"Service provider profile created for {current_user.email}")
        return provider

    async def list_providers(self, skip: int = 0, limit: int = 20) -> List[ServiceProvider]:
        return await self.provider_repo.list_available(skip=skip, limit=limit)

    async def get_provider(self, provider_id: uuid.UUID) -> ServiceProvider:
        provider = await self.provider_repo.get_by_id(provider_id)
        if not provider:
            raise NotFoundError("Service provider", str(provider_id))
        return provider

    async def update_provider(self, provider_id: uuid.UUID, data: ServiceProviderUpdate, current_user: User) -> ServiceProvider:
        provider = await self._get_own_provider(provider_id, current_user)
        return await self.provider_repo.update(provider.id, data.model_dump(exclude_unset=True))

    async def list_services(self, provider_id: uuid.UUID) -> List[Service]:
        provider = await self.get_provider(provider_id)
        return await self.service_repo.get_multi(limit=200, filters={"provider_id": provider.id}, order_by="name")

    async def create_service(self, provider_id: uuid.UUID, data: ServiceCreate, current_user: User) -> Service:
        provider = await self._get_own_provider(provider_id, current_user)
        service_data = data.model_dump()
        service_data["currency"] = service_data["currency"].upper()
        service = await self.service_repo.create({**service_data, "provider_id": provider.id})
        logger.info(f"Service '{service.name}' added to provider {provider_id}")
        return service

    async def update_service(self, service_id: uuid.UUID, data: ServiceUpdate, current_user: User) -> Service:
        service = await self._get_own_service(service_id, current_user)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("currency"):
            changes["currency"] = changes["currency"].upper()
        return await self.service_repo.update(service.id, changes)

    async def delete_service(self, service_id: uuid.UUID, current_user: User) -> None:
        service = await self._get_own_service(service_id, current_user)
        await self.service_repo.delete(service.id)
        logger.info(f"Service {service_id} deleted by {current_user.email}")

    async def _get_own_provider(self, provider_id: uuid.UUID, user: User) -> ServiceProvider:
        provider = await self.get_provider(provider_id)
        if provider.user_id != user.id and not user.is_admin:
            raise InsufficientPermissionsError("manage this provider profile")
        return provider

    async def _get_own_service(self, service_id: uuid.UUID, user: User) -> Service:
        service = await self.service_repo.get_by_id(service_id)
        if not service:
            raise NotFoundError("Service", str(service_id))
        await self._get_own_provider(service.provider_id, user)
        return service

    # Offers

    async def create_offer(self, data: OfferCreate, current_user: User) -> Offer:
        """
        Make an offer on a published property, optionally tied to one of the client's visits.

        Raises:
            NotFoundError: If the property or appointment is not available to the client
        """
        try:
            property_id = ValidationUtils.parse_uuid(data.property_id, "property_id")
            property_obj = await self.property_repo.get_by_id(property_id)
            if not property_obj or not property_obj.is_public:
                raise NotFoundError("Property", str(property_id))

            offer_data: Dict[str, Any] = data.model_dump(exclude={"property_id", "appointment_id"})
            offer_data["currency"] = offer_data["currency"].upper()

            appointment_id = ValidationUtils.parse_optional_uuid(data.appointment_id, "appointment_id")
            if appointment_id:
                appointment = await self.appointment_repo.get_by_id(appointment_id)
                if (
                    not appointment
                    or appointment.client_id != current_user.id
                    or appointment.property_id != property_id
                ):
                    raise NotFoundError("Appointment", str(appointment_id))

            offer = await self.offer_repo.create({
                **offer_data,
                "property_id": property_id,
                "client_id": current_user.id,
                "appointment_id": appointment_id,
                "status": OfferStatus.PENDING,
            })
            logger.info(f"Offer {offer.id} of {offer.offer_amount} {offer.currency} made by {current_user.email}")
            return offer

        except APIException:
            raise
        except Exception as e:
            logger.error(f"Failed to create offer for user {current_user.id}: {e}")
            raise BadRequestError(f"Failed to create offer: {str(e)}")

    async def list_offers(self, current_user: User, status: Optional[OfferStatus] = None) -> List[Offer]:
        if await self.user_service.has_permission(current_user, "offers:manage"):
            return await self.offer_repo.list_scoped(status=status)
        if current_user.role in (UserRole.OWNER, UserRole.MANAGEMENT):
            return await self.offer_repo.list_scoped(owner_id=current_user.id, status=status)
        return await self.offer_repo.list_scoped(client_id=current_user.id, status=status)

    async def get_offer(self, offer_id: uuid.UUID, current_user: User) -> Offer:
        offer = await self.offer_repo.get_by_id(offer_id)
        if not offer:
            raise NotFoundError("Offer", str(offer_id))

        if offer.client_id != current_user.id:
            property_obj = await self.property_repo.get_by_id(offer.property_id)
            if not await self._can_decide(property_obj, current_user):
                raise NotFoundError("Offer", str(offer_id))
        return offer

    async def get_offer_with_property(self, offer_id: uuid.UUID, current_user: User):
        offer = await self.get_offer(offer_id, current_user)
        property_obj = await self.property_repo.get_by_id(offer.property_id)
        if not property_obj:
            raise NotFoundError("Property", str(offer.property_id))
        return offer, property_obj

    async def update_offer_status(self, offer_id: uuid.UUID, data: OfferStatusUpdate, current_user: User) -> Offer:
        """
        Set an offer's status. Accepted and rejected offers are final.

        Raises:
            InsufficientPermissionsError: If the user is neither the owner nor an administrator
            InvalidStatusTransitionError: If the offer is already final
        """
        offer = await self.get_offer(offer_id, current_user)
        property_obj = await self.property_repo.get_by_id(offer.property_id)
        if not await self._can_decide(property_obj, current_user):
            raise InsufficientPermissionsError("change the status of this offer")

        if offer.is_final:
            raise InvalidStatusTransitionError("offer", offer.status.value, data.status.value)

        changes: Dict[str, Any] = {"status": data.status}
        if data.notes:
            changes["notes"] = data.notes

        updated = await self.offer_repo.update(offer.id, changes)
        logger.info(f"Offer {offer_id} {offer.status.value} -> {data.status.value} by {current_user.email}")
        return updated

    async def _can_decide(self, property_obj: Optional[Property], user: User) -> bool:
        if property_obj and user.id in (property_obj.owner_id, property_obj.management_id):
            return True
        return await self.user_service.has_permission(user, "offers:manage")
