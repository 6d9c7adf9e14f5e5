"""
Catalog endpoints: client presentation cards with property matching, service providers and
their services, and rental offers with their PDF document.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import Response
from typing import List, Optional
from uuid import UUID

from homesapp.models.user import User
from homesapp.models.catalog import OfferStatus
from homesapp.services.catalog import CatalogService
from homesapp.services.pdf import generate_offer_pdf
from homesapp.schemas.catalog import (
    PresentationCardCreate,
    PresentationCardUpdate,
    PresentationCardResponse,
    CardMatchesResponse,
    ServiceProviderCreate,
    ServiceProviderUpdate,
    ServiceProviderResponse,
    ServiceCreate,
    ServiceUpdate,
    ServiceResponse,
    OfferCreate,
    OfferStatusUpdate,
    OfferResponse,
)
from homesapp.schemas.property import PropertyResponse
from homesapp.schemas.error import get_crud_error_responses
from homesapp.utils.dependencies import get_current_active_user, get_catalog_service
from homesapp.utils.validators import ValidationUtils

router = APIRouter(tags=["Catalog"])


def pdf_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


# Presentation cards

@router.post(
    "/presentation-cards",
    response_model=PresentationCardResponse,
    status_code=status.HTTP_201_CREATED,
    responses=get_crud_error_responses()
)
async def create_card(
    data: PresentationCardCreate,
    current_user: User = Depends(get_current_active_user),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> PresentationCardResponse:
    card = await catalog_service.create_card(data, current_user)
    return PresentationCardResponse.model_validate(card.to_dict())


@router.get("/presentation-cards", response_model=List[PresentationCardResponse])
async def list_cards(
    current_user: User = Depends(get_current_active_user),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> List[PresentationCardResponse]:
    cards = await catalog_service.list_cards(current_user)
    return [PresentationCardResponse.model_validate(c.to_dict()) for c in cards]


@router.get("/presentation-cards/{card_id}", response_model=PresentationCardResponse, responses=get_crud_error_responses())
async def get_card(
    card_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> PresentationCardResponse:
    card = await catalog_service.get_card(card_id, current_user)
    return PresentationCardResponse.model_validate(card.to_dict())


@router.patch("/presentation-cards/{card_id}", response_model=PresentationCardResponse, responses=get_crud_error_responses())
async def update_card(
    data: PresentationCardUpdate,
    card_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> PresentationCardResponse:
    card = await catalog_service.update_card(card_id, data, current_user)
    return PresentationCardResponse.model_validate(card.to_dict())


@router.delete(
    "/presentation-cards/{card_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=get_crud_error_responses()
)
async def delete_card(
    card_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> None:
    await catalog_service.delete_card(card_id, current_user)


@router.get(
    "/presentation-cards/{card_id}/matches",
    response_model=CardMatchesResponse,
    summary="Matching properties",
    description="Published listings whose modality, price, location and rooms satisfy the card",
    responses=get_crud_error_responses()
)
async def card_matches(
    card_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> CardMatchesResponse:
    matches = await catalog_service.find_matches(card_id, current_user)
    return CardMatchesResponse(
        card_id=str(card_id),
        total=len(matches),
        properties=[PropertyResponse.model_validate(p.to_dict()) for p in matches],
    )


# Service providers

@router.post(
    "/service-providers",
    response_model=ServiceProviderResponse,
    status_code=status.HTTP_201_CREATED,
    responses=get_crud_error_responses()
)
async def create_provider(
    data: ServiceProviderCreate,
    current_user: User = Depends(get_current_active_user),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> ServiceProviderResponse:
    provider = await catalog_service.create_provider(data, current_user)
    return ServiceProviderResponse.model_validate(provider.to_dict())


@router.get("/service-providers", response_model=List[ServiceProviderResponse])
async def list_providers(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> List[ServiceProviderResponse]:
    skip, limit = ValidationUtils.page_bounds(page, page_size)
    providers = await catalog_service.list_providers(skip=skip, limit=limit)
    return [ServiceProviderResponse.model_validate(p.to_dict()) for p in providers]


@router.get("/service-providers/{provider_id}", response_model=ServiceProviderResponse, responses=get_crud_error_responses())
async def get_provider(
    provider_id: UUID = Path(...),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> ServiceProviderResponse:
    provider = await catalog_service.get_provider(provider_id)
    return ServiceProviderResponse.model_validate(provider.to_dict())


@router.patch("/service-providers/{provider_id}", response_model=ServiceProviderResponse, responses=get_crud_error_responses())
async def update_provider(
    data: ServiceProviderUpdate,
    provider_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> ServiceProviderResponse:
    provider = await catalog_service.update_provider(provider_id, data, current_user)
    return ServiceProviderResponse.model_validate(provider.to_dict())


@router.get("/service-providers/{provider_id}/services", response_model=List[ServiceResponse], responses=get_crud_error_responses())
async def list_services(
    provider_id: UUID = Path(...),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> List[ServiceResponse]:
    services = await catalog_service.list_services(provider_id)
    return [ServiceResponse.model_validate(s.to_dict()) for s in services]


@router.post(
    "/service-providers/{provider_id}/services",
    response_model=ServiceResponse,
    status_code=status.HTTP_201_CREATED,
    responses=get_crud_error_responses()
)
async def create_service(
    data: ServiceCreate,
    provider_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> ServiceResponse:
    service = await catalog_service.create_service(provider_id, data, current_user)
    return ServiceResponse.model_validate(service.to_dict())


@router.patch("/services/{service_id}", response_model=ServiceResponse, responses=get_crud_error_responses())
async def update_service(
    data: ServiceUpdate,
    service_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> ServiceResponse:
    service = await catalog_service.update_service(service_id, data, current_user)
    return ServiceResponse.model_validate(service.to_dict())


@router.delete("/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT, responses=get_crud_error_responses())
async def delete_service(
    service_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> None:
    await catalog_service.delete_service(service_id, current_user)


# Offers

@router.post(
    "/offers",
    response_model=OfferResponse,
    status_code=status.HTTP_201_CREATED,
    responses=get_crud_error_responses()
)
async def create_offer(
    data: OfferCreate,
    current_user: User = Depends(get_current_active_user),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> OfferResponse:
    offer = await catalog_service.create_offer(data, current_user)
    return OfferResponse.model_validate(offer.to_dict())


@router.get("/offers", response_model=List[OfferResponse])
async def list_offers(
    offer_status: Optional[OfferStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_active_user),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> List[OfferResponse]:
    offers = await catalog_service.list_offers(current_user, status=offer_status)
    return [OfferResponse.model_validate(o.to_dict()) for o in offers]


@router.get("/offers/{offer_id}", response_model=OfferResponse, responses=get_crud_error_responses())
async def get_offer(
    offer_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> OfferResponse:
    offer = await catalog_service.get_offer(offer_id, current_user)
    return OfferResponse.model_validate(offer.to_dict())


@router.patch("/offers/{offer_id}/status", response_model=OfferResponse, responses=get_crud_error_responses())
async def update_offer_status(
    data: OfferStatusUpdate,
    offer_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> OfferResponse:
    offer = await catalog_service.update_offer_status(offer_id, data, current_user)
    return OfferResponse.model_validate(offer.to_dict())


@router.get(
    "/offers/{offer_id}/pdf",
    response_class=Response,
    summary="Offer document",
    responses={200: {"content": {"application/pdf": {}}}, **get_crud_error_responses()}
)
async def offer_pdf(
    offer_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    catalog_service: CatalogService = Depends(get_catalog_service)
) -> Response:
    offer, property_obj = await catalog_service.get_offer_with_property(offer_id, current_user)
    content = generate_offer_pdf(offer.to_dict(), property_obj.to_dict())
    return pdf_response(content, f"oferta-{offer.id}.pdf")
