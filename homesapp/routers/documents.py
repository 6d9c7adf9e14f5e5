"""
Document endpoints rendering the tenant and owner forms of a property as PDF.
"""

from fastapi import APIRouter, Depends, Path
from fastapi.responses import Response
from uuid import UUID

from homesapp.models.user import User
from homesapp.services.property import PropertyService
from homesapp.services.pdf import generate_rental_form_pdf, generate_owner_form_pdf
from homesapp.schemas.document import RentalFormRequest, OwnerFormRequest
from homesapp.schemas.error import get_crud_error_responses
from homesapp.utils.dependencies import get_current_active_user, get_property_service
from homesapp.routers.catalog import pdf_response
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])

PDF_RESPONSES = {200: {"content": {"application/pdf": {}}}, **get_crud_error_responses()}


@router.post(
    "/rental-form/{property_id}",
    response_class=Response,
    summary="Tenant application form",
    responses=PDF_RESPONSES
)
async def rental_form(
    data: RentalFormRequest,
    property_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> Response:
    property_obj = await property_service.get_property(property_id, current_user)
    content = generate_rental_form_pdf(data.model_dump(), property_obj.to_dict())
    logger.info(f"Rental form generated for property {property_id} by {current_user.email}")
    return pdf_response(content, f"formulario-renta-{property_obj.slug or property_obj.id}.pdf")


@router.post(
    "/owner-form/{property_id}",
    response_class=Response,
    summary="Owner onboarding form",
    responses=PDF_RESPONSES
)
async def owner_form(
    data: OwnerFormRequest,
    property_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> Response:
    property_obj = await property_service.get_property(property_id, current_user)
    content = generate_owner_form_pdf(data.model_dump(), property_obj.to_dict())
    logger.info(f"Owner form generated for property {property_id} by {current_user.email}")
    return pdf_response(content, f"formulario-propietario-{property_obj.slug or property_obj.id}.pdf")
