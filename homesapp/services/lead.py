"""
Lead service for external agencies with duplicate detection.

Two leads of the same agency are considered the same person when their normalized
first name, last name and last four phone digits coincide.
"""

from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from homesapp.repositories.lead import LeadRepository
from homesapp.repositories.property import PropertyRepository
from homesapp.repositories.user import UserRepository
from homesapp.models.lead import Lead, LeadStatus
from homesapp.models.user import User, UserRole
from homesapp.schemas.lead import LeadCreate, LeadUpdate
from homesapp.utils.text import duplicate_key
from homesapp.utils.validators import ValidationUtils
from homesapp.utils.exceptions import (
    APIException,
    NotFoundError,
    ValidationError,
    BadRequestError,
    DuplicateResourceError,
    InsufficientPermissionsError,
)
import uuid
import logging

logger = logging.getLogger(__name__)

SELLER_ROLES = {UserRole.EXTERNAL_AGENCY_SELLER, UserRole.SELLER}


class LeadService:
    """Agency-scoped lead registration and follow-up."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.lead_repo = LeadRepository(db_session)
        self.user_repo = UserRepository(db_session)
        self.property_repo = PropertyRepository(db_session)

    async def create_lead(self, agency_id: uuid.UUID, data: LeadCreate, current_user: User) -> Lead:
        """
        Register a lead.

        Raises:
            DuplicateResourceError: If the agency already has the same person, unless allow_duplicate is set
        """
        try:
            key = duplicate_key(data.first_name, data.last_name, data.phone)
            if not data.allow_duplicate:
                existing = await self.lead_repo.find_duplicate(agency_id, key)
                if existing:
                    raise DuplicateResourceError("Lead", existing.full_name, existing_id=str(existing.id))

            seller_id = await self._seller_for(agency_id, data.seller_id, current_user)
            property_id = await self._property_for(data.property_id)

            lead = await self.lead_repo.create({
                **data.model_dump(exclude={"allow_duplicate", "seller_id", "property_id"}),
                "agency_id": agency_id,
                "seller_id": seller_id,
                "property_id": property_id,
                "status": LeadStatus.NEW,
                "duplicate_key": key,
            })
            logger.info(f"Lead {lead.id} registered in agency {agency_id} by {current_user.email}")
            return lead

        except APIException:
            raise
        except Exception as e:
            logger.error(f"Failed to register lead in agency {agency_id}: {e}")
            raise BadRequestError(f"Failed to register lead: {str(e)}")

    async def list_leads(
        self,
        agency_id: uuid.UUID,
        current_user: User,
        status: Optional[LeadStatus] = None,
        seller_id: Optional[uuid.UUID] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Tuple[List[Lead], int]:
        """Leads of the agency; sellers only ever see their own."""
        skip, limit = ValidationUtils.page_bounds(page, page_size)
        filters: Dict[str, Any] = {"agency_id": agency_id}
        if status:
            filters["status"] = status
        if current_user.role in SELLER_ROLES:
            filters["seller_id"] = current_user.id
        elif seller_id:
            filters["seller_id"] = seller_id

        leads = await self.lead_repo.get_multi(skip=skip, limit=limit, filters=filters)
        total = await self.lead_repo.count(filters)
        return leads, total

    async def get_lead(self, agency_id: uuid.UUID, lead_id: uuid.UUID, current_user: User) -> Lead:
        lead = await self.lead_repo.get_by_id(lead_id)
        if not lead or lead.agency_id != agency_id:
            raise NotFoundError("Lead", str(lead_id))
        if current_user.role in SELLER_ROLES and lead.seller_id != current_user.id:
            raise NotFoundError("Lead", str(lead_id))
        return lead

    async def update_lead(self, agency_id: uuid.UUID, lead_id: uuid.UUID, data: LeadUpdate, current_user: User) -> Lead:
        lead = await self.get_lead(agency_id, lead_id, current_user)
        changes = data.model_dump(exclude_unset=True)

        if "first_name" in changes and not (changes["first_name"] or "").strip():
            raise ValidationError(
                "First name cannot be empty",
                field_errors=[{"field": "first_name", "message": "cannot be empty"}]
            )
        if changes.get("status") is None:
            changes.pop("status", None)
        if changes.get("last_name") is None and "last_name" in changes:
            changes["last_name"] = ""

        if "seller_id" in changes:
            if current_user.role in SELLER_ROLES:
                raise InsufficientPermissionsError("reassign leads")
            changes["seller_id"] = await self._seller_for(agency_id, changes["seller_id"], current_user)
        if "property_id" in changes:
            changes["property_id"] = await self._property_for(changes["property_id"])

        if {"first_name", "last_name", "phone"} & changes.keys():
            changes["duplicate_key"] = duplicate_key(
                changes.get("first_name", lead.first_name),
                changes.get("last_name", lead.last_name),
                changes.get("phone", lead.phone),
            )

        updated = await self.lead_repo.update(lead.id, changes, exclude_none=False)
        logger.info(f"Lead {lead_id} updated by {current_user.email}")
        return updated

    async def delete_lead(self, agency_id: uuid.UUID, lead_id: uuid.UUID, current_user: User) -> None:
        lead = await self.get_lead(agency_id, lead_id, current_user)
        await self.lead_repo.delete(lead.id)
        logger.info(f"Lead {lead_id} deleted by {current_user.email}")

    async def _seller_for(self, agency_id: uuid.UUID, seller_id: Optional[str], current_user: User) -> Optional[uuid.UUID]:
        """Seller a lead belongs to: the named agency member, else the caller when they sell."""
        if not seller_id:
            return current_user.id if current_user.role in SELLER_ROLES else None

        seller = await self.user_repo.get_by_id(ValidationUtils.parse_uuid(seller_id, "seller_id"))
        if not seller or seller.agency_id != agency_id:
            raise ValidationError(
                "Seller does not belong to this agency",
                field_errors=[{"field": "seller_id", "message": "must be a member of the agency"}]
            )
        if current_user.role in SELLER_ROLES and seller.id != current_user.id:
            raise InsufficientPermissionsError("register leads for another seller")
        return seller.id

    async def _property_for(self, property_id: Optional[str]) -> Optional[uuid.UUID]:
        parsed = ValidationUtils.parse_optional_uuid(property_id, "property_id")
        if parsed and not await self.property_repo.exists(parsed):
            raise NotFoundError("Property", str(parsed))
        return parsed
