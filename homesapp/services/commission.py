"""
Commission service for external agencies.

Resolution walks the override tiers from most to least specific and stops at the
first one that is active, in effect on the requested date and defines a value for
the requested commission type:

    lead override -> user override -> role override -> agency profile -> system default

Every change to a tier is written to the commission audit log.
"""

from typing import Optional, List, Dict, Any, Iterable, TypeVar
from sqlalchemy.ext.asyncio import AsyncSession
from homesapp.config import settings
from homesapp.repositories.commission import (
    CommissionProfileRepository,
    RoleOverrideRepository,
    UserOverrideRepository,
    LeadOverrideRepository,
    CommissionAuditLogRepository,
)
from homesapp.repositories.user import UserRepository
from homesapp.repositories.lead import LeadRepository
from homesapp.models.commission import (
    CommissionType,
    CommissionSource,
    AuditEntityType,
    AuditAction,
    CommissionAuditLog,
    CommissionProfile,
    RoleCommissionOverride,
    UserCommissionOverride,
    LeadCommissionOverride,
    RATE_COLUMNS,
)
from homesapp.models.user import User, UserRole, ADMIN_ROLES
from homesapp.schemas.commission import (
    CommissionProfileUpdate,
    RoleOverrideCreate,
    RoleOverrideUpdate,
    UserOverrideCreate,
    LeadOverrideCreate,
    OverrideUpdate,
    CommissionResolution,
    CommissionCalculation,
)
from homesapp.services.user import UserService
from homesapp.utils.validators import ValidationUtils
from homesapp.utils.exceptions import (
    NotFoundError,
    ValidationError,
    DuplicateResourceError,
)
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
import uuid
import logging

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

COMMISSION_MANAGER_ROLES = {UserRole.EXTERNAL_AGENCY_ADMIN, UserRole.EXTERNAL_AGENCY_MANAGER}

WindowedOverride = TypeVar("WindowedOverride", UserCommissionOverride, LeadCommissionOverride)


def system_default_rate(commission_type: CommissionType) -> Decimal:
    return {
        CommissionType.RENTAL: settings.default_rental_commission,
        CommissionType.LISTED_PROPERTY: settings.default_listed_property_commission,
        CommissionType.RECRUITED_PROPERTY: settings.default_recruited_property_commission,
    }[CommissionType(commission_type)]


def calculate_commission(amount: Decimal, percentage: Decimal) -> Decimal:
    """
    Commission for an amount, rounded half-up to cents.

    >>> calculate_commission(Decimal("12345.67"), Decimal("7.5"))
    Decimal('925.93')
    """
    return (Decimal(amount) * Decimal(percentage) / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)


def pick_override(
    overrides: Iterable[WindowedOverride],
    commission_type: CommissionType,
    on_date: date
) -> Optional[WindowedOverride]:
    """
    Override that applies on a date with a value for the type. Later effective_from wins,
    an open start counting as the earliest; ties go to the most recently created.
    """
    candidates = [
        o for o in overrides
        if o.applies_on(on_date) and o.rate_for(commission_type) is not None
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda o: (o.effective_from or date.min, o.created_at))


def _audit_values(record: Any) -> Dict[str, Any]:
    """JSON-safe snapshot of a tier's configurable fields."""
    snapshot = {}
    for key, value in record.to_dict().items():
        if key in ("id", "agency_id", "created_at", "updated_at"):
            continue
        snapshot[key] = str(value) if isinstance(value, Decimal) else value
    return snapshot


class CommissionService:
    """Commission tiers, resolution and audit trail for an agency."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.profile_repo = CommissionProfileRepository(db_session)
        self.role_repo = RoleOverrideRepository(db_session)
        self.user_override_repo = UserOverrideRepository(db_session)
        self.lead_override_repo = LeadOverrideRepository(db_session)
        self.audit_repo = CommissionAuditLogRepository(db_session)
        self.user_repo = UserRepository(db_session)
        self.lead_repo = LeadRepository(db_session)
        self.user_service = UserService(db_session)

    # Resolution

    async def resolve(
        self,
        agency_id: uuid.UUID,
        user: User,
        commission_type: CommissionType,
        lead_id: Optional[uuid.UUID] = None,
        on_date: Optional[date] = None
    ) -> CommissionResolution:
        """Percentage that applies to a user (and optionally a lead) on a date."""
        commission_type = CommissionType(commission_type)
        on_date = on_date or date.today()

        def resolution(percentage: Decimal, source: CommissionSource, source_id: Any = None) -> CommissionResolution:
            return CommissionResolution(
                commission_type=commission_type,
                percentage=Decimal(percentage),
                source=source,
                source_id=str(source_id) if source_id else None,
                on_date=on_date,
            )

        if lead_id:
            lead_overrides = await self.lead_override_repo.list_for_agency(agency_id, lead_id=lead_id)
            chosen = pick_override(lead_overrides, commission_type, on_date)
            if chosen:
                return resolution(chosen.rate_for(commission_type), CommissionSource.LEAD_OVERRIDE, chosen.id)

        user_overrides = await self.user_override_repo.list_for_agency(agency_id, user_id=user.id)
        chosen = pick_override(user_overrides, commission_type, on_date)
        if chosen:
            return resolution(chosen.rate_for(commission_type), CommissionSource.USER_OVERRIDE, chosen.id)

        role_override = await self.role_repo.get_for_role(agency_id, user.role)
        if role_override and role_override.is_active and role_override.rate_for(commission_type) is not None:
            return resolution(role_override.rate_for(commission_type), CommissionSource.ROLE_OVERRIDE, role_override.id)

        profile = await self.profile_repo.get_for_agency(agency_id)
        if profile and profile.rate_for(commission_type) is not None:
            return resolution(profile.rate_for(commission_type), CommissionSource.AGENCY_DEFAULT, profile.id)

        return resolution(system_default_rate(commission_type), CommissionSource.SYSTEM_DEFAULT)

    async def resolve_for_request(
        self,
        agency_id: uuid.UUID,
        current_user: User,
        commission_type: CommissionType,
        user_id: Optional[uuid.UUID] = None,
        lead_id: Optional[uuid.UUID] = None,
        on_date: Optional[date] = None,
        amount: Optional[Decimal] = None
    ) -> CommissionResolution:
        """
        Resolve on behalf of the caller. Managers may resolve for any agency member,
        everyone else only for themselves.
        """
        target = current_user
        if user_id and user_id != current_user.id:
            await self._require_manager(current_user)
            target = await self._agency_user(agency_id, user_id)
        if lead_id:
            await self._agency_lead(agency_id, lead_id)

        result = await self.resolve(agency_id, target, commission_type, lead_id=lead_id, on_date=on_date)
        if amount is None:
            return result
        return CommissionCalculation(
            **result.model_dump(),
            amount=amount,
            commission_amount=calculate_commission(amount, result.percentage),
        )

    # Default profile

    async def get_profile(self, agency_id: uuid.UUID) -> Dict[str, Any]:
        """Stored profile, or the system defaults when the agency has none."""
        profile = await self.profile_repo.get_for_agency(agency_id)
        if profile:
            return profile.to_dict()
        return {
            "id": None,
            "agency_id": str(agency_id),
            **{column: system_default_rate(kind) for kind, column in RATE_COLUMNS.items()},
        }

    async def upsert_profile(
        self,
        agency_id: uuid.UUID,
        data: CommissionProfileUpdate,
        current_user: User
    ) -> CommissionProfile:
        await self._require_manager(current_user)
        rates = {k: v for k, v in data.model_dump().items() if v is not None}

        profile = await self.profile_repo.get_for_agency(agency_id)
        if profile is None:
            values = {column: system_default_rate(kind) for kind, column in RATE_COLUMNS.items()}
            values.update(rates)
            profile = await self.profile_repo.create({"agency_id": agency_id, **values}, commit=False)
            await self._audit(agency_id, AuditEntityType.PROFILE, profile.id, AuditAction.CREATE, None, profile, current_user)
            logger.info(f"Commission profile created for agency {agency_id}")
            return profile

        previous = _audit_values(profile)
        profile = await self.profile_repo.update(profile.id, rates, commit=False)
        await self._audit(agency_id, AuditEntityType.PROFILE, profile.id, AuditAction.UPDATE, previous, profile, current_user)
        logger.info(f"Commission profile updated for agency {agency_id}")
        return profile

    # Role overrides

    async def list_role_overrides(self, agency_id: uuid.UUID, current_user: User) -> List[RoleCommissionOverride]:
        await self._require_manager(current_user)
        return await self.role_repo.list_for_agency(agency_id)

    async def create_role_override(
        self,
        agency_id: uuid.UUID,
        data: RoleOverrideCreate,
        current_user: User
    ) -> RoleCommissionOverride:
        """
        Raises:
            DuplicateResourceError: If the role already has an override in the agency
        """
        await self._require_manager(current_user)
        existing = await self.role_repo.get_for_role(agency_id, data.role)
        if existing:
            raise DuplicateResourceError("Role commission override", data.role.value, existing_id=str(existing.id))

        override = await self.role_repo.create({"agency_id": agency_id, **data.model_dump()}, commit=False)
        await self._audit(agency_id, AuditEntityType.ROLE_OVERRIDE, override.id, AuditAction.CREATE, None, override, current_user)
        logger.info(f"Role override for {data.role.value} created in agency {agency_id}")
        return override

    async def update_role_override(
        self,
        agency_id: uuid.UUID,
        override_id: uuid.UUID,
        data: RoleOverrideUpdate,
        current_user: User
    ) -> RoleCommissionOverride:
        await self._require_manager(current_user)
        override = await self._scoped(self.role_repo, agency_id, override_id, "Role commission override")
        return await self._update_tier(
            self.role_repo, override, data.model_dump(exclude_unset=True), AuditEntityType.ROLE_OVERRIDE, current_user
        )

    async def delete_role_override(self, agency_id: uuid.UUID, override_id: uuid.UUID, current_user: User) -> None:
        await self._require_manager(current_user)
        override = await self._scoped(self.role_repo, agency_id, override_id, "Role commission override")
        await self._delete_tier(self.role_repo, override, AuditEntityType.ROLE_OVERRIDE, current_user)

    # User overrides

    async def list_user_overrides(
        self,
        agency_id: uuid.UUID,
        current_user: User,
        user_id: Optional[uuid.UUID] = None
    ) -> List[UserCommissionOverride]:
        await self._require_manager(current_user)
        return await self.user_override_repo.list_for_agency(agency_id, user_id=user_id)

    async def create_user_override(
        self,
        agency_id: uuid.UUID,
        data: UserOverrideCreate,
        current_user: User
    ) -> UserCommissionOverride:
        await self._require_manager(current_user)
        member = await self._agency_user(agency_id, ValidationUtils.parse_uuid(data.user_id, "user_id"))

        values = data.model_dump(exclude={"user_id"})
        override = await self.user_override_repo.create(
            {"agency_id": agency_id, "user_id": member.id, **values}, commit=False
        )
        await self._audit(agency_id, AuditEntityType.USER_OVERRIDE, override.id, AuditAction.CREATE, None, override, current_user)
        logger.info(f"User override created for {member.email} in agency {agency_id}")
        return override

    async def update_user_override(
        self,
        agency_id: uuid.UUID,
        override_id: uuid.UUID,
        data: OverrideUpdate,
        current_user: User
    ) -> UserCommissionOverride:
        await self._require_manager(current_user)
        override = await self._scoped(self.user_override_repo, agency_id, override_id, "User commission override")
        return await self._update_tier(
            self.user_override_repo, override, self._window_changes(override, data), AuditEntityType.USER_OVERRIDE, current_user
        )

    async def delete_user_override(self, agency_id: uuid.UUID, override_id: uuid.UUID, current_user: User) -> None:
        await self._require_manager(current_user)
        override = await self._scoped(self.user_override_repo, agency_id, override_id, "User commission override")
        await self._delete_tier(self.user_override_repo, override, AuditEntityType.USER_OVERRIDE, current_user)

    # Lead overrides

    async def list_lead_overrides(
        self,
        agency_id: uuid.UUID,
        current_user: User,
        lead_id: Optional[uuid.UUID] = None
    ) -> List[LeadCommissionOverride]:
        await self._require_manager(current_user)
        return await self.lead_override_repo.list_for_agency(agency_id, lead_id=lead_id)

    async def create_lead_override(
        self,
        agency_id: uuid.UUID,
        data: LeadOverrideCreate,
        current_user: User
    ) -> LeadCommissionOverride:
        await self._require_manager(current_user)
        lead = await self._agency_lead(agency_id, ValidationUtils.parse_uuid(data.lead_id, "lead_id"))

        values = data.model_dump(exclude={"lead_id"})
        override = await self.lead_override_repo.create(
            {"agency_id": agency_id, "lead_id": lead.id, **values}, commit=False
        )
        await self._audit(agency_id, AuditEntityType.LEAD_OVERRIDE, override.id, AuditAction.CREATE, None, override, current_user)
        logger.info(f"Lead override created for lead {lead.id} in agency {agency_id}")
        return override

    async def update_lead_override(
        self,
        agency_id: uuid.UUID,
        override_id: uuid.UUID,
        data: OverrideUpdate,
        current_user: User
    ) -> LeadCommissionOverride:
        await self._require_manager(current_user)
        override = await self._scoped(self.lead_override_repo, agency_id, override_id, "Lead commission override")
        return await self._update_tier(
            self.lead_override_repo, override, self._window_changes(override, data), AuditEntityType.LEAD_OVERRIDE, current_user
        )

    async def delete_lead_override(self, agency_id: uuid.UUID, override_id: uuid.UUID, current_user: User) -> None:
        await self._require_manager(current_user)
        override = await self._scoped(self.lead_override_repo, agency_id, override_id, "Lead commission override")
        await self._delete_tier(self.lead_override_repo, override, AuditEntityType.LEAD_OVERRIDE, current_user)

    # Audit log

    async def list_audit_logs(
        self,
        agency_id: uuid.UUID,
        current_user: User,
        entity_type: Optional[AuditEntityType] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[CommissionAuditLog]:
        await self._require_manager(current_user)
        return await self.audit_repo.list_for_agency(agency_id, entity_type=entity_type, skip=skip, limit=limit)

    # Helpers

    async def _require_manager(self, user: User) -> None:
        if user.role in COMMISSION_MANAGER_ROLES or user.role in ADMIN_ROLES:
            return
        await self.user_service.require_permission(user, "commissions:manage", "manage commissions")

    async def _agency_user(self, agency_id: uuid.UUID, user_id: uuid.UUID) -> User:
        """
        Raises:
            ValidationError: If the user is not a member of the agency
        """
        member = await self.user_repo.get_by_id(user_id)
        if not member:
            raise NotFoundError("User", str(user_id))
        if member.agency_id != agency_id:
            raise ValidationError(
                "User does not belong to this agency",
                field_errors=[{"field": "user_id", "message": "must be a member of the agency"}]
            )
        return member

    async def _agency_lead(self, agency_id: uuid.UUID, lead_id: uuid.UUID):
        lead = await self.lead_repo.get_by_id(lead_id)
        if not lead:
            raise NotFoundError("Lead", str(lead_id))
        if lead.agency_id != agency_id:
            raise ValidationError(
                "Lead does not belong to this agency",
                field_errors=[{"field": "lead_id", "message": "must belong to the agency"}]
            )
        return lead

    async def _scoped(self, repo, agency_id: uuid.UUID, record_id: uuid.UUID, resource: str):
        record = await repo.get_by_id(record_id)
        if not record or record.agency_id != agency_id:
            raise NotFoundError(resource, str(record_id))
        return record

    def _window_changes(self, override: Any, data: OverrideUpdate) -> Dict[str, Any]:
        changes = data.model_dump(exclude_unset=True)
        effective_from = changes.get("effective_from", override.effective_from)
        effective_until = changes.get("effective_until", override.effective_until)
        if effective_from and effective_until and effective_from > effective_until:
            raise ValidationError(
                "effective_from cannot be after effective_until",
                field_errors=[{"field": "effective_until", "message": "must not precede effective_from"}]
            )
        return changes

    async def _update_tier(self, repo, record: Any, changes: Dict[str, Any], entity_type: AuditEntityType, user: User):
        # Rates, notes and window ends may be cleared; the activation flag may not
        changes = {k: v for k, v in changes.items() if not (k == "is_active" and v is None)}
        if not changes:
            return record
        previous = _audit_values(record)
        updated = await repo.update(record.id, changes, exclude_none=False, commit=False)
        await self._audit(record.agency_id, entity_type, record.id, AuditAction.UPDATE, previous, updated, user)
        logger.info(f"{entity_type.value} {record.id} updated by {user.email}")
        return updated

    async def _delete_tier(self, repo, record: Any, entity_type: AuditEntityType, user: User) -> None:
        previous = _audit_values(record)
        await repo.delete(record.id, commit=False)
        await self._audit(record.agency_id, entity_type, record.id, AuditAction.DELETE, previous, None, user)
        logger.info(f"{entity_type.value} {record.id} deleted by {user.email}")

    async def _audit(
        self,
        agency_id: uuid.UUID,
        entity_type: AuditEntityType,
        entity_id: uuid.UUID,
        action: AuditAction,
        previous: Optional[Dict[str, Any]],
        record: Any,
        user: User
    ) -> CommissionAuditLog:
        """Stage the log entry next to the pending tier write and commit both together."""
        try:
            log = await self.audit_repo.create({
                "agency_id": agency_id,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "action": action,
                "previous_values": previous,
                "new_values": _audit_values(record) if record is not None else None,
                "changed_by": user.id,
            }, commit=False)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return log
