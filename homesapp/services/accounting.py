"""
Accounting service for external agencies: payments, biweekly summaries, CSV export
and seller commission statements.

Months are split into two accounting periods: days 1 to 15 (``YYYY-MM-1``) and day 16
to the end of the month (``YYYY-MM-2``). Payments fall in the period of their due date.
"""

import calendar
import csv
import io
import json
import re
from collections import defaultdict
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from homesapp.repositories.payment import PaymentRepository, SORTABLE_FIELDS
from homesapp.repositories.user import UserRepository
from homesapp.repositories.lead import LeadRepository
from homesapp.repositories.property import PropertyRepository
from homesapp.models.payment import Payment, PaymentStatus
from homesapp.models.user import User, UserRole, ADMIN_ROLES
from homesapp.schemas.accounting import PaymentCreate, PaymentUpdate
from homesapp.services.commission import CommissionService, calculate_commission
from homesapp.services.user import UserService
from homesapp.utils.validators import ValidationUtils
from homesapp.utils.exceptions import (
    NotFoundError,
    ValidationError,
    InsufficientPermissionsError,
)
import uuid
import logging

logger = logging.getLogger(__name__)

PERIOD_LABEL = re.compile(r"^(\d{4})-(\d{2})-([12])$")

CSV_DANGEROUS_PREFIXES = ("=", "+", "-", "@")

EXPORT_COLUMNS = [
    "id",
    "concept",
    "amount",
    "currency",
    "status",
    "effective_status",
    "due_date",
    "paid_at",
    "commission_type",
    "seller_id",
    "property_id",
    "lead_id",
    "notes",
]

ACCOUNTING_ROLES = {
    UserRole.EXTERNAL_AGENCY_ADMIN,
    UserRole.EXTERNAL_AGENCY_MANAGER,
    UserRole.EXTERNAL_AGENCY_ACCOUNTANT,
}


class Period(NamedTuple):
    label: str
    start: date
    end: date


def period_for(day: date) -> Period:
    """Biweekly period containing a date."""
    if day.day <= 15:
        return Period(f"{day.year:04d}-{day.month:02d}-1", date(day.year, day.month, 1), date(day.year, day.month, 15))
    last_day = calendar.monthrange(day.year, day.month)[1]
    return Period(f"{day.year:04d}-{day.month:02d}-2", date(day.year, day.month, 16), date(day.year, day.month, last_day))


def periods_between(start: date, end: date) -> List[Period]:
    """
    Ordered periods touching the inclusive range ``[start, end]``.

    >>> [p.label for p in periods_between(date(2024, 1, 10), date(2024, 2, 20))]
    ['2024-01-1', '2024-01-2', '2024-02-1', '2024-02-2']
    """
    if start > end:
        raise ValidationError(
            "start must not be after end",
            field_errors=[{"field": "start", "message": "must not be after end"}]
        )

    periods = []
    current = period_for(start)
    while current.start <= end:
        periods.append(current)
        next_day = date.fromordinal(current.end.toordinal() + 1)
        current = period_for(next_day)
    return periods


def parse_period(label: str) -> Period:
    """
    Raises:
        ValidationError: If the label is not YYYY-MM-1 or YYYY-MM-2
    """
    match = PERIOD_LABEL.match(label or "")
    if not match or not 1 <= int(match.group(2)) <= 12:
        raise ValidationError(
            f"Invalid period '{label}'",
            field_errors=[{"field": "period", "message": "expected YYYY-MM-1 or YYYY-MM-2"}]
        )
    year, month, half = int(match.group(1)), int(match.group(2)), match.group(3)
    return period_for(date(year, month, 1 if half == "1" else 16))


def _csv_safe(value: str) -> str:
    if value and value.startswith(CSV_DANGEROUS_PREFIXES):
        return f"'{value}"
    return value


def _serialize_csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


def write_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_csv_safe(_serialize_csv_value(value)) for value in row])
    return output.getvalue()


def _money_totals() -> Dict[str, Decimal]:
    return defaultdict(lambda: Decimal("0"))


class AccountingService:
    """Agency payments and the reports built on them."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.payment_repo = PaymentRepository(db_session)
        self.user_repo = UserRepository(db_session)
        self.lead_repo = LeadRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.user_service = UserService(db_session)
        self.commission_service = CommissionService(db_session)

    # Payments

    async def create_payment(self, agency_id: uuid.UUID, data: PaymentCreate, current_user: User) -> Payment:
        await self._require_writer(current_user)
        payment_data = data.model_dump(exclude={"property_id", "lead_id", "seller_id"})
        payment_data["property_id"] = await self._property_ref(data.property_id)
        payment_data["lead_id"] = await self._lead_ref(agency_id, data.lead_id)
        payment_data["seller_id"] = await self._seller_ref(agency_id, data.seller_id)

        payment = await self.payment_repo.create({
            **payment_data,
            "agency_id": agency_id,
            "status": PaymentStatus.PENDING,
        })
        logger.info(f"Payment {payment.id} of {payment.amount} {payment.currency} recorded in agency {agency_id}")
        return payment

    async def get_payment(self, agency_id: uuid.UUID, payment_id: uuid.UUID, current_user: User) -> Payment:
        await self._require_reader(current_user)
        payment = await self.payment_repo.get_by_id(payment_id)
        if not payment or payment.agency_id != agency_id:
            raise NotFoundError("Payment", str(payment_id))
        return payment

    async def update_payment(
        self,
        agency_id: uuid.UUID,
        payment_id: uuid.UUID,
        data: PaymentUpdate,
        current_user: User
    ) -> Payment:
        """Partial update. Marking a payment paid stamps paid_at; leaving paid clears it."""
        await self._require_writer(current_user)
        payment = await self.get_payment(agency_id, payment_id, current_user)
        changes = data.model_dump(exclude_unset=True)

        for required in ("concept", "amount", "due_date", "status"):
            if required in changes and changes[required] is None:
                changes.pop(required)

        if "seller_id" in changes:
            changes["seller_id"] = await self._seller_ref(agency_id, changes["seller_id"])

        new_status = changes.get("status")
        if new_status == PaymentStatus.PAID and payment.status != PaymentStatus.PAID:
            changes["paid_at"] = datetime.now(timezone.utc)
        elif new_status is not None and new_status != PaymentStatus.PAID:
            changes["paid_at"] = None

        updated = await self.payment_repo.update(payment.id, changes, exclude_none=False)
        logger.info(f"Payment {payment_id} updated by {current_user.email}")
        return updated

    async def delete_payment(self, agency_id: uuid.UUID, payment_id: uuid.UUID, current_user: User) -> None:
        await self._require_writer(current_user)
        payment = await self.get_payment(agency_id, payment_id, current_user)
        await self.payment_repo.delete(payment.id)
        logger.info(f"Payment {payment_id} deleted by {current_user.email}")

    async def list_payments(
        self,
        agency_id: uuid.UUID,
        current_user: User,
        status: Optional[PaymentStatus] = None,
        seller_id: Optional[uuid.UUID] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        sort_by: str = "due_date",
        sort_order: str = "asc",
        page: int = 1,
        page_size: int = 20,
        today: Optional[date] = None
    ) -> Tuple[List[Payment], int]:
        await self._require_reader(current_user)
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError(
                f"Sort field must be one of: {', '.join(sorted(SORTABLE_FIELDS))}",
                field_errors=[{"field": "sort_by", "message": "unsupported sort field"}]
            )
        if sort_order.lower() not in ("asc", "desc"):
            raise ValidationError("Sort order must be 'asc' or 'desc'")

        skip, limit = ValidationUtils.page_bounds(page, page_size)
        return await self.payment_repo.search(
            agency_id,
            today=today or date.today(),
            status=status,
            seller_id=seller_id,
            start=start,
            end=end,
            sort_by=sort_by,
            sort_order=sort_order,
            skip=skip,
            limit=limit,
        )

    # Reports

    async def summary(
        self,
        agency_id: uuid.UUID,
        start: date,
        end: date,
        current_user: User,
        today: Optional[date] = None
    ) -> List[Dict[str, Any]]:
        """One bucket per biweekly period with counts and totals per currency and status."""
        await self._require_reader(current_user)
        today = today or date.today()
        periods = periods_between(start, end)
        payments, _ = await self.payment_repo.search(agency_id, today=today, start=start, end=end, limit=None)

        buckets = {
            p.label: {
                "label": p.label,
                "start": p.start,
                "end": p.end,
                "payment_count": 0,
                "totals_by_currency": _money_totals(),
                "totals_by_status": defaultdict(_money_totals),
            }
            for p in periods
        }
        for payment in payments:
            bucket = buckets[period_for(payment.due_date).label]
            bucket["payment_count"] += 1
            bucket["totals_by_currency"][payment.currency] += payment.amount
            bucket["totals_by_status"][payment.effective_status(today).value][payment.currency] += payment.amount

        result = []
        for p in periods:
            bucket = buckets[p.label]
            bucket["totals_by_currency"] = dict(bucket["totals_by_currency"])
            bucket["totals_by_status"] = {k: dict(v) for k, v in bucket["totals_by_status"].items()}
            result.append(bucket)
        return result

    async def export_csv(
        self,
        agency_id: uuid.UUID,
        current_user: User,
        status: Optional[PaymentStatus] = None,
        seller_id: Optional[uuid.UUID] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        sort_by: str = "due_date",
        sort_order: str = "asc",
        today: Optional[date] = None
    ) -> str:
        """Filtered payments as CSV with formula-leading cells escaped."""
        await self._require_reader(current_user)
        today = today or date.today()
        payments, total = await self.payment_repo.search(
            agency_id,
            today=today,
            status=status,
            seller_id=seller_id,
            start=start,
            end=end,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=None,
        )

        rows = [
            [
                payment.id,
                payment.concept,
                payment.amount,
                payment.currency,
                payment.status.value,
                payment.effective_status(today).value,
                payment.due_date,
                payment.paid_at,
                payment.commission_type.value if payment.commission_type else None,
                payment.seller_id,
                payment.property_id,
                payment.lead_id,
                payment.notes,
            ]
            for payment in payments
        ]
        logger.info(f"Exported {total} payments of agency {agency_id} for {current_user.email}")
        return write_csv(EXPORT_COLUMNS, rows)

    async def seller_statement(
        self,
        agency_id: uuid.UUID,
        seller_id: uuid.UUID,
        period_label: str,
        current_user: User
    ) -> Dict[str, Any]:
        """
        Commission owed to a seller for the paid payments due in a period. Each payment's
        rate is resolved on its due date; payments without a commission type are skipped.
        """
        await self._require_reader(current_user, allow_seller_id=seller_id)
        period = parse_period(period_label)
        seller = await self.user_repo.get_by_id(seller_id)
        if not seller or seller.agency_id != agency_id:
            raise NotFoundError("Seller", str(seller_id))

        payments, _ = await self.payment_repo.search(
            agency_id,
            today=date.today(),
            status=PaymentStatus.PAID,
            seller_id=seller.id,
            start=period.start,
            end=period.end,
            limit=None,
        )

        lines = []
        totals = _money_totals()
        for payment in payments:
            if payment.commission_type is None:
                continue
            resolution = await self.commission_service.resolve(
                agency_id,
                seller,
                payment.commission_type,
                lead_id=payment.lead_id,
                on_date=payment.due_date,
            )
            commission_amount = calculate_commission(payment.amount, resolution.percentage)
            totals[payment.currency] += commission_amount
            lines.append({
                "payment_id": str(payment.id),
                "concept": payment.concept,
                "due_date": payment.due_date,
                "paid_at": payment.paid_at,
                "amount": payment.amount,
                "currency": payment.currency,
                "commission_type": payment.commission_type,
                "percentage": resolution.percentage,
                "source": resolution.source,
                "commission_amount": commission_amount,
            })

        return {
            "seller_id": str(seller.id),
            "period": period.label,
            "start": period.start,
            "end": period.end,
            "lines": lines,
            "totals_by_currency": dict(totals),
        }

    # Helpers

    async def _require_reader(self, user: User, allow_seller_id: Optional[uuid.UUID] = None) -> None:
        if user.role in ACCOUNTING_ROLES or user.role in ADMIN_ROLES:
            return
        if allow_seller_id is not None and user.id == allow_seller_id:
            return
        if not await self.user_service.has_permission(user, "accounting:read"):
            raise InsufficientPermissionsError("view agency accounting")

    async def _require_writer(self, user: User) -> None:
        if user.role not in ACCOUNTING_ROLES and user.role not in ADMIN_ROLES:
            raise InsufficientPermissionsError("record agency payments")

    async def _seller_ref(self, agency_id: uuid.UUID, seller_id: Optional[str]) -> Optional[uuid.UUID]:
        parsed = ValidationUtils.parse_optional_uuid(seller_id, "seller_id")
        if parsed is None:
            return None
        seller = await self.user_repo.get_by_id(parsed)
        if not seller or seller.agency_id != agency_id:
            raise ValidationError(
                "Seller does not belong to this agency",
                field_errors=[{"field": "seller_id", "message": "must be a member of the agency"}]
            )
        return seller.id

    async def _lead_ref(self, agency_id: uuid.UUID, lead_id: Optional[str]) -> Optional[uuid.UUID]:
        parsed = ValidationUtils.parse_optional_uuid(lead_id, "lead_id")
        if parsed is None:
            return None
        lead = await self.lead_repo.get_by_id(parsed)
        if not lead or lead.agency_id != agency_id:
            raise ValidationError(
                "Lead does not belong to this agency",
                field_errors=[{"field": "lead_id", "message": "must belong to the agency"}]
            )
        return lead.id

    async def _property_ref(self, property_id: Optional[str]) -> Optional[uuid.UUID]:
        parsed = ValidationUtils.parse_optional_uuid(property_id, "property_id")
        if parsed and not await self.property_repo.exists(parsed):
            raise NotFoundError("Property", str(parsed))
        return parsed
