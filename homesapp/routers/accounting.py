"""
External agency accounting endpoints: payments, biweekly summary, CSV export and seller statements.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import Response
from typing import Optional
from uuid import UUID
from datetime import date

from homesapp.models.user import User
from homesapp.models.payment import PaymentStatus
from homesapp.services.accounting import AccountingService
from homesapp.schemas.accounting import (
    PaymentCreate,
    PaymentUpdate,
    PaymentResponse,
    PaymentListResponse,
    PeriodBucket,
    AccountingSummaryResponse,
    SellerStatementResponse,
)
from homesapp.schemas.error import get_crud_error_responses
from homesapp.utils.dependencies import get_current_active_user, get_accounting_service, get_agency_id

router = APIRouter(prefix="/external/accounting", tags=["External Accounting"], responses=get_crud_error_responses())


@router.post("/payments", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    data: PaymentCreate,
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    accounting_service: AccountingService = Depends(get_accounting_service)
) -> PaymentResponse:
    payment = await accounting_service.create_payment(agency_id, data, current_user)
    return PaymentResponse.model_validate(payment.to_dict())


@router.get(
    "/payments",
    response_model=PaymentListResponse,
    description="Filter by effective status (overdue included), seller and due date range"
)
async def list_payments(
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    seller_id: Optional[UUID] = Query(None),
    start: Optional[date] = Query(None, description="Due on or after"),
    end: Optional[date] = Query(None, description="Due on or before"),
    sort_by: str = Query("due_date", description="due_date, amount or created_at"),
    sort_order: str = Query("asc"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    accounting_service: AccountingService = Depends(get_accounting_service)
) -> PaymentListResponse:
    payments, total = await accounting_service.list_payments(
        agency_id,
        current_user,
        status=payment_status,
        seller_id=seller_id,
        start=start,
        end=end,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size,
    )
    return PaymentListResponse(
        payments=[PaymentResponse.model_validate(p.to_dict()) for p in payments],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: UUID = Path(...),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    accounting_service: AccountingService = Depends(get_accounting_service)
) -> PaymentResponse:
    payment = await accounting_service.get_payment(agency_id, payment_id, current_user)
    return PaymentResponse.model_validate(payment.to_dict())


@router.patch("/payments/{payment_id}", response_model=PaymentResponse)
async def update_payment(
    data: PaymentUpdate,
    payment_id: UUID = Path(...),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    accounting_service: AccountingService = Depends(get_accounting_service)
) -> PaymentResponse:
    payment = await accounting_service.update_payment(agency_id, payment_id, data, current_user)
    return PaymentResponse.model_validate(payment.to_dict())


@router.delete("/payments/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment(
    payment_id: UUID = Path(...),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    accounting_service: AccountingService = Depends(get_accounting_service)
) -> None:
    await accounting_service.delete_payment(agency_id, payment_id, current_user)


@router.get(
    "/summary",
    response_model=AccountingSummaryResponse,
    summary="Biweekly summary",
    description="One bucket per half-month period between start and end, inclusive"
)
async def summary(
    start: date = Query(...),
    end: date = Query(...),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    accounting_service: AccountingService = Depends(get_accounting_service)
) -> AccountingSummaryResponse:
    buckets = await accounting_service.summary(agency_id, start, end, current_user)
    return AccountingSummaryResponse(
        start=start,
        end=end,
        periods=[PeriodBucket.model_validate(bucket) for bucket in buckets],
    )


@router.get(
    "/export",
    response_class=Response,
    summary="Export payments as CSV",
    responses={200: {"content": {"text/csv": {}}}}
)
async def export_payments(
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    seller_id: Optional[UUID] = Query(None),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    sort_by: str = Query("due_date"),
    sort_order: str = Query("asc"),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    accounting_service: AccountingService = Depends(get_accounting_service)
) -> Response:
    content = await accounting_service.export_csv(
        agency_id,
        current_user,
        status=payment_status,
        seller_id=seller_id,
        start=start,
        end=end,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    filename = f"payments-{date.today().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/seller-statement",
    response_model=SellerStatementResponse,
    summary="Seller commission statement",
    description="Commission owed to a seller for the paid payments due in a biweekly period (YYYY-MM-1 or YYYY-MM-2)"
)
async def seller_statement(
    seller_id: UUID = Query(...),
    period: str = Query(..., description="YYYY-MM-1 or YYYY-MM-2"),
    agency_id: UUID = Depends(get_agency_id),
    current_user: User = Depends(get_current_active_user),
    accounting_service: AccountingService = Depends(get_accounting_service)
) -> SellerStatementResponse:
    statement = await accounting_service.seller_statement(agency_id, seller_id, period, current_user)
    return SellerStatementResponse.model_validate(statement)
