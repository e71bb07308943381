"""Time sheet and payment API endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response, status

from jobcost_engine.api.dependencies import AppSettings, Caller, Db, DbSession
from jobcost_engine.api.schemas import (
    BulkStatusResponse,
    EntryIdsRequest,
    ErrorResponse,
    PaymentCreate,
    PaymentListResponse,
    PaymentResponse,
    TimeEntryListResponse,
    TimeEntryResponse,
    TimeEntryUpdate,
)
from jobcost_engine.models import Payment, PaymentStatus
from jobcost_engine.queries import PaymentFilter, TimeEntryFilter
from jobcost_engine.services.settlement_service import SettlementService
from jobcost_engine.services.time_entry_service import TimeEntryService

router = APIRouter(prefix="/timesheets", tags=["timesheets"])


def payment_response(payment: Payment) -> PaymentResponse:
    resp = PaymentResponse.model_validate(payment)
    resp.time_entry_ids = [e.time_entry_id for e in payment.time_entries]
    return resp


# ============================================================================
# Time entries
# ============================================================================


@router.get("", response_model=TimeEntryListResponse)
async def list_time_entries(
    db: DbSession,
    caller: Caller,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    employee_id: UUID | None = None,
    project_id: UUID | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    date_from: date | None = None,
    date_to: date | None = None,
    notes: str | None = None,
) -> TimeEntryListResponse:
    """List time entries with optional filters."""
    filters = TimeEntryFilter(
        employee_id=employee_id,
        project_id=project_id,
        payment_status=status_filter,
        date_from=date_from,
        date_to=date_to,
        notes_contains=notes,
    )
    entries, total = await TimeEntryService(db, caller.company_id).list_entries(
        filters, page, page_size
    )
    return TimeEntryListResponse(
        items=[TimeEntryResponse.model_validate(e) for e in entries],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/approve", response_model=BulkStatusResponse)
async def approve_time_entries(
    db: Db,
    caller: Caller,
    payload: EntryIdsRequest,
) -> BulkStatusResponse:
    """Approve pending time entries. Entries in other states are skipped."""
    async with db.unit_of_work() as uow:
        updated = await TimeEntryService(uow.session, caller.company_id).approve(
            payload.time_entry_ids
        )
    return BulkStatusResponse(
        status=PaymentStatus.APPROVED.value,
        requested=len(payload.time_entry_ids),
        updated=updated,
    )


@router.post("/cancel", response_model=BulkStatusResponse)
async def cancel_time_entries(
    db: Db,
    caller: Caller,
    payload: EntryIdsRequest,
) -> BulkStatusResponse:
    """Cancel pending or approved time entries. Others are skipped."""
    async with db.unit_of_work() as uow:
        updated = await TimeEntryService(uow.session, caller.company_id).cancel(
            payload.time_entry_ids
        )
    return BulkStatusResponse(
        status=PaymentStatus.CANCELLED.value,
        requested=len(payload.time_entry_ids),
        updated=updated,
    )


@router.patch(
    "/{time_entry_id}",
    response_model=TimeEntryResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_time_entry(
    db: Db,
    caller: Caller,
    time_entry_id: Annotated[UUID, Path()],
    payload: TimeEntryUpdate,
) -> TimeEntryResponse:
    """Edit a time entry. Paid entries are locked."""
    async with db.unit_of_work() as uow:
        entry = await TimeEntryService(uow.session, caller.company_id).update_entry(
            time_entry_id, payload.model_dump(exclude_unset=True)
        )
        response = TimeEntryResponse.model_validate(entry)
    return response


@router.delete(
    "/{time_entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_time_entry(
    db: Db,
    caller: Caller,
    time_entry_id: Annotated[UUID, Path()],
) -> Response:
    """Delete a time entry that has not been paid."""
    async with db.unit_of_work() as uow:
        await TimeEntryService(uow.session, caller.company_id).delete_entry(time_entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Payments
# ============================================================================


@router.post(
    "/payments",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_payment(
    db: Db,
    settings: AppSettings,
    caller: Caller,
    payload: PaymentCreate,
) -> PaymentResponse:
    """Settle an employee's approved time entries into one payment."""
    async with db.unit_of_work(settings.settlement_isolation_level) as uow:
        service = SettlementService(uow.session, caller.company_id)
        payment = await service.settle(
            employee_id=payload.employee_id,
            entry_ids=payload.time_entry_ids,
            payment_date=payload.payment_date,
            deductions=payload.deductions,
            reference=payload.reference,
            notes=payload.notes,
        )
        payment = await service.get_payment(payment.payment_id)
        response = payment_response(payment)
    return response


@router.get("/payments", response_model=PaymentListResponse)
async def list_payments(
    db: DbSession,
    caller: Caller,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    employee_id: UUID | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    date_from: date | None = None,
    date_to: date | None = None,
    reference: str | None = None,
) -> PaymentListResponse:
    """List payments with optional filters."""
    filters = PaymentFilter(
        employee_id=employee_id,
        status=status_filter,
        date_from=date_from,
        date_to=date_to,
        reference_contains=reference,
    )
    payments, total = await SettlementService(db, caller.company_id).list_payments(
        filters, page, page_size
    )
    return PaymentListResponse(
        items=[payment_response(p) for p in payments],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/payments/{payment_id}",
    response_model=PaymentResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payment(
    db: DbSession,
    caller: Caller,
    payment_id: Annotated[UUID, Path()],
) -> PaymentResponse:
    """Get a payment with the ids of the entries it paid."""
    payment = await SettlementService(db, caller.company_id).get_payment(payment_id)
    return payment_response(payment)
