"""Work item progress endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from jobcost_engine.api.dependencies import Caller, Db
from jobcost_engine.api.schemas import (
    ErrorResponse,
    ProgressRequest,
    QuantityUpdate,
    WorkItemQuantityResponse,
)
from jobcost_engine.calculators.types import percent_of, round_percent
from jobcost_engine.models import WorkItemQuantity
from jobcost_engine.services.completion_service import CompletionService

router = APIRouter(prefix="/sub-scopes", tags=["sub-scopes"])


def quantity_response(row: WorkItemQuantity) -> WorkItemQuantityResponse:
    return WorkItemQuantityResponse(
        sub_scope_id=row.sub_scope_id,
        work_item_id=row.work_item_id,
        quantity=row.quantity,
        completed=row.completed,
        completion_pct=round_percent(percent_of(row.completed, row.quantity)),
    )


@router.patch(
    "/{sub_scope_id}/work-items/{work_item_id}",
    response_model=WorkItemQuantityResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def update_work_item_quantity(
    db: Db,
    caller: Caller,
    sub_scope_id: Annotated[UUID, Path()],
    work_item_id: Annotated[UUID, Path()],
    payload: QuantityUpdate,
) -> WorkItemQuantityResponse:
    """Set planned and/or completed quantity of a work item."""
    async with db.unit_of_work() as uow:
        row = await CompletionService(uow.session, caller.company_id).update_quantity(
            sub_scope_id,
            work_item_id,
            quantity=payload.quantity,
            completed=payload.completed,
        )
        response = quantity_response(row)
    return response


@router.post(
    "/{sub_scope_id}/work-items/{work_item_id}/progress",
    response_model=WorkItemQuantityResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def record_work_item_progress(
    db: Db,
    caller: Caller,
    sub_scope_id: Annotated[UUID, Path()],
    work_item_id: Annotated[UUID, Path()],
    payload: ProgressRequest,
) -> WorkItemQuantityResponse:
    """Add completed units to a work item."""
    async with db.unit_of_work() as uow:
        row = await CompletionService(uow.session, caller.company_id).record_progress(
            sub_scope_id, work_item_id, payload.increment
        )
        response = quantity_response(row)
    return response
