"""Union class rate endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from jobcost_engine.api.dependencies import Caller, Db, DbSession
from jobcost_engine.api.schemas import (
    BaseRateCreate,
    BaseRateResponse,
    CustomRateCreate,
    CustomRateResponse,
    ErrorResponse,
    RateResolutionResponse,
)
from jobcost_engine.database import with_transaction
from jobcost_engine.services.rate_service import RateService

router = APIRouter(prefix="/union-classes", tags=["union-classes"])


@router.get(
    "/{union_class_id}/rates/resolve",
    response_model=RateResolutionResponse,
    responses={404: {"model": ErrorResponse}},
)
async def resolve_rate(
    db: DbSession,
    caller: Caller,
    union_class_id: Annotated[UUID, Path()],
    as_of: Annotated[date, Query()],
) -> RateResolutionResponse:
    """Resolve the base rate and custom rates in effect on a date."""
    service = RateService(db, caller.company_id)
    resolution = await service.resolve(union_class_id, as_of)
    custom_rates = await service.active_custom_rates(union_class_id, as_of)
    return RateResolutionResponse(
        union_class_id=union_class_id,
        as_of_date=as_of,
        configured=resolution.configured,
        hourly_rate=resolution.hourly_rate,
        base_rate_id=resolution.base_rate_id,
        custom_rates=[CustomRateResponse.model_validate(c) for c in custom_rates],
    )


@router.get(
    "/{union_class_id}/base-rates",
    response_model=list[BaseRateResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_base_rates(
    db: DbSession,
    caller: Caller,
    union_class_id: Annotated[UUID, Path()],
) -> list[BaseRateResponse]:
    """List a union class's rate history, newest first."""
    rates = await RateService(db, caller.company_id).list_base_rates(union_class_id)
    return [BaseRateResponse.model_validate(r) for r in rates]


@router.post(
    "/{union_class_id}/base-rates",
    response_model=BaseRateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def add_base_rate(
    db: Db,
    caller: Caller,
    union_class_id: Annotated[UUID, Path()],
    payload: BaseRateCreate,
) -> BaseRateResponse:
    """Append a base rate, closing the currently open one."""
    async with db.unit_of_work() as uow:
        rate = await RateService(uow.session, caller.company_id).add_base_rate(
            union_class_id,
            regular_rate=payload.regular_rate,
            overtime_rate=payload.overtime_rate,
            benefits_rate=payload.benefits_rate,
            effective_date=payload.effective_date,
        )
        response = BaseRateResponse.model_validate(rate)
    return response


@router.post(
    "/{union_class_id}/custom-rates",
    response_model=CustomRateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def add_custom_rate(
    db: Db,
    caller: Caller,
    union_class_id: Annotated[UUID, Path()],
    payload: CustomRateCreate,
) -> CustomRateResponse:
    """Add a supplemental rate to a union class."""

    async def add(session: AsyncSession) -> CustomRateResponse:
        rate = await RateService(session, caller.company_id).add_custom_rate(
            union_class_id,
            name=payload.name,
            rate=payload.rate,
            effective_date=payload.effective_date,
            end_date=payload.end_date,
            description=payload.description,
            is_percentage=payload.is_percentage,
        )
        return CustomRateResponse.model_validate(rate)

    return await with_transaction(db.session_factory, add)
