"""Financial report endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query

from jobcost_engine.api.dependencies import AppSettings, Caller, DbSession
from jobcost_engine.api.schemas import ErrorResponse, ReportResponse, TrendsResponse
from jobcost_engine.services.report_service import MAX_TREND_MONTHS, ReportService

router = APIRouter(prefix="/reports", tags=["reports"])

ProjectId = Annotated[UUID, Path()]
AsOf = Annotated[date | None, Query()]


def get_report_service(db: DbSession, caller: Caller, settings: AppSettings) -> ReportService:
    return ReportService(db, caller.company_id, settings.default_timezone)


Reports = Annotated[ReportService, Depends(get_report_service)]


@router.get(
    "/projects/{project_id}/financials",
    response_model=ReportResponse,
    responses={404: {"model": ErrorResponse}},
)
async def project_financials(
    reports: Reports, project_id: ProjectId, as_of: AsOf = None
) -> ReportResponse:
    """Earned value, cost, profit and margin of a project."""
    financials = await reports.project_financials(project_id, as_of)
    return ReportResponse(report="financials", data=financials.to_dict())


@router.get(
    "/projects/{project_id}/profit",
    response_model=ReportResponse,
    responses={404: {"model": ErrorResponse}},
)
async def project_profit(
    reports: Reports, project_id: ProjectId, as_of: AsOf = None
) -> ReportResponse:
    """Current and projected profit with monthly cumulative cost."""
    analysis = await reports.profit_analysis(project_id, as_of)
    return ReportResponse(report="profit", data=analysis.to_dict())


@router.get(
    "/projects/{project_id}/labor",
    response_model=ReportResponse,
    responses={404: {"model": ErrorResponse}},
)
async def project_labor(
    reports: Reports, project_id: ProjectId, as_of: AsOf = None
) -> ReportResponse:
    """Labor hours and cost per employee and per month."""
    data = await reports.labor_breakdown(project_id, as_of)
    return ReportResponse(report="labor", data=data)


@router.get(
    "/projects/{project_id}/expenses",
    response_model=ReportResponse,
    responses={404: {"model": ErrorResponse}},
)
async def project_expenses(
    reports: Reports, project_id: ProjectId
) -> ReportResponse:
    """Expenses by category, vendor and month."""
    data = await reports.expense_breakdown(project_id)
    return ReportResponse(report="expenses", data=data)


@router.get(
    "/projects/{project_id}/completion",
    response_model=ReportResponse,
    responses={404: {"model": ErrorResponse}},
)
async def project_completion_report(
    reports: Reports, project_id: ProjectId
) -> ReportResponse:
    """Scope, sub-scope and work item completion."""
    data = await reports.completion_report(project_id)
    return ReportResponse(report="completion", data=data)


@router.get("/trends/monthly", response_model=TrendsResponse)
async def monthly_trends(
    reports: Reports,
    months: Annotated[int, Query(ge=1, le=MAX_TREND_MONTHS)] = 6,
    today: AsOf = None,
) -> TrendsResponse:
    """Company-wide cost and completion for the last N calendar months."""
    items = await reports.company_monthly_trends(months, today)
    return TrendsResponse(months=months, items=items)
