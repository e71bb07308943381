"""Project and company financial reports."""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable
from uuid import UUID

import pytz
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from jobcost_engine.calculators.completion import project_completion
from jobcost_engine.calculators.cost_calculator import (
    LaborCostBreakdown,
    month_of,
    rate_reference_date,
    total_labor_cost,
)
from jobcost_engine.calculators.financials import (
    ProfitAnalysis,
    ProjectFinancials,
    bucket_by_month,
    last_n_months,
    month_bounds,
    month_end,
    month_key,
    monthly_series,
)
from jobcost_engine.calculators.rate_resolver import RateResolver
from jobcost_engine.calculators.types import ZERO, round_to_cents
from jobcost_engine.exceptions import NotFoundError, ValidationError
from jobcost_engine.models import (
    Company,
    Employee,
    Expense,
    PaymentStatus,
    Project,
    ProjectStatus,
    TimeEntry,
)
from jobcost_engine.queries import ExpenseFilter, TimeEntryFilter
from jobcost_engine.services.completion_service import project_tree_options

logger = logging.getLogger(__name__)

RECENT_EXPENSE_COUNT = 10
MAX_TREND_MONTHS = 36


def _money(amount: Decimal) -> str:
    return str(round_to_cents(amount))


def _sum_by(items: Iterable[Any], key_attr: str, amount_attr: str = "amount") -> dict[str, Decimal]:
    totals: dict[str, Decimal] = {}
    for item in items:
        key = getattr(item, key_attr)
        totals[key] = totals.get(key, ZERO) + (getattr(item, amount_attr) or ZERO)
    return totals


class ReportService:
    """Read-only reports over projects, labor and expenses.

    Labor is priced by resolving each employee's rate on
    ``rate_reference_date(work_date, as_of)``. Employees with no configured
    rate are left out of labor figures and listed so the report is marked
    partial. Cancelled time entries never count as labor.
    """

    def __init__(self, session: AsyncSession, company_id: UUID, default_timezone: str = "UTC"):
        self.session = session
        self.company_id = company_id
        self.default_timezone = default_timezone
        self.rate_resolver = RateResolver(session)
        self._company: Company | None = None

    # ===== Loading =====

    async def get_company(self) -> Company:
        if self._company is None:
            self._company = await self.session.get(Company, self.company_id)
            if self._company is None:
                raise NotFoundError("Company", self.company_id)
        return self._company

    async def timezone(self) -> str:
        company = await self.get_company()
        return company.timezone or self.default_timezone

    async def local_today(self) -> date:
        return datetime.now(pytz.timezone(await self.timezone())).date()

    async def get_project(self, project_id: UUID) -> Project:
        result = await self.session.execute(
            select(Project)
            .where(
                Project.project_id == project_id,
                Project.company_id == self.company_id,
            )
            .options(
                *project_tree_options(),
                selectinload(Project.client),
                selectinload(Project.contractor),
            )
            .execution_options(populate_existing=True)
        )
        project = result.scalar_one_or_none()
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    async def load_time_entries(self, filters: TimeEntryFilter) -> list[TimeEntry]:
        """Non-cancelled entries of the company matching a filter."""
        query = filters.apply(
            select(TimeEntry)
            .join(Employee, Employee.employee_id == TimeEntry.employee_id)
            .where(
                Employee.company_id == self.company_id,
                TimeEntry.payment_status != PaymentStatus.CANCELLED.value,
            )
            .options(selectinload(TimeEntry.employee))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query.order_by(TimeEntry.work_date))
        return list(result.scalars().all())

    async def load_expenses(
        self,
        filters: ExpenseFilter,
        incurred_before: datetime | None = None,
    ) -> list[Expense]:
        query = filters.apply(
            select(Expense)
            .where(Expense.company_id == self.company_id)
            .options(selectinload(Expense.vendor))
            .execution_options(populate_existing=True)
        )
        if incurred_before is not None:
            query = query.where(Expense.incurred_at < incurred_before)
        result = await self.session.execute(query.order_by(Expense.incurred_at))
        return list(result.scalars().all())

    async def labor_cost(self, entries: list[TimeEntry], as_of: date) -> LaborCostBreakdown:
        """Price entries at the rates in effect on their reference dates."""
        groups: dict[date, list[TimeEntry]] = {}
        for entry in entries:
            groups.setdefault(rate_reference_date(entry.work_date, as_of), []).append(entry)

        breakdown = LaborCostBreakdown()
        for reference_date, group in sorted(groups.items()):
            employees = {e.employee_id: e.employee for e in group}
            rates = await self.rate_resolver.resolve_for_employees(
                employees.values(), reference_date
            )
            breakdown.merge(total_labor_cost(group, rates))

        if breakdown.partial:
            logger.warning(
                "Labor cost excludes %d employee(s) without a configured rate",
                len(breakdown.unrated_employee_ids),
            )
        return breakdown

    # ===== Project reports =====

    async def project_financials(
        self,
        project_id: UUID,
        as_of: date | None = None,
    ) -> ProjectFinancials:
        """Earned-value financial summary of a project."""
        project = await self.get_project(project_id)
        as_of = as_of or await self.local_today()
        financials, _, _ = await self._financials(project, as_of)
        return financials

    async def _financials(
        self,
        project: Project,
        as_of: date,
    ) -> tuple[ProjectFinancials, LaborCostBreakdown, list[Expense]]:
        completion = project_completion(project)
        entries = await self.load_time_entries(TimeEntryFilter(project_id=project.project_id))
        expenses = await self.load_expenses(ExpenseFilter(project_id=project.project_id))
        labor = await self.labor_cost(entries, as_of)

        financials = ProjectFinancials(
            project_id=project.project_id,
            contract_value=completion.contract_value,
            completed_value=completion.completed_value,
            completion_pct=completion.value_completion_pct,
            labor_cost=labor.total_cost,
            expense_cost=sum((e.amount for e in expenses), ZERO),
            labor_by_type=dict(labor.by_type),
            expenses_by_category=_sum_by(expenses, "category"),
            unrated_employee_ids=sorted(labor.unrated_employee_ids, key=str),
        )
        return financials, labor, expenses

    async def profit_analysis(
        self,
        project_id: UUID,
        as_of: date | None = None,
    ) -> ProfitAnalysis:
        """Current and projected profit with the monthly cost series."""
        project = await self.get_project(project_id)
        as_of = as_of or await self.local_today()
        financials, labor, expenses = await self._financials(project, as_of)

        tz = await self.timezone()
        monthly = monthly_series(
            {m.month: m.cost for m in labor.months()},
            bucket_by_month(expenses, "incurred_at", "amount", tz),
        )
        return ProfitAnalysis(financials=financials, monthly=monthly)

    async def labor_breakdown(
        self,
        project_id: UUID,
        as_of: date | None = None,
    ) -> dict[str, Any]:
        """Per-employee and per-month labor of a project."""
        project = await self.get_project(project_id)
        as_of = as_of or await self.local_today()
        entries = await self.load_time_entries(TimeEntryFilter(project_id=project.project_id))
        labor = await self.labor_cost(entries, as_of)

        return {
            "project_id": str(project.project_id),
            "total_cost": _money(labor.total_cost),
            "total_hours": str(labor.hours.total),
            "by_type": {k: _money(v) for k, v in labor.by_type.items()},
            "employees": [
                {
                    "employee_id": str(e.employee_id),
                    "name": e.name,
                    "employee_type": e.employee_type,
                    "hourly_rate": str(e.hourly_rate),
                    "regular_hours": str(e.hours.regular),
                    "overtime_hours": str(e.hours.overtime),
                    "double_hours": str(e.hours.double),
                    "total_hours": str(e.hours.total),
                    "cost": _money(e.cost),
                }
                for e in labor.employees_by_cost()
            ],
            "monthly": [
                {"month": m.month, "hours": str(m.hours.total), "cost": _money(m.cost)}
                for m in labor.months()
            ],
            "partial": labor.partial,
            "unrated_employee_ids": sorted(str(e) for e in labor.unrated_employee_ids),
        }

    async def expense_breakdown(self, project_id: UUID) -> dict[str, Any]:
        """Project expenses by category, vendor and month, plus the latest ones."""
        project = await self.get_project(project_id)
        expenses = await self.load_expenses(ExpenseFilter(project_id=project.project_id))
        tz = await self.timezone()

        # Keyed by id since vendor names are not unique
        by_vendor: dict[UUID | None, Decimal] = {}
        vendor_names: dict[UUID | None, str] = {None: "Unassigned"}
        for expense in expenses:
            by_vendor[expense.vendor_id] = by_vendor.get(expense.vendor_id, ZERO) + expense.amount
            if expense.vendor is not None:
                vendor_names[expense.vendor_id] = expense.vendor.name

        by_category = _sum_by(expenses, "category")
        by_month = bucket_by_month(expenses, "incurred_at", "amount", tz)
        recent = sorted(expenses, key=lambda e: e.incurred_at, reverse=True)[:RECENT_EXPENSE_COUNT]

        return {
            "project_id": str(project.project_id),
            "total": _money(sum((e.amount for e in expenses), ZERO)),
            "count": len(expenses),
            "by_category": [
                {"category": k, "amount": _money(v)}
                for k, v in sorted(by_category.items(), key=lambda kv: kv[1], reverse=True)
            ],
            "by_vendor": [
                {
                    "vendor_id": str(k) if k is not None else None,
                    "vendor": vendor_names[k],
                    "amount": _money(v),
                }
                for k, v in sorted(by_vendor.items(), key=lambda kv: kv[1], reverse=True)
            ],
            "monthly": [{"month": k, "amount": _money(by_month[k])} for k in sorted(by_month)],
            "recent": [
                {
                    "expense_id": str(e.expense_id),
                    "description": e.description,
                    "category": e.category,
                    "vendor": e.vendor.name if e.vendor is not None else None,
                    "amount": _money(e.amount),
                    "incurred_at": e.incurred_at.isoformat(),
                }
                for e in recent
            ],
        }

    async def completion_report(self, project_id: UUID) -> dict[str, Any]:
        """Completion roll-up with the project's identity."""
        project = await self.get_project(project_id)
        completion = project_completion(project)
        return {
            "project_code": project.code,
            "project_name": project.name,
            "client_name": project.client.name if project.client is not None else None,
            "contractor_name": project.contractor.name if project.contractor is not None else None,
            "status": project.status,
            **completion.to_dict(),
        }

    # ===== Company reports =====

    async def company_monthly_trends(
        self,
        months: int = 6,
        today: date | None = None,
    ) -> list[dict[str, Any]]:
        """Cost and completion trends over the last ``months`` calendar months.

        Union rates are resolved as of each month's last day.
        """
        if months < 1 or months > MAX_TREND_MONTHS:
            raise ValidationError("months", f"must be between 1 and {MAX_TREND_MONTHS}")

        tz = await self.timezone()
        today = today or await self.local_today()
        calendar_months = last_n_months(today, months)
        first_year, first_month = calendar_months[0]
        last_year, last_month = calendar_months[-1]
        range_start, _ = month_bounds(first_year, first_month, tz)
        _, range_end = month_bounds(last_year, last_month, tz)

        expenses = await self.load_expenses(
            ExpenseFilter(incurred_from=range_start), incurred_before=range_end
        )
        entries = await self.load_time_entries(
            TimeEntryFilter(
                date_from=date(first_year, first_month, 1),
                date_to=month_end(last_year, last_month),
            )
        )
        completed_projects = await self._completed_projects(range_start, range_end)

        expenses_by_month: dict[str, list[Expense]] = {}
        for expense in expenses:
            expenses_by_month.setdefault(month_key(expense.incurred_at, tz), []).append(expense)
        entries_by_month: dict[str, list[TimeEntry]] = {}
        for entry in entries:
            entries_by_month.setdefault(month_of(entry.work_date), []).append(entry)
        projects_by_month: dict[str, list[Project]] = {}
        for project in completed_projects:
            projects_by_month.setdefault(month_key(project.completed_at, tz), []).append(project)

        trends = []
        for year, month in calendar_months:
            key = f"{year:04d}-{month:02d}"
            month_expenses = expenses_by_month.get(key, [])
            month_entries = entries_by_month.get(key, [])
            month_projects = projects_by_month.get(key, [])

            labor = await self.labor_cost(month_entries, month_end(year, month))
            expense_total = sum((e.amount for e in month_expenses), ZERO)

            trends.append(
                {
                    "month": key,
                    "expenses_by_category": {
                        k: _money(v) for k, v in _sum_by(month_expenses, "category").items()
                    },
                    "expense_cost": _money(expense_total),
                    "labor_cost": _money(labor.total_cost),
                    "labor_hours": str(labor.hours.total),
                    "total_cost": _money(expense_total + labor.total_cost),
                    "projects_completed": len(month_projects),
                    "completed_project_value": _money(
                        sum((p.value for p in month_projects), ZERO)
                    ),
                    "partial": labor.partial,
                }
            )
        return trends

    async def _completed_projects(self, start: datetime, end: datetime) -> list[Project]:
        result = await self.session.execute(
            select(Project).where(
                Project.company_id == self.company_id,
                Project.status == ProjectStatus.COMPLETED.value,
                Project.completed_at >= start,
                Project.completed_at < end,
            )
        )
        return list(result.scalars().all())
