"""Tests for project and company financial reports."""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from jobcost_engine.exceptions import NotFoundError, ValidationError
from jobcost_engine.models import (
    Expense,
    ExpenseCategory,
    PaymentStatus,
    ProjectStatus,
    TimeEntry,
    Vendor,
)
from jobcost_engine.services.report_service import ReportService

AS_OF = date(2024, 6, 1)


def utc(year, month, day, hour=12):
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


class TestProjectFinancials:
    """Test the earned-value summary."""

    @pytest.mark.asyncio
    async def test_profit_and_margin(self, session, test_company, test_project, time_entries, expenses):
        """Completed 700, labor 300, expenses 100: profit 300, margin 42.86%."""
        service = ReportService(session, test_company.company_id)

        financials = await service.project_financials(test_project.project_id, as_of=AS_OF)

        assert financials.completed_value == Decimal("700")
        assert financials.labor_cost == Decimal("300")
        assert financials.expense_cost == Decimal("100")
        assert financials.profit == Decimal("300")
        data = financials.to_dict()
        assert data["profit_margin"] == "42.86"
        assert data["completion_pct"] == "70.00"
        assert data["labor_by_type"] == {"local": "300.00"}
        assert data["expenses_by_category"] == {"material": "60.00", "tool": "40.00"}
        assert data["partial"] is False

    @pytest.mark.asyncio
    async def test_unrated_employee_marks_partial(
        self, session, test_company, test_project, time_entries, unrated_employee
    ):
        session.add(
            TimeEntry(
                employee_id=unrated_employee.employee_id,
                project_id=test_project.project_id,
                work_date=date(2024, 3, 6),
                regular_hours=Decimal("8"),
            )
        )
        await session.flush()
        service = ReportService(session, test_company.company_id)

        financials = await service.project_financials(test_project.project_id, as_of=AS_OF)

        assert financials.labor_cost == Decimal("300")
        assert financials.partial is True
        assert financials.unrated_employee_ids == [unrated_employee.employee_id]

    @pytest.mark.asyncio
    async def test_cancelled_entries_excluded(
        self, session, test_company, test_project, time_entries
    ):
        time_entries[1].payment_status = PaymentStatus.CANCELLED.value
        await session.flush()
        service = ReportService(session, test_company.company_id)

        financials = await service.project_financials(test_project.project_id, as_of=AS_OF)

        assert financials.labor_cost == Decimal("200")

    @pytest.mark.asyncio
    async def test_union_labor_priced_at_as_of_rate(
        self, session, test_company, test_project, union_employee
    ):
        session.add(
            TimeEntry(
                employee_id=union_employee.employee_id,
                project_id=test_project.project_id,
                work_date=date(2024, 3, 4),
                regular_hours=Decimal("10"),
                overtime_hours=Decimal("2"),
            )
        )
        await session.flush()
        service = ReportService(session, test_company.company_id)

        financials = await service.project_financials(test_project.project_id, as_of=AS_OF)

        assert financials.labor_cost == Decimal("520")
        assert financials.labor_by_type == {"union": Decimal("520")}

    @pytest.mark.asyncio
    async def test_project_without_activity(self, session, test_company, test_project):
        service = ReportService(session, test_company.company_id)

        financials = await service.project_financials(test_project.project_id, as_of=AS_OF)

        assert financials.total_cost == Decimal("0")
        assert financials.profit == Decimal("700")

    @pytest.mark.asyncio
    async def test_other_company_project(self, session, other_company, test_project):
        service = ReportService(session, other_company.company_id)

        with pytest.raises(NotFoundError):
            await service.project_financials(test_project.project_id, as_of=AS_OF)

    @pytest.mark.asyncio
    async def test_unknown_project(self, session, test_company):
        service = ReportService(session, test_company.company_id)

        with pytest.raises(NotFoundError):
            await service.project_financials(uuid4(), as_of=AS_OF)


class TestProfitAnalysis:
    """Test projections and the monthly series."""

    @pytest.mark.asyncio
    async def test_monthly_series_and_projection(
        self, session, test_company, test_project, time_entries, expenses
    ):
        service = ReportService(session, test_company.company_id)

        analysis = await service.profit_analysis(test_project.project_id, as_of=AS_OF)
        data = analysis.to_dict()

        assert data["projected_profit"] == "428.57"
        assert data["projected_margin"] == "42.86"
        assert data["monthly"] == [
            {
                "month": "2024-03",
                "labor_cost": "300.00",
                "expense_cost": "60.00",
                "total_cost": "360.00",
                "cumulative_cost": "360.00",
            },
            {
                "month": "2024-04",
                "labor_cost": "0.00",
                "expense_cost": "40.00",
                "total_cost": "40.00",
                "cumulative_cost": "400.00",
            },
        ]

    @pytest.mark.asyncio
    async def test_expense_months_follow_company_timezone(
        self, session, test_company, test_project
    ):
        test_company.timezone = "America/New_York"
        session.add(
            Expense(
                company_id=test_company.company_id,
                project_id=test_project.project_id,
                amount=Decimal("25.00"),
                category=ExpenseCategory.RENTAL.value,
                incurred_at=utc(2024, 4, 1, hour=2),
            )
        )
        await session.flush()
        service = ReportService(session, test_company.company_id)

        analysis = await service.profit_analysis(test_project.project_id, as_of=AS_OF)

        assert [m.month for m in analysis.monthly] == ["2024-03"]


class TestBreakdowns:
    """Test labor, expense and completion breakdowns."""

    @pytest.mark.asyncio
    async def test_labor_breakdown(
        self, session, test_company, test_project, time_entries, local_employee
    ):
        service = ReportService(session, test_company.company_id)

        data = await service.labor_breakdown(test_project.project_id, as_of=AS_OF)

        assert data["total_cost"] == "300.00"
        assert data["total_hours"] == "12.00"
        assert len(data["employees"]) == 1
        employee = data["employees"][0]
        assert employee["employee_id"] == str(local_employee.employee_id)
        assert employee["name"] == "Ana Lopez"
        assert employee["cost"] == "300.00"
        assert data["monthly"] == [{"month": "2024-03", "hours": "12.00", "cost": "300.00"}]

    @pytest.mark.asyncio
    async def test_expense_breakdown(
        self, session, test_company, test_project, expenses, test_vendors
    ):
        session.add(
            Expense(
                company_id=test_company.company_id,
                project_id=test_project.project_id,
                amount=Decimal("5.00"),
                category=ExpenseCategory.OTHER.value,
                description="Parking",
                incurred_at=utc(2024, 4, 20),
            )
        )
        await session.flush()
        service = ReportService(session, test_company.company_id)

        data = await service.expense_breakdown(test_project.project_id)

        assert data["total"] == "105.00"
        assert data["count"] == 3
        assert data["by_category"][0] == {"category": "material", "amount": "60.00"}
        assert {"vendor_id": None, "vendor": "Unassigned", "amount": "5.00"} in data["by_vendor"]
        assert data["by_vendor"][0] == {
            "vendor_id": str(test_vendors["lumber"].vendor_id),
            "vendor": "Lumber Co",
            "amount": "60.00",
        }
        assert data["monthly"] == [
            {"month": "2024-03", "amount": "60.00"},
            {"month": "2024-04", "amount": "45.00"},
        ]
        assert [e["description"] for e in data["recent"]] == [
            "Parking",
            "Bender rental",
            "Conduit and fittings",
        ]

    @pytest.mark.asyncio
    async def test_vendors_sharing_a_name_stay_separate(
        self, session, test_company, test_project, expenses, test_vendors
    ):
        namesake = Vendor(company_id=test_company.company_id, code="V-003", name="Lumber Co")
        session.add(namesake)
        await session.flush()
        session.add(
            Expense(
                company_id=test_company.company_id,
                project_id=test_project.project_id,
                vendor_id=namesake.vendor_id,
                amount=Decimal("15.00"),
                category=ExpenseCategory.MATERIAL.value,
                incurred_at=utc(2024, 3, 20),
            )
        )
        await session.flush()
        service = ReportService(session, test_company.company_id)

        data = await service.expense_breakdown(test_project.project_id)

        lumber = [v for v in data["by_vendor"] if v["vendor"] == "Lumber Co"]
        assert {v["vendor_id"]: v["amount"] for v in lumber} == {
            str(test_vendors["lumber"].vendor_id): "60.00",
            str(namesake.vendor_id): "15.00",
        }

    @pytest.mark.asyncio
    async def test_completion_report(self, session, test_company, test_project):
        service = ReportService(session, test_company.company_id)

        data = await service.completion_report(test_project.project_id)

        assert data["project_code"] == "P-001"
        assert data["client_name"] == "Acme Developments"
        assert data["contractor_name"] is None
        assert data["status"] == "in_progress"
        assert data["completed_value"] == "700.00"
        assert len(data["scopes"]) == 1
        assert data["scopes"][0]["sub_scopes"][0]["completion_pct"] == "66.67"


class TestCompanyTrends:
    """Test monthly company trends."""

    @pytest.mark.asyncio
    async def test_two_month_trend(
        self, session, test_company, test_project, time_entries, expenses
    ):
        test_project.status = ProjectStatus.COMPLETED.value
        test_project.completed_at = utc(2024, 4, 15)
        await session.flush()
        service = ReportService(session, test_company.company_id)

        trends = await service.company_monthly_trends(months=2, today=date(2024, 4, 30))

        assert [t["month"] for t in trends] == ["2024-03", "2024-04"]
        march, april = trends
        assert march["labor_cost"] == "300.00"
        assert march["labor_hours"] == "12.00"
        assert march["expense_cost"] == "60.00"
        assert march["expenses_by_category"] == {"material": "60.00"}
        assert march["total_cost"] == "360.00"
        assert march["projects_completed"] == 0
        assert april["labor_cost"] == "0.00"
        assert april["expense_cost"] == "40.00"
        assert april["projects_completed"] == 1
        assert april["completed_project_value"] == "1000.00"
        assert april["partial"] is False

    @pytest.mark.asyncio
    async def test_months_outside_window_ignored(
        self, session, test_company, time_entries, expenses
    ):
        service = ReportService(session, test_company.company_id)

        trends = await service.company_monthly_trends(months=1, today=date(2024, 5, 15))

        assert trends == [
            {
                "month": "2024-05",
                "expenses_by_category": {},
                "expense_cost": "0.00",
                "labor_cost": "0.00",
                "labor_hours": "0",
                "total_cost": "0.00",
                "projects_completed": 0,
                "completed_project_value": "0.00",
                "partial": False,
            }
        ]

    @pytest.mark.asyncio
    async def test_month_count_validated(self, session, test_company):
        service = ReportService(session, test_company.company_id)

        with pytest.raises(ValidationError):
            await service.company_monthly_trends(months=0)
        with pytest.raises(ValidationError):
            await service.company_monthly_trends(months=37)
