"""Tests for typed query filters."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from jobcost_engine.models import Expense, TimeEntry
from jobcost_engine.queries import ExpenseFilter, TimeEntryFilter


async def matching_entries(session, filters):
    result = await session.execute(filters.apply(select(TimeEntry)).order_by(TimeEntry.work_date))
    return list(result.scalars().all())


async def matching_expenses(session, filters):
    result = await session.execute(filters.apply(select(Expense)).order_by(Expense.incurred_at))
    return list(result.scalars().all())


class TestTimeEntryFilter:
    """Test time entry filter semantics."""

    @pytest.mark.asyncio
    async def test_empty_filter_matches_all(self, session, time_entries):
        assert len(await matching_entries(session, TimeEntryFilter())) == 2

    @pytest.mark.asyncio
    async def test_date_range_is_inclusive(self, session, time_entries):
        entries = await matching_entries(
            session, TimeEntryFilter(date_from=date(2024, 3, 5), date_to=date(2024, 3, 5))
        )

        assert [e.work_date for e in entries] == [date(2024, 3, 5)]

    @pytest.mark.asyncio
    async def test_notes_substring_ignores_case(self, session, time_entries):
        time_entries[0].notes = "Pulled WIRE in bay 3"
        await session.flush()

        entries = await matching_entries(session, TimeEntryFilter(notes_contains="wire"))

        assert [e.time_entry_id for e in entries] == [time_entries[0].time_entry_id]

    @pytest.mark.asyncio
    async def test_combined_fields(self, session, time_entries, local_employee, union_employee):
        assert await matching_entries(
            session, TimeEntryFilter(employee_id=union_employee.employee_id)
        ) == []
        entries = await matching_entries(
            session,
            TimeEntryFilter(employee_id=local_employee.employee_id, payment_status="pending"),
        )
        assert len(entries) == 2


class TestExpenseFilter:
    """Test expense filter semantics."""

    @pytest.mark.asyncio
    async def test_category_and_vendor(self, session, expenses, test_vendors):
        by_category = await matching_expenses(session, ExpenseFilter(category="tool"))
        by_vendor = await matching_expenses(
            session, ExpenseFilter(vendor_id=test_vendors["lumber"].vendor_id)
        )

        assert [e.amount for e in by_category] == [Decimal("40.00")]
        assert [e.amount for e in by_vendor] == [Decimal("60.00")]

    @pytest.mark.asyncio
    async def test_incurred_range(self, session, expenses):
        found = await matching_expenses(
            session,
            ExpenseFilter(
                incurred_from=datetime(2024, 4, 1, tzinfo=timezone.utc),
                incurred_to=datetime(2024, 4, 30, tzinfo=timezone.utc),
            ),
        )

        assert [e.description for e in found] == ["Bender rental"]

    @pytest.mark.asyncio
    async def test_description_substring(self, session, expenses):
        found = await matching_expenses(session, ExpenseFilter(description_contains="CONDUIT"))

        assert len(found) == 1
