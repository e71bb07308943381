"""Tests for hourly rate resolution."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from jobcost_engine.calculators.rate_resolver import RateResolver
from jobcost_engine.calculators.types import RateSource
from jobcost_engine.exceptions import RateNotConfiguredError
from jobcost_engine.models import BaseRate, CustomRate


async def supersede_rate(session, union_class, effective_date, regular):
    """Close the open rate on effective_date and add a new open one."""
    result = await session.execute(
        select(BaseRate).where(
            BaseRate.union_class_id == union_class.union_class_id,
            BaseRate.end_date.is_(None),
        )
    )
    for rate in result.scalars().all():
        rate.end_date = effective_date
    session.add(
        BaseRate(
            base_rate_id=uuid4(),
            union_class_id=union_class.union_class_id,
            regular_rate=regular,
            overtime_rate=regular * Decimal("1.5"),
            effective_date=effective_date,
        )
    )
    await session.flush()


class TestResolveRate:
    """Test union class base rate resolution over time."""

    @pytest.mark.asyncio
    async def test_open_rate_applies_from_effective_date(self, session, test_union_class):
        resolver = RateResolver(session)

        on_start = await resolver.resolve_rate(test_union_class.union_class_id, date(2024, 1, 1))
        later = await resolver.resolve_rate(test_union_class.union_class_id, date(2030, 6, 1))

        assert on_start.hourly_rate == Decimal("40.00")
        assert later.hourly_rate == Decimal("40.00")
        assert on_start.source == RateSource.UNION

    @pytest.mark.asyncio
    async def test_before_first_rate_is_not_configured(self, session, test_union_class):
        resolver = RateResolver(session)

        resolution = await resolver.resolve_rate(
            test_union_class.union_class_id, date(2023, 12, 31)
        )

        assert resolution.configured is False
        assert resolution.hourly_rate is None
        assert resolution.hourly_rate_or_zero == Decimal("0")

    @pytest.mark.asyncio
    async def test_superseding_rate(self, session, test_union_class):
        """Rate Jan 1 open; new rate Mar 1 closes it: Feb 15 old, Mar 1 onward new."""
        await supersede_rate(session, test_union_class, date(2024, 3, 1), Decimal("44.00"))
        resolver = RateResolver(session)
        class_id = test_union_class.union_class_id

        jan = await resolver.resolve_rate(class_id, date(2024, 1, 1))
        feb = await resolver.resolve_rate(class_id, date(2024, 2, 15))
        mar = await resolver.resolve_rate(class_id, date(2024, 3, 1))
        later = await resolver.resolve_rate(class_id, date(2024, 9, 30))

        assert jan.hourly_rate == Decimal("40.00")
        assert feb.hourly_rate == Decimal("40.00")
        assert mar.hourly_rate == Decimal("44.00")
        assert later.hourly_rate == Decimal("44.00")

    @pytest.mark.asyncio
    async def test_latest_effective_date_wins_on_overlap(self, session, test_union_class):
        # An open rate overlapping the existing open rate
        session.add(
            BaseRate(
                base_rate_id=uuid4(),
                union_class_id=test_union_class.union_class_id,
                regular_rate=Decimal("50.00"),
                overtime_rate=Decimal("75.00"),
                effective_date=date(2024, 6, 1),
            )
        )
        await session.flush()
        resolver = RateResolver(session)

        before = await resolver.resolve_rate(test_union_class.union_class_id, date(2024, 5, 31))
        after = await resolver.resolve_rate(test_union_class.union_class_id, date(2024, 6, 1))

        assert before.hourly_rate == Decimal("40.00")
        assert after.hourly_rate == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_unknown_class_is_not_configured(self, session):
        resolution = await RateResolver(session).resolve_rate(uuid4(), date(2024, 1, 1))
        assert resolution.configured is False


class TestResolveForEmployee:
    """Test employee rate dispatch on employee type."""

    @pytest.mark.asyncio
    async def test_local_employee_uses_scalar_rate(self, session, local_employee):
        resolution = await RateResolver(session).resolve_for_employee(
            local_employee, date(1999, 1, 1)
        )

        assert resolution.hourly_rate == Decimal("25.00")
        assert resolution.source == RateSource.LOCAL
        assert resolution.employee_id == local_employee.employee_id

    @pytest.mark.asyncio
    async def test_union_employee_uses_class_rate(self, session, union_employee):
        resolution = await RateResolver(session).resolve_for_employee(
            union_employee, date(2024, 2, 1)
        )

        assert resolution.hourly_rate == Decimal("40.00")
        assert resolution.base_rate_id is not None

    @pytest.mark.asyncio
    async def test_missing_rate_not_configured(self, session, unrated_employee):
        resolution = await RateResolver(session).resolve_for_employee(
            unrated_employee, date(2024, 2, 1)
        )
        assert resolution.configured is False

    @pytest.mark.asyncio
    async def test_strict_raises(self, session, unrated_employee):
        with pytest.raises(RateNotConfiguredError) as exc_info:
            await RateResolver(session).resolve_for_employee(
                unrated_employee, date(2024, 2, 1), strict=True
            )

        assert exc_info.value.employee_id == unrated_employee.employee_id
        assert exc_info.value.as_of_date == date(2024, 2, 1)

    @pytest.mark.asyncio
    async def test_batch_resolution(
        self, session, local_employee, union_employee, unrated_employee
    ):
        resolutions = await RateResolver(session).resolve_for_employees(
            [local_employee, union_employee, unrated_employee], date(2024, 2, 1)
        )

        assert resolutions[local_employee.employee_id].hourly_rate == Decimal("25.00")
        assert resolutions[union_employee.employee_id].hourly_rate == Decimal("40.00")
        assert resolutions[unrated_employee.employee_id].configured is False

    @pytest.mark.asyncio
    async def test_batch_resolution_picks_newest_rate(
        self, session, union_employee, test_union_class
    ):
        await supersede_rate(session, test_union_class, date(2024, 3, 1), Decimal("44.00"))

        resolutions = await RateResolver(session).resolve_for_employees(
            [union_employee], date(2024, 3, 1)
        )

        assert resolutions[union_employee.employee_id].hourly_rate == Decimal("44.00")


class TestCustomRates:
    """Test supplemental rate lookup."""

    @pytest.mark.asyncio
    async def test_active_custom_rates(self, session, test_union_class):
        class_id = test_union_class.union_class_id
        session.add_all(
            [
                CustomRate(
                    union_class_id=class_id,
                    name="Pension",
                    rate=Decimal("3.25"),
                    effective_date=date(2024, 1, 1),
                ),
                CustomRate(
                    union_class_id=class_id,
                    name="Annuity",
                    rate=Decimal("2.0"),
                    is_percentage=True,
                    effective_date=date(2024, 1, 1),
                    end_date=date(2024, 6, 30),
                ),
                CustomRate(
                    union_class_id=class_id,
                    name="Training",
                    rate=Decimal("0.50"),
                    effective_date=date(2025, 1, 1),
                ),
            ]
        )
        await session.flush()
        resolver = RateResolver(session)

        in_may = await resolver.active_custom_rates(class_id, date(2024, 5, 1))
        in_july = await resolver.active_custom_rates(class_id, date(2024, 7, 1))

        assert [r.name for r in in_may] == ["Annuity", "Pension"]
        assert [r.name for r in in_july] == ["Pension"]

    def test_is_active_on_is_inclusive(self):
        rate = BaseRate(
            regular_rate=Decimal("40"),
            overtime_rate=Decimal("60"),
            effective_date=date(2024, 1, 1),
            end_date=date(2024, 3, 1),
        )

        assert rate.is_active_on(date(2024, 1, 1)) is True
        assert rate.is_active_on(date(2024, 3, 1)) is True
        assert rate.is_active_on(date(2023, 12, 31)) is False
        assert rate.is_active_on(date(2024, 3, 2)) is False
