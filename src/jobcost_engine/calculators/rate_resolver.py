"""Hourly rate resolution for local and union employees."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jobcost_engine.calculators.types import RateResolution, RateSource
from jobcost_engine.models import BaseRate, CustomRate, EmployeeType

if TYPE_CHECKING:
    from jobcost_engine.models import Employee


def _in_effect(model, as_of_date: date):
    """Inclusive interval predicate shared by base and custom rates."""
    return (
        (model.effective_date <= as_of_date)
        & (model.end_date.is_(None) | (model.end_date >= as_of_date))
    )


class RateResolver:
    """Resolves the hourly rate an employee is paid on a date.

    Rate selection:
    1. Local employees use their scalar ``rate``; no temporal lookup.
    2. Union employees use the regular rate of their class's base rate whose
       inclusive [effective_date, end_date] interval contains the date.
       When intervals overlap the latest effective_date wins.
    3. Nothing configured yields a not-configured resolution, or
       RateNotConfiguredError when ``strict`` is set.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve_rate(
        self,
        union_class_id: UUID,
        as_of_date: date,
    ) -> RateResolution:
        """Resolve a union class's regular rate as of a date."""
        base_rate = await self.find_base_rate(union_class_id, as_of_date)
        if base_rate is None:
            return RateResolution.not_configured(None, as_of_date)
        return RateResolution(
            employee_id=None,
            as_of_date=as_of_date,
            hourly_rate=base_rate.regular_rate,
            source=RateSource.UNION,
            base_rate_id=base_rate.base_rate_id,
        )

    async def find_base_rate(
        self,
        union_class_id: UUID,
        as_of_date: date,
    ) -> BaseRate | None:
        """Get the base rate row in effect, or None."""
        result = await self.session.execute(
            select(BaseRate)
            .where(
                BaseRate.union_class_id == union_class_id,
                _in_effect(BaseRate, as_of_date),
            )
            .order_by(BaseRate.effective_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def resolve_for_employee(
        self,
        employee: Employee,
        as_of_date: date,
        strict: bool = False,
    ) -> RateResolution:
        """Resolve an employee's hourly rate.

        Args:
            employee: The employee to resolve
            as_of_date: The date the rate must be in effect on
            strict: Raise instead of returning a not-configured resolution

        Raises:
            RateNotConfiguredError: If strict and no rate is configured
        """
        if employee.employee_type == EmployeeType.UNION:
            if employee.union_class_id is None:
                resolution = RateResolution.not_configured(employee.employee_id, as_of_date)
            else:
                base_rate = await self.find_base_rate(employee.union_class_id, as_of_date)
                resolution = self._from_base_rate(employee.employee_id, as_of_date, base_rate)
        else:
            resolution = self._from_local_rate(employee, as_of_date)

        if strict:
            resolution.require()
        return resolution

    async def resolve_for_employees(
        self,
        employees: Iterable[Employee],
        as_of_date: date,
    ) -> dict[UUID, RateResolution]:
        """Resolve a batch of employees, loading union base rates in one query."""
        employees = list(employees)
        class_ids = {
            e.union_class_id
            for e in employees
            if e.employee_type == EmployeeType.UNION and e.union_class_id is not None
        }

        # Descending order means the first row seen per class is the winner
        rates_by_class: dict[UUID, BaseRate] = {}
        if class_ids:
            result = await self.session.execute(
                select(BaseRate)
                .where(
                    BaseRate.union_class_id.in_(class_ids),
                    _in_effect(BaseRate, as_of_date),
                )
                .order_by(BaseRate.union_class_id, BaseRate.effective_date.desc())
            )
            for base_rate in result.scalars().all():
                rates_by_class.setdefault(base_rate.union_class_id, base_rate)

        resolutions: dict[UUID, RateResolution] = {}
        for employee in employees:
            if employee.employee_type == EmployeeType.UNION:
                base_rate = (
                    rates_by_class.get(employee.union_class_id)
                    if employee.union_class_id is not None
                    else None
                )
                resolutions[employee.employee_id] = self._from_base_rate(
                    employee.employee_id, as_of_date, base_rate
                )
            else:
                resolutions[employee.employee_id] = self._from_local_rate(employee, as_of_date)
        return resolutions

    async def active_custom_rates(
        self,
        union_class_id: UUID,
        as_of_date: date,
    ) -> list[CustomRate]:
        """List supplemental rates of a union class in effect on a date."""
        result = await self.session.execute(
            select(CustomRate)
            .where(
                CustomRate.union_class_id == union_class_id,
                _in_effect(CustomRate, as_of_date),
            )
            .order_by(CustomRate.name)
        )
        return list(result.scalars().all())

    @staticmethod
    def _from_base_rate(
        employee_id: UUID,
        as_of_date: date,
        base_rate: BaseRate | None,
    ) -> RateResolution:
        if base_rate is None:
            return RateResolution.not_configured(employee_id, as_of_date)
        return RateResolution(
            employee_id=employee_id,
            as_of_date=as_of_date,
            hourly_rate=base_rate.regular_rate,
            source=RateSource.UNION,
            base_rate_id=base_rate.base_rate_id,
        )

    @staticmethod
    def _from_local_rate(employee: Employee, as_of_date: date) -> RateResolution:
        if employee.rate is None:
            return RateResolution.not_configured(employee.employee_id, as_of_date)
        return RateResolution(
            employee_id=employee.employee_id,
            as_of_date=as_of_date,
            hourly_rate=employee.rate,
            source=RateSource.LOCAL,
        )
