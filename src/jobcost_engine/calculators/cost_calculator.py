"""Labor cost of time entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Mapping
from uuid import UUID

from jobcost_engine.calculators.types import (
    ZERO,
    HourBreakdown,
    RateResolution,
    round_to_cents,
)
from jobcost_engine.models import EmployeeType

if TYPE_CHECKING:
    from jobcost_engine.models import TimeEntry

OVERTIME_MULTIPLIER = Decimal("1.5")
DOUBLE_MULTIPLIER = Decimal("2.0")


def entry_cost(hours: HourBreakdown, hourly_rate: Decimal) -> Decimal:
    """Cost of a set of hours at an hourly rate. Unrounded."""
    return (
        hours.regular * hourly_rate
        + hours.overtime * hourly_rate * OVERTIME_MULTIPLIER
        + hours.double * hourly_rate * DOUBLE_MULTIPLIER
    )


def tier_amounts(hours: HourBreakdown, hourly_rate: Decimal) -> HourBreakdown:
    """Per-tier amounts, rounded to cents, as an HourBreakdown of money."""
    return HourBreakdown(
        regular=round_to_cents(hours.regular * hourly_rate),
        overtime=round_to_cents(hours.overtime * hourly_rate * OVERTIME_MULTIPLIER),
        double=round_to_cents(hours.double * hourly_rate * DOUBLE_MULTIPLIER),
    )


def rate_reference_date(entry_date: date, as_of: date) -> date:
    """Date on which reports resolve the rate for hours worked on entry_date.

    Reports price historical hours at the rate in effect on ``as_of``.
    """
    return as_of


def month_of(day: date) -> str:
    """Calendar month key, e.g. '2024-03'."""
    return f"{day.year:04d}-{day.month:02d}"


@dataclass
class EmployeeLabor:
    """Hours and cost of one employee."""

    employee_id: UUID
    name: str
    employee_type: str
    hourly_rate: Decimal
    hours: HourBreakdown = field(default_factory=HourBreakdown)
    cost: Decimal = ZERO


@dataclass
class MonthLabor:
    """Hours and cost in one calendar month."""

    month: str
    hours: HourBreakdown = field(default_factory=HourBreakdown)
    cost: Decimal = ZERO


@dataclass
class LaborCostBreakdown:
    """Labor cost of a set of time entries, grouped several ways.

    Amounts are unrounded; round at the output boundary.
    """

    total_cost: Decimal = ZERO
    hours: HourBreakdown = field(default_factory=HourBreakdown)
    by_employee: dict[UUID, EmployeeLabor] = field(default_factory=dict)
    by_type: dict[str, Decimal] = field(default_factory=dict)
    by_month: dict[str, MonthLabor] = field(default_factory=dict)
    unrated_employee_ids: set[UUID] = field(default_factory=set)

    @property
    def partial(self) -> bool:
        """True when some entries were excluded for lack of a rate."""
        return bool(self.unrated_employee_ids)

    def employees_by_cost(self) -> list[EmployeeLabor]:
        return sorted(self.by_employee.values(), key=lambda e: e.cost, reverse=True)

    def months(self) -> list[MonthLabor]:
        return [self.by_month[k] for k in sorted(self.by_month)]

    def merge(self, other: LaborCostBreakdown) -> LaborCostBreakdown:
        """Fold another breakdown into this one and return self."""
        self.total_cost += other.total_cost
        self.hours = self.hours + other.hours
        for employee_id, labor in other.by_employee.items():
            mine = self.by_employee.get(employee_id)
            if mine is None:
                self.by_employee[employee_id] = labor
            else:
                mine.hours = mine.hours + labor.hours
                mine.cost += labor.cost
        for employee_type, cost in other.by_type.items():
            self.by_type[employee_type] = self.by_type.get(employee_type, ZERO) + cost
        for key, month in other.by_month.items():
            mine = self.by_month.get(key)
            if mine is None:
                self.by_month[key] = month
            else:
                mine.hours = mine.hours + month.hours
                mine.cost += month.cost
        self.unrated_employee_ids |= other.unrated_employee_ids
        return self


def total_labor_cost(
    entries: Iterable[TimeEntry],
    rates: Mapping[UUID, RateResolution],
) -> LaborCostBreakdown:
    """Sum the labor cost of entries.

    Args:
        entries: Time entries with their ``employee`` loaded
        rates: Resolved rate per employee_id

    Entries whose employee has no configured rate are left out of every total
    and their employee ids are collected in ``unrated_employee_ids``.
    """
    breakdown = LaborCostBreakdown()

    for entry in entries:
        resolution = rates.get(entry.employee_id)
        if resolution is None or not resolution.configured:
            breakdown.unrated_employee_ids.add(entry.employee_id)
            continue

        hours = HourBreakdown.from_entry(entry)
        cost = entry_cost(hours, resolution.hourly_rate)
        employee = entry.employee
        employee_type = EmployeeType(employee.employee_type).value

        breakdown.total_cost += cost
        breakdown.hours = breakdown.hours + hours

        per_employee = breakdown.by_employee.get(entry.employee_id)
        if per_employee is None:
            per_employee = EmployeeLabor(
                employee_id=entry.employee_id,
                name=employee.full_name,
                employee_type=employee_type,
                hourly_rate=resolution.hourly_rate,
            )
            breakdown.by_employee[entry.employee_id] = per_employee
        per_employee.hours = per_employee.hours + hours
        per_employee.cost += cost

        breakdown.by_type[employee_type] = breakdown.by_type.get(employee_type, ZERO) + cost

        key = month_of(entry.work_date)
        per_month = breakdown.by_month.setdefault(key, MonthLabor(month=key))
        per_month.hours = per_month.hours + hours
        per_month.cost += cost

    return breakdown
