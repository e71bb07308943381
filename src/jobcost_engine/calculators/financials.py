"""Profit, margin and monthly bucketing math for project reports."""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping
from uuid import UUID

import pytz

from jobcost_engine.calculators.types import (
    HUNDRED,
    ZERO,
    percent_of,
    round_percent,
    round_to_cents,
)


def _money(amount: Decimal | None) -> str | None:
    return None if amount is None else str(round_to_cents(amount))


def _pct(pct: Decimal | None) -> str | None:
    return None if pct is None else str(round_percent(pct))


# ===== Profit =====


def profit_and_margin(completed_value: Decimal, total_cost: Decimal) -> tuple[Decimal, Decimal]:
    """Earned profit and margin percent (0 when nothing is completed)."""
    profit = completed_value - total_cost
    return profit, percent_of(profit, completed_value)


def projected_profit_and_margin(
    contract_value: Decimal,
    total_cost: Decimal,
    completion_pct: Decimal,
) -> tuple[Decimal | None, Decimal | None]:
    """Extrapolate cost to 100% completion and compare with the contract value.

    Both figures are None when completion is 0 (no basis to extrapolate).
    """
    if completion_pct <= 0:
        return None, None
    projected_cost = total_cost / (completion_pct / HUNDRED)
    projected_profit = contract_value - projected_cost
    if contract_value <= 0:
        return projected_profit, None
    return projected_profit, projected_profit / contract_value * HUNDRED


# ===== Calendar months =====


def month_key(moment: datetime | date, timezone: str = "UTC") -> str:
    """Calendar month of a moment in a timezone, e.g. '2024-03'.

    Naive datetimes are taken as UTC. Plain dates are already local.
    """
    if isinstance(moment, datetime):
        if moment.tzinfo is None:
            moment = pytz.utc.localize(moment)
        moment = moment.astimezone(pytz.timezone(timezone))
    return f"{moment.year:04d}-{moment.month:02d}"


def last_n_months(today: date, months: int) -> list[tuple[int, int]]:
    """The last ``months`` calendar months ending with today's, oldest first."""
    result = []
    year, month = today.year, today.month
    for _ in range(months):
        result.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(result))


def month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def month_bounds(year: int, month: int, timezone: str = "UTC") -> tuple[datetime, datetime]:
    """UTC [start, end) instants of a local calendar month."""
    tz = pytz.timezone(timezone)
    next_year, next_month = (year + 1, 1) if month == 12 else (year, month + 1)
    start = tz.localize(datetime(year, month, 1))
    end = tz.localize(datetime(next_year, next_month, 1))
    return start.astimezone(pytz.utc), end.astimezone(pytz.utc)


@dataclass
class MonthlyCost:
    """Cost incurred in one calendar month."""

    month: str
    labor_cost: Decimal = ZERO
    expense_cost: Decimal = ZERO
    cumulative_cost: Decimal = ZERO

    @property
    def total_cost(self) -> Decimal:
        return self.labor_cost + self.expense_cost

    def to_dict(self) -> dict[str, Any]:
        return {
            "month": self.month,
            "labor_cost": _money(self.labor_cost),
            "expense_cost": _money(self.expense_cost),
            "total_cost": _money(self.total_cost),
            "cumulative_cost": _money(self.cumulative_cost),
        }


def monthly_series(
    labor_by_month: Mapping[str, Decimal],
    expense_by_month: Mapping[str, Decimal],
) -> list[MonthlyCost]:
    """Merge labor and expense buckets chronologically with a running total."""
    series = []
    cumulative = ZERO
    for month in sorted(set(labor_by_month) | set(expense_by_month)):
        bucket = MonthlyCost(
            month=month,
            labor_cost=labor_by_month.get(month, ZERO),
            expense_cost=expense_by_month.get(month, ZERO),
        )
        cumulative += bucket.total_cost
        bucket.cumulative_cost = cumulative
        series.append(bucket)
    return series


def bucket_by_month(
    items: Iterable[Any],
    moment_attr: str,
    amount_attr: str,
    timezone: str = "UTC",
) -> dict[str, Decimal]:
    """Sum ``amount_attr`` of items by the month of ``moment_attr``."""
    buckets: dict[str, Decimal] = {}
    for item in items:
        key = month_key(getattr(item, moment_attr), timezone)
        buckets[key] = buckets.get(key, ZERO) + (getattr(item, amount_attr) or ZERO)
    return buckets


# ===== Report results =====


@dataclass
class ProjectFinancials:
    """Earned-value financial summary of a project."""

    project_id: UUID
    contract_value: Decimal
    completed_value: Decimal
    completion_pct: Decimal
    labor_cost: Decimal
    expense_cost: Decimal
    labor_by_type: dict[str, Decimal] = field(default_factory=dict)
    expenses_by_category: dict[str, Decimal] = field(default_factory=dict)
    unrated_employee_ids: list[UUID] = field(default_factory=list)

    @property
    def total_cost(self) -> Decimal:
        return self.labor_cost + self.expense_cost

    @property
    def profit(self) -> Decimal:
        return profit_and_margin(self.completed_value, self.total_cost)[0]

    @property
    def profit_margin(self) -> Decimal:
        return profit_and_margin(self.completed_value, self.total_cost)[1]

    @property
    def partial(self) -> bool:
        return bool(self.unrated_employee_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": str(self.project_id),
            "contract_value": _money(self.contract_value),
            "completed_value": _money(self.completed_value),
            "completion_pct": _pct(self.completion_pct),
            "labor_cost": _money(self.labor_cost),
            "expense_cost": _money(self.expense_cost),
            "total_cost": _money(self.total_cost),
            "profit": _money(self.profit),
            "profit_margin": _pct(self.profit_margin),
            "labor_by_type": {k: _money(v) for k, v in self.labor_by_type.items()},
            "expenses_by_category": {
                k: _money(v) for k, v in self.expenses_by_category.items()
            },
            "partial": self.partial,
            "unrated_employee_ids": [str(e) for e in self.unrated_employee_ids],
        }


@dataclass
class ProfitAnalysis:
    """Current and projected profit with the monthly cost series."""

    financials: ProjectFinancials
    monthly: list[MonthlyCost] = field(default_factory=list)

    @property
    def projected(self) -> tuple[Decimal | None, Decimal | None]:
        f = self.financials
        return projected_profit_and_margin(f.contract_value, f.total_cost, f.completion_pct)

    def to_dict(self) -> dict[str, Any]:
        projected_profit, projected_margin = self.projected
        return {
            **self.financials.to_dict(),
            "projected_profit": _money(projected_profit),
            "projected_margin": _pct(projected_margin),
            "monthly": [m.to_dict() for m in self.monthly],
        }
