"""Type definitions for the costing calculators."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from jobcost_engine.exceptions import RateNotConfiguredError

ZERO = Decimal("0")
HUNDRED = Decimal("100")

CENTS = Decimal("0.01")
PERCENT_PRECISION = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Coerce a nullable numeric value to Decimal, treating None as zero."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_to_cents(amount: Decimal) -> Decimal:
    """Round amount to 2 decimal places (cents)."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def round_percent(pct: Decimal) -> Decimal:
    """Round a percentage to 2 decimal places."""
    return pct.quantize(PERCENT_PRECISION, rounding=ROUND_HALF_UP)


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """part/whole*100, or 0 when whole is not positive. Unrounded."""
    if whole <= 0:
        return ZERO
    return part / whole * HUNDRED


@dataclass(frozen=True)
class HourBreakdown:
    """Hours split by pay tier."""

    regular: Decimal = ZERO
    overtime: Decimal = ZERO
    double: Decimal = ZERO

    @classmethod
    def from_entry(cls, entry: Any) -> HourBreakdown:
        """Build from anything with regular/overtime/double hour attributes."""
        return cls(
            regular=to_decimal(getattr(entry, "regular_hours", None)),
            overtime=to_decimal(getattr(entry, "overtime_hours", None)),
            double=to_decimal(getattr(entry, "double_hours", None)),
        )

    @property
    def total(self) -> Decimal:
        return self.regular + self.overtime + self.double

    def scaled(self, factor: Decimal) -> HourBreakdown:
        return HourBreakdown(
            regular=self.regular * factor,
            overtime=self.overtime * factor,
            double=self.double * factor,
        )

    def __add__(self, other: HourBreakdown) -> HourBreakdown:
        return HourBreakdown(
            regular=self.regular + other.regular,
            overtime=self.overtime + other.overtime,
            double=self.double + other.double,
        )


class RateSource(str, Enum):
    """Where a resolved hourly rate came from."""

    LOCAL = "local"
    UNION = "union"
    NOT_CONFIGURED = "not_configured"


@dataclass(frozen=True)
class RateResolution:
    """Outcome of resolving an employee's hourly rate on a date.

    ``hourly_rate`` is None when no rate is configured; callers decide whether
    that excludes the employee, fails the operation, or counts as zero.
    """

    employee_id: UUID | None
    as_of_date: date
    hourly_rate: Decimal | None
    source: RateSource
    base_rate_id: UUID | None = None

    @classmethod
    def not_configured(cls, employee_id: UUID | None, as_of_date: date) -> RateResolution:
        return cls(
            employee_id=employee_id,
            as_of_date=as_of_date,
            hourly_rate=None,
            source=RateSource.NOT_CONFIGURED,
        )

    @property
    def configured(self) -> bool:
        return self.hourly_rate is not None

    @property
    def hourly_rate_or_zero(self) -> Decimal:
        """Legacy reporting behavior: a missing rate counts as zero."""
        return self.hourly_rate if self.hourly_rate is not None else ZERO

    def require(self) -> Decimal:
        """Return the rate, raising RateNotConfiguredError when missing."""
        if self.hourly_rate is None:
            raise RateNotConfiguredError(self.employee_id, self.as_of_date)
        return self.hourly_rate
