"""Settlement of approved time entries into payments."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from jobcost_engine.calculators.cost_calculator import tier_amounts
from jobcost_engine.calculators.rate_resolver import RateResolver
from jobcost_engine.calculators.types import ZERO, HourBreakdown, round_to_cents
from jobcost_engine.exceptions import (
    NoPayableEntriesError,
    NotFoundError,
    TransactionConflictError,
    ValidationError,
)
from jobcost_engine.models import Employee, Payment, PaymentStatus, TimeEntry
from jobcost_engine.queries import PaymentFilter

logger = logging.getLogger(__name__)


class SettlementService:
    """Service for paying employees for approved hours.

    Settlement runs inside the caller's unit of work:
    1. Lock the employee's approved entries among the requested ids
    2. Resolve the hourly rate as of the payment date
    3. Compute per-tier amounts and the net total
    4. Insert the payment and mark the entries paid with a conditional update

    If the conditional update matches fewer rows than were locked, another
    settlement got there first and TransactionConflictError is raised so the
    unit of work rolls back.
    """

    def __init__(self, session: AsyncSession, company_id: UUID):
        self.session = session
        self.company_id = company_id
        self.rate_resolver = RateResolver(session)

    async def settle(
        self,
        employee_id: UUID,
        entry_ids: Iterable[UUID],
        payment_date: date,
        deductions: Decimal = ZERO,
        reference: str | None = None,
        notes: str | None = None,
    ) -> Payment:
        """Create a payment for the employee's approved entries.

        Approved entries are row-locked. Under READ COMMITTED a caller that
        loses a race waits on the lock and then finds nothing payable. Under
        SERIALIZABLE the same caller gets TransactionConflictError instead.

        Args:
            employee_id: Employee being paid
            entry_ids: Candidate entries; non-approved or foreign ones are ignored
            payment_date: Date the rate is resolved on
            deductions: Amount withheld from the gross
            reference: External payment reference
            notes: Free text

        Returns:
            The created payment (status paid)

        Raises:
            NotFoundError: If the employee is not in the caller's company
            NoPayableEntriesError: If no approved entries remain
            RateNotConfiguredError: If the employee has no rate on payment_date
            ValidationError: If deductions are negative or exceed the gross
            TransactionConflictError: If a concurrent settlement paid the entries
        """
        deductions = Decimal(deductions)
        if deductions < 0:
            raise ValidationError("deductions", "must not be negative")

        employee = await self._get_employee(employee_id)
        entries = await self._load_payable_entries(employee_id, list(entry_ids))
        if not entries:
            raise NoPayableEntriesError(employee_id)

        resolution = await self.rate_resolver.resolve_for_employee(
            employee, payment_date, strict=True
        )
        hourly_rate = resolution.hourly_rate

        hours = HourBreakdown()
        for entry in entries:
            hours = hours + HourBreakdown.from_entry(entry)
        amounts = tier_amounts(hours, hourly_rate)
        gross = amounts.total
        if deductions > gross:
            raise ValidationError("deductions", f"deductions {deductions} exceed gross {gross}")

        payment = Payment(
            employee_id=employee_id,
            payment_date=payment_date,
            hourly_rate=hourly_rate,
            regular_amount=amounts.regular,
            overtime_amount=amounts.overtime,
            double_amount=amounts.double,
            deductions=round_to_cents(deductions),
            total_amount=round_to_cents(gross - deductions),
            status=PaymentStatus.PAID.value,
            reference=reference,
            notes=notes,
        )
        self.session.add(payment)
        await self.session.flush()

        locked_ids = [e.time_entry_id for e in entries]
        result = await self.session.execute(
            update(TimeEntry)
            .where(
                TimeEntry.time_entry_id.in_(locked_ids),
                TimeEntry.payment_status == PaymentStatus.APPROVED.value,
            )
            .values(
                payment_status=PaymentStatus.PAID.value,
                payment_id=payment.payment_id,
            )
            .returning(TimeEntry.time_entry_id)
        )
        paid_ids = result.scalars().all()

        if len(paid_ids) != len(locked_ids):
            logger.warning(
                "Settlement conflict for employee %s: %d of %d entries still approved",
                employee_id,
                len(paid_ids),
                len(locked_ids),
            )
            raise TransactionConflictError(
                f"Time entries for employee {employee_id} changed during settlement"
            )

        logger.info(
            "Settled %d entries for employee %s: payment %s total %s",
            len(locked_ids),
            employee_id,
            payment.payment_id,
            payment.total_amount,
        )
        return payment

    async def _get_employee(self, employee_id: UUID) -> Employee:
        result = await self.session.execute(
            select(Employee).where(
                Employee.employee_id == employee_id,
                Employee.company_id == self.company_id,
            )
        )
        employee = result.scalar_one_or_none()
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return employee

    async def _load_payable_entries(
        self,
        employee_id: UUID,
        entry_ids: list[UUID],
    ) -> list[TimeEntry]:
        """Lock and return the employee's approved entries among entry_ids."""
        if not entry_ids:
            return []
        result = await self.session.execute(
            select(TimeEntry)
            .where(
                TimeEntry.time_entry_id.in_(entry_ids),
                TimeEntry.employee_id == employee_id,
                TimeEntry.payment_status == PaymentStatus.APPROVED.value,
            )
            .order_by(TimeEntry.work_date)
            .with_for_update()
        )
        return list(result.scalars().all())

    async def get_payment(self, payment_id: UUID) -> Payment:
        """Load a payment with its time entries.

        Raises:
            NotFoundError: If absent or owned by another company
        """
        result = await self.session.execute(
            select(Payment)
            .join(Employee, Employee.employee_id == Payment.employee_id)
            .where(
                Payment.payment_id == payment_id,
                Employee.company_id == self.company_id,
            )
            .options(selectinload(Payment.time_entries), selectinload(Payment.employee))
            .execution_options(populate_existing=True)
        )
        payment = result.scalar_one_or_none()
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        return payment

    async def list_payments(
        self,
        filters: PaymentFilter | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[Payment], int]:
        """List payments matching a filter, newest first.

        Returns the page of payments and the total match count.
        """
        filters = filters or PaymentFilter()
        base = filters.apply(
            select(Payment)
            .join(Employee, Employee.employee_id == Payment.employee_id)
            .where(Employee.company_id == self.company_id)
        )

        total = await self.session.scalar(select(func.count()).select_from(base.subquery()))
        result = await self.session.execute(
            base.options(selectinload(Payment.time_entries), selectinload(Payment.employee))
            .execution_options(populate_existing=True)
            .order_by(Payment.payment_date.desc(), Payment.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total or 0
