"""Typed query filters.

Each filter lists its fields with their matching semantics and knows how to
apply itself to a ``select``. Company scoping is applied by the services, not
by these filters.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Select

from jobcost_engine.models import Expense, Payment, TimeEntry


@dataclass(frozen=True)
class TimeEntryFilter:
    """Filter for time entries.

    - employee_id: equality
    - project_id: equality
    - payment_status: equality
    - date_from / date_to: inclusive range on work_date
    - notes_contains: case-insensitive substring of notes
    """

    employee_id: UUID | None = None
    project_id: UUID | None = None
    payment_status: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    notes_contains: str | None = None

    def apply(self, query: Select) -> Select:
        if self.employee_id is not None:
            query = query.where(TimeEntry.employee_id == self.employee_id)
        if self.project_id is not None:
            query = query.where(TimeEntry.project_id == self.project_id)
        if self.payment_status is not None:
            query = query.where(TimeEntry.payment_status == self.payment_status)
        if self.date_from is not None:
            query = query.where(TimeEntry.work_date >= self.date_from)
        if self.date_to is not None:
            query = query.where(TimeEntry.work_date <= self.date_to)
        if self.notes_contains:
            query = query.where(TimeEntry.notes.ilike(f"%{self.notes_contains}%"))
        return query


@dataclass(frozen=True)
class ExpenseFilter:
    """Filter for expenses.

    - project_id: equality
    - vendor_id: equality
    - category: equality
    - incurred_from / incurred_to: inclusive range on incurred_at
    - description_contains: case-insensitive substring of description
    """

    project_id: UUID | None = None
    vendor_id: UUID | None = None
    category: str | None = None
    incurred_from: datetime | None = None
    incurred_to: datetime | None = None
    description_contains: str | None = None

    def apply(self, query: Select) -> Select:
        if self.project_id is not None:
            query = query.where(Expense.project_id == self.project_id)
        if self.vendor_id is not None:
            query = query.where(Expense.vendor_id == self.vendor_id)
        if self.category is not None:
            query = query.where(Expense.category == self.category)
        if self.incurred_from is not None:
            query = query.where(Expense.incurred_at >= self.incurred_from)
        if self.incurred_to is not None:
            query = query.where(Expense.incurred_at <= self.incurred_to)
        if self.description_contains:
            query = query.where(Expense.description.ilike(f"%{self.description_contains}%"))
        return query


@dataclass(frozen=True)
class PaymentFilter:
    """Filter for payments.

    - employee_id: equality
    - status: equality
    - date_from / date_to: inclusive range on payment_date
    - reference_contains: case-insensitive substring of reference
    """

    employee_id: UUID | None = None
    status: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    reference_contains: str | None = None

    def apply(self, query: Select) -> Select:
        if self.employee_id is not None:
            query = query.where(Payment.employee_id == self.employee_id)
        if self.status is not None:
            query = query.where(Payment.status == self.status)
        if self.date_from is not None:
            query = query.where(Payment.payment_date >= self.date_from)
        if self.date_to is not None:
            query = query.where(Payment.payment_date <= self.date_to)
        if self.reference_contains:
            query = query.where(Payment.reference.ilike(f"%{self.reference_contains}%"))
        return query
