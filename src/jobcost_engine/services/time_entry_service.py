"""Time entry lifecycle: approval, cancellation, edits and deletion."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from jobcost_engine.calculators.types import ZERO
from jobcost_engine.exceptions import (
    EntryLockedError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from jobcost_engine.models import Employee, PaymentStatus, Project, TimeEntry
from jobcost_engine.queries import TimeEntryFilter
from jobcost_engine.services.state_machine import TimeEntryStateMachine

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "project_id",
    "work_date",
    "regular_hours",
    "overtime_hours",
    "double_hours",
    "notes",
    "payment_status",
)

_HOUR_FIELDS = ("regular_hours", "overtime_hours", "double_hours")
_REQUIRED_FIELDS = ("work_date", "payment_status")


class TimeEntryService:
    """Service for time entry status changes and edits.

    Operations:
    - approve: pending → approved, in bulk
    - cancel: pending/approved → cancelled, in bulk
    - update_entry: edit a non-paid entry
    - delete_entry: remove a non-paid entry
    - list_entries: filtered, paginated listing

    All queries are scoped to the caller's company through the employee.
    """

    def __init__(self, session: AsyncSession, company_id: UUID):
        self.session = session
        self.company_id = company_id

    def _company_employees(self):
        return select(Employee.employee_id).where(Employee.company_id == self.company_id)

    async def get_entry(self, time_entry_id: UUID, for_update: bool = False) -> TimeEntry:
        """Load a time entry of the caller's company.

        Raises:
            NotFoundError: If absent or owned by another company
        """
        query = select(TimeEntry).where(
            TimeEntry.time_entry_id == time_entry_id,
            TimeEntry.employee_id.in_(self._company_employees()),
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        entry = result.scalar_one_or_none()
        if entry is None:
            raise NotFoundError("TimeEntry", time_entry_id)
        return entry

    async def approve(self, entry_ids: Iterable[UUID]) -> int:
        """Approve pending entries; others are skipped.

        Returns the number of entries approved.
        """
        return await self._bulk_transition(entry_ids, PaymentStatus.APPROVED)

    async def cancel(self, entry_ids: Iterable[UUID]) -> int:
        """Cancel pending or approved entries; others are skipped.

        Returns the number of entries cancelled.
        """
        return await self._bulk_transition(entry_ids, PaymentStatus.CANCELLED)

    async def _bulk_transition(self, entry_ids: Iterable[UUID], to_status: PaymentStatus) -> int:
        entry_ids = list(entry_ids)
        if not entry_ids:
            return 0

        from_statuses = TimeEntryStateMachine.sources_of(to_status)
        result = await self.session.execute(
            update(TimeEntry)
            .where(
                TimeEntry.time_entry_id.in_(entry_ids),
                TimeEntry.payment_status.in_(from_statuses),
                TimeEntry.employee_id.in_(self._company_employees()),
            )
            .values(payment_status=to_status.value)
            .returning(TimeEntry.time_entry_id)
            .execution_options(synchronize_session="fetch")
        )
        count = len(result.scalars().all())
        logger.info(
            "Moved %d of %d time entries to %s for company %s",
            count,
            len(entry_ids),
            to_status.value,
            self.company_id,
        )
        return count

    async def update_entry(self, time_entry_id: UUID, changes: dict[str, Any]) -> TimeEntry:
        """Apply field changes to a time entry.

        A paid entry is frozen: any update raises EntryLockedError, except one
        that itself carries ``payment_status=paid``. That update goes through
        with its other fields, and on its own it is a no-op.

        A null hour field counts as zero. ``work_date`` and ``payment_status``
        cannot be cleared.

        Raises:
            NotFoundError: If the entry (or a referenced project) is not found
            EntryLockedError: If the entry is paid
            InvalidTransitionError: If the status change is not allowed
            ValidationError: If a field is unknown, cleared or negative
        """
        entry = await self.get_entry(time_entry_id, for_update=True)
        changes = dict(changes)

        if TimeEntryStateMachine.is_locked(entry.payment_status):
            if changes.get("payment_status") != PaymentStatus.PAID:
                raise EntryLockedError(entry.time_entry_id)

        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(sorted(unknown)[0], "field cannot be updated")

        for field_name in _REQUIRED_FIELDS:
            if field_name in changes and changes[field_name] is None:
                raise ValidationError(field_name, "must not be null")

        for field_name in _HOUR_FIELDS:
            if field_name not in changes:
                continue
            if changes[field_name] is None:
                changes[field_name] = ZERO
            elif Decimal(changes[field_name]) < 0:
                raise ValidationError(field_name, "must not be negative")

        new_status = changes.get("payment_status")
        if new_status is not None and new_status != entry.payment_status:
            errors = TimeEntryStateMachine.validate_entry_for_transition(entry, new_status)
            if errors:
                raise InvalidTransitionError(
                    entry.payment_status, new_status, "; ".join(errors)
                )

        project_id = changes.get("project_id")
        if project_id is not None and project_id != entry.project_id:
            await self._check_project(project_id)

        for field_name, value in changes.items():
            if field_name == "payment_status":
                value = PaymentStatus(value).value
            setattr(entry, field_name, value)

        await self.session.flush()

        edited = sorted(set(changes) - {"payment_status"})
        if edited and entry.payment_status == PaymentStatus.PAID:
            logger.warning("Paid time entry %s edited: %s", entry.time_entry_id, ", ".join(edited))
        return entry

    async def delete_entry(self, time_entry_id: UUID) -> None:
        """Delete a time entry that has not been paid.

        Raises:
            NotFoundError: If the entry is not found
            EntryLockedError: If the entry is paid
        """
        entry = await self.get_entry(time_entry_id, for_update=True)
        if TimeEntryStateMachine.is_locked(entry.payment_status):
            raise EntryLockedError(entry.time_entry_id, action="delete")

        await self.session.delete(entry)
        await self.session.flush()
        logger.info("Deleted time entry %s", time_entry_id)

    async def list_entries(
        self,
        filters: TimeEntryFilter | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[TimeEntry], int]:
        """List entries matching a filter, newest work date first.

        Returns the page of entries and the total match count.
        """
        filters = filters or TimeEntryFilter()
        base = filters.apply(
            select(TimeEntry).where(TimeEntry.employee_id.in_(self._company_employees()))
        )

        total = await self.session.scalar(select(func.count()).select_from(base.subquery()))
        result = await self.session.execute(
            base.options(selectinload(TimeEntry.employee))
            .execution_options(populate_existing=True)
            .order_by(TimeEntry.work_date.desc(), TimeEntry.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total or 0

    async def _check_project(self, project_id: UUID) -> None:
        found = await self.session.scalar(
            select(Project.project_id).where(
                Project.project_id == project_id,
                Project.company_id == self.company_id,
            )
        )
        if found is None:
            raise NotFoundError("Project", project_id)
