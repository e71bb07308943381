"""Work item progress updates and project completion lookups."""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from jobcost_engine.calculators.completion import (
    ProjectCompletion,
    project_completion,
    validate_progress,
)
from jobcost_engine.calculators.types import ZERO
from jobcost_engine.exceptions import NotFoundError, ValidationError
from jobcost_engine.models import (
    Project,
    Scope,
    SubScope,
    WorkItem,
    WorkItemQuantity,
)

logger = logging.getLogger(__name__)


def project_tree_options():
    """Loader options for the full scope -> sub-scope -> item tree."""
    return (
        selectinload(Project.scopes)
        .selectinload(Scope.sub_scopes)
        .selectinload(SubScope.quantities)
        .selectinload(WorkItemQuantity.work_item),
    )


class CompletionService:
    """Service for recording work item progress within sub-scopes."""

    def __init__(self, session: AsyncSession, company_id: UUID):
        self.session = session
        self.company_id = company_id

    async def get_sub_scope(self, sub_scope_id: UUID) -> SubScope:
        result = await self.session.execute(
            select(SubScope)
            .join(Scope, Scope.scope_id == SubScope.scope_id)
            .join(Project, Project.project_id == Scope.project_id)
            .where(
                SubScope.sub_scope_id == sub_scope_id,
                Project.company_id == self.company_id,
            )
            .options(selectinload(SubScope.scope))
        )
        sub_scope = result.scalar_one_or_none()
        if sub_scope is None:
            raise NotFoundError("SubScope", sub_scope_id)
        return sub_scope

    async def get_quantity(self, sub_scope_id: UUID, work_item_id: UUID) -> WorkItemQuantity:
        """Load the quantity row of a work item in a sub-scope, locked for update."""
        await self.get_sub_scope(sub_scope_id)
        result = await self.session.execute(
            select(WorkItemQuantity)
            .where(
                WorkItemQuantity.sub_scope_id == sub_scope_id,
                WorkItemQuantity.work_item_id == work_item_id,
            )
            .options(selectinload(WorkItemQuantity.work_item))
            .with_for_update()
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError("WorkItemQuantity", f"{sub_scope_id}/{work_item_id}")
        return row

    async def update_quantity(
        self,
        sub_scope_id: UUID,
        work_item_id: UUID,
        quantity: Decimal | None = None,
        completed: Decimal | None = None,
    ) -> WorkItemQuantity:
        """Set the planned and/or completed quantity of a work item.

        Raises:
            NotFoundError: If the row is not found
            ValidationError: If a value is negative or completed exceeds quantity
        """
        row = await self.get_quantity(sub_scope_id, work_item_id)
        new_quantity = Decimal(quantity) if quantity is not None else row.quantity
        new_completed = Decimal(completed) if completed is not None else row.completed
        validate_progress(new_quantity, new_completed)

        row.quantity = new_quantity
        row.completed = new_completed
        await self.session.flush()
        return row

    async def record_progress(
        self,
        sub_scope_id: UUID,
        work_item_id: UUID,
        increment: Decimal,
    ) -> WorkItemQuantity:
        """Add completed units to a work item.

        Raises:
            NotFoundError: If the row is not found
            ValidationError: If the increment is negative or overshoots quantity
        """
        increment = Decimal(increment)
        if increment < 0:
            raise ValidationError("increment", "must not be negative")

        row = await self.get_quantity(sub_scope_id, work_item_id)
        new_completed = row.completed + increment
        validate_progress(row.quantity, new_completed)

        row.completed = new_completed
        await self.session.flush()
        logger.info(
            "Recorded %s units on work item %s in sub-scope %s",
            increment,
            work_item_id,
            sub_scope_id,
        )
        return row

    async def add_work_item_to_sub_scope(
        self,
        sub_scope_id: UUID,
        work_item_id: UUID,
        quantity: Decimal,
        completed: Decimal = ZERO,
    ) -> WorkItemQuantity:
        """Plan a quantity of a project work item within a sub-scope.

        Raises:
            NotFoundError: If the sub-scope or work item is not found
            ValidationError: If the pair already exists or values are invalid
        """
        quantity, completed = Decimal(quantity), Decimal(completed)
        validate_progress(quantity, completed)

        sub_scope = await self.get_sub_scope(sub_scope_id)
        work_item = await self.session.scalar(
            select(WorkItem).where(
                WorkItem.work_item_id == work_item_id,
                WorkItem.project_id == sub_scope.scope.project_id,
            )
        )
        if work_item is None:
            raise NotFoundError("WorkItem", work_item_id)

        existing = await self.session.scalar(
            select(WorkItemQuantity.work_item_quantity_id).where(
                WorkItemQuantity.sub_scope_id == sub_scope_id,
                WorkItemQuantity.work_item_id == work_item_id,
            )
        )
        if existing is not None:
            raise ValidationError("work_item_id", "work item is already in this sub-scope")

        row = WorkItemQuantity(
            sub_scope_id=sub_scope_id,
            work_item_id=work_item_id,
            quantity=quantity,
            completed=completed,
        )
        row.work_item = work_item
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_project(self, project_id: UUID) -> Project:
        result = await self.session.execute(
            select(Project)
            .where(
                Project.project_id == project_id,
                Project.company_id == self.company_id,
            )
            .options(*project_tree_options(), selectinload(Project.client))
            .execution_options(populate_existing=True)
        )
        project = result.scalar_one_or_none()
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    async def get_project_completion(self, project_id: UUID) -> ProjectCompletion:
        project = await self.get_project(project_id)
        return project_completion(project)
