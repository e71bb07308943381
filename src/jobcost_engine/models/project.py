"""Project and work breakdown models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from jobcost_engine.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from jobcost_engine.models.company import Client, Company, Contractor
    from jobcost_engine.models.expense import Expense
    from jobcost_engine.models.labor import TimeEntry


class ProjectStatus(str, Enum):
    """Project status values."""

    PLANNING = "planning"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Project(Base, TimestampMixin):
    """Construction project with a contract value."""

    __tablename__ = "project"

    project_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="RESTRICT"),
        nullable=False,
    )
    client_id: Mapped[UUID] = mapped_column(
        ForeignKey("client.client_id", ondelete="RESTRICT"),
        nullable=False,
    )
    contractor_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("contractor.contractor_id", ondelete="SET NULL"),
        nullable=True,
    )
    code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    value: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=ProjectStatus.PLANNING.value
    )
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint("company_id", "code", name="project_company_code_unique"),
        CheckConstraint(
            "status IN ('planning', 'in_progress', 'on_hold', 'completed', 'cancelled')",
            name="project_status_check",
        ),
        CheckConstraint("value >= 0", name="project_value_non_negative"),
    )

    # Relationships
    company: Mapped[Company] = relationship(back_populates="projects")
    client: Mapped[Client] = relationship(back_populates="projects")
    contractor: Mapped[Contractor | None] = relationship()
    scopes: Mapped[list[Scope]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Scope.code",
    )
    work_items: Mapped[list[WorkItem]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
    )
    time_entries: Mapped[list[TimeEntry]] = relationship(back_populates="project")
    expenses: Mapped[list[Expense]] = relationship(back_populates="project")


class Scope(Base, TimestampMixin):
    """Top level of a project's work breakdown."""

    __tablename__ = "scope"

    scope_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("project.project_id", ondelete="CASCADE"),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (UniqueConstraint("project_id", "code", name="scope_project_code_unique"),)

    # Relationships
    project: Mapped[Project] = relationship(back_populates="scopes")
    sub_scopes: Mapped[list[SubScope]] = relationship(
        back_populates="scope",
        cascade="all, delete-orphan",
        order_by="SubScope.code",
    )


class SubScope(Base, TimestampMixin):
    """Second level of the work breakdown; holds work item quantities."""

    __tablename__ = "sub_scope"

    sub_scope_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    scope_id: Mapped[UUID] = mapped_column(
        ForeignKey("scope.scope_id", ondelete="CASCADE"),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (UniqueConstraint("scope_id", "code", name="sub_scope_scope_code_unique"),)

    # Relationships
    scope: Mapped[Scope] = relationship(back_populates="sub_scopes")
    quantities: Mapped[list[WorkItemQuantity]] = relationship(
        back_populates="sub_scope",
        cascade="all, delete-orphan",
    )


class WorkItem(Base, TimestampMixin):
    """Priced unit of work within a project (e.g. linear feet of conduit)."""

    __tablename__ = "work_item"

    work_item_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("project.project_id", ondelete="CASCADE"),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    unit: Mapped[str] = mapped_column(String, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)

    __table_args__ = (
        UniqueConstraint("project_id", "code", name="work_item_project_code_unique"),
        CheckConstraint("unit_price >= 0", name="work_item_unit_price_non_negative"),
    )

    # Relationships
    project: Mapped[Project] = relationship(back_populates="work_items")


class WorkItemQuantity(Base, TimestampMixin):
    """Planned and completed quantity of a work item within a sub-scope."""

    __tablename__ = "work_item_quantity"

    work_item_quantity_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    sub_scope_id: Mapped[UUID] = mapped_column(
        ForeignKey("sub_scope.sub_scope_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("work_item.work_item_id", ondelete="RESTRICT"),
        nullable=False,
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    completed: Mapped[Decimal] = mapped_column(
        Numeric(12, 4), nullable=False, default=Decimal("0")
    )

    __table_args__ = (
        UniqueConstraint(
            "sub_scope_id", "work_item_id", name="work_item_quantity_sub_scope_item_unique"
        ),
        CheckConstraint("quantity >= 0", name="work_item_quantity_quantity_non_negative"),
        CheckConstraint("completed >= 0", name="work_item_quantity_completed_non_negative"),
        CheckConstraint("completed <= quantity", name="work_item_quantity_completed_le_quantity"),
    )

    # Relationships
    sub_scope: Mapped[SubScope] = relationship(back_populates="quantities")
    work_item: Mapped[WorkItem] = relationship()
