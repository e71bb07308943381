"""Expense model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from jobcost_engine.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from jobcost_engine.models.company import Company, Vendor
    from jobcost_engine.models.project import Project


class ExpenseCategory(str, Enum):
    """Expense category values."""

    MATERIAL = "material"
    TOOL = "tool"
    RENTAL = "rental"
    OPERATIONAL = "operational"
    LABOR = "labor"
    OTHER = "other"


class Expense(Base, TimestampMixin):
    """Non-labor cost, optionally charged to a project and a vendor."""

    __tablename__ = "expense"

    expense_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="RESTRICT"),
        nullable=False,
    )
    project_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("project.project_id", ondelete="SET NULL"),
        nullable=True,
    )
    vendor_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("vendor.vendor_id", ondelete="SET NULL"),
        nullable=True,
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    reference: Mapped[str | None] = mapped_column(String, nullable=True)
    incurred_at: Mapped[datetime] = mapped_column(nullable=False)

    __table_args__ = (
        CheckConstraint(
            "category IN ('material', 'tool', 'rental', 'operational', 'labor', 'other')",
            name="expense_category_check",
        ),
        CheckConstraint("amount >= 0", name="expense_amount_non_negative"),
    )

    # Relationships
    company: Mapped[Company] = relationship(back_populates="expenses")
    project: Mapped[Project | None] = relationship(back_populates="expenses")
    vendor: Mapped[Vendor | None] = relationship(back_populates="expenses")
