"""Employee, union rate schedule, time entry and payment models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from jobcost_engine.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from jobcost_engine.models.company import Company
    from jobcost_engine.models.project import Project


class EmployeeType(str, Enum):
    """How an employee's hourly rate is determined."""

    LOCAL = "local"
    UNION = "union"


class PaymentStatus(str, Enum):
    """Payment status shared by time entries and payments."""

    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    CANCELLED = "cancelled"


_PAYMENT_STATUS_SQL = "('pending', 'approved', 'paid', 'cancelled')"


# ===== Union classes & rates =====


class UnionClass(Base, TimestampMixin):
    """Labor classification with its own time-varying rate schedule."""

    __tablename__ = "union_class"

    union_class_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="RESTRICT"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)

    # Relationships
    company: Mapped[Company] = relationship(back_populates="union_classes")
    base_rates: Mapped[list[BaseRate]] = relationship(
        back_populates="union_class",
        cascade="all, delete-orphan",
        order_by="BaseRate.effective_date.desc()",
    )
    custom_rates: Mapped[list[CustomRate]] = relationship(
        back_populates="union_class",
        cascade="all, delete-orphan",
        order_by="CustomRate.effective_date.desc()",
    )
    employees: Mapped[list[Employee]] = relationship(back_populates="union_class")


class _EffectiveDatedMixin:
    """Inclusive [effective_date, end_date] validity interval."""

    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    def is_active_on(self, as_of_date: date) -> bool:
        """Check if the record is in effect on a given date."""
        if self.effective_date > as_of_date:
            return False
        if self.end_date is not None and self.end_date < as_of_date:
            return False
        return True

    @property
    def is_open(self) -> bool:
        return self.end_date is None


class BaseRate(_EffectiveDatedMixin, Base, TimestampMixin):
    """Regular/overtime/benefits hourly rates of a union class over an interval."""

    __tablename__ = "union_base_rate"

    base_rate_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    union_class_id: Mapped[UUID] = mapped_column(
        ForeignKey("union_class.union_class_id", ondelete="CASCADE"),
        nullable=False,
    )
    regular_rate: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    overtime_rate: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    benefits_rate: Mapped[Decimal] = mapped_column(
        Numeric(12, 4), nullable=False, default=Decimal("0")
    )

    __table_args__ = (
        CheckConstraint(
            "end_date IS NULL OR end_date >= effective_date",
            name="union_base_rate_dates_check",
        ),
        CheckConstraint("regular_rate >= 0", name="union_base_rate_regular_non_negative"),
    )

    # Relationships
    union_class: Mapped[UnionClass] = relationship(back_populates="base_rates")


class CustomRate(_EffectiveDatedMixin, Base, TimestampMixin):
    """Named supplemental rate of a union class, flat or percentage."""

    __tablename__ = "union_custom_rate"

    custom_rate_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    union_class_id: Mapped[UUID] = mapped_column(
        ForeignKey("union_class.union_class_id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    rate: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    is_percentage: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint(
            "end_date IS NULL OR end_date >= effective_date",
            name="union_custom_rate_dates_check",
        ),
    )

    # Relationships
    union_class: Mapped[UnionClass] = relationship(back_populates="custom_rates")


# ===== Employees =====


class Employee(Base, TimestampMixin):
    """Field worker paid either a local scalar rate or a union class rate."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="RESTRICT"),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(String, nullable=False)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    employee_type: Mapped[str] = mapped_column(String, nullable=False)
    rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 4), nullable=True)
    union_class_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("union_class.union_class_id", ondelete="SET NULL"),
        nullable=True,
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    hire_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    termination_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        UniqueConstraint("company_id", "code", name="employee_company_code_unique"),
        CheckConstraint(
            "employee_type IN ('local', 'union')",
            name="employee_type_check",
        ),
    )

    # Relationships
    company: Mapped[Company] = relationship(back_populates="employees")
    union_class: Mapped[UnionClass | None] = relationship(back_populates="employees")
    time_entries: Mapped[list[TimeEntry]] = relationship(back_populates="employee")
    payments: Mapped[list[Payment]] = relationship(back_populates="employee")

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}"

    @property
    def is_union(self) -> bool:
        return self.employee_type == EmployeeType.UNION


# ===== Time & payments =====


class Payment(Base, TimestampMixin):
    """Settlement of a batch of approved time entries for one employee."""

    __tablename__ = "payment"

    payment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
    )
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    regular_amount: Mapped[Decimal] = mapped_column(nullable=False)
    overtime_amount: Mapped[Decimal] = mapped_column(nullable=False)
    double_amount: Mapped[Decimal] = mapped_column(nullable=False)
    deductions: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=PaymentStatus.PENDING.value
    )
    reference: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(f"status IN {_PAYMENT_STATUS_SQL}", name="payment_status_check"),
        CheckConstraint("deductions >= 0", name="payment_deductions_non_negative"),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="payments")
    time_entries: Mapped[list[TimeEntry]] = relationship(back_populates="payment")


class TimeEntry(Base, TimestampMixin):
    """Hours worked by one employee on one date."""

    __tablename__ = "time_entry"

    time_entry_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
    )
    project_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("project.project_id", ondelete="SET NULL"),
        nullable=True,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    regular_hours: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("0")
    )
    overtime_hours: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("0")
    )
    double_hours: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("0")
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    payment_status: Mapped[str] = mapped_column(
        String, nullable=False, default=PaymentStatus.PENDING.value
    )
    payment_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payment.payment_id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint(
            f"payment_status IN {_PAYMENT_STATUS_SQL}",
            name="time_entry_payment_status_check",
        ),
        CheckConstraint(
            "regular_hours >= 0 AND overtime_hours >= 0 AND double_hours >= 0",
            name="time_entry_hours_non_negative",
        ),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="time_entries")
    project: Mapped[Project | None] = relationship(back_populates="time_entries")
    payment: Mapped[Payment | None] = relationship(back_populates="time_entries")
