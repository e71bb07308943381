"""ORM models for the job cost engine."""

from jobcost_engine.models.base import Base, TimestampMixin
from jobcost_engine.models.company import Client, Company, Contractor, Vendor
from jobcost_engine.models.expense import Expense, ExpenseCategory
from jobcost_engine.models.labor import (
    BaseRate,
    CustomRate,
    Employee,
    EmployeeType,
    Payment,
    PaymentStatus,
    TimeEntry,
    UnionClass,
)
from jobcost_engine.models.project import (
    Project,
    ProjectStatus,
    Scope,
    SubScope,
    WorkItem,
    WorkItemQuantity,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "Company",
    "Client",
    "Contractor",
    "Vendor",
    "Project",
    "ProjectStatus",
    "Scope",
    "SubScope",
    "WorkItem",
    "WorkItemQuantity",
    "UnionClass",
    "BaseRate",
    "CustomRate",
    "Employee",
    "EmployeeType",
    "TimeEntry",
    "Payment",
    "PaymentStatus",
    "Expense",
    "ExpenseCategory",
]
