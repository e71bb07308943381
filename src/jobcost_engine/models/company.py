"""Company, client, contractor and vendor models."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from jobcost_engine.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from jobcost_engine.models.expense import Expense
    from jobcost_engine.models.labor import Employee, UnionClass
    from jobcost_engine.models.project import Project


class Company(Base, TimestampMixin):
    """Tenant container. Every other entity is scoped by a company."""

    __tablename__ = "company"

    company_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    timezone: Mapped[str] = mapped_column(String, nullable=False, default="UTC")

    # Relationships
    clients: Mapped[list[Client]] = relationship(back_populates="company")
    contractors: Mapped[list[Contractor]] = relationship(back_populates="company")
    vendors: Mapped[list[Vendor]] = relationship(back_populates="company")
    projects: Mapped[list[Project]] = relationship(back_populates="company")
    employees: Mapped[list[Employee]] = relationship(back_populates="company")
    union_classes: Mapped[list[UnionClass]] = relationship(back_populates="company")
    expenses: Mapped[list[Expense]] = relationship(back_populates="company")


class Client(Base, TimestampMixin):
    """Project owner paying the contract value."""

    __tablename__ = "client"

    client_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="RESTRICT"),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    contact_name: Mapped[str | None] = mapped_column(String, nullable=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (UniqueConstraint("company_id", "code", name="client_company_code_unique"),)

    # Relationships
    company: Mapped[Company] = relationship(back_populates="clients")
    projects: Mapped[list[Project]] = relationship(back_populates="client")


class Contractor(Base, TimestampMixin):
    """General contractor a project may be subcontracted under."""

    __tablename__ = "contractor"

    contractor_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="RESTRICT"),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    contact_name: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("company_id", "code", name="contractor_company_code_unique"),
    )

    # Relationships
    company: Mapped[Company] = relationship(back_populates="contractors")


class Vendor(Base, TimestampMixin):
    """Supplier that expenses can be attributed to."""

    __tablename__ = "vendor"

    vendor_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="RESTRICT"),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (UniqueConstraint("company_id", "code", name="vendor_company_code_unique"),)

    # Relationships
    company: Mapped[Company] = relationship(back_populates="vendors")
    expenses: Mapped[list[Expense]] = relationship(back_populates="vendor")
