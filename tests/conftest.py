"""Pytest fixtures for job cost engine tests."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from jobcost_engine.api.app import create_app
from jobcost_engine.config import Settings
from jobcost_engine.database import Database
from jobcost_engine.models import (
    BaseRate,
    Client,
    Company,
    Employee,
    EmployeeType,
    Expense,
    ExpenseCategory,
    PaymentStatus,
    Project,
    ProjectStatus,
    Scope,
    SubScope,
    TimeEntry,
    UnionClass,
    Vendor,
    WorkItem,
    WorkItemQuantity,
)

# In-memory SQLite shared by every session of a test through a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def database() -> AsyncGenerator[Database, None]:
    """Create a fresh test database with all tables."""
    db = Database(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def session_factory(database: Database):
    return database.session_factory


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        host="127.0.0.1",
        port=8000,
        debug=False,
        default_timezone="UTC",
        settlement_isolation_level=None,
        log_level="WARNING",
    )


@pytest.fixture
async def client(database: Database, test_settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to an app using the test database."""
    app = create_app(settings=test_settings, database=database)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def utc(year: int, month: int, day: int, hour: int = 12) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


# ===== Companies =====


@pytest.fixture
async def test_company(session: AsyncSession) -> Company:
    """Create a test company."""
    company = Company(company_id=uuid4(), name="Test Builders", timezone="UTC")
    session.add(company)
    await session.flush()
    return company


@pytest.fixture
async def other_company(session: AsyncSession) -> Company:
    """Create a second company for isolation tests."""
    company = Company(company_id=uuid4(), name="Other Builders", timezone="UTC")
    session.add(company)
    await session.flush()
    return company


@pytest.fixture
async def project_client(session: AsyncSession, test_company: Company) -> Client:
    client = Client(
        client_id=uuid4(),
        company_id=test_company.company_id,
        code="C-001",
        name="Acme Developments",
    )
    session.add(client)
    await session.flush()
    return client


@pytest.fixture
async def test_vendors(session: AsyncSession, test_company: Company) -> dict[str, Vendor]:
    lumber = Vendor(
        vendor_id=uuid4(), company_id=test_company.company_id, code="V-001", name="Lumber Co"
    )
    tools = Vendor(
        vendor_id=uuid4(), company_id=test_company.company_id, code="V-002", name="Tool Depot"
    )
    session.add_all([lumber, tools])
    await session.flush()
    return {"lumber": lumber, "tools": tools}


# ===== Project tree =====


@pytest.fixture
async def project_tree(
    session: AsyncSession, test_company: Company, project_client: Client
) -> dict:
    """A project worth 1000 with one scope, one sub-scope and two work items.

    Items: A (qty 100, done 50, price 10) and B (qty 50, done 50, price 4),
    so 700 of value is completed.
    """
    project = Project(
        project_id=uuid4(),
        company_id=test_company.company_id,
        client_id=project_client.client_id,
        code="P-001",
        name="Warehouse Electrical",
        value=Decimal("1000.00"),
        status=ProjectStatus.IN_PROGRESS.value,
    )
    session.add(project)
    await session.flush()

    scope = Scope(scope_id=uuid4(), project_id=project.project_id, code="S1", name="Power")
    session.add(scope)
    await session.flush()

    sub_scope = SubScope(
        sub_scope_id=uuid4(), scope_id=scope.scope_id, code="S1.1", name="Conduit"
    )
    item_a = WorkItem(
        work_item_id=uuid4(),
        project_id=project.project_id,
        code="A",
        name="Conduit run",
        unit="ft",
        unit_price=Decimal("10"),
    )
    item_b = WorkItem(
        work_item_id=uuid4(),
        project_id=project.project_id,
        code="B",
        name="Junction box",
        unit="ea",
        unit_price=Decimal("4"),
    )
    session.add_all([sub_scope, item_a, item_b])
    await session.flush()

    quantity_a = WorkItemQuantity(
        sub_scope_id=sub_scope.sub_scope_id,
        work_item_id=item_a.work_item_id,
        quantity=Decimal("100"),
        completed=Decimal("50"),
    )
    quantity_b = WorkItemQuantity(
        sub_scope_id=sub_scope.sub_scope_id,
        work_item_id=item_b.work_item_id,
        quantity=Decimal("50"),
        completed=Decimal("50"),
    )
    session.add_all([quantity_a, quantity_b])
    await session.flush()

    return {
        "project": project,
        "scope": scope,
        "sub_scope": sub_scope,
        "item_a": item_a,
        "item_b": item_b,
    }


@pytest.fixture
def test_project(project_tree: dict) -> Project:
    return project_tree["project"]


# ===== Labor =====


@pytest.fixture
async def test_union_class(session: AsyncSession, test_company: Company) -> UnionClass:
    """Union class with one open base rate effective 2024-01-01 (regular 40)."""
    union_class = UnionClass(
        union_class_id=uuid4(),
        company_id=test_company.company_id,
        name="Journeyman Electrician",
    )
    session.add(union_class)
    await session.flush()

    session.add(
        BaseRate(
            base_rate_id=uuid4(),
            union_class_id=union_class.union_class_id,
            regular_rate=Decimal("40.00"),
            overtime_rate=Decimal("60.00"),
            benefits_rate=Decimal("12.50"),
            effective_date=date(2024, 1, 1),
        )
    )
    await session.flush()
    return union_class


@pytest.fixture
async def local_employee(session: AsyncSession, test_company: Company) -> Employee:
    """Local employee paid 25.00/hour."""
    employee = Employee(
        employee_id=uuid4(),
        company_id=test_company.company_id,
        code="E-001",
        first_name="Ana",
        last_name="Lopez",
        employee_type=EmployeeType.LOCAL.value,
        rate=Decimal("25.00"),
    )
    session.add(employee)
    await session.flush()
    return employee


@pytest.fixture
async def union_employee(
    session: AsyncSession, test_company: Company, test_union_class: UnionClass
) -> Employee:
    employee = Employee(
        employee_id=uuid4(),
        company_id=test_company.company_id,
        code="E-002",
        first_name="Sam",
        last_name="Okafor",
        employee_type=EmployeeType.UNION.value,
        union_class_id=test_union_class.union_class_id,
    )
    session.add(employee)
    await session.flush()
    return employee


@pytest.fixture
async def unrated_employee(session: AsyncSession, test_company: Company) -> Employee:
    """Union employee without a union class, so no rate resolves."""
    employee = Employee(
        employee_id=uuid4(),
        company_id=test_company.company_id,
        code="E-003",
        first_name="Kim",
        last_name="Park",
        employee_type=EmployeeType.UNION.value,
    )
    session.add(employee)
    await session.flush()
    return employee


@pytest.fixture
async def time_entries(
    session: AsyncSession, local_employee: Employee, test_project: Project
) -> list[TimeEntry]:
    """Two pending entries of the local employee on the project: 12 regular hours (300)."""
    entries = [
        TimeEntry(
            time_entry_id=uuid4(),
            employee_id=local_employee.employee_id,
            project_id=test_project.project_id,
            work_date=date(2024, 3, 4),
            regular_hours=Decimal("8"),
        ),
        TimeEntry(
            time_entry_id=uuid4(),
            employee_id=local_employee.employee_id,
            project_id=test_project.project_id,
            work_date=date(2024, 3, 5),
            regular_hours=Decimal("4"),
        ),
    ]
    session.add_all(entries)
    await session.flush()
    return entries


@pytest.fixture
async def approved_entries(session: AsyncSession, time_entries: list[TimeEntry]) -> list[TimeEntry]:
    for entry in time_entries:
        entry.payment_status = PaymentStatus.APPROVED.value
    await session.flush()
    return time_entries


@pytest.fixture
async def expenses(
    session: AsyncSession,
    test_company: Company,
    test_project: Project,
    test_vendors: dict[str, Vendor],
) -> list[Expense]:
    """Project expenses totalling 100: material 60 in March, tool 40 in April."""
    items = [
        Expense(
            expense_id=uuid4(),
            company_id=test_company.company_id,
            project_id=test_project.project_id,
            vendor_id=test_vendors["lumber"].vendor_id,
            amount=Decimal("60.00"),
            category=ExpenseCategory.MATERIAL.value,
            description="Conduit and fittings",
            incurred_at=utc(2024, 3, 10),
        ),
        Expense(
            expense_id=uuid4(),
            company_id=test_company.company_id,
            project_id=test_project.project_id,
            vendor_id=test_vendors["tools"].vendor_id,
            amount=Decimal("40.00"),
            category=ExpenseCategory.TOOL.value,
            description="Bender rental",
            incurred_at=utc(2024, 4, 2),
        ),
    ]
    session.add_all(items)
    await session.flush()
    return items
