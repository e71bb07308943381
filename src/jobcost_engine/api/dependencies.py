"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from jobcost_engine.config import Settings
from jobcost_engine.database import Database

DEFAULT_ROLE = "user"


@dataclass(frozen=True)
class CallerIdentity:
    """Who is calling: every service query is scoped to ``company_id``."""

    company_id: UUID
    role: str = DEFAULT_ROLE


def get_database(request: Request) -> Database:
    """Get the database the application was started with."""
    return request.app.state.database


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_db_session(
    database: Annotated[Database, Depends(get_database)],
) -> AsyncGenerator[AsyncSession, None]:
    """Get a read-only database session dependency."""
    async with database.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_caller(
    x_company_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> CallerIdentity:
    """Extract the caller's company and role from headers."""
    if not x_company_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Company-ID header is required",
        )
    try:
        company_id = UUID(x_company_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Company-ID format",
        )
    return CallerIdentity(company_id=company_id, role=x_user_role or DEFAULT_ROLE)


# Type aliases for cleaner dependency injection
Db = Annotated[Database, Depends(get_database)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Caller = Annotated[CallerIdentity, Depends(get_caller)]
