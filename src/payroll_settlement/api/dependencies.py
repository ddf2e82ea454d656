"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_settlement.config import Settings
from payroll_settlement.database import Database

ADMIN_ROLES = frozenset({"OWNER", "ADMIN"})


@dataclass(frozen=True)
class CallerContext:
    """Identity of the caller, as established by the auth layer."""

    user_id: UUID
    company_id: UUID
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def get_database(request: Request) -> Database:
    """Get the storage handle opened by the application."""
    return request.app.state.database


def get_settings(request: Request) -> Settings:
    """Get the settings the application was created with."""
    return request.app.state.settings


async def get_db_session(
    database: Annotated[Database, Depends(get_database)],
) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency.

    Routes commit explicitly; anything left uncommitted is rolled back.
    """
    async with database.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def _parse_uuid_header(value: str | None, name: str) -> UUID:
    if not value:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"{name} header is required",
        )
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name} format",
        )


async def get_caller(
    x_user_id: Annotated[str | None, Header()] = None,
    x_company_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> CallerContext:
    """Extract the caller identity from headers."""
    user_id = _parse_uuid_header(x_user_id, "X-User-ID")
    company_id = _parse_uuid_header(x_company_id, "X-Company-ID")
    if not x_user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Role header is required",
        )
    return CallerContext(user_id=user_id, company_id=company_id, role=x_user_role.upper())


async def require_admin(
    caller: Annotated[CallerContext, Depends(get_caller)],
) -> CallerContext:
    """Require an OWNER or ADMIN caller."""
    if not caller.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Company admin role required",
        )
    return caller


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_settings)]
Caller = Annotated[CallerContext, Depends(get_caller)]
AdminCaller = Annotated[CallerContext, Depends(require_admin)]
