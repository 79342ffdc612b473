"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator, Callable
from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from hrms_engine.config import Settings
from hrms_engine.database import Database
from hrms_engine.services.authorization import CapabilityProvider


def get_database(request: Request) -> Database:
    """Storage handle created by the application lifespan."""
    return request.app.state.database


def get_settings_dependency(request: Request) -> Settings:
    return request.app.state.settings


def get_capabilities(request: Request) -> CapabilityProvider:
    return request.app.state.capabilities


def get_clock(request: Request) -> Callable[[], date]:
    return request.app.state.today


async def get_db_session(
    database: Annotated[Database, Depends(get_database)],
) -> AsyncGenerator[AsyncSession, None]:
    """Get a database session that commits when the request succeeds."""
    async with database.session() as session:
        yield session


async def get_actor_id(
    x_actor_id: Annotated[str | None, Header()] = None
) -> UUID:
    """Extract the authenticated actor from the header set by the auth gateway."""
    if not x_actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Actor-ID header is required",
        )
    try:
        return UUID(x_actor_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Actor-ID format",
        )


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
DatabaseHandle = Annotated[Database, Depends(get_database)]
ActorId = Annotated[UUID, Depends(get_actor_id)]
AppSettings = Annotated[Settings, Depends(get_settings_dependency)]
Capabilities = Annotated[CapabilityProvider, Depends(get_capabilities)]
Clock = Annotated[Callable[[], date], Depends(get_clock)]
