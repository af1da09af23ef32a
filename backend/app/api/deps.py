"""API dependencies."""

from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUserDep
from app.core.database import get_db_session, get_session
from app.generation import GenerationClient
from app.services.learning_store import LearningStore

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async for session in get_session():
        yield session


def get_session_scope() -> SessionScope:
    """Session opener for long-lived connections.

    WebSocket handlers open a short session around each store call instead
    of holding one for the whole connection.
    """
    return get_db_session


def get_generation_client(request: Request) -> GenerationClient:
    """Generation client built at startup (see ``app.main.lifespan``)."""
    return request.app.state.generation


def get_learning_store(request: Request) -> LearningStore:
    return request.app.state.learning_store


# Database dependency
DBDep = Annotated[AsyncSession, Depends(get_db)]
SessionScopeDep = Annotated[SessionScope, Depends(get_session_scope)]

# Auth user dependency - returns the external identity id ("guest" without a header)
CurrentUser = CurrentUserDep

GenerationDep = Annotated[GenerationClient, Depends(get_generation_client)]
StoreDep = Annotated[LearningStore, Depends(get_learning_store)]
