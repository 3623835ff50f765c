"""
Base Repository for Swift Assistant

Shared unit-of-work handling for the session-scoped repositories.
Each operation opens its own session through ``get_session_context()``
(or an injected equivalent) and commits on exit.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from swift_assistant.infrastructure.db.database import get_session_context
from swift_assistant.infrastructure.exceptions import StoreError


logger = logging.getLogger(__name__)

SessionContext = Callable[[], Any]


def dialect_insert(session: AsyncSession, model):
    """INSERT construct supporting ON CONFLICT for the bound dialect."""
    if session.bind is not None and session.bind.dialect.name == "sqlite":
        return sqlite_insert(model)
    return pg_insert(model)


class BaseRepository:
    """
    Base class for repositories that own their sessions.

    Subclasses set ``table_name`` for error reporting. Any SQLAlchemy or
    connection error raised inside ``_unit_of_work`` surfaces as StoreError.
    """

    table_name: str = ""

    def __init__(self, session_context: SessionContext = get_session_context):
        self._session_context = session_context

    @asynccontextmanager
    async def _unit_of_work(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self._session_context() as session:
                yield session
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"{self.table_name} {operation} failed: {e}")
            raise StoreError(
                f"Database operation {operation} failed",
                operation=operation,
                table=self.table_name,
                original_error=e,
            ) from e
