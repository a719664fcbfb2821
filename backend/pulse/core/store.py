"""
Store — the single persistence primitive handed to every component.

execute() runs ONE parameterised SQLAlchemy statement in its own session:
  • reads and RETURNING writes  → QueryResult.rows
  • plain UPDATE/DELETE         → QueryResult.rowcount

A pooled connection is held only for the duration of that statement.
No transaction ever spans two execute() calls.

Every driver failure (connectivity, constraint violation, syntax) is
logged here and surfaced as StoreError; callers decide the HTTP mapping.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql import Executable

from pulse.core.database import async_session_factory

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class StoreError(Exception):
    """Raised for any failure inside the relational store."""


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Outcome of one statement."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    rowcount: int = 0

    def first(self) -> dict[str, Any] | None:
        return self.rows[0] if self.rows else None


class Store:
    """Thin async wrapper over a session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        bind = session_factory.kw.get("bind")
        self.dialect_name: str = bind.dialect.name if bind is not None else "postgresql"

    def insert(self, model: Any):  # type: ignore[no-untyped-def]
        """Dialect-specific INSERT so callers can use on_conflict_do_update()."""
        try:
            return _INSERTS[self.dialect_name](model)
        except KeyError:
            raise StoreError(f"Upserts are not supported on {self.dialect_name}") from None

    async def execute(self, stmt: Executable) -> QueryResult:
        """Execute a statement, commit, and materialise its result."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                # ORM-enabled statements yield a plain Result; only a
                # CursorResult without rows carries a meaningful rowcount.
                if isinstance(result, CursorResult) and not result.returns_rows:
                    outcome = QueryResult(rowcount=result.rowcount)
                else:
                    rows = [dict(row) for row in result.mappings().all()]
                    outcome = QueryResult(rows=rows, rowcount=len(rows))
                await session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Store statement failed")
            raise StoreError(str(exc)) from exc

        return outcome


# Process-wide store bound to the configured engine
store = Store(async_session_factory)


def get_store() -> Store:
    """FastAPI dependency — overridden in tests with a fake store."""
    return store
