"""
Database Connection Module
Wraps the SQLAlchemy async engine behind three textual-SQL operations.

All statements go through one asyncio lock, so writers never race on a table.
Each write runs in its own transaction; nothing spans multiple statements.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


# Base class for all our models
class Base(DeclarativeBase):
    pass


@dataclass
class ExecuteResult:
    """Outcome of a write statement."""
    inserted_id: Optional[int]
    rows_affected: int


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Persistence layer used by every service.

    Example:
        >>> db = Database("sqlite+aiosqlite:///data/cocktails.db")
        >>> await db.init()
        >>> result = await db.execute(
        ...     "INSERT INTO orders (customer_name, cocktail_id, cocktail_name) "
        ...     "VALUES (:name, :cid, :cname)",
        ...     {"name": "Ana", "cid": 1, "cname": "Mojito"},
        ... )
        >>> await db.query_one("SELECT * FROM orders WHERE id = :id", {"id": result.inserted_id})
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = make_url(url)
        self.engine: AsyncEngine = create_async_engine(url, echo=echo)
        self._lock = asyncio.Lock()

        if self.url.get_backend_name() == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    async def init(self) -> None:
        """
        Create all tables in database.
        Called once at application startup.
        """
        # Import models so they register on Base.metadata
        from cocktail_menu import models  # noqa: F401

        if self.url.get_backend_name() == "sqlite" and self.url.database not in (None, "", ":memory:"):
            Path(self.url.database).parent.mkdir(parents=True, exist_ok=True)

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ready")

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def query_many(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> list[dict[str, Any]]:
        """Run a SELECT and return every row as a dict."""
        async with self._lock, self.engine.connect() as conn:
            result = await conn.execute(text(sql), dict(params or {}))
            return [dict(row) for row in result.mappings().all()]

    async def query_one(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> Optional[dict[str, Any]]:
        """Run a SELECT and return the first row, or None."""
        async with self._lock, self.engine.connect() as conn:
            result = await conn.execute(text(sql), dict(params or {}))
            row = result.mappings().first()
            return dict(row) if row is not None else None

    async def execute(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> ExecuteResult:
        """Run an INSERT/UPDATE/DELETE in its own transaction."""
        async with self._lock, self.engine.begin() as conn:
            result = await conn.execute(text(sql), dict(params or {}))
            return ExecuteResult(
                inserted_id=result.lastrowid,
                rows_affected=result.rowcount,
            )
