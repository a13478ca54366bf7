"""
School Registry Backend: Database Handle
==========================================

What:  Async SQLAlchemy engine wrapped in an explicitly constructed handle.
How:   `Database` owns one AsyncEngine (and therefore one connection pool).
       It is built by the application factory and stored on `app.state`,
       so services receive it as a constructor argument and tests can hand
       them a substitute.
Who:   SchoolService (statements), health route (ping), lifespan (schema,
       dispose).

Connection handling:
    Every call to `execute()` checks one connection out of the pool inside
    `engine.begin()`, runs exactly one statement and returns the connection
    to the pool on every exit path (commit on success, rollback on error).

Statements are SQLAlchemy Core constructs, so user input always travels as
bound parameters and is never formatted into SQL text.
"""

import logging
import ssl
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.sql import Executable
from starlette.requests import Request

from school_registry.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


def build_ssl_context(cafile: Optional[str] = None) -> ssl.SSLContext:
    """
    TLS context for the database connection.

    create_default_context() enables CERT_REQUIRED and hostname checking;
    `cafile` adds a private CA bundle on top of the system trust store.
    """
    return ssl.create_default_context(cafile=cafile)


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """
    Create the async engine and its connection pool.

    SQLite URLs (tests, local runs) get neither TLS nor explicit pool sizing:
    in-memory SQLite uses a static pool that rejects those arguments.
    """
    url = make_url(settings.database_url_resolved)
    kwargs: Dict[str, Any] = {
        "pool_pre_ping": settings.db_pool_pre_ping,
        "echo": settings.log_level == "DEBUG",
    }

    if url.get_backend_name() != "sqlite":
        kwargs["pool_size"] = settings.db_pool_size
        kwargs["max_overflow"] = settings.db_max_overflow
        kwargs["pool_recycle"] = 3600
        if settings.db_ssl_required:
            kwargs["connect_args"] = {"ssl": build_ssl_context(settings.db_ssl_ca)}

    return create_async_engine(url, **kwargs)


class Database:
    """
    Handle over the pooled engine.

    Lifecycle:
        1. Constructed by create_app() (no connection is opened yet)
        2. init_schema() during startup creates the tables if absent
        3. execute() per request
        4. dispose() during shutdown closes the pool
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(create_engine_from_settings(settings))

    async def init_schema(self) -> None:
        """
        Create all tables that do not exist yet.

        Idempotent: create_all() checks for each table first, so running it
        on every startup never touches existing data.
        """
        # Registers the models with Base.metadata
        from school_registry.models.school import School  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema initialized")

    async def execute(
        self, statement: Executable
    ) -> Union[List[Dict[str, Any]], int]:
        """
        Run one statement on a pooled connection.

        Returns:
            - INSERT: the primary key assigned by the database
            - SELECT: list of dicts keyed by column name

        Raises:
            sqlalchemy.exc.SQLAlchemyError when the connection cannot be
            acquired or the statement fails. No retry.
        """
        async with self.engine.begin() as conn:
            result = await conn.execute(statement)
            if result.is_insert:
                return result.inserted_primary_key[0]
            return [dict(row) for row in result.mappings().all()]

    async def ping(self) -> bool:
        """Round-trip a trivial query; raises if the database is unreachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()
        logger.info("Database connection pool closed")


# ── Dependency ────────────────────────────────────────────────────────────
def get_database(request: Request) -> Database:
    """FastAPI dependency: the Database handle created by create_app()."""
    return request.app.state.database
