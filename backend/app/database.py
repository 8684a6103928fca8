"""
Tripmark Backend — Database Session Management
================================================

What:  Async SQLAlchemy engine, session factory, FastAPI dependency and the
       transactional scope used by every mutating service call.
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error,
       and a `transaction()` context manager that turns a multi-step service
       operation into one unit of work.
Who:   Route handlers (via Depends) and services (via transaction()).

Transactional Scope:
    `transaction(session)` opens a real transaction on a fresh session and a
    SAVEPOINT when the session is already inside one (e.g. a test that has
    read from the same session, or a service composing another service).
    Either way, an exception raised inside the block rolls back everything
    the block wrote and propagates unchanged.
"""

import logging
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncGenerator, AsyncIterator, Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings
from app.exceptions import DatabaseError

logger = logging.getLogger(__name__)


# ── Engine Configuration ──────────────────────────────────────────────────
def _engine_options() -> dict:
    """Pool sizing applies to server databases only; SQLite rejects it."""
    options = {
        "pool_pre_ping": settings.db_pool_pre_ping,
        # Echo SQL queries in DEBUG mode for development visibility
        "echo": settings.log_level == "DEBUG",
    }
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=3600,  # Recycle after 1 hour to prevent stale connections
        )
    return options


engine = create_async_engine(settings.database_url, **_engine_options())

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: services build response snapshots after commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object so Alembic --autogenerate sees every table.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits anything still pending
        4. On error: rolls back the transaction
        5. Always: closes the session (returns connection to pool)

    Services open their own `transaction()` scope, so the commit here is
    usually a no-op; it only matters for handlers that write outside one.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            # Roll back for ANY failure, including non-DB errors raised after a query
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Transactional Scope ───────────────────────────────────────────────────
@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run a block as one atomic unit of work.

    Example:
        async with transaction(db):
            db.add(collection)
            await db.flush()

    Commits when the block exits normally (or releases the SAVEPOINT when
    nested); rolls back and re-raises when it doesn't.
    """
    if session.in_transaction():
        async with session.begin_nested():
            yield session
    else:
        async with session.begin():
            yield session


@contextmanager
def translate_db_errors(action: str, **context: Any) -> Iterator[None]:
    """
    Wrap unexpected SQLAlchemy failures in DatabaseError.

    Application errors (TripmarkError subclasses) pass through unchanged so
    the boundary layer still sees NotFoundError, AuthorizationError, etc.
    Details go to the server log only.
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Database error while trying to %s: %s", action, str(e), exc_info=True)
        raise DatabaseError(
            message=f"Could not {action}. Please try again.",
            context={**context, "error_type": type(e).__name__},
        ) from e


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
