"""
Marketplace Backend — Database Session Management
==================================================

What:  Async SQLAlchemy engine, session factory, declarative base and FastAPI dependency.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created at module import; sessions are created per-request.

Connection Pooling Strategy:
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:     Validates connections before use (catches stale connections)
    pool_recycle=3600: Recycles connections every hour

    SQLite URLs (used by the test suite) skip the pool sizing arguments;
    the SQLite dialect chooses its own pool class.

After-commit Callbacks:
    Side effects that must not outlive a rolled-back transaction (websocket
    pushes) are registered with `call_after_commit()`. A commit promotes the
    pending callbacks to "ready"; a rollback discards whatever is pending.
    `get_db_session()` awaits the ready callbacks once the request's
    transaction is over.
"""

import logging
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Session

from marketplace.config import settings

logger = logging.getLogger(__name__)

AfterCommitCallback = Callable[[], Awaitable[Any]]

_PENDING_KEY = "after_commit_pending"
_READY_KEY = "after_commit_ready"


def _engine_options(url: str) -> Dict[str, Any]:
    """Pool options for the configured backend."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if url.startswith("sqlite"):
        return options
    options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
    )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after commit, so services
# can build response models from rows they just committed
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Every model registers with this metadata; Alembic and the test suite's
    `create_all` both read the schema from here.
    """
    pass


# ── After-commit Callbacks ────────────────────────────────────────────────
def call_after_commit(session: AsyncSession, callback: AfterCommitCallback) -> None:
    """Queue `callback` to run only if the current transaction commits."""
    session.info.setdefault(_PENDING_KEY, []).append(callback)


@event.listens_for(Session, "after_commit")
def _promote_after_commit(session: Session) -> None:
    pending = session.info.pop(_PENDING_KEY, None)
    if pending:
        session.info.setdefault(_READY_KEY, []).extend(pending)


@event.listens_for(Session, "after_rollback")
def _discard_after_commit(session: Session) -> None:
    pending = session.info.pop(_PENDING_KEY, None)
    if pending:
        logger.debug("Discarded %d after-commit callback(s) on rollback", len(pending))


async def run_after_commit(session: AsyncSession) -> None:
    """
    Await every callback whose transaction has committed.

    A failing callback is logged and skipped; the data it describes is
    already durable.
    """
    for callback in session.info.pop(_READY_KEY, []):
        try:
            await callback()
        except Exception as e:
            logger.warning("After-commit callback failed: %s", e)


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler (the handler performs queries)
        3. On success: commits the transaction
        4. On error: rolls back the transaction
        5. Always: runs the callbacks of committed work, then closes the
           session (returns connection to pool)

    Services that need an explicit all-or-nothing unit (bid acceptance,
    bulk role permission replacement) commit or roll back themselves; the
    final commit here is then a no-op.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await run_after_commit(session)
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
