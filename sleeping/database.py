"""
Sleeping Backend: Database Session Management
==============================================

What:  Async SQLAlchemy engine, session factory, unit-of-work helper and
       FastAPI dependencies.
How:   Creates an async engine with connection pooling; request handlers get a
       session that commits on success and rolls back on error; multi-statement
       operations (the account ledger, the chat relay) open their own unit of work.
Who:   Route handlers via Depends(), the ledger service and the realtime relay.
When:  Engine is created at module import; sessions per request or per operation.

Connection Pooling Strategy:
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:     Validates connections before use
    pool_recycle=3600: Recycles connections every hour

    SQLite URLs (tests, local hacking) skip the pool arguments because the
    aiosqlite dialect manages its own pool.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from sleeping.config import settings


def build_engine() -> AsyncEngine:
    """Create the async engine for DATABASE_URL, applying pool settings to server databases."""
    kwargs = {"echo": settings.log_level == "DEBUG"}
    if not settings.is_sqlite:
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return create_async_engine(settings.database_url, **kwargs)


# ── Engine Configuration ──────────────────────────────────────────────────
engine = build_engine()

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after commit, outside the
# session context (response building happens after the unit of work closes)
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class so they share one metadata object,
    which Alembic reads for migrations and tests use for create_all().
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler (the handler performs queries)
        3. On success: commits the transaction
        4. On error: rolls back the transaction
        5. Always: closes the session (returns connection to pool)

    Example usage in a route:
        @router.get("/shop")
        async def list_items(db: AsyncSession = Depends(get_db_session)):
            result = await db.execute(select(ShopItem))
            return result.scalars().all()
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise  # Re-raise so the global error handler can respond appropriately
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker:
    """
    FastAPI dependency returning the session factory.

    Services that own their transaction boundaries (ledger, relay) receive the
    factory instead of a request session. Tests override this dependency to
    point at a throwaway database.
    """
    return async_session_factory


@asynccontextmanager
async def unit_of_work(
    factory: Optional[async_sessionmaker] = None,
) -> AsyncIterator[AsyncSession]:
    """
    Acquire a transactional session for one atomic unit.

    What:    Opens a fresh session and begins a transaction.
    How:     `async with unit_of_work(factory) as session:`; all reads and writes
             go through `session`. Normal exit commits; any exception rolls back
             every write made inside the block and propagates. The session is
             closed on every exit path.

    Example:
        async with unit_of_work(factory) as session:
            account = await session.get(Account, account_id)
            account.xp += 10
    """
    factory = factory or async_session_factory
    async with factory() as session:
        async with session.begin():
            yield session


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
