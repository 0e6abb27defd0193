"""
Database Engine & Session Management
=============================================================================
CONCEPT: Async SQLAlchemy with Connection Pooling

KEY CONCEPTS:
  1. Engine: The connection factory. Creates and manages DB connections.
  2. Session: A "workspace" for DB operations. One per HTTP request.
  3. Connection Pool: Reuses DB connections instead of creating new ones.

POOL SETTINGS (server databases only; SQLite manages its own pool):
  - pool_size=20, max_overflow=10
  - pool_pre_ping=True: Check if a connection is alive before using it
  - pool_recycle=3600: Replace connections after 1 hour

SQLITE NOTE:
  SQLite's LIKE ignores ASCII case unless `PRAGMA case_sensitive_like` is
  on. Employee search must behave the same on every backend, so each new
  SQLite connection gets the pragma set to match `search_case_sensitive`.

  Case-insensitive search compiles to `lower(col) LIKE lower(?)`, and
  SQLite's own `lower()` leaves non-ASCII letters alone ("É" stays "É").
  Each connection therefore overrides `lower` with Python's `str.lower`,
  the same fold the in-memory builder uses.
=============================================================================
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from src.config import settings


def is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite")


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def configure_sqlite_search(engine: AsyncEngine, case_sensitive: bool) -> None:
    """
    Prepare every new SQLite connection for employee search: set
    `PRAGMA case_sensitive_like` and register a Unicode-aware `lower()`.
    """
    flag = "ON" if case_sensitive else "OFF"

    @event.listens_for(engine.sync_engine, "connect")
    def _set_case_sensitive_like(dbapi_connection, connection_record):
        dbapi_connection.create_function("lower", 1, _unicode_lower)
        cursor = dbapi_connection.cursor()
        cursor.execute(f"PRAGMA case_sensitive_like = {flag}")
        cursor.close()


def build_engine(url: str, case_sensitive: bool | None = None, **kwargs) -> AsyncEngine:
    """
    Create an async engine for `url`.

    Pool tuning applies only to server databases; for SQLite the caller may
    pass its own `poolclass` (tests use StaticPool for in-memory databases).
    """
    if case_sensitive is None:
        case_sensitive = settings.search_case_sensitive

    if is_sqlite_url(url):
        kwargs.setdefault("echo", False)
        engine = create_async_engine(url, **kwargs)
        configure_sqlite_search(engine, case_sensitive)
        return engine

    kwargs.setdefault("echo", settings.debug)  # Log SQL in debug mode
    kwargs.setdefault("pool_size", 20)
    kwargs.setdefault("max_overflow", 10)
    return create_async_engine(
        url,
        pool_pre_ping=True,
        pool_recycle=3600,
        **kwargs,
    )


engine = build_engine(settings.database_url)

# expire_on_commit=False keeps objects usable after commit (no lazy reload
# outside the async context)
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def create_tables(bind: AsyncEngine = engine) -> None:
    """Create every table known to `Base.metadata` that does not exist yet."""
    # Models must be imported so their tables are registered on Base.
    from src.db import models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db_session() -> AsyncSession:
    """
    FastAPI dependency that provides a database session per request.

    Usage in a route:
        @router.get("/employees")
        async def index(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()
