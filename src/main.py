"""
FastAPI Application Entry Point
=============================================================================
CONCEPT: FastAPI Application Lifecycle

  1. Startup: configure logging, verify the database, create tables
  2. Request handling: routes in src/api/
  3. Shutdown: dispose of the connection pool

We use the `lifespan` context manager pattern (recommended over the older
`@app.on_event("startup")` pattern).

CONCEPT: Sessions
SessionMiddleware keeps a small signed cookie per browser. It carries the
anti-forgery token the HTML forms are checked against; nothing else is
stored server-side.

Run with: uvicorn src.main:app --reload --host 0.0.0.0 --port 8000
=============================================================================
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import RedirectResponse
from prometheus_client import make_asgi_app
from sqlalchemy import text
from starlette.middleware.sessions import SessionMiddleware

from src.api.router import api_router
from src.config import settings
from src.db.engine import create_tables, engine
from src.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Everything before `yield` runs on startup, everything after on shutdown.
    """
    # === STARTUP ===
    setup_logging()
    logger.info("app_starting", app_name=settings.app_name, app_env=settings.app_env)

    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("database_connection_verified")

    if settings.create_tables_on_startup:
        await create_tables()
        logger.info("database_tables_ready")

    yield

    # === SHUTDOWN ===
    await engine.dispose()
    logger.info("database_connections_closed")


app = FastAPI(
    title=settings.app_name,
    description="Employee directory: list, search, sort, page and edit employees.",
    version="1.0.0",
    lifespan=lifespan,
)


# =============================================================================
# Middleware
# =============================================================================
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret_key,
    same_site="lax",
    https_only=settings.app_env == "production",
)


# =============================================================================
# Routes
# =============================================================================
app.include_router(api_router)

# Prometheus scrapes this endpoint
app.mount("/metrics", make_asgi_app())


@app.get("/", include_in_schema=False)
async def home():
    return RedirectResponse("/employees")
