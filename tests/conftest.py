"""Pytest configuration and fixtures."""

import os
import re
from datetime import date, timedelta

# Settings are read at import time, so the environment must be in place
# before anything from src is imported.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"
os.environ["SESSION_SECRET_KEY"] = "test-session-secret"
os.environ["PAGE_SIZE"] = "3"
os.environ["DEFAULT_PAGE_NUMBER"] = "1"
os.environ["SEARCH_CASE_SENSITIVE"] = "true"
os.environ["DEBUG"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from src.db.engine import Base, build_engine, get_db_session
from src.db.models import Benefits, Department, Employee
from src.main import app

CSRF_PATTERN = re.compile(r'name="csrf_token" value="([^"]+)"')


@pytest.fixture
async def engine():
    """A fresh in-memory database per test."""
    test_engine = build_engine(
        "sqlite+aiosqlite://",
        case_sensitive=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
async def db_session(engine) -> AsyncSession:
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture
async def client(db_session: AsyncSession):
    """HTTP client against the app with the database session overridden."""
    async def override_get_db_session():
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def lookups(db_session: AsyncSession) -> tuple[Department, Benefits]:
    """One department and one benefits plan for employees to point at."""
    department = Department(name="Engineering")
    plan = Benefits(name="Health + Dental")
    db_session.add_all([department, plan])
    await db_session.commit()
    return department, plan


@pytest.fixture
async def alice_employees(db_session: AsyncSession, lookups) -> list[Employee]:
    """Alice0..Alice9 with strictly increasing hire dates."""
    department, plan = lookups
    employees = [
        Employee(
            first_name=f"Alice{i}",
            last_name=f"Liddell{9 - i}",
            hire_date=date(2015, 1, 1) + timedelta(days=30 * i),
            department_id=department.id,
            benefits_id=plan.id,
            version=1,
        )
        for i in range(10)
    ]
    db_session.add_all(employees)
    await db_session.commit()
    return employees


@pytest.fixture
async def csrf_token(client: AsyncClient, lookups) -> str:
    """Render a form once so the session cookie holds a token, and return it."""
    response = await client.get("/employees/create")
    match = CSRF_PATTERN.search(response.text)
    assert match, "form has no anti-forgery token"
    return match.group(1)
