"""
Seed Data Script: Populate the database with sample data
=============================================================================
CONCEPT: Data Seeding

Seeding fills the database with realistic sample data so the list page has
something to search, sort and page through.

This script creates (when the tables are empty):
  - 4 departments
  - 3 benefit plans
  - 12 employees spread over several hire years

Run: python -m scripts.seed_data
=============================================================================
"""

import asyncio
import os
import sys
from datetime import date

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import func, select

from src.db.engine import async_session_maker, create_tables, engine
from src.db.models import Benefits, Department, Employee
from src.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)

DEPARTMENTS = ["Engineering", "Finance", "Human Resources", "Sales"]

BENEFIT_PLANS = ["Basic Health", "Health + Dental", "Full Coverage"]

# (first_name, last_name, hire_date, department index, benefits index)
EMPLOYEES = [
    ("Amina", "Benali", date(2018, 3, 12), 2, 1),
    ("Karim", "Haddad", date(2019, 7, 1), 0, 2),
    ("Fatima", "Zerhouni", date(2016, 1, 18), 1, 2),
    ("Yacine", "Mansouri", date(2021, 9, 6), 0, 0),
    ("Lina", "Cherif", date(2020, 2, 24), 3, 1),
    ("Omar", "Belkacem", date(2017, 11, 3), 1, 0),
    ("Sarah", "Smith", date(2022, 4, 11), 3, 0),
    ("John", "Smithers", date(2015, 6, 29), 0, 2),
    ("Nadia", "Boudiaf", date(2023, 1, 9), 2, 1),
    ("Rachid", "Amrani", date(2019, 10, 14), 3, 2),
    ("Meriem", "Saidi", date(2024, 5, 20), 0, 1),
    ("Walid", "Khelifi", date(2014, 8, 4), 1, 0),
]


async def _count(session, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


async def seed_lookups(session) -> tuple[list[Department], list[Benefits]]:
    """Create departments and benefit plans unless they already exist."""
    if await _count(session, Department) == 0:
        session.add_all(Department(name=name) for name in DEPARTMENTS)
        await session.commit()
        logger.info("seeded_departments", count=len(DEPARTMENTS))

    if await _count(session, Benefits) == 0:
        session.add_all(Benefits(name=name) for name in BENEFIT_PLANS)
        await session.commit()
        logger.info("seeded_benefits", count=len(BENEFIT_PLANS))

    departments = list((await session.execute(select(Department).order_by(Department.id))).scalars())
    benefits = list((await session.execute(select(Benefits).order_by(Benefits.id))).scalars())
    return departments, benefits


async def seed_employees(session, departments, benefits) -> None:
    existing = await _count(session, Employee)
    if existing > 0:
        logger.info("seed_employees_skipped", existing=existing)
        return

    session.add_all(
        Employee(
            first_name=first_name,
            last_name=last_name,
            hire_date=hire_date,
            department_id=departments[dept_index].id,
            benefits_id=benefits[plan_index].id,
            version=1,
        )
        for first_name, last_name, hire_date, dept_index, plan_index in EMPLOYEES
    )
    await session.commit()
    logger.info("seeded_employees", count=len(EMPLOYEES))


async def main():
    setup_logging()
    await create_tables()

    async with async_session_maker() as session:
        departments, benefits = await seed_lookups(session)
        await seed_employees(session, departments, benefits)

    await engine.dispose()
    logger.info("seeding_complete")


if __name__ == "__main__":
    asyncio.run(main())
