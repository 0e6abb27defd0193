"""
Data Access Layer (Repositories)
=============================================================================
CONCEPT: Repository Pattern

All database operations for the employee controller live here, so routes
never build SQL themselves. Each function is a thin wrapper around one
SQLAlchemy query or one write followed by a commit.

CONCEPT: Optimistic Concurrency on Update
    UPDATE employees SET ..., version = version + 1
    WHERE id = :id AND version = :version

  0 rows matched has two possible causes:
    - the record was deleted        → caller reports "not found"
    - the record was changed by someone else → ConcurrencyConflictError,
      surfaced unhandled (no retry, no merge)
=============================================================================
"""

from dataclasses import dataclass
from datetime import date

from sqlalchemy import exists, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.db.models import Benefits, Department, Employee
from src.listing.page import Page
from src.listing.query_builder import SortOrder, paginate_select
from src.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass
class DepartmentGroup:
    department_id: int
    department_count: int


class ConcurrencyConflictError(Exception):
    """The employee exists but was modified since the edit form was rendered."""

    def __init__(self, employee_id: int, expected_version: int):
        self.employee_id = employee_id
        self.expected_version = expected_version
        super().__init__(
            f"Employee {employee_id} was modified concurrently "
            f"(expected version {expected_version})"
        )


# =============================================================================
# Lookups for select lists
# =============================================================================
async def list_departments(db: AsyncSession) -> list[Department]:
    result = await db.execute(select(Department).order_by(Department.id))
    return list(result.scalars().all())


async def list_benefits(db: AsyncSession) -> list[Benefits]:
    result = await db.execute(select(Benefits).order_by(Benefits.id))
    return list(result.scalars().all())


async def department_exists(db: AsyncSession, department_id: int) -> bool:
    return await db.get(Department, department_id) is not None


async def benefits_exists(db: AsyncSession, benefits_id: int) -> bool:
    return await db.get(Benefits, benefits_id) is not None


# =============================================================================
# Employee reads
# =============================================================================
async def list_employees_page(
    db: AsyncSession,
    sort_order: str | SortOrder | None,
    search_string: str | None,
    page_number: int | None,
    page_size: int,
    case_sensitive: bool = True,
) -> Page:
    """One listing page of employees with department and benefits loaded."""
    return await paginate_select(
        db,
        select(Employee),
        Employee,
        sort_order=sort_order,
        search_string=search_string,
        page_number=page_number,
        page_size=page_size,
        case_sensitive=case_sensitive,
        options=(selectinload(Employee.department), selectinload(Employee.benefits)),
    )


async def get_employee(db: AsyncSession, employee_id: int) -> Employee | None:
    """Fetch an employee with its department and benefits, or None."""
    result = await db.execute(
        select(Employee)
        .where(Employee.id == employee_id)
        .options(selectinload(Employee.department), selectinload(Employee.benefits))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def employee_exists(db: AsyncSession, employee_id: int) -> bool:
    result = await db.execute(select(exists().where(Employee.id == employee_id)))
    return bool(result.scalar())


async def count_by_department(db: AsyncSession) -> list[DepartmentGroup]:
    """Number of employees per department, ordered by department id."""
    result = await db.execute(
        select(Employee.department_id, func.count(Employee.id))
        .group_by(Employee.department_id)
        .order_by(Employee.department_id)
    )
    return [
        DepartmentGroup(department_id=department_id, department_count=count)
        for department_id, count in result.all()
    ]


# =============================================================================
# Employee writes
# =============================================================================
async def create_employee(
    db: AsyncSession,
    first_name: str,
    last_name: str,
    hire_date: date,
    department_id: int,
    benefits_id: int,
) -> Employee:
    employee = Employee(
        first_name=first_name,
        last_name=last_name,
        hire_date=hire_date,
        department_id=department_id,
        benefits_id=benefits_id,
        version=1,
    )
    db.add(employee)
    await db.commit()
    await db.refresh(employee)
    logger.info("employee_created", employee_id=employee.id)
    return employee


async def update_employee(
    db: AsyncSession,
    employee_id: int,
    expected_version: int,
    **values,
) -> bool:
    """
    Apply `values` to an employee if it is still at `expected_version`.

    Returns False when the employee no longer exists. Raises
    ConcurrencyConflictError when it exists at a different version.
    """
    result = await db.execute(
        update(Employee)
        .where(Employee.id == employee_id, Employee.version == expected_version)
        .values(**values, version=Employee.version + 1)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 1:
        await db.commit()
        logger.info("employee_updated", employee_id=employee_id, version=expected_version + 1)
        return True

    await db.rollback()
    if not await employee_exists(db, employee_id):
        logger.info("employee_update_missing", employee_id=employee_id)
        return False

    logger.warning(
        "employee_update_conflict",
        employee_id=employee_id,
        expected_version=expected_version,
    )
    raise ConcurrencyConflictError(employee_id, expected_version)


async def delete_employee(db: AsyncSession, employee_id: int) -> bool:
    """Delete an employee if present. Returns whether a row was removed."""
    employee = await db.get(Employee, employee_id)
    if employee is None:
        return False
    await db.delete(employee)
    await db.commit()
    logger.info("employee_deleted", employee_id=employee_id)
    return True
