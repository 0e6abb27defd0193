"""
Employee Endpoints
=============================================================================
CONCEPT: Server-Rendered CRUD

Each action maps one HTTP request to one query or one write:

  GET  /employees                  list (search, sort, paginate)
  GET  /employees/dept-count       employees per department
  GET  /employees/{id}             details
  GET  /employees/create           empty form
  POST /employees/create           insert → redirect to list
  GET  /employees/{id}/edit        filled form
  POST /employees/{id}/edit        optimistic update → redirect to list
  GET  /employees/{id}/delete      confirmation page
  POST /employees/{id}/delete      delete → redirect to list
  GET  /api/employees              the list page as JSON

CONCEPT: Post/Redirect/Get
A successful POST answers with 303 See Other to the list, so refreshing the
browser never resubmits the form.

CONCEPT: Over-posting
Only the fields declared on EmployeeForm are read from a posted form, plus
the hidden `id` and `version` inputs of the edit form. Any other field a
client adds (say `created_at=...`) is ignored.

CONCEPT: Route ids
The `{id}` path segment is parsed leniently: an id that is not an integer
names no employee, so it answers 404 like any other missing record.
=============================================================================
"""

import time
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.antiforgery import verify_csrf_token
from src.api.templating import render
from src.config import settings
from src.db import repositories as repo
from src.db.engine import get_db_session
from src.db.repositories import ConcurrencyConflictError
from src.listing.page import Page
from src.listing.query_builder import resolve_filter, sort_links
from src.observability.logging import get_logger
from src.observability.metrics import record_listing, record_write

logger = get_logger(__name__)

router = APIRouter(prefix="/employees", tags=["Employees"])
json_router = APIRouter(prefix="/api/employees", tags=["Employees"])

LIST_URL = "/employees"


# =============================================================================
# Pydantic Schemas
# =============================================================================
class EmployeeForm(BaseModel):
    """The bindable fields of the create and edit forms."""
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    hire_date: date
    department_id: int
    benefits_id: int


class EmployeeResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    hire_date: date
    department_id: int
    department_name: str | None = None
    benefits_id: int
    benefits_name: str | None = None
    version: int


class EmployeePageResponse(BaseModel):
    """
    One listing page plus the parameters that produced it.

    `sort_order` and `current_filter` are echoed verbatim so a client can
    build next/previous links that keep the same sort and filter.
    """
    employees: list[EmployeeResponse]
    page_index: int
    total_pages: int
    total_count: int
    page_size: int
    has_previous_page: bool
    has_next_page: bool
    sort_order: str | None
    current_filter: str | None


def _employee_to_response(employee) -> EmployeeResponse:
    return EmployeeResponse(
        id=employee.id,
        first_name=employee.first_name,
        last_name=employee.last_name,
        hire_date=employee.hire_date,
        department_id=employee.department_id,
        department_name=employee.department.name if employee.department else None,
        benefits_id=employee.benefits_id,
        benefits_name=employee.benefits.name if employee.benefits else None,
        version=employee.version,
    )


# =============================================================================
# Helpers
# =============================================================================
def _parse_int(value) -> int | None:
    """Lenient int parsing for query strings and hidden inputs."""
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


async def _load_listing(
    db: AsyncSession,
    sort_order: str | None,
    current_filter: str | None,
    search_string: str | None,
    page_number: str | None,
) -> tuple[Page, str | None]:
    """Resolve the listing parameters and fetch one page."""
    effective_filter, page = resolve_filter(
        search_string,
        current_filter,
        _parse_int(page_number),
        default_page_number=settings.default_page_number,
    )

    start = time.perf_counter()
    result = await repo.list_employees_page(
        db,
        sort_order=sort_order,
        search_string=effective_filter,
        page_number=page,
        page_size=settings.page_size,
        case_sensitive=settings.search_case_sensitive,
    )
    duration_ms = (time.perf_counter() - start) * 1000
    record_listing(duration_ms, result.total_count)

    logger.info(
        "employee_listing",
        sort_order=sort_order,
        search=effective_filter,
        page_index=result.page_index,
        total_count=result.total_count,
        duration_ms=round(duration_ms, 2),
    )
    return result, effective_filter


async def _bind_employee_form(db: AsyncSession, form) -> tuple[EmployeeForm | None, dict[str, str], dict]:
    """
    Validate the posted form.

    Returns `(data, errors, raw)`: `data` is None whenever `errors` is not
    empty, `raw` holds the submitted strings for re-rendering the form.
    """
    raw = {name: form.get(name, "") for name in EmployeeForm.model_fields}
    errors: dict[str, str] = {}

    try:
        data = EmployeeForm.model_validate(raw)
    except ValidationError as exc:
        for error in exc.errors():
            errors.setdefault(str(error["loc"][0]), error["msg"])
        return None, errors, raw

    if not await repo.department_exists(db, data.department_id):
        errors["department_id"] = "Unknown department."
    if not await repo.benefits_exists(db, data.benefits_id):
        errors["benefits_id"] = "Unknown benefits plan."

    return (None if errors else data), errors, raw


async def _render_form(
    request: Request,
    db: AsyncSession,
    template: str,
    values: dict,
    errors: dict | None = None,
):
    return render(
        request,
        template,
        {
            "values": values,
            "errors": errors or {},
            "departments": await repo.list_departments(db),
            "benefits": await repo.list_benefits(db),
        },
    )


def _route_id(employee_id: str) -> int:
    """The integer id in the route, or 404 when there is none."""
    parsed = _parse_int(employee_id)
    if parsed is None:
        raise HTTPException(status_code=404, detail=f"Employee {employee_id} not found")
    return parsed


async def _get_or_404(db: AsyncSession, employee_id: str):
    employee = await repo.get_employee(db, _route_id(employee_id))
    if employee is None:
        raise HTTPException(status_code=404, detail=f"Employee {employee_id} not found")
    return employee


def _form_values(employee) -> dict:
    return {
        "id": employee.id,
        "version": employee.version,
        "first_name": employee.first_name,
        "last_name": employee.last_name,
        "hire_date": employee.hire_date.isoformat(),
        "department_id": employee.department_id,
        "benefits_id": employee.benefits_id,
    }


# =============================================================================
# List
# =============================================================================
@router.get("", response_class=HTMLResponse)
async def index(
    request: Request,
    sort_order: str | None = Query(None, alias="sortOrder"),
    current_filter: str | None = Query(None, alias="currentFilter"),
    search_string: str | None = Query(None, alias="searchString"),
    page_number: str | None = Query(None, alias="pageNumber"),
    db: AsyncSession = Depends(get_db_session),
):
    """
    Employee list.

    A submitted search box restarts at page 1; paging links carry the
    previous filter back as `currentFilter`. Bad page numbers and unknown
    sort tokens fall back to sensible defaults instead of failing.
    """
    page, effective_filter = await _load_listing(
        db, sort_order, current_filter, search_string, page_number
    )
    return render(
        request,
        "employees/index.html",
        {
            "page": page,
            "current_sort": sort_order or "",
            "current_filter": effective_filter or "",
            "sort_links": sort_links(sort_order),
        },
    )


@json_router.get("", response_model=EmployeePageResponse)
async def list_employees(
    sort_order: str | None = Query(None, alias="sortOrder"),
    current_filter: str | None = Query(None, alias="currentFilter"),
    search_string: str | None = Query(None, alias="searchString"),
    page_number: str | None = Query(None, alias="pageNumber"),
    db: AsyncSession = Depends(get_db_session),
):
    """The same listing as the HTML index, as JSON."""
    page, effective_filter = await _load_listing(
        db, sort_order, current_filter, search_string, page_number
    )
    return EmployeePageResponse(
        employees=[_employee_to_response(e) for e in page.items],
        page_index=page.page_index,
        total_pages=page.total_pages,
        total_count=page.total_count,
        page_size=page.page_size,
        has_previous_page=page.has_previous_page,
        has_next_page=page.has_next_page,
        sort_order=sort_order,
        current_filter=effective_filter,
    )


@router.get("/dept-count", response_class=HTMLResponse)
async def dept_count(request: Request, db: AsyncSession = Depends(get_db_session)):
    """Number of employees in each department."""
    groups = await repo.count_by_department(db)
    return render(request, "employees/dept_count.html", {"groups": groups})


# =============================================================================
# Create
# =============================================================================
@router.get("/create", response_class=HTMLResponse)
async def create_form(request: Request, db: AsyncSession = Depends(get_db_session)):
    return await _render_form(request, db, "employees/create.html", values={})


@router.post("/create", dependencies=[Depends(verify_csrf_token)])
async def create(request: Request, db: AsyncSession = Depends(get_db_session)):
    form = await request.form()
    data, errors, raw = await _bind_employee_form(db, form)

    if errors:
        record_write("create", "invalid")
        return await _render_form(request, db, "employees/create.html", raw, errors)

    await repo.create_employee(db, **data.model_dump())
    record_write("create", "success")
    return RedirectResponse(LIST_URL, status_code=303)


# =============================================================================
# Details
# =============================================================================
@router.get("/{employee_id}", response_class=HTMLResponse)
async def details(request: Request, employee_id: str, db: AsyncSession = Depends(get_db_session)):
    employee = await _get_or_404(db, employee_id)
    return render(request, "employees/details.html", {"employee": employee})


# =============================================================================
# Edit
# =============================================================================
@router.get("/{employee_id}/edit", response_class=HTMLResponse)
async def edit_form(request: Request, employee_id: str, db: AsyncSession = Depends(get_db_session)):
    employee = await _get_or_404(db, employee_id)
    return await _render_form(request, db, "employees/edit.html", _form_values(employee))


@router.post("/{employee_id}/edit", dependencies=[Depends(verify_csrf_token)])
async def edit(request: Request, employee_id: str, db: AsyncSession = Depends(get_db_session)):
    """
    Save an edit.

    The hidden `version` input is the version the form was rendered from.
    If the row has since been deleted the answer is 404; if it has been
    changed, ConcurrencyConflictError propagates to the caller.
    """
    employee_id = _route_id(employee_id)
    form = await request.form()
    if _parse_int(form.get("id")) != employee_id:
        raise HTTPException(status_code=404, detail=f"Employee {employee_id} not found")

    data, errors, raw = await _bind_employee_form(db, form)
    version = _parse_int(form.get("version"))
    if version is None:
        errors["version"] = "Missing record version; reload the page."

    if errors:
        record_write("update", "invalid")
        values = {**raw, "id": employee_id, "version": form.get("version", "")}
        return await _render_form(request, db, "employees/edit.html", values, errors)

    try:
        updated = await repo.update_employee(db, employee_id, version, **data.model_dump())
    except ConcurrencyConflictError:
        record_write("update", "conflict")
        raise

    if not updated:
        record_write("update", "not_found")
        raise HTTPException(status_code=404, detail=f"Employee {employee_id} not found")

    record_write("update", "success")
    return RedirectResponse(LIST_URL, status_code=303)


# =============================================================================
# Delete
# =============================================================================
@router.get("/{employee_id}/delete", response_class=HTMLResponse)
async def delete_form(request: Request, employee_id: str, db: AsyncSession = Depends(get_db_session)):
    employee = await _get_or_404(db, employee_id)
    return render(request, "employees/delete.html", {"employee": employee})


@router.post("/{employee_id}/delete", dependencies=[Depends(verify_csrf_token)])
async def delete_confirmed(employee_id: str, db: AsyncSession = Depends(get_db_session)):
    # Deleting an already-deleted (or never existing) employee is not an error.
    record_id = _parse_int(employee_id)
    deleted = record_id is not None and await repo.delete_employee(db, record_id)
    record_write("delete", "success" if deleted else "not_found")
    return RedirectResponse(LIST_URL, status_code=303)
