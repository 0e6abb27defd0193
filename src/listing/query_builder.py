"""
Employee Listing Query Builder
=============================================================================
CONCEPT: Filter → Sort → Paginate

Every listing request goes through the same three steps:

  1. FILTER   keep records whose first or last name contains the search term
  2. SORT     order by the comparator named by the sort token
  3. PAGINATE cut one clamped window out of the ordered result

Two backends apply the same rules:

  build()            eager, over any iterable of records (in memory)
  paginate_select()  composes WHERE / ORDER BY / OFFSET / LIMIT onto an
                     SQLAlchemy Select and runs it (COUNT + one page)

SORT TOKENS (opaque strings round-tripped by the view):

  ""  / None / unknown   last name ascending
  "name_desc"            last name descending
  "Date"                 hire date ascending
  "date_desc"            hire date descending

Ties are always broken by ascending id, which makes each order total and
keeps page boundaries stable between requests.

BACKEND AGREEMENT:
  Case-insensitive search folds with `str.lower()` in memory and with SQL
  `lower()` in the database. SQLite's built-in `lower()` only folds ASCII,
  so src/db/engine.py replaces it with Python's on every connection.
  PostgreSQL's `lower()` and its ORDER BY on text follow the database
  locale, which can differ from Python's code-point order for non-ASCII
  names (and for case and punctuation under most non-C collations). The
  two backends return identical pages on SQLite, and on PostgreSQL
  databases created with the C collation.

"CURRENT FILTER":
  The filter applied on the previous request is not stored on the server.
  The view echoes it back as `currentFilter`; resolve_filter() decides which
  of the two strings wins and whether pagination restarts.
=============================================================================
"""

import operator
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Sequence

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.listing.page import Page, clamp_page, page_offset

SEARCH_FIELDS = ("first_name", "last_name")
TIEBREAK_FIELD = "id"


class SortOrder(str, Enum):
    NAME_ASC = ""
    NAME_DESC = "name_desc"
    DATE_ASC = "Date"
    DATE_DESC = "date_desc"

    @classmethod
    def parse(cls, token: str | None) -> "SortOrder":
        """Map a sort token to an order; anything unrecognised is the default."""
        if not token:
            return cls.NAME_ASC
        try:
            return cls(token)
        except ValueError:
            return cls.NAME_ASC

    @property
    def field(self) -> str:
        if self in (SortOrder.DATE_ASC, SortOrder.DATE_DESC):
            return "hire_date"
        return "last_name"

    @property
    def descending(self) -> bool:
        return self in (SortOrder.NAME_DESC, SortOrder.DATE_DESC)


@dataclass(frozen=True)
class SortLinks:
    """Tokens the column headers link to, toggling the current direction."""
    name: str
    date: str


def sort_links(sort_order: str | None) -> SortLinks:
    return SortLinks(
        name=SortOrder.NAME_DESC.value if not sort_order else SortOrder.NAME_ASC.value,
        date=SortOrder.DATE_DESC.value if sort_order == SortOrder.DATE_ASC.value else SortOrder.DATE_ASC.value,
    )


def resolve_filter(
    search_string: str | None,
    current_filter: str | None,
    page_number: int | None,
    default_page_number: int = 1,
) -> tuple[str | None, int]:
    """
    Decide the effective filter and page number for a listing request.

    A submitted search box (`search_string` is not None, even if empty)
    replaces the previous filter and restarts at page 1. Otherwise the
    previous filter is reused and the requested page is kept.
    """
    if search_string is not None:
        return search_string, 1
    if page_number is None:
        page_number = default_page_number
    return current_filter, page_number


# =============================================================================
# In-memory backend
# =============================================================================
def matches(record: Any, term: str, case_sensitive: bool = True) -> bool:
    """True when `term` is a substring of the record's first or last name."""
    if not case_sensitive:
        term = term.lower()
    for name in SEARCH_FIELDS:
        value = getattr(record, name) or ""
        if not case_sensitive:
            value = value.lower()
        if term in value:
            return True
    return False


def sort_records(records: Iterable[Any], order: SortOrder) -> list[Any]:
    # Two stable passes: tiebreak first, then the primary key. `reverse`
    # keeps equal keys in their existing (ascending id) order.
    ordered = sorted(records, key=operator.attrgetter(TIEBREAK_FIELD))
    ordered.sort(key=operator.attrgetter(order.field), reverse=order.descending)
    return ordered


def build(
    records: Iterable[Any],
    sort_order: str | SortOrder | None,
    search_string: str | None,
    page_number: int | None,
    page_size: int,
    case_sensitive: bool = True,
) -> Page:
    """
    Filter, sort and paginate `records` in memory.

    Pure: the input is only iterated, never modified, and the same inputs
    always produce the same page.
    """
    order = sort_order if isinstance(sort_order, SortOrder) else SortOrder.parse(sort_order)

    if search_string:
        records = [r for r in records if matches(r, search_string, case_sensitive)]

    ordered = sort_records(records, order)
    page_index, total_pages = clamp_page(page_number, len(ordered), page_size)
    start = page_offset(page_index, page_size)

    return Page(
        items=ordered[start:start + page_size],
        page_index=page_index,
        total_pages=total_pages,
        total_count=len(ordered),
        page_size=page_size,
    )


# =============================================================================
# SQL backend
# =============================================================================
def search_clause(model: Any, term: str, case_sensitive: bool = True):
    # autoescape makes % and _ in the term literal characters
    columns = [getattr(model, name) for name in SEARCH_FIELDS]
    if case_sensitive:
        return or_(*(column.contains(term, autoescape=True) for column in columns))
    return or_(*(column.icontains(term, autoescape=True) for column in columns))


def apply_filter(statement: Select, model: Any, search_string: str | None, case_sensitive: bool = True) -> Select:
    if search_string:
        statement = statement.where(search_clause(model, search_string, case_sensitive))
    return statement


def apply_order(statement: Select, model: Any, order: SortOrder) -> Select:
    column = getattr(model, order.field)
    return statement.order_by(
        column.desc() if order.descending else column.asc(),
        getattr(model, TIEBREAK_FIELD).asc(),
    )


async def paginate_select(
    db: AsyncSession,
    statement: Select,
    model: Any,
    sort_order: str | SortOrder | None,
    search_string: str | None,
    page_number: int | None,
    page_size: int,
    case_sensitive: bool = True,
    options: Sequence[Any] = (),
) -> Page:
    """
    Run one listing page against the database.

    `statement` is the unfiltered, unordered base query (e.g.
    `select(Employee)`). Loader `options` are applied to the page query only,
    never to the COUNT.
    """
    order = sort_order if isinstance(sort_order, SortOrder) else SortOrder.parse(sort_order)
    filtered = apply_filter(statement, model, search_string, case_sensitive)

    count_query = select(func.count()).select_from(filtered.subquery())
    total_count = (await db.execute(count_query)).scalar_one()

    page_index, total_pages = clamp_page(page_number, total_count, page_size)

    page_query = (
        apply_order(filtered, model, order)
        .options(*options)
        .offset(page_offset(page_index, page_size))
        .limit(page_size)
    )
    result = await db.execute(page_query)

    return Page(
        items=list(result.scalars().all()),
        page_index=page_index,
        total_pages=total_pages,
        total_count=total_count,
        page_size=page_size,
    )
