"""
Pagination Primitives
=============================================================================
CONCEPT: Offset Pagination with Clamping

A page is a window `[(p - 1) * size, p * size)` over an ordered result.
Out-of-range page numbers are pulled back into range instead of failing:

    total_count=10, page_size=3  →  total_pages=4
    page_number=0   → 1
    page_number=9   → 4
    total_count=0   → total_pages=0, page_number → 1 (empty page)

The navigation flags are derived from the clamped index, so a view can
render "Previous"/"Next" links without any arithmetic of its own.
=============================================================================
"""

import math
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


def clamp_page(page_number: int | None, total_count: int, page_size: int) -> tuple[int, int]:
    """Return `(page_index, total_pages)` with the index forced into range."""
    if page_size < 1:
        raise ValueError(f"page_size must be positive, got {page_size}")

    total_pages = math.ceil(total_count / page_size)

    if page_number is None or page_number < 1:
        return 1, total_pages
    if page_number > total_pages:
        return max(total_pages, 1), total_pages
    return page_number, total_pages


def page_offset(page_index: int, page_size: int) -> int:
    return (page_index - 1) * page_size


@dataclass(frozen=True)
class Page(Generic[T]):
    """
    One bounded, ordered window of records plus navigation metadata.

    Attributes:
        items: The records on this page, already in sort order.
        page_index: 1-based index of this page after clamping.
        total_pages: ceil(total_count / page_size); 0 when nothing matched.
        total_count: Number of records matching the filter (all pages).
        page_size: Maximum number of items per page.
    """
    items: list[T] = field(default_factory=list)
    page_index: int = 1
    total_pages: int = 0
    total_count: int = 0
    page_size: int = 1

    @property
    def has_previous_page(self) -> bool:
        return self.page_index > 1

    @property
    def has_next_page(self) -> bool:
        return self.page_index < self.total_pages
