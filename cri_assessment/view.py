"""Filtering and pagination of the diagnostic catalog for display."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional

from cri_assessment.catalog import DiagnosticItem

PAGE_WINDOW = 5


@dataclass(frozen=True)
class PageView:
    """One page of the filtered catalog."""
    items: List[DiagnosticItem]
    page: int
    total_pages: int
    filtered_count: int

    @property
    def visible_pages(self) -> List[int]:
        return visible_pages(self.page, self.total_pages)


def filter_diagnostics(
    catalog: Iterable[DiagnosticItem],
    selected_tiers: Iterable[int],
    selected_tag: Optional[str] = None,
) -> List[DiagnosticItem]:
    """Items in any selected tier and, if a tag is given, carrying that tag.

    Catalog order is preserved.
    """
    tiers = set(selected_tiers)
    return [
        item for item in catalog
        if item.in_any_tier(tiers) and (not selected_tag or selected_tag in item.tags)
    ]


def total_pages_for(count: int, page_size: int) -> int:
    return max(1, math.ceil(count / page_size))


def clamp_page(page: int, total_pages: int) -> int:
    return min(max(page, 1), total_pages)


def filter_and_page(
    catalog: Iterable[DiagnosticItem],
    selected_tiers: Iterable[int],
    selected_tag: Optional[str],
    page: int,
    page_size: int,
) -> PageView:
    """Filter the catalog and slice out one 1-based page.

    Out-of-range pages are clamped to the nearest valid page.
    """
    if page_size < 1:
        raise ValueError("page_size must be positive")
    filtered = filter_diagnostics(catalog, selected_tiers, selected_tag)
    total = total_pages_for(len(filtered), page_size)
    page = clamp_page(page, total)
    start = (page - 1) * page_size
    return PageView(
        items=filtered[start:start + page_size],
        page=page,
        total_pages=total,
        filtered_count=len(filtered),
    )


def visible_pages(current: int, total_pages: int, window: int = PAGE_WINDOW) -> List[int]:
    """Page numbers for the pagination control.

    At most ``window`` consecutive pages centred on ``current``. Near the
    first and last page the window is cut short rather than shifted, so
    page 1 of 10 shows [1, 2, 3].
    """
    total_pages = max(total_pages, 1)
    current = clamp_page(current, total_pages)
    half = window // 2
    start = max(1, current - half)
    end = min(total_pages, current + half)
    return list(range(start, end + 1))
