from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, NamedTuple

from .. import config


class PageKind(str, Enum):
    SINGLE = "single"
    FIRST = "first"
    MIDDLE = "middle"
    LAST = "last"
    FOOTER = "footer"

    @property
    def template_name(self) -> str:
        return f"{self.value}_page"

    @property
    def shows_header(self) -> bool:
        return self in (PageKind.SINGLE, PageKind.FIRST)

    @property
    def shows_totals(self) -> bool:
        return self in (PageKind.SINGLE, PageKind.LAST, PageKind.FOOTER)


@dataclass(frozen=True)
class Capacity:
    single_page_max: int
    short_first_page_max: int
    long_first_page_max: int
    continuation_page_max: int


INVOICE_CAPACITY = Capacity(
    single_page_max=config.SINGLE_PAGE_MAX,
    short_first_page_max=config.SHORT_FIRST_PAGE_MAX,
    long_first_page_max=config.LONG_FIRST_PAGE_MAX,
    continuation_page_max=config.CONTINUATION_PAGE_MAX,
)

# Ledgers have no short-first tier: anything past a single page starts a
# full first page.
LEDGER_CAPACITY = Capacity(
    single_page_max=config.LEDGER_SINGLE_PAGE_MAX,
    short_first_page_max=config.LEDGER_SINGLE_PAGE_MAX,
    long_first_page_max=config.LEDGER_FIRST_PAGE_MAX,
    continuation_page_max=config.LEDGER_CONTINUATION_PAGE_MAX,
)


class PlannedPage(NamedTuple):
    kind: PageKind
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start


def plan(item_count: int, capacity: Capacity = INVOICE_CAPACITY) -> List[PlannedPage]:
    """
    Split ``item_count`` rows across page templates.

    Returns (kind, start, end) entries in print order. Item slices are
    contiguous and cover ``range(item_count)`` exactly once; footer pages
    carry an empty slice at the end of the range.
    """
    if item_count < 0:
        raise ValueError("item_count must not be negative")

    if item_count <= capacity.single_page_max:
        return [PlannedPage(PageKind.SINGLE, 0, item_count)]

    if item_count <= capacity.short_first_page_max:
        return [
            PlannedPage(PageKind.FIRST, 0, item_count),
            PlannedPage(PageKind.FOOTER, item_count, item_count),
        ]

    first_end = min(item_count, capacity.long_first_page_max)
    pages = [PlannedPage(PageKind.FIRST, 0, first_end)]
    start = first_end
    while item_count - start > capacity.continuation_page_max:
        end = start + capacity.continuation_page_max
        pages.append(PlannedPage(PageKind.MIDDLE, start, end))
        start = end

    if start < item_count:
        pages.append(PlannedPage(PageKind.LAST, start, item_count))
    else:
        pages.append(PlannedPage(PageKind.FOOTER, item_count, item_count))
    return pages
