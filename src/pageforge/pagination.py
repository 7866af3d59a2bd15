"""
PageForge Pagination Splitter

Splits an ordered item sequence into page segments at pagination break
markers, in a single scan.

- k markers produce k + 1 segments (a trailing marker opens an empty page)
- consecutive markers produce empty segments
- concatenating segment items reproduces the input without markers
- with no markers there is one segment and no navigation

Unit ids follow the output file naming: the first page is the base name,
later pages are `<base>_p<N>`.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar

from .models import NavDirection
from .tabs import GroupNode

T = TypeVar("T")

DEFAULT_SEPARATOR = "of"


def unit_id_for(base_unit_name: str, page_index: int) -> str:
    """Unit id of a 1-based page: `index`, `index_p2`, `index_p3`, ..."""
    if page_index == 1:
        return base_unit_name
    return f"{base_unit_name}_p{page_index}"


# =============================================================================
# Navigation
# =============================================================================

@dataclass(frozen=True)
class Navigation:
    """
    Inter-page navigation of one segment.

    Attributes:
        page_index: 1-based position of the page
        page_count: Number of pages
        base_unit_name: Base name shared by all units of the page
        previous_unit: Unit id of the previous page (None on the first)
        next_unit: Unit id of the next page (None on the last)
        separator: Label between page number and count ("2 of 5")
    """
    page_index: int
    page_count: int
    base_unit_name: str
    previous_unit: Optional[str] = None
    next_unit: Optional[str] = None
    separator: str = DEFAULT_SEPARATOR

    @property
    def directions(self) -> tuple[NavDirection, ...]:
        """Links this page exposes."""
        links = []
        if self.previous_unit is not None:
            links.append(NavDirection.PREVIOUS)
        if self.next_unit is not None:
            links.append(NavDirection.NEXT)
        return tuple(links)

    @property
    def page_units(self) -> list[str]:
        """Unit ids of every page, in order."""
        return [unit_id_for(self.base_unit_name, i) for i in range(1, self.page_count + 1)]

    @property
    def indicator(self) -> str:
        return f"{self.page_index} {self.separator} {self.page_count}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_index": self.page_index,
            "page_count": self.page_count,
            "base_unit_name": self.base_unit_name,
            "previous": self.previous_unit,
            "next": self.next_unit,
            "separator": self.separator,
        }


def build_navigation(
    page_index: int,
    page_count: int,
    base_unit_name: str,
    separator: str = DEFAULT_SEPARATOR,
) -> Navigation:
    """Navigation for one page: first -> next only, last -> previous only."""
    previous_unit = unit_id_for(base_unit_name, page_index - 1) if page_index > 1 else None
    next_unit = unit_id_for(base_unit_name, page_index + 1) if page_index < page_count else None
    return Navigation(
        page_index=page_index,
        page_count=page_count,
        base_unit_name=base_unit_name,
        previous_unit=previous_unit,
        next_unit=next_unit,
        separator=separator,
    )


# =============================================================================
# Segments
# =============================================================================

@dataclass(frozen=True)
class PageSegment(Generic[T]):
    """
    One output unit of a paginated page.

    Attributes:
        page_index: 1-based position
        page_count: Total number of segments
        unit_id: Output unit id (`base` or `base_p<N>`)
        items: Items of the segment in insertion order (no markers)
        pagination_after: Marker that closed the segment, if any
        navigation: Links to neighbouring pages (None when unpaginated)
        tabs: Group forest of the segment, set once items are named
    """
    page_index: int
    page_count: int
    unit_id: str
    items: tuple[T, ...] = ()
    pagination_after: Optional[T] = None
    navigation: Optional[Navigation] = None
    tabs: Optional[GroupNode[T]] = None

    @property
    def is_empty(self) -> bool:
        return not self.items

    def with_tabs(self, tabs: GroupNode[T]) -> PageSegment[T]:
        return replace(self, tabs=tabs)


def split_segments(
    entries: Sequence[T],
    is_break: Callable[[T], bool],
    base_unit_name: str,
    separator: str = DEFAULT_SEPARATOR,
    separator_of: Optional[Callable[[T], Optional[str]]] = None,
) -> list[PageSegment[T]]:
    """
    Split entries into page segments.

    Args:
        entries: Items in insertion order, markers included
        is_break: Identifies pagination break markers
        base_unit_name: Base name of the output units
        separator: Page indicator label used unless a marker overrides it
        separator_of: Reads a marker's own separator label (optional)

    Returns:
        Segments in page order
    """
    groups: list[list[T]] = [[]]
    markers: list[Optional[T]] = []
    for entry in entries:
        if is_break(entry):
            markers.append(entry)
            groups.append([])
        else:
            groups[-1].append(entry)
    markers.append(None)

    page_count = len(groups)
    paginated = page_count > 1

    # A marker's separator applies to the page it closes
    separators = []
    for marker in markers:
        label = separator_of(marker) if (marker is not None and separator_of) else None
        separators.append(label or separator)

    segments: list[PageSegment[T]] = []
    for position, (items, marker) in enumerate(zip(groups, markers)):
        page_index = position + 1
        navigation = (
            build_navigation(page_index, page_count, base_unit_name, separators[position])
            if paginated else None
        )
        segments.append(PageSegment(
            page_index=page_index,
            page_count=page_count,
            unit_id=unit_id_for(base_unit_name, page_index),
            items=tuple(items),
            pagination_after=marker,
            navigation=navigation,
        ))
    return segments
