"""
PageForge Enumerations

All enumeration types used throughout the compiler.

All enums inherit from (str, Enum) for JSON serialization compatibility.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


# =============================================================================
# Content Item Kinds
# =============================================================================

class ItemKind(str, Enum):
    """Closed set of content item kinds a collection may hold."""
    VIZ = "viz"
    TEXT = "text"
    IMAGE = "image"
    LAYOUT_COLUMN = "layout_column"
    LAYOUT_ROW = "layout_row"
    PAGINATION_BREAK = "pagination_break"
    INPUT_CONTROL = "input_control"
    SIDEBAR = "sidebar"
    CALLOUT = "callout"
    DIVIDER = "divider"
    SPACER = "spacer"
    HTML = "html"
    METRIC = "metric"
    VALUE_BOX = "value_box"

    @classmethod
    def coerce(cls, value: object) -> Optional[ItemKind]:
        """Return the matching kind, or None for unknown tags."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class VizType(str, Enum):
    """Chart types understood by the charting backends."""
    BAR = "bar"
    STACKEDBAR = "stackedbar"
    STACKEDBARS = "stackedbars"
    SCATTER = "scatter"
    HEATMAP = "heatmap"
    HISTOGRAM = "histogram"
    DENSITY = "density"
    TIMELINE = "timeline"
    TREEMAP = "treemap"
    BOXPLOT = "boxplot"
    MAP = "map"
    LOLLIPOP = "lollipop"
    FUNNEL = "funnel"
    PIE = "pie"
    WAFFLE = "waffle"
    DUMBBELL = "dumbbell"
    GAUGE = "gauge"
    SANKEY = "sankey"


# Alternate names resolved to a canonical chart type
VIZ_TYPE_ALIASES: dict[str, VizType] = {
    "donut": VizType.PIE,
    "pyramid": VizType.FUNNEL,
}


class LayoutDirection(str, Enum):
    """Direction of a layout container."""
    COLUMN = "column"
    ROW = "row"


# =============================================================================
# Visibility Conditions
# =============================================================================

class ConditionOperator(str, Enum):
    """Operators of a compiled visibility condition."""
    AND = "and"
    OR = "or"
    EQ = "eq"
    NEQ = "neq"
    IN = "in"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"

    @property
    def is_logical(self) -> bool:
        return self in {ConditionOperator.AND, ConditionOperator.OR}


# =============================================================================
# Incremental Builds
# =============================================================================

class BuildStatus(str, Enum):
    """Classification of an output unit against the previous manifest."""
    NEW = "new"
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    REMOVED = "removed"

    @property
    def needs_generation(self) -> bool:
        return self in {BuildStatus.NEW, BuildStatus.CHANGED}


class NavDirection(str, Enum):
    """Links a page segment exposes to its neighbours."""
    PREVIOUS = "previous"
    NEXT = "next"
