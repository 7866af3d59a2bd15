"""
PageForge Models

All data models of the content-pipeline compiler:

    from pageforge.models import (
        # Enums
        ItemKind, VizType, LayoutDirection, ConditionOperator, BuildStatus,
        # Items
        ContentItem, KIND_RULES, VIZ_RULES,
        # Collections
        Collection, DatasetBinding,
    )
"""
from __future__ import annotations

# =============================================================================
# Enums
# =============================================================================
from .enums import (
    VIZ_TYPE_ALIASES,
    BuildStatus,
    ConditionOperator,
    ItemKind,
    LayoutDirection,
    NavDirection,
    VizType,
)

# =============================================================================
# Items
# =============================================================================
from .items import (
    COMMON_FIELDS,
    KIND_RULES,
    VIZ_RULES,
    ContentItem,
    KindRule,
    VizRule,
    pagination_break,
    resolve_viz_type,
)

# =============================================================================
# Collections
# =============================================================================
from .collection import (
    DEFAULT_DATASET_NAME,
    Collection,
    DatasetBinding,
)

__all__ = [
    # Enums
    "VIZ_TYPE_ALIASES",
    "BuildStatus",
    "ConditionOperator",
    "ItemKind",
    "LayoutDirection",
    "NavDirection",
    "VizType",
    # Items
    "COMMON_FIELDS",
    "KIND_RULES",
    "VIZ_RULES",
    "ContentItem",
    "KindRule",
    "VizRule",
    "pagination_break",
    "resolve_viz_type",
    # Collections
    "DEFAULT_DATASET_NAME",
    "Collection",
    "DatasetBinding",
]
