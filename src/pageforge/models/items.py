"""
PageForge Content Items

A ContentItem is one entry in a collection: a chart, a block of text, a
layout container, a pagination break, and so on. Items are immutable once
created; builder operations return new items instead of mutating them.

Kind-specific behaviour (required fields, built-in defaults, the fields
used to derive readable chunk names) lives in explicit dispatch tables
keyed by ItemKind / VizType so that adding a kind means adding a row here.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Optional, Union

from .enums import VIZ_TYPE_ALIASES, ItemKind, VizType


# =============================================================================
# Field Catalogue
# =============================================================================

# Fields stored as attributes on ContentItem; everything else goes to options
COMMON_FIELDS: tuple[str, ...] = (
    "group_path",
    "title",
    "tab_label",
    "filter",
    "dataset_ref",
    "visibility",
    "viz_type",
)


# =============================================================================
# Kind Rules
# =============================================================================

@dataclass(frozen=True)
class KindRule:
    """
    Static rules for one item kind.

    Attributes:
        required: Option keys that must resolve to a non-null value
        builtin_defaults: Values used when neither the item nor the
            collection provides the field
    """
    required: tuple[str, ...] = ()
    builtin_defaults: dict[str, Any] = field(default_factory=dict)


KIND_RULES: dict[ItemKind, KindRule] = {
    ItemKind.VIZ: KindRule(
        required=("viz_type",),
        builtin_defaults={"text_position": "above", "drop_na_vars": False},
    ),
    ItemKind.TEXT: KindRule(required=("content",)),
    ItemKind.IMAGE: KindRule(
        required=("src",),
        builtin_defaults={"align": "center"},
    ),
    ItemKind.LAYOUT_COLUMN: KindRule(),
    ItemKind.LAYOUT_ROW: KindRule(),
    ItemKind.PAGINATION_BREAK: KindRule(),
    ItemKind.INPUT_CONTROL: KindRule(
        required=("input_id", "filter_var"),
        builtin_defaults={"input_type": "select", "multiple": False},
    ),
    ItemKind.SIDEBAR: KindRule(builtin_defaults={"position": "left", "open": True}),
    ItemKind.CALLOUT: KindRule(
        required=("content",),
        builtin_defaults={"callout_type": "note"},
    ),
    ItemKind.DIVIDER: KindRule(builtin_defaults={"style": "default"}),
    ItemKind.SPACER: KindRule(builtin_defaults={"height": "2rem"}),
    ItemKind.HTML: KindRule(required=("html",)),
    ItemKind.METRIC: KindRule(required=("value",)),
    ItemKind.VALUE_BOX: KindRule(required=("value",)),
}


@dataclass(frozen=True)
class VizRule:
    """
    Static rules for one chart type.

    Attributes:
        required: Field bindings the charting backend cannot do without
        name_fields: Bindings used, in order, to derive a chunk name
    """
    required: tuple[str, ...] = ()
    name_fields: tuple[str, ...] = ()


VIZ_RULES: dict[VizType, VizRule] = {
    VizType.BAR: VizRule(("x_var",), ("x_var", "stack_var", "group_var")),
    VizType.STACKEDBAR: VizRule(("x_var", "stack_var"), ("x_var", "stack_var", "group_var")),
    VizType.STACKEDBARS: VizRule(("x_vars",), ("x_vars",)),
    VizType.SCATTER: VizRule(("x_var", "y_var"), ("x_var", "y_var")),
    VizType.HEATMAP: VizRule(("x_var", "y_var", "value_var"), ("x_var", "y_var", "value_var")),
    VizType.HISTOGRAM: VizRule(("x_var",), ("x_var",)),
    VizType.DENSITY: VizRule(("x_var",), ("x_var", "group_var")),
    VizType.TIMELINE: VizRule(("time_var", "y_var"), ("y_var", "group_var")),
    VizType.TREEMAP: VizRule(("group_var",), ("group_var", "value_var")),
    VizType.BOXPLOT: VizRule(("y_var",), ("y_var", "x_var")),
    VizType.MAP: VizRule((), ("value_var",)),
    VizType.LOLLIPOP: VizRule(("x_var",), ("x_var", "y_var")),
    VizType.FUNNEL: VizRule(("x_var", "y_var"), ("x_var", "y_var")),
    VizType.PIE: VizRule(("x_var",), ("x_var",)),
    VizType.WAFFLE: VizRule(("x_var",), ("x_var",)),
    VizType.DUMBBELL: VizRule(("x_var", "low_var", "high_var"), ("x_var", "low_var")),
    VizType.GAUGE: VizRule((), ("value_var",)),
    VizType.SANKEY: VizRule(("from_var", "to_var"), ("from_var", "to_var")),
}


def resolve_viz_type(value: Any) -> Optional[VizType]:
    """Map a chart type name (or alias) to its VizType, or None if unknown."""
    if isinstance(value, VizType):
        return value
    if not isinstance(value, str):
        return None
    alias = VIZ_TYPE_ALIASES.get(value)
    if alias is not None:
        return alias
    try:
        return VizType(value)
    except ValueError:
        return None


# =============================================================================
# Content Item
# =============================================================================

@dataclass(frozen=True)
class ContentItem:
    """
    One content item of a collection.

    Attributes:
        kind: Item kind tag; unknown tags are kept as raw strings and
            rejected at compile time
        insertion_index: Monotonic position assigned at creation
        group_path: Ordered tab/group segments, or None when ungrouped
        title: Display title
        tab_label: Short label used for the item's tab (falls back to title)
        filter: Row-filter expression text applied to the dataset
        dataset_ref: Name of the bound dataset the item reads
        visibility: Visibility expression text evaluated at runtime
        viz_type: Chart type for viz items
        options: Field bindings, style options and kind payload
        children: Nested items of a layout container
    """
    kind: Union[ItemKind, str]
    insertion_index: int
    group_path: Optional[tuple[str, ...]] = None
    title: Optional[str] = None
    tab_label: Optional[str] = None
    filter: Optional[str] = None
    dataset_ref: Optional[str] = None
    visibility: Optional[str] = None
    viz_type: Optional[str] = None
    options: dict[str, Any] = field(default_factory=dict)
    children: tuple[ContentItem, ...] = ()

    @property
    def item_kind(self) -> Optional[ItemKind]:
        """The kind as an ItemKind, or None if the tag is unknown."""
        return ItemKind.coerce(self.kind)

    @property
    def kind_name(self) -> str:
        kind = self.item_kind
        return kind.value if kind is not None else str(self.kind)

    @property
    def is_pagination_break(self) -> bool:
        return self.item_kind is ItemKind.PAGINATION_BREAK

    @property
    def reads_data(self) -> bool:
        """True for charts and for any item naming a dataset or filter."""
        return (
            self.item_kind is ItemKind.VIZ
            or self.dataset_ref is not None
            or self.filter is not None
        )

    def get(self, name: str, default: Any = None) -> Any:
        """Read a common field or an option by name."""
        if name in COMMON_FIELDS:
            return getattr(self, name)
        return self.options.get(name, default)

    def with_index(self, insertion_index: int) -> ContentItem:
        """Copy of this item renumbered; children follow their parent."""
        return replace(
            self,
            insertion_index=insertion_index,
            options=dict(self.options),
            children=tuple(child.with_index(insertion_index) for child in self.children),
        )

    def with_dataset_refs(
        self,
        renames: dict[str, str],
        fallback: Optional[str] = None,
    ) -> ContentItem:
        """
        Rewrite dataset references, recursively through children.

        Args:
            renames: Old dataset name -> new dataset name
            fallback: Name assigned to data-reading items that reference no dataset

        Returns:
            Copy of the item with rewritten references
        """
        ref = self.dataset_ref
        if ref is None and self.reads_data:
            ref = fallback
        if ref is not None:
            ref = renames.get(ref, ref)
        return replace(
            self,
            dataset_ref=ref,
            options=dict(self.options),
            children=tuple(child.with_dataset_refs(renames, fallback) for child in self.children),
        )

    def to_spec(self) -> dict[str, Any]:
        """
        Plain-dict form of the item handed to charting backends.

        Only JSON-friendly values appear, so the result is also the input
        to unit content hashing.
        """
        spec: dict[str, Any] = {
            "kind": self.kind_name,
            "insertion_index": self.insertion_index,
            "group_path": list(self.group_path) if self.group_path is not None else None,
            "title": self.title,
            "tab_label": self.tab_label,
            "filter": self.filter,
            "dataset_ref": self.dataset_ref,
            "visibility": self.visibility,
            "viz_type": self.viz_type,
            "options": dict(self.options),
        }
        if self.children:
            spec["children"] = [child.to_spec() for child in self.children]
        return spec


def pagination_break(insertion_index: int, **options: Any) -> ContentItem:
    """Create a pagination break marker."""
    return ContentItem(
        kind=ItemKind.PAGINATION_BREAK,
        insertion_index=insertion_index,
        options=dict(options),
    )
