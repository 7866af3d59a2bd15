"""
PageForge Builder Surface

Functions that assemble a Collection step by step. Every call returns a new
Collection; the argument is never mutated, so partially built collections
can be shared and extended independently.

Usage:
    from pageforge import builder as pf

    survey = pf.new_collection({"viz_type": "histogram", "dataset_ref": "survey"})
    survey = pf.add(survey, {"x_var": "age", "group_path": "demographics/age"})
    survey = pf.add_pagination_break(survey)
    survey = pf.add_many(survey, x_var=["income", "education"], title=["Income", "Education"])
"""
from __future__ import annotations

import logging
from dataclasses import replace
from string import Formatter
from typing import Any, Iterable, Mapping, Optional, Sequence

from .canon import fingerprint_dataset
from .defaults import resolve_fields
from .exceptions import ValidationError
from .models import (
    COMMON_FIELDS,
    DEFAULT_DATASET_NAME,
    KIND_RULES,
    Collection,
    ContentItem,
    DatasetBinding,
    ItemKind,
    LayoutDirection,
    pagination_break,
)
from .tabs import parse_group_path

logger = logging.getLogger(__name__)


# Fields that add_many expands when given as a list of length > 1
EXPANDABLE_FIELDS: frozenset[str] = frozenset({
    "x_var",
    "y_var",
    "stack_var",
    "group_var",
    "value_var",
    "time_var",
    "response_var",
    "title",
    "tab_label",
    "filter",
    "visibility",
    "dataset_ref",
    "viz_type",
    "content",
})

# Keys consumed by the builder itself rather than stored as options
_STRUCTURAL_KEYS = frozenset({"kind", "type", "children"})

# Defaults every kind receives; other defaults reach charts and the kinds
# that declare the field
SHARED_DEFAULT_FIELDS = frozenset({"group_path", "visibility", "dataset_ref", "filter"})


# =============================================================================
# Item Construction
# =============================================================================

def _explicit_spec(item_spec: Optional[Mapping[str, Any]], fields: Mapping[str, Any]) -> dict[str, Any]:
    """Merge a positional spec mapping with keyword fields (keywords win)."""
    explicit: dict[str, Any] = dict(item_spec or {})
    explicit.update(fields)
    # "type" is an alias of viz_type
    if "type" in explicit and "viz_type" not in explicit:
        explicit["viz_type"] = explicit.pop("type")
    else:
        explicit.pop("type", None)
    return explicit


def defaults_for_kind(defaults: Mapping[str, Any], kind: Any) -> dict[str, Any]:
    """
    Collection defaults that apply to an item of `kind`.

    Charts (and unknown kinds, which fail at compile) take every default.
    Breaks take none. Other kinds take the shared fields plus the fields
    their kind declares as required or built-in.
    """
    scoped = {k: v for k, v in defaults.items() if k != "kind"}
    if not isinstance(kind, ItemKind) or kind is ItemKind.VIZ:
        return scoped
    if kind is ItemKind.PAGINATION_BREAK:
        return {}
    rule = KIND_RULES[kind]
    allowed = SHARED_DEFAULT_FIELDS | set(rule.required) | set(rule.builtin_defaults)
    return {k: v for k, v in scoped.items() if k in allowed}


def build_item(
    explicit: Mapping[str, Any],
    defaults: Mapping[str, Any],
    insertion_index: int,
) -> ContentItem:
    """
    Build one ContentItem from an explicit spec and collection defaults.

    Unknown kinds and missing bindings are accepted here and reported by
    compile(); only an unparseable group path fails immediately.

    Args:
        explicit: Fields passed for this item (None means explicit null)
        defaults: Collection defaults in force
        insertion_index: Index assigned to the item (and its children)

    Returns:
        The resolved ContentItem
    """
    if "kind" in explicit and explicit["kind"] is not None:
        raw_kind = explicit["kind"]
    else:
        raw_kind = defaults.get("kind") or ItemKind.VIZ
    kind = ItemKind.coerce(raw_kind) or raw_kind

    spec = {k: v for k, v in explicit.items() if k != "kind"}
    resolved = resolve_fields(spec, defaults_for_kind(defaults, kind), kind).values

    children_specs = resolved.pop("children", None) or ()
    children = tuple(
        build_item(_explicit_spec(child, {}), defaults, insertion_index)
        for child in children_specs
    )

    common = {name: resolved.pop(name, None) for name in COMMON_FIELDS}
    options = {k: v for k, v in resolved.items() if k not in _STRUCTURAL_KEYS}

    return ContentItem(
        kind=kind,
        insertion_index=insertion_index,
        group_path=parse_group_path(common["group_path"], insertion_index),
        title=common["title"],
        tab_label=common["tab_label"],
        filter=common["filter"],
        dataset_ref=common["dataset_ref"],
        visibility=common["visibility"],
        viz_type=common["viz_type"],
        options=options,
        children=children,
    )


def _append(collection: Collection, item: ContentItem) -> Collection:
    return replace(
        collection,
        items=collection.items + (item,),
        next_index=item.insertion_index + 1,
    )


# =============================================================================
# Collections
# =============================================================================

def new_collection(
    defaults: Optional[Mapping[str, Any]] = None,
    *,
    group_labels: Optional[Mapping[str, str]] = None,
    **default_fields: Any,
) -> Collection:
    """
    Create an empty collection.

    Args:
        defaults: Field values applied to every item added later
        group_labels: Display labels for group segments
        **default_fields: More defaults, merged over `defaults`

    Example:
        >>> c = new_collection(viz_type="stackedbar", stacked_type="percent")
    """
    merged = dict(defaults or {})
    merged.update(default_fields)
    if "type" in merged and "viz_type" not in merged:
        merged["viz_type"] = merged.pop("type")
    return Collection(defaults=merged, group_labels=dict(group_labels or {}))


def update_defaults(collection: Collection, **fields: Any) -> Collection:
    """
    Change the defaults used for items added from now on.

    Items already in the collection keep the values resolved at their
    insertion time.
    """
    merged = dict(collection.defaults)
    merged.update(fields)
    return replace(collection, defaults=merged)


def add(
    collection: Collection,
    item_spec: Optional[Mapping[str, Any]] = None,
    **fields: Any,
) -> Collection:
    """
    Add one item, resolving collection defaults into it.

    Args:
        collection: Collection to extend
        item_spec: Item fields as a mapping (optional)
        **fields: Item fields as keywords; override `item_spec`

    Returns:
        New collection with the item appended
    """
    explicit = _explicit_spec(item_spec, fields)
    item = build_item(explicit, collection.defaults, collection.next_index)
    return _append(collection, item)


def add_viz(collection: Collection, viz_type: Optional[str] = None, **fields: Any) -> Collection:
    """Add a chart; `viz_type` may come from the collection defaults."""
    if viz_type is not None:
        fields["viz_type"] = viz_type
    fields["kind"] = ItemKind.VIZ
    return add(collection, fields)


def add_text(collection: Collection, *lines: str, **fields: Any) -> Collection:
    """Add a markdown text block; multiple lines are joined with newlines."""
    fields["kind"] = ItemKind.TEXT
    if lines:
        fields["content"] = "\n".join(lines)
    return add(collection, fields)


def add_image(collection: Collection, src: str, alt: Optional[str] = None, **fields: Any) -> Collection:
    """Add an image block."""
    fields.update(kind=ItemKind.IMAGE, src=src)
    if alt is not None:
        fields["alt"] = alt
    return add(collection, fields)


def add_input(collection: Collection, input_id: str, filter_var: str, **fields: Any) -> Collection:
    """Add an input control whose state drives visibility conditions."""
    fields.update(kind=ItemKind.INPUT_CONTROL, input_id=input_id, filter_var=filter_var)
    return add(collection, fields)


def add_layout(
    collection: Collection,
    direction: str,
    children: Iterable[Mapping[str, Any]],
    **fields: Any,
) -> Collection:
    """
    Add a row or column container holding child items.

    Children share the container's insertion index and are resolved against
    the same collection defaults.
    """
    try:
        layout = LayoutDirection(direction)
    except ValueError:
        raise ValidationError(
            message=f"Layout direction must be 'column' or 'row', got {direction!r}",
            insertion_index=collection.next_index,
            field="direction",
        )
    kind = ItemKind.LAYOUT_COLUMN if layout is LayoutDirection.COLUMN else ItemKind.LAYOUT_ROW
    fields.update(kind=kind, children=list(children))
    return add(collection, fields)


def add_sidebar(
    collection: Collection,
    children: Iterable[Mapping[str, Any]] = (),
    **fields: Any,
) -> Collection:
    """Add a sidebar block (typically holding input controls)."""
    fields.update(kind=ItemKind.SIDEBAR, children=list(children))
    return add(collection, fields)


def add_pagination_break(collection: Collection, **options: Any) -> Collection:
    """
    Add a pagination break marker.

    Options (e.g. `separator="of"`) travel with the marker to the segment
    it closes.
    """
    return _append(collection, pagination_break(collection.next_index, **options))


def set_group_labels(collection: Collection, labels: Mapping[str, str]) -> Collection:
    """Set display labels for group segments; later labels win per key."""
    merged = dict(collection.group_labels)
    merged.update(labels)
    return replace(collection, group_labels=merged)


def bind_dataset(
    collection: Collection,
    name: str,
    data: Any = None,
    *,
    fingerprint: Optional[str] = None,
    source: Optional[str] = None,
    default: bool = False,
) -> Collection:
    """
    Bind a dataset to the collection.

    Args:
        collection: Collection to extend
        name: Identifier items use in `dataset_ref`
        data: Dataset contents, fingerprinted when `fingerprint` is omitted
        fingerprint: Precomputed content hash of the dataset
        source: Optional description of where the data lives
        default: Make this the dataset for items that name none

    Raises:
        ValidationError: If neither data nor fingerprint is given
    """
    if fingerprint is None:
        if data is None:
            raise ValidationError(
                message=f"Dataset '{name}' needs data or a fingerprint",
                field="dataset_ref",
            )
        fingerprint = fingerprint_dataset(data)

    binding = DatasetBinding(name=name, fingerprint=fingerprint, source=source)
    others = tuple(b for b in collection.datasets if b.name != name)
    default_dataset = name if default else collection.default_dataset
    return replace(collection, datasets=others + (binding,), default_dataset=default_dataset)


# =============================================================================
# Vectorized Expansion
# =============================================================================

def _is_vector(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and len(value) > 1


def _scalar(name: str, value: Any) -> Any:
    """Unwrap a one-element list given for an expandable field."""
    if name in EXPANDABLE_FIELDS and isinstance(value, (list, tuple)) and len(value) == 1:
        return value[0]
    return value


def _render_template(
    template: str,
    index: int,
    values: Mapping[str, Any],
    insertion_index: int,
    field: str,
) -> str:
    """
    Fill `{i}` and `{field}` placeholders of an add_many template.

    Raises:
        ValidationError: If the template is malformed or uses positional
            or attribute placeholders
    """
    context = {"i": index}
    try:
        for _, name, _, _ in Formatter().parse(template):
            if name and name != "i":
                context[name] = values.get(name, "")
        return template.format(**context)
    except (IndexError, KeyError, ValueError, AttributeError) as e:
        raise ValidationError(
            message=f"Cannot render {field} '{template}': {e}",
            details={"template": template},
            insertion_index=insertion_index,
            field=field,
        ) from e


def add_many(
    collection: Collection,
    item_spec: Optional[Mapping[str, Any]] = None,
    *,
    group_template: Optional[str] = None,
    title_template: Optional[str] = None,
    **fields: Any,
) -> Collection:
    """
    Add several items at once by zipping vector-valued fields.

    Expandable fields (see EXPANDABLE_FIELDS) given as lists of length > 1
    must all share one length L; L items are added, the i-th taking the
    i-th value of each vector and every scalar field unchanged. A
    `group_path` list of length L is zipped as well.

    Args:
        collection: Collection to extend
        item_spec: Shared fields as a mapping (optional)
        group_template: Group path template with `{i}` (1-based) and
            `{field}` placeholders
        title_template: Title template with the same placeholders
        **fields: Fields as keywords

    Raises:
        ValidationError: If no expandable field has length > 1, or if the
            expandable fields disagree in length
    """
    explicit = _explicit_spec(item_spec, fields)

    vector_fields = [
        name for name in explicit
        if name in EXPANDABLE_FIELDS and _is_vector(explicit[name])
    ]
    if not vector_fields:
        raise ValidationError(
            message=(
                "No expandable field has more than one value; use add() for "
                "single items. Expandable fields: " + ", ".join(sorted(EXPANDABLE_FIELDS))
            ),
            insertion_index=collection.next_index,
        )

    lengths = {name: len(explicit[name]) for name in vector_fields}
    count = lengths[vector_fields[0]]
    if any(length != count for length in lengths.values()):
        raise ValidationError(
            message="All expanded fields must have the same length",
            details={"lengths": lengths},
            insertion_index=collection.next_index,
            field=",".join(vector_fields),
        )

    # A group_path list of length L holds one path per item; a shared
    # hierarchical path is written "a/b"
    group_vector: Optional[Sequence[Any]] = None
    group_value = explicit.get("group_path")
    if isinstance(group_value, (list, tuple)) and len(group_value) == count:
        group_vector = group_value

    logger.debug("Expanding %d items from fields %s", count, vector_fields)

    for i in range(count):
        values = {
            name: (value[i] if name in vector_fields else _scalar(name, value))
            for name, value in explicit.items()
        }
        if group_template is not None:
            values["group_path"] = _render_template(
                group_template, i + 1, values, collection.next_index, "group_template"
            )
        elif group_vector is not None:
            values["group_path"] = group_vector[i]
        if title_template is not None:
            values["title"] = _render_template(
                title_template, i + 1, values, collection.next_index, "title_template"
            )
        collection = add(collection, values)

    return collection


# =============================================================================
# Merge
# =============================================================================

def _unique_name(name: str, taken: set[str]) -> str:
    candidate = name
    suffix = 2
    while candidate in taken:
        candidate = f"{name}_{suffix}"
        suffix += 1
    return candidate


def _reads_unbound_data(source: Collection) -> bool:
    """True if some item of a source reads data no binding identifies."""
    if source.implicit_dataset is not None:
        return False
    stack = list(source.items)
    while stack:
        item = stack.pop()
        stack.extend(item.children)
        if item.reads_data and item.dataset_ref is None:
            return True
    return False


def merge(*collections: Collection) -> Collection:
    """
    Combine collections into one.

    - Items are concatenated preserving each source's relative order and
      renumbered 1..N
    - Group labels and defaults are unioned; later sources win on a key
    - Bound datasets with identical fingerprints collapse into the first
      committed name; a reused name with a different fingerprint is
      renamed (`name_2`, ...). Item dataset references are rewritten.

    Returns:
        The merged collection (empty when called without arguments)
    """
    items: list[ContentItem] = []
    labels: dict[str, str] = {}
    defaults: dict[str, Any] = {}
    committed: list[DatasetBinding] = []
    by_fingerprint: dict[str, str] = {}
    default_dataset: Optional[str] = None

    # Items of a source without an implicit dataset read DEFAULT_DATASET_NAME;
    # a bound dataset of that name elsewhere is renamed away from it
    reserved: set[str] = set()
    if any(_reads_unbound_data(source) for source in collections):
        reserved.add(DEFAULT_DATASET_NAME)

    for source in collections:
        renames: dict[str, str] = {}
        taken = reserved | {binding.name for binding in committed}
        for binding in source.datasets:
            existing = by_fingerprint.get(binding.fingerprint)
            if existing is not None:
                renames[binding.name] = existing
                continue
            name = _unique_name(binding.name, taken)
            committed.append(replace(binding, name=name))
            by_fingerprint[binding.fingerprint] = name
            taken.add(name)
            if name != binding.name:
                renames[binding.name] = name

        # Items relying on the source's implicit dataset keep reading it
        fallback = source.implicit_dataset or DEFAULT_DATASET_NAME

        for item in source.items:
            item = item.with_dataset_refs(renames, fallback)
            items.append(item.with_index(len(items) + 1))

        labels.update(source.group_labels)
        defaults.update(source.defaults)
        if default_dataset is None and source.default_dataset is not None:
            default_dataset = renames.get(source.default_dataset, source.default_dataset)

    return Collection(
        items=tuple(items),
        defaults=defaults,
        group_labels=labels,
        datasets=tuple(committed),
        default_dataset=default_dataset,
        next_index=len(items) + 1,
    )
