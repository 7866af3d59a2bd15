"""
PageForge Compiler

Single-pass pipeline turning a Collection into CompiledPages:

1. Validate every item (kinds, chart types, required bindings, nesting)
2. Resolve each data-reading item to a dataset or deduplicated filtered view
3. Compile visibility expressions into condition trees
4. Assign unique chunk names in insertion order
5. Split into page segments at pagination breaks, with navigation
6. Assemble the tab hierarchy of each segment
7. Hash each output unit and classify it against the previous manifest

Usage:
    compiled = compile_collection(collection, BuildOptions(base_unit_name="survey"))
    for segment in compiled.segments:
        ...
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from .config import BuildOptions
from .dedup import DedupCache, FilterReference
from .exceptions import PageForgeError, UnsupportedOperatorError, ValidationError
from .incremental import BuildManifest, BuildPlan, ManifestStore, classify_units, unit_hash
from .models import (
    DEFAULT_DATASET_NAME,
    KIND_RULES,
    VIZ_RULES,
    Collection,
    ContentItem,
    ItemKind,
    resolve_viz_type,
)
from .naming import ChunkNamer
from .pagination import Navigation, PageSegment, split_segments
from .tabs import assemble_tabs
from .visibility import VisibilityCondition, check_variables, compile_visibility

logger = logging.getLogger(__name__)


# Kinds allowed to hold child items
CONTAINER_KINDS = frozenset({ItemKind.LAYOUT_COLUMN, ItemKind.LAYOUT_ROW, ItemKind.SIDEBAR})


# =============================================================================
# Compiled Structures
# =============================================================================

@dataclass(frozen=True)
class CompiledItem:
    """
    An item with everything the compile resolved for it.

    Attributes:
        item: The resolved ContentItem
        chunk_name: Unique identifier within the compiled page (None for
            pagination breaks)
        dataset: Dataset identity the item reads (None if it reads no data)
        data_ref: Name the item reads its rows from: the dataset itself,
            or a shared filtered view
        visibility: Compiled visibility condition, if any
        children: Compiled children of a container item
    """
    item: ContentItem
    chunk_name: Optional[str] = None
    dataset: Optional[str] = None
    data_ref: Optional[str] = None
    visibility: Optional[VisibilityCondition] = None
    children: tuple[CompiledItem, ...] = ()

    @property
    def insertion_index(self) -> int:
        return self.item.insertion_index

    @property
    def kind(self) -> Optional[ItemKind]:
        return self.item.item_kind

    @property
    def group_path(self) -> Optional[tuple[str, ...]]:
        return self.item.group_path

    @property
    def is_pagination_break(self) -> bool:
        return self.item.is_pagination_break

    @property
    def compiled_visibility(self) -> Optional[str]:
        """Compact JSON of the visibility condition for the runtime evaluator."""
        return self.visibility.to_json() if self.visibility is not None else None

    def walk(self) -> Iterator[CompiledItem]:
        """This item followed by its descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_spec(self) -> dict[str, Any]:
        """Resolved spec handed to the renderer and hashed per unit."""
        spec = self.item.to_spec()
        spec["chunk_name"] = self.chunk_name
        spec["data_ref"] = self.data_ref
        spec["compiled_visibility"] = self.visibility.to_dict() if self.visibility is not None else None
        if self.children:
            spec["children"] = [child.to_spec() for child in self.children]
        return spec


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal problem found while compiling."""
    level: str
    code: str
    message: str
    insertion_index: Optional[int] = None
    field: Optional[str] = None

    @staticmethod
    def from_error(error: PageForgeError, level: str = "error") -> Diagnostic:
        return Diagnostic(
            level=level,
            code=error.code,
            message=error.message,
            insertion_index=error.insertion_index,
            field=error.field,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "insertion_index": self.insertion_index,
            "field": self.field,
        }


@dataclass
class CompiledPages:
    """
    Result of compiling a collection.

    Attributes:
        segments: Output units in page order
        plan: Build decision per unit (plus removed units)
        unit_hashes: Unit id -> content hash
        references: Deduplicated filtered views, in creation order
        diagnostics: Non-fatal problems (isolated visibility errors, warnings)
        options: Options the compile ran with
    """
    segments: tuple[PageSegment[CompiledItem], ...]
    plan: BuildPlan
    unit_hashes: dict[str, str] = field(default_factory=dict)
    references: tuple[FilterReference, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()
    options: BuildOptions = field(default_factory=BuildOptions)

    @property
    def unit_ids(self) -> list[str]:
        return [segment.unit_id for segment in self.segments]

    @property
    def page_count(self) -> int:
        return len(self.segments)

    def segment(self, unit_id: str) -> Optional[PageSegment[CompiledItem]]:
        for segment in self.segments:
            if segment.unit_id == unit_id:
                return segment
        return None

    def items(self) -> list[CompiledItem]:
        """Every compiled item (children included) in page order."""
        result: list[CompiledItem] = []
        for segment in self.segments:
            for compiled in segment.items:
                result.extend(compiled.walk())
        return result

    @property
    def chunk_names(self) -> list[str]:
        return [compiled.chunk_name for compiled in self.items() if compiled.chunk_name]

    def to_dict(self) -> dict[str, Any]:
        return {
            "units": [
                {
                    "unit_id": segment.unit_id,
                    "page_index": segment.page_index,
                    "page_count": segment.page_count,
                    "content_hash": self.unit_hashes.get(segment.unit_id),
                    "navigation": segment.navigation.to_dict() if segment.navigation else None,
                    "items": [compiled.to_spec() for compiled in segment.items],
                    "tabs": segment.tabs.to_dict(lambda c: c.chunk_name) if segment.tabs else None,
                }
                for segment in self.segments
            ],
            "references": [reference.to_dict() for reference in self.references],
            "plan": [decision.to_dict() for decision in self.plan.decisions],
            "diagnostics": [diagnostic.to_dict() for diagnostic in self.diagnostics],
        }


# =============================================================================
# Validation
# =============================================================================

def _validate_item(item: ContentItem, collection: Collection, nested: bool = False) -> None:
    """
    Check one item (and its children).

    Raises:
        ValidationError: Naming the item's insertion index and field
    """
    kind = item.item_kind
    if kind is None:
        raise ValidationError(
            message=f"Unknown item kind '{item.kind}'",
            details={"known_kinds": [k.value for k in ItemKind]},
            insertion_index=item.insertion_index,
            field="kind",
        )

    if kind is ItemKind.PAGINATION_BREAK and nested:
        raise ValidationError(
            message="Pagination breaks cannot be nested inside layout blocks",
            insertion_index=item.insertion_index,
            field="kind",
        )

    for name in KIND_RULES[kind].required:
        if item.get(name) is None:
            raise ValidationError(
                message=f"Item of kind '{kind.value}' requires '{name}'",
                insertion_index=item.insertion_index,
                field=name,
            )

    if kind is ItemKind.VIZ:
        viz_type = resolve_viz_type(item.viz_type)
        if viz_type is None:
            raise ValidationError(
                message=f"Unknown chart type '{item.viz_type}'",
                insertion_index=item.insertion_index,
                field="viz_type",
            )
        for name in VIZ_RULES[viz_type].required:
            value = item.get(name)
            if value is None or (isinstance(value, (list, tuple)) and not value):
                raise ValidationError(
                    message=f"Chart type '{viz_type.value}' requires '{name}'",
                    insertion_index=item.insertion_index,
                    field=name,
                )

    # DEFAULT_DATASET_NAME is the host dataset and needs no binding
    if item.dataset_ref not in (None, DEFAULT_DATASET_NAME) and collection.datasets:
        if collection.get_dataset(item.dataset_ref) is None:
            raise ValidationError(
                message=f"Dataset '{item.dataset_ref}' is not bound to the collection",
                details={"bound": collection.dataset_names},
                insertion_index=item.insertion_index,
                field="dataset_ref",
            )

    if item.children and kind not in CONTAINER_KINDS:
        raise ValidationError(
            message=f"Items of kind '{kind.value}' cannot hold children",
            insertion_index=item.insertion_index,
            field="children",
        )
    for child in item.children:
        _validate_item(child, collection, nested=True)


def validate_collection(collection: Collection) -> None:
    """Validate every item; the first problem aborts with ValidationError."""
    for item in collection.items:
        _validate_item(item, collection)


# =============================================================================
# Pipeline
# =============================================================================

class _ItemCompiler:
    """Carries the per-compile state shared by all items."""

    def __init__(self, collection: Collection, options: BuildOptions):
        self.collection = collection
        self.options = options
        self.cache = DedupCache(prefix_length=options.hash_prefix_length)
        self.namer = ChunkNamer(max_length=options.max_chunk_name_length)
        self.diagnostics: list[Diagnostic] = []
        self.known_inputs = _declared_inputs(collection)

    def compile_visibility(self, item: ContentItem) -> Optional[VisibilityCondition]:
        if item.visibility is None:
            return None
        try:
            condition = compile_visibility(item.visibility)
        except PageForgeError as e:
            e.insertion_index = item.insertion_index
            e.field = "visibility"
            if isinstance(e, UnsupportedOperatorError) and self.options.isolate_visibility_errors:
                logger.warning("Dropping visibility of item #%d: %s", item.insertion_index, e.message)
                self.diagnostics.append(Diagnostic.from_error(e))
                return None
            raise

        for name in check_variables(condition, self.known_inputs, item.insertion_index):
            self.diagnostics.append(Diagnostic(
                level="warning",
                code="PF_UNKNOWN_INPUT",
                message=f"Visibility references '{name}', which no input control declares",
                insertion_index=item.insertion_index,
                field="visibility",
            ))
        return condition

    def compile_item(self, item: ContentItem) -> CompiledItem:
        if item.is_pagination_break:
            return CompiledItem(item=item)

        dataset = data_ref = None
        if item.reads_data:
            dataset = self.collection.dataset_identity(item)
            data_ref = self.cache.resolve(dataset, item.filter)

        visibility = self.compile_visibility(item)
        chunk_name = self.namer.assign(item)
        children = tuple(self.compile_item(child) for child in item.children)

        return CompiledItem(
            item=item,
            chunk_name=chunk_name,
            dataset=dataset,
            data_ref=data_ref,
            visibility=visibility,
            children=children,
        )


def _declared_inputs(collection: Collection) -> set[str]:
    """Input ids and filter variables of every input control."""
    names: set[str] = set()
    stack = list(collection.items)
    while stack:
        item = stack.pop()
        stack.extend(item.children)
        if item.item_kind is ItemKind.INPUT_CONTROL:
            for name in ("input_id", "filter_var"):
                value = item.get(name)
                if value:
                    names.add(str(value))
    return names


def _hashed_spec(spec: dict[str, Any]) -> dict[str, Any]:
    """Item spec without its collection-wide insertion index."""
    hashed = {k: v for k, v in spec.items() if k != "insertion_index"}
    if "children" in hashed:
        hashed["children"] = [_hashed_spec(child) for child in hashed["children"]]
    return hashed


def _unit_payload(
    segment: PageSegment[CompiledItem],
    collection: Collection,
    options: BuildOptions,
) -> dict[str, Any]:
    """Everything that determines the output of one unit."""
    datasets: dict[str, Optional[str]] = {}
    labels: dict[str, str] = {}
    for top in segment.items:
        for compiled in top.walk():
            if compiled.dataset is not None:
                binding = collection.get_dataset(compiled.dataset)
                datasets[compiled.dataset] = binding.fingerprint if binding else None
            for segment_name in compiled.group_path or ():
                if segment_name in collection.group_labels:
                    labels[segment_name] = collection.group_labels[segment_name]

    navigation: Optional[Navigation] = segment.navigation
    return {
        "unit_id": segment.unit_id,
        # Chunk names carry whatever the index contributes to the output
        "items": [_hashed_spec(compiled.to_spec()) for compiled in segment.items],
        "datasets": datasets,
        "group_labels": labels,
        "navigation": navigation.to_dict() if navigation is not None else None,
        "page_config": options.page_config,
    }


def compile_collection(
    collection: Collection,
    options: Optional[BuildOptions] = None,
    store: Optional[ManifestStore] = None,
) -> CompiledPages:
    """
    Compile a collection into paginated, named, deduplicated output units.

    Args:
        collection: The assembled collection
        options: Build options (defaults when omitted)
        store: Manifest of the previous build; without one every unit is
            classified new. With `incremental=False` current units are new
            and units missing from this build are still classified removed

    Returns:
        CompiledPages

    Raises:
        ValidationError: On the first invalid item
        ExpressionSyntaxError: On malformed visibility text
        UnsupportedOperatorError: On visibility operators outside the DSL
            (unless isolate_visibility_errors is set)
    """
    options = options or BuildOptions()
    validate_collection(collection)

    compiler = _ItemCompiler(collection, options)
    compiled_items = [compiler.compile_item(item) for item in collection.items]

    segments = split_segments(
        compiled_items,
        is_break=lambda c: c.is_pagination_break,
        base_unit_name=options.base_unit_name,
        separator=options.pagination_separator,
        separator_of=lambda c: c.item.options.get("separator"),
    )
    segments = [
        segment.with_tabs(assemble_tabs(segment.items, lambda c: c.group_path, collection.group_labels))
        for segment in segments
    ]

    unit_hashes = {
        segment.unit_id: unit_hash(_unit_payload(segment, collection, options))
        for segment in segments
    }

    # The manifest is read even for full builds so vanished units are removed
    previous = store.load() if store is not None else BuildManifest()
    plan = classify_units(
        unit_hashes,
        previous,
        force=options.force_rebuild,
        incremental=options.incremental,
    )

    logger.info(
        "Compiled %d items into %d units (%d filtered views)",
        len(collection.items), len(segments), len(compiler.cache),
    )
    return CompiledPages(
        segments=tuple(segments),
        plan=plan,
        unit_hashes=unit_hashes,
        references=tuple(compiler.cache.references),
        diagnostics=tuple(compiler.diagnostics),
        options=options,
    )


# The builder-surface name of compile_collection
compile = compile_collection
