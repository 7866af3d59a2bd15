"""
PageForge - Declarative Content-Pipeline Compiler

PageForge turns an ordered collection of content items (charts, text,
images, layout blocks, pagination breaks, input controls) into paginated
output units with stable tab hierarchies, readable chunk names, shared
filtered-data references, and incremental rebuild decisions.

Key Features:
- Immutable builder surface with collection-level defaults
- Vectorized item expansion and collection merging
- Tab hierarchies from slash-delimited group paths
- Content-addressed filter/dataset deduplication
- Visibility conditions compiled from a small boolean DSL
- Manifest-based incremental builds with atomic commits

Quick Start:
    import pageforge as pf

    survey = pf.new_collection(viz_type="histogram")
    survey = pf.add(survey, x_var="age", group_path="demographics/age")
    survey = pf.add_pagination_break(survey)
    survey = pf.add(survey, x_var="income", filter="wave == 1")

    store = pf.ManifestStore.in_directory("site")
    compiled = pf.compile(survey, pf.BuildOptions(base_unit_name="survey"), store)
    report = pf.execute_build(compiled, renderer, store)

Version: 0.1.0
"""
from __future__ import annotations

__version__ = "0.1.0"

# =============================================================================
# Core Models (Re-exported for convenience)
# =============================================================================
from .models import (
    # Enums
    BuildStatus,
    ConditionOperator,
    ItemKind,
    LayoutDirection,
    NavDirection,
    VizType,
    # Items
    ContentItem,
    # Collections
    Collection,
    DatasetBinding,
)

# =============================================================================
# Builder Surface
# =============================================================================
from .builder import (
    add,
    add_image,
    add_input,
    add_layout,
    add_many,
    add_pagination_break,
    add_sidebar,
    add_text,
    add_viz,
    bind_dataset,
    merge,
    new_collection,
    set_group_labels,
    update_defaults,
)

# =============================================================================
# Compilation
# =============================================================================
from .compiler import (
    CompiledItem,
    CompiledPages,
    Diagnostic,
    compile,
    compile_collection,
)
from .config import BuildOptions, build_options_from_dict, load_build_options
from .pagination import Navigation, PageSegment
from .tabs import GroupNode
from .visibility import VisibilityCondition, compile_visibility

# =============================================================================
# Incremental Builds
# =============================================================================
from .incremental import (
    BuildManifest,
    BuildPlan,
    BuildRecord,
    BuildSession,
    ManifestStore,
    UnitDecision,
)
from .rendering import BuildReport, DocumentRenderer, RenderUnit, execute_build

# =============================================================================
# Utilities
# =============================================================================
from .canon import canonical_json, content_hash, fingerprint_dataset

# =============================================================================
# Exceptions
# =============================================================================
from .exceptions import (
    ConfigError,
    DuplicateReferenceError,
    ExpressionSyntaxError,
    GroupPathError,
    ManifestError,
    PackLoadError,
    PageForgeError,
    UnsupportedOperatorError,
    ValidationError,
)

# =============================================================================
# Public API
# =============================================================================
__all__ = [
    # Version
    "__version__",
    # Enums
    "BuildStatus",
    "ConditionOperator",
    "ItemKind",
    "LayoutDirection",
    "NavDirection",
    "VizType",
    # Models
    "ContentItem",
    "Collection",
    "DatasetBinding",
    # Builder
    "new_collection",
    "update_defaults",
    "add",
    "add_many",
    "add_viz",
    "add_text",
    "add_image",
    "add_layout",
    "add_input",
    "add_sidebar",
    "add_pagination_break",
    "set_group_labels",
    "bind_dataset",
    "merge",
    # Compilation
    "compile",
    "compile_collection",
    "CompiledItem",
    "CompiledPages",
    "Diagnostic",
    "BuildOptions",
    "build_options_from_dict",
    "load_build_options",
    "Navigation",
    "PageSegment",
    "GroupNode",
    "VisibilityCondition",
    "compile_visibility",
    # Incremental builds
    "BuildManifest",
    "BuildPlan",
    "BuildRecord",
    "BuildSession",
    "ManifestStore",
    "UnitDecision",
    "BuildReport",
    "DocumentRenderer",
    "RenderUnit",
    "execute_build",
    # Utilities
    "canonical_json",
    "content_hash",
    "fingerprint_dataset",
    # Exceptions
    "PageForgeError",
    "ValidationError",
    "GroupPathError",
    "ExpressionSyntaxError",
    "UnsupportedOperatorError",
    "DuplicateReferenceError",
    "ManifestError",
    "ConfigError",
    "PackLoadError",
]
