"""
Pytest configuration and fixtures for PageForge tests.

Provides helper factories and common fixtures built on the public
builder surface.
"""
import pytest
from typing import Any, Optional

from pageforge import builder
from pageforge.config import BuildOptions
from pageforge.incremental import ManifestStore
from pageforge.models import Collection, ContentItem, ItemKind
from pageforge.rendering import RenderUnit


# =============================================================================
# Factory Helpers
# =============================================================================

def make_item(
    insertion_index: int = 1,
    kind: ItemKind = ItemKind.VIZ,
    viz_type: Optional[str] = "histogram",
    group_path: Optional[tuple] = None,
    **options: Any,
) -> ContentItem:
    """Create a ContentItem directly, bypassing defaults resolution."""
    if kind is ItemKind.VIZ and viz_type is not None and "x_var" not in options:
        options["x_var"] = "age"
    return ContentItem(
        kind=kind,
        insertion_index=insertion_index,
        group_path=group_path,
        viz_type=viz_type if kind is ItemKind.VIZ else None,
        options=options,
    )


def make_collection(*specs: dict, defaults: Optional[dict] = None, **default_fields: Any) -> Collection:
    """
    Build a collection from item specs.

    A spec of {"kind": "pagination_break"} adds a break marker.
    """
    collection = builder.new_collection(defaults, **default_fields)
    for spec in specs:
        if spec.get("kind") == "pagination_break":
            options = {k: v for k, v in spec.items() if k != "kind"}
            collection = builder.add_pagination_break(collection, **options)
        else:
            collection = builder.add(collection, spec)
    return collection


def make_charts(*x_vars: str, viz_type: str = "histogram", **fields: Any) -> Collection:
    """Collection with one chart per x variable."""
    return make_collection(*({"x_var": x, **fields} for x in x_vars), viz_type=viz_type)


class RecordingRenderer:
    """DocumentRenderer that records calls instead of writing files."""

    def __init__(self, fail_on: Optional[str] = None):
        self.rendered: list[RenderUnit] = []
        self.discarded: list[str] = []
        self.fail_on = fail_on

    def render(self, unit: RenderUnit) -> None:
        if unit.unit_id == self.fail_on:
            raise RuntimeError(f"render failed for {unit.unit_id}")
        self.rendered.append(unit)

    def discard(self, unit_id: str) -> None:
        self.discarded.append(unit_id)

    @property
    def rendered_ids(self) -> list[str]:
        return [unit.unit_id for unit in self.rendered]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def options():
    """Default build options with a recognizable base name."""
    return BuildOptions(base_unit_name="survey")


@pytest.fixture
def store(tmp_path):
    """Manifest store in a temporary directory."""
    return ManifestStore.in_directory(tmp_path)


@pytest.fixture
def renderer():
    """Recording renderer."""
    return RecordingRenderer()


@pytest.fixture
def paged_collection():
    """Three charts separated by two pagination breaks."""
    return make_collection(
        {"x_var": "age"},
        {"kind": "pagination_break"},
        {"x_var": "income"},
        {"kind": "pagination_break"},
        {"x_var": "education"},
        viz_type="histogram",
    )
