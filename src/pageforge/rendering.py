"""
PageForge Build Execution

Drives an external document renderer over compiled pages. Only units
classified new or changed are rendered; removed units are discarded; the
manifest is committed once every unit has been handled.

Usage:
    store = ManifestStore.in_directory(output_dir)
    compiled = compile_collection(collection, options, store)
    report = execute_build(compiled, MyRenderer(output_dir), store)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

from .compiler import CompiledItem, CompiledPages
from .incremental import BuildManifest, BuildSession, ManifestStore
from .models import BuildStatus
from .pagination import Navigation, PageSegment
from .tabs import GroupNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderUnit:
    """
    Everything a renderer needs to produce one output document.

    Attributes:
        unit_id: Output unit id (`index`, `index_p2`, ...)
        items: Named, resolved items in insertion order
        tabs: Group forest of the unit
        navigation: Links to neighbouring pages (None when unpaginated)
        status: Why the unit is being rendered (new or changed)
        content_hash: Hash recorded for the unit once the build commits
    """
    unit_id: str
    items: tuple[CompiledItem, ...]
    tabs: Optional[GroupNode[CompiledItem]]
    navigation: Optional[Navigation]
    status: BuildStatus
    content_hash: Optional[str] = None

    @classmethod
    def from_segment(
        cls,
        segment: PageSegment[CompiledItem],
        status: BuildStatus,
        content_hash: Optional[str] = None,
    ) -> RenderUnit:
        return cls(
            unit_id=segment.unit_id,
            items=segment.items,
            tabs=segment.tabs,
            navigation=segment.navigation,
            status=status,
            content_hash=content_hash,
        )

    def item_specs(self) -> list[dict[str, Any]]:
        """Plain-dict item specs, chunk names included."""
        return [compiled.to_spec() for compiled in self.items]


@runtime_checkable
class DocumentRenderer(Protocol):
    """External collaborator that writes output documents."""

    def render(self, unit: RenderUnit) -> None:
        """Produce the document of one unit."""
        ...

    def discard(self, unit_id: str) -> None:
        """Remove the document of a unit that no longer exists."""
        ...


@dataclass
class BuildReport:
    """What execute_build did."""
    rendered: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    discarded: list[str] = field(default_factory=list)
    manifest: Optional[BuildManifest] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rendered": list(self.rendered),
            "skipped": list(self.skipped),
            "discarded": list(self.discarded),
        }


def execute_build(
    compiled: CompiledPages,
    renderer: DocumentRenderer,
    store: ManifestStore,
) -> BuildReport:
    """
    Render what changed, discard what disappeared, then commit the manifest.

    If the renderer raises, the exception propagates and the previous
    manifest is left untouched.

    Args:
        compiled: Result of compile_collection (against the same store)
        renderer: Document renderer
        store: Manifest store to commit to

    Returns:
        BuildReport listing rendered, skipped and discarded units
    """
    report = BuildReport()
    plan = compiled.plan

    with BuildSession(store, plan) as session:
        for segment in compiled.segments:
            decision = plan.decision_for(segment.unit_id)
            if decision is None or not decision.needs_generation:
                report.skipped.append(segment.unit_id)
                continue
            renderer.render(RenderUnit.from_segment(segment, decision.status, decision.content_hash))
            report.rendered.append(segment.unit_id)

        for decision in plan.removed:
            renderer.discard(decision.unit_id)
            report.discarded.append(decision.unit_id)

    report.manifest = session.manifest
    logger.info(
        "Build finished: %d rendered, %d skipped, %d discarded",
        len(report.rendered), len(report.skipped), len(report.discarded),
    )
    return report
