"""
PageForge Incremental Build Engine

Decides, per output unit, whether it must be regenerated.

Each unit has a content hash over everything that affects its output.
The hash is compared with the record of the previous build in the
manifest:

    no prior record        -> new
    prior hash differs     -> changed
    prior hash equal       -> unchanged
    prior record, no unit  -> removed

The manifest is JSON on disk and is written atomically:
1. Write to <manifest>.tmp
2. fsync tmp file
3. os.replace onto the manifest (atomic on POSIX)
4. fsync directory

A BuildSession commits the new manifest only when its block exits
cleanly, so a failed or cancelled build leaves the previous manifest in
place.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from .canon import content_hash
from .exceptions import ManifestError
from .models import BuildStatus

logger = logging.getLogger(__name__)

MANIFEST_VERSION = 1
DEFAULT_MANIFEST_NAME = ".pageforge_manifest.json"


# =============================================================================
# Manifest Records
# =============================================================================

@dataclass(frozen=True)
class BuildRecord:
    """Last successful build of one output unit."""
    unit_id: str
    content_hash: str
    generated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "unit_id": self.unit_id,
            "content_hash": self.content_hash,
            "generated_at": self.generated_at.isoformat(),
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> BuildRecord:
        return BuildRecord(
            unit_id=data["unit_id"],
            content_hash=data["content_hash"],
            generated_at=datetime.fromisoformat(data["generated_at"]),
        )


@dataclass
class BuildManifest:
    """Unit id -> BuildRecord of the previous build."""
    records: dict[str, BuildRecord] = field(default_factory=dict)
    version: int = MANIFEST_VERSION

    def __contains__(self, unit_id: object) -> bool:
        return unit_id in self.records

    def __len__(self) -> int:
        return len(self.records)

    def get(self, unit_id: str) -> Optional[BuildRecord]:
        return self.records.get(unit_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "units": {unit_id: record.to_dict() for unit_id, record in sorted(self.records.items())},
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> BuildManifest:
        units = data["units"]
        return BuildManifest(
            records={unit_id: BuildRecord.from_dict(record) for unit_id, record in units.items()},
            version=data.get("version", MANIFEST_VERSION),
        )


# =============================================================================
# Manifest Store
# =============================================================================

class ManifestStore:
    """
    Reads and atomically writes the build manifest file.

    Usage:
        store = ManifestStore(output_dir / ".pageforge_manifest.json")
        previous = store.load()
        store.save(plan.next_manifest())
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    @classmethod
    def in_directory(cls, directory: Union[str, Path]) -> ManifestStore:
        return cls(Path(directory) / DEFAULT_MANIFEST_NAME)

    @property
    def tmp_path(self) -> Path:
        return self.path.with_name(self.path.name + ".tmp")

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> BuildManifest:
        """
        Read the manifest.

        Returns an empty manifest when the file is missing, and also when
        it is unreadable or corrupt (after logging a warning), so every unit
        is rebuilt.
        """
        if not self.path.exists():
            return BuildManifest()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return BuildManifest.from_dict(data)
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Ignoring unreadable build manifest %s: %s", self.path, e)
            return BuildManifest()

    def save(self, manifest: BuildManifest) -> None:
        """
        Write the manifest atomically (crash-safe).

        Raises:
            ManifestError: If the manifest cannot be written
        """
        data = json.dumps(manifest.to_dict(), indent=2)
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with open(self.tmp_path, "w", encoding="utf-8") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())

            os.replace(self.tmp_path, self.path)

            dir_fd = os.open(str(directory), os.O_RDONLY)
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)
        except OSError as e:
            raise ManifestError(
                message=f"Failed to write build manifest: {e}",
                details={"path": str(self.path)},
            ) from e

        logger.debug("Wrote build manifest with %d units to %s", len(manifest), self.path)


# =============================================================================
# Classification
# =============================================================================

def unit_hash(payload: Mapping[str, Any]) -> str:
    """Content hash of everything that determines a unit's output."""
    return content_hash(payload)


@dataclass(frozen=True)
class UnitDecision:
    """Build decision for one output unit."""
    unit_id: str
    status: BuildStatus
    content_hash: Optional[str] = None
    previous_hash: Optional[str] = None

    @property
    def needs_generation(self) -> bool:
        return self.status.needs_generation

    def to_dict(self) -> dict[str, Any]:
        return {
            "unit_id": self.unit_id,
            "status": self.status.value,
            "content_hash": self.content_hash,
            "previous_hash": self.previous_hash,
        }


@dataclass
class BuildPlan:
    """
    All build decisions of one compile.

    Attributes:
        decisions: Current units in page order, then removed units
        previous: Manifest the decisions were made against
    """
    decisions: list[UnitDecision] = field(default_factory=list)
    previous: BuildManifest = field(default_factory=BuildManifest)

    def decision_for(self, unit_id: str) -> Optional[UnitDecision]:
        for decision in self.decisions:
            if decision.unit_id == unit_id:
                return decision
        return None

    def status_of(self, unit_id: str) -> Optional[BuildStatus]:
        decision = self.decision_for(unit_id)
        return decision.status if decision is not None else None

    def with_status(self, *statuses: BuildStatus) -> list[UnitDecision]:
        return [decision for decision in self.decisions if decision.status in statuses]

    @property
    def to_generate(self) -> list[UnitDecision]:
        return self.with_status(BuildStatus.NEW, BuildStatus.CHANGED)

    @property
    def removed(self) -> list[UnitDecision]:
        return self.with_status(BuildStatus.REMOVED)

    def summary(self) -> dict[str, int]:
        counts = {status.value: 0 for status in BuildStatus}
        for decision in self.decisions:
            counts[decision.status.value] += 1
        return counts

    def next_manifest(self, now: Optional[datetime] = None) -> BuildManifest:
        """
        Manifest describing the build once every decision is carried out.

        Generated units get a fresh timestamp; unchanged units keep the
        time they were last generated; removed units are dropped.
        """
        now = now or datetime.now(timezone.utc)
        records: dict[str, BuildRecord] = {}
        for decision in self.decisions:
            if decision.status is BuildStatus.REMOVED or decision.content_hash is None:
                continue
            prior = self.previous.get(decision.unit_id)
            generated_at = now
            if decision.status is BuildStatus.UNCHANGED and prior is not None:
                generated_at = prior.generated_at
            records[decision.unit_id] = BuildRecord(
                unit_id=decision.unit_id,
                content_hash=decision.content_hash,
                generated_at=generated_at,
            )
        return BuildManifest(records=records)


def classify_units(
    current: Mapping[str, str],
    previous: BuildManifest,
    force: bool = False,
    incremental: bool = True,
) -> BuildPlan:
    """
    Classify current units against the previous manifest.

    Args:
        current: Unit id -> content hash, in page order
        previous: Manifest of the previous build (empty when none)
        force: Mark every current unit changed regardless of hashes
        incremental: When False, current units are new whatever the
            manifest says; the manifest still yields removed units

    Returns:
        BuildPlan with one decision per current unit plus one per removed unit
    """
    decisions: list[UnitDecision] = []
    for unit_id, digest in current.items():
        prior = previous.get(unit_id)
        if force:
            status = BuildStatus.CHANGED
        elif prior is None or not incremental:
            status = BuildStatus.NEW
        elif prior.content_hash != digest:
            status = BuildStatus.CHANGED
        else:
            status = BuildStatus.UNCHANGED
        decisions.append(UnitDecision(
            unit_id=unit_id,
            status=status,
            content_hash=digest,
            previous_hash=prior.content_hash if prior is not None else None,
        ))

    for unit_id in sorted(previous.records):
        if unit_id not in current:
            decisions.append(UnitDecision(
                unit_id=unit_id,
                status=BuildStatus.REMOVED,
                previous_hash=previous.records[unit_id].content_hash,
            ))

    plan = BuildPlan(decisions=decisions, previous=previous)
    logger.info("Build plan: %s", plan.summary())
    return plan


# =============================================================================
# Build Session
# =============================================================================

class BuildSession:
    """
    Commits the next manifest when a build finishes without error.

    Usage:
        with BuildSession(store, plan) as session:
            for decision in session.plan.to_generate:
                render(decision.unit_id)
        # manifest written here, only if the block did not raise
    """

    def __init__(self, store: ManifestStore, plan: BuildPlan):
        self.store = store
        self.plan = plan
        self.committed = False
        self.manifest: Optional[BuildManifest] = None

    def __enter__(self) -> BuildSession:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.commit()
        else:
            logger.warning("Build aborted (%s); manifest left unchanged", exc_type.__name__)
        return False

    def commit(self, now: Optional[datetime] = None) -> BuildManifest:
        manifest = self.plan.next_manifest(now)
        self.store.save(manifest)
        self.manifest = manifest
        self.committed = True
        return manifest
