"""
Tests for build classification and the manifest store

Tests cover:
- New / changed / unchanged / removed classification and forced rebuilds
- Manifest persistence, corrupt files and atomic writes
- Build sessions committing only on success
"""
import json
import logging
from datetime import datetime, timezone

import pytest

from pageforge.exceptions import ManifestError
from pageforge.incremental import (
    BuildManifest,
    BuildPlan,
    BuildRecord,
    BuildSession,
    ManifestStore,
    classify_units,
)
from pageforge.models import BuildStatus


EARLIER = datetime(2024, 1, 1, tzinfo=timezone.utc)
LATER = datetime(2024, 6, 1, tzinfo=timezone.utc)


def manifest_of(**hashes: str) -> BuildManifest:
    return BuildManifest(records={
        unit_id: BuildRecord(unit_id=unit_id, content_hash=digest, generated_at=EARLIER)
        for unit_id, digest in hashes.items()
    })


# =============================================================================
# Classification
# =============================================================================

class TestClassifyUnits:
    """Tests for classify_units()."""

    def test_all_statuses(self):
        """Units are new, changed, unchanged or removed against the manifest."""
        previous = manifest_of(index="h1", index_p2="h2", index_p4="h4")
        plan = classify_units({"index": "h1", "index_p2": "h2x", "index_p3": "h3"}, previous)

        assert plan.status_of("index") is BuildStatus.UNCHANGED
        assert plan.status_of("index_p2") is BuildStatus.CHANGED
        assert plan.status_of("index_p3") is BuildStatus.NEW
        assert plan.status_of("index_p4") is BuildStatus.REMOVED
        assert plan.summary() == {"new": 1, "changed": 1, "unchanged": 1, "removed": 1}

    def test_order_is_pages_then_removed(self):
        """Current units keep page order; removed units follow, sorted."""
        previous = manifest_of(z="1", b="2")
        plan = classify_units({"index": "h", "index_p2": "h"}, previous)
        assert [d.unit_id for d in plan.decisions] == ["index", "index_p2", "b", "z"]

    def test_empty_manifest_means_all_new(self):
        """Without a previous build every unit is new."""
        plan = classify_units({"index": "h1", "index_p2": "h2"}, BuildManifest())
        assert [d.status for d in plan.decisions] == [BuildStatus.NEW, BuildStatus.NEW]

    def test_force_marks_everything_changed(self):
        """A forced build regenerates units whose hash did not move."""
        plan = classify_units({"index": "h1"}, manifest_of(index="h1"), force=True)
        assert plan.status_of("index") is BuildStatus.CHANGED
        assert [d.unit_id for d in plan.to_generate] == ["index"]

    def test_decision_keeps_previous_hash(self):
        """Decisions record both hashes."""
        plan = classify_units({"index": "new"}, manifest_of(index="old"))
        decision = plan.decision_for("index")
        assert decision.previous_hash == "old"
        assert decision.to_dict()["status"] == "changed"

    def test_full_build_keeps_removals(self):
        """Non-incremental plans mark current units new and still list removed ones."""
        previous = manifest_of(index="h1", index_p2="h2")
        plan = classify_units({"index": "h1"}, previous, incremental=False)

        assert plan.status_of("index") is BuildStatus.NEW
        assert plan.status_of("index_p2") is BuildStatus.REMOVED

    def test_logs_summary(self, caplog):
        """The plan summary is logged at info level."""
        with caplog.at_level(logging.INFO, logger="pageforge.incremental"):
            classify_units({"index": "h"}, BuildManifest())
        assert "Build plan" in caplog.text


class TestNextManifest:
    """Tests for BuildPlan.next_manifest()."""

    def test_timestamps(self):
        """Generated units are stamped now; unchanged units keep their time."""
        previous = manifest_of(index="h1", index_p2="h2", gone="h3")
        plan = classify_units({"index": "h1", "index_p2": "h2x"}, previous)
        manifest = plan.next_manifest(LATER)

        assert manifest.get("index").generated_at == EARLIER
        assert manifest.get("index_p2").generated_at == LATER
        assert manifest.get("index_p2").content_hash == "h2x"
        assert "gone" not in manifest

    def test_empty_plan(self):
        """An empty plan yields an empty manifest."""
        assert len(BuildPlan().next_manifest(LATER)) == 0


# =============================================================================
# Manifest Store
# =============================================================================

class TestManifestStore:
    """Tests for ManifestStore."""

    def test_missing_file_is_empty(self, store):
        """No manifest on disk means no previous build."""
        assert not store.exists()
        assert len(store.load()) == 0

    def test_round_trip(self, store):
        """A saved manifest loads back equal."""
        manifest = manifest_of(index="h1", index_p2="h2")
        store.save(manifest)

        loaded = store.load()
        assert loaded.records == manifest.records
        assert json.loads(store.path.read_text())["version"] == 1

    def test_no_tmp_file_left(self, store):
        """The temporary file is renamed onto the manifest."""
        store.save(manifest_of(index="h1"))
        assert store.path.exists()
        assert not store.tmp_path.exists()

    def test_overwrite(self, store):
        """Saving again replaces the previous content."""
        store.save(manifest_of(index="h1"))
        store.save(manifest_of(index_p2="h2"))
        assert list(store.load().records) == ["index_p2"]

    @pytest.mark.parametrize("content", ["{not json", "[]", '{"units": {"index": {}}}'])
    def test_corrupt_manifest_is_ignored(self, store, caplog, content):
        """An unreadable manifest is treated as absent, with a warning."""
        store.path.write_text(content)
        with caplog.at_level(logging.WARNING, logger="pageforge.incremental"):
            manifest = store.load()
        assert len(manifest) == 0
        assert "Ignoring unreadable build manifest" in caplog.text

    def test_creates_missing_directory(self, tmp_path):
        """The manifest directory is created on save."""
        store = ManifestStore.in_directory(tmp_path / "site" / "out")
        store.save(manifest_of(index="h1"))
        assert store.path.exists()

    def test_unwritable_location(self, tmp_path):
        """Write failures surface as ManifestError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        store = ManifestStore(blocker / "manifest.json")

        with pytest.raises(ManifestError) as exc_info:
            store.save(manifest_of(index="h1"))
        assert exc_info.value.details["path"] == str(store.path)


# =============================================================================
# Build Session
# =============================================================================

class TestBuildSession:
    """Tests for BuildSession."""

    def test_commits_on_success(self, store):
        """A clean exit writes the next manifest."""
        plan = classify_units({"index": "h1"}, store.load())
        with BuildSession(store, plan) as session:
            pass

        assert session.committed
        assert store.load().get("index").content_hash == "h1"

    def test_no_commit_on_error(self, store):
        """An exception leaves the previous manifest untouched."""
        store.save(manifest_of(index="old"))
        plan = classify_units({"index": "new"}, store.load())

        with pytest.raises(RuntimeError):
            with BuildSession(store, plan) as session:
                raise RuntimeError("render failed")

        assert not session.committed
        assert store.load().get("index").content_hash == "old"
