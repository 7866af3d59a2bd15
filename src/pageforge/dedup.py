"""
PageForge Filter/Dataset Dedup Cache

Items that read the same dataset through the same filter share one
computed view. The cache keys each (dataset identity, normalized filter)
pair by content hash and hands out a stable reference name:

    survey_filtered_3fa2c9d1

Unfiltered items reference the raw dataset name directly. Reference names
use a short hash prefix; when two different keys share a prefix, the later
key's prefix is widened until its name is unique.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from .canon import content_hash, normalize_expression
from .exceptions import DuplicateReferenceError

logger = logging.getLogger(__name__)


# =============================================================================
# Entries
# =============================================================================

@dataclass(frozen=True)
class FilterReference:
    """
    One deduplicated filtered view.

    Attributes:
        name: Reference name items use instead of the dataset name
        dataset: Dataset identity the view reads
        filter: Normalized filter text
        key: Full SHA-256 content hash of (dataset, filter)
    """
    name: str
    dataset: str
    filter: str
    key: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "dataset": self.dataset, "filter": self.filter, "key": self.key}


def filter_key(dataset: str, filter_text: str) -> str:
    """Content hash identifying a (dataset, normalized filter) pair."""
    return content_hash({"dataset": dataset, "filter": normalize_expression(filter_text)})


# =============================================================================
# Cache
# =============================================================================

@dataclass
class DedupCache:
    """
    Per-compile cache of filtered dataset references.

    Attributes:
        prefix_length: Hex characters of the key used in reference names
    """
    prefix_length: int = 8
    _by_key: dict[str, FilterReference] = field(default_factory=dict)
    _by_name: dict[str, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self._by_key)

    @property
    def references(self) -> list[FilterReference]:
        """All references in the order they were created."""
        return list(self._by_key.values())

    def resolve(self, dataset: str, filter_text: Optional[str]) -> str:
        """
        Name of the data an item should read.

        Args:
            dataset: Dataset identity of the item
            filter_text: Row filter text, or None when unfiltered

        Returns:
            The raw dataset name for unfiltered items, otherwise the
            shared reference name of the filtered view
        """
        if filter_text is None or not normalize_expression(filter_text):
            return dataset
        return self.reference_for(dataset, filter_text).name

    def reference_for(self, dataset: str, filter_text: str) -> FilterReference:
        """Get or create the reference of a filtered view."""
        normalized = normalize_expression(filter_text)
        key = filter_key(dataset, normalized)

        existing = self._by_key.get(key)
        if existing is not None:
            logger.debug("Dedup hit for %s", existing.name)
            return existing

        length = self.prefix_length
        name = f"{dataset}_filtered_{key[:length]}"
        while name in self._by_name and length < len(key):
            length += 1
            name = f"{dataset}_filtered_{key[:length]}"
        if length != self.prefix_length:
            logger.debug("Widened reference prefix to %d characters for %s", length, name)

        reference = FilterReference(name=name, dataset=dataset, filter=normalized, key=key)
        self._bind(reference)
        return reference

    def _bind(self, reference: FilterReference) -> None:
        bound = self._by_name.get(reference.name)
        if bound is not None and bound != reference.key:
            raise DuplicateReferenceError(
                message=f"Reference '{reference.name}' is already bound to a different filter",
                details={"name": reference.name, "bound_key": bound, "new_key": reference.key},
            )
        self._by_name[reference.name] = reference.key
        self._by_key[reference.key] = reference
