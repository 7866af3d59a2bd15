"""
PageForge Collections

A Collection is the immutable value threaded through builder calls: the
ordered item sequence, the defaults applied at insertion time, display
labels for group segments, and the datasets bound to the collection.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from .items import ContentItem


# Dataset name used when an item names none and nothing is bound
DEFAULT_DATASET_NAME = "data"


@dataclass(frozen=True)
class DatasetBinding:
    """
    A dataset bound to a collection.

    Attributes:
        name: Identifier items use in `dataset_ref`
        fingerprint: Content hash of the dataset (see canon.fingerprint_dataset)
        source: Optional description of where the data lives (path, table)
    """
    name: str
    fingerprint: str
    source: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "fingerprint": self.fingerprint, "source": self.source}


@dataclass(frozen=True)
class Collection:
    """
    Ordered, immutable-once-built sequence of content items.

    Attributes:
        items: Items in insertion order
        defaults: Field values applied to items lacking an explicit value
        group_labels: Display label per group path segment
        datasets: Bound datasets, in binding order
        default_dataset: Dataset used by items that name none
        next_index: Next insertion index to hand out (never reused)
    """
    items: tuple[ContentItem, ...] = ()
    defaults: dict[str, Any] = field(default_factory=dict)
    group_labels: dict[str, str] = field(default_factory=dict)
    datasets: tuple[DatasetBinding, ...] = ()
    default_dataset: Optional[str] = None
    next_index: int = 1

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[ContentItem]:
        return iter(self.items)

    @property
    def dataset_names(self) -> list[str]:
        return [binding.name for binding in self.datasets]

    def get_dataset(self, name: str) -> Optional[DatasetBinding]:
        """Look up a bound dataset by name."""
        for binding in self.datasets:
            if binding.name == name:
                return binding
        return None

    @property
    def implicit_dataset(self) -> Optional[str]:
        """Dataset read by items that name none (None if undetermined)."""
        if self.default_dataset:
            return self.default_dataset
        if len(self.datasets) == 1:
            return self.datasets[0].name
        return None

    def dataset_identity(self, item: ContentItem) -> str:
        """Name of the dataset an item reads once defaults are considered."""
        if item.dataset_ref:
            return item.dataset_ref
        return self.implicit_dataset or DEFAULT_DATASET_NAME
