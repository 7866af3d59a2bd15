"""
PageForge Tab Hierarchy Assembler

Groups items into a forest of GroupNodes using their slash-delimited group
paths. Construction is order-stable: a group appears where its path segment
is first encountered, and ungrouped items interleave with groups at the top
level in insertion order.

Group paths may be written three ways:
- "demographics/age/trend" (slash notation, segments trimmed)
- ["demographics", "age", "trend"] (explicit sequence)
- {"1": "demographics", "2": "age"} (numbered levels, ordered by number)
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterator, Mapping, Optional, Sequence, TypeVar, Union

from .exceptions import GroupPathError

T = TypeVar("T")

_NUMERIC_KEY = re.compile(r"^[0-9]+$")


# =============================================================================
# Group Path Parsing
# =============================================================================

def parse_group_path(
    value: Any,
    insertion_index: Optional[int] = None,
) -> Optional[tuple[str, ...]]:
    """
    Normalize a group path into a tuple of segments.

    Args:
        value: None, a slash-delimited string, a sequence of segments, or a
            mapping of numeric-string levels to segments
        insertion_index: Position of the owning item, for error messages

    Returns:
        Tuple of non-empty segments, or None for ungrouped items

    Raises:
        GroupPathError: If the value has an unsupported shape or no
            segments remain after parsing
    """
    if value is None:
        return None

    if isinstance(value, str):
        segments = [part.strip() for part in value.split("/")]
    elif isinstance(value, Mapping):
        keys = list(value.keys())
        if not all(isinstance(k, str) and _NUMERIC_KEY.match(k) for k in keys):
            raise GroupPathError(
                message="Numbered group path levels must use numeric keys like '1', '2'",
                details={"value": repr(value)},
                insertion_index=insertion_index,
                field="group_path",
            )
        segments = [str(value[k]).strip() for k in sorted(keys, key=int)]
    elif isinstance(value, (list, tuple)):
        if not all(isinstance(part, str) for part in value):
            raise GroupPathError(
                message="Group path segments must be strings",
                details={"value": repr(value)},
                insertion_index=insertion_index,
                field="group_path",
            )
        segments = [part.strip() for part in value]
    else:
        raise GroupPathError(
            message=(
                "Group path must be a string ('a/b'), a list of segments, "
                "or a mapping of numbered levels"
            ),
            details={"type": type(value).__name__},
            insertion_index=insertion_index,
            field="group_path",
        )

    segments = [segment for segment in segments if segment]
    if not segments:
        raise GroupPathError(
            message="Group path cannot be empty after parsing",
            details={"value": repr(value)},
            insertion_index=insertion_index,
            field="group_path",
        )
    return tuple(segments)


# =============================================================================
# Group Nodes
# =============================================================================

@dataclass
class GroupNode(Generic[T]):
    """
    One level of the tab hierarchy.

    Attributes:
        segment: Path segment this node is keyed by ("" for the root)
        label: Display label of the segment
        path: Full path from the root to this node
        entries: Direct items and child nodes in first-seen order
    """
    segment: str
    label: str
    path: tuple[str, ...] = ()
    entries: list[Union[T, GroupNode[T]]] = field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return not self.path

    @property
    def items(self) -> list[T]:
        """Items attached directly to this node."""
        return [entry for entry in self.entries if not isinstance(entry, GroupNode)]

    @property
    def children(self) -> list[GroupNode[T]]:
        """Child groups in the order their segment was first encountered."""
        return [entry for entry in self.entries if isinstance(entry, GroupNode)]

    def child(self, segment: str) -> Optional[GroupNode[T]]:
        for entry in self.entries:
            if isinstance(entry, GroupNode) and entry.segment == segment:
                return entry
        return None

    def walk(self) -> Iterator[T]:
        """Yield every item of the subtree, depth first, in entry order."""
        for entry in self.entries:
            if isinstance(entry, GroupNode):
                yield from entry.walk()
            else:
                yield entry

    def to_dict(self, describe: Callable[[T], Any]) -> dict[str, Any]:
        """
        Serialize the subtree.

        Args:
            describe: Converts an item entry to its serialized form
        """
        return {
            "segment": self.segment,
            "label": self.label,
            "path": list(self.path),
            "entries": [
                entry.to_dict(describe) if isinstance(entry, GroupNode)
                else {"item": describe(entry)}
                for entry in self.entries
            ],
        }


# =============================================================================
# Assembly
# =============================================================================

def assemble_tabs(
    entries: Sequence[T],
    group_path_of: Callable[[T], Optional[Sequence[str]]],
    labels: Optional[Mapping[str, str]] = None,
) -> GroupNode[T]:
    """
    Build the group forest for an ordered sequence of entries.

    Args:
        entries: Items in insertion order
        group_path_of: Returns an entry's group path (None when ungrouped)
        labels: Display label per segment; raw segment when missing

    Returns:
        Root GroupNode whose entries are top-level items and groups
    """
    labels = labels or {}
    root: GroupNode[T] = GroupNode(segment="", label="")

    for entry in entries:
        path = group_path_of(entry)
        node = root
        for depth, segment in enumerate(path or ()):
            existing = node.child(segment)
            if existing is None:
                existing = GroupNode(
                    segment=segment,
                    label=labels.get(segment, segment),
                    path=tuple(path[: depth + 1]),
                )
                node.entries.append(existing)
            node = existing
        node.entries.append(entry)

    return root
