"""
PageForge Chunk Namer

Derives a readable, unique identifier for every item of a compiled page.

Priority:
1. The item's group path: ["demographics", "age", "trend"] -> "demographics-age-trend"
2. Chart type plus its first two bound variables: "stackedbar-q1-gender"
3. Kind plus insertion index: "text-7"

A candidate that sanitizes to nothing falls through to the next rule.
Names already handed out get "-2", "-3", ... suffixes; comparison is
case-insensitive and no name is ever handed out twice.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from .models import VIZ_RULES, ContentItem, ItemKind, resolve_viz_type

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 50

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")


def sanitize_name(text: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """
    Reduce text to a lowercase, dash-separated identifier.

    Runs of characters outside [a-z0-9] become one dash; leading and
    trailing dashes are trimmed. Applying it twice changes nothing.

    Example:
        >>> sanitize_name("Age / Trend (2024)")
        'age-trend-2024'
    """
    name = _NON_ALPHANUMERIC.sub("-", text.lower()).strip("-")
    if len(name) > max_length:
        name = name[:max_length].rstrip("-")
    return name


def _variable_candidate(item: ContentItem) -> Optional[str]:
    viz_type = resolve_viz_type(item.viz_type)
    if item.item_kind is not ItemKind.VIZ or viz_type is None:
        return None

    values: list[str] = []
    for name in VIZ_RULES[viz_type].name_fields:
        value = item.get(name)
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        if value is not None and str(value) != "":
            values.append(str(value))
    if not values:
        return None
    return "-".join([viz_type.value] + values[:2])


def name_candidates(item: ContentItem) -> list[str]:
    """Raw name candidates of an item, highest priority first."""
    candidates: list[str] = []
    if item.group_path:
        candidates.append("-".join(item.group_path))
    variables = _variable_candidate(item)
    if variables is not None:
        candidates.append(variables)
    candidates.append(f"{item.kind_name}-{item.insertion_index}")
    return candidates


@dataclass
class ChunkNamer:
    """
    Hands out unique chunk names for one compiled page.

    One namer spans every segment of a compile call, so names are unique
    across all output units produced from the same collection.

    Attributes:
        max_length: Length limit of the base name (suffixes may exceed it)
    """
    max_length: int = MAX_NAME_LENGTH
    _assigned: set[str] = field(default_factory=set)
    _counters: dict[str, int] = field(default_factory=dict)

    def base_name(self, item: ContentItem) -> str:
        """Sanitized base name of an item, before disambiguation."""
        for candidate in name_candidates(item):
            name = sanitize_name(candidate, self.max_length)
            if name:
                return name
        # Kind names always sanitize to something non-empty
        return sanitize_name(f"item-{item.insertion_index}", self.max_length)

    def assign(self, item: ContentItem) -> str:
        """Name an item, disambiguating against every name handed out so far."""
        return self.claim(self.base_name(item))

    def claim(self, base: str) -> str:
        """Reserve `base`, or the first free `base-N` when it is taken."""
        key = base.lower()
        name = base
        if key in self._assigned:
            counter = self._counters.get(key, 1)
            while True:
                counter += 1
                name = f"{base}-{counter}"
                if name.lower() not in self._assigned:
                    break
            self._counters[key] = counter
            logger.debug("Chunk name '%s' taken; using '%s'", base, name)
        self._assigned.add(name.lower())
        return name

    def is_assigned(self, name: str) -> bool:
        return name.lower() in self._assigned
