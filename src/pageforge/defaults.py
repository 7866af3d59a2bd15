"""
PageForge Defaults Resolver

Merges collection-level defaults into an item at insertion time.

Each field of an item spec is in one of three states:
- ABSENT: the caller did not mention the field
- NULL: the caller passed None explicitly ("unset", never overridden)
- VALUE: the caller passed a value

Resolution order per field (first writer wins):
    explicit value / explicit null  >  collection default  >  kind built-in
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from .models import KIND_RULES, ItemKind


class FieldState(str, Enum):
    """State of one field in an explicit item spec."""
    ABSENT = "absent"
    NULL = "null"
    VALUE = "value"


class FieldSource(str, Enum):
    """Where a resolved field value came from."""
    EXPLICIT = "explicit"
    EXPLICIT_NULL = "explicit_null"
    DEFAULT = "default"
    BUILTIN = "builtin"


def field_state(spec: Mapping[str, Any], name: str) -> FieldState:
    """Classify a field of an explicit spec."""
    if name not in spec:
        return FieldState.ABSENT
    if spec[name] is None:
        return FieldState.NULL
    return FieldState.VALUE


@dataclass
class ResolvedFields:
    """
    Result of resolving one item's fields.

    Attributes:
        values: Field name -> resolved value
        sources: Field name -> where the value came from
    """
    values: dict[str, Any] = field(default_factory=dict)
    sources: dict[str, FieldSource] = field(default_factory=dict)

    def source_of(self, name: str) -> Optional[FieldSource]:
        return self.sources.get(name)


def builtin_defaults(kind: Any) -> dict[str, Any]:
    """Built-in field defaults of a kind (empty for unknown kinds)."""
    item_kind = ItemKind.coerce(kind)
    if item_kind is None:
        return {}
    return dict(KIND_RULES[item_kind].builtin_defaults)


def resolve_fields(
    explicit: Mapping[str, Any],
    defaults: Mapping[str, Any],
    kind: Any,
) -> ResolvedFields:
    """
    Resolve every field an item will carry.

    The resolved field set is the union of the explicit spec, the
    collection defaults, and the kind's built-in defaults.

    Args:
        explicit: Fields the caller passed for this item
        defaults: Collection defaults in force at insertion time
        kind: The item's kind tag

    Returns:
        ResolvedFields with values and their sources
    """
    builtins = builtin_defaults(kind)
    resolved = ResolvedFields()

    names: list[str] = []
    for source in (explicit, defaults, builtins):
        for name in source:
            if name not in names:
                names.append(name)

    for name in names:
        state = field_state(explicit, name)
        if state is FieldState.VALUE:
            resolved.values[name] = explicit[name]
            resolved.sources[name] = FieldSource.EXPLICIT
        elif state is FieldState.NULL:
            resolved.values[name] = None
            resolved.sources[name] = FieldSource.EXPLICIT_NULL
        elif name in defaults:
            resolved.values[name] = defaults[name]
            resolved.sources[name] = FieldSource.DEFAULT
        else:
            resolved.values[name] = builtins[name]
            resolved.sources[name] = FieldSource.BUILTIN

    return resolved
