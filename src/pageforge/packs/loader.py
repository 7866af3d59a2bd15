"""
PageForge Collection Pack Loader

Loads and validates collection packs from YAML or JSON files.

Converts Pydantic schema models into a Collection through the builder
surface, so a pack and the equivalent builder calls produce the same
collection.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError as SchemaValidationError

from .. import builder
from ..config import BuildOptions, build_options_from_dict
from ..exceptions import PackLoadError, ValidationError
from ..models import Collection
from .schema import (
    SCHEMA_VERSION,
    CollectionPackSchema,
    ItemSchema,
    check_schema_version,
    validate_collection_pack,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadedPack:
    """A collection pack converted to domain objects."""
    collection: Collection
    options: BuildOptions
    name: Optional[str] = None
    source: Optional[str] = None


# =============================================================================
# Schema to Collection Conversion
# =============================================================================

def _add_entry(collection: Collection, entry: ItemSchema) -> Collection:
    fields = entry.item_fields()
    if entry.expand:
        return builder.add_many(
            collection,
            fields,
            group_template=entry.group_template,
            title_template=entry.title_template,
        )
    if fields.get("kind") == "pagination_break":
        options = {k: v for k, v in fields.items() if k != "kind"}
        return builder.add_pagination_break(collection, **options)
    return builder.add(collection, fields)


def _convert_collection_pack(schema: CollectionPackSchema) -> Collection:
    """Build the Collection a validated pack describes."""
    collection = builder.new_collection(schema.defaults, group_labels=schema.group_labels)
    for dataset in schema.datasets:
        collection = builder.bind_dataset(
            collection,
            dataset.name,
            dataset.data,
            fingerprint=dataset.fingerprint,
            source=dataset.source,
            default=dataset.default,
        )
    for entry in schema.items:
        collection = _add_entry(collection, entry)
    return collection


# =============================================================================
# Loader
# =============================================================================

class CollectionPackLoader:
    """
    Loads collection packs from YAML or JSON files.

    Usage:
        loader = CollectionPackLoader()
        pack = loader.load("path/to/survey.yaml")
        compiled = compile_collection(pack.collection, pack.options)
    """

    def __init__(self, strict_version: bool = True):
        """
        Initialize the loader.

        Args:
            strict_version: If True, reject packs with incompatible schema versions
        """
        self.strict_version = strict_version
        self._packs: dict[str, LoadedPack] = {}

    def load(self, path: Union[str, Path]) -> LoadedPack:
        """
        Load a collection pack from a file.

        Args:
            path: Path to YAML or JSON file

        Returns:
            LoadedPack with the collection and its build options

        Raises:
            PackLoadError: If the file cannot be read or has an
                incompatible schema version
            ValidationError: If the pack fails schema validation
            ConfigError: If the pack's build options are invalid
        """
        path = Path(path)

        try:
            data = self._load_file(path)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise PackLoadError(
                message=f"Failed to load collection pack: {e}",
                details={"path": str(path), "error": str(e)},
            )

        pack = self.load_data(data, source=str(path))
        if pack.name:
            self._packs[pack.name] = pack
        return pack

    def load_data(self, data: Any, source: Optional[str] = None) -> LoadedPack:
        """Validate and convert already-parsed pack data."""
        if not isinstance(data, dict):
            raise PackLoadError(
                message="Collection pack must be a mapping at the top level",
                details={"source": source, "type": type(data).__name__},
            )

        if self.strict_version and not check_schema_version(data):
            pack_version = data.get("schema_version", "unknown")
            raise PackLoadError(
                message=f"Schema version mismatch: pack has {pack_version}, expected {SCHEMA_VERSION}",
                details={"pack_version": pack_version, "expected_version": SCHEMA_VERSION},
            )

        try:
            schema = validate_collection_pack(data)
        except SchemaValidationError as e:
            raise ValidationError(
                message=f"Collection pack validation failed: {e.error_count()} errors",
                details={"errors": e.errors(include_url=False), "source": source},
            )

        collection = _convert_collection_pack(schema)
        options = build_options_from_dict(schema.build)
        logger.debug("Loaded pack %s with %d items", schema.name or source, len(collection))
        return LoadedPack(collection=collection, options=options, name=schema.name, source=source)

    def _load_file(self, path: Path) -> Any:
        """Load data from YAML or JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in {".yaml", ".yml"}:
                return yaml.safe_load(f)
            elif path.suffix.lower() == ".json":
                return json.load(f)
            else:
                # Try YAML first, then JSON
                content = f.read()
                try:
                    return yaml.safe_load(content)
                except yaml.YAMLError:
                    return json.loads(content)

    def get_pack(self, name: str) -> Optional[LoadedPack]:
        """Get a cached pack by name."""
        return self._packs.get(name)

    def list_packs(self) -> list[str]:
        """List names of all loaded packs."""
        return list(self._packs.keys())


# =============================================================================
# Convenience Functions
# =============================================================================

def load_collection_pack(path: Union[str, Path]) -> LoadedPack:
    """Load a collection pack from a file with a temporary loader."""
    return CollectionPackLoader().load(path)


def load_collection_pack_from_string(content: str, format: str = "yaml") -> LoadedPack:
    """
    Load a collection pack from a string.

    Args:
        content: YAML or JSON string
        format: "yaml" or "json"

    Raises:
        PackLoadError: If the string cannot be parsed
    """
    try:
        if format.lower() == "json":
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise PackLoadError(
            message=f"Failed to parse collection pack: {e}",
            details={"format": format},
        )
    return CollectionPackLoader().load_data(data)
