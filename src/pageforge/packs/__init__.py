"""
PageForge Collection Packs

Schema validation and loading for collection packs: YAML or JSON files
that declare a collection's defaults, labels, datasets and items.

Usage:
    from pageforge.packs import load_collection_pack, CollectionPackLoader

    pack = load_collection_pack("path/to/survey.yaml")
    compiled = compile_collection(pack.collection, pack.options)
"""
from __future__ import annotations

from .loader import (
    CollectionPackLoader,
    LoadedPack,
    load_collection_pack,
    load_collection_pack_from_string,
)
from .schema import (
    SCHEMA_VERSION,
    CollectionPackSchema,
    DatasetSchema,
    ItemSchema,
    check_schema_version,
    validate_collection_pack,
)

__all__ = [
    # Version
    "SCHEMA_VERSION",
    # Loader
    "CollectionPackLoader",
    "LoadedPack",
    "load_collection_pack",
    "load_collection_pack_from_string",
    # Validation
    "validate_collection_pack",
    "check_schema_version",
    # Schemas
    "CollectionPackSchema",
    "DatasetSchema",
    "ItemSchema",
]
