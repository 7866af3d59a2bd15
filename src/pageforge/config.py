"""
PageForge Build Configuration

BuildOptions controls how a collection is compiled: output unit naming,
pagination labels, reference hashing, incremental behaviour, and the
page-level configuration folded into every unit's content hash.

Options may be built in code or loaded from a YAML/JSON file:

    options = BuildOptions(base_unit_name="analysis", force_rebuild=True)
    options = load_build_options("pageforge.yaml")
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigError


class BuildOptions(BaseModel):
    """
    Options of one compile.

    Attributes:
        base_unit_name: Base name of output units (`index`, `index_p2`, ...)
        force_rebuild: Mark every unit changed regardless of the manifest
        incremental: Consult the previous manifest at all
        pagination_separator: Label between page number and count
        hash_prefix_length: Hex characters used in filtered reference names
        max_chunk_name_length: Length limit of derived chunk names
        isolate_visibility_errors: Drop an item's bad visibility condition
            instead of aborting the compile
        page_config: Page-level settings (theme, title, ...) hashed into units
    """
    base_unit_name: str = "index"
    force_rebuild: bool = False
    incremental: bool = True
    pagination_separator: str = "of"
    hash_prefix_length: int = Field(default=8, ge=4, le=64)
    max_chunk_name_length: int = Field(default=50, ge=8)
    isolate_visibility_errors: bool = False
    page_config: dict[str, Any] = Field(default_factory=dict)

    @field_validator("base_unit_name")
    @classmethod
    def validate_base_unit_name(cls, v: str) -> str:
        """Unit names become file names; keep them path-free."""
        v = v.strip()
        if not v:
            raise ValueError("base_unit_name cannot be empty")
        if "/" in v or "\\" in v:
            raise ValueError("base_unit_name cannot contain path separators")
        return v

    model_config = {
        "extra": "forbid",  # Reject unknown fields
    }


def build_options_from_dict(data: Optional[dict[str, Any]]) -> BuildOptions:
    """
    Validate a mapping into BuildOptions.

    Raises:
        ConfigError: If the mapping is not valid configuration
    """
    if data is None:
        return BuildOptions()
    if not isinstance(data, dict):
        raise ConfigError(
            message="Build options must be a mapping",
            details={"type": type(data).__name__},
        )
    try:
        return BuildOptions.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            message=f"Build options validation failed: {e.error_count()} errors",
            details={"errors": e.errors(include_url=False)},
        )


def _load_file(path: Path) -> Any:
    """Load data from YAML or JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            return json.load(f)
        return yaml.safe_load(f)


def load_build_options(path: Union[str, Path]) -> BuildOptions:
    """
    Load BuildOptions from a YAML or JSON file.

    A top-level `build` key, when present, holds the options; this lets
    the options live in a larger project file.

    Raises:
        ConfigError: If the file cannot be read or is invalid
    """
    path = Path(path)
    try:
        data = _load_file(path)
    except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(
            message=f"Failed to load build options: {e}",
            details={"path": str(path), "error": str(e)},
        )

    if isinstance(data, dict) and isinstance(data.get("build"), dict):
        data = data["build"]
    try:
        return build_options_from_dict(data)
    except ConfigError as e:
        e.details["path"] = str(path)
        raise
