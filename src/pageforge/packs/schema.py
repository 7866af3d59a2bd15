"""
PageForge Collection Pack Schemas

Pydantic models for validating collection pack YAML/JSON files.

A collection pack declares a whole collection as data:

    schema_version: "1.0.0"
    name: survey
    defaults:
      viz_type: stackedbar
      stack_var: gender
    group_labels:
      demo: Demographics
    datasets:
      - name: survey
        fingerprint: 3fa2...
        default: true
    items:
      - x_var: age
        group_path: demo/age
      - kind: pagination_break
      - kind: text
        content: "## Methods"
      - expand: true
        x_var: [income, education]
        title_template: "Question {i}: {x_var}"

Schema versioning:
- schema_version field tracks breaking changes
- Loaders check the major version
"""
from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator


# =============================================================================
# Schema Version
# =============================================================================

SCHEMA_VERSION = "1.0.0"


# =============================================================================
# Datasets
# =============================================================================

class DatasetSchema(BaseModel):
    """A dataset bound to the collection, by content or by fingerprint."""
    name: str = Field(..., min_length=1)
    fingerprint: Optional[str] = None
    data: Optional[Any] = None
    source: Optional[str] = None
    default: bool = False

    @model_validator(mode="after")
    def validate_identity(self) -> "DatasetSchema":
        """A dataset needs inline data or a precomputed fingerprint."""
        if self.fingerprint is None and self.data is None:
            raise ValueError(f"Dataset '{self.name}' needs 'data' or 'fingerprint'")
        return self

    model_config = {
        "extra": "forbid",
    }


# =============================================================================
# Items
# =============================================================================

GroupPathValue = Union[str, list[str], dict[str, str]]


class ItemSchema(BaseModel):
    """
    One item entry of a pack.

    Fields beyond the declared ones are kept as item options (x_var,
    content, color_palette, ...). With `expand: true` the entry is added
    through vectorized expansion instead of as a single item.
    """
    kind: Optional[str] = None
    group_path: Optional[Union[GroupPathValue, list[GroupPathValue]]] = None
    title: Optional[Union[str, list[str]]] = None
    children: Optional[list["ItemSchema"]] = None
    expand: bool = False
    group_template: Optional[str] = None
    title_template: Optional[str] = None

    @field_validator("kind")
    @classmethod
    def validate_kind(cls, v: Optional[str]) -> Optional[str]:
        """Kinds are matched case-insensitively."""
        return v.strip().lower() if v is not None else v

    @model_validator(mode="after")
    def validate_templates(self) -> "ItemSchema":
        """Templates only apply to expanded entries."""
        if not self.expand and (self.group_template or self.title_template):
            raise ValueError("group_template/title_template require 'expand: true'")
        if self.expand and self.children:
            raise ValueError("Expanded entries cannot hold children")
        return self

    def item_fields(self) -> dict[str, Any]:
        """Item fields as passed to the builder (pack-only keys removed)."""
        fields: dict[str, Any] = dict(self.model_extra or {})
        for name in ("kind", "group_path", "title"):
            if name in self.model_fields_set:
                fields[name] = getattr(self, name)
        if self.children is not None:
            fields["children"] = [child.item_fields() for child in self.children]
        return fields

    model_config = {
        "extra": "allow",  # Item options are open-ended
    }


# =============================================================================
# Pack
# =============================================================================

class CollectionPackSchema(BaseModel):
    """Root schema of a collection pack file."""
    schema_version: str = SCHEMA_VERSION
    name: Optional[str] = None
    description: Optional[str] = None
    defaults: dict[str, Any] = Field(default_factory=dict)
    group_labels: dict[str, str] = Field(default_factory=dict)
    datasets: list[DatasetSchema] = Field(default_factory=list)
    items: list[ItemSchema] = Field(default_factory=list)
    build: Optional[dict[str, Any]] = None

    @model_validator(mode="after")
    def validate_datasets(self) -> "CollectionPackSchema":
        """Dataset names are unique and at most one is the default."""
        names = [dataset.name for dataset in self.datasets]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate dataset names: {duplicates}")
        if sum(1 for dataset in self.datasets if dataset.default) > 1:
            raise ValueError("At most one dataset can be the default")
        return self

    model_config = {
        "extra": "forbid",  # Reject unknown fields
    }


# =============================================================================
# Validation Helpers
# =============================================================================

def validate_collection_pack(data: dict[str, Any]) -> CollectionPackSchema:
    """
    Validate a collection pack dictionary against the schema.

    Raises:
        pydantic.ValidationError: If validation fails
    """
    return CollectionPackSchema.model_validate(data)


def check_schema_version(data: dict[str, Any]) -> bool:
    """True if the pack's major schema version matches this library's."""
    pack_version = str(data.get("schema_version", SCHEMA_VERSION))
    return pack_version.split(".")[0] == SCHEMA_VERSION.split(".")[0]
