"""
PageForge Exception Hierarchy

Domain-specific exceptions for the content-pipeline compiler.
All exceptions include error codes for tracking and logging.

Exception codes follow the pattern: PF_<CATEGORY>_<SPECIFIC>
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class PageForgeError(Exception):
    """
    Base exception for all PageForge errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (PF_*)
        details: Additional context about the error
        insertion_index: Position of the offending item, if any
        field: Name of the offending item field, if any
    """
    message: str
    code: str = "PF_INTERNAL_ERROR"
    details: dict[str, Any] = field(default_factory=dict)
    insertion_index: Optional[int] = None
    field: Optional[str] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [f"[{self.code}] {self.message}"]
        if self.insertion_index is not None:
            location = f"item #{self.insertion_index}"
            if self.field:
                location += f", field '{self.field}'"
            parts.append(f"({location})")
        elif self.field:
            parts.append(f"(field '{self.field}')")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/diagnostics."""
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.insertion_index is not None:
            result["insertion_index"] = self.insertion_index
        if self.field:
            result["field"] = self.field
        return result


# =============================================================================
# Building / Validation Errors
# =============================================================================

@dataclass
class ValidationError(PageForgeError):
    """Item or collection failed validation (defaults, vector expansion, kinds)."""
    code: str = "PF_VALIDATION_ERROR"


@dataclass
class GroupPathError(PageForgeError):
    """Group path could not be parsed."""
    code: str = "PF_GROUP_PATH_ERROR"


# =============================================================================
# Expression Errors
# =============================================================================

@dataclass
class ExpressionSyntaxError(PageForgeError):
    """Boolean expression text could not be parsed."""
    code: str = "PF_EXPRESSION_SYNTAX"


@dataclass
class UnsupportedOperatorError(PageForgeError):
    """Expression used an operator outside the supported set."""
    code: str = "PF_UNSUPPORTED_OPERATOR"
    operator: str = ""

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["operator"] = self.operator
        return result


# =============================================================================
# Internal Invariant Errors
# =============================================================================

@dataclass
class DuplicateReferenceError(PageForgeError):
    """Two distinct dataset/filter keys resolved to one reference."""
    code: str = "PF_DUPLICATE_REFERENCE"


# =============================================================================
# Build / Persistence Errors
# =============================================================================

@dataclass
class ManifestError(PageForgeError):
    """Build manifest could not be written."""
    code: str = "PF_MANIFEST_ERROR"


@dataclass
class ConfigError(PageForgeError):
    """Build configuration is invalid."""
    code: str = "PF_CONFIG_ERROR"


@dataclass
class PackLoadError(PageForgeError):
    """Failed to load a collection pack from file or string."""
    code: str = "PF_PACK_LOAD_ERROR"
