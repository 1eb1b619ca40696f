"""
EHO Pack Exception Hierarchy

Domain-specific exceptions for compliance report generation.
All exceptions include error codes for tracking and logging.

Exception codes follow the pattern: EHO_<CATEGORY>

Only two kinds are ever fatal to a report: a bad request (raised before any
query is issued) and an unavailable store. Everything else is caught at the
point where it happens and downgraded.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class EhoPackError(Exception):
    """
    Base exception for all EHO pack errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (EHO_*)
        details: Additional context about the error
        site_id: Associated site ID if applicable
    """
    message: str
    code: str = "EHO_INTERNAL_ERROR"
    details: dict[str, Any] = field(default_factory=dict)
    site_id: Optional[str] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [f"[{self.code}] {self.message}"]
        if self.site_id:
            parts.append(f"(site: {self.site_id})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/API responses."""
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.site_id:
            result["site_id"] = self.site_id
        return result


# =============================================================================
# Request Errors (fatal, raised before any query)
# =============================================================================

@dataclass
class InvalidRequestError(EhoPackError):
    """Report request is missing a parameter or a parameter is malformed."""
    code: str = "EHO_INVALID_REQUEST"


@dataclass
class InvalidWindowError(InvalidRequestError):
    """Report window start date is after its end date."""
    code: str = "EHO_INVALID_WINDOW"


# =============================================================================
# Store Errors
# =============================================================================

@dataclass
class QueryError(EhoPackError):
    """A named query returned an explicit error. Downgraded to empty rows."""
    code: str = "EHO_QUERY_ERROR"
    query: Optional[str] = None


@dataclass
class StoreUnavailableError(EhoPackError):
    """The relational store cannot be reached. Fatal."""
    code: str = "EHO_STORE_UNAVAILABLE"


# =============================================================================
# Rendering Errors
# =============================================================================

@dataclass
class SectionBuildError(EhoPackError):
    """A section builder failed. Replaced by a placeholder block."""
    code: str = "EHO_SECTION_BUILD"
    section: Optional[str] = None


# =============================================================================
# Configuration Errors
# =============================================================================

@dataclass
class ConfigurationError(EhoPackError):
    """Environment or packaged configuration is invalid."""
    code: str = "EHO_CONFIG_ERROR"
