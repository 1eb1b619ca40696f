"""
EHO Pack Models

Data models for the report engine, re-exported for convenience.
"""
from __future__ import annotations

from .enums import (
    CalloutSeverity,
    CertificationLevel,
    ColumnFormat,
    DocumentStatus,
    QueryScope,
    QueryStatus,
    ReadingSource,
    ReadingStatus,
    SourceKind,
    Tone,
    TrainingStatus,
)
from .context import (
    UNKNOWN_SITE_NAME,
    Actor,
    Organization,
    ReportRequest,
    ReportWindow,
    Site,
    SiteContext,
)
from .records import (
    GatheredData,
    QueryOutcome,
    TemperatureReading,
    TrainingComplianceEntry,
)
from .document import (
    SECTION_LAYOUT,
    ReportDocument,
    ReportSection,
    SectionKind,
    SectionLayout,
)

__all__ = [
    # Enums
    "CalloutSeverity",
    "CertificationLevel",
    "ColumnFormat",
    "DocumentStatus",
    "QueryScope",
    "QueryStatus",
    "ReadingSource",
    "ReadingStatus",
    "SourceKind",
    "Tone",
    "TrainingStatus",
    # Context
    "UNKNOWN_SITE_NAME",
    "Actor",
    "Organization",
    "ReportRequest",
    "ReportWindow",
    "Site",
    "SiteContext",
    # Records
    "GatheredData",
    "QueryOutcome",
    "TemperatureReading",
    "TrainingComplianceEntry",
    # Document
    "SECTION_LAYOUT",
    "ReportDocument",
    "ReportSection",
    "SectionKind",
    "SectionLayout",
]
