"""
EHO Pack Document Models

The fixed skeleton of the inspection document and the rendered result.

The set of sections is closed: SectionKind enumerates every section the
document can contain and SECTION_LAYOUT fixes their order, ordinal labels
and page-break groups.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class SectionKind(str, Enum):
    """Every section of the document, in document order."""
    COVER = "cover"
    EXECUTIVE_SUMMARY = "executive_summary"
    FOOD_SAFETY = "food_safety"
    TEMPERATURE = "temperature"
    CLEANING = "cleaning"
    PEST_CONTROL = "pest_control"
    TRAINING = "training"
    INCIDENTS = "incidents"
    OPENING_CLOSING = "opening_closing"
    HEALTH_SAFETY = "health_safety"
    FIRE_SAFETY = "fire_safety"
    COSHH = "coshh"
    EQUIPMENT = "equipment"
    DOCUMENTATION = "documentation"
    ADDITIONAL_RECORDS = "additional_records"
    EVIDENCE_GALLERY = "evidence_gallery"


@dataclass(frozen=True)
class SectionLayout:
    """Placement of one section in the skeleton."""
    ordinal: str        # "" for the cover, "1".."14", "A" for the appendix
    title: str
    group: int          # Page breaks fall between groups

    @property
    def anchor(self) -> str:
        return f"section-{self.ordinal}" if self.ordinal else "section-cover"

    @property
    def heading(self) -> str:
        if not self.ordinal:
            return self.title
        if self.ordinal.isdigit():
            return f"{self.ordinal}. {self.title}"
        return f"Appendix {self.ordinal}. {self.title}"


SECTION_LAYOUT: dict[SectionKind, SectionLayout] = {
    SectionKind.COVER: SectionLayout("", "Cover & Contents", 0),
    SectionKind.EXECUTIVE_SUMMARY: SectionLayout("1", "Executive Summary", 1),
    SectionKind.FOOD_SAFETY: SectionLayout("2", "Food Safety Management", 2),
    SectionKind.TEMPERATURE: SectionLayout("3", "Temperature Monitoring", 2),
    SectionKind.CLEANING: SectionLayout("4", "Cleaning Records", 2),
    SectionKind.PEST_CONTROL: SectionLayout("5", "Pest Control", 2),
    SectionKind.TRAINING: SectionLayout("6", "Staff Training", 3),
    SectionKind.INCIDENTS: SectionLayout("7", "Incidents & Accidents", 3),
    SectionKind.OPENING_CLOSING: SectionLayout("8", "Opening & Closing Checks", 4),
    SectionKind.HEALTH_SAFETY: SectionLayout("9", "Health & Safety", 4),
    SectionKind.FIRE_SAFETY: SectionLayout("10", "Fire Safety", 4),
    SectionKind.COSHH: SectionLayout("11", "COSHH", 4),
    SectionKind.EQUIPMENT: SectionLayout("12", "Equipment & Maintenance", 5),
    SectionKind.DOCUMENTATION: SectionLayout("13", "Documentation & Certificates", 5),
    SectionKind.ADDITIONAL_RECORDS: SectionLayout("14", "Additional Records", 5),
    SectionKind.EVIDENCE_GALLERY: SectionLayout("A", "Evidence Gallery", 6),
}


@dataclass
class ReportSection:
    """One rendered, independently failable unit of the document."""
    kind: SectionKind
    body: str
    failed: bool = False
    error: Optional[str] = None

    @property
    def layout(self) -> SectionLayout:
        return SECTION_LAYOUT[self.kind]

    @property
    def ordinal(self) -> str:
        return self.layout.ordinal

    @property
    def title(self) -> str:
        return self.layout.title

    @property
    def anchor(self) -> str:
        return self.layout.anchor

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "ordinal": self.ordinal,
            "title": self.title,
            "anchor": self.anchor,
            "failed": self.failed,
            "error": self.error,
        }


@dataclass
class ReportDocument:
    """The assembled document: ordered sections plus the rendered HTML."""
    site_id: str
    site_name: str
    start_date: str
    end_date: str
    generated_at: datetime
    sections: list[ReportSection] = field(default_factory=list)
    html: str = ""
    data_sources: dict[str, Any] = field(default_factory=dict)

    @property
    def failed_sections(self) -> list[ReportSection]:
        return [s for s in self.sections if s.failed]

    @property
    def filename(self) -> str:
        return f"eho-report-{self.start_date}-to-{self.end_date}.html"

    def to_dict(self) -> dict[str, Any]:
        return {
            "site_id": self.site_id,
            "site_name": self.site_name,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "generated_at": self.generated_at.isoformat(),
            "sections": [s.to_dict() for s in self.sections],
            "data_sources": self.data_sources,
        }
