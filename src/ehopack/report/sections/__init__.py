"""Section builders, one pure function per document section.

Each builder takes the shared ReportContext and returns the section body
markup. Headings, anchors and failure isolation are the assembler's job.
"""
from __future__ import annotations

from .food_safety import build_cleaning, build_food_safety, build_pest_control, build_temperature
from .overview import build_cover, build_executive_summary
from .people import build_incidents, build_training
from .records import (
    build_additional_records,
    build_documentation,
    build_equipment,
    build_evidence_gallery,
)
from .safety import build_coshh, build_fire_safety, build_health_safety, build_opening_closing

__all__ = [
    "build_cover",
    "build_executive_summary",
    "build_food_safety",
    "build_temperature",
    "build_cleaning",
    "build_pest_control",
    "build_training",
    "build_incidents",
    "build_opening_closing",
    "build_health_safety",
    "build_fire_safety",
    "build_coshh",
    "build_equipment",
    "build_documentation",
    "build_additional_records",
    "build_evidence_gallery",
]
