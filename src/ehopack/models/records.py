"""
EHO Pack Record Models

Normalized records produced by the engine stages:

- QueryOutcome / GatheredData: result of the parallel fetch
- TemperatureReading: one reading from either capture generation
- TrainingComplianceEntry: representative status for one matrix cell
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from .enums import (
    CertificationLevel,
    QueryStatus,
    ReadingSource,
    ReadingStatus,
    SourceKind,
    TrainingStatus,
)


# =============================================================================
# Query Results
# =============================================================================

@dataclass(frozen=True)
class QueryOutcome:
    """
    Settled result of one named query.

    A failed or skipped query still carries a (empty) row list, so callers
    never branch on None.
    """
    kind: SourceKind
    status: QueryStatus
    rows: tuple[dict[str, Any], ...] = ()
    error: Optional[str] = None
    duration_ms: Optional[int] = None

    @classmethod
    def success(cls, kind: SourceKind, rows, duration_ms: Optional[int] = None) -> "QueryOutcome":
        rows = tuple(rows or ())
        status = QueryStatus.OK if rows else QueryStatus.EMPTY
        return cls(kind=kind, status=status, rows=rows, duration_ms=duration_ms)

    @classmethod
    def failure(cls, kind: SourceKind, error: str, duration_ms: Optional[int] = None) -> "QueryOutcome":
        return cls(kind=kind, status=QueryStatus.FAILED, error=error, duration_ms=duration_ms)

    @classmethod
    def skipped(cls, kind: SourceKind, reason: str) -> "QueryOutcome":
        return cls(kind=kind, status=QueryStatus.SKIPPED, error=reason)

    @property
    def failed(self) -> bool:
        return self.status is QueryStatus.FAILED


@dataclass(frozen=True)
class GatheredData:
    """All eighteen query outcomes, joined."""
    outcomes: dict[SourceKind, QueryOutcome] = field(default_factory=dict)

    def rows(self, kind: SourceKind) -> list[dict[str, Any]]:
        """Rows for a kind. Always a list, never None."""
        outcome = self.outcomes.get(kind)
        return list(outcome.rows) if outcome else []

    def status(self, kind: SourceKind) -> QueryStatus:
        outcome = self.outcomes.get(kind)
        return outcome.status if outcome else QueryStatus.SKIPPED

    @property
    def failures(self) -> list[SourceKind]:
        return [k for k, o in self.outcomes.items() if o.failed]

    def to_dict(self) -> dict[str, Any]:
        return {
            kind.value: {
                "status": outcome.status.value,
                "rows": len(outcome.rows),
                "error": outcome.error,
            }
            for kind, outcome in self.outcomes.items()
        }


# =============================================================================
# Temperature
# =============================================================================

@dataclass(frozen=True)
class TemperatureReading:
    """
    A normalized temperature reading.

    Two readings describe the same physical event when their fingerprints
    match: same asset name, same value to one decimal place, same minute.
    """
    asset_name: str
    reading: float
    recorded_at: datetime
    unit: str = "°C"
    status: ReadingStatus = ReadingStatus.OK
    recorded_by: Optional[str] = None
    source: ReadingSource = ReadingSource.LOG
    asset_id: Optional[str] = None

    @property
    def fingerprint(self) -> tuple[str, float, datetime]:
        return (
            self.asset_name.strip().casefold(),
            round(self.reading, 1),
            self.recorded_at.replace(second=0, microsecond=0),
        )

    @property
    def is_breach(self) -> bool:
        return self.status is ReadingStatus.BREACH


# =============================================================================
# Training
# =============================================================================

@dataclass(frozen=True)
class TrainingComplianceEntry:
    """
    Representative training status for one (employee, category) cell.

    Attributes:
        recorded: False for the explicit "not recorded" placeholder
    """
    employee_id: str
    employee_name: str
    category: str
    status: TrainingStatus
    course_code: Optional[str] = None
    level: Optional[CertificationLevel] = None
    expiry_date: Optional[date] = None
    completed_at: Optional[date] = None
    recorded: bool = True

    @classmethod
    def not_recorded(cls, employee_id: str, employee_name: str, category: str) -> "TrainingComplianceEntry":
        return cls(
            employee_id=employee_id,
            employee_name=employee_name,
            category=category,
            status=TrainingStatus.NOT_STARTED,
            recorded=False,
        )
