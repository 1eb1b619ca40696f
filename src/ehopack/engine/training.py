"""
EHO Pack Training Compliance Resolver

Builds the staff training matrix: one representative status per employee
per compliance category.

Ranking of candidate rows within a cell:
1. Higher certification level before lower
2. Status priority: compliant > expiring_soon > in_progress > expired >
   required > not_started > optional
3. Later expiry date first (deterministic tiebreak)

A cell with no candidate gets an explicit "not recorded" entry, so the
matrix is always complete.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml

from .. import config
from ..exceptions import ConfigurationError
from ..models import CertificationLevel, TrainingComplianceEntry, TrainingStatus
from .classify import parse_date

logger = logging.getLogger(__name__)

_STATUS_ALIASES: dict[str, TrainingStatus] = {
    "current": TrainingStatus.COMPLIANT,
    "valid": TrainingStatus.COMPLIANT,
    "assigned": TrainingStatus.IN_PROGRESS,
    "invited": TrainingStatus.IN_PROGRESS,
    "enrolled": TrainingStatus.IN_PROGRESS,
}

# Statuses that leave a compliance gap on the matrix
GAP_STATUSES = frozenset({
    TrainingStatus.EXPIRED,
    TrainingStatus.REQUIRED,
    TrainingStatus.NOT_STARTED,
})


# =============================================================================
# Category Map
# =============================================================================

@dataclass(frozen=True)
class CourseCode:
    code: str
    level: CertificationLevel


@dataclass(frozen=True)
class ComplianceCategory:
    """A display category and the course codes that satisfy it."""
    key: str
    label: str
    courses: tuple[CourseCode, ...]

    def level_of(self, course_code: str) -> Optional[CertificationLevel]:
        wanted = course_code.strip().upper()
        for course in self.courses:
            if course.code.upper() == wanted:
                return course.level
        return None


def load_training_categories(path: Optional[Path] = None) -> tuple[ComplianceCategory, ...]:
    """Load the category map, from ``path`` or the packaged default."""
    path = path or config.EHO_TRAINING_CATEGORIES_FILE or (config.PACKAGE_DATA_DIR / "training_categories.yaml")
    return _load_categories(Path(path))


@lru_cache(maxsize=8)
def _load_categories(path: Path) -> tuple[ComplianceCategory, ...]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(message=f"Cannot load training categories from {path}: {e}")

    categories: list[ComplianceCategory] = []
    for entry in data.get("categories") or []:
        courses = entry.get("courses") or []
        if not entry.get("key") or not 1 <= len(courses) <= 2:
            raise ConfigurationError(
                message=f"Training category needs a key and one or two courses: {entry!r}",
                details={"path": str(path)},
            )
        if len(courses) == 1:
            parsed = (CourseCode(str(courses[0]["code"]), CertificationLevel.SINGLE),)
        else:
            parsed = tuple(
                CourseCode(str(c["code"]), CertificationLevel(c.get("level", "lower")))
                for c in courses
            )
        categories.append(ComplianceCategory(
            key=str(entry["key"]),
            label=str(entry.get("label") or entry["key"]),
            courses=parsed,
        ))
    if not categories:
        raise ConfigurationError(message=f"No training categories defined in {path}")
    return tuple(categories)


# =============================================================================
# Status Normalization
# =============================================================================

def normalize_training_status(raw: Any) -> TrainingStatus:
    """Map a raw status string onto TrainingStatus. Unknown values are optional."""
    text = str(raw or "").strip().lower()
    if text in _STATUS_ALIASES:
        return _STATUS_ALIASES[text]
    try:
        return TrainingStatus(text)
    except ValueError:
        return TrainingStatus.OPTIONAL


def effective_status(
    status: TrainingStatus,
    expiry: Optional[date],
    today: Optional[date],
    warning_days: int,
) -> TrainingStatus:
    """Correct a stored status that its expiry date has overtaken."""
    if today is None or expiry is None:
        return status
    if status in (TrainingStatus.COMPLIANT, TrainingStatus.EXPIRING_SOON):
        if expiry < today:
            return TrainingStatus.EXPIRED
        if status is TrainingStatus.COMPLIANT and expiry <= today + timedelta(days=warning_days):
            return TrainingStatus.EXPIRING_SOON
    return status


# =============================================================================
# Matrix
# =============================================================================

@dataclass(frozen=True)
class TrainingEmployee:
    id: str
    name: str
    position: Optional[str] = None


@dataclass
class TrainingMatrix:
    """Employees × categories, exactly one entry per cell."""
    categories: tuple[ComplianceCategory, ...]
    employees: list[TrainingEmployee] = field(default_factory=list)
    cells: dict[tuple[str, str], TrainingComplianceEntry] = field(default_factory=dict)

    def entry(self, employee_id: str, category_key: str) -> TrainingComplianceEntry:
        return self.cells[(employee_id, category_key)]

    def summary(self) -> dict[str, Counter]:
        """Status counts per category key."""
        counts: dict[str, Counter] = {c.key: Counter() for c in self.categories}
        for (_, category_key), entry in self.cells.items():
            counts[category_key][entry.status] += 1
        return counts

    def gaps(self) -> list[TrainingComplianceEntry]:
        """Cells that leave an employee out of compliance, matrix order."""
        result = []
        for employee in self.employees:
            for category in self.categories:
                entry = self.entry(employee.id, category.key)
                if entry.status in GAP_STATUSES:
                    result.append(entry)
        return result

    @property
    def compliance_rate(self) -> Optional[float]:
        if not self.cells:
            return None
        good = sum(
            1 for e in self.cells.values()
            if e.status in (TrainingStatus.COMPLIANT, TrainingStatus.EXPIRING_SOON)
        )
        return good / len(self.cells) * 100


@dataclass(frozen=True)
class _Candidate:
    employee_id: str
    employee_name: str
    course_code: str
    status: TrainingStatus
    expiry_date: Optional[date]
    completed_at: Optional[date]


def _candidate_from_row(row: dict[str, Any], today, warning_days) -> Optional[_Candidate]:
    employee_id = row.get("employee_id") or row.get("profile_id")
    course_code = row.get("course_code")
    if not employee_id or not course_code:
        return None
    expiry = parse_date(row.get("expiry_date"))
    status = normalize_training_status(row.get("compliance_status", row.get("status")))
    return _Candidate(
        employee_id=str(employee_id),
        employee_name=str(row.get("employee_name") or row.get("full_name") or employee_id),
        course_code=str(course_code),
        status=effective_status(status, expiry, today, warning_days),
        expiry_date=expiry,
        completed_at=parse_date(row.get("completed_at")),
    )


def rank_key(level: CertificationLevel, status: TrainingStatus, expiry: Optional[date]) -> tuple:
    """Sort key for candidates; the minimum is the representative."""
    return (level.rank, status.rank, -(expiry.toordinal() if expiry else 0))


def select_representative(
    category: ComplianceCategory,
    candidates: list[_Candidate],
) -> Optional[TrainingComplianceEntry]:
    """Pick the top-ranked candidate for a category, or None."""
    matching = [
        (category.level_of(c.course_code), c)
        for c in candidates
        if category.level_of(c.course_code) is not None
    ]
    if not matching:
        return None
    level, best = min(matching, key=lambda pair: rank_key(pair[0], pair[1].status, pair[1].expiry_date))
    return TrainingComplianceEntry(
        employee_id=best.employee_id,
        employee_name=best.employee_name,
        category=category.key,
        status=best.status,
        course_code=best.course_code,
        level=level,
        expiry_date=best.expiry_date,
        completed_at=best.completed_at,
    )


def resolve_training_matrix(
    training_rows: list[dict[str, Any]],
    roster_rows: Optional[list[dict[str, Any]]] = None,
    categories: Optional[tuple[ComplianceCategory, ...]] = None,
    *,
    today: Optional[date] = None,
    warning_days: Optional[int] = None,
) -> TrainingMatrix:
    """
    Resolve raw per-employee-per-course rows into a complete matrix.

    Employees are the roster plus anyone who appears only in training rows.
    """
    categories = categories or load_training_categories()
    warning_days = config.EHO_EXPIRY_WARNING_DAYS if warning_days is None else warning_days

    employees: dict[str, TrainingEmployee] = {}
    for row in roster_rows or []:
        employee_id = row.get("id") or row.get("profile_id")
        if not employee_id:
            continue
        employees[str(employee_id)] = TrainingEmployee(
            id=str(employee_id),
            name=str(row.get("full_name") or row.get("name") or employee_id),
            position=row.get("position_title") or row.get("position"),
        )

    by_employee: dict[str, list[_Candidate]] = {}
    for row in training_rows:
        candidate = _candidate_from_row(row, today, warning_days)
        if candidate is None:
            logger.debug("Skipping training row without employee or course: %s", row.get("id"))
            continue
        by_employee.setdefault(candidate.employee_id, []).append(candidate)
        if candidate.employee_id not in employees:
            employees[candidate.employee_id] = TrainingEmployee(
                id=candidate.employee_id, name=candidate.employee_name,
            )

    ordered = sorted(employees.values(), key=lambda e: (e.name.casefold(), e.id))
    matrix = TrainingMatrix(categories=categories, employees=ordered)
    for employee in ordered:
        candidates = by_employee.get(employee.id, [])
        for category in categories:
            entry = select_representative(category, candidates)
            if entry is None:
                entry = TrainingComplianceEntry.not_recorded(employee.id, employee.name, category.key)
            matrix.cells[(employee.id, category.key)] = entry
    return matrix
