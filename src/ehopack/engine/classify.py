"""
EHO Pack Compliance Classifiers

Small domain judgments applied to raw rows before they are rendered.
Every classifier is a pure function of the row (and today's date where
expiry is involved), so section builders stay free of business rules.

Key components:
- parse_date: Lenient date coercion shared by the engine
- classify_document_expiry: valid / expiring / expired / no_expiry
- incident_needs_attention: severity or unresolved RIDDOR flag
- completion_rate_tone: threshold banding for percentages
- Row predicates for risk assessments, PAT, COSHH, pest control,
  checklists, deliveries and health declarations
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Optional

from .. import config
from ..models import DocumentStatus, Tone

GOOD_RATE_THRESHOLD = 90.0
WARN_RATE_THRESHOLD = 70.0

ATTENTION_SEVERITIES = frozenset({"major", "critical"})

_TRUTHY = frozenset({"true", "yes", "y", "1"})
_PAT_FAILED = frozenset({"fail", "failed"})
_PAT_PASSED = frozenset({"pass", "passed"})
_CHECKLIST_MISSED = frozenset({"missed", "incomplete", "overdue", "skipped"})
_DELIVERY_REJECTED = frozenset({"rejected", "partially_rejected", "refused"})


# =============================================================================
# Coercion
# =============================================================================

def parse_date(value: Any) -> Optional[date]:
    """Coerce a date, datetime or ISO string to a date. None when unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in _TRUTHY


def percent(part: float, whole: float) -> Optional[float]:
    if not whole:
        return None
    return part / whole * 100


def _norm(value: Any) -> str:
    return str(value or "").strip().lower().replace(" ", "_").replace("-", "_")


# =============================================================================
# Expiry
# =============================================================================

def classify_document_expiry(
    expiry: Any,
    today: date,
    warning_days: Optional[int] = None,
) -> DocumentStatus:
    """
    Classify a document, certificate or policy by its expiry date.

    expired:  expiry < today
    expiring: today <= expiry <= today + warning_days
    valid:    later than that
    no_expiry: no (parseable) expiry date recorded
    """
    warning_days = config.EHO_EXPIRY_WARNING_DAYS if warning_days is None else warning_days
    expiry_date = parse_date(expiry)
    if expiry_date is None:
        return DocumentStatus.NO_EXPIRY
    if expiry_date < today:
        return DocumentStatus.EXPIRED
    if expiry_date <= today + timedelta(days=warning_days):
        return DocumentStatus.EXPIRING
    return DocumentStatus.VALID


# =============================================================================
# Rates
# =============================================================================

def completion_rate_tone(rate: Optional[float]) -> Tone:
    if rate is None:
        return Tone.NEUTRAL
    if rate >= GOOD_RATE_THRESHOLD:
        return Tone.GOOD
    if rate >= WARN_RATE_THRESHOLD:
        return Tone.WARN
    return Tone.BAD


# =============================================================================
# Row Predicates
# =============================================================================

def incident_needs_attention(row: dict[str, Any]) -> bool:
    """Major/critical severity, or RIDDOR-reportable and not yet reported."""
    if _norm(row.get("severity")) in ATTENTION_SEVERITIES:
        return True
    return as_bool(row.get("riddor_reportable")) and not as_bool(row.get("riddor_reported"))


def risk_assessment_overdue(row: dict[str, Any], today: date) -> bool:
    review = parse_date(row.get("review_date") or row.get("next_review_date"))
    return review is not None and review < today


def pat_needs_attention(row: dict[str, Any], today: date) -> Optional[str]:
    """Return "failed" or "overdue" for an appliance needing action, else None."""
    if _norm(row.get("test_result") or row.get("status")) in _PAT_FAILED:
        return "failed"
    due = parse_date(row.get("next_test_date"))
    if due is not None and due < today:
        return "overdue"
    return None


def pat_result(row: dict[str, Any], today: date) -> str:
    """Badge value for an appliance: failed, overdue, passed or not_recorded."""
    reason = pat_needs_attention(row, today)
    if reason:
        return reason
    if _norm(row.get("test_result") or row.get("status")) in _PAT_PASSED:
        return "passed"
    return "not_recorded"


def chemical_missing_sds(row: dict[str, Any]) -> bool:
    return not (row.get("sds_url") or row.get("sds_document_url"))


def pest_activity_found(row: dict[str, Any]) -> bool:
    return as_bool(row.get("activity_found")) or _norm(row.get("outcome")) == "activity_found"


def checklist_missed(row: dict[str, Any]) -> bool:
    return _norm(row.get("status")) in _CHECKLIST_MISSED


def delivery_rejected(row: dict[str, Any]) -> bool:
    return _norm(row.get("status") or row.get("outcome")) in _DELIVERY_REJECTED


def declaration_unfit(row: dict[str, Any]) -> bool:
    value = row.get("fit_for_work")
    if value is None or value == "":
        return False
    return not as_bool(value)
