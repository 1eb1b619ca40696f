"""
EHO Pack Enumerations

All enumeration types used throughout the report engine.
Organized by domain area for clarity.

All enums inherit from (str, Enum) for JSON serialization compatibility.
"""
from __future__ import annotations

from enum import Enum


# =============================================================================
# Data Sources
# =============================================================================

class SourceKind(str, Enum):
    """The eighteen data kinds gathered for one report."""
    TASK_COMPLETIONS = "task_completions"
    TEMPERATURE_LOGS = "temperature_logs"
    CLEANING_RECORDS = "cleaning_records"
    PEST_CONTROL_RECORDS = "pest_control_records"
    TRAINING_RECORDS = "training_records"
    INCIDENTS = "incidents"
    OPENING_CLOSING_CHECKLISTS = "opening_closing_checklists"
    DOCUMENTS = "documents"
    CHEMICAL_SHEETS = "chemical_sheets"
    RISK_ASSESSMENTS = "risk_assessments"
    ASSETS = "assets"
    PAT_APPLIANCES = "pat_appliances"
    COMPLIANCE_SCORES = "compliance_scores"
    STAFF_ROSTER = "staff_roster"
    SUPPLIER_DELIVERIES = "supplier_deliveries"
    MAINTENANCE_LOGS = "maintenance_logs"
    STAFF_HEALTH_DECLARATIONS = "staff_health_declarations"
    ALLERGEN_INFORMATION = "allergen_information"


class QueryScope(str, Enum):
    """Which identifier a query is keyed on."""
    SITE = "site"
    ORGANIZATION = "organization"


class QueryStatus(str, Enum):
    """How a single query settled."""
    OK = "ok"                # Rows returned
    EMPTY = "empty"          # Succeeded with no rows
    FAILED = "failed"        # Error, rejection or timeout; rows fall back to []
    SKIPPED = "skipped"      # Not issued (no organization id)


# =============================================================================
# Temperature
# =============================================================================

class ReadingStatus(str, Enum):
    """Outcome of a single monitored reading."""
    OK = "ok"
    BREACH = "breach"


class ReadingSource(str, Enum):
    """Capture generation a reading came from."""
    LOG = "log"      # Canonical temperature log table
    TASK = "task"    # Mined from a task completion payload


# =============================================================================
# Training
# =============================================================================

class TrainingStatus(str, Enum):
    """
    Compliance status of one employee against one course.

    Declared in ranking order: earlier members are more informative and win
    when several candidate rows exist for the same cell.
    """
    COMPLIANT = "compliant"
    EXPIRING_SOON = "expiring_soon"
    IN_PROGRESS = "in_progress"
    EXPIRED = "expired"
    REQUIRED = "required"
    NOT_STARTED = "not_started"
    OPTIONAL = "optional"

    @property
    def rank(self) -> int:
        """Position in the priority order (0 = most informative)."""
        return list(TrainingStatus).index(self)


class CertificationLevel(str, Enum):
    """Which course code of a category a record was taken against."""
    HIGHER = "higher"
    LOWER = "lower"
    SINGLE = "single"    # Category has only one course code

    @property
    def rank(self) -> int:
        return 1 if self is CertificationLevel.LOWER else 0


# =============================================================================
# Documents
# =============================================================================

class DocumentStatus(str, Enum):
    """Expiry classification of a document, certificate or policy."""
    VALID = "valid"
    EXPIRING = "expiring"
    EXPIRED = "expired"
    NO_EXPIRY = "no_expiry"


# =============================================================================
# Rendering
# =============================================================================

class CalloutSeverity(str, Enum):
    """Visual severity of a callout box."""
    DANGER = "danger"
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"


class ColumnFormat(str, Enum):
    """Format directive for a data table column."""
    PLAIN = "plain"
    DATE = "date"
    DATETIME = "datetime"
    PERCENT = "percent"          # Threshold-colored percentage
    BADGE = "badge"              # Status badge with per-value color map
    TEMPERATURE = "temperature"


class Tone(str, Enum):
    """Color tone shared by stat cards, badges and percentage cells."""
    GOOD = "good"
    WARN = "warn"
    BAD = "bad"
    NEUTRAL = "neutral"
    INFO = "info"
