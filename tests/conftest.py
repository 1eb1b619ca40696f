"""
Pytest configuration and fixtures for EHO pack tests.

Provides dataset factories for the in-memory query client and common
fixtures for requests, contexts and report contexts.
"""
import asyncio
from datetime import date, datetime, timezone

import pytest

from ehopack.engine.temperature import reconcile_temperatures, summarize_temperatures
from ehopack.engine.training import resolve_training_matrix
from ehopack.models import (
    Actor,
    GatheredData,
    QueryOutcome,
    ReportRequest,
    ReportWindow,
    Site,
    SiteContext,
    SourceKind,
)
from ehopack.report.context import ReportContext
from ehopack.store import InMemoryQueryClient

TODAY = date(2024, 2, 15)


# =============================================================================
# Factory Helpers
# =============================================================================

def run(coro):
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)


def make_site_row(site_id: str = "S1", org_id="O1", name: str = "Harbour Kitchen") -> dict:
    """Create a site row as returned by the identity lookup."""
    return {
        "id": site_id,
        "name": name,
        "organization_id": org_id,
        "address_line1": "12 Quay Street",
        "city": "Bristol",
        "postcode": "BS1 4DJ",
    }


def make_site_dataset(site_id: str = "S1", org_id="O1", **overrides) -> dict:
    """
    Create a complete dataset for one site over January 2024.

    Keyword overrides replace whole named queries, e.g.
    ``make_site_dataset(eho_incidents=[...])``.
    """
    datasets = {
        "site_by_id": [make_site_row(site_id, org_id)],
        "organization_by_id": [{"id": org_id, "legal_name": "Harbour Foods Ltd"}] if org_id else [],
        "eho_task_completions": [
            {
                "id": "T1", "site_id": site_id, "template_name": "Fridge check",
                "template_category": "food_safety", "status": "completed",
                "completed_at": "2024-01-05T08:00:00Z", "completed_by_name": "Ana Lopez",
            },
            {
                "id": "T2", "site_id": site_id, "template_name": "Probe calibration",
                "template_category": "food_safety", "status": "missed",
                "due_date": "2024-01-06",
            },
            {
                "id": "T3", "site_id": site_id, "template_name": "Fire door check",
                "template_category": "fire_safety", "status": "completed",
                "completed_at": "2024-01-07T09:00:00Z",
            },
        ],
        "eho_temperature_logs": [
            make_log_row("L1", "A1", 3.5, "2024-01-10T08:00:00Z", site_id=site_id),
            make_log_row("L2", "A1", 4.1, "2024-01-11T08:00:00Z", site_id=site_id),
            make_log_row("L3", "A1", 9.2, "2024-01-12T08:00:00Z", site_id=site_id),
        ],
        "eho_assets": [make_asset_row("A1", "Walk-in Fridge", 0, 5, site_id=site_id)],
        "eho_cleaning_records": [
            {"id": "C1", "site_id": site_id, "area": "Kitchen floor", "status": "completed",
             "completed_at": "2024-01-03T21:00:00Z"},
        ],
        "eho_pest_control_records": [
            {"id": "P1", "site_id": site_id, "visit_date": "2024-01-15",
             "contractor_name": "PestAway", "activity_found": False},
        ],
        "eho_incidents": [
            {"id": "I1", "site_id": site_id, "title": "Cut finger", "severity": "minor",
             "occurred_at": "2024-01-09T12:00:00Z", "status": "closed"},
        ],
        "eho_training_records": [
            make_training_row("E1", "Ana Lopez", "FS-L3", "compliant", "2025-06-01", site_id=site_id),
        ],
        "eho_staff_roster": [
            {"id": "E1", "full_name": "Ana Lopez", "position_title": "Head Chef", "organization_id": org_id},
        ],
        "eho_documents": [
            {"id": "D1", "organization_id": org_id, "title": "Public liability insurance",
             "category": "insurance", "expiry_date": "2024-12-31"},
        ],
        "eho_compliance_scores": [
            {"id": "CS1", "site_id": site_id, "date": "2024-01-31", "category": "overall", "score": 92},
        ],
    }
    datasets.update(overrides)
    return datasets


def make_client(site_id: str = "S1", org_id="O1", **overrides) -> InMemoryQueryClient:
    """Create an in-memory client serving ``make_site_dataset``."""
    return InMemoryQueryClient(make_site_dataset(site_id, org_id, **overrides))


def make_log_row(
    row_id: str,
    asset_id: str,
    reading: float,
    recorded_at: str,
    site_id: str = "S1",
    **extra,
) -> dict:
    """Create a canonical temperature log row."""
    row = {
        "id": row_id,
        "site_id": site_id,
        "asset_id": asset_id,
        "reading": reading,
        "recorded_at": recorded_at,
        "recorded_by_name": "Ana Lopez",
    }
    row.update(extra)
    return row


def make_asset_row(asset_id: str, name: str, min_temp=None, max_temp=None, site_id: str = "S1") -> dict:
    return {"id": asset_id, "site_id": site_id, "name": name, "min_temp": min_temp, "max_temp": max_temp}


def make_completion(row_id: str, completion_data: dict, completed_at: str = "2024-01-10T08:00:00Z", **extra) -> dict:
    """Create a task completion row carrying a payload."""
    row = {
        "id": row_id,
        "site_id": "S1",
        "template_name": "Temperature check",
        "template_category": "food_safety",
        "status": "completed",
        "completed_at": completed_at,
        "completion_data": completion_data,
    }
    row.update(extra)
    return row


def make_training_row(
    employee_id: str,
    employee_name: str,
    course_code: str,
    status: str,
    expiry_date=None,
    site_id: str = "S1",
) -> dict:
    """Create one per-employee-per-course training row."""
    return {
        "employee_id": employee_id,
        "employee_name": employee_name,
        "site_id": site_id,
        "course_code": course_code,
        "compliance_status": status,
        "expiry_date": expiry_date,
    }


def make_request(
    site_id: str = "S1",
    start_date: str = "2024-01-01",
    end_date: str = "2024-01-31",
    **kwargs,
) -> ReportRequest:
    """Create a validated ReportRequest with a fixed reference date."""
    kwargs.setdefault("today", TODAY)
    return ReportRequest.from_params(site_id, start_date, end_date, **kwargs)


def make_report_context(
    rows: dict = None,
    site: Site = None,
    request: ReportRequest = None,
) -> ReportContext:
    """
    Create a ReportContext directly from rows per SourceKind.

    Kinds not given settle as empty, so builders see a quiet period.
    """
    rows = rows or {}
    outcomes = {kind: QueryOutcome.success(kind, rows.get(kind, [])) for kind in SourceKind}
    data = GatheredData(outcomes=outcomes)
    readings = reconcile_temperatures(
        data.rows(SourceKind.TEMPERATURE_LOGS),
        data.rows(SourceKind.TASK_COMPLETIONS),
        data.rows(SourceKind.ASSETS),
    )
    request = request or make_request()
    return ReportContext(
        request=request,
        site_context=SiteContext(site=site or Site(id="S1", name="Harbour Kitchen", organization_id="O1")),
        data=data,
        readings=readings,
        temperature=summarize_temperatures(readings),
        training=resolve_training_matrix(
            data.rows(SourceKind.TRAINING_RECORDS),
            data.rows(SourceKind.STAFF_ROSTER),
            today=request.today,
        ),
        generated_at=datetime(2024, 2, 1, 9, 30, tzinfo=timezone.utc),
    )


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def january():
    """The January 2024 report window."""
    return ReportWindow.parse("2024-01-01", "2024-01-31")


@pytest.fixture
def site_context():
    return SiteContext(site=Site(id="S1", name="Harbour Kitchen", organization_id="O1"))


@pytest.fixture
def actor():
    return Actor(user_id="U1", display_name="Sam Patel", company_id="O1", role="manager")


@pytest.fixture
def client():
    return make_client()
