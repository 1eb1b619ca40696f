"""
EHO Pack Parallel Data Gatherer

Fans out one read query per data kind, waits for every query to settle, and
joins the results into GatheredData.

Contract:
- Strictly best-effort: no retries, nothing escalated to the caller
- A rejected, erroring or timed-out query yields an empty row list
- Only failures are logged; an empty-but-successful result is normal
- Organization-scoped queries are not issued without an organization id
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from .. import config
from ..models import (
    GatheredData,
    QueryOutcome,
    QueryScope,
    ReportWindow,
    SiteContext,
    SourceKind,
)
from ..store import QueryClient

logger = logging.getLogger(__name__)


# =============================================================================
# Query Specifications
# =============================================================================

@dataclass(frozen=True)
class QuerySpec:
    """How to issue the query for one data kind."""
    name: str
    scope: QueryScope = QueryScope.SITE
    windowed: bool = True
    filterable: bool = False    # Accepts the task category filter

    def params(
        self,
        site_id: str,
        organization_id: Optional[str],
        window: ReportWindow,
        categories: tuple[str, ...] = (),
    ) -> dict[str, Any]:
        if self.scope is QueryScope.ORGANIZATION:
            params: dict[str, Any] = {"organization_id": organization_id}
        else:
            params = {"site_id": site_id}
        if self.windowed:
            params.update(window.as_params())
        if self.filterable and categories:
            params["categories"] = list(categories)
        return params


QUERY_SPECS: dict[SourceKind, QuerySpec] = {
    SourceKind.TASK_COMPLETIONS: QuerySpec("eho_task_completions", filterable=True),
    SourceKind.TEMPERATURE_LOGS: QuerySpec("eho_temperature_logs"),
    SourceKind.CLEANING_RECORDS: QuerySpec("eho_cleaning_records"),
    SourceKind.PEST_CONTROL_RECORDS: QuerySpec("eho_pest_control_records"),
    SourceKind.TRAINING_RECORDS: QuerySpec("eho_training_records", windowed=False),
    SourceKind.INCIDENTS: QuerySpec("eho_incidents"),
    SourceKind.OPENING_CLOSING_CHECKLISTS: QuerySpec("eho_opening_closing_checklists"),
    SourceKind.DOCUMENTS: QuerySpec("eho_documents", QueryScope.ORGANIZATION, windowed=False),
    SourceKind.CHEMICAL_SHEETS: QuerySpec("eho_chemical_sheets", QueryScope.ORGANIZATION, windowed=False),
    SourceKind.RISK_ASSESSMENTS: QuerySpec("eho_risk_assessments", QueryScope.ORGANIZATION, windowed=False),
    SourceKind.ASSETS: QuerySpec("eho_assets", windowed=False),
    SourceKind.PAT_APPLIANCES: QuerySpec("eho_pat_appliances", windowed=False),
    SourceKind.COMPLIANCE_SCORES: QuerySpec("eho_compliance_scores"),
    SourceKind.STAFF_ROSTER: QuerySpec("eho_staff_roster", QueryScope.ORGANIZATION, windowed=False),
    SourceKind.SUPPLIER_DELIVERIES: QuerySpec("eho_supplier_deliveries"),
    SourceKind.MAINTENANCE_LOGS: QuerySpec("eho_maintenance_logs"),
    SourceKind.STAFF_HEALTH_DECLARATIONS: QuerySpec("eho_staff_health_declarations"),
    SourceKind.ALLERGEN_INFORMATION: QuerySpec("eho_allergen_information", windowed=False),
}

SITE_ACCESS_QUERY = "eho_staff_site_access"


# =============================================================================
# Fetchers
# =============================================================================

Fetcher = Callable[[QueryClient, QuerySpec, dict[str, Any], str], Awaitable[list]]


async def _fetch_rows(client: QueryClient, spec: QuerySpec, params: dict[str, Any], site_id: str) -> list:
    return await client.fetch(spec.name, params) or []


async def _fetch_roster(client: QueryClient, spec: QuerySpec, params: dict[str, Any], site_id: str) -> list:
    """
    Two-pass roster: organization roster filtered by the site-access join.

    Organizations without granular site access configured have no access rows
    at all; they get the unfiltered roster.
    """
    roster = await client.fetch(spec.name, params) or []
    if not roster:
        return []

    access_rows = await client.fetch(SITE_ACCESS_QUERY, params) or []
    if not access_rows:
        return list(roster)

    allowed = {
        str(row.get("profile_id"))
        for row in access_rows
        if str(row.get("site_id")) == str(site_id)
    }
    return [
        employee for employee in roster
        if str(employee.get("id") or employee.get("profile_id")) in allowed
        or str(employee.get("home_site_id")) == str(site_id)
    ]


async def _settle(
    kind: SourceKind,
    fetcher: Fetcher,
    client: QueryClient,
    spec: QuerySpec,
    params: dict[str, Any],
    site_id: str,
) -> QueryOutcome:
    """Run one query and convert any outcome into a QueryOutcome. Never raises."""
    started = time.monotonic()
    try:
        rows = await fetcher(client, spec, params, site_id)
    except Exception as e:
        duration_ms = int((time.monotonic() - started) * 1000)
        logger.warning(
            "Query %s failed, using empty collection: %s", spec.name, e,
            extra={"site_id": site_id, "source_kind": kind.value, "duration_ms": duration_ms},
        )
        return QueryOutcome.failure(kind, str(e) or type(e).__name__, duration_ms)

    duration_ms = int((time.monotonic() - started) * 1000)
    if not isinstance(rows, (list, tuple)):
        logger.warning(
            "Query %s returned %s instead of rows, using empty collection",
            spec.name, type(rows).__name__,
            extra={"site_id": site_id, "source_kind": kind.value},
        )
        return QueryOutcome.failure(kind, "unexpected result shape", duration_ms)
    return QueryOutcome.success(kind, [r for r in rows if isinstance(r, dict)], duration_ms)


# =============================================================================
# Gather
# =============================================================================

async def gather_report_data(
    client: QueryClient,
    context: SiteContext,
    window: ReportWindow,
    *,
    categories: tuple[str, ...] = (),
    timeout: Optional[float] = None,
) -> GatheredData:
    """
    Issue every query concurrently and join once all have settled.

    One aggregate timeout applies to the whole fan-out. Queries still running
    when it elapses are cancelled and treated exactly like failed queries.
    """
    timeout = config.EHO_FANOUT_TIMEOUT_SECONDS if timeout is None else timeout
    site_id = context.site.id
    organization_id = context.organization_id

    outcomes: dict[SourceKind, QueryOutcome] = {}
    tasks: dict[SourceKind, asyncio.Task] = {}

    for kind, spec in QUERY_SPECS.items():
        if spec.scope is QueryScope.ORGANIZATION and organization_id is None:
            outcomes[kind] = QueryOutcome.skipped(kind, "no organization id")
            continue
        params = spec.params(site_id, organization_id, window, categories)
        fetcher = _fetch_roster if kind is SourceKind.STAFF_ROSTER else _fetch_rows
        tasks[kind] = asyncio.ensure_future(_settle(kind, fetcher, client, spec, params, site_id))

    if tasks:
        _, still_running = await asyncio.wait(tasks.values(), timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)

        for kind, task in tasks.items():
            if task in still_running:
                logger.warning(
                    "Query %s timed out after %.1fs, using empty collection",
                    QUERY_SPECS[kind].name, timeout,
                    extra={"site_id": site_id, "source_kind": kind.value},
                )
                outcomes[kind] = QueryOutcome.failure(kind, f"timed out after {timeout:g}s")
            else:
                outcomes[kind] = task.result()

    ordered = {kind: outcomes[kind] for kind in SourceKind}
    failed = [k.value for k, o in ordered.items() if o.failed]
    if failed:
        logger.warning(
            "%d of %d queries failed: %s", len(failed), len(ordered), ", ".join(failed),
            extra={"site_id": site_id},
        )
    return GatheredData(outcomes=ordered)
