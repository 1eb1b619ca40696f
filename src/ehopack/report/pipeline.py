"""Report pipeline: single entry point for all report generation.

Every caller (the HTTP endpoint, scripts, tests) uses ``compile_report``.
There is exactly one rendering path.
"""
from __future__ import annotations

import asyncio
import logging
import time
from datetime import date, datetime, timezone
from typing import Optional

from ..engine.context_resolver import resolve_site_context
from ..engine.gatherer import gather_report_data
from ..engine.temperature import reconcile_temperatures, summarize_temperatures
from ..engine.training import resolve_training_matrix
from ..models import Actor, ReportDocument, ReportRequest, SourceKind
from ..store import QueryClient
from .assembler import assemble_report
from .context import ReportContext

logger = logging.getLogger(__name__)


async def compile_report(
    request: ReportRequest,
    client: QueryClient,
    *,
    timeout: Optional[float] = None,
) -> ReportDocument:
    """Run the full pipeline and return the assembled document.

    Stages:
      1. resolve   - site identity and parent organization
      2. gather    - concurrent fan-out over every data kind
      3. normalize - temperature reconciliation, training matrix
      4. assemble  - sixteen sections into one self-contained document

    Raises:
        StoreUnavailableError: If the store cannot be reached at all
    """
    started = time.monotonic()
    site_context = await resolve_site_context(client, request.site_id)
    data = await gather_report_data(
        client,
        site_context,
        request.window,
        categories=request.categories,
        timeout=timeout,
    )

    readings = reconcile_temperatures(
        data.rows(SourceKind.TEMPERATURE_LOGS),
        data.rows(SourceKind.TASK_COMPLETIONS),
        data.rows(SourceKind.ASSETS),
    )
    training = resolve_training_matrix(
        data.rows(SourceKind.TRAINING_RECORDS),
        data.rows(SourceKind.STAFF_ROSTER),
        today=request.today,
    )
    ctx = ReportContext(
        request=request,
        site_context=site_context,
        data=data,
        readings=readings,
        temperature=summarize_temperatures(readings),
        training=training,
        generated_at=datetime.now(timezone.utc),
    )
    document = assemble_report(ctx)
    logger.info(
        "Compiled report for %s (%s to %s), %d section(s) failed",
        site_context.site.name, document.start_date, document.end_date, len(document.failed_sections),
        extra={"site_id": request.site_id, "duration_ms": int((time.monotonic() - started) * 1000)},
    )
    return document


def generate_report(
    site_id: str,
    start_date: str,
    end_date: str,
    client: QueryClient,
    *,
    actor: Optional[Actor] = None,
    categories: Optional[list[str]] = None,
    include_missed: bool = False,
    today: Optional[date] = None,
) -> ReportDocument:
    """Synchronous convenience wrapper: validate parameters, then compile.

    Parameter validation happens before the event loop starts, so a bad
    request never reaches the store.
    """
    request = ReportRequest.from_params(
        site_id,
        start_date,
        end_date,
        actor=actor,
        categories=categories,
        include_missed=include_missed,
        today=today,
    )
    return asyncio.run(compile_report(request, client))
