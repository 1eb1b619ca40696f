"""EHO report endpoint.

Pipeline: validate parameters → compile_report → HTML or JSON.
Router contains zero business logic.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse

from ...exceptions import InvalidRequestError
from ...models import Actor, ReportRequest
from ...report.pipeline import compile_report
from ...store import QueryClient
from ..dependencies import get_query_client

router = APIRouter(prefix="/eho", tags=["Report"])

FORMATS = ("html", "json")

_TRUE_VALUES = ("true", "1", "yes")


def _actor_from_headers(request: Request) -> Optional[Actor]:
    """Actor forwarded by the host application, if any."""
    user_id = request.headers.get("X-Actor-Id")
    if not user_id:
        return None
    return Actor(
        user_id=user_id,
        display_name=request.headers.get("X-Actor-Name", ""),
        company_id=request.headers.get("X-Actor-Company"),
        site_id=request.headers.get("X-Actor-Site"),
        role=request.headers.get("X-Actor-Role"),
    )


@router.get("/report")
async def get_eho_report(
    request: Request,
    site_id: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    report_format: str = Query("html", alias="format"),
    categories: Optional[str] = None,
    include_missed: Optional[str] = None,
    client: QueryClient = Depends(get_query_client),
):
    """
    Generate the EHO readiness pack for one site and period.

    Every parameter is validated before any query is issued; a bad request
    gets a 400 with a structured error and the store is never touched.
    """
    if report_format not in FORMATS:
        raise InvalidRequestError(
            message=f"format must be one of {', '.join(FORMATS)}, got {report_format!r}",
            details={"parameter": "format"},
        )
    report_request = ReportRequest.from_params(
        site_id,
        start_date,
        end_date,
        actor=_actor_from_headers(request),
        categories=categories.split(",") if categories else None,
        include_missed=(include_missed or "").lower() in _TRUE_VALUES,
    )

    document = await compile_report(report_request, client)

    if report_format == "json":
        return {
            "format": "json",
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "report": document.to_dict(),
        }

    return HTMLResponse(
        content=document.html,
        headers={"Content-Disposition": f'inline; filename="{document.filename}"'},
    )
