"""Report assembler: fixed skeleton, isolated sections, final document.

Every SectionKind has exactly one builder in ``SECTION_BUILDERS``; the
table is closed and resolved at import time.  A builder that raises is
replaced by a labelled placeholder block, so the document always carries
the full set of sections in the same order.
"""
from __future__ import annotations

import logging
import time
from itertools import groupby
from typing import Callable

from jinja2 import Environment, PackageLoader, select_autoescape
from markupsafe import Markup

from .. import config
from ..exceptions import SectionBuildError
from ..models import SECTION_LAYOUT, ReportDocument, ReportSection, SectionKind
from . import sections
from .context import ReportContext
from .primitives import format_datetime

logger = logging.getLogger(__name__)

SectionBuilder = Callable[[ReportContext], str]

SECTION_BUILDERS: dict[SectionKind, SectionBuilder] = {
    SectionKind.COVER: sections.build_cover,
    SectionKind.EXECUTIVE_SUMMARY: sections.build_executive_summary,
    SectionKind.FOOD_SAFETY: sections.build_food_safety,
    SectionKind.TEMPERATURE: sections.build_temperature,
    SectionKind.CLEANING: sections.build_cleaning,
    SectionKind.PEST_CONTROL: sections.build_pest_control,
    SectionKind.TRAINING: sections.build_training,
    SectionKind.INCIDENTS: sections.build_incidents,
    SectionKind.OPENING_CLOSING: sections.build_opening_closing,
    SectionKind.HEALTH_SAFETY: sections.build_health_safety,
    SectionKind.FIRE_SAFETY: sections.build_fire_safety,
    SectionKind.COSHH: sections.build_coshh,
    SectionKind.EQUIPMENT: sections.build_equipment,
    SectionKind.DOCUMENTATION: sections.build_documentation,
    SectionKind.ADDITIONAL_RECORDS: sections.build_additional_records,
    SectionKind.EVIDENCE_GALLERY: sections.build_evidence_gallery,
}

SECTION_FAILED_MESSAGE = "This section could not be generated."

FOOTER_DISCLAIMER = (
    "This pack is compiled automatically from records held for this site. "
    "It should be cross-checked against the source records before being "
    "relied on during an inspection."
)

_env = Environment(
    loader=PackageLoader("ehopack.report", "templates"),
    autoescape=select_autoescape(["html", "j2"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


# ── Sections ─────────────────────────────────────────────────────────────────

def _failed_block(kind: SectionKind) -> Markup:
    return Markup('<p class="section-error"><strong>{}:</strong> {} '
                  "Please refer to the source records.</p>").format(
        SECTION_LAYOUT[kind].title, SECTION_FAILED_MESSAGE,
    )


def build_section(kind: SectionKind, ctx: ReportContext) -> ReportSection:
    """Run one builder. Never raises."""
    builder = SECTION_BUILDERS[kind]
    started = time.monotonic()
    try:
        body = builder(ctx)
    except Exception as e:
        error = SectionBuildError(
            message=str(e) or type(e).__name__,
            section=kind.value,
            site_id=ctx.site_context.site.id,
        )
        logger.error(
            "Section %s could not be generated: %s", kind.value, error,
            exc_info=True,
            extra={"section": kind.value, "site_id": error.site_id},
        )
        return ReportSection(kind=kind, body=_failed_block(kind), failed=True, error=error.message)

    logger.debug(
        "Built section %s", kind.value,
        extra={"section": kind.value, "duration_ms": int((time.monotonic() - started) * 1000)},
    )
    return ReportSection(kind=kind, body=Markup(body))


def build_sections(ctx: ReportContext) -> list[ReportSection]:
    """All sections, in document order."""
    return [build_section(kind, ctx) for kind in SectionKind]


# ── Document ─────────────────────────────────────────────────────────────────

def render_document(ctx: ReportContext, report_sections: list[ReportSection]) -> str:
    """Render the self-contained HTML document.

    Sections are grouped by layout group; the template puts a page break
    between consecutive groups.
    """
    groups = [
        list(members)
        for _, members in groupby(report_sections, key=lambda s: s.layout.group)
    ]
    template = _env.get_template("report.html.j2")
    return template.render(
        site_name=ctx.site_name,
        start_date=ctx.window.start.isoformat(),
        end_date=ctx.window.end.isoformat(),
        groups=groups,
        generated_at=format_datetime(ctx.generated_at),
        disclaimer=FOOTER_DISCLAIMER,
        engine_version=config.EHO_ENGINE_VERSION,
    )


def assemble_report(ctx: ReportContext) -> ReportDocument:
    report_sections = build_sections(ctx)
    failed = [s.kind.value for s in report_sections if s.failed]
    if failed:
        logger.warning(
            "%d section(s) replaced by placeholders: %s", len(failed), ", ".join(failed),
            extra={"site_id": ctx.site_context.site.id},
        )
    return ReportDocument(
        site_id=ctx.site_context.site.id,
        site_name=ctx.site_name,
        start_date=ctx.window.start.isoformat(),
        end_date=ctx.window.end.isoformat(),
        generated_at=ctx.generated_at,
        sections=report_sections,
        html=render_document(ctx, report_sections),
        data_sources=ctx.data.to_dict(),
    )
