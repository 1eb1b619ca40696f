"""Cover, contents and executive summary."""
from __future__ import annotations

from markupsafe import Markup

from ...engine.classify import (
    classify_document_expiry,
    completion_rate_tone,
    incident_needs_attention,
    percent,
)
from ...models import (
    SECTION_LAYOUT,
    CalloutSeverity,
    ColumnFormat,
    DocumentStatus,
    SectionKind,
    SourceKind,
    Tone,
)
from ..context import ReportContext
from ..primitives import (
    Column,
    StatCard,
    callout,
    data_table,
    format_date,
    format_datetime,
    format_percent,
    join,
    stat_grid,
    subheading,
)
from .common import task_counts

REPORT_TITLE = "EHO Readiness Pack"


def build_cover(ctx: ReportContext) -> Markup:
    site = ctx.site_context.site
    organization = ctx.site_context.organization
    details = [
        ("Site", site.name),
        ("Organisation", organization.legal_name if organization else None),
        ("Address", site.address or None),
        ("Reporting period", f"{format_date(ctx.window.start)} to {format_date(ctx.window.end)}"),
        ("Generated", format_datetime(ctx.generated_at)),
        ("Prepared by", ctx.prepared_by),
    ]
    parts = [Markup('<div class="cover"><h1>{}</h1><dl class="cover-details">').format(REPORT_TITLE)]
    for label, value in details:
        if value:
            parts.append(Markup("<dt>{}</dt><dd>{}</dd>").format(label, value))
    parts.append(Markup("</dl></div>"))

    if site.is_placeholder:
        parts.append(callout(
            CalloutSeverity.INFO,
            "Site details unavailable",
            "The site record could not be loaded. Records below are still scoped to the requested site.",
        ))

    parts.append(Markup('<nav class="contents"><h2>Contents</h2><ol>'))
    for kind, layout in SECTION_LAYOUT.items():
        if kind is SectionKind.COVER:
            continue
        parts.append(Markup('<li><a href="#{}">{}</a></li>').format(layout.anchor, layout.heading))
    parts.append(Markup("</ol></nav>"))
    return join(*parts)


def build_executive_summary(ctx: ReportContext) -> Markup:
    tasks = task_counts(ctx.rows(SourceKind.TASK_COMPLETIONS))
    task_rate = percent(tasks.completed, tasks.total)
    temperature = ctx.temperature
    incidents = ctx.rows(SourceKind.INCIDENTS)
    attention = [i for i in incidents if incident_needs_attention(i)]
    training_rate = ctx.training.compliance_rate

    grid = [
        StatCard("Task completion", format_percent(task_rate), completion_rate_tone(task_rate)),
        StatCard("Temperature compliance", format_percent(temperature.compliance_rate),
                 completion_rate_tone(temperature.compliance_rate)),
        StatCard("Incidents", len(incidents), Tone.BAD if attention else Tone.NEUTRAL),
        StatCard("Training compliance", format_percent(training_rate), completion_rate_tone(training_rate)),
    ]

    issues = []
    if temperature.breach_count:
        issues.append(f"{temperature.breach_count} temperature reading(s) outside the safe range")
    if tasks.missed:
        issues.append(f"{tasks.missed} scheduled task(s) missed")
    if attention:
        issues.append(f"{len(attention)} incident(s) requiring attention")
    expired_docs = [
        d for d in ctx.rows(SourceKind.DOCUMENTS)
        if classify_document_expiry(d.get("expiry_date"), ctx.today) is DocumentStatus.EXPIRED
    ]
    if expired_docs:
        issues.append(f"{len(expired_docs)} document(s) or certificate(s) expired")
    gaps = ctx.training.gaps()
    if gaps:
        issues.append(f"{len(gaps)} staff training gap(s)")

    if issues:
        summary = callout(CalloutSeverity.WARNING, "Items requiring attention", items=issues)
    else:
        summary = callout(
            CalloutSeverity.SUCCESS,
            "No outstanding issues",
            "No breaches, missed tasks, serious incidents or lapsed documents were found for this period.",
        )

    scores = sorted(
        ctx.rows(SourceKind.COMPLIANCE_SCORES),
        key=lambda r: str(r.get("date") or r.get("recorded_at") or ""),
    )
    trend = data_table(
        scores,
        [
            Column(lambda r: r.get("date") or r.get("recorded_at"), "Date", ColumnFormat.DATE),
            Column("category", "Area"),
            Column("score", "Score", ColumnFormat.PERCENT),
        ],
        empty_message="No compliance scores recorded for this period",
    )
    return join(
        stat_grid(grid, columns=4),
        summary,
        subheading("Compliance score trend"),
        trend,
        _period_note(ctx),
    )


def _period_note(ctx: ReportContext) -> Markup:
    return Markup('<p class="muted">Covers {} day(s) from {}.</p>').format(ctx.window.days, format_date(ctx.window.start))
