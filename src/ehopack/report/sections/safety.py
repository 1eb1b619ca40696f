"""Sections 8-11: opening/closing checks, health & safety, fire safety, COSHH."""
from __future__ import annotations

from markupsafe import Markup

from ...engine.classify import (
    chemical_missing_sds,
    checklist_missed,
    completion_rate_tone,
    percent,
    risk_assessment_overdue,
)
from ...models import CalloutSeverity, ColumnFormat, SourceKind, Tone, TrainingStatus
from ..context import ReportContext
from ..primitives import (
    Column,
    StatCard,
    callout,
    data_table,
    empty_state,
    format_percent,
    humanize,
    join,
    stat_grid,
    subheading,
)
from .common import TASK_STATUS_TONES, rows_with_category, task_counts

FIRE_ASSESSMENT_TYPES = frozenset({"fire", "fire_risk"})
COSHH_ASSESSMENT_TYPES = frozenset({"coshh"})


def _assessment_type(row) -> str:
    return str(row.get("assessment_type") or row.get("type") or "general").strip().lower()


def _assessments_table(ctx: ReportContext, rows) -> Markup:
    overdue = [r for r in rows if risk_assessment_overdue(r, ctx.today)]
    parts = []
    if overdue:
        parts.append(callout(
            CalloutSeverity.WARNING,
            "Risk assessments overdue for review",
            items=[r.get("title") or "Untitled assessment" for r in overdue],
        ))
    parts.append(data_table(rows, [
        Column("title", "Assessment"),
        Column(lambda r: humanize(_assessment_type(r)), "Type"),
        Column("assessed_by_name", "Assessed by"),
        Column(lambda r: r.get("review_date") or r.get("next_review_date"), "Review due", ColumnFormat.DATE),
        Column(lambda r: "overdue" if risk_assessment_overdue(r, ctx.today) else "current", "Status",
               ColumnFormat.BADGE, {"current": Tone.GOOD, "overdue": Tone.BAD}),
    ], empty_message="No risk assessments on file"))
    return join(*parts)


def _training_line(ctx: ReportContext, category_key: str) -> Markup:
    counts = ctx.training.summary().get(category_key)
    if not counts:
        return Markup("")
    total = sum(counts.values())
    trained = counts[TrainingStatus.COMPLIANT] + counts[TrainingStatus.EXPIRING_SOON]
    return Markup('<p>{} of {} staff hold current training in this area.</p>').format(trained, total)


def build_opening_closing(ctx: ReportContext) -> Markup:
    rows = ctx.rows(SourceKind.OPENING_CLOSING_CHECKLISTS)
    if not rows:
        return empty_state()
    missed = [r for r in rows if checklist_missed(r)]
    done = len(rows) - len(missed)
    rate = percent(done, len(rows))
    parts = [stat_grid([
        StatCard("Checklists due", len(rows)),
        StatCard("Completed", done),
        StatCard("Completion rate", format_percent(rate), completion_rate_tone(rate)),
    ], columns=3)]
    if missed:
        parts.append(callout(
            CalloutSeverity.WARNING,
            f"{len(missed)} opening/closing check(s) missed or incomplete",
            items=[f"{r.get('date')} {humanize(r.get('checklist_type'))}" for r in missed],
        ))
    parts.append(data_table(rows, [
        Column("date", "Date", ColumnFormat.DATE),
        Column(lambda r: humanize(r.get("checklist_type")), "Checklist"),
        Column("status", "Status", ColumnFormat.BADGE, TASK_STATUS_TONES),
        Column("completed_by_name", "Completed by"),
        Column("completed_at", "Signed off", ColumnFormat.DATETIME),
    ]))
    return join(*parts)


def build_health_safety(ctx: ReportContext) -> Markup:
    assessments = [
        r for r in ctx.rows(SourceKind.RISK_ASSESSMENTS)
        if _assessment_type(r) not in FIRE_ASSESSMENT_TYPES | COSHH_ASSESSMENT_TYPES
    ]
    checks = rows_with_category(ctx.rows(SourceKind.TASK_COMPLETIONS), "health_safety", "health_and_safety")
    if not assessments and not checks:
        return empty_state()
    counts = task_counts(checks)
    return join(
        subheading("Risk assessments"),
        _assessments_table(ctx, assessments),
        subheading("Health & safety checks"),
        Markup("<p>{} of {} scheduled checks completed.</p>").format(counts.completed, counts.total)
        if counts.total else empty_state("No health & safety checks scheduled in this period"),
        _training_line(ctx, "health_safety"),
    )


def build_fire_safety(ctx: ReportContext) -> Markup:
    assessments = [
        r for r in ctx.rows(SourceKind.RISK_ASSESSMENTS) if _assessment_type(r) in FIRE_ASSESSMENT_TYPES
    ]
    checks = rows_with_category(ctx.rows(SourceKind.TASK_COMPLETIONS), "fire", "fire_safety")
    if not assessments and not checks:
        return empty_state()
    parts = [subheading("Fire risk assessment"), _assessments_table(ctx, assessments)]
    parts += [
        subheading("Fire safety checks"),
        data_table(checks, [
            Column(lambda r: r.get("completed_at") or r.get("due_date"), "Date", ColumnFormat.DATETIME),
            Column("template_name", "Check"),
            Column("status", "Status", ColumnFormat.BADGE, TASK_STATUS_TONES),
            Column("completed_by_name", "Completed by"),
        ], empty_message="No fire safety checks recorded in this period"),
        _training_line(ctx, "fire_safety"),
    ]
    return join(*parts)


def build_coshh(ctx: ReportContext) -> Markup:
    sheets = ctx.rows(SourceKind.CHEMICAL_SHEETS)
    assessments = [
        r for r in ctx.rows(SourceKind.RISK_ASSESSMENTS) if _assessment_type(r) in COSHH_ASSESSMENT_TYPES
    ]
    if not sheets and not assessments:
        return empty_state()
    missing = [s for s in sheets if chemical_missing_sds(s)]
    parts = [stat_grid([
        StatCard("Chemicals on file", len(sheets)),
        StatCard("Missing safety data sheet", len(missing), Tone.BAD if missing else Tone.GOOD),
        StatCard("COSHH assessments", len(assessments)),
    ], columns=3)]
    if missing:
        parts.append(callout(
            CalloutSeverity.WARNING,
            "Chemicals without a safety data sheet",
            items=[s.get("product_name") or "Unnamed product" for s in missing],
        ))
    parts.append(data_table(sheets, [
        Column("product_name", "Product"),
        Column("manufacturer", "Manufacturer"),
        Column(lambda s: s.get("hazard_type") or s.get("hazard_classification"), "Hazard"),
        Column("storage_location", "Storage"),
        Column(lambda s: "missing" if chemical_missing_sds(s) else "on_file", "SDS", ColumnFormat.BADGE,
               {"on_file": Tone.GOOD, "missing": Tone.BAD}),
    ], empty_message="No chemical safety data sheets on file"))
    if assessments:
        parts += [subheading("COSHH assessments"), _assessments_table(ctx, assessments)]
    return join(*parts)
