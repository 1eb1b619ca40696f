"""Sections 2-5: food safety management, temperature, cleaning, pest control."""
from __future__ import annotations

from markupsafe import Markup

from ...engine.classify import (
    as_bool,
    completion_rate_tone,
    declaration_unfit,
    percent,
    pest_activity_found,
)
from ...models import CalloutSeverity, ColumnFormat, SourceKind, Tone
from ..context import ReportContext
from ..primitives import (
    MISSING,
    Column,
    StatCard,
    callout,
    data_table,
    empty_state,
    format_date,
    format_datetime,
    format_percent,
    format_temperature,
    humanize,
    join,
    stat_grid,
    subheading,
)
from .common import MISSED_STATUSES, TASK_STATUS_TONES, status_of, task_counts


def build_food_safety(ctx: ReportContext) -> Markup:
    completions = ctx.rows(SourceKind.TASK_COMPLETIONS)
    counts = task_counts(completions)
    rate = percent(counts.completed, counts.total)

    by_category = [
        {
            "category": humanize(category),
            "total": bucket["total"],
            "completed": bucket["completed"],
            "missed": bucket["missed"],
            "rate": percent(bucket["completed"], bucket["total"]),
        }
        for category, bucket in sorted(counts.by_category.items())
    ]
    parts = [
        stat_grid([
            StatCard("Scheduled tasks", counts.total),
            StatCard("Completed", counts.completed, Tone.GOOD if counts.completed else Tone.NEUTRAL),
            StatCard("Missed", counts.missed, Tone.BAD if counts.missed else Tone.NEUTRAL),
            StatCard("Completion rate", format_percent(rate), completion_rate_tone(rate)),
        ]),
        subheading("Task completion by category"),
        data_table(by_category, [
            Column("category", "Category"),
            Column("total", "Tasks"),
            Column("completed", "Completed"),
            Column("missed", "Missed"),
            Column("rate", "Completion", ColumnFormat.PERCENT),
        ]),
    ]

    if ctx.request.include_missed:
        missed = [r for r in completions if status_of(r) in MISSED_STATUSES]
        parts += [
            subheading("Missed tasks"),
            data_table(missed, [
                Column(lambda r: r.get("template_name") or r.get("task_name"), "Task"),
                Column("template_category", "Category"),
                Column("due_date", "Due", ColumnFormat.DATE),
                Column("status", "Status", ColumnFormat.BADGE, TASK_STATUS_TONES),
            ], empty_message="No missed tasks in this period"),
        ]

    parts += [subheading("Allergen information"), _allergens(ctx)]
    parts += [subheading("Staff health declarations"), _health_declarations(ctx)]
    return join(*parts)


def _allergens(ctx: ReportContext) -> Markup:
    rows = ctx.rows(SourceKind.ALLERGEN_INFORMATION)
    return data_table(rows, [
        Column("allergen_name", "Allergen"),
        Column(lambda r: ", ".join(map(str, r.get("present_in_items") or [])) or None, "Present in"),
        Column("procedures", "Controls"),
        Column("last_updated", "Last reviewed", ColumnFormat.DATE),
    ], empty_message="No allergen information recorded")


def _health_declarations(ctx: ReportContext) -> Markup:
    rows = ctx.rows(SourceKind.STAFF_HEALTH_DECLARATIONS)
    unfit = [r for r in rows if declaration_unfit(r)]
    parts = []
    if unfit:
        parts.append(callout(
            CalloutSeverity.WARNING,
            "Staff declared unfit for work",
            items=[
                f"{r.get('staff_name') or 'Unknown'}: {r.get('symptoms') or humanize(r.get('health_status'))}"
                for r in unfit
            ],
        ))
    parts.append(data_table(rows, [
        Column(lambda r: r.get("declared_at") or r.get("declaration_date"), "Date", ColumnFormat.DATE),
        Column("staff_name", "Staff member"),
        Column("health_status", "Status", ColumnFormat.BADGE, {"fit": Tone.GOOD, "unwell": Tone.BAD}),
        Column(_fit_for_work, "Fit for work"),
        Column("symptoms", "Symptoms"),
    ]))
    return join(*parts)


def _fit_for_work(row) -> str:
    value = row.get("fit_for_work")
    if value is None or value == "":
        return MISSING
    return "Yes" if as_bool(value) else "No"


def build_temperature(ctx: ReportContext) -> Markup:
    summary = ctx.temperature
    if not summary.total:
        return empty_state()

    parts = [stat_grid([
        StatCard("Readings", summary.total),
        StatCard("Breaches", summary.breach_count, Tone.BAD if summary.breach_count else Tone.GOOD),
        StatCard("Assets monitored", len(summary.by_asset)),
        StatCard("Within range", format_percent(summary.compliance_rate),
                 completion_rate_tone(summary.compliance_rate)),
    ])]

    if summary.breaches:
        parts.append(callout(
            CalloutSeverity.DANGER,
            "Temperature breaches recorded",
            items=[
                f"{r.asset_name}: {format_temperature(r.reading, r.unit)} at {format_datetime(r.recorded_at)}"
                for r in summary.breaches
            ],
        ))
    else:
        parts.append(callout(CalloutSeverity.SUCCESS, "All readings within range"))

    per_asset = [
        {
            "asset": s.asset_name,
            "count": s.count,
            "min": s.min_reading,
            "max": s.max_reading,
            "breaches": s.breaches,
            "last": s.last_reading.recorded_at if s.last_reading else None,
            "unit": s.last_reading.unit if s.last_reading else None,
        }
        for s in summary.by_asset
    ]
    parts += [
        subheading("By asset"),
        data_table(per_asset, [
            Column("asset", "Asset"),
            Column("count", "Readings"),
            Column("min", "Lowest", ColumnFormat.TEMPERATURE),
            Column("max", "Highest", ColumnFormat.TEMPERATURE),
            Column("breaches", "Breaches"),
            Column("last", "Last reading", ColumnFormat.DATETIME),
        ], max_rows=0),
        subheading("Readings"),
        data_table([_reading_row(r) for r in ctx.readings], [
            Column("recorded_at", "Recorded", ColumnFormat.DATETIME),
            Column("asset", "Asset"),
            Column("reading", "Reading", ColumnFormat.TEMPERATURE),
            Column("status", "Status", ColumnFormat.BADGE, {"ok": Tone.GOOD, "breach": Tone.BAD}),
            Column("recorded_by", "Recorded by"),
        ]),
    ]
    if summary.from_tasks:
        parts.append(Markup('<p class="muted">{} reading(s) were taken from task records.</p>').format(
            summary.from_tasks,
        ))
    return join(*parts)


def _reading_row(reading) -> dict:
    return {
        "recorded_at": reading.recorded_at,
        "asset": reading.asset_name,
        "reading": reading.reading,
        "unit": reading.unit,
        "status": reading.status.value,
        "recorded_by": reading.recorded_by,
    }


def build_cleaning(ctx: ReportContext) -> Markup:
    rows = ctx.rows(SourceKind.CLEANING_RECORDS)
    if not rows:
        return empty_state()
    counts = task_counts(rows)
    rate = percent(counts.completed, counts.total)
    parts = [stat_grid([
        StatCard("Cleaning tasks", counts.total),
        StatCard("Completed", counts.completed),
        StatCard("Completion rate", format_percent(rate), completion_rate_tone(rate)),
    ], columns=3)]
    if counts.missed:
        parts.append(callout(
            CalloutSeverity.WARNING,
            f"{counts.missed} cleaning task(s) not completed",
            "Check the cleaning schedule for the affected areas.",
        ))
    parts.append(data_table(rows, [
        Column(lambda r: r.get("completed_at") or r.get("due_date"), "Date", ColumnFormat.DATETIME),
        Column(lambda r: r.get("area") or r.get("task_name"), "Area / task"),
        Column("status", "Status", ColumnFormat.BADGE, TASK_STATUS_TONES),
        Column("completed_by_name", "Completed by"),
        Column("verified_by_name", "Verified by"),
    ]))
    return join(*parts)


def build_pest_control(ctx: ReportContext) -> Markup:
    rows = ctx.rows(SourceKind.PEST_CONTROL_RECORDS)
    if not rows:
        return empty_state()
    sightings = [r for r in rows if pest_activity_found(r)]
    parts = [stat_grid([
        StatCard("Visits", len(rows)),
        StatCard("Activity found", len(sightings), Tone.BAD if sightings else Tone.GOOD),
        StatCard("Next visit", _next_visit(rows)),
    ], columns=3)]
    if sightings:
        parts.append(callout(
            CalloutSeverity.DANGER,
            "Pest activity recorded",
            items=[
                f"{format_date(r.get('visit_date'))}: {r.get('findings') or 'activity found'}"
                for r in sightings
            ],
        ))
    parts.append(data_table(rows, [
        Column("visit_date", "Visit", ColumnFormat.DATE),
        Column("contractor_name", "Contractor"),
        Column("visit_type", "Type"),
        Column(lambda r: "activity" if pest_activity_found(r) else "clear", "Outcome", ColumnFormat.BADGE,
               {"clear": Tone.GOOD, "activity": Tone.BAD}),
        Column("findings", "Findings"),
        Column("recommendations", "Recommendations"),
    ]))
    return join(*parts)


def _next_visit(rows) -> str:
    dates = sorted(str(r["next_visit_date"]) for r in rows if r.get("next_visit_date"))
    if not dates:
        return MISSING
    return format_date(dates[-1])
