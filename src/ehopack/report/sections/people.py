"""Sections 6-7: staff training matrix, incidents and accidents."""
from __future__ import annotations

from markupsafe import Markup

from ...engine.classify import (
    ATTENTION_SEVERITIES,
    as_bool,
    completion_rate_tone,
    incident_needs_attention,
)
from ...models import CalloutSeverity, ColumnFormat, SourceKind, Tone, TrainingStatus
from ..context import ReportContext
from ..primitives import (
    Column,
    StatCard,
    callout,
    data_table,
    empty_state,
    format_date,
    format_percent,
    humanize,
    join,
    stat_grid,
    subheading,
)
from .common import SEVERITY_TONES

NOT_RECORDED = "not_recorded"

TRAINING_TONES = {
    TrainingStatus.COMPLIANT.value: Tone.GOOD,
    TrainingStatus.EXPIRING_SOON.value: Tone.WARN,
    TrainingStatus.IN_PROGRESS.value: Tone.INFO,
    TrainingStatus.EXPIRED.value: Tone.BAD,
    TrainingStatus.REQUIRED.value: Tone.BAD,
    TrainingStatus.NOT_STARTED.value: Tone.WARN,
    TrainingStatus.OPTIONAL.value: Tone.NEUTRAL,
    NOT_RECORDED: Tone.NEUTRAL,
}


def build_training(ctx: ReportContext) -> Markup:
    matrix = ctx.training
    if not matrix.employees:
        return empty_state("No staff or training records found")

    labels = {c.key: c.label for c in matrix.categories}
    expiring = [
        e for e in matrix.cells.values() if e.status is TrainingStatus.EXPIRING_SOON
    ]
    gaps = [e for e in matrix.gaps() if e.recorded]
    unrecorded = sum(1 for e in matrix.cells.values() if not e.recorded)

    parts = [stat_grid([
        StatCard("Staff", len(matrix.employees)),
        StatCard("Compliant", format_percent(matrix.compliance_rate),
                 completion_rate_tone(matrix.compliance_rate)),
        StatCard("Expiring soon", len(expiring), Tone.WARN if expiring else Tone.NEUTRAL),
        StatCard("Not recorded", unrecorded),
    ])]
    if gaps:
        parts.append(callout(
            CalloutSeverity.DANGER,
            "Training gaps",
            items=[f"{e.employee_name}: {labels[e.category]} ({humanize(e.status.value)})" for e in gaps],
        ))
    if expiring:
        parts.append(callout(
            CalloutSeverity.WARNING,
            "Certificates expiring soon",
            items=[
                f"{e.employee_name}: {labels[e.category]} expires {format_date(e.expiry_date)}"
                for e in expiring
            ],
        ))

    rows = []
    for employee in matrix.employees:
        row = {"employee": employee.name, "position": employee.position}
        for category in matrix.categories:
            entry = matrix.entry(employee.id, category.key)
            row[category.key] = entry.status.value if entry.recorded else NOT_RECORDED
        rows.append(row)
    columns = [Column("employee", "Employee"), Column("position", "Role")]
    columns += [
        Column(c.key, c.label, ColumnFormat.BADGE, TRAINING_TONES) for c in matrix.categories
    ]
    parts.append(data_table(rows, columns, max_rows=0))
    return join(*parts)


def build_incidents(ctx: ReportContext) -> Markup:
    rows = ctx.rows(SourceKind.INCIDENTS)
    if not rows:
        return empty_state("No incidents recorded in this period")

    attention = [r for r in rows if incident_needs_attention(r)]
    riddor = [r for r in rows if as_bool(r.get("riddor_reportable"))]
    parts = [stat_grid([
        StatCard("Incidents", len(rows)),
        StatCard("Need attention", len(attention), Tone.BAD if attention else Tone.GOOD),
        StatCard("RIDDOR reportable", len(riddor), Tone.WARN if riddor else Tone.NEUTRAL),
    ], columns=3)]

    if attention:
        parts.append(callout(
            CalloutSeverity.DANGER,
            "Incidents requiring attention",
            items=[_attention_line(r) for r in attention],
        ))

    parts += [
        subheading("Incident log"),
        data_table(rows, [
            Column("occurred_at", "Date", ColumnFormat.DATETIME),
            Column(lambda r: r.get("title") or humanize(r.get("incident_type")), "Incident"),
            Column("severity", "Severity", ColumnFormat.BADGE, SEVERITY_TONES),
            Column("status", "Status", ColumnFormat.BADGE, {"closed": Tone.GOOD, "open": Tone.WARN}),
            Column(_riddor_label, "RIDDOR"),
            Column("actions_taken", "Actions taken"),
        ]),
    ]
    return join(*parts)


def _attention_line(row) -> str:
    title = row.get("title") or humanize(row.get("incident_type"))
    reasons = []
    if str(row.get("severity") or "").lower() in ATTENTION_SEVERITIES:
        reasons.append(f"{row['severity']} severity")
    if as_bool(row.get("riddor_reportable")) and not as_bool(row.get("riddor_reported")):
        reasons.append("RIDDOR report outstanding")
    return f"{format_date(row.get('occurred_at'))} {title}: {', '.join(reasons)}"


def _riddor_label(row) -> str:
    if not as_bool(row.get("riddor_reportable")):
        return "No"
    return "Reported" if as_bool(row.get("riddor_reported")) else "Not yet reported"
