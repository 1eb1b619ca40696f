"""Sections 12-14 and appendix A: equipment, documentation, additional records, evidence."""
from __future__ import annotations

from markupsafe import Markup

from ...engine.classify import (
    classify_document_expiry,
    delivery_rejected,
    pat_needs_attention,
    pat_result,
)
from ...models import CalloutSeverity, ColumnFormat, DocumentStatus, SourceKind, Tone
from ..context import ReportContext
from ..primitives import (
    MISSING,
    Column,
    StatCard,
    callout,
    data_table,
    empty_state,
    format_date,
    format_temperature,
    join,
    stat_grid,
    subheading,
)
from .common import RESULT_TONES, attachment_urls

DOCUMENT_TONES = {
    DocumentStatus.VALID.value: Tone.GOOD,
    DocumentStatus.EXPIRING.value: Tone.WARN,
    DocumentStatus.EXPIRED.value: Tone.BAD,
    DocumentStatus.NO_EXPIRY.value: Tone.NEUTRAL,
}

# Cap on images in the evidence appendix
MAX_EVIDENCE_IMAGES = 60


def _temperature_range(row) -> str:
    low, high = row.get("min_temp"), row.get("max_temp")
    if low is None and high is None:
        return MISSING
    return f"{format_temperature(low)} to {format_temperature(high)}"


def build_equipment(ctx: ReportContext) -> Markup:
    assets = ctx.rows(SourceKind.ASSETS)
    appliances = ctx.rows(SourceKind.PAT_APPLIANCES)
    if not assets and not appliances:
        return empty_state()

    flagged = [(a, pat_needs_attention(a, ctx.today)) for a in appliances]
    flagged = [(a, reason) for a, reason in flagged if reason]
    parts = [stat_grid([
        StatCard("Assets", len(assets)),
        StatCard("PAT appliances", len(appliances)),
        StatCard("PAT failed or overdue", len(flagged), Tone.BAD if flagged else Tone.GOOD),
    ], columns=3)]
    if flagged:
        parts.append(callout(
            CalloutSeverity.WARNING,
            "Portable appliances needing action",
            items=[f"{a.get('name') or a.get('appliance_name') or 'Appliance'}: {reason}" for a, reason in flagged],
        ))
    parts += [
        subheading("Assets"),
        data_table(assets, [
            Column("name", "Asset"),
            Column("category", "Category"),
            Column("serial_number", "Serial"),
            Column(_temperature_range, "Safe range"),
            Column("next_service_date", "Next service", ColumnFormat.DATE),
        ], empty_message="No assets registered for this site"),
        subheading("Portable appliance testing"),
        data_table(appliances, [
            Column(lambda a: a.get("name") or a.get("appliance_name"), "Appliance"),
            Column("location", "Location"),
            Column(lambda a: a.get("test_date") or a.get("last_test_date"), "Last test", ColumnFormat.DATE),
            Column("next_test_date", "Next test", ColumnFormat.DATE),
            Column(lambda a: pat_result(a, ctx.today), "Result", ColumnFormat.BADGE,
                   RESULT_TONES),
        ], empty_message="No portable appliances recorded"),
    ]
    return join(*parts)


def build_documentation(ctx: ReportContext) -> Markup:
    documents = ctx.rows(SourceKind.DOCUMENTS)
    if not documents:
        return empty_state()

    classified = [
        dict(d, expiry_status=classify_document_expiry(d.get("expiry_date"), ctx.today).value)
        for d in documents
    ]
    expired = [d for d in classified if d["expiry_status"] == DocumentStatus.EXPIRED.value]
    expiring = [d for d in classified if d["expiry_status"] == DocumentStatus.EXPIRING.value]
    parts = [stat_grid([
        StatCard("Documents", len(classified)),
        StatCard("Expired", len(expired), Tone.BAD if expired else Tone.GOOD),
        StatCard("Expiring soon", len(expiring), Tone.WARN if expiring else Tone.NEUTRAL),
    ], columns=3)]
    if expired:
        parts.append(callout(
            CalloutSeverity.DANGER,
            "Expired documents",
            items=[f"{_title(d)} expired {format_date(d.get('expiry_date'))}" for d in expired],
        ))
    if expiring:
        parts.append(callout(
            CalloutSeverity.WARNING,
            "Documents expiring soon",
            items=[f"{_title(d)} expires {format_date(d.get('expiry_date'))}" for d in expiring],
        ))
    parts.append(data_table(classified, [
        Column(_title, "Document"),
        Column(lambda d: d.get("category") or d.get("document_type"), "Type"),
        Column("expiry_date", "Expires", ColumnFormat.DATE),
        Column("expiry_status", "Status", ColumnFormat.BADGE, DOCUMENT_TONES),
    ]))
    return join(*parts)


def _title(row) -> str:
    return row.get("title") or row.get("name") or "Untitled document"


def build_additional_records(ctx: ReportContext) -> Markup:
    deliveries = ctx.rows(SourceKind.SUPPLIER_DELIVERIES)
    maintenance = ctx.rows(SourceKind.MAINTENANCE_LOGS)
    if not deliveries and not maintenance:
        return empty_state()

    parts = [subheading("Supplier deliveries")]
    rejected = [d for d in deliveries if delivery_rejected(d)]
    if rejected:
        parts.append(callout(
            CalloutSeverity.WARNING,
            "Deliveries rejected",
            items=[
                f"{format_date(d.get('delivered_at') or d.get('delivery_date'))} {d.get('supplier_name') or 'Supplier'}"
                f": {d.get('rejection_reason') or 'rejected on receipt'}"
                for d in rejected
            ],
        ))
    parts += [
        data_table(deliveries, [
            Column(lambda d: d.get("delivered_at") or d.get("delivery_date"), "Date", ColumnFormat.DATE),
            Column("supplier_name", "Supplier"),
            Column("items_received", "Items"),
            Column("temperature_check", "Temperature", ColumnFormat.TEMPERATURE),
            Column("status", "Outcome", ColumnFormat.BADGE, RESULT_TONES),
            Column("received_by_name", "Received by"),
        ], empty_message="No supplier deliveries recorded in this period"),
        subheading("Maintenance"),
        data_table(maintenance, [
            Column(lambda m: m.get("performed_at") or m.get("completed_at"), "Date", ColumnFormat.DATE),
            Column("asset_name", "Asset"),
            Column("maintenance_type", "Type"),
            Column("description", "Work carried out"),
            Column("completed_by_name", "By"),
            Column("next_due_date", "Next due", ColumnFormat.DATE),
        ], empty_message="No maintenance recorded in this period"),
    ]
    return join(*parts)


def build_evidence_gallery(ctx: ReportContext) -> Markup:
    figures = []
    sources = (
        (SourceKind.TASK_COMPLETIONS, lambda r: r.get("template_name") or r.get("task_name") or "Task"),
        (SourceKind.INCIDENTS, lambda r: r.get("title") or "Incident"),
        (SourceKind.CLEANING_RECORDS, lambda r: r.get("area") or "Cleaning"),
        (SourceKind.PEST_CONTROL_RECORDS, lambda r: r.get("contractor_name") or "Pest control visit"),
    )
    for kind, caption in sources:
        for row in ctx.rows(kind):
            for url in attachment_urls(row):
                figures.append((url, caption(row)))
    if not figures:
        return empty_state("No photographic evidence attached in this period")

    parts = [Markup('<div class="gallery">')]
    for url, caption in figures[:MAX_EVIDENCE_IMAGES]:
        parts.append(Markup(
            '<figure><img src="{}" alt="{}" loading="lazy"><figcaption>{}</figcaption></figure>'
        ).format(url, caption, caption))
    parts.append(Markup("</div>"))
    if len(figures) > MAX_EVIDENCE_IMAGES:
        parts.append(Markup('<p class="table-note">Showing {} of {} images</p>').format(
            MAX_EVIDENCE_IMAGES, len(figures),
        ))
    return join(*parts)
