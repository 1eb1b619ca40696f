"""Rendering primitives shared by every section builder.

Three building blocks, plus the display formatting they rely on:

- ``stat_grid``: a row of 3 or 4 labelled highlight cards
- ``data_table``: ordered columns with per-column format directives,
  a row cap and a "Showing N of M records" footnote
- ``callout``: a box flagging something that needs attention

All values are escaped with markupsafe; builders compose the returned
``Markup`` fragments without further escaping.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Union

from markupsafe import Markup, escape

from .. import config
from ..engine.classify import completion_rate_tone
from ..engine.temperature import parse_timestamp
from ..models import CalloutSeverity, ColumnFormat, Tone

NO_DATA_MESSAGE = "No data for this period"
MISSING = "-"

# ── Formatting ───────────────────────────────────────────────────────────────


def format_date(value: Any) -> str:
    """``DD Mon YYYY``; unparseable values are shown as given."""
    if value is None or value == "":
        return MISSING
    if isinstance(value, datetime):
        return value.strftime("%d %b %Y")
    if isinstance(value, date):
        return value.strftime("%d %b %Y")
    text = str(value)
    try:
        return date.fromisoformat(text[:10]).strftime("%d %b %Y")
    except ValueError:
        return text


def format_datetime(value: Any) -> str:
    if value is None or value == "":
        return MISSING
    if isinstance(value, datetime):
        return value.strftime("%d %b %Y %H:%M")
    parsed = parse_timestamp(value)
    if parsed is None:
        return format_date(value)
    return parsed.strftime("%d %b %Y %H:%M")


def format_temperature(value: Any, unit: str = "°C") -> str:
    try:
        return f"{float(value):.1f}{unit}"
    except (TypeError, ValueError):
        return MISSING


def format_percent(value: Optional[float]) -> str:
    if value is None:
        return MISSING
    return f"{value:.0f}%"


def humanize(value: Any) -> str:
    """``not_started`` -> ``Not started``."""
    text = str(value or "").replace("_", " ").strip()
    return text[:1].upper() + text[1:] if text else MISSING


# ── Stat grid ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class StatCard:
    label: str
    value: Any
    tone: Tone = Tone.NEUTRAL
    hint: Optional[str] = None


def stat_grid(cards: Sequence[StatCard], columns: int = 4) -> Markup:
    if columns not in (3, 4):
        raise ValueError(f"stat grid supports 3 or 4 columns, got {columns}")
    parts = [Markup('<div class="stat-grid cols-{}">').format(columns)]
    for card in cards:
        parts.append(Markup(
            '<div class="stat-card tone-{}"><div class="stat-value">{}</div>'
            '<div class="stat-label">{}</div>'
        ).format(card.tone.value, card.value, card.label))
        if card.hint:
            parts.append(Markup('<div class="stat-hint">{}</div>').format(card.hint))
        parts.append(Markup("</div>"))
    parts.append(Markup("</div>"))
    return Markup("").join(parts)


# ── Data table ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Column:
    """One table column.

    ``key`` is a row field name or a callable taking the row.  ``badges``
    maps lower-cased values to tones for the badge format.
    """
    key: Union[str, Callable[[dict], Any]]
    label: str
    format: ColumnFormat = ColumnFormat.PLAIN
    badges: Mapping[str, Tone] = field(default_factory=dict)

    def value(self, row: Mapping[str, Any]) -> Any:
        if callable(self.key):
            return self.key(row)
        return row.get(self.key)

    def render(self, row: Mapping[str, Any]) -> Markup:
        value = self.value(row)
        fmt = self.format
        if fmt is ColumnFormat.DATE:
            return escape(format_date(value))
        if fmt is ColumnFormat.DATETIME:
            return escape(format_datetime(value))
        if fmt is ColumnFormat.TEMPERATURE:
            return escape(format_temperature(value, row.get("unit") or "°C"))
        if fmt is ColumnFormat.PERCENT:
            try:
                rate = None if value is None else float(value)
            except (TypeError, ValueError):
                rate = None
            return Markup('<span class="pct tone-{}">{}</span>').format(
                completion_rate_tone(rate).value, format_percent(rate),
            )
        if fmt is ColumnFormat.BADGE:
            return badge(value, self.badges)
        if value is None or value == "":
            return escape(MISSING)
        return escape(value)


def badge(value: Any, tones: Mapping[str, Tone]) -> Markup:
    key = str(value or "").strip().lower()
    tone = tones.get(key, Tone.NEUTRAL)
    return Markup('<span class="badge tone-{}">{}</span>').format(tone.value, humanize(value))


def data_table(
    rows: Iterable[Mapping[str, Any]],
    columns: Sequence[Column],
    *,
    max_rows: Optional[int] = None,
    empty_message: str = NO_DATA_MESSAGE,
) -> Markup:
    rows = list(rows)
    if not rows:
        return empty_state(empty_message)
    cap = config.EHO_TABLE_ROW_CAP if max_rows is None else max_rows
    shown = rows[:cap] if cap else rows

    parts = [Markup('<table class="data-table"><thead><tr>')]
    parts.extend(Markup("<th>{}</th>").format(c.label) for c in columns)
    parts.append(Markup("</tr></thead><tbody>"))
    for row in shown:
        parts.append(Markup("<tr>"))
        parts.extend(Markup("<td>{}</td>").format(c.render(row)) for c in columns)
        parts.append(Markup("</tr>"))
    parts.append(Markup("</tbody></table>"))
    if len(shown) < len(rows):
        parts.append(Markup('<p class="table-note">Showing {} of {} records</p>').format(
            len(shown), len(rows),
        ))
    return Markup("").join(parts)


# ── Callouts and notices ─────────────────────────────────────────────────────


def callout(
    severity: CalloutSeverity,
    title: str,
    body: Optional[str] = None,
    items: Optional[Iterable[Any]] = None,
) -> Markup:
    parts = [Markup('<div class="callout callout-{}"><strong>{}</strong>').format(severity.value, title)]
    if body:
        parts.append(Markup("<p>{}</p>").format(body))
    items = list(items or [])
    if items:
        parts.append(Markup("<ul>"))
        parts.extend(Markup("<li>{}</li>").format(item) for item in items)
        parts.append(Markup("</ul>"))
    parts.append(Markup("</div>"))
    return Markup("").join(parts)


def empty_state(message: str = NO_DATA_MESSAGE) -> Markup:
    return Markup('<p class="empty-state">{}</p>').format(message)


def subheading(text: str) -> Markup:
    return Markup("<h3>{}</h3>").format(text)


def paragraph(text: str) -> Markup:
    return Markup("<p>{}</p>").format(text)


def join(*fragments: Any) -> Markup:
    """Concatenate fragments, escaping any plain strings."""
    return Markup("").join(escape(f) for f in fragments if f)
