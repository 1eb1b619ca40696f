"""Helpers shared by several section builders."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator

from ...models import Tone

COMPLETED_STATUSES = frozenset({"completed", "complete", "done", "passed"})
MISSED_STATUSES = frozenset({"missed", "overdue", "skipped", "failed"})

TASK_STATUS_TONES = {
    "completed": Tone.GOOD,
    "complete": Tone.GOOD,
    "missed": Tone.BAD,
    "overdue": Tone.BAD,
    "skipped": Tone.WARN,
    "pending": Tone.INFO,
}

SEVERITY_TONES = {
    "critical": Tone.BAD,
    "major": Tone.BAD,
    "moderate": Tone.WARN,
    "minor": Tone.INFO,
    "near_miss": Tone.NEUTRAL,
}

RESULT_TONES = {
    "pass": Tone.GOOD,
    "passed": Tone.GOOD,
    "accepted": Tone.GOOD,
    "fail": Tone.BAD,
    "failed": Tone.BAD,
    "rejected": Tone.BAD,
    "partially_rejected": Tone.WARN,
    "overdue": Tone.WARN,
}


def status_of(row: dict[str, Any]) -> str:
    return str(row.get("status") or "").strip().lower()


@dataclass
class TaskCounts:
    total: int = 0
    completed: int = 0
    missed: int = 0
    by_category: dict[str, Counter] = field(default_factory=dict)


def task_counts(rows: Iterable[dict[str, Any]]) -> TaskCounts:
    """Completed/missed counts overall and per template category."""
    counts = TaskCounts()
    for row in rows:
        status = status_of(row) or ("completed" if row.get("completed_at") else "")
        category = str(row.get("template_category") or "other")
        bucket = counts.by_category.setdefault(category, Counter())
        counts.total += 1
        bucket["total"] += 1
        if status in COMPLETED_STATUSES:
            counts.completed += 1
            bucket["completed"] += 1
        elif status in MISSED_STATUSES:
            counts.missed += 1
            bucket["missed"] += 1
    return counts


def rows_with_category(rows: Iterable[dict[str, Any]], *categories: str) -> list[dict[str, Any]]:
    wanted = {c.lower() for c in categories}
    return [r for r in rows if str(r.get("template_category") or "").lower() in wanted]


def _urls(items: Iterable[Any]) -> Iterator[str]:
    for item in items or []:
        url = item.get("url") if isinstance(item, dict) else item
        if isinstance(url, str) and url.startswith(("https://", "http://")):
            yield url


def attachment_urls(row: dict[str, Any]) -> Iterator[str]:
    """Already-resolved attachment URLs on a row; anything else is ignored."""
    for key in ("photos", "attachments", "attachment_urls"):
        yield from _urls(row.get(key))
    data = row.get("completion_data")
    if isinstance(data, dict):
        yield from _urls(data.get("photos"))
