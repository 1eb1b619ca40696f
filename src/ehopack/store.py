"""QueryClient: the store collaborator the engine reads from.

The engine only knows "named query in, rows or error out".  Any backend
(Postgres RPCs, a REST gateway, a warehouse) is wired in by implementing
``QueryClient.fetch``.  ``InMemoryQueryClient`` serves fixture datasets to
the demo service and the test-suite.
"""

import asyncio
import json
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, Union

import yaml

from .exceptions import ConfigurationError, QueryError, StoreUnavailableError

# Row fields tried, in order, when filtering a row-set by report window
_DATE_FIELDS = (
    "recorded_at",
    "completed_at",
    "occurred_at",
    "visit_date",
    "delivered_at",
    "performed_at",
    "declared_at",
    "due_date",
    "date",
)

# Params matched by equality against row fields of the same name
_KEY_PARAMS = ("id", "site_id", "organization_id")


class QueryClient(Protocol):
    """Anything that can run a named read query."""

    async def fetch(self, name: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        """Return the rows for ``name``.

        Raises ``QueryError`` for an explicit query error and
        ``StoreUnavailableError`` when the store cannot be reached.
        """
        ...


DatasetValue = Union[list, Exception, Callable[[dict], list]]


class InMemoryQueryClient:
    """Serve named queries from an in-memory dataset.

    Each dataset entry is a list of rows, an exception instance (raised on
    fetch), or a callable taking the params and returning rows.  Unknown
    query names return no rows.
    """

    def __init__(
        self,
        datasets: Optional[dict[str, DatasetValue]] = None,
        *,
        delays: Optional[dict[str, float]] = None,
        available: bool = True,
    ):
        self.datasets: dict[str, DatasetValue] = dict(datasets or {})
        self.delays = dict(delays or {})
        self.available = available
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def fetch(self, name: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        self.calls.append((name, dict(params)))
        if not self.available:
            raise StoreUnavailableError(message="Store connection refused", details={"query": name})

        delay = self.delays.get(name)
        if delay:
            await asyncio.sleep(delay)

        value = self.datasets.get(name, [])
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return list(value(params) or [])
        return [row for row in value if _matches(row, params)]

    @property
    def query_names(self) -> list[str]:
        return [name for name, _ in self.calls]


# ── Filtering ────────────────────────────────────────────────────────────────

def _matches(row: dict[str, Any], params: dict[str, Any]) -> bool:
    for key in _KEY_PARAMS:
        if key in params and key in row and str(row[key]) != str(params[key]):
            return False

    categories = params.get("categories")
    if categories and row.get("template_category") not in categories:
        return False

    start, end = params.get("start_date"), params.get("end_date")
    if start and end:
        day = _row_date(row)
        if day is not None and not (start <= day.isoformat() <= end):
            return False
    return True


def _row_date(row: dict[str, Any]) -> Optional[date]:
    for field_name in _DATE_FIELDS:
        value = row.get(field_name)
        if not value:
            continue
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value).strip()[:10])
        except ValueError:
            continue
    return None


# ── Dataset files ────────────────────────────────────────────────────────────

def load_dataset_file(path: Path) -> dict[str, list]:
    """Load a ``{query_name: [rows]}`` mapping from a JSON or YAML file."""
    if not path.exists():
        raise ConfigurationError(message=f"Dataset file not found: {path}")
    with open(path, encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ConfigurationError(
            message=f"Dataset file must map query names to row lists: {path}",
        )
    return {str(name): list(rows or []) for name, rows in data.items()}


def query_error(name: str, message: str) -> QueryError:
    """Convenience for datasets that simulate an explicit query error."""
    return QueryError(message=message, query=name, details={"query": name})
