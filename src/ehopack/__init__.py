"""
EHO Pack

Compliance report engine that compiles an Environmental Health Officer
readiness pack for one site and period: eighteen data sources gathered
concurrently, legacy temperature encodings reconciled, training and
document compliance judged, and everything rendered into one
self-contained HTML document.

Usage:
    from ehopack import InMemoryQueryClient, generate_report

    document = generate_report("site-1", "2024-01-01", "2024-01-31", client)
    html = document.html
"""
from __future__ import annotations

from .exceptions import (
    EhoPackError,
    InvalidRequestError,
    InvalidWindowError,
    QueryError,
    StoreUnavailableError,
)
from .models import Actor, ReportDocument, ReportRequest, ReportWindow
from .report.pipeline import compile_report, generate_report
from .store import InMemoryQueryClient, QueryClient

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "compile_report",
    "generate_report",
    "Actor",
    "ReportDocument",
    "ReportRequest",
    "ReportWindow",
    "QueryClient",
    "InMemoryQueryClient",
    "EhoPackError",
    "InvalidRequestError",
    "InvalidWindowError",
    "QueryError",
    "StoreUnavailableError",
]
