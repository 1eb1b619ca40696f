"""
EHO Pack Engine

Data stages of the report pipeline, leaves first:

- context_resolver: site identity and parent organization
- gatherer: concurrent fan-out over every data kind
- temperature: reconciles log-table and task-payload readings
- training: representative status per employee per category
- classify: expiry, attention and rate-banding judgments
"""
from __future__ import annotations

from .context_resolver import resolve_site_context
from .gatherer import QUERY_SPECS, QuerySpec, gather_report_data
from .temperature import reconcile_temperatures, summarize_temperatures
from .training import load_training_categories, resolve_training_matrix
from .classify import classify_document_expiry, incident_needs_attention

__all__ = [
    "resolve_site_context",
    "QUERY_SPECS",
    "QuerySpec",
    "gather_report_data",
    "reconcile_temperatures",
    "summarize_temperatures",
    "load_training_categories",
    "resolve_training_matrix",
    "classify_document_expiry",
    "incident_needs_attention",
]
