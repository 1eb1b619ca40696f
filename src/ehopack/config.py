"""
EHO Pack Configuration

Environment-driven settings, read once at import.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from .exceptions import ConfigurationError


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(
            message=f"{name} must be an integer, got {raw!r}",
            details={"variable": name},
        )
    if value <= 0:
        raise ConfigurationError(
            message=f"{name} must be positive, got {value}",
            details={"variable": name},
        )
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, str(default))
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(
            message=f"{name} must be a number, got {raw!r}",
            details={"variable": name},
        )
    if value <= 0:
        raise ConfigurationError(
            message=f"{name} must be positive, got {value}",
            details={"variable": name},
        )
    return value


def _path_env(name: str) -> Optional[Path]:
    raw = os.getenv(name)
    return Path(raw) if raw else None


# =============================================================================
# Settings
# =============================================================================

EHO_ENGINE_VERSION = os.getenv("EHO_ENGINE_VERSION", "0.1.0")
EHO_LOG_LEVEL = os.getenv("EHO_LOG_LEVEL", "INFO")
EHO_DOCS_ENABLED = os.getenv("EHO_DOCS_ENABLED", "true").lower() == "true"

# Aggregate timeout for the whole query fan-out, not per query
EHO_FANOUT_TIMEOUT_SECONDS = _float_env("EHO_FANOUT_TIMEOUT_SECONDS", 20.0)

# Documents expiring within this many days are flagged "expiring"
EHO_EXPIRY_WARNING_DAYS = _int_env("EHO_EXPIRY_WARNING_DAYS", 30)

# Default row cap for data tables
EHO_TABLE_ROW_CAP = _int_env("EHO_TABLE_ROW_CAP", 50)

EHO_DATASET_FILE = _path_env("EHO_DATASET_FILE")
EHO_TRAINING_CATEGORIES_FILE = _path_env("EHO_TRAINING_CATEGORIES_FILE")

PACKAGE_DATA_DIR = Path(__file__).parent / "data"
