"""
EHO Pack Temperature Reconciler

Merges the two generations of temperature capture into one collection:

- Source A: the canonical temperature log table (authoritative)
- Source B: readings embedded in task completion payloads, recorded before
  the log table existed and, during the migration window, alongside it

Source B payloads come in four historical shapes. Each shape is a tagged
variant with its own parser; all parsers feed the same normalized
TemperatureReading.

Deduplication: a source-B reading is dropped when a source-A reading has the
same fingerprint (asset name, value to 1 dp, minute).
"""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterator, Optional

from ..models import ReadingSource, ReadingStatus, TemperatureReading

logger = logging.getLogger(__name__)

DEFAULT_UNIT = "°C"

# Identifier values produced by old clients serializing objects badly
MALFORMED_ID_SENTINELS = frozenset({"[object object]", "undefined", "null", "none", "nan"})

# Alternate field names an identifier object may carry its id under
_ID_FIELDS = ("id", "asset_id", "assetId", "value", "uuid")

_BREACH_STATUSES = frozenset({"breach", "failed", "fail", "out_of_range", "critical"})

PREFIXED_KEY = "temp_"

# Fractional seconds of any length and "+HH" or "+HHMM" offsets
_FRACTION = re.compile(r"\.(\d+)")
_OFFSET = re.compile(r"(\d{2}:\d{2}(?::\d{2})?(?:\.\d+)?)([+-]\d{2}):?(\d{2})?$")


# =============================================================================
# Assets
# =============================================================================

@dataclass(frozen=True)
class AssetInfo:
    """Name and acceptable range of a monitored asset."""
    id: str
    name: str
    min_temp: Optional[float] = None
    max_temp: Optional[float] = None


def build_asset_index(asset_rows: list[dict[str, Any]]) -> dict[str, AssetInfo]:
    """Index site asset rows by id."""
    index: dict[str, AssetInfo] = {}
    for row in asset_rows:
        asset_id = resolve_asset_id(row.get("id"))
        if asset_id is None:
            continue
        index[asset_id] = AssetInfo(
            id=asset_id,
            name=str(row.get("name") or row.get("nickname") or asset_id),
            min_temp=_to_float(row.get("min_temp")),
            max_temp=_to_float(row.get("max_temp")),
        )
    return index


# =============================================================================
# Value Helpers
# =============================================================================

def resolve_asset_id(value: Any) -> Optional[str]:
    """
    Resolve an asset identifier that may be a bare string or a small object.

    Returns None for missing ids and for known malformed sentinels, which must
    never be propagated as if they were real identifiers.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, dict):
        for key in _ID_FIELDS:
            if key in value:
                resolved = resolve_asset_id(value[key])
                if resolved is not None:
                    return resolved
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        text = value.strip()
        if not text or text.casefold() in MALFORMED_ID_SENTINELS:
            return None
        return text
    return None


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(DEFAULT_UNIT, "").rstrip("C").strip()
        try:
            number = float(text)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def _out_of_range(value: float, low: Optional[float], high: Optional[float]) -> bool:
    if low is not None and value < low:
        return True
    if high is not None and value > high:
        return True
    return False


def _iso_text(value: Any) -> str:
    """Rewrite Postgres timestamp text into a form ``fromisoformat`` accepts on 3.10."""
    text = str(value).strip().replace("Z", "+00:00")
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    return _OFFSET.sub(lambda m: f"{m.group(1)}{m.group(2)}:{m.group(3) or '00'}", text)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp into an aware UTC datetime. None if unparseable."""
    if isinstance(value, datetime):
        parsed = value
    elif value:
        try:
            parsed = datetime.fromisoformat(_iso_text(value))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _status(raw_status: Any, value: float, low: Optional[float], high: Optional[float]) -> ReadingStatus:
    if _out_of_range(value, low, high):
        return ReadingStatus.BREACH
    if str(raw_status or "").strip().lower() in _BREACH_STATUSES:
        return ReadingStatus.BREACH
    return ReadingStatus.OK


# =============================================================================
# Source A: canonical log rows
# =============================================================================

def normalize_log_rows(
    rows: list[dict[str, Any]],
    assets: Optional[dict[str, AssetInfo]] = None,
) -> list[TemperatureReading]:
    """Normalize canonical temperature log rows. Unparseable rows are skipped."""
    assets = assets or {}
    readings: list[TemperatureReading] = []
    for row in rows:
        value = _to_float(row.get("reading", row.get("temperature")))
        recorded_at = parse_timestamp(row.get("recorded_at"))
        if value is None or recorded_at is None:
            logger.debug("Skipping unparseable temperature log row %s", row.get("id"))
            continue

        asset_id = resolve_asset_id(row.get("asset_id"))
        asset = assets.get(asset_id) if asset_id else None
        nested = row.get("asset") if isinstance(row.get("asset"), dict) else {}
        name = row.get("asset_name") or nested.get("name") or (asset.name if asset else None) or asset_id
        if not name:
            logger.debug("Skipping temperature log row %s with no asset", row.get("id"))
            continue

        low = _to_float(row.get("min_temp"))
        high = _to_float(row.get("max_temp"))
        if low is None and high is None and asset is not None:
            low, high = asset.min_temp, asset.max_temp

        readings.append(TemperatureReading(
            asset_name=str(name),
            reading=value,
            recorded_at=recorded_at,
            unit=row.get("unit") or DEFAULT_UNIT,
            status=_status(row.get("status"), value, low, high),
            recorded_by=row.get("recorded_by_name") or row.get("recorded_by"),
            source=ReadingSource.LOG,
            asset_id=asset_id,
        ))
    return readings


# =============================================================================
# Source B: task payload variants
# =============================================================================

class PayloadShape(str, Enum):
    """The four historical encodings of readings inside a task payload."""
    EQUIPMENT_LIST = "equipment_list"              # [{assetId, assetName, temperature, temp_min, temp_max}]
    READINGS_LIST = "temperatures"                 # [{assetId, temp, nickname}]
    PREFIXED_KEYS = "prefixed_keys"                # {"temp_<asset id>": value}
    SINGLE_READING = "single_reading"              # {"temperature": value}


# Item field aliases written by successive client versions, in lookup order
_ITEM_ID_FIELDS = {
    PayloadShape.EQUIPMENT_LIST: ("asset_id", "assetId", "id", "value"),
    PayloadShape.READINGS_LIST: ("assetId", "asset_id", "id", "value"),
}
_ITEM_VALUE_FIELDS = {
    PayloadShape.EQUIPMENT_LIST: ("temperature", "reading", "temp"),
    PayloadShape.READINGS_LIST: ("temp", "temperature", "reading"),
}
_ITEM_NAME_FIELDS = ("asset_name", "assetName", "nickname", "name", "label")
_ITEM_TIME_FIELDS = ("recorded_at", "time")


@dataclass(frozen=True)
class PayloadReading:
    """A reading as found in a payload, before asset resolution."""
    asset_id: Optional[str]
    asset_name: Optional[str]
    value: float
    unit: Optional[str] = None
    raw_status: Optional[str] = None
    recorded_at: Optional[datetime] = None
    min_temp: Optional[float] = None
    max_temp: Optional[float] = None


def detect_shapes(data: dict[str, Any]) -> list[PayloadShape]:
    """Classify a completion payload. A payload may carry several shapes."""
    shapes: list[PayloadShape] = []
    if isinstance(data.get("equipment_list"), list):
        shapes.append(PayloadShape.EQUIPMENT_LIST)
    if isinstance(data.get("temperatures"), list):
        shapes.append(PayloadShape.READINGS_LIST)
    if any(isinstance(k, str) and k.startswith(PREFIXED_KEY) for k in data):
        shapes.append(PayloadShape.PREFIXED_KEYS)
    if "temperature" in data:
        shapes.append(PayloadShape.SINGLE_READING)
    return shapes


def _first(item: dict[str, Any], fields: tuple[str, ...]) -> Any:
    for key in fields:
        value = item.get(key)
        if value is not None and value != "":
            return value
    return None


def _item_asset_id(item: dict[str, Any], fields: tuple[str, ...]) -> tuple[bool, Optional[str]]:
    """Return (id present, resolved id). The first alias that resolves wins."""
    raw_ids = [item[key] for key in fields if item.get(key) not in (None, "")]
    for raw_id in raw_ids:
        asset_id = resolve_asset_id(raw_id)
        if asset_id is not None:
            return True, asset_id
    return bool(raw_ids), None


def _parse_items(data: dict[str, Any], shape: PayloadShape) -> Iterator[PayloadReading]:
    for item in data.get(shape.value) or []:
        if not isinstance(item, dict):
            continue
        value = _to_float(_first(item, _ITEM_VALUE_FIELDS[shape]))
        if value is None:
            continue
        has_id, asset_id = _item_asset_id(item, _ITEM_ID_FIELDS[shape])
        if has_id and asset_id is None:
            logger.debug("Rejected malformed asset id in %s item %r", shape.value, item)
            continue
        name = _first(item, _ITEM_NAME_FIELDS)
        yield PayloadReading(
            asset_id=asset_id,
            asset_name=str(name) if name is not None else None,
            value=value,
            unit=item.get("unit"),
            raw_status=item.get("status") or item.get("result"),
            recorded_at=parse_timestamp(_first(item, _ITEM_TIME_FIELDS)),
            min_temp=_to_float(_first(item, ("temp_min", "min_temp"))),
            max_temp=_to_float(_first(item, ("temp_max", "max_temp"))),
        )


def _parse_equipment_list(data: dict[str, Any]) -> Iterator[PayloadReading]:
    return _parse_items(data, PayloadShape.EQUIPMENT_LIST)


def _parse_readings_list(data: dict[str, Any]) -> Iterator[PayloadReading]:
    return _parse_items(data, PayloadShape.READINGS_LIST)


def _parse_prefixed_keys(data: dict[str, Any]) -> Iterator[PayloadReading]:
    names = _equipment_names(data)
    for key, raw_value in data.items():
        if not (isinstance(key, str) and key.startswith(PREFIXED_KEY)):
            continue
        asset_id = resolve_asset_id(key[len(PREFIXED_KEY):])
        if asset_id is None:
            logger.debug("Rejected malformed asset id in key %r", key)
            continue
        value = _to_float(raw_value)
        if value is None:
            continue
        yield PayloadReading(asset_id=asset_id, asset_name=names.get(asset_id), value=value)


def _parse_single_reading(data: dict[str, Any]) -> Iterator[PayloadReading]:
    value = _to_float(data.get("temperature"))
    if value is not None:
        yield PayloadReading(
            asset_id=None,
            asset_name=None,
            value=value,
            unit=data.get("unit"),
            raw_status=data.get("status"),
        )


def _equipment_names(data: dict[str, Any]) -> dict[str, str]:
    """Names carried by an equipment list alongside prefixed keys."""
    names: dict[str, str] = {}
    for item in data.get("equipment_list") or []:
        if isinstance(item, dict):
            _, asset_id = _item_asset_id(item, _ITEM_ID_FIELDS[PayloadShape.EQUIPMENT_LIST])
            name = _first(item, _ITEM_NAME_FIELDS)
            if asset_id and name:
                names[asset_id] = str(name)
    return names


PAYLOAD_PARSERS: dict[PayloadShape, Callable[[dict[str, Any]], Iterator[PayloadReading]]] = {
    PayloadShape.EQUIPMENT_LIST: _parse_equipment_list,
    PayloadShape.READINGS_LIST: _parse_readings_list,
    PayloadShape.PREFIXED_KEYS: _parse_prefixed_keys,
    PayloadShape.SINGLE_READING: _parse_single_reading,
}


def extract_task_readings(
    completion_rows: list[dict[str, Any]],
    assets: Optional[dict[str, AssetInfo]] = None,
) -> list[TemperatureReading]:
    """
    Mine temperature readings from task completion payloads.

    Known asset ids take the site asset's name and range so that a task copy
    of a logged reading carries the same fingerprint as the log row. A range
    written on the payload item overrides the asset's.
    """
    assets = assets or {}
    readings: list[TemperatureReading] = []
    for row in completion_rows:
        data = row.get("completion_data")
        if not isinstance(data, dict):
            continue
        shapes = detect_shapes(data)
        if not shapes:
            continue
        completed_at = parse_timestamp(row.get("completed_at"))
        task_name = row.get("template_name") or row.get("task_name") or "Temperature check"
        seen_in_payload: set = set()
        for shape in shapes:
            for found in PAYLOAD_PARSERS[shape](data):
                asset_id = found.asset_id
                if shape is PayloadShape.SINGLE_READING:
                    asset_id = resolve_asset_id(row.get("template_asset_id"))
                asset = assets.get(asset_id) if asset_id else None
                if asset is not None:
                    name = asset.name
                elif shape is PayloadShape.SINGLE_READING:
                    name = task_name
                else:
                    name = found.asset_name or asset_id
                recorded_at = found.recorded_at or completed_at
                if not name or recorded_at is None:
                    logger.debug("Skipping unattributable reading in completion %s", row.get("id"))
                    continue
                low, high = found.min_temp, found.max_temp
                if low is None and high is None and asset is not None:
                    low, high = asset.min_temp, asset.max_temp
                reading = TemperatureReading(
                    asset_name=str(name),
                    reading=found.value,
                    recorded_at=recorded_at,
                    unit=found.unit or DEFAULT_UNIT,
                    status=_status(found.raw_status, found.value, low, high),
                    recorded_by=row.get("completed_by_name"),
                    source=ReadingSource.TASK,
                    asset_id=asset_id,
                )
                # Same reading encoded twice in one payload
                if reading.fingerprint in seen_in_payload:
                    continue
                seen_in_payload.add(reading.fingerprint)
                readings.append(reading)
    return readings


# =============================================================================
# Reconcile
# =============================================================================

def reconcile_temperatures(
    log_rows: list[dict[str, Any]],
    completion_rows: list[dict[str, Any]],
    asset_rows: Optional[list[dict[str, Any]]] = None,
) -> list[TemperatureReading]:
    """
    Merge canonical and task-derived readings into one time-descending list.

    Source A is authoritative once populated: any task-derived reading whose
    fingerprint already appears in the log table is discarded.
    """
    assets = build_asset_index(asset_rows or [])
    canonical = normalize_log_rows(log_rows, assets)
    derived = extract_task_readings(completion_rows, assets)

    seen = {reading.fingerprint for reading in canonical}
    kept = [reading for reading in derived if reading.fingerprint not in seen]
    dropped = len(derived) - len(kept)
    if dropped:
        logger.debug("Discarded %d task-derived readings already in the temperature log", dropped)

    merged = canonical + kept
    merged.sort(key=lambda r: r.recorded_at, reverse=True)
    return merged


@dataclass
class AssetTemperatureSummary:
    """Per-asset statistics for the temperature section."""
    asset_name: str
    count: int = 0
    breaches: int = 0
    min_reading: Optional[float] = None
    max_reading: Optional[float] = None
    last_reading: Optional[TemperatureReading] = None

    def add(self, reading: TemperatureReading) -> None:
        self.count += 1
        if reading.is_breach:
            self.breaches += 1
        self.min_reading = reading.reading if self.min_reading is None else min(self.min_reading, reading.reading)
        self.max_reading = reading.reading if self.max_reading is None else max(self.max_reading, reading.reading)
        if self.last_reading is None or reading.recorded_at > self.last_reading.recorded_at:
            self.last_reading = reading


@dataclass
class TemperatureSummary:
    total: int
    breaches: list[TemperatureReading]
    by_asset: list[AssetTemperatureSummary]
    from_logs: int
    from_tasks: int

    @property
    def breach_count(self) -> int:
        return len(self.breaches)

    @property
    def compliance_rate(self) -> Optional[float]:
        if not self.total:
            return None
        return (self.total - self.breach_count) / self.total * 100


def summarize_temperatures(readings: list[TemperatureReading]) -> TemperatureSummary:
    by_asset: dict[str, AssetTemperatureSummary] = {}
    for reading in readings:
        key = reading.asset_name.strip().casefold()
        if key not in by_asset:
            by_asset[key] = AssetTemperatureSummary(asset_name=reading.asset_name)
        by_asset[key].add(reading)
    return TemperatureSummary(
        total=len(readings),
        breaches=[r for r in readings if r.is_breach],
        by_asset=sorted(by_asset.values(), key=lambda s: s.asset_name.casefold()),
        from_logs=sum(1 for r in readings if r.source is ReadingSource.LOG),
        from_tasks=sum(1 for r in readings if r.source is ReadingSource.TASK),
    )
