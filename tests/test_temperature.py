"""
Tests for the temperature reconciler.

Tests cover:
- Canonical log normalization and breach detection
- The four historical task payload shapes
- Rejection of malformed asset identifiers
- Deduplication between log table and task payloads
- Ordering and per-asset summary
"""
from datetime import datetime, timezone

import pytest

from ehopack.engine import reconcile_temperatures, summarize_temperatures
from ehopack.engine.temperature import (
    PayloadShape,
    detect_shapes,
    extract_task_readings,
    parse_timestamp,
    resolve_asset_id,
)
from ehopack.models import ReadingSource, ReadingStatus

from tests.conftest import make_asset_row, make_completion, make_log_row


ASSETS = [
    make_asset_row("A1", "Walk-in Fridge", 0, 5),
    make_asset_row("A2", "Freezer", -25, -18),
]


# =============================================================================
# Value Helpers
# =============================================================================

class TestResolveAssetId:
    """Tests for identifier resolution."""

    @pytest.mark.parametrize("value", ["[object Object]", "undefined", "null", "NaN", "", "   ", None])
    def test_sentinels_rejected(self, value):
        assert resolve_asset_id(value) is None

    def test_plain_string(self):
        assert resolve_asset_id(" A1 ") == "A1"

    def test_object_with_id(self):
        assert resolve_asset_id({"id": "A1", "name": "Fridge"}) == "A1"

    def test_object_with_alternate_field(self):
        assert resolve_asset_id({"assetId": "A2"}) == "A2"

    def test_object_with_sentinel_id(self):
        assert resolve_asset_id({"id": "[object Object]"}) is None


class TestParseTimestamp:
    def test_zulu_suffix(self):
        assert parse_timestamp("2024-01-10T08:00:00Z") == datetime(2024, 1, 10, 8, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert parse_timestamp("2024-01-10T08:00:00").tzinfo is not None

    @pytest.mark.parametrize("value", [
        "2024-01-10 08:00:00.12345+00:00",
        "2024-01-10 08:00:00.1+00",
        "2024-01-10T09:00:00.123456789+0100",
    ])
    def test_postgres_formats(self, value):
        assert parse_timestamp(value).replace(microsecond=0) == datetime(2024, 1, 10, 8, tzinfo=timezone.utc)

    def test_garbage(self):
        assert parse_timestamp("yesterday") is None


# =============================================================================
# Canonical Logs
# =============================================================================

class TestLogRows:
    """Tests for source A normalization."""

    def test_breach_from_asset_range(self):
        """Test a reading above the asset's maximum is a breach."""
        readings = reconcile_temperatures(
            [
                make_log_row("L1", "A1", 3.5, "2024-01-10T08:00:00Z"),
                make_log_row("L2", "A1", 9.2, "2024-01-11T08:00:00Z"),
            ],
            [],
            ASSETS,
        )

        by_value = {r.reading: r for r in readings}
        assert by_value[3.5].status is ReadingStatus.OK
        assert by_value[9.2].status is ReadingStatus.BREACH
        assert by_value[9.2].asset_name == "Walk-in Fridge"

    def test_breach_from_row_range(self):
        """Test a range on the row itself takes precedence over the asset range."""
        readings = reconcile_temperatures(
            [make_log_row("L1", "A1", 4.0, "2024-01-10T08:00:00Z", min_temp=0, max_temp=3)],
            [],
            ASSETS,
        )

        assert readings[0].is_breach

    def test_breach_from_stored_status(self):
        readings = reconcile_temperatures(
            [make_log_row("L1", "A9", 4.0, "2024-01-10T08:00:00Z", asset_name="Chiller", status="out_of_range")],
            [],
        )

        assert readings[0].is_breach
        assert readings[0].asset_name == "Chiller"

    def test_nested_asset_name(self):
        readings = reconcile_temperatures(
            [make_log_row("L1", "A9", 4.0, "2024-01-10T08:00:00Z", asset={"name": "Bar Fridge"})],
            [],
        )

        assert readings[0].asset_name == "Bar Fridge"

    def test_unparseable_rows_skipped(self):
        readings = reconcile_temperatures(
            [
                make_log_row("L1", "A1", "warm", "2024-01-10T08:00:00Z"),
                make_log_row("L2", "A1", 3.0, "not a time"),
            ],
            [],
            ASSETS,
        )

        assert readings == []


# =============================================================================
# Task Payload Shapes
# =============================================================================

class TestPayloadShapes:
    """Tests for source B payload variants."""

    def test_detect_shapes(self):
        assert detect_shapes({"equipment_list": []}) == [PayloadShape.EQUIPMENT_LIST]
        assert detect_shapes({"temperatures": []}) == [PayloadShape.READINGS_LIST]
        assert detect_shapes({"temp_A1": 3}) == [PayloadShape.PREFIXED_KEYS]
        assert detect_shapes({"temperature": 3}) == [PayloadShape.SINGLE_READING]
        assert detect_shapes({"notes": "all fine"}) == []

    def test_single_reading_detected_alongside_other_shapes(self):
        shapes = detect_shapes({"temperature": 75.0, "equipment_list": [], "temp_note": "n/a"})

        assert PayloadShape.SINGLE_READING in shapes
        assert PayloadShape.EQUIPMENT_LIST in shapes

    def test_completion_modal_payload(self):
        """Test the camelCase payload written by the task completion modal."""
        completion = make_completion("T1", {
            "notes": "",
            "temperatures": [
                {"assetId": "A1", "temp": 9.0, "nickname": "Fridge 1"},
                {"assetId": "A2", "temp": -20.0, "nickname": None},
            ],
            "equipment_list": [
                {"assetId": "A1", "assetName": "Walk-in Fridge", "temperature": 9.0,
                 "nickname": "Fridge 1", "temp_min": 0, "temp_max": 5},
                {"assetId": "A2", "assetName": "Freezer", "temperature": -20.0,
                 "nickname": None, "temp_min": -25, "temp_max": -18},
            ],
        })

        readings = reconcile_temperatures([], [completion], ASSETS)

        by_asset = {r.asset_id: r for r in readings}
        assert len(readings) == 2
        assert by_asset["A1"].asset_name == "Walk-in Fridge"
        assert by_asset["A1"].status is ReadingStatus.BREACH
        assert by_asset["A2"].status is ReadingStatus.OK

    def test_equipment_list_camel_case_breach(self):
        completion = make_completion("T1", {
            "equipment_list": [{"assetId": "A1", "assetName": "Walk-in Fridge", "temperature": 9.0}],
        })

        readings = reconcile_temperatures([], [completion], ASSETS)

        assert len(readings) == 1
        assert readings[0].asset_id == "A1"
        assert readings[0].is_breach

    def test_item_range_overrides_asset_range(self):
        completion = make_completion("T1", {
            "equipment_list": [{"assetId": "A1", "temperature": 4.5, "temp_min": 0, "temp_max": 4}],
        })

        readings = reconcile_temperatures([], [completion], ASSETS)

        assert readings[0].is_breach

    def test_item_time_used_over_completion_time(self):
        completion = make_completion(
            "T1",
            {"temperatures": [{"assetId": "A1", "temp": 3.0, "time": "2024-01-10T07:15:00Z"}]},
            completed_at="2024-01-10T09:00:00Z",
        )

        readings = reconcile_temperatures([], [completion], ASSETS)

        assert readings[0].recorded_at == datetime(2024, 1, 10, 7, 15, tzinfo=timezone.utc)

    def test_single_reading_alongside_empty_list(self):
        completion = make_completion(
            "T1", {"temperature": 75.0, "equipment_list": []}, template_name="Hot hold check",
        )

        readings = reconcile_temperatures([], [completion])

        assert len(readings) == 1
        assert readings[0].asset_name == "Hot hold check"

    def test_single_reading_uses_template_asset(self):
        completion = make_completion("T1", {"temperature": 7.5}, template_asset_id="A1")

        readings = reconcile_temperatures([], [completion], ASSETS)

        assert readings[0].asset_name == "Walk-in Fridge"
        assert readings[0].is_breach

    def test_equipment_list_and_prefixed_keys_agree(self):
        """Test the same readings in two encodings normalize identically."""
        equipment = make_completion("T1", {
            "equipment_list": [
                {"asset_id": "A1", "asset_name": "Walk-in Fridge", "temperature": 3.4},
                {"asset_id": "A2", "asset_name": "Freezer", "temperature": -19},
            ],
        })
        prefixed = make_completion("T2", {"temp_A1": "3.4", "temp_A2": -19})

        from_list = reconcile_temperatures([], [equipment], ASSETS)
        from_keys = reconcile_temperatures([], [prefixed], ASSETS)

        assert {r.fingerprint for r in from_list} == {r.fingerprint for r in from_keys}
        assert all(r.source is ReadingSource.TASK for r in from_list + from_keys)

    def test_readings_list(self):
        completion = make_completion("T1", {
            "temperatures": [{"assetId": {"id": "A2"}, "temp": -12.0}],
        })

        readings = reconcile_temperatures([], [completion], ASSETS)

        assert len(readings) == 1
        assert readings[0].asset_name == "Freezer"
        assert readings[0].is_breach

    def test_single_reading_uses_task_name(self):
        """Test a bare temperature payload is attributed to its task."""
        completion = make_completion("T1", {"temperature": 72.5}, template_name="Hot hold check")

        readings = reconcile_temperatures([], [completion])

        assert len(readings) == 1
        assert readings[0].asset_name == "Hot hold check"
        assert readings[0].reading == 72.5

    def test_malformed_asset_ids_never_propagate(self):
        """Test readings keyed on a sentinel identifier are dropped."""
        completion = make_completion("T1", {
            "equipment_list": [
                {"asset_id": "[object Object]", "asset_name": "Fridge", "temperature": 3},
                {"asset_id": "A1", "temperature": 4},
            ],
            "temp_undefined": 5,
        })

        readings = extract_task_readings([completion])

        assert [r.asset_id for r in readings] == ["A1"]
        assert all(r.asset_id not in ("[object Object]", "undefined") for r in readings)

    def test_same_reading_twice_in_one_payload(self):
        """Test a payload carrying two encodings of one reading yields it once."""
        completion = make_completion("T1", {
            "equipment_list": [{"asset_id": "A1", "asset_name": "Walk-in Fridge", "temperature": 3.4}],
            "temp_A1": 3.4,
        })

        readings = reconcile_temperatures([], [completion], ASSETS)

        assert len(readings) == 1

    def test_completion_without_payload_ignored(self):
        completion = make_completion("T1", None)

        assert reconcile_temperatures([], [completion]) == []


# =============================================================================
# Reconciliation
# =============================================================================

class TestReconcile:
    """Tests for merging sources A and B."""

    def test_task_reading_matching_log_is_dropped(self):
        """Test the log table wins when both sources hold the same event."""
        log = make_log_row("L1", "A1", 3.42, "2024-01-10T08:00:12Z")
        completion = make_completion(
            "T1",
            {"equipment_list": [{"asset_id": "A1", "asset_name": "Walk-in fridge", "temperature": 3.4}]},
            completed_at="2024-01-10T08:00:48Z",
        )

        readings = reconcile_temperatures([log], [completion], ASSETS)

        assert len(readings) == 1
        assert readings[0].source is ReadingSource.LOG

    def test_task_copy_under_nickname_is_dropped(self):
        """Test a known asset id matches the log row even when the payload uses a nickname."""
        log = make_log_row("L1", "A1", 9.0, "2024-01-10T08:00:00Z")
        completion = make_completion(
            "T1", {"equipment_list": [{"assetId": "A1", "nickname": "Fridge 1", "temperature": 9.0}]},
        )

        readings = reconcile_temperatures([log], [completion], ASSETS)

        assert len(readings) == 1
        assert readings[0].source is ReadingSource.LOG
        assert readings[0].is_breach

    def test_task_copy_matched_on_item_time(self):
        log = make_log_row("L1", "A1", 3.0, "2024-01-10T07:15:00Z")
        completion = make_completion(
            "T1",
            {"temperatures": [{"assetId": "A1", "temp": 3.0, "recorded_at": "2024-01-10T07:15:30Z"}]},
            completed_at="2024-01-10T09:00:00Z",
        )

        readings = reconcile_temperatures([log], [completion], ASSETS)

        assert len(readings) == 1

    def test_different_minute_kept(self):
        log = make_log_row("L1", "A1", 3.4, "2024-01-10T08:00:00Z")
        completion = make_completion(
            "T1", {"temp_A1": 3.4}, completed_at="2024-01-10T08:05:00Z",
        )

        readings = reconcile_temperatures([log], [completion], ASSETS)

        assert len(readings) == 2

    def test_sorted_most_recent_first(self):
        readings = reconcile_temperatures(
            [
                make_log_row("L1", "A1", 3.0, "2024-01-10T08:00:00Z"),
                make_log_row("L2", "A1", 3.1, "2024-01-12T08:00:00Z"),
            ],
            [make_completion("T1", {"temp_A2": -20}, completed_at="2024-01-11T08:00:00Z")],
            ASSETS,
        )

        assert [r.recorded_at.day for r in readings] == [12, 11, 10]


class TestSummary:
    def test_summary_counts(self):
        readings = reconcile_temperatures(
            [
                make_log_row("L1", "A1", 3.5, "2024-01-10T08:00:00Z"),
                make_log_row("L2", "A1", 4.1, "2024-01-11T08:00:00Z"),
                make_log_row("L3", "A1", 9.2, "2024-01-12T08:00:00Z"),
            ],
            [make_completion("T1", {"temp_A2": -20})],
            ASSETS,
        )

        summary = summarize_temperatures(readings)

        assert summary.total == 4
        assert summary.breach_count == 1
        assert summary.from_logs == 3
        assert summary.from_tasks == 1
        assert summary.compliance_rate == pytest.approx(75.0)
        fridge = next(s for s in summary.by_asset if s.asset_name == "Walk-in Fridge")
        assert (fridge.count, fridge.min_reading, fridge.max_reading) == (3, 3.5, 9.2)
        assert fridge.last_reading.reading == 9.2

    def test_empty_summary(self):
        summary = summarize_temperatures([])

        assert summary.total == 0
        assert summary.compliance_rate is None
