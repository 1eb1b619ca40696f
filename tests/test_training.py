"""
Tests for the training compliance resolver.

Tests cover:
- Category map loading (packaged default and custom files)
- Status normalization and expiry correction
- Representative selection (level, status priority, expiry tiebreak)
- Complete matrix with explicit "not recorded" cells
"""
from datetime import date

import pytest

from ehopack.engine import load_training_categories, resolve_training_matrix
from ehopack.engine.training import (
    effective_status,
    normalize_training_status,
    rank_key,
)
from ehopack.exceptions import ConfigurationError
from ehopack.models import CertificationLevel, TrainingStatus

from tests.conftest import TODAY, make_training_row


# =============================================================================
# Category Map
# =============================================================================

class TestCategories:
    """Tests for the category map."""

    def test_packaged_categories(self):
        categories = load_training_categories()

        keys = [c.key for c in categories]
        assert keys[:2] == ["food_safety", "health_safety"]
        food = categories[0]
        assert food.level_of("FS-L3") is CertificationLevel.HIGHER
        assert food.level_of("fs-l2") is CertificationLevel.LOWER
        assert food.level_of("HS-L3") is None

    def test_single_course_category(self):
        coshh = next(c for c in load_training_categories() if c.key == "coshh")

        assert coshh.level_of("COSHH") is CertificationLevel.SINGLE

    def test_custom_file(self, tmp_path):
        path = tmp_path / "categories.yaml"
        path.write_text(
            "categories:\n"
            "  - key: manual_handling\n"
            "    label: Manual Handling\n"
            "    courses:\n"
            "      - code: MH-1\n",
            encoding="utf-8",
        )

        categories = load_training_categories(path)

        assert [c.label for c in categories] == ["Manual Handling"]

    def test_invalid_file(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("categories:\n  - label: No key\n    courses: []\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_training_categories(path)


# =============================================================================
# Status Normalization
# =============================================================================

class TestStatus:
    """Tests for raw status mapping."""

    @pytest.mark.parametrize("raw,expected", [
        ("compliant", TrainingStatus.COMPLIANT),
        ("Current", TrainingStatus.COMPLIANT),
        ("valid", TrainingStatus.COMPLIANT),
        ("assigned", TrainingStatus.IN_PROGRESS),
        ("expiring_soon", TrainingStatus.EXPIRING_SOON),
        ("expired", TrainingStatus.EXPIRED),
        ("something else", TrainingStatus.OPTIONAL),
        (None, TrainingStatus.OPTIONAL),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_training_status(raw) is expected

    def test_compliant_past_expiry_is_expired(self):
        status = effective_status(TrainingStatus.COMPLIANT, date(2024, 2, 1), TODAY, 30)

        assert status is TrainingStatus.EXPIRED

    def test_compliant_near_expiry_is_expiring(self):
        status = effective_status(TrainingStatus.COMPLIANT, date(2024, 3, 1), TODAY, 30)

        assert status is TrainingStatus.EXPIRING_SOON

    def test_other_statuses_untouched(self):
        status = effective_status(TrainingStatus.IN_PROGRESS, date(2020, 1, 1), TODAY, 30)

        assert status is TrainingStatus.IN_PROGRESS

    def test_status_priority_order(self):
        order = sorted(TrainingStatus, key=lambda s: s.rank)

        assert order == [
            TrainingStatus.COMPLIANT,
            TrainingStatus.EXPIRING_SOON,
            TrainingStatus.IN_PROGRESS,
            TrainingStatus.EXPIRED,
            TrainingStatus.REQUIRED,
            TrainingStatus.NOT_STARTED,
            TrainingStatus.OPTIONAL,
        ]

    def test_rank_key_level_first(self):
        higher_expired = rank_key(CertificationLevel.HIGHER, TrainingStatus.EXPIRED, None)
        lower_compliant = rank_key(CertificationLevel.LOWER, TrainingStatus.COMPLIANT, None)

        assert higher_expired < lower_compliant


# =============================================================================
# Matrix
# =============================================================================

class TestMatrix:
    """Tests for representative selection and matrix completeness."""

    def test_higher_compliant_beats_lower_expired(self):
        matrix = resolve_training_matrix(
            [
                make_training_row("E1", "Ana Lopez", "FS-L2", "expired", "2023-01-01"),
                make_training_row("E1", "Ana Lopez", "FS-L3", "compliant", "2026-01-01"),
            ],
            today=TODAY,
        )

        entry = matrix.entry("E1", "food_safety")
        assert entry.status is TrainingStatus.COMPLIANT
        assert entry.course_code == "FS-L3"
        assert entry.level is CertificationLevel.HIGHER

    def test_same_level_in_progress_beats_expired(self):
        matrix = resolve_training_matrix(
            [
                make_training_row("E1", "Ana Lopez", "FS-L2", "expired", "2023-01-01"),
                make_training_row("E1", "Ana Lopez", "FS-L2", "in_progress"),
            ],
            today=TODAY,
        )

        assert matrix.entry("E1", "food_safety").status is TrainingStatus.IN_PROGRESS

    def test_later_expiry_breaks_ties(self):
        matrix = resolve_training_matrix(
            [
                make_training_row("E1", "Ana Lopez", "FS-L3", "compliant", "2025-01-01"),
                make_training_row("E1", "Ana Lopez", "FS-L3", "compliant", "2027-01-01"),
            ],
            today=TODAY,
        )

        assert matrix.entry("E1", "food_safety").expiry_date == date(2027, 1, 1)

    def test_every_cell_present(self):
        """Test roster staff with no records get explicit not-recorded cells."""
        categories = load_training_categories()
        matrix = resolve_training_matrix(
            [make_training_row("E1", "Ana Lopez", "FS-L3", "compliant", "2026-01-01")],
            [
                {"id": "E1", "full_name": "Ana Lopez"},
                {"id": "E2", "full_name": "Ben Cho", "position_title": "Porter"},
            ],
            today=TODAY,
        )

        assert len(matrix.cells) == 2 * len(categories)
        ben = matrix.entry("E2", "food_safety")
        assert ben.recorded is False
        assert ben.status is TrainingStatus.NOT_STARTED
        assert matrix.entry("E1", "fire_safety").recorded is False

    def test_employee_only_in_training_rows_included(self):
        matrix = resolve_training_matrix(
            [make_training_row("E9", "Zoe Park", "EFAW", "compliant", "2026-01-01")],
            [{"id": "E1", "full_name": "Ana Lopez"}],
            today=TODAY,
        )

        assert [e.name for e in matrix.employees] == ["Ana Lopez", "Zoe Park"]
        assert matrix.entry("E9", "first_aid").level is CertificationLevel.LOWER

    def test_unknown_course_codes_ignored(self):
        matrix = resolve_training_matrix(
            [make_training_row("E1", "Ana Lopez", "BARISTA-1", "compliant")],
            today=TODAY,
        )

        assert all(not e.recorded for e in matrix.cells.values())

    def test_gaps_and_rate(self):
        matrix = resolve_training_matrix(
            [
                make_training_row("E1", "Ana Lopez", "FS-L3", "compliant", "2026-01-01"),
                make_training_row("E1", "Ana Lopez", "HS-L2", "required"),
            ],
            today=TODAY,
        )

        gap_categories = [e.category for e in matrix.gaps() if e.recorded]
        assert gap_categories == ["health_safety"]
        assert matrix.summary()["food_safety"][TrainingStatus.COMPLIANT] == 1
        assert matrix.compliance_rate == pytest.approx(100 / len(matrix.categories))

    def test_empty_inputs(self):
        matrix = resolve_training_matrix([], [], today=TODAY)

        assert matrix.employees == []
        assert matrix.compliance_rate is None
