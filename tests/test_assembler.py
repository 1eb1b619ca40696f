"""
Tests for the report assembler.

Tests cover:
- Fixed skeleton: every section present, in order, with its anchor
- Section isolation: a failing builder becomes a placeholder block
- Page breaks between layout groups
- Document metadata and JSON view
"""
import pytest

from ehopack.models import SECTION_LAYOUT, SectionKind, SourceKind
from ehopack.report import assembler
from ehopack.report.assembler import SECTION_FAILED_MESSAGE, assemble_report, build_section

from tests.conftest import make_asset_row, make_log_row, make_report_context


def _explode(ctx):
    raise RuntimeError("template variable missing")


# =============================================================================
# Skeleton
# =============================================================================

class TestSkeleton:
    """Tests for the fixed document skeleton."""

    def test_builder_for_every_section(self):
        assert set(assembler.SECTION_BUILDERS) == set(SectionKind)

    def test_all_sections_in_order(self):
        document = assemble_report(make_report_context())

        assert [s.kind for s in document.sections] == list(SectionKind)
        assert len(document.sections) == 16
        assert document.failed_sections == []

    def test_anchors_and_headings_in_html(self):
        document = assemble_report(make_report_context())

        for kind, layout in SECTION_LAYOUT.items():
            assert f'id="{layout.anchor}"' in document.html
        assert "<h2>3. Temperature Monitoring</h2>" in document.html
        assert "<h2>Appendix A. Evidence Gallery</h2>" in document.html
        positions = [document.html.index(f'id="{layout.anchor}"') for layout in SECTION_LAYOUT.values()]
        assert positions == sorted(positions)

    def test_page_breaks_between_groups(self):
        document = assemble_report(make_report_context())

        groups = {layout.group for layout in SECTION_LAYOUT.values()}
        assert document.html.count('<div class="page-break"></div>') == len(groups) - 1

    def test_self_contained_document(self):
        document = assemble_report(make_report_context())

        assert document.html.startswith("<!DOCTYPE html>")
        assert "<style>" in document.html
        assert '<link rel="stylesheet"' not in document.html
        assert "cross-checked against the source records" in document.html

    def test_metadata(self):
        document = assemble_report(make_report_context())

        assert document.site_id == "S1"
        assert document.site_name == "Harbour Kitchen"
        assert document.filename == "eho-report-2024-01-01-to-2024-01-31.html"
        payload = document.to_dict()
        assert payload["start_date"] == "2024-01-01"
        assert [s["anchor"] for s in payload["sections"]][:2] == ["section-cover", "section-1"]
        assert payload["data_sources"]["incidents"]["status"] == "empty"


# =============================================================================
# Isolation
# =============================================================================

class TestSectionIsolation:
    """Tests that one failing builder cannot take down the document."""

    def test_failing_builder_replaced_by_placeholder(self, monkeypatch):
        monkeypatch.setitem(assembler.SECTION_BUILDERS, SectionKind.FIRE_SAFETY, _explode)
        rows = {
            SourceKind.ASSETS: [make_asset_row("A1", "Walk-in Fridge", 0, 5)],
            SourceKind.TEMPERATURE_LOGS: [make_log_row("L1", "A1", 9.2, "2024-01-12T08:00:00Z")],
        }

        document = assemble_report(make_report_context(rows))

        assert len(document.sections) == 16
        failed = document.failed_sections
        assert [s.kind for s in failed] == [SectionKind.FIRE_SAFETY]
        assert failed[0].error == "template variable missing"
        assert SECTION_FAILED_MESSAGE in failed[0].body
        assert "Fire Safety" in failed[0].body
        assert "Temperature breaches recorded" in document.html
        assert 'id="section-10"' in document.html

    def test_other_sections_unchanged(self, monkeypatch):
        ctx = make_report_context()
        reference = {s.kind: s.body for s in assemble_report(ctx).sections}
        monkeypatch.setitem(assembler.SECTION_BUILDERS, SectionKind.TRAINING, _explode)

        broken = {s.kind: s.body for s in assemble_report(ctx).sections}

        for kind in SectionKind:
            if kind is not SectionKind.TRAINING:
                assert broken[kind] == reference[kind]

    def test_every_builder_failing(self, monkeypatch):
        for kind in SectionKind:
            monkeypatch.setitem(assembler.SECTION_BUILDERS, kind, _explode)

        document = assemble_report(make_report_context())

        assert len(document.failed_sections) == 16
        assert document.html.count(SECTION_FAILED_MESSAGE) == 16

    def test_build_section_logs_failure(self, monkeypatch, caplog):
        monkeypatch.setitem(assembler.SECTION_BUILDERS, SectionKind.COSHH, _explode)

        section = build_section(SectionKind.COSHH, make_report_context())

        assert section.failed is True
        assert any(getattr(r, "section", None) == "coshh" for r in caplog.records)

    @pytest.mark.parametrize("kind", [SectionKind.COVER, SectionKind.EVIDENCE_GALLERY])
    def test_placeholder_keeps_anchor(self, monkeypatch, kind):
        monkeypatch.setitem(assembler.SECTION_BUILDERS, kind, _explode)

        document = assemble_report(make_report_context())

        assert f'id="{SECTION_LAYOUT[kind].anchor}"' in document.html
