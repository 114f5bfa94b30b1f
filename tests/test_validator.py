"""Tests for the advisory response validator."""

from orchestrator.models import FailureKind, GeocodeResult, ToolFailure, ToolInvocationRecord
from orchestrator.validator import validate


def ok_record():
    return ToolInvocationRecord(
        tool="geocode_address",
        outcome=GeocodeResult(lat=1, lon=2, full_label="x", source="Nominatim"),
    )


def failed_record(tool="scan_infrastructure", reason="down"):
    return ToolInvocationRecord(tool=tool, outcome=ToolFailure(kind=FailureKind.UPSTREAM_UNAVAILABLE, reason=reason))


def test_grounded_answer_is_valid():
    report = validate([ok_record()], "Source: Nominatim (OpenStreetMap).")

    assert report.valid is True
    assert report.warnings == []


def test_no_tools_and_no_sources_warn_in_order():
    report = validate([], "Madrid is nice.")

    assert report.valid is False
    assert len(report.warnings) == 2
    assert "No tools" in report.warnings[0]
    assert "sources" in report.warnings[1]


def test_one_warning_per_failed_tool():
    report = validate([failed_record(reason="mirror 1"), ok_record(), failed_record("assess_flood_risk", "dns")],
                      "Data from overpass and open-elevation")

    assert report.warnings == [
        "Tool scan_infrastructure failed: mirror 1",
        "Tool assess_flood_risk failed: dns",
    ]


def test_source_match_is_case_insensitive_and_any_one_suffices():
    assert validate([ok_record()], "per OPEN-ELEVATION data").valid
