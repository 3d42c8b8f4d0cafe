"""
Tests for cost filtering and summary statistics.
"""

from __future__ import annotations

import pytest

from ecrspectre.engine import analyze
from ecrspectre.models import (
    Finding,
    FindingKind,
    ResourceType,
    ScanResult,
    Severity,
)


def make_finding(
    kind: FindingKind,
    waste: float,
    severity: Severity = Severity.HIGH,
    resource_type: ResourceType = ResourceType.IMAGE,
) -> Finding:
    return Finding(
        kind=kind,
        severity=severity,
        resource_type=resource_type,
        resource_id=f"app@{kind.value}",
        region="us-east-1",
        message=kind.value,
        estimated_monthly_waste=waste,
    )


@pytest.fixture
def scan_result() -> ScanResult:
    """Return a scan result with findings around the default threshold."""
    return ScanResult(
        findings=[
            make_finding(FindingKind.STALE_IMAGE, 0.50),
            make_finding(FindingKind.UNTAGGED_IMAGE, 0.10),
            make_finding(
                FindingKind.NO_LIFECYCLE_POLICY,
                0.0,
                severity=Severity.MEDIUM,
                resource_type=ResourceType.REPOSITORY,
            ),
            make_finding(
                FindingKind.LARGE_IMAGE, 0.30, severity=Severity.MEDIUM
            ),
            make_finding(FindingKind.MULTI_ARCH_BLOAT, 0.05, severity=Severity.LOW),
        ],
        errors=["eu-west-1: AccessDeniedException: denied"],
        resources_scanned=12,
        repositories_scanned=3,
    )


class TestAnalyze:
    """Tests for analyze()."""

    def test_threshold_is_inclusive(self, scan_result):
        """Test findings exactly at the threshold are kept."""
        analysis = analyze(scan_result, 0.10)

        assert [f.kind for f in analysis.findings] == [
            FindingKind.STALE_IMAGE,
            FindingKind.UNTAGGED_IMAGE,
            FindingKind.LARGE_IMAGE,
        ]

    def test_summary(self, scan_result):
        """Test summary totals cover kept findings only."""
        summary = analyze(scan_result, 0.10).summary

        assert summary.total_findings == 3
        assert summary.total_monthly_waste == pytest.approx(0.90)
        assert summary.by_severity == {"high": 2, "medium": 1}
        assert summary.by_resource_type == {"image": 3}
        assert summary.total_resources_scanned == 12
        assert summary.repositories_scanned == 3

    def test_zero_threshold_keeps_everything(self, scan_result):
        """Test a zero threshold keeps zero-cost findings."""
        analysis = analyze(scan_result, 0.0)
        assert len(analysis.findings) == 5
        assert analysis.summary.by_resource_type == {"image": 4, "repository": 1}

    def test_errors_pass_through(self, scan_result):
        """Test scan errors are carried unchanged."""
        analysis = analyze(scan_result, 100.0)
        assert analysis.findings == []
        assert analysis.errors == ["eu-west-1: AccessDeniedException: denied"]
        assert analysis.summary.total_monthly_waste == 0.0

    def test_to_dict(self, scan_result):
        """Test analysis serialization."""
        data = analyze(scan_result, 0.10).to_dict()
        assert data["summary"]["total_findings"] == 3
        assert data["findings"][0]["id"] == "STALE_IMAGE"
        assert len(data["errors"]) == 1
