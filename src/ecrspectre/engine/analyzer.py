"""
Finding analysis for ecrspectre.

Filters a ScanResult by a minimum monthly cost and computes the summary
statistics that every report format shows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ecrspectre.models import Finding, ScanResult


@dataclass
class Summary:
    """
    Aggregate statistics over the reported findings.

    Attributes:
        total_resources_scanned: Images classified
        repositories_scanned: Repositories enumerated
        total_findings: Findings after cost filtering
        total_monthly_waste: Sum of estimated waste over reported findings
        by_severity: Finding count per severity value
        by_resource_type: Finding count per resource type value
    """

    total_resources_scanned: int = 0
    repositories_scanned: int = 0
    total_findings: int = 0
    total_monthly_waste: float = 0.0
    by_severity: dict[str, int] = field(default_factory=dict)
    by_resource_type: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_resources_scanned": self.total_resources_scanned,
            "repositories_scanned": self.repositories_scanned,
            "total_findings": self.total_findings,
            "total_monthly_waste": self.total_monthly_waste,
            "by_severity": dict(self.by_severity),
            "by_resource_type": dict(self.by_resource_type),
        }


@dataclass
class AnalysisResult:
    """Cost-filtered findings, their summary and the untouched scan errors."""

    findings: list[Finding] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "findings": [f.to_dict() for f in self.findings],
            "summary": self.summary.to_dict(),
            "errors": list(self.errors),
        }


def analyze(scan_result: ScanResult, min_monthly_cost: float) -> AnalysisResult:
    """
    Filter findings and compute summary statistics.

    A finding is kept when its estimated waste is at least
    min_monthly_cost. Totals and histograms cover the kept findings only;
    errors pass through unchanged.

    Args:
        scan_result: Output of a scan
        min_monthly_cost: Inclusive cost threshold in USD

    Returns:
        AnalysisResult
    """
    findings = [
        f for f in scan_result.findings
        if f.estimated_monthly_waste >= min_monthly_cost
    ]

    by_severity: dict[str, int] = {}
    by_resource_type: dict[str, int] = {}
    total_waste = 0.0
    for finding in findings:
        total_waste += finding.estimated_monthly_waste
        severity = finding.severity.value
        by_severity[severity] = by_severity.get(severity, 0) + 1
        resource_type = finding.resource_type.value
        by_resource_type[resource_type] = by_resource_type.get(resource_type, 0) + 1

    summary = Summary(
        total_resources_scanned=scan_result.resources_scanned,
        repositories_scanned=scan_result.repositories_scanned,
        total_findings=len(findings),
        total_monthly_waste=total_waste,
        by_severity=by_severity,
        by_resource_type=by_resource_type,
    )

    return AnalysisResult(
        findings=findings,
        summary=summary,
        errors=list(scan_result.errors),
    )
