"""
SARIF export functionality for ecrspectre.

Exports findings as SARIF v2.1.0 for code scanning dashboards and CI/CD
integration. Every finding kind has one static rule.
"""

from __future__ import annotations

import json
from typing import Any

from ecrspectre.export.base import BaseExporter, ExportFormat, ReportData
from ecrspectre.models import Finding, FindingKind, Severity

SARIF_SCHEMA = (
    "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/main/"
    "sarif-2.1/schema/sarif-schema-2.1.0.json"
)
SARIF_VERSION = "2.1.0"

# (short description, default level)
SARIF_RULES: dict[FindingKind, tuple[str, str]] = {
    FindingKind.UNTAGGED_IMAGE: ("Untagged container image", "error"),
    FindingKind.STALE_IMAGE: ("Stale container image", "error"),
    FindingKind.LARGE_IMAGE: ("Oversized container image", "warning"),
    FindingKind.NO_LIFECYCLE_POLICY: ("No lifecycle policy on repository", "warning"),
    FindingKind.VULNERABLE_IMAGE: ("Vulnerable container image", "error"),
    FindingKind.UNUSED_REPO: ("Unused container repository", "note"),
    FindingKind.MULTI_ARCH_BLOAT: ("Multi-architecture bloat", "note"),
}


def _severity_to_sarif_level(severity: Severity) -> str:
    """Convert finding severity to SARIF level."""
    mapping = {
        Severity.CRITICAL: "error",
        Severity.HIGH: "error",
        Severity.MEDIUM: "warning",
        Severity.LOW: "note",
    }
    return mapping.get(severity, "note")


def location_uri(finding: Finding) -> str:
    """Synthetic location: registry://<region>/<resource type>/<resource id>."""
    return (
        f"registry://{finding.region}/"
        f"{finding.resource_type.value}/{finding.resource_id}"
    )


class SARIFExporter(BaseExporter):
    """Exports findings to SARIF v2.1.0."""

    @property
    def format(self) -> ExportFormat:
        return ExportFormat.SARIF

    def render(self, data: ReportData) -> str:
        """Render the SARIF log."""
        sarif = {
            "$schema": SARIF_SCHEMA,
            "version": SARIF_VERSION,
            "runs": [
                {
                    "tool": {
                        "driver": {
                            "name": data.tool,
                            "version": data.version,
                            "rules": self._build_rules(),
                        },
                    },
                    "results": [self._build_result(f) for f in data.findings],
                }
            ],
        }
        return json.dumps(sarif, indent=2, default=str) + "\n"

    def _build_rules(self) -> list[dict[str, Any]]:
        return [
            {
                "id": kind.value,
                "shortDescription": {"text": description},
                "defaultConfiguration": {"level": level},
            }
            for kind, (description, level) in SARIF_RULES.items()
        ]

    def _build_result(self, finding: Finding) -> dict[str, Any]:
        return {
            "ruleId": finding.kind.value,
            "level": _severity_to_sarif_level(finding.severity),
            "message": {"text": finding.message},
            "locations": [
                {
                    "physicalLocation": {
                        "artifactLocation": {"uri": location_uri(finding)},
                    },
                }
            ],
            "properties": {
                "resourceName": finding.resource_name,
                "estimatedMonthlyWaste": finding.estimated_monthly_waste,
                "metadata": finding.metadata or None,
            },
        }
