"""
Integration tests for ecrspectre end-to-end workflows.

Tests cover:
- Scan, analyze and render for untagged and stale images
- Partial failures surfacing as report warnings in every format
- A full ECR scan through the boto3 provider with mocked responses
"""

from __future__ import annotations

import json

import pytest

from conftest import FIXED_NOW, GIB
from ecrspectre.collectors import ECRProvider, StaticProvider
from ecrspectre.config import ExcludeConfig, ScanConfiguration
from ecrspectre.engine import ScanOrchestrator, analyze
from ecrspectre.export import (
    ExportFormat,
    ReportConfig,
    ReportData,
    Target,
    export_report,
)
from ecrspectre.models import FindingKind, RepositorySnapshot, Severity

pytestmark = pytest.mark.integration


def run_pipeline(provider, config=None, min_monthly_cost=0.0):
    """Scan, analyze and build report data."""
    config = config or ScanConfiguration(min_monthly_cost=min_monthly_cost)
    result = ScanOrchestrator(provider, clock=lambda: FIXED_NOW).scan(config)
    analysis = analyze(result, min_monthly_cost)
    return ReportData.from_analysis(
        analysis,
        target=Target(type="ecr", uri_hash="sha256:test"),
        config=ReportConfig(provider="aws", regions=provider.locations()),
        timestamp=FIXED_NOW,
    )


class TestScanWorkflow:
    """Tests for complete scans against in-memory registries."""

    def test_untagged_image(self, make_image):
        """Test one untagged 1 GiB image pushed recently."""
        provider = StaticProvider(
            repositories={"us-east-1": [RepositorySnapshot("app", "us-east-1")]},
            images={"app": [make_image(tags=(), size_bytes=GIB, pushed_days_ago=10)]},
        )

        data = run_pipeline(provider)

        assert [f.kind for f in data.findings] == [FindingKind.UNTAGGED_IMAGE]
        finding = data.findings[0]
        assert finding.severity == Severity.HIGH
        assert finding.estimated_monthly_waste == pytest.approx(0.10)
        assert data.summary.total_monthly_waste == pytest.approx(0.10)

    def test_stale_image(self, make_image):
        """Test one tagged 0.5 GiB image last pulled 120 days ago."""
        provider = StaticProvider(
            repositories={"us-east-1": [RepositorySnapshot("app", "us-east-1")]},
            images={
                "app": [
                    make_image(
                        tags=("v1",),
                        size_bytes=GIB // 2,
                        pushed_days_ago=200,
                        pulled_days_ago=120,
                    ),
                    make_image(digest="sha256:new", pulled_days_ago=1),
                ]
            },
        )

        data = run_pipeline(provider, ScanConfiguration(stale_days=90))

        stale = [f for f in data.findings if f.kind == FindingKind.STALE_IMAGE]
        assert len(stale) == 1
        assert stale[0].severity == Severity.HIGH
        assert stale[0].metadata["days_stale"] >= 120
        assert stale[0].estimated_monthly_waste == pytest.approx(0.05)

    @pytest.mark.parametrize("export_format", list(ExportFormat))
    def test_listing_failure_still_renders(self, export_format):
        """Test a failed listing yields one warning and a renderable report."""
        provider = StaticProvider(
            repositories={"us-east-1": []},
            list_failures={"us-east-1": RuntimeError("AccessDeniedException: denied")},
        )

        data = run_pipeline(provider)

        assert data.findings == []
        assert data.errors == ["us-east-1: RuntimeError: AccessDeniedException: denied"]

        result = export_report(data, export_format)
        assert result.success
        if export_format == ExportFormat.TEXT:
            assert "Warnings (1):" in result.content
        elif export_format != ExportFormat.SARIF:
            assert json.loads(result.content)["errors"] == data.errors

    def test_cost_filter(self, mixed_registry):
        """Test the cost threshold hides cheap findings from every output."""
        data = run_pipeline(mixed_registry, min_monthly_cost=0.10)

        assert [f.kind for f in data.findings] == [
            FindingKind.STALE_IMAGE,
            FindingKind.LARGE_IMAGE,
        ]
        assert data.summary.total_findings == 2
        assert data.summary.total_resources_scanned == 4


class TestECRWorkflow:
    """Tests for a scan through the boto3-backed provider."""

    def test_ecr_scan(self, mock_ecr_client):
        """Test a full ECR scan with mocked API responses."""
        mock_ecr_client.get_lifecycle_policy.side_effect = (
            mock_ecr_client.exceptions.LifecyclePolicyNotFoundException()
        )
        provider = ECRProvider(["us-east-1"])
        config = ScanConfiguration(include_scan=True)

        result = ScanOrchestrator(provider, clock=lambda: FIXED_NOW).scan(config)

        assert result.errors == []
        assert result.repositories_scanned == 1
        assert result.resources_scanned == 2
        assert [f.kind for f in result.findings] == [
            FindingKind.NO_LIFECYCLE_POLICY,
            FindingKind.UNTAGGED_IMAGE,
            FindingKind.STALE_IMAGE,
            FindingKind.VULNERABLE_IMAGE,
            FindingKind.VULNERABLE_IMAGE,
        ]
        assert result.findings[0].resource_id == "prod-app"
        assert result.findings[1].resource_id == "prod-app@sha256:def456"

    def test_ecr_tag_lookup_denied(self, mock_ecr_client):
        """Test a denied tag lookup skips the repository with a warning."""
        from botocore.exceptions import ClientError

        mock_ecr_client.list_tags_for_resource.side_effect = ClientError(
            {"Error": {"Code": "AccessDeniedException", "Message": "not allowed"}},
            "ListTagsForResource",
        )
        provider = ECRProvider(["us-east-1"], fetch_tags=True)
        config = ScanConfiguration(exclude=ExcludeConfig(tags={"env": "prod"}))

        result = ScanOrchestrator(provider, clock=lambda: FIXED_NOW).scan(config)

        assert result.findings == []
        assert result.errors == [
            "us-east-1/prod-app tags: AccessDeniedException: not allowed"
        ]
