"""
ecrspectre - Container Registry Waste Auditor

Audits AWS ECR and GCP Artifact Registry for storage waste and reports
cost-weighted findings for human review. It never deletes anything.

Detects:
- Untagged images
- Images not pulled (or, on Artifact Registry, not uploaded) recently
- Oversized images
- Repositories without lifecycle policies
- Images with critical or high CVEs in the registry's own scan
- Empty or fully stale repositories
- Stale multi-architecture manifests

Quick Start:
    >>> from ecrspectre.collectors import ECRProvider
    >>> from ecrspectre.config import ScanConfiguration
    >>> from ecrspectre.engine import ScanOrchestrator, analyze
    >>>
    >>> orchestrator = ScanOrchestrator(ECRProvider(["us-east-1"]))
    >>> result = orchestrator.scan(ScanConfiguration(stale_days=90))
    >>> analysis = analyze(result, min_monthly_cost=0.10)
    >>> print(f"${analysis.summary.total_monthly_waste:.2f} per month")
"""

from __future__ import annotations

__version__ = "0.1.0"
__author__ = "ecrspectre"

# Core models
from ecrspectre.models import (
    Finding,
    FindingKind,
    ImageSnapshot,
    RepositorySnapshot,
    ResourceType,
    ScanProgress,
    ScanResult,
    Severity,
    VulnerabilityCounts,
)

# Configuration
from ecrspectre.config import (
    ConfigError,
    ExcludeConfig,
    ScanConfiguration,
    load_config,
)

# Pricing
from ecrspectre.pricing import monthly_cost, rate_per_gb

# Providers
from ecrspectre.collectors import (
    ArtifactRegistryProvider,
    Capability,
    ECRProvider,
    RegistryError,
    RegistryProvider,
    StaticProvider,
)

# Engine
from ecrspectre.engine import (
    AnalysisResult,
    ScanOrchestrator,
    Summary,
    analyze,
    classify_image,
)

__all__ = [
    # Version
    "__version__",
    # Models
    "Finding",
    "FindingKind",
    "ImageSnapshot",
    "RepositorySnapshot",
    "ResourceType",
    "ScanProgress",
    "ScanResult",
    "Severity",
    "VulnerabilityCounts",
    # Configuration
    "ConfigError",
    "ExcludeConfig",
    "ScanConfiguration",
    "load_config",
    # Pricing
    "monthly_cost",
    "rate_per_gb",
    # Providers
    "ArtifactRegistryProvider",
    "Capability",
    "ECRProvider",
    "RegistryError",
    "RegistryProvider",
    "StaticProvider",
    # Engine
    "AnalysisResult",
    "ScanOrchestrator",
    "Summary",
    "analyze",
    "classify_image",
]
