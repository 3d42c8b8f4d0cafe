"""
Data models for ecrspectre.

This package provides the core data models used throughout ecrspectre:

- RepositorySnapshot / ImageSnapshot: registry inventory as listed by a provider
- Finding: one detected waste condition with its cost estimate
- ScanResult: findings, errors and counters of one provider scan
"""

from ecrspectre.models.finding import (
    Finding,
    FindingKind,
    ResourceType,
    ScanResult,
    Severity,
)
from ecrspectre.models.inventory import (
    ImageSnapshot,
    RepositorySnapshot,
    ScanProgress,
    VulnerabilityCounts,
    ensure_utc,
)

__all__ = [
    # Finding module
    "Finding",
    "FindingKind",
    "ResourceType",
    "ScanResult",
    "Severity",
    # Inventory module
    "ImageSnapshot",
    "RepositorySnapshot",
    "ScanProgress",
    "VulnerabilityCounts",
    "ensure_utc",
]
