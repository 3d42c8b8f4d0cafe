"""
Waste classification engine for ecrspectre.

- classifier: pure per-image and per-repository rules
- ScanOrchestrator: drives a registry provider and accumulates a ScanResult
- analyze: cost filtering and summary statistics
"""

from ecrspectre.engine.analyzer import AnalysisResult, Summary, analyze
from ecrspectre.engine.classifier import (
    classify_image,
    empty_repository_finding,
    is_stale,
    lifecycle_policy_finding,
    unused_repository_finding,
    vulnerability_finding,
)
from ecrspectre.engine.orchestrator import (
    RepositoryOutcome,
    ScanOrchestrator,
    utc_now,
)

__all__ = [
    "AnalysisResult",
    "RepositoryOutcome",
    "ScanOrchestrator",
    "Summary",
    "analyze",
    "classify_image",
    "empty_repository_finding",
    "is_stale",
    "lifecycle_policy_finding",
    "unused_repository_finding",
    "utc_now",
    "vulnerability_finding",
]
