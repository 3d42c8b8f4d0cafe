"""
Finding data model for ecrspectre.

This module defines the Finding class representing one detected waste
condition in a container registry, and ScanResult which accumulates the
findings, errors and counters of a single provider scan.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(Enum):
    """Severity level of a finding."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_string(cls, value: str) -> Severity:
        """
        Create Severity from string value.

        Args:
            value: String representation (case-insensitive)

        Returns:
            Matching Severity enum value

        Raises:
            ValueError: If value is not a valid severity
        """
        value_lower = value.lower()
        for severity in cls:
            if severity.value == value_lower:
                return severity
        raise ValueError(f"Invalid severity: {value}")

    @property
    def rank(self) -> int:
        """Ordinal priority, higher is more severe."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}


class ResourceType(Enum):
    """Registry resource a finding is attached to."""

    IMAGE = "image"
    REPOSITORY = "repository"


class FindingKind(Enum):
    """Type of waste detected."""

    UNTAGGED_IMAGE = "UNTAGGED_IMAGE"
    STALE_IMAGE = "STALE_IMAGE"
    LARGE_IMAGE = "LARGE_IMAGE"
    NO_LIFECYCLE_POLICY = "NO_LIFECYCLE_POLICY"
    VULNERABLE_IMAGE = "VULNERABLE_IMAGE"
    UNUSED_REPO = "UNUSED_REPO"
    MULTI_ARCH_BLOAT = "MULTI_ARCH_BLOAT"


@dataclass(frozen=True)
class Finding:
    """
    Represents a single waste detection result.

    Findings are created once by the classifier and never mutated. Each
    finding carries its own cost estimate; two findings on the same image
    each report the full monthly storage cost of that image.

    Attributes:
        kind: What was detected
        severity: Severity level
        resource_type: Whether the finding targets an image or a repository
        resource_id: Identifier of the affected resource
        region: Region or location of the resource
        message: Human readable explanation
        estimated_monthly_waste: Monthly storage cost in USD
        resource_name: Optional human friendly name (repo:tag)
        metadata: Kind specific evidence (days_stale, size_bytes, ...)
    """

    kind: FindingKind
    severity: Severity
    resource_type: ResourceType
    resource_id: str
    region: str
    message: str
    estimated_monthly_waste: float = 0.0
    resource_name: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert finding to dictionary representation.

        Empty resource names and metadata are omitted.

        Returns:
            Dictionary with all finding fields
        """
        result: dict[str, Any] = {
            "id": self.kind.value,
            "severity": self.severity.value,
            "resource_type": self.resource_type.value,
            "resource_id": self.resource_id,
        }
        if self.resource_name:
            result["resource_name"] = self.resource_name
        result["region"] = self.region
        result["message"] = self.message
        result["estimated_monthly_waste"] = self.estimated_monthly_waste
        if self.metadata:
            result["metadata"] = self.metadata
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Finding:
        """
        Create a Finding from a dictionary.

        Args:
            data: Dictionary with finding fields

        Returns:
            New Finding instance
        """
        kind_val = data.get("id", data.get("kind"))
        kind = FindingKind(kind_val) if isinstance(kind_val, str) else kind_val

        severity_val = data.get("severity", "low")
        if isinstance(severity_val, str):
            severity = Severity.from_string(severity_val)
        else:
            severity = severity_val

        resource_type_val = data.get("resource_type", "image")
        if isinstance(resource_type_val, str):
            resource_type = ResourceType(resource_type_val)
        else:
            resource_type = resource_type_val

        return cls(
            kind=kind,
            severity=severity,
            resource_type=resource_type,
            resource_id=data.get("resource_id", ""),
            region=data.get("region", ""),
            message=data.get("message", ""),
            estimated_monthly_waste=float(data.get("estimated_monthly_waste", 0.0)),
            resource_name=data.get("resource_name", ""),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class ScanResult:
    """
    Complete, unfiltered output of one provider scan.

    The orchestrator appends to it while iterating repositories; callers
    treat it as read-only once scan() returns.

    Attributes:
        findings: Findings in emission order
        errors: One string per resource that failed to enumerate or inspect
        resources_scanned: Number of images classified
        repositories_scanned: Number of repositories enumerated
    """

    findings: list[Finding] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    resources_scanned: int = 0
    repositories_scanned: int = 0

    @property
    def success(self) -> bool:
        """Check if the scan completed without errors."""
        return len(self.errors) == 0

    def merge(self, other: ScanResult) -> ScanResult:
        """
        Merge with another result.

        Args:
            other: Another ScanResult to merge

        Returns:
            New ScanResult with findings and errors of both, in order
        """
        return ScanResult(
            findings=self.findings + other.findings,
            errors=self.errors + other.errors,
            resources_scanned=self.resources_scanned + other.resources_scanned,
            repositories_scanned=self.repositories_scanned + other.repositories_scanned,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {
            "findings": [f.to_dict() for f in self.findings],
            "resources_scanned": self.resources_scanned,
            "repositories_scanned": self.repositories_scanned,
        }
        if self.errors:
            result["errors"] = list(self.errors)
        return result
