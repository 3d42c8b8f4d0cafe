"""
Registry inventory snapshots for ecrspectre.

Repository and image snapshots are built fresh by a registry provider for
every scan and are never mutated afterwards. They are the only input the
classifier looks at.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

MULTI_ARCH_MEDIA_TYPE_MARKERS = ("manifest.list", "image.index")


def ensure_utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)



@dataclass(frozen=True)
class RepositorySnapshot:
    """
    A container repository as listed by a provider.

    Attributes:
        resource_id: Identifier used for exclusion and findings
            (ECR repository name, Artifact Registry repository id)
        region: Region or location of the repository
        name: Provider native name (Artifact Registry full resource path)
        format: Package format, only DOCKER repositories are audited
        labels: Repository tags/labels, used for tag exclusion
        labels_error: Why labels could not be read, empty when they were
    """

    resource_id: str
    region: str
    name: str = ""
    format: str = "DOCKER"
    labels: dict[str, str] = field(default_factory=dict)
    labels_error: str = ""

    @property
    def native_name(self) -> str:
        """Name to hand back to the provider API."""
        return self.name or self.resource_id

    def matches_tags(self, exclude_tags: dict[str, str]) -> bool:
        """
        Check whether any exclusion tag matches this repository.

        A tag with an empty value matches any value of that key.

        Args:
            exclude_tags: Mapping of tag key to value

        Returns:
            True if the repository carries a matching tag
        """
        for key, value in exclude_tags.items():
            if key not in self.labels:
                continue
            if value == "" or self.labels[key] == value:
                return True
        return False


@dataclass(frozen=True)
class ImageSnapshot:
    """
    An image manifest inside a repository.

    Attributes:
        repository: Resource id of the owning repository
        digest: Content digest, unique within the repository
        tags: Tags pointing at the manifest, possibly empty
        size_bytes: Stored size
        pushed_at: Push (ECR) or upload (Artifact Registry) time
        last_pulled_at: Last recorded pull, None when unknown or unsupported
        media_type: Manifest media type
        uri: Provider image URI, when the provider exposes one
    """

    repository: str
    digest: str
    tags: tuple[str, ...] = ()
    size_bytes: int = 0
    pushed_at: datetime | None = None
    last_pulled_at: datetime | None = None
    media_type: str = ""
    uri: str = ""

    def __post_init__(self) -> None:
        # Timestamps are compared against an aware UTC clock.
        for name in ("pushed_at", "last_pulled_at"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, ensure_utc(value))

    @property
    def resource_id(self) -> str:
        """Identifier used on image findings."""
        if self.uri:
            return self.uri
        return f"{self.repository}@{self.digest}"

    @property
    def display_name(self) -> str:
        """repo:tag1,tag2 or empty for untagged images."""
        if not self.tags:
            return ""
        return f"{self.repository}:{','.join(self.tags)}"

    @property
    def is_tagged(self) -> bool:
        return len(self.tags) > 0

    @property
    def is_multi_arch(self) -> bool:
        """Check if the manifest is a multi-platform list or index."""
        return any(marker in self.media_type for marker in MULTI_ARCH_MEDIA_TYPE_MARKERS)

    @property
    def last_activity(self) -> datetime | None:
        """Last pull when known, else push time."""
        if self.last_pulled_at is not None:
            return self.last_pulled_at
        return self.pushed_at

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)


@dataclass(frozen=True)
class ScanProgress:
    """
    Progress event emitted by the orchestrator.

    Attributes:
        region: Region or location being scanned
        scanner: Scanner name (ecr, artifactregistry)
        message: Human readable progress message
        timestamp: When the event was emitted
    """

    region: str
    scanner: str
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "region": self.region,
            "scanner": self.scanner,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class VulnerabilityCounts:
    """
    Severity histogram of a registry-native image scan.

    Keys are upper-case registry severities (CRITICAL, HIGH, MEDIUM, LOW,
    INFORMATIONAL, UNDEFINED).
    """

    counts: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def critical(self) -> int:
        return self.counts.get("CRITICAL", 0)

    @property
    def high(self) -> int:
        return self.counts.get("HIGH", 0)

    def has_critical_or_high(self) -> bool:
        """Check if the scan reported any critical or high CVE."""
        return self.critical > 0 or self.high > 0
