"""
Waste classification rules for ecrspectre.

Pure functions that turn one image or repository snapshot plus the scan
configuration into findings. Nothing here performs I/O or reads the
system clock; "now" is always passed in by the caller.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from ecrspectre.config import ScanConfiguration
from ecrspectre.models import (
    Finding,
    FindingKind,
    ImageSnapshot,
    RepositorySnapshot,
    ResourceType,
    Severity,
    VulnerabilityCounts,
    ensure_utc,
)
from ecrspectre.pricing import monthly_cost

NO_PULL_DATA_NOTE = "Registry records no pull timestamp; staleness based on upload time"
NO_LIFECYCLE_MESSAGE = "No lifecycle policy configured, images accumulate indefinitely"
EMPTY_REPOSITORY_MESSAGE = "Repository has no images"

STALENESS_BASIS_PULL = "last_pull"
STALENESS_BASIS_PUSH = "push"


def _rfc3339(value: datetime) -> str:
    return ensure_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


def is_stale(image: ImageSnapshot, config: ScanConfiguration, now: datetime) -> bool:
    """
    Check whether an image has been inactive for longer than stale_days.

    Activity is the last pull when known, else the push time. An image
    with neither timestamp is never stale, and stale_days of zero
    disables the check.
    """
    if config.stale_days <= 0:
        return False
    last_activity = image.last_activity
    if last_activity is None:
        return False
    return last_activity < now - timedelta(days=config.stale_days)


def days_since(moment: datetime, now: datetime) -> int:
    """Whole days elapsed between moment and now, truncated."""
    return int((now - moment).total_seconds() / 86400)


def classify_image(
    image: ImageSnapshot,
    repository: RepositorySnapshot,
    config: ScanConfiguration,
    now: datetime,
    provider_key: str,
    pull_timestamps: bool = True,
) -> list[Finding]:
    """
    Evaluate the per-image rules.

    Rules are evaluated independently, so one image may carry several
    findings. Each finding reports the full monthly storage cost of the
    image.

    Args:
        image: Image to classify
        repository: Repository the image belongs to
        config: Scan configuration
        now: Reference time for staleness
        provider_key: Pricing key of the provider
        pull_timestamps: Whether the provider records pull times at all

    Returns:
        Findings in rule order: untagged, stale, large, multi-arch
    """
    findings: list[Finding] = []
    region = repository.region
    cost = monthly_cost(provider_key, region, image.size_bytes)
    size_mb = image.size_mb
    resource_id = image.resource_id
    resource_name = image.display_name

    if not image.is_tagged:
        metadata: dict[str, Any] = {
            "size_bytes": image.size_bytes,
            "digest": image.digest,
        }
        if image.uri:
            metadata["uri"] = image.uri
        findings.append(
            Finding(
                kind=FindingKind.UNTAGGED_IMAGE,
                severity=Severity.HIGH,
                resource_type=ResourceType.IMAGE,
                resource_id=resource_id,
                region=region,
                message=f"Untagged image ({size_mb:.0f} MB)",
                estimated_monthly_waste=cost,
                metadata=metadata,
            )
        )

    stale = is_stale(image, config, now)
    if stale:
        findings.append(
            _stale_finding(
                image, image.last_activity, config, now, region, cost, pull_timestamps
            )
        )

    if config.max_size_bytes > 0 and image.size_bytes > config.max_size_bytes:
        findings.append(
            Finding(
                kind=FindingKind.LARGE_IMAGE,
                severity=Severity.MEDIUM,
                resource_type=ResourceType.IMAGE,
                resource_id=resource_id,
                resource_name=resource_name,
                region=region,
                message=(
                    f"Image is {size_mb:.0f} MB "
                    f"(threshold: {config.max_size_mb} MB)"
                ),
                estimated_monthly_waste=cost,
                metadata={
                    "size_bytes": image.size_bytes,
                    "threshold_bytes": config.max_size_bytes,
                },
            )
        )

    # Only reported together with staleness.
    if image.is_multi_arch and stale:
        findings.append(
            Finding(
                kind=FindingKind.MULTI_ARCH_BLOAT,
                severity=Severity.LOW,
                resource_type=ResourceType.IMAGE,
                resource_id=resource_id,
                resource_name=resource_name,
                region=region,
                message=f"Stale multi-architecture image ({size_mb:.0f} MB)",
                estimated_monthly_waste=cost,
                metadata={
                    "size_bytes": image.size_bytes,
                    "media_type": image.media_type,
                },
            )
        )

    return findings


def _stale_finding(
    image: ImageSnapshot,
    last_activity: datetime,
    config: ScanConfiguration,
    now: datetime,
    region: str,
    cost: float,
    pull_timestamps: bool,
) -> Finding:
    days = days_since(last_activity, now)
    size_mb = image.size_mb

    metadata: dict[str, Any] = {
        "last_activity": _rfc3339(last_activity),
        "days_stale": days,
        "size_bytes": image.size_bytes,
        "stale_days": config.stale_days,
    }

    if pull_timestamps:
        basis = STALENESS_BASIS_PULL if image.last_pulled_at else STALENESS_BASIS_PUSH
        metadata["staleness_basis"] = basis
        message = f"Not pulled in {days} days ({size_mb:.0f} MB)"
    else:
        metadata["staleness_basis"] = STALENESS_BASIS_PUSH
        metadata["upload_time"] = _rfc3339(last_activity)
        metadata["note"] = NO_PULL_DATA_NOTE
        message = f"Uploaded {days} days ago, no pull data available ({size_mb:.0f} MB)"

    return Finding(
        kind=FindingKind.STALE_IMAGE,
        severity=Severity.HIGH,
        resource_type=ResourceType.IMAGE,
        resource_id=image.resource_id,
        resource_name=image.display_name,
        region=region,
        message=message,
        estimated_monthly_waste=cost,
        metadata=metadata,
    )


def empty_repository_finding(repository: RepositorySnapshot) -> Finding:
    """UNUSED_REPO for a repository without images, zero waste."""
    return Finding(
        kind=FindingKind.UNUSED_REPO,
        severity=Severity.LOW,
        resource_type=ResourceType.REPOSITORY,
        resource_id=repository.resource_id,
        region=repository.region,
        message=EMPTY_REPOSITORY_MESSAGE,
        estimated_monthly_waste=0.0,
    )


def unused_repository_finding(
    repository: RepositorySnapshot,
    images: list[ImageSnapshot],
    provider_key: str,
) -> Finding:
    """
    UNUSED_REPO for a repository whose images are all stale.

    Waste is the sum of every image's individual monthly cost.
    """
    total_waste = sum(
        monthly_cost(provider_key, repository.region, image.size_bytes)
        for image in images
    )
    return Finding(
        kind=FindingKind.UNUSED_REPO,
        severity=Severity.LOW,
        resource_type=ResourceType.REPOSITORY,
        resource_id=repository.resource_id,
        region=repository.region,
        message=f"All {len(images)} images are stale",
        estimated_monthly_waste=total_waste,
        metadata={"image_count": len(images)},
    )


def lifecycle_policy_finding(repository: RepositorySnapshot) -> Finding:
    """NO_LIFECYCLE_POLICY for a repository without an expiration policy."""
    return Finding(
        kind=FindingKind.NO_LIFECYCLE_POLICY,
        severity=Severity.MEDIUM,
        resource_type=ResourceType.REPOSITORY,
        resource_id=repository.resource_id,
        region=repository.region,
        message=NO_LIFECYCLE_MESSAGE,
    )


def vulnerability_finding(
    resource_id: str,
    region: str,
    counts: VulnerabilityCounts,
    resource_name: str = "",
) -> Finding | None:
    """
    VULNERABLE_IMAGE when the registry scan reported critical or high CVEs.

    Low and medium only results produce no finding. Vulnerabilities are
    not storage waste, so the estimated waste is always zero.

    Args:
        resource_id: Image resource id
        region: Region of the image
        counts: Severity counts from the registry scan
        resource_name: Optional repo:tag name

    Returns:
        Finding, or None when nothing critical or high was reported
    """
    if not counts.has_critical_or_high():
        return None

    return Finding(
        kind=FindingKind.VULNERABLE_IMAGE,
        severity=Severity.CRITICAL,
        resource_type=ResourceType.IMAGE,
        resource_id=resource_id,
        resource_name=resource_name,
        region=region,
        message=(
            f"{counts.total} vulnerabilities "
            f"({counts.critical} critical, {counts.high} high)"
        ),
        metadata={
            "total_findings": counts.total,
            "critical_count": counts.critical,
            "high_count": counts.high,
            "severity_counts": dict(counts.counts),
        },
    )
