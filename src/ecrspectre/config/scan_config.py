"""
Scan configuration for ecrspectre.

Provides the immutable parameters that control one scan: staleness
threshold, size threshold, cost floor and exclusions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_STALE_DAYS = 90
DEFAULT_MAX_SIZE_MB = 1024
DEFAULT_MIN_MONTHLY_COST = 0.10
DEFAULT_TIMEOUT_SECONDS = 600.0

BYTES_PER_MB = 1024 * 1024


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


@dataclass(frozen=True)
class ExcludeConfig:
    """
    Resources to skip during scanning.

    Attributes:
        resource_ids: Repository ids or image resource ids to skip
        tags: Tag key to value; an empty value matches any value
    """

    resource_ids: frozenset[str] = field(default_factory=frozenset)
    tags: dict[str, str] = field(default_factory=dict)

    def is_excluded_id(self, resource_id: str) -> bool:
        return resource_id in self.resource_ids

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "resource_ids": sorted(self.resource_ids),
            "tags": dict(self.tags),
        }


@dataclass(frozen=True)
class ScanConfiguration:
    """
    Parameters fixed for the duration of one scan.

    Attributes:
        stale_days: Days without activity before an image is stale (0 disables)
        max_size_bytes: Largest acceptable image size (0 disables)
        min_monthly_cost: Minimum monthly waste for a finding to be reported
        exclude: Exclusion rules
        include_scan: Also query registry vulnerability scan results
    """

    stale_days: int = DEFAULT_STALE_DAYS
    max_size_bytes: int = DEFAULT_MAX_SIZE_MB * BYTES_PER_MB
    min_monthly_cost: float = DEFAULT_MIN_MONTHLY_COST
    exclude: ExcludeConfig = field(default_factory=ExcludeConfig)
    include_scan: bool = False

    def __post_init__(self) -> None:
        if self.stale_days < 0:
            raise ConfigError(f"stale_days must be >= 0, got {self.stale_days}")
        if self.max_size_bytes < 0:
            raise ConfigError(f"max_size_bytes must be >= 0, got {self.max_size_bytes}")
        if self.min_monthly_cost < 0:
            raise ConfigError(
                f"min_monthly_cost must be >= 0, got {self.min_monthly_cost}"
            )

    @property
    def max_size_mb(self) -> int:
        return self.max_size_bytes // BYTES_PER_MB

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "stale_days": self.stale_days,
            "max_size_bytes": self.max_size_bytes,
            "min_monthly_cost": self.min_monthly_cost,
            "exclude": self.exclude.to_dict(),
            "include_scan": self.include_scan,
        }
