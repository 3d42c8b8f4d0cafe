"""
Storage pricing for container registries.

Maps (provider, region) to a flat per-GB-month storage rate using the
published list prices. Lookups never fail: an unknown region falls back
to the provider default and an unknown provider to the global default.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

BYTES_PER_GB = 1024**3

DEFAULT_RATE_PER_GB_MONTH = 0.10

PROVIDER_ECR = "ecr"
PROVIDER_ARTIFACT_REGISTRY = "artifactregistry"

# USD per GB per month.
# ECR charges the same rate in every region; Artifact Registry single- and
# multi-region Docker storage is listed at the same rate.
STORAGE_COSTS_PER_GB_MONTH: dict[str, dict[str, float]] = {
    PROVIDER_ECR: {
        "default": 0.10,
    },
    PROVIDER_ARTIFACT_REGISTRY: {
        "us": 0.10,
        "europe": 0.10,
        "asia": 0.10,
        "us-central1": 0.10,
        "us-east1": 0.10,
        "us-east4": 0.10,
        "us-west1": 0.10,
        "us-west2": 0.10,
        "europe-west1": 0.10,
        "europe-west2": 0.10,
        "europe-west4": 0.10,
        "asia-east1": 0.10,
        "asia-southeast1": 0.10,
        "default": 0.10,
    },
}


def rate_per_gb(provider: str, region: str) -> float:
    """
    Get the per-GB monthly storage rate.

    Args:
        provider: Provider key (ecr, artifactregistry)
        region: Region or location

    Returns:
        Rate in USD per GB-month
    """
    provider_costs = STORAGE_COSTS_PER_GB_MONTH.get(provider)
    if provider_costs is None:
        logger.debug(f"No pricing for provider {provider!r}, using global default")
        return DEFAULT_RATE_PER_GB_MONTH

    if region in provider_costs:
        return provider_costs[region]
    return provider_costs.get("default", DEFAULT_RATE_PER_GB_MONTH)


def monthly_cost(provider: str, region: str, size_bytes: int) -> float:
    """
    Estimate the monthly storage cost of size_bytes.

    Cost is linear in size: size_bytes / 2^30 * rate. Zero or negative
    sizes cost exactly zero.

    Args:
        provider: Provider key (ecr, artifactregistry)
        region: Region or location
        size_bytes: Stored size in bytes

    Returns:
        Monthly cost in USD
    """
    if size_bytes <= 0:
        return 0.0
    return size_bytes / BYTES_PER_GB * rate_per_gb(provider, region)
