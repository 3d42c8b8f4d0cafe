"""
Registry provider framework for ecrspectre.

This module provides the abstract capability interface every registry
provider implements, the error type adapters raise, and an in-memory
provider used for tests and library embedding.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from ecrspectre.models import (
    ImageSnapshot,
    RepositorySnapshot,
    VulnerabilityCounts,
    ensure_utc,
)

logger = logging.getLogger(__name__)

# Import botocore optionally
try:
    from botocore.exceptions import ClientError

    BOTOCORE_AVAILABLE = True
except ImportError:
    BOTOCORE_AVAILABLE = False
    ClientError = None  # type: ignore


class Capability(Enum):
    """Optional features a registry provider may support."""

    LIFECYCLE_POLICY = "lifecycle_policy"
    VULNERABILITY_SCAN = "vulnerability_scan"
    PULL_TIMESTAMPS = "pull_timestamps"


class RegistryError(Exception):
    """
    Raised by providers when a registry call fails.

    Attributes:
        action: What the provider was doing ("list repositories in us")
        cause: Underlying SDK exception, if any
    """

    def __init__(self, action: str, cause: BaseException | None = None) -> None:
        self.action = action
        self.cause = cause
        message = f"{action}: {describe_error(cause)}" if cause else action
        super().__init__(message)


def describe_error(exc: BaseException) -> str:
    """
    Render an exception as a one-line error string.

    AWS client errors are reduced to "Code: Message"; other exceptions
    keep their type name so credential and permission failures remain
    recognisable.

    Args:
        exc: Exception to describe

    Returns:
        Error string
    """
    if isinstance(exc, RegistryError):
        return str(exc)
    if ClientError is not None and isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = error.get("Code", "Unknown")
        message = error.get("Message", str(exc))
        return f"{code}: {message}"
    text = str(exc)
    if not text:
        return type(exc).__name__
    return f"{type(exc).__name__}: {text}"


def as_utc(value: Any) -> datetime | None:
    """Normalize SDK timestamps to timezone-aware UTC datetimes."""
    if value is None or not isinstance(value, datetime):
        return None
    return ensure_utc(value)


class RegistryProvider(ABC):
    """
    Abstract base class for container registry providers.

    A provider lists repositories per location and images per repository.
    Lifecycle policy lookups and vulnerability scan results are optional
    and advertised through `capabilities`; the orchestrator checks the
    capability set instead of branching on the provider type.

    All provider calls are read-only.

    Attributes:
        provider_key: Pricing key (ecr, artifactregistry)
        scanner_name: Name reported in progress events
        capabilities: Optional features this provider supports
    """

    provider_key: str = "base"
    scanner_name: str = "base"
    capabilities: frozenset[Capability] = frozenset()

    def supports(self, capability: Capability) -> bool:
        """Check if this provider declares a capability."""
        return capability in self.capabilities

    @abstractmethod
    def locations(self) -> list[str]:
        """
        Get the regions or locations to scan, in scan order.

        Returns:
            List of region or location names
        """
        pass

    @abstractmethod
    def list_repositories(self, location: str) -> list[RepositorySnapshot]:
        """
        List all in-scope container repositories in a location.

        Args:
            location: Region or location name

        Returns:
            Repository snapshots

        Raises:
            Exception: Any listing failure; the caller records it
        """
        pass

    @abstractmethod
    def list_images(self, repository: RepositorySnapshot) -> list[ImageSnapshot]:
        """
        List all image manifests in a repository.

        Args:
            repository: Repository to list

        Returns:
            Image snapshots
        """
        pass

    def has_lifecycle_policy(self, repository: RepositorySnapshot) -> bool:
        """
        Check whether a repository has an expiration policy.

        Only available with Capability.LIFECYCLE_POLICY.
        """
        raise NotImplementedError(
            f"{self.scanner_name} does not support lifecycle policies"
        )

    def get_vulnerability_counts(
        self, repository: RepositorySnapshot, digest: str
    ) -> VulnerabilityCounts:
        """
        Get severity counts from the registry's own image scan.

        Only available with Capability.VULNERABILITY_SCAN.
        """
        raise NotImplementedError(
            f"{self.scanner_name} does not support vulnerability scans"
        )


class StaticProvider(RegistryProvider):
    """
    In-memory registry provider.

    Serves fixed repositories and images. Any value in `failures` that is
    an exception is raised from the matching call, keyed by location for
    repository listing and by repository resource id for the rest.

    Example:
        >>> provider = StaticProvider(
        ...     repositories={"us-east-1": [RepositorySnapshot("app", "us-east-1")]},
        ...     images={"app": [ImageSnapshot("app", "sha256:abc")]},
        ... )
    """

    def __init__(
        self,
        repositories: dict[str, list[RepositorySnapshot]],
        images: dict[str, list[ImageSnapshot]] | None = None,
        lifecycle_policies: dict[str, bool] | None = None,
        vulnerabilities: dict[str, VulnerabilityCounts] | None = None,
        capabilities: Iterable[Capability] = (Capability.PULL_TIMESTAMPS,),
        provider_key: str = "ecr",
        scanner_name: str = "static",
        list_failures: dict[str, Exception] | None = None,
        image_failures: dict[str, Exception] | None = None,
        lifecycle_failures: dict[str, Exception] | None = None,
    ) -> None:
        """
        Initialize the provider.

        Args:
            repositories: Location to repositories
            images: Repository resource id to images
            lifecycle_policies: Repository resource id to policy presence
            vulnerabilities: Image resource id to severity counts
            capabilities: Declared capabilities
            provider_key: Pricing key
            scanner_name: Name reported in progress events
            list_failures: Location to exception raised when listing
            image_failures: Repository id to exception raised when listing images
            lifecycle_failures: Repository id to exception raised on policy lookup
        """
        self._repositories = repositories
        self._images = images or {}
        self._lifecycle_policies = lifecycle_policies or {}
        self._vulnerabilities = vulnerabilities or {}
        self.capabilities = frozenset(capabilities)
        self.provider_key = provider_key
        self.scanner_name = scanner_name
        self._list_failures = list_failures or {}
        self._image_failures = image_failures or {}
        self._lifecycle_failures = lifecycle_failures or {}

    def locations(self) -> list[str]:
        return list(self._repositories.keys())

    def list_repositories(self, location: str) -> list[RepositorySnapshot]:
        if location in self._list_failures:
            raise self._list_failures[location]
        return list(self._repositories.get(location, []))

    def list_images(self, repository: RepositorySnapshot) -> list[ImageSnapshot]:
        if repository.resource_id in self._image_failures:
            raise self._image_failures[repository.resource_id]
        return list(self._images.get(repository.resource_id, []))

    def has_lifecycle_policy(self, repository: RepositorySnapshot) -> bool:
        if not self.supports(Capability.LIFECYCLE_POLICY):
            return super().has_lifecycle_policy(repository)
        if repository.resource_id in self._lifecycle_failures:
            raise self._lifecycle_failures[repository.resource_id]
        return self._lifecycle_policies.get(repository.resource_id, False)

    def get_vulnerability_counts(
        self, repository: RepositorySnapshot, digest: str
    ) -> VulnerabilityCounts:
        if not self.supports(Capability.VULNERABILITY_SCAN):
            return super().get_vulnerability_counts(repository, digest)
        key = f"{repository.resource_id}@{digest}"
        if key not in self._vulnerabilities:
            raise RegistryError(f"no scan findings for {key}")
        return self._vulnerabilities[key]
