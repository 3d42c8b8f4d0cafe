"""
Pytest configuration and fixtures for ecrspectre tests.

This module provides common fixtures used across unit and integration tests.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from unittest.mock import MagicMock, patch

import pytest

from ecrspectre.collectors import Capability, StaticProvider
from ecrspectre.config import ScanConfiguration
from ecrspectre.models import ImageSnapshot, RepositorySnapshot

GIB = 1024**3
MIB = 1024**2

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

MANIFEST_LIST_MEDIA_TYPE = "application/vnd.docker.distribution.manifest.list.v2+json"
MANIFEST_MEDIA_TYPE = "application/vnd.docker.distribution.manifest.v2+json"


# Logging


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo logging configuration done by CLI entry points."""
    yield
    logger = logging.getLogger("ecrspectre")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


# Clock fixtures


@pytest.fixture
def fixed_now() -> datetime:
    """Return the reference time used by all scans."""
    return FIXED_NOW


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Return a clock that always reports FIXED_NOW."""
    return lambda: FIXED_NOW


# Sample data fixtures


@pytest.fixture
def make_image() -> Callable[..., ImageSnapshot]:
    """Return a factory for ImageSnapshot with sensible defaults."""

    def _make(
        repository: str = "app",
        digest: str = "sha256:aaa",
        tags: tuple[str, ...] = ("latest",),
        size_bytes: int = 100 * MIB,
        pushed_days_ago: int | None = 10,
        pulled_days_ago: int | None = None,
        media_type: str = MANIFEST_MEDIA_TYPE,
        uri: str = "",
    ) -> ImageSnapshot:
        pushed_at = None
        if pushed_days_ago is not None:
            pushed_at = FIXED_NOW - timedelta(days=pushed_days_ago)
        last_pulled_at = None
        if pulled_days_ago is not None:
            last_pulled_at = FIXED_NOW - timedelta(days=pulled_days_ago)
        return ImageSnapshot(
            repository=repository,
            digest=digest,
            tags=tags,
            size_bytes=size_bytes,
            pushed_at=pushed_at,
            last_pulled_at=last_pulled_at,
            media_type=media_type,
            uri=uri,
        )

    return _make


@pytest.fixture
def sample_repository() -> RepositorySnapshot:
    """Return a sample ECR repository."""
    return RepositorySnapshot(resource_id="app", region="us-east-1")


@pytest.fixture
def default_config() -> ScanConfiguration:
    """Return the default scan configuration."""
    return ScanConfiguration()


@pytest.fixture
def ecr_like_capabilities() -> frozenset[Capability]:
    """Return the capability set of the ECR provider."""
    return frozenset(
        {
            Capability.LIFECYCLE_POLICY,
            Capability.VULNERABILITY_SCAN,
            Capability.PULL_TIMESTAMPS,
        }
    )


@pytest.fixture
def mixed_registry(make_image, ecr_like_capabilities) -> StaticProvider:
    """
    Return an in-memory ECR-like registry with one repository.

    Holds a fresh tagged image, a stale tagged image, an untagged image
    and an oversized image; the repository has no lifecycle policy.
    """
    images = [
        make_image(digest="sha256:fresh", tags=("v3",), pulled_days_ago=2),
        make_image(
            digest="sha256:old",
            tags=("v1",),
            size_bytes=GIB,
            pushed_days_ago=400,
            pulled_days_ago=200,
        ),
        make_image(digest="sha256:orphan", tags=(), size_bytes=512 * MIB),
        make_image(
            digest="sha256:huge",
            tags=("v2",),
            size_bytes=2 * GIB,
            pulled_days_ago=1,
        ),
    ]
    return StaticProvider(
        repositories={"us-east-1": [RepositorySnapshot("app", "us-east-1")]},
        images={"app": images},
        lifecycle_policies={"app": False},
        capabilities=ecr_like_capabilities,
    )


# AWS mock fixtures


@pytest.fixture
def mock_boto_session():
    """Return a mocked boto3 session."""
    with patch("boto3.Session") as mock_session:
        session = MagicMock()
        session.region_name = "us-east-1"
        mock_session.return_value = session
        yield session


@pytest.fixture
def mock_ecr_client(mock_boto_session):
    """
    Return a mocked ECR client.

    Paginated responses are read from `client.pages`, keyed by API
    method name, so tests can replace them.
    """
    client = MagicMock()
    mock_boto_session.client.return_value = client

    # Create mock exceptions
    class MockExceptions:
        class LifecyclePolicyNotFoundException(Exception):
            pass

    client.exceptions = MockExceptions()

    pages: dict[str, list[dict[str, Any]]] = {
        "describe_repositories": [
            {
                "repositories": [
                    {
                        "repositoryName": "prod-app",
                        "repositoryArn": (
                            "arn:aws:ecr:us-east-1:123456789012:repository/prod-app"
                        ),
                        "createdAt": datetime(2024, 1, 1, tzinfo=timezone.utc),
                    }
                ]
            }
        ],
        "describe_images": [
            {
                "imageDetails": [
                    {
                        "imageDigest": "sha256:abc123",
                        "imageTags": ["v1.0.0", "latest"],
                        "imageSizeInBytes": 150 * MIB,
                        "imagePushedAt": datetime(2024, 1, 10, tzinfo=timezone.utc),
                        "lastRecordedPullTime": datetime(
                            2024, 5, 30, tzinfo=timezone.utc
                        ),
                        "imageManifestMediaType": MANIFEST_MEDIA_TYPE,
                    },
                    {
                        "imageDigest": "sha256:def456",
                        "imageSizeInBytes": 80 * MIB,
                        "imagePushedAt": datetime(2023, 6, 1, tzinfo=timezone.utc),
                    },
                ]
            }
        ],
        "describe_image_scan_findings": [
            {
                "imageScanFindings": {
                    "findings": [
                        {"name": "CVE-2024-0001", "severity": "CRITICAL"},
                        {"name": "CVE-2024-0002", "severity": "HIGH"},
                        {"name": "CVE-2024-0003", "severity": "MEDIUM"},
                    ]
                }
            }
        ],
    }

    def get_paginator(method: str) -> MagicMock:
        paginator = MagicMock()
        paginator.paginate.return_value = pages.get(method, [])
        return paginator

    client.get_paginator.side_effect = get_paginator
    client.pages = pages
    client.get_lifecycle_policy.return_value = {"lifecyclePolicyText": "{}"}
    client.list_tags_for_resource.return_value = {
        "tags": [{"Key": "env", "Value": "production"}]
    }

    return client


# GCP mock fixtures


@pytest.fixture
def mock_gcp_ar_client():
    """Return a mocked GCP Artifact Registry client."""
    client = MagicMock()

    # Default: return empty repositories
    client.list_repositories.return_value = []
    client.list_docker_images.return_value = []

    return client


@pytest.fixture
def make_gcp_repository() -> Callable[..., MagicMock]:
    """Return a factory for Artifact Registry repository messages."""

    def _make(
        repo_id: str,
        location: str = "us-central1",
        project: str = "test-project",
        format_name: str = "DOCKER",
        labels: dict[str, str] | None = None,
    ) -> MagicMock:
        repo = MagicMock()
        repo.name = f"projects/{project}/locations/{location}/repositories/{repo_id}"
        from google.cloud.artifactregistry_v1 import types

        repo.format_ = types.Repository.Format[format_name]
        repo.labels = labels or {}
        return repo

    return _make


@pytest.fixture
def make_gcp_image() -> Callable[..., MagicMock]:
    """Return a factory for Artifact Registry Docker image messages."""

    def _make(
        parent: str,
        digest: str,
        tags: list[str] | None = None,
        size_bytes: int = 100 * MIB,
        upload_days_ago: int = 10,
        media_type: str = MANIFEST_MEDIA_TYPE,
    ) -> MagicMock:
        image = MagicMock()
        image.name = f"{parent}/dockerImages/app@{digest}"
        image.uri = f"us-central1-docker.pkg.dev/test-project/repo/app@{digest}"
        image.tags = tags or []
        image.image_size_bytes = size_bytes
        image.upload_time = FIXED_NOW - timedelta(days=upload_days_ago)
        image.media_type = media_type
        return image

    return _make
