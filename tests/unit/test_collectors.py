"""
Unit tests for ecrspectre registry providers.

Tests cover:
- ECR provider with mocked AWS responses
- Artifact Registry provider with a mocked client
- StaticProvider behaviour
- Error description helpers
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from conftest import MIB
from ecrspectre.collectors import (
    Capability,
    RegistryError,
    StaticProvider,
    describe_error,
)
from ecrspectre.collectors.aws_ecr import ECRProvider
from ecrspectre.collectors.base import as_utc
from ecrspectre.collectors.gcp_artifactregistry import (
    GCP_AR_AVAILABLE,
    ArtifactRegistryProvider,
    digest_from_image_name,
    repository_id_from_name,
)
from ecrspectre.models import RepositorySnapshot


class TestDescribeError:
    """Tests for describe_error."""

    def test_client_error(self):
        """Test AWS client errors render as code and message."""
        from botocore.exceptions import ClientError

        error = ClientError(
            {"Error": {"Code": "AccessDeniedException", "Message": "not allowed"}},
            "DescribeRepositories",
        )
        assert describe_error(error) == "AccessDeniedException: not allowed"

    def test_registry_error(self):
        """Test RegistryError keeps its own message."""
        error = RegistryError("list images app", ValueError("bad page"))
        assert describe_error(error) == "list images app: ValueError: bad page"

    def test_plain_exception(self):
        """Test other exceptions keep their type name."""
        assert describe_error(TimeoutError("read timed out")) == "TimeoutError: read timed out"
        assert describe_error(TimeoutError()) == "TimeoutError"


class TestAsUTC:
    """Tests for as_utc."""

    def test_naive_datetime_assumed_utc(self):
        """Test naive timestamps are tagged as UTC."""
        value = as_utc(datetime(2024, 1, 1))
        assert value.tzinfo == timezone.utc

    def test_non_datetime(self):
        """Test missing values map to None."""
        assert as_utc(None) is None
        assert as_utc("2024-01-01") is None


class TestECRProvider:
    """Tests for ECRProvider."""

    def test_capabilities(self, mock_boto_session):
        """Test ECR declares every optional capability."""
        provider = ECRProvider(["us-east-1"])
        assert provider.supports(Capability.LIFECYCLE_POLICY)
        assert provider.supports(Capability.VULNERABILITY_SCAN)
        assert provider.supports(Capability.PULL_TIMESTAMPS)
        assert provider.provider_key == "ecr"

    def test_session_uses_profile(self):
        """Test a named profile is passed to boto3."""
        with patch("boto3.Session") as mock_session:
            ECRProvider(["us-east-1"], profile="prod")
            mock_session.assert_called_once_with(profile_name="prod")

    def test_default_region(self, mock_boto_session):
        """Test the session region is exposed for region resolution."""
        provider = ECRProvider([])
        assert provider.default_region() == "us-east-1"
        provider.set_regions(["eu-west-1"])
        assert provider.locations() == ["eu-west-1"]

    def test_list_repositories(self, mock_ecr_client):
        """Test repositories are listed without tags by default."""
        provider = ECRProvider(["us-east-1"])

        repositories = provider.list_repositories("us-east-1")

        assert repositories == [RepositorySnapshot(resource_id="prod-app", region="us-east-1")]
        mock_ecr_client.list_tags_for_resource.assert_not_called()

    def test_list_repositories_with_tags(self, mock_ecr_client):
        """Test repository tags are fetched when requested."""
        provider = ECRProvider(["us-east-1"], fetch_tags=True)

        repositories = provider.list_repositories("us-east-1")

        assert repositories[0].labels == {"env": "production"}
        mock_ecr_client.list_tags_for_resource.assert_called_once_with(
            resourceArn="arn:aws:ecr:us-east-1:123456789012:repository/prod-app"
        )

    def test_list_repositories_tag_failure(self, mock_ecr_client):
        """Test a failed tag lookup is recorded on the repository."""
        from botocore.exceptions import ClientError

        mock_ecr_client.list_tags_for_resource.side_effect = ClientError(
            {"Error": {"Code": "AccessDeniedException", "Message": "not allowed"}},
            "ListTagsForResource",
        )
        provider = ECRProvider(["us-east-1"], fetch_tags=True)

        repositories = provider.list_repositories("us-east-1")

        assert repositories[0].labels == {}
        assert repositories[0].labels_error == "AccessDeniedException: not allowed"

    def test_client_cached_per_region(self, mock_ecr_client, mock_boto_session):
        """Test one client is created per region."""
        provider = ECRProvider(["us-east-1"])
        provider.list_repositories("us-east-1")
        provider.list_repositories("us-east-1")
        assert mock_boto_session.client.call_count == 1

    def test_list_images(self, mock_ecr_client):
        """Test image details are mapped onto snapshots."""
        provider = ECRProvider(["us-east-1"])
        repository = RepositorySnapshot("prod-app", "us-east-1")

        images = provider.list_images(repository)

        assert len(images) == 2
        tagged, untagged = images
        assert tagged.digest == "sha256:abc123"
        assert tagged.tags == ("v1.0.0", "latest")
        assert tagged.size_bytes == 150 * MIB
        assert tagged.last_pulled_at == datetime(2024, 5, 30, tzinfo=timezone.utc)
        assert tagged.resource_id == "prod-app@sha256:abc123"
        assert untagged.tags == ()
        assert untagged.last_pulled_at is None
        assert untagged.media_type == ""

    def test_has_lifecycle_policy(self, mock_ecr_client):
        """Test a present lifecycle policy."""
        provider = ECRProvider(["us-east-1"])
        assert provider.has_lifecycle_policy(RepositorySnapshot("prod-app", "us-east-1"))

    def test_missing_lifecycle_policy(self, mock_ecr_client):
        """Test LifecyclePolicyNotFoundException means no policy."""
        mock_ecr_client.get_lifecycle_policy.side_effect = (
            mock_ecr_client.exceptions.LifecyclePolicyNotFoundException()
        )
        provider = ECRProvider(["us-east-1"])
        assert not provider.has_lifecycle_policy(RepositorySnapshot("prod-app", "us-east-1"))

    def test_lifecycle_policy_other_errors_propagate(self, mock_ecr_client):
        """Test unexpected lifecycle errors are raised."""
        mock_ecr_client.get_lifecycle_policy.side_effect = RuntimeError("boom")
        provider = ECRProvider(["us-east-1"])
        with pytest.raises(RuntimeError):
            provider.has_lifecycle_policy(RepositorySnapshot("prod-app", "us-east-1"))

    def test_get_vulnerability_counts(self, mock_ecr_client):
        """Test scan findings are counted by severity."""
        provider = ECRProvider(["us-east-1"])

        counts = provider.get_vulnerability_counts(
            RepositorySnapshot("prod-app", "us-east-1"), "sha256:abc123"
        )

        assert counts.counts == {"CRITICAL": 1, "HIGH": 1, "MEDIUM": 1}
        assert counts.has_critical_or_high()

    def test_get_vulnerability_counts_failure(self, mock_ecr_client):
        """Test scan lookup failures are wrapped in RegistryError."""
        mock_ecr_client.get_paginator.side_effect = RuntimeError("ScanNotFoundException")
        provider = ECRProvider(["us-east-1"])

        with pytest.raises(RegistryError, match="prod-app@sha256:abc123"):
            provider.get_vulnerability_counts(
                RepositorySnapshot("prod-app", "us-east-1"), "sha256:abc123"
            )


class TestArtifactRegistryHelpers:
    """Tests for resource name helpers."""

    def test_repository_id_from_name(self):
        """Test the repository id is the last path segment."""
        name = "projects/p/locations/us/repositories/docker-repo"
        assert repository_id_from_name(name) == "docker-repo"

    def test_digest_from_image_name(self):
        """Test the digest follows the @ sign."""
        name = "projects/p/locations/us/repositories/r/dockerImages/app@sha256:abc"
        assert digest_from_image_name(name) == "sha256:abc"
        assert digest_from_image_name("no-digest") == ""


@pytest.mark.skipif(not GCP_AR_AVAILABLE, reason="google-cloud-artifact-registry not installed")
class TestArtifactRegistryProvider:
    """Tests for ArtifactRegistryProvider."""

    def test_no_optional_capabilities(self, mock_gcp_ar_client):
        """Test Artifact Registry declares no optional capability."""
        provider = ArtifactRegistryProvider("test-project", ["us"], client=mock_gcp_ar_client)
        assert provider.capabilities == frozenset()
        assert provider.provider_key == "artifactregistry"
        assert provider.project_id == "test-project"

    def test_list_repositories_docker_only(self, mock_gcp_ar_client, make_gcp_repository):
        """Test non-Docker and unspecified-format repositories are skipped."""
        mock_gcp_ar_client.list_repositories.return_value = [
            make_gcp_repository("docker-repo", labels={"env": "prod"}),
            make_gcp_repository("maven-repo", format_name="MAVEN"),
            make_gcp_repository("unknown-repo", format_name="FORMAT_UNSPECIFIED"),
        ]
        provider = ArtifactRegistryProvider(
            "test-project", ["us-central1"], client=mock_gcp_ar_client
        )

        repositories = provider.list_repositories("us-central1")

        assert len(repositories) == 1
        repo = repositories[0]
        assert repo.resource_id == "docker-repo"
        assert repo.region == "us-central1"
        assert repo.name == (
            "projects/test-project/locations/us-central1/repositories/docker-repo"
        )
        assert repo.labels == {"env": "prod"}

        request = mock_gcp_ar_client.list_repositories.call_args.kwargs["request"]
        assert request.parent == "projects/test-project/locations/us-central1"

    def test_list_images(self, mock_gcp_ar_client, make_gcp_image):
        """Test Docker images are mapped onto snapshots without pull times."""
        parent = "projects/test-project/locations/us-central1/repositories/docker-repo"
        mock_gcp_ar_client.list_docker_images.return_value = [
            make_gcp_image(parent, "sha256:abc", tags=["v1"], size_bytes=10 * MIB),
            make_gcp_image(parent, "sha256:def"),
        ]
        provider = ArtifactRegistryProvider(
            "test-project", ["us-central1"], client=mock_gcp_ar_client, call_timeout=5.0
        )
        repository = RepositorySnapshot("docker-repo", "us-central1", name=parent)

        images = provider.list_images(repository)

        assert [i.digest for i in images] == ["sha256:abc", "sha256:def"]
        assert images[0].tags == ("v1",)
        assert images[0].size_bytes == 10 * MIB
        assert images[0].last_pulled_at is None
        assert images[0].pushed_at is not None
        assert images[0].resource_id.endswith("@sha256:abc")
        assert images[1].tags == ()
        assert mock_gcp_ar_client.list_docker_images.call_args.kwargs["timeout"] == 5.0

    def test_api_error_wrapped(self, mock_gcp_ar_client):
        """Test Google API failures surface as RegistryError with the parent."""
        from google.api_core.exceptions import PermissionDenied

        mock_gcp_ar_client.list_repositories.side_effect = PermissionDenied("denied")
        provider = ArtifactRegistryProvider("test-project", ["us"], client=mock_gcp_ar_client)

        with pytest.raises(RegistryError, match="projects/test-project/locations/us") as exc:
            provider.list_repositories("us")

        assert "PermissionDenied" in str(exc.value)


class TestStaticProvider:
    """Tests for StaticProvider."""

    def test_locations_in_order(self):
        """Test locations follow insertion order."""
        provider = StaticProvider(repositories={"b": [], "a": []})
        assert provider.locations() == ["b", "a"]

    def test_unsupported_lifecycle_raises(self):
        """Test capability-less lookups raise NotImplementedError."""
        provider = StaticProvider(repositories={}, capabilities=[])
        with pytest.raises(NotImplementedError):
            provider.has_lifecycle_policy(RepositorySnapshot("app", "us"))

    def test_missing_scan_raises(self):
        """Test images without scan results raise RegistryError."""
        provider = StaticProvider(
            repositories={}, capabilities=[Capability.VULNERABILITY_SCAN]
        )
        with pytest.raises(RegistryError):
            provider.get_vulnerability_counts(RepositorySnapshot("app", "us"), "sha256:x")


class TestProviderImports:
    """Tests for missing SDK handling."""

    def test_ecr_requires_boto3(self):
        """Test a helpful ImportError without boto3."""
        with patch("ecrspectre.collectors.aws_ecr.BOTO3_AVAILABLE", False):
            with pytest.raises(ImportError, match="pip install boto3"):
                ECRProvider(["us-east-1"])

    def test_artifact_registry_requires_sdk(self):
        """Test a helpful ImportError without the GCP SDK."""
        with patch("ecrspectre.collectors.gcp_artifactregistry.GCP_AR_AVAILABLE", False):
            with pytest.raises(ImportError, match="google-cloud-artifact-registry"):
                ArtifactRegistryProvider("p", ["us"], client=MagicMock())
