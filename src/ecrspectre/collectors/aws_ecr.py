"""
AWS ECR provider for ecrspectre.

Lists Elastic Container Registry repositories and images, lifecycle
policy presence and built-in image scan results. All API calls are
read-only.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Iterator

from ecrspectre.collectors.base import (
    Capability,
    RegistryError,
    RegistryProvider,
    as_utc,
    describe_error,
)
from ecrspectre.models import ImageSnapshot, RepositorySnapshot, VulnerabilityCounts
from ecrspectre.pricing import PROVIDER_ECR

logger = logging.getLogger(__name__)

# Import boto3 optionally
try:
    import boto3
    from botocore.config import Config

    BOTO3_AVAILABLE = True
except ImportError:
    BOTO3_AVAILABLE = False
    boto3 = None  # type: ignore
    Config = None  # type: ignore

DEFAULT_CONNECT_TIMEOUT = 10
DEFAULT_READ_TIMEOUT = 60
DEFAULT_MAX_ATTEMPTS = 5


class ECRProvider(RegistryProvider):
    """
    Registry provider backed by AWS ECR.

    One boto3 client per region is created lazily and cached. Repository
    tags are only fetched when tag exclusion needs them, since each one
    costs an extra API call.
    """

    provider_key = PROVIDER_ECR
    scanner_name = "ecr"
    capabilities = frozenset(
        {
            Capability.LIFECYCLE_POLICY,
            Capability.VULNERABILITY_SCAN,
            Capability.PULL_TIMESTAMPS,
        }
    )

    def __init__(
        self,
        regions: list[str],
        session: Any | None = None,
        profile: str = "",
        fetch_tags: bool = False,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ) -> None:
        """
        Initialize the provider.

        Args:
            regions: AWS regions to scan
            session: Optional boto3 Session. If None, one is built from profile.
            profile: Named AWS profile, empty for the default credential chain
            fetch_tags: Load repository tags for tag exclusion
            read_timeout: Per-call read timeout in seconds
        """
        if not BOTO3_AVAILABLE:
            raise ImportError(
                "boto3 is required for the ECR provider. Install with: pip install boto3"
            )

        self._session = session or boto3.Session(profile_name=profile or None)
        self._regions = list(regions)
        self._fetch_tags = fetch_tags
        self._clients: dict[str, Any] = {}
        self._client_config = Config(
            connect_timeout=DEFAULT_CONNECT_TIMEOUT,
            read_timeout=read_timeout,
            retries={"max_attempts": DEFAULT_MAX_ATTEMPTS, "mode": "adaptive"},
        )

    def locations(self) -> list[str]:
        return list(self._regions)

    def set_regions(self, regions: list[str]) -> None:
        self._regions = list(regions)

    def default_region(self) -> str:
        """Region from the session (AWS_REGION, profile config), or ""."""
        return self._session.region_name or ""

    def _get_client(self, region: str) -> Any:
        """
        Get the ECR client for a region.

        Clients are cached for reuse.
        """
        if region not in self._clients:
            self._clients[region] = self._session.client(
                "ecr", region_name=region, config=self._client_config
            )
        return self._clients[region]

    def _paginate(
        self, client: Any, method: str, result_key: str, **kwargs: Any
    ) -> Iterator[Any]:
        """
        Handle AWS API pagination.

        Args:
            client: boto3 client
            method: API method name
            result_key: Key in response containing results
            **kwargs: Arguments to pass to the API method

        Yields:
            Individual items from paginated results
        """
        paginator = client.get_paginator(method)
        for page in paginator.paginate(**kwargs):
            for item in page.get(result_key, []):
                yield item

    def list_repositories(self, location: str) -> list[RepositorySnapshot]:
        """List all ECR repositories in a region."""
        ecr = self._get_client(location)
        repositories: list[RepositorySnapshot] = []

        for repo in self._paginate(ecr, "describe_repositories", "repositories"):
            repo_name = repo["repositoryName"]
            labels: dict[str, str] = {}
            labels_error = ""
            if self._fetch_tags and repo.get("repositoryArn"):
                try:
                    labels = self._get_repository_tags(ecr, repo["repositoryArn"])
                except Exception as e:
                    labels_error = describe_error(e)
                    logger.warning(f"Could not get tags for {repo_name}: {labels_error}")

            repositories.append(
                RepositorySnapshot(
                    resource_id=repo_name,
                    region=location,
                    labels=labels,
                    labels_error=labels_error,
                )
            )

        logger.debug(f"Listed {len(repositories)} ECR repositories in {location}")
        return repositories

    def _get_repository_tags(self, ecr: Any, repo_arn: str) -> dict[str, str]:
        """Get tags for an ECR repository."""
        response = ecr.list_tags_for_resource(resourceArn=repo_arn)
        return {tag["Key"]: tag.get("Value", "") for tag in response.get("tags", [])}

    def list_images(self, repository: RepositorySnapshot) -> list[ImageSnapshot]:
        """List every image manifest in a repository."""
        ecr = self._get_client(repository.region)
        images: list[ImageSnapshot] = []

        for image in self._paginate(
            ecr,
            "describe_images",
            "imageDetails",
            repositoryName=repository.native_name,
        ):
            images.append(
                ImageSnapshot(
                    repository=repository.resource_id,
                    digest=image.get("imageDigest", ""),
                    tags=tuple(image.get("imageTags") or ()),
                    size_bytes=int(image.get("imageSizeInBytes") or 0),
                    pushed_at=as_utc(image.get("imagePushedAt")),
                    last_pulled_at=as_utc(image.get("lastRecordedPullTime")),
                    media_type=image.get("imageManifestMediaType", ""),
                )
            )

        return images

    def has_lifecycle_policy(self, repository: RepositorySnapshot) -> bool:
        """
        Check for a lifecycle policy.

        LifecyclePolicyNotFoundException means "no policy"; any other
        failure propagates.
        """
        ecr = self._get_client(repository.region)
        try:
            ecr.get_lifecycle_policy(repositoryName=repository.native_name)
        except ecr.exceptions.LifecyclePolicyNotFoundException:
            return False
        return True

    def get_vulnerability_counts(
        self, repository: RepositorySnapshot, digest: str
    ) -> VulnerabilityCounts:
        """
        Count findings of the image's basic scan by severity.

        Raises:
            RegistryError: If no scan results are available
        """
        ecr = self._get_client(repository.region)
        counts: Counter[str] = Counter()

        try:
            paginator = ecr.get_paginator("describe_image_scan_findings")
            for page in paginator.paginate(
                repositoryName=repository.native_name,
                imageId={"imageDigest": digest},
            ):
                for vuln in page.get("imageScanFindings", {}).get("findings", []):
                    counts[vuln.get("severity", "UNDEFINED").upper()] += 1
        except Exception as e:
            raise RegistryError(
                f"describe scan findings {repository.resource_id}@{digest}", e
            ) from e

        return VulnerabilityCounts(counts=dict(counts))
