"""
GCP Artifact Registry provider for ecrspectre.

Lists Docker-format Artifact Registry repositories and their images.
Artifact Registry records no pull timestamps and exposes neither
lifecycle policies nor scan results through this API, so the provider
declares no optional capabilities.
"""

from __future__ import annotations

import logging
from typing import Any

from ecrspectre.collectors.base import RegistryError, RegistryProvider, as_utc
from ecrspectre.models import ImageSnapshot, RepositorySnapshot
from ecrspectre.pricing import PROVIDER_ARTIFACT_REGISTRY

logger = logging.getLogger(__name__)

# Optional GCP imports
try:
    from google.cloud import artifactregistry_v1
    from google.cloud.artifactregistry_v1 import types
    from google.api_core.exceptions import GoogleAPIError

    GCP_AR_AVAILABLE = True
except ImportError:
    GCP_AR_AVAILABLE = False
    artifactregistry_v1 = None  # type: ignore
    types = None  # type: ignore
    GoogleAPIError = Exception  # type: ignore

DOCKER_FORMAT = "DOCKER"
DEFAULT_CALL_TIMEOUT = 60.0


def repository_id_from_name(name: str) -> str:
    """
    Extract the repository id from a full resource name.

    Format: projects/{project}/locations/{location}/repositories/{repo}
    """
    return name.rsplit("/", 1)[-1]


def digest_from_image_name(name: str) -> str:
    """
    Extract the digest from a Docker image resource name.

    Format: .../dockerImages/{image}@sha256:{hex}
    """
    if "@" not in name:
        return ""
    return name.rsplit("@", 1)[1]


class ArtifactRegistryProvider(RegistryProvider):
    """
    Registry provider backed by GCP Artifact Registry.

    Only repositories with the DOCKER format are returned; Maven, npm and
    other package formats are out of scope.
    """

    provider_key = PROVIDER_ARTIFACT_REGISTRY
    scanner_name = "artifactregistry"
    capabilities = frozenset()

    def __init__(
        self,
        project_id: str,
        locations: list[str],
        credentials: Any | None = None,
        client: Any | None = None,
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
    ) -> None:
        """
        Initialize the Artifact Registry provider.

        Args:
            project_id: GCP project ID to scan
            locations: Artifact Registry locations (us, europe-west1, ...)
            credentials: Optional google-auth credentials object
            client: Optional pre-built ArtifactRegistryClient
            call_timeout: Per-call timeout in seconds
        """
        if not GCP_AR_AVAILABLE:
            raise ImportError(
                "google-cloud-artifact-registry is required for the Artifact Registry provider. "
                "Install with: pip install google-cloud-artifact-registry"
            )

        self._project_id = project_id
        self._locations = list(locations)
        self._credentials = credentials
        self._ar_client = client
        self._call_timeout = call_timeout

    @property
    def project_id(self) -> str:
        """Get the GCP project ID."""
        return self._project_id

    def locations(self) -> list[str]:
        return list(self._locations)

    def _get_ar_client(self) -> Any:
        """Get or create Artifact Registry client."""
        if self._ar_client is None:
            self._ar_client = artifactregistry_v1.ArtifactRegistryClient(
                credentials=self._credentials
            )
        return self._ar_client

    def list_repositories(self, location: str) -> list[RepositorySnapshot]:
        """List Docker repositories in one location."""
        client = self._get_ar_client()
        parent = f"projects/{self._project_id}/locations/{location}"
        request = types.ListRepositoriesRequest(parent=parent)
        repositories: list[RepositorySnapshot] = []

        try:
            for repo in client.list_repositories(request=request, timeout=self._call_timeout):
                if repo.format_ != types.Repository.Format.DOCKER:
                    continue

                repositories.append(
                    RepositorySnapshot(
                        resource_id=repository_id_from_name(repo.name),
                        region=location,
                        name=repo.name,
                        format=DOCKER_FORMAT,
                        labels=dict(repo.labels) if repo.labels else {},
                    )
                )
        except GoogleAPIError as e:
            raise RegistryError(f"list repositories in {parent}", e) from e

        logger.debug(f"Listed {len(repositories)} Docker repositories in {parent}")
        return repositories

    def list_images(self, repository: RepositorySnapshot) -> list[ImageSnapshot]:
        """List Docker images in a repository."""
        client = self._get_ar_client()
        request = types.ListDockerImagesRequest(parent=repository.native_name)
        images: list[ImageSnapshot] = []

        try:
            for image in client.list_docker_images(request=request, timeout=self._call_timeout):
                images.append(
                    ImageSnapshot(
                        repository=repository.resource_id,
                        digest=digest_from_image_name(image.name),
                        tags=tuple(image.tags) if image.tags else (),
                        size_bytes=int(image.image_size_bytes or 0),
                        pushed_at=as_utc(image.upload_time),
                        media_type=image.media_type or "",
                        uri=image.uri or image.name,
                    )
                )
        except GoogleAPIError as e:
            raise RegistryError("list docker images", e) from e

        return images
