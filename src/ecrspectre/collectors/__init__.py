"""
Registry providers for ecrspectre.

Providers list repositories and image manifests from a container
registry. All calls are read-only.

- ECRProvider: AWS Elastic Container Registry (boto3)
- ArtifactRegistryProvider: GCP Artifact Registry (google-cloud-artifact-registry)
- StaticProvider: in-memory inventory
"""

from ecrspectre.collectors.base import (
    Capability,
    RegistryError,
    RegistryProvider,
    StaticProvider,
    describe_error,
)
from ecrspectre.collectors.aws_ecr import ECRProvider
from ecrspectre.collectors.gcp_artifactregistry import ArtifactRegistryProvider

__all__ = [
    "ArtifactRegistryProvider",
    "Capability",
    "ECRProvider",
    "RegistryError",
    "RegistryProvider",
    "StaticProvider",
    "describe_error",
]
