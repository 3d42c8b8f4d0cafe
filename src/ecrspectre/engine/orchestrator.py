"""
Scan orchestration for ecrspectre.

The ScanOrchestrator drives one registry provider through its locations,
repositories and images, runs the classifier on every resource and
accumulates findings, errors and counters into a ScanResult.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterator

from ecrspectre.collectors.base import Capability, RegistryProvider, describe_error
from ecrspectre.config import ScanConfiguration
from ecrspectre.engine.classifier import (
    classify_image,
    empty_repository_finding,
    lifecycle_policy_finding,
    unused_repository_finding,
    vulnerability_finding,
)
from ecrspectre.models import (
    Finding,
    FindingKind,
    ImageSnapshot,
    RepositorySnapshot,
    ScanProgress,
    ScanResult,
    ensure_utc,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
ProgressCallback = Callable[[ScanProgress], None]


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


@dataclass
class RepositoryOutcome:
    """
    Everything one repository scan produced.

    Outcomes are merged into the ScanResult in enumeration order, so a
    parallel scan yields the same output as a sequential one.
    """

    repository: RepositorySnapshot
    findings: list[Finding] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    resources_scanned: int = 0
    deadline_exceeded: bool = False
    skipped: bool = False


class ScanOrchestrator:
    """
    Runs a full waste scan against one registry provider.

    Optional provider features (lifecycle policies, vulnerability scans)
    are used only when the provider declares the matching capability.

    Example:
        >>> orchestrator = ScanOrchestrator(ECRProvider(["us-east-1"]))
        >>> result = orchestrator.scan(ScanConfiguration(stale_days=90))
    """

    def __init__(
        self,
        provider: RegistryProvider,
        clock: Clock | None = None,
        workers: int = 1,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            provider: Registry provider to scan
            clock: Returns "now" for staleness checks (default: UTC wall clock)
            workers: Repositories scanned concurrently (1 scans sequentially)
        """
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        self._provider = provider
        self._clock = clock or utc_now
        self._workers = workers

    @property
    def provider(self) -> RegistryProvider:
        """Get the registry provider."""
        return self._provider

    def scan(
        self,
        config: ScanConfiguration,
        progress: ProgressCallback | None = None,
        deadline: float | None = None,
    ) -> ScanResult:
        """
        Scan every location of the provider.

        A repository listing failure skips that location with one error.
        Per-repository failures are recorded and the scan moves on.

        Args:
            config: Scan configuration
            progress: Optional callback for progress events
            deadline: Optional time.monotonic() value after which the scan
                stops and returns partial results

        Returns:
            ScanResult with findings in emission order
        """
        now = ensure_utc(self._clock())
        result = ScanResult()
        deadline_hit = False

        for location in self._provider.locations():
            if self._expired(deadline):
                deadline_hit = True
                break

            self._report(progress, location, f"Scanning location {location}")

            try:
                repositories = self._provider.list_repositories(location)
            except Exception as e:
                error = f"{location}: {describe_error(e)}"
                logger.warning(f"Repository listing failed: {error}")
                result.errors.append(error)
                continue

            result.repositories_scanned += len(repositories)
            self._report(
                progress, location, f"Found {len(repositories)} repositories"
            )

            selected = self._select_repositories(repositories, config, result)

            for outcome in self._scan_repositories(
                selected, config, now, progress, deadline
            ):
                result.findings.extend(outcome.findings)
                result.errors.extend(outcome.errors)
                result.resources_scanned += outcome.resources_scanned
                if outcome.deadline_exceeded:
                    deadline_hit = True

            if deadline_hit:
                break

        if deadline_hit:
            result.errors.append(
                "scan deadline exceeded, results are partial"
            )
            logger.warning("Scan deadline exceeded, returning partial results")

        logger.info(
            f"{self._provider.scanner_name} scan complete: "
            f"{result.repositories_scanned} repositories, "
            f"{result.resources_scanned} images, "
            f"{len(result.findings)} findings, {len(result.errors)} errors"
        )
        return result

    def scan_vulnerabilities(
        self, repository: RepositorySnapshot, digest: str, resource_name: str = ""
    ) -> list[Finding]:
        """
        Check one image against the registry's own vulnerability scan.

        Providers without the capability yield no findings. A lookup
        failure is logged and also yields no findings.

        Args:
            repository: Repository holding the image
            digest: Image digest
            resource_name: Optional repo:tag name

        Returns:
            At most one VULNERABLE_IMAGE finding
        """
        if not self._provider.supports(Capability.VULNERABILITY_SCAN):
            return []

        try:
            counts = self._provider.get_vulnerability_counts(repository, digest)
        except Exception as e:
            logger.debug(
                f"No scan findings available for "
                f"{repository.resource_id}@{digest}: {describe_error(e)}"
            )
            return []

        finding = vulnerability_finding(
            f"{repository.resource_id}@{digest}",
            repository.region,
            counts,
            resource_name=resource_name,
        )
        return [finding] if finding else []

    def _scan_repositories(
        self,
        repositories: list[RepositorySnapshot],
        config: ScanConfiguration,
        now: datetime,
        progress: ProgressCallback | None,
        deadline: float | None,
    ) -> Iterator[RepositoryOutcome]:
        """
        Scan repositories sequentially or on a bounded thread pool.

        Outcomes are yielded in enumeration order. The "Scanning" event of
        a repository is reported from the caller's thread just before its
        outcome is yielded, and never for a repository the deadline
        skipped.
        """
        if self._workers == 1 or len(repositories) <= 1:
            for repository in repositories:
                if self._expired(deadline):
                    yield RepositoryOutcome(
                        repository=repository, deadline_exceeded=True, skipped=True
                    )
                    return
                self._report_repository(progress, repository)
                outcome = self._scan_repository(repository, config, now, deadline)
                yield outcome
                if outcome.deadline_exceeded:
                    return
            return

        with ThreadPoolExecutor(max_workers=self._workers) as executor:
            futures = [
                executor.submit(self._scan_repository, repository, config, now, deadline)
                for repository in repositories
            ]
            for future in futures:
                outcome = future.result()
                if not outcome.skipped:
                    self._report_repository(progress, outcome.repository)
                yield outcome

    def _scan_repository(
        self,
        repository: RepositorySnapshot,
        config: ScanConfiguration,
        now: datetime,
        deadline: float | None,
    ) -> RepositoryOutcome:
        """
        Scan one repository.

        Two passes: classify every image, then decide repository level
        findings from the per-image outcomes.
        """
        outcome = RepositoryOutcome(repository=repository)
        provider = self._provider
        scope = f"{repository.region}/{repository.resource_id}"

        if self._expired(deadline):
            outcome.deadline_exceeded = True
            outcome.skipped = True
            return outcome

        try:
            images = provider.list_images(repository)
        except Exception as e:
            error = f"{scope}: {describe_error(e)}"
            logger.warning(f"Image listing failed: {error}")
            outcome.errors.append(error)
            return outcome

        if not images:
            outcome.findings.append(empty_repository_finding(repository))
            return outcome

        if provider.supports(Capability.LIFECYCLE_POLICY):
            if self._expired(deadline):
                outcome.deadline_exceeded = True
                return outcome
            try:
                if not provider.has_lifecycle_policy(repository):
                    outcome.findings.append(lifecycle_policy_finding(repository))
            except Exception as e:
                error = f"{scope} lifecycle: {describe_error(e)}"
                logger.warning(f"Lifecycle policy lookup failed: {error}")
                outcome.errors.append(error)

        included = [
            image
            for image in images
            if not config.exclude.is_excluded_id(image.resource_id)
        ]
        pull_timestamps = provider.supports(Capability.PULL_TIMESTAMPS)

        stale_count = 0
        for image in included:
            outcome.resources_scanned += 1
            findings = classify_image(
                image,
                repository,
                config,
                now,
                provider.provider_key,
                pull_timestamps=pull_timestamps,
            )
            outcome.findings.extend(findings)
            if any(f.kind == FindingKind.STALE_IMAGE for f in findings):
                stale_count += 1

        if included and stale_count == len(included):
            outcome.findings.append(
                unused_repository_finding(repository, included, provider.provider_key)
            )

        if config.include_scan and provider.supports(Capability.VULNERABILITY_SCAN):
            outcome.deadline_exceeded = self._scan_images_for_vulnerabilities(
                repository, included, outcome, deadline
            )

        return outcome

    def _scan_images_for_vulnerabilities(
        self,
        repository: RepositorySnapshot,
        images: list[ImageSnapshot],
        outcome: RepositoryOutcome,
        deadline: float | None,
    ) -> bool:
        """Append VULNERABLE_IMAGE findings; returns True if the deadline hit."""
        for image in images:
            if self._expired(deadline):
                return True
            outcome.findings.extend(
                self.scan_vulnerabilities(
                    repository, image.digest, resource_name=image.display_name
                )
            )
        return False

    def _select_repositories(
        self,
        repositories: list[RepositorySnapshot],
        config: ScanConfiguration,
        result: ScanResult,
    ) -> list[RepositorySnapshot]:
        """
        Drop excluded repositories.

        When tag exclusion is configured, a repository whose tags could
        not be read is skipped with an error rather than scanned.
        """
        selected: list[RepositorySnapshot] = []
        for repository in repositories:
            if config.exclude.is_excluded_id(repository.resource_id):
                continue
            if config.exclude.tags:
                if repository.labels_error:
                    error = (
                        f"{repository.region}/{repository.resource_id} tags: "
                        f"{repository.labels_error}"
                    )
                    logger.warning(f"Tag lookup failed, repository skipped: {error}")
                    result.errors.append(error)
                    continue
                if repository.matches_tags(config.exclude.tags):
                    continue
            selected.append(repository)

        excluded = len(repositories) - len(selected)
        if excluded:
            logger.debug(f"Skipped {excluded} repositories")
        return selected

    def _report_repository(
        self, progress: ProgressCallback | None, repository: RepositorySnapshot
    ) -> None:
        self._report(progress, repository.region, f"Scanning {repository.resource_id}")

    def _report(

        self, progress: ProgressCallback | None, region: str, message: str
    ) -> None:
        if progress is None:
            return
        progress(
            ScanProgress(
                region=region,
                scanner=self._provider.scanner_name,
                message=message,
            )
        )

    @staticmethod
    def _expired(deadline: float | None) -> bool:
        return deadline is not None and time.monotonic() >= deadline
