"""
CLI command handlers for ecrspectre.

Implements each CLI subcommand with error handling and output
formatting. Every invocation resolves its own RunSettings from the
parsed flags and the config file; nothing is stored at module level.
"""

from __future__ import annotations

import argparse
import hashlib
import logging
import sys
import time
from pathlib import Path
from typing import Any

from ecrspectre import __version__
from ecrspectre.collectors import RegistryProvider, describe_error
from ecrspectre.config import (
    ConfigError,
    FileConfig,
    RunSettings,
    build_run_settings,
    load_config,
)
from ecrspectre.engine import ScanOrchestrator, analyze
from ecrspectre.export import ReportConfig, ReportData, Target, get_exporter
from ecrspectre.models import ScanProgress

logger = logging.getLogger(__name__)

TARGET_TYPE_ECR = "ecr"
TARGET_TYPE_ARTIFACT_REGISTRY = "artifact-registry"

CONFIG_PATH = ".ecrspectre.yaml"
POLICY_PATH = "ecrspectre-policy.json"

# (substrings, hint); first match wins.
ERROR_HINTS: list[tuple[tuple[str, ...], str]] = [
    (
        ("NoCredentialProviders", "NoCredentialsError", "Unable to locate credentials"),
        "Configure AWS credentials: set AWS_PROFILE, "
        "AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY, or run 'aws configure'",
    ),
    (
        ("ExpiredToken",),
        "AWS session token expired. Refresh credentials or run 'aws sso login'",
    ),
    (
        ("AccessDenied", "UnauthorizedAccess"),
        "Insufficient permissions. Apply the IAM policy from 'ecrspectre init' "
        "to your role/user",
    ),
    (
        ("RequestExpired",),
        "Request expired. Check system clock synchronization",
    ),
    (
        ("Throttling",),
        "API rate limit hit. Retry with fewer regions or increase timeout",
    ),
    (
        ("GOOGLE_APPLICATION_CREDENTIALS",),
        "Configure GCP credentials: set GOOGLE_APPLICATION_CREDENTIALS "
        "or run 'gcloud auth application-default login'",
    ),
    (
        ("could not find default credentials", "DefaultCredentialsError"),
        "Configure GCP credentials: run 'gcloud auth application-default login'",
    ),
    (
        ("PermissionDenied",),
        "Insufficient permissions. Grant the Artifact Registry Reader role "
        "(roles/artifactregistry.reader) to your account",
    ),
]

SAMPLE_CONFIG = """\
# ecrspectre configuration

# Cloud provider: aws or gcp
# provider: aws

# AWS profile (or set AWS_PROFILE env var)
# profile: default

# GCP project ID (required for gcp provider)
# project: my-project-id

# Regions (AWS) or locations (GCP) to scan
# regions:
#   - us-east-1
#   - us-west-2

# Age threshold for stale images (days since last pull for ECR, since upload for GCP)
stale_days: 90

# Maximum acceptable image size (MB). Images above this are flagged.
max_size_mb: 1024

# Minimum monthly cost to report ($)
min_monthly_cost: 0.10

# Output format: text, json, sarif, or spectrehub
format: text

# Scan timeout
timeout: 10m

# Resources to exclude from scanning
# exclude:
#   resource_ids:
#     - myapp/production
#   tags:
#     - "env=production"
"""

SAMPLE_IAM_POLICY = """\
{
  "Version": "2012-10-17",
  "Statement": [
    {
      "Sid": "EcrSpectreReadOnly",
      "Effect": "Allow",
      "Action": [
        "ecr:DescribeRepositories",
        "ecr:DescribeImages",
        "ecr:ListImages",
        "ecr:BatchGetImage",
        "ecr:GetLifecyclePolicy",
        "ecr:DescribeImageScanFindings",
        "ecr:ListTagsForResource",
        "sts:GetCallerIdentity"
      ],
      "Resource": "*"
    }
  ]
}
"""


def hint_for(message: str) -> str | None:
    """Find an actionable hint for a cloud error message."""
    for patterns, hint in ERROR_HINTS:
        if any(pattern in message for pattern in patterns):
            return hint
    return None


def add_hint(message: str) -> str:
    """Append "hint: ..." to an error message when one applies."""
    hint = hint_for(message)
    if hint is None:
        return message
    return f"{message}\n  hint: {hint}"


def enhance_error(action: str, error: BaseException | str) -> str:
    """
    Describe a failed action, with a hint for common cloud issues.

    Args:
        action: What was being attempted ("initialize AWS client")
        error: Exception or error string

    Returns:
        "<action>: <error>" plus an optional "hint:" line
    """
    if isinstance(error, BaseException):
        error = describe_error(error)
    return add_hint(f"{action}: {error}")


def compute_target_hash(provider: str, regions: list[str], project: str) -> str:
    """
    Hash the scan target so reports do not leak account identifiers.

    Returns:
        "sha256:<hex>"
    """
    source = f"provider:{provider},regions:{','.join(regions)},project:{project}"
    return f"sha256:{hashlib.sha256(source.encode('utf-8')).hexdigest()}"


def print_progress(progress: ScanProgress) -> None:
    """Write a progress event to stderr."""
    print(f"[{progress.region}] {progress.message}", file=sys.stderr)


def _flags_from_args(args: argparse.Namespace) -> dict[str, Any]:
    """Collect scan flags into a plain mapping for build_run_settings."""
    return {
        "regions": getattr(args, "region", None) or getattr(args, "locations", None),
        "profile": getattr(args, "profile", ""),
        "project": getattr(args, "project", ""),
        "stale_days": args.stale_days,
        "max_size_mb": args.max_size,
        "min_monthly_cost": args.min_monthly_cost,
        "format": args.format,
        "output": args.output,
        "timeout_seconds": args.timeout,
        "include_scan": getattr(args, "include_scan", False),
        "show_progress": not args.no_progress,
        "workers": args.workers,
        "exclude_tags": args.exclude_tags,
    }


def _load_file_config() -> FileConfig:
    try:
        return load_config(".")
    except ConfigError as e:
        logger.warning(f"Failed to load config file: {e}")
        return FileConfig()


def _run_scan(
    settings: RunSettings,
    provider: RegistryProvider,
    target: Target,
) -> int:
    """
    Scan, analyze and render one provider.

    Returns:
        Exit code (0 success, 1 error)
    """
    try:
        scan_config = settings.scan_configuration()
        exporter = get_exporter(settings.format)
    except (ConfigError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    deadline = None
    if settings.timeout_seconds > 0:
        deadline = time.monotonic() + settings.timeout_seconds

    orchestrator = ScanOrchestrator(provider, workers=settings.workers)
    progress = print_progress if settings.show_progress else None
    result = orchestrator.scan(scan_config, progress=progress, deadline=deadline)

    analysis = analyze(result, settings.min_monthly_cost)
    analysis.errors = [add_hint(error) for error in analysis.errors]

    data = ReportData.from_analysis(
        analysis,
        target=target,
        config=ReportConfig(
            provider=settings.provider,
            regions=list(settings.regions),
            stale_days=settings.stale_days,
            max_size_mb=settings.max_size_mb,
            min_monthly_cost=settings.min_monthly_cost,
        ),
    )

    export_result = exporter.export(data, settings.output or None)
    if not export_result.success:
        print(f"Error: write report: {export_result.error}", file=sys.stderr)
        return 1

    if export_result.content is not None:
        sys.stdout.write(export_result.content)
        sys.stdout.flush()
    else:
        logger.info(f"Report written to {export_result.output_path}")

    return 0


def cmd_aws(args: argparse.Namespace) -> int:
    """
    Audit AWS ECR repositories.

    Steps:
        1. Resolve flags against the config file
        2. Create the boto3 session and resolve regions
        3. Scan, analyze and render

    Returns:
        Exit code (0 success, 1 error)
    """
    from ecrspectre.collectors import ECRProvider

    try:
        settings = build_run_settings("aws", _flags_from_args(args), _load_file_config())
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        provider = ECRProvider(
            regions=settings.regions,
            profile=settings.profile,
            fetch_tags=bool(settings.exclude_tags),
            read_timeout=_read_timeout(settings.timeout_seconds),
        )
    except Exception as e:
        print(f"Error: {enhance_error('initialize AWS client', e)}", file=sys.stderr)
        return 1

    if not settings.regions:
        region = provider.default_region()
        if not region:
            print(
                "Error: no AWS region configured; use --region or set AWS_REGION",
                file=sys.stderr,
            )
            return 1
        settings.regions = [region]
        provider.set_regions(settings.regions)

    logger.info(f"Scanning ECR in {', '.join(settings.regions)}")

    target = Target(
        type=TARGET_TYPE_ECR,
        uri_hash=compute_target_hash("aws", settings.regions, settings.profile),
    )
    return _run_scan(settings, provider, target)


def cmd_gcp(args: argparse.Namespace) -> int:
    """
    Audit GCP Artifact Registry repositories.

    Returns:
        Exit code (0 success, 1 error)
    """
    from ecrspectre.collectors import ArtifactRegistryProvider

    try:
        settings = build_run_settings("gcp", _flags_from_args(args), _load_file_config())
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not settings.project:
        print("Error: --project is required for GCP scans", file=sys.stderr)
        return 1
    if not settings.regions:
        print(
            "Error: --locations is required (e.g., us-central1,europe-west1)",
            file=sys.stderr,
        )
        return 1

    try:
        provider = ArtifactRegistryProvider(
            project_id=settings.project,
            locations=settings.regions,
            call_timeout=_read_timeout(settings.timeout_seconds),
        )
    except Exception as e:
        print(f"Error: {enhance_error('initialize GCP client', e)}", file=sys.stderr)
        return 1

    logger.info(
        f"Scanning Artifact Registry project {settings.project} "
        f"in {', '.join(settings.regions)}"
    )

    target = Target(
        type=TARGET_TYPE_ARTIFACT_REGISTRY,
        uri_hash=compute_target_hash("gcp", settings.regions, settings.project),
    )
    return _run_scan(settings, provider, target)


def _read_timeout(timeout_seconds: float) -> float:
    """Per-call timeout, never longer than the whole scan."""
    from ecrspectre.collectors.aws_ecr import DEFAULT_READ_TIMEOUT

    if timeout_seconds <= 0:
        return DEFAULT_READ_TIMEOUT
    return min(DEFAULT_READ_TIMEOUT, timeout_seconds)


def _write_if_not_exists(path: Path, content: str, force: bool) -> bool:
    """Write a file unless it exists; returns True if written."""
    if path.exists() and not force:
        print(f"Skipping {path} (already exists, use --force to overwrite)")
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return True


def cmd_init(args: argparse.Namespace) -> int:
    """
    Write a sample config file and a read-only IAM policy.

    Returns:
        Exit code (0 success, 1 error)
    """
    directory = Path(getattr(args, "directory", ".") or ".")
    config_path = directory / CONFIG_PATH
    policy_path = directory / POLICY_PATH

    try:
        wrote_config = _write_if_not_exists(config_path, SAMPLE_CONFIG, args.force)
        wrote_policy = _write_if_not_exists(policy_path, SAMPLE_IAM_POLICY, args.force)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    written = [str(p) for p, w in ((config_path, wrote_config), (policy_path, wrote_policy)) if w]
    if written:
        print(f"Created {' and '.join(written)}")
        print("\nNext steps:")
        print(f"  1. Edit {CONFIG_PATH} to set provider (aws or gcp) and regions")
        print(f"  2. For AWS: apply {POLICY_PATH} to your IAM role/user")
        print("  3. For GCP: ensure Artifact Registry Reader role on your service account")
        print("  4. Run: ecrspectre aws  OR  ecrspectre gcp --project=PROJECT_ID")
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    """Print the version."""
    print(f"ecrspectre {__version__}")
    return 0
