"""
ecrspectre CLI entry point.

This module provides the command-line interface for ecrspectre.
"""

from __future__ import annotations

import argparse
import sys

from ecrspectre import __version__
from ecrspectre.cli_commands import cmd_aws, cmd_gcp, cmd_init, cmd_version
from ecrspectre.config import (
    DEFAULT_MAX_SIZE_MB,
    DEFAULT_MIN_MONTHLY_COST,
    DEFAULT_STALE_DAYS,
    DEFAULT_TIMEOUT_SECONDS,
    ConfigError,
    parse_duration,
)
from ecrspectre.observability import configure_from_env

DESCRIPTION = """\
ecrspectre finds stale, untagged, and bloated container images in
AWS ECR and GCP Artifact Registry, estimates their monthly storage cost,
and reports the waste as text, JSON, SARIF, or SpectreHub output."""


def _duration(value: str) -> float:
    """argparse type for durations such as "10m" or "90s"."""
    try:
        return parse_duration(value)
    except ConfigError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _csv_list(value: str) -> list[str]:
    """argparse type for comma-separated lists."""
    return [item.strip() for item in value.split(",") if item.strip()]


def _add_scan_arguments(parser: argparse.ArgumentParser) -> None:
    """Flags shared by the aws and gcp commands."""
    parser.add_argument(
        "--stale-days",
        type=int,
        default=DEFAULT_STALE_DAYS,
        help=f"Days without activity before an image is stale (default: {DEFAULT_STALE_DAYS})",
    )
    parser.add_argument(
        "--max-size",
        type=int,
        default=DEFAULT_MAX_SIZE_MB,
        help=f"Maximum image size in MB (default: {DEFAULT_MAX_SIZE_MB})",
    )
    parser.add_argument(
        "--min-monthly-cost",
        type=float,
        default=DEFAULT_MIN_MONTHLY_COST,
        help=f"Minimum monthly waste to report in USD (default: {DEFAULT_MIN_MONTHLY_COST:.2f})",
    )
    parser.add_argument(
        "--format",
        default="text",
        help="Output format: text, json, sarif, spectrehub (default: text)",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Output file path (default: stdout)",
    )
    parser.add_argument(
        "--timeout",
        type=_duration,
        default=DEFAULT_TIMEOUT_SECONDS,
        help="Scan timeout, e.g. 90s or 10m; 0 disables (default: 10m)",
    )
    parser.add_argument(
        "--exclude-tags",
        type=_csv_list,
        action="extend",
        default=[],
        help="Exclude repositories by tag (Key=Value or Key, comma-separated)",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Do not print progress to stderr",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Repositories scanned in parallel (default: 1)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="ecrspectre",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"ecrspectre {__version__}",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # aws command
    aws_parser = subparsers.add_parser("aws", help="Audit AWS ECR for container image waste")
    aws_parser.add_argument(
        "--region",
        type=_csv_list,
        action="extend",
        help="AWS region(s) to scan, comma-separated (default: config or session region)",
    )
    aws_parser.add_argument(
        "--profile",
        default="",
        help="AWS profile name",
    )
    aws_parser.add_argument(
        "--include-scan",
        action="store_true",
        help="Report images with CRITICAL or HIGH findings from ECR image scanning",
    )
    _add_scan_arguments(aws_parser)

    # gcp command
    gcp_parser = subparsers.add_parser(
        "gcp", help="Audit GCP Artifact Registry for container image waste"
    )
    gcp_parser.add_argument(
        "--project",
        default="",
        help="GCP project ID (required)",
    )
    gcp_parser.add_argument(
        "--locations",
        type=_csv_list,
        action="extend",
        help="Artifact Registry locations, comma-separated (e.g. us-central1,europe-west1)",
    )
    _add_scan_arguments(gcp_parser)

    # init command
    init_parser = subparsers.add_parser(
        "init", help="Write a sample config file and IAM policy"
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite existing files",
    )
    init_parser.add_argument(
        "--directory",
        default=".",
        help="Directory to write into (default: current directory)",
    )

    # version command
    subparsers.add_parser("version", help="Show version information")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_from_env(verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        return 0

    # Route to command handlers
    command_handlers = {
        "aws": cmd_aws,
        "gcp": cmd_gcp,
        "init": cmd_init,
        "version": cmd_version,
    }

    handler = command_handlers.get(args.command)
    if handler:
        return handler(args)

    print(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
