"""
Config file loading and per-invocation settings for ecrspectre.

The optional `.ecrspectre.yaml` (or `.ecrspectre.yml`) file in the working
directory supplies defaults; command line flags left at their default
value are replaced by config file values. Every invocation builds its own
RunSettings, nothing is kept at module level.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ecrspectre.config.scan_config import (
    BYTES_PER_MB,
    DEFAULT_MAX_SIZE_MB,
    DEFAULT_MIN_MONTHLY_COST,
    DEFAULT_STALE_DAYS,
    DEFAULT_TIMEOUT_SECONDS,
    ConfigError,
    ExcludeConfig,
    ScanConfiguration,
)

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = (".ecrspectre.yaml", ".ecrspectre.yml")

DEFAULT_FORMAT = "text"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: str | int | float) -> float:
    """
    Parse a duration into seconds.

    Accepts numbers (seconds) and Go style strings such as "90s", "10m"
    or "1h30m".

    Args:
        value: Duration to parse

    Returns:
        Duration in seconds

    Raises:
        ConfigError: If the value is not a valid duration
    """
    if isinstance(value, bool):
        raise ConfigError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        if value < 0:
            raise ConfigError(f"Duration must be >= 0, got {value}")
        return float(value)

    text = value.strip()
    if not text:
        raise ConfigError("Empty duration")
    try:
        return parse_duration(float(text))
    except ValueError:
        pass

    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ConfigError(f"Invalid duration: {value!r}")
    return total


def parse_exclude_tags(
    config_tags: list[str] | None,
    flag_tags: list[str] | None,
) -> dict[str, str]:
    """
    Merge "Key=Value" exclusion strings from config and flags.

    A bare "Key" excludes any value of that key. Flag values win over
    config values for the same key.

    Args:
        config_tags: Tags from the config file
        flag_tags: Tags from --exclude-tags

    Returns:
        Mapping of tag key to value
    """
    tags: dict[str, str] = {}
    for source in (config_tags or [], flag_tags or []):
        for item in source:
            item = str(item).strip()
            if not item:
                continue
            key, sep, val = item.partition("=")
            tags[key.strip()] = val.strip() if sep else ""
    return tags


@dataclass
class ExcludeSection:
    """The `exclude` block of the config file."""

    resource_ids: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ExcludeSection:
        """Create from dictionary."""
        data = data or {}
        return cls(
            resource_ids=[str(r) for r in data.get("resource_ids") or []],
            tags=[str(t) for t in data.get("tags") or []],
        )


@dataclass
class FileConfig:
    """
    Contents of `.ecrspectre.yaml`.

    Zero or empty values mean "not set" and leave the flag defaults alone.
    """

    provider: str = ""
    regions: list[str] = field(default_factory=list)
    profile: str = ""
    project: str = ""
    stale_days: int = 0
    max_size_mb: int = 0
    min_monthly_cost: float = 0.0
    format: str = ""
    timeout: str = ""
    exclude: ExcludeSection = field(default_factory=ExcludeSection)
    path: Path | None = None

    def timeout_seconds(self) -> float | None:
        """Parsed timeout, None when unset."""
        if not self.timeout:
            return None
        return parse_duration(self.timeout)

    def max_size_bytes(self) -> int:
        """Max image size in bytes, 1 GiB when unset."""
        if self.max_size_mb <= 0:
            return DEFAULT_MAX_SIZE_MB * BYTES_PER_MB
        return self.max_size_mb * BYTES_PER_MB

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: Path | None = None) -> FileConfig:
        """
        Create from a parsed YAML mapping.

        Raises:
            ConfigError: If a value has the wrong type
        """
        try:
            regions = data.get("regions") or []
            if isinstance(regions, str):
                regions = [regions]
            timeout = data.get("timeout") or ""
            return cls(
                provider=str(data.get("provider") or ""),
                regions=[str(r) for r in regions],
                profile=str(data.get("profile") or ""),
                project=str(data.get("project") or ""),
                stale_days=int(data.get("stale_days") or 0),
                max_size_mb=int(data.get("max_size_mb") or 0),
                min_monthly_cost=float(data.get("min_monthly_cost") or 0.0),
                format=str(data.get("format") or ""),
                timeout=str(timeout),
                exclude=ExcludeSection.from_dict(data.get("exclude")),
                path=path,
            )
        except (TypeError, ValueError, AttributeError) as e:
            where = f" {path}" if path else ""
            raise ConfigError(f"parse config{where}: {e}") from e


def load_config(directory: str | Path = ".") -> FileConfig:
    """
    Load `.ecrspectre.yaml` or `.ecrspectre.yml` from a directory.

    Args:
        directory: Directory to search

    Returns:
        Parsed FileConfig, or an empty FileConfig when no file exists

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    base = Path(directory)
    for filename in CONFIG_FILENAMES:
        path = base / filename
        if not path.exists():
            continue

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"read config {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"parse config {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"parse config {path}: expected a mapping at top level")

        logger.debug(f"Loaded config from {path}")
        return FileConfig.from_dict(data, path=path)

    return FileConfig()


@dataclass
class RunSettings:
    """
    Fully resolved settings for one command invocation.

    Built once from parsed flags and the config file, then threaded
    through the command.
    """

    provider: str
    regions: list[str] = field(default_factory=list)
    profile: str = ""
    project: str = ""
    stale_days: int = DEFAULT_STALE_DAYS
    max_size_mb: int = DEFAULT_MAX_SIZE_MB
    min_monthly_cost: float = DEFAULT_MIN_MONTHLY_COST
    format: str = DEFAULT_FORMAT
    output: str = ""
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    include_scan: bool = False
    show_progress: bool = True
    workers: int = 1
    exclude_resource_ids: list[str] = field(default_factory=list)
    exclude_tags: dict[str, str] = field(default_factory=dict)

    def scan_configuration(self) -> ScanConfiguration:
        """Build the immutable scan configuration."""
        return ScanConfiguration(
            stale_days=self.stale_days,
            max_size_bytes=self.max_size_mb * BYTES_PER_MB,
            min_monthly_cost=self.min_monthly_cost,
            exclude=ExcludeConfig(
                resource_ids=frozenset(self.exclude_resource_ids),
                tags=dict(self.exclude_tags),
            ),
            include_scan=self.include_scan,
        )


def build_run_settings(
    provider: str,
    flags: dict[str, Any],
    file_config: FileConfig,
) -> RunSettings:
    """
    Resolve flags against the config file.

    Config values apply only where the flag still holds its default;
    flags at any other value always win.

    Args:
        provider: "aws" or "gcp"
        flags: Parsed flag values keyed by setting name
        file_config: Loaded config file

    Returns:
        RunSettings for this invocation

    Raises:
        ConfigError: If the config timeout is malformed
    """
    settings = RunSettings(
        provider=provider,
        regions=list(flags.get("regions") or []),
        profile=flags.get("profile") or "",
        project=flags.get("project") or "",
        stale_days=flags.get("stale_days", DEFAULT_STALE_DAYS),
        max_size_mb=flags.get("max_size_mb", DEFAULT_MAX_SIZE_MB),
        min_monthly_cost=flags.get("min_monthly_cost", DEFAULT_MIN_MONTHLY_COST),
        format=flags.get("format") or DEFAULT_FORMAT,
        output=flags.get("output") or "",
        timeout_seconds=flags.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
        include_scan=bool(flags.get("include_scan", False)),
        show_progress=bool(flags.get("show_progress", True)),
        workers=max(1, int(flags.get("workers") or 1)),
        exclude_resource_ids=list(file_config.exclude.resource_ids),
        exclude_tags=parse_exclude_tags(
            file_config.exclude.tags, flags.get("exclude_tags")
        ),
    )

    if settings.format == DEFAULT_FORMAT and file_config.format:
        settings.format = file_config.format
    if settings.stale_days == DEFAULT_STALE_DAYS and file_config.stale_days > 0:
        settings.stale_days = file_config.stale_days
    if settings.max_size_mb == DEFAULT_MAX_SIZE_MB and file_config.max_size_mb > 0:
        settings.max_size_mb = file_config.max_size_mb
    if (
        settings.min_monthly_cost == DEFAULT_MIN_MONTHLY_COST
        and file_config.min_monthly_cost > 0
    ):
        settings.min_monthly_cost = file_config.min_monthly_cost
    if settings.timeout_seconds == DEFAULT_TIMEOUT_SECONDS:
        config_timeout = file_config.timeout_seconds()
        if config_timeout:
            settings.timeout_seconds = config_timeout
    if not settings.profile and file_config.profile:
        settings.profile = file_config.profile
    if not settings.project and file_config.project:
        settings.project = file_config.project
    if not settings.regions and file_config.regions:
        settings.regions = list(file_config.regions)

    return settings
