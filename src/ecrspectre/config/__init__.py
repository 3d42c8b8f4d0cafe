"""
Configuration management for ecrspectre.

Provides the immutable scan configuration, the optional YAML config file
and the per-invocation settings resolved from flags and file.
"""

from ecrspectre.config.file_config import (
    CONFIG_FILENAMES,
    ExcludeSection,
    FileConfig,
    RunSettings,
    build_run_settings,
    load_config,
    parse_duration,
    parse_exclude_tags,
)
from ecrspectre.config.scan_config import (
    DEFAULT_MAX_SIZE_MB,
    DEFAULT_MIN_MONTHLY_COST,
    DEFAULT_STALE_DAYS,
    DEFAULT_TIMEOUT_SECONDS,
    ConfigError,
    ExcludeConfig,
    ScanConfiguration,
)

__all__ = [
    "CONFIG_FILENAMES",
    "DEFAULT_MAX_SIZE_MB",
    "DEFAULT_MIN_MONTHLY_COST",
    "DEFAULT_STALE_DAYS",
    "DEFAULT_TIMEOUT_SECONDS",
    "ConfigError",
    "ExcludeConfig",
    "ExcludeSection",
    "FileConfig",
    "RunSettings",
    "ScanConfiguration",
    "build_run_settings",
    "load_config",
    "parse_duration",
    "parse_exclude_tags",
]
