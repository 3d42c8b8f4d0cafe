"""
Base export functionality for ecrspectre.

Provides the report data container shared by every output format and
the abstract exporter interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from ecrspectre import __version__
from ecrspectre.engine import AnalysisResult, Summary
from ecrspectre.models import Finding

TOOL_NAME = "ecrspectre"
SPECTRE_SCHEMA = "spectre/v1"


class ExportFormat(Enum):
    """Supported export formats."""

    TEXT = "text"
    JSON = "json"
    SARIF = "sarif"
    SPECTREHUB = "spectrehub"

    @classmethod
    def from_string(cls, value: str) -> ExportFormat:
        """
        Create ExportFormat from string value.

        Raises:
            ValueError: If value is not a supported format
        """
        value_lower = value.lower()
        for fmt in cls:
            if fmt.value == value_lower:
                return fmt
        supported = ", ".join(f.value for f in cls)
        raise ValueError(f"Unsupported format: {value} (supported: {supported})")


@dataclass
class Target:
    """
    Identifies the audited registry without exposing account identifiers.

    Attributes:
        type: "ecr" or "artifact-registry"
        uri_hash: sha256 content hash of provider, regions and project
    """

    type: str
    uri_hash: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"type": self.type, "uri_hash": self.uri_hash}


@dataclass
class ReportConfig:
    """Echo of the scan configuration used."""

    provider: str
    regions: list[str] = field(default_factory=list)
    stale_days: int = 0
    max_size_mb: int = 0
    min_monthly_cost: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "provider": self.provider,
            "regions": list(self.regions),
            "stale_days": self.stale_days,
            "max_size_mb": self.max_size_mb,
            "min_monthly_cost": self.min_monthly_cost,
        }


@dataclass
class ReportData:
    """
    Data container for report generation.

    Attributes:
        tool: Tool name
        version: Tool version
        timestamp: When the report was generated
        target: Audited registry identity
        config: Scan configuration echo
        findings: Reported findings
        summary: Summary statistics
        errors: Partial-failure warnings
    """

    target: Target
    config: ReportConfig
    findings: list[Finding] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)
    errors: list[str] = field(default_factory=list)
    tool: str = TOOL_NAME
    version: str = __version__
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_analysis(
        cls,
        analysis: AnalysisResult,
        target: Target,
        config: ReportConfig,
        timestamp: datetime | None = None,
    ) -> ReportData:
        """
        Build report data from an analysis result.

        Args:
            analysis: Output of analyze()
            target: Audited registry identity
            config: Scan configuration echo
            timestamp: Report time (default: now)

        Returns:
            ReportData
        """
        return cls(
            target=target,
            config=config,
            findings=list(analysis.findings),
            summary=analysis.summary,
            errors=list(analysis.errors),
            timestamp=timestamp or datetime.now(timezone.utc),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary; errors are omitted when empty."""
        result: dict[str, Any] = {
            "tool": self.tool,
            "version": self.version,
            "timestamp": self.timestamp.isoformat(),
            "target": self.target.to_dict(),
            "config": self.config.to_dict(),
            "findings": [f.to_dict() for f in self.findings],
            "summary": self.summary.to_dict(),
        }
        if self.errors:
            result["errors"] = list(self.errors)
        return result


@dataclass
class ExportResult:
    """
    Result of an export operation.

    Attributes:
        success: Whether export completed successfully
        format: Format used for export
        output_path: Path to output file (if written to disk)
        content: Export content (if not written to disk)
        bytes_written: Size of output in bytes
        generated_at: When the export was generated
        error: Error message if export failed
    """

    success: bool
    format: ExportFormat
    output_path: Path | None = None
    content: str | None = None
    bytes_written: int = 0
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: str | None = None


class BaseExporter(ABC):
    """
    Abstract base class for exporters.

    Exporters render report data into one output format. Rendering never
    fails on an empty finding list.
    """

    @property
    @abstractmethod
    def format(self) -> ExportFormat:
        """Return the export format this exporter produces."""
        pass

    @abstractmethod
    def render(self, data: ReportData) -> str:
        """
        Render report data.

        Args:
            data: Report data to render

        Returns:
            Rendered report
        """
        pass

    def export(
        self,
        data: ReportData,
        output_path: Path | str | None = None,
    ) -> ExportResult:
        """
        Render and optionally write the report to a file.

        Args:
            data: Report data to export
            output_path: File to write (None keeps the content in memory)

        Returns:
            ExportResult with success status and output
        """
        try:
            content = self.render(data)
            path, output_content = self._write_output(content, output_path)
            return ExportResult(
                success=True,
                format=self.format,
                output_path=path,
                content=output_content,
                bytes_written=len(content.encode("utf-8")),
            )
        except Exception as e:
            return ExportResult(
                success=False,
                format=self.format,
                error=str(e),
            )

    def _write_output(
        self,
        content: str,
        output_path: Path | str | None,
    ) -> tuple[Path | None, str | None]:
        """
        Write content to file or return for in-memory use.

        Args:
            content: Content to write
            output_path: Path to write to (None for in-memory)

        Returns:
            Tuple of (path if written, content if in-memory)
        """
        if output_path is None:
            return None, content

        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path, None


class ExportManager:
    """
    Manages export operations across multiple formats.

    Provides a unified interface for exporting data to various formats.
    """

    def __init__(self):
        """Initialize export manager with no registered exporters."""
        self._exporters: dict[ExportFormat, BaseExporter] = {}

    def register_exporter(self, exporter: BaseExporter) -> None:
        """Register an exporter for its format."""
        self._exporters[exporter.format] = exporter

    def get_exporter(self, format: ExportFormat) -> BaseExporter | None:
        """Get exporter for a specific format."""
        return self._exporters.get(format)

    def export(
        self,
        data: ReportData,
        format: ExportFormat,
        output_path: Path | str | None = None,
    ) -> ExportResult:
        """
        Export data using the exporter registered for format.

        Returns:
            ExportResult with success status and output
        """
        exporter = self._exporters.get(format)
        if exporter is None:
            return ExportResult(
                success=False,
                format=format,
                error=f"No exporter registered for format: {format.value}",
            )

        return exporter.export(data, output_path)
