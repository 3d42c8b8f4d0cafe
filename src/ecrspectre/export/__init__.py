"""
Export and reporting module for ecrspectre.

Renders analysis results as a text table, the spectre/v1 JSON envelope,
SARIF v2.1.0 or the SpectreHub envelope.
"""

from __future__ import annotations

from pathlib import Path

from ecrspectre.export.base import (
    SPECTRE_SCHEMA,
    BaseExporter,
    ExportFormat,
    ExportManager,
    ExportResult,
    ReportConfig,
    ReportData,
    Target,
)
from ecrspectre.export.json_exporter import (
    JSONExporter,
    SpectreHubExporter,
)
from ecrspectre.export.sarif_exporter import SARIFExporter
from ecrspectre.export.text_exporter import TextExporter

__all__ = [
    # Base classes and types
    "SPECTRE_SCHEMA",
    "BaseExporter",
    "ExportFormat",
    "ExportManager",
    "ExportResult",
    "ReportConfig",
    "ReportData",
    "Target",
    # Exporters
    "JSONExporter",
    "SARIFExporter",
    "SpectreHubExporter",
    "TextExporter",
    # Factory functions
    "create_export_manager",
    "get_exporter",
    "export_report",
]


def create_export_manager() -> ExportManager:
    """
    Create an export manager with all registered exporters.

    Returns:
        ExportManager configured with all available exporters.
    """
    manager = ExportManager()
    manager.register_exporter(TextExporter())
    manager.register_exporter(JSONExporter())
    manager.register_exporter(SARIFExporter())
    manager.register_exporter(SpectreHubExporter())
    return manager


def get_exporter(format: str | ExportFormat) -> BaseExporter:
    """
    Get the exporter for a format name.

    Raises:
        ValueError: If the format is not supported
    """
    if isinstance(format, str):
        format = ExportFormat.from_string(format)
    exporter = create_export_manager().get_exporter(format)
    if exporter is None:
        raise ValueError(f"Unsupported format: {format.value}")
    return exporter


def export_report(
    data: ReportData,
    format: str | ExportFormat = ExportFormat.TEXT,
    output_path: Path | str | None = None,
) -> ExportResult:
    """
    Export a report in one call.

    Args:
        data: Report data
        format: Output format
        output_path: File to write (None returns the content)

    Returns:
        ExportResult
    """
    return get_exporter(format).export(data, output_path)
