"""
Text export functionality for ecrspectre.

Renders a terminal-friendly table of findings followed by a summary
block and any partial-failure warnings.
"""

from __future__ import annotations

from ecrspectre.export.base import BaseExporter, ExportFormat, ReportData
from ecrspectre.models import Severity

REPORT_TITLE = "ecrspectre: Container Registry Waste Report"
NO_WASTE_MESSAGE = "No waste found in container registries."

TABLE_HEADER = ("SEVERITY", "TYPE", "RESOURCE", "REGION", "WASTE/MO", "MESSAGE")
COLUMN_PADDING = 2


def format_counts(counts: dict[str, int]) -> str:
    """Render a histogram as "k=v, k=v" sorted by key."""
    return ", ".join(f"{key}={counts[key]}" for key in sorted(counts))


def format_severity_counts(counts: dict[str, int]) -> str:
    """Render the severity histogram, most severe first."""
    ordered = sorted(counts, key=lambda key: Severity.from_string(key).rank, reverse=True)
    return ", ".join(f"{key}={counts[key]}" for key in ordered)


def format_table(rows: list[tuple[str, ...]]) -> list[str]:
    """
    Align rows into columns.

    Every column but the last is padded to its widest cell plus two
    spaces; the last column is left ragged.
    """
    if not rows:
        return []
    column_count = len(rows[0])
    widths = [
        max(len(row[i]) for row in rows) + COLUMN_PADDING
        for i in range(column_count - 1)
    ]
    lines = []
    for row in rows:
        cells = [cell.ljust(widths[i]) for i, cell in enumerate(row[:-1])]
        lines.append("".join(cells) + row[-1])
    return lines


class TextExporter(BaseExporter):
    """
    Exports reports as human readable text.

    Findings appear in emission order; the resource name is shown when
    the finding has one, the resource id otherwise.
    """

    @property
    def format(self) -> ExportFormat:
        return ExportFormat.TEXT

    def render(self, data: ReportData) -> str:
        """Render the text report."""
        lines = [REPORT_TITLE, "=" * len(REPORT_TITLE), ""]

        if not data.findings:
            lines.append(NO_WASTE_MESSAGE)
            lines.append("")
            lines.extend(self._summary_lines(data))
            return "\n".join(lines) + "\n"

        lines.append(
            f"Found {data.summary.total_findings} issues with estimated "
            f"monthly waste of ${data.summary.total_monthly_waste:.2f}"
        )
        lines.append("")

        rows: list[tuple[str, ...]] = [
            TABLE_HEADER,
            tuple("-" * len(h) for h in TABLE_HEADER),
        ]
        for finding in data.findings:
            rows.append(
                (
                    finding.severity.value,
                    finding.resource_type.value,
                    finding.resource_name or finding.resource_id,
                    finding.region,
                    f"${finding.estimated_monthly_waste:.2f}",
                    finding.message,
                )
            )
        lines.extend(format_table(rows))
        lines.append("")
        lines.extend(self._summary_lines(data))
        return "\n".join(lines) + "\n"

    def _summary_lines(self, data: ReportData) -> list[str]:
        summary = data.summary
        lines = [
            "Summary",
            "-------",
            f"Resources scanned:       {summary.total_resources_scanned}",
            f"Repositories scanned:    {summary.repositories_scanned}",
            f"Total findings:          {summary.total_findings}",
            f"Estimated monthly waste: ${summary.total_monthly_waste:.2f}",
        ]
        if summary.by_severity:
            lines.append(
                f"By severity:             {format_severity_counts(summary.by_severity)}"
            )
        if summary.by_resource_type:
            lines.append(
                f"By resource type:        {format_counts(summary.by_resource_type)}"
            )

        if data.errors:
            lines.append("")
            lines.append(f"Warnings ({len(data.errors)}):")
            for error in data.errors:
                lines.append(f"  - {error}")
        return lines
