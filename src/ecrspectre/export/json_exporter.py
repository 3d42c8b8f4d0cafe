"""
JSON export functionality for ecrspectre.

Exports reports as the spectre/v1 JSON envelope, and the SpectreHub
ingestion envelope which carries the same data under a different
schema key.
"""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any

from ecrspectre.export.base import (
    SPECTRE_SCHEMA,
    BaseExporter,
    ExportFormat,
    ReportData,
)


class JSONExporter(BaseExporter):
    """
    Exports reports to the spectre/v1 JSON envelope.

    Output: {"$schema": "spectre/v1", "tool": ..., "findings": [...], ...}
    """

    schema_key = "$schema"

    @property
    def format(self) -> ExportFormat:
        return ExportFormat.JSON

    def render(self, data: ReportData) -> str:
        """Render the JSON envelope."""
        envelope: dict[str, Any] = {self.schema_key: SPECTRE_SCHEMA}
        envelope.update(data.to_dict())
        return json.dumps(envelope, indent=2, default=self._json_serializer) + "\n"

    def _json_serializer(self, obj: Any) -> Any:
        """Custom JSON serializer for non-standard types."""
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (set, frozenset, tuple)):
            return list(obj)
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        return str(obj)


class SpectreHubExporter(JSONExporter):
    """
    Exports reports to the SpectreHub ingestion envelope.

    Output: {"schema": "spectre/v1", "tool": ..., "findings": [...], ...}
    """

    schema_key = "schema"

    @property
    def format(self) -> ExportFormat:
        return ExportFormat.SPECTREHUB

