"""
Observability for ecrspectre.

Provides logging setup for the CLI and for library embedding.
"""

from ecrspectre.observability.logging import (
    HumanReadableFormatter,
    StructuredFormatter,
    configure_from_env,
    configure_logging,
)

__all__ = [
    "HumanReadableFormatter",
    "StructuredFormatter",
    "configure_from_env",
    "configure_logging",
]
