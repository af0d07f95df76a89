"""Logging setup for pkiforge."""

from pkiforge.logging.setup import (
    RunContextFilter,
    StructuredFormatter,
    TextFormatter,
    artifact_context,
    configure_logging,
    run_context,
)

__all__ = [
    "RunContextFilter",
    "StructuredFormatter",
    "TextFormatter",
    "artifact_context",
    "configure_logging",
    "run_context",
]
