"""Observability module for provenance_core.

Provides structured logging (structlog rendered through Rich).
"""

from provenance_core.observability.logging import (
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
)

__all__ = [
    "close_file_logging",
    "configure_logging",
    "get_logger",
    "get_logs_dir",
]
