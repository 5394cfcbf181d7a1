"""Asset export pipeline package."""

from .errors import (
    BackupCancelledError,
    BackupConfigurationError,
    BackupError,
    CancellingExportError,
)
from .futures import SingleResolutionFuture
from .models import ExportItem, ExportResult
from .pipeline import ExportPipeline

__all__ = [
    "BackupError",
    "BackupCancelledError",
    "BackupConfigurationError",
    "CancellingExportError",
    "ExportItem",
    "ExportPipeline",
    "ExportResult",
    "SingleResolutionFuture",
]
