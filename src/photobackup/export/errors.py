"""Errors raised while exporting assets."""


class BackupError(Exception):
    """Base exception for back-up runs."""


class BackupConfigurationError(BackupError):
    """Raised when the album or destination folder cannot be used."""


class CancellingExportError(BackupError):
    """Raised when a failure must abort the whole run rather than one asset."""


class BackupCancelledError(BackupError):
    """Raised when a run observes a cancellation request."""
