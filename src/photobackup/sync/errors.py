"""Errors reported by the synchronization engine collaborator."""


class SyncEngineError(Exception):
    """Raised when the synchronization engine rejects or fails a request."""
