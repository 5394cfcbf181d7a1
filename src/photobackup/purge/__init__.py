"""Removal of originals that are safely backed up."""

from .manager import PurgeCandidate, PurgeManager

__all__ = ["PurgeCandidate", "PurgeManager"]
