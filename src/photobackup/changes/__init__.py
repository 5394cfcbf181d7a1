"""Incremental change detection against the photo library."""

from .tracker import ChangeDelta, ChangeTracker

__all__ = ["ChangeDelta", "ChangeTracker"]
