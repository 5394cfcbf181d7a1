"""Selective-synchronization membership for exported files."""

from .coordinator import SelectionCoordinator

__all__ = ["SelectionCoordinator"]
