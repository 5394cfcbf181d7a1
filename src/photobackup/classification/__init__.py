"""Asset classification package."""

from .classifier import AssetClassifier

__all__ = ["AssetClassifier"]
