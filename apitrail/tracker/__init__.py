"""Write-request tracker module."""

from .tracker import MUTATING_METHODS, IWriteTracker, WriteTracker

__all__ = ["MUTATING_METHODS", "IWriteTracker", "WriteTracker"]
