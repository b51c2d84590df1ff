"""Duplicate detection and profile merging."""

from .detector import DuplicateDetector
from .merge import ProfileMerger

__all__ = ["DuplicateDetector", "ProfileMerger"]
