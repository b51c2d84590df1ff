"""Relative matching and connection requests."""

from .matcher import RelativeMatcher
from .requests import ConnectionRequestManager

__all__ = ["ConnectionRequestManager", "RelativeMatcher"]
