"""Versioned item sets (Ballpark / Estimates / Detail) per project."""

from wbscalc.versions.manager import VersionManager, resolve_items
from wbscalc.versions.models import ResolvedVersion

__all__ = ["ResolvedVersion", "VersionManager", "resolve_items"]
