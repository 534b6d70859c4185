"""Preload Sync - keeps local resource files in line with a published manifest."""

__version__ = "1.0.0"
__author__ = "Preload Sync Contributors"

from preload_sync.config import PolicyKind, Settings

__all__ = ["PolicyKind", "Settings", "__version__"]
