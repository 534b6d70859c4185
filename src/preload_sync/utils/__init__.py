"""Utility modules for Preload Sync."""

from preload_sync.utils.logger import log_event, setup_logging

__all__ = ["setup_logging", "log_event"]
