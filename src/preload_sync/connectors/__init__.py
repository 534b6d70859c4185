"""Remote connectors for Preload Sync."""

from preload_sync.connectors.http_client import Transport, create_transport

__all__ = ["Transport", "create_transport"]
