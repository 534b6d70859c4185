"""
Error taxonomy for preload-sync.

Every error raised by a sync cycle derives from SyncError so the scheduler
can catch them at the cycle boundary. None of them is fatal to the process.
"""

from __future__ import annotations

from pathlib import Path


class SyncError(Exception):
    """Base exception for sync cycle failures."""


class NetworkError(SyncError):
    """Raised on connection, DNS or timeout failures."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class RemoteStatusError(SyncError):
    """Raised when the server answers with a non-success HTTP status."""

    def __init__(self, status_code: int, url: str) -> None:
        super().__init__(f"Server returned HTTP {status_code} for {url}")
        self.status_code = status_code
        self.url = url


class DecodeError(SyncError):
    """Raised when a manifest document is malformed."""


class ReadError(SyncError):
    """Raised when a local file is missing or cannot be read."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class WriteError(SyncError):
    """Raised when a local file cannot be written or replaced."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class IntegrityMismatchError(SyncError):
    """Raised when a downloaded file does not hash to the expected digest."""

    def __init__(self, name: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Digest verification failed for {name}. "
            f"Expected: {expected}, Actual: {actual}"
        )
        self.name = name
        self.expected = expected
        self.actual = actual
