"""
File Integrity Hasher.

Computes content digests for resource files so a downloaded candidate can be
proven identical to what the manifest promises before it replaces anything.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from preload_sync.errors import ReadError


CHUNK_SIZE = 1024 * 1024


class IntegrityHasher:
    """
    Streaming file digest calculator.

    Example:
        hasher = IntegrityHasher("md5")

        digest = hasher.digest(Path("resources/app.bin"))
        if hasher.matches(Path("resources/app.bin"), expected):
            ...
    """

    def __init__(self, algorithm: str = "md5") -> None:
        """
        Initialize integrity hasher.

        Args:
            algorithm: Hash algorithm ("md5" or "sha256")
        """
        if algorithm not in ("md5", "sha256"):
            raise ValueError(f"Unsupported algorithm: {algorithm}")
        self.algorithm = algorithm

    def _get_hasher(self) -> "hashlib._Hash":
        """Get a new hash object."""
        if self.algorithm == "sha256":
            return hashlib.sha256()
        return hashlib.md5()

    def digest(self, path: Path | str) -> str:
        """
        Calculate the hex digest of a file's full content.

        Args:
            path: File to hash

        Returns:
            Lowercase hex digest

        Raises:
            ReadError: If the file is missing or unreadable
        """
        path = Path(path)
        hasher = self._get_hasher()
        try:
            with path.open("rb") as f:
                for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                    hasher.update(chunk)
        except OSError as e:
            raise ReadError(f"Failed to read {path}: {e}", path) from e
        return hasher.hexdigest()

    def compare_checksums(self, actual: str, expected: str) -> bool:
        """Compare two checksums for equality."""
        return actual.lower() == expected.lower()

    def matches(self, path: Path | str, expected: str) -> bool:
        """Check whether a file hashes to the expected digest."""
        return self.compare_checksums(self.digest(path), expected)
