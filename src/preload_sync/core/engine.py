"""
Reconciliation Engine - Main orchestration for one sync cycle.

Coordinates all components to bring local resource files in line with the
remote manifest:
- Transport for the remote manifest and resource bodies
- Manifest store for the local applied state
- Eligibility policy to pick stale files
- Integrity hasher to prove a download before it replaces anything
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path

from preload_sync.config import Settings
from preload_sync.connectors.http_client import Transport, create_transport
from preload_sync.core.integrity import IntegrityHasher
from preload_sync.core.manifest import Manifest, ManifestStore, ResourceDescriptor
from preload_sync.core.policy import EligibilityPolicy, build_policy
from preload_sync.errors import DecodeError, IntegrityMismatchError, SyncError, WriteError
from preload_sync.utils.logger import log_event


logger = logging.getLogger(__name__)


@dataclass
class CycleStats:
    """Statistics for one sync cycle."""

    policy: str
    remote_entries: int = 0
    eligible: int = 0
    updated: list[str] = field(default_factory=list)
    up_to_date: list[str] = field(default_factory=list)
    bytes_downloaded: int = 0
    manifest_saved: bool = False
    warnings: list[str] = field(default_factory=list)
    start_time: float = 0.0
    end_time: float = 0.0

    @property
    def duration_seconds(self) -> float:
        """Duration in seconds."""
        if self.end_time and self.start_time:
            return self.end_time - self.start_time
        if self.start_time:
            return time.time() - self.start_time
        return 0.0


class ReconciliationEngine:
    """
    Runs a single manifest reconciliation cycle.

    Example:
        engine = ReconciliationEngine(settings)

        async with engine:
            stats = await engine.run_cycle()
            print(stats.updated)
    """

    STAGING_SUFFIX = ".tmp"

    def __init__(
        self,
        settings: Settings,
        transport: Transport | None = None,
        store: ManifestStore | None = None,
        hasher: IntegrityHasher | None = None,
        policy: EligibilityPolicy | None = None,
    ) -> None:
        """
        Initialize reconciliation engine.

        Args:
            settings: Application settings
            transport: HTTP transport (created from settings if omitted)
            store: Manifest store
            hasher: Integrity hasher (algorithm from settings if omitted)
            policy: Eligibility policy (selected from settings if omitted)
        """
        self.settings = settings
        self.transport = transport or create_transport(settings)
        self.store = store or ManifestStore()
        self.hasher = hasher or IntegrityHasher(settings.sync.checksum_algorithm)
        self.policy = policy or build_policy(settings)
        self.resource_dir = Path(settings.resource_dir)

    async def close(self) -> None:
        await self.transport.close()

    async def __aenter__(self) -> "ReconciliationEngine":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def run_cycle(self) -> CycleStats:
        """
        Perform one full sync cycle.

        Returns:
            CycleStats describing what changed

        Raises:
            SyncError: The first failure; files replaced earlier in the
                cycle stay replaced and are recorded in the local manifest
        """
        stats = CycleStats(policy=self.policy.name)
        stats.start_time = time.time()
        log_event(
            logger, "cycle_start", "Checking for updates...",
            policy=self.policy.name, server_url=self.settings.server_url,
        )

        try:
            remote = await self._fetch_remote(stats)
            stats.remote_entries = len(remote)

            local, dirty = self._load_local(remote)
            try:
                for remote_entry in remote:
                    decision = self.policy.decide(local, remote_entry)
                    if not decision.required:
                        continue

                    stats.eligible += 1
                    if await self.replace(remote_entry, stats):
                        stats.updated.append(remote_entry.name)
                    else:
                        stats.up_to_date.append(remote_entry.name)

                    if self.policy.tracks_local:
                        if self._record_applied(local, remote_entry):
                            dirty = True

                    if self.policy.single_update:
                        break
            except Exception:
                # Replacements already made must still be recorded; the
                # cycle error wins over a failed save.
                if self.policy.tracks_local and dirty:
                    try:
                        self._save_local(local, stats)
                    except SyncError as save_error:
                        log_event(
                            logger, "manifest_save_failed",
                            f"Failed to save local manifest: {save_error}",
                            level=logging.ERROR,
                            error_type=type(save_error).__name__,
                        )
                raise

            if self.policy.tracks_local and dirty:
                self._save_local(local, stats)
        except SyncError as e:
            stats.end_time = time.time()
            log_event(
                logger, "cycle_failed", f"Update failed: {e}",
                level=logging.ERROR,
                error_type=type(e).__name__, updated=list(stats.updated),
            )
            raise

        stats.end_time = time.time()
        log_event(
            logger, "cycle_complete",
            f"Cycle complete: {len(stats.updated)} updated, "
            f"{len(stats.up_to_date)} already current",
            updated=list(stats.updated),
            up_to_date=list(stats.up_to_date),
            duration=round(stats.duration_seconds, 3),
        )
        return stats

    async def replace(self, descriptor: ResourceDescriptor, stats: CycleStats | None = None) -> bool:
        """
        Verified replacement of one resource file.

        Downloads to ``<final>.tmp``, checks the digest, then renames onto
        the final path. The final file only ever changes in that rename.

        Returns:
            True if the file was replaced, False if it already matched

        Raises:
            IntegrityMismatchError: Downloaded content has the wrong digest
            NetworkError, RemoteStatusError: Download failed
            WriteError: Staging or rename failed
        """
        final_path = self.resolve_path(descriptor.name)

        if final_path.is_file() and self.hasher.matches(final_path, descriptor.digest):
            log_event(
                logger, "file_up_to_date",
                f"{descriptor.name} already at version {descriptor.version}",
                level=logging.DEBUG, name=descriptor.name,
            )
            return False

        if not descriptor.source_location:
            raise DecodeError(f"Manifest entry {descriptor.name} has no Path")

        staging_path = final_path.with_name(final_path.name + self.STAGING_SUFFIX)
        try:
            final_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WriteError(f"Failed to create {final_path.parent}: {e}", final_path) from e

        try:
            written = await self.transport.fetch_to_file(
                descriptor.source_location, staging_path
            )
            actual = self.hasher.digest(staging_path)
            if not self.hasher.compare_checksums(actual, descriptor.digest):
                raise IntegrityMismatchError(descriptor.name, descriptor.digest, actual)
            try:
                os.replace(staging_path, final_path)
            except OSError as e:
                raise WriteError(f"Failed to replace {final_path}: {e}", final_path) from e
        except SyncError as e:
            log_event(
                logger, "file_update_failed",
                f"Failed to update {descriptor.name}: {e}",
                level=logging.ERROR,
                name=descriptor.name, error_type=type(e).__name__,
            )
            raise
        finally:
            staging_path.unlink(missing_ok=True)

        if stats is not None:
            stats.bytes_downloaded += written
        log_event(
            logger, "file_updated",
            f"Updated {descriptor.name} to version {descriptor.version}",
            name=descriptor.name, version=descriptor.version, bytes=written,
        )
        return True

    def resolve_path(self, name: str) -> Path:
        """Map a descriptor name to a path inside the resource directory."""
        root = self.resource_dir.resolve()
        candidate = (root / name).resolve()
        if candidate == root or not candidate.is_relative_to(root):
            raise WriteError(f"Manifest entry escapes resource directory: {name}", candidate)
        return candidate

    async def _fetch_remote(self, stats: CycleStats | None = None) -> Manifest:
        body = await self.transport.fetch(self.settings.server_url)
        remote = self.store.parse(body)
        log_event(
            logger, "remote_manifest_fetched",
            f"Fetched remote manifest with {len(remote)} entries",
            level=logging.DEBUG, entries=len(remote),
        )
        mirror_path = self.settings.mirror_path
        if mirror_path is not None:
            try:
                self.store.save(mirror_path, remote)
            except SyncError as e:
                log_event(
                    logger, "mirror_failed",
                    f"Failed to write manifest mirror: {e}",
                    level=logging.WARNING, path=str(mirror_path),
                )
                if stats is not None:
                    stats.warnings.append(f"Manifest mirror not written: {e}")
        return remote

    def _load_local(self, remote: Manifest) -> tuple[Manifest, bool]:
        """
        Load the local manifest, bootstrapping it when absent.

        Returns:
            The manifest and whether it needs saving
        """
        if not self.policy.tracks_local:
            return Manifest(), False

        manifest_path = self.settings.manifest_path
        if self.store.exists(manifest_path):
            return self.store.load(manifest_path), False

        local = self.bootstrap(remote)
        log_event(
            logger, "manifest_bootstrapped",
            f"Created local manifest from {len(local)} existing files",
            entries=len(local),
        )
        return local, True

    def _save_local(self, local: Manifest, stats: CycleStats) -> None:
        self.store.save(self.settings.manifest_path, local)
        stats.manifest_saved = True
        log_event(
            logger, "manifest_saved",
            f"Saved local manifest {self.settings.manifest_path}",
            entries=len(local),
        )

    def bootstrap(self, remote: Manifest) -> Manifest:
        """
        Build a first local manifest from files already on disk.

        A file matching the remote digest is recorded at the remote version;
        any other existing file is recorded at version 0 so it is replaced.
        Remote entries without a local file are left out.
        """
        local = Manifest()
        for entry in remote:
            path = self.resolve_path(entry.name)
            if not path.is_file():
                continue
            actual = self.hasher.digest(path)
            if self.hasher.compare_checksums(actual, entry.digest):
                local.upsert(entry)
            else:
                local.upsert(entry.model_copy(update={"version": 0, "digest": actual}))
        return local

    def _record_applied(self, local: Manifest, applied: ResourceDescriptor) -> bool:
        """Refresh the local entry after a successful replacement."""
        current = local.get(applied.name)
        if current is None:
            local.upsert(applied)
            return True

        updated = current.model_copy(
            update={
                "version": applied.version,
                "digest": applied.digest,
                "size": applied.size,
                "timestamp": applied.timestamp,
            }
        )
        if updated == current:
            return False
        local.upsert(updated)
        return True

