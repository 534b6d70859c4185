"""Core reconciliation components for Preload Sync."""

from preload_sync.core.engine import CycleStats, ReconciliationEngine
from preload_sync.core.integrity import IntegrityHasher
from preload_sync.core.manifest import Manifest, ManifestStore, ResourceDescriptor
from preload_sync.core.policy import Decision, DiffPolicy, GatePolicy, build_policy
from preload_sync.core.scheduler import Scheduler

__all__ = [
    "CycleStats",
    "ReconciliationEngine",
    "IntegrityHasher",
    "Manifest",
    "ManifestStore",
    "ResourceDescriptor",
    "Decision",
    "DiffPolicy",
    "GatePolicy",
    "build_policy",
    "Scheduler",
]
