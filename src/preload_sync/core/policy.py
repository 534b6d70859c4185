"""
Eligibility policies.

A policy looks at one remote descriptor (and, for the diff policy, the local
manifest) and decides whether the engine must replace the file. Policies are
pure: no I/O, no state changes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from preload_sync.config import PolicyKind, Settings
from preload_sync.core.manifest import Manifest, ResourceDescriptor


@dataclass(frozen=True)
class Decision:
    """Outcome of evaluating one remote descriptor."""

    entry: ResourceDescriptor
    required: bool


class EligibilityPolicy(Protocol):
    """Interface shared by all policies."""

    name: str
    # Stop the cycle after the first eligible descriptor
    single_update: bool
    # Maintain and persist a per-file local manifest
    tracks_local: bool

    def decide(self, local: Manifest, remote: ResourceDescriptor) -> Decision:
        ...


class GatePolicy:
    """
    Global version gate.

    A remote descriptor is eligible when the client's current version has
    reached its MinVersion and the publisher enabled the update. The local
    manifest is ignored, and at most one descriptor is applied per cycle.
    """

    name = PolicyKind.GATE.value
    single_update = True
    tracks_local = False

    def __init__(self, current_version: int) -> None:
        if current_version < 0:
            raise ValueError("current_version must be non-negative")
        self.current_version = current_version

    def decide(self, local: Manifest, remote: ResourceDescriptor) -> Decision:
        required = (
            self.current_version >= remote.minimum_version
            and remote.update_enabled
        )
        return Decision(entry=remote, required=required)


class DiffPolicy:
    """
    Per-file version diff.

    A remote descriptor is eligible when the local entry with the same name
    has a strictly lower version. Names missing locally are skipped unless
    ``add_missing`` is set.
    """

    name = PolicyKind.DIFF.value
    single_update = False
    tracks_local = True

    def __init__(self, add_missing: bool = False) -> None:
        self.add_missing = add_missing

    def decide(self, local: Manifest, remote: ResourceDescriptor) -> Decision:
        current = local.get(remote.name)
        if current is None:
            return Decision(entry=remote, required=self.add_missing)
        return Decision(entry=current, required=current.version < remote.version)


def build_policy(settings: Settings) -> GatePolicy | DiffPolicy:
    """Select the policy named by the configuration."""
    if settings.policy == PolicyKind.GATE:
        return GatePolicy(settings.current_version)
    if settings.policy == PolicyKind.DIFF:
        return DiffPolicy(add_missing=settings.sync.add_missing)
    raise ValueError("policy is required (gate or diff)")
