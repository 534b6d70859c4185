"""Tests for eligibility policies."""

import pytest

from preload_sync.config import PolicyKind, Settings, SyncOptions
from preload_sync.core.manifest import Manifest, ResourceDescriptor
from preload_sync.core.policy import DiffPolicy, GatePolicy, build_policy


def descriptor(name: str = "a", **fields: object) -> ResourceDescriptor:
    return ResourceDescriptor(name=name, **fields)


class TestGatePolicy:
    """Tests for GatePolicy."""

    def test_eligible_when_version_reached_and_enabled(self) -> None:
        """Test entry is eligible at its minimum version when enabled."""
        policy = GatePolicy(current_version=5)
        remote = descriptor(minimum_version=5, update_enabled=True)

        decision = policy.decide(Manifest(), remote)
        assert decision.required is True
        assert decision.entry == remote

    def test_not_eligible_below_min_version(self) -> None:
        """Test entry below its minimum version is skipped."""
        policy = GatePolicy(current_version=4)
        assert not policy.decide(Manifest(), descriptor(minimum_version=5, update_enabled=True)).required

    def test_not_eligible_when_disabled(self) -> None:
        """Test disabled entry is skipped."""
        policy = GatePolicy(current_version=10)
        assert not policy.decide(Manifest(), descriptor(minimum_version=1, update_enabled=False)).required

    def test_ignores_local_manifest(self) -> None:
        """Test gate decision ignores local entries."""
        policy = GatePolicy(current_version=1)
        local = Manifest([descriptor(version=99)])
        remote = descriptor(version=1, update_enabled=True)
        assert policy.decide(local, remote).required

    def test_single_update_flags(self) -> None:
        """Test gate applies one update and keeps no local manifest."""
        policy = GatePolicy(current_version=0)
        assert policy.single_update is True
        assert policy.tracks_local is False

    def test_negative_version_rejected(self) -> None:
        """Test negative current version is rejected."""
        with pytest.raises(ValueError):
            GatePolicy(current_version=-1)


class TestDiffPolicy:
    """Tests for DiffPolicy."""

    def test_eligible_when_local_older(self) -> None:
        """Test older local version is eligible."""
        local = Manifest([descriptor(version=1, digest="d1")])
        decision = DiffPolicy().decide(local, descriptor(version=2, digest="d2"))
        assert decision.required is True
        assert decision.entry.digest == "d1"

    @pytest.mark.parametrize("local_version,remote_version", [(2, 2), (3, 2)])
    def test_not_eligible_when_local_same_or_newer(
        self, local_version: int, remote_version: int
    ) -> None:
        """Test same or newer local version is skipped."""
        local = Manifest([descriptor(version=local_version)])
        assert not DiffPolicy().decide(local, descriptor(version=remote_version)).required

    def test_missing_local_entry_skipped(self) -> None:
        """Test unknown names are skipped by default."""
        decision = DiffPolicy().decide(Manifest(), descriptor(name="new", version=1))
        assert decision.required is False

    def test_missing_local_entry_added_when_enabled(self) -> None:
        """Test unknown names are eligible with add_missing."""
        remote = descriptor(name="new", version=1)
        decision = DiffPolicy(add_missing=True).decide(Manifest(), remote)
        assert decision.required is True
        assert decision.entry == remote

    def test_applies_all_flags(self) -> None:
        """Test diff applies every update and tracks local state."""
        policy = DiffPolicy()
        assert policy.single_update is False
        assert policy.tracks_local is True


class TestBuildPolicy:
    """Tests for build_policy()."""

    def test_gate(self) -> None:
        """Test building the gate policy."""
        policy = build_policy(Settings(policy=PolicyKind.GATE, current_version=3))
        assert isinstance(policy, GatePolicy)
        assert policy.current_version == 3

    def test_diff(self) -> None:
        """Test building the diff policy."""
        policy = build_policy(Settings(policy="diff", sync=SyncOptions(add_missing=True)))
        assert isinstance(policy, DiffPolicy)
        assert policy.add_missing is True

    def test_unset_policy_is_an_error(self) -> None:
        """Test missing policy is an error."""
        with pytest.raises(ValueError, match="policy is required"):
            build_policy(Settings())
