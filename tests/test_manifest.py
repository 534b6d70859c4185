"""Tests for manifest model and store."""

import json
from pathlib import Path
from unittest import mock

import pytest

from preload_sync.core.manifest import Manifest, ManifestStore, ResourceDescriptor
from preload_sync.errors import DecodeError, ReadError, WriteError


REMOTE_DOCUMENT = [
    {
        "Name": "core.bin",
        "Size": 1024,
        "MD5": "0cc175b9c0f1b6a831c399e269772661",
        "Time": 1700000000,
        "Path": "http://cdn.test/core.bin",
        "Version": 3,
        "MinVersion": 1,
        "EnabledUpdate": 1,
    },
    {
        "Name": "extra.bin",
        "Size": 10,
        "MD5": "92eb5ffee6ae2fec3ad71c777531578f",
        "Time": 1700000100,
        "Path": "http://cdn.test/extra.bin",
        "Version": 1,
    },
]


@pytest.fixture
def store() -> ManifestStore:
    return ManifestStore()


class TestResourceDescriptor:
    """Tests for ResourceDescriptor model."""

    def test_parse_wire_fields(self) -> None:
        """Test parsing wire field names."""
        entry = ResourceDescriptor.model_validate(REMOTE_DOCUMENT[0])
        assert entry.name == "core.bin"
        assert entry.digest == "0cc175b9c0f1b6a831c399e269772661"
        assert entry.source_location == "http://cdn.test/core.bin"
        assert entry.version == 3
        assert entry.minimum_version == 1
        assert entry.update_enabled is True

    def test_gate_fields_default_off(self) -> None:
        """Test gate fields default when absent."""
        entry = ResourceDescriptor.model_validate(REMOTE_DOCUMENT[1])
        assert entry.minimum_version == 0
        assert entry.update_enabled is False

    def test_populate_by_field_name(self) -> None:
        """Test building a descriptor from Python field names."""
        entry = ResourceDescriptor(name="a", digest="d1", version=1)
        assert entry.to_wire()["Name"] == "a"
        assert entry.to_wire()["EnabledUpdate"] == 0


class TestManifest:
    """Tests for Manifest collection."""

    def test_preserves_order(self) -> None:
        """Test entries keep document order."""
        manifest = Manifest([
            ResourceDescriptor(name="b"),
            ResourceDescriptor(name="a"),
            ResourceDescriptor(name="c"),
        ])
        assert manifest.names() == ["b", "a", "c"]

    def test_duplicate_names_rejected(self) -> None:
        """Test duplicate names are rejected."""
        with pytest.raises(ValueError, match="Duplicate"):
            Manifest([ResourceDescriptor(name="a"), ResourceDescriptor(name="a")])

    def test_upsert_keeps_position(self) -> None:
        """Test upsert replaces an entry in place."""
        manifest = Manifest([ResourceDescriptor(name="a"), ResourceDescriptor(name="b")])
        manifest.upsert(ResourceDescriptor(name="a", version=5))
        manifest.upsert(ResourceDescriptor(name="c"))

        assert manifest.names() == ["a", "b", "c"]
        assert manifest.get("a").version == 5
        assert "c" in manifest
        assert manifest.get("missing") is None


class TestManifestStore:
    """Tests for ManifestStore class."""

    def test_parse_document(self, store: ManifestStore) -> None:
        """Test parsing a manifest document."""
        manifest = store.parse(json.dumps(REMOTE_DOCUMENT).encode())
        assert len(manifest) == 2
        assert manifest.names() == ["core.bin", "extra.bin"]

    def test_parse_malformed_json(self, store: ManifestStore) -> None:
        """Test malformed JSON raises DecodeError."""
        with pytest.raises(DecodeError):
            store.parse(b"{not json")

    def test_parse_wrong_shape(self, store: ManifestStore) -> None:
        """Test a non-list document raises DecodeError."""
        with pytest.raises(DecodeError):
            store.parse(b'{"Name": "a"}')

    def test_parse_negative_version(self, store: ManifestStore) -> None:
        """Test negative versions raise DecodeError."""
        with pytest.raises(DecodeError):
            store.parse(b'[{"Name": "a", "Version": -1}]')

    def test_parse_duplicate_names(self, store: ManifestStore) -> None:
        """Test duplicate names raise DecodeError."""
        with pytest.raises(DecodeError, match="Duplicate"):
            store.parse(b'[{"Name": "a"}, {"Name": "a"}]')

    def test_save_and_load(self, store: ManifestStore, tmp_path: Path) -> None:
        """Test a saved manifest loads back equal."""
        path = tmp_path / "res" / "preload.json"
        manifest = store.parse(json.dumps(REMOTE_DOCUMENT))

        store.save(path, manifest)

        assert store.exists(path)
        assert store.load(path) == manifest
        assert not (tmp_path / "res" / "preload.json.tmp").exists()

    def test_save_uses_wire_names_and_indent(self, store: ManifestStore, tmp_path: Path) -> None:
        """Test saved JSON uses wire names and indentation."""
        path = tmp_path / "preload.json"
        store.save(path, store.parse(json.dumps(REMOTE_DOCUMENT)))

        text = path.read_text()
        assert text.startswith("[\n  {")
        data = json.loads(text)
        assert data[0]["MD5"] == REMOTE_DOCUMENT[0]["MD5"]
        assert data[1]["EnabledUpdate"] == 0

    def test_save_is_deterministic(self, store: ManifestStore, tmp_path: Path) -> None:
        """Test saving twice gives identical bytes."""
        manifest = store.parse(json.dumps(REMOTE_DOCUMENT))
        first, second = tmp_path / "a.json", tmp_path / "b.json"
        store.save(first, manifest)
        store.save(second, manifest)
        assert first.read_bytes() == second.read_bytes()

    def test_load_missing_file(self, store: ManifestStore, tmp_path: Path) -> None:
        """Test loading a missing manifest."""
        with pytest.raises(ReadError):
            store.load(tmp_path / "missing.json")

    def test_load_corrupt_file(self, store: ManifestStore, tmp_path: Path) -> None:
        """Test loading a corrupt manifest."""
        path = tmp_path / "preload.json"
        path.write_text("[{")
        with pytest.raises(DecodeError):
            store.load(path)

    def test_failed_save_keeps_previous_manifest(
        self, store: ManifestStore, tmp_path: Path
    ) -> None:
        """Test a failed rename leaves the old manifest intact."""
        path = tmp_path / "preload.json"
        original = Manifest([ResourceDescriptor(name="a", version=1)])
        store.save(path, original)
        before = path.read_bytes()

        with mock.patch("preload_sync.core.manifest.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(WriteError):
                store.save(path, Manifest([ResourceDescriptor(name="a", version=2)]))

        assert path.read_bytes() == before
        assert not (tmp_path / "preload.json.tmp").exists()
