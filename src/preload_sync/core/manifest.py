"""
Manifest model and on-disk store.

A manifest is an ordered list of resource descriptors, serialized as a JSON
array using the publisher's field names (Name, Size, MD5, Time, Path,
Version, MinVersion, EnabledUpdate). The store writes through a staging
file and an atomic rename so a crash never corrupts the previous manifest.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Iterable, Iterator

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_serializer

from preload_sync.errors import DecodeError, ReadError, WriteError


class ResourceDescriptor(BaseModel):
    """One manifest row describing a single resource file."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(alias="Name", min_length=1)
    size: int = Field(default=0, alias="Size")
    digest: str = Field(default="", alias="MD5")
    timestamp: int = Field(default=0, alias="Time")
    source_location: str = Field(default="", alias="Path")
    version: int = Field(default=0, ge=0, alias="Version")
    minimum_version: int = Field(default=0, ge=0, alias="MinVersion")
    update_enabled: bool = Field(default=False, alias="EnabledUpdate")

    @field_serializer("update_enabled")
    def serialize_update_enabled(self, value: bool) -> int:
        return 1 if value else 0

    def to_wire(self) -> dict[str, Any]:
        """Serialize using the publisher's field names."""
        return self.model_dump(by_alias=True)


_DESCRIPTORS = TypeAdapter(list[ResourceDescriptor])


class Manifest:
    """
    Ordered collection of descriptors keyed by name.

    Iteration yields descriptors in insertion order; ``upsert`` replaces an
    entry in place without moving it.
    """

    def __init__(self, entries: Iterable[ResourceDescriptor] = ()) -> None:
        self._entries: dict[str, ResourceDescriptor] = {}
        for entry in entries:
            if entry.name in self._entries:
                raise ValueError(f"Duplicate manifest entry: {entry.name}")
            self._entries[entry.name] = entry

    def __iter__(self) -> Iterator[ResourceDescriptor]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Manifest):
            return NotImplemented
        return list(self._entries.values()) == list(other._entries.values())

    def __repr__(self) -> str:
        return f"Manifest({list(self._entries)!r})"

    def get(self, name: str) -> ResourceDescriptor | None:
        return self._entries.get(name)

    def names(self) -> list[str]:
        return list(self._entries)

    def upsert(self, entry: ResourceDescriptor) -> None:
        """Replace the entry with the same name, or append a new one."""
        self._entries[entry.name] = entry

    def to_wire(self) -> list[dict[str, Any]]:
        return [entry.to_wire() for entry in self._entries.values()]


class ManifestStore:
    """
    Reads and writes manifests as JSON documents.

    Example:
        store = ManifestStore()

        manifest = store.parse(response_body)
        store.save(Path("resources/preload.json"), manifest)
        local = store.load(Path("resources/preload.json"))
    """

    STAGING_SUFFIX = ".tmp"

    def parse(self, content: bytes | str) -> Manifest:
        """
        Decode a manifest document.

        Raises:
            DecodeError: On malformed JSON, schema violations or duplicate names
        """
        try:
            data = json.loads(content)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(f"Manifest is not valid JSON: {e}") from e

        try:
            entries = _DESCRIPTORS.validate_python(data)
        except ValidationError as e:
            raise DecodeError(f"Manifest does not match schema: {e}") from e

        try:
            return Manifest(entries)
        except ValueError as e:
            raise DecodeError(str(e)) from e

    def dumps(self, manifest: Manifest) -> str:
        """Serialize deterministically as indented JSON."""
        return json.dumps(manifest.to_wire(), indent=2, ensure_ascii=False) + "\n"

    def exists(self, path: Path | str) -> bool:
        return Path(path).is_file()

    def load(self, path: Path | str) -> Manifest:
        """
        Load a manifest from disk.

        Raises:
            ReadError: If the file is missing or unreadable
            DecodeError: If the content is malformed
        """
        path = Path(path)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise ReadError(f"Failed to read manifest {path}: {e}", path) from e
        return self.parse(content)

    def save(self, path: Path | str, manifest: Manifest) -> None:
        """
        Write a manifest atomically via staging file then rename.

        Raises:
            WriteError: On any I/O failure; the previous file is left intact
        """
        path = Path(path)
        staging = path.with_name(path.name + self.STAGING_SUFFIX)
        payload = self.dumps(manifest).encode("utf-8")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with staging.open("wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(staging, path)
        except OSError as e:
            staging.unlink(missing_ok=True)
            raise WriteError(f"Failed to write manifest {path}: {e}", path) from e
