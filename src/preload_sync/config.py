"""
Preload Sync Configuration System.

This module provides a type-safe, immutable configuration record using Pydantic.
Settings can be loaded from:
1. Environment variables (prefixed with PRELOAD_SYNC_)
2. Config file (TOML or JSON)
3. CLI arguments (highest priority)

Example usage:
    from preload_sync.config import Settings, PolicyKind

    # Load from environment
    settings = Settings()

    # Or with explicit values
    settings = Settings(
        server_url="https://updates.example.com/preload.json",
        poll_interval="5m",
        policy=PolicyKind.DIFF,
    )
"""

from __future__ import annotations

import json
import re
import sys
import tomllib
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PolicyKind(str, Enum):
    """Eligibility policy used to decide which files need replacing."""

    GATE = "gate"
    DIFF = "diff"


# Keys used by config.json files written for the original agent
LEGACY_KEYS = {
    "serverURL": "server_url",
    "pollInterval": "poll_interval",
    "currentVersion": "current_version",
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: str) -> timedelta:
    """
    Parse a duration string such as "30s", "5m" or "1h30m".

    Args:
        value: Sequence of decimal numbers each followed by a unit
            (ns, us, ms, s, m, h)

    Returns:
        Equivalent timedelta

    Raises:
        ValueError: If the string is not a valid duration
    """
    text = value.strip()
    if not text:
        raise ValueError("empty duration")
    if text == "0":
        return timedelta(0)

    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return timedelta(seconds=total)


def default_resource_dir() -> Path:
    """Resource directory relative to the agent's install location."""
    if sys.platform == "darwin":
        return Path("../../Resources/exts/preload")
    return Path("./resources/exts/preload")


class SyncOptions(BaseModel):
    """Options controlling sync behavior."""

    model_config = ConfigDict(frozen=True)

    checksum_algorithm: str = Field(
        default="md5",
        pattern="^(md5|sha256)$",
        description="Algorithm used to verify downloaded files",
    )
    add_missing: bool = Field(
        default=False,
        description="Diff policy: download remote entries absent from the local manifest",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout for manifest and resource fetches",
    )
    max_retries: int = Field(
        default=0,
        ge=0,
        le=10,
        description="Extra attempts for a fetch that fails with a network error",
    )
    retry_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Base delay between retry attempts (grows linearly)",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Log level",
    )
    file: Path | None = Field(
        default=None,
        description="Log file path (None = console only)",
    )
    format: str = Field(
        default="rich",
        pattern="^(rich|json|simple)$",
        description="Log format: rich (colored), json, or simple",
    )
    max_file_size_mb: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Max log file size before rotation",
    )
    backup_count: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Number of rotated log files to keep",
    )


class Settings(BaseSettings):
    """
    Main settings class for Preload Sync.

    Settings are loaded in this priority (highest first):
    1. Explicit constructor arguments
    2. Environment variables (PRELOAD_SYNC_* prefix)
    3. Config file (if specified)
    4. Defaults

    Instances are frozen: the engine and scheduler receive one record and
    never see it change. Use ``model_copy(update=...)`` to derive overrides.

    Example:
        # From environment
        export PRELOAD_SYNC_SERVER_URL="https://updates.example.com/preload.json"
        export PRELOAD_SYNC_POLICY="diff"
        settings = Settings()

        # From config file
        settings = Settings.from_file("config.json")
    """

    model_config = SettingsConfigDict(
        env_prefix="PRELOAD_SYNC_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    server_url: str = Field(
        default="",
        description="URL of the remote manifest document",
    )
    poll_interval: timedelta = Field(
        default=timedelta(minutes=5),
        description="Delay between sync cycles (e.g. 30s, 5m, 1h30m)",
    )
    current_version: int = Field(
        default=0,
        ge=0,
        description="Client version compared against MinVersion by the gate policy",
    )
    policy: PolicyKind | None = Field(
        default=None,
        description="Eligibility policy: gate or diff",
    )

    resource_dir: Path = Field(
        default_factory=default_resource_dir,
        description="Directory holding the managed resource files",
    )
    manifest_file: str = Field(
        default="preload.json",
        description="Local manifest file name inside resource_dir",
    )
    mirror_file: str | None = Field(
        default=None,
        description="Optional file name inside resource_dir to mirror the remote manifest to",
    )

    # Nested configs
    sync: SyncOptions = Field(default_factory=SyncOptions)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("poll_interval", mode="before")
    @classmethod
    def validate_poll_interval(cls, v: Any) -> Any:
        """Accept duration strings like "5m" alongside pydantic's formats."""
        if isinstance(v, str) and not v.strip().upper().startswith("P"):
            try:
                return parse_duration(v)
            except ValueError:
                # Leave plain numbers and anything else to pydantic
                return v
        return v

    @field_validator("poll_interval")
    @classmethod
    def validate_poll_interval_positive(cls, v: timedelta) -> timedelta:
        if v.total_seconds() <= 0:
            raise ValueError("poll_interval must be positive")
        return v

    @property
    def interval_seconds(self) -> float:
        """Poll interval in seconds."""
        return self.poll_interval.total_seconds()

    @property
    def manifest_path(self) -> Path:
        """Absolute-or-relative path of the local manifest."""
        return self.resource_dir / self.manifest_file

    @property
    def mirror_path(self) -> Path | None:
        """Path the remote manifest is mirrored to, if enabled."""
        if not self.mirror_file:
            return None
        return self.resource_dir / self.mirror_file

    @classmethod
    def from_file(cls, path: Path | str) -> "Settings":
        """
        Load settings from a TOML or JSON config file.

        Relative ``resource_dir`` and log file paths are resolved against
        the config file's directory.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        content = path.read_text(encoding="utf-8")

        if path.suffix in (".toml", ".tml"):
            data = tomllib.loads(content)
        elif path.suffix == ".json":
            data = json.loads(content)
        else:
            raise ValueError(f"Unsupported config format: {path.suffix}")

        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")

        data = _normalize_keys(data)
        base_dir = path.resolve().parent

        resource_dir = Path(data.get("resource_dir") or default_resource_dir())
        if not resource_dir.is_absolute():
            data["resource_dir"] = base_dir / resource_dir

        logging_data = data.get("logging")
        if isinstance(logging_data, dict) and logging_data.get("file"):
            log_file = Path(logging_data["file"])
            if not log_file.is_absolute():
                data["logging"] = {**logging_data, "file": base_dir / log_file}

        return cls.model_validate(data)

    def to_file(self, path: Path | str) -> None:
        """Save current settings to a config file."""
        path = Path(path)
        data = self.model_dump(mode="json", exclude_none=True)
        data["poll_interval"] = f"{int(self.interval_seconds)}s"

        if path.suffix in (".toml", ".tml"):
            # Basic TOML serialization
            lines = []
            for key, value in data.items():
                if not isinstance(value, dict):
                    lines.append(f"{key} = {json.dumps(value)}")
            for key, value in data.items():
                if isinstance(value, dict):
                    lines.append(f"\n[{key}]")
                    for k, v in value.items():
                        lines.append(f"{k} = {json.dumps(v)}")
            path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        else:
            path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def validate_required(self) -> list[str]:
        """Validate that required settings are present. Returns list of errors."""
        errors = []
        if not self.server_url:
            errors.append("server_url is required")
        else:
            scheme = urlparse(self.server_url).scheme
            if scheme not in ("http", "https"):
                errors.append(f"server_url must be an http(s) URL: {self.server_url}")
        if self.policy is None:
            errors.append("policy is required (gate or diff)")
        return errors


def _normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Map legacy camelCase keys onto settings field names."""
    normalized: dict[str, Any] = {}
    for key, value in data.items():
        normalized[LEGACY_KEYS.get(key, key)] = value
    return normalized


# Convenience function for loading settings
def load_settings(
    config_file: Path | str | None = None,
    **overrides: Any,
) -> Settings:
    """
    Load settings with optional config file and overrides.

    Args:
        config_file: Optional path to config file
        **overrides: Settings to override (highest priority)

    Returns:
        Configured Settings instance
    """
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if config_file:
        settings = Settings.from_file(config_file)
        if overrides:
            data = settings.model_dump()
            data.update(overrides)
            return Settings.model_validate(data)
        return settings
    return Settings(**overrides)
