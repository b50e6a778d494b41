"""Configuration models using Pydantic for validation."""

import os
import sys
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

APP_DIR_NAME = "QuickConnect"


def default_data_dir() -> Path:
    """Return the per-user directory holding hosts.csv and the recent list."""
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / APP_DIR_NAME
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_DIR_NAME.lower()
    return Path.home() / ".config" / APP_DIR_NAME.lower()


class StorageConfig(BaseModel):
    """Where the registry and its sidecar files live."""

    data_dir: Path | None = None
    hosts_file: str = "hosts.csv"
    recent_file: str = "recent_connections.json"
    max_recent: int = Field(default=5, ge=1, le=100)

    @field_validator("hosts_file", "recent_file")
    @classmethod
    def validate_file_name(cls, v: str) -> str:
        """Validate that a file name is a bare name, not a path."""
        if not v or Path(v).name != v:
            raise ValueError(f"File name must not contain directories, got '{v}'")
        return v

    @property
    def resolved_data_dir(self) -> Path:
        """Configured data directory, or the platform default."""
        return self.data_dir if self.data_dir is not None else default_data_dir()

    @property
    def hosts_path(self) -> Path:
        return self.resolved_data_dir / self.hosts_file

    @property
    def recent_path(self) -> Path:
        return self.resolved_data_dir / self.recent_file


class ProbeConfig(BaseModel):
    """Reachability probe settings."""

    port: int = Field(default=3389, ge=1, le=65535)  # RDP
    timeout_seconds: float = Field(default=2.0, gt=0, le=60)
    max_workers: int = Field(default=128, ge=1, le=1024)


class Settings(BaseModel):
    """General application settings."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_to_file: bool = True


class Config(BaseModel):
    """Main configuration model."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)
    settings: Settings = Field(default_factory=Settings)

    @classmethod
    def load(cls, path: Path | str = "config.json") -> "Config":
        """Load configuration from a JSON file."""
        import json

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        return cls.model_validate(data)

    @classmethod
    def load_or_default(cls, path: Path | str = "config.json") -> "Config":
        """Load configuration or return default if file doesn't exist."""
        try:
            return cls.load(path)
        except FileNotFoundError:
            return cls()
