"""Data models for the host registry."""

from .config import Config, ProbeConfig, Settings, StorageConfig
from .decode_warning import DecodeWarning
from .host import DiscoveredHost, Host, HostStatus
from .recent import RecentConnection

__all__ = [
    "Config",
    "DecodeWarning",
    "DiscoveredHost",
    "Host",
    "HostStatus",
    "ProbeConfig",
    "RecentConnection",
    "Settings",
    "StorageConfig",
]
