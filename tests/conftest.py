"""Pytest configuration and fixtures."""

import json
import tempfile
from pathlib import Path

import pytest

from quickconnect.models.host import Host


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_csv_bytes():
    """A well-formed hosts.csv."""
    return (
        b"hostname,description,last_connected\r\n"
        b"server01.corp.example.com,Web Server,13/12/2025 14:30:00\r\n"
        b"db01.corp.example.com,\"Database, primary\",\r\n"
        b"jump.example.org,Jump host,01/02/2024 09:05:07\r\n"
    )


@pytest.fixture
def sample_hosts():
    """Hosts built through validated construction."""
    return [
        Host.create("server01.corp.example.com", "Web Server", "13/12/2025 14:30:00"),
        Host.create("db01.corp.example.com", "Database, primary"),
        Host.create("jump.example.org", "Jump host", "01/02/2024 09:05:07"),
        Host.create("APP02.corp.example.com", 'App "blue" pool'),
    ]


@pytest.fixture
def sample_config_data(temp_dir):
    """Sample configuration data for testing."""
    return {
        "storage": {
            "data_dir": str(temp_dir / "data"),
            "hosts_file": "hosts.csv",
            "recent_file": "recent.json",
            "max_recent": 3,
        },
        "probe": {
            "port": 3390,
            "timeout_seconds": 0.5,
            "max_workers": 16,
        },
        "settings": {
            "log_level": "DEBUG",
            "log_to_file": False,
        },
    }


@pytest.fixture
def sample_config_file(temp_dir, sample_config_data):
    """Create a sample config file for testing."""
    config_path = temp_dir / "config.json"
    with open(config_path, "w") as f:
        json.dump(sample_config_data, f)
    return config_path
