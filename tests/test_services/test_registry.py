"""Tests for the host registry."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from quickconnect.errors import (
    DuplicateHostError,
    HostNotFoundError,
    InvalidControllerError,
    InvalidDomainError,
    RegistryError,
)
from quickconnect.models.config import Config
from quickconnect.models.host import DiscoveredHost, HostStatus
from quickconnect.services.host_codec import decode_hosts
from quickconnect.services.registry import HostRegistry


@pytest.fixture
def registry(temp_dir, sample_csv_bytes):
    """A registry backed by the sample hosts.csv."""
    path = temp_dir / "hosts.csv"
    path.write_bytes(sample_csv_bytes)
    registry = HostRegistry(path)
    registry.load()
    return registry


class TestPersistence:
    """Tests for loading and saving."""

    def test_missing_file_is_empty(self, temp_dir):
        """Test that a registry without a file starts empty."""
        registry = HostRegistry(temp_dir / "hosts.csv")

        assert registry.load() == []
        assert registry.count == 0
        assert registry.hosts == []

    def test_load(self, registry):
        assert registry.count == 3
        assert registry.hosts[1].description == "Database, primary"

    def test_lazy_load(self, temp_dir, sample_csv_bytes):
        """Test that read methods load on first use."""
        path = temp_dir / "hosts.csv"
        path.write_bytes(sample_csv_bytes)

        assert HostRegistry(path).count == 3

    def test_load_drops_duplicates(self, temp_dir):
        """Test that repeated hostnames keep the first row and warn."""
        path = temp_dir / "hosts.csv"
        path.write_bytes(
            b"hostname,description,last_connected\r\n"
            b"a.example.com,first,\r\n"
            b"A.EXAMPLE.COM,second,\r\n"
        )
        registry = HostRegistry(path)

        warnings = registry.load()

        assert [h.description for h in registry.hosts] == ["first"]
        assert any("duplicate" in w.message for w in warnings)

    def test_load_returns_decode_warnings(self, temp_dir):
        path = temp_dir / "hosts.csv"
        path.write_bytes(b"not-a-host,x,\r\ngood.example.com,ok,\r\n")
        registry = HostRegistry(path)

        warnings = registry.load()

        assert registry.count == 1
        assert warnings[0].field == "hostname"

    def test_unreadable_file_raises(self, temp_dir):
        """Test that I/O errors are not swallowed."""
        path = temp_dir / "hosts.csv"
        path.mkdir()

        with pytest.raises(OSError):
            HostRegistry(path).load()

    def test_save_round_trip(self, registry):
        """Test that saved content decodes to the same hosts."""
        registry.save()
        hosts, warnings = decode_hosts(registry.hosts_path.read_bytes())

        assert warnings == []
        assert hosts == registry.hosts

    def test_save_leaves_no_temp_files(self, registry, temp_dir):
        registry.save()
        assert sorted(p.name for p in temp_dir.iterdir()) == ["hosts.csv"]

    def test_status_not_persisted(self, registry):
        """Test that applied status is lost on reload."""
        results = registry.refresh_status(probe=lambda hostname: HostStatus.ONLINE)
        registry.apply_status(results)
        registry.save()

        reloaded = HostRegistry(registry.hosts_path)
        assert all(h.status == HostStatus.UNKNOWN for h in reloaded.hosts)

    def test_from_config(self, sample_config_file, temp_dir):
        """Test building a registry from configuration."""
        registry = HostRegistry.from_config(Config.load(sample_config_file))

        assert registry.hosts_path == temp_dir / "data" / "hosts.csv"
        assert registry.recent.path == temp_dir / "data" / "recent.json"
        assert registry.recent.max_entries == 3
        assert registry.prober.port == 3390
        assert registry.prober.timeout == 0.5
        assert registry.prober.max_workers == 16

    def test_default_recent_path(self, temp_dir):
        """Test that the recent list sits beside hosts.csv by default."""
        registry = HostRegistry(temp_dir / "hosts.csv")
        assert registry.recent.path == temp_dir / "recent_connections.json"


class TestReadViews:
    """Tests for lookups and queries."""

    def test_hosts_is_copy(self, registry):
        """Test that callers cannot modify the registry through hosts."""
        registry.hosts.clear()
        assert registry.count == 3

    def test_get(self, registry):
        assert registry.get("DB01.CORP.EXAMPLE.COM").hostname == "db01.corp.example.com"
        assert registry.get("db01") is None

    def test_exists(self, registry):
        assert registry.exists("jump.example.org") is True
        assert registry.exists("nope.example.org") is False

    def test_search(self, registry):
        assert [h.hostname for h in registry.search("server")] == ["server01.corp.example.com"]

    def test_sorted_and_grouped(self, registry):
        assert registry.sorted_by_hostname()[0].hostname == "db01.corp.example.com"
        assert registry.sorted_by_last_connected()[0].hostname == "server01.corp.example.com"
        assert list(registry.grouped_by_domain()) == ["corp.example.com", "example.org"]


class TestEdits:
    """Tests for adding, updating and removing hosts."""

    def test_add_host_persists(self, registry):
        """Test that an added host is written to disk."""
        host = registry.add_host(" new.example.com ", " New box ")

        assert host.hostname == "new.example.com"
        assert host.description == "New box"
        assert HostRegistry(registry.hosts_path).exists("new.example.com")

    def test_add_host_creates_file(self, temp_dir):
        path = temp_dir / "sub" / "hosts.csv"
        HostRegistry(path).add_host("new.example.com")
        assert path.read_bytes().startswith(b"hostname,description,last_connected\r\n")

    def test_add_duplicate_raises(self, registry):
        """Test that duplicates are rejected ignoring case."""
        with pytest.raises(DuplicateHostError) as exc_info:
            registry.add_host("SERVER01.corp.example.com")

        assert "already exists" in str(exc_info.value)
        assert isinstance(exc_info.value, RegistryError)
        assert registry.count == 3

    def test_add_overwrite_keeps_last_connected(self, registry):
        """Test that overwriting replaces the description only."""
        host = registry.add_host("server01.corp.example.com", "Replaced", overwrite=True)

        assert host.description == "Replaced"
        assert host.last_connected == "13/12/2025 14:30:00"
        assert registry.count == 3

    def test_add_invalid_hostname(self, registry):
        with pytest.raises(ValidationError):
            registry.add_host("server01")
        assert registry.count == 3

    def test_add_invalid_description(self, registry):
        with pytest.raises(ValidationError):
            registry.add_host("new.example.com", "x" * 501)

    def test_update_host(self, registry):
        """Test renaming a host keeps its last connection."""
        updated = registry.update_host("server01.corp.example.com", new_hostname="web01.corp.example.com")

        assert updated.hostname == "web01.corp.example.com"
        assert updated.description == "Web Server"
        assert updated.last_connected == "13/12/2025 14:30:00"
        assert not registry.exists("server01.corp.example.com")

    def test_update_description_only(self, registry):
        updated = registry.update_host("jump.example.org", description="Bastion")
        assert updated.hostname == "jump.example.org"
        assert registry.get("jump.example.org").description == "Bastion"

    def test_update_case_only_rename(self, registry):
        """Test that changing only the case of a hostname is allowed."""
        updated = registry.update_host("jump.example.org", new_hostname="JUMP.example.org")
        assert updated.hostname == "JUMP.example.org"

    def test_update_to_existing_raises(self, registry):
        with pytest.raises(DuplicateHostError):
            registry.update_host("jump.example.org", new_hostname="db01.corp.example.com")

    def test_update_missing_raises(self, registry):
        with pytest.raises(HostNotFoundError):
            registry.update_host("nope.example.com", description="x")

    def test_remove_host(self, registry):
        """Test that a removed host is gone after reload."""
        removed = registry.remove_host("DB01.corp.example.com")

        assert removed.hostname == "db01.corp.example.com"
        assert not HostRegistry(registry.hosts_path).exists("db01.corp.example.com")

    def test_remove_missing_raises(self, registry):
        """Test that removing an unknown host raises a KeyError subclass."""
        with pytest.raises(KeyError) as exc_info:
            registry.remove_host("nope.example.com")

        assert isinstance(exc_info.value, HostNotFoundError)
        assert str(exc_info.value) == "Host 'nope.example.com' not found"

    def test_remove_all(self, registry):
        assert registry.remove_all() == 3
        assert registry.hosts_path.read_bytes() == b"hostname,description,last_connected\r\n"


class TestConnections:
    """Tests for recording connections."""

    def test_record_connection(self, registry):
        """Test that last_connected and the recent list are updated."""
        when = datetime(2026, 3, 4, 5, 6, 7)
        host = registry.record_connection("db01.corp.example.com", when)

        assert host.last_connected == "04/03/2026 05:06:07"
        assert registry.get("db01.corp.example.com").last_connected == "04/03/2026 05:06:07"

        recent = registry.recent_connections()
        assert recent[0].hostname == "db01.corp.example.com"
        assert recent[0].description == "Database, primary"
        assert recent[0].timestamp == int(when.timestamp())

    def test_record_connection_persists(self, registry):
        registry.record_connection("jump.example.org", datetime(2026, 1, 1, 0, 0, 0))

        reloaded = HostRegistry(registry.hosts_path)
        assert reloaded.get("jump.example.org").last_connected == "01/01/2026 00:00:00"
        assert reloaded.recent_connections()[0].hostname == "jump.example.org"

    def test_record_connection_missing(self, registry):
        with pytest.raises(HostNotFoundError):
            registry.record_connection("nope.example.com")

    def test_connect(self, registry):
        """Test that connect calls the launcher and records the connection."""
        calls = []
        host = registry.connect("JUMP.example.org", lambda hostname, creds: calls.append((hostname, creds)), "secret")

        assert calls == [("jump.example.org", "secret")]
        assert host.last_connected is not None
        assert registry.recent_connections()[0].hostname == "jump.example.org"

    def test_connect_launch_failure(self, registry):
        """Test that a failed launch records nothing."""

        def launch(hostname, credentials):
            raise RuntimeError("mstsc not found")

        with pytest.raises(RuntimeError):
            registry.connect("db01.corp.example.com", launch)

        assert registry.get("db01.corp.example.com").last_connected is None
        assert registry.recent_connections() == []

    def test_connect_missing(self, registry):
        with pytest.raises(HostNotFoundError):
            registry.connect("nope.example.com", lambda hostname, creds: None)


class TestDirectoryImport:
    """Tests for importing directory scan results."""

    def test_import_discovered(self, registry):
        """Test that valid new hosts are added and the rest skipped."""
        summary = registry.import_discovered(
            [
                DiscoveredHost(hostname="ws1.corp.example.com", description="Desk 1"),
                DiscoveredHost(hostname="WS2"),
                DiscoveredHost(hostname="server01.corp.example.com", description="From scan"),
            ]
        )

        assert (summary.added, summary.updated, summary.skipped) == (1, 0, 2)
        assert registry.get("server01.corp.example.com").description == "Web Server"
        assert HostRegistry(registry.hosts_path).exists("ws1.corp.example.com")

    def test_import_overwrite(self, registry):
        summary = registry.import_discovered(
            [DiscoveredHost(hostname="server01.corp.example.com", description="From scan")],
            overwrite=True,
        )

        assert summary.updated == 1
        host = registry.get("server01.corp.example.com")
        assert host.description == "From scan"
        assert host.last_connected == "13/12/2025 14:30:00"

    def test_import_nothing_new_does_not_save(self, registry):
        before = registry.hosts_path.stat().st_mtime_ns
        registry.import_discovered([DiscoveredHost(hostname="bad")])
        assert registry.hosts_path.stat().st_mtime_ns == before

    def test_scan_and_import(self, registry):
        """Test that the scanner is called with trimmed arguments."""
        calls = []

        def scan(domain, controller, credentials):
            calls.append((domain, controller, credentials))
            return iter([DiscoveredHost(hostname=f"pc1.{domain}")])

        summary = registry.scan_and_import(
            scan, " corp.example.com ", " dc01.corp.example.com ", credentials="creds"
        )

        assert calls == [("corp.example.com", "dc01.corp.example.com", "creds")]
        assert summary.added == 1
        assert registry.exists("pc1.corp.example.com")

    @pytest.mark.parametrize("domain", ["", "corp", "10.0.0.1", "bad_domain.com"])
    def test_scan_invalid_domain(self, registry, domain):
        """Test that an invalid domain is rejected before scanning."""

        def scan(domain, controller, credentials):
            raise AssertionError("scanner should not run")

        with pytest.raises(InvalidDomainError):
            registry.scan_and_import(scan, domain, "dc01")

    @pytest.mark.parametrize(
        "domain,controller",
        [
            ("example.com", "dc01.otherdomain.com"),
            ("example.com", "example.com"),
            ("example.com", "dc01"),
            ("example.com", "10.0.0.5"),
            ("example.com", ""),
        ],
    )
    def test_scan_invalid_controller(self, registry, domain, controller):
        """Test that a controller outside the domain is rejected before scanning."""
        calls = []

        def scan(domain, controller, credentials):
            calls.append(controller)
            return iter([])

        with pytest.raises(InvalidControllerError) as exc_info:
            registry.scan_and_import(scan, domain, controller)

        assert calls == []
        assert exc_info.value.controller == controller
        assert isinstance(exc_info.value, RegistryError)


class TestStatus:
    """Tests for refresh_status and apply_status."""

    def test_refresh_status(self, registry):
        """Test that results carry statuses and the registry is untouched."""
        outcomes = {
            "server01.corp.example.com": HostStatus.ONLINE,
            "db01.corp.example.com": HostStatus.OFFLINE,
        }

        results = registry.refresh_status(probe=lambda hostname: outcomes.get(hostname, "unknown"))

        assert [h.status for h in results] == [HostStatus.ONLINE, HostStatus.OFFLINE, HostStatus.UNKNOWN]
        assert all(h.status == HostStatus.UNKNOWN for h in registry.hosts)

    def test_apply_status(self, registry):
        results = registry.refresh_status(probe=lambda hostname: HostStatus.OFFLINE)
        registry.apply_status(results[:2])

        assert [h.status for h in registry.hosts] == [
            HostStatus.OFFLINE,
            HostStatus.OFFLINE,
            HostStatus.UNKNOWN,
        ]

    def test_refresh_empty_registry(self, temp_dir):
        registry = HostRegistry(temp_dir / "hosts.csv")
        assert registry.refresh_status(probe=lambda hostname: HostStatus.ONLINE) == []
