"""Host registry: hosts.csv plus recent connections, with queries and status checks."""

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from ..errors import (
    DuplicateHostError,
    HostNotFoundError,
    InvalidControllerError,
    InvalidDomainError,
)
from ..models.config import Config
from ..models.decode_warning import DecodeWarning
from ..models.host import DiscoveredHost, Host
from ..models.recent import RecentConnection
from ..models.validation import format_timestamp, is_valid_domain, is_valid_server_name
from . import query
from .file_io import atomic_write
from .host_codec import decode_hosts, encode_hosts
from .recent_connections import DEFAULT_MAX_RECENT, RecentConnectionsStore
from .status_prober import ProbeFn, StatusProber

logger = logging.getLogger(__name__)

DEFAULT_HOSTS_PATH = "hosts.csv"

# Collaborators supplied by the caller
LaunchFn = Callable[[str, Any], Any]
ScanDirectoryFn = Callable[[str, str, Any], Iterable[DiscoveredHost]]


class ImportSummary(BaseModel):
    """Outcome of importing discovered hosts."""

    added: int = 0
    updated: int = 0
    skipped: int = 0


class HostRegistry:
    """The user's list of RDP hosts.

    Every edit is written back to hosts.csv straight away. Read methods
    return new lists, so callers may keep or modify them freely.
    """

    def __init__(
        self,
        hosts_path: Path | str = DEFAULT_HOSTS_PATH,
        recent_path: Path | str | None = None,
        max_recent: int = DEFAULT_MAX_RECENT,
        prober: StatusProber | None = None,
    ):
        self.hosts_path = Path(hosts_path)
        if recent_path is None:
            recent_path = self.hosts_path.with_name("recent_connections.json")
        self.recent = RecentConnectionsStore(recent_path, max_entries=max_recent)
        self.prober = prober or StatusProber()
        self._hosts: list[Host] = []
        self._loaded = False

    @classmethod
    def from_config(cls, config: Config) -> "HostRegistry":
        """Build a registry from application configuration."""
        return cls(
            hosts_path=config.storage.hosts_path,
            recent_path=config.storage.recent_path,
            max_recent=config.storage.max_recent,
            prober=StatusProber(
                port=config.probe.port,
                timeout=config.probe.timeout_seconds,
                max_workers=config.probe.max_workers,
            ),
        )

    # -------- Persistence --------

    def load(self) -> list[DecodeWarning]:
        """Load hosts from file.

        A missing file is an empty registry. Unreadable files raise OSError.
        """
        if not self.hosts_path.exists():
            logger.debug(f"No hosts file at {self.hosts_path}")
            self._hosts = []
            self._loaded = True
            return []

        hosts, warnings = decode_hosts(self.hosts_path.read_bytes())
        unique = query.dedupe_hosts(hosts)
        if len(unique) != len(hosts):
            dropped = len(hosts) - len(unique)
            warnings.append(DecodeWarning(row=0, message=f"dropped {dropped} duplicate hostname(s)"))
            logger.warning(f"Dropped {dropped} duplicate hostname(s) from {self.hosts_path}")

        self._hosts = unique
        self._loaded = True
        logger.debug(f"Loaded {len(self._hosts)} hosts from {self.hosts_path}")
        return warnings

    def save(self) -> None:
        """Write all hosts to file."""
        atomic_write(self.hosts_path, encode_hosts(self._hosts))
        logger.debug(f"Saved {len(self._hosts)} hosts to {self.hosts_path}")

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def _index_of(self, hostname: str) -> int:
        key = hostname.strip().casefold()
        for i, host in enumerate(self._hosts):
            if host.key == key:
                return i
        raise HostNotFoundError(hostname)

    # -------- Read views --------

    @property
    def hosts(self) -> list[Host]:
        """All hosts in registry order."""
        self._ensure_loaded()
        return list(self._hosts)

    @property
    def count(self) -> int:
        """Number of registered hosts."""
        self._ensure_loaded()
        return len(self._hosts)

    def get(self, hostname: str) -> Host | None:
        """Get a host by hostname, ignoring case."""
        self._ensure_loaded()
        return query.find_by_hostname(self._hosts, hostname)

    def exists(self, hostname: str) -> bool:
        """Check if a hostname is registered, ignoring case."""
        self._ensure_loaded()
        return query.hostname_exists(self._hosts, hostname)

    def search(self, text: str) -> list[Host]:
        """Hosts whose hostname or description contains text."""
        self._ensure_loaded()
        return query.filter_hosts(self._hosts, text)

    def sorted_by_hostname(self) -> list[Host]:
        self._ensure_loaded()
        return query.sort_by_hostname(self._hosts)

    def sorted_by_last_connected(self) -> list[Host]:
        self._ensure_loaded()
        return query.sort_by_last_connected(self._hosts)

    def grouped_by_domain(self) -> dict[str, list[Host]]:
        self._ensure_loaded()
        return query.group_by_domain(self._hosts)

    def recent_connections(self) -> list[RecentConnection]:
        """Recently connected hosts, newest first."""
        return self.recent.entries

    # -------- Edits --------

    def add_host(self, hostname: str, description: str = "", overwrite: bool = False) -> Host:
        """Add a host, or replace its description when overwrite is set.

        Raises:
            pydantic.ValidationError: If hostname or description is invalid.
            DuplicateHostError: If the hostname exists and overwrite is False.
        """
        self._ensure_loaded()
        host = Host.create(hostname, description)

        existing = query.find_by_hostname(self._hosts, host.hostname)
        if existing is not None:
            if not overwrite:
                raise DuplicateHostError(host.hostname)
            host = host.model_copy(update={"last_connected": existing.last_connected})
            self._hosts[self._index_of(existing.hostname)] = host
            logger.info(f"Updated host {host.hostname}")
        else:
            self._hosts.append(host)
            logger.info(f"Added host {host.hostname}")

        self.save()
        return host

    def update_host(
        self,
        hostname: str,
        new_hostname: str | None = None,
        description: str | None = None,
    ) -> Host:
        """Rename a host and/or replace its description.

        Raises:
            HostNotFoundError: If hostname is not registered.
            DuplicateHostError: If new_hostname belongs to another host.
            pydantic.ValidationError: If the new values are invalid.
        """
        self._ensure_loaded()
        index = self._index_of(hostname)
        current = self._hosts[index]

        updated = Host.create(
            new_hostname if new_hostname is not None else current.hostname,
            description if description is not None else current.description,
            current.last_connected,
        )
        if updated.key != current.key and query.hostname_exists(self._hosts, updated.hostname):
            raise DuplicateHostError(updated.hostname)

        self._hosts[index] = updated
        self.save()
        logger.info(f"Updated host {current.hostname} -> {updated.hostname}")
        return updated

    def remove_host(self, hostname: str) -> Host:
        """Remove a host.

        Raises:
            HostNotFoundError: If hostname is not registered.
        """
        self._ensure_loaded()
        removed = self._hosts.pop(self._index_of(hostname))
        self.save()
        logger.info(f"Removed host {removed.hostname}")
        return removed

    def remove_all(self) -> int:
        """Remove every host. Returns how many were removed."""
        self._ensure_loaded()
        removed = len(self._hosts)
        self._hosts = []
        self.save()
        logger.warning(f"Removed all {removed} hosts")
        return removed

    # -------- Connections --------

    def record_connection(self, hostname: str, when: datetime | None = None) -> Host:
        """Stamp last_connected and push the host onto the recent list.

        Raises:
            HostNotFoundError: If hostname is not registered.
        """
        self._ensure_loaded()
        when = when or datetime.now()
        index = self._index_of(hostname)
        host = self._hosts[index].model_copy(update={"last_connected": format_timestamp(when)})
        self._hosts[index] = host
        self.save()

        self.recent.add(host.hostname, host.description, int(when.timestamp()))
        logger.info(f"Recorded connection to {host.hostname} at {host.last_connected}")
        return host

    def connect(self, hostname: str, launch: LaunchFn, credentials: Any = None) -> Host:
        """Launch a session through the launcher collaborator and record it.

        Errors raised by launch propagate and nothing is recorded.
        """
        host = self.get(hostname)
        if host is None:
            raise HostNotFoundError(hostname)
        launch(host.hostname, credentials)
        return self.record_connection(host.hostname)

    # -------- Directory import --------

    def import_discovered(
        self, discovered: Iterable[DiscoveredHost], overwrite: bool = False
    ) -> ImportSummary:
        """Promote directory scan results into the registry.

        Invalid candidates are skipped. Existing hosts keep their entry unless
        overwrite is set, in which case the description is replaced.
        """
        self._ensure_loaded()
        summary = ImportSummary()

        for candidate in discovered:
            try:
                host = candidate.to_host()
            except ValidationError as e:
                logger.debug(f"Skipping discovered host {candidate.hostname!r}: {e.errors()[0]['msg']}")
                summary.skipped += 1
                continue

            existing = query.find_by_hostname(self._hosts, host.hostname)
            if existing is None:
                self._hosts.append(host)
                summary.added += 1
            elif overwrite:
                index = self._index_of(existing.hostname)
                self._hosts[index] = existing.model_copy(update={"description": host.description})
                summary.updated += 1
            else:
                summary.skipped += 1

        if summary.added or summary.updated:
            self.save()
        logger.info(
            f"Imported hosts: {summary.added} added, {summary.updated} updated, "
            f"{summary.skipped} skipped"
        )
        return summary

    def scan_and_import(
        self,
        scan_directory: ScanDirectoryFn,
        domain: str,
        controller: str,
        credentials: Any = None,
        overwrite: bool = False,
    ) -> ImportSummary:
        """Run the directory scan collaborator and import what it finds.

        Raises:
            InvalidDomainError: If domain is not a valid domain name.
            InvalidControllerError: If controller is not a host in domain.
        """
        if not is_valid_domain(domain):
            raise InvalidDomainError(domain)
        if not is_valid_server_name(controller, domain):
            raise InvalidControllerError(controller, domain)
        discovered = list(scan_directory(domain.strip(), controller.strip(), credentials))
        logger.info(f"Directory scan of {domain} returned {len(discovered)} hosts")
        return self.import_discovered(discovered, overwrite=overwrite)

    # -------- Status --------

    def refresh_status(self, probe: ProbeFn | None = None) -> list[Host]:
        """Probe every host and return the merged view.

        The registry's own hosts are not modified; pass the result to
        apply_status to keep it.
        """
        snapshot = self.hosts
        prober = self.prober
        if probe is not None:
            prober = StatusProber(probe, port=prober.port, timeout=prober.timeout, max_workers=prober.max_workers)
        logger.debug(f"Checking status of {len(snapshot)} hosts")
        return prober.run(snapshot)

    def apply_status(self, results: Sequence[Host]) -> None:
        """Copy status from probe results onto matching registered hosts."""
        self._ensure_loaded()
        statuses = {host.key: host.status for host in results}
        self._hosts = [
            host.model_copy(update={"status": statuses[host.key]}) if host.key in statuses else host
            for host in self._hosts
        ]
