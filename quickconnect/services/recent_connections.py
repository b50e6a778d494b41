"""Recent connections persistence (recent_connections.json)."""

import json
import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..models.decode_warning import DecodeWarning
from ..models.recent import RecentConnection
from ..models.validation import is_valid_hostname
from .file_io import atomic_write

logger = logging.getLogger(__name__)

DEFAULT_RECENT_PATH = "recent_connections.json"
DEFAULT_MAX_RECENT = 5


def normalize_recent(
    entries: Iterable[RecentConnection], max_entries: int = DEFAULT_MAX_RECENT
) -> list[RecentConnection]:
    """Collapse duplicates to their newest entry, order newest first and cap the list."""
    newest: dict[str, RecentConnection] = {}
    for entry in entries:
        current = newest.get(entry.key)
        if current is None or entry.timestamp > current.timestamp:
            newest[entry.key] = entry
    ordered = sorted(newest.values(), key=lambda e: e.timestamp, reverse=True)
    return ordered[:max_entries]


def add_recent(
    entries: Iterable[RecentConnection],
    hostname: str,
    description: str = "",
    timestamp: int | None = None,
    max_entries: int = DEFAULT_MAX_RECENT,
) -> list[RecentConnection]:
    """Return a new list with hostname moved to the front."""
    if timestamp is None:
        timestamp = int(datetime.now().timestamp())
    entry = RecentConnection(hostname=hostname.strip(), description=description, timestamp=timestamp)
    rest = [e for e in entries if e.key != entry.key]
    return [entry, *rest][:max_entries]


def _entries_from_document(data: Any, warnings: list[DecodeWarning]) -> list[Any]:
    if isinstance(data, list):
        return data
    # Older releases wrapped the list in an object
    if isinstance(data, dict) and isinstance(data.get("connections"), list):
        return data["connections"]
    warnings.append(DecodeWarning(row=0, message="expected a JSON array of recent connections"))
    return []


def decode_recent(
    raw: bytes | str | None, max_entries: int = DEFAULT_MAX_RECENT
) -> tuple[list[RecentConnection], list[DecodeWarning]]:
    """Decode recent_connections.json content.

    Args:
        raw: File content, or None when the file does not exist.
        max_entries: Maximum number of entries to keep.

    Returns:
        Entries newest first, and warnings for anything that was skipped.
    """
    warnings: list[DecodeWarning] = []
    if raw is None:
        return [], warnings

    text = raw.decode("utf-8-sig", errors="replace") if isinstance(raw, bytes) else raw
    if not text.strip():
        return [], warnings

    try:
        # Duplicate keys: the json module keeps the last occurrence
        data = json.loads(text)
    except json.JSONDecodeError as e:
        warnings.append(DecodeWarning(row=0, message=f"invalid JSON: {e.msg} at line {e.lineno}"))
        logger.warning(f"Invalid JSON in recent connections: {e}")
        return [], warnings
    except RecursionError:
        warnings.append(DecodeWarning(row=0, message="JSON document nested too deeply"))
        logger.warning("Recent connections document nested too deeply")
        return [], warnings

    entries: list[RecentConnection] = []
    for index, item in enumerate(_entries_from_document(data, warnings), start=1):
        if not isinstance(item, dict):
            warnings.append(DecodeWarning(row=index, message="entry is not an object"))
            continue
        try:
            entry = RecentConnection.model_validate(item)
        except ValidationError as e:
            warnings.append(DecodeWarning(row=index, message=f"invalid entry: {e.errors()[0]['msg']}"))
            continue
        if not is_valid_hostname(entry.hostname):
            warnings.append(
                DecodeWarning(row=index, field="hostname", message=f"invalid hostname '{entry.hostname[:80]}'")
            )
            continue
        entries.append(entry.model_copy(update={"hostname": entry.hostname.strip()}))

    for warning in warnings:
        logger.debug(f"recent connections {warning}")

    return normalize_recent(entries, max_entries), warnings


def encode_recent(entries: Iterable[RecentConnection]) -> bytes:
    """Encode entries as a pretty-printed JSON array."""
    data = [entry.model_dump(mode="json") for entry in entries]
    return json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8", errors="replace")


class RecentConnectionsStore:
    """Persists the most recently connected hosts."""

    def __init__(self, path: Path | str = DEFAULT_RECENT_PATH, max_entries: int = DEFAULT_MAX_RECENT):
        self.path = Path(path)
        self.max_entries = max_entries
        self._entries: list[RecentConnection] = []
        self._loaded = False

    def load(self) -> list[DecodeWarning]:
        """Load recent connections from file."""
        if not self.path.exists():
            logger.debug(f"No recent connections file at {self.path}")
            self._entries = []
            self._loaded = True
            return []

        self._entries, warnings = decode_recent(self.path.read_bytes(), self.max_entries)
        logger.debug(f"Loaded {len(self._entries)} recent connections")
        self._loaded = True
        return warnings

    def save(self) -> None:
        """Save recent connections to file."""
        atomic_write(self.path, encode_recent(self._entries))
        logger.debug(f"Saved {len(self._entries)} recent connections")

    def add(self, hostname: str, description: str = "", timestamp: int | None = None) -> None:
        """Record a connection and save."""
        if not self._loaded:
            self.load()
        self._entries = add_recent(self._entries, hostname, description, timestamp, self.max_entries)
        self.save()

    def clear(self) -> None:
        """Forget all recent connections."""
        self._entries = []
        self._loaded = True
        self.path.unlink(missing_ok=True)

    @property
    def entries(self) -> list[RecentConnection]:
        """Recent connections, newest first."""
        if not self._loaded:
            self.load()
        return list(self._entries)
