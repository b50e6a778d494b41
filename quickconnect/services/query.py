"""Filtering, sorting and grouping over host collections.

All functions are pure: they never modify the hosts or the sequence they
are given and always return new containers.
"""

import re
from collections.abc import Iterable

from ..models.host import Host, HostStatus

UNKNOWN_DOMAIN = "unknown"
HIGHLIGHT_START = "<mark>"
HIGHLIGHT_END = "</mark>"


def filter_hosts(hosts: Iterable[Host], query: str) -> list[Host]:
    """Return hosts whose hostname or description contains query, ignoring case.

    A blank query returns a copy of the whole list.
    """
    needle = query.strip().lower() if query else ""
    if not needle:
        return list(hosts)
    return [
        host
        for host in hosts
        if needle in host.hostname.lower() or needle in host.description.lower()
    ]


def highlight_matches(
    text: str,
    query: str,
    start: str = HIGHLIGHT_START,
    end: str = HIGHLIGHT_END,
) -> str:
    """Wrap each case-insensitive occurrence of query in highlight markers.

    Matching is literal and consumes left to right without overlap, so
    'aa' in 'aaa' is highlighted once. Matched text keeps its casing.
    """
    needle = query.strip() if query else ""
    if not needle or not text:
        return text
    pattern = re.compile(re.escape(needle), re.IGNORECASE)
    return pattern.sub(lambda m: f"{start}{m.group(0)}{end}", text)


def sort_by_hostname(hosts: Iterable[Host]) -> list[Host]:
    """Sort hosts alphabetically by hostname, ignoring case."""
    return sorted(hosts, key=lambda h: h.hostname.lower())


def sort_by_last_connected(hosts: Iterable[Host]) -> list[Host]:
    """Sort hosts most recently connected first; never-connected hosts go last."""
    connected: list[Host] = []
    never: list[Host] = []
    for host in hosts:
        (connected if host.last_connected else never).append(host)
    # reverse=True keeps equal timestamps in their original order
    connected.sort(key=lambda h: h.last_connected_at, reverse=True)
    return connected + never


def domain_of(hostname: str) -> str:
    """Everything after the first label, lower-cased; 'unknown' for single labels."""
    _, dot, rest = hostname.strip().partition(".")
    if not dot or not rest:
        return UNKNOWN_DOMAIN
    return rest.lower()


def group_by_domain(hosts: Iterable[Host]) -> dict[str, list[Host]]:
    """Group hosts by domain, keeping first-seen order for keys and members."""
    groups: dict[str, list[Host]] = {}
    for host in hosts:
        groups.setdefault(domain_of(host.hostname), []).append(host)
    return groups


def find_by_hostname(hosts: Iterable[Host], hostname: str) -> Host | None:
    """Find a host by exact hostname, ignoring case."""
    key = hostname.strip().casefold()
    for host in hosts:
        if host.key == key:
            return host
    return None


def hostname_exists(hosts: Iterable[Host], hostname: str) -> bool:
    """Check if a hostname is already registered, ignoring case."""
    return find_by_hostname(hosts, hostname) is not None


def dedupe_hosts(hosts: Iterable[Host]) -> list[Host]:
    """Drop later hosts whose hostname repeats an earlier one, ignoring case."""
    seen: set[str] = set()
    unique: list[Host] = []
    for host in hosts:
        if host.key in seen:
            continue
        seen.add(host.key)
        unique.append(host)
    return unique


def count_by_status(hosts: Iterable[Host]) -> dict[HostStatus, int]:
    """Count hosts per status, including statuses with no hosts."""
    counts = {status: 0 for status in HostStatus}
    for host in hosts:
        counts[host.status] += 1
    return counts
