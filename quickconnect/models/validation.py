"""Pure validation helpers for hostnames, descriptions and timestamps.

Every predicate here accepts arbitrary input, trims surrounding whitespace
before testing, and returns a boolean instead of raising.
"""

import re
from datetime import datetime

MAX_HOSTNAME_LENGTH = 253
MAX_LABEL_LENGTH = 63
MAX_DESCRIPTION_LENGTH = 500

# UK day-first format used in hosts.csv
TIMESTAMP_FORMAT = "%d/%m/%Y %H:%M:%S"

_DOTTED_QUAD_RE = re.compile(r"\d{1,3}(?:\.\d{1,3}){3}", re.ASCII)
_LABEL_RE = re.compile(r"[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?", re.ASCII)
_TIMESTAMP_RE = re.compile(r"(\d{2})/(\d{2})/(\d{4}) (\d{2}):(\d{2}):(\d{2})", re.ASCII)


def is_dotted_quad(value: object) -> bool:
    """Return True for IPv4-shaped strings like '10.0.0.1' (octet range is not checked)."""
    if not isinstance(value, str):
        return False
    return _DOTTED_QUAD_RE.fullmatch(value.strip()) is not None


def _has_valid_labels(candidate: str, min_labels: int) -> bool:
    labels = candidate.split(".")
    if len(labels) < min_labels:
        return False
    for label in labels:
        if _LABEL_RE.fullmatch(label) is None:
            return False
    tld = labels[-1]
    return len(tld) >= 2 and tld.isalpha()


def is_valid_hostname(value: object) -> bool:
    """Check that a value is an ASCII fully qualified domain name.

    Examples:
        >>> is_valid_hostname("server01.corp.example.com")
        True
        >>> is_valid_hostname("server01")
        False
        >>> is_valid_hostname("192.168.1.10")
        False
    """
    if not isinstance(value, str):
        return False

    candidate = value.strip()
    if not candidate or len(candidate) > MAX_HOSTNAME_LENGTH:
        return False
    if not candidate.isascii():
        # Internationalized names are not supported
        return False
    if is_dotted_quad(candidate):
        return False
    return _has_valid_labels(candidate, min_labels=2)


def is_valid_domain(value: object) -> bool:
    """Check that a value looks like a DNS domain such as 'corp.example.com'."""
    # Same rules as a hostname; a domain is just a shorter FQDN
    return is_valid_hostname(value)


def is_valid_server_name(server: object, domain: object) -> bool:
    """Check that server is a host inside domain, e.g. 'dc01.corp.example.com'.

    Examples:
        >>> is_valid_server_name("dc01.example.com", "example.com")
        True
        >>> is_valid_server_name("dc01.otherdomain.com", "example.com")
        False
        >>> is_valid_server_name("example.com", "example.com")
        False
    """
    if not is_valid_domain(domain) or not is_valid_hostname(server):
        return False
    suffix = "." + domain.strip().lower()
    name = server.strip().lower()
    # A non-empty host part must come before the domain
    return name.endswith(suffix) and len(name) > len(suffix)


def is_encodable(value: str) -> bool:
    """Return True if value can be written as UTF-8 (no lone surrogates)."""
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def is_valid_description(value: object) -> bool:
    """Check that a description is a string of at most 500 characters."""
    if not isinstance(value, str):
        return False
    return len(value.strip()) <= MAX_DESCRIPTION_LENGTH and is_encodable(value)


def parse_timestamp(value: str) -> datetime:
    """Parse a 'DD/MM/YYYY HH:MM:SS' string into a naive local datetime.

    Raises:
        ValueError: If the string is not zero-padded day-first format or
            does not name a real calendar time.
    """
    match = _TIMESTAMP_RE.fullmatch(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise ValueError(f"Timestamp must use DD/MM/YYYY HH:MM:SS format, got {value!r}")
    day, month, year, hour, minute, second = (int(part) for part in match.groups())
    return datetime(year, month, day, hour, minute, second)


def format_timestamp(value: datetime) -> str:
    """Format a datetime as 'DD/MM/YYYY HH:MM:SS'."""
    # Built by hand so years below 1000 stay four digits wide
    return (
        f"{value.day:02d}/{value.month:02d}/{value.year:04d} "
        f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )


def is_valid_timestamp(value: object) -> bool:
    """Return True if value parses with parse_timestamp."""
    if not isinstance(value, str):
        return False
    try:
        parse_timestamp(value)
    except ValueError:
        return False
    return True
