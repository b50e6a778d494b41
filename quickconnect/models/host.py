"""Remote desktop host models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator

from .validation import (
    MAX_DESCRIPTION_LENGTH,
    is_encodable,
    is_valid_hostname,
    is_valid_timestamp,
    parse_timestamp,
)


class HostStatus(str, Enum):
    """Reachability of a host's RDP port."""

    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"
    CHECKING = "checking"


def clean_description(value: str) -> str:
    """Drop NUL characters and surrounding whitespace from a description."""
    return value.replace("\x00", "").strip()


class Host(BaseModel):
    """A registered remote desktop target."""

    model_config = ConfigDict(validate_assignment=True)

    hostname: str
    description: str = ""
    last_connected: str | None = None  # DD/MM/YYYY HH:MM:SS
    status: HostStatus = HostStatus.UNKNOWN  # never persisted

    @field_validator("hostname")
    @classmethod
    def validate_hostname(cls, v: str) -> str:
        """Validate that hostname is a fully qualified domain name."""
        if not is_valid_hostname(v):
            raise ValueError(f"Invalid hostname '{v}': must be a fully qualified domain name")
        return v.strip()

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        """Validate description length."""
        v = clean_description(v)
        if len(v) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(
                f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters, got {len(v)}"
            )
        if not is_encodable(v):
            raise ValueError("Description must be valid Unicode text")
        return v

    @field_validator("last_connected")
    @classmethod
    def validate_last_connected(cls, v: str | None) -> str | None:
        """Validate the last connection timestamp format."""
        if v is None or not v.strip():
            return None
        if not is_valid_timestamp(v):
            raise ValueError(f"last_connected must use DD/MM/YYYY HH:MM:SS format, got '{v}'")
        return v.strip()

    @classmethod
    def create(
        cls,
        hostname: str,
        description: str = "",
        last_connected: str | None = None,
    ) -> "Host":
        """Build a validated host.

        Raises:
            pydantic.ValidationError: If hostname, description or
                last_connected is invalid.
        """
        return cls(hostname=hostname, description=description, last_connected=last_connected)

    @property
    def key(self) -> str:
        """Case-insensitive identity of this host."""
        return self.hostname.casefold()

    @property
    def last_connected_at(self) -> datetime | None:
        """Parsed last_connected, or None if never connected."""
        if not self.last_connected:
            return None
        return parse_timestamp(self.last_connected)


class DiscoveredHost(BaseModel):
    """A candidate host returned by a directory scan, not yet validated."""

    hostname: str
    description: str = ""
    last_connected: str | None = None

    def to_host(self) -> Host:
        """Promote this candidate to a registry host."""
        return Host.create(self.hostname, self.description, self.last_connected)
