"""Services for storing, querying and checking hosts."""

from .host_codec import decode_hosts, encode_hosts
from .recent_connections import RecentConnectionsStore, decode_recent, encode_recent
from .registry import HostRegistry, ImportSummary
from .status_prober import StatusProber, probe_all, tcp_probe

__all__ = [
    "HostRegistry",
    "ImportSummary",
    "RecentConnectionsStore",
    "StatusProber",
    "decode_hosts",
    "decode_recent",
    "encode_hosts",
    "encode_recent",
    "probe_all",
    "tcp_probe",
]
