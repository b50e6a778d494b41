"""QuickConnect host registry: hosts, their storage, queries and reachability."""

__version__ = "1.2.0"
