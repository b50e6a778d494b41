"""Registry errors surfaced to callers."""


class RegistryError(Exception):
    """Base class for host registry errors."""


class HostNotFoundError(RegistryError, KeyError):
    """No host with the given hostname is registered."""

    def __init__(self, hostname: str):
        super().__init__(hostname)
        self.hostname = hostname

    def __str__(self) -> str:
        return f"Host '{self.hostname}' not found"


class DuplicateHostError(RegistryError, ValueError):
    """A host with the same hostname (ignoring case) is already registered."""

    def __init__(self, hostname: str):
        super().__init__(hostname)
        self.hostname = hostname

    def __str__(self) -> str:
        return f"Host '{self.hostname}' already exists"


class InvalidDomainError(RegistryError, ValueError):
    """A directory scan was requested for a malformed domain."""

    def __init__(self, domain: str):
        super().__init__(domain)
        self.domain = domain

    def __str__(self) -> str:
        return f"Invalid domain '{self.domain}'"


class InvalidControllerError(RegistryError, ValueError):
    """A directory scan named a controller outside the scanned domain."""

    def __init__(self, controller: str, domain: str):
        super().__init__(controller, domain)
        self.controller = controller
        self.domain = domain

    def __str__(self) -> str:
        return f"Invalid domain controller '{self.controller}' for domain '{self.domain}'"
