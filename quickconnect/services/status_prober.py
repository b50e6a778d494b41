"""Concurrent RDP reachability checks."""

import asyncio
import functools
import inspect
import logging
import socket
from collections.abc import Awaitable, Callable, Sequence
from concurrent.futures import ThreadPoolExecutor

from ..models.host import Host, HostStatus

logger = logging.getLogger(__name__)

RDP_PORT = 3389
DEFAULT_TIMEOUT = 2.0
DEFAULT_MAX_WORKERS = 128

ProbeOutcome = HostStatus | str
ProbeFn = Callable[[str], ProbeOutcome | Awaitable[ProbeOutcome]]

_REACHABILITY = {
    HostStatus.ONLINE.value: HostStatus.ONLINE,
    HostStatus.OFFLINE.value: HostStatus.OFFLINE,
    HostStatus.UNKNOWN.value: HostStatus.UNKNOWN,
}


def tcp_probe(hostname: str, port: int = RDP_PORT, timeout: float = DEFAULT_TIMEOUT) -> HostStatus:
    """Try a TCP connect to the RDP port.

    Returns ONLINE if the port accepts the connection, OFFLINE if it is
    refused or times out, and UNKNOWN if the hostname does not resolve.
    """
    try:
        addresses = socket.getaddrinfo(hostname, port, type=socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as e:
        logger.debug(f"Failed to resolve {hostname}: {e}")
        return HostStatus.UNKNOWN
    if not addresses:
        logger.debug(f"No addresses resolved for {hostname}")
        return HostStatus.UNKNOWN

    family, socktype, proto, _, sockaddr = addresses[0]
    s = None
    try:
        s = socket.socket(family, socktype, proto)
        s.settimeout(timeout)
        s.connect(sockaddr)
        logger.debug(f"Host {hostname} is online (port {port} open)")
        return HostStatus.ONLINE
    except OSError as e:
        logger.debug(f"Host {hostname} is offline or unreachable: {e}")
        return HostStatus.OFFLINE
    finally:
        if s:
            s.close()


def _to_status(outcome: object) -> HostStatus:
    """Map a probe outcome onto online/offline/unknown."""
    if isinstance(outcome, str):
        status = _REACHABILITY.get(outcome.strip().lower())
        if status is not None:
            return status
    logger.debug(f"Unexpected probe outcome {outcome!r}, treating as unknown")
    return HostStatus.UNKNOWN


def _is_async_callable(func: object) -> bool:
    """True for coroutine functions and objects with an async __call__."""
    if inspect.iscoroutinefunction(func):
        return True
    call = getattr(type(func), "__call__", None)
    return call is not None and inspect.iscoroutinefunction(call)


def mark_checking(hosts: Sequence[Host]) -> list[Host]:
    """Return copies of hosts with status CHECKING, for display while a round runs."""
    return [host.model_copy(update={"status": HostStatus.CHECKING}) for host in hosts]


class StatusProber:
    """Checks every host at once and waits for all of them.

    Each probe carries its own timeout; a round takes as long as its
    slowest probe. A probe that raises only marks its own host UNKNOWN.
    """

    def __init__(
        self,
        probe: ProbeFn | None = None,
        port: int = RDP_PORT,
        timeout: float = DEFAULT_TIMEOUT,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        self.port = port
        self.timeout = timeout
        self.max_workers = max_workers
        self.probe = probe or functools.partial(tcp_probe, port=port, timeout=timeout)

    async def check_all(self, hosts: Sequence[Host]) -> list[Host]:
        """Probe all hosts concurrently.

        Returns:
            New Host objects in input order, identical to the input apart
            from status. The input hosts are not modified.
        """
        if not hosts:
            return []

        loop = asyncio.get_running_loop()
        is_async = _is_async_callable(self.probe)

        with ThreadPoolExecutor(
            max_workers=min(len(hosts), self.max_workers),
            thread_name_prefix="rdp-probe",
        ) as executor:

            async def check_one(host: Host) -> Host:
                try:
                    if is_async:
                        outcome = await self.probe(host.hostname)
                    else:
                        outcome = await loop.run_in_executor(executor, self.probe, host.hostname)
                    if inspect.isawaitable(outcome):
                        # Plain callables may still hand back a coroutine
                        outcome = await outcome
                    status = _to_status(outcome)
                except Exception as e:
                    logger.debug(f"Error checking status for {host.hostname}: {e}")
                    status = HostStatus.UNKNOWN
                return host.model_copy(update={"status": status})

            results = await asyncio.gather(*(check_one(host) for host in hosts))

        online = sum(1 for h in results if h.status == HostStatus.ONLINE)
        logger.info(f"Status check finished: {online}/{len(results)} hosts online")
        return list(results)

    def run(self, hosts: Sequence[Host]) -> list[Host]:
        """Blocking form of check_all.

        Must not be called from inside a running event loop; async callers
        should await check_all directly.
        """
        return asyncio.run(self.check_all(list(hosts)))


def probe_all(
    hosts: Sequence[Host],
    probe: ProbeFn | None = None,
    port: int = RDP_PORT,
    timeout: float = DEFAULT_TIMEOUT,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[Host]:
    """Probe hosts concurrently and block until every probe has finished."""
    return StatusProber(probe, port=port, timeout=timeout, max_workers=max_workers).run(hosts)
