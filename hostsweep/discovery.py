"""
Host discovery.

Liveness is delegated to a HostReachabilityChecker so the engine never has to
know how a host was reached. PingChecker shells out to the platform ping
utility; TcpConnectChecker is a heuristic for hosts or sandboxes where ICMP
is filtered or ping is unavailable.
"""
import asyncio
import logging
import math
import re
import socket
import sys
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import List, Optional, Protocol, Sequence

from .models import HostResult
from .scheduler import ProbeScheduler, ProgressCallback

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 3000
DEFAULT_CONCURRENCY = 50
RESOLVE_TIMEOUT = 2.0

# Extra seconds ping may take on top of its own reply wait before it is killed
PING_GRACE = 1.0

_RTT_PATTERN = re.compile(r'time[=<]\s*([\d.]+)\s*ms', re.IGNORECASE)


class HostReachabilityChecker(Protocol):
    async def check(self, address: str, timeout_ms: int) -> Optional[float]:
        """Round-trip time in milliseconds, or None if the host did not answer."""
        ...


class ReverseResolver(Protocol):
    async def resolve(self, address: str) -> Optional[str]:
        ...


class PingChecker:
    """One echo request through the system ping command."""

    def __init__(self, platform: str = sys.platform):
        self.is_windows = platform.startswith('win')
        self.is_macos = platform == 'darwin'

    def build_command(self, address: str, timeout_ms: int) -> List[str]:
        if self.is_windows:
            return ['ping', '-n', '1', '-w', str(timeout_ms), address]
        if self.is_macos:
            # -W is milliseconds on macOS
            return ['ping', '-c', '1', '-W', str(timeout_ms), address]
        return ['ping', '-c', '1', '-W', str(max(1, math.ceil(timeout_ms / 1000))), address]

    def parse_reply(self, returncode: Optional[int], output: str) -> bool:
        if returncode != 0:
            return False
        # Windows exits 0 on "Destination host unreachable" replies
        if self.is_windows:
            return 'TTL=' in output.upper()
        return True

    async def check(self, address: str, timeout_ms: int) -> Optional[float]:
        cmd = self.build_command(address, timeout_ms)
        start = time.perf_counter()
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.DEVNULL
            )
        except OSError as e:
            logger.debug("Could not run %s: %s", cmd[0], e)
            return None

        try:
            out, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout_ms / 1000 + PING_GRACE)
        except asyncio.TimeoutError:
            logger.debug("ping %s killed after timeout", address)
            return None
        finally:
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                await proc.wait()

        elapsed_ms = (time.perf_counter() - start) * 1000
        output = out.decode(errors='replace') if out else ""
        if not self.parse_reply(proc.returncode, output):
            return None

        m = _RTT_PATTERN.search(output)
        return float(m.group(1)) if m else elapsed_ms


class TcpConnectChecker:
    """
    A host is alive if any probe port completes a handshake or actively
    refuses it. Both mean something at that address answered.
    """

    DEFAULT_PORTS = (80, 443, 22, 445)

    def __init__(self, ports: Sequence[int] = DEFAULT_PORTS):
        self.ports = tuple(ports)

    async def _knock(self, address: str, port: int, timeout: float) -> bool:
        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection(address, port), timeout=timeout)
        except ConnectionRefusedError:
            return True
        except (asyncio.TimeoutError, OSError):
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True

    async def check(self, address: str, timeout_ms: int) -> Optional[float]:
        start = time.perf_counter()
        answers = await asyncio.gather(*(self._knock(address, port, timeout_ms / 1000) for port in self.ports))
        if any(answers):
            return (time.perf_counter() - start) * 1000
        return None


class SocketResolver:
    """PTR lookup through the system resolver, run in the default executor."""

    def __init__(self, timeout: float = RESOLVE_TIMEOUT):
        self.timeout = timeout

    async def resolve(self, address: str) -> Optional[str]:
        loop = asyncio.get_running_loop()
        try:
            hostname, _, _ = await asyncio.wait_for(
                loop.run_in_executor(None, socket.gethostbyaddr, address),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, OSError) as e:
            logger.debug("Reverse lookup of %s failed: %r", address, e)
            return None
        return hostname.rstrip('.') or None


async def probe_host(address: str, timeout_ms: int, checker: HostReachabilityChecker) -> HostResult:
    """
    Liveness of one address. Never raises: a failing checker counts as
    an unreachable host.
    """
    try:
        rtt = await checker.check(address, timeout_ms)
    except Exception as e:
        logger.debug("Reachability check for %s failed: %r", address, e)
        rtt = None

    if rtt is None:
        return HostResult(address=address, is_reachable=False)
    return HostResult(
        address=address,
        is_reachable=True,
        latency_ms=round(rtt),
        observed_at=datetime.now(timezone.utc),
    )


async def discover_hosts(
    addresses: Sequence[str],
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    concurrency: int = DEFAULT_CONCURRENCY,
    on_progress: Optional[ProgressCallback] = None,
    checker: Optional[HostReachabilityChecker] = None,
) -> List[HostResult]:
    """One HostResult per address. Order across batches is not significant."""
    checker = checker or PingChecker()
    logger.info("Discovering %d hosts (timeout %dms, concurrency %d)", len(addresses), timeout_ms, concurrency)

    scheduler = ProbeScheduler(concurrency, on_progress)
    results = await scheduler.run(list(addresses), lambda address: probe_host(address, timeout_ms, checker))

    logger.info("%d/%d hosts reachable", sum(r.is_reachable for r in results), len(results))
    return results


async def resolve_hostnames(
    hosts: Sequence[HostResult],
    resolver: Optional[ReverseResolver] = None,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> List[HostResult]:
    """Fills `hostname` for reachable hosts; unreachable ones are returned as-is."""
    resolver = resolver or SocketResolver()

    async def _resolve(host: HostResult) -> HostResult:
        if not host.is_reachable:
            return host
        hostname = await resolver.resolve(host.address)
        return replace(host, hostname=hostname) if hostname else host

    return await ProbeScheduler(concurrency).run(list(hosts), _resolve, key=lambda h: h.address)
