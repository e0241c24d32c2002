import asyncio
import logging
import time
from dataclasses import replace
from typing import List, Optional, Sequence

from .analyzer import BannerAnalyzer
from .models import BANNER_MAX_BYTES, PortResult
from .scheduler import ProbeScheduler, ProgressCallback
from .services import lookup

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 3000
DEFAULT_CONCURRENCY = 10
DEFAULT_BANNER_TIMEOUT_MS = 2000


async def _close(writer: asyncio.StreamWriter):
    writer.close()
    try:
        await writer.wait_closed()
    except (ConnectionError, OSError):
        pass


class PortScanner:
    """
    TCP connect scanner for a single host.

    The open/closed pass only completes the handshake and hangs up.
    Banners are collected by a separate pass over the open ports.
    """

    def __init__(self, timeout_ms: int = DEFAULT_TIMEOUT_MS, concurrency: int = DEFAULT_CONCURRENCY):
        self.timeout_ms = timeout_ms
        self.concurrency = concurrency

    async def scan_port(self, address: str, port: int) -> PortResult:
        service = lookup(port)
        start = time.perf_counter()
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(address, port),
                timeout=self.timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            logger.debug("%s:%d filtered (timeout)", address, port)
            return PortResult(port=port, is_open=False, service_name=service)
        except OSError as e:
            # Refused, reset, unreachable
            logger.debug("%s:%d closed (%s)", address, port, e)
            return PortResult(port=port, is_open=False, service_name=service)

        latency_ms = round((time.perf_counter() - start) * 1000)
        await _close(writer)
        logger.debug("%s:%d open in %dms", address, port, latency_ms)
        return PortResult(port=port, is_open=True, service_name=service, latency_ms=latency_ms)

    async def grab_banner(self, address: str, port: int, timeout_ms: Optional[int] = None) -> Optional[str]:
        """
        Connects, sends the port's probe string and reads the answer.

        Reading stops at BANNER_MAX_BYTES, at EOF, or once the read deadline
        (two thirds of the connect timeout) passes. Whatever arrived before
        an error is kept.
        """
        timeout_ms = timeout_ms or self.timeout_ms
        read_timeout = round(timeout_ms * 2 / 3) / 1000

        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(address, port),
                timeout=timeout_ms / 1000,
            )
        except (asyncio.TimeoutError, OSError) as e:
            logger.debug("Banner connect to %s:%d failed: %r", address, port, e)
            return None

        data = b""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + read_timeout
        try:
            writer.write(BannerAnalyzer.get_probe(port))
            await writer.drain()

            while len(data) < BANNER_MAX_BYTES:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                chunk = await asyncio.wait_for(reader.read(BANNER_MAX_BYTES - len(data)), timeout=remaining)
                if not chunk:
                    break
                data += chunk
        except (asyncio.TimeoutError, OSError) as e:
            logger.debug("Banner read from %s:%d stopped: %r", address, port, e)
        finally:
            await _close(writer)

        banner = data[:BANNER_MAX_BYTES].decode('utf-8', errors='ignore').strip()
        return banner or None

    async def scan(
        self,
        address: str,
        ports: Sequence[int],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[PortResult]:
        logger.info("Scanning %d ports on %s", len(ports), address)
        scheduler = ProbeScheduler(self.concurrency, on_progress)
        results = await scheduler.run(list(ports), lambda port: self.scan_port(address, port))
        results.sort(key=lambda r: r.port)
        logger.info("%s: %d/%d ports open", address, sum(r.is_open for r in results), len(results))
        return results

    async def detect_services(
        self,
        address: str,
        results: Sequence[PortResult],
        timeout_ms: int = DEFAULT_BANNER_TIMEOUT_MS,
    ) -> List[PortResult]:
        """Banner pass over the open entries. Closed entries come back untouched."""
        open_results = [r for r in results if r.is_open]
        if not open_results:
            return list(results)

        scheduler = ProbeScheduler(self.concurrency)
        banners = await scheduler.run(
            open_results,
            lambda r: self.grab_banner(address, r.port, timeout_ms),
        )
        by_port = dict(zip((r.port for r in open_results), banners))

        enriched = []
        for result in results:
            if not result.is_open:
                enriched.append(result)
                continue
            banner = by_port[result.port]
            service = result.service_name or BannerAnalyzer.identify(banner)
            enriched.append(replace(result, banner=banner, service_name=service))
        return enriched


async def scan_ports(
    address: str,
    ports: Sequence[int],
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    concurrency: int = DEFAULT_CONCURRENCY,
    on_progress: Optional[ProgressCallback] = None,
) -> List[PortResult]:
    """Open/closed state of every port, sorted ascending by port number."""
    return await PortScanner(timeout_ms, concurrency).scan(address, ports, on_progress)


async def detect_services(
    address: str,
    results: Sequence[PortResult],
    timeout_ms: int = DEFAULT_BANNER_TIMEOUT_MS,
) -> List[PortResult]:
    return await PortScanner(timeout_ms).detect_services(address, results, timeout_ms)
