import argparse
import asyncio
import logging
import sys
import time
from typing import List

from pydantic import ValidationError
from rich.logging import RichHandler

from .config import ScanConfig
from .discovery import PingChecker, TcpConnectChecker, discover_hosts, resolve_hostnames
from .errors import ScanError
from .models import HostResult, PortResult
from .scanner import PortScanner
from .ui import ScannerUI, console
from .utils import parse_ports

logger = logging.getLogger("hostsweep")


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="HostSweep - network discovery and port scanner")
    parser.add_argument("-t", "--target", help="Target IP, CIDR block or range (e.g. 192.168.1.0/24)")
    parser.add_argument("-p", "--ports", help="Ports to scan: common, 80, 22,80,443 or 1-1024")
    parser.add_argument("-T", "--timeout", type=int, default=3000,
                        help="Probe timeout in ms, also used for banner grabs (Default: 3000)")
    parser.add_argument("-c", "--concurrency", type=int, default=None,
                        help="Hosts probed at once (Default: 50)")
    parser.add_argument("--port-concurrency", type=int, default=10,
                        help="Ports probed at once per host (Default: 10)")
    parser.add_argument("-sV", "--service-version", action="store_true",
                        help="Grab banners from open ports")
    parser.add_argument("-R", "--resolve", action="store_true", help="Reverse-resolve live hosts")
    parser.add_argument("-Pn", "--skip-discovery", action="store_true",
                        help="Treat every host as up and go straight to port scanning")
    parser.add_argument("-sn", "--discovery-only", action="store_true",
                        help="Find live hosts only, no port scan")
    parser.add_argument("--tcp-ping", action="store_true",
                        help="Detect live hosts with TCP connects instead of ping")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


async def run_scan(config: ScanConfig, ui: ScannerUI):
    """
    Discovery, the optional reverse lookup pass, then a port scan and the
    optional banner pass on every live host. A discovery-only job stops
    after the host table.
    """
    addresses = config.addresses
    logger.info("Scan job: %d hosts x %d ports", len(addresses), len(config.ports))
    ui.display_start(config.interval, 0 if config.discovery_only else len(config.ports))
    start_time = time.time()

    if config.skip_discovery:
        hosts = [HostResult(address=a, is_reachable=True) for a in addresses]
    else:
        checker = TcpConnectChecker() if config.tcp_ping else PingChecker()
        with ui.create_progress() as progress:
            task_id = progress.add_task(f"[cyan]Discovering {len(addresses)} hosts...", total=100)
            hosts = await discover_hosts(
                addresses,
                timeout_ms=config.timeout_ms,
                concurrency=config.concurrency,
                on_progress=lambda pct, ip: progress.update(task_id, completed=pct),
                checker=checker,
            )

    if config.resolve_hostnames:
        hosts = await resolve_hostnames(hosts, concurrency=config.concurrency)

    live = [h for h in hosts if h.is_reachable]
    if not config.skip_discovery:
        ui.display_hosts(hosts)

    if config.discovery_only:
        ui.display_summary(time.time() - start_time, hosts, 0)
        return hosts, {}

    scanner = PortScanner(config.timeout_ms, config.port_concurrency)
    port_results = {}
    with ui.create_progress() as progress:
        for host in live:
            task_id = progress.add_task(f"[cyan]{host.address}: {len(config.ports)} ports", total=100)
            results = await scanner.scan(
                host.address,
                config.ports,
                on_progress=lambda pct, port, task_id=task_id: progress.update(task_id, completed=pct),
            )
            if config.service_detection:
                results = await scanner.detect_services(host.address, results, timeout_ms=config.timeout_ms)
            port_results[host.address] = results

    open_count = 0
    for address, results in port_results.items():
        open_ports: List[PortResult] = [r for r in results if r.is_open]
        open_count += len(open_ports)
        if open_ports:
            ui.display_ports(address, results)

    ui.display_summary(time.time() - start_time, hosts, open_count)
    return hosts, port_results


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    ui = ScannerUI()
    if not args.target:
        ui.display_welcome()

    try:
        # Input resolution (CLI vs interactive)
        target = args.target or ui.get_target()
        ports_str = args.ports or (ui.get_ports() if not args.target else "common")

        if args.concurrency is not None:
            concurrency = args.concurrency
        elif args.target:
            concurrency = 50
        else:
            concurrency = ui.get_speed()

        config = ScanConfig(
            target=target,
            ports=parse_ports(ports_str),
            timeout_ms=args.timeout,
            concurrency=concurrency,
            port_concurrency=args.port_concurrency,
            service_detection=args.service_version,
            resolve_hostnames=args.resolve,
            skip_discovery=args.skip_discovery,
            discovery_only=args.discovery_only,
            tcp_ping=args.tcp_ping,
        )
    except ScanError as e:
        ui.show_message(f"Error: {e}")
        return 1
    except ValidationError as e:
        for err in e.errors():
            field = ".".join(str(loc) for loc in err["loc"]) or "options"
            ui.show_message(f"Invalid {field}: {err['msg']}")
        return 1

    try:
        asyncio.run(run_scan(config, ui))
    except KeyboardInterrupt:
        ui.console.print("\n[yellow]Scan interrupted by user.[/yellow]")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
