from typing import List, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from .models import HostResult, PortResult
from .targets import AddressInterval, is_loopback_ip, is_private_ip, sort_addresses

console = Console()


class ScannerUI:
    def __init__(self):
        self.console = console

    def display_welcome(self):
        self.console.rule("[bold cyan]HostSweep - Network Discovery & Port Scanner[/bold cyan]")

    def get_target(self):
        return Prompt.ask("[bold blue]Enter Target (IP, CIDR or range)[/bold blue]", default="192.168.1.0/24")

    def get_ports(self):
        return Prompt.ask("[bold blue]Enter Ports (e.g. common, 22,80,443, 1-1024)[/bold blue]", default="common")

    def get_speed(self):
        self.console.print("\n[bold cyan]Select Scan Speed:[/bold cyan]")
        self.console.print("1. [green]Gentle[/green]   (10 hosts at a time)")
        self.console.print("2. [blue]Normal[/blue]   (50 hosts at a time)")
        self.console.print("3. [red]Fast[/red]     (200 hosts at a time)")

        speed_map = {1: 10, 2: 50, 3: 200}
        choice = IntPrompt.ask("[bold blue]Enter Speed Level (1-3)[/bold blue]", default=2, choices=["1", "2", "3"])
        return speed_map[choice]

    def display_start(self, interval: AddressInterval, port_count: int):
        if is_loopback_ip(interval.start_ip):
            scope = "loopback"
        elif is_private_ip(interval.start_ip):
            scope = "private"
        else:
            scope = "[bold yellow]public[/bold yellow]"
        self.console.print(Panel.fit(
            f"[bold green]Scanning {interval.label}[/bold green]\n"
            f"{interval.start_ip} - {interval.end_ip} ({interval.total_hosts} hosts, {scope}), "
            f"{port_count} ports per host",
            border_style="blue",
        ))

    def create_progress(self):
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=self.console,
        )

    def display_hosts(self, hosts: Sequence[HostResult]):
        live = {h.address: h for h in hosts if h.is_reachable}
        table = Table(title=f"Live Hosts ({len(live)}/{len(hosts)})", show_header=True, header_style="bold magenta")
        table.add_column("Address", style="cyan")
        table.add_column("Hostname", style="white")
        table.add_column("Latency", style="green", justify="right")
        table.add_column("Seen At", style="dim")

        for address in sort_addresses(live):
            host = live[address]
            table.add_row(
                address,
                host.hostname or "N/A",
                f"{host.latency_ms} ms" if host.latency_ms is not None else "N/A",
                host.observed_at.strftime("%H:%M:%S") if host.observed_at else "N/A",
            )
        self.console.print(table)

    def display_ports(self, address: str, results: List[PortResult]):
        """
        Displays the open ports of one host in a Rich table.
        """
        open_ports = [r for r in results if r.is_open]
        table = Table(title=f"Open Ports on {address}", show_header=True, header_style="bold magenta")
        table.add_column("Port", style="cyan", justify="right")
        table.add_column("Service", style="yellow")
        table.add_column("Category", style="blue")
        table.add_column("Risk", justify="center")
        table.add_column("Latency", style="green", justify="right")
        table.add_column("Banner", style="white")

        for res in open_ports:
            banner = res.banner.splitlines()[0] if res.banner else ""
            banner_display = banner[:50] + ("..." if len(banner) > 50 else "")
            table.add_row(
                str(res.port),
                res.service_name or "Unknown",
                res.category.value,
                "[bold red]![/bold red]" if res.is_risky else "",
                f"{res.latency_ms} ms" if res.latency_ms is not None else "N/A",
                banner_display or "N/A",
            )

        self.console.print(table)
        closed = len(results) - len(open_ports)
        if closed:
            self.console.print(f"[dim]Not shown: {closed} closed or filtered ports[/dim]")

    def display_summary(self, duration: float, hosts: Sequence[HostResult], open_port_count: int):
        self.console.print(f"\n[bold]Scan completed in {duration:.2f} seconds.[/bold]")
        self.console.print(f"[bold]Live hosts: {sum(h.is_reachable for h in hosts)}/{len(hosts)}, "
                           f"open ports: {open_port_count}[/bold]")

    def show_message(self, msg, style="bold red"):
        self.console.print(f"[{style}]{msg}[/{style}]")
