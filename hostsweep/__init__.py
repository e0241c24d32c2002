"""
HostSweep - asynchronous host discovery and TCP port scanner.
"""
from .discovery import discover_hosts, probe_host, resolve_hostnames
from .errors import CardinalityExceededError, InvalidFormatError, NoValidPortsError, ScanError
from .models import HostResult, PortResult
from .scanner import PortScanner, detect_services, scan_ports
from .targets import AddressInterval, enumerate_addresses, parse_target
from .utils import parse_ports

__version__ = "1.0.0"
