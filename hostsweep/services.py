"""
Static port knowledge: service names, risky ports and IANA categories.

Pure lookups, no I/O.
"""
from enum import Enum
from typing import Dict, FrozenSet, Optional

SERVICE_NAMES: Dict[int, str] = {
    21: 'FTP',
    22: 'SSH',
    23: 'Telnet',
    25: 'SMTP',
    53: 'DNS',
    80: 'HTTP',
    110: 'POP3',
    135: 'MSRPC',
    139: 'NetBIOS-SSN',
    143: 'IMAP',
    443: 'HTTPS',
    445: 'SMB',
    993: 'IMAPS',
    995: 'POP3S',
    1433: 'MSSQL',
    1723: 'PPTP',
    3306: 'MySQL',
    3389: 'RDP',
    5432: 'PostgreSQL',
    5900: 'VNC',
    8080: 'HTTP-Alt',
    8443: 'HTTPS-Alt',
}

# Legacy or frequently abused services
RISKY_PORTS: FrozenSet[int] = frozenset({21, 23, 135, 139, 445, 1433, 3389, 5900})

WELL_KNOWN_MAX = 1023
REGISTERED_MAX = 49151


class PortCategory(str, Enum):
    WELL_KNOWN = "well-known"
    REGISTERED = "registered"
    DYNAMIC = "dynamic"


def lookup(port: int) -> Optional[str]:
    """Well-known service name for a port, None if the port is not in the table."""
    return SERVICE_NAMES.get(port)


def is_risky_port(port: int) -> bool:
    return port in RISKY_PORTS


def category(port: int) -> PortCategory:
    if port <= WELL_KNOWN_MAX:
        return PortCategory.WELL_KNOWN
    if port <= REGISTERED_MAX:
        return PortCategory.REGISTERED
    return PortCategory.DYNAMIC
