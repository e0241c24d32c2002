from typing import Iterator, List, Optional, Sequence, TypeVar

from .errors import InvalidFormatError, NoValidPortsError

T = TypeVar('T')

MIN_PORT = 1
MAX_PORT = 65535

# Substituted for the symbolic "common" port specification
DEFAULT_PORTS = [21, 22, 23, 25, 53, 80, 135, 139, 443, 445, 993, 995, 1723, 3306, 3389, 5900, 8080]


def _to_port(token: str) -> Optional[int]:
    token = token.strip()
    if not (token.isascii() and token.isdecimal()):
        return None
    port = int(token)
    if MIN_PORT <= port <= MAX_PORT:
        return port
    return None


def parse_ports(port_input: str) -> List[int]:
    """
    Parses a port specification into a sorted list of unique ports.
    Example: "common" -> DEFAULT_PORTS, "20-22" -> [20, 21, 22], "443,80,80" -> [80, 443]

    A range or a single port must be entirely valid; a comma list keeps
    whatever tokens are valid and only fails when none are.
    """
    text = (port_input or "").strip().lower()

    if text == 'common':
        return list(DEFAULT_PORTS)

    if '-' in text:
        bounds = text.split('-')
        if len(bounds) != 2:
            raise InvalidFormatError(f"Invalid port range: {port_input!r}")
        start, end = _to_port(bounds[0]), _to_port(bounds[1])
        if start is None or end is None or start > end:
            raise InvalidFormatError(f"Invalid port range: {port_input!r}")
        return list(range(start, end + 1))

    if ',' in text:
        ports = {port for port in map(_to_port, text.split(',')) if port is not None}
        if not ports:
            raise NoValidPortsError(f"No valid ports found in {port_input!r}")
        return sorted(ports)

    port = _to_port(text)
    if port is None:
        raise InvalidFormatError(f"Invalid port number: {port_input!r}")
    return [port]


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yields consecutive slices of at most `size` items."""
    for i in range(0, len(items), size):
        yield items[i:i + size]
