"""
Target parsing and IPv4 address arithmetic.

Accepted target forms:
    192.168.1.10                 single address
    192.168.1.0/24               CIDR block (network and broadcast excluded)
    192.168.1.10-192.168.1.50    inclusive range
"""
import ipaddress
from dataclasses import dataclass
from typing import Dict, Iterable, List, Union

from .errors import InvalidFormatError

MAX_ADDRESS = 0xFFFFFFFF

PRIVATE_BLOCKS = (
    (0x0A000000, 0x0AFFFFFF),  # 10.0.0.0/8
    (0xAC100000, 0xAC1FFFFF),  # 172.16.0.0/12
    (0xC0A80000, 0xC0A8FFFF),  # 192.168.0.0/16
)


@dataclass(frozen=True)
class AddressInterval:
    """
    Inclusive interval of 32-bit addresses.

    A CIDR block of /31 or /32 has no usable hosts once the network and
    broadcast addresses are removed, so `start` may end up past `end`.
    Such an interval is empty and `total_hosts` is 0.
    """
    start: int
    end: int
    label: str = ""

    @property
    def total_hosts(self) -> int:
        return max(0, self.end - self.start + 1)

    @property
    def start_ip(self) -> str:
        return int_to_ip(self.start)

    @property
    def end_ip(self) -> str:
        return int_to_ip(self.end)


def is_valid_ip(text: str) -> bool:
    try:
        ipaddress.IPv4Address(text)
    except ValueError:
        return False
    return True


def ip_to_int(ip: str) -> int:
    try:
        return int(ipaddress.IPv4Address(ip.strip()))
    except ValueError:
        raise InvalidFormatError(f"Invalid IP address: {ip!r}") from None


def int_to_ip(value: int) -> str:
    # Wrap like an unsigned 32-bit register so empty /32 intervals still render
    return str(ipaddress.IPv4Address(value & MAX_ADDRESS))


def prefix_to_mask(prefix: int) -> int:
    if not 0 <= prefix <= 32:
        raise InvalidFormatError(f"Invalid CIDR prefix: {prefix}")
    return (MAX_ADDRESS << (32 - prefix)) & MAX_ADDRESS


def mask_to_prefix(mask: Union[str, int]) -> int:
    """Count the leading one bits of a subnet mask."""
    value = ip_to_int(mask) if isinstance(mask, str) else mask
    prefix = 0
    while value & 0x80000000:
        prefix += 1
        value = (value << 1) & MAX_ADDRESS
    return prefix


def _parse_cidr(text: str) -> AddressInterval:
    network_text, _, prefix_text = text.partition('/')
    prefix_text = prefix_text.strip()
    if not (prefix_text.isascii() and prefix_text.isdecimal()) or not is_valid_ip(network_text.strip()):
        raise InvalidFormatError(f"Invalid CIDR notation: {text!r}")

    mask = prefix_to_mask(int(prefix_text))
    network = ip_to_int(network_text) & mask
    broadcast = network | (~mask & MAX_ADDRESS)
    return AddressInterval(start=network + 1, end=broadcast - 1, label=text)


def _parse_range(text: str) -> AddressInterval:
    parts = [part.strip() for part in text.split('-')]
    if len(parts) != 2 or not all(is_valid_ip(part) for part in parts):
        raise InvalidFormatError(f"Invalid IP range: {text!r}")

    start, end = ip_to_int(parts[0]), ip_to_int(parts[1])
    if start > end:
        raise InvalidFormatError(f"Invalid IP range: start IP is greater than end IP ({text!r})")
    return AddressInterval(start=start, end=end, label=f"{parts[0]}-{parts[1]}")


def parse_target(text: str) -> AddressInterval:
    """
    Parses a target specification into an AddressInterval.
    Example: "192.168.1.0/24" -> 192.168.1.1 .. 192.168.1.254 (254 hosts)
    """
    text = (text or "").strip()
    if '/' in text:
        return _parse_cidr(text)
    if '-' in text:
        return _parse_range(text)
    if is_valid_ip(text):
        value = ip_to_int(text)
        return AddressInterval(start=value, end=value, label=text)
    raise InvalidFormatError(f"Invalid IP range format: {text!r}")


def enumerate_addresses(interval: AddressInterval) -> List[str]:
    """Every address of the interval in ascending order (materialised)."""
    return [int_to_ip(value) for value in range(interval.start, interval.end + 1)]


def is_private_ip(ip: str) -> bool:
    value = ip_to_int(ip)
    return any(low <= value <= high for low, high in PRIVATE_BLOCKS)


def is_loopback_ip(ip: str) -> bool:
    return ip == 'localhost' or ip.startswith('127.')


def ip_class(ip: str) -> str:
    if not is_valid_ip(ip):
        return 'Invalid'
    first = int(ip.split('.')[0])
    if 1 <= first <= 126:
        return 'A'
    if 128 <= first <= 191:
        return 'B'
    if 192 <= first <= 223:
        return 'C'
    if 224 <= first <= 239:
        return 'D'
    if 240 <= first <= 255:
        return 'E'
    return 'Invalid'


def sort_addresses(addresses: Iterable[str]) -> List[str]:
    return sorted(addresses, key=ip_to_int)


def subnet_info(ip: str, mask: str) -> Dict[str, Union[str, int]]:
    """Network summary for an address and dotted subnet mask."""
    mask_value = ip_to_int(mask)
    network = ip_to_int(ip) & mask_value
    broadcast = network | (~mask_value & MAX_ADDRESS)
    prefix = mask_to_prefix(mask_value)
    return {
        'network_address': int_to_ip(network),
        'broadcast_address': int_to_ip(broadcast),
        'subnet_mask': int_to_ip(mask_value),
        'prefix': prefix,
        'total_hosts': max(0, 2 ** (32 - prefix) - 2),
        'cidr': f"{int_to_ip(network)}/{prefix}",
        'first_host': int_to_ip(network + 1),
        'last_host': int_to_ip(broadcast - 1),
    }
