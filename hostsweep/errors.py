"""
Exception taxonomy for HostSweep.

Only malformed top-level input is an error. Unreachable hosts, closed ports
and timeouts are ordinary scan outcomes and are reported as data.
"""


class ScanError(Exception):
    """Base class for every error raised by HostSweep."""


class InvalidFormatError(ScanError, ValueError):
    """Address or port specification could not be parsed."""


class NoValidPortsError(ScanError, ValueError):
    """A comma separated port list contained no usable port."""


class CardinalityExceededError(ScanError, ValueError):
    """Too many hosts or ports requested for a single scan."""

    def __init__(self, what: str, count: int, limit: int):
        self.what = what
        self.count = count
        self.limit = limit
        super().__init__(f"Too many {what} requested ({count}, max {limit})")
