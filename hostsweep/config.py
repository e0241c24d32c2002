from typing import List

from pydantic import BaseModel, Field, field_validator, model_validator

from .errors import CardinalityExceededError
from .targets import AddressInterval, enumerate_addresses, parse_target

# Per-scan ceilings. Enforced here only, never inside the parsers or the engine.
MAX_HOSTS = 1000
MAX_PORTS = 1000


def enforce_ceiling(count: int, limit: int, what: str) -> int:
    if count > limit:
        raise CardinalityExceededError(what, count, limit)
    return count


class ScanConfig(BaseModel):
    """
    Validation model for one scan job.
    Enforces strict types, safe ranges and the host/port ceilings before execution.
    """
    target: str
    ports: List[int] = Field(..., min_length=1)
    timeout_ms: int = Field(3000, gt=0, le=30000)
    concurrency: int = Field(50, ge=1, le=500)
    port_concurrency: int = Field(10, ge=1, le=500)
    service_detection: bool = False
    resolve_hostnames: bool = False
    skip_discovery: bool = False
    discovery_only: bool = False
    tcp_ping: bool = False

    @field_validator('target')
    @classmethod
    def validate_target(cls, v: str) -> str:
        interval = parse_target(v)
        if interval.total_hosts == 0:
            raise ValueError(f"No usable IP addresses in {v!r}")
        enforce_ceiling(interval.total_hosts, MAX_HOSTS, "hosts")
        return interval.label

    @field_validator('ports')
    @classmethod
    def validate_ports(cls, v: List[int]) -> List[int]:
        # Filter invalid ports and sort
        valid = sorted(set(p for p in v if 1 <= p <= 65535))
        if not valid:
            raise ValueError("No valid ports found in range 1-65535")
        enforce_ceiling(len(valid), MAX_PORTS, "ports")
        return valid

    @model_validator(mode='after')
    def check_scan_type(self) -> 'ScanConfig':
        if self.discovery_only and self.skip_discovery:
            raise ValueError("Discovery-only and skip-discovery cannot be combined")
        return self

    @property
    def interval(self) -> AddressInterval:
        return parse_target(self.target)

    @property
    def addresses(self) -> List[str]:
        return enumerate_addresses(self.interval)
