from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from .services import PortCategory, category, is_risky_port

BANNER_MAX_BYTES = 1024


@dataclass(frozen=True)
class HostResult:
    """Liveness of a single address. Built once by the host probe."""
    address: str
    is_reachable: bool
    latency_ms: Optional[int] = None
    observed_at: Optional[datetime] = None
    hostname: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.observed_at:
            data['observed_at'] = self.observed_at.isoformat()
        return data


@dataclass(frozen=True)
class PortResult:
    """State of a single (host, port) pair. Built once by the port probe."""
    port: int
    is_open: bool
    service_name: Optional[str] = None
    banner: Optional[str] = None
    latency_ms: Optional[int] = None

    @property
    def category(self) -> PortCategory:
        return category(self.port)

    @property
    def is_risky(self) -> bool:
        return is_risky_port(self.port)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['category'] = self.category.value
        data['is_risky'] = self.is_risky
        return data
