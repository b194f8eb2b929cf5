"""Runtime state models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple


class ContainerState(str, Enum):
    """Container state as reported by lxc-info."""

    STARTING = "STARTING"
    RUNNING = "RUNNING"
    STOPPING = "STOPPING"
    STOPPED = "STOPPED"
    ABORTING = "ABORTING"
    FREEZING = "FREEZING"
    FROZEN = "FROZEN"
    THAWED = "THAWED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: str) -> "ContainerState":
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.UNKNOWN


@dataclass
class ContainerStatus:
    """One row of `thin-lxc status` / `thin-lxc list`."""

    name: str
    state: ContainerState
    mounted: bool
    forwarding: bool
    ip: str = ""
    host_port: int = 0
    port: int = 0

    @property
    def address(self) -> str:
        return self.ip or "dhcp"

    @property
    def ports(self) -> str:
        if not self.host_port:
            return "-"
        return f"{self.host_port}->{self.port}"


@dataclass
class ReloadReport:
    """Outcome of a reload sweep: successes counted, failures listed."""

    succeeded: int = 0
    failures: List[Tuple[str, Exception]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures
