"""Data models for hostpulse."""

from dataclasses import asdict, dataclass, field
from typing import Any

# Marker for a metric that could not be computed this tick. Distinct from 0.0.
UNAVAILABLE = None


@dataclass(slots=True, frozen=True)
class CounterSample:
    """One read of cumulative CPU tick counters (aggregate or a single core)."""

    idle_ticks: int
    total_ticks: int
    observed_at: float  # time.monotonic()


@dataclass(slots=True, frozen=True)
class ProcessSample:
    """Immutable per-process tick reading taken during one scan."""

    pid: int
    name: str  # Kernel-truncated, at most 255 bytes
    cpu_ticks_since_start: int  # utime + stime


@dataclass(slots=True, frozen=True)
class TopProcess:
    """A ranked process entry."""

    pid: int
    name: str
    cpu_share_percent: float  # Lifetime ticks / tick frequency * 100, not clamped


@dataclass(slots=True, frozen=True)
class NetworkCounters:
    """Cumulative byte counters summed over non-loopback interfaces."""

    rx_bytes: int
    tx_bytes: int
    observed_at: float


@dataclass(slots=True, frozen=True)
class NetworkRates:
    """Cumulative totals plus bytes/second since the previous sample."""

    rx_bytes: int
    tx_bytes: int
    rx_per_sec: float | None
    tx_per_sec: float | None


@dataclass(slots=True, frozen=True)
class BatteryStatus:
    present: bool
    level: float | None = None
    charging: bool | None = None


@dataclass(slots=True, frozen=True)
class SystemFacts:
    """Stateless host facts. Any field is None when its facility is absent."""

    memory_total: int | None = None
    memory_free: int | None = None
    swap_total: int | None = None
    swap_free: int | None = None
    uptime_seconds: float | None = None
    disk_total: int | None = None
    disk_free: int | None = None
    os_name: str | None = None
    os_version: str | None = None
    os_arch: str | None = None
    hostname: str | None = None
    ip_address: str | None = None
    mac_address: str | None = None
    battery: BatteryStatus = field(default_factory=lambda: BatteryStatus(present=False))


@dataclass(slots=True)
class Snapshot:
    """Result of one sampling pass."""

    cpu_percent: float | None
    cpu_percent_per_core: list[float | None]
    core_count: int | None
    top_processes: list[TopProcess]
    process_count: int | None
    network: NetworkRates | None
    facts: SystemFacts | None
    taken_at: float  # time.time()
    core_indices: list[int] = field(default_factory=list)  # cpuN label per cpu_percent_per_core entry

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of the snapshot."""
        return asdict(self)
