"""Data models for sysmon."""

from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True)
class CpuCounters:
    """Cumulative processor time counters from the aggregate cpu line."""

    user: int = 0
    nice: int = 0
    system: int = 0
    idle: int = 0
    iowait: int = 0
    irq: int = 0
    softirq: int = 0
    steal: int = 0

    @property
    def idle_time(self) -> int:
        return self.idle + self.iowait

    @property
    def busy_time(self) -> int:
        return self.user + self.nice + self.system + self.irq + self.softirq + self.steal

    @property
    def total_time(self) -> int:
        return self.idle_time + self.busy_time


@dataclass(slots=True, frozen=True)
class MemoryCounters:
    """Memory figures in kilobytes."""

    total_kb: int = 0
    free_kb: int = 0
    available_kb: int = 0


@dataclass(slots=True, frozen=True)
class DiskCounters:
    """Filesystem size figures in kilobytes for one mount point."""

    total_kb: int = 0
    available_kb: int = 0

    @property
    def used_kb(self) -> int:
        return max(0, self.total_kb - self.available_kb)


@dataclass(slots=True, frozen=True)
class DiskIoCounters:
    """Cumulative completed read and write requests for block devices."""

    reads: int = 0
    writes: int = 0


@dataclass(slots=True, frozen=True)
class NetworkCounters:
    """Byte counters summed over all non-loopback interfaces."""

    rx_bytes: int = 0
    tx_bytes: int = 0


@dataclass(slots=True, frozen=True)
class ProcessSample:
    """One process as seen during a single scan."""

    pid: int
    rss_kb: int = 0
    command: str = ""


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Immutable result of one sampling cycle."""

    cpu_percent: float = 0.0
    memory_percent: float = 0.0
    memory_used_kb: int = 0
    memory_total_kb: int = 0
    disk_percent: float = 0.0
    disk_used_kb: int = 0
    disk_total_kb: int = 0
    rx_bytes_per_sec: float = 0.0
    tx_bytes_per_sec: float = 0.0
    disk_reads: int = 0
    disk_writes: int = 0
    processes: tuple[ProcessSample, ...] = ()
    # Names of metrics whose source could not be read this cycle
    unavailable: frozenset[str] = field(default_factory=frozenset)


@dataclass(slots=True, frozen=True)
class SamplingState:
    """Trailing counter samples carried from one refresh cycle to the next."""

    cpu: CpuCounters | None = None
    network: NetworkCounters | None = None
