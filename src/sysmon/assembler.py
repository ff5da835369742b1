"""Assembly of complete snapshots from the counter readers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from sysmon.config import SysmonConfig
from sysmon.counters import CounterReader
from sysmon.delta import cpu_usage_percent, rate, usage_percent
from sysmon.errors import SamplingCancelled, Unavailable
from sysmon.models import (
    CpuCounters,
    DiskCounters,
    DiskIoCounters,
    MemoryCounters,
    NetworkCounters,
    SamplingState,
    Snapshot,
)
from sysmon.ranking import rank_processes
from sysmon.timing import interruptible_wait

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Returns False when the wait was cut short by a stop request.
WaitFunc = Callable[[float], bool]


class SnapshotAssembler:
    """
    Runs sampling cycles and turns them into Snapshot values.

    One-shot use calls :meth:`snapshot`. Continuous use calls :meth:`begin`
    once and then :meth:`next_cycle` after every refresh wait, passing the
    returned state back in so each cycle reuses the previous trailing sample.
    """

    def __init__(
        self,
        reader: CounterReader,
        config: SysmonConfig | None = None,
        wait: WaitFunc | None = None,
    ) -> None:
        self._reader = reader
        self._config = config or SysmonConfig()
        self._wait = wait or self._default_wait

    @property
    def config(self) -> SysmonConfig:
        return self._config

    def _default_wait(self, seconds: float) -> bool:
        return interruptible_wait(seconds, poll_interval=self._config.poll_interval)

    def _sample(self, metric: str, read: Callable[[], T], unavailable: set[str]) -> T | None:
        try:
            return read()
        except Unavailable as exc:
            logger.debug("%s degraded: %s", metric, exc)
            unavailable.add(metric)
            return None

    def _read_disk(self) -> DiskCounters:
        return self._reader.read_disk_usage(self._config.mount_point)

    def _read_disk_io(self) -> DiskIoCounters:
        return self._reader.read_disk_io_counters(self._config.disk_device)

    def _pause(self) -> None:
        if not self._wait(self._config.sample_interval):
            raise SamplingCancelled("sampling interval interrupted")

    def begin(self) -> SamplingState:
        """
        Take the baseline samples for continuous mode.

        Raises:
            Unavailable: if the processor counters cannot be read, since no
                later cycle could compute a usage figure.
        """
        cpu = self._reader.read_cpu_counters()
        try:
            network = self._reader.read_network_counters()
        except Unavailable as exc:
            logger.debug("network degraded: %s", exc)
            network = None
        return SamplingState(cpu=cpu, network=network)

    def snapshot(self, top_n: int | None = None) -> Snapshot:
        """
        Take a one-shot snapshot, waiting one sampling interval per rate.

        Raises:
            Unavailable: if the first processor counter read fails.
            SamplingCancelled: if a sampling wait is interrupted.
        """
        unavailable: set[str] = set()

        cpu_prev = self._reader.read_cpu_counters()
        self._pause()
        cpu_cur = self._sample("cpu", self._reader.read_cpu_counters, unavailable)

        memory = self._reader.read_memory_counters()
        disk = self._sample("disk", self._read_disk, unavailable)
        disk_io = self._sample("disk_io", self._read_disk_io, unavailable)

        net_prev = self._sample("network", self._reader.read_network_counters, unavailable)
        self._pause()
        net_cur = self._sample("network", self._reader.read_network_counters, unavailable)

        return self._build(
            cpu_pair=(cpu_prev, cpu_cur),
            net_pair=(net_prev, net_cur),
            interval=self._config.sample_interval,
            memory=memory,
            disk=disk,
            disk_io=disk_io,
            top_n=self._config.top_n if top_n is None else top_n,
            unavailable=unavailable,
        )

    def next_cycle(self, state: SamplingState, top_n: int) -> tuple[Snapshot, SamplingState]:
        """
        Compute one continuous-mode cycle against the carried state.

        The caller is responsible for the refresh wait before each call.
        A metric whose source fails keeps its previous sample in the state.
        """
        unavailable: set[str] = set()

        cpu_cur = self._sample("cpu", self._reader.read_cpu_counters, unavailable)
        memory = self._reader.read_memory_counters()
        disk = self._sample("disk", self._read_disk, unavailable)
        disk_io = self._sample("disk_io", self._read_disk_io, unavailable)
        net_cur = self._sample("network", self._reader.read_network_counters, unavailable)

        snapshot = self._build(
            cpu_pair=(state.cpu, cpu_cur),
            net_pair=(state.network, net_cur),
            interval=self._config.refresh_interval,
            memory=memory,
            disk=disk,
            disk_io=disk_io,
            top_n=top_n,
            unavailable=unavailable,
        )
        next_state = SamplingState(
            cpu=cpu_cur if cpu_cur is not None else state.cpu,
            network=net_cur if net_cur is not None else state.network,
        )
        return snapshot, next_state

    def _build(
        self,
        cpu_pair: tuple[CpuCounters | None, CpuCounters | None],
        net_pair: tuple[NetworkCounters | None, NetworkCounters | None],
        interval: float,
        memory: MemoryCounters,
        disk: DiskCounters | None,
        disk_io: DiskIoCounters | None,
        top_n: int,
        unavailable: set[str],
    ) -> Snapshot:
        cpu_prev, cpu_cur = cpu_pair
        cpu_percent = 0.0
        if cpu_prev is not None and cpu_cur is not None:
            cpu_percent = cpu_usage_percent(cpu_prev, cpu_cur)
        else:
            unavailable.add("cpu")

        rx_rate = tx_rate = 0.0
        net_prev, net_cur = net_pair
        if net_prev is not None and net_cur is not None:
            rx_rate = rate(net_prev.rx_bytes, net_cur.rx_bytes, interval)
            tx_rate = rate(net_prev.tx_bytes, net_cur.tx_bytes, interval)
        else:
            unavailable.add("network")

        if memory.total_kb == 0:
            unavailable.add("memory")
        available_kb = memory.available_kb or memory.free_kb
        memory_used = max(0, memory.total_kb - available_kb)

        disk_used = disk.used_kb if disk is not None else 0
        disk_total = disk.total_kb if disk is not None else 0
        if disk_io is None:
            disk_io = DiskIoCounters()

        try:
            samples = self._reader.read_processes(self._config.max_processes)
        except Unavailable as exc:
            logger.debug("processes degraded: %s", exc)
            unavailable.add("processes")
            samples = []

        return Snapshot(
            cpu_percent=cpu_percent,
            memory_percent=usage_percent(memory_used, memory.total_kb),
            memory_used_kb=memory_used,
            memory_total_kb=memory.total_kb,
            disk_percent=usage_percent(disk_used, disk_total),
            disk_used_kb=disk_used,
            disk_total_kb=disk_total,
            rx_bytes_per_sec=rx_rate,
            tx_bytes_per_sec=tx_rate,
            disk_reads=disk_io.reads,
            disk_writes=disk_io.writes,
            processes=tuple(rank_processes(samples, top_n)),
            unavailable=frozenset(unavailable),
        )
