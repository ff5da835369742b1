"""Shared fixtures: a fake proc tree and a scripted counter reader."""

from pathlib import Path

import pytest

from sysmon.errors import Unavailable
from sysmon.models import (
    CpuCounters,
    DiskCounters,
    DiskIoCounters,
    MemoryCounters,
    NetworkCounters,
    ProcessSample,
)

PAGE_SIZE = 4096

STAT_TEXT = (
    "cpu  100 0 50 800 20 5 5 0 0 0\n"
    "cpu0 50 0 25 400 10 2 3 0 0 0\n"
    "intr 12345\n"
)

MEMINFO_TEXT = (
    "MemTotal:        1024 kB\n"
    "MemFree:          128 kB\n"
    "MemAvailable:     256 kB\n"
    "Buffers:           64 kB\n"
)

NET_DEV_TEXT = (
    "Inter-|   Receive                                                |  Transmit\n"
    " face |bytes    packets errs drop fifo frame compressed multicast|bytes    packets errs drop fifo colls carrier compressed\n"
    "    lo:    1000      10    0    0    0     0          0         0     1000      10    0    0    0     0       0          0\n"
    "  eth0:     200       2    0    0    0     0          0         0      300       3    0    0    0     0       0          0\n"
)


DISKSTATS_TEXT = (
    "   8       0 sda 100 5 2000 50 40 2 800 30 0 60 80\n"
    "   8       1 sda1 90 5 1900 45 38 2 780 28 0 55 73\n"
    " 259       0 nvme0n1 300 0 6000 70 200 0 4000 90 0 100 160\n"
    " 259       1 nvme0n1p1 250 0 5000 60 150 0 3000 80 0 90 140\n"
)


def stat_line(pid: int, comm: str, rss_pages: int) -> str:
    """Build a /proc/<pid>/stat line with ``rss_pages`` in field 24."""
    before = " ".join(["0"] * 20)
    after = " ".join(["0"] * 28)
    return f"{pid} ({comm}) S {before} {rss_pages} {after}\n"


class FakeProc:
    """Writes a minimal proc tree under a temporary directory."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / "net").mkdir(exist_ok=True)

    def write(self, relative: str, text: str) -> None:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)

    def add_process(
        self,
        pid: int,
        cmdline: bytes = b"",
        comm: str = "proc",
        rss_pages: int = 0,
    ) -> Path:
        base = self.root / str(pid)
        base.mkdir()
        (base / "cmdline").write_bytes(cmdline)
        (base / "comm").write_text(comm + "\n")
        (base / "stat").write_text(stat_line(pid, comm, rss_pages))
        return base


@pytest.fixture
def fake_proc(tmp_path) -> FakeProc:
    proc = FakeProc(tmp_path / "proc")
    proc.write("stat", STAT_TEXT)
    proc.write("meminfo", MEMINFO_TEXT)
    proc.write("net/dev", NET_DEV_TEXT)
    proc.write("diskstats", DISKSTATS_TEXT)
    (proc.root / "self").mkdir()
    return proc


class ScriptedReader:
    """
    Counter reader returning queued values in call order.

    Queue an exception instance to make that call raise it.
    """

    def __init__(
        self,
        cpu=(),
        network=(),
        memory=None,
        disk=None,
        disk_io=None,
        processes=None,
    ) -> None:
        self.cpu = list(cpu)
        self.network = list(network)
        self.memory = memory or MemoryCounters(total_kb=1024, free_kb=128, available_kb=256)
        self.disk = disk if disk is not None else DiskCounters(total_kb=2048, available_kb=1024)
        self.disk_io = disk_io if disk_io is not None else DiskIoCounters(reads=10, writes=5)
        self.disk_devices: list[str | None] = []
        self.processes = processes if processes is not None else []
        self.process_limits: list[int] = []
        self.disk_mounts: list[str] = []

    @staticmethod
    def _next(values, source):
        if not values:
            raise Unavailable(source, "script exhausted")
        value = values.pop(0)
        if isinstance(value, Exception):
            raise value
        return value

    def read_cpu_counters(self) -> CpuCounters:
        return self._next(self.cpu, "stat")

    def read_network_counters(self) -> NetworkCounters:
        return self._next(self.network, "net/dev")

    def read_memory_counters(self) -> MemoryCounters:
        return self.memory

    def read_disk_usage(self, mount_point: str = "/") -> DiskCounters:
        self.disk_mounts.append(mount_point)
        if isinstance(self.disk, Exception):
            raise self.disk
        return self.disk

    def read_disk_io_counters(self, device: str | None = None) -> DiskIoCounters:
        self.disk_devices.append(device)
        if isinstance(self.disk_io, Exception):
            raise self.disk_io
        return self.disk_io

    def read_processes(self, max_count: int) -> list[ProcessSample]:
        self.process_limits.append(max_count)
        if isinstance(self.processes, Exception):
            raise self.processes
        return list(self.processes)[:max_count]


def cpu(idle: int, busy: int) -> CpuCounters:
    """CpuCounters with ``busy`` time in user and ``idle`` in idle."""
    return CpuCounters(user=busy, idle=idle)
