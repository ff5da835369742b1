"""Raw counter readers for the Linux proc filesystem.

All knowledge of field positions in the kernel text formats lives in this
module. Readers return typed counters and never compute rates.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

import psutil

from sysmon.errors import PartiallyParsed, Unavailable
from sysmon.models import (
    CpuCounters,
    DiskCounters,
    DiskIoCounters,
    MemoryCounters,
    NetworkCounters,
    ProcessSample,
)

logger = logging.getLogger(__name__)

CPU_FIELDS = ("user", "nice", "system", "idle", "iowait", "irq", "softirq", "steal")
# The aggregate line carries at most ten counters; guest and guest_nice are ignored.
CPU_MAX_FIELDS = 10
# Older kernels stop after softirq.
CPU_MIN_FIELDS = 7

MEMINFO_LABELS = {
    "MemTotal:": "total_kb",
    "MemFree:": "free_kb",
    "MemAvailable:": "available_kb",
}

NET_DEV_HEADER_LINES = 2
NET_RX_BYTES_FIELD = 0
NET_TX_BYTES_FIELD = 8
LOOPBACK_INTERFACE = "lo"

# Token positions in a /proc/diskstats line: major, minor, name, then counters.
DISKSTATS_NAME_FIELD = 2
DISKSTATS_READS_FIELD = 3
DISKSTATS_WRITES_FIELD = 7
PARTITION_SUFFIX = re.compile(r"p?\d+")

# Field number of rss in /proc/<pid>/stat, counting pid as field 1.
STAT_RSS_FIELD = 24
# Fields before the one following the closing parenthesis of the comm field.
STAT_FIELDS_BEFORE_STATE = 2


def parse_cpu_line(line: str) -> CpuCounters:
    """
    Parse the aggregate ``cpu`` line of /proc/stat.

    Raises:
        PartiallyParsed: if the label or a mandatory counter is missing.
    """
    parts = line.split()
    if not parts or not parts[0].startswith("cpu"):
        raise PartiallyParsed("stat", ("cpu label",))

    values: list[int] = []
    for token in parts[1 : CPU_MAX_FIELDS + 1]:
        try:
            values.append(int(token))
        except ValueError:
            break

    if len(values) < CPU_MIN_FIELDS:
        raise PartiallyParsed("stat", CPU_FIELDS[len(values) : CPU_MIN_FIELDS])
    if any(v < 0 for v in values):
        raise PartiallyParsed("stat", ("non-negative counters",))

    return CpuCounters(**dict(zip(CPU_FIELDS, values)))


def parse_meminfo(text: str) -> MemoryCounters:
    """Parse /proc/meminfo; fields that never appear stay at zero."""
    found: dict[str, int] = {}
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        name = MEMINFO_LABELS.get(parts[0])
        if name is None:
            continue
        try:
            found[name] = int(parts[1])
        except ValueError:
            continue

    missing = [label for label, name in MEMINFO_LABELS.items() if name not in found]
    if missing:
        logger.debug("%s", PartiallyParsed("meminfo", tuple(missing)))
    return MemoryCounters(**found)


def parse_net_dev(text: str) -> NetworkCounters:
    """Sum received and transmitted bytes over every interface except loopback."""
    rx_total = 0
    tx_total = 0
    for line in text.splitlines()[NET_DEV_HEADER_LINES:]:
        iface, sep, rest = line.partition(":")
        if not sep:
            continue
        iface = iface.strip()

        fields: list[int] = []
        for token in rest.split():
            try:
                fields.append(int(token))
            except ValueError:
                break

        if len(fields) <= NET_TX_BYTES_FIELD:
            logger.debug("%s", PartiallyParsed("net/dev", (iface,)))
            continue
        if iface == LOOPBACK_INTERFACE:
            continue
        rx_total += fields[NET_RX_BYTES_FIELD]
        tx_total += fields[NET_TX_BYTES_FIELD]

    return NetworkCounters(rx_bytes=rx_total, tx_bytes=tx_total)


def _is_partition(name: str, devices: set[str]) -> bool:
    return any(
        name != base and name.startswith(base) and PARTITION_SUFFIX.fullmatch(name[len(base) :])
        for base in devices
    )


def parse_diskstats(text: str, device: str | None = None) -> DiskIoCounters:
    """
    Read completed read and write requests from /proc/diskstats.

    With a ``device`` name only that line counts. Without one, every whole
    device is summed and partitions of a listed device are skipped so their
    requests are not counted twice.

    Raises:
        PartiallyParsed: if ``device`` is named but has no usable line.
    """
    rows: dict[str, tuple[int, int]] = {}
    for line in text.splitlines():
        fields = line.split()
        if len(fields) <= DISKSTATS_WRITES_FIELD:
            continue
        try:
            reads = int(fields[DISKSTATS_READS_FIELD])
            writes = int(fields[DISKSTATS_WRITES_FIELD])
        except ValueError:
            logger.debug("%s", PartiallyParsed("diskstats", (fields[DISKSTATS_NAME_FIELD],)))
            continue
        rows[fields[DISKSTATS_NAME_FIELD]] = (reads, writes)

    if device is not None:
        if device not in rows:
            raise PartiallyParsed("diskstats", (device,))
        reads, writes = rows[device]
        return DiskIoCounters(reads=reads, writes=writes)

    names = set(rows)
    whole = [name for name in rows if not _is_partition(name, names)]
    return DiskIoCounters(
        reads=sum(rows[name][0] for name in whole),
        writes=sum(rows[name][1] for name in whole),
    )


def parse_stat_rss(line: str) -> int:
    """
    Return the resident set size, in pages, from a /proc/<pid>/stat line.

    The comm field may contain spaces and parentheses, so parsing starts after
    the last closing parenthesis.

    Raises:
        PartiallyParsed: if the line is truncated or the field is not numeric.
    """
    _, paren, rest = line.rpartition(")")
    if not paren:
        raise PartiallyParsed("pid/stat", ("comm",))
    fields = rest.split()
    index = STAT_RSS_FIELD - STAT_FIELDS_BEFORE_STATE - 1
    try:
        return max(0, int(fields[index]))
    except (IndexError, ValueError) as exc:
        raise PartiallyParsed("pid/stat", ("rss",)) from exc


def sanitize_cmdline(raw: bytes) -> str:
    """Join a NUL-separated argument list into one display string."""
    return raw.replace(b"\0", b" ").decode("utf-8", errors="replace").rstrip(" ")


class CounterReader:
    """
    Reads host counters from a proc filesystem.

    The proc root is configurable so tests can point the reader at a fake tree.
    """

    def __init__(
        self,
        proc_root: Path | str = "/proc",
        page_size: int | None = None,
        cmdline_limit: int = 256,
    ) -> None:
        self._root = Path(proc_root)
        self._page_kb = (page_size or os.sysconf("SC_PAGE_SIZE")) // 1024
        self._cmdline_limit = cmdline_limit

    @property
    def proc_root(self) -> Path:
        return self._root

    def _read_text(self, relative: str) -> str:
        path = self._root / relative
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise Unavailable(str(path), exc.strerror or str(exc)) from exc

    def read_cpu_counters(self) -> CpuCounters:
        """Read the aggregate processor counters."""
        text = self._read_text("stat")
        first_line = text.partition("\n")[0]
        try:
            return parse_cpu_line(first_line)
        except PartiallyParsed as exc:
            raise Unavailable(str(self._root / "stat"), str(exc)) from exc

    def read_memory_counters(self) -> MemoryCounters:
        """Read memory figures; a missing source yields all zeros."""
        try:
            text = self._read_text("meminfo")
        except Unavailable as exc:
            logger.warning("%s", exc)
            return MemoryCounters()
        return parse_meminfo(text)

    def read_disk_usage(self, mount_point: str = "/") -> DiskCounters:
        """Query filesystem size for ``mount_point``."""
        try:
            usage = psutil.disk_usage(mount_point)
        except OSError as exc:
            raise Unavailable(f"filesystem {mount_point}", exc.strerror or str(exc)) from exc
        # psutil reports free as blocks available to unprivileged users.
        return DiskCounters(total_kb=usage.total // 1024, available_kb=usage.free // 1024)

    def read_disk_io_counters(self, device: str | None = None) -> DiskIoCounters:
        """Read cumulative block device requests, for one device or all of them."""
        text = self._read_text("diskstats")
        try:
            return parse_diskstats(text, device)
        except PartiallyParsed as exc:
            raise Unavailable(str(self._root / "diskstats"), str(exc)) from exc

    def read_network_counters(self) -> NetworkCounters:
        """Read aggregate interface byte counters."""
        return parse_net_dev(self._read_text("net/dev"))

    def read_processes(self, max_count: int) -> list[ProcessSample]:
        """
        Scan up to ``max_count`` process directories.

        Entries beyond the bound are dropped; the scan order is whatever the
        directory listing yields. A process that exits during the scan is
        returned with no memory and no command rather than skipped.
        """
        try:
            entries = os.scandir(self._root)
        except OSError as exc:
            raise Unavailable(str(self._root), exc.strerror or str(exc)) from exc

        samples: list[ProcessSample] = []
        with entries:
            for entry in entries:
                if len(samples) >= max_count:
                    break
                if not entry.name.isdigit():
                    continue
                samples.append(self._read_process(int(entry.name)))
        return samples

    def _read_process(self, pid: int) -> ProcessSample:
        base = self._root / str(pid)

        try:
            with open(base / "cmdline", "rb") as f:
                command = sanitize_cmdline(f.read(self._cmdline_limit - 1))
        except OSError:
            command = ""

        if not command:
            try:
                comm = (base / "comm").read_text(encoding="utf-8", errors="replace")
                command = comm.rstrip("\n")
            except OSError:
                command = ""

        rss_kb = 0
        try:
            stat_line = (base / "stat").read_text(encoding="utf-8", errors="replace")
            rss_kb = parse_stat_rss(stat_line) * self._page_kb
        except OSError:
            logger.debug("process %d exited during scan", pid)
        except PartiallyParsed as exc:
            logger.debug("process %d: %s", pid, exc)

        return ProcessSample(pid=pid, rss_kb=rss_kb, command=command)
