"""Rate and percentage calculations over pairs of counter samples."""

from sysmon.models import CpuCounters


def cpu_usage_percent(prev: CpuCounters, cur: CpuCounters) -> float:
    """Busy share of processor time elapsed between two samples, 0-100."""
    total_delta = cur.total_time - prev.total_time
    if total_delta <= 0:
        return 0.0
    idle_delta = cur.idle_time - prev.idle_time
    percent = (total_delta - idle_delta) * 100.0 / total_delta
    return min(100.0, max(0.0, percent))


def rate(prev: int, cur: int, interval: float = 1.0) -> float:
    """
    Per-second rate of a monotonic counter.

    A counter that went backwards (interface reset) contributes zero.
    """
    if interval <= 0:
        return 0.0
    delta = cur - prev if cur >= prev else 0
    return delta / interval


def usage_percent(used: int, total: int) -> float:
    """Share of ``total`` that is ``used``; zero for an empty total."""
    if total <= 0:
        return 0.0
    return used * 100.0 / total
