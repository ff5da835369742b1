"""Ordering of scanned processes by resident memory."""

from collections.abc import Iterable

from sysmon.models import ProcessSample


def rank_processes(samples: Iterable[ProcessSample], limit: int) -> list[ProcessSample]:
    """
    Return at most ``limit`` samples, largest resident memory first.

    The sort is stable, so processes with equal RSS keep their scan order.
    """
    if limit <= 0:
        return []
    ranked = sorted(samples, key=lambda p: p.rss_kb, reverse=True)
    return ranked[:limit]


def rows_available(screen_rows: int, used_rows: int) -> int:
    """Rows left for the process listing once the header is drawn."""
    return max(0, screen_rows - used_rows)
