"""Plain-text rendering of a snapshot."""

from sysmon.models import Snapshot


def kb_to_mb(kb: int) -> int:
    """Convert kilobytes to whole megabytes."""
    return kb // 1024


def format_snapshot(snapshot: Snapshot, command_width: int = 60) -> str:
    """Format a snapshot as the line-oriented one-shot report."""
    lines = [
        f"CPU: {snapshot.cpu_percent:.2f} %",
        (
            f"Memory: {snapshot.memory_percent:.2f} % "
            f"({kb_to_mb(snapshot.memory_used_kb)} MB used / "
            f"{kb_to_mb(snapshot.memory_total_kb)} MB total)"
        ),
        (
            f"Disk: {snapshot.disk_percent:.2f} % "
            f"({kb_to_mb(snapshot.disk_used_kb)} MB used / "
            f"{kb_to_mb(snapshot.disk_total_kb)} MB total)"
        ),
        (
            f"Network: RX {int(snapshot.rx_bytes_per_sec)} B/s, "
            f"TX {int(snapshot.tx_bytes_per_sec)} B/s"
        ),
        "Top Processes by RSS:",
        f"{'PID':<6} {'RSS(KB)':<10} COMMAND",
    ]
    for proc in snapshot.processes:
        lines.append(f"{proc.pid:<6} {proc.rss_kb:<10} {proc.command[:command_width]}")
    return "\n".join(lines)
