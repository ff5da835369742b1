"""sysmon - Textual terminal display for continuous mode."""

import asyncio
from queue import Empty, Queue

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from sysmon.models import ProcessSample, Snapshot
from sysmon.monitor import SystemMonitor
from sysmon.ranking import rows_available
from sysmon.render import kb_to_mb

# Header panel, table header, table border and footer.
RESERVED_ROWS = 11


def _metric(snapshot: Snapshot, name: str, text: str) -> str:
    """Mark a degraded metric so a zero is not mistaken for a reading."""
    if name in snapshot.unavailable:
        return f"{text} [dim](unavailable)[/dim]"
    return text


def format_header(snapshot: Snapshot, mount_point: str, refresh_interval: float) -> str:
    """Header text for one snapshot, with Rich markup."""
    lines = [
        f"sysmon - refresh every {refresh_interval:g} s  (press q to quit)",
        _metric(snapshot, "cpu", f"CPU Usage: {snapshot.cpu_percent:.2f} %"),
        _metric(
            snapshot,
            "memory",
            f"Memory: {snapshot.memory_percent:.2f} %  "
            f"Used: {kb_to_mb(snapshot.memory_used_kb)} MB  "
            f"Total: {kb_to_mb(snapshot.memory_total_kb)} MB",
        ),
        _metric(
            snapshot,
            "disk",
            f"Disk ({mount_point}): {snapshot.disk_percent:.2f} %  "
            f"Used: {kb_to_mb(snapshot.disk_used_kb)} MB  "
            f"Total: {kb_to_mb(snapshot.disk_total_kb)} MB",
        ),
        _metric(
            snapshot,
            "disk_io",
            f"Disk I/O: Reads: {snapshot.disk_reads}  Writes: {snapshot.disk_writes}",
        ),
        _metric(
            snapshot,
            "network",
            f"Network: RX: {int(snapshot.rx_bytes_per_sec)} B/s  "
            f"TX: {int(snapshot.tx_bytes_per_sec)} B/s",
        ),
    ]
    return "\n".join(lines)


class HeaderStats(Static):
    """Header widget showing the host-wide figures of the latest snapshot."""

    DEFAULT_CSS = """
    HeaderStats {
        height: 7;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, mount_point: str = "/", refresh_interval: float = 1.0, **kwargs) -> None:
        super().__init__("Collecting first sample...", **kwargs)
        self._mount_point = mount_point
        self._refresh_interval = refresh_interval

    def update_stats(self, snapshot: Snapshot) -> None:
        """Update the statistics from a snapshot."""
        self.update(format_header(snapshot, self._mount_point, self._refresh_interval))


class ProcessTable(Container):
    """Container for the top-processes table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, command_width: int = 60, **kwargs) -> None:
        super().__init__(**kwargs)
        self._command_width = command_width

    def compose(self) -> ComposeResult:
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"
        table.add_column("PID", key="pid", width=8)
        table.add_column("RSS(KB)", key="rss_kb", width=10)
        table.add_column("RSS(MB)", key="rss_mb", width=8)
        table.add_column("COMMAND", key="command")

    def update_processes(self, processes: tuple[ProcessSample, ...]) -> None:
        """Replace the rows with the ranked processes, keeping their order."""
        table = self.query_one("#process-table", DataTable)
        table.clear()
        for proc in processes:
            table.add_row(
                str(proc.pid),
                str(proc.rss_kb),
                str(kb_to_mb(proc.rss_kb)),
                proc.command[: self._command_width],
            )


class SysmonApp(App):
    """Continuous-mode sysmon application."""

    TITLE = "sysmon"
    SUB_TITLE = "Simple System Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("Q", "quit", "Quit"),
    ]

    def __init__(
        self,
        monitor: SystemMonitor,
        update_queue: Queue[Snapshot],
        mount_point: str = "/",
        command_width: int = 60,
    ) -> None:
        super().__init__()
        self._monitor = monitor
        self._update_queue = update_queue
        self._mount_point = mount_point
        self._command_width = command_width

    @property
    def monitor(self) -> SystemMonitor:
        return self._monitor

    def compose(self) -> ComposeResult:
        yield HeaderStats(
            mount_point=self._mount_point,
            refresh_interval=self._monitor.refresh_interval,
            id="header-stats",
        )
        yield ProcessTable(command_width=self._command_width)
        yield Footer()

    def on_mount(self) -> None:
        """Start the monitor and poll its queue for snapshots."""
        self._fit_rows(self.size.height)
        self._monitor.start()
        self.set_interval(0.1, self._check_for_updates)

    def on_resize(self, event: events.Resize) -> None:
        self._fit_rows(event.size.height)

    def _fit_rows(self, height: int) -> None:
        self._monitor.top_n = rows_available(height, RESERVED_ROWS)

    def _check_for_updates(self) -> None:
        """Drain the queue and show the most recent snapshot."""
        snapshot = None
        while True:
            try:
                snapshot = self._update_queue.get_nowait()
            except Empty:
                break

        if snapshot is not None:
            self.show_snapshot(snapshot)

    def show_snapshot(self, snapshot: Snapshot) -> None:
        """Render a snapshot into the header and process table."""
        self.query_one("#header-stats", HeaderStats).update_stats(snapshot)
        self.query_one(ProcessTable).update_processes(snapshot.processes)

    async def action_quit(self) -> None:
        """Stop sampling and leave the application."""
        loop = asyncio.get_running_loop()
        # Join the sampling thread off the event loop
        await loop.run_in_executor(None, self._monitor.stop)
        self.exit(0)
