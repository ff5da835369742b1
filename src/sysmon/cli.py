"""Command-line entry point for sysmon."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from queue import Queue
from typing import Sequence

from sysmon.app import SysmonApp
from sysmon.assembler import SnapshotAssembler
from sysmon.config import SysmonConfig, load_config
from sysmon.counters import CounterReader
from sysmon.errors import SamplingCancelled, Unavailable
from sysmon.logging_config import setup_logging
from sysmon.models import Snapshot
from sysmon.monitor import SystemMonitor
from sysmon.render import format_snapshot

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the sysmon argument parser."""
    parser = argparse.ArgumentParser(
        prog="sysmon",
        description="Show CPU, memory, disk, network and top processes by RSS.",
    )
    parser.add_argument(
        "--snapshot",
        action="store_true",
        help="print one snapshot to stdout and exit (non-interactive)",
    )
    parser.add_argument(
        "--mount-point",
        default=None,
        help="filesystem to report disk usage for (default: /)",
    )
    parser.add_argument(
        "--disk-device",
        default=None,
        metavar="NAME",
        help="block device for read/write counts, e.g. sda (default: all disks)",
    )
    parser.add_argument(
        "--refresh",
        type=float,
        default=None,
        metavar="SECONDS",
        help="refresh interval in interactive mode (default: 1)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="console log level (default: WARNING)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="append detailed logs to this file",
    )
    return parser


def make_assembler(config: SysmonConfig) -> SnapshotAssembler:
    reader = CounterReader(config.proc_root, cmdline_limit=config.cmdline_limit)
    return SnapshotAssembler(reader, config)


def run_snapshot(config: SysmonConfig) -> int:
    """Print one snapshot and return the exit code."""
    snapshot = make_assembler(config).snapshot()
    print(format_snapshot(snapshot, config.command_width))
    return 0


def run_interactive(config: SysmonConfig) -> int:
    """Run the terminal display until the user quits."""
    assembler = make_assembler(config)
    # Fail before the terminal is taken over; the monitor takes its own baseline
    assembler.begin()

    update_queue: Queue[Snapshot] = Queue()
    monitor = SystemMonitor(assembler, update_queue)
    app = SysmonApp(
        monitor,
        update_queue,
        mount_point=config.mount_point,
        command_width=config.command_width,
    )
    try:
        app.run()
    finally:
        monitor.stop()
    return app.return_code or 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the sysmon command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(
        level=getattr(logging, args.log_level),
        log_file=args.log_file,
        console=args.snapshot,
    )

    try:
        config = load_config(
            mount_point=args.mount_point,
            disk_device=args.disk_device,
            refresh_interval=args.refresh,
        )
    except ValueError as exc:
        parser.error(str(exc))

    try:
        if args.snapshot:
            return run_snapshot(config)
        return run_interactive(config)
    except Unavailable as exc:
        logger.debug("startup failed", exc_info=True)
        print(f"sysmon: cannot read processor counters: {exc}", file=sys.stderr)
        return 1
    except (SamplingCancelled, KeyboardInterrupt):
        return 130


if __name__ == "__main__":
    sys.exit(main())
