"""Configuration values for sysmon."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

ENV_PREFIX = "SYSMON_"


@dataclass(frozen=True)
class SysmonConfig:
    """Tunables for sampling, scanning and display."""

    proc_root: Path = Path("/proc")
    mount_point: str = "/"
    disk_device: str | None = None  # block device for request counts; None sums whole disks
    sample_interval: float = 1.0  # seconds between the two reads of a one-shot rate
    refresh_interval: float = 1.0  # seconds between continuous-mode cycles
    poll_interval: float = 0.05  # cancellation granularity while waiting
    max_processes: int = 64  # upper bound on process directories scanned
    top_n: int = 10  # rows in the one-shot listing
    command_width: int = 60
    cmdline_limit: int = 256  # bytes read from a process argument list

    def __post_init__(self) -> None:
        if self.sample_interval <= 0:
            raise ValueError("sample_interval must be positive")
        if self.refresh_interval <= 0:
            raise ValueError("refresh_interval must be positive")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        for name in ("max_processes", "top_n", "command_width"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.cmdline_limit < 1:
            raise ValueError("cmdline_limit must be at least 1")
        if self.poll_interval > self.refresh_interval:
            object.__setattr__(self, "poll_interval", self.refresh_interval)


_ENV_FIELDS = {
    "PROC_ROOT": ("proc_root", Path),
    "MOUNT_POINT": ("mount_point", str),
    "DISK_DEVICE": ("disk_device", str),
    "MAX_PROCS": ("max_processes", int),
    "REFRESH": ("refresh_interval", float),
    "INTERVAL": ("sample_interval", float),
}


def load_config(environ: Mapping[str, str] | None = None, **overrides: object) -> SysmonConfig:
    """
    Build a config from defaults, ``SYSMON_*`` environment variables and overrides.

    Overrides whose value is None are ignored, so parsed CLI arguments can be
    passed straight through.
    """
    if environ is None:
        environ = os.environ

    values: dict[str, object] = {}
    for suffix, (name, convert) in _ENV_FIELDS.items():
        raw = environ.get(ENV_PREFIX + suffix)
        if raw is None or raw == "":
            continue
        try:
            values[name] = convert(raw)
        except ValueError as exc:
            raise ValueError(f"invalid {ENV_PREFIX}{suffix}={raw!r}") from exc

    values.update({k: v for k, v in overrides.items() if v is not None})
    return replace(SysmonConfig(), **values)
