"""Interruptible waits used for sampling and refresh intervals."""

import threading
import time


def interruptible_wait(
    seconds: float,
    stop_event: threading.Event | None = None,
    poll_interval: float = 0.05,
) -> bool:
    """
    Wait ``seconds`` as a sequence of short polls.

    Returns:
        True if the full interval elapsed, False if ``stop_event`` was set.
    """
    if stop_event is None:
        stop_event = threading.Event()
    deadline = time.monotonic() + seconds
    while True:
        if stop_event.is_set():
            return False
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return True
        if stop_event.wait(timeout=min(poll_interval, remaining)):
            return False
