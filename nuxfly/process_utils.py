"""
Child process supervision helpers.

Signal forwarding for foreground children, readiness polling for background
children, and orderly termination.
"""

import queue
import signal
import subprocess
import threading
import time
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional

FORWARDED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@contextmanager
def forward_signals(process: subprocess.Popen) -> Iterator[None]:
    """
    Deliver SIGINT/SIGTERM received by this process to a child while active.

    The child decides how to exit; its exit code is then reported by the
    caller's wait(). Outside the main thread signal handlers cannot be set,
    so forwarding is skipped there.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _forward(signum, _frame):
        if process.poll() is None:
            process.send_signal(signum)

    previous = {sig: signal.signal(sig, _forward) for sig in FORWARDED_SIGNALS}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def wait_for_output(
    process: subprocess.Popen,
    markers: Iterable[str],
    timeout: float,
) -> Optional[List[str]]:
    """
    Read a child's stdout until a line contains one of the markers.

    Args:
        process: Child started with stdout=PIPE and text mode
        markers: Substrings that signal readiness
        timeout: Seconds to wait before giving up

    Returns:
        Lines read so far when a marker was seen, None on timeout or early exit
    """
    markers = tuple(markers)
    lines: List[str] = []
    received: "queue.Queue[Optional[str]]" = queue.Queue()

    # Keeps draining stdout after readiness so the child never blocks on a full pipe
    def _pump() -> None:
        for line in process.stdout:
            received.put(line)
        received.put(None)

    threading.Thread(target=_pump, name="nuxfly-output-pump", daemon=True).start()

    deadline = time.monotonic() + timeout
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return None
        try:
            line = received.get(timeout=remaining)
        except queue.Empty:
            return None
        if line is None:
            # EOF: the child exited before becoming ready
            return None
        lines.append(line.rstrip())
        if any(marker in line for marker in markers):
            return lines


def terminate_process(process: Optional[subprocess.Popen], grace: float = 5.0) -> None:
    """Terminate a child, escalating to kill after the grace period."""
    if process is None or process.poll() is not None:
        return
    process.terminate()
    try:
        process.wait(timeout=grace)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()


@contextmanager
def supervise(process: subprocess.Popen) -> Iterator[subprocess.Popen]:
    """
    Keep a background child alive for the duration of the block.

    The child is terminated on normal exit, on error, and when SIGTERM
    arrives (translated into KeyboardInterrupt so the block unwinds).
    """
    restore = None
    if threading.current_thread() is threading.main_thread():

        def _on_term(_signum, _frame):
            raise KeyboardInterrupt

        restore = signal.signal(signal.SIGTERM, _on_term)
    try:
        yield process
    finally:
        terminate_process(process)
        if restore is not None:
            signal.signal(signal.SIGTERM, restore)
