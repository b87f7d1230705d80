"""Graceful shutdown on SIGINT/SIGTERM.

The first signal sets a flag that traversals check between pages; in-flight
categories then stop and emit what they collected. A second signal exits
immediately.
"""

import signal
import sys
import threading
from typing import Optional

from partcrawl.errors import CrawlInterrupted

__all__ = [
    "ShutdownHandler",
    "get_shutdown_handler",
    "shutdown_requested",
    "check_shutdown",
]


class ShutdownHandler:
    """Process-wide shutdown flag driven by signal handlers.

    Usage:
        handler = get_shutdown_handler().install()
        try:
            run(...)
        finally:
            handler.uninstall()
    """

    _instance: Optional["ShutdownHandler"] = None
    _lock = threading.Lock()

    def __init__(self) -> None:
        self._shutdown_requested = threading.Event()
        self._original_handlers = {}
        self._installed = False

    @classmethod
    def get_instance(cls) -> "ShutdownHandler":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def install(self) -> "ShutdownHandler":
        """Install signal handlers. Must be called from the main thread."""
        if self._installed:
            return self
        for signum in (signal.SIGINT, signal.SIGTERM):
            self._original_handlers[signum] = signal.getsignal(signum)
            signal.signal(signum, self._handle_signal)
        self._installed = True
        return self

    def uninstall(self) -> None:
        """Restore the original signal handlers."""
        if not self._installed:
            return
        for signum, handler in self._original_handlers.items():
            if handler is not None:
                signal.signal(signum, handler)
        self._original_handlers.clear()
        self._installed = False

    def _handle_signal(self, signum: int, frame) -> None:
        signal_name = signal.Signals(signum).name
        print(f"\nReceived {signal_name}, finishing in-flight pages and emitting partial results...")
        print("(Press Ctrl+C again to force quit)\n")
        self._shutdown_requested.set()
        signal.signal(signum, self._force_exit)

    def _force_exit(self, signum: int, frame) -> None:
        print("\nForce quitting...")
        sys.exit(1)

    def request(self) -> None:
        """Request shutdown without a signal."""
        self._shutdown_requested.set()

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested.is_set()

    def check_shutdown(self) -> None:
        """Raise CrawlInterrupted if shutdown has been requested."""
        if self._shutdown_requested.is_set():
            raise CrawlInterrupted("Graceful shutdown requested")

    def reset(self) -> None:
        """Clear the shutdown flag (for tests or reuse)."""
        self._shutdown_requested.clear()


def get_shutdown_handler() -> ShutdownHandler:
    """Get the global shutdown handler instance."""
    return ShutdownHandler.get_instance()


def shutdown_requested() -> bool:
    return get_shutdown_handler().shutdown_requested


def check_shutdown() -> None:
    get_shutdown_handler().check_shutdown()
