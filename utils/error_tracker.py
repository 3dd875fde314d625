"""Scan error types and centralized unhandled exception tracking."""

from __future__ import annotations

import signal
import sys
import threading
import traceback
from typing import Callable, List, Optional

from utils.logger import Logger


class ScanError(Exception):
    """Base class for capture and reconstruction errors.

    ``serial`` names the offending camera when the failure is tied to one.
    """

    def __init__(self, message: str, serial: str | None = None) -> None:
        self.serial = serial
        if serial is not None:
            message = f"[camera {serial}] {message}"
        super().__init__(message)


class DeviceNotFoundError(ScanError):
    """Raised when a serial is not among the connected devices."""


class UnsupportedFilterError(ScanError):
    """Raised for a filter name outside the supported catalog."""


class DegenerateGeometryError(ScanError):
    """Raised when two view cones have no determinate intersection."""


class CaptureFailureError(ScanError):
    """Raised when the driver fails while a camera is streaming."""


class ErrorTracker:
    """Installable global exception hook that logs uncaught errors."""

    logger = Logger.get_logger("utils.error_tracker")
    _installed = False
    _orig_hook: Optional[Callable[..., None]] = None
    _cleanup_funcs: List[Callable[[], None]] = []
    _lock = threading.Lock()

    @classmethod
    def register_cleanup(cls, func: Callable[[], None]) -> None:
        """Register a cleanup function executed on fatal errors."""
        with cls._lock:
            cls._cleanup_funcs.append(func)

    @classmethod
    def unregister_cleanup(cls, func: Callable[[], None]) -> None:
        with cls._lock:
            if func in cls._cleanup_funcs:
                cls._cleanup_funcs.remove(func)

    @classmethod
    def _run_cleanup(cls) -> None:
        with cls._lock:
            funcs = list(cls._cleanup_funcs)
        for func in funcs:
            try:
                func()
            except Exception as e:
                cls.logger.error(f"Cleanup failed: {e}")

    @classmethod
    def install_excepthook(cls) -> None:
        """Log unhandled exceptions through the project logger."""
        if cls._installed:
            return

        cls._orig_hook = sys.excepthook

        def _hook(exc_type, exc, tb) -> None:
            message = "".join(traceback.format_exception(exc_type, exc, tb))
            cls.logger.error(f"Unhandled exception:\n{message}")
            cls._run_cleanup()
            if cls._orig_hook:
                cls._orig_hook(exc_type, exc, tb)

        sys.excepthook = _hook
        cls._installed = True
        cls.logger.debug("Global exception hook installed")

    @classmethod
    def install_signal_handlers(cls) -> None:
        """Shutdown gracefully on SIGINT or SIGTERM."""

        def _handler(signum, frame) -> None:
            cls.logger.info(f"Received signal {signum}")
            cls._run_cleanup()
            raise SystemExit(1)

        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
