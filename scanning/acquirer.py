"""Start/capture/stop cycle of a single camera."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from utils.error_tracker import CaptureFailureError, ScanError
from utils.logger import Logger, LoggerType
from vision.camera import DepthDriver, RawFrame
from vision.filters import FrameAverager


@dataclass
class CaptureWindow:
    """Wall-clock interval during which a camera was streaming."""

    serial: str
    started: float
    finished: float

    def overlaps(self, other: "CaptureWindow") -> bool:
        return self.started < other.finished and other.started < self.finished


@dataclass
class CaptureResult:
    """Frames of one camera shot, oldest first, and the stream window."""

    serial: str
    frames: list[RawFrame] = field(default_factory=list)
    window: CaptureWindow | None = None

    def release(self) -> None:
        for frame in self.frames:
            frame.release()
        self.frames.clear()


class FrameAcquirer:
    """Wrap the driver stream of one camera for a single shot."""

    def __init__(
        self,
        driver: DepthDriver,
        serial: str,
        logger: LoggerType | None = None,
    ) -> None:
        self.driver = driver
        self.serial = serial
        self.logger = logger or Logger.get_logger("scanning.acquirer")

    @staticmethod
    def _discard(result: CaptureResult, averager: FrameAverager | None) -> None:
        result.release()
        if averager is not None:
            averager.discard()

    def capture(
        self,
        frames_number: int = 1,
        dummy_frames_number: int = 30,
        averager: FrameAverager | None = None,
    ) -> CaptureResult:
        """Discard warm-up frames, then capture ``frames_number`` frames.

        With an ``averager`` every real frame is folded in as it arrives and
        the result holds the single averaged frame.
        """
        result = CaptureResult(serial=self.serial)
        started = time.monotonic()
        try:
            handle = self.driver.start_stream(self.serial)
        except ScanError:
            raise
        except Exception as e:
            raise CaptureFailureError(f"cannot start stream: {e}", self.serial) from e
        try:
            for _ in range(dummy_frames_number):
                self.driver.wait_for_frame(handle).release()
            for _ in range(frames_number):
                frame = self.driver.wait_for_frame(handle)
                if averager is not None:
                    averager.push(frame)
                else:
                    result.frames.append(frame)
            if averager is not None:
                result.frames.append(averager.result())
        except ScanError:
            self._discard(result, averager)
            raise
        except Exception as e:
            self._discard(result, averager)
            raise CaptureFailureError(f"capture failed: {e}", self.serial) from e
        finally:
            self.driver.stop_stream(handle)
            result.window = CaptureWindow(self.serial, started, time.monotonic())
        self.logger.debug(
            f"SN:{self.serial} captured {frames_number} frames "
            f"after {dummy_frames_number} warm-up frames in "
            f"{result.window.finished - result.window.started:.2f}s"
        )
        return result
