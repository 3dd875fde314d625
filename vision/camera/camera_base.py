"""Abstract depth-camera driver interface."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Tuple

import numpy as np


@dataclass(frozen=True)
class Intrinsics:
    """
    Pinhole intrinsics of a depth stream (pixels).
    """

    width: int
    height: int
    ppx: float  # principal point X (cx)
    ppy: float  # principal point Y (cy)
    fx: float  # focal length X
    fy: float  # focal length Y

    @property
    def fov(self) -> Tuple[float, float]:
        """Horizontal and vertical field of view in degrees."""
        fov_x = math.atan2(self.ppx + 0.5, self.fx) + math.atan2(
            self.width - (self.ppx + 0.5), self.fx
        )
        fov_y = math.atan2(self.ppy + 0.5, self.fy) + math.atan2(
            self.height - (self.ppy + 0.5), self.fy
        )
        return math.degrees(fov_x), math.degrees(fov_y)


@dataclass
class StreamHandle:
    """An open depth stream owned by exactly one capture task."""

    serial: str
    native: Any = None
    profile: Any = None


@dataclass
class RawFrame:
    """Driver depth frame plus its capture timestamp and owning camera."""

    data: Any
    timestamp: float
    serial: str
    released: bool = False

    def release(self) -> None:
        """Drop the underlying buffer; the frame must not be used again."""
        self.data = None
        self.released = True


class FilterPrimitive(Protocol):
    """A driver processing block: one depth frame in, one out."""

    def process(self, frame: Any) -> Any: ...


class DepthDriver(ABC):
    """Minimal driver API consumed by the scan pipeline."""

    @abstractmethod
    def enumerate_devices(self) -> list[str]:
        """Return serials of all connected devices."""

    @abstractmethod
    def query_device_name(self, serial: str) -> str:
        """Return the product name of the device ``serial``."""

    @abstractmethod
    def start_stream(self, serial: str) -> StreamHandle:
        """Start depth streaming on ``serial``."""

    @abstractmethod
    def wait_for_frame(self, handle: StreamHandle) -> RawFrame:
        """Block until the next depth frame arrives."""

    @abstractmethod
    def stop_stream(self, handle: StreamHandle) -> None:
        """Stop streaming and release the device."""

    @abstractmethod
    def query_intrinsics(self, handle: StreamHandle) -> Intrinsics:
        """Return the intrinsics of the open depth stream."""

    @abstractmethod
    def create_filter(
        self, name: str, options: Mapping[str, float]
    ) -> FilterPrimitive:
        """Build a fresh processing block for the canonical filter ``name``."""

    @abstractmethod
    def depth_image(self, data: Any) -> Tuple[np.ndarray, Intrinsics]:
        """Return depth in meters and the intrinsics of a (filtered) frame."""

    def close(self) -> None:
        """Release the driver once no more captures will run."""
