"""RealSense implementation of the depth driver interface."""

from __future__ import annotations

import threading
from typing import Any, Mapping, Tuple

import numpy as np
import pyrealsense2 as rs

from utils.error_tracker import (
    CaptureFailureError,
    DeviceNotFoundError,
    ErrorTracker,
    UnsupportedFilterError,
)
from utils.logger import Logger, LoggerType
from utils.settings import DepthStreamCfg, stream as STREAMCFG
from .camera_base import DepthDriver, FilterPrimitive, Intrinsics, RawFrame, StreamHandle

# Wire property name -> RealSense option
OPTION_MAP = {
    "FilterMagnitude": rs.option.filter_magnitude,
    "FilterSmoothAlpha": rs.option.filter_smooth_alpha,
    "FilterSmoothDelta": rs.option.filter_smooth_delta,
    "HolesFill": rs.option.holes_fill,
    "MinDistance": rs.option.min_distance,
    "MaxDistance": rs.option.max_distance,
}

# Canonical filter name -> processing block factory
FILTER_FACTORIES = {
    "Decimation Filter": rs.decimation_filter,
    "Spatial Filter": rs.spatial_filter,
    "Temporal Filter": rs.temporal_filter,
    "Hole Filling Filter": rs.hole_filling_filter,
    "Threshold Filter": rs.threshold_filter,
}


def _to_intrinsics(intr: rs.intrinsics) -> Intrinsics:
    return Intrinsics(
        width=intr.width,
        height=intr.height,
        ppx=intr.ppx,
        ppy=intr.ppy,
        fx=intr.fx,
        fy=intr.fy,
    )


class RealSenseDriver(DepthDriver):
    """Intel RealSense depth driver built on ``pyrealsense2``."""

    def __init__(
        self,
        stream_cfg: DepthStreamCfg | None = None,
        logger: LoggerType | None = None,
    ) -> None:
        self.stream_cfg = stream_cfg or STREAMCFG
        self.logger = logger or Logger.get_logger("vision.realsense")
        self.ctx = rs.context()
        self._open: dict[str, StreamHandle] = {}
        self._lock = threading.Lock()
        ErrorTracker.register_cleanup(self.stop_all)

    def _find_device(self, serial: str) -> rs.device:
        for device in self.ctx.query_devices():
            if device.get_info(rs.camera_info.serial_number) == serial:
                return device
        raise DeviceNotFoundError("device is not connected", serial)

    def enumerate_devices(self) -> list[str]:
        return [
            d.get_info(rs.camera_info.serial_number) for d in self.ctx.query_devices()
        ]

    def query_device_name(self, serial: str) -> str:
        return self._find_device(serial).get_info(rs.camera_info.name)

    def start_stream(self, serial: str) -> StreamHandle:
        cfg = self.stream_cfg
        config = rs.config()
        config.enable_device(serial)
        if cfg.width and cfg.height and cfg.fps:
            config.enable_stream(
                rs.stream.depth, cfg.width, cfg.height, rs.format.z16, cfg.fps
            )
        else:
            config.enable_stream(rs.stream.depth)
        pipeline = rs.pipeline(self.ctx)
        try:
            profile = pipeline.start(config)
        except RuntimeError as e:
            self.logger.error(f"Failed to start RealSense pipeline {serial}: {e}")
            raise CaptureFailureError(f"cannot start stream: {e}", serial) from e
        handle = StreamHandle(serial=serial, native=pipeline, profile=profile)
        with self._lock:
            self._open[serial] = handle
        self.logger.debug(f"Depth stream started SN:{serial}")
        return handle

    def wait_for_frame(self, handle: StreamHandle) -> RawFrame:
        frames = handle.native.wait_for_frames(self.stream_cfg.frame_timeout_ms)
        depth = frames.get_depth_frame()
        if not depth:
            raise CaptureFailureError("frameset without depth frame", handle.serial)
        # keep the frame alive after the pipeline is stopped
        depth.keep()
        return RawFrame(data=depth, timestamp=depth.get_timestamp(), serial=handle.serial)

    def stop_stream(self, handle: StreamHandle) -> None:
        with self._lock:
            self._open.pop(handle.serial, None)
        handle.native.stop()
        self.logger.debug(f"Depth stream stopped SN:{handle.serial}")

    def stop_all(self) -> None:
        """Stop every stream still open (used on fatal errors)."""
        with self._lock:
            handles = list(self._open.values())
            self._open.clear()
        for handle in handles:
            handle.native.stop()

    def close(self) -> None:
        """Stop open streams and drop the fatal-error cleanup hook."""
        self.stop_all()
        ErrorTracker.unregister_cleanup(self.stop_all)

    def query_intrinsics(self, handle: StreamHandle) -> Intrinsics:
        depth_stream = handle.profile.get_stream(rs.stream.depth)
        intr = depth_stream.as_video_stream_profile().get_intrinsics()
        return _to_intrinsics(intr)

    def create_filter(
        self, name: str, options: Mapping[str, float]
    ) -> FilterPrimitive:
        factory = FILTER_FACTORIES.get(name)
        if factory is None:
            raise UnsupportedFilterError(f"unsupported filter '{name}'")
        block = factory()
        for key, value in options.items():
            option = OPTION_MAP.get(key)
            if option is None:
                raise UnsupportedFilterError(f"unsupported option '{key}' for {name}")
            block.set_option(option, float(value))
        return block

    def depth_image(self, data: Any) -> Tuple[np.ndarray, Intrinsics]:
        depth = data.as_depth_frame()
        units = depth.get_units()
        img = np.asanyarray(depth.get_data()).astype(np.float32) * units
        intr = depth.profile.as_video_stream_profile().get_intrinsics()
        return img, _to_intrinsics(intr)
