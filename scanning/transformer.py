"""Per-camera conversion of a filtered frame into scene-frame points."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence, Tuple

import numpy as np

from utils.error_tracker import DegenerateGeometryError
from utils.logger import Logger, LoggerType
from utils.math_utils import wrap_angle
from vision.camera import DepthDriver, RawFrame
from vision.pointcloud import PointCloudGenerator
from .profile import CameraProfile

FULL_COVERAGE = (-math.pi, math.pi)
BACK = -math.pi / 2


def angular_neighbors(
    cameras: Sequence[CameraProfile], camera: CameraProfile
) -> Tuple[CameraProfile, CameraProfile]:
    """Previous and next camera by mounting angle, wrapping around."""
    ordered = sorted(cameras, key=lambda c: c.angle)
    i = next(idx for idx, c in enumerate(ordered) if c is camera)
    return ordered[i - 1], ordered[(i + 1) % len(ordered)]


@dataclass
class PointCloudTransformer:
    """Frame -> points -> object centre -> culled -> scene frame."""

    camera: CameraProfile
    driver: DepthDriver
    neighbors: Tuple[CameraProfile, CameraProfile] | None = None
    cull_overlap: bool = True
    logger: LoggerType = field(
        default_factory=lambda: Logger.get_logger("scanning.transformer")
    )
    generator: PointCloudGenerator = field(default_factory=PointCloudGenerator)

    def frame_to_points(self, frame: RawFrame) -> np.ndarray:
        """Deproject a filtered frame, dropping "no return" samples."""
        depth, intr = self.driver.depth_image(frame.data)
        return self.generator.depth_to_points(depth, intr)

    def bounds(self) -> Tuple[float, float]:
        """Azimuth interval ``[lower, upper]`` this camera keeps.

        The camera sits at azimuth pi/2 of its object-centred frame. The
        previous neighbour by mounting angle sets the upper cut and the next
        one sets the lower cut. A cut that cannot be found, or that falls
        outside the gap to its neighbour, is moved to the back of the
        object at -pi/2. When ``lower > upper`` the interval wraps through pi.
        """
        if self.neighbors is None:
            return FULL_COVERAGE
        before, after = self.neighbors
        upper = self._seam(before, reverse=False)
        lower = self._seam(after, reverse=True)
        if lower is None and upper is None:
            return FULL_COVERAGE
        lower = BACK if lower is None else lower
        upper = BACK if upper is None else upper
        self.logger.debug(
            f"SN:{self.camera.serial} bounds "
            f"[{math.degrees(lower):.1f}, {math.degrees(upper):.1f}] deg"
        )
        return lower, upper

    def _seam(self, other: CameraProfile, *, reverse: bool) -> float | None:
        if other is self.camera:
            return None
        try:
            angle = self.camera.find_critical_angle(other, reverse=reverse)
        except DegenerateGeometryError as e:
            self.logger.warning(f"{e}; cut moved to the back")
            return None
        if reverse:
            gap = other.angle - self.camera.angle
            offset = math.pi / 2 - angle
        else:
            gap = self.camera.angle - other.angle
            offset = angle - math.pi / 2
        gap = math.radians(gap) % (2 * math.pi)
        offset = wrap_angle(offset)
        if not 0.0 < offset < min(gap, math.pi):
            self.logger.debug(
                f"SN:{self.camera.serial} cut {math.degrees(angle):.1f} deg "
                f"against {other.serial} is outside the gap, ignored"
            )
            return None
        return angle

    def cull(self, points: np.ndarray, lower: float, upper: float) -> np.ndarray:
        return self.generator.cull(points, lower, upper)

    def transform(self, frame: RawFrame) -> np.ndarray:
        """Run the full per-camera geometry on a filtered frame.

        The frame is released once its points have been extracted.
        """
        try:
            points = self.frame_to_points(frame)
        finally:
            frame.release()
        n_raw = len(points)
        self.camera.adjust_to_object_center(points)
        if self.cull_overlap:
            lower, upper = self.bounds()
            points = self.cull(points, lower, upper)
        self.camera.rotate_to_scene_frame(points)
        self.logger.info(
            f"SN:{self.camera.serial}: {n_raw} points, {len(points)} after cull"
        )
        return points
