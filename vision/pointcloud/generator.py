# vision/pointcloud/generator.py
"""Point cloud utilities built around numpy."""

from __future__ import annotations

import numpy as np

from utils.math_utils import azimuth
from utils.settings import POINT_UNIT_SCALE
from vision.camera.camera_base import Intrinsics


class PointCloudGenerator:
    """Utility class for creating and trimming point clouds."""

    @staticmethod
    def depth_to_points(
        depth: np.ndarray,
        intr: Intrinsics,
        unit_scale: float = POINT_UNIT_SCALE,
    ) -> np.ndarray:
        """Deproject a depth map (meters) into an ``(N, 3)`` cloud.

        Samples without a return deproject to the zero vector and are dropped.
        """

        h, w = depth.shape
        us, vs = np.meshgrid(np.arange(w), np.arange(h))
        zs = depth.astype(np.float64) * unit_scale
        xs = (us - intr.ppx) * zs / intr.fx
        ys = (vs - intr.ppy) * zs / intr.fy
        points = np.stack((xs.ravel(), ys.ravel(), zs.ravel()), axis=1)
        return PointCloudGenerator.drop_zero_points(points)

    @staticmethod
    def drop_zero_points(points: np.ndarray) -> np.ndarray:
        """Remove all-zero ("no return") points."""
        return points[np.any(points != 0.0, axis=1)]

    @staticmethod
    def centroid(points: np.ndarray) -> np.ndarray:
        """Mean of the cloud."""
        if len(points) == 0:
            raise ValueError("Cannot take the centroid of an empty cloud")
        return points.mean(axis=0)

    @staticmethod
    def cull(points: np.ndarray, lower: float, upper: float) -> np.ndarray:
        """Keep points whose azimuth ``atan2(z, x)`` lies in ``[lower, upper]``.

        With ``lower > upper`` the interval wraps through pi.
        """
        az = azimuth(points)
        if lower <= upper:
            mask = (lower <= az) & (az <= upper)
        else:
            mask = (lower <= az) | (az <= upper)
        return points[mask]

    @staticmethod
    def merge(clouds: list[np.ndarray]) -> np.ndarray:
        """Concatenate clouds; the order carries no meaning."""
        if not clouds:
            return np.empty((0, 3), dtype=np.float64)
        return np.concatenate(clouds, axis=0)
