from __future__ import annotations

import numpy as np
from scipy.spatial.transform import Rotation

__all__ = [
    "cot",
    "vertical_rotation",
    "rotate_about_vertical",
    "wrap_angle",
    "azimuth",
]


def cot(angle: float) -> float:
    """Cotangent of ``angle`` given in radians."""
    return 1.0 / np.tan(angle)


def vertical_rotation(angle: float, *, degrees: bool = True) -> np.ndarray:
    """Return the 3x3 rotation about the vertical (y) axis.

    This is the right-handed ``Ry``: a positive ``angle`` turns +z towards
    +x, so the azimuth ``atan2(z, x)`` of every point drops by ``angle``.
    """
    return Rotation.from_euler("y", angle, degrees=degrees).as_matrix()


def wrap_angle(angle: float) -> float:
    """Map an angle in radians into ``[-pi, pi)``."""
    return (angle + np.pi) % (2 * np.pi) - np.pi


def rotate_about_vertical(points: np.ndarray, angle: float) -> None:
    """Rotate ``(N, 3)`` points in place by ``angle`` degrees."""
    R = vertical_rotation(angle)
    points[:] = points @ R.T


def azimuth(points: np.ndarray) -> np.ndarray:
    """Per-point azimuth ``atan2(z, x)`` in radians."""
    return np.arctan2(points[:, 2], points[:, 0])
