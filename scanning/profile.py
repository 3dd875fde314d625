"""Per-camera static and calibration data."""

from __future__ import annotations

import math
from typing import Any, Mapping

import numpy as np

from utils.error_tracker import DegenerateGeometryError
from utils.logger import Logger, LoggerType
from utils.math_utils import cot, rotate_about_vertical
from utils.settings import cloud as CLOUDCFG
from vision.camera import ConcurrencyClass, DepthDriver, DeviceCatalog, DeviceIdentity
from vision.camera.camera_base import FilterPrimitive
from vision.filters import FilterChain


class CameraProfile:
    """A depth camera mounted around the scanned object.

    Geometry and concurrency class come from the connected device and are
    only available after :meth:`resolve`. Changing the serial through
    :meth:`change_serial` drops them until the next :meth:`resolve`.
    """

    def __init__(
        self,
        serial: str,
        angle: float = 0.0,
        position_deviation: np.ndarray | None = None,
        filters: FilterChain | None = None,
        on: bool = True,
        logger: LoggerType | None = None,
    ) -> None:
        self._serial = serial
        self.angle = float(angle)
        self.position_deviation = (
            np.zeros(3)
            if position_deviation is None
            else np.asarray(position_deviation, dtype=np.float64).reshape(3)
        )
        self.filters = filters or FilterChain.default()
        self.on = on
        self.logger = logger or Logger.get_logger("scanning.profile")
        self._identity: DeviceIdentity | None = None

    def __repr__(self) -> str:
        return (
            f"CameraProfile(serial={self._serial!r}, angle={self.angle}, "
            f"deviation={self.position_deviation.tolist()}, on={self.on})"
        )

    # ---------------------------------------------------------------
    @property
    def serial(self) -> str:
        return self._serial

    def change_serial(self, serial: str) -> None:
        """Point the profile at another device and invalidate derived data."""
        self._serial = serial
        self._identity = None

    @property
    def resolved(self) -> bool:
        return self._identity is not None

    def resolve(self, catalog: DeviceCatalog) -> DeviceIdentity:
        """Look up the device behind the serial (cached by the catalog)."""
        if self._identity is None:
            self._identity = catalog.lookup(self._serial)
        return self._identity

    def _require_identity(self) -> DeviceIdentity:
        if self._identity is None:
            raise RuntimeError(f"Camera {self._serial} is not resolved")
        return self._identity

    @property
    def concurrency_class(self) -> ConcurrencyClass:
        return self._require_identity().concurrency_class

    @property
    def fov(self) -> tuple[float, float]:
        """Field of view (horizontal, vertical) in degrees."""
        return self._require_identity().fov

    # ---------------------------------------------------------------
    def active_filter_chain(self, driver: DepthDriver) -> list[FilterPrimitive]:
        """Fresh processing blocks of the enabled steps, canonical order."""
        return self.filters.build(driver)

    def adjust_to_object_center(self, points: np.ndarray) -> None:
        """Move camera-local points into the object-centred frame, in place.

        Must run before :meth:`rotate_to_scene_frame`.
        """
        dev = self.position_deviation
        x = -(points[:, 0] + dev[0])
        y = -(points[:, 1] + dev[1])
        z = dev[2] - points[:, 2]
        points[:, 0] = x
        points[:, 1] = y
        points[:, 2] = z

    def rotate_to_scene_frame(self, points: np.ndarray) -> None:
        """Rotate points about the vertical axis by the mounting angle, in place."""
        rotate_about_vertical(points, self.angle)

    def find_critical_angle(
        self, other: "CameraProfile", *, reverse: bool = False
    ) -> float:
        """Angle (radians, from the object centre) where the view cones meet.

        The horizontal boundary rays of both cones are intersected in the
        x-z plane of this camera's object-centred frame, where the camera
        sits at azimuth pi/2. ``other`` is taken as the previous camera by
        mounting angle, whose cone meets this one counter-clockwise of the
        camera. With ``reverse`` the construction is mirrored for the next
        camera, whose cone meets it clockwise.

        Raises :class:`DegenerateGeometryError` when the intersection is
        indeterminate.
        """
        d1 = self.position_deviation[2]
        d2 = other.position_deviation[2]
        fov1 = math.radians(self.fov[0] / 2)
        fov2 = math.radians(other.fov[0] / 2)
        gap = other.angle - self.angle if reverse else self.angle - other.angle
        delta = math.radians(gap)

        with np.errstate(divide="ignore", invalid="ignore"):
            x = (d2 * np.sin(fov2) / np.sin(delta + fov2) - d1) / (
                cot(fov1) - np.tan(math.pi / 2 + delta + fov2)
            )
            z = cot(fov1) * x + d1
        if not (np.isfinite(x) and np.isfinite(z)) or abs(x) < CLOUDCFG.degenerate_eps:
            raise DegenerateGeometryError(
                f"view cones of {self.serial} and {other.serial} have no "
                f"determinate intersection",
                self.serial,
            )
        angle = float(np.arctan2(z, -x if reverse else x))
        self.logger.debug(
            f"Critical angle {self.serial}->{other.serial}: {math.degrees(angle):.2f} deg"
        )
        return angle

    # ---------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        dev = self.position_deviation
        return {
            "Serial": self._serial,
            "Angle": self.angle,
            "PositionDeviation": {
                "X": float(dev[0]),
                "Y": float(dev[1]),
                "Z": float(dev[2]),
            },
            "On": self.on,
            "Filters": self.filters.to_list(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CameraProfile":
        dev = data.get("PositionDeviation", {})
        return cls(
            serial=str(data["Serial"]),
            angle=float(data.get("Angle", 0.0)),
            position_deviation=np.array(
                [dev.get("X", 0.0), dev.get("Y", 0.0), dev.get("Z", 0.0)],
                dtype=np.float64,
            ),
            filters=(
                FilterChain.from_list(data["Filters"])
                if "Filters" in data
                else FilterChain.default()
            ),
            on=bool(data.get("On", True)),
        )
