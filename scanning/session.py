"""Scan session: the camera set plus global capture parameters."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from utils.io import load_json, save_json
from utils.logger import Logger
from utils.config import Config
from vision.camera import DepthDriver
from .profile import CameraProfile

logger = Logger.get_logger("scanning.session")


@dataclass(frozen=True)
class CalibrationSurface:
    """Flat reference target used in calibration mode."""

    width: float = 0.0
    height: float = 0.0
    distance: float = 0.0  # from the object centre

    def to_dict(self) -> dict[str, float]:
        return {"X": self.width, "Y": self.height, "Z": self.distance}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CalibrationSurface":
        return cls(
            width=float(data.get("X", 0.0)),
            height=float(data.get("Y", 0.0)),
            distance=float(data.get("Z", 0.0)),
        )


def _configured(name: str) -> Any:
    """Field defaulting to the ``scan`` config section at creation time."""
    return field(default_factory=lambda: getattr(Config.scan_defaults(), name))


@dataclass
class ScanSession:
    """Cameras and capture settings shared by one scan or calibration.

    Unset capture settings come from the ``scan`` section of the loaded
    config, see :meth:`utils.config.Config.scan_defaults`.
    """

    cameras: list[CameraProfile] = field(default_factory=list)
    frames_number: int = _configured("frames_number")
    dummy_frames_number: int = _configured("dummy_frames_number")
    filename: str = _configured("filename")
    calibration_surface: CalibrationSurface | None = None
    cull_overlap: bool = _configured("cull_overlap")
    debug: bool = _configured("debug")

    def __post_init__(self) -> None:
        if self.frames_number < 1:
            raise ValueError("frames_number must be at least 1")
        if self.dummy_frames_number < 0:
            raise ValueError("dummy_frames_number must not be negative")

    def active_cameras(self) -> list[CameraProfile]:
        return [c for c in self.cameras if c.on]

    def camera(self, serial: str) -> CameraProfile | None:
        for c in self.cameras:
            if c.serial == serial:
                return c
        return None

    def register_connected(self, driver: DepthDriver) -> list[CameraProfile]:
        """Add a default profile for every connected serial not yet known."""
        added = []
        for serial in driver.enumerate_devices():
            if self.camera(serial) is not None:
                continue
            profile = CameraProfile(serial)
            self.cameras.append(profile)
            added.append(profile)
            logger.info(f"Registered camera SN:{serial}")
        return added

    def to_dict(self) -> dict[str, Any]:
        return {
            "Cameras": [c.to_dict() for c in self.cameras],
            "FramesNumber": self.frames_number,
            "DummyFramesNumber": self.dummy_frames_number,
            "Filename": self.filename,
            "CalibrationSurface": (
                self.calibration_surface.to_dict()
                if self.calibration_surface is not None
                else None
            ),
            "Cull": self.cull_overlap,
            "Debug": self.debug,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScanSession":
        surface = data.get("CalibrationSurface")
        defaults = Config.scan_defaults()
        return cls(
            cameras=[CameraProfile.from_dict(c) for c in data.get("Cameras", [])],
            frames_number=int(data.get("FramesNumber", defaults.frames_number)),
            dummy_frames_number=int(
                data.get("DummyFramesNumber", defaults.dummy_frames_number)
            ),
            filename=str(data.get("Filename", defaults.filename)),
            calibration_surface=(
                CalibrationSurface.from_dict(surface) if surface else None
            ),
            cull_overlap=bool(data.get("Cull", defaults.cull_overlap)),
            debug=bool(data.get("Debug", defaults.debug)),
        )


def load_session(path: str | Path) -> ScanSession:
    session = ScanSession.from_dict(load_json(path))
    logger.info(f"Session loaded from {path}: {len(session.cameras)} cameras")
    return session


def save_session(path: str | Path, session: ScanSession) -> None:
    save_json(path, session.to_dict())
    logger.info(f"Session saved to {path}")
