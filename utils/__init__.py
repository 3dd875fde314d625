"""Shared helper modules used across the project.

The :mod:`utils` package contains lightweight helpers for logging, CLI
dispatching, configuration, error types and simple file I/O. These
utilities are used by most other packages.
"""

from .logger import Logger, LoggerType
from .settings import (
    CLOUD_EXT,
    POINT_UNIT_SCALE,
    paths,
    logging,
    scan,
    stream,
    filters,
    devices,
    cloud,
)
from .error_tracker import (
    ScanError,
    DeviceNotFoundError,
    UnsupportedFilterError,
    DegenerateGeometryError,
    CaptureFailureError,
    ErrorTracker,
)
from .io import load_json, save_json, save_xyz, load_xyz
from .math_utils import cot, vertical_rotation, rotate_about_vertical, wrap_angle, azimuth

__all__ = [
    "Logger",
    "LoggerType",
    "CLOUD_EXT",
    "POINT_UNIT_SCALE",
    "paths",
    "logging",
    "scan",
    "stream",
    "filters",
    "devices",
    "cloud",
    "ScanError",
    "DeviceNotFoundError",
    "UnsupportedFilterError",
    "DegenerateGeometryError",
    "CaptureFailureError",
    "ErrorTracker",
    "load_json",
    "save_json",
    "save_xyz",
    "load_xyz",
    "cot",
    "vertical_rotation",
    "rotate_about_vertical",
    "wrap_angle",
    "azimuth",
]
