"""Camera driver interfaces.

This subpackage defines the abstract :class:`DepthDriver` consumed by the
scan pipeline and the device catalog that classifies connected cameras.
The RealSense implementation lives in :mod:`vision.camera.realsense` and
is imported explicitly so the rest of the stack runs without the SDK.
"""

from .camera_base import (
    DepthDriver,
    FilterPrimitive,
    Intrinsics,
    RawFrame,
    StreamHandle,
)
from .catalog import (
    ConcurrencyClass,
    DeviceCatalog,
    DeviceIdentity,
    classify_device,
    get_catalog,
)

__all__ = [
    "DepthDriver",
    "FilterPrimitive",
    "Intrinsics",
    "RawFrame",
    "StreamHandle",
    "ConcurrencyClass",
    "DeviceCatalog",
    "DeviceIdentity",
    "classify_device",
    "get_catalog",
]
