"""Depth camera interfaces and 3D vision helpers.

The vision package contains the driver boundary, the depth filter chain and
the point cloud math used by the scanning pipeline. Drivers are accessed
through :class:`vision.camera.DepthDriver` so the pipeline can run against
real RealSense hardware or an in-memory stand-in.
"""

from .camera import (
    ConcurrencyClass,
    DepthDriver,
    DeviceCatalog,
    DeviceIdentity,
    Intrinsics,
    RawFrame,
    StreamHandle,
    get_catalog,
)
from .filters import (
    CANONICAL_ORDER,
    DecimationStep,
    FilterChain,
    FilterKind,
    FilterStep,
    FrameAverager,
    HoleFillingStep,
    SpatialStep,
    TemporalStep,
    ThresholdStep,
    apply_filters,
)
from .pointcloud import PointCloudGenerator

__all__ = [
    "ConcurrencyClass",
    "DepthDriver",
    "DeviceCatalog",
    "DeviceIdentity",
    "Intrinsics",
    "RawFrame",
    "StreamHandle",
    "get_catalog",
    "CANONICAL_ORDER",
    "DecimationStep",
    "FilterChain",
    "FilterKind",
    "FilterStep",
    "FrameAverager",
    "HoleFillingStep",
    "SpatialStep",
    "TemporalStep",
    "ThresholdStep",
    "apply_filters",
    "PointCloudGenerator",
]
