"""Multi-camera capture scheduling, cloud stitching and calibration."""

from .profile import CameraProfile
from .session import CalibrationSurface, ScanSession, load_session, save_session
from .acquirer import CaptureResult, CaptureWindow, FrameAcquirer
from .transformer import FULL_COVERAGE, PointCloudTransformer, angular_neighbors
from .orchestrator import CaptureOrchestrator, ScanState
from .calibrator import Calibrator

__all__ = [
    "CameraProfile",
    "CalibrationSurface",
    "ScanSession",
    "load_session",
    "save_session",
    "CaptureResult",
    "CaptureWindow",
    "FrameAcquirer",
    "FULL_COVERAGE",
    "PointCloudTransformer",
    "angular_neighbors",
    "CaptureOrchestrator",
    "ScanState",
    "Calibrator",
]
