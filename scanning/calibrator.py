"""Position-deviation calibration against a flat reference surface."""

from __future__ import annotations

from typing import Dict

import numpy as np

from utils.error_tracker import ScanError
from vision.filters import apply_filters
from vision.pointcloud import PointCloudGenerator
from .acquirer import CaptureResult
from .orchestrator import CaptureOrchestrator, ScanState
from .profile import CameraProfile
from .transformer import PointCloudTransformer


class Calibrator(CaptureOrchestrator):
    """Capture every active camera facing the reference surface.

    Each camera's deviation becomes ``(-c.x, -c.y, distance + c.z)`` for the
    centroid ``c`` of its filtered camera-local cloud. Deviations are only
    written back when every camera succeeded.
    """

    def _centroid(self, camera: CameraProfile, capture: CaptureResult) -> np.ndarray:
        frame = apply_filters(
            camera.active_filter_chain(self.driver), capture.frames.pop()
        )
        transformer = PointCloudTransformer(camera=camera, driver=self.driver)
        try:
            points = transformer.frame_to_points(frame)
        finally:
            frame.release()
        if len(points) == 0:
            raise ScanError("no valid depth samples on the calibration surface", camera.serial)
        return PointCloudGenerator.centroid(points)

    def calibrate(self) -> Dict[str, np.ndarray]:
        """Measure and apply the position deviation of every active camera."""
        surface = self.session.calibration_surface
        if surface is None:
            raise ScanError("session has no calibration surface")

        centroids = self.run(self._centroid)
        deviations: Dict[str, np.ndarray] = {}
        for serial, c in centroids.items():
            deviations[serial] = np.array(
                [-c[0], -c[1], surface.distance + c[2]], dtype=np.float64
            )
        for camera in self.session.active_cameras():
            camera.position_deviation = deviations[camera.serial]
            self.logger.info(
                f"SN:{camera.serial} deviation = "
                f"{np.round(camera.position_deviation, 3).tolist()}"
            )
        self._set_state(ScanState.MERGED)
        return deviations
