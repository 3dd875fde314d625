"""Capture scheduling across cameras and merging of their clouds.

Cameras that can stream together are captured in parallel. Exclusive
cameras are captured one at a time, and only after every parallel capture
has finished streaming. Processing of a camera starts as soon as its own
capture is done and runs in parallel with everything else.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Tuple, TypeVar

import numpy as np

from utils.error_tracker import ScanError
from utils.io import save_xyz
from utils.logger import Logger, LoggerType
from utils.settings import CLOUD_EXT, paths
from vision.camera import ConcurrencyClass, DepthDriver, DeviceCatalog, get_catalog
from vision.filters import apply_filters
from vision.pointcloud import PointCloudGenerator
from .acquirer import CaptureResult, CaptureWindow, FrameAcquirer
from .profile import CameraProfile
from .session import ScanSession
from .transformer import PointCloudTransformer, angular_neighbors

T = TypeVar("T")
ProcessFn = Callable[[CameraProfile, CaptureResult], T]


class ScanState(Enum):
    IDLE = "idle"
    SCHEDULING = "scheduling"
    CAPTURING_CONCURRENT = "capturing_concurrent"
    CAPTURING_EXCLUSIVE = "capturing_exclusive"
    PROCESSING = "processing"
    MERGED = "merged"
    FAILED = "failed"


class CaptureOrchestrator:
    """Run one shot on every active camera of a session."""

    def __init__(
        self,
        session: ScanSession,
        driver: DepthDriver,
        catalog: DeviceCatalog | None = None,
        logger: LoggerType | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.session = session
        self.driver = driver
        self.catalog = catalog or get_catalog(driver)
        self.logger = logger or Logger.get_logger("scanning.orchestrator")
        self.max_workers = max_workers
        self.state = ScanState.IDLE
        self.history: List[ScanState] = [ScanState.IDLE]
        self.capture_windows: List[CaptureWindow] = []
        self.clouds: Dict[str, np.ndarray] = {}

    def _set_state(self, state: ScanState) -> None:
        self.state = state
        self.history.append(state)
        self.logger.debug(f"Scan state -> {state.value}")

    # ---------------------------------------------------------------
    def schedule(self) -> Tuple[List[CameraProfile], List[CameraProfile]]:
        """Resolve active cameras and split them by concurrency class."""
        active = self.session.active_cameras()
        if not active:
            raise ScanError("No active cameras in session")
        serials = [c.serial for c in active]
        for serial in serials:
            if serials.count(serial) > 1:
                raise ScanError("camera listed more than once", serial)
        for camera in active:
            camera.resolve(self.catalog)
        concurrent = [
            c for c in active if c.concurrency_class is ConcurrencyClass.SIMULTANEOUS
        ]
        exclusive = [
            c for c in active if c.concurrency_class is ConcurrencyClass.EXCLUSIVE
        ]
        self.logger.info(
            f"Scheduled {len(concurrent)} simultaneous and "
            f"{len(exclusive)} exclusive cameras"
        )
        return concurrent, exclusive

    def _capture(self, camera: CameraProfile) -> CaptureResult:
        frames_number = self.session.frames_number
        averager = (
            camera.filters.averager(self.driver) if frames_number > 1 else None
        )
        acquirer = FrameAcquirer(self.driver, camera.serial)
        return acquirer.capture(
            frames_number, self.session.dummy_frames_number, averager
        )

    @staticmethod
    def _process(
        process: ProcessFn[T], camera: CameraProfile, capture: CaptureResult
    ) -> T:
        try:
            return process(camera, capture)
        except ScanError:
            raise
        except Exception as e:
            raise ScanError(f"processing failed: {e}", camera.serial) from e
        finally:
            capture.release()

    @staticmethod
    def _as_scan_error(camera: CameraProfile, exc: Exception) -> ScanError:
        if isinstance(exc, ScanError):
            return exc
        error = ScanError(f"capture failed: {exc}", camera.serial)
        error.__cause__ = exc
        return error

    # ---------------------------------------------------------------
    def run(self, process: ProcessFn[T]) -> Dict[str, T]:
        """Capture every active camera and map ``process`` over the shots.

        Returns results keyed by serial. Any camera failure fails the whole
        run: the first error is raised, later ones are logged.
        """
        self.capture_windows = []
        self._set_state(ScanState.SCHEDULING)
        try:
            concurrent, exclusive = self.schedule()
        except ScanError:
            self._set_state(ScanState.FAILED)
            raise

        errors: List[ScanError] = []
        pending: Dict[Future, Tuple[CameraProfile, CaptureResult]] = {}

        def submit(camera: CameraProfile, capture: CaptureResult) -> None:
            self.capture_windows.append(capture.window)
            if errors:
                capture.release()
                return
            fut = process_pool.submit(self._process, process, camera, capture)
            pending[fut] = (camera, capture)

        def processing_failed() -> bool:
            return any(f.done() and f.exception() is not None for f in pending)

        with ThreadPoolExecutor(
            max_workers=max(1, len(concurrent)), thread_name_prefix="capture"
        ) as capture_pool, ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="process"
        ) as process_pool:
            self._set_state(ScanState.CAPTURING_CONCURRENT)
            captures = {capture_pool.submit(self._capture, c): c for c in concurrent}
            # join point: exclusive captures wait for every parallel capture
            for fut in as_completed(captures):
                camera = captures[fut]
                try:
                    capture = fut.result()
                except Exception as e:
                    errors.append(self._as_scan_error(camera, e))
                    continue
                submit(camera, capture)

            if not errors and exclusive:
                self._set_state(ScanState.CAPTURING_EXCLUSIVE)
                for camera in Logger.progress(exclusive, desc="Exclusive capture"):
                    if processing_failed():
                        break
                    try:
                        capture = self._capture(camera)
                    except Exception as e:
                        errors.append(self._as_scan_error(camera, e))
                        break
                    submit(camera, capture)

            self._set_state(ScanState.PROCESSING)
            if errors:
                for fut, (_, capture) in pending.items():
                    if fut.cancel():
                        capture.release()

            results: Dict[str, T] = {}
            for fut in as_completed(pending):
                if fut.cancelled():
                    continue
                camera, _ = pending[fut]
                try:
                    results[camera.serial] = fut.result()
                except Exception as e:
                    errors.append(self._as_scan_error(camera, e))

        if errors:
            for suppressed in errors[1:]:
                self.logger.error(f"Suppressed secondary failure: {suppressed}")
            self._set_state(ScanState.FAILED)
            self.logger.error(f"Scan failed: {errors[0]}")
            raise errors[0]
        return results

    # ---------------------------------------------------------------
    def _scan_processor(self, active: List[CameraProfile]) -> ProcessFn[np.ndarray]:
        def process(camera: CameraProfile, capture: CaptureResult) -> np.ndarray:
            frame = apply_filters(
                camera.active_filter_chain(self.driver), capture.frames.pop()
            )
            transformer = PointCloudTransformer(
                camera=camera,
                driver=self.driver,
                neighbors=angular_neighbors(active, camera),
                cull_overlap=self.session.cull_overlap,
            )
            return transformer.transform(frame)

        return process

    def scan(self) -> np.ndarray:
        """Capture all active cameras and return the merged cloud."""
        active = self.session.active_cameras()
        self.clouds = {}
        self.clouds = self.run(self._scan_processor(active))
        merged = PointCloudGenerator.merge(list(self.clouds.values()))
        self._set_state(ScanState.MERGED)
        self.logger.info(
            f"Merged {len(merged)} points from {len(self.clouds)} cameras"
        )
        return merged

    def default_output(self) -> Path:
        """``<CLOUD_DIR>/<session filename>.xyz``; absolute filenames are kept."""
        return paths.CLOUD_DIR / (self.session.filename + CLOUD_EXT)

    def scan_to_file(self, path: str | Path | None = None) -> Path:
        """Scan and write the merged cloud; nothing is written on failure.

        Without ``path`` the cloud goes to :meth:`default_output`.
        """
        merged = self.scan()
        path = Path(path) if path is not None else self.default_output()
        path.parent.mkdir(parents=True, exist_ok=True)
        save_xyz(path, merged)
        self.logger.info(f"Point cloud saved: {path}")
        if self.session.debug:
            for serial, points in self.clouds.items():
                cam_path = path.with_name(f"{path.stem}_{serial}{path.suffix}")
                save_xyz(cam_path, points)
                self.logger.debug(f"Camera cloud saved: {cam_path}")
        return path
