"""Command line entry points of the multi-camera scanner."""

from __future__ import annotations

import argparse
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from utils.cli import Command, CommandDispatcher
from utils.config import Config
from utils.logger import Logger
from utils.settings import CLOUD_EXT, paths
from vision.camera import DepthDriver, get_catalog
from .calibrator import Calibrator
from .orchestrator import CaptureOrchestrator
from .session import CalibrationSurface, ScanSession, load_session, save_session


def _create_driver() -> DepthDriver:
    from vision.camera.realsense import RealSenseDriver

    return RealSenseDriver(Config.stream())


@contextmanager
def _open_driver() -> Iterator[DepthDriver]:
    driver = _create_driver()
    try:
        yield driver
    finally:
        driver.close()


def _add_config_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", default=str(paths.DEFAULT_CONFIG), help="YAML config file"
    )


# ---------------------------------------------------------------------------
# devices
# ---------------------------------------------------------------------------


def _run_devices(args: argparse.Namespace) -> None:
    logger = Logger.get_logger("scanning.devices")
    Config.load(args.config)
    with _open_driver() as driver:
        serials = driver.enumerate_devices()
        if not serials:
            logger.warning("No depth cameras connected")
            return
        catalog = get_catalog(driver)
        for serial in serials:
            ident = catalog.lookup(serial)
            logger.info(
                f"{ident.name} SN:{serial} class={ident.concurrency_class.value} "
                f"FOV=({ident.fov[0]:.1f}, {ident.fov[1]:.1f})"
            )


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


def _add_init_args(parser: argparse.ArgumentParser) -> None:
    _add_config_arg(parser)
    parser.add_argument("--output", required=True, help="Session JSON to create")
    parser.add_argument(
        "--spread",
        action="store_true",
        help="Space mounting angles evenly around the object",
    )


def _run_init(args: argparse.Namespace) -> None:
    logger = Logger.get_logger("scanning.init")
    Config.load(args.config)
    output = Path(args.output)
    session = load_session(output) if output.exists() else ScanSession()
    with _open_driver() as driver:
        added = session.register_connected(driver)
    if args.spread and session.cameras:
        step = 360.0 / len(session.cameras)
        for i, camera in enumerate(session.cameras):
            camera.angle = i * step
    save_session(output, session)
    logger.info(f"{len(added)} new cameras, {len(session.cameras)} in total")


# ---------------------------------------------------------------------------
# scan
# ---------------------------------------------------------------------------


def _add_scan_args(parser: argparse.ArgumentParser) -> None:
    _add_config_arg(parser)
    parser.add_argument("--session", required=True, help="Session JSON file")
    parser.add_argument(
        "--output",
        default=None,
        help=f"Output {CLOUD_EXT} file (default: session Filename in {paths.CLOUD_DIR})",
    )
    parser.add_argument(
        "--no-cull", action="store_true", help="Keep overlapping points"
    )


def _run_scan(args: argparse.Namespace) -> None:
    Config.load(args.config)
    session = load_session(args.session)
    if args.no_cull:
        session.cull_overlap = False
    with _open_driver() as driver:
        CaptureOrchestrator(session, driver).scan_to_file(args.output)


# ---------------------------------------------------------------------------
# calibrate
# ---------------------------------------------------------------------------


def _add_calibrate_args(parser: argparse.ArgumentParser) -> None:
    _add_config_arg(parser)
    parser.add_argument("--session", required=True, help="Session JSON file")
    parser.add_argument(
        "--distance",
        type=float,
        default=None,
        help="Reference surface distance from the object centre (mm)",
    )
    parser.add_argument(
        "--save", action="store_true", help="Write deviations back to the session"
    )


def _run_calibrate(args: argparse.Namespace) -> None:
    logger = Logger.get_logger("scanning.calibrate")
    Config.load(args.config)
    session = load_session(args.session)
    if args.distance is not None:
        surface = session.calibration_surface or CalibrationSurface()
        session.calibration_surface = CalibrationSurface(
            surface.width, surface.height, args.distance
        )
    with _open_driver() as driver:
        deviations = Calibrator(session, driver).calibrate()
    if args.save:
        save_session(args.session, session)
    else:
        logger.info(f"Calibrated {len(deviations)} cameras, session not saved")


def create_cli() -> CommandDispatcher:
    commands = [
        Command("devices", _run_devices, _add_config_arg, "List connected cameras"),
        Command("init", _run_init, _add_init_args, "Create or extend a session"),
        Command("scan", _run_scan, _add_scan_args, "Capture a merged point cloud"),
        Command(
            "calibrate",
            _run_calibrate,
            _add_calibrate_args,
            "Measure camera deviations",
        ),
    ]
    return CommandDispatcher("Multi-camera depth scanner", commands, prog="multicam-scan")


def main() -> None:
    logger = Logger.get_logger("scanning.main")
    create_cli().run(logger=logger)


if __name__ == "__main__":
    main()
