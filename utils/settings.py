"""Project wide configuration dataclasses and default values."""

from dataclasses import dataclass
from pathlib import Path

# Root dir
BASE_DIR = Path(__file__).resolve().parent.parent

# Exported point clouds are plain "x y z" text files
CLOUD_EXT = ".xyz"

# Points are produced in millimeters; depth frames arrive in meters
POINT_UNIT_SCALE = 1000.0


@dataclass(frozen=True)
class Paths:
    """
    Dataclass aggregating all important filesystem paths used in the project.
    """

    CONF_DIR: Path = BASE_DIR / "conf"
    DEFAULT_CONFIG: Path = CONF_DIR / "scan.yaml"
    CLOUD_DIR: Path = BASE_DIR / ".clouds"


paths = Paths()


@dataclass(frozen=True)
class LoggingCfg:
    """
    Logging configuration for the project.

    - level: Log level ("INFO", "DEBUG", etc.)
    - json: Enable/disable structured JSON logging.
    - log_dir: Directory where log files are stored.
    - log_format: Console log output format.
    - log_file_format: File log output format.
    - progress_bar_format: TQDM progress bar format.
    """

    level: str = "INFO"
    json: bool = True
    log_dir: Path = Path(".logs")
    log_format: str = (
        "<green>{time:MM-DD HH:mm:ss}</green>"
        "[<level>{level:.3}</level>]"
        "[<cyan>{extra[module]:.16}</cyan>:<cyan>{line:<3}</cyan>]"
        "<level>{message}</level>"
    )
    log_file_format: str = "{time:YYYY-MM-DD HH:mm:ss}[{level}][{file}:{line}]{message}"
    progress_bar_format: str = (
        "{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}]"
    )


logging = LoggingCfg()


@dataclass(frozen=True)
class ScanDefaults:
    """
    Global capture parameters of a scan session.

    - frames_number: real frames captured per camera and shot.
    - dummy_frames_number: warm-up frames discarded before capturing.
    - filename: base name of the exported cloud.
    - cull_overlap: drop points outside the camera's angular sector.
    - debug: also export one cloud per camera.
    """

    frames_number: int = 15
    dummy_frames_number: int = 30
    filename: str = "default"
    cull_overlap: bool = True
    debug: bool = False


scan = ScanDefaults()


@dataclass(frozen=True)
class DepthStreamCfg:
    """
    Depth stream request sent to the driver.
    Zero width/height/fps lets the device pick its default profile.
    """

    width: int = 0
    height: int = 0
    fps: int = 0
    frame_timeout_ms: int = 5000


stream = DepthStreamCfg()


@dataclass(frozen=True)
class FilterDefaults:
    """Default parameters of the depth post-processing steps."""

    decimation_magnitude: int = 2
    spatial_magnitude: int = 2
    spatial_alpha: float = 0.5
    spatial_delta: int = 20
    spatial_holes_fill: int = 0
    temporal_alpha: float = 0.4
    temporal_delta: int = 20
    hole_filling: int = 1
    min_distance: float = 0.1  # m
    max_distance: float = 4.0  # m


filters = FilterDefaults()


@dataclass(frozen=True)
class DeviceCfg:
    """
    Device names reported by the driver, split by whether the hardware
    can stream while other cameras stream.
    """

    simultaneous: tuple[str, ...] = (
        "Intel RealSense D415",
        "Intel RealSense D435",
        "Intel RealSense D435I",
        "Intel RealSense D455",
    )
    exclusive: tuple[str, ...] = (
        "Intel RealSense L515",
        "Intel RealSense SR305",
    )


devices = DeviceCfg()


@dataclass(frozen=True)
class CloudCfg:
    """Geometry tolerances used by the point cloud math."""

    # |x| below this makes the critical-angle intersection indeterminate
    degenerate_eps: float = 1e-9


cloud = CloudCfg()

__all__ = [
    "Paths",
    "LoggingCfg",
    "ScanDefaults",
    "DepthStreamCfg",
    "FilterDefaults",
    "DeviceCfg",
    "CloudCfg",
    "paths",
    "logging",
    "scan",
    "stream",
    "filters",
    "devices",
    "cloud",
    "CLOUD_EXT",
    "POINT_UNIT_SCALE",
]
