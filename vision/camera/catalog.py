"""Device identity lookup with a process-wide cache."""

from __future__ import annotations

import threading
import weakref
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from utils.error_tracker import DeviceNotFoundError
from utils.logger import Logger, LoggerType
from utils.settings import devices as DEVCFG
from .camera_base import DepthDriver


class ConcurrencyClass(Enum):
    """Whether a device may stream while other devices stream."""

    SIMULTANEOUS = "simultaneous"
    EXCLUSIVE = "exclusive"


def classify_device(name: str, logger: LoggerType | None = None) -> ConcurrencyClass:
    """Map a driver product name to its concurrency class.

    Unknown products are treated as exclusive.
    """
    if name in DEVCFG.simultaneous:
        return ConcurrencyClass.SIMULTANEOUS
    if name not in DEVCFG.exclusive:
        logger = logger or Logger.get_logger("vision.catalog")
        logger.warning(f"Unknown device '{name}', capturing it exclusively")
    return ConcurrencyClass.EXCLUSIVE


@dataclass(frozen=True)
class DeviceIdentity:
    """Everything derived from a serial once it is found on the bus."""

    serial: str
    name: str
    concurrency_class: ConcurrencyClass
    fov: Tuple[float, float]


class DeviceCatalog:
    """Resolve serials against connected hardware, once per serial."""

    def __init__(self, driver: DepthDriver, logger: LoggerType | None = None) -> None:
        self.driver = driver
        self.logger = logger or Logger.get_logger("vision.catalog")
        self._cache: dict[str, DeviceIdentity] = {}
        self._lock = threading.Lock()

    def lookup(self, serial: str) -> DeviceIdentity:
        """Return the identity of ``serial``, querying the driver on a miss.

        Raises :class:`DeviceNotFoundError` if the serial is not connected.
        """
        with self._lock:
            identity = self._cache.get(serial)
            if identity is None:
                identity = self._query(serial)
                self._cache[serial] = identity
            return identity

    def invalidate(self, serial: str | None = None) -> None:
        """Forget one cached serial, or all of them."""
        with self._lock:
            if serial is None:
                self._cache.clear()
            else:
                self._cache.pop(serial, None)

    def _query(self, serial: str) -> DeviceIdentity:
        self.logger.debug(f"Device cache miss for {serial}")
        if serial not in self.driver.enumerate_devices():
            raise DeviceNotFoundError("device is not connected", serial)
        name = self.driver.query_device_name(serial)
        handle = self.driver.start_stream(serial)
        try:
            intr = self.driver.query_intrinsics(handle)
        finally:
            self.driver.stop_stream(handle)
        identity = DeviceIdentity(
            serial=serial,
            name=name,
            concurrency_class=classify_device(name, self.logger),
            fov=intr.fov,
        )
        self.logger.info(
            f"Device: {name} SN:{serial} "
            f"class={identity.concurrency_class.value} "
            f"FOV=({identity.fov[0]:.1f}, {identity.fov[1]:.1f}) deg"
        )
        return identity


_catalogs: "weakref.WeakKeyDictionary[DepthDriver, DeviceCatalog]" = (
    weakref.WeakKeyDictionary()
)
_catalogs_lock = threading.Lock()


def get_catalog(driver: DepthDriver) -> DeviceCatalog:
    """Return the process-wide catalog bound to ``driver``."""
    with _catalogs_lock:
        catalog = _catalogs.get(driver)
        if catalog is None:
            catalog = DeviceCatalog(driver)
            _catalogs[driver] = catalog
        return catalog
