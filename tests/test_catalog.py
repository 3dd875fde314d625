import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
from concurrent.futures import ThreadPoolExecutor

import pytest

from stubs import D435, L515, StubDriver
from utils.error_tracker import DeviceNotFoundError
from vision.camera import ConcurrencyClass, DeviceCatalog, classify_device, get_catalog


def test_classify_known_and_unknown_names():
    assert classify_device(D435) is ConcurrencyClass.SIMULTANEOUS
    assert classify_device(L515) is ConcurrencyClass.EXCLUSIVE
    assert classify_device("Some Other Camera") is ConcurrencyClass.EXCLUSIVE


def test_lookup_is_cached_per_serial():
    driver = StubDriver({"A": D435, "B": L515})
    catalog = DeviceCatalog(driver)
    first = catalog.lookup("A")
    second = catalog.lookup("A")
    assert first is second
    assert driver.name_queries == 1
    assert first.concurrency_class is ConcurrencyClass.SIMULTANEOUS
    assert first.fov[0] == pytest.approx(70.0)
    catalog.lookup("B")
    assert driver.name_queries == 2


def test_concurrent_lookups_query_once():
    driver = StubDriver({"A": D435})
    catalog = DeviceCatalog(driver)
    with ThreadPoolExecutor(max_workers=8) as pool:
        identities = list(pool.map(lambda _: catalog.lookup("A"), range(16)))
    assert driver.name_queries == 1
    assert all(i is identities[0] for i in identities)


def test_invalidate_forces_new_query():
    driver = StubDriver({"A": D435})
    catalog = DeviceCatalog(driver)
    catalog.lookup("A")
    catalog.invalidate("A")
    catalog.lookup("A")
    assert driver.name_queries == 2


def test_unknown_serial_raises_device_not_found():
    catalog = DeviceCatalog(StubDriver({"A": D435}))
    with pytest.raises(DeviceNotFoundError) as exc:
        catalog.lookup("missing")
    assert exc.value.serial == "missing"
    assert "missing" in str(exc.value)


def test_get_catalog_is_shared_per_driver():
    driver = StubDriver({"A": D435})
    assert get_catalog(driver) is get_catalog(driver)
    assert get_catalog(driver) is not get_catalog(StubDriver({}))
