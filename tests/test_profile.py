import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
import math

import numpy as np
import pytest

from stubs import D435, StubDriver
from scanning.profile import CameraProfile
from utils.error_tracker import DegenerateGeometryError
from utils.math_utils import azimuth
from vision.camera import DeviceCatalog
from vision.filters import DecimationStep, FilterChain


def _resolved(serial, angle, z, driver=None):
    driver = driver or StubDriver({serial: D435})
    cam = CameraProfile(serial, angle=angle, position_deviation=[0.0, 0.0, z])
    cam.resolve(DeviceCatalog(driver))
    return cam


def test_adjust_to_object_center():
    cam = CameraProfile("A", position_deviation=[1.0, 2.0, 500.0])
    pts = np.array([[10.0, 20.0, 300.0]])
    cam.adjust_to_object_center(pts)
    assert np.allclose(pts, [[-11.0, -22.0, 200.0]])


def test_rotation_is_right_handed_about_vertical():
    cam = CameraProfile("A", angle=90.0)
    pts = np.array([[1.0, 5.0, 0.0]])
    cam.rotate_to_scene_frame(pts)
    assert np.allclose(pts, [[0.0, 5.0, -1.0]])


def test_camera_axis_lands_at_its_mounting_direction():
    # the camera looks at the object from azimuth pi/2 of its own frame
    cam = CameraProfile("A", angle=60.0)
    pts = np.array([[0.0, 0.0, 100.0]])
    cam.rotate_to_scene_frame(pts)
    assert math.degrees(azimuth(pts)[0]) == pytest.approx(30.0)


def test_adjust_then_rotate_differs_from_reverse_order():
    cam = CameraProfile("A", angle=60.0, position_deviation=[5.0, 3.0, 500.0])
    pts = np.array([[10.0, -4.0, 450.0], [-20.0, 7.0, 480.0]])

    documented = pts.copy()
    cam.adjust_to_object_center(documented)
    cam.rotate_to_scene_frame(documented)

    reversed_order = pts.copy()
    cam.rotate_to_scene_frame(reversed_order)
    cam.adjust_to_object_center(reversed_order)

    assert not np.allclose(documented, reversed_order)


def test_fov_needs_resolution():
    cam = CameraProfile("A")
    with pytest.raises(RuntimeError):
        cam.fov


def test_resolved_fov_from_intrinsics():
    cam = _resolved("A", 0.0, 500.0)
    assert cam.fov[0] == pytest.approx(70.0)


def test_critical_angle_fixture_and_asymmetry():
    driver = StubDriver({"A": D435, "B": D435})
    a = _resolved("A", 0.0, 500.0, driver)
    b = _resolved("B", 60.0, 520.0, driver)
    ab = a.find_critical_angle(b)
    ba = b.find_critical_angle(a)
    assert ab == pytest.approx(1.045482089, abs=1e-6)
    assert ba == pytest.approx(2.136419501, abs=1e-6)
    assert ab != pytest.approx(ba)


@pytest.mark.parametrize(
    "other_angle, expected",
    [(-60.0, 2.052370704), (120.0, -2.617993878), (240.0, 2.617993878)],
)
def test_critical_angle_other_layouts(other_angle, expected):
    driver = StubDriver({"A": D435, "B": D435})
    a = _resolved("A", 0.0, 500.0, driver)
    z = 520.0 if other_angle == -60.0 else 500.0
    b = _resolved("B", other_angle, z, driver)
    assert a.find_critical_angle(b) == pytest.approx(expected, abs=1e-6)


def test_reverse_critical_angle_mirrors_the_previous_neighbour():
    driver = StubDriver({"A": D435, "B": D435, "C": D435})
    a = _resolved("A", 0.0, 500.0, driver)
    b = _resolved("B", 60.0, 520.0, driver)
    c = _resolved("C", -60.0, 520.0, driver)
    assert a.find_critical_angle(b, reverse=True) == pytest.approx(1.089221950, abs=1e-6)
    assert a.find_critical_angle(b, reverse=True) == pytest.approx(
        math.pi - a.find_critical_angle(c), abs=1e-9
    )


@pytest.mark.parametrize("gap, expected", [(60.0, 120.0), (120.0, 150.0), (180.0, 180.0)])
def test_equal_cameras_meet_on_the_bisector(gap, expected):
    driver = StubDriver({"A": D435, "B": D435})
    a = _resolved("A", 0.0, 500.0, driver)
    b = _resolved("B", -gap, 500.0, driver)
    angle = math.degrees(a.find_critical_angle(b)) % 360.0
    assert angle == pytest.approx(expected, abs=1e-6)


def test_critical_angle_with_itself_is_degenerate():
    a = _resolved("A", 0.0, 500.0)
    with pytest.raises(DegenerateGeometryError) as exc:
        a.find_critical_angle(a)
    assert exc.value.serial == "A"


def test_change_serial_invalidates_identity():
    driver = StubDriver({"A": D435, "B": "Intel RealSense L515"})
    catalog = DeviceCatalog(driver)
    cam = CameraProfile("A")
    cam.resolve(catalog)
    assert cam.resolved
    cam.change_serial("B")
    assert cam.serial == "B"
    assert not cam.resolved
    cam.resolve(catalog)
    assert cam.concurrency_class.value == "exclusive"


def test_active_filter_chain_is_fresh_per_call():
    cam = CameraProfile("A", filters=FilterChain([DecimationStep(on=True)]))
    driver = StubDriver({})
    first = cam.active_filter_chain(driver)
    second = cam.active_filter_chain(driver)
    assert len(first) == 1
    assert first[0] is not second[0]


def test_profile_dict_round_trip():
    cam = CameraProfile(
        "123",
        angle=45.0,
        position_deviation=[1.5, -2.0, 480.0],
        filters=FilterChain([DecimationStep(on=True, magnitude=3)]),
        on=False,
    )
    data = cam.to_dict()
    assert data["PositionDeviation"] == {"X": 1.5, "Y": -2.0, "Z": 480.0}
    back = CameraProfile.from_dict(data)
    assert back.serial == "123"
    assert back.angle == 45.0
    assert np.allclose(back.position_deviation, cam.position_deviation)
    assert back.filters == cam.filters
    assert back.on is False
    assert math.isclose(back.angle, cam.angle)
