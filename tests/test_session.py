import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
import json

import numpy as np
import pytest

from stubs import D435, StubDriver
from scanning.profile import CameraProfile
from scanning.session import CalibrationSurface, ScanSession, load_session, save_session
from vision.filters import FilterChain, TemporalStep


def test_session_file_round_trip(tmp_path):
    session = ScanSession(
        cameras=[
            CameraProfile("A", angle=0.0, position_deviation=[1.0, 2.0, 500.0]),
            CameraProfile(
                "B",
                angle=120.0,
                filters=FilterChain([TemporalStep(on=True, smooth_alpha=0.2)]),
                on=False,
            ),
        ],
        frames_number=5,
        dummy_frames_number=10,
        filename="bust",
        calibration_surface=CalibrationSurface(200.0, 300.0, 150.0),
        cull_overlap=False,
    )
    path = tmp_path / "session.json"
    save_session(path, session)

    raw = json.loads(path.read_text())
    assert raw["CalibrationSurface"] == {"X": 200.0, "Y": 300.0, "Z": 150.0}
    assert raw["Cameras"][1]["Filters"][0]["Name"] == "Temporal Filter"

    back = load_session(path)
    assert back.frames_number == 5
    assert back.dummy_frames_number == 10
    assert back.filename == "bust"
    assert back.cull_overlap is False
    assert back.calibration_surface == session.calibration_surface
    assert [c.serial for c in back.active_cameras()] == ["A"]
    assert np.allclose(back.camera("A").position_deviation, [1.0, 2.0, 500.0])
    assert back.camera("B").filters == session.camera("B").filters


def test_missing_keys_use_defaults():
    session = ScanSession.from_dict({"Cameras": [{"Serial": "A"}]})
    assert session.frames_number == 15
    assert session.dummy_frames_number == 30
    assert session.cull_overlap is True
    assert session.calibration_surface is None
    assert session.camera("A").filters == FilterChain.default()


def test_invalid_frame_counts():
    with pytest.raises(ValueError):
        ScanSession(frames_number=0)
    with pytest.raises(ValueError):
        ScanSession(dummy_frames_number=-1)


def test_register_connected_adds_only_new_serials():
    session = ScanSession(cameras=[CameraProfile("A", angle=90.0)])
    added = session.register_connected(StubDriver({"A": D435, "B": D435}))
    assert [c.serial for c in added] == ["B"]
    assert [c.serial for c in session.cameras] == ["A", "B"]
    assert session.camera("A").angle == 90.0
