import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
import numpy as np
from utils.io import load_json, load_xyz, save_json, save_xyz


def test_save_xyz_writes_plain_lines(tmp_path):
    pts = np.array([[1.0, 2.0, 3.0], [-0.5, 0.25, 1000.0]])
    path = tmp_path / "cloud.xyz"
    save_xyz(path, pts)
    lines = path.read_text().splitlines()
    assert len(lines) == 2
    assert lines[0].split() == ["1.000000", "2.000000", "3.000000"]
    assert np.allclose(load_xyz(path), pts)


def test_single_point_loads_as_row(tmp_path):
    path = tmp_path / "one.xyz"
    save_xyz(path, np.array([4.0, 5.0, 6.0]))
    assert load_xyz(path).shape == (1, 3)


def test_json_helpers(tmp_path):
    path = tmp_path / "data.json"
    save_json(path, {"FramesNumber": 3})
    assert load_json(path) == {"FramesNumber": 3}
