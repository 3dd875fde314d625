import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
import json

import numpy as np
import pytest

from stubs import DepthData, StubDriver, intrinsics_for_fov
from utils.error_tracker import UnsupportedFilterError
from vision.camera import RawFrame
from vision.filters import (
    CANONICAL_ORDER,
    DecimationStep,
    FilterChain,
    FilterKind,
    FilterStep,
    FrameAverager,
    HoleFillingStep,
    SpatialStep,
    TemporalStep,
    ThresholdStep,
    apply_filters,
)


def _frame(depth, serial="A"):
    return RawFrame(DepthData(np.asarray(depth, dtype=float), intrinsics_for_fov()), 1.0, serial)


def test_chain_round_trip_keeps_names_and_order():
    chain = FilterChain(
        [
            ThresholdStep(on=True, min_distance=0.2, max_distance=1.5),
            DecimationStep(on=True, magnitude=3),
            SpatialStep(on=False, magnitude=4, smooth_alpha=0.25, smooth_delta=30, holes_fill=2),
            TemporalStep(on=True, smooth_alpha=0.1, smooth_delta=50),
            HoleFillingStep(on=True, holes_fill=2),
        ]
    )
    data = json.loads(json.dumps(chain.to_list()))
    assert [d["Name"] for d in data] == [k.value for k in CANONICAL_ORDER]
    assert data[1] == {
        "Name": "Spatial Filter",
        "On": False,
        "FilterMagnitude": 4,
        "FilterSmoothAlpha": 0.25,
        "FilterSmoothDelta": 30,
        "HolesFill": 2,
    }
    assert data[4]["MinDistance"] == 0.2
    assert data[4]["MaxDistance"] == 1.5
    assert FilterChain.from_list(data) == chain


def test_from_dict_casts_numbers():
    step = FilterStep.from_dict(
        {"Name": "Decimation Filter", "On": True, "FilterMagnitude": 4.0}
    )
    assert step == DecimationStep(on=True, magnitude=4)
    assert isinstance(step.magnitude, int)


def test_unknown_filter_name_is_rejected():
    with pytest.raises(UnsupportedFilterError):
        FilterChain.from_list([{"Name": "Colorizer", "On": True}])


def test_unknown_option_is_rejected():
    with pytest.raises(UnsupportedFilterError):
        FilterStep.from_dict({"Name": "Temporal Filter", "Persistency": 3})


def test_duplicate_kinds_are_rejected():
    with pytest.raises(ValueError):
        FilterChain([TemporalStep(), TemporalStep(on=True)])


def test_build_returns_fresh_blocks_in_canonical_order():
    driver = StubDriver({})
    chain = FilterChain(
        [ThresholdStep(on=True), TemporalStep(on=True), DecimationStep(on=True), SpatialStep()]
    )
    first = chain.build(driver)
    second = chain.build(driver)
    assert [type(b).__name__ for b in first] == ["_Decimation", "_Temporal", "_Threshold"]
    assert all(a is not b for a, b in zip(first, second))


def test_default_chain_has_every_kind_disabled():
    chain = FilterChain.default()
    assert [s.kind for s in chain.steps] == list(CANONICAL_ORDER)
    assert chain.enabled() == []


def test_replace_keeps_canonical_order():
    chain = FilterChain.default()
    chain.replace(DecimationStep(on=True, magnitude=4))
    assert chain.step(FilterKind.DECIMATION).magnitude == 4
    assert [s.kind for s in chain.steps] == list(CANONICAL_ORDER)


def test_apply_releases_superseded_frames():
    driver = StubDriver({})
    chain = FilterChain([DecimationStep(on=True, magnitude=2), ThresholdStep(on=True)])
    frame = _frame(np.full((10, 10), 0.5))
    out = chain.apply(frame, driver)
    assert frame.released and frame.data is None
    assert not out.released
    assert out.data.depth.shape == (5, 5)


def test_apply_without_blocks_returns_input():
    frame = _frame(np.ones((2, 2)))
    assert apply_filters([], frame) is frame
    assert not frame.released


def test_averager_folds_frames_in_order():
    driver = StubDriver({})
    chain = FilterChain([TemporalStep(on=False, smooth_alpha=0.5)])
    averager = chain.averager(driver)
    frames = [_frame(np.full((2, 2), v)) for v in (1.0, 2.0, 4.0)]
    for i, f in enumerate(frames):
        f.timestamp = float(i)
        averager.push(f)
    out = averager.result()
    assert all(f.released for f in frames)
    assert averager.count == 3
    # ((1 * 0.5 + 2 * 0.5) * 0.5 + 4 * 0.5)
    assert np.allclose(out.data.depth, 2.75)


def test_averager_without_frames_fails():
    averager = FilterChain.default().averager(StubDriver({}))
    with pytest.raises(ValueError):
        averager.result()


def test_from_dict_rejects_fractional_integer_options():
    with pytest.raises(UnsupportedFilterError):
        FilterStep.from_dict({"Name": "Spatial Filter", "FilterSmoothDelta": 20.5})
    with pytest.raises(UnsupportedFilterError):
        FilterStep.from_dict({"Name": "Decimation Filter", "FilterMagnitude": "two"})
    step = FilterStep.from_dict({"Name": "Spatial Filter", "FilterSmoothAlpha": 1})
    assert isinstance(step.smooth_alpha, float)


class _Broken:
    """Processing block failing after ``ok`` successful calls."""

    def __init__(self, ok=0):
        self.ok = ok

    def process(self, data):
        if self.ok <= 0:
            raise RuntimeError("block failed")
        self.ok -= 1
        return DepthData(data.depth.copy(), data.intr)


def test_apply_releases_frames_when_a_block_raises():
    driver = StubDriver({})
    frame = _frame(np.full((10, 10), 0.5))
    blocks = DecimationStep(on=True).create(driver), _Broken()
    with pytest.raises(RuntimeError):
        apply_filters(blocks, frame)
    assert frame.released

    first = _frame(np.ones((2, 2)))
    with pytest.raises(RuntimeError):
        apply_filters([_Broken()], first)
    assert first.released


def test_averager_releases_frames_when_the_block_raises():
    averager = FrameAverager(_Broken(ok=1))
    good, bad = _frame(np.ones((2, 2))), _frame(np.ones((2, 2)))
    averager.push(good)
    with pytest.raises(RuntimeError):
        averager.push(bad)
    assert good.released and bad.released
    assert averager.count == 1
    averager.discard()
    with pytest.raises(ValueError):
        averager.result()
