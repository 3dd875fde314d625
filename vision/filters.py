"""Depth post-processing steps and the per-camera filter chain.

Steps are immutable parameter sets. Driver processing blocks carry hidden
temporal state, so :meth:`FilterChain.build` creates fresh blocks for
every capture and nothing is pooled between captures.

The serialized names (``Name``, ``FilterMagnitude``, ``FilterSmoothAlpha``,
``FilterSmoothDelta``, ``HolesFill``, ``MinDistance``, ``MaxDistance``)
are part of the session file format and must not change.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Iterable, Mapping

from utils.error_tracker import UnsupportedFilterError
from utils.logger import Logger, LoggerType
from utils.settings import filters as FILTERCFG
from vision.camera.camera_base import DepthDriver, FilterPrimitive, RawFrame


class FilterKind(Enum):
    """Supported filter kinds, declared in their canonical order."""

    DECIMATION = "Decimation Filter"
    SPATIAL = "Spatial Filter"
    TEMPORAL = "Temporal Filter"
    HOLE_FILLING = "Hole Filling Filter"
    THRESHOLD = "Threshold Filter"


# Decimation before smoothing, smoothing before hole filling, threshold last
CANONICAL_ORDER: tuple[FilterKind, ...] = tuple(FilterKind)


def _wire(name: str, default: Any) -> Any:
    return field(default=default, metadata={"wire": name})


@dataclass(frozen=True)
class FilterStep:
    """Base class of a single configured post-processing step."""

    kind: ClassVar[FilterKind]
    on: bool = False

    def options(self) -> dict[str, float]:
        """Driver options keyed by their serialized names."""
        return {
            f.metadata["wire"]: getattr(self, f.name)
            for f in fields(self)
            if "wire" in f.metadata
        }

    def create(self, driver: DepthDriver) -> FilterPrimitive:
        """Return a new driver processing block for this step."""
        return driver.create_filter(self.kind.value, self.options())

    def to_dict(self) -> dict[str, Any]:
        return {"Name": self.kind.value, "On": self.on, **self.options()}

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "FilterStep":
        name = data.get("Name")
        cls = STEP_TYPES.get(name)
        if cls is None:
            raise UnsupportedFilterError(f"unsupported filter '{name}'")
        wire_fields = {f.metadata["wire"]: f for f in fields(cls) if "wire" in f.metadata}
        kwargs: dict[str, Any] = {"on": bool(data.get("On", False))}
        for key, value in data.items():
            if key in ("Name", "On"):
                continue
            f = wire_fields.get(key)
            if f is None:
                raise UnsupportedFilterError(f"unsupported option '{key}' for {name}")
            kwargs[f.name] = _option_value(f.default, value, key, name)
        return cls(**kwargs)


def _option_value(default: Any, value: Any, key: str, name: str) -> Any:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise UnsupportedFilterError(
            f"option '{key}' for {name} is not a number: {value!r}"
        ) from None
    if isinstance(default, int):
        if not number.is_integer():
            raise UnsupportedFilterError(
                f"option '{key}' for {name} must be an integer, got {value!r}"
            )
        return int(number)
    return number


@dataclass(frozen=True)
class DecimationStep(FilterStep):
    kind: ClassVar[FilterKind] = FilterKind.DECIMATION
    magnitude: int = _wire("FilterMagnitude", FILTERCFG.decimation_magnitude)


@dataclass(frozen=True)
class SpatialStep(FilterStep):
    kind: ClassVar[FilterKind] = FilterKind.SPATIAL
    magnitude: int = _wire("FilterMagnitude", FILTERCFG.spatial_magnitude)
    smooth_alpha: float = _wire("FilterSmoothAlpha", FILTERCFG.spatial_alpha)
    smooth_delta: int = _wire("FilterSmoothDelta", FILTERCFG.spatial_delta)
    holes_fill: int = _wire("HolesFill", FILTERCFG.spatial_holes_fill)


@dataclass(frozen=True)
class TemporalStep(FilterStep):
    kind: ClassVar[FilterKind] = FilterKind.TEMPORAL
    smooth_alpha: float = _wire("FilterSmoothAlpha", FILTERCFG.temporal_alpha)
    smooth_delta: int = _wire("FilterSmoothDelta", FILTERCFG.temporal_delta)


@dataclass(frozen=True)
class HoleFillingStep(FilterStep):
    kind: ClassVar[FilterKind] = FilterKind.HOLE_FILLING
    holes_fill: int = _wire("HolesFill", FILTERCFG.hole_filling)


@dataclass(frozen=True)
class ThresholdStep(FilterStep):
    kind: ClassVar[FilterKind] = FilterKind.THRESHOLD
    min_distance: float = _wire("MinDistance", FILTERCFG.min_distance)
    max_distance: float = _wire("MaxDistance", FILTERCFG.max_distance)


STEP_TYPES: dict[str, type[FilterStep]] = {
    cls.kind.value: cls
    for cls in (DecimationStep, SpatialStep, TemporalStep, HoleFillingStep, ThresholdStep)
}


def apply_filters(blocks: Iterable[FilterPrimitive], frame: RawFrame) -> RawFrame:
    """Thread ``frame`` through ``blocks``.

    Every superseded frame, the input included, is released as soon as
    the next one exists; only the returned frame stays alive. If a block
    raises, the frame it was given is released before the error propagates.
    """
    current = frame
    try:
        for block in blocks:
            processed = RawFrame(
                data=block.process(current.data),
                timestamp=current.timestamp,
                serial=current.serial,
            )
            current.release()
            current = processed
    except Exception:
        current.release()
        raise
    return current


class FrameAverager:
    """Fold a frame sequence into one frame with a temporal filter.

    Frames must be pushed oldest first. Only the running result and the
    frame being pushed are alive at any time.
    """

    def __init__(self, block: FilterPrimitive, logger: LoggerType | None = None) -> None:
        self.block = block
        self.logger = logger or Logger.get_logger("vision.filters")
        self.count = 0
        self._current: RawFrame | None = None

    def push(self, frame: RawFrame) -> None:
        if self._current is not None and frame.timestamp < self._current.timestamp:
            self.logger.warning(
                f"Out of order frame for {frame.serial}: "
                f"{frame.timestamp} < {self._current.timestamp}"
            )
        try:
            data = self.block.process(frame.data)
        finally:
            frame.release()
        averaged = RawFrame(data=data, timestamp=frame.timestamp, serial=frame.serial)
        if self._current is not None:
            self._current.release()
        self._current = averaged
        self.count += 1

    def discard(self) -> None:
        """Drop the running result of an aborted capture."""
        if self._current is not None:
            self._current.release()
            self._current = None

    def result(self) -> RawFrame:
        if self._current is None:
            raise ValueError("No frames were averaged")
        frame, self._current = self._current, None
        return frame


@dataclass
class FilterChain:
    """Ordered set of filter steps owned by one camera profile."""

    steps: list[FilterStep] = field(default_factory=list)

    def __post_init__(self) -> None:
        kinds = [s.kind for s in self.steps]
        if len(kinds) != len(set(kinds)):
            raise ValueError(f"Duplicate filter kinds in chain: {kinds}")
        self.steps = sorted(self.steps, key=lambda s: CANONICAL_ORDER.index(s.kind))

    @classmethod
    def default(cls) -> "FilterChain":
        """One step of every kind, all disabled."""
        return cls([step_cls() for step_cls in STEP_TYPES.values()])

    def step(self, kind: FilterKind) -> FilterStep | None:
        for s in self.steps:
            if s.kind is kind:
                return s
        return None

    def replace(self, step: FilterStep) -> None:
        """Put ``step`` in place of the configured step of the same kind."""
        others = [s for s in self.steps if s.kind is not step.kind]
        self.steps = sorted(
            others + [step], key=lambda s: CANONICAL_ORDER.index(s.kind)
        )

    def enabled(self) -> list[FilterStep]:
        return [s for s in self.steps if s.on]

    def build(self, driver: DepthDriver) -> list[FilterPrimitive]:
        """Fresh processing blocks for the enabled steps, canonical order."""
        return [s.create(driver) for s in self.enabled()]

    def apply(self, frame: RawFrame, driver: DepthDriver) -> RawFrame:
        return apply_filters(self.build(driver), frame)

    def averager(self, driver: DepthDriver) -> FrameAverager:
        """Temporal averager configured from this chain's temporal step."""
        temporal = self.step(FilterKind.TEMPORAL) or TemporalStep()
        return FrameAverager(temporal.create(driver))

    def to_list(self) -> list[dict[str, Any]]:
        return [s.to_dict() for s in self.steps]

    @classmethod
    def from_list(cls, data: Iterable[Mapping[str, Any]]) -> "FilterChain":
        return cls([FilterStep.from_dict(d) for d in data])
