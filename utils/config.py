# utils/config.py
"""Run configuration of the scanner, read from ``conf/scan.yaml``.

The file has three sections. ``logging`` reconfigures the sinks when the
file is loaded. ``scan`` holds the capture defaults applied to new sessions
and to session files that omit them. ``stream`` is the depth stream request
sent to the driver. Keys missing from a section keep the defaults of
:mod:`utils.settings`; unknown keys are reported and ignored.
"""

from __future__ import annotations

from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Dict, TypeVar, cast

from omegaconf import OmegaConf

from utils.logger import Logger
from utils.settings import DepthStreamCfg, ScanDefaults, paths
from utils.settings import logging as LOGCFG
from utils.settings import scan as SCANCFG
from utils.settings import stream as STREAMCFG

DEFAULT_CONFIG_PATH = paths.DEFAULT_CONFIG

SectionT = TypeVar("SectionT")


class Config:
    """Process-wide configuration, loaded once by the CLI entry points."""

    _data: Dict[str, Any] | None = None
    _source: Path | None = None
    _logger = Logger.get_logger("utils.config")

    @classmethod
    def load(
        cls, filename: Path | str = DEFAULT_CONFIG_PATH, force_reload: bool = False
    ) -> None:
        """Read ``filename`` and apply its ``logging`` section.

        Loading the file that is already active is a no-op unless
        ``force_reload`` is set.
        """
        path = Path(filename)
        if cls._data is not None and cls._source == path and not force_reload:
            return

        try:
            data = OmegaConf.to_container(OmegaConf.load(path), resolve=True)
        except Exception as e:
            cls._logger.error(f"Failed to load config {path}: {e}")
            raise
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Config {path} must be a mapping of sections")

        cls._data = cast(Dict[str, Any], data)
        cls._source = path
        logging_cfg = cls._data.get("logging") or {}
        Logger.configure(
            level=logging_cfg.get("level", LOGCFG.level),
            log_dir=logging_cfg.get("log_dir", LOGCFG.log_dir),
            json_format=logging_cfg.get("json", LOGCFG.json),
        )
        cls._logger.info(f"Config loaded from {path}")

    @classmethod
    def scan_defaults(cls) -> ScanDefaults:
        """Session defaults: the ``scan`` section over :data:`settings.scan`."""
        return cls._section("scan", SCANCFG)

    @classmethod
    def stream(cls) -> DepthStreamCfg:
        """Depth stream request: the ``stream`` section over :data:`settings.stream`."""
        return cls._section("stream", STREAMCFG)

    @classmethod
    def _section(cls, name: str, base: SectionT) -> SectionT:
        # nothing is loaded implicitly; without a file the defaults apply
        values = (cls._data or {}).get(name) or {}
        known = {f.name for f in fields(base)}
        unknown = sorted(set(values) - known)
        if unknown:
            cls._logger.warning(f"Ignoring unknown keys in '{name}': {unknown}")
        overrides = {}
        for key in known & set(values):
            value = values[key]
            # YAML reads a bare "2024" filename as a number
            overrides[key] = str(value) if isinstance(getattr(base, key), str) else value
        return replace(base, **overrides)
