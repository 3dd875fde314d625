"""File I/O helpers for session files and exported point clouds."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import numpy as np


def load_json(path: str | Path) -> Any:
    """Load JSON data from ``path``."""
    with open(path, "r") as f:
        return json.load(f)


def save_json(path: str | Path, data: Any) -> None:
    """Write data as JSON to ``path``."""
    with open(path, "w") as f:
        json.dump(data, f, indent=2)


def save_xyz(path: str | Path, points: np.ndarray) -> None:
    """Write one whitespace separated ``x y z`` line per point."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    with open(path, "w") as f:
        np.savetxt(f, pts, fmt="%.6f", delimiter=" ")


def load_xyz(path: str | Path) -> np.ndarray:
    """Read an ``.xyz`` file back into an ``(N, 3)`` array."""
    pts = np.loadtxt(path, dtype=np.float64, ndmin=2)
    return pts.reshape(-1, 3)
