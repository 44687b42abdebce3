# src/snowflake_sim/utils.py
from __future__ import annotations

import json
import os
import time
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np


@dataclass
class ClusterResult:
    """Finished crystal handed to renderers and analysis. Arrays are read-only."""

    attached: np.ndarray
    crystal_mass: np.ndarray
    size: int
    center: int
    meta: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        self.attached = np.array(self.attached, dtype=bool)
        self.crystal_mass = np.array(self.crystal_mass, dtype=np.float64)
        self.attached.setflags(write=False)
        self.crystal_mass.setflags(write=False)

    @property
    def num_attached(self) -> int:
        return int(np.count_nonzero(self.attached))


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Process-local random source; pass a seed for reproducible noise."""
    return np.random.default_rng(seed)


def now_str() -> str:
    return time.strftime("%Y%m%d-%H%M%S")


def load_params(path: str | os.PathLike[str]) -> Dict[str, Any]:
    """
    Load simulation parameters from JSON or TOML.
    """
    path = str(path)
    with open(path, "rb") as fh:
        data = fh.read()
    suffix = Path(path).suffix.lower()
    if suffix in {".json", ""}:
        return json.loads(data.decode("utf-8"))
    if suffix in {".toml", ".tml"}:
        return tomllib.loads(data.decode("utf-8"))
    raise ValueError(f"Unsupported parameter file format: {suffix}")
