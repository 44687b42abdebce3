"""
Shape statistics for a finished crystal.

Coordinates are axial hex offsets from the seed cell, matching the neighbor
table in ``lattice.HEX_OFFSETS``.
"""
from __future__ import annotations

from typing import Dict

import numpy as np

from .utils import ClusterResult


def axial_offsets(result: ClusterResult) -> np.ndarray:
    """(N, 2) integer offsets of attached cells from the seed."""
    cells = np.argwhere(result.attached)
    return cells - result.center


def rotate60(offsets: np.ndarray) -> np.ndarray:
    """Rotate axial offsets by one sixth of a turn: (x, y) -> (x - y, x)."""
    offsets = np.asarray(offsets)
    return np.column_stack((offsets[:, 0] - offsets[:, 1], offsets[:, 0]))


def hex_distance(offsets: np.ndarray) -> np.ndarray:
    """Lattice distance from the seed for axial offsets."""
    x = offsets[:, 0]
    y = offsets[:, 1]
    return np.maximum(np.maximum(np.abs(x), np.abs(y)), np.abs(x - y))


def planar_coords(offsets: np.ndarray) -> np.ndarray:
    """Embed axial offsets in the plane with unit nearest-neighbor spacing."""
    x = offsets[:, 0].astype(np.float64)
    y = offsets[:, 1].astype(np.float64)
    return np.column_stack((x - 0.5 * y, (np.sqrt(3.0) / 2.0) * y))


def sixfold_symmetry(result: ClusterResult) -> float:
    """
    Fraction of attached cells whose 60 degree rotation about the seed is
    also attached. 1.0 means perfectly six-fold symmetric.
    """
    offsets = axial_offsets(result)
    if len(offsets) == 0:
        return 0.0
    rotated = rotate60(offsets) + result.center
    n = result.size
    inside = np.all((rotated >= 0) & (rotated < n), axis=1)
    hits = np.zeros(len(offsets), dtype=bool)
    hits[inside] = result.attached[rotated[inside, 0], rotated[inside, 1]]
    return float(hits.mean())


def crystal_stats(result: ClusterResult) -> Dict[str, float]:
    """Summary numbers for a crystal: size, mass, extent and symmetry."""
    offsets = axial_offsets(result)
    num = len(offsets)
    if num == 0:
        return {
            "num_attached": 0,
            "crystal_mass": 0.0,
            "max_radius": 0,
            "r_gyration": 0.0,
            "sixfold_symmetry": 0.0,
        }
    pos = planar_coords(offsets)
    centroid = pos.mean(axis=0)
    r_g = float(np.sqrt(np.mean(np.sum((pos - centroid) ** 2, axis=1))))
    return {
        "num_attached": int(num),
        "crystal_mass": float(result.crystal_mass[result.attached].sum()),
        "max_radius": int(hex_distance(offsets).max()),
        "r_gyration": r_g,
        "sixfold_symmetry": sixfold_symmetry(result),
    }


__all__ = [
    "axial_offsets",
    "crystal_stats",
    "hex_distance",
    "planar_coords",
    "rotate60",
    "sixfold_symmetry",
]
