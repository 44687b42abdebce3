"""
SVG rendering of a finished crystal.

Attached cells are drawn as filled circles whose radius scales with the cell's
crystal mass. The hex lattice is mapped to the plane by rotating lattice
offsets a quarter turn about the seed and squashing the vertical axis by
``1 / sqrt(3)``.
"""

from __future__ import annotations

import os
from typing import BinaryIO, Tuple, Union

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.collections import PatchCollection
from matplotlib.patches import Circle

from .utils import ClusterResult

CANVAS_SCALE = 1000.0
Y_SCALE = 1.0 / np.sqrt(3.0)
DOT_SCALE = 0.25
SVG_DPI = 72


def canvas_size(scale: float = CANVAS_SCALE) -> Tuple[float, float]:
    """(width, height) of the drawing in SVG user units."""
    return scale, scale * Y_SCALE


def cell_positions(
    result: ClusterResult, scale: float = CANVAS_SCALE
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Canvas coordinates and radii of every attached cell.

    Returns ``(x, y, radius)`` arrays in row-major cell order.
    """
    rows, cols = np.nonzero(result.attached)
    center = result.center
    dscale = scale / result.size

    x0 = (rows - center).astype(np.float64)
    y0 = (cols - center).astype(np.float64)
    d = np.hypot(x0, y0)
    a = np.arctan2(y0, x0) + np.pi / 4

    x = (d * np.cos(a) + center) * dscale
    y = (d * np.sin(a) + center) * dscale * Y_SCALE
    radius = result.crystal_mass[rows, cols] * DOT_SCALE * dscale
    return x, y, radius


def render_svg(
    result: ClusterResult,
    out: Union[str, os.PathLike, BinaryIO],
    *,
    scale: float = CANVAS_SCALE,
    color: str = "black",
) -> int:
    """
    Write the crystal as SVG to a path or binary stream.

    Returns the number of circles drawn.
    """
    width, height = canvas_size(scale)
    x, y, radius = cell_positions(result, scale)

    fig = plt.figure(figsize=(width / SVG_DPI, height / SVG_DPI), dpi=SVG_DPI)
    try:
        ax = fig.add_axes([0.0, 0.0, 1.0, 1.0])
        ax.set_xlim(0.0, width)
        ax.set_ylim(height, 0.0)
        ax.set_aspect("equal")
        ax.axis("off")

        circles = [Circle((cx, cy), r) for cx, cy, r in zip(x, y, radius)]
        ax.add_collection(
            PatchCollection(circles, facecolor=color, edgecolor="none")
        )
        fig.savefig(out, format="svg", dpi=SVG_DPI)
    finally:
        plt.close(fig)
    return len(x)


__all__ = ["CANVAS_SCALE", "canvas_size", "cell_positions", "render_svg"]
