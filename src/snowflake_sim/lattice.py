from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np

# Axial hex offsets; the order is fixed and shared by every pass.
HEX_OFFSETS = np.array(
    [
        [-1, -1],
        [-1, 0],
        [0, -1],
        [0, 1],
        [1, 0],
        [1, 1],
    ],
    dtype=np.int64,
)


class ConfigurationError(ValueError):
    """Invalid lattice size or simulation parameter."""


def validate_size(size) -> int:
    """Return ``size`` as an int, or raise if it cannot hold a seeded lattice."""
    if isinstance(size, bool) or not isinstance(size, (int, np.integer)):
        raise ConfigurationError(f"lattice size must be an integer, got {size!r}")
    size = int(size)
    if size <= 0:
        raise ConfigurationError(f"lattice size must be positive, got {size}")
    if size % 2 == 0:
        raise ConfigurationError(f"lattice size must be odd, got {size}")
    if center_index(size) >= size:
        raise ConfigurationError(
            f"lattice size {size} is too small to hold the seed cell"
        )
    return size


def parse_size(text: str) -> int:
    """Parse a command-line lattice size."""
    try:
        value = int(str(text).strip(), 10)
    except ValueError:
        raise ConfigurationError(f"lattice size must be an integer, got {text!r}") from None
    return validate_size(value)


def center_index(size: int) -> int:
    # One past the geometric center; renderers depend on this placement.
    return size // 2 + 1


def in_bounds(r: int, c: int, size: int) -> bool:
    return 0 <= r < size and 0 <= c < size


def neighbors(r: int, c: int, size: int) -> Iterator[Tuple[int, int]]:
    """Yield the in-bounds hex neighbors of (r, c) in offset order."""
    for dr, dc in HEX_OFFSETS:
        rr, cc = r + int(dr), c + int(dc)
        if in_bounds(rr, cc, size):
            yield rr, cc


@dataclass
class CellBuffer:
    """One full copy of the per-cell state, stored field by field."""

    attached: np.ndarray
    attached_neighbors: np.ndarray
    boundary_mass: np.ndarray
    crystal_mass: np.ndarray
    diffusive_mass: np.ndarray

    @classmethod
    def allocate(cls, size: int, rho: float) -> "CellBuffer":
        shape = (size, size)
        return cls(
            attached=np.zeros(shape, dtype=np.bool_),
            attached_neighbors=np.zeros(shape, dtype=np.int64),
            boundary_mass=np.zeros(shape, dtype=np.float64),
            crystal_mass=np.zeros(shape, dtype=np.float64),
            diffusive_mass=np.full(shape, rho, dtype=np.float64),
        )

    @property
    def size(self) -> int:
        return self.attached.shape[0]

    def fields(self):
        """Arrays in kernel argument order."""
        return (
            self.attached,
            self.attached_neighbors,
            self.boundary_mass,
            self.crystal_mass,
            self.diffusive_mass,
        )

    def copy_from(self, other: "CellBuffer") -> None:
        for dst, src in zip(self.fields(), other.fields()):
            np.copyto(dst, src)

    def total_mass(self) -> float:
        return float(
            self.boundary_mass.sum()
            + self.crystal_mass.sum()
            + self.diffusive_mass.sum()
        )


class Lattice:
    """
    Double-buffered hex lattice.

    ``current`` is authoritative; ``next`` receives the results of the
    iteration in progress. ``swap`` exchanges the two without copying.
    """

    def __init__(self, size: int, rho: float = 0.42) -> None:
        self.size = validate_size(size)
        self.center = center_index(self.size)
        self.rho = float(rho)
        self._buffers = (
            CellBuffer.allocate(self.size, self.rho),
            CellBuffer.allocate(self.size, self.rho),
        )
        self._current = 0
        self._seed()

    def _seed(self) -> None:
        cur = self.current
        c = self.center
        cur.attached[c, c] = True
        cur.crystal_mass[c, c] = 1.0
        cur.diffusive_mass[c, c] = 0.0
        for rr, cc in neighbors(c, c, self.size):
            cur.attached_neighbors[rr, cc] = 1
        self.next.copy_from(cur)

    @property
    def current(self) -> CellBuffer:
        return self._buffers[self._current]

    @property
    def next(self) -> CellBuffer:
        return self._buffers[1 - self._current]

    def swap(self) -> None:
        self._current = 1 - self._current

    def is_edge(self, r: int, c: int) -> bool:
        last = self.size - 1
        return r == 0 or c == 0 or r == last or c == last

    def neighbors(self, r: int, c: int) -> Iterator[Tuple[int, int]]:
        return neighbors(r, c, self.size)

    def total_mass(self) -> float:
        return self.current.total_mass()

    def attached_cells(self) -> np.ndarray:
        """(N, 2) array of attached (row, col) indices in the current buffer."""
        return np.argwhere(self.current.attached)


__all__ = [
    "HEX_OFFSETS",
    "ConfigurationError",
    "CellBuffer",
    "Lattice",
    "center_index",
    "in_bounds",
    "neighbors",
    "parse_size",
    "validate_size",
]
