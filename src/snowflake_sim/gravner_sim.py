"""
Gravner-Griffeath mesoscopic snow-crystal simulator.

Each lattice cell carries three masses (boundary, crystal, diffusive) plus an
attachment flag and a count of attached hex neighbors. One iteration runs the
passes below in a fixed order, then swaps the double buffer:

1.  **Diffusion:** 7-point hex average of vapor, reflecting off the crystal,
    with the lattice edge held at the ambient density ``rho``.
2.  **Freezing:** boundary cells turn vapor into boundary and crystal mass.
3.  **Attachment:** boundary cells join the crystal according to how many
    attached neighbors they have. Growth into the outer third stops the run.
4.  **Melting:** boundary and crystal mass of boundary cells decay to vapor.
5.  **Noise:** optional multiplicative ``1 +/- sigma`` perturbation of vapor.

J. Gravner and D. Griffeath, "Modeling snow crystal growth II: A mesoscopic
lattice map with plausible dynamics", Physica D 237 (2008) 385-404.

The attachment sweep mutates neighbor counts of cells it has not reached yet,
so its row-major order determines the crystal shape. The kernels keep that
order exactly.
"""

from __future__ import annotations

import dataclasses
import sys
from dataclasses import dataclass
from typing import Any, Mapping, Optional, TextIO, Tuple

import numpy as np
from numba import njit

from . import utils
from .lattice import HEX_OFFSETS, CellBuffer, ConfigurationError, Lattice

###############################################################################
# Constants
###############################################################################

MAX_ITERATIONS = 100_000
PROGRESS_EVERY = 1000

# Run outcomes
OUTER_THIRD = "outer_third"
ITERATION_CAP = "iteration_cap"

###############################################################################
# Stencil helpers (Numba-friendly)
###############################################################################


@njit(cache=True)
def stencil_average(
    diffusive: np.ndarray,
    attached: np.ndarray,
    r: int,
    c: int,
    offsets: np.ndarray,
) -> float:
    """
    Mean vapor over the cell and its in-bounds hex neighbors.

    Attached neighbors contribute the cell's own vapor instead of theirs.
    Neighbors outside the grid are left out of both sum and count.
    """
    n = diffusive.shape[0]
    own = diffusive[r, c]
    total = own
    count = 1
    for k in range(offsets.shape[0]):
        rr = r + offsets[k, 0]
        cc = c + offsets[k, 1]
        if rr < 0 or rr >= n or cc < 0 or cc >= n:
            continue
        if attached[rr, cc]:
            total += own
        else:
            total += diffusive[rr, cc]
        count += 1
    return total / count


@njit(cache=True)
def neighborhood_vapor(
    diffusive: np.ndarray, r: int, c: int, offsets: np.ndarray
) -> float:
    """Vapor of the cell plus its in-bounds hex neighbors."""
    n = diffusive.shape[0]
    total = diffusive[r, c]
    for k in range(offsets.shape[0]):
        rr = r + offsets[k, 0]
        cc = c + offsets[k, 1]
        if rr < 0 or rr >= n or cc < 0 or cc >= n:
            continue
        total += diffusive[rr, cc]
    return total


@njit(cache=True)
def _refresh_edges(diffusive: np.ndarray, attached: np.ndarray, rho: float) -> None:
    # attached edge cells (the seed on tiny lattices) hold no vapor
    n = diffusive.shape[0]
    last = n - 1
    for i in range(n):
        diffusive[0, i] = 0.0 if attached[0, i] else rho
        diffusive[last, i] = 0.0 if attached[last, i] else rho
        diffusive[i, 0] = 0.0 if attached[i, 0] else rho
        diffusive[i, last] = 0.0 if attached[i, last] else rho


###############################################################################
# Passes
###############################################################################


@njit(cache=True)
def diffusion_kernel(
    att0: np.ndarray,
    nbr0: np.ndarray,
    bnd0: np.ndarray,
    cry0: np.ndarray,
    dif0: np.ndarray,
    att1: np.ndarray,
    nbr1: np.ndarray,
    bnd1: np.ndarray,
    cry1: np.ndarray,
    dif1: np.ndarray,
    offsets: np.ndarray,
    rho: float,
) -> None:
    """
    Diffuse vapor from the previous buffer (``*0``) into the next (``*1``).

    Every non-vapor field is carried across unchanged. The edge ring of the
    previous buffer is reset to ``rho`` before anything reads it.
    """
    n = dif0.shape[0]
    _refresh_edges(dif0, att0, rho)
    for r in range(n):
        for c in range(n):
            att1[r, c] = att0[r, c]
            nbr1[r, c] = nbr0[r, c]
            bnd1[r, c] = bnd0[r, c]
            cry1[r, c] = cry0[r, c]
            dif1[r, c] = dif0[r, c]

    for r in range(1, n - 1):
        for c in range(1, n - 1):
            if att0[r, c]:
                dif1[r, c] = 0.0
                continue
            dif1[r, c] = stencil_average(dif0, att0, r, c, offsets)


@njit(cache=True)
def freezing_kernel(
    att: np.ndarray,
    nbr: np.ndarray,
    bnd: np.ndarray,
    cry: np.ndarray,
    dif: np.ndarray,
    kappa: float,
) -> None:
    n = dif.shape[0]
    for r in range(1, n - 1):
        for c in range(1, n - 1):
            if att[r, c] or nbr[r, c] == 0:
                continue
            d = dif[r, c]
            cry[r, c] += kappa * d
            bnd[r, c] += (1.0 - kappa) * d
            dif[r, c] = 0.0


@njit(cache=True)
def attachment_kernel(
    att: np.ndarray,
    nbr: np.ndarray,
    bnd: np.ndarray,
    cry: np.ndarray,
    dif: np.ndarray,
    offsets: np.ndarray,
    alpha: float,
    beta: float,
    theta: float,
) -> Tuple[bool, int]:
    """
    Attach boundary cells in place, scanning rows then columns upward.

    Returns ``(stop, newly_attached)``; ``stop`` is set when a cell attaches
    within ``n // 3`` of any edge.
    """
    n = dif.shape[0]
    third = n // 3
    stop = False
    newly = 0
    for r in range(1, n - 1):
        for c in range(1, n - 1):
            if att[r, c]:
                continue
            k = nbr[r, c]
            if k == 0:
                continue
            join = False
            if k <= 2:
                # tip or flat edge
                join = bnd[r, c] >= beta
            elif k == 3:
                # concavity
                if bnd[r, c] >= 1.0:
                    join = True
                elif bnd[r, c] >= alpha:
                    join = neighborhood_vapor(dif, r, c, offsets) < theta
            else:
                # hole
                join = True
            if not join:
                continue

            att[r, c] = True
            for j in range(offsets.shape[0]):
                rr = r + offsets[j, 0]
                cc = c + offsets[j, 1]
                if rr < 0 or rr >= n or cc < 0 or cc >= n:
                    continue
                nbr[rr, cc] += 1
            cry[r, c] += bnd[r, c]
            bnd[r, c] = 0.0
            newly += 1
            if r < third or r >= n - third or c < third or c >= n - third:
                stop = True
    return stop, newly


@njit(cache=True)
def melting_kernel(
    att: np.ndarray,
    nbr: np.ndarray,
    bnd: np.ndarray,
    cry: np.ndarray,
    dif: np.ndarray,
    mu: float,
    gamma: float,
) -> None:
    n = dif.shape[0]
    for r in range(1, n - 1):
        for c in range(1, n - 1):
            if att[r, c] or nbr[r, c] == 0:
                continue
            b = bnd[r, c]
            x = cry[r, c]
            bnd[r, c] = (1.0 - mu) * b
            cry[r, c] = (1.0 - gamma) * x
            dif[r, c] += mu * b + gamma * x


def apply_noise(diffusive: np.ndarray, sigma: float, rng: np.random.Generator) -> None:
    """Scale interior vapor by ``1 + sigma`` or ``1 - sigma``, one coin per cell."""
    n = diffusive.shape[0]
    coins = rng.integers(0, 2, size=(n - 2, n - 2))
    factors = np.where(coins == 0, 1.0 - sigma, 1.0 + sigma)
    diffusive[1:-1, 1:-1] *= factors


###############################################################################
# Configuration
###############################################################################


@dataclass(frozen=True)
class GravnerParams:
    """Physical constants and run controls. Immutable; use ``replace``."""

    # ambient vapor density: typ 0.3..0.9
    rho: float = 0.42
    # freezing fraction for boundary cells: typ 0.001..0.02
    kappa: float = 0.01
    # boundary mass to attach with 1..2 neighbors: typ 1.05..3.0
    beta: float = 1.9
    # boundary mass to attach with 3 neighbors: typ 0.02..0.1
    alpha: float = 0.08
    # neighborhood vapor ceiling to attach with 3 neighbors: typ 0.01..0.04
    theta: float = 0.025
    # boundary mass melting fraction: typ 0.04..0.09
    mu: float = 0.06
    # crystal mass melting fraction: very small
    gamma: float = 0.006
    # vapor noise amplitude: tiny, 0 disables
    sigma: float = 0.0
    max_iterations: int = MAX_ITERATIONS
    progress_every: int = PROGRESS_EVERY
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("rho", "kappa", "beta", "alpha", "theta", "mu", "gamma", "sigma"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"{name} must be a number, got {value!r}")
            if not np.isfinite(value) or value < 0:
                raise ConfigurationError(f"{name} must be finite and >= 0, got {value}")
        for name in ("kappa", "mu", "gamma"):
            if getattr(self, name) > 1:
                raise ConfigurationError(f"{name} must lie in [0, 1], got {getattr(self, name)}")
        if self.sigma >= 1:
            raise ConfigurationError(f"sigma must lie in [0, 1), got {self.sigma}")
        for name in ("max_iterations", "progress_every"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")
            if value < 1:
                raise ConfigurationError(f"{name} must be >= 1, got {value}")
        if self.seed is not None and (
            isinstance(self.seed, bool) or not isinstance(self.seed, (int, np.integer))
        ):
            raise ConfigurationError(f"seed must be an integer or None, got {self.seed!r}")

    @classmethod
    def from_dict(cls, mapping: Mapping[str, Any]) -> "GravnerParams":
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(mapping) - known)
        if unknown:
            raise ConfigurationError(f"Unknown parameter(s): {', '.join(unknown)}")
        return cls(**dict(mapping))

    def replace(self, **overrides: Any) -> "GravnerParams":
        return dataclasses.replace(self, **overrides)

    def as_dict(self) -> dict:
        return dataclasses.asdict(self)


###############################################################################
# Simulator
###############################################################################


class GravnerSimulator:
    """
    Owns the lattice and drives the pass kernels.

    ``run`` iterates until a cell attaches in the outer third of the lattice
    (``OUTER_THIRD``) or ``max_iterations`` iterations complete
    (``ITERATION_CAP``). The finished crystal is read from ``result()``.
    """

    def __init__(
        self,
        size: int,
        params: GravnerParams | None = None,
        *,
        verbose: bool = True,
        stream: Optional[TextIO] = None,
    ) -> None:
        self.params = params or GravnerParams()
        self.lattice = Lattice(size, rho=self.params.rho)
        self.rng = utils.make_rng(self.params.seed)
        self.verbose = verbose
        self.stream = stream
        self.iterations = 0
        self.status: Optional[str] = None

    @property
    def size(self) -> int:
        return self.lattice.size

    @property
    def center(self) -> int:
        return self.lattice.center

    def _log(self, text: str, end: str = "\n") -> None:
        if self.verbose:
            print(text, end=end, file=self.stream or sys.stderr, flush=True)

    # ------------------------------------------------------------------ passes
    def step(self) -> bool:
        """
        Run one iteration. Returns True if growth reached the outer third.

        The buffers are swapped whether or not the run stops, so ``current``
        always holds the latest state.
        """
        p = self.params
        prev: CellBuffer = self.lattice.current
        nxt: CellBuffer = self.lattice.next

        diffusion_kernel(*prev.fields(), *nxt.fields(), HEX_OFFSETS, p.rho)
        freezing_kernel(*nxt.fields(), p.kappa)
        stop, _ = attachment_kernel(
            *nxt.fields(), HEX_OFFSETS, p.alpha, p.beta, p.theta
        )
        if not stop:
            melting_kernel(*nxt.fields(), p.mu, p.gamma)
            if p.sigma > 0:
                apply_noise(nxt.diffusive_mass, p.sigma, self.rng)

        self.lattice.swap()
        self.iterations += 1
        return bool(stop)

    # ------------------------------------------------------------------ public
    def run(self) -> str:
        """
        Iterate to a stop condition and return the run status.

        A simulator runs once; later calls return the recorded status
        without stepping.
        """
        if self.status is not None:
            return self.status
        p = self.params
        self._log(
            f"Running Gravner-Griffeath growth: size={self.size}, "
            f"center={self.center}, max_iterations={p.max_iterations}"
        )
        self.status = ITERATION_CAP
        while self.iterations < p.max_iterations:
            if self.step():
                self.status = OUTER_THIRD
                break
            if self.iterations % p.progress_every == 0:
                self._log(".", end="")
        if self.status == ITERATION_CAP:
            self._log("!", end="")
        self._log("")
        return self.status

    @property
    def converged(self) -> bool:
        return self.status == OUTER_THIRD

    def result(self) -> utils.ClusterResult:
        cur = self.lattice.current
        meta = {
            "model": "gravner-griffeath",
            "status": self.status,
            "iterations": self.iterations,
            "params": self.params.as_dict(),
            "timestamp": utils.now_str(),
        }
        return utils.ClusterResult(
            attached=cur.attached,
            crystal_mass=cur.crystal_mass,
            size=self.size,
            center=self.center,
            meta=meta,
        )


__all__ = [
    "GravnerParams",
    "GravnerSimulator",
    "ITERATION_CAP",
    "OUTER_THIRD",
    "apply_noise",
    "attachment_kernel",
    "diffusion_kernel",
    "freezing_kernel",
    "melting_kernel",
    "neighborhood_vapor",
    "stencil_average",
]
