"""Uniform spatial grid, square barrier potential and region masks."""

import logging
from dataclasses import dataclass
from typing import NamedTuple, Optional

import numpy as np

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class Grid:
    """Ordered positions ``x`` with constant spacing ``dx``."""

    x: np.ndarray
    dx: float

    @property
    def n_points(self) -> int:
        return self.x.size

    @property
    def x_min(self) -> float:
        return float(self.x[0])

    @property
    def x_max(self) -> float:
        return float(self.x[-1])


def build_grid(x_min: float, x_max: float, n_points: int) -> Grid:
    """Return ``n_points`` equally spaced positions over ``[x_min, x_max]``.

    Both endpoints are included, so ``dx = (x_max - x_min) / (n_points - 1)``.
    """
    if int(n_points) != n_points or n_points < 2:
        raise ConfigurationError(f"a grid needs at least 2 points, got {n_points}")
    if not x_max > x_min:
        raise ConfigurationError(f"empty domain [{x_min}, {x_max}]")
    n_points = int(n_points)
    x, dx = np.linspace(x_min, x_max, n_points, retstep=True)
    logger.debug("grid: %d points on [%g, %g], dx=%g", n_points, x_min, x_max, dx)
    return Grid(x=_readonly(x), dx=float(dx))


def build_potential(x: np.ndarray, V0: float, centre: float, width: float) -> np.ndarray:
    """Sample a square barrier of height ``V0`` onto the grid ``x``.

    A point lies inside the barrier when ``|x - centre| < width / 2`` (see
    :func:`barrier_mask`); a point exactly on an edge gets 0.  The returned
    float64 array is read-only, like the grid it is sampled on.
    """
    V = np.zeros_like(x, dtype=np.float64)
    V[barrier_mask(x, centre, width)] = V0
    return _readonly(V)


def barrier_mask(x: np.ndarray, centre: float, width: float) -> np.ndarray:
    return np.abs(x - centre) < width / 2.0


class RegionMasks(NamedTuple):
    """Disjoint boolean partitions of the grid around the barrier."""

    left: np.ndarray
    barrier: np.ndarray
    right: np.ndarray


def region_masks(x: np.ndarray, centre: float, width: float) -> RegionMasks:
    """Split the grid into left-of-barrier, inside-barrier and right-of-barrier.

    Points outside the barrier are assigned by which side of ``centre`` they
    fall on, so the three masks always cover the grid exactly once, even for a
    zero-width barrier.
    """
    inside = barrier_mask(x, centre, width)
    outside = ~inside
    left = outside & (x < centre)
    right = outside & (x >= centre)
    return RegionMasks(
        left=_readonly(left), barrier=_readonly(inside), right=_readonly(right)
    )


class PenetrationEstimate(NamedTuple):
    energy: float
    kappa: Optional[float]
    transmission: Optional[float]

    @property
    def above_barrier(self) -> bool:
        return self.kappa is None


def penetration_estimate(
    k0: float, V0: float, width: float, hbar: float = 1.0, mass: float = 1.0
) -> PenetrationEstimate:
    """Rough square-barrier tunnelling estimate for a narrow packet.

    With ``E = ħ²k0²/2m`` below ``V0`` the decay constant inside the barrier
    is ``κ = sqrt(2m(V0 - E))/ħ`` and ``T ≈ exp(-2κw)``.  Above the barrier no
    estimate is made (``kappa`` and ``transmission`` are ``None``).
    """
    E = (hbar * k0) ** 2 / (2.0 * mass)
    if E >= V0:
        return PenetrationEstimate(energy=E, kappa=None, transmission=None)
    kappa = float(np.sqrt(2.0 * mass * (V0 - E)) / hbar)
    return PenetrationEstimate(
        energy=E, kappa=kappa, transmission=float(np.exp(-2.0 * kappa * width))
    )
