"""Initial Gaussian wave packet and discrete-norm helpers."""

import numpy as np

from .errors import ConfigurationError


def probability_mass(psi: np.ndarray, dx: float) -> float:
    """Discrete total probability ``Σ|ψ|²·dx``."""
    return float(np.sum(np.abs(psi) ** 2) * dx)


def gaussian_wave_packet(x: np.ndarray, dx: float, x0: float, sigma: float, k0: float) -> np.ndarray:
    """Sample ``exp(-(x - x0)²/(2σ²))·exp(i·k0·x)`` and scale it to unit mass.

    The scale factor is ``1/sqrt(Σ|ψ|²·dx)``, the same discrete sum used for
    every probability in this package, so the result satisfies
    ``probability_mass(psi, dx) == 1`` to rounding.

    The two end points are pinned to zero by the walls after the first step,
    so only the interior ``x[1:-1]`` can carry probability through a run.  A
    packet with no interior mass is rejected, which also covers a grid with
    no interior point at all (``len(x) == 2``).

    Raises
    ------
    ConfigurationError
        If the sampled packet has zero (or non-finite) mass on the interior
        of the grid, e.g. a packet centred far outside the domain.
    """
    psi = np.exp(-((x - x0) ** 2) / (2.0 * sigma ** 2)) * np.exp(1j * k0 * x)
    interior = probability_mass(psi[1:-1], dx)
    if not np.isfinite(interior) or interior <= 0.0:
        raise ConfigurationError(
            f"wave packet (x0={x0}, sigma={sigma}) has no mass inside the walls "
            f"of a {x.size}-point grid; cannot normalise"
        )
    return psi / np.sqrt(probability_mass(psi, dx))


def center_of_mass(psi: np.ndarray, x: np.ndarray, dx: float) -> float:
    """Mean position ``<x>`` of the density, normalised by its own total."""
    density = np.abs(psi) ** 2
    total = np.sum(density) * dx
    return float(np.sum(x * density) * dx / total)
