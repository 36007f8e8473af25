"""Reflection / transmission / barrier occupancy per recorded snapshot."""

import logging
from dataclasses import dataclass
from typing import List, NamedTuple

import numpy as np

from .config import DRIFT_TOLERANCE
from .grid import RegionMasks

logger = logging.getLogger(__name__)


class ProbabilitySample(NamedTuple):
    reflection: float
    transmission: float
    barrier: float
    total: float


def region_probabilities(psi: np.ndarray, dx: float, masks: RegionMasks) -> ProbabilitySample:
    """Split the probability of one snapshot over the three regions.

    Each fraction is divided by the instantaneous total ``Σ|ψ|²·dx`` rather
    than by 1, so the fractions sum to one even when the norm has drifted.
    The total itself is returned for drift diagnostics.
    """
    density = np.abs(psi) ** 2
    total = float(np.sum(density) * dx)
    left = float(np.sum(density[masks.left]) * dx)
    inside = float(np.sum(density[masks.barrier]) * dx)
    right = float(np.sum(density[masks.right]) * dx)
    return ProbabilitySample(
        reflection=left / total,
        transmission=right / total,
        barrier=inside / total,
        total=total,
    )


@dataclass(frozen=True, eq=False)
class ProbabilitySeries:
    """Aligned per-frame arrays, one entry per recorded snapshot."""

    reflection: np.ndarray
    transmission: np.ndarray
    barrier: np.ndarray
    total: np.ndarray

    def __len__(self) -> int:
        return self.total.size

    def fraction_sum(self) -> np.ndarray:
        return self.reflection + self.transmission + self.barrier

    def max_drift(self) -> float:
        """Largest ``|total - 1|`` over the run (0 for an empty series)."""
        if self.total.size == 0:
            return 0.0
        return float(np.max(np.abs(self.total - 1.0)))


class ProbabilityAccumulator:
    """Append-only collector of :class:`ProbabilitySample` tuples."""

    def __init__(self, dx: float, masks: RegionMasks, drift_tolerance: float = DRIFT_TOLERANCE):
        self.dx = dx
        self.masks = masks
        self.drift_tolerance = drift_tolerance
        self._samples: List[ProbabilitySample] = []
        self._drift_reported = False

    def __len__(self) -> int:
        return len(self._samples)

    def accumulate(self, psi: np.ndarray) -> ProbabilitySample:
        sample = region_probabilities(psi, self.dx, self.masks)
        self._samples.append(sample)
        if not self._drift_reported and abs(sample.total - 1.0) > self.drift_tolerance:
            # reported once; the value stays in the series either way
            logger.warning(
                "total probability drifted to %.6f at frame %d (tolerance %g)",
                sample.total,
                len(self._samples) - 1,
                self.drift_tolerance,
            )
            self._drift_reported = True
        return sample

    def series(self) -> ProbabilitySeries:
        if self._samples:
            columns = np.array(self._samples, dtype=np.float64).T
        else:
            columns = np.zeros((4, 0), dtype=np.float64)
        arrays = []
        for column in columns:
            column = np.ascontiguousarray(column)
            column.setflags(write=False)
            arrays.append(column)
        return ProbabilitySeries(*arrays)
