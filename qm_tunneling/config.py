"""
Simulation parameters for the Crank–Nicolson tunneling core.

Units follow the usual convention of the notebook this package grew out of:
ħ = 1 and m = 1 unless overridden, so that the kinetic energy of a packet with
central wave number ``k0`` is ``k0**2 / 2``.
"""

import math
import numbers
from dataclasses import asdict, dataclass, fields
from typing import Any, Mapping

from .errors import ConfigurationError

# Diagnostic thresholds used by tests and by the drift warning.
NORM_TOLERANCE = 1e-9
DRIFT_TOLERANCE = 1e-3
FRACTION_SUM_TOLERANCE = 1e-6

# Reciprocal pivot ratio below which the implicit operator is treated as
# ill-conditioned.
MIN_PIVOT_RATIO = 1e-12


@dataclass(frozen=True)
class SimulationConfig:
    """All inputs of one tunneling run.

    Parameters
    ----------
    x_min, x_max : float
        Bounds of the spatial domain (Dirichlet walls sit on both).
    n_points : int
        Number of grid points, endpoints included.
    t_start, t_end : float
        Time span covered by the run.
    dt : float
        Integration time step.
    barrier_height, barrier_width, barrier_center : float
        Square barrier ``V0`` over ``|x - center| < width / 2``.
    x0, k0, sigma : float
        Centre, central wave number and width of the initial Gaussian packet.
    hbar, mass : float
        Physical constants.
    record_stride : int
        Number of computed steps between recorded frames (playback only).
    progress_interval : int
        Number of steps between progress / cancellation checkpoints.
    """

    x_min: float = -10.0
    x_max: float = 10.0
    n_points: int = 500
    t_start: float = 0.0
    t_end: float = 1.0
    dt: float = 1e-4
    barrier_height: float = 170.0
    barrier_width: float = 1.0
    barrier_center: float = 0.0
    x0: float = -5.0
    k0: float = 18.0
    sigma: float = 0.5
    hbar: float = 1.0
    mass: float = 1.0
    record_stride: int = 10
    progress_interval: int = 500

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "SimulationConfig":
        """Build a config from a plain dict, ignoring keys that are not fields."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in mapping.items() if k in names})

    def as_dict(self) -> dict:
        return asdict(self)

    @property
    def dx(self) -> float:
        return (self.x_max - self.x_min) / (self.n_points - 1)

    @property
    def n_steps(self) -> int:
        return int(round((self.t_end - self.t_start) / self.dt))

    def validate(self) -> "SimulationConfig":
        """Raise :class:`ConfigurationError` on the first invalid field.

        Returns the config itself so calls can be chained.
        """
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise ConfigurationError(f"{f.name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise ConfigurationError(f"{f.name} must be finite, got {value!r}")

        if int(self.n_points) != self.n_points or self.n_points < 2:
            raise ConfigurationError(f"n_points must be an integer >= 2, got {self.n_points}")
        if self.x_max <= self.x_min:
            raise ConfigurationError(
                f"x_max ({self.x_max}) must be greater than x_min ({self.x_min})"
            )
        if self.dt <= 0:
            raise ConfigurationError(f"dt must be positive, got {self.dt}")
        if self.t_end <= self.t_start:
            raise ConfigurationError(
                f"t_end ({self.t_end}) must be greater than t_start ({self.t_start})"
            )
        if self.n_steps < 1:
            raise ConfigurationError(
                f"time span {self.t_end - self.t_start} is shorter than one step dt={self.dt}"
            )
        if self.barrier_width < 0:
            raise ConfigurationError(f"barrier_width must be >= 0, got {self.barrier_width}")
        if self.sigma <= 0:
            raise ConfigurationError(f"sigma must be positive, got {self.sigma}")
        if self.hbar <= 0 or self.mass <= 0:
            raise ConfigurationError("hbar and mass must be positive")
        if int(self.record_stride) != self.record_stride or self.record_stride < 1:
            raise ConfigurationError(f"record_stride must be an integer >= 1, got {self.record_stride}")
        if int(self.progress_interval) != self.progress_interval or self.progress_interval < 1:
            raise ConfigurationError(
                f"progress_interval must be an integer >= 1, got {self.progress_interval}"
            )
        return self
