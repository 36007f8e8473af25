"""
End-to-end tunneling run.

Grid -> potential -> initial packet -> Crank–Nicolson operators -> time
stepping, with the probability accumulator fed synchronously from every
recorded frame.  The returned :class:`SimulationResult` is everything a
renderer needs.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .config import SimulationConfig
from .errors import SolveError
from .grid import build_grid, build_potential, region_masks
from .operators import build_operators
from .probability import ProbabilityAccumulator, ProbabilitySeries
from .stepper import ProgressCallback, StepperResult, StopPredicate, TimeStepper
from .wavepacket import center_of_mass, gaussian_wave_packet

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class SimulationResult:
    """Completed (or cancelled / partial) time series of one run."""

    config: SimulationConfig
    x: np.ndarray
    potential: np.ndarray
    times: np.ndarray
    steps: np.ndarray
    wavefunctions: np.ndarray
    densities: np.ndarray
    probabilities: ProbabilitySeries
    centers: np.ndarray
    cancelled: bool = False

    @property
    def dx(self) -> float:
        return self.config.dx

    def __len__(self) -> int:
        return self.times.size


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


def _collect(config, grid, potential, recorded: StepperResult, accumulator, centers) -> SimulationResult:
    if recorded.snapshots:
        wavefunctions = np.stack(recorded.snapshots)
    else:
        wavefunctions = np.zeros((0, grid.n_points), dtype=np.complex128)
    return SimulationResult(
        config=config,
        x=grid.x,
        potential=potential,
        times=_readonly(np.asarray(recorded.times, dtype=np.float64)),
        steps=_readonly(np.asarray(recorded.steps, dtype=np.int64)),
        wavefunctions=_readonly(wavefunctions),
        densities=_readonly(np.abs(wavefunctions) ** 2),
        probabilities=accumulator.series(),
        centers=_readonly(np.asarray(centers, dtype=np.float64)),
        cancelled=recorded.cancelled,
    )


def run_simulation(
    config: Optional[SimulationConfig] = None,
    progress: Optional[ProgressCallback] = None,
    should_stop: Optional[StopPredicate] = None,
) -> SimulationResult:
    """Run the whole pipeline for ``config`` (defaults if omitted).

    Raises
    ------
    ConfigurationError
        Invalid parameters or a packet that vanishes on the grid.
    FactorizationError
        The implicit operator cannot be factorized.
    SolveError
        A step produced a non-finite state; ``exc.partial`` is a
        :class:`SimulationResult` holding the frames recorded before it.
    """
    config = (config or SimulationConfig()).validate()

    grid = build_grid(config.x_min, config.x_max, config.n_points)
    potential = build_potential(
        grid.x, config.barrier_height, config.barrier_center, config.barrier_width
    )
    masks = region_masks(grid.x, config.barrier_center, config.barrier_width)
    psi0 = gaussian_wave_packet(grid.x, grid.dx, config.x0, config.sigma, config.k0)
    logger.info(
        "grid: N=%d on [%g, %g], dx=%.4g; %d steps of dt=%g",
        grid.n_points, grid.x_min, grid.x_max, grid.dx, config.n_steps, config.dt,
    )

    operators = build_operators(potential, grid.dx, config.dt, config.hbar, config.mass)
    stepper = TimeStepper(
        operators,
        psi0,
        dt=config.dt,
        n_steps=config.n_steps,
        t_start=config.t_start,
        record_stride=config.record_stride,
    )

    accumulator = ProbabilityAccumulator(grid.dx, masks)
    centers = []

    def on_snapshot(step, t, psi):
        accumulator.accumulate(psi)
        centers.append(center_of_mass(psi, grid.x, grid.dx))

    try:
        recorded = stepper.run(
            on_snapshot=on_snapshot,
            progress=progress,
            should_stop=should_stop,
            progress_interval=config.progress_interval,
        )
    except SolveError as exc:
        logger.error("run aborted at step %d: %s", exc.step, exc)
        partial = _collect(config, grid, potential, exc.partial, accumulator, centers)
        raise SolveError(str(exc), step=exc.step, partial=partial) from exc

    result = _collect(config, grid, potential, recorded, accumulator, centers)
    logger.info(
        "run %s after %d frames: final total=%.8f, max drift=%.3e",
        "cancelled" if result.cancelled else "finished",
        len(result),
        result.probabilities.total[-1],
        result.probabilities.max_drift(),
    )
    return result
