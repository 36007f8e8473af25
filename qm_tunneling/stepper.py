"""Time-stepping engine: repeated ``A ψⁿ⁺¹ = B ψⁿ`` solves with frame recording."""

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np

from .errors import SolveError
from .operators import CrankNicolsonOperators

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
StopPredicate = Callable[[], bool]
SnapshotCallback = Callable[[int, float, np.ndarray], None]


class StepperState(enum.Enum):
    READY = "ready"
    STEPPING = "stepping"
    DONE = "done"


@dataclass
class StepperResult:
    """Recorded frames of one run.

    ``steps[i]`` is the step index of ``snapshots[i]``, recorded at ``times[i]``.
    """

    steps: List[int] = field(default_factory=list)
    times: List[float] = field(default_factory=list)
    snapshots: List[np.ndarray] = field(default_factory=list)
    cancelled: bool = False

    def __len__(self) -> int:
        return len(self.snapshots)


def _frozen_copy(psi: np.ndarray) -> np.ndarray:
    snap = psi.copy()
    snap.setflags(write=False)
    return snap


class TimeStepper:
    """Advance a wavefunction with pre-factorized Crank–Nicolson operators.

    The stepper owns the only mutable copy of the state.  Every recorded frame
    is handed out as a read-only copy, to the result store and to the
    optional ``on_snapshot`` callback.
    """

    def __init__(
        self,
        operators: CrankNicolsonOperators,
        psi0: np.ndarray,
        dt: float,
        n_steps: int,
        t_start: float = 0.0,
        record_stride: int = 1,
    ):
        if int(n_steps) < 1:
            raise ValueError(f"n_steps must be >= 1, got {n_steps}")
        if int(record_stride) < 1:
            raise ValueError(f"record_stride must be >= 1, got {record_stride}")
        psi0 = np.asarray(psi0, dtype=np.complex128)
        if psi0.shape != (operators.size,):
            raise ValueError(
                f"initial state has shape {psi0.shape}, operators expect ({operators.size},)"
            )
        self.operators = operators
        self.dt = dt
        self.n_steps = int(n_steps)
        self.t_start = t_start
        self.record_stride = int(record_stride)

        self._psi = psi0.copy()
        self._step = 0
        self.state = StepperState.READY
        self.result = StepperResult()

    @property
    def step_index(self) -> int:
        return self._step

    @property
    def time(self) -> float:
        return self.t_start + self._step * self.dt

    def current(self) -> np.ndarray:
        """Read-only copy of the current state."""
        return _frozen_copy(self._psi)

    def _should_record(self, step: int) -> bool:
        return step % self.record_stride == 0 or step == self.n_steps

    def _record(self, on_snapshot: Optional[SnapshotCallback]) -> None:
        snap = _frozen_copy(self._psi)
        self.result.steps.append(self._step)
        self.result.times.append(self.time)
        self.result.snapshots.append(snap)
        if on_snapshot is not None:
            on_snapshot(self._step, self.time, snap)

    def step(self, on_snapshot: Optional[SnapshotCallback] = None) -> np.ndarray:
        """Advance by exactly one time step and return the new state (read-only copy)."""
        if self.state is StepperState.DONE:
            raise RuntimeError("stepper has already completed its run")
        if self.state is StepperState.READY:
            self.state = StepperState.STEPPING
            self._record(on_snapshot)

        rhs = self.operators.apply_explicit(self._psi)
        rhs[0] = rhs[-1] = 0.0
        psi_next = self.operators.solve(rhs)
        if not np.all(np.isfinite(psi_next)):
            self.state = StepperState.DONE
            raise SolveError(
                f"non-finite wavefunction at step {self._step + 1}",
                step=self._step + 1,
                partial=self.result,
            )

        self._psi = psi_next
        self._step += 1
        if self._should_record(self._step):
            self._record(on_snapshot)
        if self._step >= self.n_steps:
            self.state = StepperState.DONE
        return _frozen_copy(self._psi)

    def run(
        self,
        on_snapshot: Optional[SnapshotCallback] = None,
        progress: Optional[ProgressCallback] = None,
        should_stop: Optional[StopPredicate] = None,
        progress_interval: int = 500,
    ) -> StepperResult:
        """Step until ``n_steps`` is reached or ``should_stop`` returns True.

        ``progress`` and ``should_stop`` are consulted every
        ``progress_interval`` steps, between two solves.
        """
        if int(progress_interval) < 1:
            raise ValueError(f"progress_interval must be >= 1, got {progress_interval}")
        while self.state is not StepperState.DONE:
            self.step(on_snapshot)
            if self._step % progress_interval == 0 or self.state is StepperState.DONE:
                if progress is not None:
                    progress(self._step, self.n_steps)
                logger.debug("step %d/%d (t=%.6g)", self._step, self.n_steps, self.time)
                if should_stop is not None and self.state is not StepperState.DONE and should_stop():
                    logger.info("run cancelled at step %d/%d", self._step, self.n_steps)
                    if self.result.steps[-1] != self._step:
                        self._record(on_snapshot)
                    self.result.cancelled = True
                    self.state = StepperState.DONE
        return self.result
