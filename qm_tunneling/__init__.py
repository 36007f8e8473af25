"""Crank–Nicolson simulation of a Gaussian wave packet tunnelling through a square barrier."""

from .config import SimulationConfig
from .errors import ConfigurationError, FactorizationError, SolveError, TunnelingError
from .grid import Grid, RegionMasks, build_grid, build_potential, penetration_estimate, region_masks
from .operators import CrankNicolsonOperators, build_operators
from .probability import ProbabilityAccumulator, ProbabilitySample, ProbabilitySeries
from .simulation import SimulationResult, run_simulation
from .stepper import StepperState, TimeStepper
from .wavepacket import center_of_mass, gaussian_wave_packet, probability_mass

__version__ = "0.2.0"
