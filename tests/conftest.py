import numpy as np
import pytest

from qm_tunneling.config import SimulationConfig
from qm_tunneling.grid import build_grid, build_potential, region_masks


@pytest.fixture
def scenario_config():
    """Reference barrier scenario: N=500 on [-10, 10], V0=170, packet at -5 with k0=18."""
    return SimulationConfig()


@pytest.fixture
def short_config():
    """Coarse and short enough for quick runs."""
    return SimulationConfig(n_points=300, dt=5e-4, t_end=0.1, record_stride=5, progress_interval=20)


@pytest.fixture
def grid():
    return build_grid(-10.0, 10.0, 500)


@pytest.fixture
def potential(grid):
    return build_potential(grid.x, 170.0, 0.0, 1.0)


@pytest.fixture
def masks(grid):
    return region_masks(grid.x, 0.0, 1.0)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
