import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest
from matplotlib.figure import Figure

from qm_tunneling.plotting import density_scale, frame_figure, probability_figure
from qm_tunneling.simulation import run_simulation


@pytest.fixture(scope="module")
def result():
    from qm_tunneling.config import SimulationConfig

    return run_simulation(SimulationConfig(n_points=200, dt=1e-3, t_end=0.05, record_stride=10))


def test_density_scale_matches_peaks():
    psi = np.array([0.0, 0.5 + 0.5j, 0.0])
    # wave peak 0.5, density peak 0.5
    assert density_scale(psi, margin=1.0) == pytest.approx(1.0)
    assert density_scale(np.zeros(4, dtype=complex)) == 1.0


def test_frame_figure(result):
    fig = frame_figure(result, len(result) - 1, dpi=50)
    assert isinstance(fig, Figure)
    ax, twin = fig.axes
    assert len(ax.lines) == 3
    assert len(twin.lines) == 1
    np.testing.assert_allclose(twin.lines[0].get_ydata(), result.potential)
    assert f"{result.times[-1]:.3f}" in ax.get_title()


def test_probability_figure(result):
    fig = probability_figure(result, index=2, dpi=50)
    (ax,) = fig.axes
    # four series plus the frame marker
    assert len(ax.lines) == 5
    np.testing.assert_allclose(ax.lines[1].get_ydata(), result.probabilities.transmission)
