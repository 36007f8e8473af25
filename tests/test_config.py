import math
from dataclasses import replace

import pytest

from qm_tunneling.config import SimulationConfig
from qm_tunneling.errors import ConfigurationError


def test_defaults_are_valid(scenario_config):
    assert scenario_config.validate() is scenario_config
    assert scenario_config.n_steps == 10000
    assert math.isclose(scenario_config.dx, 20.0 / 499)


@pytest.mark.parametrize(
    "changes",
    [
        {"n_points": 1},
        {"n_points": 0},
        {"n_points": 10.5},
        {"x_max": -10.0},
        {"x_min": 10.0},
        {"dt": 0.0},
        {"dt": -1e-4},
        {"t_end": 0.0},
        {"t_end": 1e-5},
        {"barrier_width": -1.0},
        {"sigma": 0.0},
        {"hbar": 0.0},
        {"mass": -1.0},
        {"record_stride": 0},
        {"progress_interval": 0},
        {"k0": float("nan")},
        {"x0": float("inf")},
        {"n_points": "500"},
        {"n_points": True},
    ],
)
def test_invalid_configuration_rejected(scenario_config, changes):
    with pytest.raises(ConfigurationError):
        replace(scenario_config, **changes).validate()


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError):
        SimulationConfig(n_points=1).validate()


def test_from_mapping_ignores_unknown_keys():
    config = SimulationConfig.from_mapping({"n_points": 128, "L": 20.0, "play": True})
    assert config.n_points == 128
    assert config.x_min == -10.0


def test_n_steps_rounds_to_nearest():
    config = SimulationConfig(t_start=0.0, t_end=0.3, dt=0.1)
    assert config.n_steps == 3
    assert config.as_dict()["dt"] == 0.1
