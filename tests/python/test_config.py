from __future__ import annotations

import math
from pathlib import Path

import pytest

from flocking.config import BoidControl, SimulationConfig, load_config

ROOT = Path(__file__).resolve().parents[2]


def test_defaults_match_original_tuning():
    control = BoidControl()
    assert control.as_dict() == {
        "max_speed": 5.0,
        "vision_range": 25.0,
        "separation_distance": 10.0,
        "separation_factor": 0.05,
        "alignment_factor": 0.05,
        "cohesion_factor": 0.005,
        "return_factor": 0.001,
    }


def test_set_parameter_accepts_out_of_range_values_by_default():
    control = BoidControl()
    assert control.set_parameter("separation_factor", 0.5) == 0.5
    assert control.separation_factor == 0.5
    assert control.set_parameter("vision_range", "-3") == -3.0


def test_set_parameter_clamps_to_hint_range_on_request():
    control = BoidControl()
    assert control.set_parameter("cohesion_factor", 2.0, clamp=True) == 0.1
    assert control.set_parameter("max_speed", 1.0, clamp=True) == 5.0
    assert control.set_parameter("vision_range", 1000.0, clamp=True) == 1000.0


def test_set_parameter_rejects_unknown_names():
    control = BoidControl()
    with pytest.raises(KeyError):
        control.set_parameter("turn_rate", 1.0)


@pytest.mark.parametrize("value", ["fast", None, math.nan, math.inf])
def test_set_parameter_rejects_non_finite_values(value):
    control = BoidControl()
    with pytest.raises(ValueError):
        control.set_parameter("max_speed", value)
    assert control.max_speed == 5.0


def test_parameter_ranges_cover_every_field():
    ranges = BoidControl.parameter_ranges()
    assert set(ranges) == set(BoidControl().as_dict())
    assert ranges["alignment_factor"] == (0.0, 1.0)


def test_load_config_merges_partial_control():
    config = load_config({"seed": 9, "initial_population": 12, "control": {"vision_range": 40.0}})
    assert config.seed == 9
    assert config.initial_population == 12
    assert config.control.vision_range == 40.0
    assert config.control.max_speed == 5.0


def test_load_config_rejects_unknown_keys():
    with pytest.raises(TypeError):
        load_config({"world_size": 10.0})


def test_from_yaml_reads_nested_control(tmp_path):
    path = tmp_path / "flock.yaml"
    path.write_text("seed: 3\ncontrol:\n  max_speed: 8.0\n  return_factor: 0.01\n")
    config = SimulationConfig.from_yaml(path)
    assert config.seed == 3
    assert config.control.max_speed == 8.0
    assert config.control.return_factor == 0.01


def test_from_yaml_accepts_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert SimulationConfig.from_yaml(path) == SimulationConfig()


@pytest.mark.config_change
def test_shipped_config_matches_defaults():
    config = SimulationConfig.from_yaml(ROOT / "configs" / "flock.yaml")
    assert config == SimulationConfig()
