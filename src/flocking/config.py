from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml

log = logging.getLogger(__name__)

# Hint ranges for a tuning UI. None means unbounded on that side.
PARAMETER_RANGES: Dict[str, Tuple[Optional[float], Optional[float]]] = {
    "max_speed": (5.0, None),
    "vision_range": (0.0, None),
    "separation_distance": (0.0, None),
    "separation_factor": (0.0, 0.1),
    "alignment_factor": (0.0, 1.0),
    "cohesion_factor": (0.0, 0.1),
    "return_factor": (0.0, 1.0),
}


@dataclass
class BoidControl:
    max_speed: float = 5.0
    vision_range: float = 25.0
    separation_distance: float = 10.0
    separation_factor: float = 0.05
    alignment_factor: float = 0.05
    cohesion_factor: float = 0.005
    return_factor: float = 0.001

    @staticmethod
    def parameter_ranges() -> Dict[str, Tuple[Optional[float], Optional[float]]]:
        return dict(PARAMETER_RANGES)

    def set_parameter(self, name: str, value: float, clamp: bool = False) -> float:
        """Overwrite one tunable scalar and return the value actually stored.

        Values outside the hint range are accepted unless ``clamp`` is set; the
        force rules stay finite for any finite input.
        """
        if name not in PARAMETER_RANGES:
            raise KeyError(f"Unknown boid control parameter: {name}")
        try:
            number = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Parameter {name} expects a number, got {value!r}") from exc
        if not math.isfinite(number):
            raise ValueError(f"Parameter {name} must be finite, got {number}")
        if clamp:
            low, high = PARAMETER_RANGES[name]
            if low is not None:
                number = max(low, number)
            if high is not None:
                number = min(high, number)
        previous = getattr(self, name)
        setattr(self, name, number)
        log.debug("boid control %s: %s -> %s", name, previous, number)
        return number

    def as_dict(self) -> Dict[str, float]:
        return {item.name: getattr(self, item.name) for item in fields(self)}


@dataclass
class SimulationConfig:
    time_step: float = 1.0 / 64.0
    initial_population: int = 300
    spawn_extent: float = 1000.0
    seed: int = 42
    config_version: str = "v1"
    control: BoidControl = field(default_factory=BoidControl)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2


def load_config(raw: dict) -> SimulationConfig:
    control = BoidControl(**(raw.get("control") or {}))
    sim_values = {k: v for k, v in raw.items() if k != "control"}
    return SimulationConfig(control=control, **sim_values)
