from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class PassCounts:
    separation_pairs: int = 0
    alignment_pairs: int = 0
    cohesion_pairs: int = 0


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    separation_pairs: int
    alignment_pairs: int
    cohesion_pairs: int
    average_speed: float
    min_speed: float
    max_speed: float
    average_distance: float
    tick_duration_ms: float = 0.0
