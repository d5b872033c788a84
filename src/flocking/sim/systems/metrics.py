from __future__ import annotations

from typing import Sequence, Tuple

from ..core.agent import Boid
from ..types.metrics import PassCounts, TickMetrics


def population_stats(boids: Sequence[Boid]) -> Tuple[int, float, float, float, float]:
    population = len(boids)
    if population == 0:
        return 0, 0.0, 0.0, 0.0, 0.0
    speed_sum = 0.0
    min_speed = float("inf")
    max_speed = 0.0
    distance_sum = 0.0
    for boid in boids:
        speed = boid.velocity.length()
        speed_sum += speed
        if speed < min_speed:
            min_speed = speed
        if speed > max_speed:
            max_speed = speed
        distance_sum += boid.position.length()
    return population, speed_sum / population, min_speed, max_speed, distance_sum / population


def create_metrics(
    tick: int,
    counts: PassCounts,
    duration_ms: float,
    stats: Tuple[int, float, float, float, float],
) -> TickMetrics:
    population, avg_speed, min_speed, max_speed, avg_distance = stats
    return TickMetrics(
        tick=tick,
        population=population,
        separation_pairs=counts.separation_pairs,
        alignment_pairs=counts.alignment_pairs,
        cohesion_pairs=counts.cohesion_pairs,
        average_speed=avg_speed,
        min_speed=min_speed,
        max_speed=max_speed,
        average_distance=avg_distance,
        tick_duration_ms=duration_ms,
    )
