from __future__ import annotations

from typing import Sequence

from pygame.math import Vector3

from ...config import BoidControl
from ..core.agent import Boid
from .pairs import iter_pairs


def clear_cohesion(boids: Sequence[Boid]) -> None:
    for boid in boids:
        boid.cohesion.neighborhood_cohesion = Vector3()
        boid.cohesion.neighbors = 0


def calculate_cohesion(boids: Sequence[Boid], control: BoidControl) -> int:
    vision_range = control.vision_range
    matched = 0
    for left, right in iter_pairs(boids):
        if (left.position - right.position).length() < vision_range:
            left.cohesion.neighbors += 1
            left.cohesion.neighborhood_cohesion += right.position

            right.cohesion.neighbors += 1
            right.cohesion.neighborhood_cohesion += left.position
            matched += 1

    factor = control.cohesion_factor
    for boid in boids:
        cohesion = boid.cohesion
        if cohesion.neighbors > 0:
            average_position = cohesion.neighborhood_cohesion / cohesion.neighbors
            cohesion.neighborhood_cohesion = (average_position - boid.position) * factor
    return matched
