from __future__ import annotations

from typing import Sequence

from pygame.math import Vector3

from ...config import BoidControl
from ..core.agent import Boid
from .pairs import iter_pairs

# Push direction for coincident boids; the right-hand boid gets the negation.
COINCIDENT_AXIS = Vector3(1.0, 0.0, 0.0)


def clear_separation(boids: Sequence[Boid]) -> None:
    for boid in boids:
        boid.separation.avoid_direction = Vector3()


def calculate_separation(boids: Sequence[Boid], control: BoidControl) -> int:
    separation_distance = control.separation_distance
    matched = 0
    for left, right in iter_pairs(boids):
        pos_diff = left.position - right.position
        pos_dist = pos_diff.length()
        if pos_dist < separation_distance:
            push = separation_distance - pos_dist
            direction = pos_diff / pos_dist if pos_dist > 0.0 else COINCIDENT_AXIS
            left.separation.avoid_direction += direction * push
            right.separation.avoid_direction += -direction * push
            matched += 1

    factor = control.separation_factor
    for boid in boids:
        boid.separation.avoid_direction *= factor
    return matched
