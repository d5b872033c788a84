from __future__ import annotations

from typing import Sequence

from pygame.math import Vector3

from ...config import BoidControl
from ..core.agent import Boid
from .pairs import iter_pairs


def clear_alignment(boids: Sequence[Boid]) -> None:
    for boid in boids:
        boid.alignment.neighborhood_alignment = Vector3()
        boid.alignment.neighbors = 0


def calculate_alignment(boids: Sequence[Boid], control: BoidControl) -> int:
    """Steer each boid toward the mean velocity of the boids it can see.

    Neighbor velocities are summed pairwise, then each boid with at least one
    neighbor replaces the sum with ``(mean - own_velocity) * alignment_factor``.
    Returns the number of pairs inside ``vision_range``.
    """
    vision_range = control.vision_range
    matched = 0
    for left, right in iter_pairs(boids):
        if (left.position - right.position).length() < vision_range:
            left.alignment.neighbors += 1
            left.alignment.neighborhood_alignment += right.velocity

            right.alignment.neighbors += 1
            right.alignment.neighborhood_alignment += left.velocity
            matched += 1

    factor = control.alignment_factor
    for boid in boids:
        alignment = boid.alignment
        if alignment.neighbors > 0:
            average_alignment = alignment.neighborhood_alignment / alignment.neighbors
            alignment.neighborhood_alignment = (average_alignment - boid.velocity) * factor
    return matched
