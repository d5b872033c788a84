from __future__ import annotations

import math
from typing import Sequence

from pygame.math import Vector3

from ...config import BoidControl
from ..core.agent import Boid
from ..utils.math3d import REFERENCE_AXIS, rotation_arc

# Empirical "feel" constants; speed drifts into [max_speed / 5, max_speed).
SPEED_DECAY = 0.995
SPEED_BOOST = 1.005
MIN_SPEED_DIVISOR = 5.0


def return_force(position: Vector3, return_factor: float) -> Vector3:
    distance = position.length()
    # log2 is undefined at the origin and pushes outward inside the unit sphere.
    if distance <= 1.0:
        return Vector3()
    return position * (-math.log2(distance) * return_factor / distance)


def regulate_speed(velocity: Vector3, max_speed: float) -> None:
    speed = velocity.length()
    if speed >= max_speed:
        velocity *= SPEED_DECAY
    elif speed < max_speed / MIN_SPEED_DIVISOR:
        velocity *= SPEED_BOOST


def apply_forces(boids: Sequence[Boid], control: BoidControl) -> None:
    for boid in boids:
        boid.velocity += (
            boid.separation.avoid_direction
            + boid.alignment.neighborhood_alignment
            + boid.cohesion.neighborhood_cohesion
            + return_force(boid.position, control.return_factor)
        )
        regulate_speed(boid.velocity, control.max_speed)

        speed_sq = boid.velocity.length_squared()
        if speed_sq > 1e-12:
            boid.orientation = rotation_arc(REFERENCE_AXIS, boid.velocity / math.sqrt(speed_sq))
        boid.position += boid.velocity
