from __future__ import annotations

from dataclasses import dataclass, field

from pygame.math import Vector3

from ..utils.math3d import IDENTITY, Quat


@dataclass(slots=True)
class Separation:
    avoid_direction: Vector3 = field(default_factory=Vector3)


@dataclass(slots=True)
class Alignment:
    neighborhood_alignment: Vector3 = field(default_factory=Vector3)
    neighbors: int = 0


@dataclass(slots=True)
class Cohesion:
    neighborhood_cohesion: Vector3 = field(default_factory=Vector3)
    neighbors: int = 0


@dataclass(slots=True)
class Boid:
    position: Vector3
    velocity: Vector3
    orientation: Quat = IDENTITY
    separation: Separation = field(default_factory=Separation)
    alignment: Alignment = field(default_factory=Alignment)
    cohesion: Cohesion = field(default_factory=Cohesion)
