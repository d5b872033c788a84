from __future__ import annotations

import math
from dataclasses import dataclass

from pygame.math import Vector3

REFERENCE_AXIS = Vector3(0.0, 1.0, 0.0)

_PARALLEL_EPS = 1e-6


@dataclass(frozen=True, slots=True)
class Quat:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.z, self.w)

    def rotate(self, vector: Vector3) -> Vector3:
        # v' = v + 2w(q x v) + 2(q x (q x v))
        q = Vector3(self.x, self.y, self.z)
        t = q.cross(vector) * 2.0
        return vector + t * self.w + q.cross(t)


IDENTITY = Quat()


def _any_orthonormal(vector: Vector3) -> Vector3:
    axis = vector.cross(Vector3(1.0, 0.0, 0.0))
    if axis.length_squared() < 1e-12:
        axis = vector.cross(Vector3(0.0, 0.0, 1.0))
    return axis.normalize()


def rotation_arc(start: Vector3, end: Vector3) -> Quat:
    """Shortest rotation taking unit vector ``start`` onto unit vector ``end``."""
    dot = start.dot(end)
    if dot > 1.0 - _PARALLEL_EPS:
        return IDENTITY
    if dot < -1.0 + _PARALLEL_EPS:
        axis = _any_orthonormal(start)
        return Quat(axis.x, axis.y, axis.z, 0.0)
    c = start.cross(end)
    w = 1.0 + dot
    inv = 1.0 / math.sqrt(c.x * c.x + c.y * c.y + c.z * c.z + w * w)
    return Quat(c.x * inv, c.y * inv, c.z * inv, w * inv)


def _heading_from_velocity(vector: Vector3) -> float:
    if vector.x * vector.x + vector.y * vector.y < 1e-12:
        return 0.0
    return math.atan2(vector.y, vector.x)
