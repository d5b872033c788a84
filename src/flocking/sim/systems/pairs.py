from __future__ import annotations

from itertools import combinations
from typing import Iterator, Sequence, Tuple

from ..core.agent import Boid


def iter_pairs(boids: Sequence[Boid]) -> Iterator[Tuple[Boid, Boid]]:
    # Each unordered pair once; callers update both sides in the same visit.
    return combinations(boids, 2)
