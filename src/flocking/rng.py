from __future__ import annotations

import random


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_centered(self, extent: float) -> float:
        return (self._random.random() - 0.5) * extent
