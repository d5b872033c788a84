from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, List, Sequence

from pygame.math import Vector3

from ...config import BoidControl, SimulationConfig
from ...rng import DeterministicRng
from ..systems import metrics as metrics_system
from ..systems.alignment import calculate_alignment, clear_alignment
from ..systems.cohesion import calculate_cohesion, clear_cohesion
from ..systems.integrate import apply_forces
from ..systems.separation import calculate_separation, clear_separation
from ..types.metrics import PassCounts, TickMetrics
from ..types.snapshot import RenderFrame, Snapshot, SnapshotMetadata
from ..utils.math3d import IDENTITY, REFERENCE_AXIS, _heading_from_velocity
from .agent import Boid

log = logging.getLogger(__name__)


def tick(boids: Sequence[Boid], control: BoidControl) -> PassCounts:
    """Advance every boid by one fixed step.

    All accumulators are cleared before any pass runs, and all three passes
    finish before the integrator reads them. ``control`` must not change while
    this runs.
    """
    clear_separation(boids)
    clear_alignment(boids)
    clear_cohesion(boids)

    counts = PassCounts(
        separation_pairs=calculate_separation(boids, control),
        alignment_pairs=calculate_alignment(boids, control),
        cohesion_pairs=calculate_cohesion(boids, control),
    )

    apply_forces(boids, control)
    return counts


class Flock:
    def __init__(self, config: SimulationConfig):
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._boids: List[Boid] = []
        self._metrics: TickMetrics | None = None
        self._bootstrap_population()

    @property
    def boids(self) -> List[Boid]:
        return self._boids

    @property
    def control(self) -> BoidControl:
        return self._config.control

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def reset(self) -> None:
        self._boids.clear()
        self._rng.reset()
        self._metrics = None
        self._bootstrap_population()

    def set_parameter(self, name: str, value: float, clamp: bool = False) -> float:
        return self._config.control.set_parameter(name, value, clamp=clamp)

    def step(self, tick_index: int) -> TickMetrics:
        start = perf_counter()
        counts = tick(self._boids, self._config.control)
        duration_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            tick_index,
            counts,
            duration_ms,
            metrics_system.population_stats(self._boids),
        )
        return self._metrics

    def snapshot(self, tick_index: int) -> Snapshot:
        metrics = self._metrics
        if metrics is None:
            metrics = metrics_system.create_metrics(
                tick_index, PassCounts(), 0.0, metrics_system.population_stats(self._boids)
            )
        time_step = self._config.time_step
        metadata = SnapshotMetadata(
            spawn_extent=self._config.spawn_extent,
            sim_dt=time_step,
            tick_rate=0.0 if time_step <= 0 else 1.0 / time_step,
            seed=self._config.seed,
            config_version=self._config.config_version,
        )
        return Snapshot(
            tick=tick_index,
            metrics=metrics,
            agents=[self._boid_snapshot(boid) for boid in self._boids],
            control=self._config.control.as_dict(),
            metadata=metadata,
        )

    def render_frame(self, tick_index: int) -> RenderFrame:
        positions = []
        orientations = []
        facing = []
        for boid in self._boids:
            positions.append([boid.position.x, boid.position.y])
            orientations.append(list(boid.orientation.as_tuple()))
            forward = boid.orientation.rotate(REFERENCE_AXIS)
            facing.append([forward.x, forward.y])
        return RenderFrame(tick=tick_index, positions=positions, orientations=orientations, facing=facing)

    def _bootstrap_population(self) -> None:
        extent = self._config.spawn_extent
        max_speed = self._config.control.max_speed
        for _ in range(self._config.initial_population):
            velocity = Vector3(
                self._rng.next_centered(max_speed),
                self._rng.next_centered(max_speed),
                0.0,
            )
            position = Vector3(
                self._rng.next_centered(extent),
                self._rng.next_centered(extent),
                0.0,
            )
            self._boids.append(Boid(position=position, velocity=velocity, orientation=IDENTITY))
        log.debug("spawned %d boids (seed=%d, extent=%.1f)", len(self._boids), self._config.seed, extent)

    @staticmethod
    def _boid_snapshot(boid: Boid) -> Dict[str, Any]:
        position = boid.position
        velocity = boid.velocity
        forward = boid.orientation.rotate(REFERENCE_AXIS)
        return {
            "x": position.x,
            "y": position.y,
            "z": position.z,
            "vx": velocity.x,
            "vy": velocity.y,
            "vz": velocity.z,
            "speed": velocity.length(),
            "heading": _heading_from_velocity(velocity),
            "orientation": list(boid.orientation.as_tuple()),
            "facing": [forward.x, forward.y, forward.z],
        }
