from __future__ import annotations

import math

from pygame.math import Vector3
from pytest import approx

from flocking.config import BoidControl, SimulationConfig
from flocking.sim.core.agent import Boid
from flocking.sim.core.world import Flock, tick
from flocking.sim.utils.math3d import IDENTITY


def _positions(flock: Flock) -> list[tuple[float, float, float]]:
    return [tuple(boid.position) for boid in flock.boids]


def test_deterministic_steps():
    config_a = SimulationConfig(seed=1234, initial_population=30)
    config_b = SimulationConfig(seed=1234, initial_population=30)
    flock_a = Flock(config_a)
    flock_b = Flock(config_b)
    for step in range(20):
        flock_a.step(step)
        flock_b.step(step)
    assert _positions(flock_a) == _positions(flock_b)


def test_spawn_respects_extent_and_speed_bounds():
    config = SimulationConfig(seed=5, initial_population=200, spawn_extent=400.0)
    flock = Flock(config)

    assert len(flock.boids) == 200
    half_speed = config.control.max_speed / 2.0
    for boid in flock.boids:
        assert abs(boid.position.x) <= 200.0
        assert abs(boid.position.y) <= 200.0
        assert boid.position.z == 0.0
        assert abs(boid.velocity.x) <= half_speed
        assert abs(boid.velocity.y) <= half_speed
        assert boid.velocity.z == 0.0
        assert boid.orientation == IDENTITY


def test_reset_restores_initial_population():
    flock = Flock(SimulationConfig(seed=8, initial_population=25))
    initial = _positions(flock)
    for step in range(5):
        flock.step(step)
    assert _positions(flock) != initial

    flock.reset()

    assert _positions(flock) == initial
    assert flock.metrics is None


def test_step_reports_pair_counts_and_speeds():
    config = SimulationConfig(seed=2, initial_population=0)
    flock = Flock(config)
    flock.boids.extend(
        [
            Boid(position=Vector3(0.0, 0.0, 0.0), velocity=Vector3(1.0, 0.0, 0.0)),
            Boid(position=Vector3(5.0, 0.0, 0.0), velocity=Vector3(-1.0, 0.0, 0.0)),
            Boid(position=Vector3(300.0, 0.0, 0.0), velocity=Vector3(0.0, 2.0, 0.0)),
        ]
    )

    metrics = flock.step(0)

    assert metrics.tick == 0
    assert metrics.population == 3
    assert metrics.separation_pairs == 1
    assert metrics.alignment_pairs == 1
    assert metrics.cohesion_pairs == 1
    assert metrics.min_speed <= metrics.average_speed <= metrics.max_speed
    assert metrics.tick_duration_ms >= 0.0
    assert flock.metrics is metrics


def test_snapshot_contains_metadata_and_render_state():
    config = SimulationConfig(seed=7, time_step=0.5, initial_population=3, spawn_extent=42.0)
    flock = Flock(config)
    flock.step(0)
    snapshot = flock.snapshot(1)

    assert snapshot.tick == 1
    assert snapshot.metadata.spawn_extent == approx(42.0)
    assert snapshot.metadata.sim_dt == approx(0.5)
    assert snapshot.metadata.tick_rate == approx(2.0)
    assert snapshot.metadata.seed == 7
    assert snapshot.control == config.control.as_dict()
    assert snapshot.metrics.population == 3

    payload = snapshot.agents[0]
    boid = flock.boids[0]
    for key in ["x", "y", "z", "vx", "vy", "vz", "speed", "heading", "orientation"]:
        assert key in payload
    assert payload["x"] == approx(boid.position.x)
    assert payload["speed"] == approx(boid.velocity.length())
    assert payload["heading"] == approx(math.atan2(boid.velocity.y, boid.velocity.x))
    assert payload["orientation"] == approx(list(boid.orientation.as_tuple()))


def test_snapshot_before_first_step_has_zero_counts():
    flock = Flock(SimulationConfig(seed=1, initial_population=4))
    snapshot = flock.snapshot(0)
    assert snapshot.metrics.population == 4
    assert snapshot.metrics.alignment_pairs == 0
    assert snapshot.metrics.tick_duration_ms == 0.0


def test_parameters_changed_between_ticks_take_effect():
    flock = Flock(SimulationConfig(seed=3, initial_population=0))
    flock.boids.extend(
        [
            Boid(position=Vector3(0.0, 0.0, 0.0), velocity=Vector3(1.0, 0.0, 0.0)),
            Boid(position=Vector3(20.0, 0.0, 0.0), velocity=Vector3(1.0, 0.0, 0.0)),
        ]
    )

    assert flock.step(0).alignment_pairs == 1
    flock.set_parameter("vision_range", 5.0)
    assert flock.control.vision_range == 5.0
    assert flock.step(1).alignment_pairs == 0


def test_tick_driver_on_empty_and_single_populations():
    control = BoidControl()
    counts = tick([], control)
    assert (counts.separation_pairs, counts.alignment_pairs, counts.cohesion_pairs) == (0, 0, 0)

    solo = Boid(position=Vector3(10.0, 0.0, 0.0), velocity=Vector3(0.0, 2.0, 0.0))
    counts = tick([solo], control)
    assert counts.alignment_pairs == 0
    assert solo.alignment.neighbors == 0
    assert tuple(solo.alignment.neighborhood_alignment) == (0.0, 0.0, 0.0)
    assert solo.velocity.x < 0.0


def test_render_frame_faces_direction_of_travel():
    flock = Flock(SimulationConfig(seed=4, initial_population=0))
    flock.boids.append(Boid(position=Vector3(50.0, 0.0, 0.0), velocity=Vector3(0.0, -3.0, 0.0)))
    flock.step(0)

    frame = flock.render_frame(1)
    boid = flock.boids[0]
    direction = boid.velocity.normalize()

    assert frame.tick == 1
    assert frame.positions == [[boid.position.x, boid.position.y]]
    assert frame.orientations == [list(boid.orientation.as_tuple())]
    assert frame.facing[0] == approx([direction.x, direction.y], abs=1e-6)
    assert flock.snapshot(1).agents[0]["facing"] == approx([direction.x, direction.y, 0.0], abs=1e-6)
