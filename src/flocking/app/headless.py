from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from dataclasses import replace
from pathlib import Path
from typing import Optional

from ..config import SimulationConfig
from ..sim.core.world import Flock
from ..sim.types.metrics import TickMetrics

log = logging.getLogger(__name__)


_BASIC_HEADER = [
    "tick",
    "population",
    "separation_pairs",
    "alignment_pairs",
    "cohesion_pairs",
    "avg_speed",
    "tick_ms",
]

_DETAILED_HEADER = [
    "tick",
    "population",
    "separation_pairs",
    "alignment_pairs",
    "cohesion_pairs",
    "avg_speed",
    "tick_ms",
    "min_speed",
    "max_speed",
    "avg_distance",
    "pairs_total",
    "alignment_neighbors_per_agent",
    "separation_neighbors_per_agent",
    "tick_ms_per_agent",
    "fast_agents",
    "slow_agents",
]


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.separation_pairs,
        metrics.alignment_pairs,
        metrics.cohesion_pairs,
        f"{metrics.average_speed:.4f}",
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(flock: Flock, metrics: TickMetrics, tick_ms: float) -> list[object]:
    population = metrics.population
    pairs_total = population * (population - 1) // 2
    if population <= 0:
        alignment_per_agent = 0.0
        separation_per_agent = 0.0
        tick_ms_per_agent = 0.0
        fast_agents = 0
        slow_agents = 0
    else:
        # Each matched pair contributes a neighbor to both boids.
        alignment_per_agent = 2.0 * metrics.alignment_pairs / population
        separation_per_agent = 2.0 * metrics.separation_pairs / population
        tick_ms_per_agent = tick_ms / population

        max_speed = flock.control.max_speed
        min_speed = max_speed / 5.0
        fast_agents = 0
        slow_agents = 0
        for boid in flock.boids:
            speed = boid.velocity.length()
            if speed >= max_speed:
                fast_agents += 1
            elif speed < min_speed:
                slow_agents += 1

    return _format_basic_row(metrics, tick_ms) + [
        f"{metrics.min_speed:.4f}",
        f"{metrics.max_speed:.4f}",
        f"{metrics.average_distance:.4f}",
        pairs_total,
        f"{alignment_per_agent:.4f}",
        f"{separation_per_agent:.4f}",
        f"{tick_ms_per_agent:.4f}",
        fast_agents,
        slow_agents,
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p95": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    count = len(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / count),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p95": _percentile(sorted_values, 0.95),
        "p99": _percentile(sorted_values, 0.99),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 5000,
    config: Optional[SimulationConfig] = None,
    population: Optional[int] = None,
) -> Flock:
    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    config = replace(config, control=replace(config.control)) if config is not None else SimulationConfig()
    if seed is not None:
        config.seed = seed
    if population is not None:
        config.initial_population = population
    flock = Flock(config)
    log.info("headless run: %d steps, %d boids, seed %d", steps, config.initial_population, config.seed)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    alignment_series: list[float] = []
    separation_series: list[float] = []
    speed_series: list[float] = []
    max_tick_ms = (-1.0, -1)

    try:
        for tick in range(steps):
            metrics = flock.step(tick)
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms

            if summary_path:
                tick_ms_series.append(tick_ms)
                alignment_series.append(float(metrics.alignment_pairs))
                separation_series.append(float(metrics.separation_pairs))
                speed_series.append(metrics.average_speed)
                if tick_ms > max_tick_ms[0]:
                    max_tick_ms = (tick_ms, tick)

            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(flock, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "population": config.initial_population,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "control": config.control.as_dict(),
            "tick_ms": _summary_stats(tick_ms_series),
            "alignment_pairs": _summary_stats(alignment_series),
            "separation_pairs": _summary_stats(separation_series),
            "avg_speed": _summary_stats(speed_series),
            "peaks": {
                "tick_ms": {"value": float(max_tick_ms[0]), "tick": max_tick_ms[1]},
            },
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail_slice]),
                "alignment_pairs": _summary_stats(alignment_series[tail_slice]),
                "avg_speed": _summary_stats(speed_series[tail_slice]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
        log.info("summary written to %s", summary_path)
    return flock


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless boids simulation")
    parser.add_argument("--steps", type=int, default=600)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--population", type=int, default=None, help="Override the initial boid count")
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=5000,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    config = SimulationConfig.from_yaml(args.config) if args.config else None
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config=config,
        population=args.population,
    )


if __name__ == "__main__":
    main()
