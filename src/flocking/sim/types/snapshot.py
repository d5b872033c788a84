from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    agents: List[Dict[str, Any]]
    control: Dict[str, float]
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotMetadata:
    spawn_extent: float
    sim_dt: float
    tick_rate: float
    seed: int
    config_version: str


@dataclass(slots=True)
class RenderFrame:
    tick: int
    positions: List[List[float]]
    orientations: List[List[float]]
    facing: List[List[float]]

    def to_message(self) -> Dict[str, Any]:
        return {
            "type": "frame",
            "tick": self.tick,
            "positions": self.positions,
            "orientations": self.orientations,
            "facing": self.facing,
        }
