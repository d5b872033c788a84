from __future__ import annotations

import asyncio
import json
import logging
import math
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import asdict, replace
from typing import AsyncIterator, Deque, Dict, Tuple

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..config import AppConfig, SimulationConfig
from ..sim.core.world import Flock

log = logging.getLogger(__name__)

# Unacknowledged frames older than this are dropped instead of replayed.
FRAME_BACKLOG_SECONDS = 0.5
SPEED_LIMITS = (0.1, 5.0)


def backlog_size(time_step: float, broadcast_interval: int) -> int:
    period = time_step * max(1, broadcast_interval)
    if period <= 0.0:
        return 1
    return max(1, math.ceil(FRAME_BACKLOG_SECONDS / period))


class FlockController:
    """Drives a ``Flock`` on the event loop and fans render frames out to viewers.

    Steps run in a worker thread under ``_step_lock``; parameter writes and
    reads of the flock take the same lock, so tuning always lands between ticks.
    """

    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1):
        self.config = config
        self.flock = Flock(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self._frames: Deque[Tuple[int, str]] = deque(
            maxlen=backlog_size(config.time_step, self.broadcast_interval)
        )
        self._cursors: Dict[WebSocket, int] = {}
        self._step_lock = asyncio.Lock()
        self._runner: asyncio.Task | None = None

    @property
    def viewers(self) -> int:
        return len(self._cursors)

    @property
    def pending_frames(self) -> int:
        return len(self._frames)

    async def start(self) -> None:
        if self._runner is None:
            self._runner = asyncio.create_task(self._run())
        self.running = True

    async def shutdown(self) -> None:
        self.running = False
        if self._runner is not None:
            self._runner.cancel()
            try:
                await self._runner
            except asyncio.CancelledError:
                pass
            self._runner = None

    async def restart(self) -> None:
        async with self._step_lock:
            self.flock.reset()
            self.tick = 0
            self._frames.clear()
            for viewer in self._cursors:
                self._cursors[viewer] = -1
        await self.publish_frame()

    async def set_parameters(self, values: Dict[str, object], clamp: bool = False) -> Dict[str, float]:
        # A bad entry rejects the whole batch.
        async with self._step_lock:
            control = self.flock.control
            staged = replace(control)
            for name, value in values.items():
                staged.set_parameter(name, value, clamp=clamp)
            applied = staged.as_dict()
            for name, value in applied.items():
                setattr(control, name, value)
        log.info("tuning applied at tick %d: %s", self.tick, sorted(values))
        return applied

    async def describe(self) -> Dict[str, object]:
        async with self._step_lock:
            snapshot = self.flock.snapshot(self.tick)
        return {
            "running": self.running,
            "tick": self.tick,
            "population": snapshot.metrics.population,
            "viewers": self.viewers,
            "metrics": asdict(snapshot.metrics),
            "metadata": asdict(snapshot.metadata),
        }

    async def advance(self) -> None:
        async with self._step_lock:
            await asyncio.to_thread(self.flock.step, self.tick)
            self.tick += 1
            due = self.tick % self.broadcast_interval == 0
        if due:
            await self.publish_frame()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step / self.speed_multiplier)
            if self.running:
                await self.advance()

    async def publish_frame(self) -> None:
        if not self._cursors:
            return
        async with self._step_lock:
            frame = self.flock.render_frame(self.tick)
        self._frames.append((frame.tick, json.dumps(frame.to_message())))

        disconnected = []
        for viewer in list(self._cursors):
            try:
                await self._deliver(viewer)
            except (WebSocketDisconnect, RuntimeError):
                disconnected.append(viewer)
        for viewer in disconnected:
            log.debug("viewer went away, %d left", len(self._cursors) - 1)
            self.detach(viewer)

    async def _deliver(self, viewer: WebSocket) -> None:
        cursor = self._cursors.get(viewer, -1)
        for frame_tick, message in list(self._frames):
            if frame_tick > cursor:
                await viewer.send_text(message)
                cursor = frame_tick
        self._cursors[viewer] = cursor

    def acknowledge(self, tick: int) -> None:
        while self._frames and self._frames[0][0] <= tick:
            self._frames.popleft()

    async def attach(self, viewer: WebSocket) -> None:
        self._cursors[viewer] = -1
        async with self._step_lock:
            frame = self.flock.render_frame(self.tick)
        await viewer.send_text(json.dumps(frame.to_message()))
        self._cursors[viewer] = frame.tick

    def detach(self, viewer: WebSocket) -> None:
        self._cursors.pop(viewer, None)
        if not self._cursors:
            self._frames.clear()


app_config = AppConfig()
controller = FlockController(app_config.simulation, broadcast_interval=app_config.broadcast_interval)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    await controller.start()
    yield
    await controller.shutdown()


app = FastAPI(title="Boids Flocking Simulation", lifespan=lifespan)


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=400)


@app.get("/api/status")
async def status() -> JSONResponse:
    return JSONResponse(await controller.describe())


@app.get("/api/params")
async def get_params() -> JSONResponse:
    control = controller.flock.control
    ranges = {name: list(bounds) for name, bounds in control.parameter_ranges().items()}
    return JSONResponse({"values": control.as_dict(), "ranges": ranges})


@app.post("/api/params")
async def set_params(payload: dict) -> JSONResponse:
    values = payload.get("values", {})
    if not isinstance(values, dict):
        return _bad_request("values must be an object")
    try:
        applied = await controller.set_parameters(values, clamp=bool(payload.get("clamp", False)))
    except KeyError as exc:
        return _bad_request(str(exc.args[0]))
    except ValueError as exc:
        return _bad_request(str(exc))
    return JSONResponse({"values": applied})


@app.post("/api/control/{action}")
async def control_run(action: str) -> JSONResponse:
    if action == "start":
        controller.running = True
    elif action == "stop":
        controller.running = False
    elif action == "reset":
        await controller.restart()
    else:
        return JSONResponse({"error": f"Unknown action: {action}"}, status_code=404)
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/speed")
async def set_speed(payload: dict) -> JSONResponse:
    raw = payload.get("multiplier", 1.0)
    try:
        multiplier = float(raw)
    except (TypeError, ValueError):
        return _bad_request(f"multiplier expects a number, got {raw!r}")
    if not math.isfinite(multiplier):
        return _bad_request(f"multiplier must be finite, got {multiplier}")
    low, high = SPEED_LIMITS
    controller.speed_multiplier = max(low, min(high, multiplier))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.websocket("/ws")
async def frames(websocket: WebSocket) -> None:
    await websocket.accept()
    await controller.attach(websocket)
    try:
        while True:
            try:
                message = json.loads(await websocket.receive_text())
            except json.JSONDecodeError:
                continue
            if isinstance(message, dict) and message.get("type") == "ack" and isinstance(message.get("tick"), int):
                controller.acknowledge(message["tick"])
    except WebSocketDisconnect:
        pass
    finally:
        controller.detach(websocket)


__all__ = ["app", "controller", "FlockController"]
