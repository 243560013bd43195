from __future__ import annotations

import asyncio
import json
import logging
import os
from collections import deque
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import AppConfig, SimulationConfig
from ..sim.core.errors import InvalidInput
from ..sim.core.world import MoveResult, World

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "FLOCKPUZZLE_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[3] / "config" / "server.yaml"


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


def _move_payload(result: MoveResult) -> Dict[str, Any]:
    return {
        "moved": result.moved,
        "tile_id": result.tile_id,
        "source": list(result.source),
        "target": None if result.target is None else list(result.target),
        "solved": result.solved,
    }


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1):
        self.config = config
        self.world = World(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque()
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._broadcast_task: asyncio.Task | None = None
        self._pending_events: list[Dict[str, Any]] = []
        self.world.on_solved(self._on_solved)

    def _on_solved(self, world: World) -> None:
        self._pending_events.append({"type": "solved", "moves": world.moves})

    async def start(self) -> None:
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._loop())
        self.running = True
        logger.info("Simulation started")

    async def stop(self) -> None:
        self.running = False
        logger.info("Simulation stopped")

    async def reset(self) -> None:
        async with self._lock:
            self.world.reset()
            self.tick = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step / self.speed_multiplier)
            if not self.running:
                continue
            async with self._lock:
                self.world.step(self.tick)
                self.tick += 1
            if self.tick % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def set_cursor(self, x: Any, y: Any) -> None:
        async with self._lock:
            self.world.set_cursor((x, y))

    async def clear_cursor(self) -> None:
        async with self._lock:
            self.world.set_cursor(None)

    async def toggle_flow(self) -> str:
        async with self._lock:
            return self.world.toggle_flow_policy().value

    async def move_tile(self, row: Any, col: Any) -> MoveResult:
        async with self._lock:
            result = self.world.select_tile(row, col)
        await self._flush_events()
        return result

    async def shuffle(self, times: int | None = None) -> int:
        async with self._lock:
            return self.world.shuffle_puzzle(times)

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    async def handle_message(self, payload: Dict[str, Any]) -> None:
        kind = payload.get("type")
        if kind == "ack":
            tick = payload.get("tick")
            if isinstance(tick, int):
                await self.acknowledge(tick)
        elif kind == "cursor":
            if payload.get("x") is None and payload.get("y") is None:
                await self.clear_cursor()
            else:
                await self.set_cursor(payload.get("x"), payload.get("y"))
        elif kind == "toggle_flow":
            await self.toggle_flow()
        elif kind == "move":
            await self.move_tile(payload.get("row"), payload.get("col"))

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.world.snapshot(self.tick)
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": None if snapshot.metrics is None else asdict(snapshot.metrics),
                "boids": snapshot.boids,
                "puzzle": asdict(snapshot.puzzle),
                "layout": asdict(snapshot.layout),
                "metadata": asdict(snapshot.metadata),
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in list(self.clients):
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)

    async def _flush_events(self) -> None:
        events, self._pending_events = self._pending_events, []
        if not events:
            return
        stale: Set[WebSocket] = set()
        for event in events:
            text = json.dumps(event)
            for client in list(self.clients):
                try:
                    await client.send_text(text)
                except WebSocketDisconnect:
                    stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


def load_server_config(path: Path | None = None) -> AppConfig:
    if path is None:
        path = Path(os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH))
    if not path.is_file():
        logger.warning("Config %s not found, using built-in defaults", path)
        return AppConfig()
    return AppConfig.from_yaml(path)


app = FastAPI(title="Flock Puzzle")
app_config = load_server_config()
controller = SimulationController(app_config.simulation, broadcast_interval=app_config.broadcast_interval)


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    metrics = controller.world.metrics
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "population": len(controller.world.flock),
            "flow_policy": controller.world.flock.flow_policy.value,
            "metrics": None if metrics is None else asdict(metrics),
        }
    )


@app.get("/api/puzzle")
async def puzzle_state() -> JSONResponse:
    snapshot = controller.world.snapshot(controller.tick)
    return JSONResponse(asdict(snapshot.puzzle))


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    controller.running = True
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    controller.running = False
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.post("/api/cursor")
async def set_cursor(payload: dict) -> JSONResponse:
    try:
        if payload.get("x") is None and payload.get("y") is None:
            await controller.clear_cursor()
        else:
            await controller.set_cursor(payload.get("x"), payload.get("y"))
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    cursor = controller.world.flock.cursor
    return JSONResponse({"cursor": None if cursor is None else [cursor.x, cursor.y]})


@app.post("/api/flow/toggle")
async def toggle_flow() -> JSONResponse:
    return JSONResponse({"flow_policy": await controller.toggle_flow()})


@app.post("/api/puzzle/move")
async def move_tile(payload: dict) -> JSONResponse:
    try:
        result = await controller.move_tile(payload.get("row"), payload.get("col"))
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return JSONResponse(_move_payload(result))


@app.post("/api/puzzle/shuffle")
async def shuffle_puzzle(payload: dict | None = None) -> JSONResponse:
    times = None if not payload else payload.get("times")
    try:
        moves = await controller.shuffle(times)
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return JSONResponse({"moves": moves, "grid": controller.world.puzzle.grid})


@app.get("/api/tiles/{tile_id}")
async def tile_view(tile_id: int) -> JSONResponse:
    try:
        view = controller.world.tile_view(tile_id)
    except InvalidInput as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    viewport = controller.world.layout.viewport(tile_id)
    return JSONResponse(
        {
            "tile_id": tile_id,
            "viewport": asdict(viewport),
            "boids": [
                {"id": b.id, "x": b.x, "y": b.y, "rotation": b.rotation, "group": b.group.value} for b in view
            ],
        }
    )


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    await controller._send_pending_snapshots(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if not isinstance(payload, dict):
                continue
            try:
                await controller.handle_message(payload)
            except InvalidInput as exc:
                logger.warning("Ignoring malformed %s message: %s", payload.get("type"), exc)
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller", "load_server_config"]
