"""
gazeboard/ui/web_app.py — FastAPI control surface for Gazeboard.

A carer dashboard at http://localhost:<port>/ plus a WebSocket at /ws that
streams scan events. The switch routes are a full input device: a button
wired to a browser or a script drives the board without any camera.

REST endpoints
--------------
GET  /             HTML dashboard
GET  /health       Liveness and scanner mode
GET  /state        Board snapshot + scanner transition history
POST /start        Start listening
POST /stop         Stop from any state
POST /switch/down  Switch pressed
POST /switch/up    Switch released
POST /speed        Set scan speed  {"seconds": 1.2}

WebSocket
---------
Server → browser, one JSON object per message:
  {"type": "snapshot",  ...}                        on connect
  {"type": "highlight", "menu": "letter1", "index": 2, "label": "C"}
  {"type": "selected",  "menu": "letter1", "index": 2, "label": "C"}
  {"type": "mode",      "state": "SCANNING", "from": "LISTENING", ...}
  {"type": "tick",      "timestamp_ms": ...}        every second

Browser → server:
  {"action": "down" | "up" | "start" | "stop"}
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, field_validator

from gazeboard.app import GazeboardApp
from gazeboard.core.clock import AsyncioScheduler
from gazeboard.scan.engine import ScanEvent

logger = logging.getLogger(__name__)

_STATIC = Path(__file__).parent / "static"
_HEARTBEAT_S = 1.0

app = FastAPI(title="Gazeboard", version="1.0")
app.mount("/static", StaticFiles(directory=str(_STATIC)), name="static")

# ── Module state, set by wire() and the lifecycle hooks ───────────────────────
_board: Optional[GazeboardApp] = None
_clients: Set[WebSocket] = set()
_clients_guard = threading.Lock()
_server_loop: Optional[asyncio.AbstractEventLoop] = None


class SpeedRequest(BaseModel):
    """Body of ``POST /speed``."""

    seconds: float

    @field_validator("seconds")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("seconds must be >= 0")
        return value


# ── Fan-out to browsers ───────────────────────────────────────────────────────

def _send_to_clients(message: Dict[str, Any]) -> None:
    """Queue *message* for every open socket; safe from any thread."""
    loop = _server_loop
    if loop is None or loop.is_closed():
        return
    asyncio.run_coroutine_threadsafe(_fan_out(json.dumps(message, default=str)), loop)


async def _fan_out(text: str) -> None:
    with _clients_guard:
        targets = list(_clients)
    closed = []
    for ws in targets:
        try:
            await ws.send_text(text)
        except (WebSocketDisconnect, RuntimeError):
            closed.append(ws)
    if closed:
        with _clients_guard:
            _clients.difference_update(closed)


def _on_scan_event(event: ScanEvent) -> None:
    _send_to_clients(event.to_dict())


def wire(board: GazeboardApp) -> None:
    """Serve *board* from the routes and stream its scan events."""
    global _board
    if _board is not None:
        _board.engine.unsubscribe(_on_scan_event)
    _board = board
    board.engine.subscribe(_on_scan_event)
    logger.info("Board wired to web surface")


def _with_board(action: Callable[[GazeboardApp], Dict[str, Any]]) -> JSONResponse:
    """Run *action* against the wired board, or answer 503 if there is none."""
    if _board is None:
        return JSONResponse({"error": "board not ready"}, status_code=503)
    return JSONResponse(action(_board))


def _scanner_mode() -> Optional[str]:
    return _board.scanner.state.value if _board is not None else None


async def _heartbeat() -> None:
    while True:
        await asyncio.sleep(_HEARTBEAT_S)
        _send_to_clients({
            "type": "tick",
            "timestamp_ms": round(time.time() * 1000),
            "scanner": _scanner_mode(),
        })


@app.on_event("startup")
async def _startup() -> None:
    global _server_loop
    _server_loop = asyncio.get_running_loop()
    # The board was built before uvicorn created its loop.
    if _board is not None and isinstance(_board.scheduler, AsyncioScheduler):
        _board.scheduler.bind(_server_loop)
    asyncio.create_task(_heartbeat())
    logger.info("Web surface started")


@app.on_event("shutdown")
async def _shutdown() -> None:
    global _server_loop
    _server_loop = None
    logger.info("Web surface stopped")


# ── Routes ────────────────────────────────────────────────────────────────────

@app.get("/", response_class=HTMLResponse)
async def dashboard() -> HTMLResponse:
    return HTMLResponse((_STATIC / "index.html").read_text(encoding="utf-8"))


@app.get("/health")
async def health() -> JSONResponse:
    return JSONResponse({
        "status": "ok" if _board is not None else "board_not_ready",
        "scanner": _scanner_mode(),
        "clients": len(_clients),
    })


@app.get("/state")
async def state() -> JSONResponse:
    return _with_board(lambda b: {**b.snapshot(), "history": b.scanner.fsm.get_history()})


def _start(board: GazeboardApp) -> Dict[str, Any]:
    board.scanner.start()
    return {"ok": True, "scanner": board.scanner.state.value}


def _stop(board: GazeboardApp) -> Dict[str, Any]:
    board.scanner.stop()
    return {"ok": True, "scanner": board.scanner.state.value}


def _press(board: GazeboardApp) -> Dict[str, Any]:
    board.switch.press()
    return {"ok": True, "pressed": True}


def _release(board: GazeboardApp) -> Dict[str, Any]:
    board.switch.release()
    return {"ok": True, "pressed": False}


@app.post("/start")
async def start() -> JSONResponse:
    return _with_board(_start)


@app.post("/stop")
async def stop() -> JSONResponse:
    return _with_board(_stop)


@app.post("/switch/down")
async def switch_down() -> JSONResponse:
    return _with_board(_press)


@app.post("/switch/up")
async def switch_up() -> JSONResponse:
    return _with_board(_release)


@app.post("/speed")
async def speed(body: SpeedRequest) -> JSONResponse:
    return _with_board(
        lambda b: {"ok": True, "seconds": b.settings.scan_speed.set_seconds(body.seconds)}
    )


_CLIENT_ACTIONS: Dict[str, Callable[[GazeboardApp], Dict[str, Any]]] = {
    "down": _press,
    "up": _release,
    "start": _start,
    "stop": _stop,
}


@app.websocket("/ws")
async def events_socket(ws: WebSocket) -> None:
    await ws.accept()
    with _clients_guard:
        _clients.add(ws)
    snapshot = _board.snapshot() if _board is not None else {}
    await ws.send_text(json.dumps({"type": "snapshot", **snapshot}))
    logger.info("WebSocket connected (%d open)", len(_clients))

    try:
        while True:
            raw = await ws.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                logger.debug("Ignoring non-JSON WebSocket message: %r", raw[:80])
                continue
            action = _CLIENT_ACTIONS.get(data.get("action")) if isinstance(data, dict) else None
            if action is None:
                logger.debug("Unknown WebSocket message %r", raw[:80])
            elif _board is not None:
                action(_board)
    except WebSocketDisconnect:
        pass
    finally:
        with _clients_guard:
            _clients.discard(ws)
        logger.info("WebSocket closed (%d open)", len(_clients))


def start_web_server(
    board: GazeboardApp,
    host: str = "0.0.0.0",
    port: int = 7860,
) -> None:
    """
    Wire *board* and run uvicorn in the calling thread until it exits.

    Args:
        board: A board built on an :class:`~gazeboard.core.clock.AsyncioScheduler`.
        host: Bind address.
        port: TCP port.
    """
    wire(board)

    import uvicorn  # type: ignore

    server = uvicorn.Server(
        uvicorn.Config(app, host=host, port=port, log_level="warning", access_log=False)
    )
    logger.info("Serving on %s:%d", host, port)
    server.run()
