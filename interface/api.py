"""FastAPI interface: WebSocket room endpoint plus a few REST helpers."""

import json
import logging
import threading
import uuid
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from chessroom.config import CONFIG, configure_logging
from chessroom.core.board import ChessBoard
from chessroom.core.search import SearchEngine
from chessroom.messages import dump
from chessroom.room import Delivery, RoomRegistry
from chessroom.types import Color, Difficulty

configure_logging(CONFIG.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=CONFIG.ui.app_name, version="0.1.0")

registry = RoomRegistry()
# room id -> identity -> open sockets (the same identity may connect twice)
connections: Dict[str, Dict[str, List[WebSocket]]] = {}

# Standalone engine for /search, separate from the per-room engines.
engine = SearchEngine()
_engine_lock = threading.Lock()


class SearchRequest(BaseModel):
    fen: str
    difficulty: Difficulty = Difficulty.MEDIUM
    color: Optional[Color] = None


async def _deliver(room_id: str, deliveries: List[Delivery]):
    sockets = connections.get(room_id, {})
    for d in deliveries:
        for ws in list(sockets.get(d.identity, [])):
            await ws.send_json(dump(d.message))


def _detach(room_id: str, identity: str, websocket: WebSocket) -> bool:
    """Forget one socket. Returns True if it was the identity's last one."""
    room_sockets = connections.get(room_id, {})
    sockets = room_sockets.get(identity, [])
    if websocket in sockets:
        sockets.remove(websocket)
    if sockets:
        return False
    room_sockets.pop(identity, None)
    return True


@app.get("/rooms/{room_id}")
def get_room(room_id: str):
    room = registry.get(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail=f"Room not found: {room_id}")
    return room.summary()


@app.post("/rooms/{room_id}/reset")
async def reset_room(room_id: str):
    room = registry.get(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail=f"Room not found: {room_id}")
    await _deliver(room_id, room.reset())
    return room.summary()


@app.post("/search")
def search_move(req: SearchRequest):
    try:
        board = ChessBoard(req.fen)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid FEN: {e}")
    if board.is_terminal():
        raise HTTPException(status_code=400, detail="Game is already over")
    color = req.color or board.side_to_move()
    if color != board.side_to_move():
        raise HTTPException(status_code=400, detail=f"{color.label} is not to move")

    with _engine_lock:
        move = engine.choose_move(board, color, req.difficulty)
    return {
        "move": move,
        "fen": board.to_canonical_string(),
        "difficulty": req.difficulty.value,
    }


@app.websocket("/rooms/{room_id}/ws")
async def room_socket(websocket: WebSocket, room_id: str, player_id: Optional[str] = None):
    identity = player_id or uuid.uuid4().hex
    await websocket.accept()
    # no await between open and register: rooms without sockets get closed
    room = registry.open(room_id)
    connections.setdefault(room_id, {}).setdefault(identity, []).append(websocket)

    try:
        await _deliver(room_id, room.join(identity))
        while True:
            text = await websocket.receive_text()
            try:
                raw = json.loads(text)
            except json.JSONDecodeError:
                logger.debug("[%s] dropping non-JSON frame from %s", room_id, identity)
                continue
            # move handling may run a search; keep it off the event loop
            deliveries = await run_in_threadpool(room.handle, identity, raw)
            await _deliver(room_id, deliveries)
    except WebSocketDisconnect:
        logger.info("[%s] %s disconnected", room_id, identity)
    finally:
        farewell: List[Delivery] = []
        if _detach(room_id, identity, websocket):
            farewell = room.leave(identity)
        if not connections.get(room_id):
            connections.pop(room_id, None)
            registry.close(room_id)
        await _deliver(room_id, farewell)
