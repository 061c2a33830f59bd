"""
Room controller: the transport-facing side of a single match.

The controller tracks which identities are connected (in join order),
dispatches validated UI messages to the Match, and returns the messages
each connected identity should receive. It knows nothing about sockets;
the API layer delivers what it returns.

All entry points hold the room lock for the full action, including the
computer's reply search in solo mode, so two actions on the same match
never interleave and no snapshot is produced between a human move and
the reply to it.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from chessroom.config import CONFIG
from chessroom.core.search import SearchEngine
from chessroom.match import Match
from chessroom.messages import (
    BackToLobbyAction,
    GameMoveAction,
    LobbySetAction,
    LobbyStartAction,
    ReadyMessage,
    RematchAction,
    ServerMessage,
    StateMessage,
    hud,
    parse_inbound,
    toast,
)
from chessroom.projector import build_ui_state
from chessroom.types import Color, MatchStatus, Mode

logger = logging.getLogger(__name__)

ONLY_WHITE_STARTS = "Only White can start the match."


@dataclass(frozen=True)
class Delivery:
    identity: str
    message: ServerMessage


class RoomController:
    def __init__(self, room_id: str, search_engine: Optional[SearchEngine] = None):
        self.room_id = room_id
        self.match = Match(room_id, search_engine)
        self._players: List[str] = []
        self._lock = threading.Lock()

    @property
    def players(self) -> List[str]:
        return list(self._players)

    def color_of(self, identity: str) -> Color:
        """Seat color of ``identity``; unseated viewers see the board as White."""
        return self.match.seats.color_of(identity) or Color.WHITE

    # ── Connection lifecycle ─────────────────────────────────────────────

    def join(self, identity: str) -> List[Delivery]:
        with self._lock:
            if identity not in self._players:
                self._players.append(identity)
            logger.info("[%s] %s joined (%d connected)", self.room_id, identity,
                        len(self._players))

            out = [Delivery(identity, toast(f"Welcome to {CONFIG.ui.app_name}", "info"))]
            if self.match.status is MatchStatus.LOBBY:
                seat = self.match.assign_seat(identity)
                if seat.ok:
                    out.append(Delivery(identity, toast(f"Seated as {seat.color.label}", "success")))
                else:
                    out.append(Delivery(identity, toast(seat.reason or "room full", "warning")))
            return out + self._broadcast()

    def leave(self, identity: str) -> List[Delivery]:
        with self._lock:
            if identity not in self._players:
                return []
            self._players.remove(identity)
            logger.info("[%s] %s left (%d connected)", self.room_id, identity,
                        len(self._players))
            self.match.handle_leave(identity, len(self._players))
            return self._broadcast()

    # ── Inbound actions ──────────────────────────────────────────────────

    def handle(self, identity: str, raw: Any) -> List[Delivery]:
        msg = parse_inbound(raw)
        if msg is None:
            return []
        handlers: Dict[type, Callable[[str, Any], List[Delivery]]] = {
            ReadyMessage: self._on_ready,
            LobbySetAction: self._on_lobby_set,
            LobbyStartAction: self._on_start,
            GameMoveAction: self._on_move,
            RematchAction: self._on_rematch,
            BackToLobbyAction: self._on_back_to_lobby,
        }
        with self._lock:
            return handlers[type(msg)](identity, msg)

    def _on_ready(self, identity: str, msg: ReadyMessage) -> List[Delivery]:
        return self._broadcast()

    def _on_lobby_set(self, identity: str, msg: LobbySetAction) -> List[Delivery]:
        outcome = self.match.set_lobby_selection(msg.payload.mode, msg.payload.difficulty)
        if not outcome.ok:
            return []
        self._reseat_all()
        return self._broadcast()

    def _on_start(self, identity: str, msg: LobbyStartAction) -> List[Delivery]:
        match = self.match
        if match.status is not MatchStatus.LOBBY:
            return []
        if match.selection.mode is Mode.DUO and match.seats.color_of(identity) is not Color.WHITE:
            return [Delivery(identity, toast(ONLY_WHITE_STARTS, "warning"))]
        if not match.can_start():
            text = "Waiting for opponent" if match.selection.mode is Mode.DUO else "Ready when you are"
            return [Delivery(identity, toast(text, "warning"))] + self._broadcast()
        match.start_game()
        return [Delivery(identity, toast("Game start", "success"))] + self._broadcast()

    def _on_move(self, identity: str, msg: GameMoveAction) -> List[Delivery]:
        outcome = self.match.apply_move(identity, msg.payload.uci)
        if not outcome.ok:
            return [Delivery(identity, toast(outcome.reason or "illegal move", "warning"))]

        out: List[Delivery] = []
        if self.match.status is MatchStatus.ENDED:
            out.extend(Delivery(p, self._end_toast()) for p in self._players)
        return out + self._broadcast()

    def _on_rematch(self, identity: str, msg: RematchAction) -> List[Delivery]:
        outcome = self.match.rematch(self._players)
        if not outcome.ok:
            return [Delivery(identity, toast(outcome.reason, "warning"))]
        return self._broadcast()

    def _on_back_to_lobby(self, identity: str, msg: BackToLobbyAction) -> List[Delivery]:
        if self.match.status is not MatchStatus.ENDED:
            return []
        self.match.reset_to_lobby()
        self._reseat_all()
        return self._broadcast()

    # ── Helpers ──────────────────────────────────────────────────────────

    def reset(self) -> List[Delivery]:
        """Reinitialize the match, keeping connected players seated in join order."""
        with self._lock:
            self.match = Match(self.room_id, self.match.search_engine)
            self._reseat_all()
            return self._broadcast()

    def _reseat_all(self):
        for identity in self._players:
            self.match.assign_seat(identity)

    def _end_toast(self):
        m = self.match
        if m.winner:
            return toast(f"{m.winner.label} wins by {m.end_reason}", "success",
                         CONFIG.room.end_toast_ttl_ms)
        return toast(f"Draw ({m.end_reason})", "info", CONFIG.room.end_toast_ttl_ms)

    def _broadcast(self) -> List[Delivery]:
        out: List[Delivery] = []
        m = self.match
        for identity in self._players:
            color = self.color_of(identity)
            out.append(Delivery(identity, StateMessage(payload=build_ui_state(m, color))))
            if m.status is MatchStatus.PLAYING:
                turn = m.board.side_to_move()
                check = " CHECK" if m.board.is_check() else ""
                out.append(Delivery(identity, hud("topLeft", f"Chess ({m.selection.mode})")))
                out.append(Delivery(identity, hud(
                    "bottomRight", f"You: {color.label}\nTurn: {turn.label}{check}")))
        return out

    def summary(self) -> Dict[str, Any]:
        with self._lock:
            m = self.match
            return {
                "room_id": self.room_id,
                "status": m.status.value,
                "mode": m.selection.mode.value,
                "difficulty": m.selection.difficulty.value,
                "seats": {c.value: s.occupant for c, s in m.seats.snapshot().items()},
                "players": list(self._players),
                "winner": m.winner.value if m.winner else None,
                "end_reason": m.end_reason,
                "moves": m.moves,
            }


class RoomRegistry:
    """Per-process room lookup; each room gets its own match and search engine."""

    def __init__(self, engine_factory: Callable[[], SearchEngine] = SearchEngine):
        self._engine_factory = engine_factory
        self._rooms: Dict[str, RoomController] = {}
        self._lock = threading.Lock()

    def open(self, room_id: str) -> RoomController:
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                room = RoomController(room_id, self._engine_factory())
                self._rooms[room_id] = room
                logger.info("opened room %s", room_id)
            return room

    def get(self, room_id: str) -> Optional[RoomController]:
        with self._lock:
            return self._rooms.get(room_id)

    def close(self, room_id: str):
        with self._lock:
            if self._rooms.pop(room_id, None) is not None:
                logger.info("closed room %s", room_id)

    def clear(self):
        with self._lock:
            self._rooms.clear()

    def __contains__(self, room_id: str) -> bool:
        with self._lock:
            return room_id in self._rooms
