"""
Match state machine.

A Match owns the authoritative state of one room: lobby selection, seats,
the board and the outcome. Legal transitions are::

    lobby -> playing -> ended
    ended -> lobby          (back to lobby)
    ended -> playing        (rematch)

Operations return an ``Outcome`` instead of raising; a failed operation
leaves the match untouched. Whose turn it is is always read from the
board, never tracked separately.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from chessroom.config import CONFIG
from chessroom.core.board import ChessBoard
from chessroom.core.search import SearchEngine
from chessroom.seats import SeatRegistry
from chessroom.types import (
    Color,
    Difficulty,
    ErrorKind,
    GameStatus,
    MatchStatus,
    Mode,
    Outcome,
    SeatResult,
)

logger = logging.getLogger(__name__)

NOT_IN_LOBBY = "not in lobby"
CANNOT_START = "seats are not filled"
NOT_PLAYING = "not playing"
NOT_YOUR_TURN = "not your turn"
ILLEGAL_MOVE = "illegal move"
NOT_ENDED = "match has not ended"
OPPONENT_DISCONNECTED = "opponent disconnected"


@dataclass
class Selection:
    mode: Mode = field(default_factory=lambda: Mode(CONFIG.room.default_mode))
    difficulty: Difficulty = field(
        default_factory=lambda: Difficulty(CONFIG.room.default_difficulty))


class Match:
    def __init__(self, match_id: str, search_engine: Optional[SearchEngine] = None):
        self.id = match_id
        self.selection = Selection()
        self.seats = SeatRegistry()
        self.board = ChessBoard()
        self.search_engine = search_engine or SearchEngine()
        self.status = MatchStatus.LOBBY
        self.winner: Optional[Color] = None
        self.end_reason: Optional[str] = None
        self.last_move: Optional[str] = None

    # ── Lobby ────────────────────────────────────────────────────────────

    def assign_seat(self, identity: str) -> SeatResult:
        result = self.seats.assign(identity, self.selection.mode)
        if result.ok:
            logger.info("[%s] %s seated as %s", self.id, identity, result.color)
        else:
            logger.debug("[%s] seat refused for %s: %s", self.id, identity, result.reason)
        return result

    def set_lobby_selection(self, mode: Optional[Mode] = None,
                            difficulty: Optional[Difficulty] = None) -> Outcome:
        """Merge the given fields into the selection; seats are always cleared.

        Raises ValueError for an unknown mode or difficulty, before anything changes.
        """
        if self.status is not MatchStatus.LOBBY:
            return Outcome.failure(ErrorKind.NOT_IN_LOBBY, NOT_IN_LOBBY)
        mode = Mode(mode) if mode is not None else self.selection.mode
        difficulty = Difficulty(difficulty) if difficulty is not None else self.selection.difficulty
        self.selection.mode = mode
        self.selection.difficulty = difficulty
        self.seats.clear()
        logger.info("[%s] selection set to %s/%s", self.id,
                    self.selection.mode, self.selection.difficulty)
        return Outcome.success()

    def can_start(self) -> bool:
        if self.status is not MatchStatus.LOBBY:
            return False
        if self.selection.mode is Mode.SOLO:
            return self.seats.is_occupied(Color.WHITE)
        return self.seats.is_occupied(Color.WHITE) and self.seats.is_occupied(Color.BLACK)

    def start_game(self) -> Outcome:
        if self.status is not MatchStatus.LOBBY:
            return Outcome.failure(ErrorKind.NOT_IN_LOBBY, NOT_IN_LOBBY)
        if not self.can_start():
            return Outcome.failure(ErrorKind.CANNOT_START, CANNOT_START)
        self.board.reset()
        self.status = MatchStatus.PLAYING
        self._clear_outcome()
        logger.info("[%s] game started (%s, %s)", self.id,
                    self.selection.mode, self.selection.difficulty)
        return Outcome.success()

    # ── Play ─────────────────────────────────────────────────────────────

    def apply_move(self, identity: str, uci: str) -> Outcome:
        if self.status is not MatchStatus.PLAYING:
            return Outcome.failure(ErrorKind.NOT_PLAYING, NOT_PLAYING)

        turn = self.board.side_to_move()
        if identity == self.seats.computer_identity or self.seats.occupant(turn) != identity:
            logger.debug("[%s] %s tried to move on %s's turn", self.id, identity, turn)
            return Outcome.failure(ErrorKind.NOT_YOUR_TURN, NOT_YOUR_TURN)

        played = self.board.apply_uci(uci)
        if played is None:
            logger.debug("[%s] illegal move %r from %s", self.id, uci, identity)
            return Outcome.failure(ErrorKind.ILLEGAL_MOVE, ILLEGAL_MOVE)

        self.last_move = played
        logger.info("[%s] %s played %s", self.id, turn, played)
        if self.maybe_finalize():
            return Outcome.success()

        if self.selection.mode is Mode.SOLO:
            self._play_computer_reply()
        return Outcome.success()

    def _play_computer_reply(self):
        color = self.board.side_to_move()
        reply = self.search_engine.choose_move(self.board, color, self.selection.difficulty)
        if reply is None:
            return
        played = self.board.apply_uci(reply)
        if played is None:
            logger.error("[%s] computer produced unplayable move %s", self.id, reply)
            return
        self.last_move = played
        logger.info("[%s] computer (%s) played %s", self.id, color, played)
        self.maybe_finalize()

    def maybe_finalize(self) -> bool:
        """End the match if the position is terminal. Returns True if it ended."""
        b = self.board
        if b.is_checkmate():
            self.winner = b.side_to_move().opponent
            self.end_reason = "checkmate"
        elif b.is_stalemate():
            self.end_reason = "stalemate"
        elif b.is_insufficient_material():
            self.end_reason = "insufficient material"
        elif b.is_threefold_repetition():
            self.end_reason = "threefold repetition"
        elif b.is_draw():
            self.end_reason = "draw"
        else:
            return False

        self.status = MatchStatus.ENDED
        logger.info("[%s] match ended: %s (winner: %s)", self.id,
                    self.end_reason, self.winner or "none")
        return True

    def get_status(self) -> GameStatus:
        b = self.board
        if b.is_checkmate():
            return GameStatus.CHECKMATE
        if b.is_stalemate():
            return GameStatus.STALEMATE
        if b.is_draw():
            return GameStatus.DRAW
        if b.is_check():
            return GameStatus.CHECK
        return GameStatus.PLAYING

    # ── Resets and departures ────────────────────────────────────────────

    def reset_to_lobby(self):
        """Return to the lobby keeping the selection; seats and outcome are cleared."""
        self.status = MatchStatus.LOBBY
        self.board.reset()
        self.seats.clear()
        self._clear_outcome()
        logger.info("[%s] back to lobby", self.id)

    def rematch(self, identities: Iterable[str]) -> Outcome:
        """Re-seat ``identities`` in order and restart straight away if possible."""
        if self.status is not MatchStatus.ENDED:
            return Outcome.failure(ErrorKind.NOT_ENDED, NOT_ENDED)
        self.reset_to_lobby()
        for identity in identities:
            self.assign_seat(identity)
        if self.can_start():
            self.start_game()
        return Outcome.success()

    def abandon(self):
        self.status = MatchStatus.ENDED
        self.winner = None
        self.end_reason = OPPONENT_DISCONNECTED
        logger.info("[%s] match abandoned", self.id)

    def handle_leave(self, identity: str, humans_remaining: int) -> bool:
        """Apply the departure policy for ``identity``. Returns True if the match changed."""
        seated = self.seats.color_of(identity) is not None
        if self.selection.mode is Mode.DUO and self.status is MatchStatus.PLAYING:
            if seated:
                self.abandon()
                return True
            return False
        if self.selection.mode is Mode.SOLO and humans_remaining == 0:
            if self.status is MatchStatus.LOBBY and len(self.seats) == 0:
                return False
            self.reset_to_lobby()
            return True
        if self.status is MatchStatus.LOBBY and seated:
            self.seats.release(identity)
            return True
        return False

    def _clear_outcome(self):
        self.winner = None
        self.end_reason = None
        self.last_move = None

    @property
    def moves(self) -> List[str]:
        return self.board.move_history

    def __repr__(self) -> str:
        return f"Match(id={self.id!r}, status={self.status}, mode={self.selection.mode})"
