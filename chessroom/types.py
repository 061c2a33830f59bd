"""Shared enums and result records for the match layer."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Optional

import chess


class Color(StrEnum):
    WHITE = "white"
    BLACK = "black"

    @classmethod
    def from_chess(cls, turn: chess.Color) -> "Color":
        return cls.WHITE if turn == chess.WHITE else cls.BLACK

    @property
    def as_chess(self) -> chess.Color:
        return chess.WHITE if self is Color.WHITE else chess.BLACK

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE

    @property
    def label(self) -> str:
        return self.value.capitalize()


class Mode(StrEnum):
    SOLO = "solo"
    DUO = "duo"


class Difficulty(StrEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class MatchStatus(StrEnum):
    LOBBY = "lobby"
    PLAYING = "playing"
    ENDED = "ended"


class GameStatus(StrEnum):
    """Finer-grained label shown while a match is in play."""

    PLAYING = "playing"
    CHECK = "check"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    DRAW = "draw"


class ErrorKind(StrEnum):
    NOT_IN_LOBBY = "not_in_lobby"
    CANNOT_START = "cannot_start"
    ROOM_FULL = "room_full"
    DUPLICATE_SOLO_PLAYER = "duplicate_solo_player"
    NOT_PLAYING = "not_playing"
    NOT_YOUR_TURN = "not_your_turn"
    ILLEGAL_MOVE = "illegal_move"
    NOT_ENDED = "not_ended"
    RESERVED_IDENTITY = "reserved_identity"


@dataclass(frozen=True)
class Outcome:
    """Result of a match operation. Failures never mutate the match."""

    ok: bool
    reason: Optional[str] = None
    kind: Optional[ErrorKind] = None

    @classmethod
    def success(cls) -> "Outcome":
        return cls(ok=True)

    @classmethod
    def failure(cls, kind: ErrorKind, reason: str) -> "Outcome":
        return cls(ok=False, reason=reason, kind=kind)


@dataclass(frozen=True)
class SeatResult:
    ok: bool
    color: Optional[Color] = None
    reason: Optional[str] = None
    kind: Optional[ErrorKind] = None
