"""Seat bookkeeping for the two colors of a match."""

from dataclasses import dataclass
from typing import Dict, Optional

from chessroom.config import CONFIG
from chessroom.types import Color, ErrorKind, Mode, SeatResult

ROOM_FULL = "room full"
DUPLICATE_SOLO_PLAYER = "room already has a solo player"
RESERVED_IDENTITY = "that name is reserved for the computer"


@dataclass(frozen=True)
class Seat:
    occupant: str
    color: Color


class SeatRegistry:
    """Maps player identities to the white and black seats.

    The mapping itself is never handed out; callers get copies or single values.
    """

    def __init__(self, computer_identity: Optional[str] = None):
        self.computer_identity = computer_identity or CONFIG.room.computer_identity
        self._seats: Dict[Color, Seat] = {}

    def assign(self, identity: str, mode: Mode) -> SeatResult:
        # the sentinel only ever sits through a solo assignment
        if identity == self.computer_identity:
            return SeatResult(ok=False, reason=RESERVED_IDENTITY,
                              kind=ErrorKind.RESERVED_IDENTITY)
        existing = self.color_of(identity)
        if existing is not None:
            return SeatResult(ok=True, color=existing)

        if Mode(mode) is Mode.SOLO:
            white = self._seats.get(Color.WHITE)
            if white is not None and white.occupant != identity:
                return SeatResult(ok=False, reason=DUPLICATE_SOLO_PLAYER,
                                  kind=ErrorKind.DUPLICATE_SOLO_PLAYER)
            self._seats[Color.WHITE] = Seat(identity, Color.WHITE)
            self._seats[Color.BLACK] = Seat(self.computer_identity, Color.BLACK)
            return SeatResult(ok=True, color=Color.WHITE)

        for color in (Color.WHITE, Color.BLACK):
            if color not in self._seats:
                self._seats[color] = Seat(identity, color)
                return SeatResult(ok=True, color=color)
        return SeatResult(ok=False, reason=ROOM_FULL, kind=ErrorKind.ROOM_FULL)

    def release(self, identity: str) -> Optional[Color]:
        """Free the seat held by ``identity``; a solo human takes the computer with them."""
        color = self.color_of(identity)
        if color is None:
            return None
        del self._seats[color]
        other = self._seats.get(color.opponent)
        if other is not None and other.occupant == self.computer_identity:
            del self._seats[color.opponent]
        return color

    def clear(self):
        self._seats.clear()

    def color_of(self, identity: str) -> Optional[Color]:
        if identity == self.computer_identity:
            return None
        for color, seat in self._seats.items():
            if seat.occupant == identity:
                return color
        return None

    def occupant(self, color: Color) -> Optional[str]:
        seat = self._seats.get(color)
        return seat.occupant if seat else None

    def is_occupied(self, color: Color) -> bool:
        return color in self._seats

    def is_computer(self, color: Color) -> bool:
        return self.occupant(color) == self.computer_identity

    def snapshot(self) -> Dict[Color, Seat]:
        return dict(self._seats)

    def __len__(self) -> int:
        return len(self._seats)
