"""Board wrapper over python-chess acting as the position oracle for a match."""

from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional

import chess

from chessroom.core.utils import split_canonical, to_canonical
from chessroom.types import Color


class ChessBoard:
    def __init__(self, fen: str = None):
        """Initialize from FEN or the standard starting position.

        Raises ValueError for a malformed FEN.
        """
        self.board = chess.Board(fen) if fen else chess.Board()

    @classmethod
    def from_moves(cls, moves: Iterable[str], fen: str = None) -> "ChessBoard":
        """Replay canonical moves from the given (or initial) position."""
        b = cls(fen)
        for mv in moves:
            if b.apply_uci(mv) is None:
                raise ValueError(f"Illegal move in replay: {mv}")
        return b

    def reset(self):
        """Reset to the initial position."""
        self.board.reset()

    def to_canonical_string(self) -> str:
        """Return the current FEN."""
        return self.board.fen()

    @property
    def move_history(self) -> List[str]:
        return [to_canonical(m) for m in self.board.move_stack]

    # ── Moves ────────────────────────────────────────────────────────────

    def side_to_move(self) -> Color:
        return Color.from_chess(self.board.turn)

    def legal_moves(self) -> List[chess.Move]:
        return list(self.board.legal_moves)

    def get_legal_moves(self) -> List[str]:
        """Return legal moves as canonical strings."""
        return [to_canonical(m) for m in self.board.legal_moves]

    def captures(self) -> List[chess.Move]:
        """Legal captures, en passant included."""
        return [m for m in self.board.legal_moves if self.board.is_capture(m)]

    def apply_move(self, from_square: str, to_square: str,
                   promotion: Optional[str] = None) -> Optional[str]:
        """Push a move if legal. Returns the canonical move string or None if rejected.

        A pawn reaching the last rank without a promotion letter becomes a queen.
        """
        try:
            src = chess.parse_square(from_square)
            dst = chess.parse_square(to_square)
            promo = chess.PIECE_SYMBOLS.index(promotion.lower()) if promotion else None
        except ValueError:
            return None
        candidates = [chess.Move(src, dst, promotion=promo)]
        if promo is None:
            candidates.append(chess.Move(src, dst, promotion=chess.QUEEN))
        for move in candidates:
            if move in self.board.legal_moves:
                self.board.push(move)
                return to_canonical(move)
        return None

    def apply_uci(self, text: str) -> Optional[str]:
        parts = split_canonical(text)
        if parts is None:
            return None
        return self.apply_move(*parts)

    @contextmanager
    def pushed(self, move: chess.Move) -> Iterator["ChessBoard"]:
        """Apply a move for the duration of the block; always undone on exit."""
        self.board.push(move)
        try:
            yield self
        finally:
            self.board.pop()

    # ── Position queries ─────────────────────────────────────────────────

    def is_check(self) -> bool:
        return self.board.is_check()

    def is_checkmate(self) -> bool:
        return self.board.is_checkmate()

    def is_stalemate(self) -> bool:
        return self.board.is_stalemate()

    def is_insufficient_material(self) -> bool:
        return self.board.is_insufficient_material()

    def is_threefold_repetition(self) -> bool:
        return self.board.is_repetition(3)

    def is_draw(self) -> bool:
        """Any drawing condition: stalemate, material, repetition or fifty moves."""
        b = self.board
        return (
            b.is_stalemate()
            or b.is_insufficient_material()
            or b.is_repetition(3)
            or b.is_fifty_moves()
            or b.is_fivefold_repetition()
        )

    def is_terminal(self) -> bool:
        return self.is_checkmate() or self.is_draw()

    def __str__(self) -> str:
        return str(self.board)
