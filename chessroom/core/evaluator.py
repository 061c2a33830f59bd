import chess

from chessroom.config import CONFIG
from chessroom.core.board import ChessBoard
from chessroom.types import Color


class Evaluator:
    """Material plus mobility, scored from one side's perspective.

    Only meaningful as a relative comparator between sibling positions.
    """

    def __init__(self):
        self.cfg = CONFIG.eval
        self.piece_values = {
            pt: self.cfg.piece_values[chess.piece_name(pt).upper()]
            for pt in chess.PIECE_TYPES
        }

    def evaluate(self, board: ChessBoard, perspective: Color) -> int:
        b = board.board
        score = 0
        for piece in b.piece_map().values():
            value = self.piece_values[piece.piece_type]
            score += value if piece.color == perspective.as_chess else -value

        # mobility of the side to move
        mobility = b.legal_moves.count()
        score += mobility if b.turn == perspective.as_chess else -mobility
        return score
