import logging
import math
import random
import time
from typing import Optional, Tuple

import chess

from chessroom.config import CONFIG
from chessroom.core.board import ChessBoard
from chessroom.core.evaluator import Evaluator
from chessroom.core.utils import format_search_info, to_canonical
from chessroom.types import Color, Difficulty

logger = logging.getLogger(__name__)

INF = math.inf


class SearchEngine:
    """Computer opponent: capture-preferring random play on easy, minimax otherwise.

    The board passed to ``choose_move`` is borrowed: every explored move is
    undone before the call returns, so the caller sees the same position and
    move stack afterwards. Move order at each node is shuffled with ``rng``;
    this only changes which of several equally scored moves is returned.
    """

    def __init__(self, evaluator: Optional[Evaluator] = None,
                 rng: Optional[random.Random] = None):
        self.cfg = CONFIG.search
        self.evaluator = evaluator or Evaluator()
        self.rng = rng or random.Random(self.cfg.seed)
        self.nodes = 0
        self.last_score: Optional[float] = None

    def depth_for(self, difficulty: Difficulty) -> int:
        return self.cfg.depths[Difficulty(difficulty).value]

    def choose_move(self, board: ChessBoard, engine_color: Color,
                    difficulty: Difficulty) -> Optional[str]:
        if board.is_terminal():
            return None
        if board.side_to_move() != engine_color:
            logger.warning("choose_move called for %s but %s is to move",
                           engine_color, board.side_to_move())
            return None

        difficulty = Difficulty(difficulty)
        if difficulty is Difficulty.EASY:
            return self._pick_heuristic(board)

        depth = self.depth_for(difficulty)
        self.nodes = 0
        start_time = time.time()
        score, move = self._minimax(board, depth, -INF, INF, engine_color, 0)
        self.last_score = score

        elapsed = time.time() - start_time
        logger.debug(format_search_info(difficulty, depth, score, self.nodes,
                                        elapsed, move, self.cfg.mate_score))
        return to_canonical(move) if move else None

    def _pick_heuristic(self, board: ChessBoard) -> Optional[str]:
        captures = board.captures()
        pool = captures or board.legal_moves()
        if not pool:
            return None
        return to_canonical(self.rng.choice(pool))

    def _minimax(self, board: ChessBoard, depth: int, alpha: float, beta: float,
                 maximizing_for: Color, ply: int) -> Tuple[float, Optional[chess.Move]]:
        self.nodes += 1

        if board.is_checkmate():
            # the side that just moved delivered mate; nearer mates score higher
            mate = self.cfg.mate_score - ply
            winner = board.side_to_move().opponent
            return (mate if winner == maximizing_for else -mate), None
        if board.is_draw():
            return 0, None
        if depth == 0:
            return self.evaluator.evaluate(board, maximizing_for), None

        moves = board.legal_moves()
        self.rng.shuffle(moves)

        is_max = board.side_to_move() == maximizing_for
        best_score = -INF if is_max else INF
        best_move = None

        for move in moves:
            with board.pushed(move):
                score, _ = self._minimax(board, depth - 1, alpha, beta,
                                         maximizing_for, ply + 1)

            if is_max:
                if score > best_score:
                    best_score = score
                    best_move = move
                alpha = max(alpha, best_score)
            else:
                if score < best_score:
                    best_score = score
                    best_move = move
                beta = min(beta, best_score)

            if beta <= alpha:
                break

        return best_score, best_move
