import re
from typing import Optional, Tuple

import chess

# from-square + to-square + optional promotion letter, e.g. "e2e4", "a7a8q"
MOVE_PATTERN = re.compile(r"^([a-h][1-8])([a-h][1-8])([qrbn])?$")


def to_canonical(move: chess.Move) -> str:
    return move.uci()


def split_canonical(text: str) -> Optional[Tuple[str, str, Optional[str]]]:
    """Split a canonical move string into (from, to, promotion); None if malformed."""
    m = MOVE_PATTERN.match(text.strip().lower())
    if not m:
        return None
    return m.group(1), m.group(2), m.group(3)


def format_search_info(difficulty, depth, score, nodes, elapsed, move, mate_score):
    nps = int(nodes / elapsed) if elapsed > 0 else 0
    if score is not None and abs(score) > mate_score - 100:
        plies = mate_score - abs(score)
        score_str = f"mate {plies if score > 0 else -plies}"
    else:
        score_str = f"cp {score}"
    return (f"info difficulty {difficulty} depth {depth} score {score_str} "
            f"nodes {nodes} nps {nps} time {int(elapsed * 1000)} move {move or '-'}")
