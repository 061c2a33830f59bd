"""Per-viewer read-only snapshots of a match."""

from chessroom.match import Match
from chessroom.messages import EndView, GameView, LobbyView, UiState
from chessroom.types import Color, MatchStatus, Mode


def build_ui_state(match: Match, viewer_color: Color) -> UiState:
    if match.status is MatchStatus.LOBBY:
        waiting = match.selection.mode is Mode.DUO and not (
            match.seats.is_occupied(Color.WHITE) and match.seats.is_occupied(Color.BLACK)
        )
        return UiState(
            screen="lobby",
            lobby=LobbyView(
                mode=match.selection.mode,
                difficulty=match.selection.difficulty,
                waiting_for_opponent=waiting,
            ),
        )

    if match.status is MatchStatus.ENDED:
        result = match.winner.value if match.winner else "draw"
        return UiState(
            screen="end",
            end=EndView(result=result, reason=match.end_reason or "game over"),
        )

    board = match.board
    return UiState(
        screen="game",
        game=GameView(
            position=board.to_canonical_string(),
            side_to_move=board.side_to_move(),
            viewer_color=viewer_color,
            status=match.get_status(),
            winner=match.winner,
            last_move=match.last_move,
            legal_moves=board.get_legal_moves(),
        ),
    )
