"""
Tests for seating, the match state machine, the state projector and the
inbound message boundary.
"""

import random

import pytest

from chessroom.core.board import ChessBoard
from chessroom.core.search import SearchEngine
from chessroom.match import Match
from chessroom.messages import (
    GameMoveAction,
    LobbySetAction,
    ReadyMessage,
    RematchAction,
    StateMessage,
    dump,
    parse_inbound,
)
from chessroom.projector import build_ui_state
from chessroom.seats import SeatRegistry
from chessroom.types import Color, Difficulty, ErrorKind, GameStatus, MatchStatus, Mode

SCHOLARS_MATE = ["e2e4", "e7e5", "f1c4", "b8c6", "d1h5", "g8f6", "h5f7"]


def make_match(mode=Mode.DUO, difficulty=Difficulty.EASY, seed=0):
    match = Match("test", SearchEngine(rng=random.Random(seed)))
    match.set_lobby_selection(mode=mode, difficulty=difficulty)
    return match


def started_duo(fen=None):
    match = make_match(Mode.DUO)
    match.assign_seat("alice")
    match.assign_seat("bob")
    assert match.start_game().ok
    if fen:
        match.board = ChessBoard(fen)
    return match


def play(match, moves):
    for mv in moves:
        who = match.seats.occupant(match.board.side_to_move())
        outcome = match.apply_move(who, mv)
        assert outcome.ok, (mv, outcome)


# ════════════════════════════════════════════════════════════════════════════
#  SEAT REGISTRY
# ════════════════════════════════════════════════════════════════════════════

class TestSeatRegistry:
    def setup_method(self):
        self.seats = SeatRegistry(computer_identity="computer")

    def test_solo_seats_human_and_computer_together(self):
        result = self.seats.assign("alice", Mode.SOLO)
        assert result.ok and result.color is Color.WHITE
        assert self.seats.occupant(Color.WHITE) == "alice"
        assert self.seats.occupant(Color.BLACK) == "computer"
        assert self.seats.is_computer(Color.BLACK)

    def test_solo_rejects_second_human(self):
        self.seats.assign("alice", Mode.SOLO)
        result = self.seats.assign("bob", Mode.SOLO)
        assert not result.ok
        assert result.reason == "room already has a solo player"
        assert result.kind is ErrorKind.DUPLICATE_SOLO_PLAYER
        assert self.seats.occupant(Color.WHITE) == "alice"

    def test_duo_order(self):
        assert self.seats.assign("alice", Mode.DUO).color is Color.WHITE
        assert self.seats.assign("bob", Mode.DUO).color is Color.BLACK

    def test_duo_room_full(self):
        self.seats.assign("alice", Mode.DUO)
        self.seats.assign("bob", Mode.DUO)
        result = self.seats.assign("carol", Mode.DUO)
        assert not result.ok
        assert result.reason == "room full"
        assert result.kind is ErrorKind.ROOM_FULL

    @pytest.mark.parametrize("mode", list(Mode))
    def test_assign_is_idempotent(self, mode):
        first = self.seats.assign("alice", mode)
        self.seats.assign("bob", mode)
        again = self.seats.assign("alice", mode)
        assert again.ok and again.color is first.color

    def test_snapshot_is_a_copy(self):
        self.seats.assign("alice", Mode.DUO)
        snap = self.seats.snapshot()
        snap.clear()
        assert self.seats.occupant(Color.WHITE) == "alice"

    def test_release_solo_frees_computer(self):
        self.seats.assign("alice", Mode.SOLO)
        assert self.seats.release("alice") is Color.WHITE
        assert len(self.seats) == 0

    def test_release_duo_keeps_other_seat(self):
        self.seats.assign("alice", Mode.DUO)
        self.seats.assign("bob", Mode.DUO)
        self.seats.release("alice")
        assert not self.seats.is_occupied(Color.WHITE)
        assert self.seats.occupant(Color.BLACK) == "bob"
        assert self.seats.assign("carol", Mode.DUO).color is Color.WHITE

    def test_computer_identity_has_no_color(self):
        self.seats.assign("alice", Mode.SOLO)
        assert self.seats.color_of("computer") is None

    @pytest.mark.parametrize("mode", list(Mode))
    def test_computer_identity_cannot_sit(self, mode):
        result = self.seats.assign("computer", mode)
        assert not result.ok
        assert result.kind is ErrorKind.RESERVED_IDENTITY
        assert len(self.seats) == 0

    def test_computer_identity_never_takes_second_seat(self):
        self.seats.assign("computer", Mode.DUO)
        self.seats.assign("computer", Mode.DUO)
        assert self.seats.assign("bob", Mode.DUO).color is Color.WHITE
        assert self.seats.assign("carol", Mode.DUO).color is Color.BLACK


# ════════════════════════════════════════════════════════════════════════════
#  LOBBY
# ════════════════════════════════════════════════════════════════════════════

class TestLobby:
    def test_defaults(self):
        match = Match("m")
        assert match.status is MatchStatus.LOBBY
        assert match.selection.mode is Mode.SOLO
        assert match.selection.difficulty is Difficulty.EASY

    def test_selection_change_clears_seats(self):
        match = make_match(Mode.DUO)
        match.assign_seat("alice")
        match.assign_seat("bob")
        assert match.set_lobby_selection(difficulty=Difficulty.HARD).ok
        assert len(match.seats) == 0
        assert match.selection.mode is Mode.DUO
        assert match.selection.difficulty is Difficulty.HARD

    def test_bad_difficulty_changes_nothing(self):
        match = make_match(Mode.SOLO, Difficulty.MEDIUM)
        match.assign_seat("alice")
        with pytest.raises(ValueError):
            match.set_lobby_selection(mode=Mode.DUO, difficulty="impossible")
        assert match.selection.mode is Mode.SOLO
        assert match.selection.difficulty is Difficulty.MEDIUM
        assert match.seats.occupant(Color.WHITE) == "alice"

    def test_selection_refused_outside_lobby(self):
        match = started_duo()
        outcome = match.set_lobby_selection(mode=Mode.SOLO)
        assert outcome.kind is ErrorKind.NOT_IN_LOBBY
        assert match.selection.mode is Mode.DUO
        assert len(match.seats) == 2

    def test_can_start_solo(self):
        match = make_match(Mode.SOLO)
        assert not match.can_start()
        match.assign_seat("alice")
        assert match.can_start()

    def test_can_start_duo_needs_both(self):
        match = make_match(Mode.DUO)
        match.assign_seat("alice")
        assert not match.can_start()
        assert match.start_game().kind is ErrorKind.CANNOT_START
        assert match.status is MatchStatus.LOBBY
        match.assign_seat("bob")
        assert match.can_start()

    def test_start_resets_board_and_outcome(self):
        match = make_match(Mode.DUO)
        match.assign_seat("alice")
        match.assign_seat("bob")
        match.board.apply_uci("e2e4")
        match.last_move = "e2e4"
        assert match.start_game().ok
        assert match.status is MatchStatus.PLAYING
        assert match.moves == []
        assert match.last_move is None
        assert match.winner is None and match.end_reason is None

    def test_start_twice_fails(self):
        match = started_duo()
        assert match.start_game().kind is ErrorKind.NOT_IN_LOBBY


# ════════════════════════════════════════════════════════════════════════════
#  PLAY
# ════════════════════════════════════════════════════════════════════════════

class TestApplyMove:
    def test_move_outside_playing(self):
        match = make_match(Mode.DUO)
        outcome = match.apply_move("alice", "e2e4")
        assert not outcome.ok
        assert outcome.reason == "not playing"
        assert outcome.kind is ErrorKind.NOT_PLAYING

    def test_turn_enforced(self):
        match = started_duo()
        outcome = match.apply_move("bob", "e7e5")
        assert outcome.kind is ErrorKind.NOT_YOUR_TURN
        assert outcome.reason == "not your turn"
        assert match.apply_move("stranger", "e2e4").kind is ErrorKind.NOT_YOUR_TURN

    def test_wrong_seat_rejected_on_every_ply(self):
        match = started_duo()
        for mv in ["e2e4", "e7e5", "g1f3", "b8c6"]:
            mover = match.seats.occupant(match.board.side_to_move())
            other = "bob" if mover == "alice" else "alice"
            assert match.apply_move(other, mv).kind is ErrorKind.NOT_YOUR_TURN
            assert match.apply_move(mover, mv).ok

    def test_illegal_move_leaves_match_unchanged(self):
        match = started_duo()
        play(match, ["e2e4"])
        fen = match.board.to_canonical_string()
        outcome = match.apply_move("bob", "e7e4")
        assert outcome.kind is ErrorKind.ILLEGAL_MOVE
        assert outcome.reason == "illegal move"
        assert match.board.to_canonical_string() == fen
        assert match.last_move == "e2e4"

    def test_malformed_move(self):
        match = started_duo()
        assert match.apply_move("alice", "hello").kind is ErrorKind.ILLEGAL_MOVE

    def test_last_move_recorded(self):
        match = started_duo()
        play(match, ["g1f3"])
        assert match.last_move == "g1f3"
        assert match.moves == ["g1f3"]

    def test_canonical_string_matches_replay(self):
        match = started_duo()
        play(match, ["d2d4", "g8f6", "c2c4", "e7e6", "b1c3", "f8b4"])
        from_fen = ChessBoard(match.board.to_canonical_string())
        replayed = ChessBoard.from_moves(match.moves)
        assert set(from_fen.get_legal_moves()) == set(replayed.get_legal_moves())


class TestFinalize:
    def test_checkmate_white_wins(self):
        match = started_duo()
        play(match, SCHOLARS_MATE)
        assert match.status is MatchStatus.ENDED
        assert match.winner is Color.WHITE
        assert match.end_reason == "checkmate"
        assert match.apply_move("bob", "e8e7").kind is ErrorKind.NOT_PLAYING

    def test_checkmate_black_wins(self):
        match = started_duo()
        play(match, ["f2f3", "e7e5", "g2g4", "d8h4"])
        assert match.winner is Color.BLACK
        assert match.end_reason == "checkmate"

    def test_stalemate(self):
        match = started_duo("5k2/5P2/4K3/8/8/8/8/8 w - - 0 1")
        play(match, ["e6f6"])
        assert match.status is MatchStatus.ENDED
        assert match.winner is None
        assert match.end_reason == "stalemate"

    def test_insufficient_material_beats_generic_draw(self):
        match = started_duo("4k3/8/8/8/8/8/3q4/4K3 w - - 0 1")
        play(match, ["e1d2"])
        assert match.board.is_draw()
        assert match.end_reason == "insufficient material"
        assert match.winner is None

    def test_threefold_repetition(self):
        match = started_duo()
        play(match, ["g1f3", "g8f6", "f3g1", "f6g8"] * 2)
        assert match.status is MatchStatus.ENDED
        assert match.end_reason == "threefold repetition"

    def test_fifty_move_rule_is_generic_draw(self):
        match = started_duo("4k3/8/8/8/8/8/R7/4K3 w - - 99 80")
        play(match, ["a2a3"])
        assert match.end_reason == "draw"

    def test_non_terminal_keeps_playing(self):
        match = started_duo()
        play(match, ["e2e4"])
        assert not match.maybe_finalize()
        assert match.status is MatchStatus.PLAYING


class TestGetStatus:
    def test_playing(self):
        assert started_duo().get_status() is GameStatus.PLAYING

    def test_check(self):
        match = started_duo()
        play(match, ["e2e4", "f7f6", "d1h5"])
        assert match.get_status() is GameStatus.CHECK

    def test_checkmate(self):
        match = started_duo("rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 0 1")
        assert match.get_status() is GameStatus.CHECKMATE

    def test_stalemate(self):
        match = started_duo("5k2/5P2/5K2/8/8/8/8/8 b - - 0 1")
        assert match.get_status() is GameStatus.STALEMATE

    def test_insufficient_material_shows_draw(self):
        match = started_duo("4k3/8/8/8/8/8/8/4K3 w - - 0 1")
        assert match.get_status() is GameStatus.DRAW


class TestSolo:
    def setup_method(self):
        self.match = make_match(Mode.SOLO, Difficulty.MEDIUM, seed=3)
        self.match.assign_seat("alice")
        self.match.start_game()

    def test_computer_replies(self):
        assert self.match.apply_move("alice", "e2e4").ok
        assert len(self.match.moves) == 2
        assert self.match.board.side_to_move() is Color.WHITE
        assert self.match.last_move == self.match.moves[-1]

    def test_computer_replies_every_turn(self):
        for _ in range(3):
            before = len(self.match.moves)
            mv = sorted(self.match.board.get_legal_moves())[0]
            assert self.match.apply_move("alice", mv).ok
            if self.match.status is not MatchStatus.PLAYING:
                break
            assert len(self.match.moves) == before + 2
            assert self.match.board.side_to_move() is Color.WHITE

    def test_human_cannot_move_black(self):
        self.match.board = ChessBoard.from_moves(["e2e4"])
        assert self.match.apply_move("alice", "e7e5").kind is ErrorKind.NOT_YOUR_TURN

    def test_nobody_moves_as_the_computer(self):
        self.match.board = ChessBoard.from_moves(["e2e4"])
        assert self.match.apply_move("computer", "e7e5").kind is ErrorKind.NOT_YOUR_TURN
        assert self.match.moves == ["e2e4"]

    def test_no_reply_after_mate(self):
        self.match.board = ChessBoard("6k1/5ppp/8/8/8/8/8/R3K3 w - - 0 1")
        assert self.match.apply_move("alice", "a1a8").ok
        assert self.match.status is MatchStatus.ENDED
        assert self.match.winner is Color.WHITE
        assert self.match.last_move == "a1a8"

    def test_computer_mates(self):
        self.match.board = ChessBoard("r3k3/8/8/8/8/8/5PPP/6K1 w - - 0 1")
        # Kh1 leaves the back rank sealed
        assert self.match.apply_move("alice", "g1h1").ok
        assert self.match.status is MatchStatus.ENDED
        assert self.match.winner is Color.BLACK
        assert self.match.last_move == "a8a1"


class TestResets:
    def test_rematch_requires_ended(self):
        match = started_duo()
        assert match.rematch(["alice", "bob"]).kind is ErrorKind.NOT_ENDED
        assert match.status is MatchStatus.PLAYING

    def test_rematch_restarts(self):
        match = started_duo()
        play(match, SCHOLARS_MATE)
        assert match.rematch(["alice", "bob"]).ok
        assert match.status is MatchStatus.PLAYING
        assert match.moves == []
        assert match.winner is None and match.end_reason is None
        assert match.seats.color_of("alice") is Color.WHITE

    def test_rematch_stays_in_lobby_when_short(self):
        match = started_duo()
        play(match, SCHOLARS_MATE)
        assert match.rematch(["alice"]).ok
        assert match.status is MatchStatus.LOBBY

    def test_reset_to_lobby_keeps_selection(self):
        match = make_match(Mode.SOLO, Difficulty.HARD)
        match.assign_seat("alice")
        match.start_game()
        match.reset_to_lobby()
        assert match.status is MatchStatus.LOBBY
        assert len(match.seats) == 0
        assert match.selection.difficulty is Difficulty.HARD


class TestLeave:
    def test_duo_disconnect_ends_match(self):
        match = started_duo()
        play(match, ["e2e4"])
        assert match.handle_leave("bob", humans_remaining=1)
        assert match.status is MatchStatus.ENDED
        assert match.winner is None
        assert match.end_reason == "opponent disconnected"
        assert match.apply_move("alice", "d2d4").kind is ErrorKind.NOT_PLAYING

    def test_duo_spectator_leaving_is_ignored(self):
        match = started_duo()
        assert not match.handle_leave("carol", humans_remaining=2)
        assert match.status is MatchStatus.PLAYING

    def test_solo_last_human_resets(self):
        match = make_match(Mode.SOLO, Difficulty.MEDIUM)
        match.assign_seat("alice")
        match.start_game()
        match.apply_move("alice", "e2e4")
        assert match.handle_leave("alice", humans_remaining=0)
        assert match.status is MatchStatus.LOBBY
        assert len(match.seats) == 0
        assert match.moves == []
        assert match.selection.difficulty is Difficulty.MEDIUM

    def test_lobby_leave_frees_seat(self):
        match = make_match(Mode.DUO)
        match.assign_seat("alice")
        match.assign_seat("bob")
        assert match.handle_leave("alice", humans_remaining=1)
        assert not match.seats.is_occupied(Color.WHITE)


# ════════════════════════════════════════════════════════════════════════════
#  PROJECTOR
# ════════════════════════════════════════════════════════════════════════════

class TestProjector:
    def test_lobby_waiting_in_duo(self):
        match = make_match(Mode.DUO)
        match.assign_seat("alice")
        state = build_ui_state(match, Color.WHITE)
        assert state.screen == "lobby"
        assert state.lobby.waiting_for_opponent is True

    def test_lobby_solo_never_waits(self):
        match = make_match(Mode.SOLO)
        state = build_ui_state(match, Color.WHITE)
        assert state.lobby.waiting_for_opponent is False

    def test_game_view(self):
        match = started_duo()
        play(match, ["e2e4"])
        state = build_ui_state(match, Color.BLACK)
        assert state.screen == "game"
        assert state.game.side_to_move is Color.BLACK
        assert state.game.viewer_color is Color.BLACK
        assert state.game.last_move == "e2e4"
        assert state.game.status is GameStatus.PLAYING
        assert state.game.position == match.board.to_canonical_string()
        assert "e7e5" in state.game.legal_moves

    def test_end_view(self):
        match = started_duo()
        play(match, SCHOLARS_MATE)
        state = build_ui_state(match, Color.BLACK)
        assert state.screen == "end"
        assert state.end.result == "white"
        assert state.end.reason == "checkmate"

    def test_end_view_draw(self):
        match = started_duo()
        match.abandon()
        state = build_ui_state(match, Color.WHITE)
        assert state.end.result == "draw"
        assert state.end.reason == "opponent disconnected"

    def test_dump_uses_camel_case(self):
        match = started_duo()
        data = dump(StateMessage(payload=build_ui_state(match, Color.WHITE)))
        assert data["type"] == "ui.state"
        game = data["payload"]["game"]
        assert game["sideToMove"] == "white"
        assert game["viewerColor"] == "white"
        assert "lastMove" not in game
        assert "lobby" not in data["payload"]


# ════════════════════════════════════════════════════════════════════════════
#  INBOUND MESSAGES
# ════════════════════════════════════════════════════════════════════════════

class TestParseInbound:
    def test_ready(self):
        assert isinstance(parse_inbound({"type": "ui.ready"}), ReadyMessage)

    def test_lobby_set(self):
        msg = parse_inbound({"type": "ui.action", "action": "lobby.set",
                             "payload": {"mode": "duo"}})
        assert isinstance(msg, LobbySetAction)
        assert msg.payload.mode is Mode.DUO
        assert msg.payload.difficulty is None

    def test_lobby_set_bad_mode(self):
        assert parse_inbound({"type": "ui.action", "action": "lobby.set",
                              "payload": {"mode": "trio"}}) is None

    def test_move(self):
        msg = parse_inbound({"type": "ui.action", "action": "game.move",
                             "payload": {"uci": "e2e4"}})
        assert isinstance(msg, GameMoveAction)
        assert msg.payload.uci == "e2e4"

    def test_short_move_rejected(self):
        assert parse_inbound({"type": "ui.action", "action": "game.move",
                              "payload": {"uci": "e2e"}}) is None
        assert parse_inbound({"type": "ui.action", "action": "game.move"}) is None

    def test_rematch_ignores_payload(self):
        msg = parse_inbound({"type": "ui.action", "action": "end.rematch", "payload": {"x": 1}})
        assert isinstance(msg, RematchAction)

    @pytest.mark.parametrize("raw", [
        {"type": "ui.action", "action": "game.resign"},
        {"type": "ui.other"},
        {"action": "lobby.start"},
        "ui.ready",
        None,
    ])
    def test_unknown_ignored(self, raw):
        assert parse_inbound(raw) is None
