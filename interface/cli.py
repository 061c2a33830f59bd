import argparse

from chessroom.config import CONFIG, configure_logging
from chessroom.match import Match
from chessroom.types import Difficulty, MatchStatus, Mode

HUMAN = "you"


def main(argv=None):
    parser = argparse.ArgumentParser(description="Play a solo match against the computer")
    parser.add_argument("--difficulty", choices=[d.value for d in Difficulty],
                        default=CONFIG.room.default_difficulty)
    args = parser.parse_args(argv)
    configure_logging(CONFIG.log_level)

    # initialize a solo match with the human as White
    match = Match("cli")
    match.set_lobby_selection(mode=Mode.SOLO, difficulty=Difficulty(args.difficulty))
    match.assign_seat(HUMAN)
    match.start_game()

    while match.status is MatchStatus.PLAYING:
        print(match.board)
        print(f"----------------------------  [{match.get_status()}]")
        if match.last_move:
            print(f"Last move: {match.last_move}")

        user_move = input("Enter your move (uci format, e2e4), or 'quit': ").strip()
        if user_move == "quit":
            return
        outcome = match.apply_move(HUMAN, user_move)
        if not outcome.ok:
            print(f"{outcome.reason.capitalize()}, try again.")

    print(match.board)
    print("Game Over")
    winner = match.winner.label if match.winner else "nobody"
    print(f"Result: {match.end_reason} (winner: {winner})")


if __name__ == "__main__":
    main()
