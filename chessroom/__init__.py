"""ChessRoom: lobby, seating and turn bookkeeping for a two-seat chess room,
with a minimax computer opponent for solo play."""

__version__ = "0.1.0"
