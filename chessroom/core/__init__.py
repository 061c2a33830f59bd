"""Core components: board oracle wrapper, evaluator and search."""

from .board import ChessBoard
from .evaluator import Evaluator
from .search import SearchEngine
