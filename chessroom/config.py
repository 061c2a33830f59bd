# chessroom/config.py
from dataclasses import dataclass, field
from typing import Dict, Optional
import logging
import os
import tomllib

# Defaults (centipawns)
PIECE_VALUES = {
    "PAWN": 100,
    "KNIGHT": 320,
    "BISHOP": 330,
    "ROOK": 500,
    "QUEEN": 900,
    "KING": 0,
}

SEARCH_DEPTHS = {
    "easy": 1,
    "medium": 2,
    "hard": 3,
}

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass
class SearchConfig:
    depths: Dict[str, int] = field(default_factory=lambda: SEARCH_DEPTHS.copy())
    mate_score: int = 100000
    seed: Optional[int] = None  # None means an unseeded generator


@dataclass
class EvalConfig:
    piece_values: Dict[str, int] = field(default_factory=lambda: PIECE_VALUES.copy())


@dataclass
class RoomConfig:
    default_mode: str = "solo"
    default_difficulty: str = "easy"
    computer_identity: str = "computer"
    end_toast_ttl_ms: int = 4000


@dataclass
class UIConfig:
    app_name: str = "ChessRoom"
    api_port: int = 8000


@dataclass
class Config:
    search: SearchConfig = field(default_factory=SearchConfig)
    eval: EvalConfig = field(default_factory=EvalConfig)
    room: RoomConfig = field(default_factory=RoomConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    log_level: str = "INFO"

    @staticmethod
    def load_from_toml(path: str = "config.toml") -> "Config":
        cfg = Config()
        if not os.path.exists(path):
            return cfg
        with open(path, "rb") as f:
            raw = tomllib.load(f)
        for section in ("search", "eval", "room", "ui"):
            target = getattr(cfg, section)
            for k, v in raw.get(section, {}).items():
                if hasattr(target, k):
                    setattr(target, k, v)
        if "log_level" in raw:
            cfg.log_level = str(raw["log_level"])
        return cfg


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler used by the API and the CLI."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


# single globally importable config instance
CONFIG = Config.load_from_toml(os.environ.get("CHESSROOM_CONFIG_TOML", "config.toml"))
# env overrides for quick debugging
if os.environ.get("CHESSROOM_SEARCH_SEED"):
    CONFIG.search.seed = int(os.environ["CHESSROOM_SEARCH_SEED"])
if os.environ.get("CHESSROOM_LOG_LEVEL"):
    CONFIG.log_level = os.environ["CHESSROOM_LOG_LEVEL"]
