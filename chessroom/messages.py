"""Wire models exchanged with the UI layer.

Inbound messages are validated into a tagged union keyed on ``action``
before they reach the match; anything that fails validation is dropped.
Outbound models serialize with camelCase keys.
"""

import logging
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from chessroom.types import Color, Difficulty, GameStatus, Mode

logger = logging.getLogger(__name__)


# --- INBOUND ---
class ReadyMessage(BaseModel):
    type: Literal["ui.ready"] = "ui.ready"


class LobbySetPayload(BaseModel):
    mode: Optional[Mode] = None
    difficulty: Optional[Difficulty] = None


class LobbySetAction(BaseModel):
    type: Literal["ui.action"] = "ui.action"
    action: Literal["lobby.set"] = "lobby.set"
    payload: LobbySetPayload = Field(default_factory=LobbySetPayload)


class LobbyStartAction(BaseModel):
    type: Literal["ui.action"] = "ui.action"
    action: Literal["lobby.start"] = "lobby.start"


class MovePayload(BaseModel):
    uci: str = Field(min_length=4)


class GameMoveAction(BaseModel):
    type: Literal["ui.action"] = "ui.action"
    action: Literal["game.move"] = "game.move"
    payload: MovePayload


class RematchAction(BaseModel):
    type: Literal["ui.action"] = "ui.action"
    action: Literal["end.rematch"] = "end.rematch"


class BackToLobbyAction(BaseModel):
    type: Literal["ui.action"] = "ui.action"
    action: Literal["end.backToLobby"] = "end.backToLobby"


UiAction = Annotated[
    Union[LobbySetAction, LobbyStartAction, GameMoveAction, RematchAction, BackToLobbyAction],
    Field(discriminator="action"),
]
InboundMessage = Union[ReadyMessage, UiAction]

_action_adapter = TypeAdapter(UiAction)


def parse_inbound(raw: Any) -> Optional[InboundMessage]:
    """Validate a raw UI message. Unknown or malformed messages yield None."""
    if not isinstance(raw, dict):
        return None
    kind = raw.get("type")
    if kind == "ui.ready":
        return ReadyMessage()
    if kind != "ui.action":
        logger.debug("ignoring message of type %r", kind)
        return None
    try:
        return _action_adapter.validate_python(raw)
    except ValidationError as e:
        logger.debug("ignoring action %r: %s", raw.get("action"), e.errors())
        return None


# --- OUTBOUND ---
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LobbyView(CamelModel):
    mode: Mode
    difficulty: Difficulty
    waiting_for_opponent: bool


class GameView(CamelModel):
    position: str
    side_to_move: Color
    viewer_color: Color
    status: GameStatus
    winner: Optional[Color] = None
    last_move: Optional[str] = None
    legal_moves: List[str] = Field(default_factory=list)


class EndView(CamelModel):
    result: Literal["white", "black", "draw"]
    reason: str


class UiState(CamelModel):
    screen: Literal["lobby", "game", "end"]
    lobby: Optional[LobbyView] = None
    game: Optional[GameView] = None
    end: Optional[EndView] = None


class StateMessage(CamelModel):
    type: Literal["ui.state"] = "ui.state"
    payload: UiState


class ToastPayload(CamelModel):
    message: str
    tone: Literal["info", "success", "warning", "error"] = "info"
    ttl_ms: Optional[int] = None


class ToastMessage(CamelModel):
    type: Literal["ui.toast"] = "ui.toast"
    payload: ToastPayload


class HudPayload(CamelModel):
    slot: Literal["topLeft", "topRight", "bottomLeft", "bottomRight"]
    text: str


class HudMessage(CamelModel):
    type: Literal["ui.hud"] = "ui.hud"
    payload: HudPayload


ServerMessage = Union[StateMessage, ToastMessage, HudMessage]


def toast(message: str, tone: str = "info", ttl_ms: Optional[int] = None) -> ToastMessage:
    return ToastMessage(payload=ToastPayload(message=message, tone=tone, ttl_ms=ttl_ms))


def hud(slot: str, text: str) -> HudMessage:
    return HudMessage(payload=HudPayload(slot=slot, text=text))


def dump(message: ServerMessage) -> dict:
    return message.model_dump(mode="json", by_alias=True, exclude_none=True)
