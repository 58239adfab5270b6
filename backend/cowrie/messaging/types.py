from enum import StrEnum
from typing import Annotated, Any, Literal, Self

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StringConstraints,
    TypeAdapter,
    field_validator,
)
from pydantic.alias_generators import to_camel

from cowrie.session.room import Room

# ASCII control character boundaries for input validation
_SPACE_ORD = 0x20
_DEL_ORD = 0x7F

MAX_NAME_LENGTH = 32


class ClientMessageType(StrEnum):
    CREATE_ROOM = "create-room"
    JOIN_ROOM = "join-room"
    START_GAME = "start-game"
    ROLL_REQUEST = "roll-request"
    MOVE_MADE = "move-made"
    TURN_ADVANCE = "turn-advance"
    CLIENT_ERROR = "client-error"


class ServerMessageType(StrEnum):
    ROOM_CREATED = "room-created"
    ROOM_JOINED = "room-joined"
    JOIN_ERROR = "join-error"
    LOBBY_UPDATE = "lobby-update"
    GAME_STARTED = "game-started"
    TURN_ADVANCED = "turn-advanced"
    ROLL_RESULT = "roll-result"
    MOVE_MADE = "move-made"
    ERROR = "session-error"


class SessionErrorCode(StrEnum):
    INVALID_MESSAGE = "invalid_message"
    INTERNAL_ERROR = "internal_error"


class WireModel(BaseModel):
    """Fields are snake_case in Python and camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def _reject_control_chars(v: str) -> str:
    if any(ord(c) < _SPACE_ORD or ord(c) == _DEL_ORD for c in v):
        raise ValueError("name must not contain control characters")
    return v


DisplayName = Annotated[
    str,
    StringConstraints(strip_whitespace=True, max_length=MAX_NAME_LENGTH),
    AfterValidator(_reject_control_chars),
]


# --- Client -> server ---


class CreateRoomMessage(WireModel):
    type: Literal[ClientMessageType.CREATE_ROOM] = ClientMessageType.CREATE_ROOM
    # Blank names are a user error reported as join-error, not a validation failure.
    name: DisplayName = ""


class JoinRoomMessage(WireModel):
    type: Literal[ClientMessageType.JOIN_ROOM] = ClientMessageType.JOIN_ROOM
    room_id: str = Field(default="", max_length=16)
    name: DisplayName = ""

    @field_validator("room_id")
    @classmethod
    def _normalize_room_id(cls, v: str) -> str:
        return v.strip().upper()


class StartGameMessage(WireModel):
    type: Literal[ClientMessageType.START_GAME] = ClientMessageType.START_GAME


class RollRequestMessage(WireModel):
    type: Literal[ClientMessageType.ROLL_REQUEST] = ClientMessageType.ROLL_REQUEST


class MoveMadeMessage(WireModel):
    """A move is relayed verbatim; the server does not look inside it."""

    type: Literal[ClientMessageType.MOVE_MADE] = ClientMessageType.MOVE_MADE
    move: Any = None


class TurnAdvanceMessage(WireModel):
    type: Literal[ClientMessageType.TURN_ADVANCE] = ClientMessageType.TURN_ADVANCE
    next_index: StrictInt


class ClientErrorMessage(WireModel):
    type: Literal[ClientMessageType.CLIENT_ERROR] = ClientMessageType.CLIENT_ERROR
    message: str | None = Field(default=None, max_length=2000)
    stack: str | None = Field(default=None, max_length=8000)
    context: Any = None


ClientMessage = Annotated[
    CreateRoomMessage
    | JoinRoomMessage
    | StartGameMessage
    | RollRequestMessage
    | MoveMadeMessage
    | TurnAdvanceMessage
    | ClientErrorMessage,
    Field(discriminator="type"),
]

_client_message_adapter = TypeAdapter(ClientMessage)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a decoded frame into a typed client message."""
    return _client_message_adapter.validate_python(data)


# --- Server -> client ---


class PlayerInfo(WireModel):
    id: str
    name: str


def _player_infos(room: Room) -> list[PlayerInfo]:
    return [PlayerInfo(id=p.handle, name=p.display_name) for p in room.players]


class RoomCreatedMessage(WireModel):
    type: Literal[ServerMessageType.ROOM_CREATED] = ServerMessageType.ROOM_CREATED
    room_id: str
    host_id: str


class RoomJoinedMessage(WireModel):
    type: Literal[ServerMessageType.ROOM_JOINED] = ServerMessageType.ROOM_JOINED
    room_id: str
    host_id: str


class JoinErrorMessage(WireModel):
    type: Literal[ServerMessageType.JOIN_ERROR] = ServerMessageType.JOIN_ERROR
    message: str


class LobbyUpdateMessage(WireModel):
    type: Literal[ServerMessageType.LOBBY_UPDATE] = ServerMessageType.LOBBY_UPDATE
    room_id: str
    players: list[PlayerInfo]
    host_id: str
    started: bool

    @classmethod
    def from_room(cls, room: Room) -> Self:
        return cls(room_id=room.room_id, players=_player_infos(room), host_id=room.host_handle, started=room.started)


class GameStartedMessage(WireModel):
    type: Literal[ServerMessageType.GAME_STARTED] = ServerMessageType.GAME_STARTED
    room_id: str
    players: list[PlayerInfo]
    host_id: str
    current_index: int

    @classmethod
    def from_room(cls, room: Room) -> Self:
        return cls(
            room_id=room.room_id,
            players=_player_infos(room),
            host_id=room.host_handle,
            current_index=room.current_index,
        )


class TurnAdvancedMessage(WireModel):
    type: Literal[ServerMessageType.TURN_ADVANCED] = ServerMessageType.TURN_ADVANCED
    current_index: int


class RollResultMessage(WireModel):
    type: Literal[ServerMessageType.ROLL_RESULT] = ServerMessageType.ROLL_RESULT
    roll: int
    player_id: str


class MoveRelayMessage(WireModel):
    type: Literal[ServerMessageType.MOVE_MADE] = ServerMessageType.MOVE_MADE
    move: Any
    player_id: str


class ErrorMessage(WireModel):
    type: Literal[ServerMessageType.ERROR] = ServerMessageType.ERROR
    code: SessionErrorCode
    message: str
