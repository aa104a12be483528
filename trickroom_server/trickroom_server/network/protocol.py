"""Wire protocol: newline-delimited JSON events.

Every message is one JSON object on one line. Requests carry their kind
in the "event" field and are validated into typed models before they
reach the engine. Outbound messages are {"event": name, "data": payload}.
"""

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from trickroom_server.models.card import Card

ENCODING = "utf-8"
MAX_LINE_BYTES = 64 * 1024

# Outbound event names
ROOM_CREATED = "room-created"
ROOM_JOINED = "room-joined"
PLAYER_JOINED = "player-joined"
GAME_STARTED = "game-started"
GAME_STATE_UPDATED = "game-state-updated"
TRICK_WON = "trick-won"
GAME_OVER = "game-over"
PLAYER_RECONNECTED = "player-reconnected"
PLAYER_DISCONNECTED = "player-disconnected"
PLAYER_LEFT = "player-left"
ROOM_ERROR = "room-error"
GAME_ERROR = "game-error"
VOICE_TOKEN = "voice-token"


class ProtocolError(ValueError):
    """Raised when an inbound message cannot be decoded."""


class CreateRoomRequest(BaseModel):
    event: Literal["create-room"]
    user_name: str = Field(min_length=1, max_length=32)
    max_players: Literal[2, 3, 4] = 4


class JoinRoomRequest(BaseModel):
    event: Literal["join-room"]
    room_id: str
    user_name: str = Field(min_length=1, max_length=32)


class ReconnectRequest(BaseModel):
    event: Literal["reconnect-player"]
    user_id: str
    room_id: str


class StartGameRequest(BaseModel):
    event: Literal["start-game"]
    room_id: str
    player_id: str


class PlayCardRequest(BaseModel):
    event: Literal["play-card"]
    game_id: str
    player_id: str
    card: Card


class VoiceTokenRequest(BaseModel):
    event: Literal["voice-token"]
    channel_name: str = Field(min_length=1)
    uid: int


Request = Annotated[
    Union[
        CreateRoomRequest,
        JoinRoomRequest,
        ReconnectRequest,
        StartGameRequest,
        PlayCardRequest,
        VoiceTokenRequest,
    ],
    Field(discriminator="event"),
]

_request_adapter: TypeAdapter[Request] = TypeAdapter(Request)


def parse_request(line: str | bytes) -> Request:
    """Decode one inbound line into a typed request.

    Args:
        line: Raw line (with or without trailing newline)

    Returns:
        One of the request models

    Raises:
        ProtocolError: If the line is not valid JSON or not a known request
    """
    if isinstance(line, bytes):
        try:
            line = line.decode(ENCODING)
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Message is not {ENCODING}") from e

    try:
        payload = json.loads(line)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Malformed JSON: {e.msg}") from e

    if not isinstance(payload, dict):
        raise ProtocolError("Message must be a JSON object")

    try:
        return _request_adapter.validate_python(payload)
    except ValidationError as e:
        errors = ", ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ProtocolError(f"Invalid request: {errors}") from e


def to_wire(data: Any) -> Any:
    """Convert models (and lists/dicts of models) to JSON-ready data."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, (list, tuple)):
        return [to_wire(item) for item in data]
    if isinstance(data, dict):
        return {key: to_wire(value) for key, value in data.items()}
    return data


def encode_event(event: str, data: Any = None) -> bytes:
    """Encode an outbound event as one JSON line."""
    message = {"event": event, "data": to_wire(data)}
    return (json.dumps(message, ensure_ascii=False) + "\n").encode(ENCODING)
