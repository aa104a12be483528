"""Network communication."""

from .http_api import VoiceTokenServer
from .protocol import ProtocolError, encode_event, parse_request
from .server import GameServer
from .transport import RecordingTransport, Transport

__all__ = [
    "GameServer",
    "ProtocolError",
    "RecordingTransport",
    "Transport",
    "VoiceTokenServer",
    "encode_event",
    "parse_request",
]
