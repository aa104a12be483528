"""Rejection reasons and errors shared across the server."""

from enum import Enum


class RejectReason(str, Enum):
    """Why a request was rejected.

    A rejected request has no effect on state; the client may retry
    with a legal request.
    """

    ROOM_NOT_FOUND = "room_not_found"
    ROOM_FULL = "room_full"
    NOT_HOST = "not_host"
    NOT_ENOUGH_PLAYERS = "not_enough_players"
    GAME_IN_PROGRESS = "game_in_progress"
    GAME_NOT_FOUND = "game_not_found"
    PLAYER_NOT_FOUND = "player_not_found"
    PLAYER_ONLINE = "player_online"
    NOT_YOUR_TURN = "not_your_turn"
    CARD_NOT_IN_HAND = "card_not_in_hand"
    MUST_FOLLOW_SUIT = "must_follow_suit"
    INVALID_REQUEST = "invalid_request"
    INTERNAL_ERROR = "internal_error"


class StructuralViolation(RuntimeError):
    """A game invariant was broken (a bug, not a user error)."""


class RoomError(Exception):
    """Raised by the membership service when a room request is refused."""

    def __init__(self, reason: RejectReason, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message
