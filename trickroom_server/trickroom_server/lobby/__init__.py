"""Room membership."""

from .rooms import RoomManager

__all__ = ["RoomManager"]
