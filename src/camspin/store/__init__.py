"""Shared room store interface and implementations."""

from .base import RoomStore, Unsubscribe
from .documents import (
    SERVER_TIMESTAMP,
    RoomDocument,
    PlayerDocument,
    status_fields,
    participants_from_snapshot,
)
from .memory import InMemoryRoomStore
from .publisher import RoomPublisher

__all__ = [
    "RoomStore",
    "Unsubscribe",
    "SERVER_TIMESTAMP",
    "RoomDocument",
    "PlayerDocument",
    "status_fields",
    "participants_from_snapshot",
    "InMemoryRoomStore",
    "RoomPublisher",
]
