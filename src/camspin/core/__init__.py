"""Core framework components for CamSpin."""

from .state import RoomPhase, RoomStatus, RoomStateMachine
from .events import EventBus, Event, EventType
from .roster import Participant, Roster, RosterSnapshot
from .errors import (
    CamSpinError,
    ShuffleRequestError,
    NotEnoughPlayersError,
    SpinInProgressError,
    StoreError,
    StoreWriteError,
    RoomNotFoundError,
    RoomClosedError,
)

__all__ = [
    "RoomPhase",
    "RoomStatus",
    "RoomStateMachine",
    "EventBus",
    "Event",
    "EventType",
    "Participant",
    "Roster",
    "RosterSnapshot",
    "CamSpinError",
    "ShuffleRequestError",
    "NotEnoughPlayersError",
    "SpinInProgressError",
    "StoreError",
    "StoreWriteError",
    "RoomNotFoundError",
    "RoomClosedError",
]
