"""Host and spectator session controllers."""

from .context import SessionContext, new_participant_id
from .host import HostSession, SpinRound
from .spectator import SpectatorSession
from .persistence import SessionRecord, SessionRecordStore
from .codes import make_room_code, normalize_room_code, is_valid_room_code

__all__ = [
    "SessionContext",
    "new_participant_id",
    "HostSession",
    "SpinRound",
    "SpectatorSession",
    "SessionRecord",
    "SessionRecordStore",
    "make_room_code",
    "normalize_room_code",
    "is_valid_room_code",
]
