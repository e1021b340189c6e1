"""Explicit per-participant session context.

Everything a session needs from the outside (store handle, identity,
settings, clock) is passed in here instead of being read from module
globals, so several participants can live in one process.
"""

from dataclasses import dataclass, field
from typing import Optional
import random
import uuid

from camspin.animation.scheduler import FrameLoop
from camspin.config.settings import Settings, get_settings
from camspin.core.events import EventBus
from camspin.session.persistence import SessionRecordStore
from camspin.store.base import RoomStore


def new_participant_id() -> str:
    return uuid.uuid4().hex


@dataclass
class SessionContext:
    """Dependencies of one host or spectator session."""

    store: RoomStore
    participant_id: str = field(default_factory=new_participant_id)
    settings: Settings = field(default_factory=get_settings)
    event_bus: EventBus = field(default_factory=EventBus)
    rng: random.Random = field(default_factory=random.Random)
    loop: Optional[FrameLoop] = None
    records: Optional[SessionRecordStore] = None

    def __post_init__(self) -> None:
        if self.loop is None:
            self.loop = FrameLoop(fps=self.settings.fps, name=f"loop-{self.participant_id[:6]}")
