"""Spectator session - a player watching the shuffle on their own device.

Spectators never write the room phase. They mirror the room document
and the roster, run a local ambient spin while the room is spinning and,
once the room is finished, drop the animation and show the published
winner looked up in their own roster mirror. The host's offset is never
used. Room deletion or a lost subscription closes the session for good.
"""

import logging
from typing import Any, Callable, Optional

from camspin.animation.physics import Idle, PhysicsEngine, Spin
from camspin.animation.strip import StripLayout
from camspin.capture.camera import FrameSource
from camspin.capture.uploader import PhotoUploader
from camspin.core.errors import RoomClosedError, RoomNotFoundError, StoreWriteError
from camspin.core.events import Event, EventType
from camspin.core.roster import Participant, Roster
from camspin.core.state import RoomPhase, RoomStateMachine, RoomStatus
from camspin.session.codes import is_valid_room_code, normalize_room_code
from camspin.session.context import SessionContext
from camspin.session.persistence import SessionRecord
from camspin.store.documents import PlayerDocument, RoomDocument, participants_from_snapshot
from camspin.store.publisher import RoomPublisher

logger = logging.getLogger(__name__)


class SpectatorSession:
    """Read-only view of a room plus this player's own document."""

    def __init__(self, context: SessionContext) -> None:
        self.context = context
        settings = context.settings

        self.publisher = RoomPublisher(context.store, settings.store)
        self.roster = Roster()
        self.state_machine = RoomStateMachine()
        self.layout = StripLayout(settings.strip)
        self.engine = PhysicsEngine(settings.physics, name="spectator")

        self.code: Optional[str] = None
        self.name: Optional[str] = None
        self.uploader: Optional[PhotoUploader] = None

        self._joined = False
        self._closed = False
        self._close_reason: Optional[str] = None
        self._unsubscribers: list[Callable[[], None]] = []
        self._remove_tick: Optional[Callable[[], None]] = None

    # Properties

    @property
    def phase(self) -> RoomPhase:
        return self.state_machine.phase

    @property
    def is_joined(self) -> bool:
        return self._joined and not self._closed

    @property
    def is_closed(self) -> bool:
        """True once the room is gone or the connection was lost."""
        return self._closed

    @property
    def close_reason(self) -> Optional[str]:
        return self._close_reason

    @property
    def winner_id(self) -> Optional[str]:
        return self.state_machine.winner_id

    @property
    def winner(self) -> Optional[Participant]:
        """Published winner resolved against the local roster mirror."""
        if self.phase != RoomPhase.FINISHED:
            return None
        return self.roster.get(self.state_machine.winner_id)

    # Lifecycle

    async def join(self, code: str, name: str) -> None:
        """Enter a room and start mirroring it.

        Raises:
            ValueError: Malformed code or empty name
            RoomNotFoundError: No such room
            StoreWriteError: Player document could not be written
        """
        if self._closed:
            raise RoomClosedError("Session already closed, create a new one to rejoin")
        if self._joined:
            logger.warning(f"Already joined room {self.code}")
            return

        code = normalize_room_code(code, self.context.settings.store.room_code_length)
        if not is_valid_room_code(code):
            raise ValueError(f"Invalid room code: {code!r}")
        name = name.strip()
        if not name:
            raise ValueError("Name required")

        if await self.context.store.get_room(code) is None:
            raise RoomNotFoundError(code)

        player_id = self.context.participant_id
        await self.publisher.set_player(code, player_id, PlayerDocument(id=player_id, name=name).to_dict())

        self.code = code
        self.name = name
        self._joined = True
        if self.context.records is not None:
            self.context.records.save(SessionRecord(code=code, role="player", name=name))
        logger.info(f"Joined room {code} as {name}")

        store = self.context.store
        self._unsubscribers.append(
            store.subscribe_players(code, self._on_players, self._on_subscription_error)
        )
        self._unsubscribers.append(
            store.subscribe_room(code, self._on_room, self._on_subscription_error)
        )
        if self._remove_tick is None and not self._closed:
            self._remove_tick = self.context.loop.add_tick_handler(self._on_tick)

    async def rejoin(self) -> bool:
        """Join the room from the saved player record, if any."""
        records = self.context.records
        record = records.load() if records is not None else None
        if record is None or record.role != "player" or not record.name:
            return False
        try:
            await self.join(record.code, record.name)
        except RoomNotFoundError:
            logger.info(f"Saved room {record.code} is gone")
            records.clear()
            return False
        return True

    async def leave(self) -> None:
        """Remove this player from the room and close the session."""
        if not self._joined or self._closed:
            return
        try:
            await self.publisher.delete_player(self.code, self.context.participant_id)
        except StoreWriteError as e:
            logger.error(f"Error leaving room: {e}")
        self._close("left room")

    def attach_camera(self, source: FrameSource) -> PhotoUploader:
        """Start throttled photo uploads from source."""
        if not self.is_joined:
            raise RoomClosedError("Join a room before attaching a camera")
        if self.uploader is not None:
            self.uploader.stop()
        self.uploader = PhotoUploader(
            source,
            self.context.store,
            self.code,
            self.context.participant_id,
            self.context.loop,
            self.context.settings.capture,
            self.context.event_bus,
        )
        self.uploader.start()
        return self.uploader

    def _close(self, reason: str) -> None:
        if self._closed:
            return
        self._closed = True
        self._close_reason = reason

        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        if self._remove_tick is not None:
            self._remove_tick()
            self._remove_tick = None
        if self.uploader is not None:
            self.uploader.stop()
        self.engine.send(Idle())

        if self.context.records is not None:
            self.context.records.clear()

        logger.info(f"Session for room {self.code} closed: {reason}")
        self._emit(EventType.ROOM_CLOSED, {"reason": reason})

    # Store callbacks

    def _on_room(self, data: Optional[dict[str, Any]]) -> None:
        if data is None:
            self._close("room closed by host")
            return

        status = RoomDocument.from_dict(self.code, data).status
        old = self.state_machine.status
        if not self.state_machine.observe(status):
            return
        self._react(old, self.state_machine.status)

    def _react(self, old: RoomStatus, new: RoomStatus) -> None:
        if new.phase == RoomPhase.SPINNING:
            # Ambient spin, not tied to the host's offset
            self.engine.send(Spin())
        else:
            self.engine.send(Idle())

        data: dict[str, Any] = {"from": old.phase.value, "to": new.phase.value, "winner_id": new.winner_id}
        if new.phase == RoomPhase.FINISHED:
            winner = self.roster.get(new.winner_id)
            data["winner_name"] = winner.name if winner is not None else None
            if winner is None:
                logger.warning(f"Winner {new.winner_id} is not in the local roster")
            else:
                logger.info(f"Winner is {winner.name}")
        self._emit(EventType.PHASE_CHANGED, data)

    def _on_players(self, snapshot: dict[str, dict[str, Any]]) -> None:
        if self.roster.apply_snapshot(participants_from_snapshot(snapshot)):
            self._emit(EventType.ROSTER_CHANGED, {"count": len(self.roster)})

    def _on_subscription_error(self, error: Exception) -> None:
        logger.error(f"Room {self.code} subscription error: {error}")
        self._close(f"connection lost: {error}")

    # Frame loop

    def _on_tick(self, delta: float) -> None:
        offset = self.engine.tick()
        self._emit(EventType.TICK, {"offset": offset, "delta": delta})

    def _emit(self, event_type: EventType, data: dict[str, Any]) -> None:
        self.context.event_bus.emit(Event(event_type, data=data, source="spectator"))
