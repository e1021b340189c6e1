"""Host session - the single writer of the room phase.

Flow of one round:
1. request_spin(): snapshot the roster as the selection pool, move the
   local state machine to SPINNING, publish {phase: spinning, winnerId:
   null} in one write, start accelerating and arm the natural-stop timer
   (random 3-5 s).
2. The timer fires, or request_stop() is called: whichever comes first
   sets the round's stopping flag, selects the winner from the pool and
   sends the engine a DecelerateTo command. The other path then finds
   the flag set and does nothing.
3. The engine lands: the host moves to FINISHED and publishes
   {phase: finished, winnerId} once.

The local state machine is updated optimistically for instant feedback
and reconciled against the room document echoed back by the store. A
publish that fails after all retries rolls the local state back to the
last confirmed document.

Room writes go through one lock and reach the store in the order they
were issued. A FINISHED write still retrying when the next shuffle
starts therefore lands before that shuffle's SPINNING write, never
after it.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from camspin.animation.physics import DecelerateTo, Idle, PhysicsEngine, Spin
from camspin.animation.scheduler import TimerHandle
from camspin.animation.selector import Selection, WinnerSelector
from camspin.animation.strip import StripLayout
from camspin.core.errors import (
    NotEnoughPlayersError,
    RoomClosedError,
    SpinInProgressError,
    StoreWriteError,
)
from camspin.core.events import Event, EventType
from camspin.core.roster import Participant, Roster, RosterSnapshot
from camspin.core.state import RoomPhase, RoomStateMachine, RoomStatus
from camspin.session.codes import make_room_code
from camspin.session.context import SessionContext
from camspin.session.persistence import SessionRecord
from camspin.store.documents import RoomDocument, participants_from_snapshot, status_fields
from camspin.store.publisher import RoomPublisher

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 10


@dataclass
class SpinRound:
    """Host-side bookkeeping for one spin."""
    number: int
    pool: RosterSnapshot
    duration: float
    stopping: bool = False
    early_stop: bool = False
    selection: Optional[Selection] = None
    winner_id: Optional[str] = None
    landed: bool = False
    aborted: bool = False
    publish_failed: bool = False

    @property
    def winner(self) -> Optional[Participant]:
        if self.selection is None:
            return None
        return self.pool[self.selection.winner_index]


class HostSession:
    """Drives the authoritative spin for one room."""

    def __init__(self, context: SessionContext) -> None:
        self.context = context
        settings = context.settings

        self.publisher = RoomPublisher(context.store, settings.store)
        self.roster = Roster()
        self.state_machine = RoomStateMachine()
        self.layout = StripLayout(settings.strip)
        self.selector = WinnerSelector(self.layout, context.rng, settings.spin.min_players)
        self.engine = PhysicsEngine(settings.physics, name="host")
        self.engine.on_landed(self._on_landed)

        self.code: Optional[str] = None
        self._confirmed = RoomStatus()
        self._round: Optional[SpinRound] = None
        self._round_count = 0
        self._stop_timer: Optional[TimerHandle] = None
        self._pending: set[asyncio.Task] = set()
        self._write_lock = asyncio.Lock()
        self._unsubscribers: list[Callable[[], None]] = []
        self._remove_tick: Optional[Callable[[], None]] = None
        self._closed = False

        self.state_machine.add_listener(self._on_phase_changed)

    # Properties

    @property
    def phase(self) -> RoomPhase:
        return self.state_machine.phase

    @property
    def current_round(self) -> Optional[SpinRound]:
        return self._round

    @property
    def confirmed_status(self) -> RoomStatus:
        """Last room status echoed back by the store."""
        return self._confirmed

    @property
    def winner(self) -> Optional[Participant]:
        """Winner of the finished round, with the freshest roster record."""
        winner_id = self.state_machine.winner_id
        if winner_id is None:
            return None
        live = self.roster.get(winner_id)
        if live is not None:
            return live
        if self._round is not None and self._round.winner_id == winner_id:
            return self._round.winner
        return None

    @property
    def is_closed(self) -> bool:
        return self._closed

    # Lifecycle

    async def start(self, resume: bool = True) -> str:
        """Create (or recover) the room and start listening.

        Args:
            resume: Reuse the room from a saved host record if it still exists

        Returns:
            The room code
        """
        code = await self._recover_room() if resume else None
        if code is None:
            code = await self._free_room_code()
            document = RoomDocument(code=code, host_id=self.context.participant_id)
            await self.publisher.create_room(code, document.to_dict())
            logger.info(f"Room created: {code}")

        self.code = code
        if self.context.records is not None:
            self.context.records.save(SessionRecord(code=code, role="host"))

        store = self.context.store
        self._unsubscribers.append(
            store.subscribe_players(code, self._on_players, self._on_subscription_error)
        )
        self._unsubscribers.append(
            store.subscribe_room(code, self._on_room, self._on_subscription_error)
        )
        if self._remove_tick is None:
            self._remove_tick = self.context.loop.add_tick_handler(self._on_tick)
        return code

    async def _free_room_code(self) -> str:
        """Draw room codes until one is not taken by a live room."""
        length = self.context.settings.store.room_code_length
        for _ in range(MAX_CODE_ATTEMPTS):
            code = make_room_code(self.context.rng, length)
            if await self.context.store.get_room(code) is None:
                return code
            logger.debug(f"Room code {code} is taken, drawing again")
        raise StoreWriteError(f"No free room code after {MAX_CODE_ATTEMPTS} attempts")

    async def _recover_room(self) -> Optional[str]:
        records = self.context.records
        record = records.load() if records is not None else None
        if record is None or record.role != "host":
            return None

        data = await self.context.store.get_room(record.code)
        if data is None:
            logger.info(f"Saved room {record.code} no longer exists")
            records.clear()
            return None

        status = RoomDocument.from_dict(record.code, data).status
        if status.phase == RoomPhase.SPINNING:
            # The spin that was running died with the previous host process
            logger.warning(f"Room {record.code} was mid-spin, resetting to waiting")
            await self.publisher.update_room(record.code, status_fields(RoomStatus()))
            status = RoomStatus()

        self._confirmed = status
        self.state_machine.restore(status)
        logger.info(f"Recovered room {record.code} in phase {status.phase.name}")
        return record.code

    async def close_room(self) -> None:
        """End the game for everyone by deleting the room document."""
        if self._closed:
            return
        self._teardown()
        self._closed = True
        if self.code is not None:
            try:
                async with self._write_lock:
                    await self.publisher.delete_room(self.code)
            except StoreWriteError as e:
                logger.error(f"Error closing room: {e}")
        if self.context.records is not None:
            self.context.records.clear()
        self._emit(EventType.ROOM_CLOSED, {"reason": "closed by host"})
        logger.info(f"Room {self.code} closed")

    async def shutdown(self) -> None:
        """Stop driving the room without deleting it."""
        self._teardown()
        await self.drain()

    async def drain(self) -> None:
        """Wait for every scheduled store write to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _teardown(self) -> None:
        self._cancel_stop_timer()
        self.engine.send(Idle())
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        if self._remove_tick is not None:
            self._remove_tick()
            self._remove_tick = None

    # Spin control

    def request_spin(self) -> SpinRound:
        """Start a new shuffle round.

        Must be called on the session's event loop. Rejections raise and
        leave both local and shared state untouched.
        """
        if self._closed or self.code is None:
            raise RoomClosedError("Room is not open")
        if self.state_machine.phase == RoomPhase.SPINNING:
            raise SpinInProgressError("A shuffle is already running")

        min_players = self.context.settings.spin.min_players
        if len(self.roster) < min_players:
            logger.warning(f"Shuffle rejected: {len(self.roster)} players")
            raise NotEnoughPlayersError(len(self.roster), min_players)

        pool = self.roster.snapshot()
        spin_settings = self.context.settings.spin
        duration = self.context.rng.uniform(spin_settings.min_duration, spin_settings.max_duration)

        if not self.state_machine.transition(RoomPhase.SPINNING):
            raise SpinInProgressError(f"Cannot spin from {self.state_machine.phase.name}")

        self._round_count += 1
        spin_round = SpinRound(number=self._round_count, pool=pool, duration=duration)
        self._round = spin_round

        self._cancel_stop_timer()
        self.engine.send(Spin())
        self._stop_timer = self.context.loop.call_later(
            duration, self._on_natural_stop, name=f"natural-stop-{spin_round.number}"
        )

        self._publish(self.state_machine.status, spin_round)
        logger.info(
            f"Shuffle {spin_round.number} started with {len(pool)} players, "
            f"natural stop in {duration:.2f}s"
        )
        self._emit(EventType.SPIN_STARTED, {
            "round": spin_round.number,
            "players": list(pool.ids()),
            "duration": duration,
        })
        return spin_round

    def request_stop(self) -> bool:
        """Stop the running shuffle now instead of waiting for the timer.

        Returns:
            True if this call triggered winner selection
        """
        spin_round = self._round
        if spin_round is None or spin_round.stopping or spin_round.aborted:
            logger.debug("Stop ignored: no shuffle to stop")
            return False
        self._cancel_stop_timer()
        return self._begin_stop(spin_round, early=True)

    def retry_publish(self) -> bool:
        """Re-send the outcome of a round whose finish write failed.

        The winner is never re-rolled. Returns False if nothing to retry.
        """
        spin_round = self._round
        if spin_round is None or not spin_round.publish_failed or spin_round.winner_id is None:
            return False
        spin_round.publish_failed = False
        if self.state_machine.phase != RoomPhase.FINISHED:
            self.state_machine.transition(RoomPhase.FINISHED, winner_id=spin_round.winner_id)
        self._publish(self.state_machine.status, spin_round)
        return True

    def _on_natural_stop(self) -> None:
        self._stop_timer = None
        spin_round = self._round
        if spin_round is not None:
            self._begin_stop(spin_round, early=False)

    def _begin_stop(self, spin_round: SpinRound, early: bool) -> bool:
        # Both stop paths run on the frame loop, so check-and-set is atomic
        if spin_round.stopping or spin_round.aborted:
            return False
        spin_round.stopping = True
        spin_round.early_stop = early

        spin_settings = self.context.settings.spin
        cycles = spin_settings.early_stop_extra_cycles if early else spin_settings.natural_extra_cycles
        selection = self.selector.select_winner(len(spin_round.pool), self.engine.offset, cycles)
        spin_round.selection = selection
        spin_round.winner_id = spin_round.pool[selection.winner_index].id

        self.engine.send(DecelerateTo(selection.target_offset, selection.winner_index))
        self._emit(EventType.WINNER_SELECTED, {
            "round": spin_round.number,
            "winner_id": spin_round.winner_id,
            "winner_index": selection.winner_index,
            "target_offset": selection.target_offset,
            "early": early,
        })
        return True

    def _on_landed(self, winner_index: int) -> None:
        spin_round = self._round
        if spin_round is None or spin_round.landed or spin_round.aborted:
            return
        if spin_round.selection is None or spin_round.selection.winner_index != winner_index:
            logger.error(f"Landed on unexpected index {winner_index}")
            return

        spin_round.landed = True
        if not self.state_machine.transition(RoomPhase.FINISHED, winner_id=spin_round.winner_id):
            return

        winner = spin_round.winner
        logger.info(f"Shuffle {spin_round.number} landed on {winner.name} ({winner.id})")
        self._publish(self.state_machine.status, spin_round)
        self._emit(EventType.SPIN_LANDED, {
            "round": spin_round.number,
            "winner_id": winner.id,
            "winner_name": winner.name,
            "winner_index": winner_index,
        })

    def _cancel_stop_timer(self) -> None:
        if self._stop_timer is not None:
            self._stop_timer.cancel()
            self._stop_timer = None

    # Publishing

    def _publish(self, status: RoomStatus, spin_round: SpinRound) -> None:
        """Schedule an atomic phase+winner write without blocking the tick."""
        task = asyncio.get_running_loop().create_task(self._publish_async(status, spin_round))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _publish_async(self, status: RoomStatus, spin_round: SpinRound) -> None:
        fields = status_fields(status)
        # Tasks queue on the lock in creation order, so writes land in issue order
        async with self._write_lock:
            try:
                await self.publisher.update_room(self.code, fields)
            except StoreWriteError as e:
                self._on_publish_failed(e, fields, spin_round)
                return
            self._confirmed = status
        if not self._pending - {asyncio.current_task()}:
            self._reconcile()

    def _on_publish_failed(self, error: StoreWriteError, fields: dict[str, Any], spin_round: SpinRound) -> None:
        logger.error(f"Publishing {fields} failed: {error}")
        superseded = spin_round is not self._round

        if fields["phase"] == RoomPhase.SPINNING.value:
            # Nobody saw this round start: abandon it
            spin_round.aborted = True
            if not superseded:
                self._cancel_stop_timer()
                self.engine.send(Idle())
        else:
            spin_round.publish_failed = True

        if superseded:
            # A newer round owns the local state and publishes its own status
            logger.warning(
                f"Dropping outcome of shuffle {spin_round.number}, "
                f"shuffle {self._round.number} is running"
            )
        else:
            self.state_machine.restore(self._confirmed)
        self._emit(EventType.STORE_ERROR, {
            "error": str(error),
            "fields": fields,
            "round": spin_round.number,
        })

    def _reconcile(self) -> None:
        """Align local state with the store once no writes are in flight."""
        if self._closed or self.state_machine.status == self._confirmed:
            return
        logger.warning(
            f"Local phase {self.state_machine.phase.name} diverged from store "
            f"{self._confirmed.phase.name}, adopting store"
        )
        self.state_machine.restore(self._confirmed)

    # Store callbacks

    def _on_players(self, snapshot: dict[str, dict[str, Any]]) -> None:
        if not self.roster.apply_snapshot(participants_from_snapshot(snapshot)):
            return

        spin_round = self._round
        if spin_round is not None and self.phase == RoomPhase.SPINNING:
            missing = [pid for pid in spin_round.pool.ids() if pid not in self.roster]
            if missing:
                logger.warning(f"Players left mid-spin: {missing}")

        self._emit(EventType.ROSTER_CHANGED, {"count": len(self.roster)})

    def _on_room(self, data: Optional[dict[str, Any]]) -> None:
        if data is None:
            if not self._closed:
                logger.warning(f"Room {self.code} disappeared from the store")
                self._teardown()
                self._closed = True
                self._emit(EventType.ROOM_CLOSED, {"reason": "room deleted"})
            return

        self._confirmed = RoomDocument.from_dict(self.code, data).status
        if not self._pending:
            self._reconcile()

    def _on_subscription_error(self, error: Exception) -> None:
        logger.error(f"Room {self.code} subscription error: {error}")
        if not self._closed:
            self._teardown()
            self._closed = True
            self._emit(EventType.ROOM_CLOSED, {"reason": str(error)})

    # Frame loop

    def _on_tick(self, delta: float) -> None:
        offset = self.engine.tick()
        self._emit(EventType.TICK, {"offset": offset, "delta": delta})

    def _on_phase_changed(self, old: RoomStatus, new: RoomStatus) -> None:
        self._emit(EventType.PHASE_CHANGED, {
            "from": old.phase.value,
            "to": new.phase.value,
            "winner_id": new.winner_id,
        })

    def _emit(self, event_type: EventType, data: dict[str, Any]) -> None:
        self.context.event_bus.emit(Event(event_type, data=data, source="host"))
