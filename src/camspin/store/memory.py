"""In-process implementation of the shared room store.

Used by the local demo and tests. Every write is applied atomically and
fanned out to subscribers synchronously, in subscription order. Callers
always receive copies, never the stored dicts.
"""

import copy
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from camspin.core.errors import RoomClosedError, StoreWriteError
from camspin.store.base import (
    ErrorCallback,
    PlayersCallback,
    RoomCallback,
    RoomStore,
    Unsubscribe,
)
from camspin.store.documents import SERVER_TIMESTAMP

logger = logging.getLogger(__name__)


@dataclass
class _Subscription:
    code: str
    on_change: Callable[[Any], None]
    on_error: Optional[ErrorCallback]
    active: bool = True


@dataclass(frozen=True)
class WriteRecord:
    """One applied write, kept for inspection."""
    op: str
    code: str
    player_id: Optional[str]
    fields: Optional[dict[str, Any]]


class InMemoryRoomStore(RoomStore):
    """Dict-backed room store with push subscriptions."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last_timestamp = 0.0
        self._rooms: dict[str, dict[str, Any]] = {}
        self._players: dict[str, dict[str, dict[str, Any]]] = {}
        self._room_subs: list[_Subscription] = []
        self._player_subs: list[_Subscription] = []
        self.writes: list[WriteRecord] = []

    # Helpers

    def _timestamp(self) -> float:
        """Strictly increasing write time."""
        now = max(self._clock(), self._last_timestamp + 1e-6)
        self._last_timestamp = now
        return now

    def _resolve(self, fields: dict[str, Any]) -> dict[str, Any]:
        stamp = None
        resolved = {}
        for key, value in fields.items():
            if value is SERVER_TIMESTAMP:
                if stamp is None:
                    stamp = self._timestamp()
                value = stamp
            resolved[key] = copy.deepcopy(value)
        return resolved

    def _record(self, op: str, code: str, player_id: Optional[str] = None,
                fields: Optional[dict[str, Any]] = None) -> None:
        self.writes.append(WriteRecord(op, code, player_id, copy.deepcopy(fields)))

    def room_updates(self, code: str) -> list[dict[str, Any]]:
        """Field sets of every create/update applied to a room, in order."""
        return [
            w.fields for w in self.writes
            if w.code == code and w.player_id is None and w.op in ("create_room", "update_room")
        ]

    def _notify_room(self, code: str) -> None:
        snapshot = copy.deepcopy(self._rooms.get(code))
        for sub in [s for s in self._room_subs if s.code == code and s.active]:
            self._deliver(sub, snapshot)

    def _notify_players(self, code: str) -> None:
        for sub in [s for s in self._player_subs if s.code == code and s.active]:
            self._deliver(sub, copy.deepcopy(self._players.get(code, {})))

    @staticmethod
    def _deliver(sub: _Subscription, snapshot: Any) -> None:
        try:
            sub.on_change(snapshot)
        except Exception as e:
            logger.error(f"Error in store subscriber for room {sub.code}: {e}")

    # Room document

    async def create_room(self, code: str, data: dict[str, Any]) -> None:
        self._rooms[code] = self._resolve(data)
        self._players.setdefault(code, {})
        self._record("create_room", code, fields=self._rooms[code])
        logger.debug(f"Room created: {code}")
        self._notify_room(code)

    async def get_room(self, code: str) -> Optional[dict[str, Any]]:
        return copy.deepcopy(self._rooms.get(code))

    async def update_room(self, code: str, fields: dict[str, Any]) -> None:
        if code not in self._rooms:
            raise StoreWriteError(f"Room {code} does not exist")
        resolved = self._resolve(fields)
        self._rooms[code].update(resolved)
        self._record("update_room", code, fields=resolved)
        self._notify_room(code)

    async def delete_room(self, code: str) -> None:
        if self._rooms.pop(code, None) is None:
            return
        self._record("delete_room", code)
        logger.debug(f"Room deleted: {code}")
        self._notify_room(code)

    # Player documents

    async def set_player(self, code: str, player_id: str, data: dict[str, Any]) -> None:
        resolved = self._resolve(data)
        self._players.setdefault(code, {})[player_id] = resolved
        self._record("set_player", code, player_id, resolved)
        self._notify_players(code)

    async def update_player(self, code: str, player_id: str, fields: dict[str, Any]) -> None:
        players = self._players.get(code, {})
        if player_id not in players:
            raise StoreWriteError(f"Player {player_id} not in room {code}")
        resolved = self._resolve(fields)
        players[player_id].update(resolved)
        self._record("update_player", code, player_id, resolved)
        self._notify_players(code)

    async def delete_player(self, code: str, player_id: str) -> None:
        players = self._players.get(code, {})
        if players.pop(player_id, None) is None:
            return
        self._record("delete_player", code, player_id)
        self._notify_players(code)

    # Subscriptions

    def subscribe_room(
        self,
        code: str,
        on_change: RoomCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Unsubscribe:
        sub = _Subscription(code, on_change, on_error)
        self._room_subs.append(sub)
        self._deliver(sub, copy.deepcopy(self._rooms.get(code)))
        return self._make_unsubscribe(self._room_subs, sub)

    def subscribe_players(
        self,
        code: str,
        on_change: PlayersCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Unsubscribe:
        sub = _Subscription(code, on_change, on_error)
        self._player_subs.append(sub)
        self._deliver(sub, copy.deepcopy(self._players.get(code, {})))
        return self._make_unsubscribe(self._player_subs, sub)

    @staticmethod
    def _make_unsubscribe(subs: list[_Subscription], sub: _Subscription) -> Unsubscribe:
        def unsubscribe() -> None:
            sub.active = False
            if sub in subs:
                subs.remove(sub)

        return unsubscribe

    def disconnect(self, code: str, error: Optional[Exception] = None) -> None:
        """Simulate transport loss for every subscription on a room."""
        error = error or RoomClosedError(f"Connection to room {code} lost")
        for subs in (self._room_subs, self._player_subs):
            for sub in [s for s in subs if s.code == code]:
                if not sub.active:
                    continue
                sub.active = False
                subs.remove(sub)
                if sub.on_error is not None:
                    try:
                        sub.on_error(error)
                    except Exception as e:
                        logger.error(f"Error in store error callback: {e}")
        logger.info(f"Room {code} subscribers disconnected")
