"""Interface of the shared room store.

The store holds one room document per room plus a players collection
under it. Writes are atomic per document. Subscriptions push the current
snapshot immediately and then on every change; a deleted room document
is delivered as None. Transport loss is reported through the error
callback, after which the subscription is dead.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

Unsubscribe = Callable[[], None]
RoomCallback = Callable[[Optional[dict[str, Any]]], None]
PlayersCallback = Callable[[dict[str, dict[str, Any]]], None]
ErrorCallback = Callable[[Exception], None]


class RoomStore(ABC):
    """Document store consumed by host and spectator sessions."""

    # Room document

    @abstractmethod
    async def create_room(self, code: str, data: dict[str, Any]) -> None:
        """Create (or overwrite) the room document."""

    @abstractmethod
    async def get_room(self, code: str) -> Optional[dict[str, Any]]:
        """Fetch the room document, None if it does not exist."""

    @abstractmethod
    async def update_room(self, code: str, fields: dict[str, Any]) -> None:
        """Merge fields into an existing room document in one write."""

    @abstractmethod
    async def delete_room(self, code: str) -> None:
        """Delete the room document. Signals room closure to subscribers."""

    # Player documents

    @abstractmethod
    async def set_player(self, code: str, player_id: str, data: dict[str, Any]) -> None:
        """Create or replace a player document."""

    @abstractmethod
    async def update_player(self, code: str, player_id: str, fields: dict[str, Any]) -> None:
        """Merge fields into an existing player document."""

    @abstractmethod
    async def delete_player(self, code: str, player_id: str) -> None:
        """Remove a player document."""

    # Subscriptions

    @abstractmethod
    def subscribe_room(
        self,
        code: str,
        on_change: RoomCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Unsubscribe:
        """Push room document snapshots to on_change."""

    @abstractmethod
    def subscribe_players(
        self,
        code: str,
        on_change: PlayersCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Unsubscribe:
        """Push players collection snapshots (id -> fields) to on_change."""
