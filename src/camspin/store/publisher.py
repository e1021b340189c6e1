"""Retrying writes to the shared room store.

Writes are whole-document and atomic, so a failed write can be repeated
as-is. Retrying lives here, not in the frame loop: sessions schedule a
publish and move on.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from camspin.config.settings import StoreSettings
from camspin.core.errors import StoreError, StoreWriteError
from camspin.store.base import RoomStore

logger = logging.getLogger(__name__)


class RoomPublisher:
    """Store-interaction layer with linear back-off retries."""

    def __init__(self, store: RoomStore, settings: Optional[StoreSettings] = None) -> None:
        self.store = store
        self.settings = settings or StoreSettings()

    async def _with_retries(self, what: str, write: Callable[[], Awaitable[None]]) -> None:
        last_error: Optional[Exception] = None

        for attempt in range(self.settings.max_retries):
            try:
                await write()
                return
            except (StoreError, OSError) as e:
                last_error = e
                logger.warning(f"{what} failed (attempt {attempt + 1}): {e}")
                if attempt < self.settings.max_retries - 1:
                    await asyncio.sleep(self.settings.retry_delay * (attempt + 1))

        logger.error(f"{what}: all retries exhausted")
        raise StoreWriteError(f"{what} failed: {last_error}") from last_error

    async def create_room(self, code: str, data: dict[str, Any]) -> None:
        await self._with_retries(f"create room {code}", lambda: self.store.create_room(code, data))

    async def update_room(self, code: str, fields: dict[str, Any]) -> None:
        await self._with_retries(f"update room {code}", lambda: self.store.update_room(code, fields))

    async def delete_room(self, code: str) -> None:
        await self._with_retries(f"delete room {code}", lambda: self.store.delete_room(code))

    async def set_player(self, code: str, player_id: str, data: dict[str, Any]) -> None:
        await self._with_retries(
            f"set player {player_id}", lambda: self.store.set_player(code, player_id, data)
        )

    async def delete_player(self, code: str, player_id: str) -> None:
        await self._with_retries(
            f"delete player {player_id}", lambda: self.store.delete_player(code, player_id)
        )
