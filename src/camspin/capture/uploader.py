"""Throttled photo upload for the local participant.

Every capture_interval seconds (about 2.5 fps by default) a frame is taken
from the camera, cropped to fill 320x240, JPEG-encoded and written as a
data URL into the participant's own player document. The payload always
replaces the previous photo; nothing is diffed. Failed uploads are
expected on flaky networks and only logged.
"""

import asyncio
import base64
import io
import logging
from typing import Callable, Optional, Tuple

import numpy as np
from numpy.typing import NDArray
from PIL import Image, ImageOps

from camspin.animation.scheduler import FrameLoop
from camspin.capture.camera import FrameSource
from camspin.config.settings import CaptureSettings
from camspin.core.events import Event, EventBus, EventType
from camspin.store.base import RoomStore
from camspin.store.documents import SERVER_TIMESTAMP

logger = logging.getLogger(__name__)


def encode_frame(
    frame: NDArray[np.uint8],
    size: Tuple[int, int] = (320, 240),
    quality: int = 70,
) -> str:
    """Encode an RGB frame as a JPEG data URL.

    Args:
        frame: RGB image array (height, width, 3)
        size: Output (width, height); the frame is cropped to fill
        quality: JPEG quality (1-95)

    Returns:
        "data:image/jpeg;base64,..." payload
    """
    img = Image.fromarray(frame).convert("RGB")
    img = ImageOps.fit(img, size, method=Image.Resampling.BILINEAR)

    buffer = io.BytesIO()
    img.save(buffer, format="JPEG", quality=quality)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"


def decode_photo(payload: str) -> Optional[Image.Image]:
    """Decode a data URL payload back into an image, None if malformed."""
    if not payload or not payload.startswith("data:image/"):
        return None
    try:
        _, data = payload.split(",", 1)
        return Image.open(io.BytesIO(base64.b64decode(data)))
    except (ValueError, OSError) as e:
        logger.debug(f"Could not decode photo payload: {e}")
        return None


class PhotoUploader:
    """Captures and uploads frames on the session's frame loop."""

    def __init__(
        self,
        source: FrameSource,
        store: RoomStore,
        code: str,
        participant_id: str,
        loop: FrameLoop,
        settings: Optional[CaptureSettings] = None,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self.source = source
        self.store = store
        self.code = code
        self.participant_id = participant_id
        self.loop = loop
        self.settings = settings or CaptureSettings()
        self.event_bus = event_bus

        self._remove_tick: Optional[Callable[[], None]] = None
        self._paused = False
        self._last_capture: Optional[float] = None
        self._in_flight: Optional[asyncio.Task] = None
        self._uploads = 0
        self._failures = 0

    @property
    def is_running(self) -> bool:
        return self._remove_tick is not None

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def uploads(self) -> int:
        """Successful uploads so far."""
        return self._uploads

    @property
    def failures(self) -> int:
        return self._failures

    def start(self) -> bool:
        if self.is_running:
            logger.warning("PhotoUploader already running")
            return True
        if not self.source.is_open and not self.source.open():
            logger.error("Failed to open camera")
            return False
        self._remove_tick = self.loop.add_tick_handler(self._on_tick)
        logger.info(f"Photo uploads started for {self.participant_id}")
        return True

    def stop(self) -> None:
        if self._remove_tick is None:
            return
        self._remove_tick()
        self._remove_tick = None
        self.source.close()
        logger.info(f"Photo uploads stopped for {self.participant_id}")

    def toggle(self) -> bool:
        """Pause or resume uploads (camera on/off). Returns True if now active."""
        self._paused = not self._paused
        logger.info(f"Camera {'off' if self._paused else 'on'}")
        return not self._paused

    async def drain(self) -> None:
        if self._in_flight is not None:
            await asyncio.gather(self._in_flight, return_exceptions=True)

    def _on_tick(self, delta: float) -> None:
        if self._paused:
            return
        # One upload at a time
        if self._in_flight is not None and not self._in_flight.done():
            return

        now = self.loop.clock()
        if self._last_capture is not None and now - self._last_capture < self.settings.capture_interval:
            return
        self._last_capture = now

        frame = self.source.capture_frame()
        if frame is None:
            return

        payload = encode_frame(
            frame,
            size=(self.settings.frame_width, self.settings.frame_height),
            quality=self.settings.jpeg_quality,
        )
        self._in_flight = asyncio.get_running_loop().create_task(self._upload(payload))

    async def _upload(self, payload: str) -> None:
        try:
            await self.store.update_player(
                self.code,
                self.participant_id,
                {"photo": payload, "updatedAt": SERVER_TIMESTAMP},
            )
        except Exception as e:
            self._failures += 1
            logger.warning(f"Upload failed: {e}")
            self._emit(EventType.PHOTO_ERROR, {"error": str(e)})
            return

        self._uploads += 1
        self._emit(EventType.PHOTO_CAPTURED, {"bytes": len(payload)})

    def _emit(self, event_type: EventType, data: dict) -> None:
        if self.event_bus is not None:
            self.event_bus.emit(Event(event_type, data=data, source="camera"))
