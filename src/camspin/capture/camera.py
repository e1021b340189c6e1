"""Frame sources for the local participant's photo.

A real device camera plugs in through the FrameSource protocol. The
SyntheticCamera stands in when no camera is attached (demo runs and
tests) and draws a placeholder portrait that changes a little every
frame so uploads are visibly live.
"""

import logging
import math
from typing import Optional, Protocol, Tuple

import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    """Anything that can hand out RGB frames (height, width, 3)."""

    @property
    def is_open(self) -> bool: ...

    def open(self) -> bool: ...

    def close(self) -> None: ...

    def capture_frame(self) -> Optional[NDArray[np.uint8]]: ...


class SyntheticCamera:
    """Placeholder camera producing a generated portrait."""

    def __init__(
        self,
        resolution: Tuple[int, int] = (640, 480),
        tint: Tuple[int, int, int] = (60, 40, 100),
    ):
        """Initialize camera.

        Args:
            resolution: Frame resolution (width, height)
            tint: Base RGB colour of the background gradient
        """
        self._width, self._height = resolution
        self._tint = tint
        self._is_open = False
        self._frame_count = 0

        logger.info(f"SyntheticCamera created: {self._width}x{self._height}")

    @property
    def resolution(self) -> Tuple[int, int]:
        return (self._width, self._height)

    @property
    def is_open(self) -> bool:
        return self._is_open

    def open(self) -> bool:
        self._is_open = True
        return True

    def close(self) -> None:
        self._is_open = False

    def capture_frame(self) -> Optional[NDArray[np.uint8]]:
        """Generate the next frame.

        Returns:
            RGB image array (height, width, 3) or None if closed
        """
        if not self._is_open:
            logger.warning("Camera not open")
            return None
        self._frame_count += 1
        return self._generate_placeholder(self._frame_count)

    def _generate_placeholder(self, frame_number: int) -> NDArray[np.uint8]:
        """Gradient background with a face outline that bobs slowly."""
        h, w = self._height, self._width
        r, g, b = self._tint

        factor = np.linspace(0.0, 1.0, h, dtype=np.float32)[:, None]
        frame = np.empty((h, w, 3), dtype=np.uint8)
        frame[:, :, 0] = np.clip(r + 40 * factor, 0, 255).astype(np.uint8)
        frame[:, :, 1] = np.clip(g + 30 * factor, 0, 255).astype(np.uint8)
        frame[:, :, 2] = np.clip(b + 50 * factor, 0, 255).astype(np.uint8)

        cx = w // 2
        cy = h // 2 + int(4 * math.sin(frame_number / 3))
        radius = min(w, h) // 4

        yy, xx = np.ogrid[:h, :w]
        dist = np.sqrt((xx - cx) ** 2 + (yy - cy) ** 2)
        frame[np.abs(dist - radius) < 1.5] = (200, 200, 200)

        eye_y = cy - radius // 3
        for eye_x in (cx - radius // 3, cx + radius // 3):
            frame[(xx - eye_x) ** 2 + (yy - eye_y) ** 2 <= 25] = (255, 255, 255)

        return frame

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
