"""Layout of the infinite card strip.

The strip tiles the roster endlessly. A slot's card sits at
slot * item_width - offset + viewport/2 - card_width/2, and shows roster
entry slot mod roster_size. Slot 0 is centred on the indicator when the
offset is zero.
"""

from dataclasses import dataclass
from typing import Optional
import math

import numpy as np
from numpy.typing import NDArray

from camspin.config.settings import StripSettings


@dataclass(frozen=True)
class VisibleSlots:
    """Cards to draw this frame.

    Attributes:
        slots: Absolute slot numbers on the infinite strip
        roster_indices: Roster index for each slot
        x: Left edge of each card in viewport pixels
    """
    slots: NDArray[np.int64]
    roster_indices: NDArray[np.int64]
    x: NDArray[np.float64]

    def __len__(self) -> int:
        return int(self.slots.size)


class StripLayout:
    """Maps a strip offset to card positions."""

    def __init__(self, settings: Optional[StripSettings] = None) -> None:
        self.settings = settings or StripSettings()

    @property
    def item_width(self) -> float:
        return self.settings.item_width

    @property
    def indicator_x(self) -> float:
        """Indicator position (viewport centre)."""
        return self.settings.viewport_width / 2

    def strip_width(self, roster_size: int) -> float:
        """Width of one full cycle of the roster."""
        return roster_size * self.item_width

    def aligned_offset(self, index: int) -> float:
        """Smallest non-negative offset that centres roster entry index."""
        return index * self.item_width

    def slot_x(self, slot: int, offset: float) -> float:
        s = self.settings
        return slot * s.item_width - offset + s.viewport_width / 2 - s.card_width / 2

    def visible_slots(self, offset: float, roster_size: int) -> VisibleSlots:
        """Slots overlapping the viewport plus one extra item each side."""
        if roster_size <= 0:
            empty = np.zeros(0, dtype=np.int64)
            return VisibleSlots(empty, empty.copy(), np.zeros(0, dtype=np.float64))

        s = self.settings
        half = s.viewport_width / 2
        first = math.floor((offset - half) / s.item_width) - 1
        last = math.ceil((offset + half) / s.item_width) + 1

        slots = np.arange(first, last + 1, dtype=np.int64)
        roster_indices = np.mod(slots, roster_size)
        x = slots * s.item_width - offset + half - s.card_width / 2
        return VisibleSlots(slots=slots, roster_indices=roster_indices, x=x)

    def index_at_indicator(self, offset: float, roster_size: int) -> int:
        """Roster index of the card closest to the indicator."""
        if roster_size <= 0:
            return -1
        slot = round(offset / self.item_width)
        return int(slot % roster_size)
