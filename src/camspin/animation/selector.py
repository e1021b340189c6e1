"""Winner selection for a shuffle round.

The winner index is drawn first and on its own; the landing offset is
then derived from it. Once a selection is handed to the host session it
is never re-rolled.
"""

from dataclasses import dataclass
from typing import Optional
import logging
import math
import random

from camspin.animation.strip import StripLayout
from camspin.core.errors import NotEnoughPlayersError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    """A chosen winner and where the strip must land to show it."""
    winner_index: int
    target_offset: float


class WinnerSelector:
    """Picks a uniformly random winner and computes its landing offset."""

    def __init__(
        self,
        layout: Optional[StripLayout] = None,
        rng: Optional[random.Random] = None,
        min_players: int = 2,
    ) -> None:
        self.layout = layout or StripLayout()
        self.rng = rng or random.Random()
        self.min_players = min_players

    def select_winner(
        self,
        roster_size: int,
        current_offset: float,
        extra_cycles: int = 0,
    ) -> Selection:
        """
        Choose a winner and the offset that centres it on the indicator.

        Args:
            roster_size: Size of the selection pool (snapshotted at spin start)
            current_offset: Strip offset at the moment of selection
            extra_cycles: Additional full strip cycles before landing

        Returns:
            Selection with target_offset strictly ahead of current_offset
        """
        if roster_size < self.min_players:
            raise NotEnoughPlayersError(roster_size, self.min_players)
        if not math.isfinite(current_offset):
            raise ValueError(f"Current offset must be finite, got {current_offset}")

        winner_index = self.rng.randrange(roster_size)
        target = self.target_offset(winner_index, roster_size, current_offset, extra_cycles)

        logger.info(
            f"Selected index {winner_index}/{roster_size}, "
            f"target {target:.1f} (from {current_offset:.1f})"
        )
        return Selection(winner_index=winner_index, target_offset=target)

    def target_offset(
        self,
        winner_index: int,
        roster_size: int,
        current_offset: float,
        extra_cycles: int = 0,
    ) -> float:
        """Landing offset for winner_index, ahead of current_offset.

        Starts from the cycle containing current_offset, moves to the
        first aligned position strictly ahead, then adds extra_cycles
        plus one overshoot cycle of runway for the deceleration.
        """
        strip_width = self.layout.strip_width(roster_size)
        cycle = math.floor(current_offset / strip_width)

        target = cycle * strip_width + self.layout.aligned_offset(winner_index)
        while target <= current_offset:
            target += strip_width

        return target + (extra_cycles + 1) * strip_width
