"""
Room state machine for the shuffle flow.

States:
    WAITING: Roster open, no active spin
    SPINNING: Host has requested a shuffle
    FINISHED: Round over, carries the winner id

Only the host drives transitions (transition()). Spectators adopt what
they observe in the shared store (observe()).
"""

from enum import Enum
from dataclasses import dataclass
from typing import Callable, Optional
import logging

logger = logging.getLogger(__name__)


class RoomPhase(Enum):
    """Shared room phase. Values are the store wire format."""
    WAITING = "waiting"
    SPINNING = "spinning"
    FINISHED = "finished"

    @classmethod
    def parse(cls, value: object) -> "RoomPhase":
        """Parse a wire value, falling back to WAITING for unknown input."""
        try:
            return cls(value)
        except ValueError:
            logger.warning(f"Unknown room phase {value!r}, treating as waiting")
            return cls.WAITING


@dataclass(frozen=True)
class RoomStatus:
    """Phase plus outcome, as published to the room document."""
    phase: RoomPhase = RoomPhase.WAITING
    winner_id: Optional[str] = None


StateListener = Callable[[RoomStatus, RoomStatus], None]


class RoomStateMachine:
    """
    Tracks the room phase and notifies listeners of changes.

    Transitions are monotone within one round. FINISHED -> SPINNING
    starts the next round and always clears the winner.
    """

    VALID_TRANSITIONS: list[tuple[RoomPhase, RoomPhase]] = [
        (RoomPhase.WAITING, RoomPhase.SPINNING),
        (RoomPhase.SPINNING, RoomPhase.FINISHED),
        (RoomPhase.FINISHED, RoomPhase.SPINNING),  # Shuffle again
    ]

    def __init__(self, initial: RoomStatus = RoomStatus()) -> None:
        self._status = initial
        self._listeners: list[StateListener] = []
        self._valid_transitions = set(self.VALID_TRANSITIONS)
        logger.debug(f"RoomStateMachine initialized with phase: {initial.phase.name}")

    @property
    def phase(self) -> RoomPhase:
        return self._status.phase

    @property
    def winner_id(self) -> Optional[str]:
        return self._status.winner_id

    @property
    def status(self) -> RoomStatus:
        return self._status

    def can_transition(self, to_phase: RoomPhase) -> bool:
        """Check if transition to given phase is valid."""
        return (self._status.phase, to_phase) in self._valid_transitions

    def transition(self, to_phase: RoomPhase, winner_id: Optional[str] = None) -> bool:
        """
        Attempt an authoritative transition (host only).

        Args:
            to_phase: Target phase
            winner_id: Winner for FINISHED; ignored otherwise

        Returns:
            True if transition successful, False otherwise
        """
        if not self.can_transition(to_phase):
            logger.warning(
                f"Invalid transition: {self._status.phase.name} -> {to_phase.name}"
            )
            return False

        if to_phase == RoomPhase.FINISHED and winner_id is None:
            logger.warning("Refusing FINISHED transition without a winner")
            return False

        new_status = RoomStatus(
            phase=to_phase,
            winner_id=winner_id if to_phase == RoomPhase.FINISHED else None,
        )
        self._set(new_status)
        return True

    def observe(self, status: RoomStatus) -> bool:
        """Adopt a status observed in the shared store.

        Readers may skip phases (late join, coalesced updates), so no
        transition check is applied.

        Returns:
            True if the status changed
        """
        if status.phase != RoomPhase.FINISHED and status.winner_id is not None:
            logger.warning(
                f"Ignoring stale winner {status.winner_id} in phase {status.phase.name}"
            )
            status = RoomStatus(phase=status.phase)
        if status == self._status:
            return False
        self._set(status)
        return True

    def restore(self, status: RoomStatus) -> None:
        """Roll back to a previously confirmed status."""
        if status != self._status:
            logger.info(f"Rolling back phase {self._status.phase.name} -> {status.phase.name}")
            self._set(status)

    def _set(self, new_status: RoomStatus) -> None:
        old_status = self._status
        self._status = new_status
        logger.info(f"Phase transition: {old_status.phase.name} -> {new_status.phase.name}")

        for listener in list(self._listeners):
            try:
                listener(old_status, new_status)
            except Exception as e:
                logger.error(f"Error in state listener: {e}")

    def add_listener(self, callback: StateListener) -> None:
        """Add a state change listener."""
        self._listeners.append(callback)

    def remove_listener(self, callback: StateListener) -> None:
        """Remove a state change listener."""
        if callback in self._listeners:
            self._listeners.remove(callback)
