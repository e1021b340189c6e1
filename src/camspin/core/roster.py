"""Live roster of participants in a room.

The roster keeps arrival order. Store snapshots are merged so that
participants already on the roster keep their index, new arrivals are
appended and departed ones are dropped.
"""

from dataclasses import dataclass, replace
from typing import Iterable, Iterator, Optional
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Participant:
    """A player on the roster.

    Attributes:
        id: Stable, externally assigned identity
        name: Display name
        photo_ref: Latest photo payload, replaced wholesale on update
        joined_at: Monotonic ordering key assigned by the store
    """
    id: str
    name: str
    photo_ref: Optional[str] = None
    joined_at: float = 0.0


@dataclass(frozen=True)
class RosterSnapshot:
    """Immutable roster view taken at spin start (the selection pool)."""
    participants: tuple[Participant, ...]

    def __len__(self) -> int:
        return len(self.participants)

    def __getitem__(self, index: int) -> Participant:
        return self.participants[index]

    def ids(self) -> tuple[str, ...]:
        return tuple(p.id for p in self.participants)

    def index_of(self, participant_id: str) -> int:
        """Index of a participant in the pool, -1 if absent."""
        for i, p in enumerate(self.participants):
            if p.id == participant_id:
                return i
        return -1


class Roster:
    """Arrival-ordered set of participants."""

    def __init__(self, participants: Iterable[Participant] = ()) -> None:
        self._order: list[str] = []
        self._by_id: dict[str, Participant] = {}
        self.apply_snapshot(participants)

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[Participant]:
        return (self._by_id[pid] for pid in self._order)

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._by_id

    def __getitem__(self, index: int) -> Participant:
        return self._by_id[self._order[index]]

    def get(self, participant_id: Optional[str]) -> Optional[Participant]:
        if participant_id is None:
            return None
        return self._by_id.get(participant_id)

    def index_of(self, participant_id: str) -> int:
        try:
            return self._order.index(participant_id)
        except ValueError:
            return -1

    def add(self, participant: Participant) -> bool:
        """Append a participant, or update it in place if already present.

        Returns:
            True if the participant is new
        """
        if participant.id in self._by_id:
            self._by_id[participant.id] = participant
            return False
        self._order.append(participant.id)
        self._by_id[participant.id] = participant
        logger.debug(f"Participant joined: {participant.name} ({participant.id})")
        return True

    def update_photo(self, participant_id: str, photo_ref: Optional[str]) -> bool:
        """Replace a participant's photo. Returns False if unknown."""
        current = self._by_id.get(participant_id)
        if current is None:
            return False
        self._by_id[participant_id] = replace(current, photo_ref=photo_ref)
        return True

    def remove(self, participant_id: str) -> bool:
        if participant_id not in self._by_id:
            return False
        self._order.remove(participant_id)
        del self._by_id[participant_id]
        logger.debug(f"Participant left: {participant_id}")
        return True

    def apply_snapshot(self, participants: Iterable[Participant]) -> bool:
        """Merge a full collection snapshot from the store.

        Known participants keep their position and get their record
        replaced. New ones are appended in joined_at order.

        Returns:
            True if membership or any record changed
        """
        incoming = {p.id: p for p in participants}
        changed = False

        for pid in [pid for pid in self._order if pid not in incoming]:
            self.remove(pid)
            changed = True

        for pid in self._order:
            if self._by_id[pid] != incoming[pid]:
                self._by_id[pid] = incoming[pid]
                changed = True

        arrivals = sorted(
            (p for pid, p in incoming.items() if pid not in self._by_id),
            key=lambda p: (p.joined_at, p.id),
        )
        for participant in arrivals:
            self.add(participant)
            changed = True

        return changed

    def snapshot(self) -> RosterSnapshot:
        return RosterSnapshot(tuple(self))
