"""Document shapes stored in the shared room store.

Field names follow the store's wire format (camelCase). The session
layer converts to and from these dataclasses at the store boundary.
"""

from dataclasses import dataclass
from typing import Any, Optional

from camspin.core.roster import Participant
from camspin.core.state import RoomPhase, RoomStatus


class _ServerTimestamp:
    """Placeholder the store replaces with its own write time."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"

    def __copy__(self) -> "_ServerTimestamp":
        return self

    def __deepcopy__(self, memo: dict) -> "_ServerTimestamp":
        return self


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class RoomDocument:
    """rooms/{code}"""
    code: str
    host_id: str
    phase: RoomPhase = RoomPhase.WAITING
    winner_id: Optional[str] = None
    created_at: Optional[float] = None

    @property
    def status(self) -> RoomStatus:
        return RoomStatus(phase=self.phase, winner_id=self.winner_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "hostId": self.host_id,
            "phase": self.phase.value,
            "winnerId": self.winner_id,
            "createdAt": SERVER_TIMESTAMP if self.created_at is None else self.created_at,
        }

    @classmethod
    def from_dict(cls, code: str, data: dict[str, Any]) -> "RoomDocument":
        return cls(
            code=code,
            host_id=data.get("hostId", ""),
            phase=RoomPhase.parse(data.get("phase", RoomPhase.WAITING.value)),
            winner_id=data.get("winnerId") or None,
            created_at=data.get("createdAt"),
        )


def status_fields(status: RoomStatus) -> dict[str, Any]:
    """Fields for one atomic room update carrying phase and winner together."""
    return {"phase": status.phase.value, "winnerId": status.winner_id}


@dataclass(frozen=True)
class PlayerDocument:
    """rooms/{code}/players/{id}"""
    id: str
    name: str
    photo: Optional[str] = None
    joined_at: Optional[float] = None
    updated_at: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "photo": self.photo,
            "joinedAt": SERVER_TIMESTAMP if self.joined_at is None else self.joined_at,
            "updatedAt": SERVER_TIMESTAMP if self.updated_at is None else self.updated_at,
        }

    @classmethod
    def from_dict(cls, player_id: str, data: dict[str, Any]) -> "PlayerDocument":
        return cls(
            id=player_id,
            name=data.get("name", ""),
            photo=data.get("photo"),
            joined_at=data.get("joinedAt"),
            updated_at=data.get("updatedAt"),
        )

    def to_participant(self) -> Participant:
        return Participant(
            id=self.id,
            name=self.name,
            photo_ref=self.photo,
            joined_at=self.joined_at or 0.0,
        )


def participants_from_snapshot(snapshot: dict[str, dict[str, Any]]) -> list[Participant]:
    """Convert a players collection snapshot into roster records."""
    return [
        PlayerDocument.from_dict(player_id, data).to_participant()
        for player_id, data in snapshot.items()
    ]
