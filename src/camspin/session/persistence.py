"""Rejoin record for the last room a participant was in.

A single small JSON file remembers the room code and role so an app
restart can offer "rejoin room ABCD". It is cleared on leave, close and
when the room turns out to be gone.
"""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Literal, Optional

logger = logging.getLogger(__name__)

Role = Literal["host", "player"]


@dataclass(frozen=True)
class SessionRecord:
    code: str
    role: Role
    name: Optional[str] = None


class SessionRecordStore:
    """Loads and saves the SessionRecord at a fixed path."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> Optional[SessionRecord]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            record = SessionRecord(
                code=str(data["code"]),
                role=data["role"],
                name=data.get("name"),
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable session record {self.path}: {e}")
            return None
        if record.role not in ("host", "player"):
            logger.warning(f"Ignoring session record with role {record.role!r}")
            return None
        return record

    def save(self, record: SessionRecord) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(asdict(record), f, ensure_ascii=False, indent=2)
            logger.debug(f"Saved session record: {record.code} ({record.role})")
        except OSError as e:
            logger.error(f"Failed to save session record: {e}")

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to clear session record: {e}")
